"""Authentication: providers, login state and the ``Auth`` facade."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..core.errors import ErrorFactory
from ..events import CloudbaseEvent, EventBus, Events, event_bus
from ..models import UserInfo
from ..telemetry import get_logger
from .base import (
    AuthProvider,
    AuthProviderConfig,
    classify_login_type,
    get_local_user_info,
    refresh_user_info,
)
from .constants import LoginType, ProviderState
from .login_state import LoginState
from .providers import WeixinAuthProvider

if TYPE_CHECKING:
    from ..app import Cloudbase

__all__ = [
    "Auth",
    "AuthProvider",
    "AuthProviderConfig",
    "LoginState",
    "LoginType",
    "ProviderState",
    "WeixinAuthProvider",
    "classify_login_type",
    "get_auth_by_env_id",
]


class Auth:
    """Entry point for sign-in flows of one configured app."""

    def __init__(self, app: Cloudbase, *, bus: EventBus = event_bus) -> None:
        self._app = app
        self._bus = bus
        self._unsubscribe = bus.on(Events.LOGIN_TYPE_CHANGED, self._on_login_type_changed)
        # One login-type follower per env; a re-provisioned Auth replaces the old one
        previous = _auths.get(self.env)
        if previous is not None:
            previous.close()
        _auths[self.env] = self

    @property
    def env(self) -> str:
        return self._app.config.env

    def _provider_config(self) -> AuthProviderConfig:
        config = self._app.config
        return AuthProviderConfig(
            env=config.env,
            persistence=config.persistence,
            cache=self._app.cache,
            request=self._app.request,
            runtime=self._app.platform.runtime,
            location=self._app.platform.require_adapter().location,
        )

    def weixin_auth_provider(self, appid: str, scope: str, state: str | None = None) -> WeixinAuthProvider:
        return WeixinAuthProvider(self._provider_config(), appid, scope, state, bus=self._bus)

    def has_login_state(self) -> LoginState | None:
        """Cache-only check; ``None`` when no refresh token is stored."""
        login_state = LoginState(env_id=self.env, cache=self._app.cache, request=self._app.request)
        return login_state if login_state.check_local_state() else None

    async def get_login_state(self) -> LoginState | None:
        """Login state reconciled with the backend; ``None`` when signed out."""
        login_state = LoginState(env_id=self.env, cache=self._app.cache, request=self._app.request)
        await login_state.check_local_state_async()
        return login_state if login_state.is_logged_in else None

    @property
    def current_user(self) -> UserInfo | None:
        return get_local_user_info(self._app.cache)

    async def get_user_info(self) -> UserInfo:
        return UserInfo.from_payload(await refresh_user_info(self._app.cache, self._app.request))

    def on_login_state_changed(self, callback: Callable[[LoginState | None], Any]) -> Callable[[], None]:
        """Call ``callback`` with the cached login state after every change."""
        return self._bus.on(Events.LOGIN_STATE_CHANGED, lambda _event: callback(self.has_login_state()))

    def on_login_type_changed(self, callback: Callable[[CloudbaseEvent], Any]) -> Callable[[], None]:
        return self._bus.on(Events.LOGIN_TYPE_CHANGED, callback)

    async def sign_out(self) -> dict[str, Any] | None:
        """Revoke the refresh token and drop the local session.

        Returns:
            The ``auth.logout`` response, or ``None`` when not signed in.
        """
        action = "auth.logout"
        cache = self._app.cache
        keys = cache.keys
        refresh_token = cache.get_store(keys.refresh_token_key)
        if not refresh_token:
            return None
        body = await self._app.request.send(action, {"refresh_token": refresh_token})
        for key in (
            keys.refresh_token_key,
            keys.access_token_key,
            keys.access_token_expire_key,
            keys.user_info_key,
        ):
            await cache.remove_store_async(key)
        self._bus.fire(Events.LOGIN_STATE_CHANGED)
        self._bus.fire(
            Events.LOGIN_TYPE_CHANGED,
            {
                "env": self.env,
                "login_type": LoginType.NULL,
                "persistence": self._app.config.persistence,
            },
        )
        if body.get("code"):
            raise ErrorFactory.backend_rejection(action, body["code"], message=body.get("message"))
        return body

    def _on_login_type_changed(self, event: CloudbaseEvent) -> None:
        data = event.data or {}
        if data.get("env") != self.env:
            return
        login_type = data.get("login_type")
        self._app.cache.set_store(self._app.cache.keys.login_type_key, str(login_type) if login_type else None)
        get_logger().debug("Login type changed", env=self.env, login_type=login_type)

    def close(self) -> None:
        """Stop following login-type changes."""
        self._unsubscribe()
        if _auths.get(self.env) is self:
            del _auths[self.env]


_auths: dict[str, Auth] = {}


def get_auth_by_env_id(env: str) -> Auth | None:
    return _auths.get(env)
