"""Reconciled view of the current login.

A ``LoginState`` owns no credentials: every check re-reads the cache and,
when the access token is missing or stale, proves the session against the
backend with the refresh token. Failures end up on ``state.error`` instead of
being raised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..errors import CloudbaseError
from ..models import Credential, UserInfo
from ..request import now_ms
from ..telemetry import get_logger
from .base import get_local_user_info
from .constants import LoginType

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..cache import CloudbaseCache
    from ..request import CloudbaseRequest


class LoginState:
    def __init__(
        self,
        *,
        env_id: str,
        cache: CloudbaseCache,
        request: CloudbaseRequest,
        clock: Callable[[], int] | None = None,
    ) -> None:
        if not env_id:
            msg = "env_id is required"
            raise ValueError(msg)
        self.env_id = env_id
        self._cache = cache
        self._request = request
        self._clock = clock or now_ms
        self.credential: Credential | None = None
        self.user: UserInfo | None = None
        self.login_type: LoginType | str = LoginType.NULL
        self.error: CloudbaseError | None = None

    def check_local_state(self) -> bool:
        """Refresh this snapshot from the cache only."""
        keys = self._cache.keys
        refresh_token = self._cache.get_store(keys.refresh_token_key)
        access_token = self._cache.get_store(keys.access_token_key)
        self.credential = (
            Credential(refresh_token=refresh_token, access_token=access_token) if refresh_token else None
        )
        self.login_type = self._cache.get_store(keys.login_type_key) or LoginType.NULL
        self.user = get_local_user_info(self._cache)
        return self.is_logged_in

    async def check_local_state_async(self) -> bool:
        """Reconcile with the cache and, if needed, the backend.

        Returns:
            Whether a usable session exists. Never raises for backend or
            transport failures; those are kept on ``self.error``.
        """
        self.error = None
        if not self.check_local_state():
            return False

        keys = self._cache.keys
        access_token = self._cache.get_store(keys.access_token_key)
        expire = self._cache.get_store(keys.access_token_expire_key)
        if access_token and expire and int(expire) > self._clock():
            return True

        try:
            await self._request.refresh_access_token()
        except CloudbaseError as e:
            self.error = e
            get_logger().warning(
                "Login state could not be reconciled",
                env=self.env_id,
                code=e.code,
                backend_code=e.backend_code,
            )
        return self.check_local_state() and self.error is None

    @property
    def is_logged_in(self) -> bool:
        return self.credential is not None

    @property
    def is_anonymous_auth(self) -> bool:
        return self.login_type == LoginType.ANONYMOUS

    @property
    def is_custom_auth(self) -> bool:
        return self.login_type == LoginType.CUSTOM

    @property
    def is_weixin_auth(self) -> bool:
        return self.login_type in {LoginType.WECHAT, LoginType.WECHAT_OPEN, LoginType.WECHAT_PUBLIC}

    def __repr__(self) -> str:
        return f"LoginState(env_id={self.env_id!r}, logged_in={self.is_logged_in}, login_type={self.login_type!r})"
