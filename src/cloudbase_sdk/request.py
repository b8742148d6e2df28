"""Request channel: send a named backend action and get its decoded body.

Actions other than the sign-in family carry an access token, which is minted
on demand from the cached refresh token when missing or expired. Backend
rejections come back as a ``code`` field in the body and are left for the
caller to interpret; transport failures raise.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import jwt
from pydantic import ValidationError

from .adapters.platform import Runtime
from .constants import DATA_VERSION, SDK_NAME, get_base_url, get_sdk_version
from .core.errors import ErrorFactory
from .errors import InvalidParamsError, OperationFailError
from .events import EventBus, Events, event_bus
from .models import AccessTokenResponse
from .telemetry import get_logger, trace_operation

if TYPE_CHECKING:
    from .adapters.platform import RequestTransport
    from .cache import CloudbaseCache
    from .config import AppSecret

ACTIONS_WITHOUT_ACCESS_TOKEN = frozenset(
    {
        "auth.getJwt",
        "auth.logout",
        "auth.signInWithTicket",
        "auth.signInAnonymously",
        "auth.signIn",
        "auth.fetchAccessTokenWithRefreshToken",
        "auth.signUpWithEmailAndPassword",
        "auth.activateEndUserMail",
        "auth.sendPasswordResetEmail",
        "auth.resetPasswordWithToken",
        "auth.isUsernameRegistered",
    }
)

# Backend codes meaning the access token must be minted again
ACCESS_TOKEN_REJECTED_CODES = frozenset(
    {"ACCESS_TOKEN_EXPIRED", "ACCESS_TOKEN_DISABLED", "CHECK_LOGIN_FAILED"}
)

# Backend codes meaning the refresh token itself is unusable
REFRESH_TOKEN_REJECTED_CODES = frozenset(
    {"SIGN_PARAM_INVALID", "REFRESH_TOKEN_EXPIRED", "INVALID_REFRESH_TOKEN"}
)


def now_ms() -> int:
    return int(time.time() * 1000)


class CloudbaseRequest:
    """Request channel of one env."""

    def __init__(
        self,
        env: str,
        transport: RequestTransport,
        cache_provider: Callable[[], CloudbaseCache],
        *,
        runtime: str = Runtime.WEB,
        app_secret: AppSecret | None = None,
        app_sign: str | None = None,
        bus: EventBus = event_bus,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.env = env
        self.runtime = runtime
        self._transport = transport
        self._cache_provider = cache_provider
        self._app_secret = app_secret
        self._app_sign = app_sign
        self._bus = bus
        self._clock = clock
        self._refresh_task: asyncio.Future[AccessTokenResponse] | None = None
        self._logger = get_logger()

    @property
    def cache(self) -> CloudbaseCache:
        return self._cache_provider()

    @property
    def url(self) -> str:
        return f"{get_base_url()}?env={self.env}"

    async def send(self, action: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send ``action`` with ``data``; return the decoded response body.

        Raises:
            NetworkError: Transport failure.
            RequestTimeoutError: No answer within the configured timeout.
            OperationFailError: An access token was needed but none could be minted.
        """
        return await self._send(action, data or {}, retried=False)

    async def _send(self, action: str, data: dict[str, Any], *, retried: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "action": action,
            "dataVersion": DATA_VERSION,
            "env": self.env,
            **data,
        }
        needs_token = action not in ACTIONS_WITHOUT_ACCESS_TOKEN
        if needs_token:
            payload["access_token"] = await self.get_access_token()

        self._logger.debug("Sending action", env=self.env, action=action)
        with trace_operation(
            "cloudbase.send",
            attributes={"cloudbase.action": action, "cloudbase.env": self.env},
        ):
            body = await self._transport.post(self.url, json=payload, headers=self._headers())

        if needs_token and not retried and body.get("code") in ACCESS_TOKEN_REJECTED_CODES:
            self._logger.info("Access token rejected, minting a new one", action=action, code=body["code"])
            await self.cache.remove_store_async(self.cache.keys.access_token_key)
            return await self._send(action, data, retried=True)
        return body

    def _headers(self) -> dict[str, str]:
        headers = {"X-SDK-Version": f"{SDK_NAME}/{get_sdk_version()}"}
        if self.runtime != Runtime.WEB:
            headers["X-TCB-App-Source"] = self._app_source()
        return headers

    def _app_source(self) -> str:
        if self._app_secret is None or not self._app_sign:
            raise InvalidParamsError("appSecret and appSign are required outside the web runtime")
        timestamp = self._clock()
        key_id = self._app_secret.app_access_key_id
        sign = jwt.encode(
            {"data": {}, "timestamp": timestamp, "appAccessKeyId": key_id, "appSign": self._app_sign},
            self._app_secret.app_access_key.get_secret_value(),
            algorithm="HS256",
        )
        return f"timestamp={timestamp};appAccessKeyId={key_id};appSign={self._app_sign};sign={sign}"

    async def get_access_token(self) -> str:
        """Cached access token, minted from the refresh token when stale."""
        cache = self.cache
        access_token = cache.get_store(cache.keys.access_token_key)
        expire = cache.get_store(cache.keys.access_token_expire_key)
        if access_token and expire and int(expire) > self._clock():
            return access_token
        result = await self.refresh_access_token()
        return result.access_token or ""

    async def refresh_access_token(self) -> AccessTokenResponse:
        """Mint an access token; concurrent callers share one backend call."""
        if self._refresh_task is None:
            task = asyncio.ensure_future(self._refresh_access_token())
            self._refresh_task = task
            task.add_done_callback(self._reset_refresh_task)
        return await self._refresh_task

    def _reset_refresh_task(self, task: asyncio.Future[AccessTokenResponse]) -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    async def _refresh_access_token(self) -> AccessTokenResponse:
        action = "auth.fetchAccessTokenWithRefreshToken"
        cache = self.cache
        keys = cache.keys
        refresh_token = cache.get_store(keys.refresh_token_key)
        if not refresh_token:
            raise OperationFailError("not login", details={"env": self.env})

        body = await self.send(action, {"refresh_token": refresh_token})
        try:
            response = AccessTokenResponse.model_validate(body)
        except ValidationError as e:
            raise ErrorFactory.malformed_response(action, e) from e
        if response.code:
            if response.code in REFRESH_TOKEN_REJECTED_CODES:
                self._logger.warning("Refresh token rejected, dropping session", env=self.env, code=response.code)
                for key in (keys.refresh_token_key, keys.access_token_key, keys.access_token_expire_key):
                    await cache.remove_store_async(key)
                self._bus.fire(Events.LOGIN_STATE_EXPIRED)
            raise ErrorFactory.backend_rejection(
                action,
                response.code,
                message=response.message,
                summary="refresh access token failed",
            )
        if not response.access_token:
            raise ErrorFactory.missing_field(action, "accessToken")

        await cache.set_store_async(keys.access_token_key, response.access_token)
        if response.access_token_expire:
            await cache.set_store_async(
                keys.access_token_expire_key,
                response.access_token_expire + self._clock(),
            )
        self._bus.fire(Events.ACCESS_TOKEN_REFRESHED)
        return response

    async def aclose(self) -> None:
        await self._transport.aclose()

    def __repr__(self) -> str:
        return f"CloudbaseRequest(env={self.env!r}, runtime={self.runtime!r})"


_requests: dict[str, CloudbaseRequest] = {}


def init_request(
    env: str,
    transport: RequestTransport,
    cache_provider: Callable[[], CloudbaseCache],
    **kwargs: Any,
) -> CloudbaseRequest:
    """(Re)provision the request channel of ``env``."""
    request = CloudbaseRequest(env, transport, cache_provider, **kwargs)
    _requests[env] = request
    return request


def get_request_by_env_id(env: str) -> CloudbaseRequest | None:
    return _requests.get(env)
