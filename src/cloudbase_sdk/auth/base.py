"""Contract shared by every auth provider, and the helpers they share.

Providers are independent classes that satisfy ``AuthProvider``; the shared
parts (login-type classification, user-info refresh) are plain functions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ..core.errors import ErrorFactory
from ..models import UserInfo
from .constants import OPEN_PLATFORM_SCOPE, LoginType

if TYPE_CHECKING:
    from ..adapters.platform import Location
    from ..cache import CloudbaseCache
    from ..config import Persistence
    from ..request import CloudbaseRequest
    from .login_state import LoginState


@dataclass(frozen=True)
class AuthProviderConfig:
    """Everything a provider is bound to."""

    env: str
    persistence: Persistence
    cache: CloudbaseCache
    request: CloudbaseRequest
    runtime: str
    location: Location


@runtime_checkable
class AuthProvider(Protocol):
    """Lifecycle contract of a redirect-capable credential provider."""

    async def sign_in_with_redirect(self) -> None: ...

    async def get_redirect_result(self, **options: Any) -> LoginState | None: ...

    async def get_link_redirect_result(self, **options: Any) -> dict[str, Any] | None: ...


def classify_login_type(scope: str) -> LoginType:
    """Login type sent to the backend for a WeChat OAuth ``scope``."""
    if scope == OPEN_PLATFORM_SCOPE:
        return LoginType.WECHAT_OPEN
    return LoginType.WECHAT_PUBLIC


def set_local_user_info(cache: CloudbaseCache, user_info: dict[str, Any] | None) -> None:
    cache.set_store(cache.keys.user_info_key, user_info)


def get_local_user_info(cache: CloudbaseCache) -> UserInfo | None:
    payload = cache.get_store(cache.keys.user_info_key)
    return UserInfo.from_payload(payload) if payload else None


async def refresh_user_info(cache: CloudbaseCache, request: CloudbaseRequest) -> dict[str, Any]:
    """Fetch the current user's profile and cache it.

    Raises:
        OperationFailError: The backend rejected ``auth.getUserInfo``.
    """
    action = "auth.getUserInfo"
    body = await request.send(action, {})
    if body.get("code"):
        raise ErrorFactory.backend_rejection(action, body["code"], message=body.get("message"))
    data = body.get("data") or {}
    set_local_user_info(cache, data)
    return data
