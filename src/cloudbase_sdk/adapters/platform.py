"""Platform adapter contracts and the active-platform handle.

An adapter bundles what differs between runtimes: the transport class, the
storage primitives, navigation, and (outside the web runtime) the signed app
identity. ``PlatformInfo`` records which adapter is active; only
``use_adapters`` and ``use_default_adapter`` write it.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ..errors import InvalidParamsError
from ..telemetry import get_logger

if TYPE_CHECKING:
    from ..config import RetryConfig
    from ..storage import StorageBackend


class Runtime(StrEnum):
    """Runtimes the SDK can run on."""

    WEB = "web"
    WX_MP = "wx_mp"
    NATIVE = "native"


@dataclass(frozen=True)
class RequestConfig:
    """Settings handed to an adapter's transport constructor."""

    timeout_ms: int
    timeout_msg: str = ""
    retry: RetryConfig | None = None
    headers: dict[str, str] = field(default_factory=dict)


@runtime_checkable
class RequestTransport(Protocol):
    """Runtime transport: POST a JSON body, return the decoded JSON body."""

    async def post(
        self,
        url: str,
        *,
        json: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]: ...

    async def aclose(self) -> None: ...


@runtime_checkable
class Location(Protocol):
    """Current address and navigation of the host page."""

    @property
    def href(self) -> str: ...

    def assign(self, url: str) -> None: ...


class SDKAdapter(Protocol):
    """Capability bundle of one runtime."""

    req_class: Callable[[RequestConfig], RequestTransport]
    local_storage: StorageBackend
    session_storage: StorageBackend
    location: Location
    get_app_sign: Callable[[], str] | None


@dataclass(frozen=True)
class CloudbaseAdapter:
    """Selectable adapter offered to ``use_adapters``."""

    runtime: str
    gen_adapter: Callable[[], SDKAdapter]
    is_match: Callable[[], bool] = lambda: True


class PlatformInfo:
    """Mutable handle on the active runtime and its adapter."""

    def __init__(self) -> None:
        self.runtime: str = Runtime.WEB
        self.adapter: SDKAdapter | None = None

    def install(self, adapter: SDKAdapter, runtime: str) -> None:
        self.adapter = adapter
        self.runtime = runtime
        get_logger().debug("Platform adapter installed", runtime=runtime)

    def require_adapter(self) -> SDKAdapter:
        """Return the active adapter or fail if none was selected."""
        if self.adapter is None:
            raise InvalidParamsError("no platform adapter is in use", field="adapter")
        return self.adapter

    @property
    def is_web(self) -> bool:
        return self.runtime == Runtime.WEB

    def __repr__(self) -> str:
        return f"PlatformInfo(runtime={self.runtime!r}, adapter={self.adapter!r})"


def select_adapter(
    candidates: CloudbaseAdapter | Sequence[CloudbaseAdapter],
) -> tuple[SDKAdapter, str] | None:
    """Pick the first candidate that matches the current runtime."""
    if isinstance(candidates, CloudbaseAdapter):
        candidates = [candidates]
    for candidate in candidates:
        if candidate.is_match():
            return candidate.gen_adapter(), candidate.runtime
    return None


def use_adapters(
    candidates: CloudbaseAdapter | Sequence[CloudbaseAdapter],
    platform: PlatformInfo | None = None,
) -> bool:
    """Install the matching adapter; leave the platform untouched otherwise.

    Returns:
        Whether an adapter was installed.
    """
    platform = platform or Platform
    selected = select_adapter(candidates)
    if selected is None:
        return False
    adapter, runtime = selected
    platform.install(adapter, runtime)
    return True


def use_default_adapter(platform: PlatformInfo | None = None) -> None:
    """Install the web adapter."""
    from .web import web_adapter

    platform = platform or Platform
    platform.install(web_adapter.gen_adapter(), web_adapter.runtime)


# Process-scoped default handle
Platform = PlatformInfo()
