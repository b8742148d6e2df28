"""Runtime adapters."""

from __future__ import annotations

from .native import NativePlatformAdapter, native_adapter
from .platform import (
    CloudbaseAdapter,
    Location,
    Platform,
    PlatformInfo,
    RequestConfig,
    RequestTransport,
    Runtime,
    SDKAdapter,
    select_adapter,
    use_adapters,
    use_default_adapter,
)
from .web import CallbackLocation, WebPlatformAdapter, web_adapter

__all__ = [
    "CallbackLocation",
    "CloudbaseAdapter",
    "Location",
    "NativePlatformAdapter",
    "Platform",
    "PlatformInfo",
    "RequestConfig",
    "RequestTransport",
    "Runtime",
    "SDKAdapter",
    "WebPlatformAdapter",
    "native_adapter",
    "select_adapter",
    "use_adapters",
    "use_default_adapter",
    "web_adapter",
]
