"""CloudBase Python SDK."""

from .adapters import (
    CallbackLocation,
    CloudbaseAdapter,
    Platform,
    PlatformInfo,
    Runtime,
    native_adapter,
    use_adapters,
    use_default_adapter,
    web_adapter,
)
from .app import Cloudbase, cloudbase
from .auth import Auth, LoginState, LoginType, ProviderState, WeixinAuthProvider
from .cache import CacheKeys, CloudbaseCache
from .config import AppSecret, Persistence, RetryConfig, SDKConfig, TelemetryConfig
from .errors import (
    CloudbaseError,
    ErrorCode,
    InvalidParamsError,
    InvalidResponseError,
    NetworkError,
    OperationFailError,
    RequestTimeoutError,
    UnknownError,
)
from .events import CloudbaseEvent, EventBus, Events, event_bus
from .models import SDKWarning

__all__ = [
    "AppSecret",
    "Auth",
    "CacheKeys",
    "CallbackLocation",
    "Cloudbase",
    "CloudbaseAdapter",
    "CloudbaseCache",
    "CloudbaseError",
    "CloudbaseEvent",
    "ErrorCode",
    "EventBus",
    "Events",
    "InvalidParamsError",
    "InvalidResponseError",
    "LoginState",
    "LoginType",
    "NetworkError",
    "OperationFailError",
    "Persistence",
    "Platform",
    "PlatformInfo",
    "ProviderState",
    "RequestTimeoutError",
    "RetryConfig",
    "Runtime",
    "SDKConfig",
    "SDKWarning",
    "TelemetryConfig",
    "UnknownError",
    "WeixinAuthProvider",
    "cloudbase",
    "event_bus",
    "native_adapter",
    "use_adapters",
    "use_default_adapter",
    "web_adapter",
]

__version__ = "0.1.0"
