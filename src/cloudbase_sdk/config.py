"""Configuration for the CloudBase SDK.

Uses Pydantic v2 for validation. ``timeout`` is expressed in milliseconds and
is clamped, with a logged warning, instead of being rejected.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
)

from .constants import (
    DEFAULT_TIMEOUT_MS,
    MAX_TIMEOUT_MS,
    MIN_TIMEOUT_MS,
    SDK_NAME,
)
from .errors import ErrorCode
from .telemetry import get_logger


class Persistence(StrEnum):
    """Durability of the credential cache."""

    LOCAL = "local"
    SESSION = "session"
    NONE = "none"


class RetryConfig(BaseModel):
    """Transport retry configuration with exponential backoff."""

    model_config = ConfigDict(frozen=True)

    # Backend actions fail loudly unless the caller opts in
    max_retries: Annotated[int, Field(ge=0, le=10)] = 0
    initial_delay: Annotated[float, Field(gt=0, le=60)] = 0.5
    max_delay: Annotated[float, Field(gt=0, le=300)] = 10.0
    exponential_base: Annotated[float, Field(ge=1.5, le=3.0)] = 2.0
    jitter: Annotated[float, Field(ge=0, le=1.0)] = 0.1

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for given attempt with exponential backoff."""
        import random

        delay = min(
            self.initial_delay * (self.exponential_base**attempt),
            self.max_delay,
        )
        jitter_range = delay * self.jitter
        return delay + random.uniform(-jitter_range, jitter_range)  # noqa: S311


class TelemetryConfig(BaseModel):
    """Logging and tracing configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    service_name: str = SDK_NAME
    log_level: str = "INFO"


class AppSecret(BaseModel):
    """Credentials identifying a non-web application to the backend."""

    model_config = ConfigDict(frozen=True)

    app_access_key_id: str = Field(..., min_length=1)
    app_access_key: SecretStr


def clamp_timeout(timeout: int) -> int:
    """Clamp ``timeout`` (ms) to the supported range, warning when it moves."""
    if timeout > MAX_TIMEOUT_MS:
        get_logger().warning(
            f"[{SDK_NAME}][{ErrorCode.INVALID_PARAMS}]timeout is greater than maximum value[10min]",
            timeout=timeout,
        )
        return MAX_TIMEOUT_MS
    if timeout < MIN_TIMEOUT_MS:
        get_logger().warning(
            f"[{SDK_NAME}][{ErrorCode.INVALID_PARAMS}]timeout is less than minimum value[100ms]",
            timeout=timeout,
        )
        return MIN_TIMEOUT_MS
    return timeout


class SDKConfig(BaseModel):
    """Main configuration produced by ``Cloudbase.init``."""

    model_config = ConfigDict(frozen=True, validate_default=True)

    # Required
    env: str = Field(..., min_length=1)

    timeout: int = DEFAULT_TIMEOUT_MS
    persistence: Persistence = Persistence.SESSION

    # Non-web runtimes
    app_secret: AppSecret | None = None
    app_sign: str | None = None

    debug: bool = False

    retry: RetryConfig = Field(default_factory=RetryConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @field_validator("timeout", mode="before")
    @classmethod
    def validate_timeout(cls, v: Any) -> int:
        if v is None:
            return DEFAULT_TIMEOUT_MS
        return clamp_timeout(int(v))

    @property
    def timeout_seconds(self) -> float:
        return self.timeout / 1000

    def with_overrides(self, **kwargs: Any) -> Self:
        """Create new config with overridden values."""
        data = self.model_dump()
        data.update(kwargs)
        return self.__class__(**data)

    @classmethod
    def from_env(cls, prefix: str = "CLOUDBASE_") -> Self:
        """Create config from environment variables."""
        import os

        def get_env(key: str, default: Any = None) -> Any:
            return os.environ.get(f"{prefix}{key}", default)

        env = get_env("ENV")
        if not env:
            msg = f"{prefix}ENV environment variable is required"
            raise ValueError(msg)

        data: dict[str, Any] = {"env": env}
        if timeout := get_env("TIMEOUT"):
            data["timeout"] = int(timeout)
        if persistence := get_env("PERSISTENCE"):
            data["persistence"] = persistence
        if app_sign := get_env("APP_SIGN"):
            data["app_sign"] = app_sign
        key_id, key = get_env("APP_ACCESS_KEY_ID"), get_env("APP_ACCESS_KEY")
        if key_id and key:
            data["app_secret"] = AppSecret(app_access_key_id=key_id, app_access_key=key)
        data["debug"] = get_env("DEBUG", "").lower() in {"1", "true", "yes"}
        return cls(**data)
