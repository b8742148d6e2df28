"""Error classes for the CloudBase SDK.

Every error carries a fixed ``[@cloudbase/python-sdk][<CODE>]`` prefix and an
``ErrorCode`` tag so callers can branch on ``error.code`` instead of matching
message prose.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from .constants import SDK_NAME


class ErrorCode(StrEnum):
    """Error kinds raised by the SDK."""

    # Configuration / caller errors
    INVALID_PARAMS = "INVALID_PARAMS"

    # Backend rejected an action
    OPERATION_FAIL = "OPERATION_FAIL"

    # Backend answered but broke the protocol
    INVALID_RESPONSE = "INVALID_RESPONSE"

    # Transport errors
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"

    UNKNOWN_ERROR = "UNKNOWN_ERROR"

    # Warning kind, never raised
    DEPRECATED = "DEPRECATED"


class CloudbaseError(Exception):
    """Base error for the SDK with structured error information."""

    def __init__(
        self,
        message: str,
        code: ErrorCode | str,
        *,
        backend_code: str | None = None,
        correlation_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code if isinstance(code, str) else code.value
        self.backend_code = backend_code
        self.correlation_id = correlation_id
        self.details = details or {}
        super().__init__(f"[{SDK_NAME}][{self.code}] {message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error": self.message,
            "code": self.code,
            "backend_code": self.backend_code,
            "correlation_id": self.correlation_id,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class InvalidParamsError(CloudbaseError):
    """Missing or contradictory configuration / arguments."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(
            message,
            ErrorCode.INVALID_PARAMS,
            details={"field": field} if field else None,
        )
        self.field = field


class OperationFailError(CloudbaseError):
    """The backend explicitly rejected an action."""

    def __init__(
        self,
        message: str,
        *,
        backend_code: str | None = None,
        correlation_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.OPERATION_FAIL,
            backend_code=backend_code,
            correlation_id=correlation_id,
            details=details,
        )


class InvalidResponseError(CloudbaseError):
    """The backend answered without the fields the protocol requires."""

    def __init__(
        self,
        message: str,
        *,
        action: str | None = None,
        correlation_id: str | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.INVALID_RESPONSE,
            correlation_id=correlation_id,
            details={"action": action} if action else None,
        )


class NetworkError(CloudbaseError):
    """Network request failed."""

    def __init__(
        self,
        message: str = "Network request failed",
        *,
        correlation_id: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.NETWORK_ERROR,
            correlation_id=correlation_id,
            details={"cause": str(cause)} if cause else None,
        )
        self.__cause__ = cause


class RequestTimeoutError(CloudbaseError):
    """Request did not finish within the configured timeout."""

    def __init__(
        self,
        message: str = "Request timed out",
        *,
        correlation_id: str | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.TIMEOUT,
            correlation_id=correlation_id,
            details={"timeout_ms": timeout_ms} if timeout_ms else None,
        )


class UnknownError(CloudbaseError):
    """Unexpected failure, such as a navigation that could not be performed."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(
            message,
            ErrorCode.UNKNOWN_ERROR,
            details={"cause": repr(cause)} if cause else None,
        )
        self.__cause__ = cause
