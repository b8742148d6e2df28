"""Centralized error factory for the CloudBase SDK.

Maps transport exceptions and backend payloads onto the SDK error hierarchy.
"""

from __future__ import annotations

import uuid
from typing import Any

import httpx
from pydantic import ValidationError

from ..errors import (
    CloudbaseError,
    InvalidParamsError,
    InvalidResponseError,
    NetworkError,
    OperationFailError,
    RequestTimeoutError,
)


class ErrorFactory:
    """Centralized error creation with consistent structure."""

    @staticmethod
    def generate_correlation_id() -> str:
        """Generate a unique correlation ID."""
        return str(uuid.uuid4())

    @staticmethod
    def from_http_response(
        response: httpx.Response,
        *,
        correlation_id: str | None = None,
    ) -> CloudbaseError:
        """Create SDK error from a non-2xx HTTP response."""
        correlation_id = correlation_id or ErrorFactory.generate_correlation_id()
        details: dict[str, Any] = {"status_code": response.status_code}
        backend_code: str | None = None
        try:
            body = response.json()
            if isinstance(body, dict):
                backend_code = body.get("code")
                details["message"] = body.get("message")
        except ValueError:
            pass

        if response.status_code >= 500:
            return NetworkError(
                f"Server error: {response.status_code}",
                correlation_id=correlation_id,
            )
        return OperationFailError(
            f"Request failed with status {response.status_code}",
            backend_code=backend_code,
            correlation_id=correlation_id,
            details=details,
        )

    @staticmethod
    def from_exception(
        exc: Exception,
        *,
        timeout_ms: int | None = None,
        correlation_id: str | None = None,
    ) -> CloudbaseError:
        """Create SDK error from a transport exception."""
        correlation_id = correlation_id or ErrorFactory.generate_correlation_id()

        if isinstance(exc, CloudbaseError):
            if exc.correlation_id is None:
                exc.correlation_id = correlation_id
            return exc

        if isinstance(exc, httpx.TimeoutException):
            return RequestTimeoutError(
                f"request had been aborted since it didn't finish within {timeout_ms}ms"
                if timeout_ms
                else f"Request timed out: {exc}",
                correlation_id=correlation_id,
                timeout_ms=timeout_ms,
            )

        if isinstance(exc, httpx.HTTPStatusError):
            return ErrorFactory.from_http_response(exc.response, correlation_id=correlation_id)

        if isinstance(exc, httpx.HTTPError):
            return NetworkError(
                f"HTTP error: {exc}",
                correlation_id=correlation_id,
                cause=exc,
            )

        return NetworkError(
            f"Unexpected error: {exc}",
            correlation_id=correlation_id,
            cause=exc,
        )

    @staticmethod
    def backend_rejection(
        action: str,
        backend_code: str,
        *,
        message: str | None = None,
        summary: str | None = None,
    ) -> OperationFailError:
        """Error for a backend answer that carries an error ``code``."""
        text = summary or f"action:{action} failed"
        return OperationFailError(
            f"{text}: {backend_code}",
            backend_code=backend_code,
            details={"action": action, "message": message} if message else {"action": action},
        )

    @staticmethod
    def missing_field(action: str, field: str) -> InvalidResponseError:
        """Error for a backend answer missing a required field."""
        return InvalidResponseError(f"action:{action} not return {field}", action=action)

    @staticmethod
    def malformed_response(action: str, exc: ValidationError) -> InvalidResponseError:
        """Error for a backend answer whose fields have the wrong shape."""
        fields = sorted({".".join(str(part) for part in error["loc"]) for error in exc.errors()})
        error = InvalidResponseError(
            f"action:{action} returned malformed {', '.join(fields) or 'body'}",
            action=action,
        )
        error.__cause__ = exc
        return error

    @staticmethod
    def invalid_config(exc: ValidationError) -> InvalidParamsError:
        """Error for configuration that failed validation, naming the first bad field."""
        errors = exc.errors()
        first = errors[0] if errors else {"loc": (), "msg": str(exc)}
        field = ".".join(str(part) for part in first["loc"]) or None
        error = InvalidParamsError(f"invalid {field or 'config'}: {first['msg']}", field=field)
        error.__cause__ = exc
        return error
