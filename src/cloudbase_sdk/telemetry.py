"""Structured logging and OpenTelemetry tracing for the CloudBase SDK."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .constants import SDK_NAME, get_sdk_version
from .errors import ErrorCode
from .models import SDKWarning

if TYPE_CHECKING:
    from collections.abc import Generator

    from .config import TelemetryConfig

# Module-level tracer and logger
_tracer: trace.Tracer | None = None
_logger: structlog.BoundLogger | None = None


def get_tracer() -> trace.Tracer:
    """Get or create the SDK tracer."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(SDK_NAME, get_sdk_version())
    return _tracer


def get_logger() -> structlog.BoundLogger:
    """Get or create the SDK logger."""
    global _logger
    if _logger is None:
        _logger = structlog.get_logger(SDK_NAME)
    return _logger


def configure_telemetry(config: TelemetryConfig, *, debug: bool = False) -> None:
    """Configure logging and tracing.

    Args:
        config: Telemetry configuration.
        debug: Force DEBUG level regardless of ``config.log_level``.
    """
    global _tracer, _logger

    if not config.enabled:
        _tracer = trace.NoOpTracer()
        return

    level = "DEBUG" if debug else config.log_level
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_log_level_to_int(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )

    _tracer = trace.get_tracer(config.service_name, get_sdk_version())
    _logger = structlog.get_logger(config.service_name)


def _log_level_to_int(level: str) -> int:
    levels = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }
    return levels.get(level.upper(), 20)


@contextmanager
def trace_operation(
    name: str,
    *,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """Context manager for tracing an operation.

    Args:
        name: Name of the operation.
        attributes: Optional span attributes.

    Yields:
        The active span.
    """
    tracer = get_tracer()
    with tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, value)
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


def print_warn(
    code: ErrorCode | str,
    message: str,
    *,
    deprecated: bool = False,
) -> SDKWarning:
    """Log a non-fatal SDK warning and return it as a value."""
    warning = SDKWarning(code=str(code), message=message, deprecated=deprecated)
    get_logger().warning(str(warning), code=warning.code, deprecated=deprecated)
    return warning
