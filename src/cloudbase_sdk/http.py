"""Default httpx transport used by the bundled adapters.

Implements the ``RequestTransport`` contract: one JSON POST per backend
action, bounded by the configured timeout, with optional exponential-backoff
retries on connection failures.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import httpx

from .constants import SDK_NAME, get_sdk_version
from .core.errors import ErrorFactory
from .errors import NetworkError
from .telemetry import get_logger, trace_operation

if TYPE_CHECKING:
    from .adapters.platform import RequestConfig
    from .config import RetryConfig


def create_async_http_client(
    timeout_ms: int,
    *,
    headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create configured async HTTP client.

    Args:
        timeout_ms: Overall timeout in milliseconds.
        headers: Extra default headers.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).

    Returns:
        Configured httpx.AsyncClient.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_ms / 1000),
        headers={
            "User-Agent": f"{SDK_NAME}/{get_sdk_version()} Python",
            "Accept": "application/json",
            **(headers or {}),
        },
        follow_redirects=False,
        transport=transport,
    )


async def async_request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    retry_config: RetryConfig | None,
    *,
    timeout_ms: int | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """Make async HTTP request, retrying connection failures.

    Raises:
        RequestTimeoutError: On timeout once retries are exhausted.
        NetworkError: On any other transport failure.
    """
    logger = get_logger()
    max_retries = retry_config.max_retries if retry_config else 0
    last_error: Exception | None = None

    for attempt in range(max_retries + 1):
        try:
            with trace_operation(
                "http_request",
                attributes={"http.method": method, "http.url": url, "attempt": attempt},
            ):
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response

        except (httpx.TimeoutException, httpx.ConnectError) as e:
            last_error = ErrorFactory.from_exception(e, timeout_ms=timeout_ms)
            if retry_config and attempt < max_retries:
                delay = retry_config.get_delay(attempt)
                logger.warning(
                    "Request failed, retrying",
                    attempt=attempt,
                    delay=delay,
                    error=str(e),
                )
                await asyncio.sleep(delay)

        except httpx.HTTPError as e:
            raise ErrorFactory.from_exception(e, timeout_ms=timeout_ms) from e

    raise last_error or NetworkError("Request failed after retries")


class HttpxTransport:
    """``RequestTransport`` backed by ``httpx.AsyncClient``."""

    def __init__(
        self,
        config: RequestConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._http = create_async_http_client(
            config.timeout_ms,
            headers=config.headers,
            transport=transport,
        )

    async def post(
        self,
        url: str,
        *,
        json: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        response = await async_request_with_retry(
            self._http,
            "POST",
            url,
            self.config.retry,
            timeout_ms=self.config.timeout_ms,
            json=json,
            headers=headers,
        )
        try:
            body = response.json()
        except ValueError as e:
            raise NetworkError("Response body is not JSON", cause=e) from e
        if not isinstance(body, dict):
            raise NetworkError(f"Unexpected response body type: {type(body).__name__}")
        return body

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
