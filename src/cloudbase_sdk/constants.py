"""Shared constants and mutable SDK identity (version, backend endpoint)."""

from __future__ import annotations

SDK_NAME = "@cloudbase/python-sdk"

# Backend protocol version sent with every action
DATA_VERSION = "2020-01-10"

# Versioned envelope tag for cached values
CACHE_VERSION = "localCachev1"

DEFAULT_TIMEOUT_MS = 15000
MIN_TIMEOUT_MS = 100
MAX_TIMEOUT_MS = 1000 * 60 * 10

_sdk_version = "0.1.0"
_end_point = "//tcb-api.tencentcloudapi.com/web"
_protocol = "https:"


def set_sdk_version(version: str) -> None:
    """Override the version reported in the X-SDK-Version header."""
    global _sdk_version
    _sdk_version = version


def get_sdk_version() -> str:
    return _sdk_version


def set_end_point(url: str, protocol: str | None = None) -> None:
    """Point the request channel at another backend gateway.

    Args:
        url: Gateway address, with or without a scheme.
        protocol: ``"http"`` or ``"https"``; keeps the current one if omitted.
    """
    global _end_point, _protocol
    if "://" in url:
        scheme, _, rest = url.partition("://")
        _protocol = f"{scheme}:"
        _end_point = f"//{rest}"
    else:
        _end_point = url if url.startswith("//") else f"//{url}"
    if protocol:
        _protocol = f"{protocol.rstrip(':')}:"


def get_end_point() -> tuple[str, str]:
    """Return ``(end_point, protocol)``."""
    return _end_point, _protocol


def get_base_url() -> str:
    return f"{_protocol}{_end_point}"
