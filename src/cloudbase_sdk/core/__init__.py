"""Core components shared across the SDK."""

from __future__ import annotations

from .errors import ErrorFactory

__all__ = ["ErrorFactory"]
