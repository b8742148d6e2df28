"""Default web adapter.

In a Python host the "page" is whatever served the OAuth callback, so
navigation goes through ``CallbackLocation``: it holds the address the host
was reached at and records where the SDK asked to navigate.
"""

from __future__ import annotations

import os
from pathlib import Path

from ..http import HttpxTransport
from ..storage import FileStorage, MemoryStorage
from .platform import CloudbaseAdapter, Runtime

DEFAULT_STORAGE_DIR = "~/.cloudbase"

# Session storage lives as long as the process
_session_storage = MemoryStorage()


class CallbackLocation:
    """In-process ``Location`` for hosts that serve the redirect themselves."""

    def __init__(self, href: str = "") -> None:
        self._href = href
        self.navigations: list[str] = []

    @property
    def href(self) -> str:
        return self._href

    def set_href(self, href: str) -> None:
        """Record the address the host was reached at."""
        self._href = href

    def assign(self, url: str) -> None:
        self.navigations.append(url)
        self._href = url

    @property
    def last_navigation(self) -> str | None:
        return self.navigations[-1] if self.navigations else None


class WebPlatformAdapter:
    """Adapter for the web runtime."""

    req_class = HttpxTransport
    get_app_sign = None

    def __init__(
        self,
        *,
        storage_dir: str | Path | None = None,
        location: CallbackLocation | None = None,
    ) -> None:
        root = Path(storage_dir or os.environ.get("CLOUDBASE_STORAGE_DIR", DEFAULT_STORAGE_DIR))
        self.local_storage = FileStorage(root / "local_storage.json")
        self.session_storage = _session_storage
        self.location = location or CallbackLocation()


web_adapter = CloudbaseAdapter(runtime=Runtime.WEB, gen_adapter=WebPlatformAdapter)
