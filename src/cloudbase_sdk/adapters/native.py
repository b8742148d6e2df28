"""Adapter for native hosts that identify themselves with a signed app id."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from ..http import HttpxTransport
from ..storage import FileStorage, MemoryStorage
from .platform import CloudbaseAdapter, Runtime
from .web import DEFAULT_STORAGE_DIR, CallbackLocation


class NativePlatformAdapter:
    req_class = HttpxTransport

    def __init__(
        self,
        app_sign: str | None = None,
        *,
        storage_dir: str | Path = DEFAULT_STORAGE_DIR,
        location: CallbackLocation | None = None,
    ) -> None:
        self._app_sign = app_sign
        self.local_storage = FileStorage(Path(storage_dir) / "native_storage.json")
        self.session_storage = MemoryStorage()
        self.location = location or CallbackLocation()
        self.get_app_sign: Callable[[], str] | None = (lambda: app_sign) if app_sign else None


def native_adapter(
    app_sign: str | None = None,
    *,
    storage_dir: str | Path = DEFAULT_STORAGE_DIR,
    is_match: Callable[[], bool] = lambda: True,
) -> CloudbaseAdapter:
    """Build a selectable native adapter bound to ``app_sign``."""
    return CloudbaseAdapter(
        runtime=Runtime.NATIVE,
        gen_adapter=lambda: NativePlatformAdapter(app_sign, storage_dir=storage_dir),
        is_match=is_match,
    )
