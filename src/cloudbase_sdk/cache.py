"""Credential cache with typed, env-scoped slots.

Each ``CloudbaseCache`` wraps one storage primitive chosen by the persistence
mode. Slot keys are suffixed with the env id so several environments can share
a storage backend without leaking into each other. Values are stored inside a
versioned JSON envelope; an envelope from another version reads as absent.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

from .config import Persistence
from .constants import CACHE_VERSION
from .storage import MemoryStorage
from .telemetry import get_logger

if TYPE_CHECKING:
    from .adapters.platform import PlatformInfo
    from .storage import StorageBackend


@dataclass(frozen=True)
class CacheKeys:
    """Slot names of one environment."""

    access_token_key: str
    access_token_expire_key: str
    refresh_token_key: str
    anonymous_uuid_key: str
    login_type_key: str
    user_info_key: str

    @classmethod
    def for_env(cls, env: str) -> CacheKeys:
        return cls(
            access_token_key=f"access_token_{env}",
            access_token_expire_key=f"access_token_expire_{env}",
            refresh_token_key=f"refresh_token_{env}",
            anonymous_uuid_key=f"anonymous_uuid_{env}",
            login_type_key=f"login_type_{env}",
            user_info_key=f"user_info_{env}",
        )

    def all(self) -> list[str]:
        return list(asdict(self).values())


class CloudbaseCache:
    """Cache bound to one env and one persistence mode."""

    def __init__(
        self,
        env: str,
        persistence: Persistence,
        storage: StorageBackend,
        *,
        debug: bool = False,
    ) -> None:
        self.env = env
        self.persistence = persistence
        self.keys = CacheKeys.for_env(env)
        self.debug = debug
        self._storage = storage

    @staticmethod
    def _wrap(value: Any, version: str) -> str:
        return json.dumps({"version": version, "content": value})

    def _unwrap(self, key: str, raw: str | None, version: str) -> Any:
        if raw is None:
            return None
        try:
            envelope = json.loads(raw)
        except ValueError:
            if self.debug:
                get_logger().debug("Discarding malformed cache entry", key=key)
            return None
        if not isinstance(envelope, dict) or envelope.get("version") != version:
            return None
        return envelope.get("content")

    def get_store(self, key: str, version: str = CACHE_VERSION) -> Any:
        """Read a slot; ``None`` when absent."""
        return self._unwrap(key, self._storage.get_item(key), version)

    def set_store(self, key: str, value: Any, version: str = CACHE_VERSION) -> None:
        """Write a slot synchronously; ``None`` removes it."""
        if value is None:
            self._storage.remove_item(key)
            return
        self._storage.set_item(key, self._wrap(value, version))

    def remove_store(self, key: str) -> None:
        self._storage.remove_item(key)

    async def get_store_async(self, key: str, version: str = CACHE_VERSION) -> Any:
        return self.get_store(key, version)

    async def set_store_async(self, key: str, value: Any, version: str = CACHE_VERSION) -> None:
        """Write a slot; the write has completed when this returns."""
        if value is None:
            await self._storage.remove_item_async(key)
            return
        await self._storage.set_item_async(key, self._wrap(value, version))

    async def remove_store_async(self, key: str) -> None:
        await self._storage.remove_item_async(key)

    def clear(self) -> None:
        """Remove every slot of this env."""
        for key in self.keys.all():
            self._storage.remove_item(key)

    def __repr__(self) -> str:
        return f"CloudbaseCache(env={self.env!r}, persistence={self.persistence.value!r})"


_caches: dict[str, CloudbaseCache] = {}
_local_caches: dict[str, CloudbaseCache] = {}


def _select_storage(persistence: Persistence, platform: PlatformInfo) -> StorageBackend:
    if persistence == Persistence.NONE:
        return MemoryStorage()
    adapter = platform.require_adapter()
    if persistence == Persistence.LOCAL:
        return adapter.local_storage
    return adapter.session_storage


def init_cache(
    env: str,
    persistence: Persistence | str,
    platform: PlatformInfo,
    *,
    debug: bool = False,
) -> CloudbaseCache:
    """(Re)provision the caches of ``env``; previous contents are not migrated."""
    persistence = Persistence(persistence)
    cache = CloudbaseCache(env, persistence, _select_storage(persistence, platform), debug=debug)
    _caches[env] = cache
    _local_caches[env] = CloudbaseCache(
        env,
        Persistence.LOCAL,
        _select_storage(Persistence.LOCAL, platform),
        debug=debug,
    )
    get_logger().debug("Cache initialized", env=env, persistence=persistence.value)
    return cache


def get_cache_by_env_id(env: str) -> CloudbaseCache | None:
    return _caches.get(env)


def get_local_cache(env: str) -> CloudbaseCache | None:
    """Durable cache of ``env``, independent of the configured persistence."""
    return _local_caches.get(env)
