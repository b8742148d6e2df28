"""``Cloudbase`` application facade.

``init`` never turns the receiver into a client: it returns a new, configured
instance so several environments can live in one process. The unconfigured
module-level ``cloudbase`` is only good for adapter selection and registries.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from . import components
from .adapters.platform import (
    CloudbaseAdapter,
    Platform,
    PlatformInfo,
    RequestConfig,
    RequestTransport,
    use_adapters,
    use_default_adapter,
)
from .auth import Auth
from .cache import CloudbaseCache, get_cache_by_env_id, get_local_cache, init_cache
from .components import CloudbaseExtension, Component
from .config import Persistence, SDKConfig
from .constants import SDK_NAME, set_end_point, set_sdk_version
from .core.errors import ErrorFactory
from .errors import InvalidParamsError
from .events import EventBus, event_bus
from .request import CloudbaseRequest, get_request_by_env_id, init_request
from .telemetry import configure_telemetry, get_logger


class Cloudbase:
    """CloudBase application handle."""

    def __init__(
        self,
        config: SDKConfig | None = None,
        *,
        platform: PlatformInfo | None = None,
        bus: EventBus = event_bus,
        request_client: RequestTransport | None = None,
    ) -> None:
        self._config = config
        self._platform = platform or Platform
        self._bus = bus
        self._auth: Auth | None = None
        self.request_client = request_client

    @property
    def config(self) -> SDKConfig:
        if self._config is None:
            raise InvalidParamsError("cloudbase has not been initialized, call init() first")
        return self._config

    @property
    def is_initialized(self) -> bool:
        return self._config is not None

    @property
    def platform(self) -> PlatformInfo:
        return self._platform

    @property
    def cache(self) -> CloudbaseCache:
        return _cache_for(self.config.env)

    @property
    def local_cache(self) -> CloudbaseCache:
        cache = get_local_cache(self.config.env)
        if cache is None:
            raise InvalidParamsError(f"no cache for env {self.config.env}")
        return cache

    @property
    def request(self) -> CloudbaseRequest:
        request = get_request_by_env_id(self.config.env)
        if request is None:
            raise InvalidParamsError(f"no request channel for env {self.config.env}")
        return request

    def init(self, config: SDKConfig | dict[str, Any] | None = None, **kwargs: Any) -> Cloudbase:
        """Validate ``config``, provision cache and request, return a new app.

        Raises:
            InvalidParamsError: Missing/contradictory fields, including a
                missing ``app_secret`` or a mismatched ``app_sign`` outside
                the web runtime.
        """
        if self._platform.adapter is None:
            use_default_adapter(self._platform)
        adapter = self._platform.require_adapter()

        try:
            if isinstance(config, SDKConfig):
                resolved = config.with_overrides(**kwargs) if kwargs else config
            else:
                resolved = SDKConfig(**{**(config or {}), **kwargs})
        except ValidationError as e:
            raise ErrorFactory.invalid_config(e) from e

        if not self._platform.is_web:
            resolved = self._resolve_app_identity(resolved, adapter.get_app_sign)

        if resolved.debug:
            configure_telemetry(resolved.telemetry, debug=True)

        transport = adapter.req_class(
            RequestConfig(
                timeout_ms=resolved.timeout,
                timeout_msg=(
                    f"[{SDK_NAME}][REQUEST TIMEOUT] request had been abort since "
                    f"didn't finished within {resolved.timeout / 1000}s"
                ),
                retry=resolved.retry,
            )
        )
        env = resolved.env
        init_cache(env, resolved.persistence, self._platform, debug=resolved.debug)
        init_request(
            env,
            transport,
            lambda: _cache_for(env),
            runtime=self._platform.runtime,
            app_secret=resolved.app_secret,
            app_sign=resolved.app_sign,
            bus=self._bus,
        )
        get_logger().info(
            "Cloudbase initialized",
            env=env,
            runtime=str(self._platform.runtime),
            persistence=resolved.persistence.value,
            timeout=resolved.timeout,
        )
        return Cloudbase(resolved, platform=self._platform, bus=self._bus, request_client=transport)

    @staticmethod
    def _resolve_app_identity(config: SDKConfig, get_app_sign: Any) -> SDKConfig:
        if config.app_secret is None:
            raise InvalidParamsError("invalid appSecret", field="app_secret")
        adapter_sign = get_app_sign() if get_app_sign else ""
        if config.app_sign and adapter_sign and config.app_sign != adapter_sign:
            raise InvalidParamsError("invalid appSign", field="app_sign")
        if adapter_sign:
            config = config.model_copy(update={"app_sign": adapter_sign})
        if not config.app_sign:
            raise InvalidParamsError("invalid appSign", field="app_sign")
        return config

    def update_config(
        self,
        *,
        persistence: Persistence | str | None = None,
        debug: bool | None = None,
    ) -> SDKConfig:
        """Change persistence and/or debug; the cache is re-provisioned.

        Entries stored under the previous persistence mode are not migrated.
        """
        update: dict[str, Any] = {}
        if persistence is not None:
            update["persistence"] = Persistence(persistence)
        if debug is not None:
            update["debug"] = debug
        self._config = self.config.model_copy(update=update)
        init_cache(self._config.env, self._config.persistence, self._platform, debug=self._config.debug)
        return self._config

    def auth(self, *, persistence: Persistence | str | None = None) -> Auth:
        config = self.config
        if persistence is not None and Persistence(persistence) != config.persistence:
            self.update_config(persistence=persistence)
        if self._auth is None:
            self._auth = Auth(self, bus=self._bus)
        return self._auth

    def use_adapters(self, adapters: CloudbaseAdapter | Sequence[CloudbaseAdapter]) -> bool:
        return use_adapters(adapters, self._platform)

    def register_extension(self, extension: CloudbaseExtension) -> None:
        components.register_extension(extension)

    async def invoke_extension(self, name: str, options: Any = None) -> Any:
        return await components.invoke_extension(name, options, self)

    def register_component(self, component: Component) -> None:
        components.register_component(Cloudbase, component)

    def register_version(self, version: str) -> None:
        set_sdk_version(version)

    def register_end_point(self, url: str, protocol: str | None = None) -> None:
        set_end_point(url, protocol)

    async def aclose(self) -> None:
        if self._auth is not None:
            self._auth.close()
        if self.request_client is not None:
            await self.request_client.aclose()

    def __repr__(self) -> str:
        env = self._config.env if self._config else None
        return f"Cloudbase(env={env!r}, runtime={str(self._platform.runtime)!r})"


def _cache_for(env: str) -> CloudbaseCache:
    cache = get_cache_by_env_id(env)
    if cache is None:
        raise InvalidParamsError(f"no cache for env {env}")
    return cache


cloudbase = Cloudbase()
