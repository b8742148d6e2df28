"""Component and extension registries."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .errors import InvalidParamsError
from .events import EventBus, event_bus
from .telemetry import get_logger

if TYPE_CHECKING:
    from .app import Cloudbase


@runtime_checkable
class CloudbaseExtension(Protocol):
    """Named capability invoked through ``Cloudbase.invoke_extension``."""

    name: str

    def invoke(self, options: Any, app: Cloudbase) -> Awaitable[Any]: ...


@dataclass(frozen=True)
class InjectEvents:
    events: list[str]
    listener: Callable[..., Any]
    bus: EventBus = event_bus


@dataclass(frozen=True)
class Component:
    """Functionality mounted onto ``Cloudbase``.

    With a ``namespace`` the whole ``entity`` is reachable as
    ``app.<namespace>``; otherwise every public attribute of ``entity`` is
    mounted directly.
    """

    name: str
    entity: Any
    namespace: str | None = None
    inject_events: InjectEvents | None = None
    extra: dict[str, Any] = field(default_factory=dict)


_components: dict[str, Component] = {}
_extensions: dict[str, CloudbaseExtension] = {}


def register_component(target: type, component: Component) -> None:
    if component.name in _components:
        get_logger().warning("Component already registered", component=component.name)
        return
    if component.namespace and hasattr(target, component.namespace):
        raise InvalidParamsError(
            f"namespace {component.namespace} is already in use",
            field="namespace",
        )
    _components[component.name] = component

    if component.namespace:
        setattr(target, component.namespace, component.entity)
    else:
        members = component.entity if isinstance(component.entity, dict) else vars(component.entity)
        for attr, value in members.items():
            if attr.startswith("_"):
                continue
            setattr(target, attr, value)

    if component.inject_events:
        for name in component.inject_events.events:
            component.inject_events.bus.on(name, component.inject_events.listener)


def get_component(name: str) -> Component | None:
    return _components.get(name)


def register_extension(extension: CloudbaseExtension) -> None:
    _extensions[extension.name] = extension


async def invoke_extension(name: str, options: Any, app: Cloudbase) -> Any:
    extension = _extensions.get(name)
    if extension is None:
        raise InvalidParamsError(f"extension:{name} must be registered before invoke", field="name")
    return await extension.invoke(options, app)
