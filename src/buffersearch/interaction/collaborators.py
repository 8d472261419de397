"""
External collaborator interfaces.

The core never talks to a concrete map widget, component registry or toast system. It
depends on these small protocols instead:
- `MapView`: draw-tool and overlay-layer factories plus add/remove primitives.
- `ComponentHost`: `display(component, props) -> Handle`; `Handle.dispose()` removes it.
- `Notifier`: user-visible (message, severity) notifications.

`RegistryHost` adapts an id-based registry (show with an `on_mounted(id)` callback,
remove by id) to the handle-based `ComponentHost`.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Literal, Protocol

from buffersearch.core.geo import Point

logger = logging.getLogger(__name__)

Severity = Literal["info", "warning", "error"]
DrawEndListener = Callable[[Point], None]


class DrawTool(Protocol):
    geometry_type: str

    def set_draw_end_listener(self, listener: DrawEndListener | None) -> None:
        """Replace the single draw-end subscriber (None unsubscribes)."""


class OverlayLayer(Protocol):
    def clear(self) -> None: ...

    def add_geometry(self, geometry: dict[str, Any], *, style: str) -> None: ...


class MapView(Protocol):
    crs: str

    def create_draw_tool(self, geometry_type: str) -> DrawTool: ...

    def create_overlay_layer(self) -> OverlayLayer: ...

    def add_interaction(self, tool: DrawTool) -> None: ...

    def remove_interaction(self, tool: DrawTool) -> None: ...

    def add_layer(self, layer: OverlayLayer) -> None: ...

    def remove_layer(self, layer: OverlayLayer) -> None: ...


class Handle(Protocol):
    def dispose(self) -> None: ...


class ComponentHost(Protocol):
    def display(self, component: str, props: dict[str, Any]) -> Handle: ...


class Notifier(Protocol):
    def notify(self, message: str, severity: Severity) -> None: ...


class LoggingNotifier:
    """Routes user notifications to the `buffersearch.notify` logger."""

    _LEVELS = {"info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}

    def __init__(self, logger_name: str = "buffersearch.notify"):
        self._logger = logging.getLogger(logger_name)

    def notify(self, message: str, severity: Severity) -> None:
        self._logger.log(self._LEVELS.get(severity, logging.INFO), message)


class ComponentRegistry(Protocol):
    def show_component(
        self,
        plugin: str,
        name: str,
        props: dict[str, Any],
        on_mounted: Callable[[str], None],
    ) -> None: ...

    def remove_component(self, component_id: str) -> None: ...


class _RegistryHandle:
    def __init__(self, registry: ComponentRegistry):
        self._registry = registry
        self._component_id: str | None = None
        self._disposed = False

    def mounted(self, component_id: str) -> None:
        if self._disposed:
            # Disposed before the registry finished mounting: remove right away.
            self._registry.remove_component(component_id)
            return
        self._component_id = component_id

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        if self._component_id is not None:
            self._registry.remove_component(self._component_id)
            self._component_id = None


class RegistryHost:
    """`ComponentHost` over an id-based component registry."""

    def __init__(self, registry: ComponentRegistry, *, plugin: str):
        self._registry = registry
        self._plugin = plugin

    def display(self, component: str, props: dict[str, Any]) -> Handle:
        handle = _RegistryHandle(self._registry)
        self._registry.show_component(self._plugin, component, props, handle.mounted)
        return handle
