"""
In-memory collaborators for headless runs (CLI, API) and tests.

`InMemoryDrawTool.finish()` simulates a completed draw gesture; everything else just
records what the core asked the map and host to do.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any

from buffersearch.core.geo import Point
from buffersearch.interaction.collaborators import DrawEndListener, Severity


class InMemoryDrawTool:
    def __init__(self, geometry_type: str):
        self.geometry_type = geometry_type
        self._listener: DrawEndListener | None = None

    @property
    def has_listener(self) -> bool:
        return self._listener is not None

    def set_draw_end_listener(self, listener: DrawEndListener | None) -> None:
        self._listener = listener

    def finish(self, point: Point) -> None:
        if self._listener is not None:
            self._listener(point)


class InMemoryOverlay:
    def __init__(self) -> None:
        self.items: list[tuple[str, dict[str, Any]]] = []

    def clear(self) -> None:
        self.items = []

    def add_geometry(self, geometry: dict[str, Any], *, style: str) -> None:
        self.items.append((style, geometry))

    def styles(self) -> list[str]:
        return [style for style, _ in self.items]


class InMemoryMap:
    def __init__(self, crs: str = "EPSG:4326"):
        self.crs = crs
        self.interactions: list[InMemoryDrawTool] = []
        self.layers: list[InMemoryOverlay] = []
        self.tools_created = 0

    def create_draw_tool(self, geometry_type: str) -> InMemoryDrawTool:
        self.tools_created += 1
        return InMemoryDrawTool(geometry_type)

    def create_overlay_layer(self) -> InMemoryOverlay:
        return InMemoryOverlay()

    def add_interaction(self, tool: InMemoryDrawTool) -> None:
        self.interactions.append(tool)

    def remove_interaction(self, tool: InMemoryDrawTool) -> None:
        if tool in self.interactions:
            self.interactions.remove(tool)

    def add_layer(self, layer: InMemoryOverlay) -> None:
        self.layers.append(layer)

    def remove_layer(self, layer: InMemoryOverlay) -> None:
        if layer in self.layers:
            self.layers.remove(layer)

    @property
    def draw_tool(self) -> InMemoryDrawTool | None:
        return self.interactions[-1] if self.interactions else None


class _InMemoryHandle:
    def __init__(self, host: "InMemoryHost", component_id: int):
        self._host = host
        self.component_id = component_id

    def dispose(self) -> None:
        self._host.displayed.pop(self.component_id, None)


class InMemoryHost:
    def __init__(self) -> None:
        self.displayed: dict[int, tuple[str, dict[str, Any]]] = {}
        self._ids = itertools.count(1)

    def display(self, component: str, props: dict[str, Any]) -> _InMemoryHandle:
        component_id = next(self._ids)
        self.displayed[component_id] = (component, props)
        return _InMemoryHandle(self, component_id)


@dataclass
class RecordingNotifier:
    messages: list[tuple[str, Severity]] = field(default_factory=list)

    def notify(self, message: str, severity: Severity) -> None:
        self.messages.append((message, severity))
