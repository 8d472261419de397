"""
Draw interaction controller.

Owns the map's point drawing tool and the overlay layer, and turns each completed draw
gesture into a buffer + spatial query whose outcome lands in the feature store.

States:

    IDLE -> DRAWING -> POINT_CAPTURED -> BUFFER_READY -> QUERYING -> SETTLED -> DRAWING

`DRAWING` is the armed-and-waiting state: after settling, the controller accepts the
next gesture without re-arming. `IDLE` means no tool is held.

Each gesture is stamped with the store's `request_seq` (taken via `set_loading(True)`);
an outcome is applied only while its stamp is still the latest and the controller is
still armed, so a slow earlier response can never overwrite a newer one. `disarm()`
clears the store, which invalidates every in-flight stamp.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from enum import Enum
from typing import Protocol

from buffersearch.core.errors import InvalidParameterError, TransportError
from buffersearch.core.geo import BufferGeometry, Point
from buffersearch.domain.models import ActivationConfig, BufferRequest, LayerRef
from buffersearch.interaction.collaborators import DrawTool, MapView, Notifier, OverlayLayer
from buffersearch.query.outcome import Empty, Failure, QueryOutcome, Success
from buffersearch.state.store import FeatureStore

logger = logging.getLogger(__name__)

POINT_STYLE = "point"
ZONE_STYLE = "zone"


class DrawState(str, Enum):
    IDLE = "idle"
    DRAWING = "drawing"
    POINT_CAPTURED = "point_captured"
    BUFFER_READY = "buffer_ready"
    QUERYING = "querying"
    SETTLED = "settled"


class QueryBackend(Protocol):
    async def query(self, layer: LayerRef, area: BufferGeometry) -> QueryOutcome: ...


class DrawInteractionController:
    def __init__(
        self,
        map_view: MapView,
        store: FeatureStore,
        query_client: QueryBackend,
        notifier: Notifier,
        config: ActivationConfig,
    ):
        self._map = map_view
        self._store = store
        self._query_client = query_client
        self._notifier = notifier
        self._config = config

        self._tool: DrawTool | None = None
        self._overlay: OverlayLayer | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._state = DrawState.IDLE
        self.last_outcome: QueryOutcome | None = None

    @property
    def state(self) -> DrawState:
        return self._state

    @property
    def armed(self) -> bool:
        return self._tool is not None

    @property
    def config(self) -> ActivationConfig:
        return self._config

    def arm(self) -> None:
        """Acquire the point draw tool and an empty overlay layer (no-op when armed)."""
        if self._tool is not None:
            return
        overlay = self._map.create_overlay_layer()
        tool = self._map.create_draw_tool("point")
        self._map.add_layer(overlay)
        self._map.add_interaction(tool)
        tool.set_draw_end_listener(self._on_draw_end)
        self._overlay = overlay
        self._tool = tool
        self._state = DrawState.DRAWING
        logger.info("Draw interaction armed on layer=%s", self._config.layer.id)

    def disarm(self) -> None:
        """Release the tool and overlay from any state; idempotent."""
        was_armed = self._tool is not None or self._overlay is not None
        if self._tool is not None:
            self._tool.set_draw_end_listener(None)
            self._map.remove_interaction(self._tool)
            self._tool = None
        if self._overlay is not None:
            self._map.remove_layer(self._overlay)
            self._overlay = None
        self._state = DrawState.IDLE
        if was_armed:
            self._store.clear()
            logger.info("Draw interaction disarmed (%d request(s) still in flight)", len(self._tasks))

    def _on_draw_end(self, point: Point) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("Draw event received outside of a running event loop; ignored")
            return
        task = loop.create_task(self.handle_point(point))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_idle(self) -> None:
        """Wait until every in-flight gesture has settled or been discarded."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _is_current(self, seq: int) -> bool:
        return self.armed and self._store.state.request_seq == seq

    async def handle_point(self, point: Point) -> None:
        """Run one gesture through buffer generation, query and settlement."""
        if not self.armed:
            return
        if point.crs is None:
            point = replace(point, crs=self._map.crs)

        self._state = DrawState.POINT_CAPTURED
        seq = self._store.set_loading(True)
        self._render_point(point)

        try:
            request = BufferRequest(origin=point, distance=self._config.distance, unit=self._config.unit)
            area = request.to_geometry(segments=self._config.segments)
        except InvalidParameterError as exc:
            logger.warning("Rejected buffer parameters: %s", exc)
            self._settle(Failure(exc), area=None)
            return
        self._state = DrawState.BUFFER_READY

        self._state = DrawState.QUERYING
        try:
            outcome = await self._query_client.query(self._config.layer, area)
        except Exception as exc:
            logger.exception("Feature query raised unexpectedly")
            outcome = Failure(TransportError(f"Feature query failed: {exc}"))

        if not self._is_current(seq):
            logger.debug("Discarding stale response for seq=%d", seq)
            return
        self._settle(outcome, area=area)

    def _render_point(self, point: Point) -> None:
        if self._overlay is None:
            return
        self._overlay.clear()
        self._overlay.add_geometry({"type": "Point", "coordinates": [point.x, point.y]}, style=POINT_STYLE)

    def _settle(self, outcome: QueryOutcome, *, area: BufferGeometry | None) -> None:
        self._state = DrawState.SETTLED
        self.last_outcome = outcome

        if isinstance(outcome, Failure):
            if self._overlay is not None:
                self._overlay.clear()
            self._store.set_error(outcome.reason)
            if isinstance(outcome.reason, InvalidParameterError):
                self._notifier.notify(f"Invalid buffer parameters: {outcome.reason.message}", "error")
            else:
                self._notifier.notify(f"Feature query failed: {outcome.reason.message}", "error")
        else:
            if self._overlay is not None and area is not None:
                self._overlay.add_geometry(area.to_geojson(), style=ZONE_STYLE)
            if isinstance(outcome, Success):
                self._store.set_features(outcome.features)
            elif isinstance(outcome, Empty):
                self._store.set_features(())
                self._notifier.notify(
                    f"No features found within {self._config.distance:g} {self._config.unit}.", "info"
                )

        self._state = DrawState.DRAWING
