"""
Session wiring.

`BufferSearchSession` is the composition root: one feature store, one query client, the
draw controller, and the lifecycle bridge that displays the presenter. Map, host and
notifier default to the in-memory/logging implementations so the CLI and API can run the
whole pipeline headless.
"""

from __future__ import annotations

import logging

from buffersearch.config.settings import Settings
from buffersearch.core.geo import Point
from buffersearch.domain.models import ActivationConfig
from buffersearch.interaction.collaborators import ComponentHost, LoggingNotifier, MapView, Notifier
from buffersearch.interaction.controller import DrawInteractionController, QueryBackend
from buffersearch.interaction.memory import InMemoryHost, InMemoryMap
from buffersearch.lifecycle.bridge import LifecycleBridge
from buffersearch.presentation.presenter import RenderModel, ResultPresenter
from buffersearch.query.client import SpatialQueryClient
from buffersearch.query.outcome import QueryOutcome
from buffersearch.state.store import FeatureStore

logger = logging.getLogger(__name__)


class BufferSearchSession:
    def __init__(
        self,
        settings: Settings,
        *,
        config: ActivationConfig | None = None,
        map_view: MapView | None = None,
        host: ComponentHost | None = None,
        notifier: Notifier | None = None,
        query_client: QueryBackend | None = None,
    ):
        self.settings = settings
        self.config = config or ActivationConfig.from_settings(settings)
        self.map = map_view or InMemoryMap(crs=self.config.map_crs)
        self.host = host or InMemoryHost()
        self.notifier = notifier or LoggingNotifier()
        self.store = FeatureStore()
        self.query_client = query_client or SpatialQueryClient(settings)
        self.controller = DrawInteractionController(
            self.map, self.store, self.query_client, self.notifier, self.config
        )
        self.bridge = LifecycleBridge(
            self.controller,
            self.host,
            self._make_presenter,
            component=settings.host.component,
        )

    def _make_presenter(self) -> ResultPresenter:
        return ResultPresenter(
            self.store,
            id_property=self.settings.presenter.id_property,
            page_size=self.settings.presenter.page_size,
        )

    @property
    def last_outcome(self) -> QueryOutcome | None:
        return self.controller.last_outcome

    async def run_point_query(self, point: Point) -> RenderModel:
        """Activate, process one drawn point, render the results, then deactivate."""
        self.bridge.set_active(True)
        try:
            await self.controller.handle_point(point)
            presenter = self.bridge.presenter
            if presenter is None:
                raise RuntimeError("Result presenter is not displayed (unexpected).")
            return presenter.render()
        finally:
            self.bridge.set_active(False)
