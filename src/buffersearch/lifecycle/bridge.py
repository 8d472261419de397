"""
Lifecycle bridge.

Keeps the draw controller and the result presenter in lock-step with an external
"active" signal. Only transitions matter: false->true arms the controller and displays
one presenter (retaining its handle); true->false, or `teardown()`, disposes the handle
and disarms the controller. At most one presenter instance is live per activation cycle.
"""

from __future__ import annotations

import logging
from typing import Callable

from buffersearch.interaction.collaborators import ComponentHost, Handle
from buffersearch.interaction.controller import DrawInteractionController
from buffersearch.presentation.presenter import ResultPresenter

logger = logging.getLogger(__name__)


class LifecycleBridge:
    def __init__(
        self,
        controller: DrawInteractionController,
        host: ComponentHost,
        presenter_factory: Callable[[], ResultPresenter],
        *,
        component: str = "BufferResults",
    ):
        self._controller = controller
        self._host = host
        self._presenter_factory = presenter_factory
        self._component = component
        self._active = False
        self._handle: Handle | None = None
        self._presenter: ResultPresenter | None = None

    @property
    def active(self) -> bool:
        return self._active

    @property
    def presenter(self) -> ResultPresenter | None:
        return self._presenter

    def set_active(self, active: bool) -> None:
        active = bool(active)
        if active == self._active:
            return
        self._active = active
        if active:
            self._activate()
        else:
            self._deactivate()

    def _activate(self) -> None:
        self._controller.arm()
        if self._handle is None:
            self._presenter = self._presenter_factory()
            self._handle = self._host.display(self._component, {"presenter": self._presenter})
        logger.info("Buffer search activated")

    def _deactivate(self) -> None:
        if self._handle is not None:
            self._handle.dispose()
            self._handle = None
        if self._presenter is not None:
            self._presenter.close()
            self._presenter = None
        self._controller.disarm()
        logger.info("Buffer search deactivated")

    def teardown(self) -> None:
        self._active = False
        self._deactivate()
