"""
Feature state store.

Single source of truth for the latest query result set, loading flag and error. Every
transition replaces the whole immutable `FeatureStoreState` snapshot, so readers never see
a partial combination of fields.

Transitions are identified by namespaced action names (`features/setLoading`, ...) which
are logged at debug level.

`request_seq` resolves out-of-order async responses: `set_loading(True)` advances it and
returns the new stamp; `clear()` advances it too, which invalidates every in-flight
request. Callers compare their stamp with `select_request_seq()` before applying results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Iterable

from buffersearch.core.errors import BufferSearchError
from buffersearch.domain.models import Feature

logger = logging.getLogger(__name__)

ACTION_SET_LOADING = "features/setLoading"
ACTION_SET_FEATURES = "features/setFeatures"
ACTION_SET_ERROR = "features/setError"
ACTION_CLEAR = "features/clear"


@dataclass(frozen=True)
class FeatureStoreState:
    features: tuple[Feature, ...] = ()
    loading: bool = False
    error: BufferSearchError | None = None
    request_seq: int = 0


Listener = Callable[[FeatureStoreState], None]


class FeatureStore:
    def __init__(self) -> None:
        self._state = FeatureStoreState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> FeatureStoreState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener`; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, action: str, state: FeatureStoreState) -> None:
        self._state = state
        logger.debug(
            "%s seq=%d loading=%s features=%d error=%s",
            action,
            state.request_seq,
            state.loading,
            len(state.features),
            type(state.error).__name__ if state.error else None,
        )
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Store listener failed after %s", action)

    def set_loading(self, loading: bool) -> int:
        """Set the loading flag; entering loading advances and returns `request_seq`."""
        seq = self._state.request_seq + 1 if loading else self._state.request_seq
        self._commit(ACTION_SET_LOADING, replace(self._state, loading=bool(loading), request_seq=seq))
        return seq

    def set_features(self, features: Iterable[Feature]) -> None:
        self._commit(
            ACTION_SET_FEATURES,
            replace(self._state, features=tuple(features), loading=False, error=None),
        )

    def set_error(self, reason: BufferSearchError) -> None:
        self._commit(
            ACTION_SET_ERROR,
            replace(self._state, features=(), loading=False, error=reason),
        )

    def clear(self) -> None:
        self._commit(ACTION_CLEAR, FeatureStoreState(request_seq=self._state.request_seq + 1))


def select_features(state: FeatureStoreState) -> tuple[Feature, ...]:
    return state.features


def select_loading(state: FeatureStoreState) -> bool:
    return state.loading


def select_error(state: FeatureStoreState) -> BufferSearchError | None:
    return state.error


def select_request_seq(state: FeatureStoreState) -> int:
    return state.request_seq


def select_has_results(state: FeatureStoreState) -> bool:
    return bool(state.features) and not state.loading and state.error is None
