"""
Result presenter.

`build_render_model()` is a pure function of the feature store state: each feature becomes
a flat row (nested properties flattened into dotted keys) with a stable display id and a
formatted coordinate string. `ResultPresenter` adds only ephemeral UI state (page, sort)
and a row-activation callback that map highlighting can bind to.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from shapely.geometry import shape

from buffersearch.domain.models import Feature
from buffersearch.state.store import FeatureStore, FeatureStoreState

logger = logging.getLogger(__name__)

ID_COLUMN = "_id"
COORDINATES_COLUMN = "_coordinates"

RowActivateCallback = Callable[["Row"], None]


@dataclass(frozen=True)
class Row:
    row_id: str
    index: int
    coordinates: str
    values: dict[str, Any]
    feature: Feature

    def as_dict(self) -> dict[str, Any]:
        return {ID_COLUMN: self.row_id, COORDINATES_COLUMN: self.coordinates, **self.values}


@dataclass(frozen=True)
class RenderModel:
    rows: list[Row]
    columns: list[str]
    total: int
    page: int
    page_count: int
    loading: bool
    error_message: str | None = None
    error_code: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "rows": [r.as_dict() for r in self.rows],
            "columns": list(self.columns),
            "total": self.total,
            "page": self.page,
            "page_count": self.page_count,
            "loading": self.loading,
            "error": (
                {"code": self.error_code, "message": self.error_message} if self.error_message else None
            ),
        }


def flatten_properties(properties: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings into dotted keys; lists are kept as values."""
    out: dict[str, Any] = {}
    for key, value in properties.items():
        name = f"{prefix}{key}"
        if isinstance(value, Mapping):
            out.update(flatten_properties(value, prefix=f"{name}."))
        else:
            out[name] = value
    return out


def format_coordinates(geometry: Mapping[str, Any] | None, *, precision: int = 6) -> str:
    """`"x, y"` of the geometry's representative point ("" when absent or unreadable)."""
    if not geometry:
        return ""
    try:
        point = shape(geometry).representative_point()
    except Exception:
        logger.debug("Cannot derive coordinates from geometry type=%s", geometry.get("type"))
        return ""
    return f"{point.x:.{precision}f}, {point.y:.{precision}f}"


def _sort_key(value: Any) -> tuple[int, Any]:
    # None last; numbers before strings so mixed columns still sort deterministically.
    if value is None:
        return (2, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value))


def build_rows(features: tuple[Feature, ...] | list[Feature], *, id_property: str = "id") -> list[Row]:
    rows: list[Row] = []
    for index, feature in enumerate(features):
        values = flatten_properties(feature.properties)
        raw_id = feature.properties.get(id_property)
        row_id = str(raw_id) if raw_id not in (None, "") else str(index)
        rows.append(
            Row(
                row_id=row_id,
                index=index,
                coordinates=format_coordinates(feature.geometry),
                values=values,
                feature=feature,
            )
        )
    return rows


def build_render_model(
    state: FeatureStoreState,
    *,
    id_property: str = "id",
    page: int = 0,
    page_size: int = 20,
    sort_by: str | None = None,
    descending: bool = False,
) -> RenderModel:
    rows = build_rows(state.features, id_property=id_property)

    columns: list[str] = [ID_COLUMN, COORDINATES_COLUMN]
    for row in rows:
        for key in row.values:
            if key not in columns:
                columns.append(key)

    if sort_by:
        rows = sorted(
            rows,
            key=lambda r: _sort_key(r.as_dict().get(sort_by)),
            reverse=descending,
        )

    page_size = max(1, int(page_size))
    page_count = max(1, math.ceil(len(rows) / page_size))
    page = min(max(0, int(page)), page_count - 1)
    start = page * page_size

    error = state.error
    return RenderModel(
        rows=rows[start : start + page_size],
        columns=columns,
        total=len(rows),
        page=page,
        page_count=page_count,
        loading=state.loading,
        error_message=error.message if error else None,
        error_code=error.code if error else None,
    )


class ResultPresenter:
    """Re-renders on every store transition; holds only page/sort position."""

    def __init__(
        self,
        store: FeatureStore,
        *,
        id_property: str = "id",
        page_size: int = 20,
        on_row_activate: RowActivateCallback | None = None,
    ):
        self._store = store
        self._id_property = id_property
        self._page_size = page_size
        self._on_row_activate = on_row_activate
        self.page = 0
        self.sort_by: str | None = None
        self.descending = False
        self._model = self._render(store.state)
        self._unsubscribe: Callable[[], None] | None = store.subscribe(self._on_state)

    @property
    def model(self) -> RenderModel:
        return self._model

    def _render(self, state: FeatureStoreState) -> RenderModel:
        return build_render_model(
            state,
            id_property=self._id_property,
            page=self.page,
            page_size=self._page_size,
            sort_by=self.sort_by,
            descending=self.descending,
        )

    def _on_state(self, state: FeatureStoreState) -> None:
        self._model = self._render(state)

    def render(self) -> RenderModel:
        self._model = self._render(self._store.state)
        return self._model

    def set_page(self, page: int) -> RenderModel:
        self.page = max(0, int(page))
        return self.render()

    def set_sort(self, column: str | None, *, descending: bool = False) -> RenderModel:
        self.sort_by = column
        self.descending = descending
        return self.render()

    def bind_activate(self, callback: RowActivateCallback | None) -> None:
        self._on_row_activate = callback

    def activate_row(self, row_id: str) -> Row | None:
        """Invoke the bound activation callback for `row_id` (searched across all pages)."""
        for row in build_rows(self._store.state.features, id_property=self._id_property):
            if row.row_id == row_id:
                if self._on_row_activate is not None:
                    self._on_row_activate(row)
                return row
        return None

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
