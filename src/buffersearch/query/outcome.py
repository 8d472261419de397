"""Query outcomes: `Success(features)`, `Empty`, or `Failure(reason)`; never partial data with failure."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from buffersearch.core.errors import BufferSearchError
from buffersearch.domain.models import Feature


@dataclass(frozen=True)
class Success:
    features: tuple[Feature, ...]

    def __post_init__(self) -> None:
        if not self.features:
            raise ValueError("Success requires at least one feature; use Empty instead")


@dataclass(frozen=True)
class Empty:
    features: tuple[Feature, ...] = field(default=(), init=False)


@dataclass(frozen=True)
class Failure:
    reason: BufferSearchError


QueryOutcome = Union[Success, Empty, Failure]


def outcome_from_features(features: list[Feature]) -> QueryOutcome:
    return Success(tuple(features)) if features else Empty()
