"""Categorical weighted draws used by mining, cases and contract templates."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from harvest_backend.shared.rng import RandomSource

_T = TypeVar("_T")


def _validated(outcomes: Iterable[tuple[_T, float]]) -> tuple[tuple[_T, float], ...]:
    table = tuple(outcomes)
    if not table:
        msg = "Cannot draw from an empty outcome table."
        raise ValueError(msg)
    if any(weight < 0 for _, weight in table):
        msg = "Outcome weights must be non-negative."
        raise ValueError(msg)
    if sum(weight for _, weight in table) <= 0:
        msg = "At least one outcome must carry a positive weight."
        raise ValueError(msg)
    return table


def weighted_choice(outcomes: Iterable[tuple[_T, float]], rng: RandomSource) -> _T:
    """Draw one outcome with probability ``weight / total``.

    A single ``rng.random()`` sample is scaled by the total weight and matched
    against the running cumulative weight. Because the comparison is strict,
    an outcome whose weight is zero never owns any part of the interval, and
    ties resolve in input order.
    """
    table = _validated(outcomes)
    return _scan(table, sum(weight for _, weight in table), rng.random())


def _scan(table: Sequence[tuple[_T, float]], total: float, sample: float) -> _T:
    target = sample * total
    cumulative = 0.0
    last_positive: _T | None = None
    for outcome, weight in table:
        if weight <= 0:
            continue
        cumulative += weight
        last_positive = outcome
        if target < cumulative:
            return outcome
    # Float accumulation can leave target == total for samples close to 1.
    return last_positive  # type: ignore[return-value]


class WeightedTable(Generic[_T]):
    """Validated, reusable outcome table."""

    __slots__ = ("_table", "_total")

    def __init__(self, outcomes: Iterable[tuple[_T, float]]) -> None:
        self._table = _validated(outcomes)
        self._total = sum(weight for _, weight in self._table)

    @classmethod
    def from_mapping(cls, weights: Mapping[_T, float]) -> WeightedTable[_T]:
        """Build a table from an ordered ``outcome -> weight`` mapping."""
        return cls(weights.items())

    @property
    def total(self) -> float:
        """Return the sum of all weights."""
        return self._total

    @property
    def outcomes(self) -> tuple[_T, ...]:
        """Return the outcomes in draw order."""
        return tuple(outcome for outcome, _ in self._table)

    def probability(self, outcome: _T) -> float:
        """Return the configured probability of *outcome*."""
        weight = sum(w for candidate, w in self._table if candidate == outcome)
        return weight / self._total

    def draw(self, rng: RandomSource) -> _T:
        """Draw one outcome using *rng*."""
        return _scan(self._table, self._total, rng.random())


__all__ = ["WeightedTable", "weighted_choice"]
