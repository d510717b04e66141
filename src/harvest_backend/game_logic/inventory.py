"""Immutable item-count store with add, remove and burn operations."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping  # noqa: TC003
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict

from harvest_backend.shared.enums import ItemType
from harvest_backend.shared.errors import (
    InsufficientItems,
    InvariantViolation,
    Shortfall,
)
from harvest_backend.shared.results import Failure, Result, Success

if TYPE_CHECKING:
    from harvest_backend.shared.rng import RandomSource

logger = logging.getLogger(__name__)


class Inventory(BaseModel):
    """Tracks item holdings for a player in an immutable fashion.

    Zero counts are not stored, so two inventories holding the same items are
    equal regardless of how they were built.
    """

    model_config = ConfigDict(frozen=True)

    counts: dict[ItemType, int] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _normalize_counts(self) -> Inventory:
        """Reject negative counts and drop empty entries."""
        negative = {item: count for item, count in self.counts.items() if count < 0}
        if negative:
            msg = f"Inventory counts must never be negative: {negative}"
            raise ValueError(msg)
        normalized = {
            item: self.counts[item]
            for item in sorted(self.counts, key=lambda entry: entry.value)
            if self.counts[item] > 0
        }
        object.__setattr__(self, "counts", normalized)
        return self

    @classmethod
    def empty(cls) -> Inventory:
        """Return an inventory holding nothing."""
        return cls()

    @classmethod
    def of(cls, counts: Mapping[ItemType | str, int]) -> Inventory:
        """Build an inventory from a plain mapping."""
        return cls(counts={ItemType(item): count for item, count in counts.items()})

    def quantity(self, item: ItemType) -> int:
        """Return the stored count for *item* (zero when absent)."""
        return self.counts.get(item, 0)

    def total(self) -> int:
        """Return the number of units across all item types."""
        return sum(self.counts.values())

    def is_empty(self) -> bool:
        """Return ``True`` when nothing is held."""
        return not self.counts

    def summary(self) -> tuple[tuple[ItemType, int], ...]:
        """Return ``(item, count)`` pairs for every held item in catalogue order."""
        return tuple(
            (item, self.counts[item]) for item in ItemType if item in self.counts
        )

    def add_item(self, item: ItemType, quantity: int = 1) -> Inventory:
        """Return a new inventory with *quantity* units of *item* added."""
        if quantity < 0:
            msg = f"Cannot add a negative quantity ({quantity}) of {item}."
            raise InvariantViolation(msg)
        updated = dict(self.counts)
        updated[item] = updated.get(item, 0) + quantity
        return Inventory(counts=updated)

    def shortfalls(self, requirements: Mapping[ItemType, int]) -> tuple[Shortfall, ...]:
        """Return every requirement the inventory cannot cover."""
        return tuple(
            Shortfall(item=item, have=self.quantity(item), need=need)
            for item, need in requirements.items()
            if need > 0 and self.quantity(item) < need
        )

    def remove_item(self, item: ItemType, quantity: int = 1) -> Result[Inventory]:
        """Remove *quantity* units of *item*, failing when the player is short."""
        return self.remove_items({item: quantity})

    def remove_items(self, batch: Mapping[ItemType, int]) -> Result[Inventory]:
        """Remove a whole batch atomically.

        The full batch is checked before anything changes; on failure the
        returned error lists every missing item and ``self`` is untouched.
        """
        if any(quantity < 0 for quantity in batch.values()):
            msg = f"Removal batch contains negative quantities: {dict(batch)}"
            raise InvariantViolation(msg)
        missing = self.shortfalls(batch)
        if missing:
            return Failure(InsufficientItems(shortfalls=missing))
        updated = dict(self.counts)
        for item, quantity in batch.items():
            updated[item] = updated.get(item, 0) - quantity
        return Success(Inventory(counts=updated))

    def burn_on_submit(self) -> Inventory:
        """Destroy the whole inventory after a successful contract submission."""
        if self.counts:
            logger.debug("Burning %d item(s) after contract submission", self.total())
        return Inventory.empty()

    def burn_partial_on_day_end(
        self,
        rng: RandomSource,
        band: tuple[float, float] = (0.30, 0.50),
    ) -> Inventory:
        """Remove a random share of each item type, keeping the remainder.

        For every item type a fraction is drawn uniformly from *band*. The
        burned amount uses stochastic rounding so small stacks lose items at
        the expected rate instead of always rounding to zero; the result for
        each type always lies in ``[0, count]``.
        """
        low, high = band
        remaining: dict[ItemType, int] = {}
        for item, count in self.counts.items():
            fraction = rng.uniform(low, high)
            burned = math.floor(count * fraction + rng.random())
            remaining[item] = count - min(max(burned, 0), count)
        return Inventory(counts=remaining)

    def diff(self, other: Inventory) -> dict[ItemType, int]:
        """Return ``self - other`` per item type, omitting unchanged items."""
        items = set(self.counts) | set(other.counts)
        delta = {item: self.quantity(item) - other.quantity(item) for item in items}
        return {item: value for item, value in delta.items() if value}


__all__ = ["Inventory"]
