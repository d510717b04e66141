"""Tests for the immutable inventory store."""

import pytest
from factories import FixedRandom

from harvest_backend.game_logic.inventory import Inventory
from harvest_backend.shared import InvariantViolation, ItemType, RandomService
from harvest_backend.shared.errors import InsufficientItems


def test_add_item_returns_new_inventory() -> None:
    empty = Inventory.empty()

    stocked = empty.add_item(ItemType.WOOD).add_item(ItemType.WOOD, 2)

    assert empty.is_empty()
    assert stocked.quantity(ItemType.WOOD) == 3
    assert stocked.total() == 3


def test_add_negative_quantity_is_an_invariant_violation() -> None:
    with pytest.raises(InvariantViolation):
        Inventory.empty().add_item(ItemType.WOOD, -1)


def test_inventory_rejects_negative_counts() -> None:
    with pytest.raises(ValueError, match="negative"):
        Inventory.of({"wood": -1})


def test_zero_counts_are_dropped() -> None:
    assert Inventory.of({"wood": 0, "stone": 2}) == Inventory.of({"stone": 2})


def test_remove_item_reports_shortfall() -> None:
    inventory = Inventory.of({"wood": 2})

    result = inventory.remove_item(ItemType.WOOD, 3)

    assert not result.ok
    assert isinstance(result.error, InsufficientItems)
    (shortfall,) = result.error.shortfalls
    assert (shortfall.item, shortfall.have, shortfall.need) == (ItemType.WOOD, 2, 3)


def test_remove_items_is_all_or_nothing() -> None:
    inventory = Inventory.of({"wood": 5, "stone": 1, "coal": 4})

    result = inventory.remove_items(
        {ItemType.WOOD: 3, ItemType.STONE: 2, ItemType.IRON: 1}
    )

    assert not result.ok
    assert {s.item for s in result.error.shortfalls} == {ItemType.STONE, ItemType.IRON}
    assert inventory == Inventory.of({"wood": 5, "stone": 1, "coal": 4})


def test_remove_items_success() -> None:
    inventory = Inventory.of({"wood": 5, "stone": 1})

    remaining = inventory.remove_items({ItemType.WOOD: 5}).unwrap()

    assert remaining == Inventory.of({"stone": 1})
    assert remaining.quantity(ItemType.WOOD) == 0


def test_burn_on_submit_empties_inventory() -> None:
    assert Inventory.of({"wood": 5, "carrot": 2}).burn_on_submit().is_empty()


def test_burn_partial_on_day_end_uses_the_drawn_fraction() -> None:
    inventory = Inventory.of({"wood": 10})

    # uniform(0.30, 0.50) -> 0.40, rounding sample 0.5
    burned = inventory.burn_partial_on_day_end(FixedRandom(0.5, 0.5))

    assert burned.quantity(ItemType.WOOD) == 6


def test_burn_partial_on_day_end_never_increases_counts() -> None:
    rng = RandomService.seeded(11)
    inventory = Inventory.of({"wood": 7, "stone": 1, "coal": 3, "carrot": 20})

    for _ in range(200):
        burned = inventory.burn_partial_on_day_end(rng)
        for item, count in inventory.counts.items():
            assert 0 <= burned.quantity(item) <= count


def test_burn_partial_single_items_survive_at_expected_rate() -> None:
    rng = RandomService.seeded(5)
    inventory = Inventory.of({"iron": 1})

    survivors = sum(
        inventory.burn_partial_on_day_end(rng).quantity(ItemType.IRON)
        for _ in range(2_000)
    )

    assert survivors / 2_000 == pytest.approx(0.6, abs=0.05)


def test_summary_and_diff() -> None:
    before = Inventory.of({"wood": 4, "carrot": 1})
    after = Inventory.of({"wood": 2, "carrot": 1})

    assert before.summary() == ((ItemType.CARROT, 1), (ItemType.WOOD, 4))
    assert before.diff(after) == {ItemType.WOOD: 2}
