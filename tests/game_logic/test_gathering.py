"""Tests for stamina-gated harvest actions."""

from collections import Counter

import pytest
from factories import START, FixedRandom, make_session

from harvest_backend.game_logic.configuration import EconomyConfiguration
from harvest_backend.game_logic.gathering import ResourceGatheringEngine
from harvest_backend.game_logic.state import Stamina
from harvest_backend.shared import (
    CropType,
    GatherActionType,
    InvariantViolation,
    ItemType,
    RandomService,
    SessionStatus,
)
from harvest_backend.shared.errors import InsufficientStamina


def make_engine(**overrides: object) -> ResourceGatheringEngine:
    return ResourceGatheringEngine(EconomyConfiguration(**overrides))


def test_watering_drains_stamina_until_exhausted() -> None:
    engine = make_engine()
    session = make_session()

    for _ in range(25):
        session = engine.water_crop(session, CropType.CARROT, now=START).unwrap().session

    assert session.stamina.current == 0
    assert session.inventory.quantity(ItemType.CARROT) == 25
    assert len(session.actions) == 25

    result = engine.water_crop(session, CropType.CARROT, now=START)

    assert not result.ok
    assert result.error == InsufficientStamina(required=2, available=0)


def test_chop_tree_yields_wood_and_records_the_action() -> None:
    outcome = make_engine().chop_tree(make_session(), now=START).unwrap()

    assert outcome.item is ItemType.WOOD
    assert outcome.session.stamina.current == 44
    (action,) = outcome.session.actions
    assert action.action_type is GatherActionType.CHOP_TREE
    assert action.stamina_cost == 6
    assert action.performed_at == START


def test_mine_stone_draws_from_mining_weights() -> None:
    engine = make_engine()

    assert engine.mine_stone(make_session(), now=START, rng=FixedRandom(0.1)).unwrap().item is ItemType.STONE
    assert engine.mine_stone(make_session(), now=START, rng=FixedRandom(0.8)).unwrap().item is ItemType.COAL
    assert engine.mine_stone(make_session(), now=START, rng=FixedRandom(0.95)).unwrap().item is ItemType.IRON


def test_mine_stone_split_approximates_weights() -> None:
    engine = make_engine()
    session = make_session(stamina=Stamina.full(8_000))
    rng = RandomService.seeded(42)

    for _ in range(1_000):
        session = engine.mine_stone(session, now=START, rng=rng).unwrap().session

    counts = Counter(session.inventory.counts)
    assert sum(counts.values()) == 1_000
    assert counts[ItemType.STONE] == pytest.approx(700, abs=60)
    assert counts[ItemType.COAL] == pytest.approx(200, abs=50)
    assert counts[ItemType.IRON] == pytest.approx(100, abs=40)


def test_failed_mining_does_not_consume_randomness() -> None:
    rng = FixedRandom(0.95)
    session = make_session(stamina=Stamina(current=7, maximum=50))

    result = make_engine().mine_stone(session, now=START, rng=rng)

    assert result.error == InsufficientStamina(required=8, available=7)
    assert rng.random() == 0.95


def test_perform_dispatches_and_requires_a_crop_for_watering() -> None:
    engine = make_engine()
    session = make_session()

    outcome = engine.perform(
        session, GatherActionType.WATER_CROP, now=START, rng=FixedRandom(0.0), crop=CropType.WHEAT
    ).unwrap()

    assert outcome.item is ItemType.WHEAT
    with pytest.raises(ValueError, match="crop"):
        engine.perform(session, GatherActionType.WATER_CROP, now=START, rng=FixedRandom(0.0))


def test_gathering_on_an_ended_session_is_an_invariant_violation() -> None:
    ended = make_session(status=SessionStatus.ENDED, ended_at=START)

    with pytest.raises(InvariantViolation):
        make_engine().chop_tree(ended, now=START)


def test_stamina_costs_follow_configuration() -> None:
    engine = make_engine(
        stamina_costs={
            GatherActionType.WATER_CROP: 1,
            GatherActionType.CHOP_TREE: 1,
            GatherActionType.MINE_STONE: 1,
        }
    )

    session = engine.chop_tree(make_session(), now=START).unwrap().session

    assert session.stamina.current == 49
