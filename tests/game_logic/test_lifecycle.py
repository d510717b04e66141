"""Tests for day transitions and in-session actions on the player document."""

from datetime import timedelta

import pytest
from factories import START, FixedRandom, fixed_service, make_contract

from harvest_backend.game_logic.cases import CaseEngine
from harvest_backend.game_logic.catalog import ContractCatalog
from harvest_backend.game_logic.configuration import EconomyConfiguration
from harvest_backend.game_logic.fame import FamePointLedger
from harvest_backend.game_logic.gathering import ResourceGatheringEngine
from harvest_backend.game_logic.inventory import Inventory
from harvest_backend.game_logic.lifecycle import SessionLifecycle
from harvest_backend.game_logic.reconciler import RewardReconciler
from harvest_backend.game_logic.state import PlayerAggregate
from harvest_backend.shared import (
    CaseRarity,
    CropType,
    GatherActionType,
    ItemType,
    LifecyclePhase,
    Money,
    RandomService,
    RewardTier,
    SessionStatus,
    SettlementKind,
)
from harvest_backend.shared.errors import (
    ContractAlreadySubmitted,
    DayAlreadyInProgress,
    EntryFeeRequired,
    MissingRequirement,
    NoActiveContract,
    SessionNotFound,
)


def make_lifecycle(**overrides: object) -> SessionLifecycle:
    config = EconomyConfiguration(**overrides)
    catalog = ContractCatalog(config)
    reconciler = RewardReconciler()
    return SessionLifecycle(
        config,
        catalog,
        ResourceGatheringEngine(config),
        CaseEngine(config, catalog),
        FamePointLedger(config, reconciler),
        reconciler,
    )


def started(lifecycle: SessionLifecycle, player_id: str = "player-1") -> PlayerAggregate:
    return lifecycle.start_day(None, player_id=player_id, now=START).unwrap().aggregate


def with_contract(aggregate: PlayerAggregate, template_id: str, inventory: Inventory) -> PlayerAggregate:
    session = aggregate.session.mutate(
        contract=make_contract(template_id), inventory=inventory
    )
    return aggregate.with_session(session)


def test_first_start_day_creates_the_player() -> None:
    transition = make_lifecycle().start_day(None, player_id="alice", now=START).unwrap()

    aggregate, session = transition.aggregate, transition.outcome
    assert aggregate.player_id == "alice"
    assert aggregate.phase is LifecyclePhase.ACTIVE
    assert session.day_number == 1
    assert session.stamina.current == 50
    assert aggregate.game_state.current_day == 1
    assert not aggregate.game_state.can_start_new_day


def test_start_day_refuses_a_second_active_session() -> None:
    lifecycle = make_lifecycle()
    aggregate = started(lifecycle)

    result = lifecycle.start_day(aggregate, player_id="player-1", now=START)

    assert result.error == DayAlreadyInProgress(session_id=aggregate.session.session_id)


def test_operations_without_a_session_fail() -> None:
    lifecycle = make_lifecycle()
    idle = SessionLifecycle.new_player("bob")

    assert idle.phase is LifecyclePhase.IDLE
    assert lifecycle.gather(
        idle, GatherActionType.CHOP_TREE, now=START, rng=FixedRandom(0.0)
    ).error == SessionNotFound(player_id="bob")
    assert not lifecycle.open_case(idle, now=START, rng=fixed_service(0.0)).ok
    assert not lifecycle.submit_contract(idle, now=START).ok
    assert not lifecycle.end_day(idle, now=START, rng=FixedRandom(0.0)).ok


def test_gather_updates_the_document() -> None:
    lifecycle = make_lifecycle()
    aggregate = started(lifecycle)

    transition = lifecycle.gather(
        aggregate, GatherActionType.WATER_CROP, now=START, rng=FixedRandom(0.0), crop=CropType.POTATO
    ).unwrap()

    assert transition.aggregate.session.inventory.quantity(ItemType.POTATO) == 1
    assert transition.aggregate.session.stamina.current == 48


def test_open_case_requires_a_confirmed_fee() -> None:
    lifecycle = make_lifecycle()
    aggregate = started(lifecycle)

    result = lifecycle.open_case(aggregate, now=START, rng=fixed_service(0.0))

    assert result.error == EntryFeeRequired(amount=Money.of("0.75"))


def test_open_case_spends_the_oldest_fee_credit() -> None:
    lifecycle = make_lifecycle()
    aggregate = started(lifecycle).model_copy(
        update={"entry_fee_credits": ("entry-fee:a", "entry-fee:b")}
    )

    transition = lifecycle.open_case(aggregate, now=START, rng=fixed_service(0.0)).unwrap()

    assert transition.outcome.case.fee_claim_id == "entry-fee:a"
    assert transition.aggregate.entry_fee_credits == ("entry-fee:b",)
    assert transition.aggregate.game_state.cases_opened_today == 1


def test_spin_owed_at_the_cap_opens_the_next_window_without_a_fee() -> None:
    lifecycle = make_lifecycle()
    aggregate = started(lifecycle)
    aggregate = aggregate.with_session(
        aggregate.session.mutate(has_free_spin_available=True)
    ).with_game_state(
        aggregate.game_state.model_copy(
            update={"cases_opened_today": 3, "last_case_reset_time": START}
        )
    )

    capped = lifecycle.open_case(aggregate, now=START, rng=fixed_service(0.0))
    assert capped.error.code == "daily_case_limit_reached"

    later = START + timedelta(hours=25)
    transition = lifecycle.open_case(aggregate, now=later, rng=fixed_service(0.0)).unwrap()

    assert transition.outcome.case.is_free_spin
    assert transition.outcome.case.fee_claim_id is None
    assert transition.aggregate.entry_fee_credits == ()
    assert not transition.aggregate.session.has_free_spin_available
    assert transition.aggregate.game_state.cases_opened_today == 1


def test_free_case_when_fee_disabled() -> None:
    lifecycle = make_lifecycle(case_fee=Money.zero())
    aggregate = started(lifecycle)

    transition = lifecycle.open_case(aggregate, now=START, rng=fixed_service(0.0)).unwrap()

    assert transition.outcome.rarity is CaseRarity.COMMON
    assert transition.aggregate.session.contract is not None


def test_submit_contract_burns_inventory_and_accrues_rewards() -> None:
    lifecycle = make_lifecycle()
    aggregate = with_contract(
        started(lifecycle), "common_4", Inventory.of({"wood": 7, "carrot": 3})
    )

    transition = lifecycle.submit_contract(aggregate, now=START).unwrap()

    updated = transition.aggregate
    assert updated.session.inventory.is_empty()
    assert updated.session.contract_submitted
    assert updated.game_state.fame_points == 10
    assert updated.game_state.total_contracts_completed == 1
    assert updated.game_state.contracts_completed_by_tier == {RewardTier.STANDARD: 1}
    assert updated.game_state.pending_currency_earned == Money.of("0.45")
    (intent,) = updated.settlements
    assert intent.kind is SettlementKind.CONTRACT_REWARD
    assert intent.claim_id == transition.outcome.claim_id
    assert transition.outcome.burned == Inventory.of({"wood": 7, "carrot": 3})


def test_submit_contract_failures() -> None:
    lifecycle = make_lifecycle()
    aggregate = started(lifecycle)

    assert lifecycle.submit_contract(aggregate, now=START).error == NoActiveContract()

    short = with_contract(aggregate, "common_4", Inventory.of({"wood": 4}))
    failure = lifecycle.submit_contract(short, now=START)
    assert isinstance(failure.error, MissingRequirement)
    assert short.session.inventory == Inventory.of({"wood": 4})

    done = lifecycle.submit_contract(
        with_contract(aggregate, "common_4", Inventory.of({"wood": 5})), now=START
    ).unwrap().aggregate
    again = lifecycle.submit_contract(done, now=START)
    assert isinstance(again.error, ContractAlreadySubmitted)


def test_end_day_burns_part_of_the_inventory() -> None:
    lifecycle = make_lifecycle()
    aggregate = started(lifecycle)
    aggregate = aggregate.with_session(
        aggregate.session.mutate(inventory=Inventory.of({"wood": 10}))
    )
    later = START + timedelta(hours=5)

    transition = lifecycle.end_day(aggregate, now=later, rng=FixedRandom(0.5, 0.5)).unwrap()

    updated = transition.aggregate
    assert updated.phase is LifecyclePhase.ENDED
    assert updated.session.status is SessionStatus.ENDED
    assert updated.session.ended_at == later
    assert updated.session.inventory == Inventory.of({"wood": 6})
    assert transition.outcome.burned == {ItemType.WOOD: 4}
    assert updated.game_state.total_days_played == 1
    assert updated.game_state.can_start_new_day


def test_next_day_carries_contract_inventory_and_free_spin() -> None:
    lifecycle = make_lifecycle()
    aggregate = started(lifecycle)
    session = aggregate.session.mutate(
        contract=make_contract("epic_1"),
        case_rarity=CaseRarity.EPIC,
        has_free_spin_available=True,
        inventory=Inventory.of({"wood": 2}),
        stamina=aggregate.session.stamina.spend(30),
    )
    ended = lifecycle.end_day(
        aggregate.with_session(session), now=START, rng=FixedRandom(0.0)
    ).unwrap().aggregate

    next_day = lifecycle.start_day(
        ended, player_id="player-1", now=START + timedelta(days=1)
    ).unwrap()

    new_session = next_day.outcome
    assert new_session.day_number == 2
    assert new_session.stamina.current == 50
    assert new_session.contract == session.contract
    assert new_session.case_rarity is CaseRarity.EPIC
    assert new_session.has_free_spin_available
    assert new_session.inventory == ended.session.inventory
    assert new_session.session_id != session.session_id


def test_free_spin_can_be_forfeited_at_day_change() -> None:
    lifecycle = make_lifecycle(carry_free_spin_across_days=False)
    aggregate = started(lifecycle)
    aggregate = aggregate.with_session(aggregate.session.mutate(has_free_spin_available=True))
    ended = lifecycle.end_day(aggregate, now=START, rng=FixedRandom(0.0)).unwrap().aggregate

    session = lifecycle.start_day(ended, player_id="player-1", now=START).unwrap().outcome

    assert not session.has_free_spin_available


def test_submitted_contract_is_not_carried_over() -> None:
    lifecycle = make_lifecycle()
    aggregate = with_contract(started(lifecycle), "common_4", Inventory.of({"wood": 5}))
    submitted = lifecycle.submit_contract(aggregate, now=START).unwrap().aggregate
    ended = lifecycle.end_day(submitted, now=START, rng=FixedRandom(0.0)).unwrap().aggregate

    session = lifecycle.start_day(ended, player_id="player-1", now=START).unwrap().outcome

    assert session.contract is None
    assert not session.has_outstanding_contract


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_end_day_never_increases_any_count(seed: int) -> None:
    lifecycle = make_lifecycle()
    aggregate = started(lifecycle)
    inventory = Inventory.of({"wood": 9, "coal": 1, "wheat": 4})
    aggregate = aggregate.with_session(aggregate.session.mutate(inventory=inventory))

    survivors = lifecycle.end_day(
        aggregate, now=START, rng=RandomService.seeded(seed)
    ).unwrap().aggregate.session.inventory

    for item, count in inventory.counts.items():
        assert 0 <= survivors.quantity(item) <= count
