"""Tests for the ledger adapter and the settlement dispatcher."""

import asyncio

from factories import START, make_aggregate, make_contract

from harvest_backend.game_logic.ledger import InMemoryLedger, LedgerRejected
from harvest_backend.game_logic.persistence import InMemoryPlayerStore
from harvest_backend.game_logic.reconciler import RewardReconciler, contract_claim_id
from harvest_backend.game_logic.settlement import SettlementDispatcher
from harvest_backend.settings import BackendSettings
from harvest_backend.shared import ManualClock, Money, SettlementKind
from harvest_backend.shared.errors import SettlementFailure, UnknownSettlement


def seeded_store(reconciler: RewardReconciler) -> tuple[InMemoryPlayerStore, str]:
    store = InMemoryPlayerStore()
    contract = make_contract("epic_1")
    with store.transaction("player-1") as transaction:
        transaction.stage(
            reconciler.record_contract_reward(make_aggregate(), contract, now=START)
        )
    return store, contract_claim_id(contract)


def make_dispatcher(
    store: InMemoryPlayerStore,
    ledger: InMemoryLedger,
    reconciler: RewardReconciler,
    **overrides: object,
) -> SettlementDispatcher:
    options: dict[str, object] = {
        "max_attempts": 3,
        "backoff_seconds": 0,
        "timeout_seconds": 1,
    }
    options.update(overrides)
    return SettlementDispatcher(store, ledger, reconciler, ManualClock(), **options)


def test_in_memory_ledger_is_idempotent_per_claim() -> None:
    ledger = InMemoryLedger()

    async def scenario() -> None:
        first = await ledger.claim_reward("p", Money.of("1"), claim_id="contract-reward:x")
        second = await ledger.claim_reward("p", Money.of("1"), claim_id="contract-reward:x")
        assert first == second
        assert first.kind is SettlementKind.CONTRACT_REWARD

    asyncio.run(scenario())

    assert ledger.balance("p") == Money.of("1")
    assert ledger.attempts("contract-reward:x") == 2


def test_entry_fee_debits_the_player() -> None:
    ledger = InMemoryLedger()

    receipt = asyncio.run(ledger.pay_entry_fee("p", Money.of("0.75"), claim_id="entry-fee:1"))

    assert receipt.kind is SettlementKind.ENTRY_FEE
    assert receipt.amount == Money.of("0.75")
    assert ledger.balance("p") == Money.of("-0.75")


def test_dispatcher_confirms_and_clears_pending_balance() -> None:
    reconciler = RewardReconciler()
    store, claim_id = seeded_store(reconciler)
    ledger = InMemoryLedger()

    report = asyncio.run(
        make_dispatcher(store, ledger, reconciler).settle("player-1", claim_id)
    ).unwrap()

    stored = store.load("player-1")
    assert report.attempts == 1
    assert report.amount == Money.of("1.50")
    assert stored.game_state.pending_currency_earned == Money.zero()
    assert stored.settlement(claim_id).reference == report.reference
    assert ledger.balance("player-1") == Money.of("1.50")


def test_dispatcher_retries_transient_failures() -> None:
    reconciler = RewardReconciler()
    store, claim_id = seeded_store(reconciler)
    ledger = InMemoryLedger(failures={claim_id: 2})

    report = asyncio.run(
        make_dispatcher(store, ledger, reconciler).settle("player-1", claim_id)
    ).unwrap()

    assert report.attempts == 3
    assert ledger.attempts(claim_id) == 3
    assert store.load("player-1").game_state.pending_currency_earned == Money.zero()


def test_dispatcher_gives_up_and_keeps_the_pending_balance() -> None:
    reconciler = RewardReconciler()
    store, claim_id = seeded_store(reconciler)
    ledger = InMemoryLedger(failures={claim_id: 10})

    result = asyncio.run(
        make_dispatcher(store, ledger, reconciler).settle("player-1", claim_id)
    )

    assert isinstance(result.error, SettlementFailure)
    assert result.error.attempts == 3
    stored = store.load("player-1")
    intent = stored.settlement(claim_id)
    assert intent.is_pending
    assert intent.attempts == 3
    assert stored.game_state.pending_currency_earned == Money.of("1.50")


def test_rejections_are_not_retried() -> None:
    reconciler = RewardReconciler()
    store, claim_id = seeded_store(reconciler)
    ledger = InMemoryLedger(failure_plan=lambda claim, attempt: LedgerRejected("no funds"))

    result = asyncio.run(
        make_dispatcher(store, ledger, reconciler).settle("player-1", claim_id)
    )

    assert result.error.attempts == 1
    assert "no funds" in result.error.reason


def test_slow_ledger_times_out() -> None:
    reconciler = RewardReconciler()
    store, claim_id = seeded_store(reconciler)
    ledger = InMemoryLedger(latency=0.2)
    dispatcher = make_dispatcher(
        store, ledger, reconciler, max_attempts=2, timeout_seconds=0.01
    )

    result = asyncio.run(dispatcher.settle("player-1", claim_id))

    assert isinstance(result.error, SettlementFailure)
    assert result.error.attempts == 2


def test_repeated_settlement_is_a_no_op() -> None:
    reconciler = RewardReconciler()
    store, claim_id = seeded_store(reconciler)
    ledger = InMemoryLedger()
    dispatcher = make_dispatcher(store, ledger, reconciler)

    async def scenario() -> None:
        await dispatcher.settle("player-1", claim_id)
        await dispatcher.settle("player-1", claim_id)

    asyncio.run(scenario())

    assert ledger.attempts(claim_id) == 1
    assert ledger.balance("player-1") == Money.of("1.50")


def test_unknown_claim_and_settle_pending() -> None:
    reconciler = RewardReconciler()
    store, claim_id = seeded_store(reconciler)
    dispatcher = make_dispatcher(store, InMemoryLedger(), reconciler)

    unknown = asyncio.run(dispatcher.settle("player-1", "missing"))
    results = asyncio.run(dispatcher.settle_pending("player-1"))

    assert unknown.error == UnknownSettlement(claim_id="missing")
    assert [result.unwrap().claim_id for result in results] == [claim_id]
    assert asyncio.run(dispatcher.settle_pending("nobody")) == ()


def test_dispatcher_reads_retry_policy_from_settings() -> None:
    reconciler = RewardReconciler()
    store, claim_id = seeded_store(reconciler)
    ledger = InMemoryLedger(failures={claim_id: 10})
    settings = BackendSettings(
        settlement_max_attempts=2, settlement_backoff_seconds=0, settlement_timeout_seconds=1
    )
    dispatcher = SettlementDispatcher.from_settings(
        settings, store, ledger, reconciler, ManualClock()
    )

    result = asyncio.run(dispatcher.settle("player-1", claim_id))

    assert result.error.attempts == 2
