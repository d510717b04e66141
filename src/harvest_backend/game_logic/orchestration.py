"""High-level orchestration helpers connecting the engines to external callers.

This module exposes a thin façade that a transport layer can use to play the
game. It wraps each operation in a player store transaction, and hands
settlement intents to the :class:`SettlementDispatcher` once the bookkeeping
that produced them has been committed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, TypeVar
from uuid import uuid4

from harvest_backend.game_logic.cases import CaseEngine
from harvest_backend.game_logic.catalog import ContractCatalog
from harvest_backend.game_logic.configuration import get_default_economy_configuration
from harvest_backend.game_logic.fame import FamePointLedger
from harvest_backend.game_logic.gathering import ResourceGatheringEngine
from harvest_backend.game_logic.ledger import InMemoryLedger
from harvest_backend.game_logic.lifecycle import SessionLifecycle, Transition
from harvest_backend.game_logic.persistence import InMemoryPlayerStore
from harvest_backend.game_logic.reconciler import RewardReconciler
from harvest_backend.game_logic.settlement import SettlementDispatcher
from harvest_backend.settings import get_settings
from harvest_backend.shared.clock import SystemClock
from harvest_backend.shared.errors import (
    NoActiveContract,
    PlayerNotFound,
    SessionNotFound,
)
from harvest_backend.shared.logs import configure_logging
from harvest_backend.shared.results import Failure, Result, Success
from harvest_backend.shared.rng import RandomService

if TYPE_CHECKING:
    from collections.abc import Callable

    from harvest_backend.game_logic.cases import CaseOpening, DecoyEntry
    from harvest_backend.game_logic.configuration import EconomyConfiguration
    from harvest_backend.game_logic.fame import ChestClaim
    from harvest_backend.game_logic.gathering import GatherOutcome
    from harvest_backend.game_logic.ledger import Ledger
    from harvest_backend.game_logic.lifecycle import ContractSubmission, DayEnd
    from harvest_backend.game_logic.persistence import PlayerStore
    from harvest_backend.game_logic.settlement import SettlementReport
    from harvest_backend.game_logic.state import PlayerAggregate, Session
    from harvest_backend.settings import BackendSettings
    from harvest_backend.shared.clock import Clock
    from harvest_backend.shared.enums import CropType, GatherActionType

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class HarvestGameService:
    """Coordinate players, engines, persistence and settlement.

    Synchronous methods only touch the player store. Methods that produce a
    settlement intent are coroutines: they commit in a worker thread, so a
    blocking store never stalls the event loop, and then schedule the ledger
    call as a background task. Finished tasks drop out of the service on
    their own; :meth:`wait_for_settlements` awaits those still in flight.
    """

    def __init__(
        self,
        store: PlayerStore,
        ledger: Ledger,
        *,
        configuration: EconomyConfiguration | None = None,
        settings: BackendSettings | None = None,
        clock: Clock | None = None,
        rng: RandomService | None = None,
    ) -> None:
        self._configuration = configuration or get_default_economy_configuration()
        self._store = store
        self._clock = clock or SystemClock()
        self._rng = rng or RandomService.secure()
        self._catalog = ContractCatalog(self._configuration)
        self._cases = CaseEngine(self._configuration, self._catalog)
        self._reconciler = RewardReconciler()
        self._fame = FamePointLedger(self._configuration, self._reconciler)
        self._lifecycle = SessionLifecycle(
            self._configuration,
            self._catalog,
            ResourceGatheringEngine(self._configuration),
            self._cases,
            self._fame,
            self._reconciler,
        )
        self._dispatcher = SettlementDispatcher.from_settings(
            settings or get_settings(), store, ledger, self._reconciler, self._clock
        )
        self._tasks: set[asyncio.Task[Result[SettlementReport]]] = set()

    @classmethod
    def create_default(
        cls,
        *,
        store: PlayerStore | None = None,
        ledger: Ledger | None = None,
        settings: BackendSettings | None = None,
        clock: Clock | None = None,
        rng: RandomService | None = None,
    ) -> HarvestGameService:
        """Return a service on in-memory adapters unless others are supplied.

        Also installs the process log handler at the configured level.
        """
        config = settings or get_settings()
        configure_logging(config.log_level)
        return cls(
            store or InMemoryPlayerStore(),
            ledger or InMemoryLedger(),
            settings=config,
            clock=clock,
            rng=rng,
        )

    @property
    def configuration(self) -> EconomyConfiguration:
        return self._configuration

    @property
    def catalog(self) -> ContractCatalog:
        return self._catalog

    @property
    def fame(self) -> FamePointLedger:
        return self._fame

    @property
    def reconciler(self) -> RewardReconciler:
        return self._reconciler

    @property
    def dispatcher(self) -> SettlementDispatcher:
        return self._dispatcher

    @property
    def settlements_in_flight(self) -> int:
        """Return how many scheduled settlements have not finished yet."""
        return len(self._tasks)

    def register_player(self, player_id: str) -> PlayerAggregate:
        """Create the document for *player_id* unless it already exists."""
        with self._store.transaction(player_id) as transaction:
            if transaction.current is not None:
                return transaction.current
            transaction.stage(self._lifecycle.new_player(player_id))
        logger.info("Registered player %s", player_id)
        return self._load(player_id)

    def snapshot(self, player_id: str) -> Result[PlayerAggregate]:
        """Return the committed document of *player_id*."""
        aggregate = self._store.load(player_id)
        if aggregate is None:
            return Failure(PlayerNotFound(player_id=player_id))
        return Success(aggregate)

    def start_day(self, player_id: str) -> Result[Session]:
        """Begin a new day, creating the player on first play."""
        with self._store.transaction(player_id) as transaction:
            result = self._lifecycle.start_day(
                transaction.current, player_id=player_id, now=self._clock.now()
            )
            if not result.ok:
                return result
            transaction.stage(result.value.aggregate)
        return Success(result.value.outcome)

    def gather(
        self,
        player_id: str,
        action_type: GatherActionType,
        *,
        crop: CropType | None = None,
    ) -> Result[GatherOutcome]:
        """Perform one harvest action."""
        return self._apply(
            player_id,
            lambda aggregate: self._lifecycle.gather(
                aggregate,
                action_type,
                now=self._clock.now(),
                rng=self._rng,
                crop=crop,
            ),
        )

    def open_case(self, player_id: str) -> Result[CaseOpening]:
        """Open a case in the active session."""
        return self._apply(
            player_id,
            lambda aggregate: self._lifecycle.open_case(
                aggregate, now=self._clock.now(), rng=self._rng
            ),
        )

    def end_day(self, player_id: str) -> Result[DayEnd]:
        """Close the active session."""
        return self._apply(
            player_id,
            lambda aggregate: self._lifecycle.end_day(
                aggregate, now=self._clock.now(), rng=self._rng
            ),
        )

    def case_animation(self, player_id: str) -> Result[tuple[DecoyEntry, ...]]:
        """Rebuild the reel for the last case opened in the current session."""
        aggregate = self._store.load(player_id)
        if aggregate is None or aggregate.session is None:
            return Failure(SessionNotFound(player_id=player_id))
        case = aggregate.session.last_case
        if case is None:
            return Failure(NoActiveContract())
        return Success(
            self._cases.generate_decoy_sequence(
                case.rarity,
                case.seed,
                final_template_id=case.contract.template.template_id,
            )
        )

    async def submit_contract(
        self, player_id: str, *, settle: bool = True
    ) -> Result[ContractSubmission]:
        """Fulfil the held contract and schedule its reward payout."""
        result = await asyncio.to_thread(
            self._apply,
            player_id,
            lambda aggregate: self._lifecycle.submit_contract(
                aggregate, now=self._clock.now()
            ),
        )
        if result.ok and settle:
            self._schedule(player_id, result.value.claim_id)
        return result

    async def claim_treasure_chest(
        self, player_id: str, *, settle: bool = True
    ) -> Result[ChestClaim]:
        """Redeem fame points for a chest and schedule its payout."""

        def claim(aggregate: PlayerAggregate) -> Result[Transition[ChestClaim]]:
            outcome = self._fame.claim_treasure_chest(
                aggregate, now=self._clock.now(), rng=self._rng
            )
            if not outcome.ok:
                return outcome
            return Success(
                Transition(aggregate=outcome.value.aggregate, outcome=outcome.value)
            )

        result = await asyncio.to_thread(self._apply, player_id, claim)
        if result.ok and settle:
            self._schedule(player_id, result.value.chest.claim_id)
        return result

    async def pay_entry_fee(self, player_id: str) -> Result[SettlementReport | None]:
        """Collect the case fee through the ledger and bank a fee credit.

        Returns ``None`` when no fee is configured. The ledger call happens
        after the intent is committed, outside the player transaction.
        """
        if not self._configuration.case_fee_required:
            return Success(None)
        claim_id = f"entry-fee:{uuid4().hex}"
        recorded = await asyncio.to_thread(self._record_entry_fee, player_id, claim_id)
        if not recorded.ok:
            return recorded
        return await self._dispatcher.settle(player_id, claim_id)

    async def settle_pending(
        self, player_id: str
    ) -> tuple[Result[SettlementReport], ...]:
        """Retry every unconfirmed settlement of *player_id*."""
        return await self._dispatcher.settle_pending(player_id)

    async def wait_for_settlements(self) -> tuple[Result[SettlementReport], ...]:
        """Wait for the settlements still in flight and return their results."""
        tasks = tuple(self._tasks)
        if not tasks:
            return ()
        return tuple(await asyncio.gather(*tasks))

    def _schedule(self, player_id: str, claim_id: str) -> None:
        task = asyncio.create_task(self._dispatcher.settle(player_id, claim_id))
        self._tasks.add(task)
        task.add_done_callback(self._forget)

    def _forget(self, task: asyncio.Task[Result[SettlementReport]]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Settlement task crashed", exc_info=error)

    def _record_entry_fee(self, player_id: str, claim_id: str) -> Result[None]:
        with self._store.transaction(player_id) as transaction:
            if transaction.current is None:
                return Failure(PlayerNotFound(player_id=player_id))
            transaction.stage(
                self._reconciler.record_entry_fee(
                    transaction.current,
                    claim_id=claim_id,
                    amount=self._configuration.case_fee,
                    now=self._clock.now(),
                )
            )
        return Success(None)

    def _apply(
        self,
        player_id: str,
        operation: Callable[[PlayerAggregate], Result[Transition[_T]]],
    ) -> Result[_T]:
        with self._store.transaction(player_id) as transaction:
            if transaction.current is None:
                return Failure(PlayerNotFound(player_id=player_id))
            result = operation(transaction.current)
            if not result.ok:
                return result
            transaction.stage(result.value.aggregate)
        return Success(result.value.outcome)

    def _load(self, player_id: str) -> PlayerAggregate:
        aggregate = self._store.load(player_id)
        if aggregate is None:
            msg = f"Player '{player_id}' was not persisted."
            raise RuntimeError(msg)
        return aggregate


__all__ = ["HarvestGameService"]
