"""State machine for one player-day: idle, active, ended, idle again.

Every operation receives the player document read inside a store transaction
and returns the document to write back together with an operation-specific
outcome. Nothing here performs I/O.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar
from uuid import uuid4

from harvest_backend.game_logic.reconciler import contract_claim_id
from harvest_backend.game_logic.state import PlayerAggregate, Session, Stamina
from harvest_backend.shared.enums import SessionStatus
from harvest_backend.shared.errors import (
    ContractAlreadySubmitted,
    DayAlreadyInProgress,
    EntryFeeRequired,
    NoActiveContract,
    SessionNotFound,
)
from harvest_backend.shared.results import Failure, Result, Success

if TYPE_CHECKING:
    from datetime import datetime

    from harvest_backend.game_logic.cases import CaseEngine, CaseOpening
    from harvest_backend.game_logic.catalog import Contract, ContractCatalog
    from harvest_backend.game_logic.configuration import EconomyConfiguration
    from harvest_backend.game_logic.fame import FameAccrual, FamePointLedger
    from harvest_backend.game_logic.gathering import (
        GatherOutcome,
        ResourceGatheringEngine,
    )
    from harvest_backend.game_logic.inventory import Inventory
    from harvest_backend.game_logic.reconciler import RewardReconciler
    from harvest_backend.shared.enums import CropType, GatherActionType, ItemType
    from harvest_backend.shared.rng import RandomService, RandomSource

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


@dataclass(frozen=True, slots=True)
class Transition(Generic[_T]):
    """Document to persist plus what the operation produced."""

    aggregate: PlayerAggregate
    outcome: _T


@dataclass(frozen=True, slots=True)
class ContractSubmission:
    """Summary of a fulfilled contract."""

    contract: Contract
    claim_id: str
    fame: FameAccrual
    burned: Inventory


@dataclass(frozen=True, slots=True)
class DayEnd:
    """Closed session and the items the night took."""

    session: Session
    burned: dict[ItemType, int]


class SessionLifecycle:
    """Apply day transitions and in-session actions to a player document."""

    def __init__(
        self,
        configuration: EconomyConfiguration,
        catalog: ContractCatalog,
        gathering: ResourceGatheringEngine,
        cases: CaseEngine,
        fame: FamePointLedger,
        reconciler: RewardReconciler,
    ) -> None:
        self._configuration = configuration
        self._catalog = catalog
        self._gathering = gathering
        self._cases = cases
        self._fame = fame
        self._reconciler = reconciler

    @staticmethod
    def new_player(player_id: str) -> PlayerAggregate:
        """Return the document of a player who has never played."""
        return PlayerAggregate(player_id=player_id)

    def start_day(
        self,
        aggregate: PlayerAggregate | None,
        *,
        player_id: str,
        now: datetime,
    ) -> Result[Transition[Session]]:
        """Open a new session with full stamina.

        The previous session's inventory survives (it was already burned at
        day end), as do an unsubmitted contract and an unused free spin.
        """
        document = aggregate if aggregate is not None else self.new_player(player_id)
        state = document.game_state
        if document.active_session is not None or not state.can_start_new_day:
            current = document.active_session
            return Failure(
                DayAlreadyInProgress(
                    session_id=current.session_id if current is not None else None
                )
            )

        day_number = state.current_day + 1
        carried: dict[str, object] = {}
        previous = document.session
        if previous is not None:
            carried["inventory"] = previous.inventory
            if previous.has_outstanding_contract:
                carried["contract"] = previous.contract
                carried["case_rarity"] = previous.case_rarity
            carried["has_free_spin_available"] = (
                previous.has_free_spin_available
                and self._configuration.carry_free_spin_across_days
            )
        session = Session.model_validate(
            {
                "session_id": f"session-{uuid4().hex}",
                "player_id": document.player_id,
                "day_number": day_number,
                "stamina": Stamina.full(self._configuration.max_stamina),
                "started_at": now,
                **carried,
            }
        )
        updated_state = state.model_copy(
            update={
                "current_day": day_number,
                "can_start_new_day": False,
                "last_played_at": now,
            }
        )
        logger.info(
            "Player %s started day %d (session %s)",
            document.player_id,
            day_number,
            session.session_id,
        )
        updated = document.with_session(session).with_game_state(updated_state)
        return Success(Transition(aggregate=updated, outcome=session))

    def gather(
        self,
        aggregate: PlayerAggregate,
        action_type: GatherActionType,
        *,
        now: datetime,
        rng: RandomSource,
        crop: CropType | None = None,
    ) -> Result[Transition[GatherOutcome]]:
        """Perform one harvest action in the active session."""
        session = aggregate.active_session
        if session is None:
            return Failure(SessionNotFound(player_id=aggregate.player_id))
        result = self._gathering.perform(
            session, action_type, now=now, rng=rng, crop=crop
        )
        if not result.ok:
            return result
        outcome = result.value
        updated = aggregate.with_session(outcome.session).with_game_state(
            aggregate.game_state.model_copy(update={"last_played_at": now})
        )
        return Success(Transition(aggregate=updated, outcome=outcome))

    def open_case(
        self,
        aggregate: PlayerAggregate,
        *,
        now: datetime,
        rng: RandomService,
    ) -> Result[Transition[CaseOpening]]:
        """Open a case, spending a confirmed entry fee when one is due."""
        session = aggregate.active_session
        if session is None:
            return Failure(SessionNotFound(player_id=aggregate.player_id))
        eligibility = self._cases.check_eligibility(aggregate.game_state, session, now)
        if not eligibility.ok:
            return eligibility

        document = aggregate
        fee_claim_id: str | None = None
        if eligibility.value.requires_payment and self._configuration.case_fee_required:
            consumed = self._reconciler.consume_entry_fee(aggregate)
            if consumed is None:
                return Failure(EntryFeeRequired(amount=self._configuration.case_fee))
            document, fee_claim_id = consumed

        result = self._cases.open_case(
            document.game_state, session, now=now, rng=rng, fee_claim_id=fee_claim_id
        )
        if not result.ok:
            return result
        opening = result.value
        game_state = opening.game_state.model_copy(update={"last_played_at": now})
        updated = document.with_session(opening.session).with_game_state(game_state)
        return Success(Transition(aggregate=updated, outcome=opening))

    def submit_contract(
        self, aggregate: PlayerAggregate, *, now: datetime
    ) -> Result[Transition[ContractSubmission]]:
        """Fulfil the held contract, burn the inventory and accrue rewards."""
        session = aggregate.active_session
        if session is None:
            return Failure(SessionNotFound(player_id=aggregate.player_id))
        contract = session.contract
        if contract is None:
            return Failure(NoActiveContract())
        if session.contract_submitted:
            return Failure(ContractAlreadySubmitted(contract_id=contract.contract_id))
        check = self._catalog.check_submission(session.inventory, contract)
        if not check.ok:
            return check

        remaining = session.inventory.remove_items(contract.requirements).unwrap()
        updated_session = session.mutate(
            inventory=remaining.burn_on_submit(), contract_submitted=True
        )
        state, accrual = self._fame.add_fame_points(
            aggregate.game_state.record_contract(contract.tier), contract.fame_points
        )
        state = state.model_copy(update={"last_played_at": now})
        updated = self._reconciler.record_contract_reward(
            aggregate.with_session(updated_session).with_game_state(state),
            contract,
            now=now,
        )
        logger.info(
            "Player %s submitted contract %s (%s) for %s %s and %d fame",
            aggregate.player_id,
            contract.contract_id,
            contract.tier,
            contract.reward.amount,
            contract.reward.currency,
            contract.fame_points,
        )
        return Success(
            Transition(
                aggregate=updated,
                outcome=ContractSubmission(
                    contract=contract,
                    claim_id=contract_claim_id(contract),
                    fame=accrual,
                    burned=session.inventory,
                ),
            )
        )

    def end_day(
        self, aggregate: PlayerAggregate, *, now: datetime, rng: RandomSource
    ) -> Result[Transition[DayEnd]]:
        """Close the active session and burn part of the inventory."""
        session = aggregate.active_session
        if session is None:
            return Failure(SessionNotFound(player_id=aggregate.player_id))
        survivors = session.inventory.burn_partial_on_day_end(
            rng, self._configuration.day_end_burn_band
        )
        ended = session.mutate(
            inventory=survivors, status=SessionStatus.ENDED, ended_at=now
        )
        state = aggregate.game_state
        updated_state = state.model_copy(
            update={
                "total_days_played": state.total_days_played + 1,
                "can_start_new_day": True,
                "last_played_at": now,
            }
        )
        burned = session.inventory.diff(survivors)
        logger.info(
            "Player %s ended day %d, %d item(s) burned",
            aggregate.player_id,
            session.day_number,
            sum(burned.values()),
        )
        updated = aggregate.with_session(ended).with_game_state(updated_state)
        return Success(Transition(aggregate=updated, outcome=DayEnd(ended, burned)))


__all__ = ["ContractSubmission", "DayEnd", "SessionLifecycle", "Transition"]
