"""Case opening: daily cap, free spins, rarity roll and replay reel."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta  # noqa: TC003
from typing import TYPE_CHECKING
from uuid import uuid4

from pydantic import BaseModel
from pydantic.config import ConfigDict

from harvest_backend.game_logic.selector import WeightedTable
from harvest_backend.game_logic.state import ContractCase, GameState, Session
from harvest_backend.shared.enums import CaseRarity
from harvest_backend.shared.errors import (
    ContractNotCompleted,
    DailyCaseLimitReached,
)
from harvest_backend.shared.results import Failure, Result, Success
from harvest_backend.shared.rng import ReplayRandom

if TYPE_CHECKING:
    from harvest_backend.game_logic.catalog import ContractCatalog
    from harvest_backend.game_logic.configuration import EconomyConfiguration
    from harvest_backend.shared.rng import RandomService

logger = logging.getLogger(__name__)

_RARITY_NAMES: dict[CaseRarity, str] = {
    CaseRarity.COMMON: "Common",
    CaseRarity.ADVANCED: "Advanced",
    CaseRarity.EPIC: "Epic",
}


class RarityInfo(BaseModel):
    """Display metadata for a rarity."""

    model_config = ConfigDict(frozen=True)

    rarity: CaseRarity
    name: str
    drop_rate: float
    grants_free_spin: bool


class DecoyEntry(BaseModel):
    """One tile of the case-opening reel."""

    model_config = ConfigDict(frozen=True)

    rarity: CaseRarity
    template_id: str
    is_result: bool = False


@dataclass(frozen=True, slots=True)
class CaseEligibility:
    """Decision to allow a case, and whether it must be paid for."""

    requires_payment: bool
    is_free_spin: bool
    cases_opened_today: int


@dataclass(frozen=True, slots=True)
class CaseOpening:
    """Outcome of a successful case opening."""

    session: Session
    game_state: GameState
    case: ContractCase
    granted_free_spin: bool
    resets_at: datetime

    @property
    def rarity(self) -> CaseRarity:
        return self.case.rarity


class CaseEngine:
    """Stateless rules for opening cases.

    All counters live on :class:`GameState` and :class:`Session`; the engine
    only reads them and returns updated copies.
    """

    def __init__(
        self, configuration: EconomyConfiguration, catalog: ContractCatalog
    ) -> None:
        self._configuration = configuration
        self._catalog = catalog
        self._rarity_table = WeightedTable.from_mapping(configuration.rarity_weights)

    @property
    def daily_cap(self) -> int:
        return self._configuration.daily_case_cap

    def rarity_info(self, rarity: CaseRarity) -> RarityInfo:
        """Return display metadata for *rarity*."""
        return RarityInfo(
            rarity=rarity,
            name=_RARITY_NAMES[rarity],
            drop_rate=self._rarity_table.probability(rarity),
            grants_free_spin=rarity is CaseRarity.EPIC,
        )

    def window_counter(self, state: GameState, now: datetime) -> int:
        """Return cases opened in the current rolling window as of *now*."""
        if self._window_expired(state, now):
            return 0
        return state.cases_opened_today

    def window_resets_at(self, state: GameState, now: datetime) -> datetime:
        """Return when the current cap window closes."""
        window: timedelta = self._configuration.case_cap_window
        if self._window_expired(state, now) or state.last_case_reset_time is None:
            return now + window
        return state.last_case_reset_time + window

    def check_eligibility(
        self, state: GameState, session: Session, now: datetime
    ) -> Result[CaseEligibility]:
        """Apply the case preconditions in order.

        1. the rolling cap, which also binds free spins;
        2. the first case of a window is always allowed, and spends an owed
           free spin instead of a fee;
        3. an owed free spin is allowed without payment;
        4. otherwise no contract may be outstanding.
        """
        opened = self.window_counter(state, now)
        if opened >= self.daily_cap:
            return Failure(
                DailyCaseLimitReached(
                    cap=self.daily_cap,
                    opened=opened,
                    resets_at=self.window_resets_at(state, now),
                )
            )
        if opened == 0:
            # A spin owed from before the window rolled is spent here.
            owed = session.has_free_spin_available
            return Success(
                CaseEligibility(
                    requires_payment=not owed, is_free_spin=owed, cases_opened_today=0
                )
            )
        if session.has_free_spin_available:
            return Success(
                CaseEligibility(
                    requires_payment=False, is_free_spin=True, cases_opened_today=opened
                )
            )
        if session.has_outstanding_contract:
            return Failure(ContractNotCompleted(contract_id=session.contract.contract_id))  # type: ignore[union-attr]
        return Success(
            CaseEligibility(
                requires_payment=True, is_free_spin=False, cases_opened_today=opened
            )
        )

    def open_case(
        self,
        state: GameState,
        session: Session,
        *,
        now: datetime,
        rng: RandomService,
        fee_claim_id: str | None = None,
    ) -> Result[CaseOpening]:
        """Open a case for *session*, returning updated state copies."""
        session.ensure_active()
        eligibility = self.check_eligibility(state, session, now)
        if not eligibility.ok:
            return eligibility
        decision = eligibility.value

        rarity = self._rarity_table.draw(rng)
        template = self._catalog.draw_case_template(rarity, rng)
        contract = template.issue()
        granted_free_spin = rarity is CaseRarity.EPIC
        case = ContractCase(
            case_id=f"case-{uuid4().hex}",
            rarity=rarity,
            contract=contract,
            is_free_spin=decision.is_free_spin,
            opened_at=now,
            seed=rng.new_seed(),
            fee_claim_id=None if decision.is_free_spin else fee_claim_id,
        )

        window_start = decision.cases_opened_today == 0
        updated_state = state.model_copy(
            update={
                "cases_opened_today": decision.cases_opened_today + 1,
                "last_case_reset_time": now if window_start else state.last_case_reset_time,
                "case_counters": state.case_counters.record(
                    rarity, granted_free_spin=granted_free_spin
                ),
            }
        )
        updated_session = session.mutate(
            contract=contract,
            case_rarity=rarity,
            last_case=case,
            contract_submitted=False,
            cases_opened=session.cases_opened + 1,
            has_free_spin_available=granted_free_spin
            or (session.has_free_spin_available and not decision.is_free_spin),
        )
        logger.info(
            "Player %s opened %s case %s (free spin: %s, window count: %d)",
            session.player_id,
            rarity,
            case.case_id,
            decision.is_free_spin,
            updated_state.cases_opened_today,
        )
        return Success(
            CaseOpening(
                session=updated_session,
                game_state=updated_state,
                case=case,
                granted_free_spin=granted_free_spin,
                resets_at=self.window_resets_at(updated_state, now),
            )
        )

    def generate_decoy_sequence(
        self,
        final_rarity: CaseRarity,
        seed: int,
        *,
        final_template_id: str | None = None,
        length: int | None = None,
        result_index: int | None = None,
    ) -> tuple[DecoyEntry, ...]:
        """Build the reel shown while a case spins.

        The reel is a pure function of ``(final_rarity, seed)``: decoys are
        drawn from a :class:`ReplayRandom` seeded with *seed*, and the real
        result is spliced in at *result_index*.
        """
        size = length if length is not None else self._configuration.decoy_length
        index = (
            result_index
            if result_index is not None
            else self._configuration.decoy_result_index
        )
        if not 0 <= index < size:
            msg = f"Result index {index} is outside a reel of {size} entries."
            raise ValueError(msg)

        replay = ReplayRandom(seed)
        reel: list[DecoyEntry] = []
        for _ in range(size):
            rarity = self._rarity_table.draw(replay)
            template = self._catalog.draw_case_template(rarity, replay)
            reel.append(DecoyEntry(rarity=rarity, template_id=template.template_id))

        if final_template_id is None:
            final_template_id = self._catalog.draw_case_template(
                final_rarity, replay
            ).template_id
        reel[index] = DecoyEntry(
            rarity=final_rarity, template_id=final_template_id, is_result=True
        )
        return tuple(reel)

    def _window_expired(self, state: GameState, now: datetime) -> bool:
        if state.last_case_reset_time is None:
            return True
        return now - state.last_case_reset_time >= self._configuration.case_cap_window


__all__ = [
    "CaseEligibility",
    "CaseEngine",
    "CaseOpening",
    "DecoyEntry",
    "RarityInfo",
]
