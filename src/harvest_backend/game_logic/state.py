"""Player-centric state containers used by the game logic layer."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict

from harvest_backend.game_logic.catalog import Contract  # noqa: TC001
from harvest_backend.game_logic.inventory import Inventory
from harvest_backend.shared.enums import (
    CaseRarity,
    LifecyclePhase,
    RewardTier,
    SessionStatus,
    SettlementKind,
    SettlementStatus,
)
from harvest_backend.shared.errors import InvariantViolation
from harvest_backend.shared.events import GatherAction  # noqa: TC001
from harvest_backend.shared.value_objects import Money

if TYPE_CHECKING:
    from collections.abc import Iterable


class Stamina(BaseModel):
    """Consumable per-session resource gating gathering actions."""

    model_config = ConfigDict(frozen=True)

    current: int = Field(..., ge=0)
    maximum: int = Field(..., ge=1)

    @model_validator(mode="after")
    def _validate_bounds(self) -> Stamina:
        """Ensure the current value never exceeds the maximum."""
        if self.current > self.maximum:
            msg = f"Stamina {self.current} exceeds maximum {self.maximum}."
            raise ValueError(msg)
        return self

    @classmethod
    def full(cls, maximum: int) -> Stamina:
        """Return a full stamina bar."""
        return cls(current=maximum, maximum=maximum)

    def can_afford(self, cost: int) -> bool:
        """Return ``True`` when *cost* can be paid."""
        return self.current >= cost

    def spend(self, cost: int) -> Stamina:
        """Return stamina reduced by *cost*."""
        if cost < 0 or cost > self.current:
            msg = f"Cannot spend {cost} stamina out of {self.current}."
            raise InvariantViolation(msg)
        return Stamina(current=self.current - cost, maximum=self.maximum)


class ContractCase(BaseModel):
    """Record of a single case opening, kept for replay and auditing."""

    model_config = ConfigDict(frozen=True)

    case_id: str = Field(..., min_length=1)
    rarity: CaseRarity
    contract: Contract
    is_free_spin: bool = False
    opened_at: datetime
    seed: int = Field(..., ge=0)
    fee_claim_id: str | None = None


class Session(BaseModel):
    """Bounded unit of play representing one logical player-day."""

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(..., min_length=1)
    player_id: str = Field(..., min_length=1)
    day_number: int = Field(..., ge=1)
    stamina: Stamina
    inventory: Inventory = Field(default_factory=Inventory)
    actions: tuple[GatherAction, ...] = Field(default_factory=tuple)
    contract: Contract | None = None
    case_rarity: CaseRarity | None = None
    last_case: ContractCase | None = None
    contract_submitted: bool = False
    cases_opened: int = Field(default=0, ge=0)
    has_free_spin_available: bool = False
    status: SessionStatus = SessionStatus.ACTIVE
    started_at: datetime
    ended_at: datetime | None = None

    @model_validator(mode="after")
    def _validate_status(self) -> Session:
        """Ensure end timestamps match the status."""
        if self.status is SessionStatus.ENDED and self.ended_at is None:
            msg = "Ended sessions must record ended_at."
            raise ValueError(msg)
        if self.status is SessionStatus.ACTIVE and self.ended_at is not None:
            msg = "Active sessions cannot record ended_at."
            raise ValueError(msg)
        return self

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    @property
    def has_outstanding_contract(self) -> bool:
        """Return ``True`` when a contract is held but not yet submitted."""
        return self.contract is not None and not self.contract_submitted

    def ensure_active(self) -> None:
        """Raise when a mutation targets an ended session."""
        if not self.is_active:
            msg = f"Session {self.session_id} has ended and cannot be mutated."
            raise InvariantViolation(msg)

    def mutate(self, **changes: object) -> Session:
        """Return a copy with *changes* applied, refusing ended sessions."""
        self.ensure_active()
        return self.model_validate({**self.model_dump(), **changes})


class CaseCounters(BaseModel):
    """Lifetime case statistics."""

    model_config = ConfigDict(frozen=True)

    total: int = Field(default=0, ge=0)
    by_rarity: dict[CaseRarity, int] = Field(default_factory=dict)
    free_spins_received: int = Field(default=0, ge=0)

    def record(self, rarity: CaseRarity, *, granted_free_spin: bool) -> CaseCounters:
        """Return counters including one more case of *rarity*."""
        by_rarity = dict(self.by_rarity)
        by_rarity[rarity] = by_rarity.get(rarity, 0) + 1
        return CaseCounters(
            total=self.total + 1,
            by_rarity=by_rarity,
            free_spins_received=self.free_spins_received + int(granted_free_spin),
        )


class GameState(BaseModel):
    """Long-lived progress of a player across sessions."""

    model_config = ConfigDict(frozen=True)

    current_day: int = Field(default=0, ge=0)
    total_days_played: int = Field(default=0, ge=0)
    fame_points: int = Field(default=0, ge=0)
    treasure_chests_opened: int = Field(default=0, ge=0)
    total_contracts_completed: int = Field(default=0, ge=0)
    contracts_completed_by_tier: dict[RewardTier, int] = Field(default_factory=dict)
    pending_currency_earned: Money = Field(default_factory=Money.zero)
    total_currency_earned: Money = Field(default_factory=Money.zero)
    cases_opened_today: int = Field(default=0, ge=0)
    last_case_reset_time: datetime | None = None
    case_counters: CaseCounters = Field(default_factory=CaseCounters)
    can_start_new_day: bool = True
    last_played_at: datetime | None = None

    @model_validator(mode="after")
    def _validate_balances(self) -> GameState:
        """Ensure currency balances never go negative."""
        if self.pending_currency_earned.is_negative:
            msg = "Pending currency balance cannot be negative."
            raise ValueError(msg)
        return self

    def record_contract(self, tier: RewardTier) -> GameState:
        """Return state counting one more completed contract of *tier*."""
        by_tier = dict(self.contracts_completed_by_tier)
        by_tier[tier] = by_tier.get(tier, 0) + 1
        return self.model_copy(
            update={
                "total_contracts_completed": self.total_contracts_completed + 1,
                "contracts_completed_by_tier": by_tier,
            }
        )


class TreasureChest(BaseModel):
    """Redemption of fame points into a currency payout."""

    model_config = ConfigDict(frozen=True)

    chest_id: str = Field(..., min_length=1)
    required_fame_points: int = Field(..., ge=1)
    reward: Money
    claimed_at: datetime
    claim_id: str = Field(..., min_length=1)
    settlement_reference: str | None = None


class SettlementIntent(BaseModel):
    """Outbox entry describing one external ledger operation."""

    model_config = ConfigDict(frozen=True)

    claim_id: str = Field(..., min_length=1)
    kind: SettlementKind
    amount: Money
    status: SettlementStatus = SettlementStatus.PENDING
    attempts: int = Field(default=0, ge=0)
    last_error: str | None = None
    reference: str | None = None
    created_at: datetime
    confirmed_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status is SettlementStatus.PENDING


class PlayerAggregate(BaseModel):
    """Durable per-player document: progress, current session and outbox."""

    model_config = ConfigDict(frozen=True)

    player_id: str = Field(..., min_length=1)
    version: int = Field(default=0, ge=0)
    game_state: GameState = Field(default_factory=GameState)
    session: Session | None = None
    chests: tuple[TreasureChest, ...] = Field(default_factory=tuple)
    settlements: tuple[SettlementIntent, ...] = Field(default_factory=tuple)
    entry_fee_credits: tuple[str, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def _validate_document(self) -> PlayerAggregate:
        """Ensure the session belongs to the player and claim ids are unique."""
        if self.session is not None and self.session.player_id != self.player_id:
            msg = "Session does not belong to the aggregate's player."
            raise ValueError(msg)
        claim_ids = [intent.claim_id for intent in self.settlements]
        if len(claim_ids) != len(set(claim_ids)):
            msg = "Settlement claim ids must be unique."
            raise ValueError(msg)
        return self

    @property
    def phase(self) -> LifecyclePhase:
        """Return where the player stands in the day cycle."""
        if self.session is None:
            return LifecyclePhase.IDLE
        if self.session.is_active:
            return LifecyclePhase.ACTIVE
        return LifecyclePhase.ENDED

    @property
    def active_session(self) -> Session | None:
        """Return the session when it is still active."""
        if self.session is not None and self.session.is_active:
            return self.session
        return None

    def settlement(self, claim_id: str) -> SettlementIntent | None:
        """Return the outbox entry for *claim_id*, if any."""
        for intent in self.settlements:
            if intent.claim_id == claim_id:
                return intent
        return None

    def pending_settlements(self) -> tuple[SettlementIntent, ...]:
        """Return every outbox entry still awaiting confirmation."""
        return tuple(intent for intent in self.settlements if intent.is_pending)

    def with_session(self, session: Session | None) -> PlayerAggregate:
        return self.model_copy(update={"session": session})

    def with_game_state(self, game_state: GameState) -> PlayerAggregate:
        return self.model_copy(update={"game_state": game_state})

    def replace_settlement(self, intent: SettlementIntent) -> PlayerAggregate:
        """Return an aggregate where the entry with the same claim id is replaced."""
        updated = tuple(
            intent if existing.claim_id == intent.claim_id else existing
            for existing in self.settlements
        )
        return self.model_copy(update={"settlements": updated})

    def append_settlements(self, intents: Iterable[SettlementIntent]) -> PlayerAggregate:
        return self.model_copy(update={"settlements": (*self.settlements, *intents)})


__all__ = [
    "CaseCounters",
    "ContractCase",
    "GameState",
    "PlayerAggregate",
    "Session",
    "SettlementIntent",
    "Stamina",
    "TreasureChest",
]
