"""Typed error values and hard-failure exceptions.

Expected conditions (a player running out of stamina, a case cap being hit,
a ledger call timing out) are modelled as immutable error values returned
inside a :class:`~harvest_backend.shared.results.Failure`. Each value carries a
literal ``code`` so callers can dispatch on it, and a ``category`` telling them
whether to fix their input, refresh their view of the state, or wait for a
settlement retry.

Internal-consistency failures are exceptions and are never returned.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003
from enum import StrEnum
from typing import Annotated, ClassVar, Literal

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from harvest_backend.shared.enums import ItemType  # noqa: TC001
from harvest_backend.shared.value_objects import Money  # noqa: TC001


class ErrorCategory(StrEnum):
    """Recovery class of an expected error."""

    VALIDATION = "validation"
    POLICY = "policy"
    SETTLEMENT = "settlement"


class Shortfall(BaseModel):
    """Single unmet requirement: the player holds *have* but needs *need*."""

    model_config = ConfigDict(frozen=True)

    item: ItemType
    have: int = Field(..., ge=0)
    need: int = Field(..., ge=1)

    @property
    def missing(self) -> int:
        """Return how many more units are required."""
        return self.need - self.have


class GameError(BaseModel):
    """Base class of every error value returned to callers."""

    model_config = ConfigDict(frozen=True)

    category: ClassVar[ErrorCategory]

    @property
    def message(self) -> str:
        """Return a human readable summary of the error."""
        return self.code.replace("_", " ")  # type: ignore[attr-defined]


class ValidationFailure(GameError):
    """Input is insufficient; retrying only helps once the state changes."""

    category: ClassVar[ErrorCategory] = ErrorCategory.VALIDATION


class PolicyViolation(GameError):
    """Caller is out of sync with the authoritative state."""

    category: ClassVar[ErrorCategory] = ErrorCategory.POLICY


class InsufficientStamina(ValidationFailure):
    code: Literal["insufficient_stamina"] = "insufficient_stamina"
    required: int
    available: int

    @property
    def message(self) -> str:
        return f"Not enough stamina: need {self.required}, have {self.available}."


class InsufficientItems(ValidationFailure):
    code: Literal["insufficient_items"] = "insufficient_items"
    shortfalls: tuple[Shortfall, ...]

    @property
    def message(self) -> str:
        parts = ", ".join(f"{s.item}: {s.have}/{s.need}" for s in self.shortfalls)
        return f"Not enough items ({parts})."


class MissingRequirement(ValidationFailure):
    """Inventory does not cover the active contract."""

    code: Literal["missing_requirement"] = "missing_requirement"
    contract_id: str
    shortfalls: tuple[Shortfall, ...]

    @property
    def message(self) -> str:
        parts = ", ".join(f"{s.item}: {s.have}/{s.need}" for s in self.shortfalls)
        return f"Contract {self.contract_id} requirements not met ({parts})."


class DailyCaseLimitReached(PolicyViolation):
    code: Literal["daily_case_limit_reached"] = "daily_case_limit_reached"
    cap: int
    opened: int
    resets_at: datetime | None = None


class ContractNotCompleted(PolicyViolation):
    code: Literal["contract_not_completed"] = "contract_not_completed"
    contract_id: str


class ContractAlreadySubmitted(PolicyViolation):
    code: Literal["contract_already_submitted"] = "contract_already_submitted"
    contract_id: str


class NoActiveContract(PolicyViolation):
    code: Literal["no_active_contract"] = "no_active_contract"


class SessionNotFound(PolicyViolation):
    code: Literal["session_not_found"] = "session_not_found"
    player_id: str


class PlayerNotFound(PolicyViolation):
    code: Literal["player_not_found"] = "player_not_found"
    player_id: str


class DayAlreadyInProgress(PolicyViolation):
    code: Literal["day_already_in_progress"] = "day_already_in_progress"
    session_id: str | None = None


class ChestNotEligible(PolicyViolation):
    code: Literal["chest_not_eligible"] = "chest_not_eligible"
    current: int
    required: int


class EntryFeeRequired(PolicyViolation):
    """A paid case was requested without a confirmed fee credit."""

    code: Literal["entry_fee_required"] = "entry_fee_required"
    amount: Money


class UnknownSettlement(PolicyViolation):
    code: Literal["unknown_settlement"] = "unknown_settlement"
    claim_id: str


class SettlementFailure(GameError):
    """Ledger call failed after the configured retries."""

    category: ClassVar[ErrorCategory] = ErrorCategory.SETTLEMENT

    code: Literal["settlement_failure"] = "settlement_failure"
    claim_id: str
    attempts: int = Field(..., ge=1)
    reason: str

    @property
    def message(self) -> str:
        return (
            f"Settlement {self.claim_id} failed after {self.attempts} attempt(s): "
            f"{self.reason}"
        )


AnyGameError = Annotated[
    InsufficientStamina
    | InsufficientItems
    | MissingRequirement
    | DailyCaseLimitReached
    | ContractNotCompleted
    | ContractAlreadySubmitted
    | NoActiveContract
    | SessionNotFound
    | PlayerNotFound
    | DayAlreadyInProgress
    | ChestNotEligible
    | EntryFeeRequired
    | UnknownSettlement
    | SettlementFailure,
    Field(discriminator="code"),
]


class InvariantViolation(RuntimeError):
    """Raised when internal state contradicts a domain invariant."""


class StaleAggregateError(RuntimeError):
    """Raised when a persisted document changed underneath a transaction."""


__all__ = [
    "AnyGameError",
    "ChestNotEligible",
    "ContractAlreadySubmitted",
    "ContractNotCompleted",
    "DailyCaseLimitReached",
    "DayAlreadyInProgress",
    "EntryFeeRequired",
    "ErrorCategory",
    "GameError",
    "InsufficientItems",
    "InsufficientStamina",
    "InvariantViolation",
    "MissingRequirement",
    "NoActiveContract",
    "PlayerNotFound",
    "PolicyViolation",
    "SessionNotFound",
    "SettlementFailure",
    "Shortfall",
    "StaleAggregateError",
    "UnknownSettlement",
    "ValidationFailure",
]
