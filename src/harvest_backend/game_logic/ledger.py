"""External ledger protocol and an in-memory implementation.

The ledger moves real currency: it collects case entry fees and pays out
rewards. The game never talks to it from inside a player transaction; every
call is keyed by a claim id so the ledger can deduplicate retries.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable  # noqa: TC003
from datetime import datetime  # noqa: TC003
from typing import Protocol
from uuid import uuid4

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from harvest_backend.shared.enums import SettlementKind
from harvest_backend.shared.value_objects import Money  # noqa: TC001


class LedgerError(RuntimeError):
    """Raised when the ledger could not complete an operation."""


class LedgerTimeout(LedgerError):
    """Raised when the ledger did not answer in time."""


class LedgerRejected(LedgerError):
    """Raised when the ledger refused an operation outright."""


class SettlementReceipt(BaseModel):
    """Acknowledgement returned by the ledger for a completed operation."""

    model_config = ConfigDict(frozen=True)

    claim_id: str = Field(..., min_length=1)
    reference: str = Field(..., min_length=1)
    player_id: str = Field(..., min_length=1)
    kind: SettlementKind
    amount: Money
    settled_at: datetime | None = None


class Ledger(Protocol):
    """Protocol describing the external currency ledger."""

    async def pay_entry_fee(
        self, player_id: str, amount: Money, *, claim_id: str
    ) -> SettlementReceipt:
        """Collect a case entry fee of *amount* from *player_id*."""

    async def claim_reward(
        self, player_id: str, amount: Money, *, claim_id: str
    ) -> SettlementReceipt:
        """Pay *amount* to *player_id*."""


FailurePlan = Callable[[str, int], BaseException | None]


class InMemoryLedger:
    """Ledger kept in process memory, deduplicating by claim id.

    ``failures`` optionally maps a claim id to the number of leading calls
    that should fail with :class:`LedgerTimeout`; ``failure_plan`` gives full
    control by returning the exception to raise for ``(claim_id, attempt)``.
    """

    def __init__(
        self,
        *,
        failures: dict[str, int] | None = None,
        failure_plan: FailurePlan | None = None,
        latency: float = 0.0,
    ) -> None:
        self._failures = dict(failures or {})
        self._failure_plan = failure_plan
        self._latency = latency
        self._receipts: dict[str, SettlementReceipt] = {}
        self._attempts: dict[str, int] = {}
        self._balances: dict[str, Money] = {}

    @property
    def receipts(self) -> tuple[SettlementReceipt, ...]:
        return tuple(self._receipts.values())

    def attempts(self, claim_id: str) -> int:
        """Return how many times *claim_id* has been submitted."""
        return self._attempts.get(claim_id, 0)

    def balance(self, player_id: str) -> Money:
        """Return the net amount the ledger has moved to *player_id*."""
        return self._balances.get(player_id, Money.zero())

    async def pay_entry_fee(
        self, player_id: str, amount: Money, *, claim_id: str
    ) -> SettlementReceipt:
        return await self._settle(
            player_id, amount.multiply(-1), claim_id, SettlementKind.ENTRY_FEE
        )

    async def claim_reward(
        self, player_id: str, amount: Money, *, claim_id: str
    ) -> SettlementReceipt:
        kind = (
            SettlementKind.CHEST_REWARD
            if claim_id.startswith("chest-reward:")
            else SettlementKind.CONTRACT_REWARD
        )
        return await self._settle(player_id, amount, claim_id, kind)

    async def _settle(
        self, player_id: str, delta: Money, claim_id: str, kind: SettlementKind
    ) -> SettlementReceipt:
        attempt = self._attempts.get(claim_id, 0) + 1
        self._attempts[claim_id] = attempt
        if self._latency:
            await asyncio.sleep(self._latency)

        existing = self._receipts.get(claim_id)
        if existing is not None:
            return existing

        error = self._next_failure(claim_id, attempt)
        if error is not None:
            raise error

        receipt = SettlementReceipt(
            claim_id=claim_id,
            reference=f"tx-{uuid4().hex}",
            player_id=player_id,
            kind=kind,
            amount=delta if kind.is_payout else delta.multiply(-1),
        )
        self._receipts[claim_id] = receipt
        self._balances[player_id] = self.balance(player_id).add(delta)
        return receipt

    def _next_failure(self, claim_id: str, attempt: int) -> BaseException | None:
        if self._failure_plan is not None:
            return self._failure_plan(claim_id, attempt)
        remaining = self._failures.get(claim_id, 0)
        if remaining <= 0:
            return None
        self._failures[claim_id] = remaining - 1
        return LedgerTimeout(f"Ledger did not answer for {claim_id}.")


__all__ = [
    "InMemoryLedger",
    "Ledger",
    "LedgerError",
    "LedgerRejected",
    "LedgerTimeout",
    "SettlementReceipt",
]
