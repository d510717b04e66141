"""Off-chain pending balances reconciled against the external ledger.

Every ledger operation is first written as a :class:`SettlementIntent` in the
player document (the outbox), in the same transaction as the bookkeeping that
caused it. Confirmations and failures are applied later, keyed by claim id,
and applying the same confirmation twice is a no-op.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from harvest_backend.game_logic.state import PlayerAggregate, SettlementIntent
from harvest_backend.shared.enums import SettlementKind, SettlementStatus
from harvest_backend.shared.errors import InvariantViolation, UnknownSettlement
from harvest_backend.shared.results import Failure, Result, Success
from harvest_backend.shared.value_objects import Money

if TYPE_CHECKING:
    from datetime import datetime

    from harvest_backend.game_logic.catalog import Contract
    from harvest_backend.game_logic.state import TreasureChest

logger = logging.getLogger(__name__)


def contract_claim_id(contract: Contract) -> str:
    """Return the settlement claim id for *contract*'s reward."""
    return f"contract-reward:{contract.contract_id}"


class RewardReconciler:
    """Owns every change to the pending balance and the settlement outbox."""

    def record_contract_reward(
        self, aggregate: PlayerAggregate, contract: Contract, *, now: datetime
    ) -> PlayerAggregate:
        """Credit *contract*'s reward to the pending balance exactly once."""
        return self._record_payout(
            aggregate,
            claim_id=contract_claim_id(contract),
            kind=SettlementKind.CONTRACT_REWARD,
            amount=contract.reward,
            now=now,
        )

    def record_chest_reward(
        self, aggregate: PlayerAggregate, chest: TreasureChest, *, now: datetime
    ) -> PlayerAggregate:
        """Credit *chest*'s reward to the pending balance exactly once."""
        return self._record_payout(
            aggregate,
            claim_id=chest.claim_id,
            kind=SettlementKind.CHEST_REWARD,
            amount=chest.reward,
            now=now,
        )

    def record_entry_fee(
        self,
        aggregate: PlayerAggregate,
        *,
        claim_id: str,
        amount: Money,
        now: datetime,
    ) -> PlayerAggregate:
        """Register an intent to collect a case fee; the balance is untouched."""
        if aggregate.settlement(claim_id) is not None:
            return aggregate
        intent = SettlementIntent(
            claim_id=claim_id,
            kind=SettlementKind.ENTRY_FEE,
            amount=amount,
            created_at=now,
        )
        return aggregate.append_settlements((intent,))

    def confirm(
        self,
        aggregate: PlayerAggregate,
        claim_id: str,
        *,
        reference: str,
        now: datetime,
    ) -> Result[PlayerAggregate]:
        """Apply a ledger confirmation for *claim_id*.

        Replaying a confirmation returns the aggregate unchanged.
        """
        intent = aggregate.settlement(claim_id)
        if intent is None:
            return Failure(UnknownSettlement(claim_id=claim_id))
        if intent.status is SettlementStatus.CONFIRMED:
            logger.debug("Ignoring repeated confirmation for %s", claim_id)
            return Success(aggregate)

        confirmed = intent.model_copy(
            update={
                "status": SettlementStatus.CONFIRMED,
                "reference": reference,
                "confirmed_at": now,
                "attempts": intent.attempts + 1,
                "last_error": None,
            }
        )
        updated = aggregate.replace_settlement(confirmed)
        if intent.kind.is_payout:
            state = updated.game_state
            pending = state.pending_currency_earned.subtract(intent.amount)
            if pending.is_negative:
                msg = (
                    f"Confirming {claim_id} would drive the pending balance of "
                    f"{aggregate.player_id} negative ({pending.amount})."
                )
                raise InvariantViolation(msg)
            updated = updated.with_game_state(
                state.model_copy(update={"pending_currency_earned": pending})
            )
        if intent.kind is SettlementKind.CHEST_REWARD:
            updated = updated.model_copy(
                update={
                    "chests": tuple(
                        chest.model_copy(update={"settlement_reference": reference})
                        if chest.claim_id == claim_id
                        else chest
                        for chest in updated.chests
                    )
                }
            )
        if intent.kind is SettlementKind.ENTRY_FEE:
            updated = updated.model_copy(
                update={"entry_fee_credits": (*updated.entry_fee_credits, claim_id)}
            )
        self.verify(updated)
        logger.info(
            "Settlement %s confirmed for %s (reference %s)",
            claim_id,
            aggregate.player_id,
            reference,
        )
        return Success(updated)

    def record_failure(
        self,
        aggregate: PlayerAggregate,
        claim_id: str,
        *,
        reason: str,
        attempts: int = 1,
    ) -> Result[PlayerAggregate]:
        """Note failed ledger attempts; balances stay exactly as they were."""
        intent = aggregate.settlement(claim_id)
        if intent is None:
            return Failure(UnknownSettlement(claim_id=claim_id))
        if intent.status is SettlementStatus.CONFIRMED:
            return Success(aggregate)
        failed = intent.model_copy(
            update={"attempts": intent.attempts + attempts, "last_error": reason}
        )
        return Success(aggregate.replace_settlement(failed))

    def consume_entry_fee(self, aggregate: PlayerAggregate) -> tuple[PlayerAggregate, str] | None:
        """Spend the oldest confirmed fee credit, if one exists."""
        if not aggregate.entry_fee_credits:
            return None
        claim_id, *rest = aggregate.entry_fee_credits
        return aggregate.model_copy(update={"entry_fee_credits": tuple(rest)}), claim_id

    @staticmethod
    def outstanding_payouts(aggregate: PlayerAggregate) -> Money:
        """Return the sum of unconfirmed payouts recorded in the outbox."""
        total = Money.zero(aggregate.game_state.pending_currency_earned.currency)
        for intent in aggregate.pending_settlements():
            if intent.kind.is_payout:
                total = total.add(intent.amount)
        return total

    def verify(self, aggregate: PlayerAggregate) -> None:
        """Raise when the pending balance disagrees with the outbox."""
        expected = self.outstanding_payouts(aggregate)
        actual = aggregate.game_state.pending_currency_earned
        if expected != actual:
            msg = (
                f"Pending balance {actual.amount} of {aggregate.player_id} does not "
                f"match unconfirmed payouts {expected.amount}."
            )
            raise InvariantViolation(msg)

    def _record_payout(
        self,
        aggregate: PlayerAggregate,
        *,
        claim_id: str,
        kind: SettlementKind,
        amount: Money,
        now: datetime,
    ) -> PlayerAggregate:
        if aggregate.settlement(claim_id) is not None:
            logger.debug("Payout %s already recorded; skipping", claim_id)
            return aggregate
        state = aggregate.game_state
        updated_state = state.model_copy(
            update={
                "pending_currency_earned": state.pending_currency_earned.add(amount),
                "total_currency_earned": state.total_currency_earned.add(amount),
            }
        )
        intent = SettlementIntent(
            claim_id=claim_id, kind=kind, amount=amount, created_at=now
        )
        return aggregate.with_game_state(updated_state).append_settlements((intent,))


__all__ = ["RewardReconciler", "contract_claim_id"]
