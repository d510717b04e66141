"""Drive pending settlement intents through the external ledger.

The dispatcher reads an intent, calls the ledger with no player lock held,
then opens a short transaction to record the confirmation or the failure.
Store access runs in worker threads so a blocking database never stalls
the event loop.

Because every ledger call carries the intent's claim id, a retry after a
lost acknowledgement cannot move currency twice.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from harvest_backend.game_logic.ledger import LedgerError, LedgerRejected
from harvest_backend.shared.enums import SettlementKind
from harvest_backend.shared.errors import SettlementFailure, UnknownSettlement
from harvest_backend.shared.results import Failure, Result, Success

if TYPE_CHECKING:
    from harvest_backend.game_logic.ledger import Ledger, SettlementReceipt
    from harvest_backend.game_logic.persistence import PlayerStore
    from harvest_backend.game_logic.reconciler import RewardReconciler
    from harvest_backend.game_logic.state import SettlementIntent
    from harvest_backend.settings import BackendSettings
    from harvest_backend.shared.clock import Clock
    from harvest_backend.shared.value_objects import Money

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SettlementReport:
    """Confirmed settlement of one claim."""

    claim_id: str
    kind: SettlementKind
    amount: Money
    reference: str
    attempts: int


class SettlementDispatcher:
    """Retry ledger calls with exponential backoff and reconcile the outcome."""

    def __init__(
        self,
        store: PlayerStore,
        ledger: Ledger,
        reconciler: RewardReconciler,
        clock: Clock,
        *,
        max_attempts: int = 5,
        backoff_seconds: float = 0.5,
        timeout_seconds: float = 10.0,
    ) -> None:
        if max_attempts < 1:
            msg = "At least one settlement attempt is required."
            raise ValueError(msg)
        self._store = store
        self._ledger = ledger
        self._reconciler = reconciler
        self._clock = clock
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(
        cls,
        settings: BackendSettings,
        store: PlayerStore,
        ledger: Ledger,
        reconciler: RewardReconciler,
        clock: Clock,
    ) -> SettlementDispatcher:
        """Build a dispatcher using the retry policy from *settings*."""
        return cls(
            store,
            ledger,
            reconciler,
            clock,
            max_attempts=settings.settlement_max_attempts,
            backoff_seconds=settings.settlement_backoff_seconds,
            timeout_seconds=settings.settlement_timeout_seconds,
        )

    async def settle(self, player_id: str, claim_id: str) -> Result[SettlementReport]:
        """Settle *claim_id* for *player_id*, retrying transient failures."""
        aggregate = await asyncio.to_thread(self._store.load, player_id)
        intent = aggregate.settlement(claim_id) if aggregate is not None else None
        if intent is None:
            return Failure(UnknownSettlement(claim_id=claim_id))
        if not intent.is_pending:
            return Success(self._report(intent, intent.reference or "", intent.attempts))

        reason = "no attempt made"
        attempts = 0
        for attempt in range(1, self._max_attempts + 1):
            attempts = attempt
            try:
                receipt = await asyncio.wait_for(
                    self._call_ledger(player_id, intent), self._timeout_seconds
                )
            except LedgerRejected as exc:
                reason = f"rejected: {exc}"
                logger.warning("Ledger rejected %s for %s: %s", claim_id, player_id, exc)
                break
            except (LedgerError, TimeoutError) as exc:
                reason = str(exc) or type(exc).__name__
                if attempt < self._max_attempts:
                    delay = self._backoff_seconds * 2 ** (attempt - 1)
                    logger.warning(
                        "Settlement %s attempt %d/%d failed (%s); retrying in %.2fs",
                        claim_id,
                        attempt,
                        self._max_attempts,
                        reason,
                        delay,
                    )
                    await asyncio.sleep(delay)
            else:
                return await asyncio.to_thread(
                    self._confirm, player_id, intent, receipt, attempts
                )

        await asyncio.to_thread(
            self._record_failure, player_id, claim_id, reason, attempts
        )
        logger.warning(
            "Settlement %s for %s gave up after %d attempt(s): %s",
            claim_id,
            player_id,
            attempts,
            reason,
        )
        return Failure(
            SettlementFailure(claim_id=claim_id, attempts=attempts, reason=reason)
        )

    async def settle_pending(
        self, player_id: str
    ) -> tuple[Result[SettlementReport], ...]:
        """Settle every pending intent of *player_id* in creation order."""
        aggregate = await asyncio.to_thread(self._store.load, player_id)
        if aggregate is None:
            return ()
        results = []
        for intent in aggregate.pending_settlements():
            results.append(await self.settle(player_id, intent.claim_id))
        return tuple(results)

    async def _call_ledger(
        self, player_id: str, intent: SettlementIntent
    ) -> SettlementReceipt:
        if intent.kind is SettlementKind.ENTRY_FEE:
            return await self._ledger.pay_entry_fee(
                player_id, intent.amount, claim_id=intent.claim_id
            )
        return await self._ledger.claim_reward(
            player_id, intent.amount, claim_id=intent.claim_id
        )

    def _confirm(
        self,
        player_id: str,
        intent: SettlementIntent,
        receipt: SettlementReceipt,
        attempts: int,
    ) -> Result[SettlementReport]:
        with self._store.transaction(player_id) as transaction:
            if transaction.current is None:
                return Failure(UnknownSettlement(claim_id=intent.claim_id))
            result = self._reconciler.confirm(
                transaction.current,
                intent.claim_id,
                reference=receipt.reference,
                now=self._clock.now(),
            )
            if not result.ok:
                return result
            transaction.stage(result.value)
        return Success(self._report(intent, receipt.reference, attempts))

    def _record_failure(
        self, player_id: str, claim_id: str, reason: str, attempts: int
    ) -> None:
        with self._store.transaction(player_id) as transaction:
            if transaction.current is None:
                return
            result = self._reconciler.record_failure(
                transaction.current, claim_id, reason=reason, attempts=attempts
            )
            if result.ok:
                transaction.stage(result.value)

    @staticmethod
    def _report(
        intent: SettlementIntent, reference: str, attempts: int
    ) -> SettlementReport:
        return SettlementReport(
            claim_id=intent.claim_id,
            kind=intent.kind,
            amount=intent.amount,
            reference=reference,
            attempts=attempts,
        )


__all__ = ["SettlementDispatcher", "SettlementReport"]
