"""Fame point accrual and treasure chest redemption."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import uuid4

from harvest_backend.game_logic.state import GameState, PlayerAggregate, TreasureChest
from harvest_backend.shared.errors import ChestNotEligible, InvariantViolation
from harvest_backend.shared.results import Failure, Result, Success
from harvest_backend.shared.value_objects import Money

if TYPE_CHECKING:
    from datetime import datetime

    from harvest_backend.game_logic.configuration import EconomyConfiguration
    from harvest_backend.game_logic.reconciler import RewardReconciler
    from harvest_backend.shared.rng import RandomSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FameAccrual:
    """New fame total and whether a chest can be claimed."""

    total: int
    can_claim_chest: bool


@dataclass(frozen=True, slots=True)
class ChestProgress:
    """Progress towards the next chest."""

    percent: float
    remaining: int


@dataclass(frozen=True, slots=True)
class ChestClaim:
    """Aggregate after a successful claim, with the written chest record."""

    aggregate: PlayerAggregate
    chest: TreasureChest


class FamePointLedger:
    """Owns every change to ``GameState.fame_points``."""

    def __init__(
        self, configuration: EconomyConfiguration, reconciler: RewardReconciler
    ) -> None:
        self._configuration = configuration
        self._reconciler = reconciler

    @property
    def threshold(self) -> int:
        return self._configuration.fame_points_for_chest

    def can_claim_chest(self, state: GameState) -> bool:
        return state.fame_points >= self.threshold

    def add_fame_points(self, state: GameState, amount: int) -> tuple[GameState, FameAccrual]:
        """Return state with *amount* fame points added and the new eligibility."""
        if amount < 0:
            msg = f"Fame points can only be added, got {amount}."
            raise InvariantViolation(msg)
        updated = state.model_copy(update={"fame_points": state.fame_points + amount})
        return updated, FameAccrual(
            total=updated.fame_points, can_claim_chest=self.can_claim_chest(updated)
        )

    def chest_progress(self, fame_points: int) -> ChestProgress:
        """Return how far *fame_points* is from the next chest."""
        percent = min(fame_points / self.threshold * 100, 100.0)
        return ChestProgress(
            percent=round(percent, 1), remaining=max(self.threshold - fame_points, 0)
        )

    def draw_chest_reward(self, rng: RandomSource) -> Money:
        """Draw a reward uniformly within the configured band."""
        low, high = self._configuration.chest_reward_band
        amount = rng.uniform(float(low.amount), float(high.amount))
        reward = Money(amount=Decimal(str(amount)), currency=low.currency)
        # Rounding to cents may cross the band edges by a fraction of a cent.
        if reward.amount < low.amount:
            return low
        if reward.amount > high.amount:
            return high
        return reward

    def claim_treasure_chest(
        self,
        aggregate: PlayerAggregate,
        *,
        now: datetime,
        rng: RandomSource,
        chest_id: str | None = None,
    ) -> Result[ChestClaim]:
        """Redeem exactly one threshold of fame points for a chest.

        The chest record and its settlement intent are written into the same
        aggregate as the deduction, so the redemption survives a failed payout
        and the payout can be retried without touching fame points again.
        """
        state = aggregate.game_state
        if not self.can_claim_chest(state):
            return Failure(
                ChestNotEligible(current=state.fame_points, required=self.threshold)
            )
        identifier = chest_id or f"chest-{uuid4().hex}"
        chest = TreasureChest(
            chest_id=identifier,
            required_fame_points=self.threshold,
            reward=self.draw_chest_reward(rng),
            claimed_at=now,
            claim_id=f"chest-reward:{identifier}",
        )
        updated_state = state.model_copy(
            update={
                "fame_points": state.fame_points - self.threshold,
                "treasure_chests_opened": state.treasure_chests_opened + 1,
            }
        )
        updated = aggregate.with_game_state(updated_state).model_copy(
            update={"chests": (*aggregate.chests, chest)}
        )
        updated = self._reconciler.record_chest_reward(updated, chest, now=now)
        logger.info(
            "Player %s claimed chest %s worth %s %s (fame left: %d)",
            aggregate.player_id,
            chest.chest_id,
            chest.reward.amount,
            chest.reward.currency,
            updated_state.fame_points,
        )
        return Success(ChestClaim(aggregate=updated, chest=chest))


__all__ = ["ChestClaim", "ChestProgress", "FameAccrual", "FamePointLedger"]
