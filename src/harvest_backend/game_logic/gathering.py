"""Stamina-gated harvest actions producing inventory items."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from uuid import uuid4

from harvest_backend.game_logic.selector import WeightedTable
from harvest_backend.shared.enums import CropType, GatherActionType, ItemType
from harvest_backend.shared.errors import InsufficientStamina
from harvest_backend.shared.events import GatherAction
from harvest_backend.shared.results import Failure, Result, Success

if TYPE_CHECKING:
    from datetime import datetime

    from harvest_backend.game_logic.configuration import EconomyConfiguration
    from harvest_backend.game_logic.state import Session
    from harvest_backend.shared.rng import RandomSource


@dataclass(frozen=True, slots=True)
class GatherOutcome:
    """Updated session together with the action that produced it."""

    session: Session
    action: GatherAction

    @property
    def item(self) -> ItemType:
        return self.action.item


class ResourceGatheringEngine:
    """Apply farm, forest and mountain actions to a session.

    The engine is stateless: every call receives the session and returns a new
    one. Only mining consults the random source.
    """

    def __init__(self, configuration: EconomyConfiguration) -> None:
        self._configuration = configuration
        self._mining_table = WeightedTable.from_mapping(configuration.mining_weights)

    def water_crop(
        self, session: Session, crop: CropType, *, now: datetime
    ) -> Result[GatherOutcome]:
        """Water *crop* and harvest exactly one unit of it."""
        return self._apply(session, GatherActionType.WATER_CROP, crop.item, now)

    def chop_tree(self, session: Session, *, now: datetime) -> Result[GatherOutcome]:
        """Chop a tree for exactly one unit of wood."""
        return self._apply(session, GatherActionType.CHOP_TREE, ItemType.WOOD, now)

    def mine_stone(
        self, session: Session, *, now: datetime, rng: RandomSource
    ) -> Result[GatherOutcome]:
        """Mine the mountain; the yield is drawn from the mining weights."""
        cost = self._configuration.stamina_cost(GatherActionType.MINE_STONE)
        if not session.stamina.can_afford(cost):
            return self._insufficient(session, cost)
        return self._apply(
            session, GatherActionType.MINE_STONE, self._mining_table.draw(rng), now
        )

    def perform(
        self,
        session: Session,
        action_type: GatherActionType,
        *,
        now: datetime,
        rng: RandomSource,
        crop: CropType | None = None,
    ) -> Result[GatherOutcome]:
        """Dispatch *action_type* to the matching action."""
        if action_type is GatherActionType.WATER_CROP:
            if crop is None:
                msg = "A crop type is required to water crops."
                raise ValueError(msg)
            return self.water_crop(session, crop, now=now)
        if action_type is GatherActionType.CHOP_TREE:
            return self.chop_tree(session, now=now)
        return self.mine_stone(session, now=now, rng=rng)

    def _apply(
        self,
        session: Session,
        action_type: GatherActionType,
        item: ItemType,
        now: datetime,
    ) -> Result[GatherOutcome]:
        session.ensure_active()
        cost = self._configuration.stamina_cost(action_type)
        if not session.stamina.can_afford(cost):
            return self._insufficient(session, cost)
        action = GatherAction(
            action_id=uuid4().hex,
            action_type=action_type,
            item=item,
            stamina_cost=cost,
            performed_at=now,
        )
        updated = session.mutate(
            stamina=session.stamina.spend(cost),
            inventory=session.inventory.add_item(item),
            actions=(*session.actions, action),
        )
        return Success(GatherOutcome(session=updated, action=action))

    @staticmethod
    def _insufficient(session: Session, cost: int) -> Failure:
        session.ensure_active()
        return Failure(
            InsufficientStamina(required=cost, available=session.stamina.current)
        )


__all__ = ["GatherOutcome", "ResourceGatheringEngine"]
