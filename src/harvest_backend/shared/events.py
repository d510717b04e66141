"""Immutable action records appended to a session's action log."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict

from harvest_backend.shared.enums import GatherActionType, ItemType


class GatherAction(BaseModel):
    """Represents a single stamina-spending action performed during a session."""

    model_config = ConfigDict(frozen=True)

    action_id: str = Field(..., min_length=1)
    action_type: GatherActionType
    item: ItemType
    quantity: int = Field(default=1, ge=1)
    stamina_cost: int = Field(..., gt=0)
    performed_at: datetime

    @model_validator(mode="after")
    def _validate_yield(self) -> GatherAction:
        """Ensure the recorded item can be produced by the action."""
        allowed = _ACTION_YIELDS[self.action_type]
        if self.item not in allowed:
            msg = f"Action {self.action_type} cannot yield {self.item}."
            raise ValueError(msg)
        return self


_ACTION_YIELDS: dict[GatherActionType, frozenset[ItemType]] = {
    GatherActionType.WATER_CROP: frozenset(
        {ItemType.CARROT, ItemType.POTATO, ItemType.WHEAT}
    ),
    GatherActionType.CHOP_TREE: frozenset({ItemType.WOOD}),
    GatherActionType.MINE_STONE: frozenset(
        {ItemType.STONE, ItemType.COAL, ItemType.IRON}
    ),
}


__all__ = ["GatherAction"]
