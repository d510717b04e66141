"""Contract templates, tier pools and requirement validation."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence  # noqa: TC003
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict

from harvest_backend.game_logic.selector import WeightedTable
from harvest_backend.shared.enums import (
    CaseRarity,
    ContractDifficulty,
    ContractOrigin,
    GatherActionType,
    ItemType,
    RewardTier,
    tier_for,
)
from harvest_backend.shared.errors import MissingRequirement, Shortfall
from harvest_backend.shared.results import Failure, Result, Success
from harvest_backend.shared.value_objects import Money

if TYPE_CHECKING:
    from harvest_backend.game_logic.configuration import EconomyConfiguration
    from harvest_backend.game_logic.inventory import Inventory
    from harvest_backend.shared.rng import RandomSource


class ContractTemplate(BaseModel):
    """Blueprint from which contracts are issued."""

    model_config = ConfigDict(frozen=True)

    template_id: str = Field(..., min_length=1)
    origin: ContractOrigin
    label: ContractDifficulty | CaseRarity
    description: str
    requirements: dict[ItemType, int]
    reward: Money
    fame_points: int = Field(..., ge=0)
    spawn_weight: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _validate_template(self) -> ContractTemplate:
        """Ensure requirements are positive and the label matches the origin."""
        if not self.requirements or any(qty <= 0 for qty in self.requirements.values()):
            msg = f"Template {self.template_id} must require positive quantities."
            raise ValueError(msg)
        expected = (
            ContractDifficulty if self.origin is ContractOrigin.DAILY else CaseRarity
        )
        if not isinstance(self.label, expected):
            object.__setattr__(self, "label", expected(self.label))
        return self

    @property
    def tier(self) -> RewardTier:
        """Return the unified reward tier of the template."""
        return tier_for(self.label)

    def issue(self, contract_id: str | None = None) -> Contract:
        """Return a contract instance of this template with a unique identifier."""
        return Contract(
            contract_id=contract_id or f"{self.template_id}-{uuid4().hex[:12]}",
            template=self,
        )


class Contract(BaseModel):
    """Contract held by a session: an issued template."""

    model_config = ConfigDict(frozen=True)

    contract_id: str = Field(..., min_length=1)
    template: ContractTemplate

    @property
    def requirements(self) -> dict[ItemType, int]:
        return self.template.requirements

    @property
    def reward(self) -> Money:
        return self.template.reward

    @property
    def fame_points(self) -> int:
        return self.template.fame_points

    @property
    def tier(self) -> RewardTier:
        return self.template.tier

    @property
    def description(self) -> str:
        return self.template.description


class ContractValidation(BaseModel):
    """Outcome of checking an inventory against contract requirements."""

    model_config = ConfigDict(frozen=True)

    shortfalls: tuple[Shortfall, ...] = Field(default_factory=tuple)

    @property
    def satisfied(self) -> bool:
        """Return ``True`` when nothing is missing."""
        return not self.shortfalls


class StrategyPriority(StrEnum):
    """How much stamina a player should commit to a contract."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _template(
    template_id: str,
    origin: ContractOrigin,
    label: ContractDifficulty | CaseRarity,
    description: str,
    requirements: Mapping[ItemType, int],
    reward: str,
    fame_points: int,
    spawn_weight: int,
) -> ContractTemplate:
    return ContractTemplate(
        template_id=template_id,
        origin=origin,
        label=label,
        description=description,
        requirements=dict(requirements),
        reward=Money.of(reward),
        fame_points=fame_points,
        spawn_weight=spawn_weight,
    )


_D = ContractOrigin.DAILY
_C = ContractOrigin.CASE
_I = ItemType

DAILY_TEMPLATES: dict[ContractDifficulty, tuple[ContractTemplate, ...]] = {
    ContractDifficulty.BASIC: (
        _template("basic_1", _D, ContractDifficulty.BASIC, "Deliver 5 wood and 3 stone", {_I.WOOD: 5, _I.STONE: 3}, "0.45", 10, 30),
        _template("basic_2", _D, ContractDifficulty.BASIC, "Deliver 10 carrots", {_I.CARROT: 10}, "0.45", 10, 20),
        _template("basic_3", _D, ContractDifficulty.BASIC, "Deliver 3 wood and 5 carrots", {_I.WOOD: 3, _I.CARROT: 5}, "0.40", 10, 25),
        _template("basic_4", _D, ContractDifficulty.BASIC, "Deliver 7 potatoes and 2 wood", {_I.POTATO: 7, _I.WOOD: 2}, "0.50", 10, 25),
    ),
    ContractDifficulty.ADVANCED: (
        _template("advanced_1", _D, ContractDifficulty.ADVANCED, "Deliver 8 wood, 3 coal and 5 wheat", {_I.WOOD: 8, _I.COAL: 3, _I.WHEAT: 5}, "0.90", 20, 30),
        _template("advanced_2", _D, ContractDifficulty.ADVANCED, "Deliver 10 potatoes, 5 wood and 2 coal", {_I.POTATO: 10, _I.WOOD: 5, _I.COAL: 2}, "0.95", 20, 30),
        _template("advanced_3", _D, ContractDifficulty.ADVANCED, "Deliver 12 wood and 4 coal", {_I.WOOD: 12, _I.COAL: 4}, "0.85", 20, 40),
    ),
    ContractDifficulty.EXPERT: (
        _template("expert_1", _D, ContractDifficulty.EXPERT, "Deliver 2 iron, 10 wood and 5 coal", {_I.IRON: 2, _I.WOOD: 10, _I.COAL: 5}, "2.00", 50, 40),
        _template("expert_2", _D, ContractDifficulty.EXPERT, "Deliver 3 iron and 15 wood", {_I.IRON: 3, _I.WOOD: 15}, "2.20", 50, 30),
        _template("expert_3", _D, ContractDifficulty.EXPERT, "Deliver 20 wood, 8 coal and 1 iron", {_I.WOOD: 20, _I.COAL: 8, _I.IRON: 1}, "1.80", 50, 30),
    ),
}

CASE_TEMPLATES: dict[CaseRarity, tuple[ContractTemplate, ...]] = {
    CaseRarity.COMMON: (
        _template("common_1", _C, CaseRarity.COMMON, "Deliver 5 carrots", {_I.CARROT: 5}, "0.30", 10, 20),
        _template("common_2", _C, CaseRarity.COMMON, "Deliver 6 potatoes", {_I.POTATO: 6}, "0.35", 10, 20),
        _template("common_3", _C, CaseRarity.COMMON, "Deliver 8 wheat", {_I.WHEAT: 8}, "0.40", 10, 20),
        _template("common_4", _C, CaseRarity.COMMON, "Deliver 5 wood", {_I.WOOD: 5}, "0.45", 10, 20),
        _template("common_5", _C, CaseRarity.COMMON, "Deliver 3 stone", {_I.STONE: 3}, "0.50", 10, 20),
    ),
    CaseRarity.ADVANCED: (
        _template("case_advanced_1", _C, CaseRarity.ADVANCED, "Deliver 10 wood and 4 stone", {_I.WOOD: 10, _I.STONE: 4}, "0.65", 25, 33),
        _template("case_advanced_2", _C, CaseRarity.ADVANCED, "Deliver 8 wood and 2 coal", {_I.WOOD: 8, _I.COAL: 2}, "0.70", 25, 33),
        _template("case_advanced_3", _C, CaseRarity.ADVANCED, "Deliver 15 wood and 1 coal", {_I.WOOD: 15, _I.COAL: 1}, "0.60", 25, 34),
    ),
    CaseRarity.EPIC: (
        _template("epic_1", _C, CaseRarity.EPIC, "Deliver only 3 wood", {_I.WOOD: 3}, "1.50", 80, 30),
        _template("epic_2", _C, CaseRarity.EPIC, "Deliver 5 carrots and 2 stone", {_I.CARROT: 5, _I.STONE: 2}, "2.00", 80, 30),
        _template("epic_3", _C, CaseRarity.EPIC, "Deliver 8 wheat", {_I.WHEAT: 8}, "2.50", 100, 40),
    ),
}


class ContractCatalog:
    """Holds the template pools and draws contracts from them."""

    def __init__(
        self,
        configuration: EconomyConfiguration,
        *,
        daily_templates: Mapping[ContractDifficulty, Sequence[ContractTemplate]] | None = None,
        case_templates: Mapping[CaseRarity, Sequence[ContractTemplate]] | None = None,
    ) -> None:
        self._configuration = configuration
        daily = daily_templates if daily_templates is not None else DAILY_TEMPLATES
        cases = case_templates if case_templates is not None else CASE_TEMPLATES
        self._daily = {key: tuple(pool) for key, pool in daily.items()}
        self._cases = {key: tuple(pool) for key, pool in cases.items()}
        self._daily_tables = {
            key: WeightedTable((t, t.spawn_weight) for t in pool)
            for key, pool in self._daily.items()
        }
        self._case_tables = {
            key: WeightedTable((t, t.spawn_weight) for t in pool)
            for key, pool in self._cases.items()
        }
        self._difficulty_table = WeightedTable.from_mapping(
            {
                difficulty: weight
                for difficulty, weight in configuration.difficulty_weights.items()
                if difficulty in self._daily_tables
            }
        )
        missing = [r for r, w in configuration.rarity_weights.items() if w > 0 and r not in self._cases]
        if missing:
            labels = ", ".join(rarity.value for rarity in missing)
            msg = f"No case templates registered for rarities: {labels}"
            raise ValueError(msg)

    def daily_pool(self, difficulty: ContractDifficulty) -> tuple[ContractTemplate, ...]:
        """Return the templates for *difficulty*."""
        return self._daily.get(difficulty, ())

    def case_pool(self, rarity: CaseRarity) -> tuple[ContractTemplate, ...]:
        """Return the templates for *rarity*."""
        return self._cases.get(rarity, ())

    def templates_for_tier(self, tier: RewardTier) -> tuple[ContractTemplate, ...]:
        """Return every template, from either path, mapped onto *tier*."""
        pools = (*self._daily.values(), *self._cases.values())
        return tuple(t for pool in pools for t in pool if t.tier is tier)

    def draw_case_template(self, rarity: CaseRarity, rng: RandomSource) -> ContractTemplate:
        """Draw a template within *rarity*'s pool, weighted by spawn weight."""
        return self._case_tables[rarity].draw(rng)

    def draw_daily_contract(self, rng: RandomSource) -> Contract:
        """Roll a difficulty, then a template within it, and issue a contract."""
        difficulty = self._difficulty_table.draw(rng)
        return self._daily_tables[difficulty].draw(rng).issue()

    @staticmethod
    def validate_contract(
        inventory: Inventory, requirements: Mapping[ItemType, int]
    ) -> ContractValidation:
        """Check *inventory* against *requirements*, reporting every shortfall."""
        return ContractValidation(shortfalls=inventory.shortfalls(requirements))

    def check_submission(self, inventory: Inventory, contract: Contract) -> Result[Contract]:
        """Return the contract when it can be fulfilled, else ``MissingRequirement``."""
        validation = self.validate_contract(inventory, contract.requirements)
        if validation.satisfied:
            return Success(contract)
        return Failure(
            MissingRequirement(
                contract_id=contract.contract_id, shortfalls=validation.shortfalls
            )
        )

    def minimum_stamina_cost(self, requirements: Mapping[ItemType, int]) -> int:
        """Estimate the stamina needed to gather *requirements*.

        Mined items are scaled by their drop probability, so the figure is the
        expected cost rather than a guarantee.
        """
        config = self._configuration
        mining_total = sum(config.mining_weights.values())
        total = 0
        for item, quantity in requirements.items():
            if item is ItemType.WOOD:
                total += quantity * config.stamina_cost(GatherActionType.CHOP_TREE)
            elif item in config.mining_weights:
                weight = config.mining_weights[item]
                if weight <= 0:
                    msg = f"{item} cannot be mined with the current drop weights."
                    raise ValueError(msg)
                attempts = math.ceil(quantity / (weight / mining_total))
                total += attempts * config.stamina_cost(GatherActionType.MINE_STONE)
            else:
                total += quantity * config.stamina_cost(GatherActionType.WATER_CROP)
        return total

    def net_profit(self, contract: Contract) -> Money:
        """Return the reward minus the case fee."""
        return contract.reward.subtract(self._configuration.case_fee)

    def strategy_for(self, contract: Contract) -> StrategyPriority:
        """Return how aggressively a player should pursue *contract*."""
        if contract.tier is RewardTier.PREMIUM:
            return StrategyPriority.HIGH
        if contract.tier is RewardTier.ELEVATED and self.net_profit(contract).amount > 0:
            return StrategyPriority.MEDIUM
        return StrategyPriority.LOW


__all__ = [
    "CASE_TEMPLATES",
    "DAILY_TEMPLATES",
    "Contract",
    "ContractCatalog",
    "ContractTemplate",
    "ContractValidation",
    "StrategyPriority",
]
