"""Economic configuration objects for the daily harvest cycle."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from functools import cache

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict

from harvest_backend.shared.enums import (
    CaseRarity,
    ContractDifficulty,
    GatherActionType,
    ItemType,
)
from harvest_backend.shared.value_objects import Money


class EconomyDefaults(BaseSettings):
    """Load default economic parameters from the environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="HARVEST_ECONOMY_",
        extra="ignore",
    )

    max_stamina: int = Field(default=50, ge=1)
    water_crop_cost: int = Field(default=2, ge=1)
    chop_tree_cost: int = Field(default=6, ge=1)
    mine_stone_cost: int = Field(default=8, ge=1)
    stone_weight: int = Field(default=70, ge=0)
    coal_weight: int = Field(default=20, ge=0)
    iron_weight: int = Field(default=10, ge=0)
    common_case_weight: int = Field(default=75, ge=0)
    advanced_case_weight: int = Field(default=22, ge=0)
    epic_case_weight: int = Field(default=3, ge=0)
    basic_contract_weight: int = Field(default=50, ge=0)
    advanced_contract_weight: int = Field(default=35, ge=0)
    expert_contract_weight: int = Field(default=15, ge=0)
    daily_case_cap: int = Field(default=3, ge=1)
    case_cap_window_hours: int = Field(default=24, ge=1)
    case_fee: Decimal = Field(default=Decimal("0.75"), ge=0)
    fame_points_for_chest: int = Field(default=100, ge=1)
    chest_reward_min: Decimal = Field(default=Decimal("0.40"), ge=0)
    chest_reward_max: Decimal = Field(default=Decimal("0.60"), ge=0)
    day_end_burn_min: float = Field(default=0.30, ge=0, le=1)
    day_end_burn_max: float = Field(default=0.50, ge=0, le=1)
    decoy_length: int = Field(default=50, ge=1)
    decoy_result_index: int = Field(default=25, ge=0)
    carry_free_spin_across_days: bool = True

    def to_config(self) -> EconomyConfiguration:
        """Convert defaults into an immutable configuration object."""
        return EconomyConfiguration(
            max_stamina=self.max_stamina,
            stamina_costs={
                GatherActionType.WATER_CROP: self.water_crop_cost,
                GatherActionType.CHOP_TREE: self.chop_tree_cost,
                GatherActionType.MINE_STONE: self.mine_stone_cost,
            },
            mining_weights={
                ItemType.STONE: self.stone_weight,
                ItemType.COAL: self.coal_weight,
                ItemType.IRON: self.iron_weight,
            },
            rarity_weights={
                CaseRarity.COMMON: self.common_case_weight,
                CaseRarity.ADVANCED: self.advanced_case_weight,
                CaseRarity.EPIC: self.epic_case_weight,
            },
            difficulty_weights={
                ContractDifficulty.BASIC: self.basic_contract_weight,
                ContractDifficulty.ADVANCED: self.advanced_contract_weight,
                ContractDifficulty.EXPERT: self.expert_contract_weight,
            },
            daily_case_cap=self.daily_case_cap,
            case_cap_window=timedelta(hours=self.case_cap_window_hours),
            case_fee=Money(amount=self.case_fee),
            fame_points_for_chest=self.fame_points_for_chest,
            chest_reward_band=(
                Money(amount=self.chest_reward_min),
                Money(amount=self.chest_reward_max),
            ),
            day_end_burn_band=(self.day_end_burn_min, self.day_end_burn_max),
            decoy_length=self.decoy_length,
            decoy_result_index=self.decoy_result_index,
            carry_free_spin_across_days=self.carry_free_spin_across_days,
        )


class EconomyConfiguration(BaseModel):
    """Immutable representation of the economic parameters for the game."""

    model_config = ConfigDict(frozen=True)

    max_stamina: int = Field(default=50, ge=1)
    stamina_costs: dict[GatherActionType, int] = Field(
        default_factory=lambda: {
            GatherActionType.WATER_CROP: 2,
            GatherActionType.CHOP_TREE: 6,
            GatherActionType.MINE_STONE: 8,
        }
    )
    mining_weights: dict[ItemType, int] = Field(
        default_factory=lambda: {ItemType.STONE: 70, ItemType.COAL: 20, ItemType.IRON: 10}
    )
    rarity_weights: dict[CaseRarity, int] = Field(
        default_factory=lambda: {
            CaseRarity.COMMON: 75,
            CaseRarity.ADVANCED: 22,
            CaseRarity.EPIC: 3,
        }
    )
    difficulty_weights: dict[ContractDifficulty, int] = Field(
        default_factory=lambda: {
            ContractDifficulty.BASIC: 50,
            ContractDifficulty.ADVANCED: 35,
            ContractDifficulty.EXPERT: 15,
        }
    )
    daily_case_cap: int = Field(default=3, ge=1)
    case_cap_window: timedelta = Field(default=timedelta(hours=24))
    case_fee: Money = Field(default_factory=lambda: Money.of("0.75"))
    fame_points_for_chest: int = Field(default=100, ge=1)
    chest_reward_band: tuple[Money, Money] = Field(
        default_factory=lambda: (Money.of("0.40"), Money.of("0.60"))
    )
    day_end_burn_band: tuple[float, float] = (0.30, 0.50)
    decoy_length: int = Field(default=50, ge=1)
    decoy_result_index: int = Field(default=25, ge=0)
    carry_free_spin_across_days: bool = True

    @model_validator(mode="after")
    def _validate_consistency(self) -> EconomyConfiguration:
        """Reject tables and bands that cannot produce a valid draw."""
        missing_costs = set(GatherActionType) - set(self.stamina_costs)
        if missing_costs:
            labels = ", ".join(sorted(action.value for action in missing_costs))
            msg = f"Missing stamina costs for: {labels}"
            raise ValueError(msg)
        if any(cost <= 0 for cost in self.stamina_costs.values()):
            msg = "Stamina costs must be positive."
            raise ValueError(msg)
        for name in ("mining_weights", "rarity_weights", "difficulty_weights"):
            weights = getattr(self, name)
            if any(weight < 0 for weight in weights.values()):
                msg = f"{name} must not contain negative weights."
                raise ValueError(msg)
            if sum(weights.values()) <= 0:
                msg = f"{name} must contain at least one positive weight."
                raise ValueError(msg)
        low, high = self.chest_reward_band
        if low.currency != high.currency or low.amount > high.amount:
            msg = "Chest reward band must be an ordered range in one currency."
            raise ValueError(msg)
        burn_low, burn_high = self.day_end_burn_band
        if not 0 <= burn_low <= burn_high <= 1:
            msg = "Day-end burn band must satisfy 0 <= low <= high <= 1."
            raise ValueError(msg)
        if self.decoy_result_index >= self.decoy_length:
            msg = "Decoy result index must fall inside the decoy sequence."
            raise ValueError(msg)
        return self

    @property
    def case_fee_required(self) -> bool:
        """Return ``True`` when paid cases need a confirmed fee."""
        return not self.case_fee.is_zero

    def stamina_cost(self, action: GatherActionType) -> int:
        """Return the stamina cost of *action*."""
        return self.stamina_costs[action]


class EconomyOverrides(BaseModel):
    """Optional deployment-specific overrides for economic settings."""

    model_config = ConfigDict(frozen=True)

    max_stamina: int | None = Field(default=None, ge=1)
    daily_case_cap: int | None = Field(default=None, ge=1)
    case_fee: Money | None = None
    fame_points_for_chest: int | None = Field(default=None, ge=1)
    rarity_weights: dict[CaseRarity, int] | None = None
    carry_free_spin_across_days: bool | None = None

    def apply(self, config: EconomyConfiguration) -> EconomyConfiguration:
        """Return a copy of *config* with overrides applied."""
        updates = self.model_dump(exclude_none=True)
        if not updates:
            return config
        merged = config.model_dump()
        merged.update({name: getattr(self, name) for name in updates})
        return EconomyConfiguration.model_validate(merged)


@cache
def get_default_economy_configuration() -> EconomyConfiguration:
    """Return the cached default economic configuration."""
    return EconomyDefaults().to_config()


def build_economy_configuration(
    overrides: EconomyOverrides | None = None,
) -> EconomyConfiguration:
    """Construct a configuration, applying optional overrides."""
    defaults = get_default_economy_configuration()
    if overrides is None:
        return defaults
    return overrides.apply(defaults)


__all__ = [
    "EconomyConfiguration",
    "EconomyDefaults",
    "EconomyOverrides",
    "build_economy_configuration",
    "get_default_economy_configuration",
]
