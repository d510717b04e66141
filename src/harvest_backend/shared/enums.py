"""Shared enumerations used across the backend."""

from enum import StrEnum


class ItemType(StrEnum):
    """Every item a player can hold in the inventory."""

    CARROT = "carrot"
    POTATO = "potato"
    WHEAT = "wheat"
    WOOD = "wood"
    STONE = "stone"
    COAL = "coal"
    IRON = "iron"


class CropType(StrEnum):
    """Crops that can be watered on the farm."""

    CARROT = "carrot"
    POTATO = "potato"
    WHEAT = "wheat"

    @property
    def item(self) -> ItemType:
        """Return the inventory item produced by this crop."""
        return ItemType(self.value)


class GatherActionType(StrEnum):
    """Stamina-gated actions available during a session."""

    WATER_CROP = "water_crop"
    CHOP_TREE = "chop_tree"
    MINE_STONE = "mine_stone"


class ContractDifficulty(StrEnum):
    """Difficulty tags used by the plain daily-contract path."""

    BASIC = "basic"
    ADVANCED = "advanced"
    EXPERT = "expert"


class CaseRarity(StrEnum):
    """Rarity tags rolled when a case is opened."""

    COMMON = "common"
    ADVANCED = "advanced"
    EPIC = "epic"


class RewardTier(StrEnum):
    """Unified reward tier shared by difficulties and rarities."""

    STANDARD = "standard"
    ELEVATED = "elevated"
    PREMIUM = "premium"


class ContractOrigin(StrEnum):
    """Where a contract was issued from."""

    DAILY = "daily"
    CASE = "case"


class SessionStatus(StrEnum):
    """Status of a single player-day."""

    ACTIVE = "active"
    ENDED = "ended"


class LifecyclePhase(StrEnum):
    """Coarse state of a player in the day cycle."""

    IDLE = "idle"
    ACTIVE = "active"
    ENDED = "ended"


class SettlementKind(StrEnum):
    """Categories of external ledger operations tracked in the outbox."""

    CONTRACT_REWARD = "contract_reward"
    CHEST_REWARD = "chest_reward"
    ENTRY_FEE = "entry_fee"

    @property
    def is_payout(self) -> bool:
        """Return ``True`` when the ledger pays the player."""
        return self is not SettlementKind.ENTRY_FEE


class SettlementStatus(StrEnum):
    """Lifecycle of a settlement intent."""

    PENDING = "pending"
    CONFIRMED = "confirmed"


DIFFICULTY_TIERS: dict[ContractDifficulty, RewardTier] = {
    ContractDifficulty.BASIC: RewardTier.STANDARD,
    ContractDifficulty.ADVANCED: RewardTier.ELEVATED,
    ContractDifficulty.EXPERT: RewardTier.PREMIUM,
}

RARITY_TIERS: dict[CaseRarity, RewardTier] = {
    CaseRarity.COMMON: RewardTier.STANDARD,
    CaseRarity.ADVANCED: RewardTier.ELEVATED,
    CaseRarity.EPIC: RewardTier.PREMIUM,
}


def tier_for(label: ContractDifficulty | CaseRarity) -> RewardTier:
    """Map a difficulty or rarity label onto the unified reward tier."""
    if isinstance(label, ContractDifficulty):
        return DIFFICULTY_TIERS[label]
    return RARITY_TIERS[label]


__all__ = [
    "DIFFICULTY_TIERS",
    "RARITY_TIERS",
    "CaseRarity",
    "ContractDifficulty",
    "ContractOrigin",
    "CropType",
    "GatherActionType",
    "ItemType",
    "LifecyclePhase",
    "RewardTier",
    "SessionStatus",
    "SettlementKind",
    "SettlementStatus",
    "tier_for",
]
