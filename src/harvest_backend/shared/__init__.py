"""Shared utilities, shared models and cross-cutting helpers for the backend."""

from harvest_backend.shared.clock import Clock, ManualClock, SystemClock
from harvest_backend.shared.enums import (
    CaseRarity,
    ContractDifficulty,
    ContractOrigin,
    CropType,
    GatherActionType,
    ItemType,
    LifecyclePhase,
    RewardTier,
    SessionStatus,
    SettlementKind,
    SettlementStatus,
    tier_for,
)
from harvest_backend.shared.errors import (
    ErrorCategory,
    GameError,
    InvariantViolation,
    Shortfall,
    StaleAggregateError,
)
from harvest_backend.shared.events import GatherAction
from harvest_backend.shared.logs import configure_logging
from harvest_backend.shared.results import Failure, Result, Success
from harvest_backend.shared.rng import RandomService, RandomSource, ReplayRandom
from harvest_backend.shared.value_objects import Money

__all__ = [
    "CaseRarity",
    "Clock",
    "ContractDifficulty",
    "ContractOrigin",
    "CropType",
    "ErrorCategory",
    "Failure",
    "GameError",
    "GatherAction",
    "GatherActionType",
    "InvariantViolation",
    "ItemType",
    "LifecyclePhase",
    "ManualClock",
    "Money",
    "RandomService",
    "RandomSource",
    "ReplayRandom",
    "Result",
    "RewardTier",
    "SessionStatus",
    "SettlementKind",
    "SettlementStatus",
    "Shortfall",
    "StaleAggregateError",
    "Success",
    "SystemClock",
    "configure_logging",
    "tier_for",
]
