"""Core rules and mechanics that drive the harvest economy."""

from harvest_backend.game_logic.cases import (
    CaseEligibility,
    CaseEngine,
    CaseOpening,
    DecoyEntry,
    RarityInfo,
)
from harvest_backend.game_logic.catalog import (
    CASE_TEMPLATES,
    DAILY_TEMPLATES,
    Contract,
    ContractCatalog,
    ContractTemplate,
    ContractValidation,
    StrategyPriority,
)
from harvest_backend.game_logic.configuration import (
    EconomyConfiguration,
    EconomyDefaults,
    EconomyOverrides,
    build_economy_configuration,
    get_default_economy_configuration,
)
from harvest_backend.game_logic.fame import (
    ChestClaim,
    ChestProgress,
    FameAccrual,
    FamePointLedger,
)
from harvest_backend.game_logic.gathering import GatherOutcome, ResourceGatheringEngine
from harvest_backend.game_logic.inventory import Inventory
from harvest_backend.game_logic.ledger import (
    InMemoryLedger,
    Ledger,
    LedgerError,
    LedgerRejected,
    LedgerTimeout,
    SettlementReceipt,
)
from harvest_backend.game_logic.lifecycle import (
    ContractSubmission,
    DayEnd,
    SessionLifecycle,
    Transition,
)
from harvest_backend.game_logic.orchestration import HarvestGameService
from harvest_backend.game_logic.persistence import (
    InMemoryPlayerStore,
    PlayerStore,
    PlayerTransaction,
)
from harvest_backend.game_logic.reconciler import RewardReconciler, contract_claim_id
from harvest_backend.game_logic.selector import WeightedTable, weighted_choice
from harvest_backend.game_logic.settlement import SettlementDispatcher, SettlementReport
from harvest_backend.game_logic.state import (
    CaseCounters,
    ContractCase,
    GameState,
    PlayerAggregate,
    Session,
    SettlementIntent,
    Stamina,
    TreasureChest,
)

__all__ = [
    "CASE_TEMPLATES",
    "DAILY_TEMPLATES",
    "CaseCounters",
    "CaseEligibility",
    "CaseEngine",
    "CaseOpening",
    "ChestClaim",
    "ChestProgress",
    "Contract",
    "ContractCase",
    "ContractCatalog",
    "ContractSubmission",
    "ContractTemplate",
    "ContractValidation",
    "DayEnd",
    "DecoyEntry",
    "EconomyConfiguration",
    "EconomyDefaults",
    "EconomyOverrides",
    "FameAccrual",
    "FamePointLedger",
    "GameState",
    "GatherOutcome",
    "HarvestGameService",
    "InMemoryLedger",
    "InMemoryPlayerStore",
    "Inventory",
    "Ledger",
    "LedgerError",
    "LedgerRejected",
    "LedgerTimeout",
    "PlayerAggregate",
    "PlayerStore",
    "PlayerTransaction",
    "RarityInfo",
    "ResourceGatheringEngine",
    "RewardReconciler",
    "Session",
    "SessionLifecycle",
    "SettlementDispatcher",
    "SettlementIntent",
    "SettlementReceipt",
    "SettlementReport",
    "Stamina",
    "StrategyPriority",
    "Transition",
    "TreasureChest",
    "WeightedTable",
    "build_economy_configuration",
    "contract_claim_id",
    "get_default_economy_configuration",
    "weighted_choice",
]
