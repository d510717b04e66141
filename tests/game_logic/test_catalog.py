"""Tests for contract templates, tiers and validation."""

from decimal import Decimal

import pytest
from factories import FixedRandom, make_contract

from harvest_backend.game_logic.catalog import (
    CASE_TEMPLATES,
    DAILY_TEMPLATES,
    ContractCatalog,
    ContractTemplate,
    StrategyPriority,
)
from harvest_backend.game_logic.configuration import EconomyConfiguration
from harvest_backend.game_logic.inventory import Inventory
from harvest_backend.shared import (
    CaseRarity,
    ContractDifficulty,
    ContractOrigin,
    ItemType,
    Money,
    RewardTier,
    tier_for,
)
from harvest_backend.shared.errors import MissingRequirement


def make_catalog(**overrides: object) -> ContractCatalog:
    return ContractCatalog(EconomyConfiguration(**overrides))


@pytest.mark.parametrize(
    ("label", "tier"),
    [
        (ContractDifficulty.BASIC, RewardTier.STANDARD),
        (CaseRarity.COMMON, RewardTier.STANDARD),
        (ContractDifficulty.ADVANCED, RewardTier.ELEVATED),
        (CaseRarity.ADVANCED, RewardTier.ELEVATED),
        (ContractDifficulty.EXPERT, RewardTier.PREMIUM),
        (CaseRarity.EPIC, RewardTier.PREMIUM),
    ],
)
def test_unified_tier_mapping(label: ContractDifficulty | CaseRarity, tier: RewardTier) -> None:
    assert tier_for(label) is tier


def test_every_template_matches_its_pool() -> None:
    for difficulty, pool in DAILY_TEMPLATES.items():
        assert all(t.label is difficulty and t.origin is ContractOrigin.DAILY for t in pool)
    for rarity, pool in CASE_TEMPLATES.items():
        assert all(t.label is rarity and t.origin is ContractOrigin.CASE for t in pool)


def test_template_label_follows_origin_after_json_round_trip() -> None:
    template = CASE_TEMPLATES[CaseRarity.ADVANCED][0]

    restored = ContractTemplate.model_validate_json(template.model_dump_json())

    assert restored.label is CaseRarity.ADVANCED
    assert restored.tier is RewardTier.ELEVATED


def test_template_requires_positive_quantities() -> None:
    with pytest.raises(ValueError, match="positive"):
        ContractTemplate(
            template_id="broken",
            origin=ContractOrigin.CASE,
            label=CaseRarity.COMMON,
            description="nothing",
            requirements={ItemType.WOOD: 0},
            reward=Money.of("0.10"),
            fame_points=1,
            spawn_weight=1,
        )


def test_issue_assigns_unique_contract_ids() -> None:
    template = CASE_TEMPLATES[CaseRarity.COMMON][0]

    assert template.issue().contract_id != template.issue().contract_id
    assert template.issue("fixed").contract_id == "fixed"


def test_validate_contract_lists_every_shortfall() -> None:
    requirements = {ItemType.WOOD: 10, ItemType.STONE: 4, ItemType.CARROT: 1}
    inventory = Inventory.of({"wood": 3, "carrot": 1})

    validation = ContractCatalog.validate_contract(inventory, requirements)

    assert not validation.satisfied
    missing = {s.item: (s.have, s.need) for s in validation.shortfalls}
    assert missing == {ItemType.WOOD: (3, 10), ItemType.STONE: (0, 4)}


def test_check_submission_wraps_shortfalls() -> None:
    catalog = make_catalog()
    contract = make_contract("common_4")

    failure = catalog.check_submission(Inventory.of({"wood": 4}), contract)
    success = catalog.check_submission(Inventory.of({"wood": 5}), contract)

    assert isinstance(failure.error, MissingRequirement)
    assert failure.error.contract_id == contract.contract_id
    assert success.unwrap() == contract


def test_draw_case_template_uses_spawn_weights() -> None:
    catalog = make_catalog()

    # epic weights 30/30/40 -> 0.59 falls in the second slot
    template = catalog.draw_case_template(CaseRarity.EPIC, FixedRandom(0.59))

    assert template.template_id == "epic_2"


def test_draw_daily_contract_rolls_difficulty_then_template() -> None:
    catalog = make_catalog()

    contract = catalog.draw_daily_contract(FixedRandom(0.99, 0.0))

    assert contract.template.label is ContractDifficulty.EXPERT
    assert contract.template.template_id == "expert_1"


def test_templates_for_tier_spans_both_paths() -> None:
    premium = {t.template_id for t in make_catalog().templates_for_tier(RewardTier.PREMIUM)}

    assert {"expert_1", "epic_3"} <= premium
    assert "common_1" not in premium


def test_minimum_stamina_cost_estimates_mining_by_drop_rate() -> None:
    catalog = make_catalog()

    assert catalog.minimum_stamina_cost({ItemType.WOOD: 5}) == 30
    assert catalog.minimum_stamina_cost({ItemType.CARROT: 5}) == 10
    # one iron at a 10% drop rate needs ten mining attempts
    assert catalog.minimum_stamina_cost({ItemType.IRON: 1}) == 80


def test_net_profit_and_strategy() -> None:
    catalog = make_catalog()
    epic = make_contract("epic_1")
    common = make_contract("common_1")
    advanced = make_contract("case_advanced_1")

    assert catalog.net_profit(epic).amount == Decimal("0.75")
    assert catalog.strategy_for(epic) is StrategyPriority.HIGH
    assert catalog.strategy_for(common) is StrategyPriority.LOW
    assert catalog.strategy_for(advanced) is StrategyPriority.LOW


def test_catalog_requires_templates_for_weighted_rarities() -> None:
    with pytest.raises(ValueError, match="epic"):
        ContractCatalog(
            EconomyConfiguration(),
            case_templates={
                CaseRarity.COMMON: CASE_TEMPLATES[CaseRarity.COMMON],
                CaseRarity.ADVANCED: CASE_TEMPLATES[CaseRarity.ADVANCED],
            },
        )
