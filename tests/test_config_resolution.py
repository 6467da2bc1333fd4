import pytest

from core.errors import ConfigurationError
from earnings.config import DEFAULT_EARNINGS_CONFIG, EarningsConfigRegistry, resolve_earnings_config
from earnings.models import ConfigScope, EarningsConfig, IncentiveType


@pytest.fixture
def registry():
    return EarningsConfigRegistry(
        [
            EarningsConfig(scope=ConfigScope.GLOBAL, daily_target_default=1100.0),
            EarningsConfig(scope=ConfigScope.FRANCHISE, scope_id="f-1", daily_target_default=1200.0),
            EarningsConfig(scope=ConfigScope.DRIVER, scope_id="d-vip", daily_target_default=1500.0),
        ]
    )


def test_driver_overrides_franchise_overrides_global(registry):
    registry.assign_franchise("d-vip", "f-1")
    registry.assign_franchise("d-1", "f-1")

    assert registry.resolve("d-vip").daily_target_default == 1500.0
    assert registry.resolve("d-1").daily_target_default == 1200.0
    assert registry.resolve("d-2").daily_target_default == 1100.0


def test_explicit_franchise_wins_over_assignment(registry):
    registry.assign_franchise("d-1", "f-unknown")

    assert registry.resolve("d-1", "f-1").daily_target_default == 1200.0


def test_built_in_default_when_nothing_is_stored():
    assert EarningsConfigRegistry().resolve("anyone") is DEFAULT_EARNINGS_CONFIG
    assert resolve_earnings_config("d", None, driver_configs={}, franchise_configs={}) is DEFAULT_EARNINGS_CONFIG


def test_scoped_config_requires_scope_id():
    with pytest.raises(ConfigurationError):
        EarningsConfigRegistry().put(EarningsConfig(scope=ConfigScope.FRANCHISE))


def test_from_dict_parses_stored_row():
    config = EarningsConfig.from_dict(
        {
            "scope": "franchise",
            "scopeId": "f-9",
            "dailyTargetDefault": 1000,
            "incentiveTier1Min": 1000,
            "incentiveTier1Max": 1500,
            "incentiveTier1Type": "percentage",
            "incentiveTier1Percent": 50,
            "incentiveTier2Min": 1500,
            "incentiveTier2Percent": 70,
            "monthlyBonusTiers": [{"minEarnings": 500, "bonus": 50}, {"minEarnings": 1000, "bonus": 150}],
            "monthlyDeductionTiers": [{"maxEarnings": 26000, "cutPercent": 25}],
        }
    )

    assert config.scope == ConfigScope.FRANCHISE
    assert config.scope_id == "f-9"
    assert config.incentive_tier1.type == IncentiveType.PERCENTAGE
    assert config.incentive_tier2.percent == 70.0
    assert [t.bonus for t in config.monthly_bonus_tiers] == [50.0, 150.0]
    assert config.monthly_deduction_tiers[0].cut_percent == 25.0


def test_from_dict_missing_keys_fall_back_to_defaults():
    config = EarningsConfig.from_dict({"scope": "driver", "scopeId": "d-1"})

    assert config.daily_target_default == 1250.0
    assert config.incentive_tier1.max == 1550.0
    assert config.monthly_bonus_tiers == DEFAULT_EARNINGS_CONFIG.monthly_bonus_tiers


@pytest.mark.parametrize(
    "row",
    [
        {"incentiveTier1Type": "double"},
        {"dailyTargetDefault": "lots"},
        {"monthlyDeductionTiers": [{"maxEarnings": 1000}]},
        {"scope": "planet"},
    ],
)
def test_from_dict_rejects_bad_rows(row):
    with pytest.raises(ConfigurationError):
        EarningsConfig.from_dict(row)
