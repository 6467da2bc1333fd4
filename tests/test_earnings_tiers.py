import logging
from datetime import date

import pytest

from core.errors import InvalidInput
from earnings.models import (
    DailyLimitState,
    EarningsConfig,
    IncentiveTier1,
    IncentiveTier2,
    IncentiveType,
    MonthlyBonusTier,
    MonthlyDeductionTier,
)
from earnings.tiers import compute_daily_incentive, compute_monthly_settlement, settle_month

DAY = date(2025, 3, 14)


@pytest.fixture
def percentage_config():
    return EarningsConfig(
        daily_target_default=1000.0,
        incentive_tier1=IncentiveTier1(min=1000.0, max=1500.0, type=IncentiveType.PERCENTAGE, percent=50.0),
        incentive_tier2=IncentiveTier2(min=1500.0, percent=70.0),
    )


def state(earned, target=1000.0):
    return DailyLimitState(driver_id="d1", day=DAY, target=target, earned_so_far=earned)


def test_incentive_bands_are_applied_in_order(percentage_config):
    # (1500-1000)*0.5 + (1800-1500)*0.7
    assert compute_daily_incentive(state(1800.0), percentage_config) == 460.0


@pytest.mark.parametrize("earned, expected", [(0.0, 0.0), (999.0, 0.0), (1000.0, 0.0), (1200.0, 100.0), (1500.0, 250.0)])
def test_incentive_up_to_tier1_max(percentage_config, earned, expected):
    assert compute_daily_incentive(state(earned), percentage_config) == expected


def test_default_config_pays_full_extra_then_twenty_percent():
    config = EarningsConfig()

    # 1250 target, full slice to 1550, 20% above
    assert compute_daily_incentive(state(1600.0, target=1250.0), config) == 310.0
    assert compute_daily_incentive(state(1400.0, target=1250.0), config) == 150.0


def test_tier1_never_pays_below_the_target(percentage_config):
    # Driver-specific target above tier1.min: band starts at the target.
    assert compute_daily_incentive(state(1400.0, target=1200.0), percentage_config) == 100.0


def test_misconfigured_tier1_is_disabled_and_tier2_still_applies(caplog):
    config = EarningsConfig(
        daily_target_default=1000.0,
        incentive_tier1=IncentiveTier1(min=1500.0, max=1000.0, type=IncentiveType.PERCENTAGE, percent=50.0),
        incentive_tier2=IncentiveTier2(min=1500.0, percent=70.0),
    )
    caplog.set_level(logging.WARNING)

    assert compute_daily_incentive(state(1800.0), config) == 210.0
    assert "Disabling incentive tier1" in caplog.text


def test_zero_percent_tier1_pays_nothing_but_still_caps_tier2(caplog):
    config = EarningsConfig(
        daily_target_default=1000.0,
        incentive_tier1=IncentiveTier1(min=1000.0, max=1500.0, type=IncentiveType.PERCENTAGE, percent=0.0),
        incentive_tier2=IncentiveTier2(min=1200.0, percent=70.0),
    )
    caplog.set_level(logging.WARNING)

    assert compute_daily_incentive(state(1400.0), config) == 0.0
    # Tier2 only pays above tier1 max: (1800-1500)*0.7
    assert compute_daily_incentive(state(1800.0), config) == 210.0
    assert "Disabling" not in caplog.text


def test_negative_earnings_are_rejected(percentage_config):
    with pytest.raises(InvalidInput):
        compute_daily_incentive(state(-1.0), percentage_config)


def test_single_best_bonus_tier_is_picked():
    config = EarningsConfig(
        monthly_bonus_tiers=(
            MonthlyBonusTier(500.0, 50.0),
            MonthlyBonusTier(1000.0, 150.0),
            MonthlyBonusTier(2000.0, 400.0),
        )
    )

    bonus, _ = compute_monthly_settlement(1200.0, config)

    assert bonus == 150.0


def test_bonus_tier_order_does_not_matter():
    config = EarningsConfig(
        monthly_bonus_tiers=(
            MonthlyBonusTier(2000.0, 400.0),
            MonthlyBonusTier(500.0, 50.0),
            MonthlyBonusTier(1000.0, 150.0),
        )
    )

    assert compute_monthly_settlement(2000.0, config)[0] == 400.0
    assert compute_monthly_settlement(499.0, config)[0] == 0.0


def test_duplicate_bonus_threshold_keeps_the_first_tier(caplog):
    config = EarningsConfig(monthly_bonus_tiers=(MonthlyBonusTier(1000.0, 150.0), MonthlyBonusTier(1000.0, 300.0)))
    caplog.set_level(logging.WARNING)

    assert compute_monthly_settlement(1500.0, config)[0] == 150.0
    assert "duplicate min_earnings" in caplog.text


@pytest.mark.parametrize(
    "earnings, cut",
    [(1000.0, 20.0), (22000.0, 20.0), (22001.0, 25.0), (26000.0, 25.0), (40000.0, 25.0)],
)
def test_deduction_tier_selection(earnings, cut):
    assert compute_monthly_settlement(earnings, EarningsConfig())[1] == cut


def test_no_deduction_tiers_means_no_cut():
    config = EarningsConfig(monthly_deduction_tiers=())

    assert compute_monthly_settlement(30000.0, config) == (5000.0, 0.0)


def test_settle_month_breakdown():
    settlement = settle_month("d1", 2025, 3, 26000.0, EarningsConfig(), penalty_amounts=[100.0, 50.0])

    assert settlement.bonus == 3000.0
    assert settlement.cut_percent == 25.0
    assert settlement.policy_cut == 6500.0
    assert settlement.total_penalties == 150.0
    assert settlement.penalties_count == 2
    assert settlement.net_earnings == 26000.0 + 3000.0 - 150.0 - 6500.0


def test_settle_month_rejects_bad_input():
    with pytest.raises(InvalidInput):
        settle_month("d1", 2025, 13, 1000.0, EarningsConfig())

    with pytest.raises(InvalidInput):
        settle_month("d1", 2025, 1, 1000.0, EarningsConfig(), penalty_amounts=[-5.0])


def test_custom_deduction_table():
    config = EarningsConfig(
        monthly_deduction_tiers=(MonthlyDeductionTier(10000.0, 10.0), MonthlyDeductionTier(5000.0, 5.0))
    )

    assert compute_monthly_settlement(4000.0, config)[1] == 5.0
    assert compute_monthly_settlement(8000.0, config)[1] == 10.0
    assert compute_monthly_settlement(12000.0, config)[1] == 10.0
