"""
Purpose: Tier arithmetic for daily incentives and monthly settlement.
What it does:

Daily incentive, bands applied in order and never overlapping:
  [0, target]                         -> nothing
  [max(target, t1.min), t1.max]       -> full slice (full_extra) or t1.percent of the slice
  above max(target, t1.max, t2.min)   -> t2.percent of the excess only

Monthly settlement:
  bonus      = the single tier with the highest min_earnings <= earnings
  cut        = the tier with the smallest max_earnings >= earnings,
               else the highest tier
  net        = gross + bonus - penalties - policy cut

A misconfigured tier is disabled and logged. The remaining tiers still apply.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from core.errors import ConfigurationError, InvalidInput

from .models import (
    DailyLimitState,
    EarningsConfig,
    IncentiveTier1,
    IncentiveTier2,
    IncentiveType,
    MonthlyBonusTier,
    MonthlyDeductionTier,
    MonthlySettlement,
)

logger = logging.getLogger(__name__)


# -------------------------
# Tier validation
# -------------------------

def validate_tier1(tier: IncentiveTier1) -> None:
    if tier.min < 0 or tier.max < 0:
        raise ConfigurationError("incentive tier1 bounds must be >= 0")
    if tier.max < tier.min:
        raise ConfigurationError(f"incentive tier1 max ({tier.max}) < min ({tier.min})")
    if tier.type == IncentiveType.PERCENTAGE and not 0 <= tier.percent <= 100:
        raise ConfigurationError(f"incentive tier1 percent must be in [0, 100], got {tier.percent}")


def validate_tier2(tier: IncentiveTier2) -> None:
    if tier.min < 0:
        raise ConfigurationError("incentive tier2 min must be >= 0")
    if not 0 <= tier.percent <= 100:
        raise ConfigurationError(f"incentive tier2 percent must be in [0, 100], got {tier.percent}")


def _enabled(tier, validator, label: str):
    try:
        validator(tier)
    except ConfigurationError as e:
        logger.warning("Disabling %s: %s", label, e)
        return None
    return tier


def usable_bonus_tiers(tiers: Iterable[MonthlyBonusTier]) -> List[MonthlyBonusTier]:
    """
    Drop invalid tiers and later duplicates of the same threshold.
    """
    usable: List[MonthlyBonusTier] = []
    seen = set()
    for tier in tiers:
        if tier.min_earnings < 0 or tier.bonus < 0:
            logger.warning("Disabling monthly bonus tier %s: values must be >= 0", tier)
            continue
        if tier.min_earnings in seen:
            logger.warning("Disabling monthly bonus tier %s: duplicate min_earnings", tier)
            continue
        seen.add(tier.min_earnings)
        usable.append(tier)
    return usable


def usable_deduction_tiers(tiers: Iterable[MonthlyDeductionTier]) -> List[MonthlyDeductionTier]:
    usable: List[MonthlyDeductionTier] = []
    seen = set()
    for tier in tiers:
        if tier.max_earnings < 0 or not 0 <= tier.cut_percent <= 100:
            logger.warning("Disabling monthly deduction tier %s: invalid bounds", tier)
            continue
        if tier.max_earnings in seen:
            logger.warning("Disabling monthly deduction tier %s: duplicate max_earnings", tier)
            continue
        seen.add(tier.max_earnings)
        usable.append(tier)
    return usable


# -------------------------
# Daily incentive
# -------------------------

def _slice(amount: float, lower: float, upper: Optional[float]) -> float:
    top = amount if upper is None else min(amount, upper)
    return max(0.0, top - lower)


def compute_daily_incentive(state: DailyLimitState, config: EarningsConfig) -> float:
    """
    Incentive earned for one driver-day.

    Example: target=1000, tier1=[1000,1500] @ 50%, tier2 from 1500 @ 70%,
    earned=1800 -> (1500-1000)*0.5 + (1800-1500)*0.7 = 250 + 210 = 460.
    """
    if state.earned_so_far < 0:
        raise InvalidInput(f"Driver {state.driver_id}: earned_so_far must be >= 0")
    if state.target < 0:
        raise InvalidInput(f"Driver {state.driver_id}: target must be >= 0")

    earned = state.earned_so_far
    tier1 = _enabled(config.incentive_tier1, validate_tier1, "incentive tier1")
    tier2 = _enabled(config.incentive_tier2, validate_tier2, "incentive tier2")

    incentive = 0.0
    tier2_floor = state.target

    if tier1 is not None:
        floor = max(state.target, tier1.min)
        band = _slice(earned, floor, tier1.max)
        if tier1.type == IncentiveType.FULL_EXTRA:
            incentive += band
        else:
            incentive += band * tier1.percent / 100
        tier2_floor = max(tier2_floor, tier1.max)

    if tier2 is not None:
        floor = max(tier2_floor, tier2.min)
        incentive += _slice(earned, floor, None) * tier2.percent / 100

    return round(incentive, 2)


# -------------------------
# Monthly settlement
# -------------------------

def select_bonus_tier(monthly_earnings: float, tiers: Sequence[MonthlyBonusTier]) -> Optional[MonthlyBonusTier]:
    qualifying = [t for t in usable_bonus_tiers(tiers) if t.min_earnings <= monthly_earnings]
    if not qualifying:
        return None
    return max(qualifying, key=lambda t: t.min_earnings)


def select_deduction_tier(
    monthly_earnings: float, tiers: Sequence[MonthlyDeductionTier]
) -> Optional[MonthlyDeductionTier]:
    usable = usable_deduction_tiers(tiers)
    if not usable:
        return None
    qualifying = [t for t in usable if t.max_earnings >= monthly_earnings]
    if qualifying:
        return min(qualifying, key=lambda t: t.max_earnings)
    return max(usable, key=lambda t: t.max_earnings)


def compute_monthly_settlement(monthly_earnings: float, config: EarningsConfig) -> Tuple[float, float]:
    """
    Returns (bonus, deduction cut percent) for a month's earnings.

    Tiers [{500: 50}, {1000: 150}, {2000: 400}] with 1200 earned -> bonus 150.
    """
    if monthly_earnings < 0:
        raise InvalidInput("monthly_earnings must be >= 0")

    bonus_tier = select_bonus_tier(monthly_earnings, config.monthly_bonus_tiers)
    deduction_tier = select_deduction_tier(monthly_earnings, config.monthly_deduction_tiers)

    bonus = bonus_tier.bonus if bonus_tier else 0.0
    cut_percent = deduction_tier.cut_percent if deduction_tier else 0.0
    return bonus, cut_percent


def settle_month(
    driver_id: str,
    year: int,
    month: int,
    monthly_earnings: float,
    config: EarningsConfig,
    penalty_amounts: Iterable[float] = (),
) -> MonthlySettlement:
    """
    Complete settlement for a driver: earnings + bonus - penalties - policy cut.
    """
    if not 1 <= month <= 12:
        raise InvalidInput(f"Invalid month {month}. Must be between 1 and 12")

    penalties = [float(a) for a in penalty_amounts]
    if any(a < 0 for a in penalties):
        raise InvalidInput("penalty amounts must be >= 0")

    if monthly_earnings < 0:
        raise InvalidInput("monthly_earnings must be >= 0")

    bonus_tier = select_bonus_tier(monthly_earnings, config.monthly_bonus_tiers)
    deduction_tier = select_deduction_tier(monthly_earnings, config.monthly_deduction_tiers)
    bonus = bonus_tier.bonus if bonus_tier else 0.0
    cut_percent = deduction_tier.cut_percent if deduction_tier else 0.0

    policy_cut = round(monthly_earnings * cut_percent / 100)
    total_penalties = round(sum(penalties), 2)
    net = round(monthly_earnings + bonus - total_penalties - policy_cut, 2)

    return MonthlySettlement(
        driver_id=driver_id,
        year=year,
        month=month,
        gross_earnings=monthly_earnings,
        bonus=bonus,
        bonus_tier=bonus_tier,
        cut_percent=cut_percent,
        deduction_tier=deduction_tier,
        policy_cut=float(policy_cut),
        total_penalties=total_penalties,
        penalties_count=len(penalties),
        net_earnings=net,
    )
