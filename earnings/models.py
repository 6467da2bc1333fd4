"""
Purpose: Domain models for driver earnings.
What it does:
- Defines EarningsConfig and its tier structures:
  - IncentiveTier1 (min, max, type FULL_EXTRA | PERCENTAGE, percent)
  - IncentiveTier2 (min, percent)
  - MonthlyBonusTier (min_earnings, bonus)
  - MonthlyDeductionTier (max_earnings, cut_percent)
- Defines DailyLimitState (one per driver per calendar day)
- Defines settlement outputs (MonthlySettlement, DailyStats)

Rule: No tier arithmetic here. Models only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

from core.errors import ConfigurationError


class ConfigScope(str, Enum):
    GLOBAL = "global"
    FRANCHISE = "franchise"
    DRIVER = "driver"


class IncentiveType(str, Enum):
    # The whole slice above target is paid out.
    FULL_EXTRA = "full_extra"
    # Only `percent` of the slice above target is paid out.
    PERCENTAGE = "percentage"


@dataclass(frozen=True)
class IncentiveTier1:
    min: float
    max: float
    type: IncentiveType = IncentiveType.FULL_EXTRA
    percent: float = 100.0


@dataclass(frozen=True)
class IncentiveTier2:
    min: float
    percent: float


@dataclass(frozen=True)
class MonthlyBonusTier:
    min_earnings: float
    bonus: float


@dataclass(frozen=True)
class MonthlyDeductionTier:
    max_earnings: float
    cut_percent: float


@dataclass(frozen=True)
class EarningsConfig:
    """
    One effective earnings configuration. `scope_id` is the franchise id or
    driver id the config belongs to (None for the global default).
    """
    scope: ConfigScope = ConfigScope.GLOBAL
    scope_id: Optional[str] = None
    daily_target_default: float = 1250.0
    incentive_tier1: IncentiveTier1 = field(
        default_factory=lambda: IncentiveTier1(min=1250.0, max=1550.0, type=IncentiveType.FULL_EXTRA)
    )
    incentive_tier2: IncentiveTier2 = field(default_factory=lambda: IncentiveTier2(min=1550.0, percent=20.0))
    monthly_bonus_tiers: Tuple[MonthlyBonusTier, ...] = (
        MonthlyBonusTier(min_earnings=25000.0, bonus=3000.0),
        MonthlyBonusTier(min_earnings=28000.0, bonus=5000.0),
    )
    monthly_deduction_tiers: Tuple[MonthlyDeductionTier, ...] = (
        MonthlyDeductionTier(max_earnings=22000.0, cut_percent=20.0),
        MonthlyDeductionTier(max_earnings=26000.0, cut_percent=25.0),
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EarningsConfig:
        """
        Build a config from a stored row, e.g.

        {"scope": "franchise", "scopeId": "f-1", "dailyTargetDefault": 1250,
         "incentiveTier1Min": 1250, "incentiveTier1Max": 1550,
         "incentiveTier1Type": "full_extra", "incentiveTier2Min": 1550,
         "incentiveTier2Percent": 20,
         "monthlyBonusTiers": [{"minEarnings": 25000, "bonus": 3000}],
         "monthlyDeductionTiers": [{"maxEarnings": 26000, "cutPercent": 25}]}

        Missing keys fall back to the built-in defaults.
        """
        defaults = cls()
        try:
            tier1_type = IncentiveType(data.get("incentiveTier1Type", defaults.incentive_tier1.type.value))
            tier1 = IncentiveTier1(
                min=float(data.get("incentiveTier1Min", defaults.incentive_tier1.min)),
                max=float(data.get("incentiveTier1Max", defaults.incentive_tier1.max)),
                type=tier1_type,
                percent=float(data.get("incentiveTier1Percent", defaults.incentive_tier1.percent)),
            )
            tier2 = IncentiveTier2(
                min=float(data.get("incentiveTier2Min", defaults.incentive_tier2.min)),
                percent=float(data.get("incentiveTier2Percent", defaults.incentive_tier2.percent)),
            )

            bonus_rows = data.get("monthlyBonusTiers")
            bonus_tiers = defaults.monthly_bonus_tiers
            if bonus_rows is not None:
                bonus_tiers = tuple(
                    MonthlyBonusTier(min_earnings=float(row["minEarnings"]), bonus=float(row.get("bonus", 0)))
                    for row in bonus_rows
                )

            deduction_rows = data.get("monthlyDeductionTiers")
            deduction_tiers = defaults.monthly_deduction_tiers
            if deduction_rows is not None:
                deduction_tiers = tuple(
                    MonthlyDeductionTier(max_earnings=float(row["maxEarnings"]), cut_percent=float(row["cutPercent"]))
                    for row in deduction_rows
                )

            return cls(
                scope=ConfigScope(data.get("scope", ConfigScope.GLOBAL.value)),
                scope_id=data.get("scopeId"),
                daily_target_default=float(data.get("dailyTargetDefault", defaults.daily_target_default)),
                incentive_tier1=tier1,
                incentive_tier2=tier2,
                monthly_bonus_tiers=bonus_tiers,
                monthly_deduction_tiers=deduction_tiers,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid earnings config row: {e}") from e


@dataclass(frozen=True)
class DailyLimitState:
    driver_id: str
    day: date
    target: float
    earned_so_far: float = 0.0
    trips_count: int = 0
    # Trip events already counted; replays are no-ops. Kept for the life of the process.
    source_event_ids: FrozenSet[str] = frozenset()

    @property
    def remaining(self) -> float:
        return max(0.0, self.target - self.earned_so_far)


@dataclass(frozen=True)
class DailyStats:
    driver_id: str
    day: date
    daily_target: float
    earned: float
    trips_count: int
    incentive: float
    remaining_to_achieve: float


@dataclass(frozen=True)
class MonthlySettlement:
    driver_id: str
    year: int
    month: int
    gross_earnings: float
    bonus: float
    bonus_tier: Optional[MonthlyBonusTier]
    cut_percent: float
    deduction_tier: Optional[MonthlyDeductionTier]
    policy_cut: float
    total_penalties: float
    penalties_count: int
    net_earnings: float
