"""
Earnings domain package.

Public API:
- Models: EarningsConfig, DailyLimitState, MonthlySettlement
- Config resolution: EarningsConfigRegistry, resolve_earnings_config
- Tiers: compute_daily_incentive, compute_monthly_settlement, settle_month
- Ledger: DailyLimitLedger
"""
from .models import (
    ConfigScope,
    DailyLimitState,
    DailyStats,
    EarningsConfig,
    IncentiveTier1,
    IncentiveTier2,
    IncentiveType,
    MonthlyBonusTier,
    MonthlyDeductionTier,
    MonthlySettlement,
)
from .config import EarningsConfigRegistry, resolve_earnings_config
from .tiers import compute_daily_incentive, compute_monthly_settlement, settle_month
from .daily_limit import DailyLimitLedger

__all__ = [
    "ConfigScope",
    "DailyLimitState",
    "DailyStats",
    "EarningsConfig",
    "IncentiveTier1",
    "IncentiveTier2",
    "IncentiveType",
    "MonthlyBonusTier",
    "MonthlyDeductionTier",
    "MonthlySettlement",
    "EarningsConfigRegistry",
    "resolve_earnings_config",
    "compute_daily_incentive",
    "compute_monthly_settlement",
    "settle_month",
    "DailyLimitLedger",
]
