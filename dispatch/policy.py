"""
Purpose: Central configuration for dispatch ranking (single source of truth).
What it does:

Stores the composite score weights and category multipliers:

PROXIMITY_WEIGHT = 50     * 1 / (1 + distance_km), 0 when distance is unknown
PERFORMANCE_WEIGHT = 50   * category multiplier
DAILY_LIMIT_WEIGHT = 150  * 1 while limit remains, 0 once exhausted

CATEGORY_MULTIPLIERS: GREEN 1.0 > YELLOW 0.6 > RED 0.2

The daily-limit weight is strictly larger than the other two combined, which puts
every exhausted driver in a band below every driver with limit left.

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from core.errors import ConfigurationError
from drivers.models import PerformanceCategory


def _default_multipliers() -> Dict[PerformanceCategory, float]:
    return {
        PerformanceCategory.GREEN: 1.0,
        PerformanceCategory.YELLOW: 0.6,
        PerformanceCategory.RED: 0.2,
    }


@dataclass(frozen=True)
class DispatchPolicy:
    """
    Central configuration for the dispatch ranker.
    """

    # --- Composite weights ---
    proximity_weight: float = 50.0
    performance_weight: float = 50.0
    daily_limit_weight: float = 150.0

    # --- Performance term ---
    category_multipliers: Dict[PerformanceCategory, float] = field(default_factory=_default_multipliers)

    # Category assumed for a driver the ranker has no metrics for.
    default_category: PerformanceCategory = PerformanceCategory.YELLOW

    # --- Daily limit ---
    # False: exhausted drivers are ranked last. True: they are excluded.
    hard_exclude_exhausted_limit: bool = False

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if min(self.proximity_weight, self.performance_weight, self.daily_limit_weight) < 0:
            raise ConfigurationError("dispatch weights must be >= 0")

        if self.daily_limit_weight <= self.proximity_weight + self.performance_weight:
            raise ConfigurationError("daily_limit_weight must exceed proximity_weight + performance_weight")

        missing = set(PerformanceCategory) - set(self.category_multipliers)
        if missing:
            raise ConfigurationError(f"category_multipliers missing {sorted(c.value for c in missing)}")

        green = self.category_multipliers[PerformanceCategory.GREEN]
        yellow = self.category_multipliers[PerformanceCategory.YELLOW]
        red = self.category_multipliers[PerformanceCategory.RED]
        if not 1.0 >= green > yellow > red > 0.0:
            raise ConfigurationError("category multipliers must satisfy 1 >= GREEN > YELLOW > RED > 0")


def default_dispatch_policy() -> DispatchPolicy:
    """
    Convenience factory for the default policy.
    """
    p = DispatchPolicy()
    p.validate()
    return p
