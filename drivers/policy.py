"""
Purpose: Central configuration for driver performance scoring.
What it does:

Stores all tunable weights/thresholds used by the scorer:

RATING_WEIGHT = 40
COMPLETION_RATE_WEIGHT = 30
COMPLAINT_WEIGHT = 20
REJECTION_RATE_WEIGHT = 10

GREEN_MIN_SCORE = 80
YELLOW_MIN_SCORE = 50

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import ConfigurationError


@dataclass(frozen=True)
class ScoringPolicy:
    """
    Central configuration for the performance scorer.
    """

    # --- Component weights (points out of 100) ---
    # rating/5 * rating_weight
    rating_weight: float = 40.0
    # completion_rate * completion_weight
    completion_weight: float = 30.0
    # complaint_weight, minus complaint_weight/complaint_cap per complaint
    complaint_weight: float = 20.0
    # (1 - rejection_rate) * rejection_weight
    rejection_weight: float = 10.0

    # Complaints at which the complaint component reaches 0.
    complaint_cap: int = 5

    # Rating used for drivers that have trips but no rating yet.
    unrated_rating: float = 3.5

    # --- Category thresholds (score >= threshold) ---
    green_min_score: int = 80
    yellow_min_score: int = 50

    # --- New drivers (zero trips) ---
    # Dispatchable, but below proven GREEN drivers.
    neutral_score: int = 70

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        weights = (self.rating_weight, self.completion_weight, self.complaint_weight, self.rejection_weight)
        if any(w < 0 for w in weights):
            raise ConfigurationError("scoring weights must be >= 0")

        if abs(sum(weights) - 100.0) > 1e-9:
            raise ConfigurationError("scoring weights must add up to 100")

        if self.complaint_cap <= 0:
            raise ConfigurationError("complaint_cap must be > 0")

        if not 0.0 <= self.unrated_rating <= 5.0:
            raise ConfigurationError("unrated_rating must be within [0, 5]")

        if not 0 < self.yellow_min_score < self.green_min_score <= 100:
            raise ConfigurationError("thresholds must satisfy 0 < yellow_min_score < green_min_score <= 100")

        if not 0 <= self.neutral_score <= 100:
            raise ConfigurationError("neutral_score must be within [0, 100]")


def default_scoring_policy() -> ScoringPolicy:
    """
    Convenience factory for the default policy.
    """
    p = ScoringPolicy()
    p.validate()
    return p
