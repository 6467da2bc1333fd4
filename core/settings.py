"""
Purpose: Process-level settings read from the environment.
What it does:
Loads a .env file (if present) and exposes the knobs that are deployment
specific rather than business policy:

BASE_URL=http://router.project-osrm.org
OSRM_TIMEOUT_S=5
DISTANCE_LOOKUP_TIMEOUT_S=2.0
DISTANCE_LOOKUP_WORKERS=8
MAX_UPDATE_RETRIES=5
BLOCK_RETRY_ATTEMPTS=3

Business tunables (weights, thresholds) live in the policy dataclasses instead.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv()


@dataclass(frozen=True)
class EngineSettings:
    osrm_base_url: Optional[str] = None
    osrm_timeout_s: int = 5

    # Per-candidate distance lookup budget inside a ranking call.
    distance_lookup_timeout_s: float = 2.0
    distance_lookup_workers: int = 8

    # Bounded retry for optimistic updates on ledgers.
    max_update_retries: int = 5

    # Attempts to persist a BLOCKED status before surfacing BlockFailedError.
    block_retry_attempts: int = 3

    def validate(self) -> None:
        if self.osrm_timeout_s <= 0:
            raise ConfigurationError("OSRM_TIMEOUT_S must be > 0")
        if self.distance_lookup_timeout_s <= 0:
            raise ConfigurationError("DISTANCE_LOOKUP_TIMEOUT_S must be > 0")
        if self.distance_lookup_workers <= 0:
            raise ConfigurationError("DISTANCE_LOOKUP_WORKERS must be > 0")
        if self.max_update_retries < 1:
            raise ConfigurationError("MAX_UPDATE_RETRIES must be >= 1")
        if self.block_retry_attempts < 1:
            raise ConfigurationError("BLOCK_RETRY_ATTEMPTS must be >= 1")


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def settings_from_env() -> EngineSettings:
    settings = EngineSettings(
        osrm_base_url=os.getenv("BASE_URL") or None,
        osrm_timeout_s=_env_number("OSRM_TIMEOUT_S", 5, int),
        distance_lookup_timeout_s=_env_number("DISTANCE_LOOKUP_TIMEOUT_S", 2.0, float),
        distance_lookup_workers=_env_number("DISTANCE_LOOKUP_WORKERS", 8, int),
        max_update_retries=_env_number("MAX_UPDATE_RETRIES", 5, int),
        block_retry_attempts=_env_number("BLOCK_RETRY_ATTEMPTS", 3, int),
    )
    settings.validate()
    return settings


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    """
    Cached settings for the running process. Tests call get_settings.cache_clear().
    """
    return settings_from_env()
