"""
Purpose: Earnings config resolution (single source of truth per driver).
What it does:
Holds configs by scope and resolves exactly one effective config:

  driver-specific > franchise-specific > global > built-in default

Rule: this is the only place that decides precedence. Callers never fall
back between scopes themselves.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Dict, Iterable, Optional

from core.errors import ConfigurationError

from .models import ConfigScope, EarningsConfig

logger = logging.getLogger(__name__)

DEFAULT_EARNINGS_CONFIG = EarningsConfig()


def resolve_earnings_config(
    driver_id: str,
    franchise_id: Optional[str],
    *,
    driver_configs: Dict[str, EarningsConfig],
    franchise_configs: Dict[str, EarningsConfig],
    global_config: Optional[EarningsConfig] = None,
) -> EarningsConfig:
    """
    Return the single effective config for a driver.
    """
    config = driver_configs.get(driver_id)
    if config is not None:
        return config

    if franchise_id is not None:
        config = franchise_configs.get(franchise_id)
        if config is not None:
            return config

    return global_config or DEFAULT_EARNINGS_CONFIG


class EarningsConfigRegistry:
    """
    In-memory view of the stored configs, filled by the caller from its
    persistence layer.
    """

    def __init__(self, configs: Iterable[EarningsConfig] = ()):
        self._global: Optional[EarningsConfig] = None
        self._by_franchise: Dict[str, EarningsConfig] = {}
        self._by_driver: Dict[str, EarningsConfig] = {}
        self._driver_franchise: Dict[str, str] = {}
        self._guard = Lock()
        for config in configs:
            self.put(config)

    def put(self, config: EarningsConfig) -> None:
        if config.scope != ConfigScope.GLOBAL and not config.scope_id:
            raise ConfigurationError(f"{config.scope.value} config requires a scope_id")

        with self._guard:
            if config.scope == ConfigScope.GLOBAL:
                self._global = config
            elif config.scope == ConfigScope.FRANCHISE:
                self._by_franchise[config.scope_id] = config
            else:
                self._by_driver[config.scope_id] = config

        logger.info("Earnings config stored for %s %s", config.scope.value, config.scope_id or "")

    def assign_franchise(self, driver_id: str, franchise_id: str) -> None:
        with self._guard:
            self._driver_franchise[driver_id] = franchise_id

    def resolve(self, driver_id: str, franchise_id: Optional[str] = None) -> EarningsConfig:
        with self._guard:
            franchise_id = franchise_id or self._driver_franchise.get(driver_id)
            return resolve_earnings_config(
                driver_id,
                franchise_id,
                driver_configs=self._by_driver,
                franchise_configs=self._by_franchise,
                global_config=self._global,
            )
