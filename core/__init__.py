#Marks core as a package.
#Shared plumbing for every domain package: error taxonomy, env settings,
#keyed locks, the versioned store, and the DriverEngine facade (core.engine).
#No business rules here.

from .errors import (
    BlockFailedError,
    ConfigurationError,
    ConflictError,
    EngineError,
    InternalInvariantViolation,
    InvalidInput,
)
from .settings import EngineSettings, get_settings

__all__ = [
    "BlockFailedError",
    "ConfigurationError",
    "ConflictError",
    "EngineError",
    "InternalInvariantViolation",
    "InvalidInput",
    "EngineSettings",
    "get_settings",
]
