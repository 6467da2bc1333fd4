"""
Purpose: Error taxonomy shared by every engine component.
What it does:
- InvalidInput: malformed or contradictory snapshot data. The caller must resupply.
- ConfigurationError: a bad rule or tier definition. The offending item is disabled.
- ConflictError: optimistic update lost a race too many times.
- InternalInvariantViolation: a state that should be unreachable.
- BlockFailedError: an automatic block could not be persisted.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for all engine errors."""
    pass


class InvalidInput(EngineError):
    """Raised when caller-supplied data is malformed or contradictory."""
    pass


class ConfigurationError(EngineError):
    """Raised when a rule, tier or policy definition is invalid."""
    pass


class ConflictError(EngineError):
    """Raised when an optimistic read-modify-write exhausts its retries."""

    def __init__(self, key, attempts: int):
        super().__init__(f"Concurrent update conflict on {key} after {attempts} attempts")
        self.key = key
        self.attempts = attempts


class InternalInvariantViolation(EngineError):
    """Raised when the engine reaches a state its own logic should prevent."""
    pass


class BlockFailedError(EngineError):
    """
    Raised when a blocking penalty could not be persisted to the driver registry.
    The penalty is not recorded, so re-evaluating the same event retries the block.
    """

    def __init__(self, driver_id: str, rule_id: str, cause: Exception | None = None):
        super().__init__(f"Failed to block driver {driver_id} for rule {rule_id}: {cause}")
        self.driver_id = driver_id
        self.rule_id = rule_id
        self.cause = cause
