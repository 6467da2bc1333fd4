"""
Per-driver penalty state machine:

    NORMAL -> WARNED -> BLOCKED

BLOCKED is terminal here. Reactivation is an administrative action outside
the engine. Automatic and manual applications go through the same transition.
"""

from __future__ import annotations

from .models import PenaltyRule, PenaltyState


class PenaltyStateException(Exception):
    """Raised when an invalid penalty state transition is attempted."""
    pass


_ORDER = {
    PenaltyState.NORMAL: 0,
    PenaltyState.WARNED: 1,
    PenaltyState.BLOCKED: 2,
}


def next_state(current: PenaltyState, rule: PenaltyRule) -> PenaltyState:
    """
    State after one penalty of `rule` is recorded against a driver in `current`.
    """
    if current == PenaltyState.BLOCKED:
        return PenaltyState.BLOCKED

    if rule.block_driver:
        return PenaltyState.BLOCKED

    return PenaltyState.WARNED


def transition(current: PenaltyState, target: PenaltyState) -> PenaltyState:
    """
    Guard for explicit transitions: the machine only moves forward.
    """
    if _ORDER[target] < _ORDER[current]:
        raise PenaltyStateException(f"Cannot move from {current.value} back to {target.value}")
    return target
