"""
Penalties domain package.

Public API:
- Models: PenaltyRule, PenaltyEvent, trigger variants, driver events
- State machine: NORMAL -> WARNED -> BLOCKED
- Evaluator: PenaltyEvaluator (automatic triggers + manual application)
"""
from .models import (
    Automatic,
    CancellationsTrigger,
    ComplaintEvent,
    ComplaintsTrigger,
    DriverHistory,
    EvaluationResult,
    LateReportEvent,
    LateReportTrigger,
    Manual,
    NotificationIntent,
    PenaltyCategory,
    PenaltyEvent,
    PenaltyRule,
    PenaltySeverity,
    PenaltyState,
    Recipient,
    TripCancelledEvent,
    TriggerType,
    parse_trigger_config,
)
from .state_machine import PenaltyStateException, next_state
from .evaluator import DriverStatusSink, PenaltyEvaluator, usable_rules

__all__ = [
    "Automatic",
    "CancellationsTrigger",
    "ComplaintEvent",
    "ComplaintsTrigger",
    "DriverHistory",
    "EvaluationResult",
    "LateReportEvent",
    "LateReportTrigger",
    "Manual",
    "NotificationIntent",
    "PenaltyCategory",
    "PenaltyEvent",
    "PenaltyRule",
    "PenaltySeverity",
    "PenaltyState",
    "Recipient",
    "TripCancelledEvent",
    "TriggerType",
    "parse_trigger_config",
    "PenaltyStateException",
    "next_state",
    "DriverStatusSink",
    "PenaltyEvaluator",
    "usable_rules",
]
