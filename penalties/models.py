"""
Purpose: Domain models for penalty triggers.
What it does:
- Tagged trigger variants, one per trigger type, each with its own validated field:
  LateReportTrigger(delay_minutes), ComplaintsTrigger(complaint_count),
  CancellationsTrigger(cancellation_count)
- Driver events the evaluator consumes: LateReportEvent, ComplaintEvent, TripCancelledEvent
- How a penalty was applied: Automatic(rule_id) | Manual(actor_id)
- PenaltyRule, PenaltyEvent, NotificationIntent, EvaluationResult

Rule: No evaluation logic here beyond "does this trigger look at this event".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Union

from core.errors import ConfigurationError


class TriggerType(str, Enum):
    LATE_REPORT = "LATE_REPORT"
    COMPLAINTS = "COMPLAINTS"
    TRIP_CANCELLATIONS = "TRIP_CANCELLATIONS"
    MANUAL = "MANUAL"


class PenaltySeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class PenaltyCategory(str, Enum):
    PUNCTUALITY = "PUNCTUALITY"
    CUSTOMER_SERVICE = "CUSTOMER_SERVICE"
    RELIABILITY = "RELIABILITY"
    CONDUCT = "CONDUCT"
    OTHER = "OTHER"


class PenaltyState(str, Enum):
    NORMAL = "NORMAL"
    WARNED = "WARNED"
    BLOCKED = "BLOCKED"


class Recipient(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    DRIVER = "DRIVER"


# -------------------------
# Driver events
# -------------------------

@dataclass(frozen=True)
class LateReportEvent:
    """
    Driver started a scheduled trip (or clocked in) `delay_minutes` late.
    """
    driver_id: str
    source_event_id: str
    delay_minutes: float
    occurred_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class ComplaintEvent:
    """
    A customer complaint was filed. source_event_id is the complaint id.
    """
    driver_id: str
    source_event_id: str
    occurred_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class TripCancelledEvent:
    driver_id: str
    source_event_id: str
    trip_id: Optional[str] = None
    occurred_at: datetime = field(default_factory=datetime.now)


DriverEvent = Union[LateReportEvent, ComplaintEvent, TripCancelledEvent]


@dataclass(frozen=True)
class DriverHistory:
    """
    Distinct causes seen so far for one driver. Counting by id keeps replays harmless.
    """
    complaint_ids: frozenset = frozenset()
    cancellation_ids: frozenset = frozenset()

    def observe(self, event: DriverEvent) -> DriverHistory:
        if isinstance(event, ComplaintEvent):
            return DriverHistory(self.complaint_ids | {event.source_event_id}, self.cancellation_ids)
        if isinstance(event, TripCancelledEvent):
            return DriverHistory(self.complaint_ids, self.cancellation_ids | {event.source_event_id})
        return self


# -------------------------
# Trigger variants
# -------------------------

@dataclass(frozen=True)
class LateReportTrigger:
    trigger_type: ClassVar[TriggerType] = TriggerType.LATE_REPORT
    delay_minutes: float

    def validate(self) -> None:
        if self.delay_minutes <= 0:
            raise ConfigurationError(f"delayMinutes must be > 0, got {self.delay_minutes}")

    def is_crossed(self, event: DriverEvent, history: DriverHistory) -> bool:
        return isinstance(event, LateReportEvent) and event.delay_minutes >= self.delay_minutes


@dataclass(frozen=True)
class ComplaintsTrigger:
    trigger_type: ClassVar[TriggerType] = TriggerType.COMPLAINTS
    complaint_count: int

    def validate(self) -> None:
        if self.complaint_count <= 0:
            raise ConfigurationError(f"complaintCount must be > 0, got {self.complaint_count}")

    def is_crossed(self, event: DriverEvent, history: DriverHistory) -> bool:
        return isinstance(event, ComplaintEvent) and len(history.complaint_ids) >= self.complaint_count


@dataclass(frozen=True)
class CancellationsTrigger:
    trigger_type: ClassVar[TriggerType] = TriggerType.TRIP_CANCELLATIONS
    cancellation_count: int

    def validate(self) -> None:
        if self.cancellation_count <= 0:
            raise ConfigurationError(f"cancellationCount must be > 0, got {self.cancellation_count}")

    def is_crossed(self, event: DriverEvent, history: DriverHistory) -> bool:
        return isinstance(event, TripCancelledEvent) and len(history.cancellation_ids) >= self.cancellation_count


TriggerConfig = Union[LateReportTrigger, ComplaintsTrigger, CancellationsTrigger]


def parse_trigger_config(trigger_type: TriggerType | str, payload: Optional[Mapping[str, Any]]) -> Optional[TriggerConfig]:
    """
    Turn a stored {triggerType, triggerConfig} pair into its tagged variant.
    MANUAL rules have no trigger.
    """
    try:
        trigger_type = TriggerType(trigger_type)
    except ValueError:
        raise ConfigurationError(f"Unknown trigger type {trigger_type!r}")

    if trigger_type == TriggerType.MANUAL:
        return None

    payload = payload or {}
    try:
        if trigger_type == TriggerType.LATE_REPORT:
            return LateReportTrigger(delay_minutes=float(payload["delayMinutes"]))
        if trigger_type == TriggerType.COMPLAINTS:
            return ComplaintsTrigger(complaint_count=int(payload["complaintCount"]))
        return CancellationsTrigger(cancellation_count=int(payload["cancellationCount"]))
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid triggerConfig for {trigger_type.value}: {payload!r}") from e


# -------------------------
# Application variants
# -------------------------

@dataclass(frozen=True)
class Automatic:
    rule_id: str


@dataclass(frozen=True)
class Manual:
    actor_id: str


Application = Union[Automatic, Manual]


# -------------------------
# Rules and records
# -------------------------

@dataclass(frozen=True)
class PenaltyRule:
    """
    Immutable for the duration of an evaluation cycle.
    """
    rule_id: str
    name: str
    trigger: Optional[TriggerConfig] = None
    amount: float = 0.0
    severity: PenaltySeverity = PenaltySeverity.MEDIUM
    category: PenaltyCategory = PenaltyCategory.OTHER
    is_automatic: bool = False
    block_driver: bool = False
    notify_admin: bool = False
    notify_manager: bool = False
    notify_driver: bool = False
    is_active: bool = True

    @property
    def trigger_type(self) -> TriggerType:
        return self.trigger.trigger_type if self.trigger is not None else TriggerType.MANUAL

    def recipients(self) -> Tuple[Recipient, ...]:
        flags = (
            (self.notify_admin, Recipient.ADMIN),
            (self.notify_manager, Recipient.MANAGER),
            (self.notify_driver, Recipient.DRIVER),
        )
        return tuple(recipient for enabled, recipient in flags if enabled)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PenaltyRule:
        """
        Build a rule from a stored penalty row (camelCase keys).
        Raises ConfigurationError for an unparseable row.
        """
        try:
            trigger = parse_trigger_config(data.get("triggerType", TriggerType.MANUAL.value), data.get("triggerConfig"))
            return cls(
                rule_id=str(data["id"]),
                name=str(data.get("name", data["id"])),
                trigger=trigger,
                amount=float(data.get("amount", 0)),
                severity=PenaltySeverity(data.get("severity", PenaltySeverity.MEDIUM.value)),
                category=PenaltyCategory(data.get("category", PenaltyCategory.OTHER.value)),
                is_automatic=bool(data.get("isAutomatic", False)),
                block_driver=bool(data.get("blockDriver", False)),
                notify_admin=bool(data.get("notifyAdmin", False)),
                notify_manager=bool(data.get("notifyManager", False)),
                notify_driver=bool(data.get("notifyDriver", False)),
                is_active=bool(data.get("isActive", True)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid penalty rule row: {e}") from e


@dataclass(frozen=True)
class PenaltyEvent:
    driver_id: str
    rule_id: str
    source_event_id: str
    occurred_at: datetime
    application: Application
    amount: float = 0.0
    context_data: Mapping[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[str, str]:
        return self.rule_id, self.source_event_id


@dataclass(frozen=True)
class NotificationIntent:
    """
    Something a notification collaborator should deliver. Delivery is not ours.
    """
    driver_id: str
    rule_id: str
    recipient: Recipient
    reason: str


@dataclass(frozen=True)
class EvaluationResult:
    driver_id: str
    state: PenaltyState
    penalty_events: Tuple[PenaltyEvent, ...] = ()
    notifications: Tuple[NotificationIntent, ...] = ()
    # True only on the evaluation that moved the driver to BLOCKED.
    blocked: bool = False
    disabled_rule_ids: Tuple[str, ...] = ()
