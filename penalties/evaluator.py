"""
Purpose: Penalty trigger evaluation (events -> penalty records -> blocks).
What it does:
- evaluate(event, rules): fires every active automatic rule whose trigger
  matches the event and whose threshold is crossed.
- apply_manual(...): records a rule on behalf of an authorized actor.
- One PenaltyEvent per (rule_id, source_event_id). Replays are no-ops.
- block_driver rules move the driver to BLOCKED exactly once and emit one
  NotificationIntent per notify flag.

Everything for one driver runs under that driver's lock, so a WARNED -> BLOCKED
transition cannot race a concurrent duplicate check. A block is persisted to
the status sink before anything is committed. If that fails after retries the
whole evaluation is discarded and BlockFailedError is raised, so re-evaluating
the same event retries the block.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from core.errors import BlockFailedError, ConfigurationError, InvalidInput
from core.locks import KeyedLocks

from .models import (
    Application,
    Automatic,
    DriverEvent,
    DriverHistory,
    EvaluationResult,
    LateReportEvent,
    Manual,
    NotificationIntent,
    PenaltyEvent,
    PenaltyRule,
    PenaltyState,
)
from .state_machine import next_state, transition

logger = logging.getLogger(__name__)


class DriverStatusSink(Protocol):
    """
    Driver registry collaborator that persists a BLOCKED status.
    """

    def block_driver(self, driver_id: str, reason: str) -> None:
        ...


@dataclass
class _DriverRecord:
    state: PenaltyState = PenaltyState.NORMAL
    history: DriverHistory = field(default_factory=DriverHistory)
    penalties: List[PenaltyEvent] = field(default_factory=list)


def usable_rules(rules: Sequence[PenaltyRule]) -> Tuple[List[PenaltyRule], List[str]]:
    """
    Split rules into (usable automatic rules, ids of disabled rules).
    A misconfigured rule never stops the others from being evaluated.
    """
    usable: List[PenaltyRule] = []
    disabled: List[str] = []
    for rule in rules:
        if not rule.is_active or not rule.is_automatic:
            continue
        try:
            if rule.trigger is None:
                raise ConfigurationError("automatic rule has no trigger")
            rule.trigger.validate()
        except ConfigurationError as e:
            logger.warning("Disabling penalty rule %s (%s): %s", rule.rule_id, rule.name, e)
            disabled.append(rule.rule_id)
            continue
        usable.append(rule)
    return usable, disabled


def _validate_event(event: DriverEvent) -> None:
    if not event.driver_id:
        raise InvalidInput("event.driver_id is required")
    if not event.source_event_id:
        raise InvalidInput("event.source_event_id is required")
    if isinstance(event, LateReportEvent) and event.delay_minutes < 0:
        raise InvalidInput(f"delay_minutes must be >= 0, got {event.delay_minutes}")


class PenaltyEvaluator:
    def __init__(self, status_sink: Optional[DriverStatusSink] = None, block_retry_attempts: int = 3):
        self.status_sink = status_sink
        self.block_retry_attempts = block_retry_attempts
        self._locks = KeyedLocks()
        self._records: Dict[str, _DriverRecord] = {}
        # (rule_id, source_event_id) -> penalty; never pruned.
        self._applied: Dict[Tuple[str, str], PenaltyEvent] = {}

    # --- Read side ---

    def state_of(self, driver_id: str) -> PenaltyState:
        with self._locks.hold(driver_id):
            record = self._records.get(driver_id)
            return record.state if record else PenaltyState.NORMAL

    def is_blocked(self, driver_id: str) -> bool:
        return self.state_of(driver_id) == PenaltyState.BLOCKED

    def penalties_for(
        self,
        driver_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[PenaltyEvent]:
        with self._locks.hold(driver_id):
            record = self._records.get(driver_id)
            penalties = list(record.penalties) if record else []
        return [
            p for p in penalties
            if (start is None or p.occurred_at >= start) and (end is None or p.occurred_at <= end)
        ]

    # --- Write side ---

    def evaluate(self, event: DriverEvent, rules: Sequence[PenaltyRule]) -> EvaluationResult:
        _validate_event(event)
        rules_to_check, disabled = usable_rules(rules)

        with self._locks.hold(event.driver_id):
            record = self._records.setdefault(event.driver_id, _DriverRecord())
            record.history = record.history.observe(event)

            fired = [rule for rule in rules_to_check if rule.trigger.is_crossed(event, record.history)]
            context = {"eventType": type(event).__name__, **self._event_context(event)}
            staged = [
                (rule, self._penalty(event.driver_id, rule, Automatic(rule.rule_id), event.source_event_id,
                                     event.occurred_at, context))
                for rule in fired
            ]
            return self._commit(event.driver_id, record, staged, disabled)

    def apply_manual(
        self,
        driver_id: str,
        rule: PenaltyRule,
        actor_id: str,
        *,
        source_event_id: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> EvaluationResult:
        """
        Record a penalty on behalf of an authorized actor. Any active rule can
        be applied manually. Manual rules can only be applied this way.

        `amount` overrides the rule amount when positive. None or 0 charges the
        rule amount.
        """
        if not actor_id:
            raise InvalidInput("Manual penalties require an actor id")
        if not driver_id:
            raise InvalidInput("driver_id is required")
        if not rule.is_active:
            raise InvalidInput(f"Penalty rule {rule.rule_id} is not active")
        if amount is not None and amount < 0:
            raise InvalidInput("amount must be >= 0")

        source_event_id = source_event_id or f"manual-{uuid.uuid4()}"
        amount = amount or None
        context = {"reason": reason} if reason else {}

        with self._locks.hold(driver_id):
            record = self._records.setdefault(driver_id, _DriverRecord())
            penalty = self._penalty(
                driver_id, rule, Manual(actor_id), source_event_id, occurred_at or datetime.now(), context, amount
            )
            return self._commit(driver_id, record, [(rule, penalty)], [])

    # --- Internals ---

    @staticmethod
    def _event_context(event: DriverEvent) -> Dict[str, Any]:
        if isinstance(event, LateReportEvent):
            return {"delayMinutes": event.delay_minutes}
        return {}

    @staticmethod
    def _penalty(
        driver_id: str,
        rule: PenaltyRule,
        application: Application,
        source_event_id: str,
        occurred_at: datetime,
        context: Mapping[str, Any],
        amount: Optional[float] = None,
    ) -> PenaltyEvent:
        return PenaltyEvent(
            driver_id=driver_id,
            rule_id=rule.rule_id,
            source_event_id=source_event_id,
            occurred_at=occurred_at,
            application=application,
            amount=rule.amount if amount is None else amount,
            context_data=dict(context),
        )

    def _commit(
        self,
        driver_id: str,
        record: _DriverRecord,
        staged: List[Tuple[PenaltyRule, PenaltyEvent]],
        disabled: List[str],
    ) -> EvaluationResult:
        """
        Caller holds the driver lock.
        """
        new: List[Tuple[PenaltyRule, PenaltyEvent]] = []
        keys = set()
        for rule, penalty in staged:
            if penalty.key in self._applied or penalty.key in keys:
                logger.debug("Penalty %s already applied, skipping", penalty.key)
                continue
            keys.add(penalty.key)
            new.append((rule, penalty))

        state = record.state
        blocking_rule: Optional[PenaltyRule] = None
        for rule, _ in new:
            target = next_state(state, rule)
            if target == PenaltyState.BLOCKED and state != PenaltyState.BLOCKED:
                blocking_rule = rule
            state = transition(state, target)

        notifications: Tuple[NotificationIntent, ...] = ()
        if blocking_rule is not None:
            reason = f"Blocked by penalty rule {blocking_rule.rule_id}: {blocking_rule.name}"
            self._persist_block(driver_id, blocking_rule, reason)
            notifications = tuple(
                NotificationIntent(driver_id=driver_id, rule_id=blocking_rule.rule_id, recipient=r, reason=reason)
                for r in blocking_rule.recipients()
            )
            logger.warning("Driver %s BLOCKED by rule %s (%s)", driver_id, blocking_rule.rule_id, blocking_rule.name)

        for _, penalty in new:
            self._applied[penalty.key] = penalty
            record.penalties.append(penalty)
            logger.info(
                "Penalty %s applied to driver %s (source %s, amount %.2f)",
                penalty.rule_id, driver_id, penalty.source_event_id, penalty.amount,
            )
        record.state = state

        return EvaluationResult(
            driver_id=driver_id,
            state=state,
            penalty_events=tuple(p for _, p in new),
            notifications=notifications,
            blocked=blocking_rule is not None,
            disabled_rule_ids=tuple(disabled),
        )

    def _persist_block(self, driver_id: str, rule: PenaltyRule, reason: str) -> None:
        if self.status_sink is None:
            return

        last_error: Optional[Exception] = None
        for attempt in range(1, self.block_retry_attempts + 1):
            try:
                self.status_sink.block_driver(driver_id, reason)
                return
            except Exception as e:
                last_error = e
                logger.error(
                    "Blocking driver %s failed (attempt %d/%d): %s", driver_id, attempt, self.block_retry_attempts, e
                )
        raise BlockFailedError(driver_id, rule.rule_id, last_error)
