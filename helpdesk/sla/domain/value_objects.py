"""
SLA Value Objects
==================

Immutable value objects for SLA domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.

Everything here is a pure function of its arguments: "now" is always
passed in by the caller, never read from the wall clock.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, model_validator

from helpdesk.config import Priority, UrgencyState, VALID_PRIORITIES
from helpdesk.core import InvalidPriorityException, InvalidTimestampException

if TYPE_CHECKING:
    from helpdesk.sla.domain.entities import Ticket


DEFAULT_DURATIONS_HOURS: Dict[str, int] = {
    Priority.CRITICAL: 8,
    Priority.HIGH: 24,
    Priority.MEDIUM: 72,
    Priority.LOW: 120,
}


class SLAThresholds(BaseModel):
    """Percentage-remaining cut-offs, inclusive on the stricter side."""
    model_config = ConfigDict(frozen=True)

    critical: int = Field(default=10, gt=0, lt=100, description="percent remaining <= critical")
    warning: int = Field(default=25, gt=0, lt=100, description="percent remaining <= warning")

    @model_validator(mode="after")
    def validate_order(self) -> "SLAThresholds":
        if self.critical >= self.warning:
            raise ValueError("critical threshold must be below warning threshold")
        return self


class SLAPolicy(BaseModel):
    """
    SLA policy table: priority -> allowed duration.

    Loaded once at process start and never mutated afterwards. Tickets store
    their own deadline at creation, so a different table in a later process
    does not move existing commitments.
    """
    model_config = ConfigDict(frozen=True)

    durations_hours: Dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_DURATIONS_HOURS),
        description="Allowed resolution time in hours by priority"
    )
    thresholds: SLAThresholds = Field(default_factory=SLAThresholds)

    @model_validator(mode="after")
    def validate_priorities(self) -> "SLAPolicy":
        """Every known priority needs a positive duration; nothing else is allowed."""
        unknown = set(self.durations_hours) - set(VALID_PRIORITIES)
        if unknown:
            raise ValueError(f"unknown priorities in policy: {sorted(unknown)}")
        missing = [p for p in VALID_PRIORITIES if p not in self.durations_hours]
        if missing:
            raise ValueError(f"policy is missing priorities: {missing}")
        for priority, hours in self.durations_hours.items():
            if hours <= 0:
                raise ValueError(f"duration for {priority} must be positive")
        return self

    def allowed_duration(self, priority: str) -> timedelta:
        """
        Look up the allowed span for a priority.

        Raises:
            InvalidPriorityException: priority is not one of the enumerated values
        """
        if priority not in VALID_PRIORITIES:
            raise InvalidPriorityException(priority)
        return timedelta(hours=self.durations_hours[priority])


DEFAULT_SLA_POLICY = SLAPolicy()


@dataclass(frozen=True)
class SLASnapshot:
    """
    SLA state of one ticket at one evaluation instant.

    Derived on read and never stored, so it cannot go stale.
    """
    ticket_id: str
    priority: str
    deadline: datetime
    reference_instant: datetime
    is_resolved: bool
    time_remaining: timedelta
    percentage_remaining: float
    is_breached: bool
    urgency_state: str

    @property
    def time_remaining_display(self) -> str:
        return format_time_remaining(self.time_remaining)

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "ticket_id": self.ticket_id,
            "priority": self.priority,
            "deadline": self.deadline.isoformat(),
            "reference_instant": self.reference_instant.isoformat(),
            "is_resolved": self.is_resolved,
            "time_remaining_seconds": self.time_remaining.total_seconds(),
            "time_remaining_display": self.time_remaining_display,
            "percentage_remaining": self.percentage_remaining,
            "is_breached": self.is_breached,
            "urgency_state": self.urgency_state,
        }


class SLACalculator:
    """
    Pure functions for SLA calculations.

    Stateless utility class - all SLA calculation logic in one place so the
    ticket view, the periodic refresh and the dashboard aggregate can never
    disagree.
    """

    @staticmethod
    def compute_deadline(
        priority: str,
        created_at: datetime,
        policy: SLAPolicy = DEFAULT_SLA_POLICY
    ) -> datetime:
        """
        Calculate the SLA deadline for a ticket.

        Flat wall-clock offset, not business-hours aware.

        Raises:
            InvalidPriorityException: priority outside the policy table
        """
        return created_at + policy.allowed_duration(priority)

    @staticmethod
    def percentage_remaining(
        deadline: datetime,
        priority: str,
        reference_instant: datetime,
        policy: SLAPolicy = DEFAULT_SLA_POLICY
    ) -> float:
        """
        Percent of the allotted span still left at ``reference_instant``.

        The denominator is always the policy duration, not the time elapsed
        since creation. Negative once the deadline has passed.
        """
        total = policy.allowed_duration(priority)
        remaining = deadline - reference_instant
        return remaining / total * 100

    @staticmethod
    def classify(
        deadline: datetime,
        priority: str,
        reference_instant: datetime,
        policy: SLAPolicy = DEFAULT_SLA_POLICY
    ) -> str:
        """
        Classify urgency at ``reference_instant``.

        Boundaries belong to the stricter bucket: exactly 10% remaining is
        critical, exactly 25% is warning. Comparisons use exact timedelta
        arithmetic so the boundaries don't depend on float rounding.

        Returns:
            UrgencyState value
        """
        total = policy.allowed_duration(priority)
        remaining = deadline - reference_instant

        if remaining <= timedelta(0):
            return UrgencyState.BREACHED
        if remaining * 100 <= total * policy.thresholds.critical:
            return UrgencyState.CRITICAL
        if remaining * 100 <= total * policy.thresholds.warning:
            return UrgencyState.WARNING
        return UrgencyState.SAFE

    @staticmethod
    def snapshot(
        ticket: "Ticket",
        now: datetime,
        policy: SLAPolicy = DEFAULT_SLA_POLICY
    ) -> SLASnapshot:
        """
        Assemble the SLA snapshot of ``ticket`` as seen at ``now``.

        Resolved tickets are evaluated at their resolution instant, so a
        ticket resolved in time never turns breached as the clock moves on.

        Raises:
            InvalidTimestampException: resolved_at earlier than created_at
            InvalidPriorityException: unknown priority
        """
        resolved_at = ticket.resolved_at
        if resolved_at is not None and resolved_at < ticket.created_at:
            raise InvalidTimestampException(
                ticket.id, "resolved_at", resolved_at, ticket.created_at
            )

        deadline = ticket.sla_deadline
        reference = resolved_at if resolved_at is not None else now

        remaining = max(timedelta(0), deadline - reference)
        percentage = SLACalculator.percentage_remaining(
            deadline, ticket.priority, reference, policy
        )

        return SLASnapshot(
            ticket_id=ticket.id,
            priority=ticket.priority,
            deadline=deadline,
            reference_instant=reference,
            is_resolved=resolved_at is not None,
            time_remaining=remaining,
            percentage_remaining=round(max(0.0, min(100.0, percentage)), 2),
            is_breached=reference > deadline,
            urgency_state=SLACalculator.classify(deadline, ticket.priority, reference, policy),
        )


def format_time_remaining(remaining: timedelta) -> str:
    """
    Human readable remaining time for ticket cards.

    "Expired" at zero, "2d 3h" beyond a day, "5h 12m" otherwise.
    """
    total_seconds = int(remaining.total_seconds())
    if total_seconds <= 0:
        return "Expired"

    hours, rest = divmod(total_seconds, 3600)
    minutes = rest // 60

    if hours > 24:
        days, hours = divmod(hours, 24)
        return f"{days}d {hours}h"
    return f"{hours}h {minutes}m"
