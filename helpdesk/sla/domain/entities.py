"""
SLA Domain Entities
====================

Pure Python domain entities for SLA monitoring.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

from helpdesk.config import (
    TicketStatus, DEFAULT_CATEGORY,
    VALID_PRIORITIES, VALID_STATUSES
)
from helpdesk.core import (
    DomainException, InvalidPriorityException,
    InvalidTimestampException, ValidationException
)
from helpdesk.sla.domain.value_objects import SLACalculator, SLAPolicy, DEFAULT_SLA_POLICY


@dataclass
class Ticket:
    """
    Ticket entity representing an IT support ticket.

    Only the fields the SLA engine reads. ``sla_deadline`` is a frozen
    commitment: it is computed once in :meth:`open` and no later edit
    (status change, reassignment, recategorisation) touches it.
    """

    # Core attributes
    id: str
    priority: str
    status: str
    created_at: datetime
    sla_deadline: datetime

    category: str = DEFAULT_CATEGORY
    title: str = ""

    # Lifecycle timestamps
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate ticket on initialization."""
        if self.priority not in VALID_PRIORITIES:
            raise InvalidPriorityException(self.priority)

        if self.status not in VALID_STATUSES:
            raise ValidationException(
                f"Invalid status: {self.status!r}",
                {"ticket_id": self.id, "status": self.status}
            )

        if self.sla_deadline < self.created_at:
            raise InvalidTimestampException(
                self.id, "sla_deadline", self.sla_deadline, self.created_at
            )

        if self.resolved_at and self.resolved_at < self.created_at:
            raise InvalidTimestampException(
                self.id, "resolved_at", self.resolved_at, self.created_at
            )

        if self.closed_at and self.closed_at < self.created_at:
            raise InvalidTimestampException(
                self.id, "closed_at", self.closed_at, self.created_at
            )

    @classmethod
    def open(
        cls,
        id: str,
        priority: str,
        created_at: datetime,
        category: str = DEFAULT_CATEGORY,
        title: str = "",
        policy: SLAPolicy = DEFAULT_SLA_POLICY
    ) -> "Ticket":
        """
        Create a new open ticket with its SLA deadline fixed.

        Raises:
            InvalidPriorityException: priority outside the policy table
        """
        deadline = SLACalculator.compute_deadline(priority, created_at, policy)
        return cls(
            id=id,
            priority=priority,
            status=TicketStatus.OPEN,
            created_at=created_at,
            sla_deadline=deadline,
            category=category,
            title=title,
        )

    @property
    def is_open(self) -> bool:
        """Check if ticket is still being worked on."""
        return self.status in (TicketStatus.OPEN, TicketStatus.IN_PROGRESS)

    @property
    def is_resolved(self) -> bool:
        """Check if ticket has a resolution instant."""
        return self.resolved_at is not None

    def start_progress(self) -> None:
        if self.status != TicketStatus.OPEN:
            raise DomainException(
                f"Ticket {self.id} cannot move to in_progress from {self.status}"
            )
        self.status = TicketStatus.IN_PROGRESS

    def mark_resolved(self, timestamp: datetime) -> None:
        """
        Mark ticket as resolved. ``resolved_at`` is set exactly once.

        Raises:
            DomainException: ticket already resolved
            InvalidTimestampException: timestamp before creation
        """
        if self.resolved_at is not None:
            raise DomainException(f"Ticket {self.id} is already resolved")
        if timestamp < self.created_at:
            raise InvalidTimestampException(self.id, "resolved_at", timestamp, self.created_at)
        self.resolved_at = timestamp
        self.status = TicketStatus.RESOLVED

    def mark_closed(self, timestamp: datetime) -> None:
        """Mark ticket as closed, resolving it first if needed."""
        if self.resolved_at is None:
            self.mark_resolved(timestamp)
        if timestamp < self.created_at:
            raise InvalidTimestampException(self.id, "closed_at", timestamp, self.created_at)
        self.closed_at = timestamp
        self.status = TicketStatus.CLOSED


@dataclass(frozen=True)
class TrendPoint:
    """Created/resolved counts for one calendar day."""
    date: date
    created: int = 0
    resolved: int = 0


@dataclass(frozen=True)
class DashboardMetrics:
    """
    Fleet-wide SLA metrics for the dashboard.

    Recomputed on demand; never persisted as authoritative state.
    """

    generated_at: datetime

    total_tickets: int = 0
    open_tickets: int = 0
    in_progress_tickets: int = 0
    resolved_tickets: int = 0
    closed_tickets: int = 0

    breached_sla: int = 0
    average_resolution_hours: float = 0.0
    sla_compliance: float = 100.0

    tickets_by_priority: Dict[str, int] = field(default_factory=dict)
    tickets_by_category: Dict[str, int] = field(default_factory=dict)
    tickets_by_urgency: Dict[str, int] = field(default_factory=dict)
    resolution_trend: List[TrendPoint] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary using the dashboard's field names."""
        return {
            "totalTickets": self.total_tickets,
            "openTickets": self.open_tickets,
            "inProgressTickets": self.in_progress_tickets,
            "resolvedTickets": self.resolved_tickets,
            "closedTickets": self.closed_tickets,
            "averageResolutionTime": self.average_resolution_hours,
            "slaCompliance": self.sla_compliance,
            "breachedSLA": self.breached_sla,
            "ticketsByPriority": dict(self.tickets_by_priority),
            "ticketsByCategory": dict(self.tickets_by_category),
            "ticketsByUrgency": dict(self.tickets_by_urgency),
            "resolutionTrend": [
                {"date": p.date.isoformat(), "created": p.created, "resolved": p.resolved}
                for p in self.resolution_trend
            ],
            "generatedAt": self.generated_at.isoformat(),
        }
