"""
SLA Application DTOs
=====================

Data Transfer Objects for the SLA API layer.

These Pydantic models handle serialization/deserialization and validation
for ticket records read from the store and for dashboard responses.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional, Literal
from datetime import datetime

from helpdesk.config import DEFAULT_CATEGORY
from helpdesk.shared.clock import ensure_aware
from helpdesk.sla.domain import Ticket, SLACalculator, SLAPolicy, DEFAULT_SLA_POLICY


# ========== Type Aliases for Literals ==========
PriorityStr = Literal["critical", "high", "medium", "low"]
TicketStatusStr = Literal["open", "in_progress", "resolved", "closed"]
UrgencyStateStr = Literal["safe", "warning", "critical", "breached"]


# ========== Store DTOs ==========

class TicketRecordDTO(BaseModel):
    """
    Ticket row as supplied by the ticket store.

    Priority and status stay plain strings here; the domain entity decides
    whether they are valid so that a bad priority surfaces as
    InvalidPriorityException rather than a generic validation error.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str
    priority: str
    status: str = "open"
    category: str = DEFAULT_CATEGORY
    title: str = ""
    created_at: datetime
    sla_deadline: Optional[datetime] = Field(
        None,
        description="Deadline frozen at creation; rows without one get it derived from the policy"
    )
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    def to_domain(self, policy: SLAPolicy = DEFAULT_SLA_POLICY) -> Ticket:
        """Convert to domain entity, normalising naive timestamps to UTC."""
        created_at = ensure_aware(self.created_at)
        if self.sla_deadline is not None:
            deadline = ensure_aware(self.sla_deadline)
        else:
            deadline = SLACalculator.compute_deadline(
                self.priority, created_at, policy)

        return Ticket(
            id=str(self.id),
            priority=self.priority,
            status=self.status,
            category=self.category or DEFAULT_CATEGORY,
            title=self.title or "",
            created_at=created_at,
            sla_deadline=deadline,
            resolved_at=ensure_aware(self.resolved_at) if self.resolved_at else None,
            closed_at=ensure_aware(self.closed_at) if self.closed_at else None,
        )


class TicketQueryDTO(BaseModel):
    """Query parameters for the ticket SLA listing."""
    status: Optional[TicketStatusStr] = None
    priority: Optional[PriorityStr] = None
    category: Optional[str] = None
    urgency: Optional[UrgencyStateStr] = None

    def store_filters(self) -> dict:
        """Filters the ticket store can apply itself (urgency is derived)."""
        filters = {}
        if self.status:
            filters["status"] = self.status
        if self.priority:
            filters["priority"] = self.priority
        if self.category:
            filters["category"] = self.category
        return filters


# ========== Response DTOs ==========

class SLASnapshotResponse(BaseModel):
    """SLA state of a single ticket at one instant."""
    deadline: datetime = Field(..., description="SLA deadline, frozen at creation")
    reference_instant: datetime = Field(..., description="resolved_at for resolved tickets, else evaluation time")
    is_resolved: bool
    time_remaining_seconds: float = Field(..., description="Time remaining (0 once breached)")
    time_remaining_display: str = Field(..., description="e.g. '2d 3h', '5h 12m', 'Expired'")
    percentage_remaining: float = Field(..., description="Percent of the policy duration left")
    is_breached: bool
    urgency_state: UrgencyStateStr

    @classmethod
    def from_snapshot(cls, snapshot) -> "SLASnapshotResponse":
        return cls(
            deadline=snapshot.deadline,
            reference_instant=snapshot.reference_instant,
            is_resolved=snapshot.is_resolved,
            time_remaining_seconds=snapshot.time_remaining.total_seconds(),
            time_remaining_display=snapshot.time_remaining_display,
            percentage_remaining=snapshot.percentage_remaining,
            is_breached=snapshot.is_breached,
            urgency_state=snapshot.urgency_state,
        )


class TicketSLAResponse(BaseModel):
    """Ticket with its SLA snapshot."""
    ticket_id: str
    title: str
    priority: PriorityStr
    status: TicketStatusStr
    category: str
    created_at: datetime
    resolved_at: Optional[datetime] = None
    sla: SLASnapshotResponse

    @classmethod
    def from_domain(cls, ticket, snapshot) -> "TicketSLAResponse":
        return cls(
            ticket_id=ticket.id,
            title=ticket.title,
            priority=ticket.priority,
            status=ticket.status,
            category=ticket.category,
            created_at=ticket.created_at,
            resolved_at=ticket.resolved_at,
            sla=SLASnapshotResponse.from_snapshot(snapshot),
        )


class TicketSLAListResponse(BaseModel):
    """Snapshots for a batch of tickets, all taken at ``evaluated_at``."""
    evaluated_at: datetime
    total_count: int
    tickets: List[TicketSLAResponse]


class TrendPointResponse(BaseModel):
    """One day of the creation/resolution trend."""
    date: str = Field(..., description="ISO calendar day, e.g. 2024-01-15")
    created: int
    resolved: int


class DashboardMetricsResponse(BaseModel):
    """
    Dashboard metrics as consumed by the web dashboard.

    Serialized with the dashboard's camelCase field names.
    """
    total_tickets: int = Field(..., serialization_alias="totalTickets")
    open_tickets: int = Field(..., serialization_alias="openTickets")
    in_progress_tickets: int = Field(..., serialization_alias="inProgressTickets")
    resolved_tickets: int = Field(..., serialization_alias="resolvedTickets")
    closed_tickets: int = Field(..., serialization_alias="closedTickets")
    average_resolution_hours: float = Field(
        ...,
        serialization_alias="averageResolutionTime",
        description="Mean resolved_at - created_at in hours, 0 when nothing is resolved"
    )
    sla_compliance: float = Field(
        ...,
        serialization_alias="slaCompliance",
        description="Percent of tickets not in breach, 100 for an empty fleet"
    )
    breached_sla: int = Field(..., serialization_alias="breachedSLA")
    tickets_by_priority: Dict[str, int] = Field(..., serialization_alias="ticketsByPriority")
    tickets_by_category: Dict[str, int] = Field(..., serialization_alias="ticketsByCategory")
    tickets_by_urgency: Dict[str, int] = Field(..., serialization_alias="ticketsByUrgency")
    resolution_trend: List[TrendPointResponse] = Field(..., serialization_alias="resolutionTrend")
    generated_at: datetime = Field(..., serialization_alias="generatedAt")

    @classmethod
    def from_domain(cls, metrics) -> "DashboardMetricsResponse":
        return cls(
            total_tickets=metrics.total_tickets,
            open_tickets=metrics.open_tickets,
            in_progress_tickets=metrics.in_progress_tickets,
            resolved_tickets=metrics.resolved_tickets,
            closed_tickets=metrics.closed_tickets,
            average_resolution_hours=metrics.average_resolution_hours,
            sla_compliance=metrics.sla_compliance,
            breached_sla=metrics.breached_sla,
            tickets_by_priority=metrics.tickets_by_priority,
            tickets_by_category=metrics.tickets_by_category,
            tickets_by_urgency=metrics.tickets_by_urgency,
            resolution_trend=[
                TrendPointResponse(date=p.date.isoformat(), created=p.created, resolved=p.resolved)
                for p in metrics.resolution_trend
            ],
            generated_at=metrics.generated_at,
        )


class DashboardStateResponse(BaseModel):
    """Last state published by the cached dashboard view."""
    computed_at: datetime
    metrics: DashboardMetricsResponse
    tickets: List[TicketSLAResponse]


class SLAPolicyResponse(BaseModel):
    """Active SLA policy table."""
    durations_hours: Dict[str, int]
    critical_threshold_percent: int
    warning_threshold_percent: int
