"""
SLA Controllers (API Routes)
=============================

FastAPI routes serving SLA data to the dashboard.

Controllers are thin - they delegate to application services. Everything
here is read only.
"""

from datetime import timezone
from typing import AsyncGenerator, Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from helpdesk.config import settings
from helpdesk.infrastructure import database
from helpdesk.shared.clock import utc_now
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.sla.application import (
    SLAService,
    ITicketRepository,
    TicketQueryDTO,
    TicketSLAResponse,
    TicketSLAListResponse,
    DashboardMetricsResponse,
    DashboardStateResponse,
    SLAPolicyResponse,
)
from helpdesk.sla.application.dto import PriorityStr, TicketStatusStr, UrgencyStateStr
from helpdesk.sla.infrastructure import SQLAlchemyTicketRepository

logger = get_logger(__name__)
router = APIRouter(prefix="/sla", tags=["SLA Monitoring"])


# ========== Example payloads for Swagger ==========

DASHBOARD_METRICS_EXAMPLE = {
    "totalTickets": 3,
    "openTickets": 2,
    "inProgressTickets": 0,
    "resolvedTickets": 1,
    "closedTickets": 0,
    "averageResolutionTime": 5.5,
    "slaCompliance": 66.7,
    "breachedSLA": 1,
    "ticketsByPriority": {"critical": 2, "high": 0, "medium": 0, "low": 1},
    "ticketsByCategory": {"network": 2, "hardware": 1},
    "ticketsByUrgency": {"safe": 1, "warning": 0, "critical": 1, "breached": 1},
    "resolutionTrend": [
        {"date": "2024-01-15", "created": 3, "resolved": 1}
    ],
    "generatedAt": "2024-01-15T18:00:00Z"
}

TICKET_SLA_EXAMPLE = {
    "ticket_id": "TCK-1001",
    "title": "VPN drops every 10 minutes",
    "priority": "critical",
    "status": "open",
    "category": "network",
    "created_at": "2024-01-15T10:00:00Z",
    "resolved_at": None,
    "sla": {
        "deadline": "2024-01-15T18:00:00Z",
        "reference_instant": "2024-01-15T17:12:00Z",
        "is_resolved": False,
        "time_remaining_seconds": 2880.0,
        "time_remaining_display": "0h 48m",
        "percentage_remaining": 10.0,
        "is_breached": False,
        "urgency_state": "critical"
    }
}


# ========== Dependencies ==========

async def get_ticket_repository(request: Request) -> AsyncGenerator[ITicketRepository, None]:
    """Ticket store for this request: the database when configured, else in-memory."""
    if database.is_initialized():
        async with database.get_session_context() as session:
            yield SQLAlchemyTicketRepository(session, request.app.state.policy_provider.get_policy())
    else:
        yield request.app.state.ticket_repository


def get_dashboard_timezone():
    if settings.dashboard_timezone.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(settings.dashboard_timezone)


async def get_sla_service(
    request: Request,
    ticket_repo: ITicketRepository = Depends(get_ticket_repository)
) -> SLAService:
    """Get SLA service instance."""
    return SLAService(
        ticket_repo,
        request.app.state.policy_provider,
        clock=getattr(request.app.state, "clock", utc_now),
        trend_window_days=settings.trend_window_days,
        tz=get_dashboard_timezone(),
    )


# ========== Route Handlers ==========

@router.get(
    "/policy",
    response_model=SLAPolicyResponse,
    summary="Get the active SLA policy"
)
async def get_policy(sla_service: SLAService = Depends(get_sla_service)):
    policy = sla_service.policy
    return SLAPolicyResponse(
        durations_hours=dict(policy.durations_hours),
        critical_threshold_percent=policy.thresholds.critical,
        warning_threshold_percent=policy.thresholds.warning,
    )


@router.get(
    "/dashboard/metrics",
    response_model=DashboardMetricsResponse,
    summary="Get live dashboard metrics",
    description="""
    Aggregate SLA metrics over a single freshly fetched ticket batch.

    All tickets are evaluated at the same instant (`generatedAt`), so the
    breach count, compliance percentage and urgency tallies are consistent
    with each other.

    - `slaCompliance`: `(total - breached) / total * 100`, 100 for an empty fleet
    - `averageResolutionTime`: hours, 0 when no ticket is resolved
    - `resolutionTrend`: one row per day of the trailing window, oldest first
    """,
    responses={
        200: {
            "description": "Dashboard metrics",
            "content": {"application/json": {"example": DASHBOARD_METRICS_EXAMPLE}}
        }
    }
)
async def get_dashboard_metrics(sla_service: SLAService = Depends(get_sla_service)):
    metrics = await sla_service.get_dashboard_metrics()
    return DashboardMetricsResponse.from_domain(metrics)


@router.get(
    "/dashboard",
    response_model=DashboardStateResponse,
    summary="Get the cached dashboard view",
    description="""
    Last state published by the background refresh. Cheap to poll: nothing
    is recomputed per request.

    Returns 503 until the first refresh has completed.
    """
)
async def get_cached_dashboard(request: Request):
    view = getattr(request.app.state, "dashboard_view", None)
    state = view.state if view is not None else None
    if state is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Dashboard view has not been computed yet"
        )

    return DashboardStateResponse(
        computed_at=state.computed_at,
        metrics=DashboardMetricsResponse.from_domain(state.metrics),
        tickets=[
            TicketSLAResponse.from_domain(ticket, snapshot)
            for ticket, snapshot in zip(state.tickets, state.snapshots)
        ],
    )


@router.get(
    "/tickets",
    response_model=TicketSLAListResponse,
    summary="List tickets with SLA status",
    description="""
    SLA snapshot of every ticket matching the filters.

    **Query Parameters:**
    - `status`: open, in_progress, resolved, closed
    - `priority`: critical, high, medium, low
    - `category`: free-form ticket category
    - `urgency`: safe, warning, critical, breached
    """
)
async def list_ticket_slas(
    ticket_status: Optional[TicketStatusStr] = Query(None, alias="status"),
    priority: Optional[PriorityStr] = Query(None),
    category: Optional[str] = Query(None),
    urgency: Optional[UrgencyStateStr] = Query(None),
    sla_service: SLAService = Depends(get_sla_service)
):
    query = TicketQueryDTO(
        status=ticket_status, priority=priority, category=category, urgency=urgency
    )
    evaluated_at, pairs = await sla_service.list_ticket_slas(query)

    return TicketSLAListResponse(
        evaluated_at=evaluated_at,
        total_count=len(pairs),
        tickets=[TicketSLAResponse.from_domain(t, s) for t, s in pairs],
    )


@router.get(
    "/tickets/{ticket_id}",
    response_model=TicketSLAResponse,
    summary="Get ticket SLA status",
    responses={
        200: {
            "description": "Ticket SLA information",
            "content": {"application/json": {"example": TICKET_SLA_EXAMPLE}}
        },
        404: {"description": "Ticket not found"},
        422: {"description": "Ticket data is inconsistent (e.g. resolved before created)"}
    }
)
async def get_ticket_sla(
    ticket_id: str,
    sla_service: SLAService = Depends(get_sla_service)
):
    ticket, snapshot = await sla_service.get_ticket_sla(ticket_id)
    return TicketSLAResponse.from_domain(ticket, snapshot)


# Export router for inclusion in main app
sla_router = router
