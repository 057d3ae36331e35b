"""
SLA Application Layer
======================

Application layer for SLA monitoring module.

Contains:
- Services: Orchestrate business logic and coordinate with repositories
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from helpdesk.sla.application.dto import (
    TicketRecordDTO,
    TicketQueryDTO,
    SLASnapshotResponse,
    TicketSLAResponse,
    TicketSLAListResponse,
    TrendPointResponse,
    DashboardMetricsResponse,
    DashboardStateResponse,
    SLAPolicyResponse,
)
from helpdesk.sla.application.services import (
    SLAService,
    SLADashboardView,
    DashboardState,
    ITicketRepository,
    ISLAPolicyProvider,
)

__all__ = [
    # DTOs
    "TicketRecordDTO",
    "TicketQueryDTO",
    "SLASnapshotResponse",
    "TicketSLAResponse",
    "TicketSLAListResponse",
    "TrendPointResponse",
    "DashboardMetricsResponse",
    "DashboardStateResponse",
    "SLAPolicyResponse",
    # Services
    "SLAService",
    "SLADashboardView",
    "DashboardState",
    # Repository Interfaces
    "ITicketRepository",
    "ISLAPolicyProvider",
]
