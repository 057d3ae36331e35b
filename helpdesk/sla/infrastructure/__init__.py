"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for SLA monitoring:
- Models: SQLAlchemy ORM mapping of the ticket store
- Repositories: Ticket store adapters and the YAML policy provider
- External: APScheduler driver for the dashboard refresh
"""

from helpdesk.sla.infrastructure.models import TicketModel
from helpdesk.sla.infrastructure.repositories import (
    SQLAlchemyTicketRepository,
    InMemoryTicketRepository,
    YAMLPolicyProvider,
    StaticPolicyProvider,
)
from helpdesk.sla.infrastructure.external import SLARefreshScheduler

__all__ = [
    "TicketModel",
    "SQLAlchemyTicketRepository",
    "InMemoryTicketRepository",
    "YAMLPolicyProvider",
    "StaticPolicyProvider",
    "SLARefreshScheduler",
]
