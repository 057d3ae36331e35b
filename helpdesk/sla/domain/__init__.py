"""
SLA Domain Layer
================

Domain layer for SLA monitoring module.

Contains:
- Entities: Core business objects (Ticket, DashboardMetrics, TrendPoint)
- Value Objects: Immutable objects defined by attributes (SLAPolicy, SLASnapshot)
- Domain Services: Stateless business logic (SLACalculator, FleetAggregator)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from helpdesk.sla.domain.value_objects import (
    SLACalculator,
    SLAPolicy,
    SLAThresholds,
    SLASnapshot,
    DEFAULT_SLA_POLICY,
    DEFAULT_DURATIONS_HOURS,
    format_time_remaining,
)
from helpdesk.sla.domain.entities import Ticket, DashboardMetrics, TrendPoint
from helpdesk.sla.domain.aggregator import FleetAggregator

__all__ = [
    # Entities
    "Ticket",
    "DashboardMetrics",
    "TrendPoint",
    # Value Objects & Services
    "SLACalculator",
    "SLAPolicy",
    "SLAThresholds",
    "SLASnapshot",
    "DEFAULT_SLA_POLICY",
    "DEFAULT_DURATIONS_HOURS",
    "FleetAggregator",
    "format_time_remaining",
]
