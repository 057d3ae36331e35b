"""
Shared fixtures for the SLA test suite.

All tests run against a fixed clock; nothing reads the wall clock.
"""
from datetime import datetime, timedelta, timezone

import pytest

from helpdesk.config import TicketStatus
from helpdesk.sla.domain import DEFAULT_SLA_POLICY, Ticket

# Monday 2024-01-15 10:00 UTC
T0 = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


def make_ticket(
    ticket_id="TCK-1",
    priority="critical",
    created_at=T0,
    resolved_at=None,
    category="network",
    status=None,
    policy=DEFAULT_SLA_POLICY,
):
    """Open a ticket through the domain factory, then walk it to ``status``."""
    ticket = Ticket.open(
        ticket_id,
        priority,
        created_at,
        category=category,
        title=f"Ticket {ticket_id}",
        policy=policy,
    )
    if status == TicketStatus.IN_PROGRESS:
        ticket.start_progress()
    if resolved_at is not None:
        ticket.mark_resolved(resolved_at)
    if status == TicketStatus.CLOSED:
        ticket.mark_closed(resolved_at or created_at)
    return ticket


@pytest.fixture
def ticket_factory():
    """Factory for domain tickets with sensible defaults"""
    return make_ticket


@pytest.fixture
def fleet_now():
    """Evaluation instant for the three-ticket fleet"""
    return T0 + timedelta(hours=9)


@pytest.fixture
def fleet():
    """
    Three tickets seen at T0 + 9h:

    - TCK-A critical, open, deadline T0+8h -> breached
    - TCK-B critical, resolved after 5.5h, before its deadline -> safe
    - TCK-C low, open, 111h of 120h left -> safe
    """
    return [
        make_ticket("TCK-A", "critical", T0, category="network"),
        make_ticket(
            "TCK-B", "critical", T0 + timedelta(hours=2),
            resolved_at=T0 + timedelta(hours=7, minutes=30),
            category="network",
        ),
        make_ticket("TCK-C", "low", T0, category="hardware"),
    ]
