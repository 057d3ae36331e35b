"""
SLA Infrastructure Repositories
=================================

Concrete implementations of the repository interfaces.

- SQLAlchemyTicketRepository: reads the ticket store (async SQLAlchemy)
- InMemoryTicketRepository: materialized batch for demos, serverless and tests
- YAMLPolicyProvider: SLA policy loaded once from YAML
"""

from pathlib import Path
from typing import Dict, Iterable, List, Optional

import yaml
from pydantic import ValidationError
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core import ConfigurationException, RepositoryException
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.sla.application import (
    ISLAPolicyProvider, ITicketRepository, TicketRecordDTO
)
from helpdesk.sla.domain import DEFAULT_SLA_POLICY, SLAPolicy, Ticket
from helpdesk.sla.infrastructure.models import TicketModel

logger = get_logger(__name__)

FILTERABLE_FIELDS = ("status", "priority", "category")


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of the ticket repository.

    Read only: rows are converted to domain Tickets and the session is
    never flushed.
    """

    def __init__(self, session: AsyncSession, policy: SLAPolicy = DEFAULT_SLA_POLICY):
        self._session = session
        self._policy = policy

    def _to_domain(self, model: TicketModel) -> Ticket:
        return TicketRecordDTO(
            id=str(model.id),
            priority=model.priority,
            status=model.status,
            category=model.category,
            title=model.title,
            created_at=model.created_at,
            sla_deadline=model.sla_deadline,
            resolved_at=model.resolved_at,
            closed_at=model.closed_at,
        ).to_domain(self._policy)

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID."""
        stmt = select(TicketModel).where(TicketModel.id == ticket_id)
        try:
            result = await self._session.execute(stmt)
        except Exception as e:
            raise RepositoryException(f"Failed to load ticket {ticket_id}: {e}") from e

        model = result.scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    async def list(self, filters: Optional[dict] = None) -> List[Ticket]:
        """List tickets with filters, newest first."""
        filters = filters or {}
        stmt = select(TicketModel)

        conditions = []
        for name in FILTERABLE_FIELDS:
            if name not in filters:
                continue
            column = getattr(TicketModel, name)
            value = filters[name]
            if isinstance(value, (list, tuple, set)):
                conditions.append(column.in_(list(value)))
            else:
                conditions.append(column == value)

        if conditions:
            stmt = stmt.where(and_(*conditions))

        stmt = stmt.order_by(TicketModel.created_at.desc())

        try:
            result = await self._session.execute(stmt)
        except Exception as e:
            raise RepositoryException(f"Failed to list tickets: {e}") from e

        return [self._to_domain(model) for model in result.scalars().all()]


class InMemoryTicketRepository(ITicketRepository):
    """Ticket store backed by a dict, keyed by ticket id."""

    def __init__(self, tickets: Iterable[Ticket] = ()):
        self._tickets: Dict[str, Ticket] = {}
        for ticket in tickets:
            self.add(ticket)

    def add(self, ticket: Ticket) -> None:
        if ticket.id in self._tickets:
            raise RepositoryException(f"Ticket {ticket.id} already exists")
        self._tickets[ticket.id] = ticket

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        return self._tickets.get(ticket_id)

    async def list(self, filters: Optional[dict] = None) -> List[Ticket]:
        filters = filters or {}
        tickets = list(self._tickets.values())
        for name in FILTERABLE_FIELDS:
            if name not in filters:
                continue
            value = filters[name]
            allowed = set(value) if isinstance(value, (list, tuple, set)) else {value}
            tickets = [t for t in tickets if getattr(t, name) in allowed]
        return sorted(tickets, key=lambda t: t.created_at, reverse=True)


class YAMLPolicyProvider(ISLAPolicyProvider):
    """
    SLA policy provider that loads from YAML.

    The file is read once, at construction. There is no hot reload: the
    policy is process-wide and immutable for the lifetime of the process.

    Expected shape::

        durations_hours:
          critical: 8
          high: 24
          medium: 72
          low: 120
        thresholds:
          critical: 10
          warning: 25
    """

    def __init__(self, policy_path: Path):
        self._policy_path = Path(policy_path)
        self._policy = self._load_policy()

    def _load_policy(self) -> SLAPolicy:
        """Load policy from YAML file, falling back to defaults when absent."""
        if not self._policy_path.exists():
            logger.info(
                "SLA policy file not found, using defaults",
                extra={"policy_path": str(self._policy_path)}
            )
            return DEFAULT_SLA_POLICY

        try:
            with open(self._policy_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationException(
                f"Cannot read SLA policy file {self._policy_path}: {e}"
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationException(
                f"SLA policy file {self._policy_path} must contain a mapping"
            )

        try:
            policy = SLAPolicy(**data)
        except ValidationError as e:
            raise ConfigurationException(
                f"Invalid SLA policy in {self._policy_path}",
                {"errors": e.errors(include_url=False)}
            ) from e

        logger.info(
            "SLA policy loaded",
            extra={"policy_path": str(self._policy_path), "durations_hours": policy.durations_hours}
        )
        return policy

    def get_policy(self) -> SLAPolicy:
        """Get the SLA policy."""
        return self._policy


class StaticPolicyProvider(ISLAPolicyProvider):
    """Policy provider around an already built policy."""

    def __init__(self, policy: SLAPolicy = DEFAULT_SLA_POLICY):
        self._policy = policy

    def get_policy(self) -> SLAPolicy:
        return self._policy
