"""
SLA Application Services
=========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: Each service has one clear purpose
- Dependency Inversion: Depend on abstractions (repositories, clock), not
  concrete implementations
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import List, Optional, Sequence, Tuple

from helpdesk.core import ResourceNotFoundException
from helpdesk.shared.clock import Clock, utc_now
from helpdesk.shared.infrastructure.logging import get_logger, log_latency
from helpdesk.sla.application.dto import TicketQueryDTO
from helpdesk.sla.domain import (
    DashboardMetrics, FleetAggregator, SLACalculator, SLAPolicy, SLASnapshot, Ticket
)

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """
    Read-only access to the ticket store.

    The SLA engine never writes tickets; creation and updates belong to the
    ticketing CRUD surface.
    """

    @abstractmethod
    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID."""

    @abstractmethod
    async def list(self, filters: Optional[dict] = None) -> List[Ticket]:
        """List tickets matching ``filters`` (status, priority, category)."""


class ISLAPolicyProvider(ABC):
    """Interface for SLA policy access."""

    @abstractmethod
    def get_policy(self) -> SLAPolicy:
        """Get the process-wide SLA policy."""


# ========== Application Services ==========

class SLAService:
    """
    Service for on-demand SLA evaluation.

    Every call fetches a single ticket batch and reads the clock exactly
    once, so all snapshots in a response share the same ``now``.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        policy_provider: ISLAPolicyProvider,
        clock: Clock = utc_now,
        trend_window_days: int = 7,
        tz: tzinfo = timezone.utc
    ):
        self._ticket_repo = ticket_repository
        self._policy_provider = policy_provider
        self._clock = clock
        self._aggregator = FleetAggregator(
            policy_provider.get_policy(), trend_window_days=trend_window_days, tz=tz
        )

    @property
    def policy(self) -> SLAPolicy:
        return self._aggregator.policy

    async def get_ticket_sla(self, ticket_id: str) -> Tuple[Ticket, SLASnapshot]:
        """
        Snapshot a single ticket.

        Raises:
            ResourceNotFoundException: unknown ticket
            InvalidTimestampException: ticket data is inconsistent
        """
        ticket = await self._ticket_repo.get_by_id(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return ticket, SLACalculator.snapshot(ticket, self._clock(), self.policy)

    async def list_ticket_slas(
        self,
        query: Optional[TicketQueryDTO] = None
    ) -> Tuple[datetime, List[Tuple[Ticket, SLASnapshot]]]:
        """
        Snapshot every ticket matching ``query``.

        Urgency is derived, so it is filtered after the snapshots are taken.

        Returns:
            (evaluation instant, [(ticket, snapshot), ...])
        """
        query = query or TicketQueryDTO()
        tickets = await self._ticket_repo.list(query.store_filters())
        now = self._clock()
        pairs = list(zip(tickets, self._aggregator.snapshots(tickets, now)))
        if query.urgency:
            pairs = [(t, s) for t, s in pairs if s.urgency_state == query.urgency]
        return now, pairs

    async def get_dashboard_metrics(self, filters: Optional[dict] = None) -> DashboardMetrics:
        """Aggregate a freshly fetched batch."""
        tickets = await self._ticket_repo.list(filters or {})
        now = self._clock()
        with log_latency(logger, "dashboard_aggregation", tickets=len(tickets)):
            return self._aggregator.aggregate(tickets, now)

    async def reload_view(self, view: "SLADashboardView") -> int:
        """
        Fetch the full ticket batch and hand it to the cached view.

        This is the only path that touches the store; the view's periodic
        refresh only recomputes time-dependent fields.
        """
        tickets = await self._ticket_repo.list({})
        view.replace_tickets(tickets)
        logger.info("Dashboard view reloaded", extra={"tickets": len(tickets)})
        return len(tickets)


@dataclass(frozen=True)
class DashboardState:
    """Immutable result of one dashboard refresh."""
    computed_at: datetime
    tickets: Tuple[Ticket, ...]
    snapshots: Tuple[SLASnapshot, ...]
    metrics: DashboardMetrics


class SLADashboardView:
    """
    Cached dashboard view with a single writer.

    Readers only ever see a fully published :class:`DashboardState`; a
    refresh builds the next state off to the side and swaps it in with one
    assignment. Overlapping refreshes are skipped, not queued.
    """

    def __init__(self, aggregator: FleetAggregator, clock: Clock = utc_now):
        self._aggregator = aggregator
        self._clock = clock
        self._tickets: Tuple[Ticket, ...] = ()
        self._state: Optional[DashboardState] = None
        self._lock = asyncio.Lock()
        self._skipped = 0

    @property
    def state(self) -> Optional[DashboardState]:
        """Last published state, or None before the first refresh."""
        return self._state

    @property
    def is_refreshing(self) -> bool:
        return self._lock.locked()

    @property
    def skipped_refreshes(self) -> int:
        return self._skipped

    @property
    def ticket_count(self) -> int:
        return len(self._tickets)

    def replace_tickets(self, tickets: Sequence[Ticket]) -> None:
        """Swap in a new ticket batch; picked up by the next refresh."""
        self._tickets = tuple(tickets)

    async def refresh(self, now: Optional[datetime] = None) -> Optional[DashboardState]:
        """
        Recompute snapshots and metrics for the current batch.

        Returns:
            The newly published state, or None when another refresh was
            still running and this one was skipped.
        """
        if self._lock.locked():
            self._skipped += 1
            logger.warning(
                "Dashboard refresh still in flight, skipping tick",
                extra={"skipped_refreshes": self._skipped}
            )
            return None

        async with self._lock:
            tickets = self._tickets
            now = now or self._clock()
            with log_latency(logger, "dashboard_refresh", tickets=len(tickets)):
                state = await asyncio.to_thread(self._compute, tickets, now)
            self._state = state
            return state

    def _compute(self, tickets: Tuple[Ticket, ...], now: datetime) -> DashboardState:
        snapshots = self._aggregator.snapshots(tickets, now)
        metrics = self._aggregator.aggregate_snapshots(tickets, snapshots, now)
        return DashboardState(
            computed_at=now,
            tickets=tickets,
            snapshots=snapshots,
            metrics=metrics,
        )
