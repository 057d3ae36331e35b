"""
Fleet Aggregator
================

Folds per-ticket SLA snapshots into dashboard metrics.

One ``now`` per batch: every snapshot in an aggregate is taken at the same
instant, otherwise compliance and trend numbers would contradict each other.
"""

from collections import Counter
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterable, List, Sequence, Tuple

from helpdesk.config import (
    TicketStatus, VALID_PRIORITIES, VALID_URGENCY_STATES
)
from helpdesk.sla.domain.entities import DashboardMetrics, Ticket, TrendPoint
from helpdesk.sla.domain.value_objects import (
    DEFAULT_SLA_POLICY, SLACalculator, SLAPolicy, SLASnapshot
)


class FleetAggregator:
    """
    Read-only fold over a ticket batch.

    Holds only configuration (policy, trend window, timezone), so one
    instance can be shared by any number of callers.
    """

    def __init__(
        self,
        policy: SLAPolicy = DEFAULT_SLA_POLICY,
        trend_window_days: int = 7,
        tz: tzinfo = timezone.utc
    ):
        if trend_window_days < 1:
            raise ValueError("trend_window_days must be at least 1")
        self._policy = policy
        self._trend_window_days = trend_window_days
        self._tz = tz

    @property
    def policy(self) -> SLAPolicy:
        return self._policy

    def snapshots(self, tickets: Iterable[Ticket], now: datetime) -> Tuple[SLASnapshot, ...]:
        """Snapshot every ticket at the same instant."""
        return tuple(SLACalculator.snapshot(t, now, self._policy) for t in tickets)

    def aggregate(self, tickets: Sequence[Ticket], now: datetime) -> DashboardMetrics:
        """Compute dashboard metrics for ``tickets`` as of ``now``."""
        tickets = tuple(tickets)
        return self.aggregate_snapshots(tickets, self.snapshots(tickets, now), now)

    def aggregate_snapshots(
        self,
        tickets: Sequence[Ticket],
        snapshots: Sequence[SLASnapshot],
        now: datetime
    ) -> DashboardMetrics:
        """
        Fold already computed snapshots.

        ``snapshots`` must be aligned with ``tickets`` and taken at ``now``;
        the cached dashboard view uses this so that the states it displays
        and the counts it reports come from the same computation.
        """
        if len(tickets) != len(snapshots):
            raise ValueError("tickets and snapshots must be aligned")

        status_counts: Counter = Counter()
        priority_counts: Counter = Counter({p: 0 for p in VALID_PRIORITIES})
        urgency_counts: Counter = Counter({u: 0 for u in VALID_URGENCY_STATES})
        category_counts: Counter = Counter()

        breached = 0
        resolved_count = 0
        resolution_total = timedelta(0)

        trend_days = self._trend_days(now)
        window = set(trend_days)
        created_by_day: Counter = Counter()
        resolved_by_day: Counter = Counter()

        for ticket, snap in zip(tickets, snapshots):
            status_counts[ticket.status] += 1
            priority_counts[ticket.priority] += 1
            category_counts[ticket.category] += 1
            urgency_counts[snap.urgency_state] += 1

            if snap.is_breached:
                breached += 1

            created_day = self._local_date(ticket.created_at)
            if created_day in window:
                created_by_day[created_day] += 1

            if ticket.resolved_at is not None:
                resolved_count += 1
                resolution_total += ticket.resolved_at - ticket.created_at
                resolved_day = self._local_date(ticket.resolved_at)
                if resolved_day in window:
                    resolved_by_day[resolved_day] += 1

        total = len(tickets)
        if resolved_count:
            average_hours = round(resolution_total.total_seconds() / resolved_count / 3600, 1)
        else:
            average_hours = 0.0

        if total:
            compliance = round((total - breached) / total * 100, 1)
        else:
            # An empty fleet cannot be in breach
            compliance = 100.0

        return DashboardMetrics(
            generated_at=now,
            total_tickets=total,
            open_tickets=status_counts[TicketStatus.OPEN],
            in_progress_tickets=status_counts[TicketStatus.IN_PROGRESS],
            resolved_tickets=status_counts[TicketStatus.RESOLVED],
            closed_tickets=status_counts[TicketStatus.CLOSED],
            breached_sla=breached,
            average_resolution_hours=average_hours,
            sla_compliance=compliance,
            tickets_by_priority=dict(priority_counts),
            tickets_by_category=dict(category_counts),
            tickets_by_urgency=dict(urgency_counts),
            resolution_trend=[
                TrendPoint(date=day, created=created_by_day[day], resolved=resolved_by_day[day])
                for day in trend_days
            ],
        )

    def _local_date(self, instant: datetime) -> date:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        return instant.astimezone(self._tz).date()

    def _trend_days(self, now: datetime) -> List[date]:
        """Calendar days of the trailing window, oldest first, ending on today."""
        today = self._local_date(now)
        return [
            today - timedelta(days=offset)
            for offset in range(self._trend_window_days - 1, -1, -1)
        ]
