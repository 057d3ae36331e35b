"""
Unit tests for SLA application services

Tests:
- On-demand SLA evaluation (SLAService)
- Cached dashboard view refresh and its single-writer guarantee
- APScheduler wrapper
"""
import asyncio
import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from helpdesk.config import UrgencyState
from helpdesk.core import ResourceNotFoundException
from helpdesk.sla.application import SLADashboardView, SLAService, TicketQueryDTO
from helpdesk.sla.domain import FleetAggregator
from helpdesk.sla.infrastructure import (
    InMemoryTicketRepository,
    SLARefreshScheduler,
    StaticPolicyProvider,
)
from tests.conftest import T0, make_ticket


@pytest.fixture
def sla_service(fleet, fleet_now):
    return SLAService(
        InMemoryTicketRepository(fleet),
        StaticPolicyProvider(),
        clock=lambda: fleet_now,
    )


class TestSLAService:
    """Test on-demand evaluation"""

    @pytest.mark.asyncio
    async def test_get_ticket_sla(self, sla_service, fleet_now):
        ticket, snapshot = await sla_service.get_ticket_sla("TCK-A")

        assert ticket.id == "TCK-A"
        assert snapshot.reference_instant == fleet_now
        assert snapshot.urgency_state == UrgencyState.BREACHED

    @pytest.mark.asyncio
    async def test_get_unknown_ticket(self, sla_service):
        with pytest.raises(ResourceNotFoundException) as exc_info:
            await sla_service.get_ticket_sla("TCK-404")
        assert exc_info.value.resource_id == "TCK-404"

    @pytest.mark.asyncio
    async def test_list_shares_one_instant(self, sla_service, fleet_now):
        evaluated_at, pairs = await sla_service.list_ticket_slas()

        assert evaluated_at == fleet_now
        assert len(pairs) == 3
        open_refs = {s.reference_instant for t, s in pairs if not s.is_resolved}
        assert open_refs == {fleet_now}

    @pytest.mark.asyncio
    async def test_list_filtered_by_urgency(self, sla_service):
        _, pairs = await sla_service.list_ticket_slas(TicketQueryDTO(urgency="breached"))
        assert [t.id for t, _ in pairs] == ["TCK-A"]

    @pytest.mark.asyncio
    async def test_list_filtered_by_store_fields(self, sla_service):
        _, pairs = await sla_service.list_ticket_slas(
            TicketQueryDTO(category="network", urgency="safe")
        )
        assert [t.id for t, _ in pairs] == ["TCK-B"]

    @pytest.mark.asyncio
    async def test_dashboard_metrics(self, sla_service, fleet_now):
        metrics = await sla_service.get_dashboard_metrics()

        assert metrics.generated_at == fleet_now
        assert metrics.sla_compliance == 66.7

    def test_query_store_filters(self):
        query = TicketQueryDTO(status="open", urgency="warning")
        assert query.store_filters() == {"status": "open"}


@pytest.fixture
def view(fleet_now):
    return SLADashboardView(FleetAggregator(), clock=lambda: fleet_now)


class TestSLADashboardView:
    """Test the cached dashboard view"""

    def test_no_state_before_first_refresh(self, view):
        assert view.state is None
        assert view.is_refreshing is False

    @pytest.mark.asyncio
    async def test_refresh_publishes_state(self, view, fleet, fleet_now):
        view.replace_tickets(fleet)
        state = await view.refresh()

        assert view.state is state
        assert state.computed_at == fleet_now
        assert state.metrics.total_tickets == 3
        assert [s.ticket_id for s in state.snapshots] == [t.id for t in state.tickets]

    @pytest.mark.asyncio
    async def test_refresh_moves_time_forward(self, view):
        view.replace_tickets([make_ticket("TCK-1", "critical")])

        early = await view.refresh(T0 + timedelta(hours=1))
        late = await view.refresh(T0 + timedelta(hours=7, minutes=30))

        assert early.snapshots[0].urgency_state == UrgencyState.SAFE
        assert late.snapshots[0].urgency_state == UrgencyState.CRITICAL
        # Published states are never modified afterwards
        assert early.snapshots[0].urgency_state == UrgencyState.SAFE

    @pytest.mark.asyncio
    async def test_reload_picked_up_by_next_refresh(self, view, fleet):
        view.replace_tickets(fleet[:1])
        first = await view.refresh()
        view.replace_tickets(fleet)
        assert view.state is first
        second = await view.refresh()

        assert first.metrics.total_tickets == 1
        assert second.metrics.total_tickets == 3

    @pytest.mark.asyncio
    async def test_overlapping_refresh_is_skipped(self, view, fleet, fleet_now):
        """A tick arriving while a refresh is in flight does nothing"""
        view.replace_tickets(fleet)
        gate = threading.Event()
        compute = view._compute

        def slow_compute(tickets, now):
            gate.wait(timeout=5)
            return compute(tickets, now)

        view._compute = slow_compute

        in_flight = asyncio.create_task(view.refresh())
        for _ in range(100):
            if view.is_refreshing:
                break
            await asyncio.sleep(0)
        assert view.is_refreshing

        skipped = await view.refresh()
        gate.set()
        published = await in_flight

        assert skipped is None
        assert view.skipped_refreshes == 1
        assert view.state is published
        assert published.computed_at == fleet_now

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_last_state(self, view, fleet):
        view.replace_tickets(fleet)
        previous = await view.refresh()

        view._compute = MagicMock(side_effect=RuntimeError("boom"))
        with pytest.raises(RuntimeError):
            await view.refresh()

        assert view.state is previous
        assert view.is_refreshing is False

    @pytest.mark.asyncio
    async def test_reload_view(self, view, sla_service):
        count = await sla_service.reload_view(view)
        assert count == 3
        assert view.ticket_count == 3


class TestSLARefreshScheduler:
    """Test the APScheduler wrapper"""

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        async def job():
            pass

        scheduler = SLARefreshScheduler(interval_seconds=60)
        await scheduler.start(job)

        assert scheduler.is_running
        assert scheduler.job_ids == [SLARefreshScheduler.REFRESH_JOB_ID]
        aps_job = scheduler._scheduler.get_job(SLARefreshScheduler.REFRESH_JOB_ID)
        assert aps_job.max_instances == 1
        assert aps_job.coalesce is True

        await scheduler.stop()
        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_zero_interval_disables(self):
        async def job():
            pass

        scheduler = SLARefreshScheduler(interval_seconds=0)
        await scheduler.start(job)

        assert not scheduler.is_running
        assert scheduler.job_ids == []

    @pytest.mark.asyncio
    async def test_jobs_with_own_interval(self):
        async def refresh():
            pass

        async def reload():
            pass

        scheduler = SLARefreshScheduler(interval_seconds=60)
        scheduler.add_job(reload, SLARefreshScheduler.RELOAD_JOB_ID, "reload", interval_seconds=300)
        await scheduler.start(refresh)

        reload_job = scheduler._scheduler.get_job(SLARefreshScheduler.RELOAD_JOB_ID)
        assert reload_job.trigger.interval == timedelta(seconds=300)
        assert set(scheduler.job_ids) == {
            SLARefreshScheduler.REFRESH_JOB_ID, SLARefreshScheduler.RELOAD_JOB_ID
        }

        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_stop_when_not_running(self):
        scheduler = SLARefreshScheduler()
        await scheduler.stop()
        assert not scheduler.is_running
