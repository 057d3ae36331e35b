"""
Unit tests for FleetAggregator

Tests:
- Empty fleet
- Compliance, breach and average resolution figures
- Per-priority, per-category and per-urgency tallies
- Daily creation/resolution trend
"""
import copy
from datetime import date, timedelta, timezone

import pytest

from helpdesk.sla.domain import FleetAggregator
from tests.conftest import T0, make_ticket


@pytest.fixture
def aggregator():
    return FleetAggregator()


class TestEmptyFleet:
    """Test aggregation over no tickets"""

    def test_empty_fleet(self, aggregator):
        metrics = aggregator.aggregate([], T0)

        assert metrics.total_tickets == 0
        assert metrics.breached_sla == 0
        assert metrics.sla_compliance == 100.0
        assert metrics.average_resolution_hours == 0.0
        assert metrics.tickets_by_category == {}
        assert metrics.tickets_by_priority == {"critical": 0, "high": 0, "medium": 0, "low": 0}
        assert metrics.tickets_by_urgency == {"safe": 0, "warning": 0, "critical": 0, "breached": 0}

    def test_empty_fleet_still_has_trend_rows(self, aggregator):
        metrics = aggregator.aggregate([], T0)
        assert len(metrics.resolution_trend) == 7
        assert all(p.created == 0 and p.resolved == 0 for p in metrics.resolution_trend)


class TestFleetMetrics:
    """Test the three-ticket fleet"""

    def test_compliance_and_breaches(self, aggregator, fleet, fleet_now):
        metrics = aggregator.aggregate(fleet, fleet_now)

        assert metrics.total_tickets == 3
        assert metrics.breached_sla == 1
        assert metrics.sla_compliance == 66.7
        assert metrics.generated_at == fleet_now

    def test_status_counts(self, aggregator, fleet, fleet_now):
        metrics = aggregator.aggregate(fleet, fleet_now)

        assert metrics.open_tickets == 2
        assert metrics.in_progress_tickets == 0
        assert metrics.resolved_tickets == 1
        assert metrics.closed_tickets == 0

    def test_average_resolution(self, aggregator, fleet, fleet_now):
        metrics = aggregator.aggregate(fleet, fleet_now)
        assert metrics.average_resolution_hours == 5.5

    def test_average_resolution_rounds(self, aggregator):
        tickets = [
            make_ticket("TCK-1", "low", resolved_at=T0 + timedelta(minutes=20)),
            make_ticket("TCK-2", "low", resolved_at=T0 + timedelta(minutes=40)),
            make_ticket("TCK-3", "low", resolved_at=T0 + timedelta(minutes=45)),
        ]
        metrics = aggregator.aggregate(tickets, T0 + timedelta(hours=1))
        # (20 + 40 + 45) / 3 = 35 minutes
        assert metrics.average_resolution_hours == 0.6

    def test_tallies(self, aggregator, fleet, fleet_now):
        metrics = aggregator.aggregate(fleet, fleet_now)

        assert metrics.tickets_by_priority == {"critical": 2, "high": 0, "medium": 0, "low": 1}
        assert metrics.tickets_by_category == {"network": 2, "hardware": 1}
        assert metrics.tickets_by_urgency == {"safe": 2, "warning": 0, "critical": 0, "breached": 1}

    def test_urgency_counts_match_total(self, aggregator, fleet, fleet_now):
        metrics = aggregator.aggregate(fleet, fleet_now)
        assert sum(metrics.tickets_by_urgency.values()) == metrics.total_tickets

    def test_input_is_not_mutated(self, aggregator, fleet, fleet_now):
        before = copy.deepcopy(fleet)
        aggregator.aggregate(fleet, fleet_now)
        assert fleet == before

    def test_same_batch_same_instant_same_result(self, aggregator, fleet, fleet_now):
        assert aggregator.aggregate(fleet, fleet_now) == aggregator.aggregate(fleet, fleet_now)

    def test_to_dict_uses_dashboard_names(self, aggregator, fleet, fleet_now):
        data = aggregator.aggregate(fleet, fleet_now).to_dict()

        assert data["totalTickets"] == 3
        assert data["breachedSLA"] == 1
        assert data["slaCompliance"] == 66.7
        assert data["averageResolutionTime"] == 5.5
        assert data["resolutionTrend"][-1] == {"date": "2024-01-15", "created": 3, "resolved": 1}


class TestResolutionTrend:
    """Test the daily trend"""

    def test_trend_is_chronological_and_ends_today(self, aggregator, fleet, fleet_now):
        trend = aggregator.aggregate(fleet, fleet_now).resolution_trend

        assert [p.date for p in trend] == [
            date(2024, 1, 9) + timedelta(days=i) for i in range(7)
        ]
        assert trend[-1].created == 3
        assert trend[-1].resolved == 1
        assert all(p.created == 0 and p.resolved == 0 for p in trend[:-1])

    def test_created_and_resolved_same_day(self, aggregator):
        ticket = make_ticket("TCK-1", "high", resolved_at=T0 + timedelta(hours=3))
        trend = aggregator.aggregate([ticket], T0 + timedelta(hours=4)).resolution_trend

        assert trend[-1].date == date(2024, 1, 15)
        assert (trend[-1].created, trend[-1].resolved) == (1, 1)

    def test_tickets_outside_window_are_ignored(self, aggregator):
        old = make_ticket(
            "TCK-OLD", "low", created_at=T0 - timedelta(days=20),
            resolved_at=T0 - timedelta(days=3),
        )
        trend = aggregator.aggregate([old], T0).resolution_trend

        assert sum(p.created for p in trend) == 0
        assert sum(p.resolved for p in trend) == 1
        assert trend[3].date == date(2024, 1, 12)
        assert trend[3].resolved == 1

    def test_custom_window(self, fleet, fleet_now):
        trend = FleetAggregator(trend_window_days=30).aggregate(fleet, fleet_now).resolution_trend
        assert len(trend) == 30
        assert trend[0].date == date(2023, 12, 17)

    def test_days_are_bucketed_in_dashboard_timezone(self):
        """03:00 UTC on the 15th is still the 14th five hours west"""
        tz = timezone(timedelta(hours=-5))
        ticket = make_ticket("TCK-1", "low", created_at=T0.replace(hour=3))
        trend = FleetAggregator(tz=tz).aggregate([ticket], T0 + timedelta(hours=9)).resolution_trend

        assert trend[-1].date == date(2024, 1, 15)
        assert trend[-1].created == 0
        assert trend[-2].date == date(2024, 1, 14)
        assert trend[-2].created == 1

    def test_window_must_be_positive(self):
        with pytest.raises(ValueError):
            FleetAggregator(trend_window_days=0)


class TestAggregateSnapshots:
    """Test folding precomputed snapshots"""

    def test_matches_aggregate(self, aggregator, fleet, fleet_now):
        snapshots = aggregator.snapshots(fleet, fleet_now)
        assert aggregator.aggregate_snapshots(fleet, snapshots, fleet_now) == \
            aggregator.aggregate(fleet, fleet_now)

    def test_misaligned_input(self, aggregator, fleet, fleet_now):
        snapshots = aggregator.snapshots(fleet[:2], fleet_now)
        with pytest.raises(ValueError):
            aggregator.aggregate_snapshots(fleet, snapshots, fleet_now)
