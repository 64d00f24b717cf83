"""Tests for TimePeriod, Timeline and PeriodEntityAggregate."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from finmodel.models.events import AmountParams, RecurringEvent
from finmodel.models.flow import INFLOW, OUTFLOW
from finmodel.models.period import TimePeriod, Timeline, add_months


@pytest.fixture
def period(start):
    return TimePeriod(start=start, end=datetime(2024, 2, 1))


def apply_all(version, amounts):
    """Apply recurring events in order, returning the versions and flows."""
    flows = []
    current = version
    for i, amount in enumerate(amounts):
        event = RecurringEvent(
            id=f"e{i}", event_type="deposit" if amount > 0 else "fee",
            params=AmountParams(amount=amount),
        )
        after = event.apply(current)
        flows.extend(event.generate_flows(current, after))
        current = after
    return current, flows


class TestAddMonths:
    """Test cases for month arithmetic."""

    def test_simple(self):
        assert add_months(datetime(2024, 1, 15), 1) == datetime(2024, 2, 15)

    def test_year_rollover(self):
        assert add_months(datetime(2024, 11, 1), 3) == datetime(2025, 2, 1)

    def test_clamps_day(self):
        assert add_months(datetime(2024, 1, 31), 1) == datetime(2024, 2, 29)


class TestTimePeriod:
    """Test cases for TimePeriod."""

    def test_defaults(self, period):
        assert period.risk_free_rate == 3.5
        assert period.inflation == 2.0
        assert period.events == []

    def test_end_before_start_rejected(self, start):
        with pytest.raises(ValidationError):
            TimePeriod(start=start, end=datetime(2023, 12, 1))

    def test_add_event_preserves_order(self, period):
        first = RecurringEvent(id="a")
        second = RecurringEvent(id="b")
        period.add_event(first)
        period.add_event(second)
        assert [e.id for e in period.events] == ["a", "b"]

    def test_contains_is_half_open(self, period):
        assert period.contains(datetime(2024, 1, 1))
        assert period.contains(datetime(2024, 1, 31, 23))
        assert not period.contains(datetime(2024, 2, 1))

    def test_final_version(self, period, savings, savings_version):
        later = savings_version.derive(balance=5.0)
        period.record_version(savings_version)
        period.record_version(later)

        assert period.get_final_version(savings) is later
        assert period.get_final_version("savings") is later
        assert period.get_version_chain(savings) == [savings_version, later]

    def test_final_version_absent(self, period, savings):
        assert period.get_final_version(savings) is None
        assert period.get_period_entity_aggregate(savings) is None

    def test_flow_totals(self, period, savings, savings_version):
        final, flows = apply_all(savings_version, [100.0, -30.0, 50.0])
        period.record_version(final)
        period.record_flows(savings, flows)

        totals = period.get_flow_totals(savings)
        assert totals[INFLOW] == 150.0
        assert totals[OUTFLOW] == 30.0
        assert totals["net"] == 120.0

    def test_aggregated_flows_net_per_type(self, period, savings, savings_version):
        final, flows = apply_all(savings_version, [100.0, -30.0, 50.0])
        period.record_flows(savings, flows)

        aggregated = {f.flow_type: f for f in period.get_aggregated_flows(savings)}
        assert aggregated["deposit"].amount == 150.0
        assert aggregated["deposit"].direction == INFLOW
        assert aggregated["deposit"].metadata["count"] == 2
        assert aggregated["fee"].amount == 30.0
        assert aggregated["fee"].direction == OUTFLOW

    def test_aggregate_consistent_with_versions(self, period, savings, savings_version):
        final, flows = apply_all(savings_version, [100.0, -30.0])
        period.record_version(final)
        period.record_flows(savings, flows)

        aggregate = period.get_period_entity_aggregate(savings)
        assert aggregate.final_version is final
        assert aggregate.net_balance == 1070.0
        assert aggregate.entity == savings
        assert aggregate.inflow_total == 100.0
        assert aggregate.outflow_total == 30.0
        assert aggregate.net_flow == final.balance - savings_version.balance

    def test_record_flows_ignores_empty(self, period, savings):
        period.record_flows(savings, [])
        assert period.flows == {}

    def test_clear_results_keeps_events(self, period, savings_version):
        period.add_event(RecurringEvent(id="a"))
        period.record_version(savings_version)
        period.clear_results()

        assert period.version_chains == {}
        assert len(period.events) == 1


class TestTimeline:
    """Test cases for Timeline."""

    def test_build_contiguous_periods(self, start):
        timeline = Timeline.build(start, 3)

        assert len(timeline) == 3
        assert timeline.get_period(0).start == start
        assert timeline.get_period(1).start == timeline.get_period(0).end
        assert timeline.final_period.end == datetime(2024, 4, 1)

    def test_build_quarterly(self, start):
        timeline = Timeline.build(start, 2, period_months=3, inflation=3.0)
        assert timeline.get_period(1).start == datetime(2024, 4, 1)
        assert timeline.get_period(1).inflation == 3.0

    def test_month_end_start_keeps_month_end_boundaries(self):
        timeline = Timeline.build(datetime(2024, 1, 31), 4)

        assert [p.start for p in timeline.periods] == [
            datetime(2024, 1, 31),
            datetime(2024, 2, 29),
            datetime(2024, 3, 31),
            datetime(2024, 4, 30),
        ]
        assert timeline.final_period.end == datetime(2024, 5, 31)
        for previous, current in zip(timeline.periods, timeline.periods[1:]):
            assert current.start == previous.end

    def test_month_end_start_with_quarters(self):
        timeline = Timeline.build(datetime(2023, 11, 30), 3, period_months=3)
        assert [p.end for p in timeline.periods] == [
            datetime(2024, 2, 29),
            datetime(2024, 5, 30),
            datetime(2024, 8, 30),
        ]

    def test_empty_timeline(self):
        timeline = Timeline()
        assert len(timeline) == 0
        assert timeline.final_period is None

    def test_advance_requires_start_when_empty(self):
        with pytest.raises(ValueError):
            Timeline().advance_period()

    def test_advance_inherits_parameters(self, start):
        timeline = Timeline()
        timeline.advance_period(start=start, risk_free_rate=4.0)
        second = timeline.advance_period()

        assert second.start == datetime(2024, 2, 1)
        assert second.risk_free_rate == 4.0

    def test_add_period_appends(self, period):
        timeline = Timeline()
        timeline.add_period(period)
        assert timeline.get_period(-1) is period

    def test_period_for(self, start):
        timeline = Timeline.build(start, 3)
        assert timeline.period_for(datetime(2024, 2, 10)) is timeline.get_period(1)
        assert timeline.period_for(datetime(2030, 1, 1)) is None
