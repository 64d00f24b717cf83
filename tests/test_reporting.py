"""Tests for reporting projections."""

from datetime import datetime

import pandas as pd
import pytest

from finmodel.models.entity import Entity
from finmodel.models.period import TimePeriod, Timeline
from finmodel.services.reporting import (
    BALANCE_COLUMNS,
    FLOW_COLUMNS,
    build_balance_frame,
    build_flow_frame,
    pivot_balances,
    summarize_period,
)
from finmodel.simulation.simulator import Simulator


@pytest.fixture
def played(simple_scenario):
    timeline = simple_scenario.initialize(Timeline())
    Simulator(simple_scenario, timeline).play_out()
    return timeline, simple_scenario.initial_entities


class TestSummarizePeriod:
    """Test cases for category totals."""

    def test_totals_by_category(self, start, savings):
        entities = [
            savings,
            Entity(id="loan", primary_category="Liability", initial_value=-500),
            Entity(id="salary", primary_category="Income", initial_value=200),
            Entity(id="food", primary_category="Expense", initial_value=-50),
            Entity(id="misc", initial_value=99),
        ]
        period = TimePeriod(start=start, end=datetime(2024, 2, 1))
        for entity in entities:
            period.record_version(entity.create_initial_version(start))

        summary = summarize_period(period, entities, period_index=4)

        assert summary.period_index == 4
        assert summary.assets == 1000.0
        assert summary.liabilities == 500.0
        assert summary.income == 200.0
        assert summary.expenses == 50.0
        assert summary.net_worth == 500.0
        assert summary.net_cash_flow == 150.0
        assert summary.entity_balances["misc"] == 99.0

    def test_entities_without_versions_skipped(self, start, savings):
        period = TimePeriod(start=start, end=datetime(2024, 2, 1))
        summary = summarize_period(period, [savings])

        assert summary.entity_balances == {}
        assert summary.net_worth == 0.0


class TestBalanceFrame:
    """Test cases for the balance DataFrame."""

    def test_rows_per_period(self, played):
        timeline, entities = played
        frame = build_balance_frame(timeline, entities)

        assert list(frame.columns) == BALANCE_COLUMNS
        assert frame["balance"].tolist() == [50.0, 100.0, 150.0]
        assert frame["sequence"].tolist() == [1, 2, 3]
        assert frame["period_start"].iloc[0] == pd.Timestamp("2024-01-01")

    def test_empty_timeline(self, wallet):
        frame = build_balance_frame(Timeline(), [wallet])
        assert frame.empty
        assert list(frame.columns) == BALANCE_COLUMNS

    def test_pivot(self, played):
        timeline, entities = played
        pivot = pivot_balances(build_balance_frame(timeline, entities))

        assert list(pivot.columns) == ["wallet"]
        assert pivot.loc[2, "wallet"] == 150.0

    def test_pivot_empty(self):
        assert pivot_balances(pd.DataFrame(columns=BALANCE_COLUMNS)).empty


class TestFlowFrame:
    """Test cases for the flow DataFrame."""

    def test_intra_and_inter_flows(self, played):
        timeline, entities = played
        frame = build_flow_frame(timeline, entities)

        assert list(frame.columns) == FLOW_COLUMNS
        assert frame["type"].value_counts().to_dict() == {"recurring": 3, "carry_forward": 2}
        assert frame["period_index"].tolist() == [0, 1, 1, 2, 2]

    def test_record_ids_carry_period(self, played):
        timeline, entities = played
        frame = build_flow_frame(timeline, entities)

        assert frame["id"].iloc[0].endswith("_period_0")
        assert frame["flow_id"].iloc[0] == "deposit:wallet:1"

    def test_intra_flags(self, played):
        timeline, entities = played
        frame = build_flow_frame(timeline, entities)

        intra = frame[frame["is_intra_period"]]
        assert intra["signed_amount"].sum() == 150.0
