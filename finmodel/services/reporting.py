"""
Reporting projections over a simulated timeline.

Turns period results into pandas DataFrames and per-period summaries for
export layers. Everything here reads ``PeriodEntityAggregate`` projections;
nothing writes back into the timeline.
"""

from typing import Dict, Iterable, List

import pandas as pd
from pydantic import BaseModel, Field

from finmodel.models.entity import Entity
from finmodel.models.period import TimePeriod, Timeline

BALANCE_COLUMNS = [
    "period_index",
    "period_start",
    "entity_id",
    "name",
    "primary_category",
    "balance",
    "rate",
    "sequence",
]

FLOW_COLUMNS = [
    "period_index",
    "id",
    "flow_id",
    "source",
    "target",
    "amount",
    "signed_amount",
    "direction",
    "type",
    "is_intra_period",
]


class PeriodSummary(BaseModel):
    """Category totals for one period."""

    period_index: int = Field(..., ge=0, description="Index of the period")
    assets: float = Field(default=0.0, description="Sum of asset balances")
    liabilities: float = Field(default=0.0, ge=0, description="Total owed (positive)")
    income: float = Field(default=0.0, description="Sum of income balances")
    expenses: float = Field(default=0.0, ge=0, description="Total spent (positive)")
    entity_balances: Dict[str, float] = Field(
        default_factory=dict, description="Final balance per entity id"
    )

    @property
    def net_worth(self) -> float:
        return self.assets - self.liabilities

    @property
    def net_cash_flow(self) -> float:
        return self.income - self.expenses


def summarize_period(
    period: TimePeriod, entities: Iterable[Entity], period_index: int = 0
) -> PeriodSummary:
    """
    Total final balances by primary category.

    Liabilities and expenses are usually carried as negative balances, so
    they are reported by magnitude.
    """
    summary = PeriodSummary(period_index=period_index)
    for entity in entities:
        aggregate = period.get_period_entity_aggregate(entity)
        if aggregate is None:
            continue
        balance = aggregate.net_balance
        summary.entity_balances[entity.id] = balance
        category = entity.primary_category
        if category == "Asset":
            summary.assets += balance
        elif category == "Liability":
            summary.liabilities += abs(balance)
        elif category == "Income":
            summary.income += balance
        elif category == "Expense":
            summary.expenses += abs(balance)
    return summary


def build_balance_frame(timeline: Timeline, entities: Iterable[Entity]) -> pd.DataFrame:
    """One row per (period, entity) with the entity's final version."""
    entities = list(entities)
    rows: List[Dict[str, object]] = []
    for index, period in enumerate(timeline.periods):
        for entity in entities:
            version = period.get_final_version(entity)
            if version is None:
                continue
            rows.append(
                {
                    "period_index": index,
                    "period_start": period.start,
                    "entity_id": entity.id,
                    "name": entity.name,
                    "primary_category": entity.primary_category,
                    "balance": version.balance,
                    "rate": version.rate,
                    "sequence": version.sequence,
                }
            )
    return pd.DataFrame(rows, columns=BALANCE_COLUMNS)


def build_flow_frame(timeline: Timeline, entities: Iterable[Entity]) -> pd.DataFrame:
    """One row per recorded flow, intra- and inter-period."""
    entities = list(entities)
    rows: List[Dict[str, object]] = []
    for index, period in enumerate(timeline.periods):
        for entity in entities:
            for flow in period.get_flows(entity) + period.get_inter_flows(entity):
                record = flow.to_record(f"period_{index}")
                record["period_index"] = index
                record["signed_amount"] = flow.signed_amount
                rows.append(record)
    return pd.DataFrame(rows, columns=FLOW_COLUMNS)


def pivot_balances(frame: pd.DataFrame) -> pd.DataFrame:
    """Reshape a balance frame to periods x entities."""
    if frame.empty:
        return pd.DataFrame()
    return frame.pivot(index="period_index", columns="entity_id", values="balance")
