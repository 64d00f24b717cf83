"""
Time periods and the timeline that orders them.

A ``TimePeriod`` is a window [start, end) with fixed economic parameters, the
events scheduled to fire in it, and the results the simulator records for
each entity: its version chain and the flows produced while processing it.
A ``Timeline`` is the ordered sequence of periods; order is the only path by
which state moves from one period to the next.
"""

import calendar
from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .entity import Entity, EntityVersion
from .events import Event
from .flow import INFLOW, OUTFLOW, Flow

EntityKey = Union[Entity, str]


def _entity_key(entity: EntityKey) -> str:
    return entity if isinstance(entity, str) else entity.id


def add_months(moment: datetime, months: int) -> datetime:
    """Shift a datetime by whole months, clamping the day to the month length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _months_between(start: datetime, end: datetime) -> int:
    return (end.year - start.year) * 12 + end.month - start.month


class PeriodEntityAggregate(BaseModel):
    """Read-only projection of one entity's outcome in one period."""

    model_config = ConfigDict(frozen=True)

    final_version: EntityVersion = Field(..., description="Last version in the period")
    net_intra_flows: List[Flow] = Field(
        default_factory=list, description="Intra-period flows netted per flow type"
    )
    inter_flows: List[Flow] = Field(
        default_factory=list, description="Flows linking to the previous period"
    )
    flow_totals: Dict[str, float] = Field(
        default_factory=dict, description="Intra-period totals by direction"
    )

    @property
    def entity(self) -> Entity:
        return self.final_version.entity

    @property
    def net_balance(self) -> float:
        return self.final_version.balance

    @property
    def inflow_total(self) -> float:
        return self.flow_totals.get(INFLOW, 0.0)

    @property
    def outflow_total(self) -> float:
        return self.flow_totals.get(OUTFLOW, 0.0)

    @property
    def net_flow(self) -> float:
        return self.inflow_total - self.outflow_total


class TimePeriod(BaseModel):
    """A simulated time window and everything recorded for it."""

    start: datetime = Field(..., description="Inclusive start of the window")
    end: datetime = Field(..., description="Exclusive end of the window")
    risk_free_rate: float = Field(default=3.5, description="Risk-free rate (%)")
    inflation: float = Field(default=2.0, description="Inflation for the window (%)")
    events: List[Event] = Field(
        default_factory=list, description="Events in application order"
    )
    version_chains: Dict[str, List[EntityVersion]] = Field(
        default_factory=dict, description="Versions produced per entity id"
    )
    flows: Dict[str, List[Flow]] = Field(
        default_factory=dict, description="Intra-period flows per entity id"
    )
    inter_flows: Dict[str, List[Flow]] = Field(
        default_factory=dict, description="Inter-period flows per entity id"
    )

    @model_validator(mode="after")
    def validate_window(self):
        if self.end < self.start:
            raise ValueError("Period end must be >= period start")
        return self

    def add_event(self, event: Event) -> None:
        """Append an event; append order is application order."""
        self.events.append(event)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    def record_version(self, version: EntityVersion) -> None:
        self.version_chains.setdefault(version.entity_id, []).append(version)

    def record_flows(
        self, entity: EntityKey, flows: List[Flow], intra_period: bool = True
    ) -> None:
        if not flows:
            return
        target = self.flows if intra_period else self.inter_flows
        target.setdefault(_entity_key(entity), []).extend(flows)

    def get_version_chain(self, entity: EntityKey) -> List[EntityVersion]:
        return list(self.version_chains.get(_entity_key(entity), []))

    def get_final_version(self, entity: EntityKey) -> Optional[EntityVersion]:
        """Get the last version of an entity in this period, if any."""
        versions = self.version_chains.get(_entity_key(entity))
        return versions[-1] if versions else None

    def get_flows(self, entity: EntityKey) -> List[Flow]:
        return list(self.flows.get(_entity_key(entity), []))

    def get_inter_flows(self, entity: EntityKey) -> List[Flow]:
        return list(self.inter_flows.get(_entity_key(entity), []))

    def get_flow_totals(self, entity: EntityKey) -> Dict[str, float]:
        """Sum intra-period flows by direction."""
        inflow = 0.0
        outflow = 0.0
        for flow in self.flows.get(_entity_key(entity), []):
            if flow.direction == OUTFLOW:
                outflow += flow.amount
            else:
                inflow += flow.amount
        return {INFLOW: inflow, OUTFLOW: outflow, "net": inflow - outflow}

    def get_aggregated_flows(self, entity: EntityKey) -> List[Flow]:
        """
        Net intra-period flows per flow type.

        Each flow type collapses into one flow running from the source of its
        first flow to the target of its last, with the net amount and a
        direction given by the sign of the net.
        """
        key = _entity_key(entity)
        grouped: Dict[str, List[Flow]] = {}
        for flow in self.flows.get(key, []):
            grouped.setdefault(flow.flow_type, []).append(flow)

        aggregated = []
        for flow_type, flows in grouped.items():
            net = sum(flow.signed_amount for flow in flows)
            aggregated.append(
                Flow(
                    id=f"{key}:{flow_type}:net",
                    source=flows[0].source,
                    target=flows[-1].target,
                    amount=abs(net),
                    direction=INFLOW if net >= 0 else OUTFLOW,
                    flow_type=flow_type,
                    metadata={"count": len(flows), "flow_ids": [f.id for f in flows]},
                )
            )
        return aggregated

    def get_period_entity_aggregate(
        self, entity: EntityKey
    ) -> Optional[PeriodEntityAggregate]:
        """Bundle the final version with its aggregated flows."""
        final_version = self.get_final_version(entity)
        if final_version is None:
            return None
        return PeriodEntityAggregate(
            final_version=final_version,
            net_intra_flows=self.get_aggregated_flows(entity),
            inter_flows=self.get_inter_flows(entity),
            flow_totals=self.get_flow_totals(entity),
        )

    def clear_results(self) -> None:
        """Drop recorded versions and flows, keeping the events."""
        self.version_chains.clear()
        self.flows.clear()
        self.inter_flows.clear()


class Timeline(BaseModel):
    """Ordered sequence of time periods."""

    periods: List[TimePeriod] = Field(
        default_factory=list, description="Periods in processing order"
    )

    @classmethod
    def build(
        cls,
        start: datetime,
        num_periods: int,
        period_months: int = 1,
        risk_free_rate: float = 3.5,
        inflation: float = 2.0,
    ) -> "Timeline":
        """Create a timeline of contiguous periods."""
        timeline = cls()
        for _ in range(num_periods):
            timeline.advance_period(
                start=start,
                period_months=period_months,
                risk_free_rate=risk_free_rate,
                inflation=inflation,
            )
        return timeline

    def add_period(self, period: TimePeriod) -> None:
        self.periods.append(period)

    def advance_period(
        self,
        start: Optional[datetime] = None,
        period_months: int = 1,
        risk_free_rate: Optional[float] = None,
        inflation: Optional[float] = None,
    ) -> TimePeriod:
        """
        Append a period directly after the last one.

        Period boundaries are counted in whole months from the start of the
        first period, so a timeline starting on the 31st keeps month-end
        boundaries instead of drifting to the shortest month seen so far.

        Args:
            start: Start of the first period (ignored once periods exist)
            period_months: Length of the new period in months
            risk_free_rate: Rate for the new period (defaults to the last period's)
            inflation: Inflation for the new period (defaults to the last period's)

        Returns:
            The newly added period

        Raises:
            ValueError: If the timeline is empty and no start is given
        """
        if period_months < 1:
            raise ValueError("Period length must be at least one month")

        last = self.final_period
        if last is not None:
            anchor = self.periods[0].start
            period_start = last.end
            period_end = add_months(
                anchor, _months_between(anchor, last.end) + period_months
            )
            risk_free_rate = last.risk_free_rate if risk_free_rate is None else risk_free_rate
            inflation = last.inflation if inflation is None else inflation
        elif start is not None:
            period_start = start
            period_end = add_months(start, period_months)
        else:
            raise ValueError("A start date is required to begin an empty timeline")

        period = TimePeriod(
            start=period_start,
            end=period_end,
            risk_free_rate=3.5 if risk_free_rate is None else risk_free_rate,
            inflation=2.0 if inflation is None else inflation,
        )
        self.add_period(period)
        return period

    def get_period(self, index: int) -> TimePeriod:
        return self.periods[index]

    @property
    def final_period(self) -> Optional[TimePeriod]:
        return self.periods[-1] if self.periods else None

    def period_for(self, moment: datetime) -> Optional[TimePeriod]:
        for period in self.periods:
            if period.contains(moment):
                return period
        return None

    def clear_results(self) -> None:
        for period in self.periods:
            period.clear_results()

    def __len__(self) -> int:
        return len(self.periods)
