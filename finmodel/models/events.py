"""
Scheduled events and the state transitions they describe.

Events form a closed tagged union keyed by ``variant``. Every variant exposes
the same contract:

- ``apply(version)`` returns the successor version (sequence + 1), or the
  very same instance when the event is a logical no-op. It never mutates its
  input and gives the same output for the same input.
- ``generate_flows(before, after)`` describes the money movement implied by
  one application.
- ``create_entities()`` lists entity templates the event introduces.

Parameters are typed per variant, so a Scenario round-trips through JSON
without losing the concrete variant or its payload.
"""

import operator as op
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Annotated, Any, Callable, Dict, List, Literal, Mapping, Optional, Union

import numpy as np
from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    field_validator,
)

from .entity import Entity, EntityVersion
from .errors import SimulationError
from .flow import INFLOW, OUTFLOW, Flow

_COMPARISONS: Dict[str, Callable[[float, float], bool]] = {
    ">": op.gt,
    ">=": op.ge,
    "<": op.lt,
    "<=": op.le,
    "==": op.eq,
    "!=": op.ne,
}

_CONDITION_PATTERN = re.compile(
    r"^\s*(balance|rate)\s*(>=|<=|==|!=|>|<)\s*(-?\d+(?:\.\d+)?)\s*$"
)


class Condition(BaseModel):
    """Predicate over a version's balance or rate."""

    model_config = ConfigDict(frozen=True)

    attribute: Literal["balance", "rate"] = Field(
        default="balance", description="Version field the predicate reads"
    )
    operator: Literal[">", ">=", "<", "<=", "==", "!="] = Field(
        default=">", description="Comparison operator"
    )
    threshold: float = Field(default=0.0, description="Value compared against")

    @classmethod
    def parse(cls, script: str) -> "Condition":
        """Parse a condition written as e.g. ``"balance > 50"``."""
        match = _CONDITION_PATTERN.match(script)
        if not match:
            raise ValueError(f"Unrecognised condition: {script!r}")
        attribute, comparison, threshold = match.groups()
        return cls(attribute=attribute, operator=comparison, threshold=float(threshold))

    def evaluate(self, version: EntityVersion) -> bool:
        value = version.balance if self.attribute == "balance" else version.rate
        return _COMPARISONS[self.operator](value, self.threshold)

    def __str__(self) -> str:
        return f"{self.attribute} {self.operator} {self.threshold:g}"


class AmountParams(BaseModel):
    """Parameters for events that add a signed amount to the balance."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    amount: float = Field(
        default=0.0, description="Signed amount added to the balance each time"
    )
    allow_overdraft: bool = Field(
        default=False,
        description="Allow debits to take the balance below zero",
    )


class ThresholdRateParams(BaseModel):
    """Two-tier rate: one rate above the threshold, another at or below it."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    method: Literal["threshold_rate"] = "threshold_rate"
    threshold: float = Field(default=1000.0, description="Balance threshold")
    rate_above: float = Field(default=5.0, description="Rate when balance > threshold")
    rate_below: float = Field(default=3.0, description="Rate otherwise")

    def rate_for(self, balance: float) -> float:
        return self.rate_above if balance > self.threshold else self.rate_below


class InvestmentReturnParams(BaseModel):
    """Per-period investment return applied to the balance."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    method: Literal["investment_returns"] = "investment_returns"
    expected_return: float = Field(
        default=0.07, ge=-0.5, le=2.0, description="Expected return per period"
    )
    volatility: float = Field(
        default=0.15, ge=0, le=1, description="Width of the uniform return shock"
    )
    inflation_affected: bool = Field(
        default=True, description="Whether inflation is netted off the return"
    )
    inflation_rate: float = Field(
        default=0.02, ge=-0.1, le=0.1, description="Inflation per period"
    )
    seed: Optional[int] = Field(
        default=None, ge=0, description="Seed for the return shock (None disables it)"
    )


def _calculation_method(value: Any) -> str:
    """Tag of a calculation params payload; untagged payloads are threshold rules."""
    if isinstance(value, Mapping):
        return value.get("method", "threshold_rate")
    return getattr(value, "method", "threshold_rate")


CalculationParams = Annotated[
    Union[
        Annotated[ThresholdRateParams, Tag("threshold_rate")],
        Annotated[InvestmentReturnParams, Tag("investment_returns")],
    ],
    Discriminator(_calculation_method),
]


class CreationParams(BaseModel):
    """Entity templates materialized by a creation event."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    entities: List[Entity] = Field(
        ..., min_length=1, description="Templates for the entities to create"
    )


class BaseEvent(BaseModel, ABC):
    """Fields and behaviour shared by all event variants."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Event identifier")
    variant: str = Field(..., description="Tag discriminating the event variants")
    event_type: str = Field(
        default="event", min_length=1, description="Label reported in audit records"
    )
    is_recurring: bool = Field(
        default=False, description="Fire in every period from the trigger period on"
    )
    trigger_period: Optional[int] = Field(
        default=None, ge=0, description="Period index the event is bound to"
    )
    target_entity_id: Optional[str] = Field(
        default=None, description="Only apply to this entity (None applies to all)"
    )

    @property
    def resolved_amount(self) -> float:
        """Amount reported in audit records."""
        return 0.0

    def applies_to(self, entity: Entity) -> bool:
        return self.target_entity_id is None or self.target_entity_id == entity.id

    def fires_in(self, period_index: int, default_start: Optional[int] = 0) -> bool:
        """
        Check whether the event is scheduled for a period.

        Args:
            period_index: Index of the period being populated
            default_start: Start period used when no trigger period is bound
                (None leaves unbound events dormant)

        Returns:
            True if the event fires in that period
        """
        start = self.trigger_period if self.trigger_period is not None else default_start
        if start is None:
            return False
        if self.is_recurring:
            return period_index >= start
        return period_index == start

    def bind(
        self,
        *,
        trigger_period: Optional[int] = None,
        target_entity_id: Optional[str] = None,
    ) -> "BaseEvent":
        """Return a copy bound to a period and/or an entity."""
        update: Dict[str, Any] = {}
        if trigger_period is not None:
            update["trigger_period"] = trigger_period
        if target_entity_id is not None:
            update["target_entity_id"] = target_entity_id
        return self.model_copy(update=update)

    @abstractmethod
    def apply(
        self, version: EntityVersion, at: Optional[datetime] = None
    ) -> EntityVersion:
        """Apply the event, returning the successor (or the same) version."""

    def generate_flows(self, before: EntityVersion, after: EntityVersion) -> List[Flow]:
        """Describe the balance movement between input and output versions."""
        if after is before:
            return []
        delta = after.balance - before.balance
        if delta == 0:
            return []
        return [
            Flow(
                id=f"{self.id}:{after.entity_id}:{after.sequence}",
                source=before,
                target=after,
                amount=abs(delta),
                direction=INFLOW if delta > 0 else OUTFLOW,
                flow_type=self.event_type,
                metadata={"event_id": self.id, "variant": self.variant},
            )
        ]

    def create_entities(self) -> List[Entity]:
        return []


def _apply_amount(
    version: EntityVersion, params: AmountParams, at: Optional[datetime]
) -> EntityVersion:
    amount = params.amount
    if amount < 0 and version.balance + amount < 0 and not params.allow_overdraft:
        raise SimulationError(
            f"Insufficient funds for {version.entity.name or version.entity_id}: "
            f"balance {version.balance:.2f}, required {abs(amount):.2f}"
        )
    return version.derive(balance=version.balance + amount, timestamp=at)


class RecurringEvent(BaseEvent):
    """Adds a signed amount to the balance every time it fires."""

    variant: Literal["recurring"] = "recurring"
    event_type: str = Field(default="recurring", min_length=1)
    params: AmountParams = Field(default_factory=AmountParams)

    @property
    def resolved_amount(self) -> float:
        return self.params.amount

    def apply(
        self, version: EntityVersion, at: Optional[datetime] = None
    ) -> EntityVersion:
        return _apply_amount(version, self.params, at)


class ConditionalEvent(BaseEvent):
    """Adds a signed amount only when its condition holds."""

    variant: Literal["conditional"] = "conditional"
    event_type: str = Field(default="conditional", min_length=1)
    params: AmountParams = Field(default_factory=AmountParams)
    condition: Condition = Field(..., description="Predicate gating the event")

    @field_validator("condition", mode="before")
    @classmethod
    def parse_condition_script(cls, v):
        """Accept conditions written as scripts like ``"balance > 50"``."""
        if isinstance(v, str):
            return Condition.parse(v)
        return v

    @property
    def resolved_amount(self) -> float:
        return self.params.amount

    def apply(
        self, version: EntityVersion, at: Optional[datetime] = None
    ) -> EntityVersion:
        if not self.condition.evaluate(version):
            return version
        return _apply_amount(version, self.params, at)


class CalculationEvent(BaseEvent):
    """Recomputes the rate (and for investment returns, the balance)."""

    variant: Literal["calculation"] = "calculation"
    event_type: str = Field(default="calculation", min_length=1)
    params: CalculationParams = Field(default_factory=ThresholdRateParams)

    def apply(
        self, version: EntityVersion, at: Optional[datetime] = None
    ) -> EntityVersion:
        if isinstance(self.params, InvestmentReturnParams):
            return self._apply_investment_returns(version, at)
        return version.derive(rate=self.params.rate_for(version.balance), timestamp=at)

    def _apply_investment_returns(
        self, version: EntityVersion, at: Optional[datetime]
    ) -> EntityVersion:
        params = self.params
        balance = version.balance

        shock = 1.0
        if params.seed is not None and params.volatility > 0:
            # Seeded per version so repeated applications agree
            rng = np.random.default_rng([params.seed, version.sequence])
            shock = 1.0 + (float(rng.random()) - 0.5) * params.volatility

        period_return = balance * params.expected_return * shock
        if params.inflation_affected:
            period_return -= balance * params.inflation_rate

        rate = period_return / balance if balance != 0 else 0.0
        return version.derive(balance=balance + period_return, rate=rate, timestamp=at)


class CreationEvent(BaseEvent):
    """Introduces new entities into the simulation; state is untouched."""

    variant: Literal["creation"] = "creation"
    event_type: str = Field(default="creation", min_length=1)
    params: CreationParams

    def apply(
        self, version: EntityVersion, at: Optional[datetime] = None
    ) -> EntityVersion:
        return version

    def create_entities(self) -> List[Entity]:
        return [entity.model_copy(deep=True) for entity in self.params.entities]


Event = Annotated[
    Union[RecurringEvent, ConditionalEvent, CalculationEvent, CreationEvent],
    Field(discriminator="variant"),
]

_EVENT_ADAPTER: TypeAdapter = TypeAdapter(Event)


def parse_event(data: Mapping[str, Any]) -> BaseEvent:
    """Validate a plain mapping into the matching event variant."""
    return _EVENT_ADAPTER.validate_python(data)
