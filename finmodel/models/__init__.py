"""Data models for financial entity simulations."""

from .entity import Entity, EntityVersion
from .errors import FinModelError, ScenarioValidationError, SimulationError
from .flow import FORWARD, INFLOW, OUTFLOW, Flow
from .events import (
    AmountParams,
    BaseEvent,
    CalculationEvent,
    Condition,
    ConditionalEvent,
    CreationEvent,
    CreationParams,
    Event,
    InvestmentReturnParams,
    RecurringEvent,
    ThresholdRateParams,
    parse_event,
)
from .audit import AuditLog, AuditRecord
from .period import PeriodEntityAggregate, TimePeriod, Timeline, add_months
from .scenario import AssetGroup, Scenario
from .components import (
    InvestmentPortfolio,
    RentalProperty,
    ScenarioComponent,
    monthly_mortgage_payment,
)
from .person import Person
from .tax import (
    TaxCalculationResult,
    TaxEfficiencyMetrics,
    UKTaxCalculator,
    UKTaxRates,
)

__all__ = [
    "Entity",
    "EntityVersion",
    "FinModelError",
    "ScenarioValidationError",
    "SimulationError",
    "Flow",
    "INFLOW",
    "OUTFLOW",
    "FORWARD",
    "BaseEvent",
    "Event",
    "RecurringEvent",
    "ConditionalEvent",
    "CalculationEvent",
    "CreationEvent",
    "Condition",
    "AmountParams",
    "ThresholdRateParams",
    "InvestmentReturnParams",
    "CreationParams",
    "parse_event",
    "AuditLog",
    "AuditRecord",
    "TimePeriod",
    "Timeline",
    "PeriodEntityAggregate",
    "add_months",
    "Scenario",
    "AssetGroup",
    "ScenarioComponent",
    "RentalProperty",
    "InvestmentPortfolio",
    "monthly_mortgage_payment",
    "Person",
    "UKTaxRates",
    "UKTaxCalculator",
    "TaxCalculationResult",
    "TaxEfficiencyMetrics",
]
