"""
Scenario components.

A component bundles related entities and the events that drive them, so a
rental property or an investment portfolio can be added to a scenario in one
step with ``Scenario.incorporate``. Components validate themselves when they
are constructed; inconsistent configuration raises
``pydantic.ValidationError``.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from .entity import Entity
from .events import (
    AmountParams,
    BaseEvent,
    CalculationEvent,
    InvestmentReturnParams,
    RecurringEvent,
)

InvestmentType = Literal["stocks", "bonds", "options", "crypto"]

# Detailed category and inflation exposure per investment type
INVESTMENT_TYPES: Dict[str, Dict[str, object]] = {
    "stocks": {"category": "Equity Investment", "inflation_affected": True},
    "bonds": {"category": "Fixed Income Investment", "inflation_affected": True},
    "options": {"category": "Derivative Investment", "inflation_affected": True},
    "crypto": {"category": "Cryptocurrency Asset", "inflation_affected": False},
}


def monthly_mortgage_payment(
    principal: float, annual_rate: float, term_years: int
) -> float:
    """
    Calculate the monthly mortgage payment using the standard formula.

    Args:
        principal: Loan principal amount
        annual_rate: Annual interest rate (as decimal, e.g., 0.055 for 5.5%)
        term_years: Loan term in years

    Returns:
        Monthly payment amount
    """
    if principal <= 0:
        return 0.0
    num_payments = term_years * 12
    if annual_rate <= 0:
        return round(principal / num_payments, 2)

    monthly_rate = annual_rate / 12
    growth = (1 + monthly_rate) ** num_payments
    payment = principal * (monthly_rate * growth) / (growth - 1)

    # Round to nearest cent
    return round(payment, 2)


class ScenarioComponent(BaseModel, ABC):
    """Base class for bundles of entities and events."""

    id: str = Field(..., min_length=1, description="Component identifier")
    name: Optional[str] = Field(None, description="Display name")
    periods_per_year: int = Field(
        default=12, ge=1, le=12, description="Simulation periods per year"
    )

    @property
    def display_name(self) -> str:
        return self.name or self._default_name()

    def _default_name(self) -> str:
        return f"{type(self).__name__} {self.id}"

    def per_period(self, annual_amount: float) -> float:
        """Convert an annual amount to a per-period amount."""
        return annual_amount / self.periods_per_year

    @abstractmethod
    def get_entities(self) -> List[Entity]:
        """Entities the component contributes."""

    @abstractmethod
    def get_events(self) -> Dict[str, List[BaseEvent]]:
        """Recurring events keyed by the id of the entity they drive."""

    @abstractmethod
    def describe(self) -> str:
        """One-line human readable summary."""


class RentalProperty(ScenarioComponent):
    """Rental property with optional mortgage, rent and running costs."""

    property_value: float = Field(..., gt=0, description="Current property value")
    appreciation_rate: float = Field(
        default=0.03, ge=-0.5, le=1.0, description="Annual appreciation rate"
    )
    mortgage_amount: float = Field(default=0.0, ge=0, description="Outstanding mortgage")
    mortgage_rate: float = Field(
        default=0.045, ge=0, le=1, description="Annual mortgage rate (0-1)"
    )
    mortgage_term_years: int = Field(
        default=30, ge=1, le=50, description="Mortgage term in years"
    )
    monthly_rent: float = Field(default=0.0, ge=0, description="Monthly rent")
    vacancy_rate: float = Field(
        default=0.05, ge=0, le=1, description="Fraction of time the property is empty"
    )
    ancillary_costs: float = Field(
        default=0.0, ge=0, description="Monthly maintenance and utilities"
    )
    property_tax_rate: float = Field(
        default=0.012, ge=0, le=0.1, description="Annual property tax rate"
    )
    insurance_annual: float = Field(default=0.0, ge=0, description="Annual insurance")

    @model_validator(mode="after")
    def validate_mortgage(self):
        if self.mortgage_amount > self.property_value:
            raise ValueError("Mortgage amount cannot exceed property value")
        return self

    def _default_name(self) -> str:
        return f"Rental Property {self.id}"

    def _entity(
        self, suffix: str, label: str, primary: str, detailed: str, value: float = 0.0
    ) -> Entity:
        return Entity(
            id=f"{self.id}_{suffix}",
            name=f"{self.display_name} {label}",
            primary_category=primary,
            detailed_category=detailed,
            initial_value=value,
        )

    def get_entities(self) -> List[Entity]:
        entities = [
            self._entity("property", "Property", "Asset", "Real Estate", self.property_value)
        ]
        if self.mortgage_amount > 0:
            entities.append(
                self._entity(
                    "mortgage", "Mortgage", "Liability", "Secured Debt", -self.mortgage_amount
                )
            )
        entities.append(self._entity("rent_income", "Rental Income", "Income", "Rental Income"))
        if self.ancillary_costs > 0:
            entities.append(
                self._entity(
                    "ancillary_expenses",
                    "Ancillary Expenses",
                    "Expense",
                    "Property Maintenance",
                )
            )
        if self.property_tax_rate > 0:
            entities.append(
                self._entity("property_tax", "Property Tax", "Expense", "Property Tax")
            )
        if self.insurance_annual > 0:
            entities.append(
                self._entity("insurance", "Insurance", "Expense", "Property Insurance")
            )
        return entities

    def mortgage_payment(self) -> float:
        return monthly_mortgage_payment(
            self.mortgage_amount, self.mortgage_rate, self.mortgage_term_years
        )

    def get_events(self) -> Dict[str, List[BaseEvent]]:
        events: Dict[str, List[BaseEvent]] = {}

        def recurring(suffix: str, amount: float, overdraft: bool = False) -> RecurringEvent:
            return RecurringEvent(
                id=f"{self.id}_{suffix}",
                is_recurring=True,
                params=AmountParams(amount=amount, allow_overdraft=overdraft),
            )

        if self.appreciation_rate > 0:
            events[f"{self.id}_property"] = [
                recurring(
                    "appreciation", self.per_period(self.property_value * self.appreciation_rate)
                )
            ]
        if self.mortgage_amount > 0:
            # Payments are positive, moving the negative balance towards zero
            events[f"{self.id}_mortgage"] = [
                recurring("mortgage_payment", self.per_period(self.mortgage_payment() * 12))
            ]
        if self.monthly_rent > 0:
            effective_rent = self.monthly_rent * (1.0 - self.vacancy_rate)
            events[f"{self.id}_rent_income"] = [
                recurring("rent_collection", self.per_period(effective_rent * 12))
            ]
        if self.ancillary_costs > 0:
            events[f"{self.id}_ancillary_expenses"] = [
                recurring(
                    "ancillary_expenses_event",
                    -self.per_period(self.ancillary_costs * 12),
                    overdraft=True,
                )
            ]
        if self.property_tax_rate > 0:
            events[f"{self.id}_property_tax"] = [
                recurring(
                    "property_tax_event",
                    -self.per_period(self.property_value * self.property_tax_rate),
                    overdraft=True,
                )
            ]
        if self.insurance_annual > 0:
            events[f"{self.id}_insurance"] = [
                recurring(
                    "insurance_event", -self.per_period(self.insurance_annual), overdraft=True
                )
            ]
        return events

    def describe(self) -> str:
        parts = [f"Rental Property [{self.id}]: ${self.property_value:,.0f} property"]
        if self.mortgage_amount > 0:
            parts.append(
                f"${self.mortgage_amount:,.0f} mortgage at {self.mortgage_rate * 100:.1f}%"
            )
        if self.monthly_rent > 0:
            rent = f"${self.monthly_rent:,.0f}/month rent"
            if self.vacancy_rate > 0:
                rent += f" ({(1.0 - self.vacancy_rate) * 100:.0f}% occupancy)"
            parts.append(rent)
        if self.appreciation_rate > 0:
            parts.append(f"{self.appreciation_rate * 100:.1f}% annual appreciation")
        return ", ".join(parts)


class InvestmentPortfolio(ScenarioComponent):
    """Investment account with optional monthly contributions."""

    investment_type: InvestmentType = Field(
        default="stocks", description="Kind of investment held"
    )
    initial_value: float = Field(default=0.0, ge=0, description="Opening value")
    expected_return: float = Field(
        default=0.07, ge=-0.5, le=2.0, description="Expected annual return"
    )
    monthly_contribution: float = Field(
        default=0.0, ge=0, description="Amount contributed each month"
    )
    volatility: float = Field(default=0.15, ge=0, le=1, description="Annual volatility")
    inflation_adjustment: float = Field(
        default=0.02, ge=-0.1, le=0.1, description="Annual inflation netted off returns"
    )
    seed: Optional[int] = Field(
        None, ge=0, description="Seed for return shocks (None gives expected returns)"
    )

    @property
    def inflation_affected(self) -> bool:
        return bool(INVESTMENT_TYPES[self.investment_type]["inflation_affected"])

    def _default_name(self) -> str:
        return f"{self.investment_type.upper()} Portfolio {self.id}"

    @property
    def account_id(self) -> str:
        return f"{self.id}_account"

    @property
    def contributions_id(self) -> str:
        return f"{self.id}_contributions"

    def get_entities(self) -> List[Entity]:
        entities = [
            Entity(
                id=self.account_id,
                name=f"{self.display_name} Account",
                primary_category="Asset",
                detailed_category=str(INVESTMENT_TYPES[self.investment_type]["category"]),
                initial_value=self.initial_value,
            )
        ]
        if self.monthly_contribution > 0:
            entities.append(
                Entity(
                    id=self.contributions_id,
                    name=f"{self.display_name} Contributions",
                    primary_category="Income",
                    detailed_category="Investment Contributions",
                )
            )
        return entities

    def get_events(self) -> Dict[str, List[BaseEvent]]:
        account_events: List[BaseEvent] = []
        events: Dict[str, List[BaseEvent]] = {self.account_id: account_events}

        if self.monthly_contribution > 0:
            contribution = self.per_period(self.monthly_contribution * 12)
            account_events.append(
                RecurringEvent(
                    id=f"{self.id}_contribution",
                    is_recurring=True,
                    params=AmountParams(amount=contribution),
                )
            )
            events[self.contributions_id] = [
                RecurringEvent(
                    id=f"{self.id}_contribution_income",
                    is_recurring=True,
                    params=AmountParams(amount=contribution),
                )
            ]

        if self.expected_return != 0:
            account_events.append(
                CalculationEvent(
                    id=f"{self.id}_returns",
                    event_type="investment_returns",
                    is_recurring=True,
                    params=InvestmentReturnParams(
                        expected_return=self.per_period(self.expected_return),
                        volatility=self.volatility,
                        inflation_affected=self.inflation_affected,
                        inflation_rate=self.per_period(self.inflation_adjustment),
                        seed=self.seed,
                    ),
                )
            )

        if not account_events:
            del events[self.account_id]
        return events

    def describe(self) -> str:
        text = (
            f"{self.investment_type.upper()} Portfolio [{self.id}]: "
            f"${self.initial_value:,.0f} initial"
        )
        if self.monthly_contribution > 0:
            text += f", ${self.monthly_contribution:,.0f}/month contributions"
        if self.expected_return > 0:
            text += f", {self.expected_return * 100:.1f}% expected return"
            if self.volatility > 0:
                text += f" (+/-{self.volatility * 100:.1f}% volatility)"
        text += ", inflation-adjusted" if self.inflation_affected else ", inflation-immune"
        return text
