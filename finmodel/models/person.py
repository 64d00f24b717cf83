"""Person component holding a UK taxpayer's allowances and income links."""

import re
from datetime import date
from typing import Dict, List, Literal, Optional

from pydantic import Field, field_validator

from .components import ScenarioComponent
from .entity import Entity
from .events import BaseEvent

TAX_CODE_PATTERN = re.compile(r"^[0-9]+[LMNTPY]$")


class Person(ScenarioComponent):
    """
    A person in the UK tax system.

    Contributes a tax-calculation expense entity and a personal-allowance
    asset entity to a scenario, and is the input record for
    ``UKTaxCalculator``. Tax results are returned by the calculator and are
    never written back onto the person.
    """

    first_name: str = Field(..., min_length=1, description="First name")
    last_name: str = Field(..., min_length=1, description="Last name")
    date_of_birth: Optional[date] = Field(None, description="Date of birth")
    marital_status: Literal[
        "single", "married", "civil_partnership", "divorced", "widowed"
    ] = Field(default="single", description="Marital status")
    tax_code: str = Field(default="1257L", description="UK tax code")
    personal_allowance: float = Field(
        default=12570.0, ge=0, description="Personal allowance"
    )
    marriage_allowance: float = Field(default=0.0, ge=0, description="Marriage allowance")
    blind_persons_allowance: float = Field(
        default=0.0, ge=0, description="Blind person's allowance"
    )
    scottish_taxpayer: bool = Field(
        default=False, description="Whether Scottish income tax bands apply"
    )
    tax_year: int = Field(
        default=2024, ge=1900, le=2100, description="Tax year (2024 means 2024/25)"
    )
    salary_entities: List[str] = Field(default_factory=list)
    pension_entities: List[str] = Field(default_factory=list)
    dividend_entities: List[str] = Field(default_factory=list)
    owned_assets: List[str] = Field(default_factory=list)
    owned_liabilities: List[str] = Field(default_factory=list)

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be blank")
        return v

    @field_validator("tax_code")
    @classmethod
    def validate_tax_code(cls, v: str) -> str:
        if not TAX_CODE_PATTERN.match(v):
            raise ValueError(f"Invalid UK tax code format: {v}")
        return v

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v: Optional[date]) -> Optional[date]:
        if v is not None and v > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return v

    def _default_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_scottish_taxpayer(self) -> bool:
        return self.scottish_taxpayer

    @property
    def total_allowance(self) -> float:
        return self.personal_allowance + self.marriage_allowance + self.blind_persons_allowance

    def age(self, on: Optional[date] = None) -> Optional[int]:
        """Age in whole years on a date (today by default)."""
        if self.date_of_birth is None:
            return None
        on = on or date.today()
        birthday_passed = (on.month, on.day) >= (
            self.date_of_birth.month,
            self.date_of_birth.day,
        )
        return on.year - self.date_of_birth.year - (0 if birthday_passed else 1)

    def get_entities(self) -> List[Entity]:
        return [
            Entity(
                id=f"{self.id}_tax_calculation",
                name=f"{self.display_name} Tax Calculation",
                primary_category="Expense",
                detailed_category="Tax Calculation",
            ),
            Entity(
                id=f"{self.id}_personal_allowance",
                name=f"{self.display_name} Personal Allowance",
                primary_category="Asset",
                detailed_category="Tax Allowance",
                initial_value=self.personal_allowance,
            ),
        ]

    def get_events(self) -> Dict[str, List[BaseEvent]]:
        # Tax is computed on demand by UKTaxCalculator, not scheduled
        return {}

    def describe(self) -> str:
        lines = [f"Person [{self.id}]: {self.display_name} ({self.marital_status})"]
        age = self.age()
        if age is not None:
            lines[0] = lines[0][:-1] + f", {age} years old)"
        lines.append(f"  Tax Code: {self.tax_code}")
        lines.append(f"  Personal Allowance: £{self.personal_allowance:,.0f}")
        lines.append(f"  Tax Year: {self.tax_year}/{self.tax_year + 1}")
        if self.salary_entities:
            lines.append(f"  Salary Sources: {', '.join(self.salary_entities)}")
        if self.pension_entities:
            lines.append(f"  Pension Sources: {', '.join(self.pension_entities)}")
        if self.owned_assets:
            lines.append(f"  Owned Assets: {', '.join(self.owned_assets)}")
        return "\n".join(lines)
