"""
UK tax calculations for the 2024/25 tax year.

Income tax, National Insurance and capital gains tax are pure functions of
their inputs. ``calculate_total_tax`` combines them for a ``Person`` and
returns a result record; the person is never modified.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .person import Person

# (threshold, rate) pairs ordered from the highest threshold down
TaxBands = List[Tuple[float, float]]


class UKTaxRates(BaseModel):
    """Thresholds and rates for one UK tax year."""

    model_config = ConfigDict(frozen=True)

    personal_allowance: float = Field(default=12570.0, ge=0)
    basic_rate_threshold: float = Field(default=50270.0, ge=0)
    higher_rate_threshold: float = Field(default=125140.0, ge=0)
    basic_rate: float = Field(default=0.20, ge=0, le=1)
    higher_rate: float = Field(default=0.40, ge=0, le=1)
    additional_rate: float = Field(default=0.45, ge=0, le=1)

    ni_primary_threshold: float = Field(default=12570.0, ge=0)
    ni_upper_earnings_limit: float = Field(default=50270.0, ge=0)
    ni_main_rate: float = Field(default=0.08, ge=0, le=1)
    ni_upper_rate: float = Field(default=0.02, ge=0, le=1)

    cgt_annual_exemption: float = Field(default=12300.0, ge=0)
    cgt_basic_rate: float = Field(default=0.10, ge=0, le=1)
    cgt_higher_rate: float = Field(default=0.20, ge=0, le=1)

    scottish_starter_rate: float = Field(default=0.19, ge=0, le=1)
    scottish_basic_rate: float = Field(default=0.20, ge=0, le=1)
    scottish_intermediate_rate: float = Field(default=0.21, ge=0, le=1)
    scottish_higher_rate: float = Field(default=0.42, ge=0, le=1)
    scottish_top_rate: float = Field(default=0.47, ge=0, le=1)
    scottish_starter_threshold: float = Field(default=15100.0, ge=0)
    scottish_basic_threshold: float = Field(default=23600.0, ge=0)
    scottish_intermediate_threshold: float = Field(default=39800.0, ge=0)
    scottish_higher_threshold: float = Field(default=62500.0, ge=0)

    def income_tax_bands(self, scottish: bool = False) -> TaxBands:
        if scottish:
            return [
                (self.scottish_higher_threshold, self.scottish_top_rate),
                (self.scottish_intermediate_threshold, self.scottish_higher_rate),
                (self.scottish_basic_threshold, self.scottish_intermediate_rate),
                (self.scottish_starter_threshold, self.scottish_basic_rate),
                (0.0, self.scottish_starter_rate),
            ]
        return [
            (self.higher_rate_threshold, self.additional_rate),
            (self.basic_rate_threshold, self.higher_rate),
            (0.0, self.basic_rate),
        ]

    def national_insurance_bands(self) -> TaxBands:
        return [
            (self.ni_upper_earnings_limit, self.ni_upper_rate),
            (self.ni_primary_threshold, self.ni_main_rate),
        ]


class TaxCalculationResult(BaseModel):
    """Outcome of a total tax calculation."""

    model_config = ConfigDict(frozen=True)

    gross_income: float = Field(..., ge=0, description="Salary + pension + dividends")
    taxable_income: float = Field(..., ge=0, description="Gross income less allowance")
    income_tax: float = Field(..., ge=0, description="Income tax due")
    national_insurance: float = Field(..., ge=0, description="Employee NI due")
    capital_gains_tax: float = Field(..., ge=0, description="Capital gains tax due")
    total_tax: float = Field(..., ge=0, description="Sum of all taxes")
    effective_rate: float = Field(
        ..., ge=0, description="Total tax as a fraction of gross income"
    )


class TaxEfficiencyMetrics(BaseModel):
    """Summary ratios derived from a tax calculation."""

    model_config = ConfigDict(frozen=True)

    effective_tax_rate: float = Field(..., description="Total tax / gross income")
    marginal_tax_rate: float = Field(..., description="Rate on the next unit of income")
    allowance_utilization_rate: float = Field(
        ..., ge=0, le=1, description="Share of income plus allowance that is income"
    )
    total_tax_paid: float = Field(..., ge=0, description="Total tax")


def _apply_bands(amount: float, bands: TaxBands) -> float:
    """Tax each slice of ``amount`` above a threshold at that band's rate."""
    tax = 0.0
    remaining = amount
    for threshold, rate in bands:
        if remaining > threshold:
            tax += (remaining - threshold) * rate
            remaining = threshold
    return tax


class UKTaxCalculator:
    """Calculator for UK income tax, National Insurance and capital gains tax."""

    def __init__(self, rates: Optional[UKTaxRates] = None) -> None:
        self.rates = rates or UKTaxRates()

    def calculate_income_tax(self, taxable_income: float, scottish: bool = False) -> float:
        """
        Calculate income tax on taxable income.

        Args:
            taxable_income: Income after the personal allowance
            scottish: Use the Scottish five-band schedule

        Returns:
            Income tax due (0 for non-positive income)
        """
        if taxable_income <= 0:
            return 0.0
        return _apply_bands(taxable_income, self.rates.income_tax_bands(scottish))

    def calculate_national_insurance(self, gross_income: float) -> float:
        """Calculate employee National Insurance on earnings."""
        if gross_income <= self.rates.ni_primary_threshold:
            return 0.0
        return _apply_bands(gross_income, self.rates.national_insurance_bands())

    def calculate_capital_gains_tax(
        self, capital_gains: float, other_income: float, scottish: bool = False
    ) -> float:
        """
        Calculate capital gains tax.

        The annual exemption is deducted first. The higher rate applies when
        other income plus gains exceeds the basic-rate threshold; the same
        rates apply in Scotland.
        """
        if capital_gains <= 0:
            return 0.0
        taxable_gains = max(0.0, capital_gains - self.rates.cgt_annual_exemption)
        if taxable_gains <= 0:
            return 0.0
        higher = other_income + capital_gains > self.rates.basic_rate_threshold
        rate = self.rates.cgt_higher_rate if higher else self.rates.cgt_basic_rate
        return taxable_gains * rate

    def calculate_marginal_rate(self, taxable_income: float, scottish: bool = False) -> float:
        bands = self.rates.income_tax_bands(scottish)
        for threshold, rate in bands:
            if taxable_income > threshold:
                return rate
        return bands[-1][1]

    def calculate_total_tax(
        self,
        person: Person,
        salary_income: float = 0.0,
        pension_income: float = 0.0,
        dividend_income: float = 0.0,
        capital_gains: float = 0.0,
    ) -> TaxCalculationResult:
        """
        Calculate a person's total tax for the year.

        National Insurance is charged on salary plus pension; capital gains
        are rated against gross income.

        Returns:
            TaxCalculationResult with the effective rate as a fraction
        """
        scottish = person.is_scottish_taxpayer
        gross_income = salary_income + pension_income + dividend_income
        taxable_income = max(0.0, gross_income - person.personal_allowance)

        income_tax = self.calculate_income_tax(taxable_income, scottish)
        national_insurance = self.calculate_national_insurance(salary_income + pension_income)
        capital_gains_tax = self.calculate_capital_gains_tax(
            capital_gains, gross_income, scottish
        )

        total_tax = income_tax + national_insurance + capital_gains_tax
        effective_rate = total_tax / gross_income if gross_income > 0 else 0.0

        return TaxCalculationResult(
            gross_income=gross_income,
            taxable_income=taxable_income,
            income_tax=income_tax,
            national_insurance=national_insurance,
            capital_gains_tax=capital_gains_tax,
            total_tax=total_tax,
            effective_rate=effective_rate,
        )

    def calculate_tax_efficiency(
        self, person: Person, result: TaxCalculationResult
    ) -> TaxEfficiencyMetrics:
        gross = result.gross_income
        utilization = (
            min(1.0, gross / (gross + person.personal_allowance)) if gross > 0 else 0.0
        )
        return TaxEfficiencyMetrics(
            effective_tax_rate=result.effective_rate,
            marginal_tax_rate=self.calculate_marginal_rate(
                result.taxable_income, person.is_scottish_taxpayer
            ),
            allowance_utilization_rate=utilization,
            total_tax_paid=result.total_tax,
        )
