"""US tax estimates for vested and sold Bitcoin (2024 brackets, simplified)."""

from __future__ import annotations

from collections import defaultdict
from enum import Enum
from typing import Dict, Iterable, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field


class FilingStatus(str, Enum):
    SINGLE = "SINGLE"
    MARRIED_JOINTLY = "MARRIED_JOINTLY"
    MARRIED_SEPARATELY = "MARRIED_SEPARATELY"
    HEAD_OF_HOUSEHOLD = "HEAD_OF_HOUSEHOLD"


# (lower bound, upper bound, rate); None means unbounded
ORDINARY_BRACKETS_2024: Tuple[Tuple[float, Optional[float], float], ...] = (
    (0, 11000, 0.10),
    (11000, 44725, 0.12),
    (44725, 95375, 0.22),
    (95375, 182050, 0.24),
    (182050, 231250, 0.32),
    (231250, 578125, 0.35),
    (578125, None, 0.37),
)

# (income threshold, rate) for long-term gains, applied to the whole gain
LONG_TERM_RATES: Tuple[Tuple[float, float], ...] = (
    (44625, 0.0),
    (492300, 0.15),
    (float("inf"), 0.20),
)

STATE_TAX_RATES: Dict[str, float] = {
    "CA": 0.133,
    "NY": 0.109,
    "TX": 0.0,
    "FL": 0.0,
    "WA": 0.0,
    "DEFAULT": 0.05,
}

NIIT_THRESHOLDS: Dict[FilingStatus, float] = {
    FilingStatus.SINGLE: 200000,
    FilingStatus.MARRIED_JOINTLY: 250000,
    FilingStatus.MARRIED_SEPARATELY: 125000,
    FilingStatus.HEAD_OF_HOUSEHOLD: 200000,
}
NIIT_RATE = 0.038


class TaxCalculationParams(BaseModel):
    btcAmount: float = Field(ge=0)
    btcPrice: float = Field(ge=0)
    costBasis: float = Field(ge=0)
    holdingPeriodDays: int = Field(ge=0)
    state: str = "DEFAULT"
    filingStatus: FilingStatus = FilingStatus.SINGLE


class TaxImplicationResult(BaseModel):
    proceeds: float
    costBasis: float
    gain: float
    federalTax: float
    netInvestmentIncomeTax: float = Field(0.0, description="Included in federalTax.")
    stateTax: float
    totalTax: float
    netProceeds: float
    effectiveRate: float
    taxType: Literal["long-term", "short-term"]


class VestingTaxResult(BaseModel):
    grossValue: float
    taxableIncome: float
    incomeTax: float
    capitalGainsTax: float
    totalTax: float
    netValue: float
    effectiveTaxRate: float = Field(description="Percent of the gross value.")


class QuarterlyPayment(BaseModel):
    quarter: str
    amount: float
    dueDate: str


class WithdrawalYear(BaseModel):
    year: int
    withdrawalAmount: float
    tax: float
    netAmount: float


class VestedValue(BaseModel):
    month: int = Field(ge=0)
    value: float = Field(ge=0)


class ScheduleTaxComparison(BaseModel):
    scheduleName: str
    totalTax: float
    taxSavings: float


class TaxImplicationCalculator:
    def ordinary_income_tax(self, income: float) -> float:
        tax = 0.0
        for lower, upper, rate in ORDINARY_BRACKETS_2024:
            if income <= lower:
                break
            top = income if upper is None else min(income, upper)
            tax += (top - lower) * rate
        return tax

    def marginal_income_tax(self, amount: float, base_income: float) -> float:
        """Tax owed on ``amount`` stacked on top of ``base_income``."""
        if amount <= 0:
            return 0.0
        return self.ordinary_income_tax(base_income + amount) - self.ordinary_income_tax(base_income)

    def capital_gains_tax(self, gain: float, long_term: bool, annual_income: float) -> float:
        if gain <= 0:
            return 0.0
        if not long_term:
            return self.marginal_income_tax(gain, annual_income)
        for threshold, rate in LONG_TERM_RATES:
            if annual_income <= threshold:
                return gain * rate
        return gain * LONG_TERM_RATES[-1][1]

    def calculate_tax(self, params: TaxCalculationParams) -> TaxImplicationResult:
        """
        Tax on selling ``btcAmount`` at ``btcPrice``; long-term after 365 days.

        Brackets are the single-filer ones; ``filingStatus`` sets the NIIT threshold.
        """
        proceeds = params.btcAmount * params.btcPrice
        gain = proceeds - params.costBasis
        long_term = params.holdingPeriodDays >= 365

        # the sale itself is the only income considered here
        taxable_gain = max(gain, 0.0)
        niit = self.calculate_niit(taxable_gain, taxable_gain, params.filingStatus)
        federal = self.capital_gains_tax(gain, long_term, annual_income=taxable_gain) + niit
        state_rate = STATE_TAX_RATES.get(params.state.upper(), STATE_TAX_RATES["DEFAULT"])
        state = taxable_gain * state_rate

        total = federal + state
        return TaxImplicationResult(
            proceeds=proceeds,
            costBasis=params.costBasis,
            gain=gain,
            federalTax=federal,
            netInvestmentIncomeTax=niit,
            stateTax=state,
            totalTax=total,
            netProceeds=proceeds - total,
            effectiveRate=total / proceeds if proceeds > 0 else 0.0,
            taxType="long-term" if long_term else "short-term",
        )

    def calculate_vesting_tax(
        self,
        vested_value: float,
        cost_basis: float,
        holding_months: int,
        annual_income: float,
    ) -> VestingTaxResult:
        """
        Estimate tax on a vested grant that is sold at ``vested_value``.

        The value at grant (``cost_basis``) is ordinary income on top of the
        employee's salary; appreciation above it is a capital gain, long-term
        after 12 months of holding.
        """
        income_portion = max(min(cost_basis, vested_value), 0.0)
        gain = max(vested_value - cost_basis, 0.0)

        income_tax = self.marginal_income_tax(income_portion, annual_income)
        gains_tax = self.capital_gains_tax(gain, holding_months >= 12, annual_income)
        total = income_tax + gains_tax

        return VestingTaxResult(
            grossValue=vested_value,
            taxableIncome=income_portion + gain,
            incomeTax=income_tax,
            capitalGainsTax=gains_tax,
            totalTax=total,
            netValue=vested_value - total,
            effectiveTaxRate=(total / vested_value * 100) if vested_value > 0 else 0.0,
        )

    def withdrawal_strategy(
        self,
        total_value: float,
        years: int,
        annual_income: float,
    ) -> List[WithdrawalYear]:
        """Spread long-term sales evenly over ``years`` years."""
        if years <= 0:
            return []
        amount = total_value / years
        plan: List[WithdrawalYear] = []
        for year in range(1, years + 1):
            tax = self.capital_gains_tax(amount, True, annual_income)
            plan.append(WithdrawalYear(year=year, withdrawalAmount=amount, tax=tax, netAmount=amount - tax))
        return plan

    def compare_vesting_schedules(
        self,
        schedules: Dict[str, Iterable[VestedValue]],
        annual_income: float,
    ) -> List[ScheduleTaxComparison]:
        """Total ordinary-income tax per schedule when vested value is taxed in the year it vests."""
        totals: Dict[str, float] = {}
        for name, vested in schedules.items():
            by_year: Dict[int, float] = defaultdict(float)
            for entry in vested:
                by_year[entry.month // 12] += entry.value
            totals[name] = sum(self.marginal_income_tax(value, annual_income) for value in by_year.values())

        worst = max(totals.values(), default=0.0)
        return [
            ScheduleTaxComparison(scheduleName=name, totalTax=total, taxSavings=worst - total)
            for name, total in totals.items()
        ]

    def estimate_quarterly_payments(self, annual_tax_liability: float) -> List[QuarterlyPayment]:
        due_dates = ("April 15", "June 15", "September 15", "January 15")
        return [
            QuarterlyPayment(quarter=f"Q{index}", amount=annual_tax_liability / 4, dueDate=due)
            for index, due in enumerate(due_dates, start=1)
        ]

    def calculate_niit(self, income: float, investment_income: float, filing_status: FilingStatus) -> float:
        """Net investment income tax (3.8%) above the filing-status threshold."""
        threshold = NIIT_THRESHOLDS[filing_status]
        if income <= threshold:
            return 0.0
        return min(investment_income, income - threshold) * NIIT_RATE
