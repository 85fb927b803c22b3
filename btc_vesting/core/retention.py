"""Employee retention modelling for vesting programs."""

from __future__ import annotations

import math
from typing import Iterable, List, Optional, Sequence

from pydantic import BaseModel

from btc_vesting.domain.scheme import Step, active_step, sort_steps


class RetentionMetrics(BaseModel):
    retentionRate: float
    expectedTenureMonths: Optional[float] = None
    vestingCompletionProbability: float
    costPerRetainedEmployee: float


class RetentionScenario(BaseModel):
    name: str
    baseRetentionRate: float
    vestingImpactMultiplier: float


class RetentionCurvePoint(BaseModel):
    month: int
    remainingEmployees: int
    retentionRate: float
    vestedEmployees: int


class RetentionComparison(BaseModel):
    scenario: str
    avgRetention: float
    totalRetained: int
    costPerRetention: float
    roi: float


class CostEffectiveness(BaseModel):
    withVesting: RetentionMetrics
    withoutVesting: RetentionMetrics
    incrementalValue: float


# replacing an employee costs 150% of annual compensation
REPLACEMENT_COST_FACTOR = 1.5


class EmployeeRetentionModeler:
    def __init__(self, industry_average_retention: float = 0.85, vesting_retention_boost: float = 0.15):
        self.industry_average_retention = industry_average_retention
        self.vesting_retention_boost = vesting_retention_boost

    def annual_retention(self, has_vesting_incentive: bool) -> float:
        if has_vesting_incentive:
            return self.industry_average_retention + self.vesting_retention_boost
        return self.industry_average_retention

    @staticmethod
    def proximity_boost(month: int, vesting_month: float) -> float:
        remaining = vesting_month - month
        if remaining <= 0:
            return 0.0
        if remaining <= 6:
            return 0.20
        if remaining <= 12:
            return 0.10
        if remaining <= 24:
            return 0.05
        return 0.0

    def retention_probability(self, month: int, has_vesting_incentive: bool, vesting_completion_month: float) -> float:
        monthly = self.annual_retention(has_vesting_incentive) ** (1 / 12)
        probability = monthly**month
        if has_vesting_incentive and month < vesting_completion_month:
            boost = self.proximity_boost(month, vesting_completion_month)
            probability = min(1.0, probability * (1 + boost))
        return probability

    def retention_curve(
        self,
        total_employees: int,
        vesting_schedule: Iterable[Step],
        projection_months: int,
    ) -> List[RetentionCurvePoint]:
        steps = sort_steps(vesting_schedule)
        curve: List[RetentionCurvePoint] = []

        for month in range(projection_months + 1):
            current = active_step(steps, month)
            upcoming = next((step for step in steps if step.start > month), None)
            probability = self.retention_probability(
                month,
                True,
                upcoming.start if upcoming else math.inf,
            )
            remaining = round(total_employees * probability)
            vested_percent = current.percent if current else 0.0
            curve.append(
                RetentionCurvePoint(
                    month=month,
                    remainingEmployees=remaining,
                    retentionRate=probability * 100,
                    vestedEmployees=round(remaining * vested_percent / 100),
                )
            )
        return curve

    def expected_tenure(self, has_vesting: bool) -> Optional[float]:
        """Expected tenure in months, ``1 / (1 - annual retention)`` years; None when nobody leaves."""
        annual = self.annual_retention(has_vesting)
        if annual >= 1 - 1e-9:
            return None
        return 12 / (1 - annual)

    def vesting_completion_probability(self, vesting_months: int, has_incentive: bool) -> float:
        return self.retention_probability(vesting_months, has_incentive, vesting_months)

    def compare_scenarios(
        self,
        scenarios: Sequence[RetentionScenario],
        total_employees: int,
        vesting_value_per_employee: float,
        projection_years: int,
    ) -> List[RetentionComparison]:
        months = projection_years * 12
        results: List[RetentionComparison] = []

        for scenario in scenarios:
            monthly = (scenario.baseRetentionRate * scenario.vestingImpactMultiplier) ** (1 / 12)
            average = sum(monthly**m for m in range(1, months + 1)) / months if months else 1.0
            retained = round(total_employees * average)
            total_cost = total_employees * vesting_value_per_employee
            savings = (total_employees - retained) * vesting_value_per_employee * REPLACEMENT_COST_FACTOR
            results.append(
                RetentionComparison(
                    scenario=scenario.name,
                    avgRetention=average * 100,
                    totalRetained=retained,
                    costPerRetention=total_cost / retained if retained > 0 else 0.0,
                    roi=((savings - total_cost) / total_cost) * 100 if total_cost > 0 else 0.0,
                )
            )
        return results

    def cost_effectiveness(
        self,
        employee_count: int,
        vesting_cost_per_employee: float,
        vesting_period_months: int,
        annual_salary_per_employee: float,
    ) -> CostEffectiveness:
        years = vesting_period_months / 12
        with_rate = min(self.annual_retention(True), 1.0) ** years
        without_rate = self.annual_retention(False) ** years

        with_vesting = RetentionMetrics(
            retentionRate=with_rate * 100,
            expectedTenureMonths=self.expected_tenure(True),
            vestingCompletionProbability=self.vesting_completion_probability(vesting_period_months, True) * 100,
            costPerRetainedEmployee=vesting_cost_per_employee / with_rate if with_rate > 0 else 0.0,
        )
        without_vesting = RetentionMetrics(
            retentionRate=without_rate * 100,
            expectedTenureMonths=self.expected_tenure(False),
            vestingCompletionProbability=self.vesting_completion_probability(vesting_period_months, False) * 100,
            costPerRetainedEmployee=0.0,
        )

        additional = employee_count * (with_rate - without_rate)
        saved = additional * annual_salary_per_employee * REPLACEMENT_COST_FACTOR
        return CostEffectiveness(
            withVesting=with_vesting,
            withoutVesting=without_vesting,
            incrementalValue=saved - employee_count * vesting_cost_per_employee,
        )
