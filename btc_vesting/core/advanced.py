from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel

from btc_vesting.core.growth import BitcoinGrowthProjector, GrowthScenario, ScenarioOutcome
from btc_vesting.core.retention import CostEffectiveness, EmployeeRetentionModeler
from btc_vesting.core.risk import RiskAnalysisEngine, RiskMetrics
from btc_vesting.core.tax import TaxImplicationCalculator, VestingTaxResult
from btc_vesting.core.vesting import calculate
from btc_vesting.domain.errors import SchemeValidationError
from btc_vesting.domain.scheme import MarketInput, SchemeInput, projection_bound_error, validated
from btc_vesting.schemas.vesting import CalculationSummary, TimelinePoint, VestingCalculationResult

RiskTolerance = Literal["conservative", "moderate", "aggressive"]

CONFIDENCE_BY_TOLERANCE: Dict[str, float] = {
    "conservative": 0.99,
    "moderate": 0.95,
    "aggressive": 0.90,
}

# multipliers applied to the projected growth for the scenario table
SCENARIO_MULTIPLIERS = (
    ("Conservative", 0.5),
    ("Base Case", 1.0),
    ("Optimistic", 1.5),
)

DEFAULT_EMPLOYEE_INCOME = 100000.0


class AdvancedMetrics(BaseModel):
    taxImplications: VestingTaxResult
    retentionAnalysis: Optional[CostEffectiveness] = None
    riskMetrics: RiskMetrics
    growthScenarios: List[ScenarioOutcome]


class AdvancedCalculationResult(BaseModel):
    timeline: List[TimelinePoint]
    summary: CalculationSummary
    advancedMetrics: AdvancedMetrics


def calculate_advanced_metrics(
    scheme: SchemeInput,
    market: MarketInput,
    employee_count: Optional[int] = None,
    annual_salary_per_employee: Optional[float] = None,
    employee_annual_income: Optional[float] = None,
    risk_tolerance: RiskTolerance = "moderate",
    base_result: Optional[VestingCalculationResult] = None,
) -> AdvancedCalculationResult:
    """
    Layer tax, retention, risk and growth-scenario analysis on top of ``calculate``.

    The base projection is only read; a caller that already holds one can pass
    it as ``base_result`` to skip recomputing it.
    """
    prepared, assumptions, _warnings = validated(scheme, market)
    result = base_result if base_result is not None else calculate(scheme, market)

    final = result.timeline[-1]
    months = len(result.timeline)
    growth = assumptions.projectedBitcoinGrowth

    fastest = max(factor for _, factor in SCENARIO_MULTIPLIERS)
    bound_error = projection_bound_error(prepared, assumptions.currentBitcoinPrice, growth * fastest, months)
    if bound_error:
        raise SchemeValidationError([bound_error])

    total_cost = result.summary.totalCostUSD

    tax = TaxImplicationCalculator().calculate_vesting_tax(
        final.usdValue,
        total_cost,
        months,
        employee_annual_income if employee_annual_income is not None else DEFAULT_EMPLOYEE_INCOME,
    )

    retention: Optional[CostEffectiveness] = None
    if employee_count and annual_salary_per_employee:
        retention = EmployeeRetentionModeler().cost_effectiveness(
            employee_count,
            total_cost / employee_count,
            months,
            annual_salary_per_employee,
        )

    risk = RiskAnalysisEngine().risk_metrics(
        final.usdValue,
        growth / 100,
        months / 12,
        confidence_level=CONFIDENCE_BY_TOLERANCE[risk_tolerance],
    )

    projector = BitcoinGrowthProjector(assumptions.currentBitcoinPrice, growth)
    scenarios = projector.scenario_analysis(
        result.summary.totalBitcoinGranted,
        months,
        [GrowthScenario(name=name, growthRate=growth * factor) for name, factor in SCENARIO_MULTIPLIERS],
    )

    return AdvancedCalculationResult(
        timeline=[point.model_copy() for point in result.timeline],
        summary=result.summary.model_copy(),
        advancedMetrics=AdvancedMetrics(
            taxImplications=tax,
            retentionAnalysis=retention,
            riskMetrics=risk,
            growthScenarios=scenarios,
        ),
    )
