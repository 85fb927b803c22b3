"""Bitcoin price growth projections."""

from __future__ import annotations

import math
from typing import Iterable, List, Optional

from pydantic import BaseModel


class GrowthProjection(BaseModel):
    month: int
    price: float
    growthFromStart: float


class GrowthScenario(BaseModel):
    name: str
    growthRate: float


class ScenarioOutcome(BaseModel):
    scenario: str
    growthRate: float
    finalPrice: float
    finalValue: float
    growthMultiple: float


class BitcoinGrowthProjector:
    """Compound a base price monthly at ``annual_growth_percent / 12``."""

    def __init__(self, base_price: float, annual_growth_percent: float):
        self.base_price = float(base_price)
        self.annual_growth_percent = float(annual_growth_percent)

    def monthly_growth_rate(self) -> float:
        return self.annual_growth_percent / 12 / 100

    def project_price(self, month: int) -> float:
        return self.base_price * (1 + self.monthly_growth_rate()) ** month

    def generate_projections(self, months: Iterable[int]) -> List[GrowthProjection]:
        projections: List[GrowthProjection] = []
        for month in months:
            price = self.project_price(month)
            growth = (price / self.base_price - 1) * 100 if self.base_price else 0.0
            projections.append(GrowthProjection(month=month, price=price, growthFromStart=growth))
        return projections

    @staticmethod
    def cagr(end_value: float, start_value: float, years: float) -> float:
        """Compound annual growth rate in percent; 0 for degenerate inputs."""
        if start_value <= 0 or end_value <= 0 or years <= 0:
            return 0.0
        return ((end_value / start_value) ** (1 / years) - 1) * 100

    def project_future_value(self, bitcoin_amount: float, months: int) -> float:
        return bitcoin_amount * self.project_price(months)

    def growth_multiple(self, months: int) -> float:
        return self.project_price(months) / self.base_price if self.base_price else 0.0

    def scenario_analysis(
        self,
        bitcoin_amount: float,
        months: int,
        scenarios: Iterable[GrowthScenario],
    ) -> List[ScenarioOutcome]:
        outcomes: List[ScenarioOutcome] = []
        for scenario in scenarios:
            projector = BitcoinGrowthProjector(self.base_price, scenario.growthRate)
            final_price = projector.project_price(months)
            outcomes.append(
                ScenarioOutcome(
                    scenario=scenario.name,
                    growthRate=scenario.growthRate,
                    finalPrice=final_price,
                    finalValue=bitcoin_amount * final_price,
                    growthMultiple=projector.growth_multiple(months),
                )
            )
        return outcomes

    def months_to_reach_target(self, current_value: float, target_value: float) -> Optional[float]:
        """Months of growth needed for ``current_value`` to reach ``target_value``."""
        if self.annual_growth_percent <= 0 or current_value <= 0 or target_value <= current_value:
            return None
        return math.log(target_value / current_value) / math.log(1 + self.monthly_growth_rate())
