from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import List, Optional, Sequence

from btc_vesting.core.growth import BitcoinGrowthProjector
from btc_vesting.domain.errors import CalculationCancelled
from btc_vesting.domain.scheme import (
    MarketInput,
    SchemeInput,
    Step,
    active_step,
    validated,
)
from btc_vesting.schemas.vesting import (
    CalculationSummary,
    TimelinePoint,
    VestingCalculationResult,
)


@dataclass
class GrantMonth:
    month: int
    total_grants: float
    vested_amount: float
    bonus_amount: float

    @property
    def employer_balance(self) -> float:
        return self.total_grants + self.bonus_amount


class VestingScheduleCalculator:
    """Milestone lookup, bonuses and grant accumulation for one scheme.

    ``milestones`` drive the average vesting period; ``vesting_steps`` (custom
    events when the scheme defines any, otherwise the milestones) drive the
    vested percent at a given month. Both must be sorted by month.
    """

    def __init__(
        self,
        milestones: Sequence[Step],
        bonuses: Sequence[Step] = (),
        vesting_steps: Optional[Sequence[Step]] = None,
    ):
        self.milestones = list(milestones)
        self.bonuses = list(bonuses)
        self.vesting_steps = list(vesting_steps) if vesting_steps else self.milestones

    def current_milestone(self, month: int) -> Step:
        return active_step(self.vesting_steps, month) or Step(start=0, percent=0.0)

    def vested_amount(self, total_grants: float, month: int) -> float:
        return total_grants * self.current_milestone(month).percent / 100

    def bonus_amount(self, month: int, balance: float) -> float:
        # recomputed from the pre-bonus balance every month once unlocked
        return sum(balance * bonus.percent / 100 for bonus in self.bonuses if month >= bonus.start)

    def average_vesting_period(self) -> float:
        total_weight = sum(milestone.percent for milestone in self.milestones)
        if total_weight <= 0:
            return 0.0
        weighted = sum(milestone.start * milestone.percent for milestone in self.milestones)
        return weighted / total_weight

    @staticmethod
    def grants_annually(month: int, max_annual_grant_years: Optional[int]) -> bool:
        if month <= 0 or month % 12:
            return False
        return max_annual_grant_years is None or month // 12 <= max_annual_grant_years

    def generate_timeline(
        self,
        initial_grant: float,
        annual_grant: float,
        horizon: int,
        max_annual_grant_years: Optional[int] = None,
    ) -> List[GrantMonth]:
        rows: List[GrantMonth] = []
        total_grants = initial_grant

        for month in range(horizon + 1):
            if annual_grant and self.grants_annually(month, max_annual_grant_years):
                total_grants += annual_grant

            bonus = self.bonus_amount(month, total_grants)
            rows.append(
                GrantMonth(
                    month=month,
                    total_grants=total_grants,
                    vested_amount=self.vested_amount(total_grants, month) + bonus,
                    bonus_amount=bonus,
                )
            )

        return rows


def calculate(
    scheme: SchemeInput,
    market: MarketInput,
    cancel_event: Optional[threading.Event] = None,
) -> VestingCalculationResult:
    """
    Project a compensation scheme month by month from 0 to the last milestone.

    Per month:
      1) Add the annual grant on each anniversary the scheme still grants.
      2) Vested = grants * active milestone percent.
      3) Unlocked bonuses are added to both the balance and the vested amount.
      4) Price compounds monthly; usdValue = balance * price.

    The summary values grants at today's price and excludes bonuses.
    Raises ``SchemeValidationError`` before computing anything if the inputs are invalid.
    """
    prepared, assumptions, _warnings = validated(scheme, market)
    if cancel_event is not None and cancel_event.is_set():
        raise CalculationCancelled(f"calculation for scheme {prepared.scheme_id!r} was cancelled")

    calculator = VestingScheduleCalculator(
        milestones=prepared.milestones,
        bonuses=prepared.bonuses,
        vesting_steps=prepared.vesting_steps,
    )
    projector = BitcoinGrowthProjector(
        assumptions.currentBitcoinPrice,
        assumptions.projectedBitcoinGrowth,
    )

    rows = calculator.generate_timeline(
        prepared.initial_grant,
        prepared.annual_grant,
        prepared.horizon,
        prepared.max_annual_grant_years,
    )

    timeline: List[TimelinePoint] = []
    for row in rows:
        price = projector.project_price(row.month)
        timeline.append(
            TimelinePoint(
                month=row.month,
                employerBalance=row.employer_balance,
                vestedAmount=row.vested_amount,
                bitcoinPrice=price,
                usdValue=row.employer_balance * price,
                totalGrants=row.total_grants,
                bonusAmount=row.bonus_amount,
            )
        )

    total_granted = rows[-1].total_grants
    total_cost = total_granted * assumptions.currentBitcoinPrice
    summary = CalculationSummary(
        totalBitcoinGranted=total_granted,
        totalCostUSD=total_cost,
        averageVestingPeriodMonths=calculator.average_vesting_period(),
        maxEmployerCommitment=total_cost,
        horizonMonths=prepared.horizon,
    )
    return VestingCalculationResult(timeline=timeline, summary=summary)


def yearly_points(result: VestingCalculationResult) -> List[TimelinePoint]:
    """Every 12th month of a timeline, for yearly breakdown tables."""
    return [point for point in result.timeline if point.month % 12 == 0]
