"""Back-test a compensation scheme against historical yearly Bitcoin prices."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Mapping, Union

from pydantic import ValidationError

from btc_vesting.core.cost_basis import CostBasisCalculator
from btc_vesting.core.vesting import VestingScheduleCalculator
from btc_vesting.domain.errors import SchemeValidationError
from btc_vesting.domain.scheme import PreparedScheme, format_validation_errors, prepare_scheme
from btc_vesting.schemas.historical import (
    BitcoinYearlyPrices,
    GrantEvent,
    HistoricalCalculationInputs,
    HistoricalCalculationResult,
    HistoricalSummary,
    HistoricalTimelinePoint,
)
from btc_vesting.schemas.vesting import MarketAssumptions

FIRST_BITCOIN_YEAR = 2009
DEFAULT_ANNUAL_GRANT_YEARS = 10
# the monthly timeline spans at most this many years
MAX_ANALYSIS_YEARS = 100


class HistoricalCalculator:
    """
    Grants are made in January: the initial grant in the starting year and one
    annual grant per following year while the scheme still grants and price
    data exists. Every grant is valued at the chosen yearly price (cost basis)
    and the whole position at the current price.
    """

    @classmethod
    def calculate(
        cls,
        inputs: Union[HistoricalCalculationInputs, Mapping[str, Any]],
    ) -> HistoricalCalculationResult:
        inputs = cls._coerce(inputs)
        today = date.today()
        as_of_year = inputs.asOfYear or today.year
        as_of_month = inputs.asOfMonth or (today.month if as_of_year == today.year else 12)

        prepared = cls._validate(inputs, as_of_year)
        prices = inputs.historicalPrices

        grants = cls.grant_events(prepared, inputs.startingYear, as_of_year, prices)
        timeline = cls._timeline(prepared, grants, inputs, as_of_year, as_of_month)

        total_cost = CostBasisCalculator.total_cost_basis(grants, prices, inputs.costBasisMethod)
        total_bitcoin = sum(grant.amount for grant in grants)
        current_value = total_bitcoin * inputs.currentBitcoinPrice

        years = as_of_year - inputs.startingYear
        if years > 0 and total_cost > 0 and current_value > 0:
            annualized = (current_value / total_cost) ** (1 / years) - 1
        else:
            annualized = 0.0

        annual = [grant.amount for grant in grants if grant.type == "annual"]
        return HistoricalCalculationResult(
            timeline=timeline,
            totalBitcoinGranted=total_bitcoin,
            totalCostBasis=total_cost,
            currentTotalValue=current_value,
            totalReturn=current_value - total_cost,
            annualizedReturn=annualized,
            grantBreakdown=grants,
            summary=HistoricalSummary(
                startingYear=inputs.startingYear,
                endingYear=as_of_year,
                yearsAnalyzed=years,
                costBasisMethod=inputs.costBasisMethod,
                averageAnnualGrant=sum(annual) / len(annual) if annual else 0.0,
            ),
        )

    @staticmethod
    def _coerce(inputs: Union[HistoricalCalculationInputs, Mapping[str, Any]]) -> HistoricalCalculationInputs:
        if isinstance(inputs, HistoricalCalculationInputs):
            return inputs
        try:
            return HistoricalCalculationInputs.model_validate(inputs)
        except ValidationError as exc:
            raise SchemeValidationError(format_validation_errors(exc)) from exc

    @staticmethod
    def _validate(inputs: HistoricalCalculationInputs, as_of_year: int) -> PreparedScheme:
        errors: List[str] = []
        if inputs.startingYear < FIRST_BITCOIN_YEAR:
            errors.append(f"startingYear {inputs.startingYear} must be {FIRST_BITCOIN_YEAR} or later")
        if inputs.startingYear > as_of_year:
            errors.append(f"startingYear {inputs.startingYear} cannot be after {as_of_year}")
        elif as_of_year - inputs.startingYear > MAX_ANALYSIS_YEARS:
            errors.append(
                f"asOfYear {as_of_year} is more than {MAX_ANALYSIS_YEARS} years after startingYear {inputs.startingYear}"
            )
        if inputs.startingYear not in inputs.historicalPrices:
            errors.append(f"no historical price data available for starting year {inputs.startingYear}")
        for year, prices in inputs.historicalPrices.items():
            if prices.year != year:
                errors.append(f"price data keyed {year} is for year {prices.year}")

        try:
            market = MarketAssumptions(currentBitcoinPrice=inputs.currentBitcoinPrice)
        except ValidationError as exc:
            errors.extend(format_validation_errors(exc, "currentBitcoinPrice"))
            raise SchemeValidationError(errors) from exc

        preparation = prepare_scheme(inputs.scheme, market)
        errors.extend(preparation.errors)
        if errors or preparation.scheme is None:
            raise SchemeValidationError(errors)
        return preparation.scheme

    @staticmethod
    def grant_events(
        scheme: PreparedScheme,
        starting_year: int,
        as_of_year: int,
        historical_prices: Mapping[int, BitcoinYearlyPrices],
    ) -> List[GrantEvent]:
        grants: List[GrantEvent] = []
        if scheme.initial_grant > 0 and starting_year in historical_prices:
            grants.append(GrantEvent(year=starting_year, month=1, amount=scheme.initial_grant, type="initial"))

        if scheme.annual_grant > 0:
            max_years = (
                scheme.max_annual_grant_years
                if scheme.max_annual_grant_years is not None
                else DEFAULT_ANNUAL_GRANT_YEARS
            )
            for year in range(starting_year + 1, min(starting_year + max_years, as_of_year) + 1):
                if year in historical_prices:
                    grants.append(GrantEvent(year=year, month=1, amount=scheme.annual_grant, type="annual"))

        return sorted(grants, key=lambda grant: (grant.year, grant.month))

    @staticmethod
    def _timeline(
        scheme: PreparedScheme,
        grants: List[GrantEvent],
        inputs: HistoricalCalculationInputs,
        as_of_year: int,
        as_of_month: int,
    ) -> List[HistoricalTimelinePoint]:
        if not grants:
            return []

        vesting = VestingScheduleCalculator(scheme.milestones, vesting_steps=scheme.vesting_steps)
        by_month: Dict[tuple, List[GrantEvent]] = {}
        for grant in grants:
            by_month.setdefault((grant.year, grant.month), []).append(grant)

        start_year = grants[0].year
        cumulative_bitcoin = 0.0
        cumulative_cost = 0.0
        timeline: List[HistoricalTimelinePoint] = []

        for year in range(start_year, as_of_year + 1):
            last_month = as_of_month if year == as_of_year else 12
            for month in range(1, last_month + 1):
                month_grants = by_month.get((year, month), [])
                for grant in month_grants:
                    cumulative_bitcoin += grant.amount
                    cumulative_cost += CostBasisCalculator.yearly_cost(
                        grant.amount,
                        grant.year,
                        inputs.historicalPrices[grant.year],
                        inputs.costBasisMethod,
                    )

                elapsed = (year - start_year) * 12 + (month - 1)
                timeline.append(
                    HistoricalTimelinePoint(
                        year=year,
                        month=month,
                        cumulativeBitcoin=cumulative_bitcoin,
                        cumulativeCostBasis=cumulative_cost,
                        currentValue=cumulative_bitcoin * inputs.currentBitcoinPrice,
                        vestedAmount=vesting.vested_amount(cumulative_bitcoin, elapsed),
                        grants=list(month_grants),
                    )
                )

        return timeline
