"""Cost basis of Bitcoin grants valued at a year's high, low or average price."""

from __future__ import annotations

import math
from typing import Dict, Iterable, Mapping

from btc_vesting.domain.errors import SchemeValidationError
from btc_vesting.schemas.historical import (
    BitcoinYearlyPrices,
    CostBasisMethod,
    CostBasisYear,
    GrantEvent,
)

COST_BASIS_METHODS = ("high", "low", "average")


class CostBasisCalculator:
    @staticmethod
    def price_for(prices: BitcoinYearlyPrices, method: CostBasisMethod) -> float:
        if method not in COST_BASIS_METHODS:
            raise SchemeValidationError(
                [f"invalid cost basis method {method!r}; expected one of {', '.join(COST_BASIS_METHODS)}"]
            )
        price = getattr(prices, method)
        if not math.isfinite(price) or price <= 0:
            raise SchemeValidationError([f"invalid {method} price for year {prices.year}: {price}"])
        return price

    @classmethod
    def yearly_cost(
        cls,
        amount: float,
        year: int,
        prices: BitcoinYearlyPrices,
        method: CostBasisMethod,
    ) -> float:
        if not math.isfinite(amount) or amount < 0:
            raise SchemeValidationError([f"grant amount must be a non-negative number, got {amount}"])
        if prices.year != year:
            raise SchemeValidationError(
                [f"price data year ({prices.year}) does not match requested year ({year})"]
            )
        return amount * cls.price_for(prices, method)

    @staticmethod
    def _prices_for(historical_prices: Mapping[int, BitcoinYearlyPrices], year: int) -> BitcoinYearlyPrices:
        prices = historical_prices.get(year)
        if prices is None:
            raise SchemeValidationError([f"no historical price data available for year {year}"])
        return prices

    @classmethod
    def total_cost_basis(
        cls,
        grants: Iterable[GrantEvent],
        historical_prices: Mapping[int, BitcoinYearlyPrices],
        method: CostBasisMethod,
    ) -> float:
        return sum(
            cls.yearly_cost(grant.amount, grant.year, cls._prices_for(historical_prices, grant.year), method)
            for grant in grants
        )

    @classmethod
    def cost_basis_breakdown(
        cls,
        grants: Iterable[GrantEvent],
        historical_prices: Mapping[int, BitcoinYearlyPrices],
        method: CostBasisMethod,
    ) -> Dict[int, CostBasisYear]:
        breakdown: Dict[int, CostBasisYear] = {}
        for grant in grants:
            prices = cls._prices_for(historical_prices, grant.year)
            entry = breakdown.setdefault(grant.year, CostBasisYear())
            entry.totalBitcoin += grant.amount
            entry.totalCost += cls.yearly_cost(grant.amount, grant.year, prices, method)
            entry.grants.append(grant)
        return breakdown
