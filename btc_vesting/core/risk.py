"""Volatility-based risk metrics for a Bitcoin position."""

from __future__ import annotations

import math
from typing import Dict, List, Optional, Sequence

import numpy as np
from pydantic import BaseModel


class RiskMetrics(BaseModel):
    volatility: float
    valueAtRisk: float
    sharpeRatio: float
    maxDrawdown: float
    probabilityOfLoss: float


class RiskScenario(BaseModel):
    name: str
    probability: float
    bitcoinPriceChange: float
    impact: str


class RiskAdjustedReturns(BaseModel):
    expectedValue: float
    standardDeviation: float
    bestCase: float
    worstCase: float
    probabilityOfProfit: float


class MonteCarloSummary(BaseModel):
    median: float
    percentile10: float
    percentile90: float
    probabilityOfDoubling: float


Z_SCORES: Dict[float, float] = {0.90: 1.28, 0.95: 1.65, 0.99: 2.33}
TRADING_DAYS = 252
# peak-to-trough drawdowns of past cycles, worst first
HISTORICAL_DRAWDOWNS = (0.93, 0.84, 0.70, 0.50, 0.35)
PORTFOLIO_CORRELATION = 0.2

STRESS_SCENARIOS = (
    RiskScenario(name="Severe Market Crash", probability=0.05, bitcoinPriceChange=-80,
                 impact="Major loss of value, similar to 2018 crash"),
    RiskScenario(name="Significant Correction", probability=0.15, bitcoinPriceChange=-50,
                 impact="Substantial loss, typical crypto winter"),
    RiskScenario(name="Moderate Downturn", probability=0.25, bitcoinPriceChange=-30,
                 impact="Notable loss, common in volatile markets"),
    RiskScenario(name="Stable Growth", probability=0.30, bitcoinPriceChange=20,
                 impact="Modest gains, below historical average"),
    RiskScenario(name="Strong Bull Market", probability=0.20, bitcoinPriceChange=100,
                 impact="Significant gains, typical bull cycle"),
    RiskScenario(name="Extreme Rally", probability=0.05, bitcoinPriceChange=300,
                 impact="Exceptional gains, rare but possible"),
)


def normal_cdf(x: float) -> float:
    return 0.5 * (1.0 + math.erf(x / math.sqrt(2.0)))


class RiskAnalysisEngine:
    def __init__(self, historical_volatility: float = 0.70, risk_free_rate: float = 0.045):
        self.historical_volatility = historical_volatility
        self.risk_free_rate = risk_free_rate

    def value_at_risk(self, portfolio_value: float, confidence_level: float, period_days: float) -> float:
        """Parametric VaR; unknown confidence levels fall back to 95%."""
        z = Z_SCORES.get(round(confidence_level, 2), Z_SCORES[0.95])
        daily = self.historical_volatility / math.sqrt(TRADING_DAYS)
        return portfolio_value * z * daily * math.sqrt(max(period_days, 0))

    def portfolio_volatility(self, bitcoin_allocation_percent: float, other_assets_volatility: float = 0.15) -> float:
        btc = bitcoin_allocation_percent / 100
        other = 1 - btc
        variance = (
            (btc * self.historical_volatility) ** 2
            + (other * other_assets_volatility) ** 2
            + 2 * btc * other * self.historical_volatility * other_assets_volatility * PORTFOLIO_CORRELATION
        )
        return math.sqrt(variance)

    def sharpe_ratio(self, expected_return: float, volatility: Optional[float] = None) -> float:
        volatility = self.historical_volatility if volatility is None else volatility
        if volatility <= 0:
            return 0.0
        return (expected_return - self.risk_free_rate) / volatility

    def max_drawdown(self, current_value: float, confidence_level: float = 0.95) -> float:
        index = math.floor((1 - confidence_level) * len(HISTORICAL_DRAWDOWNS))
        index = min(max(index, 0), len(HISTORICAL_DRAWDOWNS) - 1)
        return current_value * HISTORICAL_DRAWDOWNS[index]

    def probability_of_loss(self, expected_return: float, years: float) -> float:
        spread = self.historical_volatility * math.sqrt(years)
        if spread <= 0:
            return 0.0 if expected_return >= 0 else 1.0
        return normal_cdf(-expected_return / spread)

    @staticmethod
    def stress_scenarios() -> List[RiskScenario]:
        return [scenario.model_copy() for scenario in STRESS_SCENARIOS]

    @staticmethod
    def risk_adjusted_returns(scenarios: Sequence[RiskScenario], initial_investment: float) -> RiskAdjustedReturns:
        if not scenarios:
            return RiskAdjustedReturns(
                expectedValue=initial_investment,
                standardDeviation=0.0,
                bestCase=initial_investment,
                worstCase=initial_investment,
                probabilityOfProfit=0.0,
            )

        changes = np.array([s.bitcoinPriceChange for s in scenarios], dtype=float)
        weights = np.array([s.probability for s in scenarios], dtype=float)
        values = initial_investment * (1 + changes / 100)

        # probabilities are used as given, not renormalised
        expected = float(np.sum(weights * values))
        variance = float(np.sum(weights * (values - expected) ** 2))
        return RiskAdjustedReturns(
            expectedValue=expected,
            standardDeviation=float(np.sqrt(variance)),
            bestCase=float(values.max()),
            worstCase=float(values.min()),
            probabilityOfProfit=float(weights[changes > 0].sum()),
        )

    def risk_metrics(
        self,
        portfolio_value: float,
        expected_annual_return: float,
        years: float,
        confidence_level: float = 0.95,
    ) -> RiskMetrics:
        """Headline metrics; ``expected_annual_return`` is a decimal (0.15 for 15%)."""
        return RiskMetrics(
            volatility=self.historical_volatility * 100,
            valueAtRisk=self.value_at_risk(portfolio_value, confidence_level, years * TRADING_DAYS),
            sharpeRatio=self.sharpe_ratio(expected_annual_return),
            maxDrawdown=self.max_drawdown(portfolio_value, confidence_level),
            probabilityOfLoss=self.probability_of_loss(expected_annual_return, years) * 100,
        )

    def monte_carlo(
        self,
        initial_value: float,
        annual_return: float,
        years: int,
        simulations: int = 1000,
        seed: Optional[int] = None,
    ) -> MonteCarloSummary:
        """
        Simulate yearly returns drawn from N(annual_return, volatility).

        One row per path, one column per year; a path's final value is the
        initial value times the product of its yearly growth factors.
        """
        rng = np.random.default_rng(seed)
        returns = rng.normal(annual_return, self.historical_volatility, size=(max(simulations, 1), max(years, 0)))
        finals = initial_value * np.prod(1 + returns, axis=1)

        return MonteCarloSummary(
            median=float(np.median(finals)),
            percentile10=float(np.percentile(finals, 10)),
            percentile90=float(np.percentile(finals, 90)),
            probabilityOfDoubling=float(np.mean(finals >= initial_value * 2)),
        )
