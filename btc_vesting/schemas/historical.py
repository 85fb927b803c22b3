"""Data contracts for historical (back-tested) vesting analysis."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from btc_vesting.schemas.vesting import CompensationScheme

CostBasisMethod = Literal["high", "low", "average"]


class BitcoinYearlyPrices(BaseModel):
    year: int
    high: float = Field(ge=0)
    low: float = Field(ge=0)
    average: float = Field(ge=0)
    open: float = Field(ge=0)
    close: float = Field(ge=0)


class GrantEvent(BaseModel):
    year: int
    month: int = Field(ge=1, le=12)
    amount: float = Field(ge=0)
    type: Literal["initial", "annual"]


class HistoricalCalculationInputs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    scheme: CompensationScheme
    startingYear: int
    costBasisMethod: CostBasisMethod = "average"
    historicalPrices: Dict[int, BitcoinYearlyPrices]
    currentBitcoinPrice: float
    asOfYear: Optional[int] = Field(default=None, description="Defaults to the current year.")
    asOfMonth: Optional[int] = Field(default=None, ge=1, le=12)


class HistoricalTimelinePoint(BaseModel):
    year: int
    month: int
    cumulativeBitcoin: float
    cumulativeCostBasis: float
    currentValue: float
    vestedAmount: float
    grants: List[GrantEvent] = Field(default_factory=list)


class HistoricalSummary(BaseModel):
    startingYear: int
    endingYear: int
    yearsAnalyzed: int
    costBasisMethod: CostBasisMethod
    averageAnnualGrant: float


class CostBasisYear(BaseModel):
    totalBitcoin: float = 0.0
    totalCost: float = 0.0
    grants: List[GrantEvent] = Field(default_factory=list)


class HistoricalCalculationResult(BaseModel):
    timeline: List[HistoricalTimelinePoint]
    totalBitcoinGranted: float
    totalCostBasis: float
    currentTotalValue: float
    totalReturn: float
    annualizedReturn: float
    grantBreakdown: List[GrantEvent]
    summary: HistoricalSummary
