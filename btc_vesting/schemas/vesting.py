"""Data contracts for vesting projections."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# 100 years; longer schedules are rejected before any month is computed
MAX_HORIZON_MONTHS = 1200


class VestingMilestone(BaseModel):
    """Cumulative percent of grants vested once ``months`` have elapsed."""

    model_config = ConfigDict(extra="ignore")

    months: int = Field(ge=0, le=MAX_HORIZON_MONTHS)
    grantPercent: float = Field(ge=0, le=100)
    description: str = ""


class VestingBonus(BaseModel):
    model_config = ConfigDict(extra="ignore")

    months: int = Field(ge=0, le=MAX_HORIZON_MONTHS)
    bonusPercent: float = Field(ge=0, le=100)
    description: str = ""
    basedOn: Literal["balance", "contributions", "grant"] = "balance"


class CustomVestingEvent(BaseModel):
    """User-defined vesting step (e.g. 25% after 90 days)."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    timePeriod: int = Field(ge=0, le=MAX_HORIZON_MONTHS, description="Months elapsed (3 for 90 days, 12 for 1 year).")
    percentageVested: float = Field(ge=0, le=100)
    label: str = ""


class CompensationScheme(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    description: str = ""
    initialGrant: float = Field(ge=0, description="BTC granted at month 0.")
    annualGrant: Optional[float] = Field(
        default=None,
        ge=0,
        description="BTC granted on each 12-month anniversary.",
    )
    maxAnnualGrantYears: Optional[int] = Field(
        default=None,
        ge=0,
        description="Number of annual grants; None keeps granting until the horizon.",
    )
    vestingSchedule: List[VestingMilestone]
    bonuses: List[VestingBonus] = Field(default_factory=list)
    customVestingEvents: List[CustomVestingEvent] = Field(default_factory=list)


class MarketAssumptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    currentBitcoinPrice: float = Field(gt=0, description="USD price at month 0.")
    projectedBitcoinGrowth: float = Field(
        0.0,
        description="Annual growth in percent, compounded monthly.",
    )


class TimelinePoint(BaseModel):
    """Single month of a vesting projection."""

    month: int = Field(ge=0)
    employerBalance: float
    vestedAmount: float
    bitcoinPrice: float
    usdValue: float
    totalGrants: float
    bonusAmount: float = 0.0


class CalculationSummary(BaseModel):
    totalBitcoinGranted: float
    totalCostUSD: float
    averageVestingPeriodMonths: float
    maxEmployerCommitment: float
    horizonMonths: int


class VestingCalculationResult(BaseModel):
    timeline: List[TimelinePoint]
    summary: CalculationSummary


class CalculationRequest(BaseModel):
    """
    Body of ``POST /api/calc/vesting``: an inline scheme or a preset id.

    ``scheme`` and ``market`` stay raw here so the calculator reports their
    problems as scheme validation errors.
    """

    model_config = ConfigDict(extra="forbid")

    scheme: Optional[Dict[str, Any]] = None
    schemeId: Optional[str] = None
    market: Dict[str, Any]


class AdvancedCalculationRequest(CalculationRequest):
    employeeCount: Optional[int] = Field(default=None, ge=1)
    annualSalaryPerEmployee: Optional[float] = Field(default=None, gt=0)
    employeeAnnualIncome: Optional[float] = Field(default=None, ge=0)
    riskTolerance: Literal["conservative", "moderate", "aggressive"] = "moderate"
