"""Built-in compensation schemes offered by the calculator."""

from __future__ import annotations

from typing import Dict, List, Optional

from btc_vesting.schemas.vesting import CompensationScheme, VestingMilestone


def _ten_year_schedule() -> List[VestingMilestone]:
    return [
        VestingMilestone(months=0, grantPercent=0, description="Immediate access to contributions"),
        VestingMilestone(months=60, grantPercent=50, description="50% vested at 5 years"),
        VestingMilestone(months=120, grantPercent=100, description="100% vested at 10 years"),
    ]


def _catalog(
    accelerator_grant: float,
    builder_grant: float,
    builder_annual: float,
    slow_burn_annual: float,
    descriptions: Dict[str, str],
) -> List[CompensationScheme]:
    return [
        CompensationScheme(
            id="accelerator",
            name="Bitcoin Pioneer",
            description=descriptions["accelerator"],
            initialGrant=accelerator_grant,
            vestingSchedule=_ten_year_schedule(),
        ),
        CompensationScheme(
            id="steady-builder",
            name="Dollar Cost Advantage",
            description=descriptions["steady-builder"],
            initialGrant=builder_grant,
            annualGrant=builder_annual,
            maxAnnualGrantYears=5,
            vestingSchedule=_ten_year_schedule(),
        ),
        CompensationScheme(
            id="slow-burn",
            name="Wealth Builder",
            description=descriptions["slow-burn"],
            initialGrant=0.0,
            annualGrant=slow_burn_annual,
            # grants at months 12 through 108
            maxAnnualGrantYears=9,
            vestingSchedule=_ten_year_schedule(),
        ),
    ]


VESTING_SCHEMES: List[CompensationScheme] = _catalog(
    accelerator_grant=0.02,
    builder_grant=0.015,
    builder_annual=0.001,
    slow_burn_annual=0.002,
    descriptions={
        "accelerator": "Jump-start your team's Bitcoin journey with immediate grants.",
        "steady-builder": "Minimize market timing risk with strategic yearly distributions.",
        "slow-burn": "Maximum retention incentive with 10-year distribution.",
    },
)

HISTORICAL_VESTING_SCHEMES: List[CompensationScheme] = _catalog(
    accelerator_grant=0.1,
    builder_grant=0.05,
    builder_annual=0.01,
    slow_burn_annual=0.02,
    descriptions={
        "accelerator": "Historical result of lump sum funding.",
        "steady-builder": "Historical result of five year funding.",
        "slow-burn": "Historical result of ten year funding.",
    },
)

CATALOGS: Dict[str, List[CompensationScheme]] = {
    "default": VESTING_SCHEMES,
    "historical": HISTORICAL_VESTING_SCHEMES,
}


def get_scheme(scheme_id: str, catalog: Optional[str] = None) -> CompensationScheme:
    """Return a copy of a preset scheme; raises ``KeyError`` for unknown ids or catalogs."""
    schemes = CATALOGS[catalog or "default"]
    for scheme in schemes:
        if scheme.id == scheme_id:
            return scheme.model_copy(deep=True)
    raise KeyError(scheme_id)
