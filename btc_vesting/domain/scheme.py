from __future__ import annotations

import math
import sys
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from btc_vesting.domain.errors import SchemeValidationError
from btc_vesting.schemas.vesting import MAX_HORIZON_MONTHS, CompensationScheme, MarketAssumptions

# natural log of the largest finite float
LOG_FLOAT_MAX = math.log(sys.float_info.max)


@dataclass(frozen=True)
class Step:
    start: int
    percent: float


@dataclass(frozen=True)
class PreparedScheme:
    scheme_id: str
    initial_grant: float
    annual_grant: float
    max_annual_grant_years: Optional[int]
    horizon: int
    milestones: List[Step]
    vesting_steps: List[Step]
    bonuses: List[Step]


@dataclass
class PreparationResult:
    scheme: Optional[PreparedScheme]
    errors: List[str]
    warnings: List[str]


SchemeInput = Union[CompensationScheme, Mapping[str, Any]]
MarketInput = Union[MarketAssumptions, Mapping[str, Any]]


def format_validation_errors(exc: ValidationError, prefix: str = "") -> List[str]:
    messages: List[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        if prefix:
            location = f"{prefix}.{location}" if location else prefix
        messages.append(f"{location}: {error.get('msg')}")
    return messages


def coerce_scheme(raw: SchemeInput) -> CompensationScheme:
    if isinstance(raw, CompensationScheme):
        return raw
    try:
        return CompensationScheme.model_validate(raw)
    except ValidationError as exc:
        raise SchemeValidationError(format_validation_errors(exc, "scheme")) from exc


def coerce_market(raw: MarketInput) -> MarketAssumptions:
    if isinstance(raw, MarketAssumptions):
        return raw
    try:
        return MarketAssumptions.model_validate(raw)
    except ValidationError as exc:
        raise SchemeValidationError(format_validation_errors(exc, "market")) from exc


def sort_steps(steps: Iterable[Step]) -> List[Step]:
    # equal months: the higher percent sorts last and wins the lookup
    return sorted(steps, key=lambda step: (step.start, step.percent))


def active_step(steps: Sequence[Step], month: int) -> Optional[Step]:
    current: Optional[Step] = None
    for step in steps:
        if step.start > month:
            break
        current = step
    return current


def _is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _check_steps(steps: Sequence[Step], label: str, errors: List[str]) -> None:
    for step in steps:
        if step.start < 0:
            errors.append(f"{label} month {step.start} must not be negative")
        elif step.start > MAX_HORIZON_MONTHS:
            errors.append(f"{label} month {step.start} exceeds the {MAX_HORIZON_MONTHS}-month limit")
        if not _is_finite_number(step.percent) or not 0 <= step.percent <= 100:
            errors.append(f"{label} percent at month {step.start} must be between 0 and 100")


def _check_non_decreasing(steps: Sequence[Step], label: str, errors: List[str]) -> None:
    previous: Optional[Step] = None
    for step in steps:
        if previous is not None and step.start > previous.start and step.percent < previous.percent:
            errors.append(
                f"{label} percent decreases from {previous.percent:g}% at month {previous.start} "
                f"to {step.percent:g}% at month {step.start}"
            )
        previous = step


def projection_bound_error(
    scheme: PreparedScheme,
    price: float,
    annual_growth_percent: float,
    months: int,
) -> Optional[str]:
    """
    Check that prices and USD values stay finite floats for ``months`` months.

    Works on logarithms so the check itself cannot overflow. Returns an error
    message, or None when the projection is safe to compute.
    """
    grant_count = months // 12
    if scheme.max_annual_grant_years is not None:
        grant_count = min(grant_count, scheme.max_annual_grant_years)
    bonus_factor = 1 + sum(bonus.percent for bonus in scheme.bonuses) / 100
    balance = (scheme.initial_grant + scheme.annual_grant * grant_count) * bonus_factor

    # price peaks at the last month for positive growth and at month 0 otherwise
    factor = abs(1 + annual_growth_percent / 1200)
    log_growth = max(months * math.log(factor), 0.0) if factor > 0 else 0.0
    log_price = math.log(price) + log_growth
    log_value = log_price + (math.log(balance) if balance > 0 else 0.0)

    # headroom for downstream multipliers such as VaR
    limit = LOG_FLOAT_MAX - 10
    if log_growth >= limit or log_price >= limit or log_value >= limit:
        return (
            f"projectedBitcoinGrowth of {annual_growth_percent:g}% over {months} months "
            "projects values too large to represent"
        )
    return None


def prepare_scheme(scheme: CompensationScheme, market: MarketAssumptions) -> PreparationResult:
    errors: List[str] = []
    warnings: List[str] = []

    if not _is_finite_number(scheme.initialGrant) or scheme.initialGrant < 0:
        errors.append("initialGrant must be a non-negative number")
    annual_grant = scheme.annualGrant or 0.0
    if not _is_finite_number(annual_grant) or annual_grant < 0:
        errors.append("annualGrant must be a non-negative number")
    if scheme.maxAnnualGrantYears is not None and scheme.maxAnnualGrantYears < 0:
        errors.append("maxAnnualGrantYears must not be negative")

    if not _is_finite_number(market.currentBitcoinPrice) or market.currentBitcoinPrice <= 0:
        errors.append("currentBitcoinPrice must be a positive number")
    if not _is_finite_number(market.projectedBitcoinGrowth):
        errors.append("projectedBitcoinGrowth must be a finite number")
    elif market.projectedBitcoinGrowth <= -1200:
        # a monthly rate of -100% or worse drives the price to zero or below
        errors.append("projectedBitcoinGrowth must be greater than -1200")

    milestones = sort_steps(
        Step(start=milestone.months, percent=milestone.grantPercent)
        for milestone in scheme.vestingSchedule or []
    )
    custom_events = sort_steps(
        Step(start=event.timePeriod, percent=event.percentageVested)
        for event in scheme.customVestingEvents or []
    )
    bonuses = sort_steps(
        Step(start=bonus.months, percent=bonus.bonusPercent) for bonus in scheme.bonuses or []
    )

    if not milestones:
        errors.append("vestingSchedule must contain at least one milestone")
    else:
        _check_steps(milestones, "vestingSchedule", errors)
        _check_non_decreasing(milestones, "vestingSchedule", errors)
        if milestones[0].start != 0:
            warnings.append("vestingSchedule has no milestone at month 0; earlier months vest 0%")
        if milestones[-1].percent < 100:
            warnings.append(f"vestingSchedule ends at {milestones[-1].percent:g}% vested")

    _check_steps(custom_events, "customVestingEvents", errors)
    _check_non_decreasing(custom_events, "customVestingEvents", errors)
    _check_steps(bonuses, "bonuses", errors)

    if errors:
        return PreparationResult(scheme=None, errors=errors, warnings=warnings)

    prepared = PreparedScheme(
        scheme_id=scheme.id,
        initial_grant=float(scheme.initialGrant),
        annual_grant=float(annual_grant),
        max_annual_grant_years=scheme.maxAnnualGrantYears,
        horizon=max(step.start for step in milestones),
        milestones=milestones,
        vesting_steps=custom_events or milestones,
        bonuses=bonuses,
    )
    bound_error = projection_bound_error(
        prepared,
        market.currentBitcoinPrice,
        market.projectedBitcoinGrowth,
        prepared.horizon,
    )
    if bound_error:
        return PreparationResult(scheme=None, errors=[bound_error], warnings=warnings)
    return PreparationResult(scheme=prepared, errors=errors, warnings=warnings)


def validated(scheme: SchemeInput, market: MarketInput) -> tuple[PreparedScheme, MarketAssumptions, List[str]]:
    """Coerce and check the inputs, raising ``SchemeValidationError`` with every problem found."""
    errors: List[str] = []
    scheme_model: Optional[CompensationScheme] = None
    market_model: Optional[MarketAssumptions] = None

    try:
        scheme_model = coerce_scheme(scheme)
    except SchemeValidationError as exc:
        errors.extend(exc.errors)
    try:
        market_model = coerce_market(market)
    except SchemeValidationError as exc:
        errors.extend(exc.errors)

    if errors or scheme_model is None or market_model is None:
        raise SchemeValidationError(errors)

    preparation = prepare_scheme(scheme_model, market_model)
    if preparation.errors or preparation.scheme is None:
        raise SchemeValidationError(preparation.errors)
    return preparation.scheme, market_model, preparation.warnings
