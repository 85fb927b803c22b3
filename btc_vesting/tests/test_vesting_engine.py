from __future__ import annotations

import threading
from math import isclose

import pytest

from btc_vesting.core.presets import get_scheme
from btc_vesting.core.vesting import VestingScheduleCalculator, calculate, yearly_points
from btc_vesting.domain.errors import CalculationCancelled, SchemeValidationError
from btc_vesting.domain.scheme import Step
from conftest import ten_year_schedule


def front_loaded() -> dict:
    return {"id": "accelerator", "initialGrant": 0.02, "vestingSchedule": ten_year_schedule()}


def builder() -> dict:
    return {
        "id": "steady-builder",
        "initialGrant": 0.015,
        "annualGrant": 0.001,
        "maxAnnualGrantYears": 5,
        "vestingSchedule": ten_year_schedule(),
    }


def test_front_loaded_scenario(market):
    result = calculate(front_loaded(), market)

    assert isclose(result.timeline[60].vestedAmount, 0.01, rel_tol=1e-12)
    assert isclose(result.timeline[120].vestedAmount, 0.02, rel_tol=1e-12)
    assert isclose(result.summary.totalCostUSD, 1900.0, rel_tol=1e-12)
    assert isclose(result.summary.totalBitcoinGranted, 0.02, rel_tol=1e-12)


def test_builder_scheme_stops_granting_after_five_years(market):
    result = calculate(builder(), market)

    assert isclose(result.timeline[60].employerBalance, 0.020, rel_tol=1e-9)
    assert isclose(result.timeline[120].employerBalance, 0.020, rel_tol=1e-9)
    assert isclose(result.timeline[12].employerBalance, 0.016, rel_tol=1e-9)
    assert isclose(result.timeline[11].employerBalance, 0.015, rel_tol=1e-9)


def test_annual_grants_continue_to_horizon_without_limit(market):
    scheme = builder()
    scheme["maxAnnualGrantYears"] = None

    result = calculate(scheme, market)

    assert isclose(result.summary.totalBitcoinGranted, 0.015 + 10 * 0.001, rel_tol=1e-9)


def test_horizon_is_complete_and_ordered(market):
    result = calculate(builder(), market)

    assert len(result.timeline) == 121
    assert [point.month for point in result.timeline] == list(range(121))
    assert result.summary.horizonMonths == 120


def test_horizon_follows_the_schedule():
    scheme = {
        "id": "short",
        "initialGrant": 1.0,
        "vestingSchedule": [{"months": 0, "grantPercent": 0}, {"months": 48, "grantPercent": 100}],
    }
    result = calculate(scheme, {"currentBitcoinPrice": 50000, "projectedBitcoinGrowth": 0})

    assert len(result.timeline) == 49
    assert result.timeline[-1].vestedAmount == 1.0


def test_balance_monotonic_and_vested_bounded(market):
    scheme = builder()
    scheme["bonuses"] = [{"months": 36, "bonusPercent": 10}, {"months": 84, "bonusPercent": 5}]
    result = calculate(scheme, market)

    previous = 0.0
    for point in result.timeline:
        assert point.employerBalance >= previous
        assert point.vestedAmount <= point.employerBalance + 1e-15
        previous = point.employerBalance


def test_price_compounds_monthly(market):
    result = calculate(front_loaded(), market)

    for point in result.timeline:
        expected = 95000 * (1 + 15 / 1200) ** point.month
        assert isclose(point.bitcoinPrice, expected, rel_tol=1e-9)
        assert isclose(point.usdValue, point.employerBalance * point.bitcoinPrice, rel_tol=1e-12)


def test_negative_growth_lowers_price():
    result = calculate(front_loaded(), {"currentBitcoinPrice": 100000, "projectedBitcoinGrowth": -12})

    assert result.timeline[12].bitcoinPrice < result.timeline[0].bitcoinPrice
    assert isclose(result.timeline[1].bitcoinPrice, 99000.0, rel_tol=1e-12)


def test_zero_grants_produce_zero_timeline(market):
    scheme = {"id": "empty", "initialGrant": 0, "vestingSchedule": ten_year_schedule()}

    result = calculate(scheme, market)

    assert all(point.employerBalance == 0 for point in result.timeline)
    assert all(point.usdValue == 0 for point in result.timeline)
    assert result.summary.totalCostUSD == 0
    assert result.summary.averageVestingPeriodMonths == 100


def test_empty_schedule_is_rejected(market):
    scheme = {"id": "broken", "initialGrant": 0.02, "vestingSchedule": []}

    with pytest.raises(SchemeValidationError) as excinfo:
        calculate(scheme, market)

    assert any("vestingSchedule" in message for message in excinfo.value.errors)


def test_average_vesting_period(market):
    result = calculate(front_loaded(), market)

    assert result.summary.averageVestingPeriodMonths == pytest.approx(100.0)


def test_average_vesting_period_zero_weight_is_zero():
    calculator = VestingScheduleCalculator([Step(0, 0.0), Step(12, 0.0)])

    assert calculator.average_vesting_period() == 0.0


def test_bonus_added_to_balance_and_vested_but_not_grants(market):
    scheme = front_loaded()
    scheme["bonuses"] = [{"months": 60, "bonusPercent": 10}]

    result = calculate(scheme, market)

    before, at = result.timeline[59], result.timeline[60]
    assert before.bonusAmount == 0
    assert isclose(at.bonusAmount, 0.002, rel_tol=1e-12)
    assert isclose(at.employerBalance, 0.022, rel_tol=1e-12)
    assert isclose(at.vestedAmount, 0.01 + 0.002, rel_tol=1e-12)
    # recomputed from grants each month, never compounding on itself
    assert isclose(result.timeline[120].bonusAmount, 0.002, rel_tol=1e-12)
    assert isclose(result.summary.totalBitcoinGranted, 0.02, rel_tol=1e-12)


def test_milestone_between_steps_uses_latest_reached(market):
    result = calculate(front_loaded(), market)

    assert result.timeline[59].vestedAmount == 0
    assert isclose(result.timeline[75].vestedAmount, 0.01, rel_tol=1e-12)


def test_duplicate_milestone_months_prefer_higher_percent():
    calculator = VestingScheduleCalculator(
        [Step(0, 0.0), Step(12, 25.0), Step(12, 40.0), Step(24, 100.0)]
    )

    assert calculator.current_milestone(12).percent == 40.0
    assert calculator.current_milestone(23).percent == 40.0


def test_missing_month_zero_falls_back_to_unvested():
    scheme = {
        "id": "cliff",
        "initialGrant": 1.0,
        "vestingSchedule": [{"months": 12, "grantPercent": 100}],
    }

    result = calculate(scheme, {"currentBitcoinPrice": 10000})

    assert result.timeline[0].vestedAmount == 0
    assert result.timeline[12].vestedAmount == 1.0


def test_custom_vesting_events_replace_milestones(market):
    scheme = front_loaded()
    scheme["customVestingEvents"] = [
        {"id": "q", "timePeriod": 3, "percentageVested": 25, "label": "90 days"},
        {"id": "y", "timePeriod": 12, "percentageVested": 100, "label": "1 year"},
    ]

    result = calculate(scheme, market)

    assert result.timeline[2].vestedAmount == 0
    assert isclose(result.timeline[3].vestedAmount, 0.005, rel_tol=1e-12)
    assert isclose(result.timeline[12].vestedAmount, 0.02, rel_tol=1e-12)
    # horizon and average still come from the milestone list
    assert len(result.timeline) == 121
    assert result.summary.averageVestingPeriodMonths == pytest.approx(100.0)


def test_preset_slow_burn_grants_nine_times(market):
    result = calculate(get_scheme("slow-burn"), market)

    assert result.timeline[0].employerBalance == 0
    assert isclose(result.summary.totalBitcoinGranted, 9 * 0.002, rel_tol=1e-9)
    assert isclose(result.timeline[108].employerBalance, result.timeline[120].employerBalance)


def test_cancelled_before_start(market):
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(CalculationCancelled):
        calculate(front_loaded(), market, cancel_event=cancel)


def test_validation_runs_before_cancellation_check(market):
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(SchemeValidationError):
        calculate({"id": "x", "initialGrant": 1, "vestingSchedule": []}, market, cancel_event=cancel)


def test_inputs_are_not_mutated(market):
    scheme = builder()
    snapshot = repr(scheme)

    calculate(scheme, market)
    calculate(scheme, market)

    assert repr(scheme) == snapshot


def test_yearly_points_subsample(market):
    result = calculate(builder(), market)

    yearly = yearly_points(result)

    assert [point.month for point in yearly] == [0, 12, 24, 36, 48, 60, 72, 84, 96, 108, 120]
