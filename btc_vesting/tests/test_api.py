from __future__ import annotations

import threading
from math import isclose

import pytest
from flask.testing import FlaskClient

from btc_vesting import __version__
from btc_vesting.app import create_app
from btc_vesting.config import Settings
from btc_vesting.core import worker as worker_module
from conftest import ten_year_schedule


def inline_scheme(**overrides) -> dict:
    scheme = {
        "id": "custom",
        "name": "Custom",
        "initialGrant": 0.02,
        "vestingSchedule": ten_year_schedule(),
    }
    scheme.update(overrides)
    return scheme


def test_health(client: FlaskClient):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok", "version": __version__}


def test_cors_allows_local_frontend(client: FlaskClient):
    resp = client.get("/api/health", headers={"Origin": "http://localhost:5173"})

    assert resp.headers.get("Access-Control-Allow-Origin") == "http://localhost:5173"


def test_list_schemes(client: FlaskClient):
    default = client.get("/api/schemes").get_json()
    historical = client.get("/api/schemes?catalog=historical").get_json()

    assert [s["id"] for s in default] == ["accelerator", "steady-builder", "slow-burn"]
    assert historical[0]["initialGrant"] == 0.1
    assert client.get("/api/schemes?catalog=future").status_code == 404


def test_scheme_detail(client: FlaskClient):
    resp = client.get("/api/schemes/steady-builder")
    missing = client.get("/api/schemes/moonshot")

    assert resp.status_code == 200
    assert resp.get_json()["maxAnnualGrantYears"] == 5
    assert missing.status_code == 404
    assert missing.get_json()["kind"] == "not_found"


def test_calc_vesting_with_preset(client: FlaskClient, market):
    resp = client.post("/api/calc/vesting", json={"schemeId": "accelerator", "market": market})

    assert resp.status_code == 200
    body = resp.get_json()
    assert len(body["timeline"]) == 121
    assert isclose(body["summary"]["totalCostUSD"], 1900.0)
    assert body["summary"]["horizonMonths"] == 120


def test_calc_vesting_with_inline_scheme(client: FlaskClient, market):
    scheme = inline_scheme(bonuses=[{"months": 60, "bonusPercent": 10}])

    resp = client.post("/api/calc/vesting", json={"scheme": scheme, "market": market})

    assert resp.status_code == 200
    point = resp.get_json()["timeline"][60]
    assert isclose(point["bonusAmount"], 0.002)
    assert isclose(point["employerBalance"], 0.022)


def test_calc_vesting_unknown_preset(client: FlaskClient, market):
    resp = client.post("/api/calc/vesting", json={"schemeId": "moonshot", "market": market})

    assert resp.status_code == 404


@pytest.mark.parametrize(
    "body",
    [
        {"scheme": inline_scheme(vestingSchedule=[]), "market": {"currentBitcoinPrice": 95000}},
        {"scheme": inline_scheme(initialGrant=-1), "market": {"currentBitcoinPrice": 95000}},
        {"scheme": inline_scheme(), "market": {"currentBitcoinPrice": 0}},
        {"market": {"currentBitcoinPrice": 95000}},
    ],
)
def test_invalid_scheme_is_a_bad_request(client: FlaskClient, body):
    resp = client.post("/api/calc/vesting", json=body)

    assert resp.status_code == 400
    payload = resp.get_json()
    assert payload["kind"] == "invalid_scheme"
    assert payload["error"]


def test_malformed_request_is_unprocessable(client: FlaskClient, market):
    resp = client.post(
        "/api/calc/vesting",
        json={"schemeId": "accelerator", "market": market, "unexpected": True},
    )

    assert resp.status_code == 422
    assert resp.get_json()["detail"][0]["loc"] == ["unexpected"]


def test_calc_vesting_advanced(client: FlaskClient, market):
    resp = client.post(
        "/api/calc/vesting/advanced",
        json={
            "schemeId": "steady-builder",
            "market": market,
            "employeeCount": 25,
            "annualSalaryPerEmployee": 120000,
            "riskTolerance": "conservative",
        },
    )

    assert resp.status_code == 200
    metrics = resp.get_json()["advancedMetrics"]
    assert metrics["retentionAnalysis"] is not None
    assert len(metrics["growthScenarios"]) == 3
    assert metrics["taxImplications"]["grossValue"] > 0


def test_calc_vesting_advanced_rejects_unknown_tolerance(client: FlaskClient, market):
    resp = client.post(
        "/api/calc/vesting/advanced",
        json={"schemeId": "accelerator", "market": market, "riskTolerance": "reckless"},
    )

    assert resp.status_code == 422


def historical_body(**overrides) -> dict:
    averages = {2018: 7500, 2019: 7400, 2020: 11000}
    body = {
        "scheme": inline_scheme(annualGrant=0.01, maxAnnualGrantYears=5),
        "startingYear": 2018,
        "historicalPrices": {
            str(year): {
                "year": year,
                "high": price * 1.5,
                "low": price * 0.5,
                "average": price,
                "open": price,
                "close": price,
            }
            for year, price in averages.items()
        },
        "currentBitcoinPrice": 60000,
        "asOfYear": 2020,
        "asOfMonth": 12,
    }
    body.update(overrides)
    return body


def test_calc_historical(client: FlaskClient):
    resp = client.post("/api/calc/historical", json=historical_body())

    assert resp.status_code == 200
    body = resp.get_json()
    assert isclose(body["totalBitcoinGranted"], 0.04)
    assert len(body["timeline"]) == 36
    assert body["summary"]["endingYear"] == 2020


def test_calc_historical_rejects_early_start(client: FlaskClient):
    resp = client.post("/api/calc/historical", json=historical_body(startingYear=2005))

    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "invalid_scheme"


def test_unrepresentable_growth_is_a_bad_request(client: FlaskClient):
    resp = client.post(
        "/api/calc/vesting",
        json={"schemeId": "accelerator", "market": {"currentBitcoinPrice": 95000, "projectedBitcoinGrowth": 1e6}},
    )

    assert resp.status_code == 400
    assert resp.get_json()["kind"] == "invalid_scheme"


def test_oversized_horizon_is_rejected_before_queueing(client: FlaskClient, market):
    scheme = inline_scheme(vestingSchedule=[{"months": 0, "grantPercent": 0}, {"months": 3_000_000, "grantPercent": 100}])

    resp = client.post("/api/calc/vesting", json={"scheme": scheme, "market": market})

    assert resp.status_code == 400
    assert any("months" in message for message in resp.get_json()["error"])


def test_advanced_calculation_runs_on_the_worker(monkeypatch, market):
    release = threading.Event()

    def slow_calculate(scheme, market, cancel_event):
        release.wait(5)
        raise AssertionError("timed-out calculation should not be awaited")

    monkeypatch.setattr(worker_module, "calculate", slow_calculate)
    app = create_app(Settings(testing=True, log_level="WARNING", worker_threads=1, worker_timeout_seconds=0.05))
    worker = app.extensions["vesting_worker"]
    try:
        with app.test_client() as test_client:
            resp = test_client.post("/api/calc/vesting/advanced", json={"schemeId": "accelerator", "market": market})
        assert resp.status_code == 504
        assert resp.get_json()["kind"] == "timeout"
        assert worker._jobs == {}
    finally:
        release.set()
        worker.shutdown()
