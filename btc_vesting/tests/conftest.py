from __future__ import annotations

import pytest
from flask import Flask
from flask.testing import FlaskClient

from btc_vesting.app import create_app
from btc_vesting.config import Settings


@pytest.fixture()
def app() -> Flask:
    flask_app = create_app(Settings(testing=True, log_level="WARNING"))
    yield flask_app
    flask_app.extensions["vesting_worker"].shutdown()


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    with app.test_client() as test_client:
        yield test_client


def ten_year_schedule() -> list:
    return [
        {"months": 0, "grantPercent": 0},
        {"months": 60, "grantPercent": 50},
        {"months": 120, "grantPercent": 100},
    ]


@pytest.fixture()
def market() -> dict:
    return {"currentBitcoinPrice": 95000, "projectedBitcoinGrowth": 15}
