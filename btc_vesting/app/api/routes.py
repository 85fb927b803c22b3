"""HTTP routes for the Flask API."""

import logging
import uuid
from http import HTTPStatus
from typing import Any, Dict, Union

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from btc_vesting import __version__
from btc_vesting.core.advanced import calculate_advanced_metrics
from btc_vesting.core.historical import HistoricalCalculator
from btc_vesting.core.presets import CATALOGS, get_scheme
from btc_vesting.domain.errors import CalculationCancelled, CalculationTimeout, SchemeValidationError
from btc_vesting.schemas.health import HealthResponse
from btc_vesting.schemas.vesting import (
    AdvancedCalculationRequest,
    CalculationRequest,
    CompensationScheme,
)

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


@api_bp.errorhandler(ValidationError)
def _handle_validation_error(exc: ValidationError):
    """Convert Pydantic validation errors into JSON responses."""
    return jsonify({"detail": exc.errors(include_url=False)}), HTTPStatus.UNPROCESSABLE_ENTITY


@api_bp.errorhandler(SchemeValidationError)
def _handle_scheme_error(exc: SchemeValidationError):
    logger.info("rejected invalid scheme: %s", exc)
    return jsonify({"error": exc.errors, "kind": "invalid_scheme"}), HTTPStatus.BAD_REQUEST


@api_bp.errorhandler(CalculationTimeout)
def _handle_timeout(exc: CalculationTimeout):
    return jsonify({"error": [str(exc)], "kind": "timeout"}), HTTPStatus.GATEWAY_TIMEOUT


@api_bp.errorhandler(CalculationCancelled)
def _handle_cancelled(exc: CalculationCancelled):
    return jsonify({"error": [str(exc)], "kind": "cancelled"}), HTTPStatus.SERVICE_UNAVAILABLE


def _unknown_scheme(scheme_id: str):
    return jsonify({"error": [f"unknown scheme {scheme_id!r}"], "kind": "not_found"}), HTTPStatus.NOT_FOUND


def _resolve_scheme(payload: CalculationRequest) -> Union[CompensationScheme, Dict[str, Any]]:
    if payload.scheme is not None:
        return payload.scheme
    if payload.schemeId:
        return get_scheme(payload.schemeId)
    raise SchemeValidationError(["either scheme or schemeId is required"])


@api_bp.get("/health")
def health() -> Any:
    """Health-check endpoint."""
    response = HealthResponse(status="ok", version=__version__)
    return jsonify(response.model_dump())


@api_bp.get("/schemes")
def list_schemes() -> Any:
    """Preset schemes; ``?catalog=historical`` for the back-test amounts."""
    catalog = request.args.get("catalog", "default")
    if catalog not in CATALOGS:
        return jsonify({"error": [f"unknown catalog {catalog!r}"], "kind": "not_found"}), HTTPStatus.NOT_FOUND
    return jsonify([scheme.model_dump() for scheme in CATALOGS[catalog]])


@api_bp.get("/schemes/<scheme_id>")
def scheme_detail(scheme_id: str) -> Any:
    try:
        scheme = get_scheme(scheme_id, request.args.get("catalog"))
    except KeyError:
        return _unknown_scheme(scheme_id)
    return jsonify(scheme.model_dump())


@api_bp.post("/calc/vesting")
def vesting() -> Any:
    """Month-by-month projection for a scheme and market assumptions."""
    raw_payload: Dict[str, Any] = request.get_json(force=True, silent=False)
    payload = CalculationRequest.model_validate(raw_payload)
    try:
        scheme = _resolve_scheme(payload)
    except KeyError:
        return _unknown_scheme(payload.schemeId or "")

    worker = current_app.extensions["vesting_worker"]
    request_id = uuid.uuid4().hex
    result = worker.run(request_id, scheme, payload.market)
    logger.info("projected %d months for request %s", result.summary.horizonMonths, request_id)
    return jsonify(result.model_dump())


@api_bp.post("/calc/vesting/advanced")
def vesting_advanced() -> Any:
    """Projection plus tax, retention, risk and growth-scenario analysis."""
    raw_payload: Dict[str, Any] = request.get_json(force=True, silent=False)
    payload = AdvancedCalculationRequest.model_validate(raw_payload)
    try:
        scheme = _resolve_scheme(payload)
    except KeyError:
        return _unknown_scheme(payload.schemeId or "")

    settings = current_app.config["SETTINGS"]
    worker = current_app.extensions["vesting_worker"]
    base_result = worker.run(uuid.uuid4().hex, scheme, payload.market)
    result = calculate_advanced_metrics(
        scheme,
        payload.market,
        base_result=base_result,
        employee_count=payload.employeeCount,
        annual_salary_per_employee=payload.annualSalaryPerEmployee,
        employee_annual_income=(
            payload.employeeAnnualIncome
            if payload.employeeAnnualIncome is not None
            else settings.default_employee_income
        ),
        risk_tolerance=payload.riskTolerance,
    )
    return jsonify(result.model_dump())


@api_bp.post("/calc/historical")
def historical() -> Any:
    """Back-test a scheme against yearly historical prices."""
    raw_payload: Dict[str, Any] = request.get_json(force=True, silent=False)
    result = HistoricalCalculator.calculate(raw_payload)
    return jsonify(result.model_dump())
