"""
Salary calculator HTTP routes — POST /api/salary/calculate,
                                GET  /api/salary/regimes/{fy}

Request body for /calculate:
    {"profile": {...TaxpayerProfile fields...}, "fy": "2025-26", "regimes": ["old", "new"]}

The profile is checked with the strict business-rule validator before the
engine sees it; the engine itself only clamps.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from salarycalc.engine.tax_engine import SalaryBreakdownEngine
from salarycalc.profile.schemas import ErrorBody, ErrorDetail, ErrorResponse, TaxpayerProfile
from salarycalc.profile.validator import validate_profile_input

router = APIRouter(prefix="/api/salary", tags=["salary"])
logger = logging.getLogger(__name__)


class CalculateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    profile: Dict[str, Any]
    fy: Optional[str] = None
    regimes: Optional[List[str]] = Field(default=None, description="Defaults to every configured regime.")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_validation_error_response(violations_json: str) -> JSONResponse:
    """Parse JSON-encoded violations and return standard 422 error envelope."""
    try:
        violations: list[dict] = json.loads(violations_json)
    except (json.JSONDecodeError, ValueError):
        violations = [{"field": None, "issue": violations_json}]
    details = [ErrorDetail(field=v.get("field"), issue=v["issue"]) for v in violations]
    body = ErrorResponse(
        error=ErrorBody(
            code="VALIDATION_ERROR",
            message="Profile validation failed",
            details=details,
        )
    )
    return JSONResponse(status_code=422, content=body.model_dump())


def _engine(request: Request) -> SalaryBreakdownEngine:
    """Engine created at startup; a fresh one if the app was built without lifespan."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        engine = SalaryBreakdownEngine()
        request.app.state.engine = engine
    return engine


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/calculate")
async def calculate_salary(request: Request, body: CalculateRequest) -> JSONResponse:
    """
    Compute the salary breakdown for every requested regime.

    Returns:
      200: SalaryBreakdown
      404: RULES_NOT_FOUND     — no dataset for fy
      422: UNSUPPORTED_REGIME  — unknown regime name
      422: VALIDATION_ERROR    — profile failed business rules
    """
    try:
        validate_profile_input(body.profile)
    except ValueError as exc:
        return _make_validation_error_response(str(exc))

    try:
        profile = TaxpayerProfile.model_validate(body.profile)
    except ValidationError as exc:
        violations = [
            {"field": ".".join(str(loc) for loc in err["loc"]) or None, "issue": err["msg"]}
            for err in exc.errors()
        ]
        return _make_validation_error_response(json.dumps(violations))

    result = _engine(request).calculate_salary_breakdown(profile, fy=body.fy, regimes=body.regimes)

    logger.info(
        "Salary calculated fy=%s recommended=%s savings=%s",
        result.fy,
        result.recommended_regime,
        result.savings_amount,
    )
    return JSONResponse(status_code=200, content=result.model_dump())


@router.get("/regimes/{fy}")
async def list_regimes(request: Request, fy: str) -> JSONResponse:
    """Regimes defined for a financial year, with their display labels."""
    engine = _engine(request)
    fy_rules = engine.store.fetch_rules_for_fy(fy)
    regimes = [
        {"regime": name, "label": rules.label}
        for name, rules in fy_rules.regimes.items()
    ]
    return JSONResponse(status_code=200, content={"fy": fy, "regimes": regimes})
