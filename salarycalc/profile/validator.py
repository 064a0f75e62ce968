"""
Profile business-rule validator — strict mode for the HTTP adapter.

The engine itself never rejects value-level anomalies (TaxpayerProfile clamps
them). Requests coming over HTTP are checked first so that the form can show
a validation message instead of a silently adjusted result.

Collects all violations in a single pass and raises ValueError with a
JSON-encoded list of {field, issue} dicts; the route turns that into the
standard error envelope.

Rules enforced:
  1. basic is present
  2. employee_pf_percent / employer_pf_percent are within 0–100
  3. investments only uses known section codes (80C, 80D, 80CCD1B)
  4. income_from_other_sources, stcg, ltcg are not negative
"""
from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from salarycalc.profile.schemas import INVESTMENT_SECTIONS

logger = logging.getLogger(__name__)

_PERCENT_LABELS = {
    "employee_pf_percent": "Employee PF percentage",
    "employer_pf_percent": "Employer PF percentage",
}
_NON_NEGATIVE = ("income_from_other_sources", "stcg", "ltcg")


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def validate_profile_input(payload: Mapping[str, Any]) -> None:
    """
    Validate a raw profile payload against the strict business rules.

    Args:
        payload: The profile dict exactly as received (before clamping).

    Raises:
        ValueError: If any rule is violated. The message is a JSON string
            containing a list of {"field": str, "issue": str} dicts.
    """
    violations: list[dict[str, Any]] = []

    # ---- 1. basic is required ----------------------------------------------
    if payload.get("basic") in (None, ""):
        violations.append({"field": "basic", "issue": "Required field 'basic' is missing"})

    # ---- 2. PF percentages --------------------------------------------------
    for field, label in _PERCENT_LABELS.items():
        value = _as_number(payload.get(field))
        if value is not None and not 0 <= value <= 100:
            violations.append({"field": field, "issue": f"{label} must be between 0 and 100"})

    # ---- 3. Investment section codes ---------------------------------------
    investments = payload.get("investments") or {}
    if not isinstance(investments, Mapping):
        violations.append({"field": "investments", "issue": "investments must be an object of section → amount"})
    else:
        for section in investments:
            if str(section).strip().upper() not in INVESTMENT_SECTIONS:
                violations.append({
                    "field": f"investments.{section}",
                    "issue": (
                        f"Unknown deduction section '{section}'. "
                        f"Supported sections: {', '.join(INVESTMENT_SECTIONS)}"
                    ),
                })

    # ---- 4. Non-salary income cannot be negative ----------------------------
    for field in _NON_NEGATIVE:
        value = _as_number(payload.get(field))
        if value is not None and value < 0:
            violations.append({"field": field, "issue": f"{field} cannot be negative"})

    if violations:
        logger.info("Profile validation failed violations=%d", len(violations))
        raise ValueError(json.dumps(violations))
