"""
schemas.py — taxpayer input contracts (Pydantic v2).

Defines:
  - TaxpayerProfile  (the central input — every engine component consumes this)
  - ErrorDetail, ErrorBody, ErrorResponse  (cross-cutting error envelope)

Input clamping: the calculator is driven by partially-filled UI forms, so
blank, null or negative amounts are treated as 0 instead of failing the whole
calculation. PF percentages are clamped into [0, 100]. Strict checks for the
HTTP adapter live in validator.py.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from salarycalc.rules.schemas import age_band_for

INCOME_COMPONENTS = (
    "basic",
    "hra",
    "conveyance",
    "special_allowances",
    "lta",
    "bonus",
    "other_taxable",
)

INVESTMENT_SECTIONS = ("80C", "80D", "80CCD1B")

_AMOUNT_FIELDS = INCOME_COMPONENTS + (
    "nps_employee",
    "nps_employer",
    "other_deductions",
    "rent_paid",
    "income_from_other_sources",
    "stcg",
    "ltcg",
)
_PERCENT_FIELDS = ("employee_pf_percent", "employer_pf_percent")


def _clamp_amount(value: Any) -> Any:
    if value is None:
        return 0.0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            value = float(text)
        except ValueError:
            # Not a number: left for the field's own type check to report
            return value
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value < 0:
        return 0.0
    return value


# ---------------------------------------------------------------------------
# TaxpayerProfile — central input contract
# ---------------------------------------------------------------------------

class TaxpayerProfile(BaseModel):
    """
    Annual salary structure and tax inputs for one salaried taxpayer.

    All amounts are annual INR. rent_paid is ANNUAL rent (not monthly).
    The profile is frozen: one instance is built per calculation request.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    # --- Income components (sum = gross salary) ---
    basic: float = Field(default=0, ge=0, description="Basic salary (plus DA, if any).")
    hra: float = Field(default=0, ge=0, description="House Rent Allowance received.")
    conveyance: float = Field(default=0, ge=0)
    special_allowances: float = Field(default=0, ge=0)
    lta: float = Field(default=0, ge=0, description="Leave Travel Allowance.")
    bonus: float = Field(default=0, ge=0)
    other_taxable: float = Field(default=0, ge=0, description="Any other taxable salary component.")

    # --- Retirement contributions ---
    employee_pf_percent: float = Field(default=0, ge=0, le=100, description="Employee PF, % of basic.")
    employer_pf_percent: float = Field(default=0, ge=0, le=100, description="Employer PF, % of basic (CTC only).")
    nps_employee: float = Field(default=0, ge=0, description="Employee NPS contribution deducted from salary.")
    nps_employer: float = Field(default=0, ge=0, description="Employer NPS contribution (CTC only).")
    other_deductions: float = Field(
        default=0, ge=0,
        description="Miscellaneous payroll deductions — reduce take-home, not taxable income.",
    )

    # --- Chapter VI-A claims (old regime only) ---
    investments: Dict[str, float] = Field(
        default_factory=dict,
        description="Section code (80C, 80D, 80CCD1B) → claimed amount. Capped by the rules.",
    )

    # --- HRA exemption inputs ---
    rent_paid: float = Field(default=0, ge=0, description="Annual rent paid.")
    lives_in_metro: bool = Field(default=False, description="Metro → 50% of basic, else 40%.")

    # --- Profile metadata ---
    age: int = Field(default=30, ge=0, le=130)
    state: str = Field(default="", description="Selects the professional tax schedule.")

    # --- Non-salary income ---
    income_from_other_sources: float = Field(default=0, ge=0)
    stcg: float = Field(default=0, ge=0, description="Short-term capital gains (special rate).")
    ltcg: float = Field(default=0, ge=0, description="Long-term capital gains (special rate).")

    # --- Clamping validators ---
    @field_validator(*_AMOUNT_FIELDS, mode="before")
    @classmethod
    def _clamp_amounts(cls, value: Any) -> Any:
        return _clamp_amount(value)

    @field_validator(*_PERCENT_FIELDS, mode="before")
    @classmethod
    def _clamp_percent(cls, value: Any) -> Any:
        value = _clamp_amount(value)
        if isinstance(value, (int, float)) and value > 100:
            return 100.0
        return value

    @field_validator("age", mode="before")
    @classmethod
    def _clamp_age(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return 30
        return _clamp_amount(value)

    @field_validator("state", mode="before")
    @classmethod
    def _normalise_state(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("investments", mode="before")
    @classmethod
    def _clamp_investments(cls, value: Any) -> Any:
        if not value:
            return {}
        if isinstance(value, dict):
            return {
                str(section).strip().upper(): _clamp_amount(amount)
                for section, amount in value.items()
            }
        return value

    # --- Derived values ---
    @property
    def age_band(self) -> str:
        return age_band_for(self.age)

    @property
    def employee_pf(self) -> float:
        return self.basic * self.employee_pf_percent / 100

    @property
    def employer_pf(self) -> float:
        return self.basic * self.employer_pf_percent / 100

    def claimed(self, section: str) -> float:
        return self.investments.get(section, 0.0)


# ---------------------------------------------------------------------------
# Error response models — used by main.py exception handlers (cross-cutting)
# ---------------------------------------------------------------------------

class ErrorDetail(BaseModel):
    """Single field-level validation or business-rule error."""
    model_config = ConfigDict(extra="forbid")

    field: Optional[str] = None   # Dot-notation field path, e.g. "investments.80C"
    issue: str


class ErrorBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: str                                      # VALIDATION_ERROR, RULES_NOT_FOUND, ...
    message: str
    details: List[ErrorDetail] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """
    Standard error response format for all endpoints.

    Structure: {"error": {"code": "...", "message": "...", "details": [...]}}
    """
    model_config = ConfigDict(extra="forbid")

    error: ErrorBody


__all__ = [
    "INCOME_COMPONENTS",
    "INVESTMENT_SECTIONS",
    "TaxpayerProfile",
    "ErrorDetail",
    "ErrorBody",
    "ErrorResponse",
]
