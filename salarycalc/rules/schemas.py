"""
schemas.py — immutable tax-rule value objects (Pydantic v2).

Defines:
  - Slab, RebateRules, SurchargeBand, SurchargeRules, SectionCap,
    HraRules, CapitalGainsRules, ProfessionalTaxSlab
  - RegimeRules         (everything one regime needs for one financial year)
  - FinancialYearRules  (all regimes + state professional tax for one FY)

Every model is frozen and every mapping field is a read-only proxy: a loaded
rule set is a read-only snapshot shared by all concurrent calculations.
Structural invariants (slabs cover [0, ∞) with no gaps, bands strictly
increasing) are checked at load time so a bad dataset fails loudly instead
of producing wrong tax.
"""
from __future__ import annotations

import re
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

FY_PATTERN = re.compile(r"^\d{4}-\d{2}$")

AGE_BAND_UNDER_60 = "under60"
AGE_BAND_60_79 = "60_79"
AGE_BAND_80_PLUS = "80plus"
AGE_BANDS = (AGE_BAND_UNDER_60, AGE_BAND_60_79, AGE_BAND_80_PLUS)


def age_band_for(age: int) -> str:
    """Map an age in years to the statutory band used for slabs and 80D caps."""
    if age >= 80:
        return AGE_BAND_80_PLUS
    if age >= 60:
        return AGE_BAND_60_79
    return AGE_BAND_UNDER_60


class _Frozen(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


def _read_only(mapping: Mapping) -> Mapping:
    # frozen=True only blocks attribute assignment; mapping fields need their own guard
    return MappingProxyType(dict(mapping))


# ---------------------------------------------------------------------------
# Slabs
# ---------------------------------------------------------------------------

class Slab(_Frozen):
    """One income bracket: income in [lower, upper) is taxed at `rate`. upper=None → ∞."""

    lower: float = Field(..., ge=0)
    upper: Optional[float] = None
    rate: float = Field(..., ge=0, le=1)


def _check_slab_table(slabs: Tuple[Slab, ...]) -> Tuple[Slab, ...]:
    if not slabs:
        raise ValueError("slab table must not be empty")
    if slabs[0].lower != 0:
        raise ValueError("first slab must start at 0")
    for prev, nxt in zip(slabs, slabs[1:]):
        if prev.upper is None:
            raise ValueError("only the last slab may be open-ended")
        if prev.upper <= prev.lower:
            raise ValueError(f"slab bounds must increase (got {prev.lower}..{prev.upper})")
        if nxt.lower != prev.upper:
            raise ValueError(f"gap or overlap between slabs at {prev.upper} / {nxt.lower}")
    if slabs[-1].upper is not None:
        raise ValueError("last slab must be open-ended (upper=null)")
    return slabs


# ---------------------------------------------------------------------------
# Rebate / surcharge / cess
# ---------------------------------------------------------------------------

class RebateRules(_Frozen):
    """Section 87A: rebate = min(tax, cap) when taxable income <= threshold."""

    threshold: float = Field(..., ge=0)
    cap: float = Field(..., ge=0)
    # New regimes: tax just above the threshold may not exceed income above it
    marginal_relief: bool = False


class SurchargeBand(_Frozen):
    """Surcharge `rate` applies when total income exceeds `threshold`."""

    threshold: float = Field(..., gt=0)
    rate: float = Field(..., ge=0, le=1)


class SurchargeRules(_Frozen):
    bands: Tuple[SurchargeBand, ...] = ()
    # Max surcharge rate on tax from STCG (111A) / LTCG (112A)
    capital_gains_cap: float = Field(default=0.15, ge=0, le=1)

    @field_validator("bands")
    @classmethod
    def _bands_increasing(cls, bands: Tuple[SurchargeBand, ...]) -> Tuple[SurchargeBand, ...]:
        for prev, nxt in zip(bands, bands[1:]):
            if nxt.threshold <= prev.threshold:
                raise ValueError("surcharge thresholds must be strictly increasing")
        return bands

    def band_for(self, total_income: float) -> Tuple[Optional[SurchargeBand], float]:
        """Return (band, rate of the band below it) for `total_income`; band is None below the first threshold."""
        band: Optional[SurchargeBand] = None
        previous_rate = 0.0
        for candidate in self.bands:
            if total_income > candidate.threshold:
                previous_rate = band.rate if band else 0.0
                band = candidate
            else:
                break
        return band, previous_rate


# ---------------------------------------------------------------------------
# Deductions
# ---------------------------------------------------------------------------

class SectionCap(_Frozen):
    """Legal ceiling for a Chapter VI-A section; senior_cap applies to 60+."""

    cap: float = Field(..., ge=0)
    senior_cap: Optional[float] = Field(default=None, ge=0)

    def cap_for(self, age_band: str) -> float:
        if age_band != AGE_BAND_UNDER_60 and self.senior_cap is not None:
            return self.senior_cap
        return self.cap


class HraRules(_Frozen):
    """Section 10(13A) / Rule 2A percentages."""

    metro_percent: float = Field(default=0.50, ge=0, le=1)
    non_metro_percent: float = Field(default=0.40, ge=0, le=1)
    rent_excess_percent: float = Field(default=0.10, ge=0, le=1)


class CapitalGainsRules(_Frozen):
    stcg_rate: float = Field(..., ge=0, le=1)
    ltcg_rate: float = Field(..., ge=0, le=1)
    ltcg_exemption: float = Field(default=0, ge=0)


class ProfessionalTaxSlab(_Frozen):
    """Monthly PT payable once monthly gross reaches `min_monthly_gross`."""

    min_monthly_gross: float = Field(..., ge=0)
    monthly: float = Field(..., ge=0)


# ---------------------------------------------------------------------------
# RegimeRules — one regime, one financial year
# ---------------------------------------------------------------------------

class RegimeRules(_Frozen):
    name: str
    label: str
    slabs: Tuple[Slab, ...]
    # Age-band overrides (old regime: senior 3L / super-senior 5L exemption)
    age_slabs: Mapping[str, Tuple[Slab, ...]] = Field(default_factory=dict, validate_default=True)
    standard_deduction: float = Field(default=0, ge=0)
    rebate: RebateRules
    cess_rate: float = Field(default=0.04, ge=0, le=1)
    surcharge: SurchargeRules = Field(default_factory=SurchargeRules)
    # Empty for the new regimes: no Chapter VI-A claims allowed
    section_caps: Mapping[str, SectionCap] = Field(default_factory=dict, validate_default=True)
    hra: Optional[HraRules] = None
    professional_tax_deductible: bool = False
    capital_gains: CapitalGainsRules

    @field_validator("slabs")
    @classmethod
    def _validate_slabs(cls, slabs: Tuple[Slab, ...]) -> Tuple[Slab, ...]:
        return _check_slab_table(slabs)

    @field_validator("age_slabs")
    @classmethod
    def _validate_age_slabs(cls, age_slabs: Mapping[str, Tuple[Slab, ...]]) -> Mapping[str, Tuple[Slab, ...]]:
        for band, slabs in age_slabs.items():
            if band not in AGE_BANDS:
                raise ValueError(f"unknown age band '{band}' (expected one of {AGE_BANDS})")
            _check_slab_table(slabs)
        return _read_only(age_slabs)

    @field_validator("section_caps")
    @classmethod
    def _freeze_section_caps(cls, caps: Mapping[str, SectionCap]) -> Mapping[str, SectionCap]:
        return _read_only(caps)

    @property
    def allows_deductions(self) -> bool:
        """Old regime → True. New regimes carry no section caps and no HRA rules."""
        return bool(self.section_caps) or self.hra is not None

    def slabs_for(self, age_band: str) -> Tuple[Slab, ...]:
        return self.age_slabs.get(age_band, self.slabs)


# ---------------------------------------------------------------------------
# FinancialYearRules — complete dataset for one FY
# ---------------------------------------------------------------------------

class FinancialYearRules(_Frozen):
    fy: str
    source: str = ""
    regimes: Mapping[str, RegimeRules]
    # State name → ascending monthly-gross slabs. Unknown state → no PT.
    professional_tax: Mapping[str, Tuple[ProfessionalTaxSlab, ...]] = Field(
        default_factory=dict, validate_default=True
    )

    @field_validator("regimes", "professional_tax")
    @classmethod
    def _freeze_mappings(cls, value: Mapping) -> Mapping:
        return _read_only(value)

    @field_validator("fy")
    @classmethod
    def _fy_format(cls, fy: str) -> str:
        if not FY_PATTERN.match(fy):
            raise ValueError(f"fy must look like '2025-26', got {fy!r}")
        return fy

    @model_validator(mode="before")
    @classmethod
    def _inject_regime_names(cls, data):
        # The JSON keys regimes by name; copy the key into each entry.
        if isinstance(data, dict) and isinstance(data.get("regimes"), dict):
            regimes = {}
            for name, body in data["regimes"].items():
                if isinstance(body, dict):
                    body = {"name": name, **body}
                regimes[name] = body
            data = {**data, "regimes": regimes}
        return data

    @model_validator(mode="after")
    def _validate_regimes(self) -> "FinancialYearRules":
        if not self.regimes:
            raise ValueError("at least one regime is required")
        for name, regime in self.regimes.items():
            if regime.name != name:
                raise ValueError(f"regime key '{name}' does not match its name '{regime.name}'")
        return self

    @property
    def regime_names(self) -> list[str]:
        return list(self.regimes)


__all__ = [
    "AGE_BAND_UNDER_60",
    "AGE_BAND_60_79",
    "AGE_BAND_80_PLUS",
    "AGE_BANDS",
    "FY_PATTERN",
    "age_band_for",
    "Slab",
    "RebateRules",
    "SurchargeBand",
    "SurchargeRules",
    "SectionCap",
    "HraRules",
    "CapitalGainsRules",
    "ProfessionalTaxSlab",
    "RegimeRules",
    "FinancialYearRules",
]
