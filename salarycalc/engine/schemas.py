"""
schemas.py — salary breakdown output contracts (Pydantic v2).

Defines:
  - GrossSalary, EmployeeContributions, DeductionSummary
  - TaxableIncome, RebateDetail, SurchargeDetail, CapitalGainsTax, IncomeTax
  - TDSInstalment, MonthlyTDS, TakeHome
  - RegimeBreakdown, RegimeResult  (full computation for one regime)
  - RegimeError                    (per-regime failure in "skip" mode)
  - SalaryBreakdown                (multi-regime response — public API output)

All money is whole rupees (rounded half-up) except where noted.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Result(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# Salary side
# ---------------------------------------------------------------------------

class GrossSalary(_Result):
    """Sum of declared salary components. Identical for every regime."""

    total: float
    components: Dict[str, float]


class EmployeeContributions(_Result):
    """Payroll deductions withheld from salary (reduce take-home, not gross)."""

    employee_pf: float = 0
    nps_employee: float = 0
    other_deductions: float = 0
    total: float = 0


class DeductionSummary(_Result):
    """
    Deductions applied in one regime.

    sections: per-section map after caps — populated for the old regime
              (80C, 80D, 80CCD1B, HRA, professional_tax), empty for new regimes.
    """

    standard_deduction: float = 0
    sections: Dict[str, float] = Field(default_factory=dict)

    @property
    def sections_total(self) -> float:
        return sum(self.sections.values())

    @property
    def total(self) -> float:
        return self.standard_deduction + self.sections_total


class TaxableIncome(_Result):
    """
    final = max(0, gross_salary - standard_deduction - section_deductions
                   + income_from_other_sources)
    Capital gains are NOT included — they are taxed separately.
    """

    gross_salary: float
    standard_deduction: float
    section_deductions: float
    income_from_other_sources: float
    final: float


# ---------------------------------------------------------------------------
# Tax side
# ---------------------------------------------------------------------------

class RebateDetail(_Result):
    """Section 87A outcome. Applies to slab tax only, never to special-rate tax."""

    eligible: bool = False
    amount: float = 0
    threshold: float = 0
    marginal_relief: float = 0
    special_rate_income_excluded: bool = False


class SurchargeDetail(_Result):
    rate: float = 0
    amount: float = 0
    marginal_relief: float = 0


class CapitalGainsTax(_Result):
    stcg: float = 0
    ltcg: float = 0
    ltcg_exempt: float = 0
    stcg_tax: float = 0
    ltcg_tax: float = 0
    total: float = 0


class IncomeTax(_Result):
    """
    Computation sequence:
      1. slab_tax          progressive slabs on taxable_income.final
      2. rebate            87A (and new-regime marginal relief) → tax_after_rebate
      3. capital_gains     special-rate tax, added on top
      4. surcharge         on (tax_after_rebate + capital_gains.total), by total-income band
      5. cess              cess_rate × (tax_after_rebate + capital_gains.total + surcharge)
      6. total             3 + 4 + 5 + tax_after_rebate, never negative
    """

    slab_tax: float
    rebate: RebateDetail
    tax_after_rebate: float
    capital_gains: CapitalGainsTax
    surcharge: SurchargeDetail
    cess: float
    total: float


# ---------------------------------------------------------------------------
# Payroll side
# ---------------------------------------------------------------------------

class TDSInstalment(_Result):
    month: str
    amount: float


class MonthlyTDS(_Result):
    """Yearly tax spread over 12 salary months; remainder rupees front-loaded."""

    monthly: float
    remainder: float
    total: float
    schedule: List[TDSInstalment]


class TakeHome(_Result):
    yearly: float
    monthly: float


# ---------------------------------------------------------------------------
# RegimeResult — one regime
# ---------------------------------------------------------------------------

class RegimeBreakdown(_Result):
    deductions: Dict[str, float] = Field(default_factory=dict)
    contributions: EmployeeContributions


class RegimeResult(_Result):
    regime: str
    label: str
    gross_salary: float
    taxable_income: TaxableIncome
    income_tax: IncomeTax
    professional_tax: float
    monthly_tds: MonthlyTDS
    take_home: TakeHome
    breakdown: RegimeBreakdown


class RegimeError(_Result):
    regime: str
    code: str
    message: str


# ---------------------------------------------------------------------------
# SalaryBreakdown — public API output
# ---------------------------------------------------------------------------

DISCLAIMER = (
    "This calculator is for estimation purposes only. "
    "Please consult a Chartered Accountant for final tax calculations."
)


class SalaryBreakdown(_Result):
    """
    Output of SalaryBreakdownEngine.calculate_salary_breakdown().

    regimes: exactly one entry per requested (valid) regime name.
    errors:  regimes that could not be computed — only populated when the
             engine runs with on_unknown_regime="skip".
    """

    fy: str
    gross_salary: GrossSalary
    ctc: float
    regimes: Dict[str, RegimeResult]
    errors: Dict[str, RegimeError] = Field(default_factory=dict)
    recommended_regime: Optional[str] = None
    savings_amount: float = 0
    rationale: str = ""
    suggestions: List[str] = Field(default_factory=list)
    disclaimer: str = DISCLAIMER


__all__ = [
    "GrossSalary",
    "EmployeeContributions",
    "DeductionSummary",
    "TaxableIncome",
    "RebateDetail",
    "SurchargeDetail",
    "CapitalGainsTax",
    "IncomeTax",
    "TDSInstalment",
    "MonthlyTDS",
    "TakeHome",
    "RegimeBreakdown",
    "RegimeResult",
    "RegimeError",
    "SalaryBreakdown",
    "DISCLAIMER",
]
