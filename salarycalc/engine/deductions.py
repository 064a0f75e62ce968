"""
Deduction calculator — old regime Chapter VI-A, HRA and standard deduction.

Regime rules decide what is allowed:
  - old:            standard deduction, HRA (Rule 2A), 80C, 80D, 80CCD(1B),
                    professional tax u/s 16(iii)
  - new regimes:    standard deduction only; section map stays empty

Malformed claims degrade to 0 instead of raising, so one bad field never
sinks a whole calculation.
"""
from __future__ import annotations

import logging

from salarycalc.engine.payroll import round_to_rupees
from salarycalc.engine.schemas import DeductionSummary
from salarycalc.profile.schemas import INVESTMENT_SECTIONS, TaxpayerProfile
from salarycalc.rules.schemas import AGE_BAND_UNDER_60, RegimeRules

logger = logging.getLogger(__name__)

HRA_KEY = "HRA"
PROFESSIONAL_TAX_KEY = "professional_tax"


class DeductionCalculator:
    """Computes capped deductions for one regime's rules."""

    def __init__(self, rules: RegimeRules) -> None:
        self.rules = rules

    def compute_section_deduction(
        self, section_code: str, claimed_amount: float, age_band: str = AGE_BAND_UNDER_60
    ) -> float:
        """min(claimed, cap) — 0 for unknown sections, negative claims, or regimes without caps."""
        cap = self.rules.section_caps.get(section_code)
        if cap is None or claimed_amount is None or claimed_amount <= 0:
            return 0.0
        return min(float(claimed_amount), cap.cap_for(age_band))

    def compute_hra_exemption(
        self, basic: float, hra: float, rent_paid: float, lives_in_metro: bool
    ) -> float:
        """
        HRA exemption under Section 10(13A), Rule 2A — the minimum of:
          1. HRA actually received
          2. rent paid − 10% of basic          (clipped at 0)
          3. 50% of basic (metro) / 40% (non-metro)
        Returns 0 when no rent is paid, no HRA is received, or the regime has no HRA rules.
        """
        params = self.rules.hra
        if params is None or rent_paid <= 0 or hra <= 0:
            return 0.0
        basic = max(0.0, basic)
        pct = params.metro_percent if lives_in_metro else params.non_metro_percent
        rent_excess = max(0.0, rent_paid - params.rent_excess_percent * basic)
        return max(0.0, min(hra, rent_excess, pct * basic))

    def compute_standard_deduction(self, gross_salary: float | None = None) -> float:
        """Flat regime deduction, never more than the salary it is deducted from."""
        amount = self.rules.standard_deduction
        if gross_salary is not None:
            amount = min(amount, max(0.0, gross_salary))
        return amount

    def compute(
        self,
        profile: TaxpayerProfile,
        gross_salary: float,
        professional_tax: float = 0.0,
    ) -> DeductionSummary:
        """All deductions this regime allows for `profile`."""
        standard = round_to_rupees(self.compute_standard_deduction(gross_salary))
        if not self.rules.allows_deductions:
            return DeductionSummary(standard_deduction=standard)

        age_band = profile.age_band
        # Only declared investments count; payroll PF stays in contributions
        sections = {
            code: round_to_rupees(self.compute_section_deduction(code, profile.claimed(code), age_band))
            for code in INVESTMENT_SECTIONS
        }
        sections[HRA_KEY] = round_to_rupees(
            self.compute_hra_exemption(profile.basic, profile.hra, profile.rent_paid, profile.lives_in_metro)
        )
        sections[PROFESSIONAL_TAX_KEY] = (
            round_to_rupees(professional_tax) if self.rules.professional_tax_deductible else 0.0
        )

        ignored = set(profile.investments) - set(INVESTMENT_SECTIONS)
        if ignored:
            logger.debug("Ignoring unknown deduction sections: %s", sorted(ignored))

        return DeductionSummary(standard_deduction=standard, sections=sections)
