"""
Optimizer — plain-English suggestions for unused old-regime deduction headroom.
Pure functions. No I/O.

Savings are estimated at the old-regime marginal slab rate including cess,
read from the same RegimeRules the calculation used.
"""
from __future__ import annotations

from salarycalc.engine.schemas import RegimeResult
from salarycalc.engine.slabs import marginal_rate
from salarycalc.profile.schemas import TaxpayerProfile
from salarycalc.rules.schemas import RegimeRules

_SUGGESTION_MIN_SAVING = 1_000   # Suppress suggestions where tax saving < ₹1,000
_MAX_SUGGESTIONS = 3

_SECTION_ADVICE = {
    "80C": "Invest ₹{headroom:,.0f} more in 80C instruments (PPF, ELSS, LIC)",
    "80D": "Pay ₹{headroom:,.0f} more in health insurance premiums under Section 80D",
    "80CCD1B": "Contribute ₹{headroom:,.0f} more to NPS (Section 80CCD(1B))",
}


def effective_marginal_rate(taxable_income: float, rules: RegimeRules, age_band: str) -> float:
    """Slab rate of the last rupee × (1 + cess), e.g. 0.312 for the 30% slab."""
    return marginal_rate(taxable_income, rules.slabs_for(age_band)) * (1 + rules.cess_rate)


def generate_old_suggestions(
    profile: TaxpayerProfile,
    old_result: RegimeResult,
    rules: RegimeRules,
) -> list[str]:
    """
    Suggest topping up 80C / 80D / 80CCD(1B) up to their caps.
    Suppresses suggestions with < ₹1,000 tax saving.
    Returns at most 3 suggestions, sorted by rupee saving descending.
    """
    age_band = profile.age_band
    effective_rate = effective_marginal_rate(old_result.taxable_income.final, rules, age_band)
    if effective_rate == 0.0:
        return []   # Already in zero-tax bracket

    used = old_result.breakdown.deductions
    candidates: list[tuple[float, str]] = []   # (saving, suggestion_text)

    for section, template in _SECTION_ADVICE.items():
        cap = rules.section_caps.get(section)
        if cap is None:
            continue
        headroom = cap.cap_for(age_band) - used.get(section, 0.0)
        # Saving cannot exceed the taxable income the extra deduction would remove
        saving = min(headroom, old_result.taxable_income.final) * effective_rate
        if headroom > 0 and saving >= _SUGGESTION_MIN_SAVING:
            candidates.append((
                saving,
                f"{template.format(headroom=headroom)} "
                f"to save ₹{round(saving):,.0f} in the {rules.label}.",
            ))

    candidates.sort(key=lambda x: x[0], reverse=True)
    return [text for _, text in candidates[:_MAX_SUGGESTIONS]]


__all__ = ["effective_marginal_rate", "generate_old_suggestions"]
