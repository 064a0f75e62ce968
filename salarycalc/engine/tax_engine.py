"""
Salary breakdown engine — the orchestrator.

Pure computation over loaded rules. The only I/O is the first access to a
financial year's rules (delegated to TaxRulesStore).

Per regime, in order:
  1. Look up RegimeRules for (fy, regime)
  2. Gross salary (regime-invariant) and state professional tax
  3. Deductions          old: standard + HRA + 80C/80D/80CCD1B + PT
                         new regimes: standard deduction only
  4. Taxable income      max(0, gross − deductions + other sources)
  5. Slab tax            progressive slabs (age-banded for the old regime)
  6. Capital gains tax   special rates, outside the slabs
  7. 87A rebate, surcharge, cess
  8. Monthly TDS and take-home

Then the regimes are compared: lowest total tax wins, ties go to the regimes
without investment requirements (new before old), and old-regime headroom
suggestions are attached.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from salarycalc.config import settings
from salarycalc.engine.capital_gains import compute_capital_gains_tax
from salarycalc.engine.deductions import DeductionCalculator
from salarycalc.engine.optimizer import generate_old_suggestions
from salarycalc.engine.payroll import (
    calculate_contributions,
    calculate_gross_salary,
    calculate_monthly_tds,
    calculate_professional_tax,
    calculate_take_home,
    round_to_rupees,
)
from salarycalc.engine.rebate import RebateAndCessApplier
from salarycalc.engine.schemas import (
    GrossSalary,
    RegimeBreakdown,
    RegimeError,
    RegimeResult,
    SalaryBreakdown,
    TaxableIncome,
)
from salarycalc.engine.slabs import compute_slab_tax
from salarycalc.errors import UnsupportedRegimeError
from salarycalc.profile.schemas import TaxpayerProfile
from salarycalc.rules.schemas import RegimeRules
from salarycalc.rules.store import TaxRulesStore

logger = logging.getLogger(__name__)

ProfileInput = Union[TaxpayerProfile, Mapping[str, Any]]

ON_UNKNOWN_RAISE = "raise"
ON_UNKNOWN_SKIP = "skip"


def _coerce_profile(profile: ProfileInput) -> TaxpayerProfile:
    if isinstance(profile, TaxpayerProfile):
        return profile
    return TaxpayerProfile.model_validate(dict(profile))


class SalaryBreakdownEngine:
    """
    Computes per-regime salary and tax breakdowns.

    One engine can serve any number of concurrent calculations: it holds no
    per-request state, and the rules store is read-only once a year is loaded.
    """

    def __init__(
        self,
        store: Optional[TaxRulesStore] = None,
        on_unknown_regime: Optional[str] = None,
    ) -> None:
        self.store = store or TaxRulesStore()
        self.on_unknown_regime = on_unknown_regime or settings.unknown_regime_policy

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def available_regimes(self, fy: str) -> List[str]:
        self.store.fetch_rules_for_fy(fy)
        return self.store.available_regimes(fy)

    def calculate_gross_salary(self, profile: ProfileInput) -> GrossSalary:
        return calculate_gross_salary(_coerce_profile(profile))

    def _requested_regimes(self, fy: str, regimes: Optional[Iterable[str]]) -> List[str]:
        """Deduplicate in request order; no request → configured defaults this fy supports."""
        if regimes:
            return list(dict.fromkeys(regimes))
        available = self.store.available_regimes(fy)
        defaults = [name for name in settings.default_regimes_list if name in available]
        return defaults or available

    # ------------------------------------------------------------------
    # One regime
    # ------------------------------------------------------------------

    def calculate_regime(self, profile: ProfileInput, fy: str, regime: str) -> RegimeResult:
        """
        Full computation for a single regime.

        Raises:
            RulesNotFoundError: no rules dataset for `fy`.
            UnsupportedRegimeError: `regime` is not defined for `fy`.
        """
        profile = _coerce_profile(profile)
        fy_rules = self.store.fetch_rules_for_fy(fy)
        rules = self.store.get(fy, regime)
        age_band = profile.age_band

        gross = calculate_gross_salary(profile)
        professional_tax = calculate_professional_tax(gross.total, profile.state, fy_rules.professional_tax)

        deductions = DeductionCalculator(rules).compute(profile, gross.total, professional_tax)
        other_sources = round_to_rupees(profile.income_from_other_sources)
        taxable = TaxableIncome(
            gross_salary=gross.total,
            standard_deduction=deductions.standard_deduction,
            section_deductions=deductions.sections_total,
            income_from_other_sources=other_sources,
            final=max(0.0, gross.total - deductions.total + other_sources),
        )

        slab_tax = compute_slab_tax(taxable.final, rules.slabs_for(age_band))
        capital_gains = compute_capital_gains_tax(profile.stcg, profile.ltcg, rules.capital_gains)
        income_tax = RebateAndCessApplier(rules, age_band).apply(slab_tax, taxable.final, capital_gains)

        contributions = calculate_contributions(profile)
        take_home = calculate_take_home(gross.total, income_tax.total, professional_tax, contributions)

        logger.debug(
            "Regime computed fy=%s regime=%s taxable=%s total_tax=%s",
            fy, regime, taxable.final, income_tax.total,
        )

        return RegimeResult(
            regime=regime,
            label=rules.label,
            gross_salary=gross.total,
            taxable_income=taxable,
            income_tax=income_tax,
            professional_tax=professional_tax,
            monthly_tds=calculate_monthly_tds(income_tax.total),
            take_home=take_home,
            breakdown=RegimeBreakdown(deductions=deductions.sections, contributions=contributions),
        )

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    def calculate_salary_breakdown(
        self,
        profile: ProfileInput,
        fy: Optional[str] = None,
        regimes: Optional[Iterable[str]] = None,
        on_unknown_regime: Optional[str] = None,
    ) -> SalaryBreakdown:
        """
        Compute every requested regime and compare them.

        Args:
            profile: TaxpayerProfile or a plain dict of its fields.
            fy: Financial year, e.g. "2025-26". Defaults to settings.default_fy.
            regimes: Regime names; duplicates collapse to one entry.
            on_unknown_regime: "raise" (default) fails the whole call on the
                first unsupported regime; "skip" reports it under `errors` and
                computes the rest.

        Raises:
            RulesNotFoundError: no rules dataset for `fy`.
            UnsupportedRegimeError: unknown regime in "raise" mode, or no
                requested regime is valid in "skip" mode.
        """
        profile = _coerce_profile(profile)
        fy = fy or settings.default_fy
        policy = on_unknown_regime or self.on_unknown_regime
        if policy not in (ON_UNKNOWN_RAISE, ON_UNKNOWN_SKIP):
            raise ValueError(f"on_unknown_regime must be 'raise' or 'skip', got {policy!r}")

        fy_rules = self.store.fetch_rules_for_fy(fy)
        requested = self._requested_regimes(fy, regimes)

        results: Dict[str, RegimeResult] = {}
        errors: Dict[str, RegimeError] = {}
        first_error: Optional[UnsupportedRegimeError] = None
        for regime in requested:
            try:
                results[regime] = self.calculate_regime(profile, fy, regime)
            except UnsupportedRegimeError as exc:
                if policy == ON_UNKNOWN_RAISE:
                    raise
                logger.warning("Skipping regime fy=%s regime=%s: %s", fy, regime, exc)
                errors[regime] = RegimeError(regime=regime, code=exc.code, message=str(exc))
                first_error = first_error or exc

        if not results and first_error is not None:
            raise first_error

        gross = calculate_gross_salary(profile)
        ctc = round_to_rupees(gross.total + profile.employer_pf + profile.nps_employer)
        recommended, savings, rationale = _recommend(results, fy_rules.regimes)

        suggestions: List[str] = []
        old_result = next(
            (r for name, r in results.items() if fy_rules.regimes[name].allows_deductions),
            None,
        )
        if old_result is not None:
            suggestions = generate_old_suggestions(profile, old_result, fy_rules.regimes[old_result.regime])

        logger.info(
            "Salary breakdown fy=%s regimes=%s recommended=%s skipped=%d",
            fy, ",".join(results), recommended, len(errors),
        )

        return SalaryBreakdown(
            fy=fy,
            gross_salary=gross,
            ctc=ctc,
            regimes=results,
            errors=errors,
            recommended_regime=recommended,
            savings_amount=savings,
            rationale=rationale,
            suggestions=suggestions,
        )


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------

def _recommend(
    results: Dict[str, RegimeResult],
    rules: Mapping[str, RegimeRules],
) -> tuple[Optional[str], float, str]:
    """
    Return (recommended regime, savings vs the runner-up, rationale).

    Ties go to regimes without investment requirements, then request order.
    """
    if not results:
        return None, 0.0, ""

    order = list(results)
    ranked = sorted(
        order,
        key=lambda name: (
            results[name].income_tax.total,
            rules[name].allows_deductions,
            order.index(name),
        ),
    )
    best = results[ranked[0]]
    if len(ranked) == 1:
        return best.regime, 0.0, f"Only the {best.label} was computed: total tax ₹{best.income_tax.total:,.0f}."

    runner_up = results[ranked[1]]
    savings = runner_up.income_tax.total - best.income_tax.total

    if savings == 0:
        rationale = (
            f"The {best.label} and the {runner_up.label} result in the same tax "
            f"(₹{best.income_tax.total:,.0f}). "
        )
        if rules[best.regime].allows_deductions:
            rationale += f"{best.label} recommended as it comes first in the comparison."
        else:
            rationale += f"{best.label} recommended as the simpler option with no mandatory investment requirements."
    elif rules[best.regime].allows_deductions:
        top = sorted(best.breakdown.deductions.items(), key=lambda kv: kv[1], reverse=True)[:2]
        key_deds = ", ".join(f"{k} ₹{v:,.0f}" for k, v in top if v > 0) or "standard deduction"
        rationale = (
            f"The {best.label} saves ₹{savings:,.0f} over the {runner_up.label}. "
            f"Tax: ₹{best.income_tax.total:,.0f} vs ₹{runner_up.income_tax.total:,.0f}. "
            f"Key deductions: {key_deds}."
        )
    else:
        rationale = (
            f"The {best.label} saves ₹{savings:,.0f} over the {runner_up.label}. "
            f"Tax: ₹{best.income_tax.total:,.0f} vs ₹{runner_up.income_tax.total:,.0f}."
        )
        old = next((r for name, r in results.items() if rules[name].allows_deductions), None)
        if old is not None:
            rationale += (
                f" Your eligible {old.label} deductions "
                f"(₹{old.taxable_income.section_deductions + old.taxable_income.standard_deduction:,.0f}) "
                "are not enough to offset its higher slab rates."
            )

    return best.regime, savings, rationale


__all__ = ["SalaryBreakdownEngine", "ON_UNKNOWN_RAISE", "ON_UNKNOWN_SKIP"]
