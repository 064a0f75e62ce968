"""
rebate.py — Section 87A rebate, surcharge and health & education cess.

Order of application (same for every regime, parameters come from RegimeRules):
  1. 87A rebate on slab tax when taxable income <= threshold.
     Regimes flagged `marginal_relief`: just above the threshold, slab tax is
     limited to the income in excess of the threshold.
     Special-rate (capital gains) tax is never rebated.
  2. Surcharge on (tax after rebate + capital-gains tax) by total-income band.
     The rate on capital-gains tax is capped (15%). Marginal relief keeps
     tax + surcharge from rising by more than the income above the band threshold.
  3. Cess on (tax after rebate + capital-gains tax + surcharge).

Every component is rounded to whole rupees; `total` is the sum of the rounded
parts, so the reported figures always add up.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

from salarycalc.engine.payroll import round_to_rupees
from salarycalc.engine.schemas import CapitalGainsTax, IncomeTax, RebateDetail, SurchargeDetail
from salarycalc.engine.slabs import compute_slab_tax
from salarycalc.rules.schemas import AGE_BAND_UNDER_60, RebateRules, RegimeRules, Slab, SurchargeRules

logger = logging.getLogger(__name__)


def apply_87a_rebate(slab_tax: float, taxable_income: float, rules: RebateRules) -> Tuple[RebateDetail, float]:
    """
    Return (rebate detail, tax after rebate) for slab tax only.

    taxable_income <= threshold  → rebate = min(slab_tax, cap)
    taxable_income >  threshold  → no rebate; with marginal relief the tax is
                                   limited to (taxable_income − threshold)
    """
    slab_tax = max(0.0, slab_tax)
    detail = RebateDetail(threshold=rules.threshold)

    if taxable_income <= rules.threshold:
        amount = min(slab_tax, rules.cap)
        detail = detail.model_copy(update={"eligible": True, "amount": amount})
        return detail, slab_tax - amount

    if rules.marginal_relief:
        excess = taxable_income - rules.threshold
        if slab_tax > excess:
            relief = slab_tax - excess
            detail = detail.model_copy(update={"marginal_relief": relief})
            return detail, excess

    return detail, slab_tax


def _surcharge_on(tax: float, special_rate_tax: float, rate: float, capital_gains_cap: float) -> float:
    return tax * rate + special_rate_tax * min(rate, capital_gains_cap)


def compute_surcharge(
    tax_after_rebate: float,
    special_rate_tax: float,
    total_income: float,
    taxable_income: float,
    rules: SurchargeRules,
    slabs: Sequence[Slab],
    rebate_rules: Optional[RebateRules] = None,
) -> SurchargeDetail:
    """
    Surcharge for the band `total_income` falls into, with marginal relief.

    Relief compares against the liability at the band threshold: the slab
    income is reduced by the excess over the threshold, taxed again, and
    surcharged at the previous band's rate. The excess income is the most the
    taxpayer may pay over that figure.
    """
    band, previous_rate = rules.band_for(total_income)
    if band is None:
        return SurchargeDetail()

    base = tax_after_rebate + special_rate_tax
    normal = _surcharge_on(tax_after_rebate, special_rate_tax, band.rate, rules.capital_gains_cap)

    excess = total_income - band.threshold
    income_at_threshold = max(0.0, taxable_income - excess)
    tax_at_threshold = compute_slab_tax(income_at_threshold, slabs)
    if rebate_rules is not None:
        _, tax_at_threshold = apply_87a_rebate(tax_at_threshold, income_at_threshold, rebate_rules)
    liability_at_threshold = (
        tax_at_threshold
        + special_rate_tax
        + _surcharge_on(tax_at_threshold, special_rate_tax, previous_rate, rules.capital_gains_cap)
    )

    relief = max(0.0, (base + normal) - (liability_at_threshold + excess))
    relief = min(relief, normal)
    if relief:
        logger.debug("Surcharge marginal relief applied at band threshold=%s", band.threshold)

    return SurchargeDetail(rate=band.rate, amount=normal - relief, marginal_relief=relief)


class RebateAndCessApplier:
    """Turns slab tax into final payable tax for one regime."""

    def __init__(self, rules: RegimeRules, age_band: str = AGE_BAND_UNDER_60) -> None:
        self.rules = rules
        self.slabs = rules.slabs_for(age_band)

    def apply(
        self,
        gross_tax: float,
        taxable_income: float,
        capital_gains: Optional[CapitalGainsTax] = None,
        total_income: Optional[float] = None,
    ) -> IncomeTax:
        """
        gross_tax:      slab tax on `taxable_income` (unrounded is fine)
        capital_gains:  special-rate tax, added after the rebate
        total_income:   income used for surcharge bands; defaults to
                        taxable_income + capital gains
        """
        capital_gains = capital_gains or CapitalGainsTax()
        if total_income is None:
            total_income = max(0.0, taxable_income) + capital_gains.stcg + capital_gains.ltcg

        slab_tax = round_to_rupees(max(0.0, gross_tax))
        rebate, _ = apply_87a_rebate(slab_tax, taxable_income, self.rules.rebate)
        rebate = rebate.model_copy(
            update={
                "amount": round_to_rupees(rebate.amount),
                "marginal_relief": round_to_rupees(rebate.marginal_relief),
                "special_rate_income_excluded": capital_gains.total > 0,
            }
        )
        tax_after_rebate = max(0.0, slab_tax - rebate.amount - rebate.marginal_relief)

        surcharge = compute_surcharge(
            tax_after_rebate,
            capital_gains.total,
            total_income,
            taxable_income,
            self.rules.surcharge,
            self.slabs,
            self.rules.rebate,
        )
        surcharge = surcharge.model_copy(
            update={
                "amount": round_to_rupees(surcharge.amount),
                "marginal_relief": round_to_rupees(surcharge.marginal_relief),
            }
        )

        cess = round_to_rupees(
            (tax_after_rebate + capital_gains.total + surcharge.amount) * self.rules.cess_rate
        )
        total = max(0.0, tax_after_rebate + capital_gains.total + surcharge.amount + cess)

        return IncomeTax(
            slab_tax=slab_tax,
            rebate=rebate,
            tax_after_rebate=tax_after_rebate,
            capital_gains=capital_gains,
            surcharge=surcharge,
            cess=cess,
            total=total,
        )
