"""
Progressive slab tax.

Pure functions, no I/O. Slab tables come from RegimeRules.slabs_for(age_band).
"""
from __future__ import annotations

from typing import Sequence

from salarycalc.rules.schemas import Slab


def compute_slab_tax(taxable_income: float, slabs: Sequence[Slab]) -> float:
    """
    Apply marginal rates: each slab taxes the part of income inside [lower, upper).

    Slabs must be ascending and contiguous (guaranteed by RegimeRules
    validation). Negative income is treated as 0. The result is unrounded and
    non-decreasing in `taxable_income`.
    """
    income = max(0.0, float(taxable_income))
    tax = 0.0
    for slab in slabs:
        if income <= slab.lower:
            break
        ceiling = income if slab.upper is None else min(income, slab.upper)
        tax += (ceiling - slab.lower) * slab.rate
    return tax


def marginal_rate(taxable_income: float, slabs: Sequence[Slab]) -> float:
    """Rate of the slab the last rupee of `taxable_income` falls into (0 at or below the first break)."""
    income = max(0.0, float(taxable_income))
    rate = 0.0
    for slab in slabs:
        if income <= slab.lower:
            break
        rate = slab.rate
    return rate
