"""
Capital-gains tax at special rates (sections 111A / 112A).

STCG and LTCG are taxed outside the slab system, so the result is added to
the slab tax rather than blended into taxable income. Section 87A never
reduces this amount (see rebate.py).
"""
from __future__ import annotations

from salarycalc.engine.payroll import round_to_rupees
from salarycalc.engine.schemas import CapitalGainsTax
from salarycalc.rules.schemas import CapitalGainsRules


def compute_capital_gains_tax(stcg: float, ltcg: float, rules: CapitalGainsRules) -> CapitalGainsTax:
    """
    stcg_tax = stcg × stcg_rate
    ltcg_tax = max(0, ltcg − ltcg_exemption) × ltcg_rate

    Negative gains are treated as 0 (no set-off against other income here).
    """
    stcg = max(0.0, stcg)
    ltcg = max(0.0, ltcg)

    ltcg_exempt = min(ltcg, rules.ltcg_exemption)
    stcg_tax = round_to_rupees(stcg * rules.stcg_rate)
    ltcg_tax = round_to_rupees((ltcg - ltcg_exempt) * rules.ltcg_rate)

    return CapitalGainsTax(
        stcg=round_to_rupees(stcg),
        ltcg=round_to_rupees(ltcg),
        ltcg_exempt=round_to_rupees(ltcg_exempt),
        stcg_tax=stcg_tax,
        ltcg_tax=ltcg_tax,
        total=stcg_tax + ltcg_tax,
    )
