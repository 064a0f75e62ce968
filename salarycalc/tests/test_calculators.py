"""
Unit tests for the per-regime calculators — deductions, slabs, capital gains,
87A rebate and surcharge. Rules come from the bundled FY 2025-26 dataset.
"""
from __future__ import annotations

import pytest

from salarycalc.engine.capital_gains import compute_capital_gains_tax
from salarycalc.engine.deductions import DeductionCalculator
from salarycalc.engine.rebate import RebateAndCessApplier, apply_87a_rebate
from salarycalc.engine.slabs import compute_slab_tax, marginal_rate
from salarycalc.profile.schemas import TaxpayerProfile
from salarycalc.rules.schemas import AGE_BAND_60_79, RegimeRules
from salarycalc.rules.store import TaxRulesStore


@pytest.fixture
def old_rules(store: TaxRulesStore) -> RegimeRules:
    store.fetch_rules_for_fy("2025-26")
    return store.get("2025-26", "old")


@pytest.fixture
def new_rules(store: TaxRulesStore) -> RegimeRules:
    store.fetch_rules_for_fy("2025-26")
    return store.get("2025-26", "new_post_2025")


# ===========================================================================
# HRA exemption (Rule 2A)
# ===========================================================================

def test_hra_exemption_rent_excess_is_binding(old_rules: RegimeRules) -> None:
    calc = DeductionCalculator(old_rules)
    # min(300000, 180000 - 120000 = 60000, 600000)
    assert calc.compute_hra_exemption(1_200_000, 300_000, 180_000, True) == pytest.approx(60_000)


def test_hra_exemption_non_metro_uses_40_percent(old_rules: RegimeRules) -> None:
    calc = DeductionCalculator(old_rules)
    # min(500000, 600000 - 50000 = 550000, 40% × 500000 = 200000)
    assert calc.compute_hra_exemption(500_000, 500_000, 600_000, False) == pytest.approx(200_000)


def test_hra_exemption_zero_rent_returns_zero(old_rules: RegimeRules) -> None:
    assert DeductionCalculator(old_rules).compute_hra_exemption(1_200_000, 300_000, 0, True) == 0.0


def test_hra_exemption_zero_hra_returns_zero(old_rules: RegimeRules) -> None:
    assert DeductionCalculator(old_rules).compute_hra_exemption(1_200_000, 0, 180_000, True) == 0.0


def test_hra_exemption_rent_below_10pct_basic_is_zero(old_rules: RegimeRules) -> None:
    # rent 60000 < 10% of basic 120000 → rent excess clipped to 0
    assert DeductionCalculator(old_rules).compute_hra_exemption(1_200_000, 300_000, 60_000, True) == 0.0


def test_hra_exemption_not_available_in_new_regime(new_rules: RegimeRules) -> None:
    assert DeductionCalculator(new_rules).compute_hra_exemption(1_200_000, 300_000, 400_000, True) == 0.0


# ===========================================================================
# Section caps / standard deduction
# ===========================================================================

@pytest.mark.parametrize(
    "section, claimed, expected",
    [
        ("80C", 200_000, 150_000),
        ("80C", 90_000, 90_000),
        ("80D", 30_000, 25_000),
        ("80CCD1B", 75_000, 50_000),
        ("80C", -5_000, 0),
        ("80G", 50_000, 0),
    ],
)
def test_section_deduction_capped(old_rules: RegimeRules, section: str, claimed: float, expected: float) -> None:
    assert DeductionCalculator(old_rules).compute_section_deduction(section, claimed) == expected


def test_80d_senior_cap(old_rules: RegimeRules) -> None:
    calc = DeductionCalculator(old_rules)
    assert calc.compute_section_deduction("80D", 60_000, AGE_BAND_60_79) == 50_000


def test_new_regime_has_no_section_deductions(new_rules: RegimeRules) -> None:
    assert DeductionCalculator(new_rules).compute_section_deduction("80C", 150_000) == 0


def test_standard_deduction_per_regime(old_rules: RegimeRules, new_rules: RegimeRules) -> None:
    assert DeductionCalculator(old_rules).compute_standard_deduction() == 50_000
    assert DeductionCalculator(new_rules).compute_standard_deduction() == 75_000
    # Never more than the salary itself
    assert DeductionCalculator(new_rules).compute_standard_deduction(40_000) == 40_000


def test_old_regime_summary_includes_professional_tax(old_rules: RegimeRules) -> None:
    profile = TaxpayerProfile(basic=600_000, investments={"80C": 10_000})
    summary = DeductionCalculator(old_rules).compute(profile, 600_000, professional_tax=2_400)
    assert summary.sections["professional_tax"] == 2_400
    assert summary.total == 50_000 + 10_000 + 2_400


def test_new_regime_summary_is_standard_deduction_only(new_rules: RegimeRules) -> None:
    profile = TaxpayerProfile(basic=600_000, investments={"80C": 150_000}, rent_paid=200_000, hra=100_000)
    summary = DeductionCalculator(new_rules).compute(profile, 700_000, professional_tax=2_400)
    assert summary.sections == {}
    assert summary.total == 75_000


# ===========================================================================
# Slab tax
# ===========================================================================

def test_slab_tax_old_regime(old_rules: RegimeRules) -> None:
    # 12500 + 100000 + 30% × 270000
    assert compute_slab_tax(1_270_000, old_rules.slabs) == pytest.approx(193_500)


def test_slab_tax_negative_income_is_zero(new_rules: RegimeRules) -> None:
    assert compute_slab_tax(-100_000, new_rules.slabs) == 0


def test_slab_tax_is_monotonic(old_rules: RegimeRules, new_rules: RegimeRules) -> None:
    for slabs in (old_rules.slabs, new_rules.slabs):
        previous = -1.0
        for income in range(0, 3_000_001, 25_000):
            tax = compute_slab_tax(income, slabs)
            assert tax >= previous
            previous = tax


def test_marginal_rate(new_rules: RegimeRules) -> None:
    assert marginal_rate(400_000, new_rules.slabs) == 0.0
    assert marginal_rate(400_001, new_rules.slabs) == pytest.approx(0.05)
    assert marginal_rate(3_000_000, new_rules.slabs) == pytest.approx(0.30)


# ===========================================================================
# Capital gains
# ===========================================================================

def test_capital_gains_zero_gains_zero_tax(old_rules: RegimeRules) -> None:
    assert compute_capital_gains_tax(0, 0, old_rules.capital_gains).total == 0


def test_capital_gains_ltcg_below_exemption_untaxed(old_rules: RegimeRules) -> None:
    result = compute_capital_gains_tax(0, 100_000, old_rules.capital_gains)
    assert result.ltcg_exempt == 100_000
    assert result.ltcg_tax == 0


def test_capital_gains_rates(old_rules: RegimeRules) -> None:
    result = compute_capital_gains_tax(300_000, 200_000, old_rules.capital_gains)
    assert result.stcg_tax == 60_000
    assert result.ltcg_tax == 9_375
    assert result.total == 69_375


# ===========================================================================
# 87A rebate / surcharge / cess
# ===========================================================================

def test_87a_rebate_capped(old_rules: RegimeRules) -> None:
    detail, tax = apply_87a_rebate(12_500, 500_000, old_rules.rebate)
    assert detail.eligible is True
    assert detail.amount == 12_500
    assert tax == 0


def test_87a_no_rebate_above_threshold_without_relief(old_rules: RegimeRules) -> None:
    detail, tax = apply_87a_rebate(14_500, 510_000, old_rules.rebate)
    assert detail.eligible is False
    assert detail.marginal_relief == 0
    assert tax == 14_500


def test_cess_after_rebate(old_rules: RegimeRules) -> None:
    # slab 12500 fully rebated → no cess
    tax = RebateAndCessApplier(old_rules).apply(12_500, 500_000)
    assert tax.rebate.amount == 12_500
    assert tax.cess == 0
    assert tax.total == 0


def test_no_surcharge_below_50L(new_rules: RegimeRules) -> None:
    tax = RebateAndCessApplier(new_rules).apply(compute_slab_tax(4_900_000, new_rules.slabs), 4_900_000)
    assert tax.surcharge.amount == 0
    assert tax.surcharge.rate == 0


def test_capital_gains_surcharge_rate_capped(new_rules: RegimeRules) -> None:
    """Above ₹2 Cr the slab-tax surcharge is 25%, but CG tax only attracts 15%."""
    cg = compute_capital_gains_tax(1_000_000, 0, new_rules.capital_gains)
    taxable = 25_000_000
    slab_tax = compute_slab_tax(taxable, new_rules.slabs)
    tax = RebateAndCessApplier(new_rules).apply(slab_tax, taxable, capital_gains=cg)
    assert tax.surcharge.rate == pytest.approx(0.25)
    expected = round(slab_tax * 0.25 + cg.total * 0.15)
    assert tax.surcharge.amount == pytest.approx(expected, abs=1)
