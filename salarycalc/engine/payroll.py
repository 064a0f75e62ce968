"""
Payroll helpers — the parts of a salary breakdown that are not income tax.

  round_to_rupees            half-up rounding used for every reported amount
  calculate_gross_salary     sum of declared components (regime-invariant)
  calculate_contributions    employee PF / NPS / other payroll deductions
  calculate_professional_tax state PT from monthly gross
  calculate_monthly_tds      yearly tax spread over April..March
  calculate_take_home        what actually reaches the bank account
"""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Sequence

from salarycalc.engine.schemas import (
    EmployeeContributions,
    GrossSalary,
    MonthlyTDS,
    TakeHome,
    TDSInstalment,
)
from salarycalc.profile.schemas import INCOME_COMPONENTS, TaxpayerProfile
from salarycalc.rules.schemas import ProfessionalTaxSlab

logger = logging.getLogger(__name__)

# Indian financial year salary months, in payout order
FY_MONTHS = (
    "April", "May", "June", "July", "August", "September",
    "October", "November", "December", "January", "February", "March",
)


def round_to_rupees(amount: float) -> float:
    """Round to whole rupees, halves away from zero (1234.5 → 1235)."""
    return float(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_gross_salary(profile: TaxpayerProfile) -> GrossSalary:
    components = {name: round_to_rupees(getattr(profile, name)) for name in INCOME_COMPONENTS}
    return GrossSalary(total=sum(components.values()), components=components)


def calculate_contributions(profile: TaxpayerProfile) -> EmployeeContributions:
    employee_pf = round_to_rupees(profile.employee_pf)
    nps_employee = round_to_rupees(profile.nps_employee)
    other = round_to_rupees(profile.other_deductions)
    return EmployeeContributions(
        employee_pf=employee_pf,
        nps_employee=nps_employee,
        other_deductions=other,
        total=employee_pf + nps_employee + other,
    )


def calculate_professional_tax(
    gross_salary: float,
    state: str,
    schedules: Mapping[str, Sequence[ProfessionalTaxSlab]],
) -> float:
    """
    Yearly professional tax = 12 × monthly PT for the state's monthly-gross slab.

    State lookup is case-insensitive. States without a schedule levy no PT.
    """
    schedule = _schedule_for(state, schedules)
    if not schedule:
        return 0.0

    monthly_gross = gross_salary / 12
    monthly = 0.0
    for slab in schedule:
        if monthly_gross >= slab.min_monthly_gross:
            monthly = slab.monthly
        else:
            break
    return round_to_rupees(monthly * 12)


def _schedule_for(
    state: str, schedules: Mapping[str, Sequence[ProfessionalTaxSlab]]
) -> Sequence[ProfessionalTaxSlab]:
    wanted = (state or "").strip().lower()
    if not wanted:
        return ()
    for name, schedule in schedules.items():
        if name.lower() == wanted:
            return schedule
    logger.debug("No professional tax schedule for state=%r", state)
    return ()


def calculate_monthly_tds(yearly_tax: float) -> MonthlyTDS:
    """
    Spread yearly tax over 12 months.

    monthly = floor(total / 12); the leftover rupees are added one each to the
    first months, so 125,000 → 8 × 10,417 + 4 × 10,416.
    """
    total = int(round_to_rupees(max(0.0, yearly_tax)))
    monthly, remainder = divmod(total, 12)
    schedule = [
        TDSInstalment(month=month, amount=float(monthly + (1 if index < remainder else 0)))
        for index, month in enumerate(FY_MONTHS)
    ]
    return MonthlyTDS(
        monthly=float(monthly),
        remainder=float(remainder),
        total=float(total),
        schedule=schedule,
    )


def calculate_take_home(
    gross_salary: float,
    income_tax: float,
    professional_tax: float,
    contributions: EmployeeContributions,
) -> TakeHome:
    yearly = round_to_rupees(gross_salary - income_tax - professional_tax - contributions.total)
    return TakeHome(yearly=yearly, monthly=round_to_rupees(yearly / 12))
