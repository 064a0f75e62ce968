"""
Test configuration for the salary calculator.

Fixtures:
  store   TaxRulesStore reading the bundled datasets (salarycalc/rules/data)
  engine  SalaryBreakdownEngine over that store, fail-fast regime policy
"""
import pytest

from salarycalc.config import BUNDLED_RULES_DIR
from salarycalc.engine.tax_engine import SalaryBreakdownEngine
from salarycalc.rules.store import RulesFetcher, TaxRulesStore


@pytest.fixture
def store() -> TaxRulesStore:
    return TaxRulesStore(RulesFetcher(BUNDLED_RULES_DIR))


@pytest.fixture
def engine(store: TaxRulesStore) -> SalaryBreakdownEngine:
    return SalaryBreakdownEngine(store, on_unknown_regime="raise")
