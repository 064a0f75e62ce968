"""
store.py — tax-rules loading and lookup.

  RulesFetcher   reads one versioned JSON dataset per financial year
                 (<rules_dir>/fy<YYYY-YY>.json) and validates it into an
                 immutable FinancialYearRules snapshot.
  TaxRulesStore  read-through cache keyed by fy; lookups by (fy, regime).

Design:
  - Loading is the only I/O in the engine. It happens once per fy (startup
    preload or first access) and is guarded by a lock, so concurrent first
    requests for the same fy parse the file once.
  - Calculations only read from the store. Snapshots are frozen pydantic models.
  - Tests inject fixtures with TaxRulesStore.from_rules() — no files needed.
"""
from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, Optional

from pydantic import ValidationError

from salarycalc.config import settings
from salarycalc.errors import InvalidRulesError, RulesNotFoundError, UnsupportedRegimeError
from salarycalc.rules.schemas import FY_PATTERN, FinancialYearRules, RegimeRules

logger = logging.getLogger(__name__)

RULES_FILE_TEMPLATE = "fy{fy}.json"


# ---------------------------------------------------------------------------
# RulesFetcher — the data-source collaborator
# ---------------------------------------------------------------------------

class RulesFetcher:
    """Loads FinancialYearRules from JSON files in a directory."""

    def __init__(self, rules_dir: Optional[Path | str] = None) -> None:
        self.rules_dir = Path(rules_dir) if rules_dir else settings.resolved_rules_dir

    def path_for(self, fy: str) -> Path:
        return self.rules_dir / RULES_FILE_TEMPLATE.format(fy=fy)

    def available_fys(self) -> list[str]:
        """Financial years with a dataset on disk, ascending."""
        fys = []
        for path in self.rules_dir.glob(RULES_FILE_TEMPLATE.format(fy="*")):
            fy = path.stem[len("fy"):]
            if FY_PATTERN.match(fy):
                fys.append(fy)
        return sorted(fys)

    def fetch(self, fy: str) -> FinancialYearRules:
        """
        Read and validate the dataset for `fy`.

        Raises:
            RulesNotFoundError: fy is malformed or has no file.
            InvalidRulesError:  the file is not valid JSON, fails schema
                validation, or declares a different fy than its filename.
        """
        if not FY_PATTERN.match(fy or ""):
            raise RulesNotFoundError(fy, "financial year must look like '2025-26'")

        path = self.path_for(fy)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise RulesNotFoundError(fy) from None

        try:
            rules = FinancialYearRules.model_validate(json.loads(raw))
        except json.JSONDecodeError as exc:
            raise InvalidRulesError(fy, f"{path.name} is not valid JSON ({exc.msg})") from exc
        except ValidationError as exc:
            raise InvalidRulesError(fy, str(exc)) from exc

        if rules.fy != fy:
            raise InvalidRulesError(fy, f"{path.name} declares fy={rules.fy!r}")

        logger.info(
            "Loaded tax rules fy=%s regimes=%s source=%s",
            fy, ",".join(rules.regime_names), path,
        )
        return rules


# ---------------------------------------------------------------------------
# TaxRulesStore — cache + lookups
# ---------------------------------------------------------------------------

class TaxRulesStore:
    """Holds loaded FinancialYearRules snapshots, keyed by financial year."""

    def __init__(self, fetcher: Optional[RulesFetcher] = None) -> None:
        self.fetcher = fetcher or RulesFetcher()
        self._rules: Dict[str, FinancialYearRules] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_rules(cls, *rule_sets: FinancialYearRules, fetcher: Optional[RulesFetcher] = None) -> "TaxRulesStore":
        """Build a store pre-populated with in-memory rule sets."""
        store = cls(fetcher)
        for rules in rule_sets:
            store._rules[rules.fy] = rules
        return store

    def fetch_rules_for_fy(self, fy: str) -> FinancialYearRules:
        """Load rules for `fy` once; later calls return the cached snapshot."""
        cached = self._rules.get(fy)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._rules.get(fy)
            if cached is None:
                cached = self.fetcher.fetch(fy)
                self._rules[fy] = cached
        return cached

    def preload(self, fys: Iterable[str]) -> None:
        for fy in fys:
            self.fetch_rules_for_fy(fy)

    def is_loaded(self, fy: str) -> bool:
        return fy in self._rules

    def loaded_fys(self) -> list[str]:
        return sorted(self._rules)

    def rules_for_fy(self, fy: str) -> FinancialYearRules:
        """Return already-loaded rules; never triggers I/O."""
        try:
            return self._rules[fy]
        except KeyError:
            raise RulesNotFoundError(fy, "rules are not loaded — call fetch_rules_for_fy() first") from None

    def get(self, fy: str, regime: str) -> RegimeRules:
        fy_rules = self.rules_for_fy(fy)
        try:
            return fy_rules.regimes[regime]
        except KeyError:
            raise UnsupportedRegimeError(regime, fy, fy_rules.regime_names) from None

    def available_regimes(self, fy: str) -> list[str]:
        return self.rules_for_fy(fy).regime_names


__all__ = ["RulesFetcher", "TaxRulesStore", "RULES_FILE_TEMPLATE"]
