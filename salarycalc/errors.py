"""
errors.py — exception taxonomy for the salary/tax engine.

Structural problems (unknown financial year, unknown regime, broken rules
dataset) raise one of these. Value-level anomalies in a profile (negative or
blank amounts) are never raised — the profile schema clamps them to 0.

main.py maps each class to an HTTP status + error code for the standard
{"error": {code, message, details}} envelope.
"""
from __future__ import annotations


class TaxEngineError(Exception):
    """Base class for every error the engine raises on purpose."""

    code = "TAX_ENGINE_ERROR"
    status_code = 500


class RulesNotFoundError(TaxEngineError):
    """No rules dataset exists (or none is loaded) for the requested financial year."""

    code = "RULES_NOT_FOUND"
    status_code = 404

    def __init__(self, fy: str, reason: str | None = None) -> None:
        self.fy = fy
        message = f"No tax rules found for financial year '{fy}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UnsupportedRegimeError(TaxEngineError):
    """The regime name is not defined for the requested financial year."""

    code = "UNSUPPORTED_REGIME"
    status_code = 422

    def __init__(self, regime: str, fy: str, available: list[str] | None = None) -> None:
        self.regime = regime
        self.fy = fy
        self.available = sorted(available or [])
        message = f"Regime '{regime}' is not supported for FY {fy}"
        if self.available:
            message = f"{message} (available: {', '.join(self.available)})"
        super().__init__(message)


class InvalidRulesError(TaxEngineError):
    """A rules dataset exists but is malformed (bad JSON, gaps in slabs, etc.)."""

    code = "INVALID_RULES"
    status_code = 500

    def __init__(self, fy: str, reason: str) -> None:
        self.fy = fy
        super().__init__(f"Tax rules for FY {fy} are invalid: {reason}")


__all__ = [
    "TaxEngineError",
    "RulesNotFoundError",
    "UnsupportedRegimeError",
    "InvalidRulesError",
]
