"""
config.py — salary calculator application settings.

Usage:
    from salarycalc.config import settings
    print(settings.default_fy)

Import directly as a module-level singleton; do not inject via FastAPI Depends().
"""
from pathlib import Path
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

# Rules datasets shipped with the package: salarycalc/rules/data/fy<YYYY-YY>.json
BUNDLED_RULES_DIR = Path(__file__).parent / "rules" / "data"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SALARYCALC_",
        case_sensitive=False,
        extra="ignore",  # Silently ignore any extra env vars
    )

    # --- Tax rules ---
    # Directory holding fy<YYYY-YY>.json rule sets. None → bundled datasets.
    rules_dir: Optional[Path] = None
    default_fy: str = "2025-26"
    # Comma-separated regime names used when a request does not list any
    default_regimes: str = "old,new,new_post_2025"
    # Comma-separated financial years loaded at application startup
    preload_fys: str = "2025-26"
    # "raise" → one unknown regime fails the whole request
    # "skip"  → unknown regimes are reported under `errors`, the rest are computed
    unknown_regime_policy: Literal["raise", "skip"] = "raise"

    # --- CORS ---
    cors_origins: str = "http://localhost:3000"

    # --- Application ---
    debug: bool = False
    app_version: str = "0.1.0"

    @property
    def resolved_rules_dir(self) -> Path:
        return self.rules_dir or BUNDLED_RULES_DIR

    @property
    def default_regimes_list(self) -> List[str]:
        return _split_csv(self.default_regimes)

    @property
    def preload_fys_list(self) -> List[str]:
        return _split_csv(self.preload_fys)

    @property
    def cors_origins_list(self) -> List[str]:
        """Split comma-separated CORS origins into a list."""
        return _split_csv(self.cors_origins)


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


# Module-level singleton, imported throughout the codebase
settings = Settings()
