"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    app_name: str = "Availability & Pricing Engine"
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    database_path: Path = Path("data/availability.db")
    admin_token: str = ""
    admin_session_ttl_seconds: int = 3600

    # Base price source fallback and currency
    default_base_rate: float = 100.0
    currency: str = "ETB"

    # Dynamic pricing multipliers
    peak_season_multiplier: float = 1.30
    high_season_multiplier: float = 1.15
    weekend_multiplier: float = 1.20
    last_minute_days: int = 3
    last_minute_multiplier: float = 0.90
    early_bird_days: int = 30
    early_bird_multiplier: float = 0.85
    weekly_stay_nights: int = 7
    weekly_stay_multiplier: float = 0.90
    service_fee_rate: float = 0.12
    tax_rate: float = 0.08

    # Stay rules
    default_minimum_stay: int = 1
    default_maximum_stay: int = 365

    # Alternative date search
    alternative_count: int = 5
    alternative_step_days: int = 7

    # Per-property exclusion
    lock_timeout_seconds: float = 5.0

    # Inventory policy
    units_per_property: int = 1


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process from environment variables."""
    defaults = Settings()
    return Settings(
        app_name=os.getenv("APP_NAME", defaults.app_name),
        app_version=os.getenv("APP_VERSION", defaults.app_version),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        database_path=Path(os.getenv("DATABASE_PATH", str(defaults.database_path))),
        admin_token=os.getenv("ADMIN_TOKEN", defaults.admin_token),
        admin_session_ttl_seconds=_env_int(
            "ADMIN_SESSION_TTL_SECONDS",
            defaults.admin_session_ttl_seconds,
        ),
        default_base_rate=_env_float("DEFAULT_BASE_RATE", defaults.default_base_rate),
        currency=os.getenv("CURRENCY", defaults.currency),
        service_fee_rate=_env_float("SERVICE_FEE_RATE", defaults.service_fee_rate),
        tax_rate=_env_float("TAX_RATE", defaults.tax_rate),
        alternative_count=_env_int("ALTERNATIVE_COUNT", defaults.alternative_count),
        alternative_step_days=_env_int(
            "ALTERNATIVE_STEP_DAYS",
            defaults.alternative_step_days,
        ),
        lock_timeout_seconds=_env_float(
            "LOCK_TIMEOUT_SECONDS",
            defaults.lock_timeout_seconds,
        ),
        units_per_property=_env_int("UNITS_PER_PROPERTY", defaults.units_per_property),
    )
