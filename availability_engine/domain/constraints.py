"""Domain-level validation rules for pricing and engine configuration."""

from __future__ import annotations

from dataclasses import dataclass

from availability_engine.utils.config import Settings


MAX_ALTERNATIVES = 5


@dataclass(frozen=True)
class PricingConfig:
    default_base_rate: float
    currency: str
    peak_season_multiplier: float
    high_season_multiplier: float
    weekend_multiplier: float
    last_minute_days: int
    last_minute_multiplier: float
    early_bird_days: int
    early_bird_multiplier: float
    weekly_stay_nights: int
    weekly_stay_multiplier: float
    service_fee_rate: float
    tax_rate: float


@dataclass(frozen=True)
class EngineConfig:
    alternative_count: int
    alternative_step_days: int
    lock_timeout_seconds: float
    units_per_property: int
    default_minimum_stay: int
    default_maximum_stay: int


def pricing_config_from_settings(settings: Settings) -> PricingConfig:
    config = PricingConfig(
        default_base_rate=settings.default_base_rate,
        currency=settings.currency,
        peak_season_multiplier=settings.peak_season_multiplier,
        high_season_multiplier=settings.high_season_multiplier,
        weekend_multiplier=settings.weekend_multiplier,
        last_minute_days=settings.last_minute_days,
        last_minute_multiplier=settings.last_minute_multiplier,
        early_bird_days=settings.early_bird_days,
        early_bird_multiplier=settings.early_bird_multiplier,
        weekly_stay_nights=settings.weekly_stay_nights,
        weekly_stay_multiplier=settings.weekly_stay_multiplier,
        service_fee_rate=settings.service_fee_rate,
        tax_rate=settings.tax_rate,
    )
    validate_pricing_config(config)
    return config


def engine_config_from_settings(settings: Settings) -> EngineConfig:
    config = EngineConfig(
        alternative_count=settings.alternative_count,
        alternative_step_days=settings.alternative_step_days,
        lock_timeout_seconds=settings.lock_timeout_seconds,
        units_per_property=settings.units_per_property,
        default_minimum_stay=settings.default_minimum_stay,
        default_maximum_stay=settings.default_maximum_stay,
    )
    validate_engine_config(config)
    return config


def validate_pricing_config(config: PricingConfig) -> None:
    if config.default_base_rate <= 0:
        raise ValueError("default_base_rate must be > 0")
    if not config.currency.strip():
        raise ValueError("currency must be non-empty")
    for name in (
        "peak_season_multiplier",
        "high_season_multiplier",
        "weekend_multiplier",
        "last_minute_multiplier",
        "early_bird_multiplier",
        "weekly_stay_multiplier",
    ):
        if getattr(config, name) <= 0:
            raise ValueError(f"{name} must be > 0")
    if config.last_minute_days < 0:
        raise ValueError("last_minute_days must be >= 0")
    # Last-minute and early-bird windows must stay disjoint.
    if config.early_bird_days <= config.last_minute_days:
        raise ValueError("early_bird_days must be greater than last_minute_days")
    if config.weekly_stay_nights <= 0:
        raise ValueError("weekly_stay_nights must be > 0")
    if not 0.0 <= config.service_fee_rate < 1.0:
        raise ValueError("service_fee_rate must be in [0, 1)")
    if not 0.0 <= config.tax_rate < 1.0:
        raise ValueError("tax_rate must be in [0, 1)")


def validate_engine_config(config: EngineConfig) -> None:
    if not 0 <= config.alternative_count <= MAX_ALTERNATIVES:
        raise ValueError(f"alternative_count must be between 0 and {MAX_ALTERNATIVES}")
    if config.alternative_step_days <= 0:
        raise ValueError("alternative_step_days must be > 0")
    if config.lock_timeout_seconds <= 0:
        raise ValueError("lock_timeout_seconds must be > 0")
    if config.units_per_property <= 0:
        raise ValueError("units_per_property must be > 0")
    if config.default_minimum_stay <= 0:
        raise ValueError("default_minimum_stay must be > 0")
    if config.default_maximum_stay < config.default_minimum_stay:
        raise ValueError("default_maximum_stay must be >= default_minimum_stay")
