"""Deterministic rule-based dynamic pricing."""

from __future__ import annotations

import math
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Optional

from availability_engine.domain.constraints import PricingConfig
from availability_engine.domain.models import PriceBreakdown, PricingFactor, PricingQuote
from availability_engine.utils.clock import Clock, utc_now


BaseRateSource = Callable[[str], Optional[float]]

PEAK_SEASON_MONTHS = frozenset({12, 1, 2})
HIGH_SEASON_MONTHS = frozenset({6, 7, 8, 9})
WEEKEND_CHECK_IN_DAYS = frozenset({4, 5})  # Friday, Saturday


def round_currency(value: float) -> int:
    """Round half-up to a whole currency unit."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def days_until(check_in: date, now: datetime) -> int:
    """Whole days from `now` to the start of the check-in day, rounded up."""
    check_in_start = datetime.combine(check_in, time.min, tzinfo=now.tzinfo)
    return math.ceil((check_in_start - now).total_seconds() / 86400)


class DynamicPricingCalculator:
    """Composes a base nightly rate with seasonal, weekday, lead-time and stay factors."""

    def __init__(
        self,
        config: PricingConfig,
        clock: Clock = utc_now,
        base_rate_source: Optional[BaseRateSource] = None,
    ) -> None:
        self._config = config
        self._clock = clock
        self._base_rate_source = base_rate_source

    @property
    def currency(self) -> str:
        return self._config.currency

    def resolve_base_rate(self, property_id: str) -> float:
        if self._base_rate_source is not None:
            rate = self._base_rate_source(property_id)
            if rate is not None:
                return float(rate)
        return self._config.default_base_rate

    def pricing_factors(self, check_in: date, nights: int, now: datetime) -> list[PricingFactor]:
        config = self._config
        factors: list[PricingFactor] = []

        if check_in.month in PEAK_SEASON_MONTHS:
            factors.append(
                PricingFactor("seasonal", config.peak_season_multiplier, "Peak season")
            )
        elif check_in.month in HIGH_SEASON_MONTHS:
            factors.append(
                PricingFactor("seasonal", config.high_season_multiplier, "High season")
            )

        if check_in.weekday() in WEEKEND_CHECK_IN_DAYS:
            factors.append(
                PricingFactor("day_of_week", config.weekend_multiplier, "Weekend rate")
            )

        days_ahead = days_until(check_in, now)
        if days_ahead <= config.last_minute_days:
            factors.append(
                PricingFactor("last_minute", config.last_minute_multiplier, "Last-minute discount")
            )
        elif days_ahead >= config.early_bird_days:
            factors.append(
                PricingFactor("early_bird", config.early_bird_multiplier, "Early-bird discount")
            )

        if nights >= config.weekly_stay_nights:
            factors.append(
                PricingFactor("length_of_stay", config.weekly_stay_multiplier, "Weekly discount")
            )
        return factors

    def price(
        self,
        property_id: str,
        check_in: date,
        check_out: date,
        guests: int,
        nights: int,
        base_rate: Optional[float] = None,
    ) -> PricingQuote:
        """Price a stay; `base_rate` replaces the property's rate when given."""
        resolved_base = base_rate if base_rate is not None else self.resolve_base_rate(property_id)
        factors = self.pricing_factors(check_in, nights, self._clock())

        multiplier = 1.0
        for factor in factors:
            multiplier *= factor.multiplier

        nightly_rate = round_currency(resolved_base * multiplier)
        accommodation = nightly_rate * nights
        fees = round_currency(accommodation * self._config.service_fee_rate)
        taxes = round_currency(accommodation * self._config.tax_rate)
        discounts = 0

        return PricingQuote(
            base_price=resolved_base,
            nightly_rate=nightly_rate,
            total_price=accommodation + fees + taxes - discounts,
            breakdown=PriceBreakdown(
                accommodation=accommodation,
                fees=fees,
                taxes=taxes,
                discounts=discounts,
            ),
            currency=self._config.currency,
            factors=tuple(factors),
        )
