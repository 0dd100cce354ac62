"""Bounded search for substitute stay windows."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Callable

from availability_engine.domain.errors import AvailabilityError
from availability_engine.domain.models import AlternativeDate, AvailabilityResponse, DateRange
from availability_engine.utils.logger import get_logger


logger = get_logger(__name__)

CandidateEvaluator = Callable[[date, date], AvailabilityResponse]


class AlternativeDateGenerator:
    """Shifts a rejected window forward in fixed steps, keeping its length."""

    def __init__(self, count: int = 5, step_days: int = 7) -> None:
        self._count = count
        self._step = timedelta(days=step_days)

    def generate(
        self,
        check_in: date,
        check_out: date,
        evaluate: CandidateEvaluator,
    ) -> list[AlternativeDate]:
        """Evaluate each shifted window; candidates that fail are left out."""
        nights = (check_out - check_in).days
        alternatives: list[AlternativeDate] = []
        for offset in range(1, self._count + 1):
            try:
                candidate = DateRange(
                    start=check_in + self._step * offset,
                    end=check_out + self._step * offset,
                )
                response = evaluate(candidate.start, candidate.end)
            except (AvailabilityError, ArithmeticError, ValueError) as exc:
                logger.warning(
                    "Alternative candidate skipped | check_in=%s | offset=%s | error=%s",
                    check_in,
                    offset,
                    exc,
                )
                continue
            alternatives.append(
                AlternativeDate(
                    check_in=candidate.start,
                    check_out=candidate.end,
                    nights=nights,
                    price=response.pricing.total_price,
                    available=response.available,
                )
            )
        return alternatives
