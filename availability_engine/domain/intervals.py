"""Interval predicates for bookings (half-open) and rule windows (closed).

Booking stays occupy nights, so a check-out on day N and a check-in on day N
never collide. Rule windows describe whole days and include both ends. The
two conventions live in separate functions and must not be mixed.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable

from availability_engine.domain.models import Booking, DateRange, RuleWindow


def overlaps(a: DateRange, b: DateRange) -> bool:
    return a.start < b.end and b.start < a.end


def find_conflicts(bookings: Iterable[Booking], candidate: DateRange) -> list[Booking]:
    """Return pending/confirmed bookings whose stay overlaps `candidate`."""
    return [
        booking
        for booking in bookings
        if booking.is_active and overlaps(booking.stay, candidate)
    ]


def occupied_days(stay: DateRange) -> RuleWindow:
    """Closed window of the nights a stay occupies (check-out day excluded)."""
    return RuleWindow(start=stay.start, end=stay.end - timedelta(days=1))


def window_intersects(window: RuleWindow, candidate: RuleWindow) -> bool:
    return window.start <= candidate.end and candidate.start <= window.end


def window_contains(window: RuleWindow, day: date) -> bool:
    return window.start <= day <= window.end


def nights_between(check_in: date, check_out: date) -> int:
    return (check_out - check_in).days


def is_date_available(bookings: Iterable[Booking], day: date) -> bool:
    """True when no active booking occupies the night starting on `day`."""
    night = DateRange(start=day, end=day + timedelta(days=1))
    return not find_conflicts(bookings, night)


def bookings_within(bookings: Iterable[Booking], start: date, end: date) -> list[Booking]:
    """Bookings whose whole stay falls inside [start, end]."""
    return [
        booking
        for booking in bookings
        if booking.check_in >= start and booking.check_out <= end
    ]
