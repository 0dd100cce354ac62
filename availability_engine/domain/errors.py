"""Error taxonomy raised by the availability engine."""

from __future__ import annotations


class AvailabilityError(Exception):
    """Base exception for availability and booking workflow failures."""


class AvailabilityValidationError(AvailabilityError):
    """Raised when request or rule input is malformed."""


class InvalidRangeError(AvailabilityValidationError):
    """Raised when check-out does not fall after check-in."""


class UnavailableError(AvailabilityError):
    """Raised when a booking is attempted for dates that fail the availability check."""

    def __init__(self, message: str, reasons: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.reasons = reasons


class NotFoundError(AvailabilityError):
    """Raised when a mutation references an unknown id."""


class BookingNotFoundError(NotFoundError):
    """Raised when a booking id does not exist for the property."""


class RuleNotFoundError(NotFoundError):
    """Raised when a rule id does not exist for the property."""


class CapacityExceededError(AvailabilityError):
    """Raised when requested units exceed the property's inventory."""


class BusyError(AvailabilityError):
    """Raised when the per-property lock cannot be acquired before the timeout."""
