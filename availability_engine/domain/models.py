"""Domain models for property availability, bookings and pricing."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


ACTIVE_BOOKING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


class RuleType(str, Enum):
    BLOCKED = "blocked"
    PRICE_OVERRIDE = "price_override"
    MINIMUM_STAY = "minimum_stay"
    MAXIMUM_STAY = "maximum_stay"


@dataclass(frozen=True)
class DateRange:
    """Half-open stay range: `start` is the check-in day, `end` the check-out day."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError("DateRange end must be after start")

    @property
    def nights(self) -> int:
        return (self.end - self.start).days


@dataclass(frozen=True)
class RuleWindow:
    """Closed day window: both `start` and `end` days are covered by the rule."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError("RuleWindow end must not precede start")


@dataclass(frozen=True)
class Booking:
    id: str
    property_id: str
    stay: DateRange
    status: BookingStatus
    guest_name: str
    units: int = 1
    created_at: Optional[datetime] = None

    @property
    def check_in(self) -> date:
        return self.stay.start

    @property
    def check_out(self) -> date:
        return self.stay.end

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_BOOKING_STATUSES

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "property_id": self.property_id,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "status": self.status.value,
            "guest_name": self.guest_name,
            "units": self.units,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Booking":
        created_at = payload.get("created_at")
        return cls(
            id=str(payload["id"]),
            property_id=str(payload["property_id"]),
            stay=DateRange(
                start=date.fromisoformat(payload["check_in"]),
                end=date.fromisoformat(payload["check_out"]),
            ),
            status=BookingStatus(payload["status"]),
            guest_name=str(payload["guest_name"]),
            units=int(payload.get("units", 1)),
            created_at=datetime.fromisoformat(created_at) if created_at else None,
        )


@dataclass(frozen=True)
class AvailabilityRule:
    id: str
    property_id: str
    type: RuleType
    window: RuleWindow
    value: Optional[float] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "property_id": self.property_id,
            "type": self.type.value,
            "start_date": self.window.start.isoformat(),
            "end_date": self.window.end.isoformat(),
            "value": self.value,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "AvailabilityRule":
        value = payload.get("value")
        return cls(
            id=str(payload["id"]),
            property_id=str(payload["property_id"]),
            type=RuleType(payload["type"]),
            window=RuleWindow(
                start=date.fromisoformat(payload["start_date"]),
                end=date.fromisoformat(payload["end_date"]),
            ),
            value=float(value) if value is not None else None,
            reason=payload.get("reason"),
        )


@dataclass(frozen=True)
class PricingFactor:
    type: str
    multiplier: float
    reason: str

    def to_dict(self) -> dict[str, str | float]:
        return {"type": self.type, "multiplier": self.multiplier, "reason": self.reason}


@dataclass(frozen=True)
class PriceBreakdown:
    accommodation: int
    fees: int
    taxes: int
    discounts: int = 0


@dataclass(frozen=True)
class PricingQuote:
    """Priced stay. `base_price` is the undiscounted nightly rate the factors were applied to."""

    base_price: float
    nightly_rate: int
    total_price: int
    breakdown: PriceBreakdown
    currency: str
    factors: tuple[PricingFactor, ...] = ()


@dataclass(frozen=True)
class Inventory:
    total: int
    available: int
    reserved: int

    def can_fulfil(self, requested_units: int) -> bool:
        return self.available >= requested_units


@dataclass(frozen=True)
class AvailabilityRequest:
    property_id: str
    check_in: date
    check_out: date
    guests: int = 1
    units: int = 1


@dataclass(frozen=True)
class AlternativeDate:
    check_in: date
    check_out: date
    nights: int
    price: int
    available: bool


@dataclass(frozen=True)
class AvailabilityResponse:
    property_id: str
    check_in: date
    check_out: date
    nights: int
    available: bool
    pricing: PricingQuote
    inventory: Inventory
    requested_units: int
    restrictions: tuple[str, ...] = ()
    unavailable_reasons: tuple[str, ...] = ()
    conflicts: tuple[Booking, ...] = ()
    alternatives: Optional[tuple[AlternativeDate, ...]] = None


@dataclass(frozen=True)
class PropertySnapshot:
    """Value copy of a property's state delivered to subscribers after each commit."""

    property_id: str
    version: int
    active_bookings: tuple[Booking, ...]
    rules: tuple[AvailabilityRule, ...]
    inventory: Inventory
    base_rate: float
    currency: str
    generated_at: Optional[datetime] = None
    cancelled_booking_ids: tuple[str, ...] = field(default_factory=tuple)
