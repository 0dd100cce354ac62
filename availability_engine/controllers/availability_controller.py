"""HTTP controller layer for availability checks and the booking lifecycle."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator

from availability_engine.controllers.dependencies import (
    availability_http_error,
    get_availability_service,
)
from availability_engine.domain.errors import AvailabilityError
from availability_engine.domain.models import (
    AvailabilityRequest,
    AvailabilityResponse,
    AvailabilityRule,
    Booking,
    BookingStatus,
    PropertySnapshot,
)
from availability_engine.repository.data_repository import StoreError
from availability_engine.services.availability_service import AvailabilityService
from availability_engine.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["availability"])


class AvailabilityCheckRequest(BaseModel):
    """Input DTO validated before entering service layer."""

    property_id: str = Field(min_length=1)
    check_in: date
    check_out: date
    guests: int = Field(default=1, gt=0)
    units: int = Field(default=1, gt=0)

    @field_validator("property_id")
    @classmethod
    def validate_property_id(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("property_id must be non-empty")
        return value.strip()


class PricingFactorRow(BaseModel):
    type: str
    multiplier: float = Field(gt=0.0)
    reason: str


class PriceBreakdownRow(BaseModel):
    accommodation: int = Field(ge=0)
    fees: int = Field(ge=0)
    taxes: int = Field(ge=0)
    discounts: int = Field(ge=0)


class PricingRow(BaseModel):
    base_price: float = Field(gt=0.0)
    nightly_rate: int = Field(ge=0)
    total_price: int = Field(ge=0)
    breakdown: PriceBreakdownRow
    currency: str
    factors: list[PricingFactorRow]


class InventoryRow(BaseModel):
    total: int = Field(ge=0)
    available: int = Field(ge=0)
    reserved: int = Field(ge=0)
    requested: int = Field(gt=0)


class BookingRow(BaseModel):
    id: str
    property_id: str
    check_in: date
    check_out: date
    status: Literal["pending", "confirmed", "cancelled"]
    guest_name: str
    units: int = Field(gt=0)
    created_at: datetime | None = None


class AlternativeRow(BaseModel):
    check_in: date
    check_out: date
    nights: int = Field(gt=0)
    price: int = Field(ge=0)
    available: bool


class AvailabilityCheckResponse(BaseModel):
    property_id: str
    check_in: date
    check_out: date
    nights: int = Field(gt=0)
    available: bool
    pricing: PricingRow
    inventory: InventoryRow
    restrictions: list[str]
    unavailable_reasons: list[str]
    conflicts: list[BookingRow]
    alternatives: list[AlternativeRow] | None = None


class CreateBookingRequest(BaseModel):
    check_in: date
    check_out: date
    guest_name: str = Field(min_length=1, max_length=200)
    status: Literal["pending", "confirmed"] = "pending"
    guests: int = Field(default=1, gt=0)
    units: int = Field(default=1, gt=0)


class RuleRow(BaseModel):
    id: str
    property_id: str
    type: Literal["blocked", "price_override", "minimum_stay", "maximum_stay"]
    start_date: date
    end_date: date
    value: float | None = None
    reason: str | None = None


class SnapshotResponse(BaseModel):
    property_id: str
    version: int = Field(ge=0)
    active_bookings: list[BookingRow]
    cancelled_booking_ids: list[str]
    rules: list[RuleRow]
    inventory: InventoryRow
    base_rate: float = Field(gt=0.0)
    currency: str


class CalendarResponse(BaseModel):
    property_id: str
    year: int
    month: int
    days: dict[str, bool]


def booking_row(booking: Booking) -> BookingRow:
    return BookingRow(
        id=booking.id,
        property_id=booking.property_id,
        check_in=booking.check_in,
        check_out=booking.check_out,
        status=booking.status.value,
        guest_name=booking.guest_name,
        units=booking.units,
        created_at=booking.created_at,
    )


def rule_row(rule: AvailabilityRule) -> RuleRow:
    return RuleRow(**rule.to_dict())


def _availability_payload(result: AvailabilityResponse) -> AvailabilityCheckResponse:
    pricing = result.pricing
    return AvailabilityCheckResponse(
        property_id=result.property_id,
        check_in=result.check_in,
        check_out=result.check_out,
        nights=result.nights,
        available=result.available,
        pricing=PricingRow(
            base_price=pricing.base_price,
            nightly_rate=pricing.nightly_rate,
            total_price=pricing.total_price,
            breakdown=PriceBreakdownRow(
                accommodation=pricing.breakdown.accommodation,
                fees=pricing.breakdown.fees,
                taxes=pricing.breakdown.taxes,
                discounts=pricing.breakdown.discounts,
            ),
            currency=pricing.currency,
            factors=[PricingFactorRow(**factor.to_dict()) for factor in pricing.factors],
        ),
        inventory=InventoryRow(
            total=result.inventory.total,
            available=result.inventory.available,
            reserved=result.inventory.reserved,
            requested=result.requested_units,
        ),
        restrictions=list(result.restrictions),
        unavailable_reasons=list(result.unavailable_reasons),
        conflicts=[booking_row(booking) for booking in result.conflicts],
        alternatives=(
            None
            if result.alternatives is None
            else [
                AlternativeRow(
                    check_in=item.check_in,
                    check_out=item.check_out,
                    nights=item.nights,
                    price=item.price,
                    available=item.available,
                )
                for item in result.alternatives
            ]
        ),
    )


def _snapshot_payload(snapshot: PropertySnapshot) -> SnapshotResponse:
    return SnapshotResponse(
        property_id=snapshot.property_id,
        version=snapshot.version,
        active_bookings=[booking_row(booking) for booking in snapshot.active_bookings],
        cancelled_booking_ids=list(snapshot.cancelled_booking_ids),
        rules=[rule_row(rule) for rule in snapshot.rules],
        inventory=InventoryRow(
            total=snapshot.inventory.total,
            available=snapshot.inventory.available,
            reserved=snapshot.inventory.reserved,
            requested=1,
        ),
        base_rate=snapshot.base_rate,
        currency=snapshot.currency,
    )


def _store_unavailable(exc: StoreError) -> HTTPException:
    logger.error("Availability store failure | error=%s", exc)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Availability store is unavailable",
    )


@router.post(
    "/availability",
    response_model=AvailabilityCheckResponse,
    status_code=status.HTTP_200_OK,
)
def check_availability(
    payload: AvailabilityCheckRequest,
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityCheckResponse:
    """Read-only availability decision with pricing and alternatives."""
    try:
        result = service.check_availability(
            AvailabilityRequest(
                property_id=payload.property_id,
                check_in=payload.check_in,
                check_out=payload.check_out,
                guests=payload.guests,
                units=payload.units,
            )
        )
        return _availability_payload(result)
    except AvailabilityError as exc:
        raise availability_http_error(exc) from exc
    except StoreError as exc:
        raise _store_unavailable(exc) from exc
    except Exception as exc:  # pragma: no cover - unexpected failure
        logger.exception("Unexpected availability check failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to check availability",
        ) from exc


@router.get(
    "/properties",
    response_model=list[str],
    status_code=status.HTTP_200_OK,
)
def list_properties(
    service: AvailabilityService = Depends(get_availability_service),
) -> list[str]:
    try:
        return service.list_properties()
    except StoreError as exc:
        raise _store_unavailable(exc) from exc


@router.get(
    "/properties/{property_id}/calendar",
    response_model=CalendarResponse,
    status_code=status.HTTP_200_OK,
)
def get_calendar(
    property_id: str,
    year: int = Query(ge=1, le=9998),
    month: int = Query(ge=1, le=12),
    service: AvailabilityService = Depends(get_availability_service),
) -> CalendarResponse:
    try:
        days = service.get_calendar(property_id, year, month)
        return CalendarResponse(property_id=property_id, year=year, month=month, days=days)
    except AvailabilityError as exc:
        raise availability_http_error(exc) from exc
    except StoreError as exc:
        raise _store_unavailable(exc) from exc


@router.get(
    "/properties/{property_id}/snapshot",
    response_model=SnapshotResponse,
    status_code=status.HTTP_200_OK,
)
def get_snapshot(
    property_id: str,
    service: AvailabilityService = Depends(get_availability_service),
) -> SnapshotResponse:
    try:
        return _snapshot_payload(service.get_property_snapshot(property_id))
    except StoreError as exc:
        raise _store_unavailable(exc) from exc


@router.get(
    "/properties/{property_id}/bookings",
    response_model=list[BookingRow],
    status_code=status.HTTP_200_OK,
)
def list_bookings(
    property_id: str,
    include_cancelled: bool = True,
    service: AvailabilityService = Depends(get_availability_service),
) -> list[BookingRow]:
    try:
        bookings = service.list_bookings(property_id, include_cancelled=include_cancelled)
        return [booking_row(booking) for booking in bookings]
    except StoreError as exc:
        raise _store_unavailable(exc) from exc


@router.post(
    "/properties/{property_id}/bookings",
    response_model=BookingRow,
    status_code=status.HTTP_201_CREATED,
)
def create_booking(
    property_id: str,
    payload: CreateBookingRequest,
    service: AvailabilityService = Depends(get_availability_service),
) -> BookingRow:
    """Availability is re-checked under the property lock before the booking is stored."""
    try:
        booking = service.create_booking(
            property_id,
            payload.check_in,
            payload.check_out,
            payload.guest_name,
            BookingStatus(payload.status),
            guests=payload.guests,
            units=payload.units,
        )
        return booking_row(booking)
    except AvailabilityError as exc:
        raise availability_http_error(exc) from exc
    except StoreError as exc:
        raise _store_unavailable(exc) from exc
    except Exception as exc:  # pragma: no cover - unexpected failure
        logger.exception("Unexpected booking creation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create booking",
        ) from exc


@router.post(
    "/properties/{property_id}/bookings/{booking_id}/cancel",
    response_model=BookingRow,
    status_code=status.HTTP_200_OK,
)
def cancel_booking(
    property_id: str,
    booking_id: str,
    service: AvailabilityService = Depends(get_availability_service),
) -> BookingRow:
    try:
        return booking_row(service.cancel_booking(property_id, booking_id))
    except AvailabilityError as exc:
        raise availability_http_error(exc) from exc
    except StoreError as exc:
        raise _store_unavailable(exc) from exc
