"""Availability orchestration and booking lifecycle.

Reads (`check_availability`, `get_calendar`) take no locks and never write.
Every mutation of a property runs inside that property's lock: the
availability re-check, the in-memory change and the store write happen
atomically with respect to other mutations on the same property. A committed
change is queued for subscribers before the lock is released and delivered
after it, in commit order.

Snapshot versions count commits made through this service instance. They
order deliveries to live subscribers and are not persisted, so a restarted
process reports version 0 until its first commit on a property.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, replace
from datetime import date, timedelta
from threading import Lock
from typing import Optional
from uuid import uuid4

from availability_engine.domain.constraints import (
    EngineConfig,
    engine_config_from_settings,
    pricing_config_from_settings,
)
from availability_engine.domain.errors import (
    AvailabilityValidationError,
    BookingNotFoundError,
    CapacityExceededError,
    InvalidRangeError,
    RuleNotFoundError,
    UnavailableError,
)
from availability_engine.domain.intervals import bookings_within, find_conflicts
from availability_engine.domain.models import (
    AvailabilityRequest,
    AvailabilityResponse,
    AvailabilityRule,
    Booking,
    BookingStatus,
    DateRange,
    PropertySnapshot,
    RuleType,
)
from availability_engine.repository.data_repository import AvailabilityStore, DataRepository
from availability_engine.services.alternative_service import AlternativeDateGenerator
from availability_engine.services.inventory_service import FixedInventoryTracker, InventoryTracker
from availability_engine.services.notification_service import (
    NotificationHub,
    SnapshotCallback,
    Unsubscribe,
)
from availability_engine.services.pricing_service import DynamicPricingCalculator
from availability_engine.services.property_locks import PropertyLockRegistry
from availability_engine.services.rule_service import evaluate_rules, validate_rule_input
from availability_engine.utils.clock import Clock, utc_now
from availability_engine.utils.config import Settings, get_settings
from availability_engine.utils.logger import get_logger


logger = get_logger(__name__)

REASON_BOOKING_CONFLICT = "booking_conflict"
REASON_INSUFFICIENT_CAPACITY = "insufficient_capacity"


@dataclass(frozen=True)
class PropertyState:
    """Bookings, rules and base rate read together for one evaluation."""

    bookings: tuple[Booking, ...]
    rules: tuple[AvailabilityRule, ...]
    base_rate: float


class AvailabilityService:
    """Sequences rules, conflicts, capacity, pricing and alternatives."""

    def __init__(
        self,
        repository: Optional[AvailabilityStore] = None,
        settings: Optional[Settings] = None,
        clock: Clock = utc_now,
        inventory: Optional[InventoryTracker] = None,
        notification_hub: Optional[NotificationHub] = None,
        pricing: Optional[DynamicPricingCalculator] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._config: EngineConfig = engine_config_from_settings(self._settings)
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock
        self._inventory = inventory or FixedInventoryTracker(self._config.units_per_property)
        self._hub = notification_hub or NotificationHub()
        self._pricing = pricing or DynamicPricingCalculator(
            config=pricing_config_from_settings(self._settings),
            clock=clock,
            base_rate_source=self._repository.get_base_rate,
        )
        self._alternatives = AlternativeDateGenerator(
            count=self._config.alternative_count,
            step_days=self._config.alternative_step_days,
        )
        self._locks = PropertyLockRegistry(self._config.lock_timeout_seconds)
        self._versions: dict[str, int] = {}
        self._versions_lock = Lock()

    @property
    def notification_hub(self) -> NotificationHub:
        return self._hub

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _validate_request(self, request: AvailabilityRequest) -> None:
        if request.check_out <= request.check_in:
            raise InvalidRangeError("check_out must be after check_in")
        if request.guests <= 0:
            raise AvailabilityValidationError("guests must be a positive integer")
        if request.units <= 0:
            raise AvailabilityValidationError("units must be a positive integer")

    def _load_state(self, property_id: str) -> PropertyState:
        return PropertyState(
            bookings=tuple(self._repository.load_bookings(property_id)),
            rules=tuple(self._repository.load_rules(property_id)),
            base_rate=self._pricing.resolve_base_rate(property_id),
        )

    def _evaluate(
        self,
        request: AvailabilityRequest,
        state: PropertyState,
        *,
        include_alternatives: bool,
    ) -> AvailabilityResponse:
        stay = DateRange(start=request.check_in, end=request.check_out)
        nights = stay.nights

        rule_evaluation = evaluate_rules(
            state.rules,
            stay,
            default_minimum_stay=self._config.default_minimum_stay,
            default_maximum_stay=self._config.default_maximum_stay,
        )
        conflicts = find_conflicts(state.bookings, stay)
        inventory = self._inventory.check_capacity(request.property_id, request.units)

        base_rate = (
            rule_evaluation.price_override
            if rule_evaluation.price_override is not None
            else state.base_rate
        )
        pricing = self._pricing.price(
            request.property_id,
            request.check_in,
            request.check_out,
            request.guests,
            nights,
            base_rate=base_rate,
        )

        reasons = list(rule_evaluation.reasons)
        restrictions = list(rule_evaluation.restrictions)
        if conflicts:
            reasons.insert(0, REASON_BOOKING_CONFLICT)
        if not inventory.can_fulfil(request.units):
            reasons.append(REASON_INSUFFICIENT_CAPACITY)
            restrictions.append(
                f"Requested {request.units} units but only {inventory.available} available"
            )
        available = not reasons

        alternatives = None
        if not available and include_alternatives:
            alternatives = tuple(
                self._alternatives.generate(
                    request.check_in,
                    request.check_out,
                    lambda check_in, check_out: self._evaluate(
                        replace(request, check_in=check_in, check_out=check_out),
                        state,
                        include_alternatives=False,
                    ),
                )
            )

        return AvailabilityResponse(
            property_id=request.property_id,
            check_in=request.check_in,
            check_out=request.check_out,
            nights=nights,
            available=available,
            pricing=pricing,
            inventory=inventory,
            requested_units=request.units,
            restrictions=tuple(restrictions),
            unavailable_reasons=tuple(reasons),
            conflicts=tuple(conflicts),
            alternatives=alternatives,
        )

    def check_availability(self, request: AvailabilityRequest) -> AvailabilityResponse:
        """Evaluate a stay; an unavailable stay is a normal response, not an error."""
        self._validate_request(request)
        state = self._load_state(request.property_id)
        response = self._evaluate(request, state, include_alternatives=True)
        logger.debug(
            "Availability checked | property_id=%s | check_in=%s | check_out=%s | available=%s",
            request.property_id,
            request.check_in,
            request.check_out,
            response.available,
        )
        return response

    def get_calendar(self, property_id: str, year: int, month: int) -> dict[str, bool]:
        """Night-by-night availability for one month, keyed by ISO date."""
        if not 1 <= month <= 12:
            raise AvailabilityValidationError("month must be between 1 and 12")
        state = self._load_state(property_id)
        days_in_month = calendar.monthrange(year, month)[1]

        result: dict[str, bool] = {}
        for day_number in range(1, days_in_month + 1):
            day = date(year, month, day_number)
            response = self._evaluate(
                AvailabilityRequest(
                    property_id=property_id,
                    check_in=day,
                    check_out=day + timedelta(days=1),
                ),
                state,
                include_alternatives=False,
            )
            result[day.isoformat()] = response.available
        return result

    def list_bookings(self, property_id: str, include_cancelled: bool = True) -> list[Booking]:
        bookings = self._repository.load_bookings(property_id)
        if include_cancelled:
            return bookings
        return [booking for booking in bookings if booking.is_active]

    def list_rules(self, property_id: str) -> list[AvailabilityRule]:
        return self._repository.load_rules(property_id)

    def bookings_in_range(self, property_id: str, start: date, end: date) -> list[Booking]:
        return bookings_within(self._repository.load_bookings(property_id), start, end)

    def list_properties(self) -> list[str]:
        return self._repository.list_property_ids()

    def get_property_snapshot(self, property_id: str) -> PropertySnapshot:
        state = self._load_state(property_id)
        with self._versions_lock:
            version = self._versions.get(property_id, 0)
        return self._build_snapshot(property_id, version, state)

    def subscribe(self, property_id: str, callback: SnapshotCallback) -> Unsubscribe:
        return self._hub.subscribe(property_id, callback)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _build_snapshot(
        self,
        property_id: str,
        version: int,
        state: PropertyState,
    ) -> PropertySnapshot:
        """Assemble a snapshot from already-loaded state; performs no store reads."""
        return PropertySnapshot(
            property_id=property_id,
            version=version,
            active_bookings=tuple(booking for booking in state.bookings if booking.is_active),
            rules=state.rules,
            inventory=self._inventory.check_capacity(property_id, 1),
            base_rate=state.base_rate,
            currency=self._pricing.currency,
            generated_at=self._clock(),
            cancelled_booking_ids=tuple(
                booking.id for booking in state.bookings if not booking.is_active
            ),
        )

    def _next_version(self, property_id: str) -> int:
        with self._versions_lock:
            version = self._versions.get(property_id, 0) + 1
            self._versions[property_id] = version
            return version

    def _commit(self, property_id: str, state: PropertyState) -> None:
        """Number and queue the committed state; called after the store write succeeded."""
        snapshot = self._build_snapshot(property_id, self._next_version(property_id), state)
        self._hub.enqueue(snapshot)

    def create_booking(
        self,
        property_id: str,
        check_in: date,
        check_out: date,
        guest_name: str,
        status: BookingStatus = BookingStatus.PENDING,
        *,
        guests: int = 1,
        units: int = 1,
        timeout: Optional[float] = None,
    ) -> Booking:
        """Re-check availability under the property lock and append a booking."""
        if not guest_name or not guest_name.strip():
            raise AvailabilityValidationError("guest_name must be non-empty")
        if status is BookingStatus.CANCELLED:
            raise AvailabilityValidationError("a new booking cannot start as cancelled")
        request = AvailabilityRequest(
            property_id=property_id,
            check_in=check_in,
            check_out=check_out,
            guests=guests,
            units=units,
        )
        self._validate_request(request)

        with self._locks.hold(property_id, timeout):
            inventory = self._inventory.check_capacity(property_id, units)
            if units > inventory.total:
                raise CapacityExceededError(
                    f"Requested {units} units but property {property_id} has {inventory.total}"
                )

            state = self._load_state(property_id)
            response = self._evaluate(request, state, include_alternatives=False)
            if not response.available:
                logger.info(
                    "Booking rejected | property_id=%s | check_in=%s | check_out=%s | reasons=%s",
                    property_id,
                    check_in,
                    check_out,
                    ",".join(response.unavailable_reasons),
                )
                raise UnavailableError(
                    "Property is not available for the selected dates",
                    reasons=response.unavailable_reasons,
                )

            booking = Booking(
                id=uuid4().hex,
                property_id=property_id,
                stay=DateRange(start=check_in, end=check_out),
                status=status,
                guest_name=guest_name.strip(),
                units=units,
                created_at=self._clock(),
            )
            bookings = (*state.bookings, booking)
            self._repository.save_bookings(property_id, bookings)
            self._commit(property_id, replace(state, bookings=bookings))

        logger.info(
            "Booking created | property_id=%s | booking_id=%s | check_in=%s | check_out=%s | status=%s",
            property_id,
            booking.id,
            check_in,
            check_out,
            status.value,
        )
        self._hub.drain(property_id)
        return booking

    def cancel_booking(
        self,
        property_id: str,
        booking_id: str,
        *,
        timeout: Optional[float] = None,
    ) -> Booking:
        """Mark a booking cancelled; the record itself is kept."""
        with self._locks.hold(property_id, timeout):
            state = self._load_state(property_id)
            bookings = list(state.bookings)
            index = next(
                (position for position, item in enumerate(bookings) if item.id == booking_id),
                None,
            )
            if index is None:
                raise BookingNotFoundError(
                    f"Booking {booking_id} not found for property {property_id}"
                )
            if bookings[index].status is BookingStatus.CANCELLED:
                return bookings[index]

            cancelled = replace(bookings[index], status=BookingStatus.CANCELLED)
            bookings[index] = cancelled
            self._repository.save_bookings(property_id, bookings)
            self._commit(property_id, replace(state, bookings=tuple(bookings)))

        logger.info(
            "Booking cancelled | property_id=%s | booking_id=%s",
            property_id,
            booking_id,
        )
        self._hub.drain(property_id)
        return cancelled

    def add_rule(
        self,
        property_id: str,
        rule_type: RuleType,
        start_date: date,
        end_date: date,
        value: Optional[float] = None,
        reason: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
    ) -> AvailabilityRule:
        window = validate_rule_input(rule_type, start_date, end_date, value)
        rule = AvailabilityRule(
            id=uuid4().hex,
            property_id=property_id,
            type=rule_type,
            window=window,
            value=float(value) if value is not None else None,
            reason=reason,
        )

        with self._locks.hold(property_id, timeout):
            state = self._load_state(property_id)
            rules = (*state.rules, rule)
            self._repository.save_rules(property_id, rules)
            self._commit(property_id, replace(state, rules=rules))

        logger.info(
            "Rule added | property_id=%s | rule_id=%s | type=%s | window=%s..%s",
            property_id,
            rule.id,
            rule_type.value,
            start_date,
            end_date,
        )
        self._hub.drain(property_id)
        return rule

    def remove_rule(
        self,
        property_id: str,
        rule_id: str,
        *,
        timeout: Optional[float] = None,
    ) -> AvailabilityRule:
        with self._locks.hold(property_id, timeout):
            state = self._load_state(property_id)
            removed = next((rule for rule in state.rules if rule.id == rule_id), None)
            if removed is None:
                raise RuleNotFoundError(f"Rule {rule_id} not found for property {property_id}")
            remaining = tuple(rule for rule in state.rules if rule.id != rule_id)
            self._repository.save_rules(property_id, remaining)
            self._commit(property_id, replace(state, rules=remaining))

        logger.info("Rule removed | property_id=%s | rule_id=%s", property_id, rule_id)
        self._hub.drain(property_id)
        return removed

    def set_base_rate(
        self,
        property_id: str,
        nightly_rate: float,
        *,
        timeout: Optional[float] = None,
    ) -> float:
        if nightly_rate <= 0:
            raise AvailabilityValidationError("nightly_rate must be > 0")

        with self._locks.hold(property_id, timeout):
            state = self._load_state(property_id)
            self._repository.set_base_rate(property_id, nightly_rate)
            self._commit(property_id, replace(state, base_rate=float(nightly_rate)))

        logger.info("Base rate updated | property_id=%s | nightly_rate=%s", property_id, nightly_rate)
        self._hub.drain(property_id)
        return nightly_rate
