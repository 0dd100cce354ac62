from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone

import pytest

from availability_engine.domain.errors import (
    AvailabilityValidationError,
    BookingNotFoundError,
    CapacityExceededError,
    InvalidRangeError,
    RuleNotFoundError,
    UnavailableError,
)
from availability_engine.domain.models import AvailabilityRequest, BookingStatus, RuleType
from availability_engine.repository.data_repository import DataRepository, StoreError
from availability_engine.services.availability_service import AvailabilityService
from availability_engine.utils.clock import fixed_clock
from availability_engine.utils.config import Settings


NOW = datetime(2026, 5, 1, tzinfo=timezone.utc)


def _build_service(tmp_path, repository_cls=DataRepository, **overrides) -> AvailabilityService:
    settings = replace(Settings(), database_path=tmp_path / "availability.db", **overrides)
    repository = repository_cls(settings)
    repository.initialize_database()
    return AvailabilityService(repository=repository, settings=settings, clock=fixed_clock(NOW))


def _request(check_in: date, check_out: date, **kwargs) -> AvailabilityRequest:
    return AvailabilityRequest(property_id="villa-1", check_in=check_in, check_out=check_out, **kwargs)


def test_overlapping_request_reports_conflict(tmp_path):
    service = _build_service(tmp_path)
    booking = service.create_booking(
        "villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe", BookingStatus.CONFIRMED
    )

    response = service.check_availability(_request(date(2026, 6, 3), date(2026, 6, 7)))

    assert response.available is False
    assert response.unavailable_reasons[0] == "booking_conflict"
    assert [item.id for item in response.conflicts] == [booking.id]


def test_back_to_back_stay_is_available(tmp_path):
    service = _build_service(tmp_path)
    service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")

    response = service.check_availability(_request(date(2026, 6, 5), date(2026, 6, 8)))

    assert response.available is True
    assert response.conflicts == ()
    assert response.alternatives is None


def test_overlapping_booking_is_rejected_with_reasons(tmp_path):
    service = _build_service(tmp_path)
    service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")

    with pytest.raises(UnavailableError) as excinfo:
        service.create_booking("villa-1", date(2026, 6, 4), date(2026, 6, 6), "Sara")

    assert "booking_conflict" in excinfo.value.reasons
    assert len(service.list_bookings("villa-1")) == 1


def test_cancel_frees_dates_and_keeps_record(tmp_path):
    service = _build_service(tmp_path)
    booking = service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")

    cancelled = service.cancel_booking("villa-1", booking.id)

    assert cancelled.status is BookingStatus.CANCELLED
    assert service.check_availability(_request(date(2026, 6, 1), date(2026, 6, 5))).available
    stored = service.list_bookings("villa-1")
    assert [item.status for item in stored] == [BookingStatus.CANCELLED]
    assert service.list_bookings("villa-1", include_cancelled=False) == []
    snapshot = service.get_property_snapshot("villa-1")
    assert snapshot.cancelled_booking_ids == (booking.id,)
    assert snapshot.active_bookings == ()


def test_cancelling_twice_is_a_no_op(tmp_path):
    service = _build_service(tmp_path)
    booking = service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")
    service.cancel_booking("villa-1", booking.id)
    version = service.get_property_snapshot("villa-1").version

    again = service.cancel_booking("villa-1", booking.id)

    assert again.status is BookingStatus.CANCELLED
    assert service.get_property_snapshot("villa-1").version == version


def test_repeated_checks_return_identical_responses(tmp_path):
    service = _build_service(tmp_path)
    service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")
    request = _request(date(2026, 6, 2), date(2026, 6, 4))

    first = service.check_availability(request)
    second = service.check_availability(request)

    assert first == second
    assert len(service.list_bookings("villa-1")) == 1


def test_alternatives_shift_window_weekly(tmp_path):
    service = _build_service(tmp_path)
    service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")
    service.create_booking("villa-1", date(2026, 6, 15), date(2026, 6, 19), "Sara")

    response = service.check_availability(_request(date(2026, 6, 1), date(2026, 6, 5)))

    assert response.alternatives is not None
    assert len(response.alternatives) == 5
    first = response.alternatives[0]
    assert (first.check_in, first.check_out, first.nights) == (date(2026, 6, 8), date(2026, 6, 12), 4)
    assert first.available is True
    assert response.alternatives[1].available is False
    assert all(item.price > 0 for item in response.alternatives)


def test_alternative_count_is_configurable(tmp_path):
    service = _build_service(tmp_path, alternative_count=2)
    service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")

    response = service.check_availability(_request(date(2026, 6, 1), date(2026, 6, 5)))

    assert [item.check_in for item in response.alternatives] == [date(2026, 6, 8), date(2026, 6, 15)]


def test_price_override_replaces_base_rate(tmp_path):
    service = _build_service(tmp_path)
    service.add_rule("villa-1", RuleType.PRICE_OVERRIDE, date(2026, 6, 1), date(2026, 6, 30), 200)

    response = service.check_availability(_request(date(2026, 6, 10), date(2026, 6, 12)))

    assert response.available is True
    assert response.pricing.base_price == 200


def test_base_rate_update_is_used_for_pricing(tmp_path):
    service = _build_service(tmp_path)

    service.set_base_rate("villa-1", 150.0)
    response = service.check_availability(_request(date(2026, 10, 13), date(2026, 10, 14)))

    assert response.pricing.base_price == 150.0
    with pytest.raises(AvailabilityValidationError):
        service.set_base_rate("villa-1", 0)


def test_empty_or_inverted_range_is_rejected(tmp_path):
    service = _build_service(tmp_path)

    with pytest.raises(InvalidRangeError):
        service.check_availability(_request(date(2026, 6, 5), date(2026, 6, 5)))
    with pytest.raises(InvalidRangeError):
        service.create_booking("villa-1", date(2026, 6, 5), date(2026, 6, 1), "Abebe")


def test_requesting_more_units_than_inventory(tmp_path):
    service = _build_service(tmp_path)

    response = service.check_availability(_request(date(2026, 6, 1), date(2026, 6, 3), units=2))

    assert response.available is False
    assert response.unavailable_reasons == ("insufficient_capacity",)
    assert response.inventory.total == 1
    with pytest.raises(CapacityExceededError):
        service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 3), "Abebe", units=2)


def test_minimum_stay_rule_blocks_booking(tmp_path):
    service = _build_service(tmp_path)
    service.add_rule("villa-1", RuleType.MINIMUM_STAY, date(2026, 6, 1), date(2026, 6, 30), 3)

    response = service.check_availability(_request(date(2026, 6, 10), date(2026, 6, 12)))

    assert response.unavailable_reasons == ("minimum_stay",)
    assert response.restrictions == ("Minimum stay of 3 nights required",)
    with pytest.raises(UnavailableError):
        service.create_booking("villa-1", date(2026, 6, 10), date(2026, 6, 12), "Abebe")


def test_calendar_marks_booked_and_blocked_nights(tmp_path):
    service = _build_service(tmp_path)
    service.create_booking("villa-1", date(2026, 6, 10), date(2026, 6, 12), "Abebe")
    service.add_rule("villa-1", RuleType.BLOCKED, date(2026, 6, 20), date(2026, 6, 20), reason="Repairs")

    days = service.get_calendar("villa-1", 2026, 6)

    assert len(days) == 30
    assert days["2026-06-09"] is True
    assert days["2026-06-10"] is False
    assert days["2026-06-11"] is False
    assert days["2026-06-12"] is True
    assert days["2026-06-20"] is False
    with pytest.raises(AvailabilityValidationError):
        service.get_calendar("villa-1", 2026, 13)


def test_unknown_ids_raise_not_found(tmp_path):
    service = _build_service(tmp_path)

    with pytest.raises(BookingNotFoundError):
        service.cancel_booking("villa-1", "missing")
    with pytest.raises(RuleNotFoundError):
        service.remove_rule("villa-1", "missing")


def test_removed_rule_no_longer_applies(tmp_path):
    service = _build_service(tmp_path)
    rule = service.add_rule("villa-1", RuleType.BLOCKED, date(2026, 6, 1), date(2026, 6, 30))
    assert not service.check_availability(_request(date(2026, 6, 3), date(2026, 6, 4))).available

    service.remove_rule("villa-1", rule.id)

    assert service.check_availability(_request(date(2026, 6, 3), date(2026, 6, 4))).available
    assert service.list_rules("villa-1") == []


def test_bookings_in_range_returns_bookings_inside_range(tmp_path):
    service = _build_service(tmp_path)
    june = service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")
    service.create_booking("villa-1", date(2026, 7, 1), date(2026, 7, 5), "Sara")

    found = service.bookings_in_range("villa-1", date(2026, 6, 1), date(2026, 6, 20))
    straddling = service.bookings_in_range("villa-1", date(2026, 6, 4), date(2026, 7, 3))

    assert [item.id for item in found] == [june.id]
    assert straddling == []


def test_blank_guest_name_is_rejected(tmp_path):
    service = _build_service(tmp_path)

    with pytest.raises(AvailabilityValidationError):
        service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "  ")


class _FailingWriteRepository(DataRepository):
    def save_bookings(self, property_id, bookings):
        raise StoreError("disk full")


class _FailingReadRepository(DataRepository):
    def load_rules(self, property_id):
        raise StoreError("rules unreadable")


def test_store_write_failure_propagates_without_notification(tmp_path):
    service = _build_service(tmp_path, repository_cls=_FailingWriteRepository)
    received = []
    service.subscribe("villa-1", received.append)

    with pytest.raises(StoreError):
        service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")

    assert received == []
    assert service.get_property_snapshot("villa-1").version == 0


def test_store_read_failure_is_not_reported_as_available(tmp_path):
    service = _build_service(tmp_path, repository_cls=_FailingReadRepository)

    with pytest.raises(StoreError):
        service.check_availability(_request(date(2026, 6, 1), date(2026, 6, 5)))


class _ReadsFailAfterWriteRepository(DataRepository):
    """Serves reads until the first booking write, then fails every read."""

    def __init__(self, settings) -> None:
        super().__init__(settings)
        self.writes = 0

    def _ensure_readable(self) -> None:
        if self.writes:
            raise StoreError("replica lost")

    def load_bookings(self, property_id):
        self._ensure_readable()
        return super().load_bookings(property_id)

    def load_rules(self, property_id):
        self._ensure_readable()
        return super().load_rules(property_id)

    def get_base_rate(self, property_id):
        self._ensure_readable()
        return super().get_base_rate(property_id)

    def save_bookings(self, property_id, bookings):
        super().save_bookings(property_id, bookings)
        self.writes += 1


def test_committed_booking_is_published_without_rereading_the_store(tmp_path):
    service = _build_service(tmp_path, repository_cls=_ReadsFailAfterWriteRepository)
    received = []
    service.subscribe("villa-1", received.append)

    booking = service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")

    assert [snapshot.version for snapshot in received] == [1]
    assert received[0].active_bookings == (booking,)
    assert received[0].base_rate == 100.0
    reader = DataRepository(replace(Settings(), database_path=tmp_path / "availability.db"))
    assert reader.load_bookings("villa-1") == [booking]


def test_version_counter_restarts_with_a_new_service(tmp_path):
    service = _build_service(tmp_path)
    service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")
    assert service.get_property_snapshot("villa-1").version == 1

    restarted = _build_service(tmp_path)
    snapshot = restarted.get_property_snapshot("villa-1")

    assert snapshot.version == 0
    assert len(snapshot.active_bookings) == 1
    restarted.create_booking("villa-1", date(2026, 6, 10), date(2026, 6, 12), "Sara")
    assert restarted.get_property_snapshot("villa-1").version == 1


def test_list_properties_includes_every_stored_property(tmp_path):
    service = _build_service(tmp_path)
    service.create_booking("villa-2", date(2026, 6, 1), date(2026, 6, 5), "Abebe")
    service.add_rule("villa-1", RuleType.BLOCKED, date(2026, 6, 1), date(2026, 6, 2))
    service.set_base_rate("villa-3", 120.0)

    assert service.list_properties() == ["villa-1", "villa-2", "villa-3"]
