from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone

from availability_engine.domain.models import RuleType
from availability_engine.repository.data_repository import DataRepository
from availability_engine.services.availability_service import AvailabilityService
from availability_engine.utils.clock import fixed_clock
from availability_engine.utils.config import Settings


def _build_service(tmp_path) -> AvailabilityService:
    settings = replace(Settings(), database_path=tmp_path / "notifications.db")
    repository = DataRepository(settings)
    repository.initialize_database()
    return AvailabilityService(
        repository=repository,
        settings=settings,
        clock=fixed_clock(datetime(2026, 5, 1, tzinfo=timezone.utc)),
    )


def test_subscribers_receive_snapshots_in_commit_order(tmp_path):
    service = _build_service(tmp_path)
    received = []
    service.subscribe("villa-1", received.append)

    booking = service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")
    service.cancel_booking("villa-1", booking.id)
    service.add_rule("villa-1", RuleType.BLOCKED, date(2026, 7, 1), date(2026, 7, 3))

    assert [snapshot.version for snapshot in received] == [1, 2, 3]
    assert [item.id for item in received[0].active_bookings] == [booking.id]
    assert received[1].active_bookings == ()
    assert received[1].cancelled_booking_ids == (booking.id,)
    assert len(received[2].rules) == 1


def test_failing_subscriber_does_not_affect_others(tmp_path):
    service = _build_service(tmp_path)
    received = []

    def broken(_snapshot):
        raise RuntimeError("subscriber crashed")

    service.subscribe("villa-1", broken)
    service.subscribe("villa-1", received.append)

    booking = service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")

    assert [snapshot.version for snapshot in received] == [1]
    assert service.list_bookings("villa-1") == [booking]


def test_subscribers_only_hear_their_property(tmp_path):
    service = _build_service(tmp_path)
    received = []
    service.subscribe("villa-2", received.append)

    service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")

    assert received == []


def test_unsubscribe_is_idempotent(tmp_path):
    service = _build_service(tmp_path)
    hub = service.notification_hub
    received = []
    unsubscribe = service.subscribe("villa-1", received.append)

    unsubscribe()
    unsubscribe()
    service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")

    assert received == []
    assert hub.subscriber_count("villa-1") == 0


def test_same_callback_subscribed_twice_is_removed_once(tmp_path):
    service = _build_service(tmp_path)
    received = []
    first = service.subscribe("villa-1", received.append)
    service.subscribe("villa-1", received.append)

    first()
    service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")

    assert len(received) == 1
    assert service.notification_hub.subscriber_count("villa-1") == 1


def test_snapshot_is_a_value_copy(tmp_path):
    service = _build_service(tmp_path)
    received = []
    service.subscribe("villa-1", received.append)

    service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")
    service.create_booking("villa-1", date(2026, 6, 10), date(2026, 6, 12), "Sara")

    assert len(received[0].active_bookings) == 1
    assert len(received[1].active_bookings) == 2


def test_callback_may_mutate_the_same_property(tmp_path):
    service = _build_service(tmp_path)
    seen = []

    def follow_up(snapshot):
        seen.append(snapshot.version)
        if snapshot.version == 1:
            service.create_booking("villa-1", date(2026, 6, 10), date(2026, 6, 12), "Sara")

    service.subscribe("villa-1", follow_up)

    service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")

    assert seen == [1, 2]
    assert len(service.list_bookings("villa-1")) == 2


def test_callback_mutation_is_delivered_after_current_snapshot(tmp_path):
    service = _build_service(tmp_path)
    first_seen = []
    second_seen = []

    def follow_up(snapshot):
        first_seen.append(snapshot.version)
        if snapshot.version == 1:
            service.add_rule("villa-1", RuleType.BLOCKED, date(2026, 8, 1), date(2026, 8, 2))

    service.subscribe("villa-1", follow_up)
    service.subscribe("villa-1", lambda snapshot: second_seen.append(snapshot.version))

    service.create_booking("villa-1", date(2026, 6, 1), date(2026, 6, 5), "Abebe")

    assert first_seen == [1, 2]
    assert second_seen == [1, 2]
