"""Booking conflict detection tests."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from conftest import NOW, DemoBooking, DemoService, FrozenClock, InMemoryStore

from fastapi_reservations.exceptions import ConflictError, ValidationError
from fastapi_reservations.scheduling import (
    ConflictChecker,
    as_utc,
    booking_window,
    windows_overlap,
)

TEN = datetime(2025, 1, 2, 10, 0, tzinfo=UTC)


def _booking(booking_id: str, start: datetime, duration: int, status="PENDING"):
    return DemoBooking(
        id=booking_id,
        service_id="svc-1",
        customer_id="cust-1",
        provider_id="prov-1",
        scheduled_at=start,
        duration=duration,
        status=status,
        total_amount=0,
    )


def test_as_utc_handles_naive_and_aware() -> None:
    naive = datetime(2025, 1, 2, 10, 0)
    paris = datetime(2025, 1, 2, 11, 0, tzinfo=timezone(timedelta(hours=1)))
    assert as_utc(naive) == TEN
    assert as_utc(paris) == TEN
    assert as_utc(paris).tzinfo is UTC


def test_adjacent_windows_do_not_overlap() -> None:
    first = booking_window(TEN, 60)
    second = booking_window(TEN + timedelta(hours=1), 60)
    assert not windows_overlap(first, second)
    assert not windows_overlap(second, first)


def test_contained_window_overlaps() -> None:
    outer = booking_window(TEN, 120)
    inner = booking_window(TEN + timedelta(minutes=30), 15)
    assert windows_overlap(outer, inner)
    assert windows_overlap(inner, outer)


def test_existing_booking_spanning_new_start_conflicts() -> None:
    checker = ConflictChecker()
    existing = [_booking("b-1", TEN, 90)]
    conflicts = checker.find_conflicts(
        existing, TEN + timedelta(minutes=60), 60
    )
    assert [b.id for b in conflicts] == ["b-1"]


def test_terminal_bookings_do_not_block() -> None:
    checker = ConflictChecker()
    existing = [
        _booking("b-1", TEN, 60, status="CANCELLED"),
        _booking("b-2", TEN, 60, status="COMPLETED"),
    ]
    assert checker.find_conflicts(existing, TEN, 60) == []


def test_excluded_booking_is_ignored() -> None:
    checker = ConflictChecker()
    existing = [_booking("b-1", TEN, 60)]
    conflicts = checker.find_conflicts(
        existing, TEN, 60, exclude_booking_id="b-1"
    )
    assert conflicts == []


def test_resolve_duration_order() -> None:
    checker = ConflictChecker(default_duration=45)
    service = DemoService(
        id="svc-1", provider_id="prov-1", name="x", price=0, duration=None
    )
    assert checker.resolve_duration(service) == 45
    assert checker.resolve_duration(service, 30) == 30
    service.duration = 90
    assert checker.resolve_duration(service) == 90


def test_past_start_rejected() -> None:
    checker = ConflictChecker(clock=FrozenClock())
    with pytest.raises(ValidationError, match="future"):
        checker.ensure_future(NOW)


def test_inactive_service_rejected() -> None:
    checker = ConflictChecker(clock=FrozenClock())
    service = DemoService(
        id="svc-1", provider_id="prov-1", name="x", price=0, is_active=False
    )
    with pytest.raises(ValidationError, match="not available"):
        checker.ensure_bookable(service, TEN)


async def test_provider_availability_locks_calendar(
    store: InMemoryStore,
) -> None:
    store.bookings["b-1"] = _booking("b-1", TEN, 60)
    checker = ConflictChecker()

    async with store.transaction() as unit:
        with pytest.raises(ConflictError, match="not available"):
            await checker.ensure_provider_available(
                unit, "prov-1", TEN + timedelta(minutes=30), 60
            )
        await checker.ensure_provider_available(
            unit, "prov-1", TEN + timedelta(hours=1), 60
        )
        await checker.ensure_provider_available(unit, "prov-2", TEN, 60)

    assert store.calendar_locks == ["prov-1", "prov-1", "prov-2"]
