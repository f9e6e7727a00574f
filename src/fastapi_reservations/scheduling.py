"""Booking conflict detection."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta

from fastapi_reservations.enums import BLOCKING_BOOKING_STATUSES
from fastapi_reservations.exceptions import ConflictError, ValidationError
from fastapi_reservations.protocols import Booking, ReservationUnit, Service

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def booking_window(
    start: datetime, duration_minutes: int
) -> tuple[datetime, datetime]:
    """Half-open ``[start, start + duration)`` interval of a booking."""
    return start, start + timedelta(minutes=duration_minutes)


def windows_overlap(
    first: tuple[datetime, datetime], second: tuple[datetime, datetime]
) -> bool:
    return first[0] < second[1] and second[0] < first[1]


class ConflictChecker:
    """Accepts or rejects a booking request before it is created."""

    def __init__(
        self,
        *,
        default_duration: int = 60,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.default_duration = default_duration
        self.clock = clock

    def resolve_duration(
        self, service: Service, requested: int | None = None
    ) -> int:
        duration = requested or service.duration or self.default_duration
        if duration <= 0:
            raise ValidationError("Duration must be a positive number of minutes")
        return duration

    def ensure_future(self, start: datetime) -> None:
        if start <= self.clock():
            raise ValidationError("Scheduled time must be in the future")

    def ensure_bookable(self, service: Service, start: datetime) -> None:
        if not service.is_active:
            raise ValidationError("Service is not available for booking")
        self.ensure_future(start)

    def find_conflicts(
        self,
        bookings: Iterable[Booking],
        start: datetime,
        duration: int,
        *,
        exclude_booking_id: str | None = None,
    ) -> list[Booking]:
        """Non-terminal bookings whose window overlaps the requested one."""
        requested = booking_window(start, duration)
        return [
            booking
            for booking in bookings
            if booking.id != exclude_booking_id
            and booking.status in BLOCKING_BOOKING_STATUSES
            and windows_overlap(
                booking_window(booking.scheduled_at, booking.duration),
                requested,
            )
        ]

    async def ensure_provider_available(
        self,
        unit: ReservationUnit,
        provider_id: str,
        start: datetime,
        duration: int,
        *,
        exclude_booking_id: str | None = None,
    ) -> None:
        """Raise ConflictError when the provider is busy in the window.

        Bumps the provider calendar first so a concurrent booking for the
        same provider fails on commit.
        """
        await unit.lock_provider_calendar(provider_id)
        existing = await unit.list_bookings(
            provider_id=provider_id,
            statuses=BLOCKING_BOOKING_STATUSES,
        )
        conflicts = self.find_conflicts(
            existing,
            start,
            duration,
            exclude_booking_id=exclude_booking_id,
        )
        if conflicts:
            logger.info(
                "Provider %s busy at %s (%d min): overlaps booking %s",
                provider_id,
                start.isoformat(),
                duration,
                conflicts[0].id,
            )
            raise ConflictError(
                "Provider is not available at the requested time"
            )
