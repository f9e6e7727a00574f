"""Service booking lifecycle."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi_reservations.enums import BookingStatus
from fastapi_reservations.exceptions import (
    ForbiddenTransitionError,
    PermissionDeniedError,
    ValidationError,
)
from fastapi_reservations.protocols import Booking, ReservationStore
from fastapi_reservations.scheduling import ConflictChecker, as_utc
from fastapi_reservations.transitions import (
    BOOKING_TRANSITIONS,
    Party,
    authorize,
    parties_for,
)
from fastapi_reservations.types import Actor

logger = logging.getLogger(__name__)

EDITABLE_BOOKING_FIELDS = frozenset({"notes", "address"})


def _booking_parties(actor: Actor, booking: Booking) -> frozenset[Party]:
    parties = parties_for(
        actor,
        customer=booking.customer_id,
        provider=booking.provider_id,
    )
    if not parties:
        raise PermissionDeniedError(
            "You can only access bookings you are involved in"
        )
    return parties


def _parse_status(value: str) -> BookingStatus:
    try:
        return BookingStatus(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown booking status {value!r}") from exc


class BookingFlow:
    """Creates bookings and drives them through their statuses."""

    def __init__(
        self,
        store: ReservationStore,
        *,
        checker: ConflictChecker | None = None,
    ) -> None:
        self.store = store
        self.checker = checker or ConflictChecker()

    async def create_booking(
        self,
        actor: Actor,
        *,
        service_id: str,
        scheduled_at: datetime,
        duration: int | None = None,
        notes: str | None = None,
        address: str | None = None,
    ) -> Booking:
        """Accept a booking request or raise a typed error.

        The total amount is fixed to the service price at this moment.
        """
        if not service_id or scheduled_at is None:
            raise ValidationError(
                "Service ID and scheduled time are required"
            )
        start = as_utc(scheduled_at)

        async with self.store.transaction() as unit:
            service = await unit.get_service(service_id)
            self.checker.ensure_bookable(service, start)
            booking_duration = self.checker.resolve_duration(
                service, duration
            )
            await self.checker.ensure_provider_available(
                unit, service.provider_id, start, booking_duration
            )
            booking = await unit.create_booking(
                service_id=service.id,
                customer_id=actor.id,
                provider_id=service.provider_id,
                scheduled_at=start,
                duration=booking_duration,
                status=BookingStatus.PENDING,
                total_amount=service.price,
                notes=notes,
                address=address,
            )

        logger.info(
            "Booking %s created for service %s at %s",
            booking.id,
            service_id,
            start.isoformat(),
        )
        return booking

    async def get_booking(self, actor: Actor, booking_id: str) -> Booking:
        async with self.store.transaction() as unit:
            booking = await unit.get_booking(booking_id)
            _booking_parties(actor, booking)
        return booking

    async def list_bookings(
        self,
        actor: Actor,
        *,
        status: str | None = None,
        customer_id: str | None = None,
        provider_id: str | None = None,
    ) -> list[Booking]:
        """Bookings visible to the actor; filters by id are admin-only."""
        statuses = [_parse_status(status)] if status else None
        if not actor.is_admin:
            customer_id = None
            provider_id = None
        async with self.store.transaction() as unit:
            if actor.is_admin:
                return await unit.list_bookings(
                    customer_id=customer_id,
                    provider_id=provider_id,
                    statuses=statuses,
                )
            as_customer = await unit.list_bookings(
                customer_id=actor.id, statuses=statuses
            )
            as_provider = await unit.list_bookings(
                provider_id=actor.id, statuses=statuses
            )
        seen = {booking.id for booking in as_customer}
        merged = as_customer + [b for b in as_provider if b.id not in seen]
        return sorted(merged, key=lambda b: b.scheduled_at, reverse=True)

    async def transition(
        self, actor: Actor, booking_id: str, target_status: str
    ) -> Booking:
        target = _parse_status(target_status)
        async with self.store.transaction() as unit:
            booking = await unit.get_booking(booking_id)
            current = booking.status
            authorize(
                BOOKING_TRANSITIONS,
                kind="booking",
                current=current,
                target=target,
                parties=_booking_parties(actor, booking),
            )
            booking.status = target

        logger.info(
            "Booking %s moved from %s to %s by %s",
            booking_id,
            current,
            target,
            actor.id,
        )
        return booking

    async def reschedule(
        self, actor: Actor, booking_id: str, scheduled_at: datetime
    ) -> Booking:
        """Move a pending booking to a new future start time."""
        start = as_utc(scheduled_at)
        async with self.store.transaction() as unit:
            booking = await unit.get_booking(booking_id)
            _booking_parties(actor, booking)
            if booking.status != BookingStatus.PENDING:
                raise ForbiddenTransitionError(
                    f"Cannot reschedule a {booking.status} booking",
                    kind="booking",
                    current=booking.status,
                )
            self.checker.ensure_future(start)
            await self.checker.ensure_provider_available(
                unit,
                booking.provider_id,
                start,
                booking.duration,
                exclude_booking_id=booking.id,
            )
            booking.scheduled_at = start

        logger.info(
            "Booking %s rescheduled to %s", booking_id, start.isoformat()
        )
        return booking

    async def review(
        self,
        actor: Actor,
        booking_id: str,
        *,
        rating: int | None = None,
        review: str | None = None,
    ) -> Booking:
        """Record the customer's rating and review of a completed booking."""
        if rating is None and review is None:
            raise ValidationError("Rating or review is required")
        if rating is not None and not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5")

        async with self.store.transaction() as unit:
            booking = await unit.get_booking(booking_id)
            parties = _booking_parties(actor, booking)
            if Party.CUSTOMER not in parties:
                raise PermissionDeniedError(
                    "Only customers can rate and review"
                )
            if booking.status != BookingStatus.COMPLETED:
                raise ForbiddenTransitionError(
                    "Can only rate completed bookings",
                    kind="booking",
                    current=booking.status,
                )
            if rating is not None:
                booking.rating = rating
            if review is not None:
                booking.review = review
        return booking

    async def update_details(
        self, actor: Actor, booking_id: str, **changes: Any
    ) -> Booking:
        """Update free-text fields (notes, address) of a booking."""
        unknown = set(changes) - EDITABLE_BOOKING_FIELDS
        if unknown:
            raise ValidationError(
                f"Fields cannot be edited: {', '.join(sorted(unknown))}"
            )
        async with self.store.transaction() as unit:
            booking = await unit.get_booking(booking_id)
            _booking_parties(actor, booking)
            for name, value in changes.items():
                setattr(booking, name, value)
        return booking

    async def delete_booking(self, actor: Actor, booking_id: str) -> None:
        async with self.store.transaction() as unit:
            booking = await unit.get_booking(booking_id)
            _booking_parties(actor, booking)
            if booking.status == BookingStatus.COMPLETED:
                raise ForbiddenTransitionError(
                    "Cannot delete completed bookings",
                    kind="booking",
                    current=booking.status,
                )
            await unit.delete_booking(booking)
        logger.info("Booking %s deleted by %s", booking_id, actor.id)
