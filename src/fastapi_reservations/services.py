"""Services that providers publish for booking.

Bookings copy the service price when they are accepted, so editing a
service never changes the amount of an existing booking.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from fastapi_reservations.enums import BLOCKING_BOOKING_STATUSES, Role
from fastapi_reservations.exceptions import (
    ConflictError,
    PermissionDeniedError,
    ValidationError,
)
from fastapi_reservations.protocols import ReservationStore, Service
from fastapi_reservations.transitions import parties_for
from fastapi_reservations.types import Actor

logger = logging.getLogger(__name__)

EDITABLE_SERVICE_FIELDS = frozenset({"name", "price", "duration", "is_active"})
PUBLISHING_ROLES = frozenset({Role.SERVICE_PROVIDER, Role.ADMIN})


def _parse_price(price: Any) -> Decimal:
    try:
        value = Decimal(str(price))
    except InvalidOperation as exc:
        raise ValidationError(f"Invalid price {price!r}") from exc
    if not value.is_finite() or value < 0:
        raise ValidationError("Price must be positive")
    return value


def _check_duration(duration: int | None) -> None:
    if duration is not None and duration <= 0:
        raise ValidationError("Duration must be a positive number of minutes")


def _ensure_owner(actor: Actor, service: Service) -> None:
    if not parties_for(actor, provider=service.provider_id):
        raise PermissionDeniedError("You can only manage your own services")


class ServiceFlow:
    def __init__(self, store: ReservationStore) -> None:
        self.store = store

    async def create_service(
        self,
        actor: Actor,
        *,
        name: str,
        price: Any,
        duration: int | None = None,
    ) -> Service:
        """Publish an active service owned by the calling provider."""
        if actor.role not in PUBLISHING_ROLES:
            raise PermissionDeniedError(
                "Only service providers can create services"
            )
        if not name or price is None:
            raise ValidationError("Name and price are required")
        amount = _parse_price(price)
        _check_duration(duration)

        async with self.store.transaction() as unit:
            service = await unit.create_service(
                provider_id=actor.id,
                name=name,
                price=amount,
                duration=duration,
                is_active=True,
            )
        logger.info("Service %s created by %s", service.id, actor.id)
        return service

    async def get_service(self, service_id: str) -> Service:
        async with self.store.transaction() as unit:
            return await unit.get_service(service_id)

    async def list_services(
        self,
        *,
        provider_id: str | None = None,
        include_inactive: bool = False,
    ) -> list[Service]:
        async with self.store.transaction() as unit:
            return await unit.list_services(
                provider_id=provider_id,
                is_active=None if include_inactive else True,
            )

    async def update_service(
        self, actor: Actor, service_id: str, **changes: Any
    ) -> Service:
        unknown = set(changes) - EDITABLE_SERVICE_FIELDS
        if unknown:
            raise ValidationError(
                f"Fields cannot be edited: {', '.join(sorted(unknown))}"
            )
        if "name" in changes and not changes["name"]:
            raise ValidationError("Name cannot be empty")
        if "price" in changes:
            changes["price"] = _parse_price(changes["price"])
        if "duration" in changes:
            _check_duration(changes["duration"])
        if "is_active" in changes and changes["is_active"] is None:
            raise ValidationError("is_active cannot be null")

        async with self.store.transaction() as unit:
            service = await unit.get_service(service_id)
            _ensure_owner(actor, service)
            for name, value in changes.items():
                setattr(service, name, value)

        logger.info(
            "Service %s updated by %s: %s",
            service_id,
            actor.id,
            ", ".join(sorted(changes)) or "nothing",
        )
        return service

    async def deactivate_service(
        self, actor: Actor, service_id: str
    ) -> Service:
        """Stop accepting new bookings; existing ones are untouched."""
        return await self.update_service(actor, service_id, is_active=False)

    async def delete_service(self, actor: Actor, service_id: str) -> None:
        async with self.store.transaction() as unit:
            service = await unit.get_service(service_id)
            _ensure_owner(actor, service)
            open_bookings = [
                booking
                for booking in await unit.list_bookings(
                    provider_id=service.provider_id,
                    statuses=BLOCKING_BOOKING_STATUSES,
                )
                if booking.service_id == service.id
            ]
            if open_bookings:
                raise ConflictError(
                    "Cannot delete service with active bookings. "
                    "Please complete or cancel all bookings first."
                )
            await unit.delete_service(service)
        logger.info("Service %s deleted by %s", service_id, actor.id)
