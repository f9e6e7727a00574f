"""Structural types for reservations and the store that holds them."""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

from fastapi import Request

from fastapi_reservations.types import Actor


@runtime_checkable
class Service(Protocol):
    id: str
    provider_id: str
    name: str
    price: Decimal
    duration: int | None
    is_active: bool


@runtime_checkable
class Booking(Protocol):
    id: str
    service_id: str
    customer_id: str
    provider_id: str
    scheduled_at: datetime
    duration: int
    status: str
    total_amount: Decimal
    rating: int | None
    review: str | None
    notes: str | None
    address: str | None


@runtime_checkable
class StorageBox(Protocol):
    id: str
    code: str
    location: str
    size: str
    price_per_day: Decimal
    status: str


@runtime_checkable
class BoxRental(Protocol):
    id: str
    user_id: str
    storage_box_id: str
    start_date: datetime
    end_date: datetime | None
    status: str
    total_cost: Decimal | None
    notes: str | None


@runtime_checkable
class Contract(Protocol):
    id: str
    merchant_id: str
    title: str
    content: str
    terms: str | None
    value: Decimal | None
    currency: str
    status: str
    expires_at: datetime | None
    signed_date: datetime | None


@runtime_checkable
class Package(Protocol):
    id: str
    owner_id: str
    weight: Decimal
    dimensions: str | None
    size_class: str
    pickup_address: str
    delivery_address: str
    distance_km: int
    price: Decimal


class ReservationUnit(Protocol):
    """Store view bound to one transaction.

    Objects returned by getters are tracked: attribute changes made on
    them are persisted when the transaction commits. ``get_*`` methods
    raise :class:`~fastapi_reservations.exceptions.NotFoundError`.
    """

    async def get_service(self, service_id: str) -> Service: ...

    async def create_service(self, **fields: Any) -> Service: ...

    async def delete_service(self, service: Service) -> None: ...

    async def list_services(
        self,
        *,
        provider_id: str | None = None,
        is_active: bool | None = None,
    ) -> list[Service]: ...

    async def get_booking(self, booking_id: str) -> Booking: ...

    async def create_booking(self, **fields: Any) -> Booking: ...

    async def delete_booking(self, booking: Booking) -> None: ...

    async def list_bookings(
        self,
        *,
        provider_id: str | None = None,
        customer_id: str | None = None,
        statuses: Iterable[str] | None = None,
    ) -> list[Booking]: ...

    async def lock_provider_calendar(self, provider_id: str) -> None: ...

    async def get_storage_box(self, box_id: str) -> StorageBox: ...

    async def find_storage_box_by_code(self, code: str) -> StorageBox | None: ...

    async def create_storage_box(self, **fields: Any) -> StorageBox: ...

    async def list_storage_boxes(
        self, *, status: str | None = None
    ) -> list[StorageBox]: ...

    async def get_rental(self, rental_id: str) -> BoxRental: ...

    async def create_rental(self, **fields: Any) -> BoxRental: ...

    async def delete_rental(self, rental: BoxRental) -> None: ...

    async def list_rentals(
        self,
        *,
        storage_box_id: str | None = None,
        user_id: str | None = None,
        statuses: Iterable[str] | None = None,
    ) -> list[BoxRental]: ...

    async def get_contract(self, contract_id: str) -> Contract: ...

    async def create_contract(self, **fields: Any) -> Contract: ...

    async def delete_contract(self, contract: Contract) -> None: ...

    async def list_contracts(
        self,
        *,
        merchant_id: str | None = None,
        statuses: Iterable[str] | None = None,
    ) -> list[Contract]: ...

    async def get_package(self, package_id: str) -> Package: ...

    async def create_package(self, **fields: Any) -> Package: ...

    async def delete_package(self, package: Package) -> None: ...


@runtime_checkable
class ReservationStore(Protocol):
    """Transactional store shared by all reservation flows.

    Leaving ``transaction()`` normally commits every change; an exception
    rolls all of them back. Concurrent writes to the same storage box or
    provider calendar must make one of the transactions fail with
    :class:`~fastapi_reservations.exceptions.ConflictError`.
    """

    def transaction(self) -> AbstractAsyncContextManager[ReservationUnit]: ...


@runtime_checkable
class ActorResolver(Protocol):
    """Resolves the calling actor from an incoming request."""

    async def resolve(self, request: Request) -> Actor: ...
