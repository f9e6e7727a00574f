"""Shared fixtures for fastapi-reservations tests."""

from __future__ import annotations

import copy
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

import pytest

from fastapi_reservations.enums import Role
from fastapi_reservations.exceptions import NotFoundError
from fastapi_reservations.types import Actor

NOW = datetime(2025, 1, 1, 9, 0, tzinfo=UTC)


class FrozenClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


@dataclass
class DemoService:
    id: str
    provider_id: str
    name: str
    price: Decimal
    duration: int | None = 60
    is_active: bool = True


@dataclass
class DemoBooking:
    id: str
    service_id: str
    customer_id: str
    provider_id: str
    scheduled_at: datetime
    duration: int
    status: str
    total_amount: Decimal
    rating: int | None = None
    review: str | None = None
    notes: str | None = None
    address: str | None = None


@dataclass
class DemoStorageBox:
    id: str
    code: str
    location: str
    size: str
    price_per_day: Decimal
    status: str


@dataclass
class DemoRental:
    id: str
    user_id: str
    storage_box_id: str
    start_date: datetime
    end_date: datetime | None
    status: str
    total_cost: Decimal | None
    notes: str | None = None


@dataclass
class DemoContract:
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


@dataclass
class DemoPackage:
    id: str
    owner_id: str
    weight: Decimal
    dimensions: str | None
    size_class: str
    pickup_address: str
    delivery_address: str
    distance_km: int
    price: Decimal


class InMemoryUnit:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    def _get(self, table: dict, entity: str, entity_id: str) -> Any:
        try:
            return table[entity_id]
        except KeyError as exc:
            raise NotFoundError(entity, entity_id) from exc

    def _create(self, table: dict, factory: type, prefix: str, **fields):
        instance = factory(id=self.store.next_id(prefix), **fields)
        table[instance.id] = instance
        return instance

    async def get_service(self, service_id: str) -> DemoService:
        return self._get(self.store.services, "Service", service_id)

    async def create_service(self, **fields) -> DemoService:
        return self._create(self.store.services, DemoService, "svc", **fields)

    async def delete_service(self, service: DemoService) -> None:
        del self.store.services[service.id]

    async def list_services(
        self,
        *,
        provider_id: str | None = None,
        is_active: bool | None = None,
    ) -> list[DemoService]:
        return sorted(
            (
                s
                for s in self.store.services.values()
                if (provider_id is None or s.provider_id == provider_id)
                and (is_active is None or s.is_active == is_active)
            ),
            key=lambda s: s.name,
        )

    async def get_booking(self, booking_id: str) -> DemoBooking:
        return self._get(self.store.bookings, "Booking", booking_id)

    async def create_booking(self, **fields) -> DemoBooking:
        return self._create(self.store.bookings, DemoBooking, "b", **fields)

    async def delete_booking(self, booking: DemoBooking) -> None:
        del self.store.bookings[booking.id]

    async def list_bookings(
        self,
        *,
        provider_id: str | None = None,
        customer_id: str | None = None,
        statuses: Iterable[str] | None = None,
    ) -> list[DemoBooking]:
        wanted = set(statuses) if statuses is not None else None
        return [
            b
            for b in self.store.bookings.values()
            if (provider_id is None or b.provider_id == provider_id)
            and (customer_id is None or b.customer_id == customer_id)
            and (wanted is None or b.status in wanted)
        ]

    async def lock_provider_calendar(self, provider_id: str) -> None:
        self.store.calendar_locks.append(provider_id)

    async def get_storage_box(self, box_id: str) -> DemoStorageBox:
        return self._get(self.store.boxes, "Storage box", box_id)

    async def find_storage_box_by_code(self, code: str):
        for box in self.store.boxes.values():
            if box.code == code:
                return box
        return None

    async def create_storage_box(self, **fields) -> DemoStorageBox:
        return self._create(self.store.boxes, DemoStorageBox, "box", **fields)

    async def list_storage_boxes(self, *, status: str | None = None):
        return [
            box
            for box in self.store.boxes.values()
            if status is None or box.status == status
        ]

    async def get_rental(self, rental_id: str) -> DemoRental:
        return self._get(self.store.rentals, "Rental", rental_id)

    async def create_rental(self, **fields) -> DemoRental:
        return self._create(self.store.rentals, DemoRental, "r", **fields)

    async def delete_rental(self, rental: DemoRental) -> None:
        del self.store.rentals[rental.id]

    async def list_rentals(
        self,
        *,
        storage_box_id: str | None = None,
        user_id: str | None = None,
        statuses: Iterable[str] | None = None,
    ) -> list[DemoRental]:
        wanted = set(statuses) if statuses is not None else None
        return [
            r
            for r in self.store.rentals.values()
            if (storage_box_id is None or r.storage_box_id == storage_box_id)
            and (user_id is None or r.user_id == user_id)
            and (wanted is None or r.status in wanted)
        ]

    async def get_contract(self, contract_id: str) -> DemoContract:
        return self._get(self.store.contracts, "Contract", contract_id)

    async def create_contract(self, **fields) -> DemoContract:
        return self._create(self.store.contracts, DemoContract, "c", **fields)

    async def delete_contract(self, contract: DemoContract) -> None:
        del self.store.contracts[contract.id]

    async def list_contracts(
        self,
        *,
        merchant_id: str | None = None,
        statuses: Iterable[str] | None = None,
    ) -> list[DemoContract]:
        wanted = set(statuses) if statuses is not None else None
        return [
            c
            for c in self.store.contracts.values()
            if (merchant_id is None or c.merchant_id == merchant_id)
            and (wanted is None or c.status in wanted)
        ]

    async def get_package(self, package_id: str) -> DemoPackage:
        return self._get(self.store.packages, "Package", package_id)

    async def create_package(self, **fields) -> DemoPackage:
        return self._create(self.store.packages, DemoPackage, "p", **fields)

    async def delete_package(self, package: DemoPackage) -> None:
        del self.store.packages[package.id]


class InMemoryStore:
    """Dict-backed store; a failed transaction restores every table."""

    def __init__(self) -> None:
        self.services: dict[str, DemoService] = {}
        self.bookings: dict[str, DemoBooking] = {}
        self.boxes: dict[str, DemoStorageBox] = {}
        self.rentals: dict[str, DemoRental] = {}
        self.contracts: dict[str, DemoContract] = {}
        self.packages: dict[str, DemoPackage] = {}
        self.calendar_locks: list[str] = []
        self._counter = 0

    def next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter}"

    def _tables(self) -> list[dict[str, Any]]:
        return [
            self.services,
            self.bookings,
            self.boxes,
            self.rentals,
            self.contracts,
            self.packages,
        ]

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[InMemoryUnit]:
        snapshot = [
            {key: copy.copy(obj) for key, obj in table.items()}
            for table in self._tables()
        ]
        try:
            yield InMemoryUnit(self)
        except BaseException:
            self._restore(snapshot)
            raise

    def _restore(self, snapshot: list[dict[str, Any]]) -> None:
        # Keep object identity so references held by tests stay valid.
        for table, saved in zip(self._tables(), snapshot, strict=True):
            current = dict(table)
            table.clear()
            for key, saved_obj in saved.items():
                obj = current.get(key, saved_obj)
                obj.__dict__.update(saved_obj.__dict__)
                table[key] = obj

    def add_service(self, **fields) -> DemoService:
        fields.setdefault("id", self.next_id("svc"))
        fields.setdefault("name", "Moving help")
        fields.setdefault("price", Decimal("80.00"))
        service = DemoService(**fields)
        self.services[service.id] = service
        return service

    def add_box(self, **fields) -> DemoStorageBox:
        fields.setdefault("id", self.next_id("box"))
        fields.setdefault("code", fields["id"].upper())
        fields.setdefault("location", "Paris 11e")
        fields.setdefault("size", "M")
        fields.setdefault("price_per_day", Decimal("10"))
        fields.setdefault("status", "AVAILABLE")
        box = DemoStorageBox(**fields)
        self.boxes[box.id] = box
        return box


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def admin() -> Actor:
    return Actor(id="admin-1", role=Role.ADMIN)


@pytest.fixture()
def customer() -> Actor:
    return Actor(id="cust-1", role=Role.CUSTOMER)


@pytest.fixture()
def other_customer() -> Actor:
    return Actor(id="cust-2", role=Role.CUSTOMER)


@pytest.fixture()
def provider() -> Actor:
    return Actor(id="prov-1", role=Role.SERVICE_PROVIDER)


@pytest.fixture()
def merchant() -> Actor:
    return Actor(id="merch-1", role=Role.MERCHANT)


@pytest.fixture()
async def async_engine():
    """Create an in-memory aiosqlite async engine."""
    from sqlalchemy.ext.asyncio import create_async_engine

    from fastapi_reservations.contrib.sqlalchemy.models import Base

    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture()
async def async_session_factory(async_engine):
    """Create an async session factory bound to the in-memory engine."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    factory = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )
    yield factory


@pytest.fixture()
def sqlalchemy_store(async_session_factory):
    """Create an SQLAlchemyReservationStore."""
    from fastapi_reservations.contrib.sqlalchemy.repository import (
        SQLAlchemyReservationStore,
    )

    return SQLAlchemyReservationStore(async_session_factory)


def create_client(store, *, config=None, **router_kwargs):
    """TestClient for an app mounting the reservations router."""
    from fastapi import FastAPI
    from fastapi.testclient import TestClient

    from fastapi_reservations.config import ReservationsConfig
    from fastapi_reservations.exceptions import register_exception_handlers
    from fastapi_reservations.router import create_reservations_router

    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(
        create_reservations_router(
            config=config or ReservationsConfig(),
            store=store,
            **router_kwargs,
        )
    )
    return TestClient(app)


def auth(actor: Actor) -> dict[str, str]:
    return {"x-actor-id": actor.id, "x-actor-role": str(actor.role)}
