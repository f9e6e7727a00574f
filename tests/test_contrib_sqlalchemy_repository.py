"""SQLAlchemy store integration tests with real aiosqlite DB."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from fastapi_reservations.bookings import BookingFlow
from fastapi_reservations.contracts import ContractFlow
from fastapi_reservations.contrib.sqlalchemy.models import (
    Base,
    ProviderCalendarModel,
    ServiceModel,
)
from fastapi_reservations.contrib.sqlalchemy.repository import (
    SQLAlchemyReservationStore,
)
from fastapi_reservations.enums import RentalStatus, StorageBoxStatus
from fastapi_reservations.exceptions import ConflictError, NotFoundError
from fastapi_reservations.packages import PackageFlow
from fastapi_reservations.protocols import ReservationStore
from fastapi_reservations.rentals import RentalFlow
from fastapi_reservations.services import ServiceFlow

TEN = datetime(2099, 1, 2, 10, 0, tzinfo=UTC)


async def _add_service(session_factory, **fields) -> str:
    fields.setdefault("name", "Furniture assembly")
    fields.setdefault("price", Decimal("45.00"))
    fields.setdefault("duration", 60)
    async with session_factory() as session:
        service = ServiceModel(**fields)
        session.add(service)
        await session.commit()
        return service.id


@pytest.fixture()
async def file_store(tmp_path):
    """Store on a file database so each session gets its own connection."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'reservations.db'}"
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield SQLAlchemyReservationStore(
        async_sessionmaker(engine, expire_on_commit=False)
    )
    await engine.dispose()


def test_store_satisfies_protocol(sqlalchemy_store) -> None:
    assert isinstance(sqlalchemy_store, ReservationStore)


async def test_get_missing_raises_not_found(sqlalchemy_store) -> None:
    async with sqlalchemy_store.transaction() as unit:
        with pytest.raises(NotFoundError, match="Rental r-404 not found"):
            await unit.get_rental("r-404")


async def test_create_and_list_storage_boxes(sqlalchemy_store) -> None:
    async with sqlalchemy_store.transaction() as unit:
        await unit.create_storage_box(
            code="B",
            location="Lyon",
            size="S",
            price_per_day=Decimal("3"),
            status=StorageBoxStatus.AVAILABLE,
        )
        await unit.create_storage_box(
            code="A",
            location="Paris",
            size="L",
            price_per_day=Decimal("7"),
            status=StorageBoxStatus.MAINTENANCE,
        )

    async with sqlalchemy_store.transaction() as unit:
        everything = await unit.list_storage_boxes()
        available = await unit.list_storage_boxes(
            status=StorageBoxStatus.AVAILABLE
        )
        by_code = await unit.find_storage_box_by_code("A")
        missing = await unit.find_storage_box_by_code("Z")

    assert [box.code for box in everything] == ["A", "B"]
    assert [box.code for box in available] == ["B"]
    assert by_code.location == "Paris"
    assert missing is None


async def test_failed_transaction_rolls_back(sqlalchemy_store) -> None:
    with pytest.raises(RuntimeError):
        async with sqlalchemy_store.transaction() as unit:
            await unit.create_package(
                owner_id="u-1",
                weight=Decimal("1"),
                dimensions=None,
                size_class="M",
                pickup_address="Paris",
                delivery_address="Lyon",
                distance_km=465,
                price=Decimal("240"),
            )
            raise RuntimeError("abort")

    async with sqlalchemy_store.transaction() as unit:
        assert await unit.list_contracts() == []
        with pytest.raises(NotFoundError):
            await unit.get_package("anything")


async def test_duplicate_box_code_is_a_conflict(sqlalchemy_store) -> None:
    fields = {
        "code": "DUP",
        "location": "Nice",
        "size": "M",
        "price_per_day": Decimal("5"),
        "status": "AVAILABLE",
    }
    async with sqlalchemy_store.transaction() as unit:
        await unit.create_storage_box(**fields)

    with pytest.raises(ConflictError):
        async with sqlalchemy_store.transaction() as unit:
            await unit.create_storage_box(**fields)


async def test_provider_calendar_revision_increments(
    sqlalchemy_store, async_session_factory
) -> None:
    for _ in range(3):
        async with sqlalchemy_store.transaction() as unit:
            await unit.lock_provider_calendar("prov-1")

    async with async_session_factory() as session:
        calendar = await session.get(ProviderCalendarModel, "prov-1")
        assert calendar.revision == 3
        assert calendar.version == 3


async def test_concurrent_box_update_is_rejected(file_store) -> None:
    async with file_store.transaction() as unit:
        box = await unit.create_storage_box(
            code="RACE",
            location="Lille",
            size="M",
            price_per_day=Decimal("4"),
            status="AVAILABLE",
        )
    box_id = box.id

    with pytest.raises(ConflictError, match="modified concurrently"):
        async with file_store.transaction() as first:
            stale = await first.get_storage_box(box_id)

            async with file_store.transaction() as second:
                fresh = await second.get_storage_box(box_id)
                fresh.status = StorageBoxStatus.MAINTENANCE

            stale.status = StorageBoxStatus.RENTED

    async with file_store.transaction() as unit:
        box = await unit.get_storage_box(box_id)
        assert box.status == StorageBoxStatus.MAINTENANCE


async def test_booking_overlap_on_database(
    sqlalchemy_store, async_session_factory, customer, other_customer
) -> None:
    service_id = await _add_service(
        async_session_factory, provider_id="prov-1"
    )
    flow = BookingFlow(sqlalchemy_store)

    booking = await flow.create_booking(
        customer, service_id=service_id, scheduled_at=TEN
    )
    assert booking.total_amount == Decimal("45.00")
    assert booking.scheduled_at == TEN

    with pytest.raises(ConflictError):
        await flow.create_booking(
            other_customer,
            service_id=service_id,
            scheduled_at=TEN + timedelta(minutes=59),
        )

    listed = await flow.list_bookings(customer)
    assert [b.id for b in listed] == [booking.id]


async def test_rental_flow_on_database(
    sqlalchemy_store, customer, admin
) -> None:
    flow = RentalFlow(sqlalchemy_store)
    box = await flow.create_storage_box(
        admin,
        code="MRS-2",
        location="Marseille",
        size="L",
        price_per_day=Decimal("10"),
    )
    start = datetime(2099, 1, 1, tzinfo=UTC)

    state = await flow.create_rental(
        customer,
        storage_box_id=box.id,
        start_date=start,
        end_date=start + timedelta(days=3),
    )
    assert state.rental.total_cost == Decimal("30")

    await flow.transition(admin, state.rental.id, RentalStatus.ACTIVE)
    done = await flow.transition(
        customer, state.rental.id, RentalStatus.COMPLETED
    )
    assert done.storage_box.status == StorageBoxStatus.AVAILABLE

    reloaded = await flow.get_storage_box(box.id)
    assert reloaded.status == StorageBoxStatus.AVAILABLE


async def test_contract_and_package_flows_on_database(
    sqlalchemy_store, merchant, customer
) -> None:
    contracts = ContractFlow(sqlalchemy_store)
    contract = await contracts.create_contract(
        merchant, title="Depot", content="Terms", value=Decimal("120.5")
    )
    await contracts.transition(merchant, contract.id, "PENDING_SIGNATURE")
    signed = await contracts.transition(merchant, contract.id, "SIGNED")
    assert signed.signed_date is not None

    packages = PackageFlow(sqlalchemy_store)
    package, _ = await packages.create_package(
        customer,
        pickup_address="Paris",
        delivery_address="Lyon",
        weight=2,
        dimensions="40x30x20",
    )
    fetched = await packages.get_package(customer, package.id)
    assert fetched.price == Decimal("283.80")
    assert fetched.size_class == "M"


async def test_service_edits_keep_booked_amount_on_database(
    sqlalchemy_store, provider, customer
) -> None:
    services = ServiceFlow(sqlalchemy_store)
    bookings = BookingFlow(sqlalchemy_store)
    service = await services.create_service(
        provider, name="Furniture assembly", price="45.00", duration=60
    )

    booking = await bookings.create_booking(
        customer, service_id=service.id, scheduled_at=TEN
    )
    await services.update_service(provider, service.id, price="99.00")

    reloaded = await bookings.get_booking(customer, booking.id)
    assert reloaded.total_amount == Decimal("45.00")
    assert (await services.get_service(service.id)).price == Decimal("99.00")

    await services.deactivate_service(provider, service.id)
    assert await services.list_services() == []
    listed = await services.list_services(include_inactive=True)
    assert [s.id for s in listed] == [service.id]

    with pytest.raises(ConflictError, match="active bookings"):
        await services.delete_service(provider, service.id)
    await bookings.transition(customer, booking.id, "CANCELLED")
    await services.delete_service(provider, service.id)
    with pytest.raises(NotFoundError):
        await services.get_service(service.id)
