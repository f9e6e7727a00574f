"""SQLAlchemy model tests."""

from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select, text

from fastapi_reservations.contrib.sqlalchemy.models import (
    Base,
    ContractModel,
    StorageBoxModel,
    UTCDateTime,
)


def test_tables_are_prefixed() -> None:
    assert all(name.startswith("reservation_") for name in Base.metadata.tables)


def test_utc_datetime_bind_and_result() -> None:
    column_type = UTCDateTime()
    warsaw = datetime(2025, 6, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))

    stored = column_type.process_bind_param(warsaw, dialect=None)
    assert stored == datetime(2025, 6, 1, 10, 0)
    assert stored.tzinfo is None

    loaded = column_type.process_result_value(stored, dialect=None)
    assert loaded == warsaw
    assert loaded.tzinfo is UTC

    assert column_type.process_bind_param(None, dialect=None) is None
    assert column_type.process_result_value(None, dialect=None) is None


async def test_storage_box_gets_id_and_version(async_session_factory) -> None:
    async with async_session_factory() as session:
        box = StorageBoxModel(
            code="PAR-1",
            location="Paris",
            size="M",
            price_per_day=Decimal("9.90"),
        )
        session.add(box)
        await session.commit()

        assert len(box.id) == 36
        assert box.status == "AVAILABLE"
        assert box.version == 1

        box.status = "MAINTENANCE"
        await session.commit()
        assert box.version == 2


async def test_contract_datetimes_round_trip_as_utc(
    async_session_factory,
) -> None:
    expires = datetime(2030, 1, 1, 8, 30, tzinfo=UTC)
    async with async_session_factory() as session:
        session.add(
            ContractModel(
                id="c-1",
                merchant_id="m-1",
                title="T",
                content="C",
                expires_at=expires,
            )
        )
        await session.commit()

    async with async_session_factory() as session:
        raw = await session.execute(
            text("SELECT expires_at FROM reservation_contracts")
        )
        assert "+" not in str(raw.scalar_one())

        contract = (
            await session.execute(select(ContractModel))
        ).scalar_one()
        assert contract.expires_at == expires
        assert contract.currency == "EUR"
        assert contract.status == "DRAFT"
