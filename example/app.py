"""FastAPI example app demonstrating fastapi-reservations."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from decimal import Decimal

from fastapi import FastAPI
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from fastapi_reservations import (
    ReservationsConfig,
    create_reservations_router,
    register_exception_handlers,
)
from fastapi_reservations.contrib.sqlalchemy.models import (
    Base,
    ServiceModel,
    StorageBoxModel,
)
from fastapi_reservations.contrib.sqlalchemy.repository import (
    SQLAlchemyReservationStore,
)

logger = logging.getLogger(__name__)

# --- Database setup ---

DATABASE_URL = "sqlite+aiosqlite:///./example.db"
engine = create_async_engine(DATABASE_URL, echo=False)
async_session = async_sessionmaker(engine, class_=AsyncSession)

# --- Library integration ---

config = ReservationsConfig()
store = SQLAlchemyReservationStore(async_session)

reservations_router = create_reservations_router(config=config, store=store)

DEMO_SERVICES = [
    {
        "id": "svc-moving",
        "provider_id": "provider-1",
        "name": "Moving help",
        "price": Decimal("80.00"),
        "duration": 120,
    },
    {
        "id": "svc-cleaning",
        "provider_id": "provider-2",
        "name": "Apartment cleaning",
        "price": Decimal("45.00"),
        "duration": 90,
    },
]

DEMO_BOXES = [
    {
        "code": "PAR-001",
        "location": "Paris 11e",
        "size": "M",
        "price_per_day": Decimal("4.50"),
    },
    {
        "code": "LYO-001",
        "location": "Lyon 3e",
        "size": "XL",
        "price_per_day": Decimal("9.00"),
    },
]


async def seed_demo_data(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """Insert demo services and boxes into an empty database."""
    async with session_factory() as session:
        count = await session.scalar(select(func.count(ServiceModel.id)))
        if count:
            return
        session.add_all(ServiceModel(**fields) for fields in DEMO_SERVICES)
        session.add_all(StorageBoxModel(**fields) for fields in DEMO_BOXES)
        await session.commit()
    logger.info(
        "Seeded %d services and %d storage boxes",
        len(DEMO_SERVICES),
        len(DEMO_BOXES),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await seed_demo_data(async_session)
    yield
    await engine.dispose()


app = FastAPI(
    title="fastapi-reservations demo",
    lifespan=lifespan,
)
register_exception_handlers(app)
app.include_router(reservations_router, prefix="/api")


@app.get("/")
async def home() -> dict[str, object]:
    """List the seeded catalogue so callers know what to book."""
    async with async_session() as session:
        services = (await session.execute(select(ServiceModel))).scalars()
        boxes = (await session.execute(select(StorageBoxModel))).scalars()
        return {
            "services": [
                {"id": s.id, "name": s.name, "price": str(s.price)}
                for s in services
            ],
            "storage_boxes": [
                {"id": b.id, "code": b.code, "status": b.status}
                for b in boxes
            ],
        }
