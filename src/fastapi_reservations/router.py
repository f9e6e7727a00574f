"""Router factory for fastapi-reservations."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI

from fastapi_reservations.config import ReservationsConfig
from fastapi_reservations.dependencies import HeaderActorResolver
from fastapi_reservations.distance import (
    RouteEstimate,
    route_estimate_from_config,
)
from fastapi_reservations.exceptions import register_exception_handlers
from fastapi_reservations.protocols import ActorResolver, ReservationStore
from fastapi_reservations.routes.bookings import router as bookings_router
from fastapi_reservations.routes.contracts import router as contracts_router
from fastapi_reservations.routes.packages import router as packages_router
from fastapi_reservations.routes.rentals import router as rentals_router
from fastapi_reservations.routes.services import router as services_router


def create_reservations_router(
    *,
    config: ReservationsConfig,
    store: ReservationStore,
    actor_resolver: ActorResolver | None = None,
    route_estimate: RouteEstimate | None = None,
) -> APIRouter:
    """Create a configured API router."""
    actual_resolver = actor_resolver or HeaderActorResolver()
    actual_estimate = route_estimate or route_estimate_from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        app.state.reservations_config = config
        app.state.reservations_store = store
        app.state.reservations_actor_resolver = actual_resolver
        app.state.reservations_route_estimate = actual_estimate
        register_exception_handlers(app)
        yield

    router = APIRouter(lifespan=lifespan)
    router.include_router(packages_router)
    router.include_router(services_router)
    router.include_router(bookings_router)
    router.include_router(rentals_router)
    router.include_router(contracts_router)
    return router
