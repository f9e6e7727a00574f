"""Dependency providers for request handlers."""

from __future__ import annotations

from fastapi import HTTPException, Request

from fastapi_reservations.bookings import BookingFlow
from fastapi_reservations.config import ReservationsConfig
from fastapi_reservations.contracts import ContractFlow
from fastapi_reservations.distance import DistanceEstimator, RouteEstimate
from fastapi_reservations.enums import Role
from fastapi_reservations.packages import PackageFlow
from fastapi_reservations.pricing import PackagePricer
from fastapi_reservations.protocols import ActorResolver, ReservationStore
from fastapi_reservations.rentals import RentalFlow
from fastapi_reservations.scheduling import ConflictChecker
from fastapi_reservations.services import ServiceFlow
from fastapi_reservations.types import Actor

ACTOR_ID_HEADER = "x-actor-id"
ACTOR_ROLE_HEADER = "x-actor-role"


class HeaderActorResolver:
    """Reads the actor set by an upstream auth proxy from headers."""

    async def resolve(self, request: Request) -> Actor:
        actor_id = request.headers.get(ACTOR_ID_HEADER)
        role = request.headers.get(ACTOR_ROLE_HEADER, "")
        if not actor_id:
            raise HTTPException(
                status_code=401, detail="Authentication required"
            )
        try:
            return Actor(id=actor_id, role=Role(role.upper()))
        except ValueError as exc:
            raise HTTPException(
                status_code=401, detail=f"Unknown role {role!r}"
            ) from exc


def get_config(request: Request) -> ReservationsConfig:
    """Read config from FastAPI app state."""
    return request.app.state.reservations_config


def get_store(request: Request) -> ReservationStore:
    """Read the reservation store from FastAPI app state."""
    return request.app.state.reservations_store


def get_actor_resolver(request: Request) -> ActorResolver:
    return request.app.state.reservations_actor_resolver


async def get_actor(request: Request) -> Actor:
    """Resolve the calling actor for the current request."""
    return await get_actor_resolver(request).resolve(request)


def get_pricer(request: Request) -> PackagePricer:
    """Create a PackagePricer using the configured route estimate."""
    config = get_config(request)
    route_estimate: RouteEstimate = request.app.state.reservations_route_estimate
    return PackagePricer(
        config,
        distance_estimator=DistanceEstimator(
            route_estimate, error_km=config.distance_error_km
        ),
    )


def get_package_flow(request: Request) -> PackageFlow:
    return PackageFlow(get_store(request), get_pricer(request))


def get_service_flow(request: Request) -> ServiceFlow:
    return ServiceFlow(get_store(request))


def get_booking_flow(request: Request) -> BookingFlow:
    config = get_config(request)
    return BookingFlow(
        get_store(request),
        checker=ConflictChecker(
            default_duration=config.default_booking_duration
        ),
    )


def get_rental_flow(request: Request) -> RentalFlow:
    return RentalFlow(get_store(request))


def get_contract_flow(request: Request) -> ContractFlow:
    return ContractFlow(
        get_store(request),
        default_currency=get_config(request).default_currency,
    )
