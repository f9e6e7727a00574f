"""Reservation and pricing engine with a FastAPI adapter."""

from typing import TYPE_CHECKING

__version__ = "0.1.0"

__all__ = [
    "Actor",
    "BookingFlow",
    "ContractFlow",
    "PackageFlow",
    "PackagePricer",
    "RentalFlow",
    "ReservationError",
    "ReservationStore",
    "ReservationsConfig",
    "ServiceFlow",
    "__version__",
    "create_reservations_router",
    "register_exception_handlers",
]

if TYPE_CHECKING:
    from fastapi_reservations.bookings import BookingFlow
    from fastapi_reservations.config import ReservationsConfig
    from fastapi_reservations.contracts import ContractFlow
    from fastapi_reservations.exceptions import (
        ReservationError,
        register_exception_handlers,
    )
    from fastapi_reservations.packages import PackageFlow
    from fastapi_reservations.pricing import PackagePricer
    from fastapi_reservations.protocols import ReservationStore
    from fastapi_reservations.rentals import RentalFlow
    from fastapi_reservations.router import create_reservations_router
    from fastapi_reservations.services import ServiceFlow
    from fastapi_reservations.types import Actor

_LAZY_IMPORTS = {
    "Actor": "fastapi_reservations.types",
    "BookingFlow": "fastapi_reservations.bookings",
    "ContractFlow": "fastapi_reservations.contracts",
    "PackageFlow": "fastapi_reservations.packages",
    "PackagePricer": "fastapi_reservations.pricing",
    "RentalFlow": "fastapi_reservations.rentals",
    "ReservationError": "fastapi_reservations.exceptions",
    "ReservationStore": "fastapi_reservations.protocols",
    "ReservationsConfig": "fastapi_reservations.config",
    "ServiceFlow": "fastapi_reservations.services",
    "create_reservations_router": "fastapi_reservations.router",
    "register_exception_handlers": "fastapi_reservations.exceptions",
}


def __getattr__(name: str):
    # Lazy imports to avoid loading FastAPI and all flows on package import.
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        raise AttributeError(
            f"module 'fastapi_reservations' has no attribute {name!r}"
        )
    from importlib import import_module

    return getattr(import_module(module_name), name)
