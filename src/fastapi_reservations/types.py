"""Value types shared by the flows and the HTTP adapter."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from fastapi_reservations.enums import Role, SizeClass


@dataclass(frozen=True)
class Actor:
    """Authenticated caller as reported by the auth layer."""

    id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class PriceQuote:
    """Result of pricing a shipment.

    ``error`` is set when pricing fell back to the minimum price.
    """

    price: Decimal
    distance_km: int
    size_class: SizeClass
    breakdown: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class RentalState:
    """A rental together with the box status mirrored from it."""

    rental: Any
    storage_box: Any
