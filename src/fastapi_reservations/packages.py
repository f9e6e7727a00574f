"""Shipment packages priced on submission."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from fastapi_reservations.exceptions import (
    PermissionDeniedError,
    ValidationError,
)
from fastapi_reservations.pricing import MINIMUM_WEIGHT_KG, PackagePricer
from fastapi_reservations.protocols import Package, ReservationStore
from fastapi_reservations.transitions import parties_for
from fastapi_reservations.types import Actor, PriceQuote

logger = logging.getLogger(__name__)

PRICING_INPUTS = frozenset(
    {"weight", "dimensions", "pickup_address", "delivery_address"}
)


def normalize_weight(weight: Any) -> Decimal:
    """Weight in kg, floored to the billable minimum."""
    if weight is None:
        return MINIMUM_WEIGHT_KG
    try:
        value = Decimal(str(weight))
    except InvalidOperation as exc:
        raise ValidationError(f"Invalid weight {weight!r}") from exc
    if not value.is_finite() or value < 0:
        raise ValidationError("Weight must be a positive number")
    return max(value, MINIMUM_WEIGHT_KG)


def _ensure_owner(actor: Actor, package: Package) -> None:
    if not parties_for(actor, customer=package.owner_id):
        raise PermissionDeniedError("You can only manage your own packages")


class PackageFlow:
    """Prices and stores shipment packages."""

    def __init__(
        self, store: ReservationStore, pricer: PackagePricer | None = None
    ) -> None:
        self.store = store
        self.pricer = pricer or PackagePricer()

    def quote(
        self,
        *,
        pickup_address: str | None,
        delivery_address: str | None,
        weight: Any,
        dimensions: str | None = None,
    ) -> PriceQuote:
        return self.pricer.quote(
            pickup_address=pickup_address,
            delivery_address=delivery_address,
            weight=weight,
            dimensions=dimensions,
        )

    async def create_package(
        self,
        actor: Actor,
        *,
        pickup_address: str,
        delivery_address: str,
        weight: Any,
        dimensions: str | None = None,
    ) -> tuple[Package, PriceQuote]:
        if not pickup_address or not delivery_address:
            raise ValidationError(
                "Pickup and delivery addresses are required"
            )
        weight_kg = normalize_weight(weight)
        quote = self.quote(
            pickup_address=pickup_address,
            delivery_address=delivery_address,
            weight=weight_kg,
            dimensions=dimensions,
        )
        async with self.store.transaction() as unit:
            package = await unit.create_package(
                owner_id=actor.id,
                weight=weight_kg,
                dimensions=dimensions,
                size_class=quote.size_class,
                pickup_address=pickup_address,
                delivery_address=delivery_address,
                distance_km=quote.distance_km,
                price=quote.price,
            )
        logger.info(
            "Package %s priced at %s for %d km",
            package.id,
            quote.price,
            quote.distance_km,
        )
        return package, quote

    async def get_package(self, actor: Actor, package_id: str) -> Package:
        async with self.store.transaction() as unit:
            package = await unit.get_package(package_id)
            _ensure_owner(actor, package)
        return package

    async def recalculate(
        self, actor: Actor, package_id: str, **changes: Any
    ) -> tuple[Package, PriceQuote | None]:
        """Apply changed pricing inputs and reprice.

        The stored price is left alone when no input actually changed;
        the returned quote is then None.
        """
        unknown = set(changes) - PRICING_INPUTS
        if unknown:
            raise ValidationError(
                f"Fields cannot be edited: {', '.join(sorted(unknown))}"
            )
        if "weight" in changes:
            changes["weight"] = normalize_weight(changes["weight"])
        for name in ("pickup_address", "delivery_address"):
            if name in changes and not changes[name]:
                raise ValidationError(
                    "Pickup and delivery addresses are required"
                )

        async with self.store.transaction() as unit:
            package = await unit.get_package(package_id)
            _ensure_owner(actor, package)
            changed = {
                name: value
                for name, value in changes.items()
                if getattr(package, name) != value
            }
            if not changed:
                return package, None

            for name, value in changed.items():
                setattr(package, name, value)
            quote = self.quote(
                pickup_address=package.pickup_address,
                delivery_address=package.delivery_address,
                weight=package.weight,
                dimensions=package.dimensions,
            )
            package.size_class = quote.size_class
            package.distance_km = quote.distance_km
            package.price = quote.price

        logger.info(
            "Package %s repriced at %s after %s changed",
            package_id,
            quote.price,
            ", ".join(sorted(changed)),
        )
        return package, quote

    async def delete_package(self, actor: Actor, package_id: str) -> None:
        async with self.store.transaction() as unit:
            package = await unit.get_package(package_id)
            _ensure_owner(actor, package)
            await unit.delete_package(package)
