"""Shipment pricing from distance, weight and volumetric size."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from fastapi_reservations.config import ReservationsConfig
from fastapi_reservations.distance import (
    DistanceEstimator,
    route_estimate_from_config,
)
from fastapi_reservations.enums import SizeClass
from fastapi_reservations.exceptions import ComputationFallbackError
from fastapi_reservations.types import PriceQuote

logger = logging.getLogger(__name__)

# Upper volume bound (cm³, inclusive) per size class; XXXL is unbounded.
SIZE_THRESHOLDS: tuple[tuple[SizeClass, int], ...] = (
    (SizeClass.S, 6_000),
    (SizeClass.M, 60_000),
    (SizeClass.L, 240_000),
    (SizeClass.XL, 768_000),
    (SizeClass.XXL, 1_500_000),
)

DEFAULT_SIZE = SizeClass.M
MINIMUM_DISTANCE_KM = Decimal("1")
MINIMUM_WEIGHT_KG = Decimal("0.5")
CENTS = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def parse_dimensions(dimensions: str | None) -> tuple[float, float, float] | None:
    """Parse an ``"LxWxH"`` string in cm, or return None."""
    if not dimensions:
        return None
    parts = dimensions.lower().split("x")
    if len(parts) != 3:
        return None
    try:
        length, width, height = (float(part.strip()) for part in parts)
    except ValueError:
        return None
    if any(value != value for value in (length, width, height)):
        return None
    return length, width, height


def classify_volume(volume: float) -> SizeClass:
    for size_class, max_volume in SIZE_THRESHOLDS:
        if volume <= max_volume:
            return size_class
    return SizeClass.XXXL


def classify_size(dimensions: str | None) -> SizeClass:
    """Size class for an ``"LxWxH"`` string; M when missing or invalid."""
    parsed = parse_dimensions(dimensions)
    if parsed is None:
        return DEFAULT_SIZE
    length, width, height = parsed
    return classify_volume(length * width * height)


class PackagePricer:
    """Prices shipments; never raises for malformed input."""

    def __init__(
        self,
        config: ReservationsConfig | None = None,
        *,
        distance_estimator: DistanceEstimator | None = None,
    ) -> None:
        self.config = config or ReservationsConfig()
        self.distance_estimator = distance_estimator or DistanceEstimator(
            route_estimate_from_config(self.config),
            error_km=self.config.distance_error_km,
        )

    @property
    def minimum_price(self) -> Decimal:
        return _money(self.config.minimum_price)

    def price(
        self,
        *,
        distance: Any,
        weight: Any,
        dimensions: str | None = None,
    ) -> PriceQuote:
        """Price a parcel for a known distance.

        price = max(minimum, (distance * rate_km + weight * rate_kg)
        * size_multiplier), rounded to cents.
        """
        try:
            return self._price(distance, weight, dimensions)
        except Exception as exc:
            fallback = ComputationFallbackError(
                f"Pricing failed, minimum price applied: {exc}"
            )
            logger.warning("%s", fallback, exc_info=True)
            return PriceQuote(
                price=self.minimum_price,
                distance_km=0,
                size_class=DEFAULT_SIZE,
                breakdown={"minimum_price": self.minimum_price},
                error=str(exc) or exc.__class__.__name__,
            )

    def quote(
        self,
        *,
        pickup_address: str | None,
        delivery_address: str | None,
        weight: Any,
        dimensions: str | None = None,
    ) -> PriceQuote:
        """Geocode both addresses, estimate the distance and price it."""
        origin, destination, distance = (
            self.distance_estimator.estimate_addresses(
                pickup_address, delivery_address
            )
        )
        quote = self.price(
            distance=distance, weight=weight, dimensions=dimensions
        )
        breakdown = dict(quote.breakdown)
        breakdown["pickup_city"] = origin
        breakdown["delivery_city"] = destination
        return PriceQuote(
            price=quote.price,
            distance_km=quote.distance_km or distance,
            size_class=quote.size_class,
            breakdown=breakdown,
            error=quote.error,
        )

    def _price(
        self, distance: Any, weight: Any, dimensions: str | None
    ) -> PriceQuote:
        distance_km = max(Decimal(str(distance or 0)), MINIMUM_DISTANCE_KM)
        weight_kg = max(
            Decimal(str(weight or MINIMUM_WEIGHT_KG)), MINIMUM_WEIGHT_KG
        )
        if not (distance_km.is_finite() and weight_kg.is_finite()):
            raise ValueError("distance and weight must be finite")

        size_class = classify_size(dimensions)
        multiplier = Decimal(str(self.config.size_multipliers[size_class]))

        distance_price = distance_km * self.config.rate_per_km
        weight_price = weight_kg * self.config.rate_per_kg
        base_price = distance_price + weight_price
        size_adjusted = base_price * multiplier
        final = max(size_adjusted, self.config.minimum_price)

        return PriceQuote(
            price=_money(final),
            distance_km=int(distance_km.to_integral_value(ROUND_HALF_UP)),
            size_class=size_class,
            breakdown={
                "distance": distance_km,
                "weight": weight_kg,
                "size_multiplier": multiplier,
                "distance_price": _money(distance_price),
                "weight_price": _money(weight_price),
                "base_price": _money(base_price),
                "size_adjusted_price": _money(size_adjusted),
                "minimum_price": self.minimum_price,
            },
        )
