"""Distance estimation between city keys."""

from __future__ import annotations

import logging
import math
import random
from typing import Protocol, runtime_checkable

from fastapi_reservations.config import ReservationsConfig
from fastapi_reservations.geocoding import HUB_DISTANCES, extract_city_key

logger = logging.getLogger(__name__)


def _build_symmetric_table(
    hubs: dict[str, dict[str, int]],
) -> dict[str, dict[str, int]]:
    table: dict[str, dict[str, int]] = {}
    for origin, destinations in hubs.items():
        for destination, km in destinations.items():
            table.setdefault(origin, {})[destination] = km
            table.setdefault(destination, {}).setdefault(origin, km)
    return table


CITY_DISTANCES: dict[str, dict[str, int]] = _build_symmetric_table(
    HUB_DISTANCES
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def mean_distance(city: str) -> float:
    """Mean of the known distances from ``city``."""
    distances = CITY_DISTANCES[city].values()
    return sum(distances) / len(distances)


@runtime_checkable
class RouteEstimate(Protocol):
    """Strategy for routes missing from the distance table."""

    def from_known_city(self, city: str) -> int: ...

    def unknown(self) -> int: ...


class AverageRouteEstimate:
    """Deterministic estimate: mean distance of the known endpoint."""

    def __init__(self, unknown_route_km: int = 250) -> None:
        self.unknown_route_km = unknown_route_km

    def from_known_city(self, city: str) -> int:
        return round_half_up(mean_distance(city))

    def unknown(self) -> int:
        return self.unknown_route_km


class JitteredRouteEstimate:
    """Randomised estimate for unknown routes.

    The mean distance of the known endpoint is scaled by a factor in
    [0.5, 1.5); with no known endpoint a value in [50, 450] is drawn.
    Pass a seeded ``random.Random`` for reproducible prices.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()

    def from_known_city(self, city: str) -> int:
        return round_half_up(mean_distance(city) * (0.5 + self.rng.random()))

    def unknown(self) -> int:
        return round_half_up(self.rng.uniform(50, 450))


def route_estimate_from_config(config: ReservationsConfig) -> RouteEstimate:
    if config.distance_mode == "jitter":
        return JitteredRouteEstimate(random.Random(config.distance_seed))
    return AverageRouteEstimate(config.unknown_route_km)


class DistanceEstimator:
    """Resolve a road distance in km between two city keys."""

    def __init__(
        self,
        route_estimate: RouteEstimate | None = None,
        *,
        error_km: int = 200,
    ) -> None:
        self.route_estimate = route_estimate or AverageRouteEstimate()
        self.error_km = error_km

    def estimate(self, origin: str, destination: str) -> int:
        """Return a positive distance; never raises."""
        try:
            km = self._resolve(origin, destination)
        except Exception:
            logger.warning(
                "Distance estimate failed for %r -> %r, using %d km",
                origin,
                destination,
                self.error_km,
                exc_info=True,
            )
            return self.error_km
        return max(km, 1)

    def estimate_addresses(
        self, pickup_address: str | None, delivery_address: str | None
    ) -> tuple[str, str, int]:
        """Geocode both addresses and estimate the distance between them."""
        origin = extract_city_key(pickup_address)
        destination = extract_city_key(delivery_address)
        return origin, destination, self.estimate(origin, destination)

    def _resolve(self, origin: str, destination: str) -> int:
        if origin and destination:
            direct = CITY_DISTANCES.get(origin, {}).get(destination)
            if direct is not None:
                return direct
            reverse = CITY_DISTANCES.get(destination, {}).get(origin)
            if reverse is not None:
                return reverse

        if origin in CITY_DISTANCES:
            logger.debug("Estimating unknown route from %s", origin)
            return self.route_estimate.from_known_city(origin)
        if destination in CITY_DISTANCES:
            logger.debug("Estimating unknown route to %s", destination)
            return self.route_estimate.from_known_city(destination)
        return self.route_estimate.unknown()
