"""Reservation engine configuration."""

from decimal import Decimal
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_size_multipliers() -> dict[str, Decimal]:
    return {
        "S": Decimal("1"),
        "M": Decimal("1.2"),
        "L": Decimal("1.5"),
        "XL": Decimal("2"),
        "XXL": Decimal("2.5"),
        "XXXL": Decimal("3"),
    }


class ReservationsConfig(BaseSettings):
    """Runtime config for pricing, scheduling and distance estimation."""

    model_config = SettingsConfigDict(env_prefix="RESERVATIONS_")

    rate_per_km: Decimal = Decimal("0.5")
    rate_per_kg: Decimal = Decimal("2")
    minimum_price: Decimal = Decimal("5")
    size_multipliers: dict[str, Decimal] = Field(
        default_factory=_default_size_multipliers
    )

    default_booking_duration: int = Field(default=60, gt=0)

    distance_mode: Literal["average", "jitter"] = "average"
    distance_seed: int | None = None
    unknown_route_km: int = Field(default=250, gt=0)
    distance_error_km: int = Field(default=200, gt=0)

    default_currency: str = "EUR"
