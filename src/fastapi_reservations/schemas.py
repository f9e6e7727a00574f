"""Pydantic request and response schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fastapi_reservations.types import PriceQuote


class _Response(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    @field_validator("status", "size_class", mode="before", check_fields=False)
    @classmethod
    def _enum_to_str(cls, value: Any) -> Any:
        return str(value) if isinstance(value, StrEnum) else value


# -- packages ---------------------------------------------------------------


class QuoteRequest(BaseModel):
    pickup_address: str | None = None
    delivery_address: str | None = None
    weight: Decimal | None = None
    dimensions: str | None = None


class CreatePackageRequest(BaseModel):
    pickup_address: str = Field(min_length=1)
    delivery_address: str = Field(min_length=1)
    weight: Decimal | None = None
    dimensions: str | None = None


class RecalculatePackageRequest(BaseModel):
    pickup_address: str | None = None
    delivery_address: str | None = None
    weight: Decimal | None = None
    dimensions: str | None = None


class QuoteResponse(BaseModel):
    price: Decimal
    distance_km: int
    size_class: str
    breakdown: dict[str, Any]
    error: str | None = None

    @classmethod
    def from_quote(cls, quote: PriceQuote) -> QuoteResponse:
        return cls(
            price=quote.price,
            distance_km=quote.distance_km,
            size_class=str(quote.size_class),
            breakdown=quote.breakdown,
            error=quote.error,
        )


class PackageResponse(_Response):
    id: str
    owner_id: str
    weight: Decimal
    dimensions: str | None
    size_class: str
    pickup_address: str
    delivery_address: str
    distance_km: int
    price: Decimal
    quote: QuoteResponse | None = None

    @classmethod
    def from_package(
        cls, package: Any, quote: PriceQuote | None = None
    ) -> PackageResponse:
        response = cls.model_validate(package)
        if quote is not None:
            response.quote = QuoteResponse.from_quote(quote)
        return response


# -- services ---------------------------------------------------------------


class CreateServiceRequest(BaseModel):
    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    duration: int | None = Field(default=None, gt=0)


class UpdateServiceRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    price: Decimal | None = Field(default=None, ge=0)
    duration: int | None = Field(default=None, gt=0)
    is_active: bool | None = None


class ServiceResponse(_Response):
    id: str
    provider_id: str
    name: str
    price: Decimal
    duration: int | None = None
    is_active: bool


# -- bookings ---------------------------------------------------------------


class CreateBookingRequest(BaseModel):
    service_id: str = Field(min_length=1)
    scheduled_at: datetime
    duration: int | None = Field(default=None, gt=0)
    notes: str | None = None
    address: str | None = None


class TransitionRequest(BaseModel):
    target_status: str


class RescheduleRequest(BaseModel):
    scheduled_at: datetime


class ReviewRequest(BaseModel):
    rating: int | None = None
    review: str | None = None


class UpdateBookingRequest(BaseModel):
    notes: str | None = None
    address: str | None = None


class BookingResponse(_Response):
    id: str
    service_id: str
    customer_id: str
    provider_id: str
    scheduled_at: datetime
    duration: int
    status: str
    total_amount: Decimal
    rating: int | None = None
    review: str | None = None
    notes: str | None = None
    address: str | None = None


# -- storage boxes and rentals ----------------------------------------------


class CreateStorageBoxRequest(BaseModel):
    code: str = Field(min_length=1)
    location: str = Field(min_length=1)
    size: str = Field(min_length=1)
    price_per_day: Decimal = Field(ge=0)


class StorageBoxResponse(_Response):
    id: str
    code: str
    location: str
    size: str
    price_per_day: Decimal
    status: str


class CreateRentalRequest(BaseModel):
    storage_box_id: str = Field(min_length=1)
    start_date: datetime
    end_date: datetime | None = None
    notes: str | None = None


class UpdateRentalRequest(BaseModel):
    end_date: datetime | None = None
    notes: str | None = None


class RentalResponse(_Response):
    id: str
    user_id: str
    storage_box_id: str
    start_date: datetime
    end_date: datetime | None
    status: str
    total_cost: Decimal | None
    notes: str | None = None
    days: int | None = None
    running_cost: Decimal | None = None
    storage_box: StorageBoxResponse

    @classmethod
    def from_state(
        cls,
        rental: Any,
        storage_box: Any,
        *,
        days: int | None = None,
        running_cost: Decimal | None = None,
    ) -> RentalResponse:
        return cls(
            id=rental.id,
            user_id=rental.user_id,
            storage_box_id=rental.storage_box_id,
            start_date=rental.start_date,
            end_date=rental.end_date,
            status=str(rental.status),
            total_cost=rental.total_cost,
            notes=rental.notes,
            days=days,
            running_cost=running_cost,
            storage_box=StorageBoxResponse.model_validate(storage_box),
        )


# -- contracts --------------------------------------------------------------


class CreateContractRequest(BaseModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    terms: str | None = None
    value: Decimal | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    expires_at: datetime | None = None


class UpdateContractRequest(BaseModel):
    title: str | None = None
    content: str | None = None
    terms: str | None = None
    value: Decimal | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    expires_at: datetime | None = None


class ExpireContractsRequest(BaseModel):
    as_of: datetime | None = None


class ContractResponse(_Response):
    id: str
    merchant_id: str
    title: str
    content: str
    terms: str | None = None
    value: Decimal | None = None
    currency: str
    status: str
    expires_at: datetime | None = None
    signed_date: datetime | None = None


class DeletedResponse(BaseModel):
    id: str
    deleted: bool = True
