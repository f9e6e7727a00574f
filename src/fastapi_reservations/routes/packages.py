"""Package pricing endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from fastapi_reservations.dependencies import get_actor, get_package_flow
from fastapi_reservations.packages import PackageFlow
from fastapi_reservations.schemas import (
    CreatePackageRequest,
    DeletedResponse,
    PackageResponse,
    QuoteRequest,
    QuoteResponse,
    RecalculatePackageRequest,
)
from fastapi_reservations.types import Actor

router = APIRouter(tags=["packages"])


@router.post("/packages/quote", response_model=QuoteResponse)
async def quote_package(
    body: QuoteRequest,
    flow: PackageFlow = Depends(get_package_flow),
) -> QuoteResponse:
    """Estimate a shipment price without storing anything."""
    quote = flow.quote(
        pickup_address=body.pickup_address,
        delivery_address=body.delivery_address,
        weight=body.weight,
        dimensions=body.dimensions,
    )
    return QuoteResponse.from_quote(quote)


@router.post("/packages", response_model=PackageResponse, status_code=201)
async def create_package(
    body: CreatePackageRequest,
    actor: Actor = Depends(get_actor),
    flow: PackageFlow = Depends(get_package_flow),
) -> PackageResponse:
    package, quote = await flow.create_package(
        actor,
        pickup_address=body.pickup_address,
        delivery_address=body.delivery_address,
        weight=body.weight,
        dimensions=body.dimensions,
    )
    return PackageResponse.from_package(package, quote)


@router.get("/packages/{package_id}", response_model=PackageResponse)
async def get_package(
    package_id: str,
    actor: Actor = Depends(get_actor),
    flow: PackageFlow = Depends(get_package_flow),
) -> PackageResponse:
    package = await flow.get_package(actor, package_id)
    return PackageResponse.from_package(package)


@router.post(
    "/packages/{package_id}/recalculate", response_model=PackageResponse
)
async def recalculate_package(
    package_id: str,
    body: RecalculatePackageRequest,
    actor: Actor = Depends(get_actor),
    flow: PackageFlow = Depends(get_package_flow),
) -> PackageResponse:
    """Reprice a package after its weight, size or addresses changed."""
    package, quote = await flow.recalculate(
        actor, package_id, **body.model_dump(exclude_unset=True)
    )
    return PackageResponse.from_package(package, quote)


@router.delete("/packages/{package_id}", response_model=DeletedResponse)
async def delete_package(
    package_id: str,
    actor: Actor = Depends(get_actor),
    flow: PackageFlow = Depends(get_package_flow),
) -> DeletedResponse:
    await flow.delete_package(actor, package_id)
    return DeletedResponse(id=package_id)
