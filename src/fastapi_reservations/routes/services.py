"""Service catalogue endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from fastapi_reservations.dependencies import get_actor, get_service_flow
from fastapi_reservations.schemas import (
    CreateServiceRequest,
    DeletedResponse,
    ServiceResponse,
    UpdateServiceRequest,
)
from fastapi_reservations.services import ServiceFlow
from fastapi_reservations.types import Actor

router = APIRouter(tags=["services"])


@router.post("/services", response_model=ServiceResponse, status_code=201)
async def create_service(
    body: CreateServiceRequest,
    actor: Actor = Depends(get_actor),
    flow: ServiceFlow = Depends(get_service_flow),
) -> ServiceResponse:
    service = await flow.create_service(
        actor, name=body.name, price=body.price, duration=body.duration
    )
    return ServiceResponse.model_validate(service)


@router.get("/services", response_model=list[ServiceResponse])
async def list_services(
    provider_id: str | None = None,
    include_inactive: bool = False,
    flow: ServiceFlow = Depends(get_service_flow),
) -> list[ServiceResponse]:
    """Public catalogue; inactive services are hidden unless asked for."""
    services = await flow.list_services(
        provider_id=provider_id, include_inactive=include_inactive
    )
    return [ServiceResponse.model_validate(s) for s in services]


@router.get("/services/{service_id}", response_model=ServiceResponse)
async def get_service(
    service_id: str,
    flow: ServiceFlow = Depends(get_service_flow),
) -> ServiceResponse:
    service = await flow.get_service(service_id)
    return ServiceResponse.model_validate(service)


@router.patch("/services/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: str,
    body: UpdateServiceRequest,
    actor: Actor = Depends(get_actor),
    flow: ServiceFlow = Depends(get_service_flow),
) -> ServiceResponse:
    service = await flow.update_service(
        actor, service_id, **body.model_dump(exclude_unset=True)
    )
    return ServiceResponse.model_validate(service)


@router.delete("/services/{service_id}", response_model=DeletedResponse)
async def delete_service(
    service_id: str,
    actor: Actor = Depends(get_actor),
    flow: ServiceFlow = Depends(get_service_flow),
) -> DeletedResponse:
    await flow.delete_service(actor, service_id)
    return DeletedResponse(id=service_id)
