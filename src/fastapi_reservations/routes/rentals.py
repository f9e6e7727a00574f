"""Storage box and rental endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from fastapi_reservations.dependencies import get_actor, get_rental_flow
from fastapi_reservations.rentals import RentalFlow
from fastapi_reservations.schemas import (
    CreateRentalRequest,
    CreateStorageBoxRequest,
    RentalResponse,
    StorageBoxResponse,
    TransitionRequest,
    UpdateRentalRequest,
)
from fastapi_reservations.types import Actor, RentalState

router = APIRouter(tags=["rentals"])


def _rental_response(flow: RentalFlow, state: RentalState) -> RentalResponse:
    days, running_cost = flow.running_cost(state.rental, state.storage_box)
    return RentalResponse.from_state(
        state.rental,
        state.storage_box,
        days=days,
        running_cost=running_cost,
    )


@router.post(
    "/storage-boxes", response_model=StorageBoxResponse, status_code=201
)
async def create_storage_box(
    body: CreateStorageBoxRequest,
    actor: Actor = Depends(get_actor),
    flow: RentalFlow = Depends(get_rental_flow),
) -> StorageBoxResponse:
    box = await flow.create_storage_box(
        actor,
        code=body.code,
        location=body.location,
        size=body.size,
        price_per_day=body.price_per_day,
    )
    return StorageBoxResponse.model_validate(box)


@router.get("/storage-boxes", response_model=list[StorageBoxResponse])
async def list_storage_boxes(
    status: str | None = None,
    actor: Actor = Depends(get_actor),
    flow: RentalFlow = Depends(get_rental_flow),
) -> list[StorageBoxResponse]:
    boxes = await flow.list_storage_boxes(status=status)
    return [StorageBoxResponse.model_validate(box) for box in boxes]


@router.post(
    "/storage-boxes/{box_id}/maintenance", response_model=StorageBoxResponse
)
async def start_maintenance(
    box_id: str,
    actor: Actor = Depends(get_actor),
    flow: RentalFlow = Depends(get_rental_flow),
) -> StorageBoxResponse:
    box = await flow.set_maintenance(actor, box_id)
    return StorageBoxResponse.model_validate(box)


@router.delete(
    "/storage-boxes/{box_id}/maintenance", response_model=StorageBoxResponse
)
async def end_maintenance(
    box_id: str,
    actor: Actor = Depends(get_actor),
    flow: RentalFlow = Depends(get_rental_flow),
) -> StorageBoxResponse:
    box = await flow.end_maintenance(actor, box_id)
    return StorageBoxResponse.model_validate(box)


@router.post("/rentals", response_model=RentalResponse, status_code=201)
async def create_rental(
    body: CreateRentalRequest,
    actor: Actor = Depends(get_actor),
    flow: RentalFlow = Depends(get_rental_flow),
) -> RentalResponse:
    """Rent a box; rejected with 409 when it is already taken."""
    state = await flow.create_rental(
        actor,
        storage_box_id=body.storage_box_id,
        start_date=body.start_date,
        end_date=body.end_date,
        notes=body.notes,
    )
    return RentalResponse.from_state(state.rental, state.storage_box)


@router.get("/rentals", response_model=list[RentalResponse])
async def list_rentals(
    status: str | None = None,
    storage_box_id: str | None = None,
    user_id: str | None = None,
    actor: Actor = Depends(get_actor),
    flow: RentalFlow = Depends(get_rental_flow),
) -> list[RentalResponse]:
    states = await flow.list_rentals(
        actor,
        status=status,
        storage_box_id=storage_box_id,
        user_id=user_id,
    )
    return [_rental_response(flow, state) for state in states]


@router.get("/rentals/{rental_id}", response_model=RentalResponse)
async def get_rental(
    rental_id: str,
    actor: Actor = Depends(get_actor),
    flow: RentalFlow = Depends(get_rental_flow),
) -> RentalResponse:
    state = await flow.get_rental(actor, rental_id)
    return _rental_response(flow, state)


@router.post("/rentals/{rental_id}/transitions", response_model=RentalResponse)
async def transition_rental(
    rental_id: str,
    body: TransitionRequest,
    actor: Actor = Depends(get_actor),
    flow: RentalFlow = Depends(get_rental_flow),
) -> RentalResponse:
    state = await flow.transition(actor, rental_id, body.target_status)
    return RentalResponse.from_state(state.rental, state.storage_box)


@router.patch("/rentals/{rental_id}", response_model=RentalResponse)
async def update_rental(
    rental_id: str,
    body: UpdateRentalRequest,
    actor: Actor = Depends(get_actor),
    flow: RentalFlow = Depends(get_rental_flow),
) -> RentalResponse:
    state = await flow.update_rental(
        actor, rental_id, **body.model_dump(exclude_unset=True)
    )
    return RentalResponse.from_state(state.rental, state.storage_box)


@router.delete("/rentals/{rental_id}", response_model=StorageBoxResponse)
async def delete_rental(
    rental_id: str,
    actor: Actor = Depends(get_actor),
    flow: RentalFlow = Depends(get_rental_flow),
) -> StorageBoxResponse:
    """Delete a rental and return the box it was holding."""
    box = await flow.delete_rental(actor, rental_id)
    return StorageBoxResponse.model_validate(box)
