"""Service booking endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from fastapi_reservations.bookings import BookingFlow
from fastapi_reservations.dependencies import get_actor, get_booking_flow
from fastapi_reservations.schemas import (
    BookingResponse,
    CreateBookingRequest,
    DeletedResponse,
    RescheduleRequest,
    ReviewRequest,
    TransitionRequest,
    UpdateBookingRequest,
)
from fastapi_reservations.types import Actor

router = APIRouter(tags=["bookings"])


@router.post("/bookings", response_model=BookingResponse, status_code=201)
async def create_booking(
    body: CreateBookingRequest,
    actor: Actor = Depends(get_actor),
    flow: BookingFlow = Depends(get_booking_flow),
) -> BookingResponse:
    """Book a service; rejected with 409 when the provider is busy."""
    booking = await flow.create_booking(
        actor,
        service_id=body.service_id,
        scheduled_at=body.scheduled_at,
        duration=body.duration,
        notes=body.notes,
        address=body.address,
    )
    return BookingResponse.model_validate(booking)


@router.get("/bookings", response_model=list[BookingResponse])
async def list_bookings(
    status: str | None = None,
    customer_id: str | None = None,
    provider_id: str | None = None,
    actor: Actor = Depends(get_actor),
    flow: BookingFlow = Depends(get_booking_flow),
) -> list[BookingResponse]:
    bookings = await flow.list_bookings(
        actor,
        status=status,
        customer_id=customer_id,
        provider_id=provider_id,
    )
    return [BookingResponse.model_validate(b) for b in bookings]


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    flow: BookingFlow = Depends(get_booking_flow),
) -> BookingResponse:
    booking = await flow.get_booking(actor, booking_id)
    return BookingResponse.model_validate(booking)


@router.post(
    "/bookings/{booking_id}/transitions", response_model=BookingResponse
)
async def transition_booking(
    booking_id: str,
    body: TransitionRequest,
    actor: Actor = Depends(get_actor),
    flow: BookingFlow = Depends(get_booking_flow),
) -> BookingResponse:
    booking = await flow.transition(actor, booking_id, body.target_status)
    return BookingResponse.model_validate(booking)


@router.post(
    "/bookings/{booking_id}/reschedule", response_model=BookingResponse
)
async def reschedule_booking(
    booking_id: str,
    body: RescheduleRequest,
    actor: Actor = Depends(get_actor),
    flow: BookingFlow = Depends(get_booking_flow),
) -> BookingResponse:
    booking = await flow.reschedule(actor, booking_id, body.scheduled_at)
    return BookingResponse.model_validate(booking)


@router.post("/bookings/{booking_id}/review", response_model=BookingResponse)
async def review_booking(
    booking_id: str,
    body: ReviewRequest,
    actor: Actor = Depends(get_actor),
    flow: BookingFlow = Depends(get_booking_flow),
) -> BookingResponse:
    booking = await flow.review(
        actor, booking_id, rating=body.rating, review=body.review
    )
    return BookingResponse.model_validate(booking)


@router.patch("/bookings/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: str,
    body: UpdateBookingRequest,
    actor: Actor = Depends(get_actor),
    flow: BookingFlow = Depends(get_booking_flow),
) -> BookingResponse:
    booking = await flow.update_details(
        actor, booking_id, **body.model_dump(exclude_unset=True)
    )
    return BookingResponse.model_validate(booking)


@router.delete("/bookings/{booking_id}", response_model=DeletedResponse)
async def delete_booking(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    flow: BookingFlow = Depends(get_booking_flow),
) -> DeletedResponse:
    await flow.delete_booking(actor, booking_id)
    return DeletedResponse(id=booking_id)
