"""Storage box rentals and the box status mirrored from them.

:class:`RentalFlow` is the only writer of ``StorageBox.status``: a box is
RENTED exactly while one of its rentals is PENDING or ACTIVE, and an
administrator may park an idle box in MAINTENANCE.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi_reservations.enums import (
    LIVE_RENTAL_STATUSES,
    RentalStatus,
    StorageBoxStatus,
)
from fastapi_reservations.exceptions import (
    ConflictError,
    ForbiddenTransitionError,
    PermissionDeniedError,
    ValidationError,
)
from fastapi_reservations.protocols import (
    BoxRental,
    ReservationStore,
    ReservationUnit,
    StorageBox,
)
from fastapi_reservations.scheduling import as_utc, utcnow
from fastapi_reservations.transitions import (
    RENTAL_TRANSITIONS,
    Party,
    authorize,
    parties_for,
)
from fastapi_reservations.types import Actor, RentalState

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60
EDITABLE_RENTAL_FIELDS = frozenset({"end_date", "notes"})


def rental_days(start: datetime, end: datetime) -> int:
    """Started days between two instants, never negative."""
    elapsed = (as_utc(end) - as_utc(start)).total_seconds()
    return max(math.ceil(elapsed / SECONDS_PER_DAY), 0)


def rental_cost(
    start: datetime, end: datetime, price_per_day: Decimal
) -> Decimal:
    return rental_days(start, end) * Decimal(price_per_day)


def _require_admin(actor: Actor, action: str) -> None:
    if not actor.is_admin:
        raise PermissionDeniedError(f"Only administrators can {action}")


def _rental_parties(actor: Actor, rental: BoxRental) -> frozenset[Party]:
    parties = parties_for(actor, renter=rental.user_id)
    if not parties:
        raise PermissionDeniedError("You can only manage your own rentals")
    return parties


def _parse_status(value: str) -> RentalStatus:
    try:
        return RentalStatus(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown rental status {value!r}") from exc


class RentalFlow:
    """Creates rentals and keeps the rented box status consistent."""

    def __init__(
        self,
        store: ReservationStore,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.clock = clock

    # -- storage boxes -----------------------------------------------------

    async def create_storage_box(
        self,
        actor: Actor,
        *,
        code: str,
        location: str,
        size: str,
        price_per_day: Decimal,
    ) -> StorageBox:
        _require_admin(actor, "create storage boxes")
        if not code or not location or not size or price_per_day is None:
            raise ValidationError(
                "Code, location, size, and price per day are required"
            )
        if price_per_day < 0:
            raise ValidationError("Price per day must be positive")

        async with self.store.transaction() as unit:
            if await unit.find_storage_box_by_code(code) is not None:
                raise ConflictError(
                    "Storage box with this code already exists"
                )
            box = await unit.create_storage_box(
                code=code,
                location=location,
                size=size,
                price_per_day=Decimal(price_per_day),
                status=StorageBoxStatus.AVAILABLE,
            )
        logger.info("Storage box %s (%s) created", box.id, code)
        return box

    async def get_storage_box(self, box_id: str) -> StorageBox:
        async with self.store.transaction() as unit:
            return await unit.get_storage_box(box_id)

    async def list_storage_boxes(
        self, *, status: str | None = None
    ) -> list[StorageBox]:
        if status is not None:
            try:
                status = StorageBoxStatus(status)
            except ValueError as exc:
                raise ValidationError(
                    f"Unknown storage box status {status!r}"
                ) from exc
        async with self.store.transaction() as unit:
            return await unit.list_storage_boxes(status=status)

    async def set_maintenance(self, actor: Actor, box_id: str) -> StorageBox:
        """Take an idle box out of service."""
        _require_admin(actor, "put storage boxes in maintenance")
        async with self.store.transaction() as unit:
            box = await unit.get_storage_box(box_id)
            if box.status != StorageBoxStatus.AVAILABLE:
                raise ForbiddenTransitionError(
                    f"Cannot move storage box from {box.status} "
                    f"to {StorageBoxStatus.MAINTENANCE}",
                    kind="storage box",
                    current=box.status,
                    target=StorageBoxStatus.MAINTENANCE,
                )
            await self._ensure_no_live_rental(unit, box)
            self._mirror(box, StorageBoxStatus.MAINTENANCE)
        return box

    async def end_maintenance(self, actor: Actor, box_id: str) -> StorageBox:
        _require_admin(actor, "end storage box maintenance")
        async with self.store.transaction() as unit:
            box = await unit.get_storage_box(box_id)
            if box.status != StorageBoxStatus.MAINTENANCE:
                raise ForbiddenTransitionError(
                    f"Storage box {box.id} is not in maintenance",
                    kind="storage box",
                    current=box.status,
                    target=StorageBoxStatus.AVAILABLE,
                )
            self._mirror(box, StorageBoxStatus.AVAILABLE)
        return box

    # -- rentals -----------------------------------------------------------

    async def create_rental(
        self,
        actor: Actor,
        *,
        storage_box_id: str,
        start_date: datetime,
        end_date: datetime | None = None,
        notes: str | None = None,
    ) -> RentalState:
        """Claim an available box; the rental starts PENDING."""
        if not storage_box_id or start_date is None:
            raise ValidationError(
                "Storage box ID and start date are required"
            )
        start = as_utc(start_date)
        end = as_utc(end_date) if end_date is not None else None
        if start <= self.clock():
            raise ValidationError("Start date must be in the future")
        if end is not None and end <= start:
            raise ValidationError("End date must be after start date")

        async with self.store.transaction() as unit:
            box = await unit.get_storage_box(storage_box_id)
            if box.status != StorageBoxStatus.AVAILABLE:
                raise ConflictError("Storage box is not available for rental")
            await self._ensure_no_live_rental(unit, box)

            total_cost = (
                rental_cost(start, end, box.price_per_day)
                if end is not None
                else None
            )
            rental = await unit.create_rental(
                user_id=actor.id,
                storage_box_id=box.id,
                start_date=start,
                end_date=end,
                status=RentalStatus.PENDING,
                total_cost=total_cost,
                notes=notes,
            )
            self._mirror(box, StorageBoxStatus.RENTED)

        logger.info(
            "Rental %s created for storage box %s by %s",
            rental.id,
            box.id,
            actor.id,
        )
        return RentalState(rental=rental, storage_box=box)

    async def get_rental(self, actor: Actor, rental_id: str) -> RentalState:
        async with self.store.transaction() as unit:
            rental = await unit.get_rental(rental_id)
            _rental_parties(actor, rental)
            box = await unit.get_storage_box(rental.storage_box_id)
        return RentalState(rental=rental, storage_box=box)

    async def list_rentals(
        self,
        actor: Actor,
        *,
        status: str | None = None,
        storage_box_id: str | None = None,
        user_id: str | None = None,
    ) -> list[RentalState]:
        """Rentals visible to the actor; only admins see other users."""
        statuses = [_parse_status(status)] if status else None
        owner = user_id if actor.is_admin else actor.id
        async with self.store.transaction() as unit:
            rentals = await unit.list_rentals(
                storage_box_id=storage_box_id,
                user_id=owner,
                statuses=statuses,
            )
            boxes: dict[str, StorageBox] = {}
            for rental in rentals:
                if rental.storage_box_id not in boxes:
                    boxes[rental.storage_box_id] = await unit.get_storage_box(
                        rental.storage_box_id
                    )
        return [
            RentalState(rental=rental, storage_box=boxes[rental.storage_box_id])
            for rental in rentals
        ]

    def running_cost(
        self, rental: BoxRental, box: StorageBox
    ) -> tuple[int, Decimal]:
        """Days and cost so far; open rentals are billed up to now."""
        end = rental.end_date or self.clock()
        days = rental_days(rental.start_date, end)
        return days, days * Decimal(box.price_per_day)

    async def transition(
        self, actor: Actor, rental_id: str, target_status: str
    ) -> RentalState:
        target = _parse_status(target_status)
        async with self.store.transaction() as unit:
            rental = await unit.get_rental(rental_id)
            current = rental.status
            authorize(
                RENTAL_TRANSITIONS,
                kind="rental",
                current=current,
                target=target,
                parties=_rental_parties(actor, rental),
            )
            box = await unit.get_storage_box(rental.storage_box_id)
            if target == RentalStatus.COMPLETED and rental.end_date is None:
                now = self.clock()
                if now <= as_utc(rental.start_date):
                    raise ValidationError(
                        "Cannot complete a rental before its start date"
                    )
                rental.end_date = now
            rental.status = target

            if target == RentalStatus.COMPLETED:
                rental.total_cost = rental_cost(
                    rental.start_date, rental.end_date, box.price_per_day
                )
            if target in (RentalStatus.COMPLETED, RentalStatus.CANCELLED):
                self._mirror(box, StorageBoxStatus.AVAILABLE)

        logger.info(
            "Rental %s moved from %s to %s by %s",
            rental_id,
            current,
            target,
            actor.id,
        )
        return RentalState(rental=rental, storage_box=box)

    async def change_end_date(
        self, actor: Actor, rental_id: str, end_date: datetime
    ) -> RentalState:
        """Move the end of a live rental and recompute its cost."""
        return await self.update_rental(actor, rental_id, end_date=end_date)

    async def update_rental(
        self, actor: Actor, rental_id: str, **changes: Any
    ) -> RentalState:
        """Update notes and/or the end date of a rental in one step."""
        unknown = set(changes) - EDITABLE_RENTAL_FIELDS
        if unknown:
            raise ValidationError(
                f"Fields cannot be edited: {', '.join(sorted(unknown))}"
            )
        end = changes.get("end_date")
        async with self.store.transaction() as unit:
            rental = await unit.get_rental(rental_id)
            _rental_parties(actor, rental)
            box = await unit.get_storage_box(rental.storage_box_id)
            if end is not None:
                end = as_utc(end)
                if rental.status not in LIVE_RENTAL_STATUSES:
                    raise ForbiddenTransitionError(
                        "Cannot change the end date of a "
                        f"{rental.status} rental",
                        kind="rental",
                        current=rental.status,
                    )
                if end <= as_utc(rental.start_date):
                    raise ValidationError("End date must be after start date")
                rental.end_date = end
                rental.total_cost = rental_cost(
                    rental.start_date, end, box.price_per_day
                )
            if "notes" in changes:
                rental.notes = changes["notes"]
        return RentalState(rental=rental, storage_box=box)

    async def delete_rental(self, actor: Actor, rental_id: str) -> StorageBox:
        """Delete a rental that is not ACTIVE.

        A PENDING rental still holds its box, so deleting it releases the
        box. Finished rentals already released theirs.
        """
        async with self.store.transaction() as unit:
            rental = await unit.get_rental(rental_id)
            _rental_parties(actor, rental)
            if rental.status == RentalStatus.ACTIVE:
                raise ForbiddenTransitionError(
                    "Cannot delete active rentals. Please complete it first.",
                    kind="rental",
                    current=rental.status,
                )
            box = await unit.get_storage_box(rental.storage_box_id)
            if (
                rental.status == RentalStatus.PENDING
                and box.status == StorageBoxStatus.RENTED
            ):
                self._mirror(box, StorageBoxStatus.AVAILABLE)
            await unit.delete_rental(rental)

        logger.info("Rental %s deleted by %s", rental_id, actor.id)
        return box

    # -- internals ---------------------------------------------------------

    async def _ensure_no_live_rental(
        self, unit: ReservationUnit, box: StorageBox
    ) -> None:
        live = await unit.list_rentals(
            storage_box_id=box.id, statuses=LIVE_RENTAL_STATUSES
        )
        if live:
            raise ConflictError("Storage box is already rented")

    def _mirror(self, box: StorageBox, status: StorageBoxStatus) -> None:
        if box.status != status:
            logger.info(
                "Storage box %s status %s -> %s", box.id, box.status, status
            )
        box.status = status
