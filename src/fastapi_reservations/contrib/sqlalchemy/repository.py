"""SQLAlchemy reservation store implementation."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from fastapi_reservations.contrib.sqlalchemy.models import (
    Base,
    BookingModel,
    BoxRentalModel,
    ContractModel,
    PackageModel,
    ProviderCalendarModel,
    ServiceModel,
    StorageBoxModel,
)
from fastapi_reservations.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


def _status_values(statuses: Iterable[str]) -> list[str]:
    return [str(status) for status in statuses]


def _coerce_fields(fields: dict[str, Any]) -> dict[str, Any]:
    if "status" in fields:
        fields = {**fields, "status": str(fields["status"])}
    if "size_class" in fields:
        fields = {**fields, "size_class": str(fields["size_class"])}
    return fields


class SQLAlchemyReservationUnit:
    """Reservation store operations bound to one session transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _get(
        self, model: type[ModelT], entity: str, entity_id: str
    ) -> ModelT:
        instance = await self.session.get(model, entity_id)
        if instance is None:
            raise NotFoundError(entity, entity_id)
        return instance

    async def _create(self, model: type[ModelT], **fields: Any) -> ModelT:
        instance = model(**_coerce_fields(fields))
        self.session.add(instance)
        await self.session.flush()
        return instance

    async def _delete(self, instance: Base) -> None:
        await self.session.delete(instance)
        await self.session.flush()

    # -- services and bookings ---------------------------------------------

    async def get_service(self, service_id: str) -> ServiceModel:
        return await self._get(ServiceModel, "Service", service_id)

    async def create_service(self, **fields: Any) -> ServiceModel:
        return await self._create(ServiceModel, **fields)

    async def delete_service(self, service: ServiceModel) -> None:
        await self._delete(service)

    async def list_services(
        self,
        *,
        provider_id: str | None = None,
        is_active: bool | None = None,
    ) -> list[ServiceModel]:
        stmt = select(ServiceModel)
        if provider_id is not None:
            stmt = stmt.where(ServiceModel.provider_id == provider_id)
        if is_active is not None:
            stmt = stmt.where(ServiceModel.is_active == is_active)
        result = await self.session.execute(stmt.order_by(ServiceModel.name))
        return list(result.scalars().all())

    async def get_booking(self, booking_id: str) -> BookingModel:
        return await self._get(BookingModel, "Booking", booking_id)

    async def create_booking(self, **fields: Any) -> BookingModel:
        return await self._create(BookingModel, **fields)

    async def delete_booking(self, booking: BookingModel) -> None:
        await self._delete(booking)

    async def list_bookings(
        self,
        *,
        provider_id: str | None = None,
        customer_id: str | None = None,
        statuses: Iterable[str] | None = None,
    ) -> list[BookingModel]:
        stmt = select(BookingModel)
        if provider_id is not None:
            stmt = stmt.where(BookingModel.provider_id == provider_id)
        if customer_id is not None:
            stmt = stmt.where(BookingModel.customer_id == customer_id)
        if statuses is not None:
            stmt = stmt.where(BookingModel.status.in_(_status_values(statuses)))
        stmt = stmt.order_by(BookingModel.scheduled_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def lock_provider_calendar(self, provider_id: str) -> None:
        """Bump the provider's calendar version.

        The versioned UPDATE (or the primary key on first insert) makes a
        concurrent transaction touching the same provider fail.
        """
        calendar = await self.session.get(ProviderCalendarModel, provider_id)
        if calendar is None:
            self.session.add(
                ProviderCalendarModel(provider_id=provider_id, revision=1)
            )
        else:
            calendar.revision += 1
        await self.session.flush()

    # -- storage boxes and rentals -----------------------------------------

    async def get_storage_box(self, box_id: str) -> StorageBoxModel:
        return await self._get(StorageBoxModel, "Storage box", box_id)

    async def find_storage_box_by_code(
        self, code: str
    ) -> StorageBoxModel | None:
        result = await self.session.execute(
            select(StorageBoxModel).where(StorageBoxModel.code == code)
        )
        return result.scalar_one_or_none()

    async def create_storage_box(self, **fields: Any) -> StorageBoxModel:
        return await self._create(StorageBoxModel, **fields)

    async def list_storage_boxes(
        self, *, status: str | None = None
    ) -> list[StorageBoxModel]:
        stmt = select(StorageBoxModel)
        if status is not None:
            stmt = stmt.where(StorageBoxModel.status == str(status))
        result = await self.session.execute(stmt.order_by(StorageBoxModel.code))
        return list(result.scalars().all())

    async def get_rental(self, rental_id: str) -> BoxRentalModel:
        return await self._get(BoxRentalModel, "Rental", rental_id)

    async def create_rental(self, **fields: Any) -> BoxRentalModel:
        return await self._create(BoxRentalModel, **fields)

    async def delete_rental(self, rental: BoxRentalModel) -> None:
        await self._delete(rental)

    async def list_rentals(
        self,
        *,
        storage_box_id: str | None = None,
        user_id: str | None = None,
        statuses: Iterable[str] | None = None,
    ) -> list[BoxRentalModel]:
        stmt = select(BoxRentalModel)
        if storage_box_id is not None:
            stmt = stmt.where(BoxRentalModel.storage_box_id == storage_box_id)
        if user_id is not None:
            stmt = stmt.where(BoxRentalModel.user_id == user_id)
        if statuses is not None:
            stmt = stmt.where(
                BoxRentalModel.status.in_(_status_values(statuses))
            )
        stmt = stmt.order_by(BoxRentalModel.created_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # -- contracts ---------------------------------------------------------

    async def get_contract(self, contract_id: str) -> ContractModel:
        return await self._get(ContractModel, "Contract", contract_id)

    async def create_contract(self, **fields: Any) -> ContractModel:
        return await self._create(ContractModel, **fields)

    async def delete_contract(self, contract: ContractModel) -> None:
        await self._delete(contract)

    async def list_contracts(
        self,
        *,
        merchant_id: str | None = None,
        statuses: Iterable[str] | None = None,
    ) -> list[ContractModel]:
        stmt = select(ContractModel)
        if merchant_id is not None:
            stmt = stmt.where(ContractModel.merchant_id == merchant_id)
        if statuses is not None:
            stmt = stmt.where(
                ContractModel.status.in_(_status_values(statuses))
            )
        stmt = stmt.order_by(ContractModel.created_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # -- packages ----------------------------------------------------------

    async def get_package(self, package_id: str) -> PackageModel:
        return await self._get(PackageModel, "Package", package_id)

    async def create_package(self, **fields: Any) -> PackageModel:
        return await self._create(PackageModel, **fields)

    async def delete_package(self, package: PackageModel) -> None:
        await self._delete(package)


class SQLAlchemyReservationStore:
    """Reservation store backed by SQLAlchemy async sessions.

    Each ``transaction()`` opens its own session; storage boxes and
    provider calendars are version-checked so a lost race surfaces as
    :class:`ConflictError` and nothing from the transaction is kept.
    """

    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        self.session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SQLAlchemyReservationUnit]:
        async with self.session_factory(expire_on_commit=False) as session:
            try:
                async with session.begin():
                    yield SQLAlchemyReservationUnit(session)
            except StaleDataError as exc:
                logger.warning("Concurrent reservation update rejected: %s", exc)
                raise ConflictError(
                    "The resource was modified concurrently, retry the request"
                ) from exc
            except IntegrityError as exc:
                logger.warning("Reservation write violated a constraint: %s", exc)
                raise ConflictError(
                    "The resource was modified concurrently, retry the request"
                ) from exc
