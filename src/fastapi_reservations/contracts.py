"""Merchant contract lifecycle.

Contracts never expire on their own. EXPIRED is reached through an
explicit administrative transition, or in bulk through
:meth:`ContractFlow.expire_due_contracts` when an operator invokes it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi_reservations.enums import ContractStatus, Role
from fastapi_reservations.exceptions import (
    ForbiddenTransitionError,
    PermissionDeniedError,
    ValidationError,
)
from fastapi_reservations.protocols import Contract, ReservationStore
from fastapi_reservations.scheduling import as_utc, utcnow
from fastapi_reservations.transitions import (
    CONTRACT_TRANSITIONS,
    Party,
    authorize,
    parties_for,
)
from fastapi_reservations.types import Actor

logger = logging.getLogger(__name__)

EDITABLE_CONTRACT_FIELDS = frozenset(
    {"title", "content", "terms", "value", "currency", "expires_at"}
)
EXPIRABLE_STATUSES = (ContractStatus.SIGNED, ContractStatus.ACTIVE)


def _contract_parties(actor: Actor, contract: Contract) -> frozenset[Party]:
    parties = parties_for(actor, merchant=contract.merchant_id)
    if not parties:
        raise PermissionDeniedError("You can only manage your own contracts")
    return parties


def _parse_status(value: str) -> ContractStatus:
    try:
        return ContractStatus(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown contract status {value!r}") from exc


def _normalize(name: str, value: Any) -> Any:
    if name == "value" and value is not None:
        return Decimal(value)
    if name == "expires_at" and value is not None:
        return as_utc(value)
    return value


class ContractFlow:
    def __init__(
        self,
        store: ReservationStore,
        *,
        default_currency: str = "EUR",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.default_currency = default_currency
        self.clock = clock

    async def create_contract(
        self,
        actor: Actor,
        *,
        title: str,
        content: str,
        terms: str | None = None,
        value: Decimal | None = None,
        currency: str | None = None,
        expires_at: datetime | None = None,
    ) -> Contract:
        if actor.role != Role.MERCHANT:
            raise PermissionDeniedError("Only merchants can create contracts")
        if not title or not content:
            raise ValidationError("Title and content are required")

        async with self.store.transaction() as unit:
            contract = await unit.create_contract(
                merchant_id=actor.id,
                title=title,
                content=content,
                terms=terms,
                value=_normalize("value", value),
                currency=currency or self.default_currency,
                expires_at=_normalize("expires_at", expires_at),
                status=ContractStatus.DRAFT,
                signed_date=None,
            )
        logger.info("Contract %s drafted by %s", contract.id, actor.id)
        return contract

    async def get_contract(self, actor: Actor, contract_id: str) -> Contract:
        async with self.store.transaction() as unit:
            contract = await unit.get_contract(contract_id)
            _contract_parties(actor, contract)
        return contract

    async def list_contracts(
        self, actor: Actor, *, status: str | None = None
    ) -> list[Contract]:
        statuses = [_parse_status(status)] if status else None
        merchant_id = None if actor.is_admin else actor.id
        async with self.store.transaction() as unit:
            return await unit.list_contracts(
                merchant_id=merchant_id, statuses=statuses
            )

    async def update_draft(
        self, actor: Actor, contract_id: str, **changes: Any
    ) -> Contract:
        """Edit a contract; only drafts are mutable."""
        unknown = set(changes) - EDITABLE_CONTRACT_FIELDS
        if unknown:
            raise ValidationError(
                f"Fields cannot be edited: {', '.join(sorted(unknown))}"
            )
        async with self.store.transaction() as unit:
            contract = await unit.get_contract(contract_id)
            if Party.MERCHANT not in _contract_parties(actor, contract):
                raise PermissionDeniedError(
                    "Only the owning merchant can edit a contract"
                )
            self._ensure_draft(contract, "edited")
            for name, value in changes.items():
                if name in ("title", "content") and not value:
                    raise ValidationError(f"{name.capitalize()} is required")
                setattr(contract, name, _normalize(name, value))
        return contract

    async def delete_contract(self, actor: Actor, contract_id: str) -> None:
        async with self.store.transaction() as unit:
            contract = await unit.get_contract(contract_id)
            if Party.MERCHANT not in _contract_parties(actor, contract):
                raise PermissionDeniedError(
                    "Only the owning merchant can delete a contract"
                )
            self._ensure_draft(contract, "deleted")
            await unit.delete_contract(contract)
        logger.info("Contract %s deleted by %s", contract_id, actor.id)

    async def transition(
        self, actor: Actor, contract_id: str, target_status: str
    ) -> Contract:
        target = _parse_status(target_status)
        async with self.store.transaction() as unit:
            contract = await unit.get_contract(contract_id)
            current = contract.status
            authorize(
                CONTRACT_TRANSITIONS,
                kind="contract",
                current=current,
                target=target,
                parties=_contract_parties(actor, contract),
            )
            contract.status = target
            if target == ContractStatus.SIGNED:
                contract.signed_date = self.clock()

        logger.info(
            "Contract %s moved from %s to %s by %s",
            contract_id,
            current,
            target,
            actor.id,
        )
        return contract

    async def expire_due_contracts(
        self, actor: Actor, *, as_of: datetime | None = None
    ) -> list[Contract]:
        """Expire SIGNED and ACTIVE contracts whose expiry date has passed."""
        if not actor.is_admin:
            raise PermissionDeniedError(
                "Only administrators can expire contracts"
            )
        cutoff = as_utc(as_of) if as_of is not None else self.clock()
        async with self.store.transaction() as unit:
            candidates = await unit.list_contracts(statuses=EXPIRABLE_STATUSES)
            expired = [
                contract
                for contract in candidates
                if contract.expires_at is not None
                and as_utc(contract.expires_at) <= cutoff
            ]
            for contract in expired:
                authorize(
                    CONTRACT_TRANSITIONS,
                    kind="contract",
                    current=contract.status,
                    target=ContractStatus.EXPIRED,
                    parties=frozenset({Party.ADMIN}),
                )
                contract.status = ContractStatus.EXPIRED

        if expired:
            logger.info(
                "Expired %d contracts due by %s",
                len(expired),
                cutoff.isoformat(),
            )
        return expired

    @staticmethod
    def _ensure_draft(contract: Contract, action: str) -> None:
        if contract.status != ContractStatus.DRAFT:
            raise ForbiddenTransitionError(
                f"Only draft contracts can be {action}",
                kind="contract",
                current=contract.status,
            )
