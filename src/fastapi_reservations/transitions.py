"""Capability-checked transition tables for every reservation kind.

Each table maps ``current status -> {target status: parties allowed}``.
A party is the relation between the actor and the reservation, so a
provider may confirm only bookings made for them.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum

from fastapi_reservations.enums import (
    BookingStatus,
    ContractStatus,
    RentalStatus,
    Role,
)
from fastapi_reservations.exceptions import (
    ForbiddenTransitionError,
    PermissionDeniedError,
)
from fastapi_reservations.types import Actor


class Party(StrEnum):
    ADMIN = "admin"
    CUSTOMER = "customer"
    PROVIDER = "provider"
    RENTER = "renter"
    MERCHANT = "merchant"


TransitionTable = Mapping[str, Mapping[str, frozenset[Party]]]

_ANY_BOOKING_PARTY = frozenset({Party.CUSTOMER, Party.PROVIDER, Party.ADMIN})
_PROVIDER_SIDE = frozenset({Party.PROVIDER, Party.ADMIN})
_RENTER_SIDE = frozenset({Party.RENTER, Party.ADMIN})
_MERCHANT_SIDE = frozenset({Party.MERCHANT, Party.ADMIN})
_ADMIN_ONLY = frozenset({Party.ADMIN})

BOOKING_TRANSITIONS: TransitionTable = {
    BookingStatus.PENDING: {
        BookingStatus.CONFIRMED: _PROVIDER_SIDE,
        BookingStatus.CANCELLED: _ANY_BOOKING_PARTY,
    },
    BookingStatus.CONFIRMED: {
        BookingStatus.IN_PROGRESS: _PROVIDER_SIDE,
        BookingStatus.CANCELLED: _ANY_BOOKING_PARTY,
    },
    BookingStatus.IN_PROGRESS: {
        BookingStatus.COMPLETED: _PROVIDER_SIDE,
    },
    BookingStatus.COMPLETED: {},
    BookingStatus.CANCELLED: {},
}

RENTAL_TRANSITIONS: TransitionTable = {
    RentalStatus.PENDING: {
        RentalStatus.ACTIVE: _ADMIN_ONLY,
        RentalStatus.CANCELLED: _RENTER_SIDE,
    },
    RentalStatus.ACTIVE: {
        RentalStatus.COMPLETED: _RENTER_SIDE,
    },
    RentalStatus.COMPLETED: {},
    RentalStatus.CANCELLED: {},
}

CONTRACT_TRANSITIONS: TransitionTable = {
    ContractStatus.DRAFT: {
        ContractStatus.PENDING_SIGNATURE: _MERCHANT_SIDE,
    },
    ContractStatus.PENDING_SIGNATURE: {
        ContractStatus.SIGNED: _MERCHANT_SIDE,
        ContractStatus.TERMINATED: _ADMIN_ONLY,
    },
    ContractStatus.SIGNED: {
        ContractStatus.ACTIVE: _MERCHANT_SIDE,
        ContractStatus.EXPIRED: _ADMIN_ONLY,
        ContractStatus.TERMINATED: _ADMIN_ONLY,
    },
    ContractStatus.ACTIVE: {
        ContractStatus.EXPIRED: _ADMIN_ONLY,
        ContractStatus.TERMINATED: _ADMIN_ONLY,
    },
    ContractStatus.EXPIRED: {},
    ContractStatus.TERMINATED: {},
}


def parties_for(actor: Actor, **owners: str | None) -> frozenset[Party]:
    """Parties the actor plays, e.g. ``parties_for(actor, customer=...)``.

    Keyword names are :class:`Party` values, values are owner ids.
    """
    parties = {
        Party(name)
        for name, owner_id in owners.items()
        if owner_id is not None and owner_id == actor.id
    }
    if actor.role == Role.ADMIN:
        parties.add(Party.ADMIN)
    return frozenset(parties)


def allowed_targets(table: TransitionTable, current: str) -> frozenset[str]:
    return frozenset(table.get(current, {}))


def authorize(
    table: TransitionTable,
    *,
    kind: str,
    current: str,
    target: str,
    parties: frozenset[Party],
) -> None:
    """Raise unless ``parties`` may move ``kind`` from current to target.

    Status errors win over permission errors so a caller learns that a
    transition is impossible before learning who could perform it.
    """
    targets = table.get(current)
    if targets is None or target not in targets:
        raise ForbiddenTransitionError(
            f"Cannot move {kind} from {current} to {target}",
            kind=kind,
            current=current,
            target=target,
        )
    required = targets[target]
    if not parties & required:
        allowed = ", ".join(sorted(required))
        raise PermissionDeniedError(
            f"Only {allowed} may move {kind} from {current} to {target}",
            kind=kind,
            current=current,
            target=target,
        )
