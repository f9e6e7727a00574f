"""Reservation error taxonomy and FastAPI exception handlers."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class ReservationError(Exception):
    """Base class for every error raised by the reservation engine."""


class ValidationError(ReservationError):
    """A required field is missing or malformed."""


class NotFoundError(ReservationError):
    """A referenced service, box, reservation or contract does not exist."""

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ConflictError(ReservationError):
    """The resource is unavailable or was changed by a concurrent request."""


class ForbiddenTransitionError(ReservationError):
    """The current status does not allow the requested operation."""

    def __init__(
        self,
        message: str,
        *,
        kind: str | None = None,
        current: str | None = None,
        target: str | None = None,
    ) -> None:
        self.kind = kind
        self.current = current
        self.target = target
        super().__init__(message)


class PermissionDeniedError(ForbiddenTransitionError):
    """The actor lacks the capability required for the transition."""


class ComputationFallbackError(ReservationError):
    """Pricing or distance computation failed and fell back to a default.

    Logged by the pricer, never propagated to callers.
    """


def _error_response(
    status_code: int, exc: Exception, code: str
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": code},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register reservation exception handlers on a FastAPI app.

    More specific handlers must be registered first so FastAPI
    matches them before the generic ReservationError handler.

    Handler order (most specific first):
    1. NotFoundError → 404
    2. PermissionDeniedError → 403
    3. ForbiddenTransitionError → 409
    4. ConflictError → 409
    5. ValidationError → 400
    6. ReservationError → 400 (catch-all)
    """

    @app.exception_handler(NotFoundError)
    async def _not_found(
        request: Request,
        exc: NotFoundError,
    ) -> JSONResponse:
        return _error_response(404, exc, "not_found")

    @app.exception_handler(PermissionDeniedError)
    async def _permission_denied(
        request: Request,
        exc: PermissionDeniedError,
    ) -> JSONResponse:
        return _error_response(403, exc, "permission_denied")

    @app.exception_handler(ForbiddenTransitionError)
    async def _forbidden_transition(
        request: Request,
        exc: ForbiddenTransitionError,
    ) -> JSONResponse:
        return _error_response(409, exc, "forbidden_transition")

    @app.exception_handler(ConflictError)
    async def _conflict(
        request: Request,
        exc: ConflictError,
    ) -> JSONResponse:
        return _error_response(409, exc, "conflict")

    @app.exception_handler(ValidationError)
    async def _validation(
        request: Request,
        exc: ValidationError,
    ) -> JSONResponse:
        return _error_response(400, exc, "validation_error")

    @app.exception_handler(ReservationError)
    async def _reservation_error(
        request: Request,
        exc: ReservationError,
    ) -> JSONResponse:
        return _error_response(400, exc, "reservation_error")
