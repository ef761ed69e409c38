"""
Error taxonomy shared by the storage layer, the auth gateway and the routers.

Each error carries the HTTP status the API answers with and a message that is
safe to show to a client. Backend detail stays in the logs.
"""

import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class RevenueDeskError(Exception):
    status_code = 500
    message = "An internal error occurred. Please try again later."

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class NotFound(RevenueDeskError):
    status_code = 404
    message = "Not found"


class UniqueConstraintViolation(RevenueDeskError):
    status_code = 409
    message = "A record with this value already exists"


class ReferenceViolation(RevenueDeskError):
    """A foreign key points at a missing row, or a referenced row was deleted."""
    status_code = 409
    message = "Referenced record is missing or still in use"


class BackendUnavailable(RevenueDeskError):
    status_code = 503
    message = "Storage backend unavailable"


class InvalidCredentials(RevenueDeskError):
    status_code = 401
    message = "Invalid credentials"


class UsernameTaken(RevenueDeskError):
    status_code = 400
    message = "Username already exists"


class Unauthenticated(RevenueDeskError):
    status_code = 401
    message = "Not authenticated"


class Forbidden(RevenueDeskError):
    status_code = 403
    message = "Admin access required"


async def _handle_revenue_desk_error(request: Request, exc: RevenueDeskError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc!r}", exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def _handle_shape_error(request: Request, exc: ValidationError) -> JSONResponse:
    """Entity shapes built inside an endpoint (e.g. a null for a required column)."""
    return JSONResponse(
        status_code=422,
        content={"message": "Invalid data", "detail": exc.errors(include_url=False, include_context=False, include_input=False)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RevenueDeskError, _handle_revenue_desk_error)
    app.add_exception_handler(ValidationError, _handle_shape_error)
