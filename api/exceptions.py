"""FastAPI exception handlers for domain errors.

Every domain error is answered with the same JSON body:
    {"status": "failed", "error": <message>, "code": <code>}

Status mapping:
- 400 Bad Request: ConstraintError (including InvalidRangeError)
- 403 Forbidden: AuthorizationError
- 404 Not Found: NotFoundError
- 409 Conflict: BookingConflict, the room is not available
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from api.schemas import ErrorResponse
from domain.exceptions import (
    AuthorizationError, BookingConflict, ConstraintError, DomainError, NotFoundError
)

logger = logging.getLogger(__name__)

ERROR_STATUS = (
    (NotFoundError, HTTP_404_NOT_FOUND),
    (BookingConflict, HTTP_409_CONFLICT),
    (AuthorizationError, HTTP_403_FORBIDDEN),
    (ConstraintError, HTTP_400_BAD_REQUEST),
)


def get_http_status_for_error(exc: DomainError) -> int:
    """HTTP status for a domain error, 400 when not explicitly mapped"""
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return HTTP_400_BAD_REQUEST


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = get_http_status_for_error(exc)
    if status_code == HTTP_409_CONFLICT:
        logger.info("Booking conflict on %s %s: %s", request.method, request.url.path, exc)
    body = ErrorResponse(error=exc.message, code=exc.code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    body = ErrorResponse(error="Internal server error", code="INTERNAL_ERROR")
    return JSONResponse(status_code=HTTP_500_INTERNAL_SERVER_ERROR, content=body.model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
