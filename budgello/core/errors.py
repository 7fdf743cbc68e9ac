from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import logging


logger = logging.getLogger(__name__)


class DomainError(Exception):
    """Base class for failures surfaced to API callers.

    ``kind`` names the failure class and ``status_code`` is the HTTP status it
    maps to. The message is shown to the caller verbatim.
    """

    kind = "Internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequest(DomainError):
    kind = "BadRequest"
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(DomainError):
    kind = "Unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(DomainError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(DomainError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(DomainError):
    kind = "Conflict"
    status_code = status.HTTP_409_CONFLICT


class Internal(DomainError):
    pass


def _error_response(exc: DomainError) -> JSONResponse:
    headers = None
    if isinstance(exc, Unauthorized):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.kind},
        headers=headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def handle_domain_error(request: Request, exc: DomainError):
        return _error_response(exc)

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        return _error_response(Internal("Database error"))
