"""Error taxonomy shared by the engines, routers and the live channel.

Every failure carries a stable machine-readable ``kind`` plus a human-readable
message. HTTP responses render it inside the standard envelope::

    {"success": false, "error": "<kind>", "message": "...", "data": ...}
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    kind = "ServiceError"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        return {"success": False, "error": self.kind, "message": self.message, "data": self.details}


class Unauthenticated(ServiceError):
    kind = "Unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(ServiceError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ServiceError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidState(ServiceError):
    kind = "InvalidState"
    status_code = status.HTTP_409_CONFLICT


class Conflict(ServiceError):
    kind = "Conflict"
    status_code = status.HTTP_409_CONFLICT


class ValidationFailed(ServiceError):
    kind = "ValidationFailed"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class Unavailable(ServiceError):
    kind = "Unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


_HTTP_STATUS_KINDS = {
    status.HTTP_401_UNAUTHORIZED: Unauthenticated.kind,
    status.HTTP_403_FORBIDDEN: Forbidden.kind,
    status.HTTP_404_NOT_FOUND: NotFound.kind,
    status.HTTP_409_CONFLICT: Conflict.kind,
    status.HTTP_422_UNPROCESSABLE_ENTITY: ValidationFailed.kind,
}


def field_errors(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Flatten pydantic error dicts into ``{"field", "message"}`` pairs."""
    result = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        result.append({"field": ".".join(location) or "__root__", "message": error.get("msg", "Invalid value")})
    return result


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationFailed("Validation failed", field_errors(list(exc.errors())))
        return JSONResponse(status_code=error.status_code, content=error.to_payload())

    @app.exception_handler(HTTPException)
    async def _http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
        kind = _HTTP_STATUS_KINDS.get(exc.status_code, "HTTPError")
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": kind, "message": str(exc.detail), "data": None},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(OperationalError)
    async def _database_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
        logger.exception("database operation failed path=%s", request.url.path)
        error = Unavailable("Database is busy or unavailable, please try again")
        return JSONResponse(status_code=error.status_code, content=error.to_payload())
