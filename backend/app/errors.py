"""Error taxonomy shared by every portal service.

Services raise one of the typed errors below instead of leaking DuckDB or
filesystem exceptions. ``register_exception_handlers`` maps them onto HTTP
status codes:

    NotFoundError   -> 404
    ConflictError   -> 409
    ValidationError -> 400 (request body/form validation failures as well)
    anything else   -> 500 (no internal detail in the payload)
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PortalError(Exception):
    """Base class for errors raised by the portal core."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(PortalError):
    """A referenced speaker, hall, slot, schedule entry or file is absent."""

    status_code = 404


class ConflictError(PortalError):
    """A write would break a uniqueness rule (e.g. hall double-booking)."""

    status_code = 409


class ValidationError(PortalError):
    """Malformed input, or an upload with a bad type or size."""

    status_code = 400


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
        logger.warning(
            "[%s] %s | path=%s", type(exc).__name__, exc.message, request.url.path
        )
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        logger.warning("[ValidationError] path=%s | %s", request.url.path, details)
        return JSONResponse(
            {"error": "Invalid request parameters", "details": details}, status_code=400
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("[UnhandledError] path=%s", request.url.path)
        return JSONResponse({"error": "Internal server error"}, status_code=500)
