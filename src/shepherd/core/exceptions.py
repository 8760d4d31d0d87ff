"""Domain error taxonomy and exception handlers with request_id in responses."""

from typing import Any

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.shepherd.core.logging import get_logger

logger = get_logger(__name__)


class ShepherdError(Exception):
    """Base class for every error a service operation reports to its caller.

    Each subclass carries a stable machine-readable ``code`` and the HTTP status
    the API layer maps it to. None of these are retried internally.
    """

    code: str = "error"
    http_status: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class Unauthorized(ShepherdError):
    """Permission denied. Always fails closed."""

    code = "unauthorized"
    http_status = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized to perform this action"


class NotFound(ShepherdError):
    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class TokenNotFound(NotFound):
    code = "token_not_found"
    default_message = "Invitation code not found"


class TokenExpired(ShepherdError):
    code = "token_expired"
    http_status = status.HTTP_410_GONE
    default_message = "Invitation has expired"


class TokenExhausted(ShepherdError):
    code = "token_exhausted"
    http_status = status.HTTP_410_GONE
    default_message = "Invitation has no remaining uses"


class TokenInactive(ShepherdError):
    code = "token_inactive"
    http_status = status.HTTP_410_GONE
    default_message = "Invitation is no longer active"


class InvalidTransition(ShepherdError):
    code = "invalid_transition"
    http_status = status.HTTP_409_CONFLICT
    default_message = "Status transition not allowed"


class Conflict(ShepherdError):
    """A concurrent mutation won the race. Surfaced, never silently retried."""

    code = "conflict"
    http_status = status.HTTP_409_CONFLICT
    default_message = "Concurrent modification, please retry"


class InvalidRequest(ShepherdError):
    code = "invalid_request"
    http_status = 422
    default_message = "Invalid request"


class Unavailable(ShepherdError):
    code = "unavailable"
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service temporarily unavailable"


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(ShepherdError)
    async def shepherd_error_handler(request: Request, exc: ShepherdError) -> JSONResponse:
        logger.info(
            "Request rejected",
            error_code=exc.code,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.http_status,
            content={
                "detail": exc.message,
                "code": exc.code,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = correlation_id.get()
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "request_id": request_id,
            },
        )
