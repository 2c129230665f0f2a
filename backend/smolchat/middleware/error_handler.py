"""Global error handling middleware."""

from __future__ import annotations

import logging
import traceback
from typing import Any, Callable, Optional

from fastapi import Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from smolchat.utils.exceptions import SmolChatError, ValidationError

logger = logging.getLogger(__name__)


def create_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> JSONResponse:
    """Create standardized error response.

    Args:
        status_code: HTTP status code
        error_code: Application error code
        message: Human-readable error message
        details: Additional error details (only sent in debug mode)
        request_id: Request correlation ID

    Returns:
        JSON response with ``error`` and ``code`` keys
    """
    content: dict[str, Any] = {
        "error": message,
        "code": error_code,
    }
    if details:
        content["details"] = details

    headers = {}
    if request_id:
        headers["X-Request-ID"] = request_id

    return JSONResponse(status_code=status_code, content=content, headers=headers)


def describe_validation_error(exc: RequestValidationError) -> tuple[str, Optional[str]]:
    """Reduce FastAPI's validation error list to one message and field name."""
    errors = exc.errors()
    if not errors:
        return "Invalid request", None

    first = errors[0]
    kind = first.get("type", "")
    location = [str(part) for part in first.get("loc", ()) if part != "body"]
    field = ".".join(location) or None

    if kind == "json_invalid":
        return "Invalid JSON", None
    if kind == "missing":
        return f"Missing required field: {field or 'body'}", field
    if field:
        return f"Invalid value for field {field}: {first.get('msg', 'invalid')}", field
    return f"Invalid request body: {first.get('msg', 'invalid')}", None


def status_for(exc: Exception) -> int:
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Global error handler middleware for consistent error responses.

    Catches all exceptions and returns consistent JSON error responses.
    ``ValidationError`` maps to 400; every other error maps to 500.
    """

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and handle any exceptions."""
        try:
            response = await call_next(request)
            return response
        except Exception as exc:
            return await self.handle_exception(request, exc)

    async def handle_exception(self, request: Request, exc: Exception) -> JSONResponse:
        """Convert exceptions to JSON responses."""
        request_id = getattr(request.state, "request_id", None)

        if isinstance(exc, SmolChatError):
            status_code = status_for(exc)
            if status_code >= 500:
                logger.error("%s: %s", exc.error_code, exc.message)
            else:
                logger.info("%s: %s", exc.error_code, exc.message)
            return create_error_response(
                status_code=status_code,
                error_code=exc.error_code,
                message=exc.message,
                details=exc.details if self.debug else {},
                request_id=request_id,
            )

        logger.exception("Unhandled exception occurred")

        details = {}
        if self.debug:
            details = {
                "type": type(exc).__name__,
                "traceback": traceback.format_exc(),
            }

        return create_error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_ERROR",
            message="An internal error occurred",
            details=details,
            request_id=request_id,
        )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render FastAPI body validation failures as ``VALIDATION_ERROR`` (400)."""
    message, field = describe_validation_error(exc)
    logger.info("Request validation failed: %s", message)

    debug = getattr(request.app.state, "debug", False)
    error = ValidationError(message, field=field)
    return create_error_response(
        status_code=status_for(error),
        error_code=error.error_code,
        message=error.message,
        details={"errors": jsonable_encoder(exc.errors())} if debug else {},
        request_id=getattr(request.state, "request_id", None),
    )
