"""REST API error handlers.

Every failure is rendered as {"error": {"message", "type", "code"}}.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from keygate.auth.middleware import error_response
from keygate.errors import ErrorType, GateError, create_error

logger = logging.getLogger(__name__)

_HTTP_STATUS_TYPES = {
    401: (ErrorType.AUTHENTICATION, "unauthorized"),
    403: (ErrorType.PERMISSION, "forbidden"),
    404: (ErrorType.NOT_FOUND, "not_found"),
    405: (ErrorType.VALIDATION, "method_not_allowed"),
}


def _format_validation_message(errors: list[dict]) -> str:
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return f"{location}: {message}" if location else message


def setup_error_handlers(app: FastAPI) -> None:
    """Configure error handlers for the FastAPI app."""

    @app.exception_handler(GateError)
    async def gate_error_handler(request: Request, exc: GateError) -> JSONResponse:
        """Handle keygate errors."""
        if exc.http_status >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail or exc.message}")
        return error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle HTTP exceptions."""
        error_type, code = _HTTP_STATUS_TYPES.get(
            exc.status_code, (ErrorType.SERVER, f"http_{exc.status_code}")
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "message": str(exc.detail),
                    "type": error_type.value,
                    "code": code,
                }
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request validation errors."""
        error = create_error(
            "VALIDATION_ERROR", message=_format_validation_message(list(exc.errors()))
        )
        return error_response(error)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return error_response(create_error("INTERNAL_ERROR"))
