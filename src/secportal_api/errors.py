"""Error types for the request-tracking core and their FastAPI handlers."""

from http import HTTPStatus
from typing import Iterable
from typing import Optional

import pydantic
from fastapi import Request
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from secportal_api.monitoring.logger import log_response_info

# Explicit exports
__all__ = [
    "PortalError",
    "ValidationError",
    "NotFoundError",
    "PersistenceError",
    "RoleResolutionError",
    "NotificationError",
    "handle_broad_exceptions",
    "handle_portal_errors",
    "handle_pydantic_validation_errors",
    "handle_http_exceptions",
]


class PortalError(Exception):
    """Base class for errors raised by the request-tracking core."""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "Internal Server Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def public_message(self) -> str:
        """Message that is safe to return to the caller."""
        return self.message


class ValidationError(PortalError):
    """Caller-supplied input violates a required-field or enum constraint."""

    http_status = status.HTTP_400_BAD_REQUEST
    error = "Bad Request"

    def __init__(self, message: str, fields: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.fields = list(fields or [])

    @classmethod
    def missing(cls, fields: Iterable[str]) -> "ValidationError":
        fields = list(fields)
        return cls(f"Missing required fields: {', '.join(fields)}", fields=fields)


class NotFoundError(PortalError):
    """Referenced request does not exist."""

    http_status = status.HTTP_404_NOT_FOUND
    error = "Not Found"


class PersistenceError(PortalError):
    """
    Storage collaborator failure.

    The constructor message carries the driver detail for the logs only;
    callers receive ``public_message``.
    """

    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Internal Server Error"

    @property
    def public_message(self) -> str:
        return "The request could not be completed due to a storage error"


class RoleResolutionError(PersistenceError):
    """Role lookup failed at the storage layer (distinct from an unknown email)."""

    @property
    def public_message(self) -> str:
        return "User role could not be determined"


class NotificationError(PortalError):
    """Webhook delivery failed. Never propagated past the notifier."""


def _error_body(error: str, message: str) -> dict:
    return {"error": error, "message": message}


# fastapi docs on middlewares: https://fastapi.tiangolo.com/tutorial/middleware/
async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception as err:  # pylint: disable=broad-except
        error_response = _error_body("Internal Server Error", "An unexpected error occurred")

        logger.opt(exception=err).error(
            f"Unhandled exception: {type(err).__name__}",
            http_status=500,
            http_method=request.method,
            url_path=str(request.url.path),
            error_type=type(err).__name__,
            error_message=str(err),
            request_body=getattr(request.state, "request_body", None),
        )

        response = JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response,
        )
        log_response_info(response)
        return response


async def handle_portal_errors(request: Request, exc: PortalError) -> JSONResponse:
    """
    Convert core errors into HTTP responses.

    - ValidationError -> 400 Bad Request (message names the offending fields)
    - NotFoundError -> 404 Not Found
    - PersistenceError -> 500 with a generic message; driver detail is logged only
    """
    error_response = _error_body(exc.error, exc.public_message)
    if isinstance(exc, ValidationError) and exc.fields:
        error_response["fields"] = exc.fields

    log_context = dict(
        http_status=exc.http_status,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type=type(exc).__name__,
        error_message=exc.message,
        request_body=getattr(request.state, "request_body", None),
        response_body=error_response,
    )
    if exc.http_status >= 500:
        logger.opt(exception=exc).error(f"Request failed with {type(exc).__name__}", **log_context)
    else:
        logger.warning(f"Request rejected with {type(exc).__name__}", **log_context)

    response = JSONResponse(status_code=exc.http_status, content=error_response)
    log_response_info(response)
    return response


# fastapi docs on error handlers: https://fastapi.tiangolo.com/tutorial/handling-errors/
async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    """Handle Pydantic validation errors."""
    errors = exc.errors()
    error_response = {
        "error": "Unprocessable Entity",
        "detail": [
            {
                "loc": list(error.get("loc", ())),
                "msg": error["msg"],
            }
            for error in errors
        ],
    }

    logger.warning(
        f"Validation error: {len(errors)} validation errors",
        http_status=422,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type="ValidationError",
        request_body=getattr(request.state, "request_body", None),
        response_body=error_response,
    )

    response = JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
        content=error_response,
    )
    log_response_info(response)

    return response


async def handle_http_exceptions(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing errors (unknown path, wrong method) in the same body shape as the core errors."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = f"Route {request.method} {request.url.path} not found"
    else:
        message = str(exc.detail)

    error_response = _error_body(HTTPStatus(exc.status_code).phrase, message)
    logger.warning(
        "Routing error",
        http_status=exc.status_code,
        http_method=request.method,
        url_path=str(request.url.path),
    )

    response = JSONResponse(status_code=exc.status_code, content=error_response, headers=exc.headers)
    log_response_info(response)
    return response
