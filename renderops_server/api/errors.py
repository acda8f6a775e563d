"""
Error handling for the FastAPI application.

Provides consistent error responses and exception handlers.
"""

import logging
from typing import Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from renderops_server.errors import (
    ConnectionConfigError,
    InvalidTableNameError,
    RenderOpsError,
    TableNotFoundError,
)

logger = logging.getLogger(__name__)


class ErrorDetail(BaseModel):
    field: Optional[str] = None
    message: str
    code: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Optional[list[ErrorDetail]] = None
    request_id: Optional[str] = None


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID")


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Handle request validation errors.

    Args:
        request: FastAPI request
        exc: Validation error

    Returns:
        422 JSON response listing the invalid fields
    """
    details = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        details.append(ErrorDetail(field=field or None, message=error["msg"], code=error["type"]))

    error_response = ErrorResponse(
        error="validation_error",
        message="Request validation failed",
        details=details,
        request_id=_request_id(request),
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response.model_dump(exclude_none=True),
    )


_DOMAIN_STATUS: dict[type, int] = {
    InvalidTableNameError: status.HTTP_400_BAD_REQUEST,
    ConnectionConfigError: status.HTTP_400_BAD_REQUEST,
    TableNotFoundError: status.HTTP_404_NOT_FOUND,
}


async def renderops_exception_handler(request: Request, exc: RenderOpsError) -> JSONResponse:
    status_code = next(
        (code for cls, code in _DOMAIN_STATUS.items() if isinstance(exc, cls)),
        status.HTTP_400_BAD_REQUEST,
    )
    error_response = ErrorResponse(
        error=(exc.code or "error").lower(),
        message=exc.message,
        request_id=_request_id(request),
    )
    return JSONResponse(status_code=status_code, content=error_response.model_dump(exclude_none=True))


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Log unexpected exceptions and return a generic 500 body."""
    logger.error("Unhandled exception: %s", exc, exc_info=True)

    error_response = ErrorResponse(
        error="internal_server_error",
        message="An unexpected error occurred",
        request_id=_request_id(request),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.model_dump(exclude_none=True),
    )
