"""FastAPI exception handlers for converting TopupError to HTTP responses.

The ErrorCode-to-HTTP status mapping:
- 400 Bad Request: validation failures, webhook signature/payload problems
- 401 Unauthorized: no session, wrong credentials
- 403 Forbidden: wrong admin key or role
- 404 Not Found: unknown user
- 409 Conflict: email already registered
- 500 Internal Server Error: webhook processing failure (provider retries)
- 502 Bad Gateway: a provider call failed

Usage:
    from topup_api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)

from topup_shared.models.errors import ErrorCode, ErrorResponse, TopupError
from topup_shared.utils.logging import get_logger

logger = get_logger(__name__)

# Map ErrorCode to HTTP status codes
ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    # Authentication errors -> 401 Unauthorized
    ErrorCode.AUTH_REQUIRED: HTTP_401_UNAUTHORIZED,
    ErrorCode.INVALID_CREDENTIALS: HTTP_401_UNAUTHORIZED,
    ErrorCode.SESSION_EXPIRED: HTTP_401_UNAUTHORIZED,
    # Authorization errors -> 403 Forbidden
    ErrorCode.FORBIDDEN: HTTP_403_FORBIDDEN,
    # Conflicts -> 409
    ErrorCode.EMAIL_IN_USE: HTTP_409_CONFLICT,
    # Webhook rejections -> 400 so the provider sees a client error
    ErrorCode.MISSING_WEBHOOK_SIGNATURE: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: HTTP_400_BAD_REQUEST,
    ErrorCode.MALFORMED_WEBHOOK_PAYLOAD: HTTP_400_BAD_REQUEST,
    # Webhook processing failure -> 500 so the provider retries
    ErrorCode.WEBHOOK_PROCESSING_FAILED: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.VALIDATION_FAILED: HTTP_400_BAD_REQUEST,
    ErrorCode.USER_NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorCode.UPSTREAM_FAILURE: HTTP_502_BAD_GATEWAY,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """Get HTTP status code for an ErrorCode (400 if not explicitly mapped)."""
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_400_BAD_REQUEST)


async def topup_error_handler(request: Request, exc: TopupError) -> JSONResponse:
    """Convert a TopupError to its ErrorResponse body and mapped status."""
    return JSONResponse(
        status_code=get_http_status_for_error(exc.code),
        content=exc.to_response().model_dump(mode="json"),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation failures as a generic 400.

    Field-level detail is logged, not returned.
    """
    logger.info("Request validation failed on %s: %s", request.url.path, exc.errors())
    body = ErrorResponse.from_code(ErrorCode.VALIDATION_FAILED)
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content=body.model_dump(mode="json"),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback for uncaught exceptions: log it, return a generic 500."""
    logger.exception("Unhandled exception: %s", exc)

    # Don't expose internal details
    error_response = {
        "success": False,
        "error_code": "ERR_INTERNAL",
        "message": "An unexpected error occurred",
        "recovery": "Please try again later or contact support",
        "details": None,
    }

    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(TopupError, topup_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
