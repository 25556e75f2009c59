"""Standard error codes for the top-up backend.

All routes and services raise TopupError with one of these codes so that
error responses share one JSON shape.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Standard error codes."""

    # Authentication error codes
    AUTH_REQUIRED = "ERR_AUTH_001"
    INVALID_CREDENTIALS = "ERR_AUTH_002"
    EMAIL_IN_USE = "ERR_AUTH_003"
    SESSION_EXPIRED = "ERR_AUTH_004"
    FORBIDDEN = "ERR_AUTH_005"

    # Webhook error codes
    MISSING_WEBHOOK_SIGNATURE = "ERR_WEBHOOK_001"
    INVALID_WEBHOOK_SIGNATURE = "ERR_WEBHOOK_002"
    MALFORMED_WEBHOOK_PAYLOAD = "ERR_WEBHOOK_003"
    WEBHOOK_PROCESSING_FAILED = "ERR_WEBHOOK_004"

    # Request / provider error codes
    VALIDATION_FAILED = "ERR_001"
    UPSTREAM_FAILURE = "ERR_002"
    USER_NOT_FOUND = "ERR_003"


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.AUTH_REQUIRED: "Authentication required to perform this action",
    ErrorCode.INVALID_CREDENTIALS: "Invalid email or password.",
    ErrorCode.EMAIL_IN_USE: "An account with this email already exists.",
    ErrorCode.SESSION_EXPIRED: "Your session has expired",
    ErrorCode.FORBIDDEN: "You are not allowed to perform this action",
    ErrorCode.MISSING_WEBHOOK_SIGNATURE: "Missing signature",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Invalid signature",
    ErrorCode.MALFORMED_WEBHOOK_PAYLOAD: "Malformed webhook payload",
    ErrorCode.WEBHOOK_PROCESSING_FAILED: "Webhook processing failed",
    ErrorCode.VALIDATION_FAILED: "Invalid fields!",
    ErrorCode.UPSTREAM_FAILURE: "The provider could not complete the request",
    ErrorCode.USER_NOT_FOUND: "User not found",
}

# Recovery suggestions returned alongside errors
ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.AUTH_REQUIRED: "Sign in and try again",
    ErrorCode.INVALID_CREDENTIALS: "Check your email and password",
    ErrorCode.EMAIL_IN_USE: "Sign in instead, or use another email",
    ErrorCode.SESSION_EXPIRED: "Sign in again",
    ErrorCode.FORBIDDEN: "Contact an administrator",
    ErrorCode.MISSING_WEBHOOK_SIGNATURE: "Send the provider signature header",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Verify webhook secret configuration",
    ErrorCode.MALFORMED_WEBHOOK_PAYLOAD: "Send a JSON body in the provider format",
    ErrorCode.WEBHOOK_PROCESSING_FAILED: "The provider should retry delivery",
    ErrorCode.VALIDATION_FAILED: "Correct the request body and try again",
    ErrorCode.UPSTREAM_FAILURE: "Try again later or contact support",
    ErrorCode.USER_NOT_FOUND: "Verify the user ID",
}


class ErrorResponse(BaseModel):
    """Standard JSON body for failed requests."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ) -> "ErrorResponse":
        """Create an ErrorResponse with the message and recovery hint for a code."""
        return cls(
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class TopupError(Exception):
    """Exception raised by routes and services.

    Converted to an ErrorResponse by the API exception handlers.
    """

    def __init__(
        self,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ):
        self.code = code
        self.message = ERROR_MESSAGES[code]
        self.recovery = ERROR_RECOVERY[code]
        self.details = details
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        """Convert this exception to an ErrorResponse body."""
        return ErrorResponse.from_code(self.code, self.details)
