"""Pydantic models for top-up data entities."""

from .enums import (
    EventStatus,
    ProcessingResult,
    Provider,
    Role,
    TransactionStatus,
    TransactionType,
)
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    ErrorCode,
    ErrorResponse,
    TopupError,
)
from .identity import IdentityUser
from .session import (
    AbsentReason,
    SessionAbsent,
    SessionDecodeResult,
    SessionPayload,
    SessionValid,
)
from .transaction import Transaction
from .webhook import DispatchOutcome, WebhookEvent

__all__ = [
    # Enums
    "EventStatus",
    "ProcessingResult",
    "Provider",
    "Role",
    "TransactionStatus",
    "TransactionType",
    # Errors
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "ErrorCode",
    "ErrorResponse",
    "TopupError",
    # Identity
    "IdentityUser",
    # Session
    "AbsentReason",
    "SessionAbsent",
    "SessionDecodeResult",
    "SessionPayload",
    "SessionValid",
    # Transactions
    "Transaction",
    # Webhooks
    "DispatchOutcome",
    "WebhookEvent",
]
