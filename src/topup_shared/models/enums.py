"""Enumeration types for top-up data models."""

from enum import Enum


class Role(str, Enum):
    """Role carried by a session."""

    USER = "user"
    ADMIN = "admin"


class Provider(str, Enum):
    """Payment and VTU providers that call our webhooks."""

    PAYSTACK = "paystack"
    KORAPAY = "korapay"
    FLUTTERWAVE = "flutterwave"
    EBILLS = "ebills"


class EventStatus(str, Enum):
    """Normalized status reported by a webhook event."""

    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"


class TransactionStatus(str, Enum):
    """Status of a transaction record in the document store."""

    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Terminal statuses are never changed by a webhook."""
        return self in (TransactionStatus.SUCCESS, TransactionStatus.FAILED)


class TransactionType(str, Enum):
    """Kind of money movement a transaction represents."""

    FUNDING = "funding"
    WITHDRAWAL = "withdrawal"
    VTU = "vtu"


class ProcessingResult(str, Enum):
    """Outcome of dispatching one webhook event."""

    SUCCESS = "success"
    DUPLICATE = "duplicate"
    NOT_FOUND = "not_found"
    SKIPPED = "skipped"
    ERROR = "error"
