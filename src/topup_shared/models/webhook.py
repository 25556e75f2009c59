"""Webhook event models."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import EventStatus, ProcessingResult, Provider


class WebhookEvent(BaseModel):
    """A verified provider callback, normalized across providers.

    Ephemeral: built from the request, dispatched, then discarded.
    """

    model_config = ConfigDict(frozen=True)

    provider: Provider = Field(..., description="Provider that sent the event")
    event_type: str = Field(..., description="Provider event type", examples=["transfer.success"])
    reference: str | None = Field(
        default=None,
        description="Transaction reference (or eBills request_id)",
        examples=["abc123", "req_1717000000_airtime_uid42"],
    )
    status: EventStatus = Field(..., description="Normalized status reported by the provider")
    provider_status: str | None = Field(
        default=None,
        description="Status string exactly as the provider sent it",
        examples=["success", "SUCCESSFUL", "completed-api"],
    )
    amount: Decimal | None = Field(default=None, description="Amount reported by the provider")
    subject_id: str | None = Field(
        default=None,
        description="User ID decoded from a structured request identifier",
    )
    raw_signature: str = Field(..., description="Signature header value as received")
    data: dict[str, Any] = Field(default_factory=dict, description="Provider payload")


class DispatchOutcome(BaseModel):
    """Result of dispatching one event."""

    model_config = ConfigDict(frozen=True)

    result: ProcessingResult
    reference: str | None = None
    message: str | None = None
