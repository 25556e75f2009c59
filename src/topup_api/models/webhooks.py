"""API models for webhook endpoints."""

from typing import Literal

from pydantic import BaseModel, Field

from topup_shared.models.enums import ProcessingResult


class WebhookAck(BaseModel):
    """Acknowledgement returned to the provider for a verified event.

    Any 200 tells the provider to stop retrying; processing_result says what
    actually happened.
    """

    message: str
    status: Literal["success"] = "success"
    processing_result: ProcessingResult = Field(
        ..., description="success, duplicate, not_found, skipped or error"
    )
    reference: str | None = None
