"""Session payload and decode-result models.

A decoded session is either SessionValid (signature and expiry check out) or
SessionAbsent with the reason it could not be used. Callers that only care
about "logged in or not" treat every SessionAbsent the same way.
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .enums import Role


class SessionPayload(BaseModel):
    """Claims stored in the signed session token."""

    model_config = ConfigDict(frozen=True)

    uid: str = Field(..., min_length=1, description="Subject (user) ID")
    email: str = Field(..., description="Email address of the subject")
    role: Role = Field(default=Role.USER, description="Authorization role")
    expires: datetime = Field(..., description="Absolute expiry (UTC)")

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class AbsentReason(str, Enum):
    """Why no usable session was found."""

    MISSING = "missing"
    MALFORMED = "malformed"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"


class SessionValid(BaseModel):
    """A token that verified successfully."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["valid"] = "valid"
    payload: SessionPayload


class SessionAbsent(BaseModel):
    """No usable session; reason kept for diagnostics."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["absent"] = "absent"
    reason: AbsentReason


SessionDecodeResult = SessionValid | SessionAbsent
