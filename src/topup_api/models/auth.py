"""API models for auth endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from topup_shared.models.enums import Role


class SignUpRequest(BaseModel):
    """Create an account with email and password."""

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [{"email": "ada@example.com", "password": "hunter22"}]
        },
    )

    email: EmailStr = Field(..., description="Account email")
    password: str = Field(..., min_length=6, description="At least 6 characters")


class SignInRequest(BaseModel):
    """Sign in with email and password."""

    email: EmailStr = Field(..., description="Account email")
    password: str = Field(..., min_length=1, description="Account password")


class AuthResponse(BaseModel):
    """Outcome of a sign-up, sign-in or sign-out, with where to go next."""

    success: bool = True
    redirect: str = Field(..., examples=["/", "/auth/signin"])


class SessionResponse(BaseModel):
    """Claims of the current session cookie."""

    uid: str
    email: str
    role: Role
    expires: datetime
