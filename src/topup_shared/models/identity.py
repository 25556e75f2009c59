"""Identity provider account model."""

from pydantic import BaseModel, ConfigDict, Field


class IdentityUser(BaseModel):
    """Account returned by the identity provider after sign-up or sign-in."""

    model_config = ConfigDict(frozen=True)

    uid: str = Field(..., min_length=1, description="Identity provider user ID (localId)")
    email: str = Field(..., description="Account email")
    id_token: str | None = Field(default=None, description="Provider ID token, not stored")
