"""API models for wallet balance endpoints."""

from decimal import Decimal

from pydantic import AliasChoices, BaseModel, Field


class FundWalletRequest(BaseModel):
    """Admin request to top up the eBills float from Flutterwave.

    The amount is range-checked in the route, after the admin key, so an
    unauthorized caller always gets 403.
    """

    amount: Decimal = Field(..., description="Amount in NGN", examples=[50000])
    admin_key: str = Field(
        ...,
        validation_alias=AliasChoices("admin_key", "adminKey"),
        description="Shared admin secret",
    )


class FundWalletResponse(BaseModel):
    success: bool = True
    message: str = "eBills wallet funding initiated"
    transfer_id: str | None = Field(default=None, description="Flutterwave transfer ID")
    amount: float


class BalanceCheckResponse(BaseModel):
    """User wallet balance plus the eBills float (null when unavailable)."""

    success: bool = True
    user_balance: float
    ebills_balance: float | None = None
