"""Transaction record model (owned by the document store)."""

from decimal import Decimal

from pydantic import BaseModel, Field

from .enums import Provider, TransactionStatus, TransactionType


class Transaction(BaseModel):
    """A wallet transaction as stored in the `transactions` table.

    Records are created by the purchase/withdrawal flows. Webhook handling
    only reads them and moves `status` forward.
    """

    transaction_id: str = Field(..., description="Primary key")
    user_id: str = Field(..., description="Owner of the wallet")
    provider: Provider = Field(..., description="Provider handling the transaction")
    type: TransactionType = Field(..., description="funding, withdrawal or vtu")
    amount: Decimal = Field(..., ge=0, description="Amount in NGN")
    status: TransactionStatus = Field(..., description="Current status")
    reference: str = Field(..., description="Provider-facing reference / request_id")
    refunded: bool = Field(default=False, description="Wallet refunded after failure")
    created_at: str | None = Field(default=None, description="ISO-8601 creation time")
    updated_at: str | None = Field(default=None, description="ISO-8601 last update")

    @property
    def debits_wallet(self) -> bool:
        """Withdrawals and VTU purchases were paid from the wallet up front."""
        return self.type in (TransactionType.WITHDRAWAL, TransactionType.VTU)
