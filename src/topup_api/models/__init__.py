"""API request/response models.

Domain models (sessions, transactions, webhook events) live in
topup_shared.models; this package holds HTTP-layer shapes only.
"""

from .auth import AuthResponse, SessionResponse, SignInRequest, SignUpRequest
from .balance import BalanceCheckResponse, FundWalletRequest, FundWalletResponse
from .webhooks import WebhookAck

__all__ = [
    "AuthResponse",
    "BalanceCheckResponse",
    "FundWalletRequest",
    "FundWalletResponse",
    "SessionResponse",
    "SignInRequest",
    "SignUpRequest",
    "WebhookAck",
]
