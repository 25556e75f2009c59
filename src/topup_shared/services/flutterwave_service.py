"""Flutterwave payout client used to fund the eBills wallet."""

import secrets
import time
from decimal import Decimal
from typing import Any

import httpx

from topup_shared.config import AppConfig
from topup_shared.utils.logging import get_logger, log_provider_call

from .provider_client import DEFAULT_TIMEOUT, ProviderClient, ProviderError

logger = get_logger(__name__)

BASE_URL = "https://api.flutterwave.cloud/developersandbox"
EBILLS_WALLET_BANK_NAME = "Moniepoint Microfinance Bank"


def _unique(prefix: str) -> str:
    """Build a `<prefix>_<ms timestamp>_<random>` identifier."""
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


class FlutterwaveService(ProviderClient):
    """Client for Flutterwave direct transfers.

    Each request carries a fresh X-Trace-Id and X-Idempotency-Key.
    """

    provider_name = "flutterwave"
    base_url = BASE_URL

    def __init__(
        self,
        config: AppConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(transport=transport, timeout=timeout)
        self._secret_key = config.secret("flutterwave_secret_key")
        self._account_number = config.ebills_wallet_account_number
        self._bank_code = config.ebills_wallet_bank_code
        self._callback_url = f"{config.public_base_url.rstrip('/')}/api/webhooks/funding"

    def _headers(self) -> dict[str, str]:
        if not self._secret_key:
            raise ProviderError("Flutterwave secret key is not configured", self.provider_name)
        return {
            "Authorization": f"Bearer {self._secret_key}",
            "X-Trace-Id": _unique("trace"),
            "X-Idempotency-Key": _unique("idem"),
        }

    async def fund_ebills_wallet(
        self,
        amount: Decimal,
        narration: str = "Fund eBills wallet for VTU services",
    ) -> dict[str, Any]:
        """Send an instant bank transfer to the eBills wallet account.

        Args:
            amount: Amount in NGN
            narration: Transfer narration

        Returns:
            Flutterwave response body; the transfer ID is under data.id.

        Raises:
            ProviderError: If the transfer is rejected.
        """
        reference = _unique("ref")
        payload = {
            "action": "instant",
            "type": "bank",
            "callback_url": self._callback_url,
            "narration": narration,
            "reference": reference,
            "payment_instruction": {
                "amount": {
                    "value": float(amount),
                    "applies_to": "destination_currency",
                },
                "source_currency": "NGN",
                "destination_currency": "NGN",
                "recipient": {
                    "bank": {
                        "account_number": self._account_number,
                        "code": self._bank_code,
                        "name": EBILLS_WALLET_BANK_NAME,
                    },
                },
            },
        }

        headers = self._headers()
        response = await self._request(
            "POST", "/direct-transfers", json=payload, headers=headers
        )

        if response.is_error:
            try:
                message = response.json().get("message")
            except (ValueError, AttributeError):
                message = None
            error = f"Transfer failed: {message or response.status_code}"
            log_provider_call(
                logger,
                self.provider_name,
                "fund_ebills_wallet",
                reference=reference,
                amount=amount,
                status_code=response.status_code,
                error=error,
            )
            raise ProviderError(error, self.provider_name, response.status_code)

        data = self._json(response)
        log_provider_call(
            logger,
            self.provider_name,
            "fund_ebills_wallet",
            reference=reference,
            amount=amount,
            status_code=response.status_code,
        )
        return data

    @staticmethod
    def transfer_id(response: dict[str, Any]) -> str | None:
        """Extract the transfer ID from a direct-transfers response."""
        data = response.get("data")
        if isinstance(data, dict) and data.get("id") is not None:
            return str(data["id"])
        return None
