"""eBills VTU API client.

Only the wallet operations the backend needs are wrapped: obtaining a JWT
from the WordPress jwt-auth endpoint and reading the wallet balance.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from topup_shared.config import AppConfig
from topup_shared.utils.logging import get_logger, log_provider_call

from .provider_client import DEFAULT_TIMEOUT, ProviderClient, ProviderError

logger = get_logger(__name__)

AUTH_URL = "https://ebills.africa/wp-json/jwt-auth/v1/token"
API_URL = "https://ebills.africa/wp-json/api/v2/"


class EbillsService(ProviderClient):
    """Client for the eBills wallet API.

    Usage:
        ebills = EbillsService(config)
        await ebills.get_access_token()
        balance = await ebills.check_balance()
    """

    provider_name = "ebills"
    base_url = API_URL

    def __init__(
        self,
        config: AppConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(transport=transport, timeout=timeout)
        self._username = config.secret("ebills_username")
        self._password = config.secret("ebills_password")
        self._token: str | None = None

    async def get_access_token(self) -> str:
        """Authenticate and keep the bearer token for later calls.

        Returns:
            The eBills JWT.

        Raises:
            ProviderError: If credentials are missing or rejected.
        """
        if not self._username or not self._password:
            raise ProviderError("eBills credentials are not configured", self.provider_name)

        response = await self._request(
            "POST",
            AUTH_URL,
            json={"username": self._username, "password": self._password},
        )

        if response.is_error:
            log_provider_call(
                logger,
                self.provider_name,
                "get_access_token",
                status_code=response.status_code,
                error="authentication failed",
            )
            raise ProviderError(
                f"Authentication failed: {response.status_code}",
                self.provider_name,
                response.status_code,
            )

        data = self._json(response)
        token = data.get("token")
        if not token:
            raise ProviderError(
                str(data.get("message") or "Authentication failed"),
                self.provider_name,
                response.status_code,
            )

        self._token = token
        return token

    def _headers(self) -> dict[str, str]:
        if not self._token:
            raise ProviderError(
                "Token not initialized. Call get_access_token first.",
                self.provider_name,
            )
        return {"Authorization": f"Bearer {self._token}"}

    async def check_balance(self) -> dict[str, Any]:
        """Fetch the wallet balance response (`{"data": {"balance": ...}}`).

        Raises:
            ProviderError: If not authenticated or the call fails.
        """
        headers = self._headers()
        response = await self._request("GET", "balance", headers=headers)

        if response.is_error:
            log_provider_call(
                logger,
                self.provider_name,
                "check_balance",
                status_code=response.status_code,
                error="balance check failed",
            )
            raise ProviderError(
                f"Error checking balance: {response.status_code}",
                self.provider_name,
                response.status_code,
            )

        data = self._json(response)
        log_provider_call(
            logger, self.provider_name, "check_balance", status_code=response.status_code
        )
        return data

    async def get_balance(self) -> Decimal:
        """Authenticate if needed and return the wallet balance as a Decimal."""
        if not self._token:
            await self.get_access_token()
        data = await self.check_balance()

        inner = data.get("data")
        balance = (inner.get("balance") if isinstance(inner, dict) else None) or 0
        try:
            return Decimal(str(balance))
        except InvalidOperation as e:
            raise ProviderError(
                f"Unexpected balance value: {balance!r}", self.provider_name
            ) from e
