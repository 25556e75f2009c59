"""Shared plumbing for outbound provider HTTP clients."""

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(15.0)


class ProviderError(Exception):
    """Raised when a provider call fails or returns an unusable response."""

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: int | None = None,
    ) -> None:
        """Initialize with message and provider context.

        Args:
            message: Human-readable error message.
            provider: Provider name (ebills, flutterwave, firebase).
            status_code: HTTP status returned by the provider, if any.
        """
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ProviderClient:
    """Base class owning how provider clients open HTTP connections.

    A transport can be injected (httpx.MockTransport in tests). No retries:
    failures surface to the caller as ProviderError.
    """

    provider_name = "provider"
    base_url = ""

    def __init__(
        self,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
    ) -> None:
        self._transport = transport
        self._timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            transport=self._transport,
            timeout=self._timeout,
        )

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        """Decode a JSON object body or raise ProviderError."""
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                f"{self.provider_name} returned a non-JSON body",
                self.provider_name,
                response.status_code,
            ) from e
        if not isinstance(data, dict):
            raise ProviderError(
                f"{self.provider_name} returned an unexpected body",
                self.provider_name,
                response.status_code,
            )
        return data

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send one request; transport failures become ProviderError."""
        try:
            async with self._client() as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s request to %s failed: %s", self.provider_name, url, e)
            raise ProviderError(
                f"{self.provider_name} request failed: {e}", self.provider_name
            ) from e
