"""Firebase Authentication client (Identity Toolkit REST API).

Provides:
1. sign_up: create an email/password account
2. sign_in: verify email/password credentials

The backend never stores Firebase ID tokens; only uid and email go into the
session cookie.
"""

import httpx

from topup_shared.config import AppConfig
from topup_shared.models.identity import IdentityUser
from topup_shared.utils.logging import get_logger, log_provider_call

from .provider_client import DEFAULT_TIMEOUT, ProviderClient

logger = get_logger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1/"

# Identity Toolkit error messages meaning "wrong email or password"
INVALID_CREDENTIAL_CODES = frozenset(
    {
        "INVALID_LOGIN_CREDENTIALS",
        "INVALID_PASSWORD",
        "EMAIL_NOT_FOUND",
        "INVALID_EMAIL",
        "USER_DISABLED",
    }
)


class IdentityError(Exception):
    """Raised when the identity provider rejects or fails a request."""

    def __init__(self, message: str, code: str | None = None) -> None:
        """Initialize with message and provider error code.

        Args:
            message: Human-readable error message.
            code: Identity Toolkit error code (e.g. EMAIL_EXISTS).
        """
        super().__init__(message)
        self.code = code

    @property
    def email_in_use(self) -> bool:
        return self.code == "EMAIL_EXISTS"

    @property
    def invalid_credentials(self) -> bool:
        return self.code in INVALID_CREDENTIAL_CODES


class IdentityClient(ProviderClient):
    """Email/password accounts via the Identity Toolkit REST API."""

    provider_name = "firebase"
    base_url = IDENTITY_TOOLKIT_URL

    def __init__(
        self,
        config: AppConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(transport=transport, timeout=timeout)
        self._api_key = config.secret("firebase_api_key")

    async def sign_up(self, email: str, password: str) -> IdentityUser:
        """Create an account.

        Raises:
            IdentityError: code EMAIL_EXISTS when the email is taken.
        """
        return await self._account_call("accounts:signUp", email, password)

    async def sign_in(self, email: str, password: str) -> IdentityUser:
        """Verify credentials.

        Raises:
            IdentityError: invalid_credentials is True for a bad email/password.
        """
        return await self._account_call("accounts:signInWithPassword", email, password)

    async def _account_call(self, endpoint: str, email: str, password: str) -> IdentityUser:
        if not self._api_key:
            raise IdentityError("Firebase API key is not configured")

        # Absolute URL: "accounts:signUp" would otherwise parse as a URL scheme
        response = await self._request(
            "POST",
            f"{IDENTITY_TOOLKIT_URL}{endpoint}",
            params={"key": self._api_key},
            json={"email": email, "password": password, "returnSecureToken": True},
        )

        body = self._json(response)

        if response.is_error:
            error = body.get("error")
            message = error.get("message") if isinstance(error, dict) else None
            # Messages look like "WEAK_PASSWORD : Password should be at least 6 characters"
            code = message.split(" ")[0] if isinstance(message, str) else None
            log_provider_call(
                logger,
                self.provider_name,
                endpoint,
                status_code=response.status_code,
                error=code or "request failed",
            )
            raise IdentityError(message or f"Identity request failed: {response.status_code}", code)

        if not body.get("localId"):
            raise IdentityError("Identity response carried no user ID")

        log_provider_call(logger, self.provider_name, endpoint, status_code=response.status_code)
        return IdentityUser(
            uid=body["localId"],
            email=body.get("email") or email,
            id_token=body.get("idToken"),
        )
