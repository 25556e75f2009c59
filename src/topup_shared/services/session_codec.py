"""Signed session tokens (JWS, HS256).

Tokens are signed but not encrypted: anyone holding the cookie can read the
claims, nobody without the secret can forge them. There is no server-side
session store, so a token stays valid until it expires (1 hour).

The expiry is written twice: the JWT `exp` claim (checked by python-jose) and
the `expires` payload field (checked here against the codec clock). A token
must pass both.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError
from pydantic import ValidationError

from topup_shared.config import AppConfig
from topup_shared.models.enums import Role
from topup_shared.models.session import (
    AbsentReason,
    SessionAbsent,
    SessionDecodeResult,
    SessionPayload,
    SessionValid,
)

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
SESSION_TTL = timedelta(hours=1)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SessionCodec:
    """Encode and decode session tokens with one injected secret.

    Usage:
        codec = SessionCodec(config)
        token, expires = codec.issue("uid-1", "ada@example.com")
        payload = codec.decrypt(token)  # SessionPayload or None
    """

    def __init__(
        self,
        config: AppConfig,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the codec.

        Args:
            config: Application config holding session_secret
            clock: Returns the current UTC time (injectable for tests)
        """
        self._key = config.session_secret.get_secret_value()
        self._clock = clock

    def encrypt(self, payload: dict[str, Any]) -> str:
        """Sign a payload with iat and a 1-hour exp claim.

        Args:
            payload: Claims to sign. An `expires` datetime is serialized to ISO-8601.

        Returns:
            Compact JWS string.
        """
        now = self._clock()
        claims = dict(payload)
        if isinstance(claims.get("expires"), datetime):
            claims["expires"] = claims["expires"].isoformat()
        claims["iat"] = now
        claims["exp"] = now + SESSION_TTL
        return jwt.encode(claims, self._key, algorithm=ALGORITHM)

    def issue(
        self,
        uid: str,
        email: str,
        role: Role | str = Role.USER,
    ) -> tuple[str, datetime]:
        """Create a token for a subject.

        Returns:
            (token, expires) where expires is one hour from now.
        """
        expires = self._clock() + SESSION_TTL
        token = self.encrypt(
            {
                "uid": uid,
                "email": email,
                "role": Role(role).value,
                "expires": expires,
            }
        )
        return token, expires

    def decode(self, token: str | None) -> SessionDecodeResult:
        """Verify a token and say why it is unusable if it is.

        Args:
            token: Raw cookie value (may be None)

        Returns:
            SessionValid with the payload, or SessionAbsent with a reason.
        """
        if not token:
            return SessionAbsent(reason=AbsentReason.MISSING)

        try:
            jwt.get_unverified_header(token)
        except JWTError:
            return SessionAbsent(reason=AbsentReason.MALFORMED)

        try:
            claims = jwt.decode(token, self._key, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            return SessionAbsent(reason=AbsentReason.EXPIRED)
        except JWTError as e:
            logger.debug("Session token rejected: %s", e)
            return SessionAbsent(reason=AbsentReason.INVALID_SIGNATURE)

        try:
            payload = SessionPayload.model_validate(claims)
        except ValidationError:
            return SessionAbsent(reason=AbsentReason.MALFORMED)

        expires = payload.expires
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=UTC)
        if expires <= self._clock():
            return SessionAbsent(reason=AbsentReason.EXPIRED)

        return SessionValid(payload=payload)

    def decrypt(self, token: str | None) -> SessionPayload | None:
        """Verify a token; None on any failure (treated as "not logged in")."""
        result = self.decode(token)
        if isinstance(result, SessionValid):
            return result.payload
        return None
