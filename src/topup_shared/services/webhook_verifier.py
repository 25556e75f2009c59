"""Webhook signature verification, one scheme per provider.

Security contract:
- All comparisons use hmac.compare_digest() (constant time)
- Missing secret or missing header -> verification fails (fail closed)
- Nothing in the payload is trusted before verification succeeds

Signing scopes:
- RAW_BODY: the request bytes exactly as received
- CANONICAL_BODY: the parsed body re-serialized the way JSON.stringify does
- DATA: the `data` sub-object re-serialized the same way

Providers that sign a re-serialized payload compute the HMAC over
JSON.stringify(JSON.parse(body)). Numbers therefore go through a double and
come out in JavaScript's shortest form (`1000.00` -> `1000`, `1e-07` ->
`1e-7`), and integer-like object keys are moved to the front.
"""

import hashlib
import hmac
import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from topup_shared.config import AppConfig
from topup_shared.models.enums import Provider

logger = logging.getLogger(__name__)

# Largest array index JSON.stringify orders ahead of other keys
_MAX_ARRAY_INDEX = 2**32 - 2


class SigningScope(str, Enum):
    """Which bytes the provider signs."""

    RAW_BODY = "raw_body"
    CANONICAL_BODY = "canonical_body"
    DATA = "data"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def parse_json(raw_body: bytes) -> Any:
    """Parse a webhook body keeping every number as an exact Decimal.

    Raises:
        ValueError: If the body is not strict JSON (NaN and Infinity included).
    """
    return json.loads(
        raw_body,
        parse_float=Decimal,
        parse_int=Decimal,
        parse_constant=_reject_constant,
    )


def js_number(value: int | float | Decimal) -> str:
    """Format a number the way JavaScript's Number#toString does."""
    number = float(Decimal(value))
    if not math.isfinite(number):
        raise ValueError(f"{value} has no JSON representation")
    if number == 0:
        return "0"
    if number < 0:
        return "-" + js_number(-number)

    # repr() gives the shortest digits that round-trip, as JavaScript does
    _, digit_tuple, exponent = Decimal(repr(number)).as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    point = len(digits) + int(exponent)
    digits = digits.rstrip("0")
    k = len(digits)

    if k <= point <= 21:
        return digits + "0" * (point - k)
    if 0 < point <= 21:
        return f"{digits[:point]}.{digits[point:]}"
    if -6 < point <= 0:
        return "0." + "0" * -point + digits

    e = point - 1
    mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
    return f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"


def _is_array_index(key: str) -> bool:
    return key.isascii() and key.isdigit() and (key == "0" or key[0] != "0") and int(key) <= _MAX_ARRAY_INDEX


def _stringify(value: Any) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, (int, float, Decimal)):
        # Out-of-range literals parse to Infinity, which stringifies as null
        return js_number(value) if math.isfinite(float(Decimal(value))) else "null"
    if isinstance(value, Mapping):
        indexed = sorted((k for k in value if _is_array_index(k)), key=int)
        named = [k for k in value if not _is_array_index(k)]
        members = (f"{json.dumps(k, ensure_ascii=False)}:{_stringify(value[k])}" for k in indexed + named)
        return "{" + ",".join(members) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_stringify(item) for item in value) + "]"
    raise TypeError(f"Cannot serialize {type(value).__name__} as JSON")


def canonical_json(value: Any) -> bytes:
    """Serialize like JavaScript's JSON.stringify: compact, insertion order."""
    return _stringify(value).encode("utf-8")


@dataclass(frozen=True)
class SignatureScheme:
    """How one provider signs its callbacks."""

    header_names: tuple[str, ...]
    signing_scope: SigningScope = SigningScope.CANONICAL_BODY
    digest: str = "sha256"
    # Header carrying a static shared hash instead of an HMAC (Flutterwave verif-hash)
    static_hash_header: str | None = None

    def signed_bytes(self, raw_body: bytes) -> bytes | None:
        """Return the bytes covered by the signature, or None if unavailable."""
        if self.signing_scope is SigningScope.RAW_BODY:
            return raw_body

        try:
            body = parse_json(raw_body)
            if self.signing_scope is SigningScope.DATA:
                if not isinstance(body, dict) or "data" not in body:
                    return None
                body = body["data"]
            return canonical_json(body)
        except ValueError:
            # Includes UnicodeError: undecodable bytes, lone surrogates
            return None

    def verify(self, raw_body: bytes, signature_header: str | None, secret: str | None) -> bool:
        """Recompute the HMAC and compare with the supplied signature.

        Args:
            raw_body: Request body bytes
            signature_header: Signature header value as received
            secret: Provider signing secret

        Returns:
            True only if the signature matches.
        """
        if not secret or not signature_header:
            return False

        signed = self.signed_bytes(raw_body)
        if signed is None:
            return False

        expected = hmac.new(
            secret.encode("utf-8"),
            signed,
            getattr(hashlib, self.digest),
        ).hexdigest()

        supplied = signature_header.strip().lower().encode("utf-8")
        return hmac.compare_digest(expected.encode("ascii"), supplied)


SIGNATURE_SCHEMES: dict[Provider, SignatureScheme] = {
    Provider.KORAPAY: SignatureScheme(
        header_names=("x-korapay-signature",),
        signing_scope=SigningScope.DATA,
    ),
    Provider.PAYSTACK: SignatureScheme(
        header_names=("x-paystack-signature",),
        signing_scope=SigningScope.RAW_BODY,
        digest="sha512",
    ),
    Provider.FLUTTERWAVE: SignatureScheme(
        header_names=("x-signature", "verif-hash"),
        static_hash_header="verif-hash",
    ),
    Provider.EBILLS: SignatureScheme(
        header_names=("x-signature",),
    ),
}

# AppConfig field holding each provider's HMAC secret
SECRET_FIELDS: dict[Provider, str] = {
    Provider.KORAPAY: "korapay_secret_key",
    Provider.PAYSTACK: "paystack_secret_key",
    Provider.FLUTTERWAVE: "flutterwave_secret_key",
    Provider.EBILLS: "ebills_user_pin",
}


class ProviderVerifier:
    """A SignatureScheme bound to its configured secret(s).

    Usage:
        verifier = ProviderVerifier.for_provider(Provider.KORAPAY, config)
        header_value = verifier.signature_from(request.headers)
        if not verifier.verify(raw_body, request.headers): ...
    """

    def __init__(
        self,
        provider: Provider,
        scheme: SignatureScheme,
        secret: str | None,
        static_hash: str | None = None,
    ) -> None:
        self.provider = provider
        self.scheme = scheme
        self._secret = secret
        self._static_hash = static_hash

    @classmethod
    def for_provider(cls, provider: Provider, config: AppConfig) -> "ProviderVerifier":
        """Build the verifier for a provider from the app config."""
        scheme = SIGNATURE_SCHEMES[provider]
        static_hash = None
        if scheme.static_hash_header:
            static_hash = config.secret("flutterwave_secret_hash")
        return cls(
            provider=provider,
            scheme=scheme,
            secret=config.secret(SECRET_FIELDS[provider]),
            static_hash=static_hash,
        )

    def signature_from(self, headers: Mapping[str, str]) -> tuple[str, str] | None:
        """Return (header_name, value) for the first signature header present."""
        for name in self.scheme.header_names:
            value = headers.get(name)
            if value:
                return name, value
        return None

    def verify(self, raw_body: bytes, headers: Mapping[str, str]) -> bool:
        """Verify a request's signature headers against its body."""
        found = self.signature_from(headers)
        if found is None:
            return False
        header_name, value = found

        if header_name == self.scheme.static_hash_header:
            if self._verify_static_hash(value):
                return True
            # verif-hash may also carry an HMAC of the body
            return self.scheme.verify(raw_body, value, self._secret)

        return self.scheme.verify(raw_body, value, self._secret)

    def _verify_static_hash(self, value: str) -> bool:
        if not self._static_hash:
            return False
        return hmac.compare_digest(self._static_hash.encode("utf-8"), value.encode("utf-8"))

    @property
    def configured(self) -> bool:
        return bool(self._secret or self._static_hash)


def verify(
    provider: Provider,
    raw_body: bytes,
    signature_header: str | None,
    secret: str | None,
) -> bool:
    """Verify an HMAC signature for a provider.

    Args:
        provider: Provider tag selecting the scheme
        raw_body: Request body bytes
        signature_header: Signature header value
        secret: Provider secret (None fails closed)

    Returns:
        True if the recomputed digest equals the header value.
    """
    return SIGNATURE_SCHEMES[provider].verify(raw_body, signature_header, secret)
