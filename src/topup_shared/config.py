"""Application configuration.

AppConfig is built once at process start (load_config) and passed to the
services that need it. Nothing below the API layer reads os.environ for
secrets.

Secrets come from environment variables. With SECRETS_SOURCE=ssm, any secret
not set in the environment is fetched from SSM Parameter Store under
/topup/{environment}/{field_name}.
"""

import logging
import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from topup_shared.services.ssm_service import SSMService, get_ssm_service

logger = logging.getLogger(__name__)

DEFAULT_PROTECTED_ROUTE_PREFIXES = ("/", "/dashboard")

# Secret fields and the environment variables they are read from
SECRET_ENV_VARS: dict[str, str] = {
    "session_secret": "SESSION_SECRET",
    "korapay_secret_key": "KORAPAY_SECRET_KEY",
    "paystack_secret_key": "PAYSTACK_SECRET_KEY",
    "flutterwave_secret_key": "FLUTTERWAVE_SECRET_KEY",
    "flutterwave_secret_hash": "FLUTTERWAVE_SECRET_HASH",
    "ebills_user_pin": "EBILLS_USER_PIN",
    "ebills_username": "EBILLS_USERNAME",
    "ebills_password": "EBILLS_PASSWORD",
    "firebase_api_key": "FIREBASE_API_KEY",
    "admin_secret_key": "ADMIN_SECRET_KEY",
}


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


class AppConfig(BaseModel):
    """Immutable process-wide configuration."""

    model_config = ConfigDict(frozen=True)

    environment: str = Field(default="dev")

    # Session
    session_secret: SecretStr
    cookie_secure: bool = Field(default=False)
    protected_route_prefixes: tuple[str, ...] = Field(
        default=DEFAULT_PROTECTED_ROUTE_PREFIXES
    )

    # Provider secrets (None means "not configured": verification fails closed)
    korapay_secret_key: SecretStr | None = None
    paystack_secret_key: SecretStr | None = None
    flutterwave_secret_key: SecretStr | None = None
    flutterwave_secret_hash: SecretStr | None = None
    ebills_user_pin: SecretStr | None = None
    ebills_username: SecretStr | None = None
    ebills_password: SecretStr | None = None
    firebase_api_key: SecretStr | None = None
    admin_secret_key: SecretStr | None = None

    # eBills wallet funding
    ebills_wallet_account_number: str = Field(default="6321078998")
    ebills_wallet_bank_code: str = Field(default="50515")
    public_base_url: str = Field(default="http://localhost:3000")
    balance_recheck_delay_seconds: float = Field(default=5.0, ge=0)

    def secret(self, field_name: str) -> str | None:
        """Return the plain value of a secret field, or None if unset/empty."""
        value = getattr(self, field_name)
        if value is None:
            return None
        plain = value.get_secret_value()
        return plain or None


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_prefixes(value: str | None) -> tuple[str, ...]:
    if not value:
        return DEFAULT_PROTECTED_ROUTE_PREFIXES
    prefixes = tuple(p.strip() for p in value.split(",") if p.strip())
    for prefix in prefixes:
        if not prefix.startswith("/"):
            raise ConfigurationError(
                f"Protected route prefix must start with '/': {prefix!r}"
            )
    return prefixes


def load_config(
    environ: Mapping[str, str] | None = None,
    ssm: SSMService | None = None,
) -> AppConfig:
    """Build the AppConfig from the environment (and SSM when enabled).

    Args:
        environ: Mapping to read from. Defaults to os.environ.
        ssm: SSM service to use when SECRETS_SOURCE=ssm.

    Returns:
        Frozen AppConfig.

    Raises:
        ConfigurationError: If SESSION_SECRET cannot be resolved.
    """
    env = os.environ if environ is None else environ
    environment = env.get("ENVIRONMENT", "dev")
    use_ssm = env.get("SECRETS_SOURCE", "env").lower() == "ssm"

    secrets: dict[str, SecretStr | None] = {}
    for field_name, env_var in SECRET_ENV_VARS.items():
        value = env.get(env_var) or None
        if value is None and use_ssm:
            ssm = ssm or get_ssm_service()
            value = ssm.get_secret(environment, field_name)
        if value is None and field_name != "session_secret":
            logger.debug("Secret %s is not configured", env_var)
        secrets[field_name] = SecretStr(value) if value else None

    if secrets["session_secret"] is None:
        raise ConfigurationError("SESSION_SECRET is required to sign sessions")

    optional: dict[str, object] = {}
    if env.get("EBILLS_WALLET_ACCOUNT_NUMBER"):
        optional["ebills_wallet_account_number"] = env["EBILLS_WALLET_ACCOUNT_NUMBER"]
    if env.get("EBILLS_WALLET_BANK_CODE"):
        optional["ebills_wallet_bank_code"] = env["EBILLS_WALLET_BANK_CODE"]
    if env.get("PUBLIC_BASE_URL"):
        optional["public_base_url"] = env["PUBLIC_BASE_URL"]
    if env.get("BALANCE_RECHECK_DELAY_SECONDS"):
        try:
            optional["balance_recheck_delay_seconds"] = float(
                env["BALANCE_RECHECK_DELAY_SECONDS"]
            )
        except ValueError as e:
            raise ConfigurationError(
                "BALANCE_RECHECK_DELAY_SECONDS must be a number"
            ) from e

    return AppConfig(
        environment=environment,
        cookie_secure=_parse_bool(env.get("COOKIE_SECURE"), default=False),
        protected_route_prefixes=_parse_prefixes(env.get("PROTECTED_ROUTE_PREFIXES")),
        **secrets,
        **optional,
    )
