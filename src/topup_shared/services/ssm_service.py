"""Secrets from AWS SSM Parameter Store.

Parameters are SecureStrings named /topup/{environment}/{secret_name}, where
secret_name is the AppConfig field (e.g. /topup/prod/korapay_secret_key).
Values are cached for the life of the process.
"""

import logging
from functools import lru_cache

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

PARAMETER_ROOT = "/topup"


class SSMServiceError(Exception):
    """Raised when a parameter exists but cannot be read."""

    pass


def parameter_name(environment: str, secret_name: str) -> str:
    return f"{PARAMETER_ROOT}/{environment}/{secret_name}"


class SSMService:
    """Cached, decrypting reads from Parameter Store.

    Usage:
        ssm = SSMService()
        pin = ssm.get_secret("prod", "ebills_user_pin")  # None if absent
    """

    def __init__(self) -> None:
        self._client = boto3.client("ssm")
        self._cache: dict[str, str] = {}

    def _fetch(self, name: str) -> str | None:
        try:
            response = self._client.get_parameter(Name=name, WithDecryption=True)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            if code == "ParameterNotFound":
                return None
            if code == "AccessDeniedException":
                raise SSMServiceError(
                    f"Access denied to SSM parameter {name}; the role needs ssm:GetParameter"
                ) from e
            raise SSMServiceError(f"Failed to read SSM parameter {name}: {e}") from e
        return response["Parameter"]["Value"]

    def get_parameter(self, name: str) -> str:
        """Read a parameter that must exist.

        Raises:
            SSMServiceError: If it is missing or unreadable.
        """
        value = self.get_optional_parameter(name)
        if value is None:
            raise SSMServiceError(f"SSM parameter not found: {name}")
        return value

    def get_optional_parameter(self, name: str) -> str | None:
        """Read a parameter, returning None when it does not exist."""
        if name in self._cache:
            return self._cache[name]

        logger.info("Fetching SSM parameter %s", name)
        value = self._fetch(name)
        if value is None:
            logger.debug("SSM parameter %s not set", name)
            return None

        self._cache[name] = value
        return value

    def get_secret(self, environment: str, secret_name: str) -> str | None:
        """Read /topup/{environment}/{secret_name}, or None if it is not set."""
        return self.get_optional_parameter(parameter_name(environment, secret_name))

    def clear_cache(self) -> None:
        self._cache.clear()


@lru_cache(maxsize=1)
def get_ssm_service() -> SSMService:
    """Get the shared SSMService instance."""
    return SSMService()
