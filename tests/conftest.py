"""Pytest configuration and fixtures for the top-up backend tests.

This module provides reusable fixtures for testing:
- Environment defaults (secrets, table prefix, fake AWS credentials)
- DynamoDB mocking with moto
- Sample transaction records
- Signing helpers for provider webhooks
"""

import hashlib
import hmac
import json
import os
from decimal import Decimal
from typing import Any, Callable, Generator

import boto3
import httpx
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-topup")
os.environ.setdefault("ENVIRONMENT", "test")

# Only set fake credentials for moto if no real credentials are present
if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

TEST_SESSION_SECRET = "test-session-secret-0123456789abcdef"
TEST_KORAPAY_SECRET = "sk_test_korapay"
TEST_PAYSTACK_SECRET = "sk_test_paystack"
TEST_FLUTTERWAVE_SECRET = "FLWSECK_TEST-flutterwave"
TEST_FLUTTERWAVE_HASH = "flw-static-hash"
TEST_EBILLS_PIN = "4321"
TEST_ADMIN_KEY = "admin-key-for-tests"

os.environ["SESSION_SECRET"] = TEST_SESSION_SECRET
os.environ["KORAPAY_SECRET_KEY"] = TEST_KORAPAY_SECRET
os.environ["PAYSTACK_SECRET_KEY"] = TEST_PAYSTACK_SECRET
os.environ["FLUTTERWAVE_SECRET_KEY"] = TEST_FLUTTERWAVE_SECRET
os.environ["FLUTTERWAVE_SECRET_HASH"] = TEST_FLUTTERWAVE_HASH
os.environ["EBILLS_USER_PIN"] = TEST_EBILLS_PIN
os.environ["EBILLS_USERNAME"] = "ebills-user"
os.environ["EBILLS_PASSWORD"] = "ebills-pass"
os.environ["FIREBASE_API_KEY"] = "firebase-test-key"
os.environ["ADMIN_SECRET_KEY"] = TEST_ADMIN_KEY
os.environ["BALANCE_RECHECK_DELAY_SECONDS"] = "0"
os.environ["SECRETS_SOURCE"] = "env"

TABLE_PREFIX = os.environ["DYNAMODB_TABLE_PREFIX"]


# === Service Reset ===


@pytest.fixture(autouse=True)
def reset_services_state() -> Generator[None, None, None]:
    """Reset cached services and the DynamoDB singleton around each test.

    Tests using mock_aws then get a fresh DynamoDBService inside the mock
    context rather than one created outside it.
    """
    from topup_api.dependencies import reset_services

    reset_services()
    yield
    reset_services()


# === Config Fixtures ===


@pytest.fixture
def app_config():
    """AppConfig built from the test environment."""
    from topup_shared.config import load_config

    return load_config()


# === DynamoDB Fixtures ===


def _create_tables(client: Any) -> None:
    client.create_table(
        TableName=f"{TABLE_PREFIX}-transactions",
        KeySchema=[{"AttributeName": "transaction_id", "KeyType": "HASH"}],
        AttributeDefinitions=[
            {"AttributeName": "transaction_id", "AttributeType": "S"},
            {"AttributeName": "reference", "AttributeType": "S"},
        ],
        GlobalSecondaryIndexes=[
            {
                "IndexName": "reference-index",
                "KeySchema": [{"AttributeName": "reference", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            }
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    client.create_table(
        TableName=f"{TABLE_PREFIX}-users",
        KeySchema=[{"AttributeName": "user_id", "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": "user_id", "AttributeType": "S"}],
        BillingMode="PAY_PER_REQUEST",
    )
    client.create_table(
        TableName=f"{TABLE_PREFIX}-admin",
        KeySchema=[{"AttributeName": "admin_id", "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": "admin_id", "AttributeType": "S"}],
        BillingMode="PAY_PER_REQUEST",
    )


@pytest.fixture
def dynamodb_tables() -> Generator[Any, None, None]:
    """Create all tables inside mock_aws and yield the shared DynamoDBService."""
    with mock_aws():
        _create_tables(boto3.client("dynamodb", region_name="eu-west-1"))

        from topup_shared.services.dynamodb import get_dynamodb_service

        yield get_dynamodb_service()


@pytest.fixture
def put_transaction(dynamodb_tables: Any) -> Callable[..., dict[str, Any]]:
    """Factory that stores a transaction record and returns it."""

    def _put(**overrides: Any) -> dict[str, Any]:
        item: dict[str, Any] = {
            "transaction_id": "TXN-0001",
            "user_id": "uid42",
            "provider": "korapay",
            "type": "withdrawal",
            "amount": Decimal("5000"),
            "status": "pending",
            "reference": "abc123",
            "refunded": False,
            "created_at": "2026-01-01T00:00:00+00:00",
            "updated_at": "2026-01-01T00:00:00+00:00",
        }
        item.update(overrides)
        dynamodb_tables.put_item("transactions", item)
        return item

    return _put


@pytest.fixture
def put_user(dynamodb_tables: Any) -> Callable[..., dict[str, Any]]:
    """Factory that stores a user record with a wallet balance."""

    def _put(user_id: str = "uid42", wallet_balance: Decimal = Decimal("0")) -> dict[str, Any]:
        item = {"user_id": user_id, "email": f"{user_id}@example.com", "wallet_balance": wallet_balance}
        dynamodb_tables.put_item("users", item)
        return item

    return _put


# === Signing Helpers ===


def compact_json(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def hmac_hex(secret: str, message: bytes, digest: Any = hashlib.sha256) -> str:
    return hmac.new(secret.encode("utf-8"), message, digest).hexdigest()


# === Provider Fakes ===


class FakeFirebase:
    """In-memory stand-in for the Identity Toolkit REST API (httpx handler)."""

    def __init__(self) -> None:
        self.accounts: dict[str, tuple[str, str]] = {}
        self.requests: list[httpx.Request] = []

    def add_account(self, email: str, password: str, uid: str) -> None:
        self.accounts[email] = (uid, password)

    def _error(self, message: str) -> httpx.Response:
        return httpx.Response(400, json={"error": {"code": 400, "message": message}})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = json.loads(request.content)
        email, password = body["email"], body["password"]

        if request.url.path.endswith("accounts:signUp"):
            if email in self.accounts:
                return self._error("EMAIL_EXISTS")
            uid = f"uid-{len(self.accounts) + 1}"
            self.accounts[email] = (uid, password)
            return httpx.Response(200, json={"localId": uid, "email": email, "idToken": "id-token"})

        if request.url.path.endswith("accounts:signInWithPassword"):
            account = self.accounts.get(email)
            if account is None or account[1] != password:
                return self._error("INVALID_LOGIN_CREDENTIALS")
            return httpx.Response(
                200, json={"localId": account[0], "email": email, "idToken": "id-token"}
            )

        return httpx.Response(404, json={"error": {"message": "NOT_FOUND"}})


@pytest.fixture
def fake_firebase() -> FakeFirebase:
    return FakeFirebase()


@pytest.fixture
def client(fake_firebase: FakeFirebase) -> Generator[Any, None, None]:
    """TestClient with the identity client wired to FakeFirebase."""
    from fastapi.testclient import TestClient

    from topup_api.dependencies import get_config, get_identity_client
    from topup_api.main import app
    from topup_shared.services.identity_client import IdentityClient

    identity = IdentityClient(get_config(), transport=httpx.MockTransport(fake_firebase.handler))
    app.dependency_overrides[get_identity_client] = lambda: identity
    yield TestClient(app)
    app.dependency_overrides.clear()
