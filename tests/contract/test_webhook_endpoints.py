"""Contract tests for the provider webhook endpoints.

Verifies the HTTP surface of each webhook: signature headers, status codes,
the ErrorResponse shape on rejection and the WebhookAck shape on success.
Transactions live in moto-backed DynamoDB tables.
"""

import hashlib
import json
from decimal import Decimal
from typing import Any, Callable
from unittest.mock import MagicMock

import pytest

from conftest import (
    TEST_EBILLS_PIN,
    TEST_FLUTTERWAVE_HASH,
    TEST_FLUTTERWAVE_SECRET,
    TEST_KORAPAY_SECRET,
    TEST_PAYSTACK_SECRET,
    compact_json,
    hmac_hex,
)
from topup_api.dependencies import get_dispatcher
from topup_api.main import app


def korapay_request(body: dict[str, Any]) -> tuple[bytes, dict[str, str]]:
    """Pretty-printed body signed over its compact `data` object."""
    raw = json.dumps(body, indent=2).encode("utf-8")
    signature = hmac_hex(TEST_KORAPAY_SECRET, compact_json(body["data"]))
    return raw, {"x-korapay-signature": signature, "content-type": "application/json"}


def paystack_request(body: dict[str, Any]) -> tuple[bytes, dict[str, str]]:
    raw = compact_json(body)
    signature = hmac_hex(TEST_PAYSTACK_SECRET, raw, hashlib.sha512)
    return raw, {"x-paystack-signature": signature, "content-type": "application/json"}


def ebills_request(body: dict[str, Any]) -> tuple[bytes, dict[str, str]]:
    raw = compact_json(body)
    return raw, {"x-signature": hmac_hex(TEST_EBILLS_PIN, raw), "content-type": "application/json"}


def _status(db: Any, transaction_id: str = "TXN-0001") -> str:
    return db.get_item("transactions", {"transaction_id": transaction_id})["status"]


def _balance(db: Any, user_id: str = "uid42") -> Decimal:
    user = db.get_user(user_id)
    return Decimal("0") if user is None else Decimal(str(user.get("wallet_balance", 0)))


class TestKorapayWebhook:
    BODY = {
        "event": "transfer.success",
        "data": {"reference": "abc123", "status": "success", "amount": 5000, "fee": 15},
    }

    def test_transfer_success_settles_once(
        self,
        client: Any,
        dynamodb_tables: Any,
        put_transaction: Callable[..., dict[str, Any]],
    ) -> None:
        put_transaction()
        raw, headers = korapay_request(self.BODY)

        first = client.post("/api/kora/webhook", content=raw, headers=headers)

        assert first.status_code == 200
        assert first.json() == {
            "message": "Webhook processed successfully",
            "status": "success",
            "processing_result": "success",
            "reference": "abc123",
        }
        assert _status(dynamodb_tables) == "success"

        replay = client.post("/api/kora/webhook", content=raw, headers=headers)

        assert replay.status_code == 200
        assert replay.json()["processing_result"] == "duplicate"
        assert _status(dynamodb_tables) == "success"

    def test_float_amounts_signed_as_javascript_prints_them(
        self,
        client: Any,
        dynamodb_tables: Any,
        put_transaction: Callable[..., dict[str, Any]],
    ) -> None:
        put_transaction()
        raw = (
            b'{\n  "event": "transfer.success",\n'
            b'  "data": {"reference": "abc123", "status": "success", "amount": 5000.00, "fee": 1.50}\n}'
        )
        signed = b'{"reference":"abc123","status":"success","amount":5000,"fee":1.5}'

        response = client.post(
            "/api/kora/webhook",
            content=raw,
            headers={"x-korapay-signature": hmac_hex(TEST_KORAPAY_SECRET, signed)},
        )

        assert response.status_code == 200
        assert response.json()["processing_result"] == "success"
        assert _status(dynamodb_tables) == "success"

    def test_paystack_funding_record_not_settled(
        self,
        client: Any,
        dynamodb_tables: Any,
        put_transaction: Callable[..., dict[str, Any]],
        put_user: Callable[..., dict[str, Any]],
    ) -> None:
        put_user()
        put_transaction(provider="paystack", type="funding")
        raw, headers = korapay_request(self.BODY)

        response = client.post("/api/kora/webhook", content=raw, headers=headers)

        assert response.status_code == 200
        assert response.json()["processing_result"] == "error"
        assert _status(dynamodb_tables) == "pending"
        assert _balance(dynamodb_tables) == Decimal("0")

    def test_transfer_failed_refunds_wallet(
        self,
        client: Any,
        dynamodb_tables: Any,
        put_transaction: Callable[..., dict[str, Any]],
        put_user: Callable[..., dict[str, Any]],
    ) -> None:
        put_transaction()
        put_user(wallet_balance=Decimal("100"))
        body = {"event": "transfer.failed", "data": {"reference": "abc123", "status": "failed"}}
        raw, headers = korapay_request(body)

        response = client.post("/api/kora/webhook", content=raw, headers=headers)

        assert response.json()["processing_result"] == "success"
        assert _status(dynamodb_tables) == "failed"
        assert _balance(dynamodb_tables) == Decimal("5100")

    def test_invalid_signature_rejected(
        self,
        client: Any,
        dynamodb_tables: Any,
        put_transaction: Callable[..., dict[str, Any]],
    ) -> None:
        put_transaction()
        raw, headers = korapay_request(self.BODY)
        headers["x-korapay-signature"] = "deadbeef"

        response = client.post("/api/kora/webhook", content=raw, headers=headers)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == "ERR_WEBHOOK_002"
        assert body["message"] == "Invalid signature"
        assert _status(dynamodb_tables) == "pending"

    def test_missing_signature_rejected(self, client: Any) -> None:
        raw, _ = korapay_request(self.BODY)

        response = client.post(
            "/api/kora/webhook", content=raw, headers={"content-type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "ERR_WEBHOOK_001"

    def test_unhandled_event_acknowledged(self, client: Any, dynamodb_tables: Any) -> None:
        body = {"event": "charge.success", "data": {"reference": "abc123", "status": "success"}}
        raw, headers = korapay_request(body)

        response = client.post("/api/kora/webhook", content=raw, headers=headers)

        assert response.status_code == 200
        assert response.json()["processing_result"] == "skipped"

    def test_unknown_reference_acknowledged(self, client: Any, dynamodb_tables: Any) -> None:
        body = {"event": "transfer.success", "data": {"reference": "nope", "status": "success"}}
        raw, headers = korapay_request(body)

        response = client.post("/api/kora/webhook", content=raw, headers=headers)

        assert response.status_code == 200
        assert response.json()["processing_result"] == "not_found"
        assert response.json()["reference"] == "nope"

    def test_store_failure_asks_provider_to_retry(self, client: Any) -> None:
        dispatcher = MagicMock()
        dispatcher.dispatch.side_effect = RuntimeError("table unavailable")
        app.dependency_overrides[get_dispatcher] = lambda: dispatcher
        raw, headers = korapay_request(self.BODY)

        response = client.post("/api/kora/webhook", content=raw, headers=headers)

        assert response.status_code == 500
        assert response.json()["error_code"] == "ERR_WEBHOOK_004"
        assert "table unavailable" not in response.text


class TestPaystackWebhook:
    def test_charge_success_credits_wallet_once(
        self,
        client: Any,
        dynamodb_tables: Any,
        put_transaction: Callable[..., dict[str, Any]],
        put_user: Callable[..., dict[str, Any]],
    ) -> None:
        put_transaction(
            transaction_id="TXN-PS",
            provider="paystack",
            type="funding",
            amount=Decimal("2500"),
            reference="ps_ref_1",
        )
        put_user(wallet_balance=Decimal("0"))
        body = {
            "event": "charge.success",
            "data": {"reference": "ps_ref_1", "status": "success", "amount": 250000},
        }
        raw, headers = paystack_request(body)

        client.post("/api/paystack/webhook", content=raw, headers=headers)
        replay = client.post("/api/paystack/webhook", content=raw, headers=headers)

        assert replay.json()["processing_result"] == "duplicate"
        assert _status(dynamodb_tables, "TXN-PS") == "success"
        assert _balance(dynamodb_tables) == Decimal("2500")

    def test_signed_body_without_data_is_malformed(self, client: Any) -> None:
        raw, headers = paystack_request({"event": "charge.success"})

        response = client.post("/api/paystack/webhook", content=raw, headers=headers)

        assert response.status_code == 400
        assert response.json()["error_code"] == "ERR_WEBHOOK_003"

    def test_signed_non_object_body_is_malformed(self, client: Any) -> None:
        raw = b"[1, 2, 3]"
        signature = hmac_hex(TEST_PAYSTACK_SECRET, raw, hashlib.sha512)

        response = client.post(
            "/api/paystack/webhook", content=raw, headers={"x-paystack-signature": signature}
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "ERR_WEBHOOK_003"

    def test_sha256_signature_rejected(self, client: Any) -> None:
        raw = compact_json({"event": "charge.success", "data": {}})

        response = client.post(
            "/api/paystack/webhook",
            content=raw,
            headers={"x-paystack-signature": hmac_hex(TEST_PAYSTACK_SECRET, raw)},
        )

        assert response.json()["error_code"] == "ERR_WEBHOOK_002"


class TestFlutterwaveWebhooks:
    def test_funding_with_verif_hash(
        self,
        client: Any,
        dynamodb_tables: Any,
        put_transaction: Callable[..., dict[str, Any]],
        put_user: Callable[..., dict[str, Any]],
    ) -> None:
        put_user()
        put_transaction(
            transaction_id="TXN-FW",
            provider="flutterwave",
            type="funding",
            amount=Decimal("700"),
            reference="fw_ref_1",
        )
        body = {
            "event": "charge.completed",
            "data": {"reference": "fw_ref_1", "status": "successful", "amount": 700},
        }

        response = client.post(
            "/api/webhooks/funding",
            content=compact_json(body),
            headers={"verif-hash": TEST_FLUTTERWAVE_HASH},
        )

        assert response.json()["processing_result"] == "success"
        assert _balance(dynamodb_tables) == Decimal("700")

    def test_funding_endpoint_ignores_transfer_events(
        self,
        client: Any,
        dynamodb_tables: Any,
        put_transaction: Callable[..., dict[str, Any]],
        put_user: Callable[..., dict[str, Any]],
    ) -> None:
        put_user()
        put_transaction(
            transaction_id="TXN-FW-OUT",
            provider="flutterwave",
            amount=Decimal("300"),
            reference="fw_out_1",
        )
        raw = compact_json({"type": "transfer.disburse", "data": {"reference": "fw_out_1", "status": "FAILED"}})

        response = client.post(
            "/api/webhooks/funding",
            content=raw,
            headers={"x-signature": hmac_hex(TEST_FLUTTERWAVE_SECRET, raw)},
        )

        assert response.status_code == 200
        assert response.json()["processing_result"] == "skipped"
        assert _status(dynamodb_tables, "TXN-FW-OUT") == "pending"
        assert _balance(dynamodb_tables) == Decimal("0")

    def test_withdrawal_failure_with_hmac_header(
        self,
        client: Any,
        dynamodb_tables: Any,
        put_transaction: Callable[..., dict[str, Any]],
        put_user: Callable[..., dict[str, Any]],
    ) -> None:
        put_user()
        put_transaction(
            transaction_id="TXN-FW-OUT",
            provider="flutterwave",
            amount=Decimal("300"),
            reference="fw_out_1",
        )
        body = {"type": "transfer.disburse", "data": {"reference": "fw_out_1", "status": "FAILED"}}
        raw = compact_json(body)

        response = client.post(
            "/api/webhooks/withdrawal",
            content=raw,
            headers={"x-signature": hmac_hex(TEST_FLUTTERWAVE_SECRET, raw)},
        )

        assert response.json()["processing_result"] == "success"
        assert _status(dynamodb_tables, "TXN-FW-OUT") == "failed"
        assert _balance(dynamodb_tables) == Decimal("300")

    def test_wrong_verif_hash_rejected(self, client: Any) -> None:
        response = client.post(
            "/api/webhooks/funding",
            content=b'{"event":"charge.completed","data":{}}',
            headers={"verif-hash": "not-the-hash"},
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "ERR_WEBHOOK_002"


class TestEbillsWebhook:
    REQUEST_ID = "req_1717000000_airtime_uid42"

    @pytest.fixture
    def vtu_transaction(self, put_transaction: Callable[..., dict[str, Any]]) -> dict[str, Any]:
        return put_transaction(
            transaction_id="TXN-VTU",
            provider="ebills",
            type="vtu",
            amount=Decimal("250"),
            reference=self.REQUEST_ID,
            status="processing",
        )

    def test_completed_purchase(
        self, client: Any, dynamodb_tables: Any, vtu_transaction: dict[str, Any]
    ) -> None:
        raw, headers = ebills_request({"request_id": self.REQUEST_ID, "status": "completed-api"})

        response = client.post("/api/webhooks/ebills", content=raw, headers=headers)

        assert response.json()["processing_result"] == "success"
        assert _status(dynamodb_tables, "TXN-VTU") == "success"

    def test_refunded_purchase_credits_wallet(
        self,
        client: Any,
        dynamodb_tables: Any,
        vtu_transaction: dict[str, Any],
        put_user: Callable[..., dict[str, Any]],
    ) -> None:
        put_user()
        raw, headers = ebills_request({"request_id": self.REQUEST_ID, "status": "refunded"})

        client.post("/api/webhooks/ebills", content=raw, headers=headers)
        client.post("/api/webhooks/ebills", content=raw, headers=headers)

        assert _status(dynamodb_tables, "TXN-VTU") == "failed"
        assert _balance(dynamodb_tables) == Decimal("250")

    def test_pretty_printed_body_signed_over_compact_form(
        self, client: Any, dynamodb_tables: Any, vtu_transaction: dict[str, Any]
    ) -> None:
        raw = f'{{"request_id": "{self.REQUEST_ID}", "status": "completed-api", "amount": 250.00}}'.encode()
        signed = compact_json({"request_id": self.REQUEST_ID, "status": "completed-api", "amount": 250})

        response = client.post(
            "/api/webhooks/ebills",
            content=raw,
            headers={"x-signature": hmac_hex(TEST_EBILLS_PIN, signed)},
        )

        assert response.json()["processing_result"] == "success"
        assert _status(dynamodb_tables, "TXN-VTU") == "success"

    def test_signature_keyed_by_pin_only(self, client: Any, vtu_transaction: dict[str, Any]) -> None:
        raw = compact_json({"request_id": self.REQUEST_ID, "status": "completed-api"})

        response = client.post(
            "/api/webhooks/ebills",
            content=raw,
            headers={"x-signature": hmac_hex(TEST_KORAPAY_SECRET, raw)},
        )

        assert response.json()["error_code"] == "ERR_WEBHOOK_002"
