"""Contract tests for the generated OpenAPI document.

These tests validate that:
1. Every provider webhook and API route is published
2. Page routes stay out of the schema
3. Live response bodies conform to their published schemas
"""

import json
from typing import Any, Callable

import pytest
from jsonschema import ValidationError, validate

from conftest import TEST_KORAPAY_SECRET, compact_json, hmac_hex
from topup_api.main import app
from topup_shared.models.errors import ErrorResponse

WEBHOOK_PATHS = [
    "/api/kora/webhook",
    "/api/paystack/webhook",
    "/api/webhooks/funding",
    "/api/webhooks/withdrawal",
    "/api/webhooks/ebills",
]


@pytest.fixture
def openapi() -> dict[str, Any]:
    return app.openapi()


def component(openapi: dict[str, Any], name: str) -> dict[str, Any]:
    """Schema referencing a component, resolvable against the document."""
    return {"$ref": f"#/components/schemas/{name}", "components": openapi["components"]}


class TestPublishedRoutes:
    @pytest.mark.parametrize("path", WEBHOOK_PATHS)
    def test_webhooks_published(self, openapi: dict[str, Any], path: str) -> None:
        operation = openapi["paths"][path]["post"]

        assert set(operation["responses"]) >= {"200", "400", "500"}

    @pytest.mark.parametrize(
        ("path", "method"),
        [
            ("/api/auth/signup", "post"),
            ("/api/auth/signin", "post"),
            ("/api/auth/signout", "post"),
            ("/api/auth/session", "get"),
            ("/api/balance/fund", "post"),
            ("/api/balance/check", "get"),
            ("/api/health", "get"),
        ],
    )
    def test_api_routes_published(self, openapi: dict[str, Any], path: str, method: str) -> None:
        assert method in openapi["paths"][path]

    def test_pages_not_published(self, openapi: dict[str, Any]) -> None:
        assert not any(not path.startswith("/api") for path in openapi["paths"])

    def test_signup_schema_requires_credentials(self, openapi: dict[str, Any]) -> None:
        schema = openapi["components"]["schemas"]["SignUpRequest"]

        assert set(schema["required"]) == {"email", "password"}
        assert schema["properties"]["password"]["minLength"] == 6


class TestResponseBodies:
    def test_webhook_ack_matches_schema(
        self,
        client: Any,
        openapi: dict[str, Any],
        put_transaction: Callable[..., dict[str, Any]],
    ) -> None:
        put_transaction()
        body = {"event": "transfer.success", "data": {"reference": "abc123", "status": "success"}}
        signature = hmac_hex(TEST_KORAPAY_SECRET, compact_json(body["data"]))

        response = client.post(
            "/api/kora/webhook",
            content=json.dumps(body),
            headers={"x-korapay-signature": signature},
        )

        validate(instance=response.json(), schema=component(openapi, "WebhookAck"))

    def test_error_body_matches_error_response(self, client: Any) -> None:
        response = client.post("/api/kora/webhook", content=b"{}", headers={"x-korapay-signature": "deadbeef"})

        validate(instance=response.json(), schema=ErrorResponse.model_json_schema())

    def test_schema_rejects_unknown_processing_result(self, openapi: dict[str, Any]) -> None:
        ack = {"message": "ok", "status": "success", "processing_result": "queued", "reference": None}

        with pytest.raises(ValidationError):
            validate(instance=ack, schema=component(openapi, "WebhookAck"))
