"""Webhook endpoints for payment and VTU providers.

Provides endpoints for:
- Korapay payouts (/kora/webhook)
- Paystack charges (/paystack/webhook)
- Flutterwave funding and withdrawals (/webhooks/funding, /webhooks/withdrawal)
- eBills VTU status updates (/webhooks/ebills)

These endpoints do NOT use the session cookie; each request must carry a
valid provider signature. Nothing in the body is trusted until the
signature checks out.

Responses:
- 400: missing or invalid signature, or a body that is not a JSON object
- 500: the event could not be applied; the provider should retry
- 200: event acknowledged; processing_result tells what happened
"""

from typing import Any

from fastapi import APIRouter, Depends, Request

from topup_shared.models.enums import Provider
from topup_shared.models.errors import ErrorCode, TopupError
from topup_shared.services.webhook_dispatcher import (
    MalformedEventError,
    WebhookDispatcher,
    build_event,
)
from topup_shared.services.webhook_verifier import parse_json
from topup_shared.utils.logging import get_logger

from topup_api.dependencies import get_dispatcher, get_verifier
from topup_api.models.webhooks import WebhookAck

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])

WEBHOOK_RESPONSES: dict[int | str, dict[str, Any]] = {
    200: {"description": "Event received and processed (or acknowledged)"},
    400: {"description": "Invalid signature or malformed body"},
    500: {"description": "Processing failed; provider should retry"},
}

# Both Flutterwave URLs share one verifier; each settles only its own events
FUNDING_EVENTS = frozenset({"charge.completed"})
WITHDRAWAL_EVENTS = frozenset({"transfer.completed", "transfer.failed", "transfer.disburse"})


async def _handle(
    request: Request,
    provider: Provider,
    dispatcher: WebhookDispatcher,
    event_types: frozenset[str] | None = None,
) -> WebhookAck:
    """Verify, normalize and dispatch one provider callback."""
    raw_body = await request.body()
    verifier = get_verifier(provider)

    found = verifier.signature_from(request.headers)
    if found is None:
        logger.warning("%s webhook missing signature header", provider.value)
        raise TopupError(ErrorCode.MISSING_WEBHOOK_SIGNATURE)
    _, signature = found

    if not verifier.verify(raw_body, request.headers):
        logger.warning(
            "%s webhook signature verification failed (secret configured: %s)",
            provider.value,
            verifier.configured,
        )
        raise TopupError(ErrorCode.INVALID_WEBHOOK_SIGNATURE)

    try:
        body = parse_json(raw_body)
    except (ValueError, UnicodeDecodeError) as e:
        raise TopupError(ErrorCode.MALFORMED_WEBHOOK_PAYLOAD) from e
    if not isinstance(body, dict):
        raise TopupError(ErrorCode.MALFORMED_WEBHOOK_PAYLOAD)

    try:
        event = build_event(provider, body, signature)
    except MalformedEventError as e:
        raise TopupError(
            ErrorCode.MALFORMED_WEBHOOK_PAYLOAD, details={"message": str(e)}
        ) from e

    try:
        outcome = dispatcher.dispatch(event, event_types)
    except Exception as e:
        logger.exception(
            "Failed to process %s %s (reference=%s)",
            provider.value,
            event.event_type,
            event.reference,
        )
        raise TopupError(ErrorCode.WEBHOOK_PROCESSING_FAILED) from e

    return WebhookAck(
        message=outcome.message or "Webhook processed successfully",
        processing_result=outcome.result,
        reference=outcome.reference,
    )


@router.post(
    "/kora/webhook",
    summary="Receive Korapay webhook events",
    description="Handles transfer.success and transfer.failed. Signed with HMAC-SHA256 over the `data` object.",
    response_model=WebhookAck,
    responses=WEBHOOK_RESPONSES,
)
async def korapay_webhook(
    request: Request,
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
) -> WebhookAck:
    return await _handle(request, Provider.KORAPAY, dispatcher)


@router.post(
    "/paystack/webhook",
    summary="Receive Paystack webhook events",
    description="Handles charge.success. Signed with HMAC-SHA512 over the raw body.",
    response_model=WebhookAck,
    responses=WEBHOOK_RESPONSES,
)
async def paystack_webhook(
    request: Request,
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
) -> WebhookAck:
    return await _handle(request, Provider.PAYSTACK, dispatcher)


@router.post(
    "/webhooks/funding",
    summary="Receive Flutterwave funding events",
    description="Handles charge.completed for wallet funding; other event types are acknowledged as skipped.",
    response_model=WebhookAck,
    responses=WEBHOOK_RESPONSES,
)
async def flutterwave_funding_webhook(
    request: Request,
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
) -> WebhookAck:
    return await _handle(request, Provider.FLUTTERWAVE, dispatcher, FUNDING_EVENTS)


@router.post(
    "/webhooks/withdrawal",
    summary="Receive Flutterwave withdrawal events",
    description="Handles transfer.completed, transfer.failed and transfer.disburse.",
    response_model=WebhookAck,
    responses=WEBHOOK_RESPONSES,
)
async def flutterwave_withdrawal_webhook(
    request: Request,
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
) -> WebhookAck:
    return await _handle(request, Provider.FLUTTERWAVE, dispatcher, WITHDRAWAL_EVENTS)


@router.post(
    "/webhooks/ebills",
    summary="Receive eBills VTU status updates",
    description="Signed with HMAC-SHA256 over the re-serialized JSON body, keyed by the eBills user PIN.",
    response_model=WebhookAck,
    responses=WEBHOOK_RESPONSES,
)
async def ebills_webhook(
    request: Request,
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
) -> WebhookAck:
    return await _handle(request, Provider.EBILLS, dispatcher)
