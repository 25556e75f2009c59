"""Dispatch verified webhook events to idempotent status updates.

Provides business logic for webhook events separate from HTTP routing, so
handlers can be unit tested without a request.

Idempotency rule: a transaction already in a terminal status (success or
failed) is never changed again. The status change and any wallet credit or
refund happen in one conditional DynamoDB transaction, so a replayed event
neither flips the status nor moves money twice.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from topup_shared.models.enums import (
    EventStatus,
    ProcessingResult,
    Provider,
    TransactionStatus,
    TransactionType,
)
from topup_shared.models.transaction import Transaction
from topup_shared.models.webhook import DispatchOutcome, WebhookEvent
from topup_shared.services.dynamodb import DynamoDBService, get_dynamodb_service
from topup_shared.utils.logging import get_logger, log_webhook_event

logger = get_logger(__name__)

# eBills callbacks carry no event name; they all report a VTU status change
EBILLS_EVENT_TYPE = "transaction.status"

# Statuses a webhook may move a transaction out of
OPEN_STATUSES = (TransactionStatus.PENDING.value, TransactionStatus.PROCESSING.value)


@dataclass(frozen=True)
class EventRule:
    """What a handled event means and which records it may settle."""

    # Status the event type implies, or None to use the payload status
    implies: EventStatus | None
    settles: frozenset[TransactionType]


_FUNDING = frozenset({TransactionType.FUNDING})
_WITHDRAWAL = frozenset({TransactionType.WITHDRAWAL})

HANDLED_EVENTS: dict[tuple[Provider, str], EventRule] = {
    (Provider.KORAPAY, "transfer.success"): EventRule(EventStatus.SUCCESS, _WITHDRAWAL),
    (Provider.KORAPAY, "transfer.failed"): EventRule(EventStatus.FAILED, _WITHDRAWAL),
    (Provider.PAYSTACK, "charge.success"): EventRule(EventStatus.SUCCESS, _FUNDING),
    (Provider.FLUTTERWAVE, "charge.completed"): EventRule(EventStatus.SUCCESS, _FUNDING),
    (Provider.FLUTTERWAVE, "transfer.completed"): EventRule(None, _WITHDRAWAL),
    (Provider.FLUTTERWAVE, "transfer.failed"): EventRule(EventStatus.FAILED, _WITHDRAWAL),
    (Provider.FLUTTERWAVE, "transfer.disburse"): EventRule(None, _WITHDRAWAL),
    (Provider.EBILLS, EBILLS_EVENT_TYPE): EventRule(None, frozenset({TransactionType.VTU})),
}

_STATUS_WORDS: dict[str, EventStatus] = {
    "success": EventStatus.SUCCESS,
    "successful": EventStatus.SUCCESS,
    "succeeded": EventStatus.SUCCESS,
    "completed": EventStatus.SUCCESS,
    "completed-api": EventStatus.SUCCESS,
    "failed": EventStatus.FAILED,
    "refunded": EventStatus.FAILED,
    "reversed": EventStatus.FAILED,
    "abandoned": EventStatus.FAILED,
}


class MalformedEventError(ValueError):
    """Raised when a verified payload lacks the fields its provider always sends."""

    pass


def normalize_status(value: Any) -> EventStatus:
    """Map a provider status string onto success/failed/pending."""
    if not isinstance(value, str):
        return EventStatus.PENDING
    return _STATUS_WORDS.get(value.strip().lower(), EventStatus.PENDING)


def _parse_amount(value: Any) -> Decimal | None:
    if isinstance(value, dict):
        value = value.get("value")
    if value is None or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def subject_from_request_id(request_id: str) -> str | None:
    """Extract the user ID from an eBills request_id.

    Format: req_<timestamp>_<service>_<user_id>; the trailing segment is the user.
    """
    parts = request_id.split("_")
    if len(parts) < 4:
        return None
    return parts[-1] or None


def build_event(provider: Provider, body: dict[str, Any], signature: str) -> WebhookEvent:
    """Normalize a verified provider payload into a WebhookEvent.

    Args:
        provider: Provider that sent the payload
        body: Parsed JSON body
        signature: Signature header value as received

    Returns:
        WebhookEvent

    Raises:
        MalformedEventError: If required fields are missing or mistyped.
    """
    if provider is Provider.EBILLS:
        request_id = body.get("request_id")
        if request_id is not None and not isinstance(request_id, str):
            raise MalformedEventError("request_id must be a string")
        return WebhookEvent(
            provider=provider,
            event_type=EBILLS_EVENT_TYPE,
            reference=request_id,
            status=normalize_status(body.get("status")),
            provider_status=body.get("status") if isinstance(body.get("status"), str) else None,
            amount=_parse_amount(body.get("amount")),
            subject_id=subject_from_request_id(request_id) if request_id else None,
            raw_signature=signature,
            data=body,
        )

    event_type = body.get("event") or body.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise MalformedEventError("Missing event type")

    data = body.get("data")
    if not isinstance(data, dict):
        raise MalformedEventError("Missing data object")

    reference = data.get("reference")
    if reference is not None and not isinstance(reference, str):
        reference = str(reference)

    amount = _parse_amount(data.get("amount"))
    if provider is Provider.PAYSTACK and amount is not None:
        amount = amount / 100  # kobo -> naira

    provider_status = data.get("status")
    return WebhookEvent(
        provider=provider,
        event_type=event_type,
        reference=reference,
        status=normalize_status(provider_status),
        provider_status=provider_status if isinstance(provider_status, str) else None,
        amount=amount,
        raw_signature=signature,
        data=data,
    )


class WebhookDispatcher:
    """Route verified events to the matching status-update handler."""

    def __init__(self, db: DynamoDBService | None = None) -> None:
        self._db = db or get_dynamodb_service()

    def dispatch(self, event: WebhookEvent, event_types: frozenset[str] | None = None) -> DispatchOutcome:
        """Apply one verified event.

        Unrecognized (provider, event_type) pairs, and event types outside
        `event_types` when the receiving endpoint narrows them, are
        acknowledged as skipped. Store failures propagate so the caller can
        answer 500 and let the provider retry.
        """
        key = (event.provider, event.event_type)
        rule = HANDLED_EVENTS.get(key)
        if rule is None or (event_types is not None and event.event_type not in event_types):
            return self._finish(event, ProcessingResult.SKIPPED, f"Event type '{event.event_type}' not handled")

        if rule.implies is not None and event.status is not rule.implies:
            return self._finish(
                event,
                ProcessingResult.SKIPPED,
                f"Status '{event.provider_status}' does not match event '{event.event_type}'",
            )

        target = rule.implies or event.status
        if target is EventStatus.PENDING:
            return self._finish(event, ProcessingResult.SKIPPED, "Non-terminal status, nothing to update")

        return self._settle(event, rule, target)

    def _settle(self, event: WebhookEvent, rule: EventRule, target: EventStatus) -> DispatchOutcome:
        if not event.reference:
            return self._finish(event, ProcessingResult.SKIPPED, "Event carries no reference")

        item = self._db.get_transaction_by_reference(event.reference)
        if item is None:
            # The initiating request may not have written its record yet
            return self._finish(event, ProcessingResult.NOT_FOUND, f"Transaction {event.reference} not found")

        transaction = Transaction.model_validate(item)

        if transaction.provider is not event.provider:
            return self._finish(
                event, ProcessingResult.ERROR, f"Transaction belongs to {transaction.provider.value}"
            )
        if transaction.type not in rule.settles:
            return self._finish(
                event,
                ProcessingResult.ERROR,
                f"Event '{event.event_type}' cannot settle a {transaction.type.value} transaction",
            )
        if event.subject_id and event.subject_id != transaction.user_id:
            return self._finish(event, ProcessingResult.ERROR, "request_id user does not match transaction owner")

        if transaction.status.is_terminal:
            return self._finish(event, ProcessingResult.DUPLICATE, f"Transaction already {transaction.status.value}")

        new_status = TransactionStatus(target.value)
        balance_delta: Decimal | None = None
        mark_refunded = False

        if new_status is TransactionStatus.SUCCESS and transaction.type is TransactionType.FUNDING:
            balance_delta = transaction.amount
        elif new_status is TransactionStatus.FAILED and transaction.debits_wallet:
            balance_delta = transaction.amount
            mark_refunded = True

        applied = self._db.transition_transaction_status(
            transaction.transaction_id,
            new_status.value,
            OPEN_STATUSES,
            user_id=transaction.user_id,
            balance_delta=balance_delta,
            mark_refunded=mark_refunded,
        )
        if not applied:
            # A concurrent delivery reached a terminal status first
            return self._finish(event, ProcessingResult.DUPLICATE, "Transaction already settled")

        return self._finish(
            event,
            ProcessingResult.SUCCESS,
            None,
            transaction_id=transaction.transaction_id,
            new_status=new_status.value,
            balance_delta=str(balance_delta) if balance_delta is not None else None,
        )

    def _finish(
        self,
        event: WebhookEvent,
        result: ProcessingResult,
        message: str | None,
        **extra: Any,
    ) -> DispatchOutcome:
        log_webhook_event(
            logger,
            event.provider.value,
            event.event_type,
            reference=event.reference,
            status=event.provider_status,
            result=result.value,
            error=message if result is ProcessingResult.ERROR else None,
            **{k: v for k, v in extra.items() if v is not None},
        )
        return DispatchOutcome(result=result, reference=event.reference, message=message)
