"""Logging with per-request correlation IDs.

Every record emitted through a logger from get_logger() carries a
`correlation_id` attribute, taken from a contextvar that
CorrelationIdMiddleware sets for the duration of a request. Records logged
outside a request get "-".

Usage:
    from topup_shared.utils.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Dispatching webhook", extra={"reference": "abc123"})

Webhook and provider-call logging go through log_webhook_event and
log_provider_call so each event is one greppable line.
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any

NO_CORRELATION_ID = "-"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation ID to the current context, generating one if needed."""
    cid = correlation_id or uuid.uuid4().hex
    _correlation_id.set(cid)
    return cid


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Stamp records with the current correlation ID; never drops a record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


def configure_logging(level: int | str = logging.INFO) -> None:
    """Attach one correlation-aware stream handler to the root logger.

    Calling it again (e.g. on module reload) does not add a second handler.

    Args:
        level: Root log level
    """
    root = logging.getLogger()
    root.setLevel(level)

    if any(getattr(h, "_topup_handler", False) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    # Handler-level filter so third-party records format too
    handler.addFilter(CorrelationIdFilter())
    handler._topup_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Return logging.getLogger(name) with the correlation ID filter attached."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())
    return logger


def _emit(logger: logging.Logger, level: int, headline: str, fields: dict[str, Any]) -> None:
    """Log headline plus non-empty fields as `key=value` pairs, also passed as extra."""
    fields = {k: v for k, v in fields.items() if v is not None and v != ""}
    pairs = " ".join(f"{k}={v}" for k, v in fields.items())
    logger.log(level, f"{headline} {pairs}" if pairs else headline, extra=fields)


def log_provider_call(
    logger: logging.Logger,
    provider: str,
    operation: str,
    *,
    reference: str | None = None,
    amount: Any | None = None,
    status_code: int | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """One line per outbound provider request; ERROR when `error` is set.

    Args:
        logger: Logger instance
        provider: "ebills", "flutterwave" or "firebase"
        operation: Provider operation, e.g. "check_balance"
        reference: Transfer reference, if any
        amount: Amount sent, if any
        status_code: HTTP status the provider answered with
        error: Failure description
    """
    fields = {
        "reference": reference,
        "amount": None if amount is None else str(amount),
        "status_code": status_code,
        "error": error,
        **extra,
    }
    level = logging.ERROR if error else logging.INFO
    _emit(logger, level, f"{provider}.{operation}", fields)


# Outcomes that are expected but worth noticing
_QUIET_FAILURES = frozenset({"duplicate", "skipped", "not_found"})


def log_webhook_event(
    logger: logging.Logger,
    provider: str,
    event_type: str,
    *,
    reference: str | None = None,
    status: str | None = None,
    result: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """One line per processed webhook, levelled by its processing result."""
    if result == "error":
        level = logging.ERROR
    elif result in _QUIET_FAILURES:
        level = logging.WARNING
    else:
        level = logging.INFO

    fields = {
        "result": result,
        "reference": reference,
        "provider_status": status,
        "error": error,
        **extra,
    }
    _emit(logger, level, f"webhook {provider} {event_type}", fields)
