"""Services handling Kkiapay webhook callbacks."""
from __future__ import annotations

import hashlib
import hmac
import logging
from datetime import datetime
from typing import Mapping

from fastapi import status
from sqlalchemy.orm import Session

from payrecon.config import Settings
from payrecon.models.payment import PaymentRecord, PaymentSource
from payrecon.schemas.webhook import KkiapayNotification
from payrecon.services.kkiapay import KkiapayClient
from payrecon.services.payments import merge_payment_record
from payrecon.services.status_resolver import placeholder_document_id, resolve_webhook_status
from payrecon.utils.errors import api_error
from payrecon.utils.time import utcnow

logger = logging.getLogger(__name__)

SECRET_HEADER = "x-kkiapay-secret"


def _secret_fingerprint(secret: str | None) -> str | None:
    """Return a deterministic marker instead of the raw secret for logging."""

    if not secret:
        return None
    digest = hashlib.sha256(secret.encode()).hexdigest()[:8]
    return f"sha256:{digest}"


def _get_header(headers: Mapping[str, str], key: str) -> str | None:
    for h_key, value in headers.items():
        if h_key.lower() == key.lower():
            return value
    return None


def _header_bytes(value: str) -> bytes:
    """Recover the bytes sent on the wire; ASGI servers decode headers as latin-1."""

    try:
        return value.encode("latin-1")
    except UnicodeEncodeError:
        return value.encode("utf-8")


def verify_webhook_secret(headers: Mapping[str, str], settings: Settings) -> None:
    """Check the shared-secret header and raise 401 on any failure."""

    provided = _get_header(headers, SECRET_HEADER)
    expected = settings.kkia_webhook_secret

    if not expected:
        logger.error("Kkiapay webhook secret is not configured")
        raise api_error(status.HTTP_401_UNAUTHORIZED, "WEBHOOK_SECRET_NOT_CONFIGURED", "Webhook secret is not configured.")

    if not provided:
        logger.warning("Kkiapay webhook secret header missing", extra={"has_header": False})
        raise api_error(status.HTTP_401_UNAUTHORIZED, "WEBHOOK_SECRET_MISSING", "Webhook secret header missing.")

    if not hmac.compare_digest(_header_bytes(provided), expected.encode("utf-8")):
        logger.warning(
            "Kkiapay webhook secret mismatch",
            extra={"has_header": True, "expected_secret": _secret_fingerprint(expected)},
        )
        raise api_error(status.HTTP_401_UNAUTHORIZED, "WEBHOOK_SECRET_INVALID", "Invalid webhook secret.")


async def handle_notification(
    db: Session,
    notification: KkiapayNotification,
    *,
    client: KkiapayClient,
    settings: Settings,
    received_at: datetime | None = None,
) -> PaymentRecord:
    """Reconcile an authenticated notification and merge it into ``payments``."""

    received_at = received_at or utcnow()
    transaction_id = notification.transaction_id

    verification = None
    if transaction_id:
        outcome = await client.verify_best_effort(transaction_id)
        verification = outcome.result

    resolved = resolve_webhook_status(
        notification.is_payment_success,
        notification.event,
        verification,
    )
    document_id = transaction_id or placeholder_document_id(received_at)
    if not transaction_id:
        logger.warning("Kkiapay webhook without transaction id", extra={"document_id": document_id})

    record = merge_payment_record(
        db,
        document_id,
        {
            "transaction_id": transaction_id,
            "status": resolved,
            "amount": notification.amount,
            "method": notification.method,
            "partner_id": notification.partner_id,
            "event": notification.event,
            "performed_at": notification.performed_at or received_at,
            "verification": verification,
            "source": PaymentSource.WEBHOOK,
            "updated_at": received_at,
        },
        preserve_success=settings.preserve_success_status,
    )
    logger.info(
        "Kkiapay webhook processed",
        extra={
            "document_id": document_id,
            "event": notification.event,
            "resolved_status": resolved.value,
            "verified": verification is not None,
        },
    )
    return record


__all__ = ["SECRET_HEADER", "verify_webhook_secret", "handle_notification"]
