"""Client-triggered verification of a Kkiapay transaction."""
from __future__ import annotations

import logging

from fastapi import status
from sqlalchemy.orm import Session

from payrecon.config import Settings
from payrecon.models.payment import MAX_TRANSACTION_ID_LENGTH, PaymentSource, PaymentStatus
from payrecon.services.kkiapay import KkiapayClient, KkiapayConfigurationError, KkiapayVerificationError
from payrecon.services.payments import merge_payment_record
from payrecon.services.status_resolver import resolve_verification_status
from payrecon.utils.errors import INVALID_ARGUMENT, KKIAPAY_NOT_CONFIGURED, VERIFICATION_FAILED, api_error
from payrecon.utils.time import utcnow

logger = logging.getLogger(__name__)


def normalize_transaction_id(value: object) -> str:
    """Return the trimmed transaction id or raise 400 when it is missing or oversized."""

    if value is None or isinstance(value, (bool, dict, list)):
        text = ""
    else:
        text = str(value).strip()
    if not text:
        raise api_error(status.HTTP_400_BAD_REQUEST, INVALID_ARGUMENT, "transactionId is required.")
    if len(text) > MAX_TRANSACTION_ID_LENGTH:
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            INVALID_ARGUMENT,
            "transactionId is too long.",
            {"max_length": MAX_TRANSACTION_ID_LENGTH},
        )
    return text


async def verify_transaction(
    db: Session,
    transaction_id: str,
    *,
    client: KkiapayClient,
    settings: Settings,
) -> PaymentStatus:
    """Ask Kkiapay directly and persist the authoritative result.

    Verification failures are surfaced to the caller; nothing is written
    unless Kkiapay answered.
    """

    try:
        verification = await client.verify(transaction_id)
    except KkiapayConfigurationError as exc:
        logger.error("Kkiapay client not configured", extra={"transaction_id": transaction_id})
        raise api_error(status.HTTP_503_SERVICE_UNAVAILABLE, KKIAPAY_NOT_CONFIGURED, str(exc))
    except KkiapayVerificationError as exc:
        logger.warning(
            "Kkiapay verification failed",
            extra={"transaction_id": transaction_id, "reason": str(exc)},
        )
        raise api_error(
            status.HTTP_502_BAD_GATEWAY,
            VERIFICATION_FAILED,
            "Transaction verification failed.",
            {"reason": str(exc)},
        )

    resolved = resolve_verification_status(verification)
    merge_payment_record(
        db,
        transaction_id,
        {
            "transaction_id": transaction_id,
            "status": resolved,
            "verification": verification,
            "source": PaymentSource.CALLABLE,
            "verified_at": utcnow(),
        },
        preserve_success=settings.preserve_success_status,
    )
    logger.info(
        "Kkiapay transaction verified",
        extra={"transaction_id": transaction_id, "resolved_status": resolved.value},
    )
    return resolved


__all__ = ["normalize_transaction_id", "verify_transaction"]
