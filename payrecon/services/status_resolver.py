"""Pure decision rules turning Kkiapay signals into a reconciled payment status."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from payrecon.models.payment import PaymentStatus
from payrecon.utils.time import epoch_millis

SUCCESS_SENTINEL = "SUCCESS"
FAILED_EVENT = "transaction.failed"
PLACEHOLDER_PREFIX = "evt_"


def _verification_succeeded(verification: Mapping[str, Any] | None) -> bool:
    if not verification:
        return False
    return verification.get("status") == SUCCESS_SENTINEL


def resolve_webhook_status(
    is_payment_success: bool,
    event: str,
    verification: Mapping[str, Any] | None,
) -> PaymentStatus:
    """Resolve the status of a webhook notification.

    A success claim from the (authenticated) notification or a ``SUCCESS``
    verification wins; an explicit ``transaction.failed`` event comes next;
    anything else is still pending.
    """

    if is_payment_success is True or _verification_succeeded(verification):
        return PaymentStatus.SUCCESS
    if event == FAILED_EVENT:
        return PaymentStatus.FAILED
    return PaymentStatus.PENDING


def resolve_verification_status(verification: Mapping[str, Any] | None) -> PaymentStatus:
    """Resolve the status from an authoritative verification result only."""

    if _verification_succeeded(verification):
        return PaymentStatus.SUCCESS
    if verification and verification.get("isPaymentSucces") is True:
        return PaymentStatus.SUCCESS
    return PaymentStatus.PENDING


def placeholder_document_id(received_at: datetime) -> str:
    """Key for notifications that arrive without a transaction id."""

    return f"{PLACEHOLDER_PREFIX}{epoch_millis(received_at)}"


def is_downgrade(current: PaymentStatus | None, new: PaymentStatus) -> bool:
    """A recorded success must not be replaced by any other status."""

    return current == PaymentStatus.SUCCESS and new != PaymentStatus.SUCCESS


__all__ = [
    "SUCCESS_SENTINEL",
    "FAILED_EVENT",
    "PLACEHOLDER_PREFIX",
    "resolve_webhook_status",
    "resolve_verification_status",
    "placeholder_document_id",
    "is_downgrade",
]
