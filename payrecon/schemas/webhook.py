"""Schemas for inbound Kkiapay webhook notifications."""
from __future__ import annotations

import logging
import math
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from payrecon.models.payment import AMOUNT_PRECISION, AMOUNT_SCALE, MAX_TRANSACTION_ID_LENGTH
from payrecon.utils.time import parse_timestamp

logger = logging.getLogger(__name__)

MAX_LABEL_LENGTH = 128
_CENT = Decimal(1).scaleb(-AMOUNT_SCALE)
MAX_AMOUNT = Decimal(10) ** (AMOUNT_PRECISION - AMOUNT_SCALE) - _CENT


def _as_text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip()


class KkiapayNotification(BaseModel):
    """Webhook body as pushed by Kkiapay.

    Every field is optional and coerced leniently: the processor is not
    trusted to send a well-formed payload, and a malformed field must never
    cause the notification to be dropped.
    """

    transaction_id: str | None = Field(default=None, alias="transactionId")
    event: str = ""
    # Kkiapay spells the flag this way in its payloads.
    is_payment_success: bool = Field(default=False, alias="isPaymentSucces")
    amount: Decimal = Decimal("0")
    method: str = ""
    partner_id: str = Field(default="", alias="partnerId")
    performed_at: datetime | None = Field(default=None, alias="performedAt")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("transaction_id", mode="before")
    @classmethod
    def _coerce_transaction_id(cls, value: Any) -> str | None:
        text = _as_text(value)
        if len(text) > MAX_TRANSACTION_ID_LENGTH:
            # Cannot be a Kkiapay id; stored under a placeholder key instead.
            logger.warning("Kkiapay webhook transaction id too long", extra={"length": len(text)})
            return None
        return text or None

    @field_validator("event", "method", "partner_id", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return _as_text(value)[:MAX_LABEL_LENGTH]

    @field_validator("is_payment_success", mode="before")
    @classmethod
    def _strict_true(cls, value: Any) -> bool:
        """Only a literal JSON ``true`` counts as a success claim."""

        return value is True

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> Decimal:
        if value is None or isinstance(value, bool):
            return Decimal("0")
        if isinstance(value, float) and not math.isfinite(value):
            return Decimal("0")
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return Decimal("0")
        if not amount.is_finite() or amount < 0:
            return Decimal("0")
        if amount > MAX_AMOUNT or amount != amount.quantize(_CENT):
            logger.warning("Kkiapay webhook amount out of range", extra={"amount": str(amount)})
            return Decimal("0")
        return amount

    @field_validator("performed_at", mode="before")
    @classmethod
    def _coerce_performed_at(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @classmethod
    def from_payload(cls, payload: Any) -> "KkiapayNotification":
        """Build a notification from any decoded JSON body."""

        if not isinstance(payload, dict):
            return cls()
        return cls.model_validate(payload)


__all__ = ["KkiapayNotification"]
