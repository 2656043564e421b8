"""Schemas for payment records and the client verification call."""
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from payrecon.models.payment import PaymentSource, PaymentStatus


class PaymentRead(BaseModel):
    document_id: str
    transaction_id: str | None
    status: PaymentStatus
    amount: Decimal | None
    method: str | None
    partner_id: str | None
    event: str | None
    performed_at: datetime | None
    verification: dict[str, Any] | None
    source: PaymentSource
    verified_at: datetime | None
    updated_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, alias_generator=AliasGenerator(serialization_alias=to_camel))


class VerifyRequest(BaseModel):
    """Body of the client verification call; the route trims and bounds the id."""

    transaction_id: Any = Field(default=None, alias="transactionId")

    model_config = ConfigDict(populate_by_name=True)


class VerifyResponse(BaseModel):
    ok: bool = True
    status: PaymentStatus


class WebhookAck(BaseModel):
    ok: bool = True
    document_id: str
    status: PaymentStatus

    model_config = ConfigDict(alias_generator=AliasGenerator(serialization_alias=to_camel))
