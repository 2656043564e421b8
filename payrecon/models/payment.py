"""Payment record model definitions."""
import enum
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import CheckConstraint, DateTime, Enum as SqlEnum, Index, JSON, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base

# Column sizes; inbound values are validated against these before any write.
MAX_TRANSACTION_ID_LENGTH = 128
AMOUNT_PRECISION = 18
AMOUNT_SCALE = 2


class PaymentStatus(str, enum.Enum):
    """Reconciled settlement status of a transaction."""

    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"
    UNKNOWN = "unknown"


class PaymentSource(str, enum.Enum):
    """Entry point that last wrote a payment record."""

    WEBHOOK = "webhook"
    CALLABLE = "callable"


class PaymentRecord(Base):
    """One reconciled Kkiapay transaction, keyed by transaction id or placeholder."""

    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_payments_non_negative_amount"),
        Index("ix_payments_transaction_id", "transaction_id"),
        Index("ix_payments_status", "status"),
    )

    document_id: Mapped[str] = mapped_column(String(MAX_TRANSACTION_ID_LENGTH), primary_key=True)
    transaction_id: Mapped[str | None] = mapped_column(String(MAX_TRANSACTION_ID_LENGTH), nullable=True)
    status: Mapped[PaymentStatus] = mapped_column(
        SqlEnum(PaymentStatus, values_callable=lambda e: [m.value for m in e], name="paymentstatus"),
        nullable=False,
        default=PaymentStatus.UNKNOWN,
    )
    amount: Mapped[Decimal | None] = mapped_column(Numeric(AMOUNT_PRECISION, AMOUNT_SCALE), nullable=True)
    method: Mapped[str | None] = mapped_column(String(128), nullable=True)
    partner_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    event: Mapped[str | None] = mapped_column(String(128), nullable=True)
    performed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    verification: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    source: Mapped[PaymentSource] = mapped_column(
        SqlEnum(PaymentSource, values_callable=lambda e: [m.value for m in e], name="paymentsource"),
        nullable=False,
    )
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), server_default=func.now(), nullable=False
    )


__all__ = [
    "AMOUNT_PRECISION",
    "AMOUNT_SCALE",
    "MAX_TRANSACTION_ID_LENGTH",
    "PaymentRecord",
    "PaymentSource",
    "PaymentStatus",
]
