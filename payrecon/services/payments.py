"""Merge-write persistence for reconciled payment records."""
from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from payrecon.models.payment import PaymentRecord
from payrecon.services.status_resolver import is_downgrade

logger = logging.getLogger(__name__)

MERGEABLE_FIELDS = frozenset(
    {
        "transaction_id",
        "status",
        "amount",
        "method",
        "partner_id",
        "event",
        "performed_at",
        "verification",
        "source",
        "verified_at",
        "updated_at",
    }
)


def get_payment_record(db: Session, document_id: str) -> PaymentRecord | None:
    return db.get(PaymentRecord, document_id)


def _apply_fields(
    record: PaymentRecord,
    fields: Mapping[str, Any],
    *,
    preserve_success: bool,
) -> None:
    for name, value in fields.items():
        if name == "status" and preserve_success and is_downgrade(record.status, value):
            logger.info(
                "Keeping recorded success status",
                extra={"document_id": record.document_id, "incoming_status": getattr(value, "value", value)},
            )
            continue
        setattr(record, name, value)


def _locked_record(db: Session, document_id: str) -> PaymentRecord | None:
    stmt = (
        select(PaymentRecord)
        .where(PaymentRecord.document_id == document_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return db.execute(stmt).scalar_one_or_none()


def merge_payment_record(
    db: Session,
    document_id: str,
    fields: Mapping[str, Any],
    *,
    preserve_success: bool = True,
) -> PaymentRecord:
    """Upsert ``fields`` into the record keyed by ``document_id``.

    Only the supplied fields are written; every other column keeps its stored
    value. With ``preserve_success`` a stored ``success`` status is never
    replaced by a different one.
    """

    unknown = set(fields) - MERGEABLE_FIELDS
    if unknown:
        raise ValueError(f"Unsupported payment fields: {sorted(unknown)}")

    record = _locked_record(db, document_id)
    if record is None:
        record = PaymentRecord(document_id=document_id)
        _apply_fields(record, fields, preserve_success=False)
        db.add(record)
        try:
            db.flush()
        except IntegrityError:
            # Concurrent insert for the same key: merge into the winner instead.
            db.rollback()
            logger.warning("Concurrent payment insert detected", extra={"document_id": document_id})
            record = _locked_record(db, document_id)
            if record is None:
                raise
            _apply_fields(record, fields, preserve_success=preserve_success)
    else:
        _apply_fields(record, fields, preserve_success=preserve_success)

    db.commit()
    db.refresh(record)
    logger.info(
        "Payment record merged",
        extra={
            "document_id": document_id,
            "status": record.status.value,
            "source": record.source.value,
            "fields": sorted(fields),
        },
    )
    return record


__all__ = ["MERGEABLE_FIELDS", "get_payment_record", "merge_payment_record"]
