"""Routes for Kkiapay webhook handling."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from payrecon.config import Settings, get_settings
from payrecon.db import get_db
from payrecon.schemas.payment import WebhookAck
from payrecon.schemas.webhook import KkiapayNotification
from payrecon.services import kkiapay_webhooks
from payrecon.services.kkiapay import KkiapayClient, get_verification_client
from payrecon.utils.time import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/kkiapay", tags=["kkiapay"])


@router.post("/webhook", response_model=WebhookAck, status_code=status.HTTP_200_OK)
async def kkiapay_webhook(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    client: KkiapayClient = Depends(get_verification_client),
) -> WebhookAck:
    """Acknowledge a Kkiapay notification once it is reconciled and stored.

    The response is 200 whatever the payment outcome: Kkiapay only needs to
    know the notification was received.
    """

    received_at = utcnow()
    kkiapay_webhooks.verify_webhook_secret(request.headers, settings)

    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Kkiapay webhook body is not valid JSON; treating as empty")
        payload = {}

    notification = KkiapayNotification.from_payload(payload)
    record = await kkiapay_webhooks.handle_notification(
        db,
        notification,
        client=client,
        settings=settings,
        received_at=received_at,
    )
    return WebhookAck(document_id=record.document_id, status=record.status)


__all__ = ["router"]
