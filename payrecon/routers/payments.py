"""Client-facing payment verification endpoints."""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from payrecon.config import Settings, get_settings
from payrecon.db import get_db
from payrecon.schemas.payment import PaymentRead, VerifyRequest, VerifyResponse
from payrecon.security import require_client_key
from payrecon.services import verification as verification_service
from payrecon.services.kkiapay import KkiapayClient, get_verification_client
from payrecon.services.payments import get_payment_record
from payrecon.utils.errors import PAYMENT_NOT_FOUND, api_error

router = APIRouter(prefix="/payments", tags=["payments"], dependencies=[Depends(require_client_key)])


async def _requested_transaction_id(request: Request) -> object:
    """Pull ``transactionId`` from the body; malformed bodies count as absent."""

    try:
        payload = await request.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    return VerifyRequest.model_validate(payload).transaction_id


@router.post(
    "/verify",
    response_model=VerifyResponse,
    status_code=status.HTTP_200_OK,
    openapi_extra={"requestBody": {"content": {"application/json": {"schema": VerifyRequest.model_json_schema()}}}},
)
async def verify_payment(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    client: KkiapayClient = Depends(get_verification_client),
) -> VerifyResponse:
    """Re-verify a transaction with Kkiapay after the client SDK reported success."""

    raw_transaction_id = await _requested_transaction_id(request)
    transaction_id = verification_service.normalize_transaction_id(raw_transaction_id)
    resolved = await verification_service.verify_transaction(
        db,
        transaction_id,
        client=client,
        settings=settings,
    )
    return VerifyResponse(ok=True, status=resolved)


@router.get("/{document_id}", response_model=PaymentRead)
def read_payment(document_id: str, db: Session = Depends(get_db)):
    """Return the stored record for a transaction id or placeholder key."""

    record = get_payment_record(db, document_id)
    if record is None:
        raise api_error(status.HTTP_404_NOT_FOUND, PAYMENT_NOT_FOUND, "Payment record not found.")
    return record
