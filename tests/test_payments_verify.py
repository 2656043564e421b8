"""Tests for the client verification and read endpoints."""
from __future__ import annotations

from decimal import Decimal

import pytest

from payrecon.models import PaymentRecord, PaymentSource, PaymentStatus
from payrecon.services.payments import merge_payment_record
from payrecon.utils.time import utcnow


def _record(db_session, document_id: str) -> PaymentRecord | None:
    db_session.expire_all()
    return db_session.get(PaymentRecord, document_id)


@pytest.mark.anyio
async def test_verify_success(client, db_session, client_headers, fake_kkiapay):
    fake_kkiapay.set_result("tx3", {"status": "SUCCESS", "transactionId": "tx3", "amount": 2000})

    response = await client.post("/payments/verify", json={"transactionId": "tx3"}, headers=client_headers)

    assert response.status_code == 200, response.text
    assert response.json() == {"ok": True, "status": "success"}
    record = _record(db_session, "tx3")
    assert record.source == PaymentSource.CALLABLE
    assert record.status == PaymentStatus.SUCCESS
    assert record.transaction_id == "tx3"
    assert record.verification == {"status": "SUCCESS", "transactionId": "tx3", "amount": 2000}
    assert record.verified_at is not None
    assert record.updated_at is None


@pytest.mark.anyio
async def test_verify_success_flag_counts(client, db_session, client_headers, fake_kkiapay):
    fake_kkiapay.set_result("tx-flag", {"status": "UNKNOWN", "isPaymentSucces": True})

    response = await client.post("/payments/verify", json={"transactionId": "tx-flag"}, headers=client_headers)

    assert response.json()["status"] == "success"


@pytest.mark.anyio
async def test_verify_non_success_is_pending(client, db_session, client_headers, fake_kkiapay):
    fake_kkiapay.set_result("tx-wait", {"status": "FAILED"})

    response = await client.post("/payments/verify", json={"transactionId": "tx-wait"}, headers=client_headers)

    assert response.json() == {"ok": True, "status": "pending"}
    assert _record(db_session, "tx-wait").status == PaymentStatus.PENDING


@pytest.mark.anyio
async def test_verify_trims_transaction_id(client, db_session, client_headers, fake_kkiapay):
    fake_kkiapay.set_result("tx-trim", {"status": "SUCCESS"})

    response = await client.post("/payments/verify", json={"transactionId": "  tx-trim  "}, headers=client_headers)

    assert response.status_code == 200
    assert fake_kkiapay.verified_ids == ["tx-trim"]
    assert _record(db_session, "tx-trim") is not None


@pytest.mark.anyio
@pytest.mark.parametrize("body", [{}, {"transactionId": ""}, {"transactionId": "   "}, {"transactionId": None}])
async def test_verify_requires_transaction_id(client, db_session, client_headers, fake_kkiapay, body):
    response = await client.post("/payments/verify", json=body, headers=client_headers)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_ARGUMENT"
    assert db_session.query(PaymentRecord).count() == 0
    assert fake_kkiapay.requests == []


@pytest.mark.anyio
@pytest.mark.parametrize(
    "request_kwargs",
    [
        {},
        {"json": ["tx"]},
        {"json": "tx"},
        {"json": 42},
        {"content": b"not-json", "headers": {"Content-Type": "application/json"}},
    ],
    ids=["no-body", "list", "string", "number", "invalid-json"],
)
async def test_verify_malformed_body_is_invalid_argument(
    client, db_session, client_headers, fake_kkiapay, request_kwargs
):
    kwargs = dict(request_kwargs)
    headers = {**client_headers, **kwargs.pop("headers", {})}

    response = await client.post("/payments/verify", headers=headers, **kwargs)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_ARGUMENT"
    assert db_session.query(PaymentRecord).count() == 0
    assert fake_kkiapay.requests == []


@pytest.mark.anyio
async def test_verify_rejects_oversized_transaction_id(client, db_session, client_headers, fake_kkiapay):
    response = await client.post("/payments/verify", json={"transactionId": "t" * 129}, headers=client_headers)

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "INVALID_ARGUMENT"
    assert error["details"] == {"max_length": 128}
    assert db_session.query(PaymentRecord).count() == 0
    assert fake_kkiapay.requests == []


@pytest.mark.anyio
async def test_verify_failure_is_surfaced(client, db_session, client_headers, fake_kkiapay):
    fake_kkiapay.fail("tx-down")

    response = await client.post("/payments/verify", json={"transactionId": "tx-down"}, headers=client_headers)

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "VERIFICATION_FAILED"
    assert _record(db_session, "tx-down") is None


@pytest.mark.anyio
async def test_verify_http_error_is_surfaced(client, db_session, client_headers, fake_kkiapay):
    fake_kkiapay.set_result("tx-500", {"message": "boom"}, status_code=500)

    response = await client.post("/payments/verify", json={"transactionId": "tx-500"}, headers=client_headers)

    assert response.status_code == 502
    assert _record(db_session, "tx-500") is None


@pytest.mark.anyio
async def test_verify_without_credentials(client, db_session, settings, use_settings, client_headers):
    use_settings(settings, kkia_public_key=None)

    response = await client.post("/payments/verify", json={"transactionId": "tx-nocreds"}, headers=client_headers)

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "KKIAPAY_NOT_CONFIGURED"
    assert _record(db_session, "tx-nocreds") is None


@pytest.mark.anyio
@pytest.mark.parametrize(
    "headers, code",
    [
        ({}, "NO_API_KEY"),
        ({"Authorization": "Bearer nope"}, "UNAUTHORIZED"),
        ({"X-API-Key": "nope"}, "UNAUTHORIZED"),
    ],
)
async def test_verify_requires_client_key(client, db_session, fake_kkiapay, headers, code):
    response = await client.post("/payments/verify", json={"transactionId": "tx-anon"}, headers=headers)

    assert response.status_code == 401
    assert response.json()["error"]["code"] == code
    assert fake_kkiapay.requests == []


@pytest.mark.anyio
async def test_verify_accepts_x_api_key(client, db_session, fake_kkiapay):
    fake_kkiapay.set_result("tx-key", {"status": "SUCCESS"})

    response = await client.post(
        "/payments/verify", json={"transactionId": "tx-key"}, headers={"X-API-Key": "test-client-key"}
    )

    assert response.status_code == 200


@pytest.mark.anyio
async def test_callable_then_webhook_preserves_verified_at(client, db_session, client_headers, webhook_headers, fake_kkiapay):
    fake_kkiapay.set_result("tx-both", {"status": "PENDING"})

    await client.post("/payments/verify", json={"transactionId": "tx-both"}, headers=client_headers)
    verified_at = _record(db_session, "tx-both").verified_at

    await client.post(
        "/kkiapay/webhook",
        json={"transactionId": "tx-both", "event": "transaction.success", "isPaymentSucces": True, "amount": 900},
        headers=webhook_headers,
    )

    record = _record(db_session, "tx-both")
    assert record.verified_at == verified_at
    assert record.source == PaymentSource.WEBHOOK
    assert record.status == PaymentStatus.SUCCESS
    assert record.amount == Decimal("900")


@pytest.mark.anyio
async def test_pending_verification_keeps_recorded_success(client, db_session, client_headers, fake_kkiapay):
    merge_payment_record(
        db_session,
        "tx-kept",
        {"transaction_id": "tx-kept", "status": PaymentStatus.SUCCESS, "source": PaymentSource.WEBHOOK},
    )
    fake_kkiapay.set_result("tx-kept", {"status": "PENDING"})

    response = await client.post("/payments/verify", json={"transactionId": "tx-kept"}, headers=client_headers)

    assert response.json()["status"] == "pending"
    record = _record(db_session, "tx-kept")
    assert record.status == PaymentStatus.SUCCESS
    assert record.source == PaymentSource.CALLABLE


@pytest.mark.anyio
async def test_read_payment(client, db_session, client_headers):
    now = utcnow()
    merge_payment_record(
        db_session,
        "tx-read",
        {
            "transaction_id": "tx-read",
            "status": PaymentStatus.SUCCESS,
            "amount": Decimal("5000"),
            "method": "CARD",
            "partner_id": "p-1",
            "event": "transaction.success",
            "performed_at": now,
            "source": PaymentSource.WEBHOOK,
            "updated_at": now,
        },
    )

    response = await client.get("/payments/tx-read", headers=client_headers)

    assert response.status_code == 200
    payload = response.json()
    assert payload["documentId"] == "tx-read"
    assert payload["transactionId"] == "tx-read"
    assert payload["status"] == "success"
    assert payload["source"] == "webhook"
    assert payload["partnerId"] == "p-1"
    assert Decimal(str(payload["amount"])) == Decimal("5000")
    assert payload["verifiedAt"] is None


@pytest.mark.anyio
async def test_read_missing_payment(client, client_headers):
    response = await client.get("/payments/unknown-tx", headers=client_headers)

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "PAYMENT_NOT_FOUND"


@pytest.mark.anyio
async def test_read_requires_client_key(client):
    response = await client.get("/payments/tx-read")

    assert response.status_code == 401
