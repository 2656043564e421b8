"""Error payloads shared by the payrecon webhook and verification endpoints.

Every failure leaves the service as ``{"error": {"code", "message", "details"?}}``
so Kkiapay retries and first-party clients can branch on ``code``.
"""
from typing import Any

from fastapi import HTTPException

INVALID_ARGUMENT = "INVALID_ARGUMENT"
VERIFICATION_FAILED = "VERIFICATION_FAILED"
KKIAPAY_NOT_CONFIGURED = "KKIAPAY_NOT_CONFIGURED"
PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"


def error_response(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return the ``{"error": ...}`` body used by every payrecon error."""
    payload: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        payload["error"]["details"] = details
    return payload


def api_error(
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> HTTPException:
    """Build an ``HTTPException`` whose detail is already an error payload."""
    return HTTPException(status_code=status_code, detail=error_response(code, message, details))


__all__ = [
    "INVALID_ARGUMENT",
    "KKIAPAY_NOT_CONFIGURED",
    "PAYMENT_NOT_FOUND",
    "VERIFICATION_FAILED",
    "api_error",
    "error_response",
]
