"""Kkiapay transaction-status client used to reconcile payments."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from fastapi import Depends

from payrecon.config import Settings, get_settings

logger = logging.getLogger(__name__)

PRODUCTION_BASE_URL = "https://api.kkiapay.me"
SANDBOX_BASE_URL = "https://api-sandbox.kkiapay.me"
STATUS_PATH = "/api/v1/transactions/status"


class KkiapayConfigurationError(RuntimeError):
    """Raised when the Kkiapay credentials are not configured."""


class KkiapayVerificationError(RuntimeError):
    """Raised when the remote status check fails or returns no result."""


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of a best-effort verification: either ``result`` or ``error`` is set."""

    result: dict[str, Any] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None


class KkiapayClient:
    """Thin async wrapper around the Kkiapay transaction-status endpoint."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        self._public_key = settings.kkia_public_key
        self._private_key = settings.kkia_private_key
        self._secret_key = settings.kkia_secret_key
        self._sandbox = settings.kkia_sandbox
        self._timeout = settings.kkia_timeout_seconds
        self._transport = transport

    @classmethod
    def from_env(cls) -> "KkiapayClient":
        """Instantiate a client using the cached application settings."""

        return cls(get_settings())

    @property
    def base_url(self) -> str:
        return SANDBOX_BASE_URL if self._sandbox else PRODUCTION_BASE_URL

    def _ensure_configured(self) -> None:
        if not (self._public_key and self._private_key and self._secret_key):
            raise KkiapayConfigurationError(
                "Kkiapay credentials are missing; configure KKIA_PUBLIC_KEY, KKIA_PRIVATE_KEY and KKIA_SECRET_KEY."
            )

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "x-api-key": self._public_key or "",
            "x-private-key": self._private_key or "",
            "x-secret-key": self._secret_key or "",
        }

    async def verify(self, transaction_id: str) -> dict[str, Any]:
        """Ask Kkiapay for the current status of ``transaction_id``.

        Performs exactly one call. Raises ``KkiapayConfigurationError`` when
        credentials are missing and ``KkiapayVerificationError`` on transport
        errors, HTTP errors or an empty/unreadable result.
        """

        self._ensure_configured()
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    STATUS_PATH,
                    json={"transactionId": transaction_id},
                    headers=self._headers(),
                )
        except httpx.HTTPError as exc:
            raise KkiapayVerificationError(f"Kkiapay status request failed: {exc}") from exc

        if response.status_code >= 400:
            raise KkiapayVerificationError(f"Kkiapay status request returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise KkiapayVerificationError("Kkiapay status response is not valid JSON") from exc

        if not isinstance(payload, dict) or not payload:
            raise KkiapayVerificationError("Kkiapay status response is empty")

        logger.info(
            "Kkiapay verification completed",
            extra={"transaction_id": transaction_id, "kkiapay_status": payload.get("status"), "sandbox": self._sandbox},
        )
        return payload

    async def verify_best_effort(self, transaction_id: str) -> VerificationOutcome:
        """Same as :meth:`verify` but never raises."""

        try:
            return VerificationOutcome(result=await self.verify(transaction_id))
        except (KkiapayConfigurationError, KkiapayVerificationError) as exc:
            logger.warning(
                "Kkiapay verification unavailable",
                extra={"transaction_id": transaction_id, "reason": str(exc)},
            )
            return VerificationOutcome(error=str(exc))


def get_verification_client(settings: Settings = Depends(get_settings)) -> KkiapayClient:
    """FastAPI dependency returning a client bound to the current settings."""

    return KkiapayClient(settings)


__all__ = [
    "KkiapayClient",
    "KkiapayConfigurationError",
    "KkiapayVerificationError",
    "VerificationOutcome",
    "get_verification_client",
    "PRODUCTION_BASE_URL",
    "SANDBOX_BASE_URL",
    "STATUS_PATH",
]
