"""Security dependencies for first-party client authentication."""
from __future__ import annotations

import logging
import secrets

from fastapi import Depends, Header, status

from payrecon.config import Settings, get_settings
from payrecon.utils.errors import api_error

logger = logging.getLogger(__name__)


def _extract_key(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> str | None:
    """Read the key from ``Authorization: Bearer ...`` or ``X-API-Key``."""
    if x_api_key:
        return x_api_key.strip()
    if authorization and authorization.startswith("Bearer "):
        return authorization.split(" ", 1)[1].strip()
    return None


def require_client_key(
    token: str | None = Depends(_extract_key),
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject callers that do not present the configured client key."""
    if not token:
        raise api_error(status.HTTP_401_UNAUTHORIZED, "NO_API_KEY", "API key required.")

    expected = settings.client_api_key
    if not expected or not secrets.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected client API key", extra={"configured": bool(expected)})
        raise api_error(status.HTTP_401_UNAUTHORIZED, "UNAUTHORIZED", "Invalid API key")


__all__ = ["require_client_key"]
