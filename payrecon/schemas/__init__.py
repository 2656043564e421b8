"""Schema package exports."""
from .payment import PaymentRead, VerifyRequest, VerifyResponse, WebhookAck
from .webhook import KkiapayNotification

__all__ = [
    "KkiapayNotification",
    "PaymentRead",
    "VerifyRequest",
    "VerifyResponse",
    "WebhookAck",
]
