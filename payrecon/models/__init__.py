"""ORM models package."""
from .base import Base
from .payment import PaymentRecord, PaymentSource, PaymentStatus

__all__ = [
    "Base",
    "PaymentRecord",
    "PaymentSource",
    "PaymentStatus",
]
