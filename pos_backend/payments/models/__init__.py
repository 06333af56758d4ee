"""
PATH: payments/models/__init__.py

Payments models export surface.
"""

from .payment import CardDetails, CashDetails, GiftCardDetails, Payment
from .payment_refund import PaymentRefund

__all__ = [
    "Payment",
    "PaymentRefund",
    "CashDetails",
    "CardDetails",
    "GiftCardDetails",
]
