from .payment import (
    CardIntentCreateSerializer,
    CardIntentSerializer,
    PaymentConfirmationSerializer,
    PaymentCreateSerializer,
    PaymentRefundSerializer,
    PaymentSerializer,
    SplitPaymentCreateSerializer,
    SplitPaymentEntrySerializer,
    SplitPaymentResultSerializer,
)

__all__ = [
    "CardIntentCreateSerializer",
    "CardIntentSerializer",
    "PaymentConfirmationSerializer",
    "PaymentCreateSerializer",
    "PaymentRefundSerializer",
    "PaymentSerializer",
    "SplitPaymentCreateSerializer",
    "SplitPaymentEntrySerializer",
    "SplitPaymentResultSerializer",
]
