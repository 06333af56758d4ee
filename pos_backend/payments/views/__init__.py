from .payment import PaymentViewSet

__all__ = ["PaymentViewSet"]
