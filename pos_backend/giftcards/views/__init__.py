from .gift_card import GiftCardViewSet

__all__ = ["GiftCardViewSet"]
