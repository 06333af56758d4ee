from .gift_card import GiftCard

__all__ = ["GiftCard"]
