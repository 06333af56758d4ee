from .gift_card import GiftCardIssueSerializer, GiftCardSerializer

__all__ = ["GiftCardIssueSerializer", "GiftCardSerializer"]
