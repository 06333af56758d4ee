# giftcards/serializers/gift_card.py

from decimal import Decimal

from rest_framework import serializers

from giftcards.models import GiftCard


class GiftCardSerializer(serializers.ModelSerializer):
    class Meta:
        model = GiftCard
        fields = [
            "id",
            "code",
            "balance",
            "original_amount",
            "is_active",
            "issued_at",
            "expires_at",
        ]
        read_only_fields = fields


class GiftCardIssueSerializer(serializers.Serializer):
    original_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.01"))
    code = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    expires_at = serializers.DateTimeField(required=False, allow_null=True, default=None)
