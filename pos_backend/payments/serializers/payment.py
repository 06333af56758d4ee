# payments/serializers/payment.py

from decimal import Decimal

from rest_framework import serializers

from orders.serializers import OrderSerializer
from payments.models import Payment, PaymentRefund


class PaymentSerializer(serializers.ModelSerializer):
    """
    Read model for a recorded tender.

    `details` is the method-specific payload (cash / card / gift card).
    """

    order_no = serializers.CharField(source="order.order_no", read_only=True)
    created_by_name = serializers.SerializerMethodField()
    reference = serializers.CharField(read_only=True, allow_null=True)
    details = serializers.SerializerMethodField()

    class Meta:
        model = Payment
        fields = [
            "id",
            "order",
            "order_no",
            "amount",
            "method",
            "cash_received",
            "change_due",
            "card_intent_id",
            "card_charge_id",
            "gift_card_code",
            "reference",
            "details",
            "split_group",
            "created_by",
            "created_by_name",
            "paid_at",
        ]
        read_only_fields = fields

    def get_created_by_name(self, obj):
        return obj.created_by.display_name if obj.created_by_id else None

    def get_details(self, obj) -> dict:
        if obj.method == Payment.METHOD_CASH:
            d = obj.details
            return {"type": "cash", "received": str(d.received), "change": str(d.change)}
        if obj.method == Payment.METHOD_CARD:
            d = obj.details
            return {"type": "card", "intent_id": d.intent_id, "charge_id": d.charge_id}
        return {"type": "gift_card", "code": obj.details.code}


class PaymentRefundSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentRefund
        fields = [
            "id",
            "payment",
            "order",
            "refund_group",
            "amount",
            "status",
            "refund_reference",
            "reason",
            "error_message",
            "refunded_by",
            "created_at",
        ]
        read_only_fields = fields


# ==========================================================
# INPUT
# ==========================================================

_AMOUNT = dict(max_digits=12, decimal_places=2, min_value=Decimal("0.01"))


class PaymentCreateSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    method = serializers.CharField(max_length=16)
    amount = serializers.DecimalField(**_AMOUNT)
    cash_received = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True, default=None
    )
    card_intent_id = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    gift_card_code = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)


class SplitPaymentEntrySerializer(serializers.Serializer):
    method = serializers.CharField(max_length=16)
    amount = serializers.DecimalField(**_AMOUNT)
    cash_received = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True, default=None
    )
    card_intent_id = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    gift_card_code = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)


class SplitPaymentCreateSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    payments = SplitPaymentEntrySerializer(many=True, allow_empty=False)


class CardIntentCreateSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    amount = serializers.DecimalField(**_AMOUNT, required=False, allow_null=True, default=None)
    currency = serializers.CharField(max_length=3, required=False, allow_blank=True, default="")


# ==========================================================
# OUTPUT
# ==========================================================

class PaymentConfirmationSerializer(serializers.Serializer):
    payment = PaymentSerializer()
    order = OrderSerializer()
    message = serializers.CharField()


class SplitPaymentResultSerializer(serializers.Serializer):
    split_group = serializers.UUIDField()
    payments = PaymentSerializer(many=True)
    order = OrderSerializer()
    total_paid = serializers.DecimalField(max_digits=12, decimal_places=2)
    remaining_balance = serializers.DecimalField(max_digits=12, decimal_places=2)
    is_fully_paid = serializers.BooleanField()


class CardIntentSerializer(serializers.Serializer):
    id = serializers.CharField()
    status = serializers.CharField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, allow_null=True)
    currency = serializers.CharField()
    client_secret = serializers.CharField(allow_null=True)
