# orders/serializers/order.py

from decimal import Decimal

from rest_framework import serializers

from orders.models import Order, OrderItem
from orders.services.order_service import total_paid_for


class OrderItemSerializer(serializers.ModelSerializer):
    product_name = serializers.SerializerMethodField()
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product",
            "product_name",
            "quantity",
            "unit_price",
            "line_total",
            "notes",
        ]
        read_only_fields = fields

    def get_product_name(self, obj):
        return obj.product.name if obj.product_id else None


class OrderSerializer(serializers.ModelSerializer):
    """
    Order snapshot.

    total_paid / remaining_balance are computed on read from the payment rows.
    """

    items = OrderItemSerializer(many=True, read_only=True)
    total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    total_paid = serializers.SerializerMethodField()
    remaining_balance = serializers.SerializerMethodField()
    is_awaiting_payment = serializers.BooleanField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_no",
            "business",
            "spot_id",
            "created_by",
            "discount",
            "status",
            "is_awaiting_payment",
            "subtotal_amount",
            "discount_amount",
            "tax_amount",
            "total",
            "total_paid",
            "remaining_balance",
            "items",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_total_paid(self, obj) -> str:
        return str(total_paid_for(obj))

    def get_remaining_balance(self, obj) -> str:
        return str((Decimal(obj.total) - total_paid_for(obj)).quantize(Decimal("0.01")))


class OrderItemInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal("0.00"),
        required=False,
        allow_null=True,
        default=None,
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)


class OrderCreateSerializer(serializers.Serializer):
    spot_id = serializers.IntegerField(min_value=0, required=False, allow_null=True, default=None)
    discount_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    items = OrderItemInputSerializer(many=True, allow_empty=True)


class OrderUpdateSerializer(serializers.Serializer):
    spot_id = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    discount_id = serializers.UUIDField(required=False, allow_null=True)
    items = OrderItemInputSerializer(many=True, required=False, allow_empty=True)
