# orders/views/order.py

"""
======================================================
PATH: orders/views/order.py
======================================================
ORDER VIEWSET (STAFF)

Purpose:
- Order CRUD scoped to the caller's business.
- Lifecycle actions: place / cancel.
- Refund entry point (spreads the amount over the order's payments).
- Print-ready receipt.
- Stock check for the order lines.

Security:
- IsAuthenticated + one capability per action:
    reads              -> orders.view
    writes / lifecycle -> orders.manage
    refund             -> payments.refund
======================================================
"""

from __future__ import annotations

from decimal import Decimal

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import mixins, serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.api_errors import DOMAIN_ERRORS, domain_error_response, unexpected_error_response
from orders.models import Order
from orders.serializers import (
    OrderCreateSerializer,
    OrderSerializer,
    OrderUpdateSerializer,
)
from orders.services.order_service import (
    build_receipt,
    cancel_order,
    create_order,
    delete_order,
    place_order,
    update_order,
)
from payments.services.refund_coordinator import process_refund
from products.services.inventory import find_inventory_shortages
from permissions.roles import (
    CAP_ORDERS_MANAGE,
    CAP_ORDERS_VIEW,
    CAP_PAYMENTS_REFUND,
    HasCapability,
)


# ==========================================================
# REFUND INPUT / OUTPUT
# ==========================================================

class OrderRefundInputSerializer(serializers.Serializer):
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.01"),
        required=False,
        allow_null=True,
        default=None,
    )
    reason = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)


class RefundLineOutputSerializer(serializers.Serializer):
    payment_id = serializers.UUIDField()
    method = serializers.CharField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    status = serializers.CharField()
    reference = serializers.CharField()
    error = serializers.CharField()


class OrderRefundOutputSerializer(serializers.Serializer):
    order_id = serializers.UUIDField(source="order.id")
    refund_group = serializers.UUIDField()
    refund_mode = serializers.CharField()
    requested_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_refunded = serializers.DecimalField(max_digits=12, decimal_places=2)
    order_status = serializers.CharField()
    reason = serializers.CharField()
    lines = RefundLineOutputSerializer(many=True)


# ==========================================================
# VIEWSET
# ==========================================================

class OrderViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["status", "spot_id"]

    action_capabilities = {
        "list": CAP_ORDERS_VIEW,
        "retrieve": CAP_ORDERS_VIEW,
        "receipt": CAP_ORDERS_VIEW,
        "inventory": CAP_ORDERS_VIEW,
        "refund": CAP_PAYMENTS_REFUND,
    }

    def get_permissions(self):
        self.required_capability = self.action_capabilities.get(self.action, CAP_ORDERS_MANAGE)
        return [IsAuthenticated(), HasCapability()]

    def get_queryset(self):
        business_id = getattr(self.request.user, "business_id", None)
        return (
            Order.objects.filter(business_id=business_id)
            .select_related("business", "created_by", "discount")
            .prefetch_related("items__product", "payments")
            .order_by("-created_at")
        )

    def _snapshot(self, order: Order, http_status=status.HTTP_200_OK):
        order = self.get_queryset().get(pk=order.pk)
        return Response(OrderSerializer(order).data, status=http_status)

    # ======================================================
    # CREATE / UPDATE / DELETE
    # ======================================================

    @extend_schema(request=OrderCreateSerializer, responses={201: OrderSerializer})
    def create(self, request):
        ser = OrderCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        try:
            order = create_order(
                business=request.user.business,
                user=request.user,
                items=data["items"],
                spot_id=data.get("spot_id"),
                discount_id=data.get("discount_id"),
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        except Exception as exc:
            return unexpected_error_response(exc, where="orders.create")

        return self._snapshot(order, status.HTTP_201_CREATED)

    @extend_schema(request=OrderUpdateSerializer, responses={200: OrderSerializer})
    def partial_update(self, request, pk=None):
        order = self.get_object()
        ser = OrderUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        changes = {}
        if "items" in data:
            changes["items"] = data["items"]
        if "spot_id" in data:
            changes["spot_id"] = data["spot_id"]
        if "discount_id" in data:
            changes["discount_id"] = data["discount_id"]

        try:
            order = update_order(order=order, **changes)
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        except Exception as exc:
            return unexpected_error_response(exc, where="orders.update")

        return self._snapshot(order)

    @extend_schema(responses={204: OpenApiResponse(description="Order deleted")})
    def destroy(self, request, pk=None):
        order = self.get_object()
        try:
            delete_order(order=order)
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        except Exception as exc:
            return unexpected_error_response(exc, where="orders.delete")

        return Response(status=status.HTTP_204_NO_CONTENT)

    # ======================================================
    # LIFECYCLE
    # POST /api/orders/:id/place/
    # POST /api/orders/:id/cancel/
    # ======================================================

    @extend_schema(request=None, responses={200: OrderSerializer})
    @action(detail=True, methods=["post"], url_path="place")
    def place(self, request, pk=None):
        order = self.get_object()
        try:
            order = place_order(order=order)
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        except Exception as exc:
            return unexpected_error_response(exc, where="orders.place")

        return self._snapshot(order)

    @extend_schema(request=None, responses={200: OrderSerializer})
    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        order = self.get_object()
        try:
            order = cancel_order(order=order)
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        except Exception as exc:
            return unexpected_error_response(exc, where="orders.cancel")

        return self._snapshot(order)

    # ======================================================
    # REFUND
    # POST /api/orders/:id/refund/   {amount?, reason?}
    # ======================================================

    @extend_schema(
        request=OrderRefundInputSerializer,
        responses={200: OrderRefundOutputSerializer},
        description=(
            "Refund a paid order. amount defaults to the order total and is "
            "spread over the payments newest first."
        ),
    )
    @action(detail=True, methods=["post"], url_path="refund")
    def refund(self, request, pk=None):
        order = self.get_object()
        ser = OrderRefundInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        try:
            result = process_refund(
                order=order,
                user=request.user,
                amount=ser.validated_data.get("amount"),
                reason=ser.validated_data.get("reason") or "",
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        except Exception as exc:
            return unexpected_error_response(exc, where="orders.refund")

        return Response(OrderRefundOutputSerializer(result).data, status=status.HTTP_200_OK)

    # ======================================================
    # RECEIPT
    # GET /api/orders/:id/receipt/
    # ======================================================

    @extend_schema(
        responses={200: OpenApiResponse(description="Print-ready receipt payload")},
    )
    @action(detail=True, methods=["get"], url_path="receipt")
    def receipt(self, request, pk=None):
        order = self.get_object()
        return Response(build_receipt(order=order), status=status.HTTP_200_OK)

    # ======================================================
    # STOCK CHECK
    # GET /api/orders/:id/inventory/
    # ======================================================

    @extend_schema(
        responses={200: OpenApiResponse(description="{available, shortages[]}")},
    )
    @action(detail=True, methods=["get"], url_path="inventory")
    def inventory(self, request, pk=None):
        order = self.get_object()
        shortages = find_inventory_shortages(order=order)
        return Response(
            {
                "order_id": str(order.id),
                "available": not shortages,
                "shortages": [
                    {
                        "product_id": str(s.product_id),
                        "requested": s.requested,
                        "available": s.available,
                    }
                    for s in shortages
                ],
            },
            status=status.HTTP_200_OK,
        )
