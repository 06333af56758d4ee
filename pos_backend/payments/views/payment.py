# payments/views/payment.py

"""
======================================================
PATH: payments/views/payment.py
======================================================
PAYMENT VIEWSET (STAFF)

Endpoints:
- GET    /api/payments/                 list (filters: order_id, method, start_date, end_date)
- POST   /api/payments/                 record one tender -> {payment, order, message}
- GET    /api/payments/:id/
- DELETE /api/payments/:id/             only while the order is not Paid
- POST   /api/payments/split/           several tenders settling the remaining balance
- GET    /api/payments/history/         business-wide history, newest first
- POST   /api/payments/card-intents/    open a gateway intent for an order

Security:
- reads          -> orders.view
- take / split   -> payments.take
- delete         -> payments.delete
======================================================
"""

from __future__ import annotations

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.api_errors import (
    DOMAIN_ERRORS,
    domain_error_response,
    unexpected_error_response,
)
from orders.models import Order
from orders.serializers import OrderSerializer
from orders.services.order_service import remaining_balance_for
from payments.filters import PaymentFilter
from payments.models import Payment
from payments.serializers import (
    CardIntentCreateSerializer,
    CardIntentSerializer,
    PaymentConfirmationSerializer,
    PaymentCreateSerializer,
    PaymentSerializer,
    SplitPaymentCreateSerializer,
    SplitPaymentResultSerializer,
)
from payments.services.payment_service import (
    create_card_intent,
    create_payment,
    create_split_payments,
    delete_payment,
)
from permissions.roles import (
    CAP_ORDERS_VIEW,
    CAP_PAYMENTS_DELETE,
    CAP_PAYMENTS_TAKE,
    HasCapability,
)


def _confirmation_message(payment: Payment, order: Order) -> str:
    if order.status == Order.STATUS_PAID:
        return f"Payment of {payment.amount} recorded. Order is fully paid."
    return f"Payment of {payment.amount} recorded. Remaining balance: {remaining_balance_for(order)}"


class PaymentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = PaymentSerializer
    permission_classes = [IsAuthenticated]
    filterset_class = PaymentFilter

    action_capabilities = {
        "list": CAP_ORDERS_VIEW,
        "retrieve": CAP_ORDERS_VIEW,
        "history": CAP_ORDERS_VIEW,
        "destroy": CAP_PAYMENTS_DELETE,
    }

    def get_permissions(self):
        self.required_capability = self.action_capabilities.get(self.action, CAP_PAYMENTS_TAKE)
        return [IsAuthenticated(), HasCapability()]

    def get_queryset(self):
        business_id = getattr(self.request.user, "business_id", None)
        return (
            Payment.objects.filter(order__business_id=business_id)
            .select_related("order", "created_by")
            .order_by("-paid_at")
        )

    def _order_for(self, order_id) -> Order:
        return get_object_or_404(
            Order.objects.select_related("business"),
            pk=order_id,
            business_id=getattr(self.request.user, "business_id", None),
        )

    # ======================================================
    # SINGLE PAYMENT
    # ======================================================

    @extend_schema(request=PaymentCreateSerializer, responses={201: PaymentConfirmationSerializer})
    def create(self, request):
        ser = PaymentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        order = self._order_for(data["order_id"])

        try:
            payment = create_payment(
                order=order,
                user=request.user,
                method=data["method"],
                amount=data["amount"],
                cash_received=data.get("cash_received"),
                card_intent_id=data.get("card_intent_id"),
                gift_card_code=data.get("gift_card_code"),
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        except Exception as exc:
            return unexpected_error_response(exc, where="payments.create")

        order.refresh_from_db()
        payload = {
            "payment": payment,
            "order": order,
            "message": _confirmation_message(payment, order),
        }
        return Response(PaymentConfirmationSerializer(payload).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses={200: OrderSerializer})
    def destroy(self, request, pk=None):
        payment = self.get_object()
        try:
            order = delete_payment(payment=payment, user=request.user)
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        except Exception as exc:
            return unexpected_error_response(exc, where="payments.delete")

        order.refresh_from_db()
        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)

    # ======================================================
    # SPLIT
    # POST /api/payments/split/
    # ======================================================

    @extend_schema(
        request=SplitPaymentCreateSerializer,
        responses={
            201: SplitPaymentResultSerializer,
            400: OpenApiResponse(description="Validation failed or one or more entries failed"),
        },
        description=(
            "Entries must add up to the remaining balance. Each entry commits on its own; "
            "when some fail the response lists every entry with its outcome."
        ),
    )
    @action(detail=False, methods=["post"], url_path="split")
    def split(self, request):
        ser = SplitPaymentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        order = self._order_for(data["order_id"])

        try:
            result = create_split_payments(order=order, user=request.user, entries=data["payments"])
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        except Exception as exc:
            return unexpected_error_response(exc, where="payments.split")

        result.order.refresh_from_db()
        return Response(SplitPaymentResultSerializer(result).data, status=status.HTTP_201_CREATED)

    # ======================================================
    # HISTORY
    # GET /api/payments/history/?order_id=&start_date=&end_date=
    # ======================================================

    @extend_schema(responses={200: PaymentSerializer(many=True)})
    @action(detail=False, methods=["get"], url_path="history")
    def history(self, request):
        qs = self.filter_queryset(self.get_queryset())

        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(PaymentSerializer(page, many=True).data)

        return Response(PaymentSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    # ======================================================
    # CARD INTENTS
    # POST /api/payments/card-intents/
    # ======================================================

    @extend_schema(request=CardIntentCreateSerializer, responses={201: CardIntentSerializer})
    @action(detail=False, methods=["post"], url_path="card-intents")
    def card_intents(self, request):
        ser = CardIntentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        order = self._order_for(data["order_id"])

        try:
            intent = create_card_intent(
                order=order,
                amount=data.get("amount"),
                currency=(data.get("currency") or "").lower() or None,
            )
        except DOMAIN_ERRORS as exc:
            return domain_error_response(exc)
        except Exception as exc:
            return unexpected_error_response(exc, where="payments.card_intents")

        return Response(CardIntentSerializer(intent).data, status=status.HTTP_201_CREATED)
