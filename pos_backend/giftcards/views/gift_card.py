# giftcards/views/gift_card.py

"""
GIFT CARD VIEWSET (STAFF)

- GET  /api/gift-cards/                 list the business's cards
- POST /api/gift-cards/                 issue (code generated when omitted)
- GET  /api/gift-cards/balance/?code=   redeemable balance check
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.api_errors import domain_error_response, error_response, unexpected_error_response
from giftcards.models import GiftCard
from giftcards.serializers import GiftCardIssueSerializer, GiftCardSerializer
from giftcards.services.gift_card_service import (
    GiftCardError,
    GiftCardNotFoundError,
    check_gift_card_balance,
    issue_gift_card,
)
from permissions.roles import CAP_GIFTCARDS_ISSUE, CAP_GIFTCARDS_VIEW, HasCapability


class GiftCardViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    serializer_class = GiftCardSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["is_active"]

    def get_permissions(self):
        self.required_capability = CAP_GIFTCARDS_ISSUE if self.action == "create" else CAP_GIFTCARDS_VIEW
        return [IsAuthenticated(), HasCapability()]

    def get_queryset(self):
        business_id = getattr(self.request.user, "business_id", None)
        return GiftCard.objects.filter(business_id=business_id).order_by("-issued_at")

    @extend_schema(request=GiftCardIssueSerializer, responses={201: GiftCardSerializer})
    def create(self, request):
        ser = GiftCardIssueSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        try:
            card = issue_gift_card(
                business=request.user.business,
                original_amount=data["original_amount"],
                code=data.get("code") or None,
                expires_at=data.get("expires_at"),
            )
        except GiftCardError as exc:
            return domain_error_response(exc)
        except Exception as exc:
            return unexpected_error_response(exc, where="giftcards.issue")

        return Response(GiftCardSerializer(card).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        parameters=[OpenApiParameter(name="code", required=True, type=str)],
        responses={200: GiftCardSerializer},
    )
    @action(detail=False, methods=["get"], url_path="balance")
    def balance(self, request):
        code = (request.query_params.get("code") or "").strip()
        if not code:
            return error_response(
                code="GIFT_CARD_INVALID",
                message="code is required",
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            card = check_gift_card_balance(business=request.user.business, code=code)
        except GiftCardNotFoundError as exc:
            return error_response(
                code="GIFT_CARD_NOT_FOUND",
                message=str(exc),
                http_status=status.HTTP_404_NOT_FOUND,
            )
        except GiftCardError as exc:
            return domain_error_response(exc)

        return Response(GiftCardSerializer(card).data, status=status.HTTP_200_OK)
