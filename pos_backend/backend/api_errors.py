# backend/api_errors.py

"""
CANONICAL API ERRORS

Body: {"error": {"code": <CODE>, "message": <text>, "details"?: [...]}}

Status:
- 400 validation (client-fixable)
- 404 not found in the caller's business
- 409 duplicate tender / conflict
- 502 card gateway failure
- 500 anything unexpected (generic message; full trace in the log)
"""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.response import Response

from giftcards.services.gift_card_service import GiftCardError
from orders.services.order_lifecycle import OrderLifecycleError
from orders.services.order_validation import OrderValidationError
from payments.services.exceptions import (
    DuplicateTenderError,
    GatewayError,
    GatewayNotConfiguredError,
    PaymentError,
    RefundAllocationError,
    RefundError,
    SplitPaymentError,
)
from pricing.services.pricing import PricingError

logger = logging.getLogger("payments")

DOMAIN_ERRORS = (
    OrderValidationError,
    OrderLifecycleError,
    PaymentError,
    RefundError,
    GiftCardError,
    PricingError,
)


def error_response(*, code: str, message: str, http_status: int, details=None):
    body = {"code": code, "message": message}
    if details is not None:
        body["details"] = details
    return Response({"error": body}, status=http_status)


def _split_details(exc: SplitPaymentError) -> list[dict]:
    return [
        {
            "index": r.index,
            "method": r.method,
            "amount": str(r.amount),
            "status": "created" if r.ok else "failed",
            "payment_id": str(r.payment.id) if r.ok else None,
            "error": r.error,
        }
        for r in exc.results
    ]


def _refund_details(exc: RefundAllocationError) -> list[dict]:
    return [
        {
            "payment_id": str(line.payment_id),
            "method": line.method,
            "amount": str(line.amount),
            "status": line.status,
            "reference": line.reference,
            "error": line.error,
        }
        for line in exc.lines
    ]


def domain_error_response(exc: Exception):
    """Translate a domain exception into the canonical error body."""
    message = str(exc)

    if isinstance(exc, DuplicateTenderError):
        return error_response(code="DUPLICATE_TENDER", message=message, http_status=status.HTTP_409_CONFLICT)

    if isinstance(exc, GatewayNotConfiguredError):
        return error_response(code="CARD_NOT_CONFIGURED", message=message, http_status=status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, GatewayError):
        return error_response(code="GATEWAY_ERROR", message=message, http_status=status.HTTP_502_BAD_GATEWAY)

    if isinstance(exc, SplitPaymentError):
        return error_response(
            code="SPLIT_PAYMENT_FAILED",
            message=message,
            http_status=status.HTTP_400_BAD_REQUEST,
            details={"split_group": str(exc.split_group), "entries": _split_details(exc)},
        )

    if isinstance(exc, RefundAllocationError):
        gateway_failure = isinstance(exc.__cause__, GatewayError)
        return error_response(
            code="REFUND_FAILED",
            message=message,
            http_status=status.HTTP_502_BAD_GATEWAY if gateway_failure else status.HTTP_400_BAD_REQUEST,
            details={"refund_group": str(exc.refund_group), "lines": _refund_details(exc)},
        )

    if isinstance(exc, RefundError):
        return error_response(code="REFUND_INVALID", message=message, http_status=status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, PaymentError):
        return error_response(code="PAYMENT_INVALID", message=message, http_status=status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, GiftCardError):
        return error_response(code="GIFT_CARD_INVALID", message=message, http_status=status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, OrderLifecycleError):
        return error_response(code="INVALID_TRANSITION", message=message, http_status=status.HTTP_400_BAD_REQUEST)

    return error_response(code="ORDER_INVALID", message=message, http_status=status.HTTP_400_BAD_REQUEST)


def unexpected_error_response(exc: Exception, *, where: str):
    logger.exception("Unexpected error", extra={"where": where})
    return error_response(
        code="INTERNAL_ERROR",
        message="An unexpected error occurred.",
        http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
