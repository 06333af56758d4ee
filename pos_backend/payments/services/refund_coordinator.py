"""
======================================================
PATH: payments/services/refund_coordinator.py
======================================================
REFUND COORDINATOR

Purpose:
- Spread a refund amount over an order's payments, newest first.
- Reverse each allocation with its tender:
    card      -> gateway refund (no gateway / no intent -> line is PENDING)
    gift card -> credit back to the card (uncapped)
    cash      -> recorded as succeeded (cash handed back at the till)
- Cancel the order once cumulative refunds cover its total.

Rules:
- Order must be Paid.
- amount defaults to the order total; 0 < amount <= total and
  amount <= what is still refundable.
- A payment never gives back more than amount - its earlier (non-failed) refunds.
- Each line commits in its own atomic block. The first failing line is
  recorded as FAILED and aborts the rest; earlier lines are NOT rolled back.
  Lines of one request share `refund_group`.
- Each line re-locks the order and re-reads what its payment can still give
  back before reversing, so concurrent refunds never reverse the same value
  twice. Nothing left to refund at all raises RefundValidationError.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from django.db import transaction
from django.db.models import Sum

from giftcards.services.gift_card_service import GiftCardError, credit_gift_card
from orders.models import Order
from orders.services.order_lifecycle import apply_system_transition
from orders.services.order_service import lock_order
from payments.models import Payment, PaymentRefund
from payments.services.card_gateway import get_card_gateway
from payments.services.exceptions import (
    GatewayError,
    RefundAllocationError,
    RefundValidationError,
)

logger = logging.getLogger("payments")

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

DEFAULT_GATEWAY = object()


def _money(v) -> Decimal:
    if v is None or v == "":
        return ZERO
    try:
        return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise RefundValidationError(f"Invalid refund amount: {v}") from exc


# ============================================================
# RESULTS
# ============================================================

@dataclass
class RefundLine:
    payment_id: uuid.UUID
    method: str
    amount: Decimal
    status: str
    reference: str = ""
    error: str = ""


@dataclass
class RefundResult:
    order: Order
    refund_group: uuid.UUID
    requested_amount: Decimal
    reason: str
    lines: list = field(default_factory=list)

    @property
    def total_refunded(self) -> Decimal:
        return sum(
            (l.amount for l in self.lines if l.status != PaymentRefund.STATUS_FAILED),
            ZERO,
        )

    @property
    def order_status(self) -> str:
        return self.order.status

    @property
    def refund_mode(self) -> str:
        return "full" if self.requested_amount >= _money(self.order.total) else "partial"


# ============================================================
# HELPERS
# ============================================================

def _refunded_amount(qs) -> Decimal:
    total = (
        qs.exclude(status=PaymentRefund.STATUS_FAILED)
        .aggregate(total=Sum("amount"))
        .get("total")
    )
    return _money(total or ZERO)


def refundable_for_payment(payment: Payment) -> Decimal:
    return _money(payment.amount) - _refunded_amount(payment.refunds.all())


def refundable_for_order(order: Order) -> Decimal:
    paid = _money(order.payments.aggregate(total=Sum("amount")).get("total") or ZERO)
    return paid - _refunded_amount(PaymentRefund.objects.filter(order=order))


def _allocate(order: Order, amount: Decimal) -> list[tuple[Payment, Decimal]]:
    plan = []
    remaining = amount
    for payment in order.payments.order_by("-paid_at", "-id"):
        if remaining <= ZERO:
            break
        available = refundable_for_payment(payment)
        if available <= ZERO:
            continue
        take = min(remaining, available)
        plan.append((payment, take))
        remaining -= take
    return plan


def _reverse(*, payment: Payment, amount: Decimal, reason: str, gateway, order: Order) -> tuple[str, str]:
    """Run one tender reversal. Returns (status, reference)."""
    if payment.method == Payment.METHOD_CARD:
        if gateway is None or not payment.card_intent_id:
            return PaymentRefund.STATUS_PENDING, ""
        refund = gateway.create_refund(
            payment_intent=payment.card_intent_id,
            amount=amount,
            reason=reason or None,
        )
        return PaymentRefund.STATUS_SUCCEEDED, refund.id

    if payment.method == Payment.METHOD_GIFT_CARD:
        card = credit_gift_card(business=order.business, code=payment.gift_card_code, amount=amount)
        return PaymentRefund.STATUS_SUCCEEDED, card.code

    return PaymentRefund.STATUS_SUCCEEDED, ""


# ============================================================
# REFUND
# ============================================================

def process_refund(
    *,
    order: Order,
    user,
    amount=None,
    reason: str = "",
    gateway=DEFAULT_GATEWAY,
) -> RefundResult:
    gateway = get_card_gateway() if gateway is DEFAULT_GATEWAY else gateway
    reason = (reason or "").strip()

    # --------------------------------------------------------
    # Preconditions + allocation plan (no writes)
    # --------------------------------------------------------
    with transaction.atomic():
        locked = lock_order(order_id=order.pk)

        if locked.status != Order.STATUS_PAID:
            raise RefundValidationError(
                f"Only paid orders can be refunded. Order status: {locked.get_status_display()}"
            )

        total = _money(locked.total)
        refund_amount = total if amount in (None, "") else _money(amount)

        if refund_amount <= ZERO:
            raise RefundValidationError("Refund amount must be greater than zero")
        if refund_amount > total:
            raise RefundValidationError(
                f"Refund amount ({refund_amount}) cannot exceed order total ({total})"
            )

        refundable = refundable_for_order(locked)
        if refund_amount > refundable:
            raise RefundValidationError(
                f"Refund amount ({refund_amount}) exceeds the refundable balance ({refundable})"
            )

        plan = _allocate(locked, refund_amount)

    result = RefundResult(
        order=order,
        refund_group=uuid.uuid4(),
        requested_amount=refund_amount,
        reason=reason,
    )

    # --------------------------------------------------------
    # Per-payment reversal (each line commits on its own)
    # --------------------------------------------------------
    for payment, planned in plan:
        allocated = planned
        try:
            with transaction.atomic():
                # Held through the reversal so refunds of one order run one at a time.
                lock_order(order_id=order.pk)
                allocated = min(planned, refundable_for_payment(payment))
                if allocated <= ZERO:
                    logger.warning(
                        "Refund line skipped: payment already refunded",
                        extra={"order_id": str(order.pk), "payment_id": str(payment.id)},
                    )
                    continue

                status, reference = _reverse(
                    payment=payment,
                    amount=allocated,
                    reason=reason,
                    gateway=gateway,
                    order=order,
                )
                PaymentRefund.objects.create(
                    payment=payment,
                    order_id=order.pk,
                    refund_group=result.refund_group,
                    amount=allocated,
                    status=status,
                    refund_reference=reference or "",
                    reason=reason,
                    refunded_by=user,
                )
        except (GatewayError, GiftCardError) as exc:
            PaymentRefund.objects.create(
                payment=payment,
                order_id=order.pk,
                refund_group=result.refund_group,
                amount=allocated,
                status=PaymentRefund.STATUS_FAILED,
                reason=reason,
                error_message=str(exc),
                refunded_by=user,
            )
            result.lines.append(
                RefundLine(
                    payment_id=payment.id,
                    method=payment.method,
                    amount=allocated,
                    status=PaymentRefund.STATUS_FAILED,
                    error=str(exc),
                )
            )
            logger.error(
                "Refund allocation failed",
                extra={
                    "order_id": str(order.pk),
                    "payment_id": str(payment.id),
                    "refund_group": str(result.refund_group),
                    "amount": str(allocated),
                    "reason": str(exc),
                },
            )
            order.refresh_from_db()
            raise RefundAllocationError(
                f"Refund failed for {payment.get_method_display()} payment {payment.id}: {exc}",
                refund_group=result.refund_group,
                lines=result.lines,
            ) from exc

        result.lines.append(
            RefundLine(
                payment_id=payment.id,
                method=payment.method,
                amount=allocated,
                status=status,
                reference=reference or "",
            )
        )

        if status == PaymentRefund.STATUS_PENDING:
            logger.warning(
                "Card refund needs manual follow-up",
                extra={"order_id": str(order.pk), "payment_id": str(payment.id), "amount": str(allocated)},
            )

    if not result.lines:
        order.refresh_from_db()
        raise RefundValidationError("Nothing left to refund for this order")

    # --------------------------------------------------------
    # Order status
    # --------------------------------------------------------
    with transaction.atomic():
        locked = lock_order(order_id=order.pk)
        refunded_total = _refunded_amount(PaymentRefund.objects.filter(order=locked))

        if refunded_total >= _money(locked.total):
            apply_system_transition(order=locked, target_status=Order.STATUS_CANCELLED, reason="fully refunded")

    order.refresh_from_db()

    logger.info(
        "Refund processed",
        extra={
            "order_id": str(order.pk),
            "refund_group": str(result.refund_group),
            "amount": str(result.total_refunded),
            "order_status": order.status,
        },
    )
    return result
