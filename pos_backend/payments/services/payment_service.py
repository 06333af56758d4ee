# payments/services/payment_service.py

"""
======================================================
PATH: payments/services/payment_service.py
======================================================
PAYMENT LEDGER (SINGLE + SPLIT PAYMENTS, DELETION)

Single payment, checks in order (first failure wins):
1) order passes validate_for_payment
2) totals re-priced and persisted when they drifted
3) amount <= remaining balance (cash is capped instead)
4) method is cash / card / gift_card; amount > 0
5) a card intent / gift card code is not already used on this order
6) tender checks:
   - cash:      cash_received >= amount due; a single cash tender records the
                whole remaining balance, a split entry records min(amount, remaining);
                change = cash_received - recorded
   - card:      gateway configured; intent succeeded/processing; amount
                matches within SPLIT_PAYMENT_TOLERANCE
   - gift card: debit (row-locked) BEFORE the payment row is written
7) payment row written
8) reconciliation

Re-pricing:
- when the re-priced total is already covered by recorded payments the order
  is reconciled (committed as Paid) and the new tender is refused

Concurrency:
- Every write path runs in transaction.atomic() and re-reads the order with
  select_for_update() before the remaining balance is computed.

Split payments:
- sum(entries) must equal the remaining balance within tolerance, checked
  before any entry runs
- an entry over the live balance by no more than the tolerance records the
  live balance
- every entry runs the single path in its OWN atomic block and shares one
  split_group id
- all entries are attempted; failures raise SplitPaymentError carrying the
  per-entry results (committed entries are NOT reversed)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from django.conf import settings
from django.db import transaction

from giftcards.services.gift_card_service import (
    GiftCardError,
    credit_gift_card,
    debit_gift_card,
    normalize_code,
)
from orders.models import Order
from orders.services.order_service import lock_order, remaining_balance_for, total_paid_for
from orders.services.order_validation import OrderValidationError, validate_for_payment
from payments.models import Payment
from payments.services.card_gateway import ACCEPTED_INTENT_STATUSES, get_card_gateway
from payments.services.exceptions import (
    DuplicateTenderError,
    GatewayError,
    GatewayNotConfiguredError,
    PaymentError,
    PaymentValidationError,
    SplitPaymentError,
)
from payments.services.reconciliation import reconcile_order_payments
from pricing.services.pricing import recalculate_order

logger = logging.getLogger("payments")

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

VALID_METHODS = {Payment.METHOD_CASH, Payment.METHOD_CARD, Payment.METHOD_GIFT_CARD}

_METHOD_ALIASES = {
    "cash": Payment.METHOD_CASH,
    "card": Payment.METHOD_CARD,
    "giftcard": Payment.METHOD_GIFT_CARD,
    "gift_card": Payment.METHOD_GIFT_CARD,
    "gift-card": Payment.METHOD_GIFT_CARD,
}

# Sentinel: "use the gateway configured in settings".
DEFAULT_GATEWAY = object()


def _money(v) -> Decimal:
    if v is None or v == "":
        return ZERO
    try:
        return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise PaymentValidationError(f"Invalid amount: {v}") from exc


def _tolerance() -> Decimal:
    return Decimal(str(getattr(settings, "SPLIT_PAYMENT_TOLERANCE", "0.01")))


def _resolve_gateway(gateway):
    return get_card_gateway() if gateway is DEFAULT_GATEWAY else gateway


def parse_method(method) -> str:
    key = str(method or "").strip().lower()
    parsed = _METHOD_ALIASES.get(key)
    if parsed is None:
        raise PaymentValidationError(
            f"Invalid payment method: {method}. Valid methods are: Cash, Card, GiftCard"
        )
    return parsed


# ============================================================
# RESULTS
# ============================================================

@dataclass
class SplitEntryResult:
    index: int
    method: str
    amount: Decimal
    payment: Optional[Payment] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.payment is not None


@dataclass
class SplitPaymentResult:
    order: Order
    split_group: uuid.UUID
    payments: list = field(default_factory=list)
    total_paid: Decimal = ZERO
    remaining_balance: Decimal = ZERO

    @property
    def is_fully_paid(self) -> bool:
        return self.order.status == Order.STATUS_PAID


# ============================================================
# TENDER CHECKS
# ============================================================

def _ensure_unique_tender(*, order: Order, method: str, card_intent_id, gift_card_code) -> None:
    if method == Payment.METHOD_CARD and card_intent_id:
        if Payment.objects.filter(order=order, card_intent_id=card_intent_id).exists():
            raise DuplicateTenderError(
                f"Card payment {card_intent_id} is already recorded for this order"
            )

    if method == Payment.METHOD_GIFT_CARD and gift_card_code:
        if Payment.objects.filter(order=order, gift_card_code=gift_card_code).exists():
            raise DuplicateTenderError(
                f"Gift card {gift_card_code} has already been used for this order"
            )


def _cash_fields(
    *,
    amount: Decimal,
    remaining: Decimal,
    cash_received,
    cash_due: Decimal,
    settle_remaining: bool,
) -> dict:
    if cash_received is None or cash_received == "":
        raise PaymentValidationError("cash_received is required for cash payments")

    received = _money(cash_received)
    if received <= ZERO:
        raise PaymentValidationError("Cash received must be greater than zero")

    if received < cash_due:
        raise PaymentValidationError(
            f"Insufficient cash. Amount due: {cash_due}, Cash received: {received}"
        )

    recorded = remaining if settle_remaining else min(amount, remaining)
    return {
        "amount": recorded,
        "cash_received": received,
        "change_due": received - recorded,
    }


def _card_fields(*, amount: Decimal, card_intent_id, gateway) -> dict:
    if gateway is None:
        raise GatewayNotConfiguredError("Card payments are not configured")

    if not card_intent_id:
        raise PaymentValidationError("card_intent_id is required for card payments")

    intent = gateway.get_intent(card_intent_id)

    if intent.status not in ACCEPTED_INTENT_STATUSES:
        raise PaymentValidationError(
            f"Card payment not completed. Intent status: {intent.status or 'unknown'}"
        )

    if intent.amount is not None and abs(intent.amount - amount) > _tolerance():
        raise PaymentValidationError(
            f"Card payment amount mismatch. Intent: {intent.amount}, Requested: {amount}"
        )

    return {
        "amount": amount,
        "card_intent_id": card_intent_id,
        "card_charge_id": intent.charge_id,
    }


def _gift_card_fields(*, order: Order, amount: Decimal, gift_card_code) -> dict:
    if not gift_card_code:
        raise PaymentValidationError("gift_card_code is required for gift card payments")

    card = debit_gift_card(business=order.business, code=gift_card_code, amount=amount)
    return {
        "amount": amount,
        "gift_card": card,
        "gift_card_code": card.code,
    }


# ============================================================
# SINGLE PAYMENT
# ============================================================

def _settle_if_covered(order: Order) -> bool:
    """
    Reconcile an order whose re-priced total is already covered by its payments.

    Returns True when nothing is left to pay.
    """
    if remaining_balance_for(order) > ZERO:
        return False

    outcome = reconcile_order_payments(order=order)
    logger.info(
        "Order covered by existing payments after re-pricing",
        extra={
            "order_id": str(order.id),
            "total": str(outcome.total),
            "total_paid": str(outcome.total_paid),
            "status": outcome.status,
        },
    )
    return True


def _record_payment(
    *,
    order: Order,
    user,
    method,
    amount,
    cash_received=None,
    card_intent_id=None,
    gift_card_code=None,
    gateway=None,
    split_group=None,
    cash_due: Optional[Decimal] = None,
) -> Payment:
    """Steps 3-8 for a locked, validated and re-priced order."""
    amount = _money(amount)
    method_key = str(method or "").strip().lower()
    is_cash = _METHOD_ALIASES.get(method_key) == Payment.METHOD_CASH

    remaining = remaining_balance_for(order)
    if remaining <= ZERO:
        raise PaymentValidationError("Order has no remaining balance")

    if not is_cash and amount > remaining:
        raise PaymentValidationError(
            f"Payment amount ({amount}) exceeds remaining balance ({remaining})"
        )

    method = parse_method(method)
    if amount <= ZERO:
        raise PaymentValidationError("Payment amount must be greater than zero")

    card_intent_id = (str(card_intent_id).strip() or None) if card_intent_id else None
    gift_card_code = normalize_code(gift_card_code) or None

    _ensure_unique_tender(
        order=order,
        method=method,
        card_intent_id=card_intent_id,
        gift_card_code=gift_card_code,
    )

    if method == Payment.METHOD_CASH:
        fields = _cash_fields(
            amount=amount,
            remaining=remaining,
            cash_received=cash_received,
            cash_due=remaining if cash_due is None else _money(cash_due),
            settle_remaining=cash_due is None,
        )
    elif method == Payment.METHOD_CARD:
        fields = _card_fields(amount=amount, card_intent_id=card_intent_id, gateway=gateway)
    else:
        fields = _gift_card_fields(order=order, amount=amount, gift_card_code=gift_card_code)

    payment = Payment.objects.create(
        order=order,
        created_by=user,
        method=method,
        split_group=split_group,
        **fields,
    )

    logger.info(
        "Payment recorded",
        extra={
            "payment_id": str(payment.id),
            "order_id": str(order.id),
            "method": method,
            "amount": str(payment.amount),
            "split_group": str(split_group) if split_group else None,
        },
    )

    reconcile_order_payments(order=order)
    return payment


def create_payment(
    *,
    order: Order,
    user,
    method,
    amount,
    cash_received=None,
    card_intent_id=None,
    gift_card_code=None,
    gateway=DEFAULT_GATEWAY,
    split_group=None,
    cash_due=None,
) -> Payment:
    """
    Record one tender against `order`.

    Nothing is written when any check fails (gift card debit included).
    """
    gateway = _resolve_gateway(gateway)
    settled = False

    try:
        with transaction.atomic():
            locked = lock_order(order_id=order.pk)
            validate_for_payment(locked)
            recalculate_order(order=locked)

            settled = _settle_if_covered(locked)
            if not settled:
                payment = _record_payment(
                    order=locked,
                    user=user,
                    method=method,
                    amount=amount,
                    cash_received=cash_received,
                    card_intent_id=card_intent_id,
                    gift_card_code=gift_card_code,
                    gateway=gateway,
                    split_group=split_group,
                    cash_due=cash_due,
                )
    except (PaymentError, OrderValidationError, GiftCardError) as exc:
        logger.warning(
            "Payment rejected",
            extra={
                "order_id": str(order.pk),
                "method": str(method),
                "amount": str(amount),
                "reason": str(exc),
            },
        )
        raise

    order.refresh_from_db()

    # The re-priced order is committed as Paid; the tender itself is refused.
    if settled:
        raise PaymentValidationError(
            "Order is already fully covered by its existing payments. No payment was recorded."
        )

    return payment


# ============================================================
# SPLIT PAYMENTS
# ============================================================

def create_split_payments(*, order: Order, user, entries, gateway=DEFAULT_GATEWAY) -> SplitPaymentResult:
    """
    Settle the remaining balance with several tenders.

    `entries`: iterable of dicts with method, amount and the tender field
    (cash_received / card_intent_id / gift_card_code).
    """
    entries = list(entries or [])
    if not entries:
        raise PaymentValidationError("At least one split payment entry is required")

    gateway = _resolve_gateway(gateway)
    split_group = uuid.uuid4()

    with transaction.atomic():
        locked = lock_order(order_id=order.pk)
        validate_for_payment(locked)
        recalculate_order(order=locked)

        settled = _settle_if_covered(locked)
        remaining = remaining_balance_for(locked)
        requested = sum((_money(e.get("amount")) for e in entries), ZERO)

        if not settled and abs(requested - remaining) > _tolerance():
            logger.warning(
                "Split payment rejected: amounts do not match remaining balance",
                extra={
                    "order_id": str(locked.id),
                    "requested": str(requested),
                    "remaining": str(remaining),
                },
            )
            raise PaymentValidationError(
                f"Split payment amounts ({requested}) must equal the remaining balance ({remaining})"
            )

    if settled:
        order.refresh_from_db()
        raise PaymentValidationError(
            "Order is already fully covered by its existing payments. No payment was recorded."
        )

    results: list[SplitEntryResult] = []

    for index, entry in enumerate(entries):
        amount = _money(entry.get("amount"))
        result = SplitEntryResult(index=index, method=str(entry.get("method") or ""), amount=amount)

        try:
            with transaction.atomic():
                locked = lock_order(order_id=order.pk)
                validate_for_payment(locked)

                # An entry over the live balance by no more than the tolerance
                # settles exactly what is left.
                live = remaining_balance_for(locked)
                if ZERO < live < amount <= live + _tolerance():
                    amount = live

                result.payment = _record_payment(
                    order=locked,
                    user=user,
                    method=entry.get("method"),
                    amount=amount,
                    cash_received=entry.get("cash_received"),
                    card_intent_id=entry.get("card_intent_id"),
                    gift_card_code=entry.get("gift_card_code"),
                    gateway=gateway,
                    split_group=split_group,
                    cash_due=amount,
                )
        except (PaymentError, OrderValidationError, GiftCardError) as exc:
            result.error = str(exc)
            logger.error(
                "Split payment entry failed",
                extra={
                    "order_id": str(order.pk),
                    "split_group": str(split_group),
                    "index": index,
                    "method": result.method,
                    "amount": str(amount),
                    "reason": result.error,
                },
            )

        results.append(result)

    order.refresh_from_db()

    failures = [r for r in results if not r.ok]
    if failures:
        summary = "; ".join(f"entry {r.index + 1} ({r.method} {r.amount}): {r.error}" for r in failures)
        raise SplitPaymentError(
            f"Split payment failed for {len(failures)} of {len(results)} entries: {summary}",
            split_group=split_group,
            results=results,
        )

    return SplitPaymentResult(
        order=order,
        split_group=split_group,
        payments=[r.payment for r in results],
        total_paid=total_paid_for(order),
        remaining_balance=remaining_balance_for(order),
    )


# ============================================================
# DELETE
# ============================================================

@transaction.atomic
def delete_payment(*, payment: Payment, user=None) -> Order:
    """
    Remove a payment from an order that is not Paid, then reconcile.

    A gift card payment gives its amount back to the card.
    """
    order = lock_order(order_id=payment.order_id)
    payment = Payment.objects.select_for_update().get(pk=payment.pk)

    if order.status == Order.STATUS_PAID:
        raise PaymentValidationError("Cannot delete payment for a paid order. Process a refund instead.")

    if payment.refunds.exists():
        raise PaymentValidationError("Cannot delete a payment that has refunds recorded.")

    if payment.method == Payment.METHOD_GIFT_CARD and payment.gift_card_code:
        credit_gift_card(business=order.business, code=payment.gift_card_code, amount=payment.amount)

    if payment.method == Payment.METHOD_CARD:
        logger.warning(
            "Card payment deleted; gateway charge is not reversed automatically",
            extra={"payment_id": str(payment.id), "card_intent_id": payment.card_intent_id},
        )

    payment_id = str(payment.id)
    amount = str(payment.amount)
    payment.delete()

    logger.info(
        "Payment deleted",
        extra={
            "payment_id": payment_id,
            "order_id": str(order.id),
            "amount": amount,
            "deleted_by": str(getattr(user, "id", "") or ""),
        },
    )

    reconcile_order_payments(order=order)
    return order


# ============================================================
# CARD INTENTS
# ============================================================

def create_card_intent(*, order: Order, amount=None, currency: Optional[str] = None, gateway=DEFAULT_GATEWAY):
    """Open a gateway intent for the order (defaults to the remaining balance)."""
    gateway = _resolve_gateway(gateway)
    if gateway is None:
        raise GatewayNotConfiguredError("Card payments are not configured")

    with transaction.atomic():
        locked = lock_order(order_id=order.pk)
        validate_for_payment(locked)
        recalculate_order(order=locked)

        settled = _settle_if_covered(locked)
        remaining = remaining_balance_for(locked)

    order.refresh_from_db()
    if settled:
        raise PaymentValidationError(
            "Order is already fully covered by its existing payments. No card intent was created."
        )

    amount = remaining if amount in (None, "") else _money(amount)

    if amount <= ZERO:
        raise PaymentValidationError("Payment amount must be greater than zero")
    if amount > remaining:
        raise PaymentValidationError(
            f"Payment amount ({amount}) exceeds remaining balance ({remaining})"
        )

    try:
        intent = gateway.create_intent(amount=amount, currency=currency, order_ref=str(order.id))
    except GatewayError:
        logger.exception("Card intent creation failed", extra={"order_id": str(order.id)})
        raise

    logger.info(
        "Card intent created",
        extra={"order_id": str(order.id), "intent_id": intent.id, "amount": str(amount)},
    )
    return intent
