# payments/models/payment.py

"""
PAYMENT (ONE TENDER AGAINST ONE ORDER)

GUARANTEES:
- Immutable once created (never updated in place; only deleted while the
  order is not Paid)
- amount > 0
- Tender metadata lives in typed columns, one group per method:
    cash      -> cash_received, change_due
    card      -> card_intent_id, card_charge_id
    gift_card -> gift_card, gift_card_code
  `details` returns the matching CashDetails / CardDetails / GiftCardDetails.
- A card intent or gift card code is used at most once per order.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

User = settings.AUTH_USER_MODEL


@dataclass(frozen=True)
class CashDetails:
    received: Decimal
    change: Decimal


@dataclass(frozen=True)
class CardDetails:
    intent_id: str
    charge_id: Optional[str]


@dataclass(frozen=True)
class GiftCardDetails:
    code: str


PaymentDetails = Union[CashDetails, CardDetails, GiftCardDetails]


class Payment(models.Model):
    METHOD_CASH = "cash"
    METHOD_CARD = "card"
    METHOD_GIFT_CARD = "gift_card"

    METHOD_CHOICES = [
        (METHOD_CASH, "Cash"),
        (METHOD_CARD, "Card"),
        (METHOD_GIFT_CARD, "Gift card"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="payments",
    )

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payments_taken",
    )

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    method = models.CharField(max_length=16, choices=METHOD_CHOICES)

    # cash
    cash_received = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    change_due = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    # card
    card_intent_id = models.CharField(max_length=255, null=True, blank=True)
    card_charge_id = models.CharField(max_length=255, null=True, blank=True)

    # gift card
    gift_card = models.ForeignKey(
        "giftcards.GiftCard",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payments",
    )
    gift_card_code = models.CharField(max_length=32, null=True, blank=True)

    split_group = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Shared by every entry of one split payment request",
    )

    paid_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-paid_at"]
        indexes = [
            models.Index(fields=["order", "paid_at"], name="payment_order_paid_idx"),
            models.Index(fields=["method"], name="payment_method_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=Decimal("0.00")),
                name="chk_payment_amount_gt_zero",
            ),
            models.UniqueConstraint(
                fields=["order", "card_intent_id"],
                condition=Q(card_intent_id__isnull=False),
                name="uniq_payment_card_intent_per_order",
            ),
            models.UniqueConstraint(
                fields=["order", "gift_card_code"],
                condition=Q(gift_card_code__isnull=False),
                name="uniq_payment_gift_card_per_order",
            ),
        ]

    def __str__(self):
        return f"{self.get_method_display()} {self.amount} -> {self.order_id}"

    def clean(self):
        if self.amount is None or Decimal(self.amount) <= Decimal("0.00"):
            raise ValidationError("Payment amount must be greater than zero")

        if self.method == self.METHOD_CASH:
            if self.cash_received is None or self.change_due is None:
                raise ValidationError("Cash payments require cash_received and change_due")
        elif self.method == self.METHOD_CARD:
            if not self.card_intent_id:
                raise ValidationError("Card payments require card_intent_id")
        elif self.method == self.METHOD_GIFT_CARD:
            if not self.gift_card_code:
                raise ValidationError("Gift card payments require gift_card_code")
        else:
            raise ValidationError(f"Unknown payment method: {self.method}")

    def save(self, *args, **kwargs):
        if self.pk and not self._state.adding:
            if type(self).objects.filter(pk=self.pk).exists():
                raise ValueError("Payments are immutable once recorded.")
        super().save(*args, **kwargs)

    @property
    def details(self) -> PaymentDetails:
        if self.method == self.METHOD_CASH:
            return CashDetails(
                received=Decimal(self.cash_received or 0),
                change=Decimal(self.change_due or 0),
            )
        if self.method == self.METHOD_CARD:
            return CardDetails(intent_id=self.card_intent_id or "", charge_id=self.card_charge_id)
        return GiftCardDetails(code=self.gift_card_code or "")

    @property
    def reference(self) -> Optional[str]:
        """Human-facing tender reference (receipt / history)."""
        if self.method == self.METHOD_CARD:
            return self.card_charge_id or self.card_intent_id
        if self.method == self.METHOD_GIFT_CARD:
            return self.gift_card_code
        return None
