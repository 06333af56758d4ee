# giftcards/models/gift_card.py

"""
GIFT CARD (STORED-VALUE LEDGER)

- `code` is unique per business (stored upper-case).
- `balance` is mutated ONLY by giftcards.services.gift_card_service
  (debit on payment, credit on refund), always under select_for_update().
- Credits are uncapped: balance may exceed original_amount.
"""

import uuid
from decimal import Decimal

from django.db import models
from django.db.models import Q
from django.utils import timezone


class GiftCard(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    business = models.ForeignKey(
        "business.Business",
        on_delete=models.CASCADE,
        related_name="gift_cards",
    )

    code = models.CharField(max_length=32)

    balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    original_amount = models.DecimalField(max_digits=12, decimal_places=2)

    is_active = models.BooleanField(default=True)

    issued_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(null=True, blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-issued_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["business", "code"],
                name="uniq_giftcard_code_per_business",
            ),
            models.CheckConstraint(
                condition=Q(balance__gte=Decimal("0.00")),
                name="chk_giftcard_balance_gte_zero",
            ),
        ]

    def __str__(self):
        return f"{self.code} ({self.balance})"

    def save(self, *args, **kwargs):
        if self.code:
            self.code = self.code.strip().upper()
        super().save(*args, **kwargs)

    def is_expired(self, now=None) -> bool:
        return bool(self.expires_at and self.expires_at < (now or timezone.now()))
