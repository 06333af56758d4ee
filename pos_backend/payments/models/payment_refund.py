# payments/models/payment_refund.py

"""
PAYMENT REFUND (ONE REVERSAL LINE)

One row per payment touched by a refund request. Lines of the same
request share `refund_group`, so a partially failed refund stays
queryable and can be resumed.

Status:
- succeeded: money returned (gateway refund id / gift card credit / cash)
- pending:   needs manual follow-up (no gateway or no card intent)
- failed:    reversal raised; error_message holds the reason
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q

User = settings.AUTH_USER_MODEL


class PaymentRefund(models.Model):
    STATUS_SUCCEEDED = "succeeded"
    STATUS_PENDING = "pending"
    STATUS_FAILED = "failed"

    STATUS_CHOICES = [
        (STATUS_SUCCEEDED, "Succeeded"),
        (STATUS_PENDING, "Pending"),
        (STATUS_FAILED, "Failed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    payment = models.ForeignKey(
        "payments.Payment",
        on_delete=models.PROTECT,
        related_name="refunds",
    )

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="refunds",
    )

    refund_group = models.UUIDField(db_index=True)

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES)

    refund_reference = models.CharField(max_length=255, blank=True)
    reason = models.CharField(max_length=255, blank=True)
    error_message = models.TextField(blank=True)

    refunded_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="refunds_processed",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["order", "created_at"], name="refund_order_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=Decimal("0.00")),
                name="chk_refund_amount_gt_zero",
            ),
        ]

    def __str__(self):
        return f"Refund {self.amount} of {self.payment_id} ({self.status})"
