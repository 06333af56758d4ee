# orders/models/order.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class Order(models.Model):
    """
    A tenant-scoped order awaiting (or having received) payment.

    GUARANTEES:
    - subtotal / discount / tax are stored as priced by the PricingEngine
    - total is ALWAYS subtotal - discount + tax (never stored on its own)
    - status changes go through orders.services.order_lifecycle only
    """

    STATUS_DRAFT = "draft"
    STATUS_PLACED = "placed"
    STATUS_PAID = "paid"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_PLACED, "Placed"),
        (STATUS_PAID, "Paid"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    AWAITING_PAYMENT_STATUSES = (STATUS_DRAFT, STATUS_PLACED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order_no = models.CharField(
        max_length=64,
        unique=True,
        blank=True,
        help_text="System-generated order number",
    )

    business = models.ForeignKey(
        "business.Business",
        on_delete=models.PROTECT,
        related_name="orders",
    )

    spot_id = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Table / counter / chair the order was placed at",
    )

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )

    discount = models.ForeignKey(
        "pricing.Discount",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
        help_text="Explicitly requested discount (optional)",
    )

    subtotal_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_DRAFT)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["business", "status"], name="order_business_status_idx"),
            models.Index(fields=["business", "created_at"], name="order_business_created_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self.order_no:
            prefix = timezone.now().strftime("ORD%Y%m%d")
            self.order_no = f"{prefix}-{uuid.uuid4().hex[:8].upper()}"
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.order_no} | {self.total} | {self.status}"

    @property
    def total(self) -> Decimal:
        return (
            Decimal(self.subtotal_amount or 0)
            - Decimal(self.discount_amount or 0)
            + Decimal(self.tax_amount or 0)
        )

    @property
    def is_awaiting_payment(self) -> bool:
        return self.status in self.AWAITING_PAYMENT_STATUSES
