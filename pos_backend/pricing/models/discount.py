# pricing/models/discount.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone


class DiscountQuerySet(models.QuerySet):
    def active_at(self, when=None):
        """Active discounts whose (open-ended) validity window contains `when`."""
        when = when or timezone.now()
        return (
            self.filter(is_active=True)
            .filter(Q(valid_from__isnull=True) | Q(valid_from__lte=when))
            .filter(Q(valid_to__isnull=True) | Q(valid_to__gte=when))
        )


class Discount(models.Model):
    TYPE_PERCENTAGE = "percentage"
    TYPE_FIXED = "fixed"

    TYPE_CHOICES = [
        (TYPE_PERCENTAGE, "Percentage"),
        (TYPE_FIXED, "Fixed amount"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    business = models.ForeignKey(
        "business.Business",
        on_delete=models.CASCADE,
        related_name="discounts",
    )

    name = models.CharField(max_length=120)
    description = models.TextField(blank=True)

    discount_type = models.CharField(max_length=16, choices=TYPE_CHOICES, default=TYPE_PERCENTAGE)
    value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Percent (e.g. 10.00) if percentage; currency amount if fixed.",
    )

    is_active = models.BooleanField(default=True)
    valid_from = models.DateTimeField(null=True, blank=True)
    valid_to = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)

    objects = DiscountQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["business", "is_active", "created_at"], name="discount_biz_active_idx"),
        ]

    def __str__(self):
        suffix = "%" if self.discount_type == self.TYPE_PERCENTAGE else ""
        return f"{self.name} ({self.value}{suffix})"

    def clean(self):
        if self.value is None or Decimal(self.value) < Decimal("0.00"):
            raise ValidationError("Discount value cannot be negative")
        if self.discount_type == self.TYPE_PERCENTAGE and Decimal(self.value) > Decimal("100"):
            raise ValidationError("Percentage discount cannot exceed 100")
        if self.valid_from and self.valid_to and self.valid_to < self.valid_from:
            raise ValidationError("valid_to cannot be earlier than valid_from")
