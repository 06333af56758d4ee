# pricing/models/tax.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone


class TaxQuerySet(models.QuerySet):
    def active_at(self, when=None):
        """Active rules whose [effective_from, effective_to] window contains `when`."""
        when = when or timezone.now()
        return self.filter(is_active=True, effective_from__lte=when).filter(
            Q(effective_to__isnull=True) | Q(effective_to__gte=when)
        )


class Tax(models.Model):
    """
    A tax rule of one business.

    `rate` is a percentage (21.00 means 21%). Several rules active at the
    same time are additive, never compounded.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    business = models.ForeignKey(
        "business.Business",
        on_delete=models.CASCADE,
        related_name="taxes",
    )

    name = models.CharField(max_length=120)
    rate = models.DecimalField(max_digits=6, decimal_places=3)

    is_active = models.BooleanField(default=True)
    effective_from = models.DateTimeField(default=timezone.now)
    effective_to = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    objects = TaxQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "taxes"
        indexes = [
            models.Index(fields=["business", "is_active"], name="tax_business_active_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.rate}%)"

    def clean(self):
        if self.rate is None or Decimal(self.rate) < Decimal("0"):
            raise ValidationError("Tax rate cannot be negative")
        if self.effective_to and self.effective_from and self.effective_to < self.effective_from:
            raise ValidationError("effective_to cannot be earlier than effective_from")
