# products/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Sum


class Product(models.Model):
    """
    Represents a sellable catalog item of one business.

    STOCK MODEL (IMPORTANT):
    - Product itself does NOT store stock
    - Stock lives in InventoryItem buckets
    - A product with no buckets is untracked (never short)
    - `price` is the current selling price; OrderItem snapshots it at add-time
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    business = models.ForeignKey(
        "business.Business",
        on_delete=models.CASCADE,
        related_name="products",
    )

    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True)

    price = models.DecimalField(max_digits=10, decimal_places=2)

    is_available = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["business", "name"], name="product_business_name_idx"),
            models.Index(fields=["business", "is_available"], name="product_business_avail_idx"),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        if self.price is None or Decimal(self.price) < Decimal("0.00"):
            raise ValidationError("Price cannot be negative")

    @property
    def on_hand(self) -> int:
        return int(
            self.inventory_items.aggregate(total=Sum("quantity")).get("total") or 0
        )
