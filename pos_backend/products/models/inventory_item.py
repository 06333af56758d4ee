# products/models/inventory_item.py

"""
INVENTORY ITEM (STOCK BUCKET)

One stock bucket for a product, optionally keyed by a modification-value
combination, e.g. {"Color": "Red", "Size": "L"}.

- Empty `modification_values` ({}) means the plain, unmodified product.
- `quantity` is mutated ONLY via products.services.inventory (row-locked).
"""

from django.db import models
from django.db.models import Q

from .product import Product


class InventoryItem(models.Model):
    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="inventory_items",
    )

    quantity = models.PositiveIntegerField(default=0)

    modification_values = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["product", "id"], name="invitem_product_id_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity__gte=0),
                name="chk_inventoryitem_quantity_gte_zero",
            ),
        ]

    def __str__(self):
        label = ", ".join(f"{k}={v}" for k, v in sorted((self.modification_values or {}).items()))
        return f"{self.product} [{label or 'default'}] x{self.quantity}"

    @property
    def has_modifications(self) -> bool:
        return bool(self.modification_values)
