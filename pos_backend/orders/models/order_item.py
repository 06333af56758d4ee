# orders/models/order_item.py

from decimal import Decimal

from django.db import models

from .order import Order


class OrderItem(models.Model):
    """
    One order line.

    unit_price is snapshotted when the line is added; later product price
    changes never reach existing lines.
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
    )

    product = models.ForeignKey(
        "products.Product",
        on_delete=models.SET_NULL,
        null=True,
        related_name="order_items",
    )

    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    notes = models.CharField(max_length=255, blank=True)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        name = self.product.name if self.product_id else "deleted product"
        return f"{name} x{self.quantity}"

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.unit_price or 0) * int(self.quantity or 0)
