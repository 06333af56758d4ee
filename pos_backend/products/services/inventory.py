# products/services/inventory.py

"""
======================================================
PATH: products/services/inventory.py
======================================================
INVENTORY DEDUCTION ENGINE

Purpose:
- Deduct stock for every line of a fully paid order.
- Check whether an order's lines can be covered by current stock.

Bucket order (per product, by bucket id):
1) buckets WITHOUT modification values ({}),
2) then buckets WITH modification values.

Rules:
- Products with no buckets are untracked: deduction skips them.
- Each line is deducted inside its own savepoint; a short line leaves its
  buckets untouched while the other lines still deduct.
- Shortages are collected across lines and raised together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction
from django.db.models import Sum

from products.models import InventoryItem

logger = logging.getLogger("products")


# ============================================================
# DOMAIN ERRORS
# ============================================================

class InsufficientInventoryError(Exception):
    def __init__(self, *, product_id, requested: int, available: int):
        self.product_id = product_id
        self.requested = int(requested)
        self.available = int(available)
        super().__init__(
            f"Insufficient inventory for product {product_id}. "
            f"Requested: {self.requested}, Available: {self.available}"
        )


class InventoryDeductionError(Exception):
    """Raised after all lines were attempted; `shortages` lists every short product."""

    def __init__(self, shortages: list[InsufficientInventoryError]):
        self.shortages = list(shortages)
        lines = "\n".join(str(s) for s in self.shortages)
        super().__init__(f"Failed to deduct inventory for some items:\n{lines}")


@dataclass(frozen=True)
class ShortLine:
    product_id: object
    requested: int
    available: int


# ============================================================
# HELPERS
# ============================================================

def _drain(buckets, quantity: int) -> int:
    """Take up to `quantity` from buckets in order. Returns what is still owed."""
    remaining = quantity
    for bucket in buckets:
        if remaining <= 0:
            break

        available = int(bucket.quantity or 0)
        if available <= 0:
            continue

        take = available if available <= remaining else remaining
        bucket.quantity = available - take
        bucket.save(update_fields=["quantity", "updated_at"])
        remaining -= take

    return remaining


def _split_buckets(buckets):
    plain = [b for b in buckets if not b.modification_values]
    modified = [b for b in buckets if b.modification_values]
    return plain, modified


# ============================================================
# DEDUCTION
# ============================================================

def deduct_inventory_for_product(*, product_id, quantity: int) -> None:
    """
    Deduct `quantity` units of one product across its buckets (row-locked).

    Raises InsufficientInventoryError without writing anything when the
    buckets cannot cover the full quantity.
    """
    qty = int(quantity or 0)
    if qty <= 0:
        return

    with transaction.atomic():
        buckets = list(
            InventoryItem.objects.select_for_update()
            .filter(product_id=product_id)
            .order_by("id")
        )

        if not buckets:
            logger.info(
                "No inventory buckets for product; skipping deduction",
                extra={"product_id": str(product_id), "quantity": qty},
            )
            return

        available = sum(int(b.quantity or 0) for b in buckets)
        if available < qty:
            raise InsufficientInventoryError(
                product_id=product_id, requested=qty, available=available
            )

        plain, modified = _split_buckets(buckets)
        remaining = _drain(plain, qty)
        if remaining > 0:
            remaining = _drain(modified, remaining)


def deduct_inventory_for_order(*, order) -> None:
    """
    Deduct inventory for every line of `order`.

    All lines are attempted; shortages are raised together as
    InventoryDeductionError once every line was processed.
    """
    items = list(order.items.all())
    if not items:
        logger.warning("Order has no items to deduct inventory for", extra={"order_id": str(order.id)})
        return

    shortages: list[InsufficientInventoryError] = []

    for item in items:
        if item.product_id is None:
            continue
        try:
            deduct_inventory_for_product(product_id=item.product_id, quantity=item.quantity)
        except InsufficientInventoryError as exc:
            logger.error(
                "Inventory deduction failed for order line",
                extra={
                    "order_id": str(order.id),
                    "product_id": str(item.product_id),
                    "requested": exc.requested,
                    "available": exc.available,
                },
            )
            shortages.append(exc)

    if shortages:
        raise InventoryDeductionError(shortages)

    logger.info("Inventory deducted for order", extra={"order_id": str(order.id)})


# ============================================================
# AVAILABILITY CHECK
# ============================================================

def find_inventory_shortages(*, order) -> list[ShortLine]:
    """
    Lines whose tracked stock cannot cover the ordered quantity.

    Quantities of the same product on several lines are summed. Untracked
    products (no buckets) are never short.
    """
    wanted: dict = {}
    for item in order.items.all():
        if item.product_id is None:
            continue
        wanted[item.product_id] = wanted.get(item.product_id, 0) + int(item.quantity or 0)

    short: list[ShortLine] = []
    for product_id, qty in wanted.items():
        qs = InventoryItem.objects.filter(product_id=product_id)
        if not qs.exists():
            continue
        available = int(qs.aggregate(total=Sum("quantity")).get("total") or 0)
        if available < qty:
            short.append(ShortLine(product_id=product_id, requested=qty, available=available))

    return short
