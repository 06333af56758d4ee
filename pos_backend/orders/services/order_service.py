# orders/services/order_service.py

"""
======================================================
PATH: orders/services/order_service.py
======================================================
ORDER SERVICE (CREATE / UPDATE / PLACE / CANCEL / DELETE / RECEIPT)

Rules:
- Orders are business-scoped; products and discounts must belong to the
  same business as the order.
- Line unit_price is snapshotted from product.price unless an explicit
  price is supplied.
- Every item change re-prices the order through the PricingEngine.
- Writes lock the order row with select_for_update().
"""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from django.db import transaction
from django.db.models import Sum

from orders.models import Order, OrderItem
from orders.services.order_lifecycle import transition_order
from orders.services.order_validation import (
    OrderValidationError,
    validate_for_cancellation,
    validate_for_modification,
    validate_for_placement,
)
from pricing.models import Discount
from pricing.services.pricing import recalculate_order
from products.models import Product

logger = logging.getLogger("orders")

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

_UNSET = object()


def _money(v) -> Decimal:
    return Decimal(str(v or "0")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


# ============================================================
# LOOKUPS
# ============================================================

def lock_order(*, order_id) -> Order:
    """Re-read an order under a row lock. Must run inside transaction.atomic()."""
    return Order.objects.select_for_update().get(pk=order_id)


def total_paid_for(order: Order) -> Decimal:
    return _money(order.payments.aggregate(total=Sum("amount")).get("total") or ZERO)


def remaining_balance_for(order: Order) -> Decimal:
    return _money(order.total) - total_paid_for(order)


def _resolve_discount(*, business, discount_id) -> Optional[Discount]:
    if not discount_id:
        return None
    discount = Discount.objects.filter(business=business, id=discount_id).first()
    if discount is None:
        raise OrderValidationError("Discount not found or doesn't belong to your business")
    return discount


def _build_items(*, business, order: Order, items: Iterable[dict]) -> list[OrderItem]:
    items = list(items or [])
    if not items:
        return []

    product_ids = {str(i["product_id"]) for i in items}
    products = {
        str(p.id): p
        for p in Product.objects.filter(business=business, id__in=product_ids)
    }

    if len(products) != len(product_ids):
        raise OrderValidationError("One or more products not found or don't belong to your business")

    unavailable = sorted({p.name for p in products.values() if not p.is_available})
    if unavailable:
        raise OrderValidationError(f"Products not available: {', '.join(unavailable)}")

    lines = []
    for raw in items:
        qty = int(raw.get("quantity") or 0)
        if qty <= 0:
            raise OrderValidationError("Item quantity must be greater than zero")

        product = products[str(raw["product_id"])]
        price = raw.get("price")
        unit_price = _money(product.price if price is None else price)
        if unit_price < ZERO:
            raise OrderValidationError("Item price cannot be negative")

        lines.append(
            OrderItem(
                order=order,
                product=product,
                quantity=qty,
                unit_price=unit_price,
                notes=(raw.get("notes") or "").strip(),
            )
        )
    return lines


# ============================================================
# CREATE / UPDATE / DELETE
# ============================================================

@transaction.atomic
def create_order(*, business, user, items, spot_id=None, discount_id=None) -> Order:
    discount = _resolve_discount(business=business, discount_id=discount_id)

    order = Order.objects.create(
        business=business,
        created_by=user,
        spot_id=spot_id,
        discount=discount,
        status=Order.STATUS_DRAFT,
    )

    OrderItem.objects.bulk_create(_build_items(business=business, order=order, items=items))
    recalculate_order(order=order)

    logger.info(
        "Order created",
        extra={"order_id": str(order.id), "business_id": str(business.id), "total": str(order.total)},
    )
    return order


@transaction.atomic
def update_order(*, order: Order, items=None, spot_id=_UNSET, discount_id=_UNSET) -> Order:
    """
    Replace items / spot / discount of a Draft or Placed order.

    `items=None` keeps the current lines; a list replaces them all.
    """
    order = lock_order(order_id=order.pk)
    validate_for_modification(order)

    fields = []
    if spot_id is not _UNSET:
        order.spot_id = spot_id
        fields.append("spot_id")

    if discount_id is not _UNSET:
        order.discount = _resolve_discount(business=order.business, discount_id=discount_id)
        fields.append("discount")

    if fields:
        order.save(update_fields=[*fields, "updated_at"])

    if items is not None:
        lines = _build_items(business=order.business, order=order, items=items)
        order.items.all().delete()
        OrderItem.objects.bulk_create(lines)

    recalculate_order(order=order)

    logger.info("Order updated", extra={"order_id": str(order.id), "total": str(order.total)})
    return order


@transaction.atomic
def delete_order(*, order: Order) -> None:
    order = lock_order(order_id=order.pk)

    if order.status == Order.STATUS_PAID:
        raise OrderValidationError("Cannot delete paid orders. Cancel the order instead.")

    if order.payments.exists():
        raise OrderValidationError(
            "Cannot delete an order that has payments. Delete the payments first."
        )

    order_id = str(order.id)
    order.delete()
    logger.info("Order deleted", extra={"order_id": order_id})


# ============================================================
# PLACE / CANCEL
# ============================================================

@transaction.atomic
def place_order(*, order: Order) -> Order:
    order = lock_order(order_id=order.pk)
    if order.status == Order.STATUS_DRAFT:
        recalculate_order(order=order)
    validate_for_placement(order)
    return transition_order(order=order, target_status=Order.STATUS_PLACED)


@transaction.atomic
def cancel_order(*, order: Order) -> Order:
    order = lock_order(order_id=order.pk)
    validate_for_cancellation(order)
    return transition_order(order=order, target_status=Order.STATUS_CANCELLED)


# ============================================================
# RECEIPT
# ============================================================

def build_receipt(*, order: Order) -> dict:
    business = order.business
    creator = order.created_by

    items = [
        {
            "name": i.product.name if i.product_id else "Unknown product",
            "quantity": int(i.quantity),
            "unit_price": str(_money(i.unit_price)),
            "total_price": str(_money(i.line_total)),
            "notes": i.notes,
        }
        for i in order.items.select_related("product").all()
    ]

    payments = [
        {
            "payment_id": str(p.id),
            "method": p.method,
            "amount": str(_money(p.amount)),
            "paid_at": p.paid_at.isoformat(),
            "reference": p.reference,
        }
        for p in order.payments.order_by("paid_at")
    ]

    total_paid = total_paid_for(order)

    return {
        "order_id": str(order.id),
        "order_no": order.order_no,
        "order_date": order.created_at.isoformat(),
        "status": order.status,
        "business": {
            "name": business.name,
            "description": business.description,
            "address": business.address,
            "phone": business.phone,
            "email": business.contact_email,
        },
        "items": items,
        "subtotal": str(_money(order.subtotal_amount)),
        "discount": str(_money(order.discount_amount)),
        "tax": str(_money(order.tax_amount)),
        "total": str(_money(order.total)),
        "payments": payments,
        "total_paid": str(total_paid),
        "remaining_balance": str(_money(order.total) - total_paid),
        "cashier_name": creator.display_name if creator else None,
    }
