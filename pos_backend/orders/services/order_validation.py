# orders/services/order_validation.py

"""
ORDER VALIDATION RULES

Preconditions for placing, cancelling, modifying and paying an order.

Each validator raises OrderValidationError with the FIRST failing reason;
none of them write.
"""

from __future__ import annotations

from decimal import Decimal

from orders.models import Order


class OrderValidationError(Exception):
    pass


def _money_str(value) -> str:
    return f"{Decimal(value):.2f}"


def _items(order: Order):
    return list(order.items.select_related("product").all())


def _unavailable_names(items) -> list[str]:
    return [i.product.name for i in items if i.product_id and not i.product.is_available]


# ============================================================
# VALIDATORS
# ============================================================

def validate_for_placement(order: Order) -> None:
    if order.status != Order.STATUS_DRAFT:
        raise OrderValidationError(
            f"Order status is {order.get_status_display()}. Can only place orders with Draft status."
        )

    items = _items(order)
    if not items:
        raise OrderValidationError("Cannot place order without items.")

    if order.total <= 0:
        raise OrderValidationError(
            f"Order total is invalid ({_money_str(order.total)}). Cannot place order."
        )

    missing = [i for i in items if i.product_id is None]
    if missing:
        raise OrderValidationError(
            f"Cannot place order. {len(missing)} item(s) reference non-existent products."
        )

    unavailable = _unavailable_names(items)
    if unavailable:
        raise OrderValidationError(
            f"Cannot place order. Products not available: {', '.join(unavailable)}"
        )


def validate_for_cancellation(order: Order) -> None:
    if order.status == Order.STATUS_PAID:
        raise OrderValidationError("Cannot cancel paid orders. Process a refund instead if needed.")

    if order.status == Order.STATUS_CANCELLED:
        raise OrderValidationError("Order is already cancelled.")

    if not order.is_awaiting_payment:
        raise OrderValidationError(
            f"Invalid order status: {order.get_status_display()}. Cannot cancel order."
        )


def validate_for_modification(order: Order) -> None:
    if order.status == Order.STATUS_PAID:
        raise OrderValidationError("Cannot modify paid orders.")

    if order.status == Order.STATUS_CANCELLED:
        raise OrderValidationError("Cannot modify cancelled orders.")


def validate_for_payment(order: Order) -> None:
    if order.status == Order.STATUS_PAID:
        raise OrderValidationError("Order is already paid. Cannot process additional payments.")

    if order.status == Order.STATUS_CANCELLED:
        raise OrderValidationError("Order has been cancelled. Cannot process payment.")

    if not order.is_awaiting_payment:
        raise OrderValidationError(
            f"Invalid order status: {order.get_status_display()}. "
            "Order must be Draft or Placed to process payment."
        )

    items = _items(order)
    if not items:
        raise OrderValidationError("Order has no items. Cannot process payment.")

    if order.total <= 0:
        raise OrderValidationError(
            f"Order total is invalid ({_money_str(order.total)}). Cannot process payment."
        )

    unavailable = _unavailable_names(items)
    if unavailable:
        raise OrderValidationError(
            f"Products not available: {', '.join(unavailable)}. Cannot process payment."
        )

    missing = [i for i in items if i.product_id is None]
    if missing:
        raise OrderValidationError(
            f"Order contains invalid items. {len(missing)} item(s) reference non-existent products."
        )

    if any(int(i.quantity or 0) <= 0 for i in items):
        raise OrderValidationError(
            "Order contains items with invalid quantities. All quantities must be greater than zero."
        )
