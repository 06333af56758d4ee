"""
ORDER LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed status transitions for Order.

Two tables:
- ALLOWED_TRANSITIONS: what a client may request (place / cancel / pay).
- SYSTEM_TRANSITIONS: edges driven by payment reconciliation and refunds
  (awaiting-payment -> paid, paid -> draft on payment deletion,
  paid -> cancelled on full refund).

Paid and Cancelled are terminal for client requests.
A request for the current status is a no-op.
"""

from __future__ import annotations

import logging

from orders.models import Order

logger = logging.getLogger("orders")

# ============================================================
# DOMAIN ERRORS
# ============================================================


class OrderLifecycleError(Exception):
    pass


class InvalidOrderTransitionError(OrderLifecycleError):
    pass


# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Order.STATUS_PAID,
    Order.STATUS_CANCELLED,
}

ALLOWED_TRANSITIONS = {
    Order.STATUS_DRAFT: [Order.STATUS_PLACED, Order.STATUS_CANCELLED],
    Order.STATUS_PLACED: [Order.STATUS_PAID, Order.STATUS_CANCELLED],
    Order.STATUS_PAID: [],
    Order.STATUS_CANCELLED: [],
}

SYSTEM_TRANSITIONS = {
    Order.STATUS_DRAFT: {Order.STATUS_PAID},
    Order.STATUS_PLACED: {Order.STATUS_PAID},
    Order.STATUS_PAID: {Order.STATUS_DRAFT, Order.STATUS_CANCELLED},
    Order.STATUS_CANCELLED: set(),
}


def _label(status: str) -> str:
    return dict(Order.STATUS_CHOICES).get(status, status)


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status == to_status:
        return True
    return to_status in ALLOWED_TRANSITIONS.get(from_status, [])


def validate_transition(*, current: str, requested: str) -> None:
    if current not in ALLOWED_TRANSITIONS:
        raise InvalidOrderTransitionError(f"Unknown current status: {current}")

    if requested not in ALLOWED_TRANSITIONS:
        raise InvalidOrderTransitionError(f"Unknown status: {requested}")

    if can_transition(from_status=current, to_status=requested):
        return

    allowed = ", ".join(_label(s) for s in ALLOWED_TRANSITIONS[current]) or "none"
    raise InvalidOrderTransitionError(
        f"Invalid status transition: {_label(current)} → {_label(requested)}. "
        f"Allowed transitions from {_label(current)}: {allowed}"
    )


# ============================================================
# WRITES
# ============================================================


def transition_order(*, order: Order, target_status: str) -> Order:
    """Apply a client-requested transition. Caller holds the order row lock."""
    validate_transition(current=order.status, requested=target_status)

    if order.status == target_status:
        return order

    previous = order.status
    order.status = target_status
    order.save(update_fields=["status", "updated_at"])

    logger.info(
        "Order status changed",
        extra={"order_id": str(order.id), "from": previous, "to": target_status},
    )
    return order


def apply_system_transition(*, order: Order, target_status: str, reason: str) -> Order:
    """
    Apply a reconciliation / refund driven transition.

    These edges are not requestable by clients (e.g. Draft -> Paid).
    """
    if order.status == target_status:
        return order

    if target_status not in SYSTEM_TRANSITIONS.get(order.status, set()):
        raise InvalidOrderTransitionError(
            f"Order {order.id} cannot move from '{order.status}' to '{target_status}' ({reason})"
        )

    previous = order.status
    order.status = target_status
    order.save(update_fields=["status", "updated_at"])

    logger.info(
        "Order status changed",
        extra={
            "order_id": str(order.id),
            "from": previous,
            "to": target_status,
            "reason": reason,
        },
    )
    return order
