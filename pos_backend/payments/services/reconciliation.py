# payments/services/reconciliation.py

"""
PAYMENT RECONCILIATION

Runs after every payment create / delete, inside the caller's transaction
and with the order row already locked.

Rules:
- paid >= total and not Paid  -> Paid; deduct inventory when
  settings.INVENTORY_TRACKING_ENABLED (only on this edge, so exactly once)
- paid <  total and Paid      -> Draft (a payment was deleted)
- Cancelled orders are never touched

An inventory shortage after payment does NOT undo the Paid status: it is
logged as a warning for manual stock reconciliation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings

from orders.models import Order
from orders.services.order_lifecycle import apply_system_transition
from orders.services.order_service import total_paid_for
from products.services.inventory import InventoryDeductionError, deduct_inventory_for_order

logger = logging.getLogger("payments")


@dataclass(frozen=True)
class ReconciliationOutcome:
    previous_status: str
    status: str
    total_paid: Decimal
    total: Decimal
    inventory_shortages: tuple = ()

    @property
    def changed(self) -> bool:
        return self.previous_status != self.status


def reconcile_order_payments(*, order: Order) -> ReconciliationOutcome:
    previous = order.status
    total = Decimal(order.total)
    paid = total_paid_for(order)
    shortages: tuple = ()

    if order.status == Order.STATUS_CANCELLED:
        return ReconciliationOutcome(previous, order.status, paid, total)

    if paid >= total and order.status != Order.STATUS_PAID:
        apply_system_transition(order=order, target_status=Order.STATUS_PAID, reason="fully paid")

        if getattr(settings, "INVENTORY_TRACKING_ENABLED", False):
            try:
                deduct_inventory_for_order(order=order)
            except InventoryDeductionError as exc:
                shortages = tuple(exc.shortages)
                logger.warning(
                    "Inventory deduction failed after payment; order stays paid",
                    extra={
                        "order_id": str(order.id),
                        "shortages": [str(s) for s in exc.shortages],
                    },
                )

    elif paid < total and order.status == Order.STATUS_PAID:
        apply_system_transition(order=order, target_status=Order.STATUS_DRAFT, reason="payment removed")

    return ReconciliationOutcome(previous, order.status, paid, total, shortages)
