# pricing/services/pricing.py

"""
======================================================
PATH: pricing/services/pricing.py
======================================================
PRICING ENGINE (ORDER TOTALS)

Formulas:
- subtotal = Σ(item.unit_price × item.quantity)
- tax      = subtotal × (Σ active tax rates / 100)      (rules are additive)
- discount = subtotal × value / 100                      (percentage)
           = min(value, subtotal)                        (fixed)
- total    = subtotal − discount + tax                   (no clamp)

Discount selection:
1) the order's explicit discount (ignored when inactive / out of window)
2) otherwise, when settings.PRICING_AUTO_APPLY_LATEST_DISCOUNT is on,
   the most recently created active discount of the business
3) otherwise none

Read-only: nothing here writes except apply_order_totals().
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from django.conf import settings
from django.utils import timezone

from pricing.models import Discount, Tax


TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


class PricingError(Exception):
    pass


def _money(v) -> Decimal:
    return Decimal(str(v or "0")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    discount: Decimal
    tax: Decimal

    @property
    def total(self) -> Decimal:
        return _money(self.subtotal - self.discount + self.tax)


# ============================================================
# COMPONENTS
# ============================================================

def calculate_subtotal(items: Iterable) -> Decimal:
    subtotal = ZERO
    for item in items:
        qty = int(item.quantity or 0)
        price = Decimal(str(item.unit_price))
        if qty < 0 or price < ZERO:
            raise PricingError("Order items cannot have negative quantity or price")
        subtotal += price * qty
    return _money(subtotal)


def active_taxes(*, business_id, now=None):
    return Tax.objects.filter(business_id=business_id).active_at(now)


def calculate_tax(subtotal: Decimal, *, business_id, now=None) -> Decimal:
    rates = [Decimal(str(t.rate)) for t in active_taxes(business_id=business_id, now=now)]
    if not rates:
        return ZERO
    return _money(Decimal(subtotal) * (sum(rates) / HUNDRED))


def resolve_discount(*, business_id, discount_id=None, now=None) -> Optional[Discount]:
    qs = Discount.objects.filter(business_id=business_id).active_at(now)

    if discount_id:
        return qs.filter(id=discount_id).first()

    if not getattr(settings, "PRICING_AUTO_APPLY_LATEST_DISCOUNT", False):
        return None

    return qs.order_by("-created_at").first()


def calculate_discount(subtotal: Decimal, discount: Optional[Discount]) -> Decimal:
    if discount is None:
        return ZERO

    subtotal = Decimal(subtotal)
    value = Decimal(str(discount.value))

    if discount.discount_type == Discount.TYPE_PERCENTAGE:
        return _money(subtotal * (value / HUNDRED))

    return _money(min(value, subtotal))


# ============================================================
# ORDER TOTALS
# ============================================================

def calculate_order_totals(*, order, items=None, discount_id=None, now=None) -> OrderTotals:
    """
    Compute totals for `order` from its current items and the business rules.

    `items` may be passed for an order whose lines are not saved yet.
    `discount_id` defaults to the order's own discount reference.
    """
    now = now or timezone.now()
    lines = list(items) if items is not None else list(order.items.all())

    if discount_id is None:
        discount_id = getattr(order, "discount_id", None)

    subtotal = calculate_subtotal(lines)
    tax = calculate_tax(subtotal, business_id=order.business_id, now=now)
    discount = calculate_discount(
        subtotal,
        resolve_discount(business_id=order.business_id, discount_id=discount_id, now=now),
    )

    return OrderTotals(subtotal=subtotal, discount=discount, tax=tax)


def apply_order_totals(*, order, totals: OrderTotals) -> bool:
    """
    Write `totals` onto the order when they differ from the stored values.

    Returns True when the order row was updated.
    """
    changed = (
        _money(order.subtotal_amount) != totals.subtotal
        or _money(order.discount_amount) != totals.discount
        or _money(order.tax_amount) != totals.tax
    )
    if not changed:
        return False

    order.subtotal_amount = totals.subtotal
    order.discount_amount = totals.discount
    order.tax_amount = totals.tax
    order.save(update_fields=["subtotal_amount", "discount_amount", "tax_amount", "updated_at"])
    return True


def recalculate_order(*, order, now=None) -> OrderTotals:
    totals = calculate_order_totals(order=order, now=now)
    apply_order_totals(order=order, totals=totals)
    return totals
