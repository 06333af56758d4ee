# pricing/tests/test_pricing.py

from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

from django.test import TestCase, override_settings
from django.utils import timezone

from business.models import Business
from pricing.models import Discount, Tax
from pricing.services.pricing import (
    PricingError,
    calculate_discount,
    calculate_order_totals,
    calculate_subtotal,
    calculate_tax,
    resolve_discount,
)


def line(price, qty):
    return SimpleNamespace(unit_price=Decimal(price), quantity=qty)


class PricingEngineTests(TestCase):
    """
    Order totals tests.

    GUARANTEES:
    - total == subtotal - discount + tax
    - Active tax rules are additive
    - Fixed discounts never exceed the subtotal
    - Rules outside their window or inactive are ignored
    """

    def setUp(self):
        self.business = Business.objects.create(name="Corner Cafe")
        self.other_business = Business.objects.create(name="Other Shop")
        self.order = SimpleNamespace(business_id=self.business.id, discount_id=None)
        self.now = timezone.now()

    # ---------------------------------------------------------
    # Subtotal
    # ---------------------------------------------------------
    def test_subtotal_sums_price_times_quantity(self):
        self.assertEqual(
            calculate_subtotal([line("2.50", 4), line("10.00", 1)]),
            Decimal("20.00"),
        )

    def test_subtotal_of_no_items_is_zero(self):
        self.assertEqual(calculate_subtotal([]), Decimal("0.00"))

    def test_negative_quantity_rejected(self):
        with self.assertRaises(PricingError):
            calculate_subtotal([line("1.00", -1)])

    # ---------------------------------------------------------
    # Tax
    # ---------------------------------------------------------
    def test_no_tax_rules_means_zero_tax(self):
        self.assertEqual(calculate_tax(Decimal("100.00"), business_id=self.business.id), Decimal("0.00"))

    def test_tax_rates_are_additive(self):
        Tax.objects.create(business=self.business, name="State", rate=Decimal("5"))
        Tax.objects.create(business=self.business, name="City", rate=Decimal("2.5"))

        self.assertEqual(
            calculate_tax(Decimal("200.00"), business_id=self.business.id),
            Decimal("15.00"),
        )

    def test_inactive_expired_and_foreign_taxes_ignored(self):
        Tax.objects.create(business=self.business, name="Off", rate=Decimal("5"), is_active=False)
        Tax.objects.create(
            business=self.business,
            name="Expired",
            rate=Decimal("5"),
            effective_from=self.now - timedelta(days=10),
            effective_to=self.now - timedelta(days=1),
        )
        Tax.objects.create(
            business=self.business,
            name="Future",
            rate=Decimal("5"),
            effective_from=self.now + timedelta(days=1),
        )
        Tax.objects.create(business=self.other_business, name="Foreign", rate=Decimal("5"))

        self.assertEqual(
            calculate_tax(Decimal("100.00"), business_id=self.business.id, now=self.now),
            Decimal("0.00"),
        )

    # ---------------------------------------------------------
    # Discount
    # ---------------------------------------------------------
    def test_fixed_discount_capped_at_subtotal(self):
        discount = Discount(discount_type=Discount.TYPE_FIXED, value=Decimal("80.00"))
        self.assertEqual(calculate_discount(Decimal("50.00"), discount), Decimal("50.00"))

    def test_percentage_discount(self):
        discount = Discount(discount_type=Discount.TYPE_PERCENTAGE, value=Decimal("15"))
        self.assertEqual(calculate_discount(Decimal("40.00"), discount), Decimal("6.00"))

    def test_explicit_discount_wins_over_latest(self):
        chosen = Discount.objects.create(
            business=self.business,
            name="Chosen",
            discount_type=Discount.TYPE_FIXED,
            value=Decimal("1.00"),
            created_at=self.now - timedelta(days=2),
        )
        Discount.objects.create(
            business=self.business,
            name="Latest",
            discount_type=Discount.TYPE_FIXED,
            value=Decimal("2.00"),
        )

        self.assertEqual(
            resolve_discount(business_id=self.business.id, discount_id=chosen.id),
            chosen,
        )

    def test_explicit_inactive_discount_treated_as_not_found(self):
        off = Discount.objects.create(
            business=self.business,
            name="Off",
            value=Decimal("10"),
            is_active=False,
        )
        self.assertIsNone(resolve_discount(business_id=self.business.id, discount_id=off.id))

    def test_latest_active_discount_applied_when_none_requested(self):
        Discount.objects.create(
            business=self.business,
            name="Old",
            value=Decimal("5"),
            created_at=self.now - timedelta(days=5),
        )
        latest = Discount.objects.create(business=self.business, name="New", value=Decimal("10"))

        self.assertEqual(resolve_discount(business_id=self.business.id), latest)

    @override_settings(PRICING_AUTO_APPLY_LATEST_DISCOUNT=False)
    def test_no_implicit_discount_when_auto_apply_disabled(self):
        Discount.objects.create(business=self.business, name="New", value=Decimal("10"))
        self.assertIsNone(resolve_discount(business_id=self.business.id))

    # ---------------------------------------------------------
    # Totals
    # ---------------------------------------------------------
    def test_ten_percent_tax_and_ten_percent_discount_on_100(self):
        Tax.objects.create(business=self.business, name="VAT", rate=Decimal("10"))
        Discount.objects.create(business=self.business, name="Promo", value=Decimal("10"))

        totals = calculate_order_totals(order=self.order, items=[line("25.00", 4)])

        self.assertEqual(totals.subtotal, Decimal("100.00"))
        self.assertEqual(totals.discount, Decimal("10.00"))
        self.assertEqual(totals.tax, Decimal("10.00"))
        self.assertEqual(totals.total, Decimal("100.00"))

    def test_totals_are_idempotent(self):
        Tax.objects.create(business=self.business, name="VAT", rate=Decimal("7.25"))
        items = [line("3.99", 3), line("12.49", 2)]

        first = calculate_order_totals(order=self.order, items=items, now=self.now)
        second = calculate_order_totals(order=self.order, items=items, now=self.now)

        self.assertEqual(first, second)
        self.assertEqual(first.total, first.subtotal - first.discount + first.tax)

    def test_full_discount_still_charges_tax(self):
        Tax.objects.create(business=self.business, name="VAT", rate=Decimal("10"))
        Discount.objects.create(business=self.business, name="Free", value=Decimal("100"))

        totals = calculate_order_totals(order=self.order, items=[line("20.00", 1)])

        self.assertEqual(totals.discount, Decimal("20.00"))
        self.assertEqual(totals.total, Decimal("2.00"))
