# products/tests/test_inventory.py

from decimal import Decimal

from django.test import TestCase

from business.models import Business
from products.models import InventoryItem, Product
from products.services.inventory import (
    InsufficientInventoryError,
    deduct_inventory_for_product,
)


class InventoryDeductionTests(TestCase):
    """
    Bucket-draining tests.

    GUARANTEES:
    - Plain buckets ({}) drain before modification buckets
    - Buckets drain in id order
    - A shortage writes nothing
    - Untracked products are skipped
    """

    def setUp(self):
        self.business = Business.objects.create(name="Corner Cafe")
        self.product = Product.objects.create(
            business=self.business,
            name="T-Shirt",
            price=Decimal("20.00"),
        )

        self.red_large = InventoryItem.objects.create(
            product=self.product,
            quantity=5,
            modification_values={"Color": "Red", "Size": "L"},
        )
        self.plain_a = InventoryItem.objects.create(product=self.product, quantity=2)
        self.plain_b = InventoryItem.objects.create(product=self.product, quantity=3)

    def _reload(self):
        for bucket in (self.red_large, self.plain_a, self.plain_b):
            bucket.refresh_from_db()

    def test_plain_buckets_drain_first_in_id_order(self):
        deduct_inventory_for_product(product_id=self.product.id, quantity=4)
        self._reload()

        self.assertEqual(self.plain_a.quantity, 0)
        self.assertEqual(self.plain_b.quantity, 1)
        self.assertEqual(self.red_large.quantity, 5)

    def test_falls_back_to_modification_buckets(self):
        deduct_inventory_for_product(product_id=self.product.id, quantity=7)
        self._reload()

        self.assertEqual(self.plain_a.quantity, 0)
        self.assertEqual(self.plain_b.quantity, 0)
        self.assertEqual(self.red_large.quantity, 3)

    def test_shortage_raises_and_leaves_buckets_untouched(self):
        with self.assertRaises(InsufficientInventoryError) as ctx:
            deduct_inventory_for_product(product_id=self.product.id, quantity=11)

        self.assertEqual(ctx.exception.requested, 11)
        self.assertEqual(ctx.exception.available, 10)

        self._reload()
        self.assertEqual(self.plain_a.quantity, 2)
        self.assertEqual(self.plain_b.quantity, 3)
        self.assertEqual(self.red_large.quantity, 5)

    def test_untracked_product_is_skipped(self):
        untracked = Product.objects.create(
            business=self.business,
            name="Gift Wrap",
            price=Decimal("1.00"),
        )
        deduct_inventory_for_product(product_id=untracked.id, quantity=50)
        self.assertEqual(untracked.on_hand, 0)

    def test_zero_quantity_is_noop(self):
        deduct_inventory_for_product(product_id=self.product.id, quantity=0)
        self.assertEqual(self.product.on_hand, 10)
