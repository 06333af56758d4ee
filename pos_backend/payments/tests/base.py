# payments/tests/base.py

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase

from business.models import Business
from orders.services.order_service import create_order
from products.models import Product

User = get_user_model()


class PaymentTestCase(TestCase):
    """Shared fixtures: one business, a cashier, and priced orders on demand."""

    def setUp(self):
        self.business = Business.objects.create(name="Corner Cafe")
        self.user = User.objects.create_user(
            email="cashier@example.com",
            password="pass",
            business=self.business,
            role="cashier",
        )
        self.product = Product.objects.create(
            business=self.business,
            name="Service",
            price=Decimal("10.00"),
        )

    def make_order(self, total="50.00", quantity=1):
        return create_order(
            business=self.business,
            user=self.user,
            items=[{"product_id": self.product.id, "quantity": quantity, "price": Decimal(total)}],
        )
