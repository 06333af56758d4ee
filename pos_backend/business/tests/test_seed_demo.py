# business/tests/test_seed_demo.py

from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from business.models import Business
from giftcards.models import GiftCard
from products.models import Product

User = get_user_model()


class SeedDemoTests(TestCase):
    def _run(self, *args):
        out = StringIO()
        call_command("seed_demo", *args, stdout=out)
        return out.getvalue()

    def test_seed_is_idempotent(self):
        self._run()
        self._run()

        business = Business.objects.get(name="Demo Barbershop")
        self.assertEqual(User.objects.filter(business=business).count(), 4)
        self.assertEqual(Product.objects.filter(business=business).count(), 4)
        self.assertEqual(GiftCard.objects.filter(business=business).count(), 1)

    def test_short_password_rejected(self):
        with self.assertRaises(CommandError):
            self._run("--password", "abc")
