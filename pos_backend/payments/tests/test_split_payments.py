# payments/tests/test_split_payments.py

from decimal import Decimal

from giftcards.services.gift_card_service import issue_gift_card
from orders.models import Order
from payments.models import Payment
from payments.services.exceptions import PaymentValidationError, SplitPaymentError
from payments.services.payment_service import create_split_payments
from payments.tests.base import PaymentTestCase


class SplitPaymentTests(PaymentTestCase):
    """
    GUARANTEES:
    - Entries must add up to the remaining balance (within tolerance)
    - An entry over the balance by the tolerance records only what is left
    - Entries share one split_group
    - A failing entry does not undo the entries that succeeded
    """

    def setUp(self):
        super().setUp()
        self.order = self.make_order("90.00")
        self.card = issue_gift_card(business=self.business, original_amount="60.00", code="SPLT-0000-0001")

    def test_cash_and_gift_card_settle_order(self):
        result = create_split_payments(
            order=self.order,
            user=self.user,
            entries=[
                {"method": "cash", "amount": Decimal("30.00"), "cash_received": Decimal("30.00")},
                {"method": "gift_card", "amount": Decimal("60.00"), "gift_card_code": self.card.code},
            ],
        )

        self.assertTrue(result.is_fully_paid)
        self.assertEqual(result.total_paid, Decimal("90.00"))
        self.assertEqual(result.remaining_balance, Decimal("0.00"))
        self.assertEqual({p.split_group for p in result.payments}, {result.split_group})

        self.card.refresh_from_db()
        self.assertEqual(self.card.balance, Decimal("0.00"))
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PAID)

    def test_sum_must_match_remaining(self):
        with self.assertRaisesMessage(PaymentValidationError, "must equal the remaining balance (90.00)"):
            create_split_payments(
                order=self.order,
                user=self.user,
                entries=[
                    {"method": "cash", "amount": Decimal("30.00"), "cash_received": Decimal("30.00")},
                    {"method": "gift_card", "amount": Decimal("50.00"), "gift_card_code": self.card.code},
                ],
            )

        self.assertFalse(Payment.objects.exists())

    def test_sum_within_tolerance_is_accepted(self):
        result = create_split_payments(
            order=self.order,
            user=self.user,
            entries=[
                {"method": "cash", "amount": Decimal("30.00"), "cash_received": Decimal("30.00")},
                {"method": "gift_card", "amount": Decimal("59.99"), "gift_card_code": self.card.code},
            ],
        )

        self.assertEqual(len(result.payments), 2)
        self.assertEqual(result.remaining_balance, Decimal("0.01"))

    def test_sum_over_within_tolerance_settles_remaining(self):
        big = issue_gift_card(business=self.business, original_amount="100.00", code="SPLT-0000-0003")

        result = create_split_payments(
            order=self.order,
            user=self.user,
            entries=[
                {"method": "cash", "amount": Decimal("30.00"), "cash_received": Decimal("30.00")},
                {"method": "gift_card", "amount": Decimal("60.01"), "gift_card_code": big.code},
            ],
        )

        self.assertTrue(result.is_fully_paid)
        self.assertEqual([p.amount for p in result.payments], [Decimal("30.00"), Decimal("60.00")])
        self.assertEqual(result.remaining_balance, Decimal("0.00"))
        big.refresh_from_db()
        self.assertEqual(big.balance, Decimal("40.00"))

    def test_empty_entries_rejected(self):
        with self.assertRaises(PaymentValidationError):
            create_split_payments(order=self.order, user=self.user, entries=[])

    def test_failed_entry_keeps_successful_ones(self):
        small = issue_gift_card(business=self.business, original_amount="10.00", code="SPLT-0000-0002")

        with self.assertRaises(SplitPaymentError) as ctx:
            create_split_payments(
                order=self.order,
                user=self.user,
                entries=[
                    {"method": "cash", "amount": Decimal("30.00"), "cash_received": Decimal("30.00")},
                    {"method": "gift_card", "amount": Decimal("60.00"), "gift_card_code": small.code},
                ],
            )

        results = ctx.exception.results
        self.assertTrue(results[0].ok)
        self.assertFalse(results[1].ok)
        self.assertIn("Insufficient balance", results[1].error)
        self.assertEqual(len(ctx.exception.failures), 1)

        self.assertEqual(Payment.objects.filter(order=self.order).count(), 1)
        self.assertEqual(Payment.objects.get(order=self.order).split_group, ctx.exception.split_group)

        small.refresh_from_db()
        self.assertEqual(small.balance, Decimal("10.00"))
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_DRAFT)
