# payments/tests/test_refunds.py

import uuid
from decimal import Decimal
from unittest import mock

from giftcards.services.gift_card_service import issue_gift_card
from orders.models import Order
from payments.models import PaymentRefund
from payments.services.exceptions import RefundAllocationError, RefundValidationError
from payments.services import refund_coordinator
from payments.services.payment_service import create_payment, create_split_payments
from payments.services.refund_coordinator import process_refund, refundable_for_order
from payments.tests.base import PaymentTestCase
from payments.tests.fakes import FakeCardGateway


class CardRefundTests(PaymentTestCase):
    """
    GUARANTEES:
    - A full refund reverses every tender and cancels the order
    - A failing line is recorded as FAILED; earlier lines stay committed
    - A line never gives back more than its payment still holds when it runs
    """

    def setUp(self):
        super().setUp()
        self.gateway = FakeCardGateway()

    def _pay_card(self, order, intent_id, amount):
        self.gateway.add_intent(intent_id, Decimal(amount))
        return create_payment(
            order=order,
            user=self.user,
            method="card",
            amount=amount,
            card_intent_id=intent_id,
            gateway=self.gateway,
        )

    def test_full_card_refund_cancels_order(self):
        order = self.make_order("75.00")
        self._pay_card(order, "pi_1", "75.00")

        result = process_refund(order=order, user=self.user, reason="customer request", gateway=self.gateway)

        self.assertEqual(self.gateway.refunds, [
            {"payment_intent": "pi_1", "amount": Decimal("75.00"), "reason": "customer request"},
        ])
        self.assertEqual(result.refund_mode, "full")
        self.assertEqual(result.total_refunded, Decimal("75.00"))
        self.assertEqual(result.order_status, Order.STATUS_CANCELLED)

        refund = PaymentRefund.objects.get(order=order)
        self.assertEqual(refund.status, PaymentRefund.STATUS_SUCCEEDED)
        self.assertTrue(refund.refund_reference.startswith("re_"))

    def test_missing_gateway_records_pending_line(self):
        order = self.make_order("75.00")
        self._pay_card(order, "pi_1", "75.00")

        result = process_refund(order=order, user=self.user, gateway=None)

        self.assertEqual(result.lines[0].status, PaymentRefund.STATUS_PENDING)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_CANCELLED)

    def test_failed_line_stops_and_keeps_earlier_lines(self):
        order = self.make_order("75.00")
        self._pay_card(order, "pi_old", "40.00")
        self._pay_card(order, "pi_new", "35.00")
        self.gateway.fail_refunds_for.add("pi_old")

        with self.assertRaises(RefundAllocationError) as ctx:
            process_refund(order=order, user=self.user, gateway=self.gateway)

        lines = ctx.exception.lines
        self.assertEqual([l.status for l in lines], [PaymentRefund.STATUS_SUCCEEDED, PaymentRefund.STATUS_FAILED])
        self.assertEqual(lines[0].amount, Decimal("35.00"))

        self.assertEqual(
            PaymentRefund.objects.filter(order=order, status=PaymentRefund.STATUS_FAILED).count(), 1
        )
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PAID)
        self.assertEqual(refundable_for_order(order), Decimal("40.00"))

    # --------------------------------------------------
    # Refunds committed while the plan was being built
    # --------------------------------------------------

    def _plan_then_refund_elsewhere(self, payment, amount):
        real_allocate = refund_coordinator._allocate

        def allocate(locked, refund_amount):
            plan = real_allocate(locked, refund_amount)
            PaymentRefund.objects.create(
                payment=payment,
                order_id=payment.order_id,
                refund_group=uuid.uuid4(),
                amount=Decimal(amount),
                status=PaymentRefund.STATUS_SUCCEEDED,
            )
            return plan

        return mock.patch("payments.services.refund_coordinator._allocate", side_effect=allocate)

    def test_line_already_refunded_is_not_reversed_again(self):
        order = self.make_order("75.00")
        payment = self._pay_card(order, "pi_1", "75.00")

        with self._plan_then_refund_elsewhere(payment, "75.00"):
            with self.assertRaisesMessage(RefundValidationError, "Nothing left to refund"):
                process_refund(order=order, user=self.user, gateway=self.gateway)

        self.assertEqual(self.gateway.refunds, [])
        self.assertEqual(PaymentRefund.objects.filter(order=order).count(), 1)

    def test_line_is_shrunk_to_what_is_still_refundable(self):
        order = self.make_order("75.00")
        payment = self._pay_card(order, "pi_1", "75.00")

        with self._plan_then_refund_elsewhere(payment, "30.00"):
            result = process_refund(order=order, user=self.user, gateway=self.gateway)

        self.assertEqual(self.gateway.refunds[0]["amount"], Decimal("45.00"))
        self.assertEqual(result.total_refunded, Decimal("45.00"))
        self.assertEqual(result.order_status, Order.STATUS_CANCELLED)


class MixedTenderRefundTests(PaymentTestCase):
    """
    GUARANTEES:
    - Allocation walks payments newest first
    - Gift card allocations are credited back to the card
    - The order is cancelled once cumulative refunds cover its total
    """

    def setUp(self):
        super().setUp()
        self.order = self.make_order("90.00")
        self.card = issue_gift_card(business=self.business, original_amount="60.00", code="RFND-0000-0001")
        create_split_payments(
            order=self.order,
            user=self.user,
            entries=[
                {"method": "cash", "amount": Decimal("30.00"), "cash_received": Decimal("30.00")},
                {"method": "gift_card", "amount": Decimal("60.00"), "gift_card_code": self.card.code},
            ],
        )
        self.order.refresh_from_db()

    def test_partial_then_remaining_refund(self):
        first = process_refund(order=self.order, user=self.user, amount="50.00", gateway=None)

        self.assertEqual(first.refund_mode, "partial")
        self.assertEqual(len(first.lines), 1)
        self.assertEqual(first.lines[0].method, "gift_card")
        self.card.refresh_from_db()
        self.assertEqual(self.card.balance, Decimal("50.00"))
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PAID)

        second = process_refund(order=self.order, user=self.user, amount="40.00", gateway=None)

        self.assertEqual(
            [(l.method, l.amount) for l in second.lines],
            [("gift_card", Decimal("10.00")), ("cash", Decimal("30.00"))],
        )
        self.card.refresh_from_db()
        self.assertEqual(self.card.balance, Decimal("60.00"))
        self.assertEqual(second.order_status, Order.STATUS_CANCELLED)

    def test_amount_above_total_rejected(self):
        with self.assertRaisesMessage(RefundValidationError, "cannot exceed order total"):
            process_refund(order=self.order, user=self.user, amount="90.01", gateway=None)

        self.assertFalse(PaymentRefund.objects.exists())

    def test_non_positive_amount_rejected(self):
        with self.assertRaises(RefundValidationError):
            process_refund(order=self.order, user=self.user, amount="0", gateway=None)

    def test_unpaid_order_rejected(self):
        order = self.make_order("10.00")

        with self.assertRaisesMessage(RefundValidationError, "Only paid orders can be refunded"):
            process_refund(order=order, user=self.user, gateway=None)
