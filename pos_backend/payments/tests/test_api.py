# payments/tests/test_api.py

from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from giftcards.services.gift_card_service import issue_gift_card
from orders.models import Order
from payments.models import Payment
from payments.services.payment_service import create_payment
from payments.tests.base import PaymentTestCase
from payments.tests.fakes import FakeCardGateway

User = get_user_model()


class PaymentApiTests(PaymentTestCase):
    """
    Payment endpoints.

    GUARANTEES:
    - Confirmation payload carries payment + order snapshot + message
    - Split failures report every entry
    - Duplicate tenders are 409
    - Deleting payments needs payments.delete
    """

    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)
        self.manager = User.objects.create_user(
            email="manager@example.com",
            password="pass",
            business=self.business,
            role="manager",
        )

    def test_cash_payment_confirmation(self):
        order = self.make_order("50.00")

        res = self.client.post(
            "/api/payments/",
            {"order_id": str(order.id), "method": "cash", "amount": "50.00", "cash_received": "60.00"},
            format="json",
        )

        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["payment"]["amount"], "50.00")
        self.assertEqual(res.data["payment"]["details"], {"type": "cash", "received": "60.00", "change": "10.00"})
        self.assertEqual(res.data["order"]["status"], Order.STATUS_PAID)
        self.assertEqual(res.data["order"]["remaining_balance"], "0.00")
        self.assertIn("fully paid", res.data["message"])

    def test_validation_failure_body(self):
        order = self.make_order("50.00")

        res = self.client.post(
            "/api/payments/",
            {"order_id": str(order.id), "method": "cash", "amount": "50.00", "cash_received": "10.00"},
            format="json",
        )

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "PAYMENT_INVALID")
        self.assertIn("Insufficient cash", res.data["error"]["message"])

    def test_unknown_order_is_404(self):
        other = type(self.business).objects.create(name="Other")
        other_user = User.objects.create_user(email="o@example.com", password="pass", business=other, role="owner")
        self.client.force_authenticate(user=other_user)
        order = self.make_order("50.00")

        res = self.client.post(
            "/api/payments/",
            {"order_id": str(order.id), "method": "cash", "amount": "50.00", "cash_received": "50.00"},
            format="json",
        )
        self.assertEqual(res.status_code, 404)

    def test_duplicate_gift_card_is_409(self):
        card = issue_gift_card(business=self.business, original_amount="40.00", code="APIX-0000-0001")
        order = self.make_order("50.00")
        body = {"order_id": str(order.id), "method": "giftcard", "amount": "10.00", "gift_card_code": card.code}

        self.assertEqual(self.client.post("/api/payments/", body, format="json").status_code, 201)
        res = self.client.post("/api/payments/", body, format="json")

        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["error"]["code"], "DUPLICATE_TENDER")

    def test_split_failure_reports_entries(self):
        card = issue_gift_card(business=self.business, original_amount="5.00", code="APIX-0000-0002")
        order = self.make_order("90.00")

        res = self.client.post(
            "/api/payments/split/",
            {
                "order_id": str(order.id),
                "payments": [
                    {"method": "cash", "amount": "30.00", "cash_received": "30.00"},
                    {"method": "gift_card", "amount": "60.00", "gift_card_code": card.code},
                ],
            },
            format="json",
        )

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "SPLIT_PAYMENT_FAILED")
        entries = res.data["error"]["details"]["entries"]
        self.assertEqual([e["status"] for e in entries], ["created", "failed"])

    def test_split_success(self):
        order = self.make_order("40.00")

        res = self.client.post(
            "/api/payments/split/",
            {
                "order_id": str(order.id),
                "payments": [
                    {"method": "cash", "amount": "15.00", "cash_received": "20.00"},
                    {"method": "cash", "amount": "25.00", "cash_received": "25.00"},
                ],
            },
            format="json",
        )

        self.assertEqual(res.status_code, 201)
        self.assertTrue(res.data["is_fully_paid"])
        self.assertEqual(len(res.data["payments"]), 2)
        self.assertEqual(res.data["payments"][0]["change_due"], "5.00")

    def test_history_filters_by_order(self):
        first = self.make_order("10.00")
        second = self.make_order("20.00")
        create_payment(order=first, user=self.user, method="cash", amount="10.00", cash_received="10.00")
        create_payment(order=second, user=self.user, method="cash", amount="20.00", cash_received="20.00")

        res = self.client.get("/api/payments/history/", {"order_id": str(first.id)})

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["order"], first.id)

    def test_cashier_cannot_delete_payment(self):
        card = issue_gift_card(business=self.business, original_amount="40.00", code="APIX-0000-0003")
        order = self.make_order("50.00")
        payment = create_payment(order=order, user=self.user, method="gift_card", amount="10.00", gift_card_code=card.code)

        res = self.client.delete(f"/api/payments/{payment.id}/")
        self.assertEqual(res.status_code, 403)

        self.client.force_authenticate(user=self.manager)
        res = self.client.delete(f"/api/payments/{payment.id}/")

        self.assertEqual(res.status_code, 200)
        self.assertFalse(Payment.objects.filter(pk=payment.pk).exists())
        self.assertEqual(res.data["remaining_balance"], "50.00")

    def test_card_intent_endpoint(self):
        order = self.make_order("45.50")
        gateway = FakeCardGateway()

        with mock.patch("payments.services.payment_service.get_card_gateway", return_value=gateway):
            res = self.client.post("/api/payments/card-intents/", {"order_id": str(order.id)}, format="json")

        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["amount"], "45.50")
        self.assertTrue(res.data["client_secret"])

    def test_card_intent_without_gateway(self):
        order = self.make_order("45.50")

        with mock.patch("payments.services.payment_service.get_card_gateway", return_value=None):
            res = self.client.post("/api/payments/card-intents/", {"order_id": str(order.id)}, format="json")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["error"]["code"], "CARD_NOT_CONFIGURED")


class RefundApiTests(PaymentTestCase):
    def test_manager_refund(self):
        manager = User.objects.create_user(
            email="manager@example.com", password="pass", business=self.business, role="manager"
        )
        order = self.make_order("30.00")
        create_payment(order=order, user=self.user, method="cash", amount="30.00", cash_received="30.00")

        client = APIClient()
        client.force_authenticate(user=manager)
        res = client.post(f"/api/orders/{order.id}/refund/", {"reason": "wrong order"}, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["refund_mode"], "full")
        self.assertEqual(res.data["total_refunded"], "30.00")
        self.assertEqual(res.data["order_status"], Order.STATUS_CANCELLED)
        self.assertEqual(res.data["lines"][0]["method"], "cash")
