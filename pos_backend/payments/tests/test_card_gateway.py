# payments/tests/test_card_gateway.py

import io
import json
from decimal import Decimal
from unittest import mock
from urllib.error import HTTPError, URLError
from urllib.parse import parse_qs

from django.test import SimpleTestCase, override_settings

from payments.services import card_gateway
from payments.services.card_gateway import (
    HttpCardGateway,
    MockCardGateway,
    from_minor_units,
    get_card_gateway,
    map_refund_reason,
    to_minor_units,
)
from payments.services.exceptions import GatewayError


class MinorUnitTests(SimpleTestCase):
    def test_to_minor_units_rounds_half_up(self):
        self.assertEqual(to_minor_units("10.005"), 1001)
        self.assertEqual(to_minor_units(Decimal("75.00")), 7500)

    def test_from_minor_units(self):
        self.assertEqual(from_minor_units(1999), Decimal("19.99"))
        self.assertEqual(from_minor_units(None), Decimal("0.00"))

    def test_invalid_amount(self):
        with self.assertRaises(ValueError):
            to_minor_units("ten")


class RefundReasonTests(SimpleTestCase):
    def test_mapping(self):
        self.assertEqual(map_refund_reason("Suspected FRAUD"), "fraudulent")
        self.assertEqual(map_refund_reason("duplicate charge"), "duplicate")
        self.assertEqual(map_refund_reason("changed mind"), "requested_by_customer")
        self.assertEqual(map_refund_reason(None), "requested_by_customer")


class GatewaySelectionTests(SimpleTestCase):
    def setUp(self):
        card_gateway._mock_gateway = None

    @override_settings(PAYMENTS={"CARD_GATEWAY": {"SECRET_KEY": "sk_test_x", "API_BASE": "https://gw.test/v1"}})
    def test_secret_key_selects_http_gateway(self):
        gateway = get_card_gateway()
        self.assertIsInstance(gateway, HttpCardGateway)
        self.assertEqual(gateway.api_base, "https://gw.test/v1")

    @override_settings(PAYMENTS={"CARD_GATEWAY": {"SECRET_KEY": "", "MOCK_MODE": True}})
    def test_mock_mode_selects_shared_mock(self):
        gateway = get_card_gateway()
        self.assertIsInstance(gateway, MockCardGateway)
        self.assertIs(get_card_gateway(), gateway)

    @override_settings(PAYMENTS={"CARD_GATEWAY": {"SECRET_KEY": "", "MOCK_MODE": False}})
    def test_unconfigured(self):
        self.assertIsNone(get_card_gateway())


class MockGatewayTests(SimpleTestCase):
    def test_intent_round_trip(self):
        gateway = MockCardGateway()
        intent = gateway.create_intent(amount="12.34", order_ref="order-1")

        self.assertTrue(intent.client_secret)
        fetched = gateway.get_intent(intent.id)
        self.assertEqual(fetched.status, "succeeded")
        self.assertEqual(fetched.amount, Decimal("12.34"))

    def test_unknown_intent_amount_is_none(self):
        self.assertIsNone(MockCardGateway().get_intent("pi_unknown").amount)

    def test_oldest_intent_amounts_are_evicted(self):
        gateway = MockCardGateway()
        gateway.MAX_TRACKED_INTENTS = 2

        first = gateway.create_intent(amount="1.00")
        gateway.create_intent(amount="2.00")
        third = gateway.create_intent(amount="3.00")

        self.assertIsNone(gateway.get_intent(first.id).amount)
        self.assertEqual(gateway.get_intent(third.id).amount, Decimal("3.00"))


class HttpGatewayTests(SimpleTestCase):
    def setUp(self):
        self.gateway = HttpCardGateway(secret_key="sk_test_x", api_base="https://gw.test/v1", currency="usd")
        patcher = mock.patch("payments.services.card_gateway.urlopen")
        self.urlopen = patcher.start()
        self.addCleanup(patcher.stop)

    def _respond(self, payload):
        self.urlopen.return_value.__enter__.return_value.read.return_value = json.dumps(payload).encode()

    def _sent(self):
        request = self.urlopen.call_args[0][0]
        form = parse_qs(request.data.decode()) if request.data else {}
        return request, form

    def test_create_intent_posts_minor_units(self):
        self._respond({"id": "pi_1", "status": "requires_confirmation", "amount": 4550, "currency": "usd",
                       "client_secret": "pi_1_secret"})

        intent = self.gateway.create_intent(amount=Decimal("45.50"), order_ref="abc")

        request, form = self._sent()
        self.assertEqual(request.full_url, "https://gw.test/v1/payment_intents")
        self.assertEqual(request.get_method(), "POST")
        self.assertEqual(request.get_header("Authorization"), "Bearer sk_test_x")
        self.assertEqual(form["amount"], ["4550"])
        self.assertEqual(form["metadata[order_id]"], ["abc"])
        self.assertEqual(intent.amount, Decimal("45.50"))
        self.assertEqual(intent.client_secret, "pi_1_secret")

    def test_get_intent_reads_latest_charge(self):
        self._respond({"id": "pi_1", "status": "succeeded", "amount": 7500, "latest_charge": "ch_9"})

        intent = self.gateway.get_intent("pi_1")

        request, _ = self._sent()
        self.assertEqual(request.get_method(), "GET")
        self.assertEqual(intent.charge_id, "ch_9")
        self.assertEqual(intent.amount, Decimal("75.00"))

    def test_refund_maps_reason(self):
        self._respond({"id": "re_1", "status": "succeeded", "amount": 1000})

        refund = self.gateway.create_refund(payment_intent="pi_1", amount=Decimal("10.00"), reason="duplicate order")

        _, form = self._sent()
        self.assertEqual(form["reason"], ["duplicate"])
        self.assertEqual(form["amount"], ["1000"])
        self.assertEqual(refund.id, "re_1")

    def test_http_error_becomes_gateway_error(self):
        body = io.BytesIO(json.dumps({"error": {"message": "Your card was declined."}}).encode())
        self.urlopen.side_effect = HTTPError("https://gw.test/v1/refunds", 402, "Payment Required", None, body)

        with self.assertLogs("payments", level="ERROR"):
            with self.assertRaisesMessage(GatewayError, "Card gateway error 402: Your card was declined."):
                self.gateway.create_refund(payment_intent="pi_1", amount=Decimal("1.00"))

    def test_unreachable_becomes_gateway_error(self):
        self.urlopen.side_effect = URLError("timed out")

        with self.assertLogs("payments", level="ERROR"):
            with self.assertRaises(GatewayError):
                self.gateway.get_intent("pi_1")
