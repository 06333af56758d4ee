# payments/tests/fakes.py

from __future__ import annotations

import itertools

from payments.services.card_gateway import (
    INTENT_SUCCEEDED,
    CardIntent,
    GatewayRefund,
    to_minor_units,
)
from payments.services.exceptions import GatewayError


class FakeCardGateway:
    """
    In-memory gateway for tests.

    - intents: {intent_id: (status, amount)}; unknown ids report "requires_payment_method"
    - fail_refunds_for: intent ids whose refunds raise GatewayError
    - refunds: every create_refund call, in order
    """

    mock = True

    def __init__(self, intents=None, fail_refunds_for=()):
        self.intents = dict(intents or {})
        self.fail_refunds_for = set(fail_refunds_for)
        self.refunds = []
        self._ids = itertools.count(1)

    def add_intent(self, intent_id, amount, status=INTENT_SUCCEEDED):
        self.intents[intent_id] = (status, amount)
        return intent_id

    def create_intent(self, *, amount, currency=None, order_ref=""):
        intent_id = f"pi_fake_{next(self._ids)}"
        self.intents[intent_id] = ("requires_confirmation", amount)
        return CardIntent(
            id=intent_id,
            status="requires_confirmation",
            amount_minor=to_minor_units(amount),
            currency=currency or "usd",
            client_secret=f"{intent_id}_secret",
        )

    def get_intent(self, intent_id):
        status, amount = self.intents.get(intent_id, ("requires_payment_method", None))
        return CardIntent(
            id=intent_id,
            status=status,
            amount_minor=None if amount is None else to_minor_units(amount),
            charge_id=f"ch_{intent_id}",
        )

    def create_refund(self, *, payment_intent, amount=None, reason=None):
        if payment_intent in self.fail_refunds_for:
            raise GatewayError("Card gateway error 402: charge already refunded")

        self.refunds.append({"payment_intent": payment_intent, "amount": amount, "reason": reason})
        return GatewayRefund(
            id=f"re_{next(self._ids)}",
            status=INTENT_SUCCEEDED,
            amount_minor=to_minor_units(amount or 0),
        )
