# giftcards/tests/test_gift_cards.py

import re
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from business.models import Business
from giftcards.models import GiftCard
from giftcards.services.gift_card_service import (
    GiftCardError,
    GiftCardNotFoundError,
    check_gift_card_balance,
    credit_gift_card,
    debit_gift_card,
    generate_gift_card_code,
    issue_gift_card,
)


class GiftCardLedgerTests(TestCase):
    """
    Gift card ledger tests.

    GUARANTEES:
    - Debits never overdraw and never touch inactive/expired cards
    - Credits are uncapped
    - Codes are unique per business and case-insensitive
    """

    def setUp(self):
        self.business = Business.objects.create(name="Corner Cafe")
        self.card = issue_gift_card(business=self.business, original_amount="60.00", code="abcd-1234-wxyz")

    # ---------------------------------------------------------
    # Issue
    # ---------------------------------------------------------
    def test_issue_normalizes_code_and_sets_balance(self):
        self.assertEqual(self.card.code, "ABCD-1234-WXYZ")
        self.assertEqual(self.card.balance, Decimal("60.00"))
        self.assertEqual(self.card.original_amount, Decimal("60.00"))

    def test_issue_generates_formatted_code(self):
        card = issue_gift_card(business=self.business, original_amount="10.00")
        self.assertRegex(card.code, re.compile(r"^[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}$"))

    def test_generated_codes_are_formatted(self):
        self.assertEqual(len(generate_gift_card_code()), 14)

    def test_issue_rejects_duplicate_code(self):
        with self.assertRaises(GiftCardError):
            issue_gift_card(business=self.business, original_amount="5.00", code="ABCD-1234-WXYZ")

    def test_same_code_allowed_in_other_business(self):
        other = Business.objects.create(name="Other Shop")
        card = issue_gift_card(business=other, original_amount="5.00", code="ABCD-1234-WXYZ")
        self.assertEqual(card.business, other)

    def test_issue_rejects_non_positive_amount(self):
        with self.assertRaises(GiftCardError):
            issue_gift_card(business=self.business, original_amount="0")

    # ---------------------------------------------------------
    # Debit
    # ---------------------------------------------------------
    def test_debit_reduces_balance(self):
        debit_gift_card(business=self.business, code="abcd-1234-wxyz", amount="25.50")
        self.card.refresh_from_db()
        self.assertEqual(self.card.balance, Decimal("34.50"))

    def test_debit_insufficient_balance_writes_nothing(self):
        with self.assertRaises(GiftCardError):
            debit_gift_card(business=self.business, code=self.card.code, amount="60.01")
        self.card.refresh_from_db()
        self.assertEqual(self.card.balance, Decimal("60.00"))

    def test_debit_inactive_card_rejected(self):
        GiftCard.objects.filter(pk=self.card.pk).update(is_active=False)
        with self.assertRaises(GiftCardError):
            debit_gift_card(business=self.business, code=self.card.code, amount="1.00")

    def test_debit_expired_card_rejected(self):
        GiftCard.objects.filter(pk=self.card.pk).update(expires_at=timezone.now() - timedelta(days=1))
        with self.assertRaises(GiftCardError):
            debit_gift_card(business=self.business, code=self.card.code, amount="1.00")

    def test_debit_unknown_code(self):
        with self.assertRaises(GiftCardNotFoundError):
            debit_gift_card(business=self.business, code="NOPE-NOPE-NOPE", amount="1.00")

    # ---------------------------------------------------------
    # Credit / balance check
    # ---------------------------------------------------------
    def test_credit_is_uncapped(self):
        credit_gift_card(business=self.business, code=self.card.code, amount="15.00")
        self.card.refresh_from_db()
        self.assertEqual(self.card.balance, Decimal("75.00"))

    def test_balance_check_rejects_empty_card(self):
        debit_gift_card(business=self.business, code=self.card.code, amount="60.00")
        with self.assertRaises(GiftCardError):
            check_gift_card_balance(business=self.business, code=self.card.code)

    def test_balance_check_returns_usable_card(self):
        card = check_gift_card_balance(business=self.business, code=" abcd-1234-wxyz ")
        self.assertEqual(card.pk, self.card.pk)
