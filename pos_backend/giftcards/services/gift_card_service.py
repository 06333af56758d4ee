# giftcards/services/gift_card_service.py

"""
======================================================
PATH: giftcards/services/gift_card_service.py
======================================================
GIFT CARD LEDGER SERVICES

All balance mutations:
- run inside transaction.atomic()
- re-read the card with select_for_update()

A debit that fails validation writes nothing, so callers can run it before
recording a payment and rely on "no debit => no payment".
"""

from __future__ import annotations

import logging
import secrets
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.utils import timezone

from giftcards.models import GiftCard

logger = logging.getLogger("giftcards")

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


# ============================================================
# DOMAIN ERRORS
# ============================================================

class GiftCardError(Exception):
    pass


class GiftCardNotFoundError(GiftCardError):
    pass


def _money(v) -> Decimal:
    return Decimal(str(v or "0")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def normalize_code(code) -> str:
    return str(code or "").strip().upper()


def generate_gift_card_code() -> str:
    """Random code formatted as XXXX-XXXX-XXXX."""
    raw = "".join(secrets.choice(CODE_ALPHABET) for _ in range(12))
    return f"{raw[0:4]}-{raw[4:8]}-{raw[8:12]}"


def _get_locked(*, business, code) -> GiftCard:
    card = (
        GiftCard.objects.select_for_update()
        .filter(business=business, code=normalize_code(code))
        .first()
    )
    if card is None:
        raise GiftCardNotFoundError("Gift card not found")
    return card


def _ensure_usable(card: GiftCard) -> None:
    if not card.is_active:
        raise GiftCardError("Gift card is not active")
    if card.is_expired():
        raise GiftCardError(f"Gift card expired on {card.expires_at:%Y-%m-%d}")


# ============================================================
# READ
# ============================================================

def check_gift_card_balance(*, business, code) -> GiftCard:
    """
    Return the card when it can be redeemed right now.

    Raises GiftCardError when it is inactive, expired or empty.
    """
    card = GiftCard.objects.filter(business=business, code=normalize_code(code)).first()
    if card is None:
        raise GiftCardNotFoundError("Gift card not found")

    _ensure_usable(card)

    if _money(card.balance) <= ZERO:
        raise GiftCardError("Gift card has no remaining balance")

    return card


# ============================================================
# ISSUE
# ============================================================

@transaction.atomic
def issue_gift_card(*, business, original_amount, code=None, expires_at=None) -> GiftCard:
    amount = _money(original_amount)
    if amount <= ZERO:
        raise GiftCardError("Original amount must be greater than zero")

    code = normalize_code(code) or generate_gift_card_code()

    if GiftCard.objects.filter(business=business, code=code).exists():
        raise GiftCardError(f"Gift card with code '{code}' already exists")

    if expires_at and expires_at < timezone.now():
        raise GiftCardError("Expiry date must be in the future")

    card = GiftCard.objects.create(
        business=business,
        code=code,
        balance=amount,
        original_amount=amount,
        expires_at=expires_at,
        is_active=True,
    )

    logger.info(
        "Gift card issued",
        extra={"gift_card_id": str(card.id), "business_id": str(business.id), "amount": str(amount)},
    )
    return card


# ============================================================
# DEBIT / CREDIT
# ============================================================

def debit_gift_card(*, business, code, amount) -> GiftCard:
    amount = _money(amount)

    with transaction.atomic():
        card = _get_locked(business=business, code=code)
        _ensure_usable(card)

        if amount <= ZERO:
            raise GiftCardError("Deduction amount must be greater than zero")

        balance = _money(card.balance)
        if balance < amount:
            raise GiftCardError(
                f"Insufficient balance. Available: {balance}, Required: {amount}"
            )

        card.balance = balance - amount
        card.save(update_fields=["balance", "updated_at"])

    logger.info(
        "Gift card debited",
        extra={"gift_card_id": str(card.id), "amount": str(amount), "balance": str(card.balance)},
    )
    return card


def credit_gift_card(*, business, code, amount) -> GiftCard:
    amount = _money(amount)

    with transaction.atomic():
        card = _get_locked(business=business, code=code)

        if amount <= ZERO:
            raise GiftCardError("Credit amount must be greater than zero")

        card.balance = _money(card.balance) + amount
        card.save(update_fields=["balance", "updated_at"])

    logger.info(
        "Gift card credited",
        extra={"gift_card_id": str(card.id), "amount": str(amount), "balance": str(card.balance)},
    )
    return card
