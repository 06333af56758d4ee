# payments/services/card_gateway.py
"""
CARD GATEWAY CLIENT (Stripe-compatible REST API)

Operations:
- create_intent(amount, currency, order_ref)  -> CardIntent
- get_intent(intent_id)                       -> CardIntent
- create_refund(payment_intent, amount, reason) -> GatewayRefund

Config: settings.PAYMENTS["CARD_GATEWAY"]
- SECRET_KEY set   -> HttpCardGateway
- MOCK_MODE true   -> MockCardGateway (intents always succeed)
- neither          -> None (card tenders are rejected)

Amounts cross the wire in minor units (cents).
"""

from __future__ import annotations

import json
import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from django.conf import settings

from payments.services.exceptions import GatewayError

logger = logging.getLogger("payments")

DEFAULT_API_BASE = "https://api.stripe.com/v1"

INTENT_SUCCEEDED = "succeeded"
INTENT_PROCESSING = "processing"
ACCEPTED_INTENT_STATUSES = {INTENT_SUCCEEDED, INTENT_PROCESSING}


# ============================================================
# VALUE OBJECTS
# ============================================================

@dataclass(frozen=True)
class CardIntent:
    id: str
    status: str
    amount_minor: Optional[int]
    currency: str = "usd"
    charge_id: Optional[str] = None
    client_secret: Optional[str] = None

    @property
    def amount(self) -> Optional[Decimal]:
        if self.amount_minor is None:
            return None
        return from_minor_units(self.amount_minor)


@dataclass(frozen=True)
class GatewayRefund:
    id: str
    status: str
    amount_minor: int


# ============================================================
# HELPERS
# ============================================================

def to_minor_units(amount) -> int:
    try:
        major = Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ValueError("amount must be a valid Decimal") from exc
    return int((major * Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount_minor) -> Decimal:
    return (Decimal(int(amount_minor or 0)) / Decimal("100")).quantize(Decimal("0.01"))


def map_refund_reason(reason: Optional[str]) -> str:
    text = (reason or "").strip().lower()
    if "fraud" in text:
        return "fraudulent"
    if "duplicate" in text:
        return "duplicate"
    return "requested_by_customer"


def _safe_preview(text: str, limit: int = 500) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + " ...(truncated)"


def _intent_from_payload(data: dict) -> CardIntent:
    charge = data.get("latest_charge")
    if isinstance(charge, dict):
        charge = charge.get("id")
    return CardIntent(
        id=str(data.get("id") or ""),
        status=str(data.get("status") or ""),
        amount_minor=int(data.get("amount") or 0),
        currency=str(data.get("currency") or ""),
        charge_id=charge or None,
        client_secret=data.get("client_secret"),
    )


# ============================================================
# HTTP GATEWAY
# ============================================================

class HttpCardGateway:
    mock = False

    def __init__(self, *, secret_key: str, api_base: str = DEFAULT_API_BASE, currency: str = "usd", timeout: int = 25):
        if not secret_key:
            raise ValueError("secret_key is required")
        self.secret_key = secret_key
        self.api_base = (api_base or DEFAULT_API_BASE).rstrip("/")
        self.currency = (currency or "usd").lower()
        self.timeout = timeout

    def _request(self, method: str, path: str, *, form: dict | None = None) -> dict[str, Any]:
        data = urlencode(form, doseq=True).encode("utf-8") if form is not None else None

        req = Request(
            f"{self.api_base}{path}",
            data=data,
            headers={
                "Authorization": f"Bearer {self.secret_key}",
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "application/json",
            },
            method=method,
        )

        try:
            with urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except HTTPError as e:
            try:
                raw = e.read().decode("utf-8", errors="replace")
            except OSError:
                raw = ""
            message = _safe_preview(raw) or str(e)
            try:
                message = json.loads(raw)["error"]["message"]
            except (ValueError, KeyError, TypeError):
                pass
            logger.exception("Card gateway HTTP error", extra={"path": path, "status": e.code})
            raise GatewayError(f"Card gateway error {e.code}: {message}") from e
        except URLError as e:
            logger.exception("Card gateway unreachable", extra={"path": path})
            raise GatewayError(f"Card gateway unreachable: {e.reason}") from e

        try:
            parsed = json.loads(raw)
        except ValueError as e:
            raise GatewayError(f"Card gateway returned non-JSON: {_safe_preview(raw)}") from e

        if not isinstance(parsed, dict):
            raise GatewayError("Card gateway returned an unexpected payload")
        return parsed

    def create_intent(self, *, amount, currency: Optional[str] = None, order_ref: str = "") -> CardIntent:
        form = {
            "amount": to_minor_units(amount),
            "currency": (currency or self.currency).lower(),
            "payment_method_types[]": "card",
        }
        if order_ref:
            form["metadata[order_id]"] = str(order_ref)

        return _intent_from_payload(self._request("POST", "/payment_intents", form=form))

    def get_intent(self, intent_id: str) -> CardIntent:
        return _intent_from_payload(
            self._request("GET", f"/payment_intents/{quote(str(intent_id), safe='')}")
        )

    def create_refund(self, *, payment_intent: str, amount=None, reason: Optional[str] = None) -> GatewayRefund:
        form: dict = {"payment_intent": payment_intent}
        if amount is not None:
            form["amount"] = to_minor_units(amount)
        if reason is not None:
            form["reason"] = map_refund_reason(reason)

        data = self._request("POST", "/refunds", form=form)
        return GatewayRefund(
            id=str(data.get("id") or ""),
            status=str(data.get("status") or ""),
            amount_minor=int(data.get("amount") or 0),
        )


# ============================================================
# MOCK GATEWAY
# ============================================================

class MockCardGateway:
    """
    Offline gateway: every intent reports `succeeded`.

    get_intent() echoes the amount recorded by create_intent(); for an id it
    never issued, or one evicted from memory, the amount is unknown
    (amount_minor=None) and the amount check is skipped.

    Single-process only: amounts live in this object and only the newest
    MAX_TRACKED_INTENTS are kept.
    """

    mock = True
    MAX_TRACKED_INTENTS = 1000

    def __init__(self, *, currency: str = "usd"):
        self.currency = currency
        self._amounts: OrderedDict[str, int] = OrderedDict()

    def create_intent(self, *, amount, currency: Optional[str] = None, order_ref: str = "") -> CardIntent:
        intent_id = f"pi_mock_{uuid.uuid4().hex}"
        minor = to_minor_units(amount)
        self._amounts[intent_id] = minor
        while len(self._amounts) > self.MAX_TRACKED_INTENTS:
            self._amounts.popitem(last=False)
        logger.info("Mock card intent created", extra={"intent_id": intent_id, "order_ref": order_ref})
        return CardIntent(
            id=intent_id,
            status="requires_confirmation",
            amount_minor=minor,
            currency=(currency or self.currency).lower(),
            client_secret=f"{intent_id}_secret_{uuid.uuid4().hex}",
        )

    def get_intent(self, intent_id: str) -> CardIntent:
        return CardIntent(
            id=intent_id,
            status=INTENT_SUCCEEDED,
            amount_minor=self._amounts.get(intent_id),
            currency=self.currency,
            charge_id=f"ch_mock_{uuid.uuid4().hex}",
        )

    def create_refund(self, *, payment_intent: str, amount=None, reason: Optional[str] = None) -> GatewayRefund:
        return GatewayRefund(
            id=f"re_mock_{uuid.uuid4().hex}",
            status=INTENT_SUCCEEDED,
            amount_minor=to_minor_units(amount or 0),
        )


# ============================================================
# FACTORY
# ============================================================

_mock_gateway: Optional[MockCardGateway] = None


def get_card_gateway():
    """Gateway selected by settings, or None when card payments are not configured."""
    global _mock_gateway

    payments = getattr(settings, "PAYMENTS", {}) or {}
    cfg = payments.get("CARD_GATEWAY") or {}

    secret_key = (cfg.get("SECRET_KEY") or "").strip()
    if secret_key:
        return HttpCardGateway(
            secret_key=secret_key,
            api_base=cfg.get("API_BASE") or DEFAULT_API_BASE,
            currency=cfg.get("CURRENCY") or "usd",
        )

    if cfg.get("MOCK_MODE"):
        if _mock_gateway is None:
            _mock_gateway = MockCardGateway(currency=cfg.get("CURRENCY") or "usd")
        return _mock_gateway

    return None
