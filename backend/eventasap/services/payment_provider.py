"""Payment provider client (Stripe PaymentIntents over httpx).

Orchestrator code depends on the ``PaymentProvider`` protocol only; the
concrete client is created per request by ``api.dependencies`` so tests can
substitute a fake.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional, Protocol
import hashlib
import hmac
import logging
import time

import httpx

from ..core.config import Settings
from ..models.payment import PaymentStatus
from ..utils.errors import ProviderError

logger = logging.getLogger(__name__)

# Currencies Stripe charges without a minor unit
ZERO_DECIMAL_CURRENCIES = frozenset({"bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga", "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf"})

# Stripe PaymentIntent.status -> our payment status; anything else is still pending
_INTENT_STATUS = {
    "succeeded": PaymentStatus.SUCCEEDED,
    "canceled": PaymentStatus.FAILED,
    "requires_payment_method": PaymentStatus.PENDING,
}


@dataclass(frozen=True)
class ProviderIntent:
    id: str
    client_secret: str


@dataclass(frozen=True)
class ProviderIntentStatus:
    id: str
    status: PaymentStatus
    amount: Decimal


class PaymentProvider(Protocol):
    def create_payment_intent(
        self,
        amount: Decimal,
        currency: str,
        metadata: Dict[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> ProviderIntent: ...

    def retrieve_payment_intent(self, intent_id: str) -> ProviderIntentStatus: ...


def to_minor_units(amount: Decimal, currency: str) -> int:
    if currency.lower() in ZERO_DECIMAL_CURRENCIES:
        return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(value: int, currency: str) -> Decimal:
    if currency.lower() in ZERO_DECIMAL_CURRENCIES:
        return Decimal(value)
    return (Decimal(value) / 100).quantize(Decimal("0.01"))


class StripePaymentProvider:
    """Minimal Stripe REST client for the PaymentIntents we need."""

    def __init__(self, secret_key: str, api_base: str = "https://api.stripe.com", timeout: float = 10.0) -> None:
        self._secret_key = secret_key
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "StripePaymentProvider":
        return cls(settings.STRIPE_SECRET_KEY, settings.STRIPE_API_BASE)

    def _headers(self, idempotency_key: Optional[str] = None) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self._secret_key}"}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return headers

    def _request(self, method: str, path: str, *, data: Optional[Dict[str, Any]] = None, idempotency_key: Optional[str] = None) -> Dict[str, Any]:
        if not self._secret_key:
            raise ProviderError("Payment provider is not configured")
        url = f"{self._api_base}{path}"
        try:
            with httpx.Client(timeout=self._timeout) as client:
                r = client.request(method, url, data=data, headers=self._headers(idempotency_key))
                r.raise_for_status()
                return r.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Stripe %s %s failed status=%s body=%s",
                method,
                path,
                exc.response.status_code,
                exc.response.text[:500],
            )
            raise ProviderError() from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Stripe %s %s error: %s", method, path, exc, exc_info=True)
            raise ProviderError() from exc

    def create_payment_intent(
        self,
        amount: Decimal,
        currency: str,
        metadata: Dict[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> ProviderIntent:
        form: Dict[str, Any] = {
            "amount": to_minor_units(amount, currency),
            "currency": currency.lower(),
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = str(value)
        data = self._request("POST", "/v1/payment_intents", data=form, idempotency_key=idempotency_key)
        intent_id = data.get("id")
        client_secret = data.get("client_secret")
        if not intent_id or not client_secret:
            logger.error("Stripe payment intent response missing id/client_secret: %s", data)
            raise ProviderError("Invalid payment provider response")
        return ProviderIntent(id=intent_id, client_secret=client_secret)

    def retrieve_payment_intent(self, intent_id: str) -> ProviderIntentStatus:
        data = self._request("GET", f"/v1/payment_intents/{intent_id}")
        currency = str(data.get("currency") or "")
        return ProviderIntentStatus(
            id=intent_id,
            status=_INTENT_STATUS.get(str(data.get("status", "")), PaymentStatus.PENDING),
            amount=from_minor_units(int(data.get("amount", 0) or 0), currency),
        )


class WebhookSignatureError(Exception):
    pass


def verify_webhook_signature(
    payload: bytes,
    signature_header: Optional[str],
    secret: str,
    tolerance: int = 300,
    now: Optional[float] = None,
) -> None:
    """Validate a ``Stripe-Signature`` header (``t=<ts>,v1=<hex>[,v1=...]``).

    Raises WebhookSignatureError when the header is missing, malformed, too
    old, or matches none of the v1 signatures.
    """
    if not secret:
        raise WebhookSignatureError("Webhook secret not configured")
    if not signature_header:
        raise WebhookSignatureError("Missing signature header")
    timestamp: Optional[int] = None
    signatures = []
    for part in signature_header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise WebhookSignatureError("Malformed timestamp")
        elif key == "v1":
            signatures.append(value)
    if timestamp is None or not signatures:
        raise WebhookSignatureError("Malformed signature header")
    current = time.time() if now is None else now
    if tolerance and abs(current - timestamp) > tolerance:
        raise WebhookSignatureError("Signature timestamp outside tolerance")
    signed = f"{timestamp}.".encode("utf-8") + payload
    expected = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    if not any(hmac.compare_digest(expected, sig) for sig in signatures):
        raise WebhookSignatureError("Signature mismatch")
