"""
Stripe API client for card payments.

Provides async methods for:
- Creating PaymentIntents
- Retrieving PaymentIntents (reconciliation)

and verification of signed webhook payloads.
"""

import hashlib
import hmac
import time
from dataclasses import dataclass, field
from typing import Optional

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PaymentIntent:
    """The parts of a Stripe PaymentIntent this service uses."""

    id: str
    client_secret: Optional[str]
    amount: int  # in cents
    currency: str
    status: str  # requires_payment_method, processing, succeeded, canceled, ...
    metadata: dict = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict) -> "PaymentIntent":
        return cls(
            id=data.get("id", ""),
            client_secret=data.get("client_secret"),
            amount=int(data.get("amount") or 0),
            currency=data.get("currency", ""),
            status=data.get("status", ""),
            metadata=data.get("metadata") or {},
        )


class StripeError(Exception):
    """Base exception for Stripe API errors."""

    def __init__(
        self, message: str, status_code: int = None, response_data: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)


class WebhookSignatureError(Exception):
    """Raised when a webhook payload does not carry a valid signature."""


class StripeClient:
    """Async client for the Stripe PaymentIntents API."""

    def __init__(self, secret_key: str = None, api_base: str = None):
        settings = get_settings()
        self.secret_key = secret_key or settings.STRIPE_SECRET_KEY
        if not self.secret_key:
            raise ValueError("STRIPE_SECRET_KEY is required")
        self.api_base = (api_base or settings.STRIPE_API_BASE).rstrip("/")
        self._headers = {"Authorization": f"Bearer {self.secret_key}"}

    async def _request(
        self,
        method: str,
        endpoint: str,
        form_data: dict = None,
        idempotency_key: str = None,
    ) -> dict:
        """Make an async request to the Stripe API (form-encoded bodies)."""
        url = f"{self.api_base}{endpoint}"
        headers = dict(self._headers)
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.request(
                    method=method, url=url, headers=headers, data=form_data
                )
        except httpx.HTTPError as exc:
            logger.error("Stripe request failed: %s", exc)
            raise StripeError(message=f"Could not reach Stripe: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.is_success:
            error = data.get("error") or {}
            logger.error("Stripe API error: %s - %s", response.status_code, error)
            raise StripeError(
                message=error.get("message", "Unknown Stripe error"),
                status_code=response.status_code,
                response_data=data,
            )
        return data

    # =========================================================================
    # PaymentIntent Methods
    # =========================================================================

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: Optional[dict] = None,
        idempotency_key: str = None,
    ) -> PaymentIntent:
        """
        Create a PaymentIntent with automatic payment methods.

        Args:
            amount: Amount in cents
            currency: Three-letter currency code, e.g. "cad"
            metadata: Flat string map stored on the intent (user_id, order_id)

        Returns:
            PaymentIntent with the client_secret the browser confirms
        """
        form = {
            "amount": str(amount),
            "currency": currency,
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in (metadata or {}).items():
            if value is not None:
                form[f"metadata[{key}]"] = str(value)

        data = await self._request(
            "POST", "/payment_intents", form_data=form, idempotency_key=idempotency_key
        )
        return PaymentIntent.from_api(data)

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent:
        data = await self._request("GET", f"/payment_intents/{payment_intent_id}")
        return PaymentIntent.from_api(data)


def get_stripe_client() -> StripeClient:
    """Get a StripeClient instance."""
    return StripeClient()


# =========================================================================
# Webhook signatures
# =========================================================================


def compute_webhook_signature(payload: bytes, timestamp: int, secret: str) -> str:
    """HMAC-SHA256 over ``"{timestamp}.{payload}"``, hex encoded."""
    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(
        secret.encode("utf-8"), signed_payload, hashlib.sha256
    ).hexdigest()


def verify_webhook_signature(
    payload: bytes,
    signature_header: str,
    secret: str,
    tolerance: int = 300,
    now: Optional[int] = None,
) -> None:
    """
    Verify a ``Stripe-Signature`` header (``t=...,v1=...[,v1=...]``).

    Raises:
        WebhookSignatureError: header malformed, timestamp outside the
            tolerance window, or no v1 signature matches.
    """
    timestamp = None
    signatures = []
    for part in signature_header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise WebhookSignatureError("Invalid timestamp in signature header")
        elif key == "v1":
            signatures.append(value)

    if timestamp is None or not signatures:
        raise WebhookSignatureError("Malformed signature header")

    current = int(time.time()) if now is None else now
    if tolerance and abs(current - timestamp) > tolerance:
        raise WebhookSignatureError("Timestamp outside the tolerance zone")

    expected = compute_webhook_signature(payload, timestamp, secret)
    if not any(hmac.compare_digest(expected, sig) for sig in signatures):
        raise WebhookSignatureError("No signatures found matching the expected signature")
