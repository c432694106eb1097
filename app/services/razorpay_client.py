"""
Razorpay REST client - order creation and checkout signature verification.

Amounts are in paise (1 INR = 100 paise).
"""

import hashlib
import hmac

import requests

from app.core.config import get_settings
from app.core.exceptions import IntegrationError
from app.core.logger import get_logger

settings = get_settings()
log = get_logger(__name__)


def amount_to_paise(amount: float) -> int:
    return int(round(amount * 100))


def create_order(amount_paise: int, receipt: str, notes: dict = None, currency: str = "INR") -> dict:
    """
    Create a Razorpay order.

    Returns:
        Razorpay order payload (id, amount, currency, receipt, status, ...)

    Raises:
        IntegrationError: missing credentials or Razorpay error
    """
    if not (settings.razorpay_key_id and settings.razorpay_key_secret):
        raise IntegrationError("Payment gateway is not configured")

    try:
        response = requests.post(
            f"{settings.razorpay_api_url}/orders",
            auth=(settings.razorpay_key_id, settings.razorpay_key_secret),
            json={
                "amount": amount_paise,
                "currency": currency,
                "receipt": receipt,
                "notes": {key: str(value) for key, value in (notes or {}).items()},
            },
            timeout=settings.http_timeout,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        log.error("Razorpay order creation failed: %s", e)
        raise IntegrationError("Failed to create payment order")
    return response.json()


def verify_signature(order_id: str, payment_id: str, signature: str) -> bool:
    """Checkout signature = HMAC-SHA256(key_secret, "order_id|payment_id")."""
    expected = hmac.new(
        settings.razorpay_key_secret.encode(),
        f"{order_id}|{payment_id}".encode(),
        hashlib.sha256,
    ).hexdigest()
    return hmac.compare_digest(expected.encode(), signature.encode())
