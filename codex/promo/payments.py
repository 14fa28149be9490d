"""
Razorpay order creation and payment signature checks.
"""

import asyncio
import hashlib
import hmac
import logging

import razorpay

from codex.config import RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET
from codex.errors import PaymentGatewayError

logger = logging.getLogger(__name__)


def verify_razorpay_signature(order_id: str, payment_id: str, signature: str,
                              secret: str = RAZORPAY_KEY_SECRET) -> bool:
    """HMAC-SHA256 of "order_id|payment_id" must equal the hex signature"""
    if not (order_id and payment_id and signature and secret):
        return False
    message = f"{order_id}|{payment_id}"
    generated_signature = hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()
    return hmac.compare_digest(generated_signature.encode(), signature.encode())


class PaymentGateway:
    def __init__(self, key_id: str = RAZORPAY_KEY_ID, key_secret: str = RAZORPAY_KEY_SECRET, client=None):
        self.key_secret = key_secret
        self._client = client or razorpay.Client(auth=(key_id, key_secret))

    async def create_order(self, amount: int, receipt: str, notes: dict, currency: str = "INR") -> dict:
        order_data = {
            "amount": amount,  # in paise
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
        }
        try:
            # the SDK is blocking
            return await asyncio.to_thread(self._client.order.create, data=order_data)
        except Exception as e:
            logger.exception("Razorpay order creation failed")
            raise PaymentGatewayError(f"Failed to create payment order: {e}") from e

    def verify(self, order_id: str, payment_id: str, signature: str) -> bool:
        return verify_razorpay_signature(order_id, payment_id, signature, self.key_secret)
