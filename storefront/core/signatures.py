"""
Razorpay signature verification

Two flavours, both lowercase hex HMAC-SHA256:
- checkout callback: HMAC(key_secret, "<razorpay_order_id>|<razorpay_payment_id>")
- webhooks: HMAC(webhook_secret, <raw request body>)

The webhook body must be the exact bytes received; re-serialising the
parsed JSON changes the digest.
"""
import hashlib
import hmac
from typing import Optional, Union


def compute_signature(secret: str, message: Union[str, bytes]) -> str:
    """Hex HMAC-SHA256 of message keyed with secret"""
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def _matches(expected: str, received: Optional[str]) -> bool:
    if not received:
        return False
    return hmac.compare_digest(expected.encode("ascii"), received.strip().lower().encode("utf-8"))


def verify_payment_signature(secret: str, razorpay_order_id: str,
                             razorpay_payment_id: str, signature: Optional[str]) -> bool:
    """Verify the signature returned to the browser by Razorpay Checkout"""
    expected = compute_signature(secret, f"{razorpay_order_id}|{razorpay_payment_id}")
    return _matches(expected, signature)


def verify_webhook_signature(secret: str, raw_body: bytes, signature: Optional[str]) -> bool:
    """Verify the X-Razorpay-Signature header against the raw body"""
    expected = compute_signature(secret, raw_body)
    return _matches(expected, signature)


def truncate_signature(signature: Optional[str]) -> str:
    """Loggable prefix of a signature"""
    if not signature:
        return "<none>"
    return signature[:10] + "..."
