"""
Razorpay payment service.

Flow:
  1. Frontend calls POST /api/payment/create-order → backend creates Razorpay order
  2. Backend returns {razorpay_order_id, amount, currency} (key from GET /api/payment/key)
  3. Frontend opens Razorpay JS checkout modal: user pays
  4. Razorpay returns {payment_id, order_id, signature} to frontend
  5. Frontend POSTs all three to POST /api/payment/verify
  6. Backend verifies HMAC-SHA256 signature (CRITICAL security step)
  7. If valid, the payment row becomes CAPTURED and a receipt is emailed

WITHOUT step 6, anyone could fake a successful payment by sending any strings.
The signature is an HMAC of "{order_id}|{payment_id}" using your Razorpay secret.

All amounts here are integers in PAISE (1 rupee = 100 paise).
"""
import hashlib
import hmac
import logging
import time
from typing import Optional

import razorpay
from app.config import settings

logger = logging.getLogger(__name__)

# Initialize Razorpay client once at module level
client = razorpay.Client(
    auth=(settings.razorpay_key_id, settings.razorpay_key_secret)
)

RECEIPT_MAX_LENGTH = 40


def generate_receipt(user_id: str) -> str:
    """
    Short receipt id: RCP{last 8 digits of epoch millis}-{4-digit user hash}.
    Always well under Razorpay's 40-character receipt limit.
    """
    short_timestamp = int(time.time() * 1000) % 100_000_000
    user_hash = int(hashlib.sha256(user_id.encode("utf-8")).hexdigest(), 16) % 10_000
    return f"RCP{short_timestamp}-{user_hash:04d}"


def create_order(
    amount: int,
    currency: str,
    receipt: str,
    notes: Optional[str] = None,
    description: Optional[str] = None,
) -> dict:
    """
    Create a Razorpay order and return the order dict ('id', 'amount', 'currency', ...).

    Customer name/email/phone are deliberately NOT sent: the Orders API
    doesn't accept them. They're kept on our payments row instead.
    """
    data = {
        "amount": amount,
        "currency": currency,
        "receipt": receipt,
        "payment_capture": 1,   # auto-capture payment on success
    }
    if notes is not None:
        data["notes"] = {"notes": notes}
    if description is not None:
        data["description"] = description

    order = client.order.create(data=data)
    logger.info("Razorpay order created: %s", order.get("id"))
    return order


def compute_signature(razorpay_order_id: str, razorpay_payment_id: str) -> str:
    """HMAC-SHA256(key=razorpay_secret, msg="{order_id}|{payment_id}") as lowercase hex."""
    message = f"{razorpay_order_id}|{razorpay_payment_id}"
    return hmac.new(
        settings.razorpay_key_secret.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify_payment_signature(
    razorpay_order_id: str,
    razorpay_payment_id: str,
    razorpay_signature: str,
) -> bool:
    """
    Returns True if the checkout signature is authentic.
    Uses hmac.compare_digest for timing-safe comparison.
    """
    expected_signature = compute_signature(razorpay_order_id, razorpay_payment_id)
    return hmac.compare_digest(expected_signature, razorpay_signature)


def fetch_payment_method(razorpay_payment_id: str) -> Optional[str]:
    """Payment method ("card", "upi", "netbanking", ...) as reported by Razorpay."""
    payment = client.payment.fetch(razorpay_payment_id)
    return payment.get("method")


def refund_payment(
    razorpay_payment_id: str,
    amount: Optional[int] = None,
    reason: Optional[str] = None,
) -> dict:
    """
    Refund a captured payment. amount=None refunds the full amount.
    """
    data = {}
    if amount is not None:
        data["amount"] = amount
    if reason is not None:
        data["notes"] = {"reason": reason}

    refund = client.payment.refund(razorpay_payment_id, data)
    logger.info("Razorpay refund initiated for %s", razorpay_payment_id)
    return refund
