"""
Payment service: the payments table on top of the Razorpay gateway.

Status transitions:
  create_payment_order  → PENDING
  verify_payment        → PENDING to CAPTURED on a valid signature, FAILED otherwise
  refund_payment        → REFUNDED

Amounts are stored in paise exactly as sent to Razorpay. Receipt emails show
major units (amount / 100).
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundException, PaymentGatewayException, PaymentVerificationException
from app.models.payment import Payment
from app.schemas.payment import CreatePaymentRequest, PaymentVerificationRequest, PaymentEmailRequest
from app.services import razorpay_service

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "INR"
RECEIPT_STATUSES = {"CAPTURED", "SUCCESS"}


def create_payment_order(db: Session, request: CreatePaymentRequest) -> dict:
    """
    Creates the Razorpay order and a PENDING payment row for it.
    A user_id that looks like an email doubles as the receipt address.
    """
    customer_email = request.customer_email
    if not customer_email and "@" in request.user_id:
        customer_email = request.user_id
        logger.info("Using user_id as customer email for %s", request.user_id)

    currency = request.currency or DEFAULT_CURRENCY
    receipt = request.receipt or razorpay_service.generate_receipt(request.user_id)

    try:
        order = razorpay_service.create_order(
            amount=request.amount,
            currency=currency,
            receipt=receipt,
            notes=request.notes,
            description=request.description,
        )
    except Exception as exc:
        logger.error("Razorpay order creation failed for %s: %s", request.user_id, exc)
        raise PaymentGatewayException(f"Failed to create payment order: {exc}")

    order_id = order["id"]
    payment = Payment(
        user_id=request.user_id,
        razorpay_order_id=order_id,
        amount=request.amount,
        currency=currency,
        description=request.description,
        receipt=receipt,
        status="PENDING",
        customer_email=customer_email,
        customer_phone=request.customer_phone,
        customer_name=request.customer_name,
        notes=request.notes,
    )
    db.add(payment)
    db.commit()
    logger.info("Payment order %s stored for user %s", order_id, request.user_id)

    return {
        "razorpay_order_id": order_id,
        "amount": request.amount,
        "currency": currency,
        "status": "PENDING",
        "message": "Order created successfully. Complete payment on frontend.",
    }


def _mark_failed(db: Session, razorpay_order_id: str, reason: str) -> None:
    """Compensating write after a failed verification. Never raises.

    Only PENDING rows are touched; settled payments keep their status.
    """
    try:
        db.rollback()
        payment = (
            db.query(Payment)
            .filter(
                Payment.razorpay_order_id == razorpay_order_id,
                Payment.status == "PENDING",
            )
            .first()
        )
        if payment is None:
            return
        payment.status = "FAILED"
        payment.error_message = reason
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to mark payment %s as FAILED: %s", razorpay_order_id, exc)


def verify_payment(db: Session, request: PaymentVerificationRequest) -> tuple[Payment, bool]:
    """
    Checks the checkout signature and moves the payment PENDING → CAPTURED.

    Returns (payment, captured_now). Repeating a successful verification
    returns the CAPTURED row unchanged with captured_now=False. Any other
    attempt on a payment that is no longer PENDING is rejected without a write.

    Any failure on a PENDING row (bad signature, DB error) moves it to
    FAILED with the reason in error_message and raises a 400.
    """
    order_id = request.razorpay_order_id
    payment = db.query(Payment).filter(Payment.razorpay_order_id == order_id).first()

    if payment is not None and payment.status != "PENDING":
        if (
            payment.status == "CAPTURED"
            and payment.razorpay_payment_id == request.razorpay_payment_id
            and razorpay_service.verify_payment_signature(
                order_id, request.razorpay_payment_id, request.razorpay_signature
            )
        ):
            logger.info("Payment %s already captured for order %s", payment.razorpay_payment_id, order_id)
            return payment, False
        logger.warning("Rejected verification of order %s in status %s", order_id, payment.status)
        raise PaymentVerificationException(f"Payment is already {payment.status}")

    try:
        if not razorpay_service.verify_payment_signature(
            order_id, request.razorpay_payment_id, request.razorpay_signature
        ):
            logger.warning("Signature verification failed for order %s", order_id)
            raise ValueError("Invalid signature")

        if payment is None:
            logger.error("Payment record not found for order %s", order_id)
            raise ValueError("Payment record not found")

        payment.razorpay_payment_id = request.razorpay_payment_id
        payment.razorpay_signature = request.razorpay_signature
        payment.status = "CAPTURED"
        payment.error_message = None

        # Best effort: a missing payment method never fails the verification
        try:
            payment.payment_method = razorpay_service.fetch_payment_method(request.razorpay_payment_id)
        except Exception as exc:
            logger.warning("Could not fetch payment method for %s: %s", request.razorpay_payment_id, exc)

        db.commit()
        db.refresh(payment)
    except Exception as exc:
        logger.error("Payment verification failed for order %s: %s", order_id, exc)
        _mark_failed(db, order_id, str(exc))
        raise PaymentVerificationException(str(exc))

    logger.info("Payment %s verified for order %s", request.razorpay_payment_id, order_id)
    return payment, True


def get_payment_by_order_id(db: Session, razorpay_order_id: str) -> Payment:
    payment = db.query(Payment).filter(Payment.razorpay_order_id == razorpay_order_id).first()
    if payment is None:
        raise NotFoundException("Payment")
    return payment


def get_payment_by_payment_id(db: Session, razorpay_payment_id: str) -> Payment:
    payment = db.query(Payment).filter(Payment.razorpay_payment_id == razorpay_payment_id).first()
    if payment is None:
        raise NotFoundException("Payment")
    return payment


def get_user_payments(db: Session, user_id: str) -> list[Payment]:
    """All payments for a user, newest first."""
    return (
        db.query(Payment)
        .filter(Payment.user_id == user_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )


def refund_payment(
    db: Session,
    razorpay_payment_id: str,
    refund_amount: Optional[int] = None,
    reason: Optional[str] = None,
) -> Payment:
    """
    Requests a refund from Razorpay (full amount when refund_amount is None)
    and marks the row REFUNDED.
    """
    payment = get_payment_by_payment_id(db, razorpay_payment_id)

    try:
        razorpay_service.refund_payment(razorpay_payment_id, amount=refund_amount, reason=reason)
    except Exception as exc:
        logger.error("Razorpay refund failed for %s: %s", razorpay_payment_id, exc)
        raise PaymentGatewayException(f"Failed to refund payment: {exc}")

    payment.status = "REFUNDED"
    payment.error_message = f"Refund requested - Reason: {reason or 'No reason provided'}"
    db.commit()
    db.refresh(payment)
    logger.info("Payment %s marked REFUNDED", razorpay_payment_id)
    return payment


def build_receipt_email_request(payment: Payment) -> Optional[PaymentEmailRequest]:
    """
    Receipt email payload for a verified payment, or None when there is no
    address to send it to (no customer_email and user_id isn't an email).
    """
    recipient = payment.customer_email
    if not recipient:
        if payment.user_id and "@" in payment.user_id:
            recipient = payment.user_id
        else:
            logger.error(
                "No email for payment %s: customer_email is empty and user_id is not an email",
                payment.razorpay_payment_id,
            )
            return None

    return PaymentEmailRequest(
        transaction_id=payment.razorpay_payment_id,
        email=recipient,
        user_name=payment.customer_name or payment.user_id,
        amount=float(payment.amount) / 100,
        currency=payment.currency,
        date=datetime.now().isoformat(timespec="seconds"),
        description=payment.description,
        payment_id=payment.id,
        status=payment.status,
    )


def should_send_receipt(payment: Payment) -> bool:
    return (payment.status or "").upper() in RECEIPT_STATUSES
