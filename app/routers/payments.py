"""
Payments router: Razorpay checkout, lookups, refunds, and receipt helpers.

Endpoints:
  POST /api/payment/create-order      → Razorpay order + PENDING row
  POST /api/payment/verify            → signature check, CAPTURED/FAILED, receipt email
  GET  /api/payment/order/{order_id}
  GET  /api/payment/payment/{payment_id}
  GET  /api/payment/user/{user_id}    → newest first
  POST /api/payment/refund            → query params: payment_id, refund_amount, reason
  GET  /api/payment/key               → public Razorpay key id for the checkout widget
  GET  /api/payment/health
  POST /api/payment/test-email        → admin only, sends a sample receipt
  GET  /api/payment/verify-qr         → static page that decodes a receipt QR code
"""
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, BackgroundTasks, Query
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.core.dependencies import get_current_user, get_current_admin
from app.models.user import User
from app.schemas.payment import (
    CreatePaymentRequest, CreateOrderResponse, PaymentVerificationRequest,
    PaymentResponse, RazorpayKeyResponse, EmailCheckRequest, PaymentEmailRequest,
)
from app.services import payment_service
from app.services.email_service import send_payment_receipt_email_background

logger = logging.getLogger(__name__)

router = APIRouter()

VERIFY_QR_PAGE = Path(__file__).resolve().parent.parent / "static" / "verify-qr.html"


@router.post("/create-order", response_model=CreateOrderResponse)
def create_order(
    body: CreatePaymentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Step 1 of checkout. Amount is in paise (₹1 = 100).
    The frontend opens Razorpay checkout with the returned order id.
    """
    return payment_service.create_payment_order(db, body)


@router.post("/verify", response_model=PaymentResponse)
def verify(
    body: PaymentVerificationRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Step 2 of checkout. Called with the three values Razorpay's success
    callback hands to the frontend. A receipt is emailed in the background;
    email problems never fail the verification.
    """
    payment, captured_now = payment_service.verify_payment(db, body)

    if not captured_now:
        logger.info("Payment %s was already verified, no receipt sent", payment.razorpay_payment_id)
    elif payment_service.should_send_receipt(payment):
        email_request = payment_service.build_receipt_email_request(payment)
        if email_request is not None:
            background_tasks.add_task(send_payment_receipt_email_background, email_request)
            logger.info("Receipt email queued for payment %s", payment.razorpay_payment_id)
    else:
        logger.info("Payment %s status is %s, no receipt sent", payment.razorpay_payment_id, payment.status)

    return payment


@router.get("/order/{order_id}", response_model=PaymentResponse)
def get_by_order(
    order_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return payment_service.get_payment_by_order_id(db, order_id)


@router.get("/payment/{payment_id}", response_model=PaymentResponse)
def get_by_payment(
    payment_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return payment_service.get_payment_by_payment_id(db, payment_id)


@router.get("/user/{user_id}", response_model=list[PaymentResponse])
def get_user_payments(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return payment_service.get_user_payments(db, user_id)


@router.post("/refund", response_model=PaymentResponse)
def refund(
    payment_id: str = Query(..., min_length=1),
    refund_amount: Optional[int] = Query(None, gt=0, description="Paise; omit for a full refund"),
    reason: str = Query("Refund requested by user"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return payment_service.refund_payment(db, payment_id, refund_amount=refund_amount, reason=reason)


@router.get("/key", response_model=RazorpayKeyResponse)
def get_key():
    """Public key id only. The secret never leaves the server."""
    return {"keyId": settings.razorpay_key_id}


@router.get("/health")
def health():
    return {
        "status": "Payment service is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/test-email")
def test_email(
    body: EmailCheckRequest,
    background_tasks: BackgroundTasks,
    admin: User = Depends(get_current_admin),
):
    """Queue a sample receipt email to check SMTP and PDF generation end to end."""
    email_request = PaymentEmailRequest(
        transaction_id=f"TEST-{int(time.time() * 1000)}",
        email=body.email,
        user_name="Test User",
        amount=999.99,
        currency="INR",
        date=datetime.now().isoformat(timespec="seconds"),
        description="This is a test payment receipt email",
        payment_id=1,
        status="SUCCESS",
    )
    background_tasks.add_task(send_payment_receipt_email_background, email_request)
    logger.info("Test receipt email queued for %s by admin %s", body.email, admin.id)

    return {
        "message": "Test email submitted. Check your inbox shortly.",
        "email": body.email,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/verify-qr", response_class=HTMLResponse)
def verify_qr():
    """
    Receipt verification page. The `data` query parameter is decoded by the
    page's own script, so the server only serves the static file.
    """
    return HTMLResponse(VERIFY_QR_PAGE.read_text(encoding="utf-8"))
