"""
Email service using fastapi-mail over SMTP.

Gmail setup steps (do this once):
  1. Enable 2-Factor Authentication on your Gmail account
  2. Go to: Google Account → Security → App Passwords
  3. Create an app password for "Mail"
  4. Use that 16-character password as MAIL_PASSWORD in your .env

fastapi-mail 1.4+:
  - MAIL_STARTTLS=True, MAIL_SSL_TLS=False for port 587
  - MAIL_SSL_TLS=True, MAIL_STARTTLS=False for port 465
  - SUPPRESS_SEND=1 skips SMTP entirely; fast_mail.record_messages() still
    captures the outbox, which is what the tests use.

Every sender here is a coroutine meant for FastAPI BackgroundTasks so the
HTTP response never waits on SMTP.
"""
import io
import logging
from datetime import datetime
from html import escape
from typing import Optional

from fastapi import UploadFile
from fastapi_mail import FastMail, MessageSchema, ConnectionConfig, MessageType
from starlette.datastructures import Headers

from app.config import settings
from app.core.exceptions import EmailSendingError
from app.schemas.payment import PaymentEmailRequest, ReceiptData
from app.services.receipt_service import generate_payment_pdf

logger = logging.getLogger(__name__)

mail_config = ConnectionConfig(
    MAIL_USERNAME=settings.mail_username,
    MAIL_PASSWORD=settings.mail_password,
    MAIL_FROM=settings.mail_from,
    MAIL_FROM_NAME=settings.mail_from_name,
    MAIL_PORT=settings.mail_port,
    MAIL_SERVER=settings.mail_server,
    MAIL_STARTTLS=True,
    MAIL_SSL_TLS=False,
    USE_CREDENTIALS=True,
    VALIDATE_CERTS=True,
    SUPPRESS_SEND=1 if settings.mail_suppress_send else 0,
)

fast_mail = FastMail(mail_config)

_STATUS_COLORS = {"SUCCESS": "#28a745", "CAPTURED": "#28a745", "PENDING": "#ffc107"}


def _wrap(title: str, inner: str) -> str:
    return (
        "<!DOCTYPE html><html><head><meta charset=\"UTF-8\"></head>"
        "<body style=\"font-family: Arial, sans-serif; color: #333;\">"
        "<div style=\"max-width: 600px; margin: 0 auto; background: #f5f5f5; padding: 20px; border-radius: 8px;\">"
        "<div style=\"background: #667eea; color: white; padding: 20px; text-align: center; border-radius: 8px;\">"
        f"<h1>{title}</h1></div>"
        f"<div style=\"background: white; padding: 30px; margin-top: 20px; border-radius: 8px;\">{inner}</div>"
        "<div style=\"text-align: center; color: #999; font-size: 12px; margin-top: 20px;\">"
        f"<p>{escape(settings.app_name)} | Automated Email</p></div>"
        "</div></body></html>"
    )


async def send_otp_email(email_to: str, otp: str) -> None:
    """Email the 6-digit signup OTP. Errors propagate to the background runner."""
    body = _wrap(
        "Email Verification",
        "<p>Hello,</p><p>Your OTP for email verification is:</p>"
        "<div style=\"background: #f0f0f0; padding: 20px; text-align: center; border: 2px solid #667eea;\">"
        f"<span style=\"font-size: 32px; font-weight: bold; letter-spacing: 5px;\">{otp}</span></div>"
        f"<p>This OTP will expire in {settings.otp_expiry_minutes} minutes.</p>"
        "<p style=\"color: #999;\">If you didn't request this OTP, please ignore this email.</p>",
    )
    message = MessageSchema(
        subject="Email Verification - Your OTP",
        recipients=[email_to],
        body=body,
        subtype=MessageType.html,
    )
    await fast_mail.send_message(message)
    logger.info("OTP email sent to %s", email_to)


async def send_welcome_email(email_to: str, full_name: Optional[str]) -> None:
    """Welcome mail after signup. Best effort: a failure is logged, never raised."""
    body = _wrap(
        "Welcome!",
        f"<p>Hello {escape(full_name or email_to)},</p>"
        f"<p>Welcome to {escape(settings.app_name)}!</p>"
        "<p>Your email has been verified and your account is now active.</p>",
    )
    message = MessageSchema(
        subject=f"Welcome to {settings.app_name}!",
        recipients=[email_to],
        body=body,
        subtype=MessageType.html,
    )
    try:
        await fast_mail.send_message(message)
        logger.info("Welcome email sent to %s", email_to)
    except Exception as exc:
        logger.error("Failed to send welcome email to %s: %s", email_to, exc)


def validate_email_request(request: PaymentEmailRequest) -> None:
    """Raise ValueError when a receipt can't be sent for this request."""
    if not request.email or not request.email.strip():
        raise ValueError("Email address is required")
    if not request.transaction_id or not request.transaction_id.strip():
        raise ValueError("Transaction ID is required")
    if not request.user_name or not request.user_name.strip():
        raise ValueError("User name is required")
    if request.amount is None or request.amount <= 0:
        raise ValueError("Amount must be greater than 0")


def build_receipt_html(request: PaymentEmailRequest) -> str:
    status = request.status or "SUCCESS"
    color = _STATUS_COLORS.get(status, "#dc3545")
    rows = [
        ("Transaction ID", f"<strong>{escape(request.transaction_id)}</strong>"),
        ("Amount", f"<strong>{request.amount:.2f} {escape(request.currency or 'INR')}</strong>"),
        ("Date", escape(request.date or "")),
        ("Status", f"<span style=\"background: {color}; color: white; padding: 6px 12px; border-radius: 4px;\">{escape(status)}</span>"),
        ("Description", escape(request.description or "N/A")),
    ]
    table = "".join(
        f"<tr><td style=\"padding: 12px; font-weight: 600; width: 40%;\">{label}:</td>"
        f"<td style=\"padding: 12px;\">{value}</td></tr>"
        for label, value in rows
    )
    support = escape(settings.support_email)
    return _wrap(
        "&#10003; Payment Successful",
        f"<p>Dear {escape(request.user_name)},</p>"
        "<p>Thank you for your payment. Your receipt is attached to this email.</p>"
        f"<table style=\"width: 100%; border-collapse: collapse;\">{table}</table>"
        "<p>If you have any questions about this transaction, contact us at "
        f"<a href=\"mailto:{support}\">{support}</a>.</p>"
        f"<p style=\"color: #999;\">Generated on: {datetime.now():%Y-%m-%d %H:%M:%S}</p>",
    )


def receipt_filename(transaction_id: str) -> str:
    return f"Payment_Receipt_{transaction_id}.pdf"


async def send_payment_receipt_email(request: PaymentEmailRequest) -> None:
    """
    Send the HTML receipt with the PDF attached.
    Raises ValueError for an unusable request and EmailSendingError for
    PDF or SMTP failures.
    """
    validate_email_request(request)
    logger.info("Sending payment receipt for %s to %s", request.transaction_id, request.email)

    receipt = ReceiptData(
        transaction_id=request.transaction_id,
        payment_id=request.payment_id,
        user_name=request.user_name,
        user_email=request.email,
        amount=request.amount,
        currency=request.currency or "INR",
        payment_status=request.status or "SUCCESS",
        payment_date=request.date or datetime.now().isoformat(timespec="seconds"),
        description=request.description,
    )
    try:
        pdf_bytes = generate_payment_pdf(receipt)
    except Exception as exc:
        raise EmailSendingError(f"Failed to generate payment PDF: {exc}") from exc

    attachment = UploadFile(
        file=io.BytesIO(pdf_bytes),
        filename=receipt_filename(request.transaction_id),
        headers=Headers({"content-type": "application/pdf"}),
    )
    message = MessageSchema(
        subject=f"Payment Receipt - Transaction ID: {request.transaction_id}",
        recipients=[request.email],
        body=build_receipt_html(request),
        subtype=MessageType.html,
        attachments=[{"file": attachment, "mime_type": "application", "mime_subtype": "pdf"}],
    )
    try:
        await fast_mail.send_message(message)
    except Exception as exc:
        raise EmailSendingError(f"Failed to send payment receipt email: {exc}") from exc
    logger.info("Payment receipt email sent to %s", request.email)


async def send_payment_receipt_email_background(request: PaymentEmailRequest) -> None:
    """BackgroundTasks entry point: a receipt failure must never surface to the payer."""
    try:
        await send_payment_receipt_email(request)
    except Exception as exc:
        logger.error("Payment receipt email to %s failed: %s", request.email, exc)
