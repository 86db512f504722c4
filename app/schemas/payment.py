"""
Payment schemas: Razorpay order/verify/refund bodies, API responses, and the
internal receipt payloads handed to the email and PDF services.
"""
from pydantic import BaseModel, EmailStr, field_validator, ConfigDict
from typing import Optional
from datetime import datetime


class CreatePaymentRequest(BaseModel):
    user_id: str
    amount: int                     # in paise (smallest currency unit)
    currency: Optional[str] = None  # defaults to INR
    description: Optional[str] = None
    receipt: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_name: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("user_id")
    @classmethod
    def user_id_present(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("user_id is required")
        return v

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("amount must be greater than 0")
        return v

    @field_validator("receipt")
    @classmethod
    def receipt_length(cls, v: Optional[str]) -> Optional[str]:
        # Razorpay rejects receipts longer than 40 characters
        if v is not None and len(v) > 40:
            raise ValueError("receipt must be at most 40 characters")
        return v


class CreateOrderResponse(BaseModel):
    razorpay_order_id: str
    amount: int
    currency: str
    status: str
    message: str


class PaymentVerificationRequest(BaseModel):
    """All three fields come from Razorpay's checkout success callback."""
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str

    @field_validator("razorpay_order_id", "razorpay_payment_id", "razorpay_signature")
    @classmethod
    def not_blank(cls, v: str, info) -> str:
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} is required")
        return v


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    razorpay_order_id: str
    razorpay_payment_id: Optional[str] = None
    amount: float
    currency: str
    description: Optional[str] = None
    status: str
    payment_method: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_name: Optional[str] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RazorpayKeyResponse(BaseModel):
    keyId: str


class EmailCheckRequest(BaseModel):
    email: EmailStr


class PaymentEmailRequest(BaseModel):
    """Everything the receipt email needs. `amount` is in major units (rupees)."""
    transaction_id: str
    email: str
    user_name: str
    amount: float
    currency: Optional[str] = "INR"
    date: Optional[str] = None
    description: Optional[str] = None
    payment_id: Optional[int] = None
    status: Optional[str] = None


class ReceiptData(BaseModel):
    """Fields printed on the PDF receipt and encoded into its QR code."""
    transaction_id: Optional[str] = None
    payment_id: Optional[int] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    payment_status: Optional[str] = None
    payment_date: Optional[str] = None
    description: Optional[str] = None
