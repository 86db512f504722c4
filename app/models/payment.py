from sqlalchemy import Column, Integer, Numeric, String, Text, TIMESTAMP, Enum as SAEnum
from sqlalchemy.sql import func
from app.database import Base

PAYMENT_STATUSES = ("PENDING", "AUTHORIZED", "CAPTURED", "FAILED", "REFUNDED", "CANCELLED")


class Payment(Base):
    """
    One row per Razorpay order.

    Lifecycle:
      PENDING   → order created, user hasn't paid yet
      CAPTURED  → signature verified after checkout
      FAILED    → signature mismatch or verification error (see error_message)
      REFUNDED  → refund requested through the gateway
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=False, index=True)
    razorpay_order_id = Column(String(100), unique=True, nullable=False, index=True)
    razorpay_payment_id = Column(String(100), nullable=True, index=True)
    razorpay_signature = Column(String(255), nullable=True)
    # Amount in paise, as sent to Razorpay
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(10), nullable=False, default="INR", server_default="INR")
    description = Column(String(500), nullable=True)
    receipt = Column(String(40), nullable=True)
    status = Column(
        SAEnum(*PAYMENT_STATUSES, name="payment_status"),
        nullable=False,
        default="PENDING",
        server_default="PENDING",
    )
    payment_method = Column(String(50), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(30), nullable=True)
    customer_name = Column(String(150), nullable=True)
    notes = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
