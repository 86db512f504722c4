from sqlalchemy import Boolean, Column, Integer, String, TIMESTAMP, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.sql.expression import false
from app.database import Base


class EmailVerificationOtp(Base):
    """
    Hashed OTPs sent to an email address before signup.

    - Raw OTP is NEVER stored, only the bcrypt hash.
    - Requesting a new OTP marks every earlier unused OTP for the email as used.
    - user_id stays NULL until the signup it verified has created the account.
    """
    __tablename__ = "email_verification_otps"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    email = Column(String(255), nullable=False, index=True)
    otp_hash = Column(String, nullable=False)
    is_used = Column(Boolean, default=False, server_default=false(), nullable=False)
    expires_at = Column(TIMESTAMP(timezone=True), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    # ── Relationships ──────────────────────────────────────────────────────────
    user = relationship("User", back_populates="otp_records")
