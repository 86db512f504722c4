"""
OTP service: generation, storage (hashed), and verification.

Security design decisions:
  1. Raw OTP is NEVER stored: only bcrypt hash. If DB is breached, OTPs are useless.
  2. New OTP request invalidates all previous unused OTPs for the same email.
  3. OTPs expire after settings.otp_expiry_minutes (10 by default).
  4. secrets.randbelow() is cryptographically secure (unlike random.randint).
  5. Brute-force of 6-digit code is limited by slowapi at the HTTP layer.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from sqlalchemy.orm import Session

from app.config import settings
from app.models.otp import EmailVerificationOtp
from app.core.security import pwd_context

logger = logging.getLogger(__name__)


def generate_otp() -> str:
    """
    Generate a cryptographically secure 6-digit OTP.
    secrets.randbelow(900000) gives 0–899999, +100000 gives 100000–999999.
    """
    return str(secrets.randbelow(900000) + 100000)


def create_otp_record(db: Session, email: str) -> str:
    """
    Creates a new OTP record for `email` and returns the raw OTP.

    Earlier unused OTPs for the same email are marked used first, so only the
    most recently emailed code can ever succeed.
    """
    db.query(EmailVerificationOtp).filter(
        EmailVerificationOtp.email == email,
        EmailVerificationOtp.is_used == False,  # noqa: E712
    ).update({"is_used": True}, synchronize_session=False)

    raw_otp = generate_otp()
    record = EmailVerificationOtp(
        email=email,
        otp_hash=pwd_context.hash(raw_otp),
        expires_at=datetime.now(timezone.utc) + timedelta(minutes=settings.otp_expiry_minutes),
    )
    db.add(record)
    db.commit()
    logger.info("OTP issued for %s", email)
    return raw_otp


def verify_otp_record(db: Session, email: str, otp: str) -> bool:
    """
    Verifies an OTP against the newest unused, unexpired record for `email`.
    On success the record is marked used (one-time use) but NOT committed;
    the caller commits it together with whatever the OTP unlocked.
    """
    record = (
        db.query(EmailVerificationOtp)
        .filter(
            EmailVerificationOtp.email == email,
            EmailVerificationOtp.is_used == False,  # noqa: E712
            EmailVerificationOtp.expires_at > datetime.now(timezone.utc),
        )
        .order_by(EmailVerificationOtp.id.desc())
        .first()
    )

    if not record:
        logger.warning("No active OTP for %s", email)
        return False

    if not pwd_context.verify(otp, record.otp_hash):
        logger.warning("OTP mismatch for %s", email)
        return False

    record.is_used = True
    db.flush()
    return True


def link_otp_to_user(db: Session, email: str, user_id: int) -> None:
    """Attach the OTP rows of a just-created account to its user id."""
    db.query(EmailVerificationOtp).filter(
        EmailVerificationOtp.email == email,
        EmailVerificationOtp.user_id.is_(None),
    ).update({"user_id": user_id}, synchronize_session=False)
