"""
Auth service: higher-level auth operations that combine multiple lower-level services.
Keeps routers thin: routers only handle HTTP, services handle logic.
"""
import logging
from datetime import datetime, timezone

from jwt.exceptions import InvalidTokenError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.models.user import User
from app.core.security import (
    hash_password, verify_password, create_access_token, create_refresh_token,
    decode_refresh_token, decode_session_token, pwd_context,
)
from app.core.dependencies import load_user_from_payload
from app.core.exceptions import (
    ConflictException, CredentialsException, InactiveUserException, InvalidOTPException,
)
from app.schemas.auth import SignupRequest
from app.services.otp_service import create_otp_record, verify_otp_record, link_otp_to_user

logger = logging.getLogger(__name__)

# Pre-computed bcrypt hash used ONLY for constant-time comparison when the user
# doesn't exist: prevents timing attacks that reveal valid email addresses.
# Generated once at module load. Never stored anywhere or used for real auth.
_DUMMY_HASH: str = pwd_context.hash("__dummy_timing_prevention__")


def _issue_tokens(user: User) -> tuple[str, str]:
    return (
        create_access_token(str(user.id), user.role),
        create_refresh_token(str(user.id)),
    )


def send_otp(db: Session, email: str) -> str:
    """
    Creates a signup OTP for an email that isn't registered yet.
    Returns the raw OTP so the caller can email it.
    """
    if db.query(User).filter(User.email == email).first():
        logger.warning("OTP requested for already registered email %s", email)
        raise ConflictException("Email already registered")
    return create_otp_record(db, email)


def signup(db: Session, body: SignupRequest) -> tuple[User, str, str]:
    """
    Creates an active, email-verified account once the OTP checks out.
    Uniqueness is checked before the OTP so a duplicate signup doesn't burn it.
    Returns (user, access_token, refresh_token).
    """
    if db.query(User).filter(User.email == body.email).first():
        logger.warning("Signup rejected, email already registered: %s", body.email)
        raise ConflictException("Email already registered")
    if db.query(User).filter(User.username == body.username).first():
        logger.warning("Signup rejected, username already taken: %s", body.username)
        raise ConflictException("Username already taken")

    if not verify_otp_record(db, body.email, body.otp):
        db.rollback()
        raise InvalidOTPException()

    role = "USER"
    if body.role == "ADMIN":
        if settings.allow_admin_signup:
            role = "ADMIN"
        else:
            logger.warning("ADMIN role requested by %s but admin signup is disabled", body.email)

    new_user = User(
        username=body.username,
        email=body.email,
        full_name=body.full_name,
        hashed_password=hash_password(body.password),
        role=role,
        is_active=True,
        is_email_verified=True,
    )
    db.add(new_user)
    try:
        db.flush()  # flush to get the id assigned without committing
        link_otp_to_user(db, body.email, new_user.id)
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same email/username
        db.rollback()
        raise ConflictException("Email or username already registered")
    db.refresh(new_user)

    logger.info("User registered with id %s", new_user.id)
    access_token, refresh_token = _issue_tokens(new_user)
    return new_user, access_token, refresh_token


def login(db: Session, email: str, password: str) -> tuple[User, str, str]:
    """
    Validates credentials, stamps last_login and returns (user, access, refresh).

    Security: always use the same error message regardless of whether
    the email exists or the password is wrong (prevents user enumeration).
    """
    user = db.query(User).filter(User.email == email).first()
    # Always run verify_password regardless of whether the user exists.
    # This makes the response time identical for "wrong email" vs "wrong password".
    # _DUMMY_HASH is a real valid bcrypt hash: passlib won't raise on it.
    password_ok = verify_password(password, user.hashed_password if user else _DUMMY_HASH)

    if not user or not password_ok:
        logger.warning("Failed login attempt for %s", email)
        raise CredentialsException("Invalid email or password")
    if not user.is_active:
        raise InactiveUserException()

    user.last_login = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)

    logger.info("User %s logged in", user.id)
    access_token, refresh_token = _issue_tokens(user)
    return user, access_token, refresh_token


def validate_session(db: Session, token: str) -> tuple[User, str]:
    """
    Re-issues an access token for whatever session token the browser holds
    (access or refresh). Returns (user, new_access_token).
    """
    try:
        payload = decode_session_token(token)
    except InvalidTokenError:
        raise CredentialsException("Invalid or expired token")

    user = load_user_from_payload(db, payload)
    logger.info("Session validated for user %s", user.id)
    return user, create_access_token(str(user.id), user.role)


def refresh_tokens(db: Session, refresh_token: str) -> tuple[str, str]:
    """
    Exchange a valid refresh token for a new access token + refresh token.
    Refresh token rotation: old refresh token is not stored/invalidated
    (stateless JWTs).
    """
    try:
        payload = decode_refresh_token(refresh_token)
    except InvalidTokenError:
        raise CredentialsException("Invalid or expired refresh token")

    user = load_user_from_payload(db, payload)
    return _issue_tokens(user)
