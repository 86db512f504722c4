"""
Security utilities: password hashing and JWT token management.
Tokens are PyJWT HS256; passwords are bcrypt via passlib.
"""
import jwt
from jwt.exceptions import InvalidTokenError
from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from app.config import settings

# ── Password Hashing ──────────────────────────────────────────────────────────
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# ── JWT Token Creation ────────────────────────────────────────────────────────

def access_token_expires_in() -> int:
    """Lifetime of an access token in seconds (reported to clients as expires_in)."""
    return settings.access_token_expire_minutes * 60


def create_access_token(user_id: str, role: str = "USER") -> str:
    """
    Access token used on every authenticated request (default 24 h).
    Carries the user id as 'sub' and the role for the frontend's convenience;
    the backend always re-reads the role from the DB.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "role": role,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def create_refresh_token(user_id: str) -> str:
    """Long-lived refresh token (default 7 days). Carries no role."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "type": "refresh",
        "iat": now,
        "exp": now + timedelta(days=settings.refresh_token_expire_days),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def _decode(token: str, allowed_types: tuple[str, ...]) -> dict:
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    if payload.get("type") not in allowed_types:
        raise InvalidTokenError(f"Token type must be one of {allowed_types}")
    return payload


def decode_access_token(token: str) -> dict:
    """
    Decodes and validates an access token.
    Raises jwt.exceptions.InvalidTokenError (or subclass) on any failure.
    The caller is responsible for converting this into an HTTPException.
    """
    return _decode(token, ("access",))


def decode_refresh_token(token: str) -> dict:
    """Decodes and validates a refresh token."""
    return _decode(token, ("refresh",))


def decode_session_token(token: str) -> dict:
    """
    Accepts either token type. Used by /auth/validate, where the browser
    presents whatever sits in the authToken cookie.
    """
    return _decode(token, ("access", "refresh"))
