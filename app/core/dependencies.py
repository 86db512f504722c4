"""
FastAPI dependencies used across routers.
Keep this file lean: only auth/DB dependencies go here.
Business logic belongs in services/.
"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from jwt.exceptions import InvalidTokenError

from app.config import settings
from app.database import get_db
from app.core.security import decode_access_token
from app.core.exceptions import CredentialsException, InactiveUserException, ForbiddenException
from app.models.user import User

# auto_error=False: a missing header is not fatal, the authToken cookie is tried next
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_request_token(
    request: Request,
    bearer_token: Optional[str] = Depends(oauth2_scheme),
) -> Optional[str]:
    """Bearer header first, then the authToken cookie set at login."""
    if bearer_token:
        return bearer_token
    return request.cookies.get(settings.auth_cookie_name) or None


def load_user_from_payload(db: Session, payload: dict) -> User:
    """Resolve the 'sub' claim to an active user or raise 401/403."""
    sub = payload.get("sub")
    if sub is None or not str(sub).isdigit():
        raise CredentialsException()

    user = db.query(User).filter(User.id == int(sub)).first()
    if user is None:
        raise CredentialsException()
    if not user.is_active:
        raise InactiveUserException()
    return user


def get_current_user(
    token: Optional[str] = Depends(get_request_token),
    db: Session = Depends(get_db),
) -> User:
    """
    Validates the JWT access token and returns the authenticated User.

    Checks performed (in order):
    1. A token was supplied (header or cookie)
    2. Token is a valid JWT signed with our secret key and of type 'access'
    3. 'sub' claim maps to a real user
    4. User account is still active (checked on every request)
    """
    if not token:
        raise CredentialsException("Not authenticated")
    try:
        payload = decode_access_token(token)
    except InvalidTokenError:
        raise CredentialsException()

    return load_user_from_payload(db, payload)


def get_current_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """Requires the authenticated user to have the ADMIN role."""
    if not current_user.is_admin:
        raise ForbiddenException("Admin access required")
    return current_user
