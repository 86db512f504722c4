"""
Auth router: OTP, signup, login, session validation, token refresh, logout.

Signup flow:
  1. POST /api/auth/send-otp → OTP emailed (only for unregistered emails)
  2. POST /api/auth/signup   → verify OTP + create verified account → tokens + cookie

Login (direct, no OTP):
  POST /api/auth/login → validate credentials → tokens + cookie

Browser sessions:
  POST /api/auth/validate → re-issue an access token from the authToken cookie
  POST /api/auth/logout   → clear the cookie
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, BackgroundTasks, Request, Response
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.core.rate_limiter import limiter
from app.core.dependencies import get_request_token
from app.core.exceptions import CredentialsException
from app.core.security import access_token_expires_in
from app.schemas.auth import (
    SendOtpRequest, SignupRequest, LoginRequest, RefreshTokenRequest,
    TokenResponse, MessageResponse, OtpResponse, SignupResponse,
)
from app.schemas.user import AuthResponse, UserInfo
from app.services import auth_service
from app.services.email_service import send_otp_email, send_welcome_email

logger = logging.getLogger(__name__)

router = APIRouter()


def set_auth_cookie(response: Response, token: str) -> None:
    """HttpOnly session cookie read back by /validate and get_current_user."""
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.auth_cookie_max_age,
        path="/",
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
    )


# ── OTP ───────────────────────────────────────────────────────────────────────

@router.post("/send-otp", response_model=OtpResponse)
@limiter.limit("3/minute")
async def send_otp(
    request: Request,
    body: SendOtpRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Email a signup OTP. Rejects emails that already have an account (409).
    The email is sent in the background so the response doesn't wait on SMTP.
    """
    raw_otp = auth_service.send_otp(db, body.email)
    background_tasks.add_task(send_otp_email, body.email, raw_otp)
    return {"message": "OTP sent successfully to your email", "success": True}


# ── Signup ────────────────────────────────────────────────────────────────────

@router.post("/signup", response_model=SignupResponse, status_code=201)
@limiter.limit("5/minute")
async def signup(
    request: Request,
    response: Response,
    body: SignupRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """Verify the OTP, create the account, and sign the user in."""
    user, access_token, refresh_token = auth_service.signup(db, body)

    set_auth_cookie(response, access_token)
    background_tasks.add_task(send_welcome_email, user.email, user.full_name)

    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "full_name": user.full_name,
        "role": user.role,
        "created_at": user.created_at,
        "token": access_token,
        "refresh_token": refresh_token,
        "expires_in": access_token_expires_in(),
        "message": "User registered successfully",
    }


# ── Login ─────────────────────────────────────────────────────────────────────

@router.post("/login", response_model=AuthResponse)
@limiter.limit("10/minute")
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: Session = Depends(get_db),
):
    """Login with email and password. Returns tokens immediately."""
    user, access_token, refresh_token = auth_service.login(db, email=body.email, password=body.password)

    set_auth_cookie(response, access_token)
    return {
        "token": access_token,
        "refresh_token": refresh_token,
        "user": UserInfo.model_validate(user),
        "expires_in": access_token_expires_in(),
        "message": "Login successful",
    }


# ── Session ───────────────────────────────────────────────────────────────────

@router.post("/validate", response_model=AuthResponse, response_model_exclude_none=True)
@limiter.limit("30/minute")
async def validate(
    request: Request,
    response: Response,
    token: Optional[str] = Depends(get_request_token),
    db: Session = Depends(get_db),
):
    """
    Exchange the token the browser already holds (Bearer header or authToken
    cookie, access or refresh) for a fresh access token.
    """
    if not token:
        logger.warning("Session validation without a token")
        raise CredentialsException("No authentication token found in cookie or Authorization header")

    user, access_token = auth_service.validate_session(db, token)

    set_auth_cookie(response, access_token)
    return {
        "token": access_token,
        "user": UserInfo.model_validate(user),
        "expires_in": access_token_expires_in(),
        "message": "Token refreshed successfully",
    }


@router.post("/refresh", response_model=TokenResponse)
@limiter.limit("20/minute")
async def refresh_token(
    request: Request,
    body: RefreshTokenRequest,
    db: Session = Depends(get_db),
):
    """Exchange a valid refresh token for a new access token + refresh token."""
    new_access, new_refresh = auth_service.refresh_tokens(db, body.refresh_token)
    return {
        "access_token": new_access,
        "refresh_token": new_refresh,
        "token_type": "bearer",
    }


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
    )
    return {"message": "Logged out successfully"}


@router.get("/health", response_model=MessageResponse)
def health():
    return {"message": "Auth service is running"}
