"""
Auth schemas: request bodies and responses for OTP, signup, login, and token operations.
"""
from pydantic import BaseModel, EmailStr, field_validator, model_validator
from typing import Optional
from datetime import datetime
import re


class SendOtpRequest(BaseModel):
    email: EmailStr


class SignupRequest(BaseModel):
    username: str
    email: EmailStr
    full_name: str
    password: str
    confirm_password: str
    otp: str
    role: Optional[str] = None  # "USER" | "ADMIN"

    @field_validator("username")
    @classmethod
    def username_valid(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3 or len(v) > 50:
            raise ValueError("Username must be between 3 and 50 characters")
        if not re.match(r"^[a-zA-Z0-9_.]+$", v):
            raise ValueError("Username can only contain letters, numbers, dots, and underscores")
        return v

    @field_validator("full_name")
    @classmethod
    def full_name_present(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Full name is required")
        if len(v) > 150:
            raise ValueError("Full name must be at most 150 characters")
        return v

    @field_validator("password")
    @classmethod
    def password_strong(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v

    @field_validator("otp")
    @classmethod
    def otp_format(cls, v: str) -> str:
        v = v.strip()
        if not re.fullmatch(r"\d{6}", v):
            raise ValueError("OTP must be 6 digits")
        return v

    @field_validator("role")
    @classmethod
    def role_valid(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        v = v.strip().upper()
        if v not in {"USER", "ADMIN"}:
            raise ValueError("role must be USER or ADMIN")
        return v

    @model_validator(mode="after")
    def passwords_match(self) -> "SignupRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class MessageResponse(BaseModel):
    message: str


class OtpResponse(BaseModel):
    message: str
    success: bool


class SignupResponse(BaseModel):
    id: int
    username: str
    email: str
    full_name: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None
    token: str
    refresh_token: str
    expires_in: int
    message: str
