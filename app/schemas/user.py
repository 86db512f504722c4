"""
User schemas: public profile views.
"""
from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime


class UserOut(BaseModel):
    """
    Public-safe user representation.
    hashed_password is never included: Pydantic only exposes fields declared here.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    full_name: Optional[str] = None
    role: str
    is_active: bool
    is_email_verified: bool
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None


class UserInfo(BaseModel):
    """Embedded in login/validate responses."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    full_name: Optional[str] = None
    role: str


class AuthResponse(BaseModel):
    """Returned by login and validate. refresh_token is only present on login."""
    token: str
    refresh_token: Optional[str] = None
    user: UserInfo
    expires_in: int
    message: str
