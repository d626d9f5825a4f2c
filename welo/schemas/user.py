"""
schemas/user.py
---------------
Pydantic models for sign-up, sign-in, federated sign-in and sessions.

Security note:
  - hashed_password is NEVER included in any response schema.
  - Passwords require min 8 chars; enforce stronger rules in production.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from welo.models.profile import UserRole


class UserRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)


class UserRead(BaseModel):
    id: str
    email: str
    auth_provider: str
    created_at: datetime

    model_config = {"from_attributes": True}


class SessionRead(BaseModel):
    """The signed-in principal together with its resolved role."""
    user: UserRead
    role: UserRole


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserRead
    role: UserRole


class OAuthAuthorizeResponse(BaseModel):
    provider: str
    url: str


class OAuthCallback(BaseModel):
    code: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    detail: str
    redirect_to: Optional[str] = None
