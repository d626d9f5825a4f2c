"""
core/security.py
----------------
Password hashing and JWT token utilities.

Design decisions:
  - bcrypt work factor comes from settings (12 in production).
  - Access tokens carry only sub (principal id) and jti. The role is
    resolved on every request, so a role change or the reserved admin
    address takes effect without re-issuing tokens.
  - jti lets sign-out revoke a single token before it expires.
  - OAuth state values are short-lived JWTs of their own type so they can
    never be replayed as access tokens.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from welo.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS
)

ACCESS_TOKEN_TYPE = "access"
OAUTH_STATE_TYPE = "oauth_state"


# ── Password Utilities ────────────────────────────────────────────────────────

def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the plain-text password."""
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    """Constant-time comparison of plain password against stored hash."""
    if not hashed:
        # Federated principals have no password
        return False
    return pwd_context.verify(plain, hashed)


# ── JWT Utilities ─────────────────────────────────────────────────────────────

def create_access_token(
    subject: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Mint a JWT access token.

    Args:
        subject: Principal UUID (stored in 'sub' claim).
        expires_delta: Optional custom expiry; defaults to settings value.

    Returns:
        Signed JWT string.
    """
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload: Dict[str, Any] = {
        "sub": subject,
        "jti": uuid.uuid4().hex,
        "typ": ACCESS_TOKEN_TYPE,
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT access token.

    Raises:
        JWTError: If the token is invalid, expired, tampered with, or is
            not an access token.

    Returns:
        Raw payload dict.
    """
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("typ") != ACCESS_TOKEN_TYPE:
        raise JWTError("Not an access token")
    return payload


def create_oauth_state(provider: str, redirect_to: Optional[str] = None) -> str:
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=settings.OAUTH_STATE_EXPIRE_MINUTES
    )
    payload: Dict[str, Any] = {
        "typ": OAUTH_STATE_TYPE,
        "provider": provider,
        "redirect_to": redirect_to,
        "nonce": uuid.uuid4().hex,
        "exp": expire,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_oauth_state(state: str, provider: str) -> Dict[str, Any]:
    """Raises JWTError when the state is forged, expired, or for another provider."""
    payload = jwt.decode(state, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("typ") != OAUTH_STATE_TYPE or payload.get("provider") != provider:
        raise JWTError("OAuth state mismatch")
    return payload
