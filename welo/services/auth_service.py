"""
services/auth_service.py
------------------------
Sign-up, password and federated sign-in, and sign-out.

Every new principal gets a 'company' profile. Admin access comes from the
reserved address or from an operator editing the profile row, never from
a sign-up request.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from welo.core.config import settings
from welo.core.logging import get_logger
from welo.core.security import (
    create_access_token,
    create_oauth_state,
    decode_oauth_state,
    hash_password,
    verify_password,
)
from welo.models.profile import Profile, UserRole
from welo.models.token import RevokedToken
from welo.models.user import AuthProvider, User
from welo.schemas.user import UserRegister

logger = get_logger(__name__)


class UnknownProviderError(LookupError):
    """Raised for a federated provider this deployment does not support."""


class OAuthStateError(ValueError):
    """Raised when the OAuth state is forged, expired or for another provider."""


class ProviderUnavailableError(RuntimeError):
    """Raised when the provider is not configured or its API call fails."""


_PROVIDERS: Dict[str, Dict[str, str]] = {
    AuthProvider.google.value: {
        "authorize_url": "https://accounts.google.com/o/oauth2/v2/auth",
        "token_url": "https://oauth2.googleapis.com/token",
        "userinfo_url": "https://openidconnect.googleapis.com/v1/userinfo",
        "scope": "openid email profile",
    },
}


def _provider(name: str) -> Dict[str, str]:
    spec = _PROVIDERS.get(name)
    if spec is None:
        raise UnknownProviderError(f"Unsupported sign-in provider '{name}'")
    if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
        raise ProviderUnavailableError(f"Sign-in provider '{name}' is not configured")
    return spec


class AuthService:

    @staticmethod
    async def sign_up(db: AsyncSession, data: UserRegister) -> User:
        """
        Create a password principal and its company profile.
        Does not sign the caller in. Raises ValueError on duplicate email.
        """
        email = data.email.lower()
        user = User(
            email=email,
            hashed_password=hash_password(data.password),
            auth_provider=AuthProvider.password.value,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ValueError(f"Email '{data.email}' is already registered")

        db.add(Profile(id=user.id, email=email, role=UserRole.company.value))
        await db.flush()
        await db.refresh(user)
        logger.info("Principal registered", user_id=user.id)
        return user

    @staticmethod
    async def authenticate(db: AsyncSession, email: str, password: str) -> User | None:
        """
        Verify credentials and return the User if valid, else None.
        Email lookup is case-insensitive.
        """
        result = await db.execute(select(User).where(User.email == email.lower()))
        user = result.scalar_one_or_none()
        if user is None or not verify_password(password, user.hashed_password):
            return None
        return user

    @staticmethod
    def issue_token(user: User) -> tuple[str, int]:
        """Return (access_token, expires_in_seconds)."""
        expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        token = create_access_token(subject=user.id, expires_delta=expires)
        return token, int(expires.total_seconds())

    # ── Sign-out ──────────────────────────────────────────────────────────────

    @staticmethod
    async def sign_out(db: AsyncSession, user_id: str, payload: Dict[str, Any]) -> None:
        """Revoke the presented token. Signing out twice is harmless."""
        jti = payload.get("jti")
        if not jti or await AuthService.is_revoked(db, jti):
            return
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        db.add(RevokedToken(jti=jti, user_id=user_id, expires_at=expires_at))
        await db.flush()
        logger.info("Principal signed out", user_id=user_id)

    @staticmethod
    async def is_revoked(db: AsyncSession, jti: str) -> bool:
        result = await db.execute(select(RevokedToken.jti).where(RevokedToken.jti == jti))
        return result.scalar_one_or_none() is not None

    # ── Federated sign-in ─────────────────────────────────────────────────────

    @staticmethod
    def oauth_authorize_url(provider: str, redirect_to: Optional[str] = None) -> str:
        spec = _provider(provider)
        query = urlencode({
            "client_id": settings.GOOGLE_CLIENT_ID,
            "redirect_uri": settings.OAUTH_REDIRECT_URL,
            "response_type": "code",
            "scope": spec["scope"],
            "state": create_oauth_state(provider, redirect_to),
            "prompt": "select_account",
        })
        return f"{spec['authorize_url']}?{query}"

    @staticmethod
    async def complete_oauth(
        db: AsyncSession,
        provider: str,
        code: str,
        state: str,
        client: Optional[httpx.AsyncClient] = None,
    ) -> User:
        """
        Exchange the authorization code, read the verified email and return
        the matching principal, creating it (with a company profile) on
        first sign-in.
        """
        spec = _provider(provider)
        try:
            decode_oauth_state(state, provider)
        except JWTError as exc:
            raise OAuthStateError("Invalid or expired sign-in state") from exc

        owns_client = client is None
        client = client or httpx.AsyncClient(timeout=10.0)
        try:
            token_resp = await client.post(
                spec["token_url"],
                data={
                    "code": code,
                    "client_id": settings.GOOGLE_CLIENT_ID,
                    "client_secret": settings.GOOGLE_CLIENT_SECRET,
                    "redirect_uri": settings.OAUTH_REDIRECT_URL,
                    "grant_type": "authorization_code",
                },
            )
            token_resp.raise_for_status()
            provider_token = token_resp.json()["access_token"]

            info_resp = await client.get(
                spec["userinfo_url"],
                headers={"Authorization": f"Bearer {provider_token}"},
            )
            info_resp.raise_for_status()
            info = info_resp.json()
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            logger.error("OAuth exchange failed", provider=provider, error=str(exc))
            raise ProviderUnavailableError(f"Sign-in with {provider} failed") from exc
        finally:
            if owns_client:
                await client.aclose()

        email = (info.get("email") or "").lower()
        if not email or info.get("email_verified") is False:
            raise OAuthStateError(f"{provider} did not return a verified email")

        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            user = User(email=email, hashed_password=None, auth_provider=provider)
            db.add(user)
            await db.flush()
            db.add(Profile(id=user.id, email=email, role=UserRole.company.value))
            await db.flush()
            await db.refresh(user)
            logger.info("Principal created via federated sign-in", user_id=user.id, provider=provider)
        return user
