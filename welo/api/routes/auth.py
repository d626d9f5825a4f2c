"""
api/routes/auth.py
------------------
Authentication endpoints.

POST /auth/register                     — Create a principal (no sign-in).
POST /auth/login                        — Exchange credentials for a JWT.
                                          OAuth2 form data (Swagger UI).
GET  /auth/oauth/{provider}/authorize   — Provider URL to redirect the browser to.
POST /auth/oauth/{provider}/callback    — Exchange the provider code for a JWT.
POST /auth/logout                       — Revoke the presented token.
GET  /auth/me                           — Current principal and resolved role.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from welo.core.guard import role_home
from welo.db.session import get_db
from welo.dependencies import SessionContext, get_optional_session
from welo.models.user import User
from welo.schemas.user import (
    MessageResponse,
    OAuthAuthorizeResponse,
    OAuthCallback,
    SessionRead,
    TokenResponse,
    UserRead,
    UserRegister,
)
from welo.services.auth_service import (
    AuthService,
    OAuthStateError,
    ProviderUnavailableError,
    UnknownProviderError,
)
from welo.services.identity_service import resolve_role

router = APIRouter(prefix="/auth", tags=["Authentication"])

_NOT_AUTHENTICATED = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Not authenticated",
    headers={"WWW-Authenticate": "Bearer"},
)


def _require_session(session: Optional[SessionContext]) -> SessionContext:
    if session is None:
        raise _NOT_AUTHENTICATED
    return session


async def _token_response(db: AsyncSession, user: User) -> TokenResponse:
    token, expires_in = AuthService.issue_token(user)
    return TokenResponse(
        access_token=token,
        token_type="bearer",
        expires_in=expires_in,
        user=UserRead.model_validate(user),
        role=await resolve_role(db, user),
    )


@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
)
async def register(
    body: UserRegister,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UserRead:
    """
    Create a principal with a 'company' profile. The caller is NOT signed
    in; they must log in afterwards.
    """
    try:
        user = await AuthService.sign_up(db, body)
        return UserRead.model_validate(user)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login and receive a JWT access token",
)
async def login(
    # OAuth2PasswordRequestForm sends username + password as form data.
    # The "username" field contains the email address.
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TokenResponse:
    user = await AuthService.authenticate(db, form_data.username, form_data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return await _token_response(db, user)


@router.get(
    "/oauth/{provider}/authorize",
    response_model=OAuthAuthorizeResponse,
    summary="Start federated sign-in",
)
async def oauth_authorize(
    provider: str,
    redirect_to: Optional[str] = Query(default=None, max_length=512),
) -> OAuthAuthorizeResponse:
    try:
        url = AuthService.oauth_authorize_url(provider, redirect_to)
    except UnknownProviderError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ProviderUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return OAuthAuthorizeResponse(provider=provider, url=url)


@router.post(
    "/oauth/{provider}/callback",
    response_model=TokenResponse,
    summary="Finish federated sign-in",
)
async def oauth_callback(
    provider: str,
    body: OAuthCallback,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TokenResponse:
    try:
        user = await AuthService.complete_oauth(db, provider, body.code, body.state)
    except UnknownProviderError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except OAuthStateError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except ProviderUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    return await _token_response(db, user)


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Sign out (revoke the current token)",
)
async def logout(
    session: Annotated[Optional[SessionContext], Depends(get_optional_session)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    session = _require_session(session)
    await AuthService.sign_out(db, session.principal.id, session.token_payload)
    return MessageResponse(detail="Signed out", redirect_to="/auth")


@router.get(
    "/me",
    response_model=SessionRead,
    summary="Get the current session",
)
async def get_me(
    session: Annotated[Optional[SessionContext], Depends(get_optional_session)],
) -> SessionRead:
    session = _require_session(session)
    return SessionRead(user=UserRead.model_validate(session.principal), role=session.role)


@router.get(
    "/home",
    response_model=MessageResponse,
    summary="Where the current principal should land after sign-in",
)
async def get_home(
    session: Annotated[Optional[SessionContext], Depends(get_optional_session)],
) -> MessageResponse:
    if session is None:
        return MessageResponse(detail="Not authenticated", redirect_to="/auth")
    return MessageResponse(detail=session.role.value, redirect_to=role_home(session.role))
