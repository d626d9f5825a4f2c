"""
dependencies.py
---------------
FastAPI dependency injection functions for authentication and authorisation.

Flow:
  1. OAuth2PasswordBearer extracts the Bearer token (optional: anonymous
     callers are allowed to reach the guard so it can redirect them).
  2. decode_access_token validates the JWT; revoked tokens are rejected.
  3. The principal is re-loaded from the DB and its role resolved by the
     identity service. The result is a SessionContext, the per-request
     stand-in for the dashboard's session store.
  4. require_screen(path) runs the route guard for a declared screen and
     raises RouteDenied unless the decision is "render".

The role is never read from the token, so a principal whose profile
changes (or who holds the reserved admin address) is treated correctly on
the very next request.
"""

from dataclasses import dataclass
from typing import Annotated, Any, Dict, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from welo.core.guard import GuardContext, GuardDecision, evaluate_route
from welo.core.logging import get_logger
from welo.core.screens import get_screen
from welo.core.security import decode_access_token
from welo.db.session import get_db
from welo.models.company import Company
from welo.models.profile import UserRole
from welo.models.user import User
from welo.services.auth_service import AuthService
from welo.services.company_service import CompanyService
from welo.services.identity_service import resolve_role

logger = get_logger(__name__)

# tokenUrl must match the login endpoint path
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


class RouteDenied(Exception):
    """Raised by require_screen; rendered by the handler in main.py."""

    def __init__(self, path: str, decision: GuardDecision) -> None:
        super().__init__(decision.action.value)
        self.path = path
        self.decision = decision


@dataclass
class SessionContext:
    principal: User
    role: UserRole
    token_payload: Dict[str, Any]
    company: Optional[Company] = None

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.admin


async def get_optional_session(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Optional[SessionContext]:
    """
    Resolve the caller's session, or None when there is no usable token.
    Invalid, expired and revoked tokens all count as "not signed in".
    """
    if not token:
        return None
    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        logger.warning("JWT decode failed", error=str(exc))
        return None

    user_id = payload.get("sub")
    jti = payload.get("jti")
    if not user_id or not jti:
        return None
    if await AuthService.is_revoked(db, jti):
        logger.info("Revoked token presented", user_id=user_id)
        return None

    # Always re-verify against DB so deleted principals are rejected
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        logger.warning("User from valid JWT not found in DB", user_id=user_id)
        return None

    role = await resolve_role(db, user)
    return SessionContext(principal=user, role=role, token_payload=payload)


async def build_guard_context(
    db: AsyncSession, session: Optional[SessionContext], needs_company: bool
) -> GuardContext:
    if session is None:
        return GuardContext(is_authenticated=False)

    company = None
    if needs_company and session.role is UserRole.company:
        company = await CompanyService.get_for_owner(db, session.principal.id)
        session.company = company

    return GuardContext(
        is_authenticated=True,
        role=session.role,
        company_approved=bool(company and company.is_approved),
        script_installed=bool(company and company.script_installed),
    )


def require_screen(path: str):
    """
    Dependency factory: guard a route with the requirements declared for
    `path` in core/screens.py and return the caller's SessionContext.

    Usage:
        @router.get("/statistics")
        async def handler(session: Annotated[SessionContext, Depends(require_screen("/statistics"))]):
            ...
    """
    requirement = get_screen(path)

    async def _guard(
        session: Annotated[Optional[SessionContext], Depends(get_optional_session)],
        db: Annotated[AsyncSession, Depends(get_db)],
    ) -> SessionContext:
        context = await build_guard_context(db, session, requirement.needs_company_state)
        decision = evaluate_route(requirement, context)
        if not decision.allowed:
            raise RouteDenied(requirement.path, decision)
        return session

    return _guard


AdminSession = Annotated[SessionContext, Depends(require_screen("/admin"))]
