"""
services/identity_service.py
----------------------------
Maps an authenticated principal to its role.

Security invariant:
  An unknown role is 'company', never 'admin'. Only two things make a
  principal an admin: the reserved ADMIN_EMAIL address, or a stored
  profile that says so. A missing profile, an unrecognised stored value
  and a failed lookup all fall back to 'company'.
"""

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from welo.core.config import settings
from welo.core.logging import get_logger
from welo.models.profile import Profile, UserRole
from welo.models.user import User

logger = get_logger(__name__)


def is_reserved_admin(email: str) -> bool:
    return bool(settings.ADMIN_EMAIL) and email == settings.ADMIN_EMAIL


async def resolve_role(db: AsyncSession, principal: User) -> UserRole:
    if is_reserved_admin(principal.email):
        return UserRole.admin

    try:
        result = await db.execute(select(Profile.role).where(Profile.id == principal.id))
        stored = result.scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.warning("Role lookup failed, defaulting to company", user_id=principal.id, error=str(exc))
        return UserRole.company

    if stored is None:
        return UserRole.company

    try:
        return UserRole(stored)
    except ValueError:
        logger.warning("Unknown stored role, defaulting to company", user_id=principal.id, role=stored)
        return UserRole.company
