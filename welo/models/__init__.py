"""
models/__init__.py
------------------
Re-export all models so create_tables.py (and tests) can import Base and
discover all tables via a single import:

    from welo.models import Base
"""

from welo.db.base import Base
from welo.models.company import (
    Company,
    CompanyBranding,
    CompanyDocument,
    CompanyStatus,
    ScriptStatus,
)
from welo.models.profile import Profile, UserRole
from welo.models.token import RevokedToken
from welo.models.tracking import TrackingEvent
from welo.models.user import AuthProvider, User

__all__ = [
    "Base",
    "AuthProvider",
    "Company",
    "CompanyBranding",
    "CompanyDocument",
    "CompanyStatus",
    "Profile",
    "RevokedToken",
    "ScriptStatus",
    "TrackingEvent",
    "User",
    "UserRole",
]
