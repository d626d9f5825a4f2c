"""
models/user.py
--------------
Principal (authenticated identity) ORM model.

A principal is what the auth layer knows about a person: an id, an email
and, for password sign-ins, a bcrypt hash. Access class is NOT stored here;
it lives in the profiles table and is resolved per request (see
services/identity_service.py).

The hashed_password column stores bcrypt hashes only. Plain text is
never stored and never logged. Federated principals have no hash.
"""

from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from welo.db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class AuthProvider(str, PyEnum):
    password = "password"
    google = "google"


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False, index=True
    )
    hashed_password: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    auth_provider: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AuthProvider.password.value
    )

    # Relationships
    profile: Mapped[Optional["Profile"]] = relationship(  # noqa: F821
        "Profile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"
