"""
models/profile.py
-----------------
Stored role record, one row per principal.

Role design:
  - 'admin':   reviews and approves/rejects companies, sees platform analytics.
  - 'company': onboards one company, installs the tracking script, sees its
               own analytics.

A missing or unreadable profile always means 'company'; nothing in this
table can make a principal an admin by omission.
"""

from enum import Enum as PyEnum

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from welo.db.base import Base, TimestampMixin


class UserRole(str, PyEnum):
    admin = "admin"
    company = "company"


class Profile(Base, TimestampMixin):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.company.value
    )

    user: Mapped["User"] = relationship("User", back_populates="profile")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Profile id={self.id} role={self.role}>"
