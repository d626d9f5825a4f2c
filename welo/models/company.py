"""
models/company.py
-----------------
Company under verification, plus the auxiliary records an admin reads
during review (branding, documents).

Ownership of columns:
  - profile fields:                    owning company, before approval
  - status / rejection_reason /
    tracking_id:                       verification workflow (admins only)
  - script_installed / script_status /
    views_count / last_tracking_event: tracking pipeline

One company per principal is enforced by the unique user_id constraint.
"""

from datetime import date, datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from welo.core.config import settings
from welo.db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class CompanyStatus(str, PyEnum):
    pending = "pending"
    under_review = "under_review"
    approved = "approved"
    rejected = "rejected"


class ScriptStatus(str, PyEnum):
    not_installed = "not_installed"
    pending = "pending"
    active = "active"
    error = "error"


class Company(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "companies"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )

    # ── Profile (set at onboarding) ──────────────────────────────────────
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    website_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    phone_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    date_of_incorporation: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    terms_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    privacy_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    plan_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # ── Verification ─────────────────────────────────────────────────────
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CompanyStatus.pending.value, index=True
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tracking_id: Mapped[Optional[str]] = mapped_column(
        String(64), unique=True, nullable=True, index=True
    )

    # ── Tracking ─────────────────────────────────────────────────────────
    script_installed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    script_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ScriptStatus.not_installed.value
    )
    views_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_tracking_event: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    branding: Mapped[list["CompanyBranding"]] = relationship(
        "CompanyBranding", back_populates="company", cascade="all, delete-orphan"
    )
    documents: Mapped[list["CompanyDocument"]] = relationship(
        "CompanyDocument", back_populates="company", cascade="all, delete-orphan"
    )

    @property
    def is_approved(self) -> bool:
        return self.status == CompanyStatus.approved.value

    @property
    def public_url(self) -> Optional[str]:
        """Public badge page; exists only once a tracking id has been minted."""
        if not self.tracking_id:
            return None
        return f"{settings.PUBLIC_BADGE_BASE_URL}/{self.tracking_id}"

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.company_name} status={self.status}>"


class CompanyBranding(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "company_branding"

    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    logo_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    cover_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    primary_color: Mapped[str] = mapped_column(String(20), nullable=False, default="#3b82f6")
    display_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    company: Mapped["Company"] = relationship("Company", back_populates="branding")


class CompanyDocument(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "company_documents"

    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_url: Mapped[str] = mapped_column(String(2048), nullable=False)

    company: Mapped["Company"] = relationship("Company", back_populates="documents")
