"""
models/tracking.py
------------------
Append-only badge view events reported by the tracking script.

The visitor IP is never stored in clear: ip_hash is a salted SHA-256,
enough to count unique visitors without keeping personal data.
"""

from typing import Optional

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from welo.db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class TrackingEvent(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "tracking_events"

    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    event_type: Mapped[str] = mapped_column(String(50), nullable=False, default="badge_view")
    page_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    referrer: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ip_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    device_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    browser: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    def __repr__(self) -> str:
        return f"<TrackingEvent id={self.id} company_id={self.company_id}>"
