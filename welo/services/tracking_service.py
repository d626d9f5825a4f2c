"""
services/tracking_service.py
----------------------------
Badge view ingestion and tracking-script installation checks.

Script status lifecycle (independent of approval status):
  not_installed → pending    company asked for a check, nothing received yet
  *             → active     an event arrived within the verification window
  active        → error      events were seen once but none recently

Only approved companies with a tracking id accept events.
"""

import hashlib
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from welo.core.config import settings
from welo.core.logging import get_logger
from welo.models.company import Company, CompanyStatus, ScriptStatus
from welo.models.tracking import TrackingEvent

logger = get_logger(__name__)

BADGE_VIEW = "badge_view"

_BROWSERS = (
    ("Edge", re.compile(r"Edg(e|A|iOS)?/")),
    ("Opera", re.compile(r"OPR/|Opera")),
    ("Chrome", re.compile(r"Chrome/|CriOS/")),
    ("Firefox", re.compile(r"Firefox/|FxiOS/")),
    ("Safari", re.compile(r"Safari/")),
)
_TABLET = re.compile(r"iPad|Tablet", re.IGNORECASE)
_MOBILE = re.compile(r"Mobi|Android|iPhone", re.IGNORECASE)


class UnknownTrackingIdError(LookupError):
    """Raised when no approved company owns the tracking id."""


class TrackingUnavailableError(ValueError):
    """Raised when the company cannot use the tracking script yet."""


def parse_device(user_agent: Optional[str]) -> Optional[str]:
    if not user_agent:
        return None
    if _TABLET.search(user_agent):
        return "tablet"
    if _MOBILE.search(user_agent):
        return "mobile"
    return "desktop"


def parse_browser(user_agent: Optional[str]) -> Optional[str]:
    if not user_agent:
        return None
    for name, pattern in _BROWSERS:
        if pattern.search(user_agent):
            return name
    return "Other"


def hash_ip(ip: Optional[str]) -> Optional[str]:
    if not ip:
        return None
    return hashlib.sha256(f"{settings.SECRET_KEY}:{ip}".encode()).hexdigest()


class TrackingService:

    @staticmethod
    async def process_tracking_event(
        db: AsyncSession,
        tracking_id: str,
        page_url: str,
        referrer: Optional[str] = None,
        user_agent: Optional[str] = None,
        ip: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Record one badge view for the company owning tracking_id.
        Receiving an event proves the script is installed, so the company
        is marked active as a side effect.
        """
        result = await db.execute(
            select(Company).where(
                Company.tracking_id == tracking_id,
                Company.status == CompanyStatus.approved.value,
            )
        )
        company = result.scalar_one_or_none()
        if company is None:
            raise UnknownTrackingIdError(f"Unknown tracking id '{tracking_id}'")

        now = datetime.now(timezone.utc)
        db.add(TrackingEvent(
            company_id=company.id,
            event_type=BADGE_VIEW,
            page_url=page_url,
            referrer=referrer,
            user_agent=user_agent,
            ip_hash=hash_ip(ip),
            device_type=parse_device(user_agent),
            browser=parse_browser(user_agent),
        ))
        # Increment in SQL so concurrent events never lose a view
        await db.execute(
            update(Company)
            .where(Company.id == company.id)
            .values(
                views_count=Company.views_count + 1,
                script_installed=True,
                script_status=ScriptStatus.active.value,
                last_tracking_event=now,
            )
            .execution_options(synchronize_session=False)
        )
        await db.flush()
        await db.refresh(company)

        logger.info("Tracking event recorded", company_id=company.id, views_count=company.views_count)
        return {"company_id": company.id, "views_count": company.views_count}

    @staticmethod
    async def verify_script_installation(db: AsyncSession, tracking_id: str) -> bool:
        """
        True when the script reported in within the verification window.
        Updates the company's script status either way.
        """
        result = await db.execute(select(Company).where(Company.tracking_id == tracking_id))
        company = result.scalar_one_or_none()
        if company is None:
            raise UnknownTrackingIdError(f"Unknown tracking id '{tracking_id}'")

        cutoff = datetime.now(timezone.utc) - timedelta(hours=settings.SCRIPT_VERIFICATION_WINDOW_HOURS)
        recent = await db.execute(
            select(func.count())
            .select_from(TrackingEvent)
            .where(TrackingEvent.company_id == company.id, TrackingEvent.created_at >= cutoff)
        )
        verified = recent.scalar_one() > 0

        if verified:
            company.script_installed = True
            company.script_status = ScriptStatus.active.value
        elif company.last_tracking_event is not None:
            company.script_installed = False
            company.script_status = ScriptStatus.error.value
        else:
            company.script_installed = False
            company.script_status = ScriptStatus.pending.value

        await db.flush()
        await db.refresh(company)
        logger.info(
            "Script installation checked",
            company_id=company.id,
            verified=verified,
            script_status=company.script_status,
        )
        return verified

    @staticmethod
    async def verify_for_company(db: AsyncSession, company: Company) -> bool:
        if not company.is_approved or not company.tracking_id:
            raise TrackingUnavailableError(
                "Your company needs to be approved before you can use the tracking script"
            )
        return await TrackingService.verify_script_installation(db, company.tracking_id)
