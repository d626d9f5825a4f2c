"""
services/analytics_service.py
-----------------------------
Read-only aggregates for the admin global analytics screen and the
company statistics screen. Everything is computed with SQL aggregates;
no rows are pulled into Python beyond the grouped results.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from welo.models.company import Company, CompanyStatus
from welo.models.tracking import TrackingEvent
from welo.schemas.analytics import (
    CompanyStatistics,
    CountryCount,
    DailyViews,
    GlobalAnalytics,
    LabelCount,
    PlanSlice,
)

ACTIVITY_DAYS = 7
TOP_COUNTRIES = 5
TOP_REFERRERS = 5
DEFAULT_PLAN = "starter"


def _since(days: Optional[int]) -> Optional[datetime]:
    if days is None:
        return None
    return datetime.now(timezone.utc) - timedelta(days=days)


def _day_key(value) -> str:
    # SQLite returns a string, PostgreSQL a date
    return value.isoformat() if isinstance(value, date) else str(value)[:10]


def _merge_counts(pairs) -> list[tuple[str, int]]:
    """Sum counts per key, largest first."""
    totals: dict[str, int] = {}
    for key, n in pairs:
        totals[key] = totals.get(key, 0) + n
    return sorted(totals.items(), key=lambda item: (-item[1], item[0]))


async def _daily_views(db: AsyncSession, *filters) -> list[DailyViews]:
    today = datetime.now(timezone.utc).date()
    first_day = today - timedelta(days=ACTIVITY_DAYS - 1)
    start = datetime.combine(first_day, datetime.min.time(), tzinfo=timezone.utc)

    day = func.date(TrackingEvent.created_at)
    result = await db.execute(
        select(day.label("day"), func.count().label("views"))
        .where(TrackingEvent.created_at >= start, *filters)
        .group_by(day)
    )
    counts = {_day_key(row.day): row.views for row in result}

    return [
        DailyViews(date=d.isoformat(), views=counts.get(d.isoformat(), 0))
        for d in (first_day + timedelta(days=i) for i in range(ACTIVITY_DAYS))
    ]


class AnalyticsService:

    @staticmethod
    async def global_analytics(db: AsyncSession, days: Optional[int] = None) -> GlobalAnalytics:
        """
        Platform-wide figures. days limits companies and views to those
        created in the last N days; None means all time.
        """
        since = _since(days)
        company_filters = [Company.created_at >= since] if since else []
        event_filters = [TrackingEvent.created_at >= since] if since else []

        total_companies = (
            await db.execute(select(func.count()).select_from(Company).where(*company_filters))
        ).scalar_one()
        active_companies = (
            await db.execute(
                select(func.count())
                .select_from(Company)
                .where(Company.status == CompanyStatus.approved.value, *company_filters)
            )
        ).scalar_one()
        total_views = (
            await db.execute(select(func.count()).select_from(TrackingEvent).where(*event_filters))
        ).scalar_one()

        plan_rows = await db.execute(
            select(Company.plan_type, func.count().label("n"))
            .where(*company_filters)
            .group_by(Company.plan_type)
        )
        plans = _merge_counts((row.plan_type or DEFAULT_PLAN, row.n) for row in plan_rows)
        country_rows = await db.execute(
            select(Company.country, func.count().label("n"))
            .where(*company_filters)
            .group_by(Company.country)
            .order_by(func.count().desc(), Company.country)
            .limit(TOP_COUNTRIES)
        )

        return GlobalAnalytics(
            days=days,
            total_companies=total_companies,
            active_companies=active_companies,
            total_views=total_views,
            average_views_per_company=round(total_views / total_companies) if total_companies else 0,
            plan_breakdown=[PlanSlice(name=name.capitalize(), value=n) for name, n in plans],
            country_breakdown=[
                CountryCount(country=row.country or "Unknown", companies=row.n) for row in country_rows
            ],
            activity=await _daily_views(db),
        )

    @staticmethod
    async def company_statistics(db: AsyncSession, company: Company) -> CompanyStatistics:
        owned = TrackingEvent.company_id == company.id

        referrer_rows = await db.execute(
            select(TrackingEvent.referrer, func.count().label("n"))
            .where(owned, TrackingEvent.referrer.is_not(None))
            .group_by(TrackingEvent.referrer)
            .order_by(func.count().desc())
            .limit(TOP_REFERRERS)
        )
        device_rows = await db.execute(
            select(TrackingEvent.device_type, func.count().label("n"))
            .where(owned)
            .group_by(TrackingEvent.device_type)
        )
        devices = _merge_counts((row.device_type or "unknown", row.n) for row in device_rows)

        return CompanyStatistics(
            total_views=company.views_count,
            activity=await _daily_views(db, owned),
            top_referrers=[LabelCount(label=row.referrer, count=row.n) for row in referrer_rows],
            devices=[LabelCount(label=label, count=n) for label, n in devices],
        )
