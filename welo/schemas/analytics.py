"""
schemas/analytics.py
--------------------
Response models for platform-wide (admin) and per-company statistics.
"""

from pydantic import BaseModel


class DailyViews(BaseModel):
    date: str  # ISO date
    views: int


class PlanSlice(BaseModel):
    name: str
    value: int


class CountryCount(BaseModel):
    country: str
    companies: int


class LabelCount(BaseModel):
    label: str
    count: int


class GlobalAnalytics(BaseModel):
    days: int | None
    total_companies: int
    active_companies: int
    total_views: int
    average_views_per_company: int
    plan_breakdown: list[PlanSlice]
    country_breakdown: list[CountryCount]
    activity: list[DailyViews]


class CompanyStatistics(BaseModel):
    total_views: int
    activity: list[DailyViews]
    top_referrers: list[LabelCount]
    devices: list[LabelCount]
