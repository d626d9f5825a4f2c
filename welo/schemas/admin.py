"""
schemas/admin.py
----------------
Pydantic models for the admin review workflow.
"""

from typing import Optional

from pydantic import BaseModel, Field

from welo.models.company import CompanyStatus
from welo.schemas.company import BrandingRead, CompanyRead, DocumentRead


class TransitionRequest(BaseModel):
    # When set, the transition only happens if the company is still in
    # this status (guards against two admins processing the same company)
    expected_status: Optional[CompanyStatus] = None


class RejectRequest(TransitionRequest):
    reason: str = Field(..., max_length=2000, description="Shown to the company")


class ReviewBundle(BaseModel):
    company: CompanyRead
    branding: list[BrandingRead]
    documents: list[DocumentRead]


class CompanyListResponse(BaseModel):
    total: int
    items: list[CompanyRead]
