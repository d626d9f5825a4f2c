"""
api/routes/admin.py
-------------------
Admin-only endpoints for the company review workflow and global analytics.

GET  /admin/companies                 — Review queue (pending + under_review by default).
GET  /admin/companies/{id}            — Company with branding and documents.
POST /admin/companies/{id}/review     — Mark as under review.
POST /admin/companies/{id}/approve    — Approve; returns the tracking id + public URL.
POST /admin/companies/{id}/reject     — Reject with a reason.
GET  /admin/analytics                 — Platform-wide figures.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from welo.db.session import get_db
from welo.dependencies import AdminSession, SessionContext, require_screen
from welo.models.company import Company, CompanyStatus
from welo.schemas.admin import CompanyListResponse, RejectRequest, ReviewBundle, TransitionRequest
from welo.schemas.analytics import GlobalAnalytics
from welo.schemas.company import BrandingRead, CompanyRead, DocumentRead
from welo.services.analytics_service import AnalyticsService
from welo.services.company_service import CompanyService
from welo.services.verification_service import (
    REVIEWABLE_STATUSES,
    InvalidTransitionError,
    RejectionReasonRequiredError,
    StaleStatusError,
    VerificationService,
)

router = APIRouter(prefix="/admin", tags=["Admin"])

AnalyticsSession = Annotated[SessionContext, Depends(require_screen("/admin/analytics"))]


async def _get_company_or_404(db: AsyncSession, company_id: str) -> Company:
    company = await CompanyService.get_by_id(db, company_id)
    if company is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return company


def _transition_error(exc: ValueError) -> HTTPException:
    if isinstance(exc, RejectionReasonRequiredError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, (InvalidTransitionError, StaleStatusError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get(
    "/companies",
    response_model=CompanyListResponse,
    summary="Admin: list companies awaiting review",
)
async def list_companies(
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: AdminSession,
    status_filter: Annotated[Optional[list[CompanyStatus]], Query(alias="status")] = None,
    search: Optional[str] = Query(default=None, max_length=255),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
) -> CompanyListResponse:
    """
    ?status= may be repeated (e.g. ?status=approved&status=rejected) to
    browse other statuses.
    """
    total, companies = await CompanyService.list_for_review(
        db, status_filter or REVIEWABLE_STATUSES, search=search, skip=skip, limit=limit
    )
    return CompanyListResponse(
        total=total,
        items=[CompanyRead.model_validate(c) for c in companies],
    )


@router.get(
    "/companies/{company_id}",
    response_model=ReviewBundle,
    summary="Admin: get a company with its branding and documents",
)
async def get_company(
    company_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: AdminSession,
) -> ReviewBundle:
    company = await CompanyService.get_review_bundle(db, company_id)
    if company is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return ReviewBundle(
        company=CompanyRead.model_validate(company),
        branding=[BrandingRead.model_validate(b) for b in company.branding],
        documents=[DocumentRead.model_validate(d) for d in company.documents],
    )


@router.post(
    "/companies/{company_id}/review",
    response_model=CompanyRead,
    summary="Admin: start reviewing a company",
)
async def start_review(
    company_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: AdminSession,
    body: Annotated[Optional[TransitionRequest], Body()] = None,
) -> CompanyRead:
    company = await _get_company_or_404(db, company_id)
    try:
        company = await VerificationService.start_review(
            db, company, expected_status=body.expected_status if body else None
        )
    except ValueError as exc:
        raise _transition_error(exc)
    return CompanyRead.model_validate(company)


@router.post(
    "/companies/{company_id}/approve",
    response_model=CompanyRead,
    summary="Admin: approve a company",
)
async def approve_company(
    company_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: AdminSession,
    body: Annotated[Optional[TransitionRequest], Body()] = None,
) -> CompanyRead:
    """
    Approving mints the company's tracking id. Approving a company that is
    already approved is a no-op and returns it unchanged.
    """
    company = await _get_company_or_404(db, company_id)
    try:
        company = await VerificationService.approve(
            db, company, expected_status=body.expected_status if body else None
        )
    except ValueError as exc:
        raise _transition_error(exc)
    return CompanyRead.model_validate(company)


@router.post(
    "/companies/{company_id}/reject",
    response_model=CompanyRead,
    summary="Admin: reject a company",
)
async def reject_company(
    company_id: str,
    body: RejectRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: AdminSession,
) -> CompanyRead:
    company = await _get_company_or_404(db, company_id)
    try:
        company = await VerificationService.reject(
            db, company, body.reason, expected_status=body.expected_status
        )
    except ValueError as exc:
        raise _transition_error(exc)
    return CompanyRead.model_validate(company)


@router.get(
    "/analytics",
    response_model=GlobalAnalytics,
    summary="Admin: platform-wide analytics",
)
async def get_analytics(
    db: Annotated[AsyncSession, Depends(get_db)],
    admin: AnalyticsSession,
    days: Optional[int] = Query(default=None, ge=1, le=3650),
) -> GlobalAnalytics:
    return await AnalyticsService.global_analytics(db, days=days)
