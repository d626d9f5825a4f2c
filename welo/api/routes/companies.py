"""
api/routes/companies.py
-----------------------
Company-facing endpoints. Every route is bound to a dashboard screen via
require_screen, so role, approval and script checks come from
core/screens.py rather than being repeated here.

POST  /companies                    — Onboard the caller's company.
GET   /companies/me                 — The caller's company (404 = not onboarded).
PATCH /companies/me                 — Partial profile update (before approval).
GET   /companies/me/status          — Derived flags (approved? script installed?).
POST  /companies/me/branding        — Add a branding record.
POST  /companies/me/documents       — Add a verification document record.
GET   /companies/me/script          — Tracking-script binding state.
POST  /companies/me/script/verify   — Re-check the script installation.
GET   /dashboard                    — Dashboard summary (approved companies).
GET   /statistics                   — Usage statistics (approved + script active).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from welo.db.session import get_db
from welo.dependencies import SessionContext, require_screen
from welo.models.company import Company
from welo.schemas.analytics import CompanyStatistics
from welo.schemas.company import (
    BrandingCreate,
    BrandingRead,
    CompanyCreate,
    CompanyRead,
    CompanyStatusRead,
    CompanyUpdate,
    DashboardRead,
    DocumentCreate,
    DocumentRead,
)
from welo.schemas.tracking import ScriptBindingRead, ScriptVerificationRead
from welo.services.analytics_service import AnalyticsService
from welo.services.company_service import CompanyService, company_flags
from welo.services.tracking_service import TrackingService, TrackingUnavailableError

router = APIRouter(tags=["Companies"])

OnboardingSession = Annotated[SessionContext, Depends(require_screen("/onboarding"))]
VerificationSession = Annotated[SessionContext, Depends(require_screen("/verification"))]
SettingsSession = Annotated[SessionContext, Depends(require_screen("/settings"))]
WidgetsSession = Annotated[SessionContext, Depends(require_screen("/widgets"))]
DashboardSession = Annotated[SessionContext, Depends(require_screen("/dashboard"))]
StatisticsSession = Annotated[SessionContext, Depends(require_screen("/statistics"))]


async def _owned_company(db: AsyncSession, session: SessionContext) -> Company:
    company = session.company or await CompanyService.get_for_owner(db, session.principal.id)
    if company is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No company registered for this account",
        )
    return company


def _binding(company: Company) -> dict:
    return {
        "tracking_id": company.tracking_id,
        "script_installed": company.script_installed,
        "script_status": company.script_status,
        "last_tracking_event": company.last_tracking_event,
        "views_count": company.views_count,
    }


@router.post(
    "/companies",
    response_model=CompanyRead,
    status_code=status.HTTP_201_CREATED,
    summary="Onboard your company",
)
async def onboard_company(
    body: CompanyCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    session: OnboardingSession,
) -> CompanyRead:
    """New companies start in 'pending' and wait for admin review."""
    try:
        company = await CompanyService.create_for_owner(db, session.principal.id, body)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return CompanyRead.model_validate(company)


@router.get("/companies/me", response_model=CompanyRead, summary="Get your company")
async def get_my_company(
    db: Annotated[AsyncSession, Depends(get_db)],
    session: VerificationSession,
) -> CompanyRead:
    return CompanyRead.model_validate(await _owned_company(db, session))


@router.patch("/companies/me", response_model=CompanyRead, summary="Update your company profile")
async def update_my_company(
    body: CompanyUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    session: SettingsSession,
) -> CompanyRead:
    company = await _owned_company(db, session)
    try:
        company = await CompanyService.update_for_owner(db, company, body.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return CompanyRead.model_validate(company)


@router.get("/companies/me/status", response_model=CompanyStatusRead, summary="Company status flags")
async def get_my_company_status(
    db: Annotated[AsyncSession, Depends(get_db)],
    session: VerificationSession,
) -> CompanyStatusRead:
    """Not having onboarded yet is a normal state, not an error."""
    company = await CompanyService.get_for_owner(db, session.principal.id)
    return company_flags(company)


@router.post(
    "/companies/me/branding",
    response_model=BrandingRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add badge branding",
)
async def add_branding(
    body: BrandingCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    session: OnboardingSession,
) -> BrandingRead:
    company = await _owned_company(db, session)
    return BrandingRead.model_validate(await CompanyService.add_branding(db, company, body))


@router.post(
    "/companies/me/documents",
    response_model=DocumentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a verification document",
)
async def add_document(
    body: DocumentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    session: OnboardingSession,
) -> DocumentRead:
    company = await _owned_company(db, session)
    return DocumentRead.model_validate(await CompanyService.add_document(db, company, body))


@router.get("/companies/me/script", response_model=ScriptBindingRead, summary="Tracking script state")
async def get_script_binding(
    db: Annotated[AsyncSession, Depends(get_db)],
    session: WidgetsSession,
) -> ScriptBindingRead:
    company = await _owned_company(db, session)
    return ScriptBindingRead(**_binding(company))


@router.post(
    "/companies/me/script/verify",
    response_model=ScriptVerificationRead,
    summary="Check the tracking script installation",
)
async def verify_script(
    db: Annotated[AsyncSession, Depends(get_db)],
    session: WidgetsSession,
) -> ScriptVerificationRead:
    company = await _owned_company(db, session)
    try:
        verified = await TrackingService.verify_for_company(db, company)
    except TrackingUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return ScriptVerificationRead(verified=verified, **_binding(company))


@router.get("/dashboard", response_model=DashboardRead, summary="Dashboard summary")
async def get_dashboard(
    db: Annotated[AsyncSession, Depends(get_db)],
    session: DashboardSession,
) -> DashboardRead:
    company = await _owned_company(db, session)
    return DashboardRead(
        company=CompanyRead.model_validate(company),
        views_count=company.views_count,
        public_url=company.public_url,
    )


@router.get("/statistics", response_model=CompanyStatistics, summary="Badge view statistics")
async def get_statistics(
    db: Annotated[AsyncSession, Depends(get_db)],
    session: StatisticsSession,
) -> CompanyStatistics:
    company = await _owned_company(db, session)
    return await AnalyticsService.company_statistics(db, company)
