"""
services/company_service.py
---------------------------
Data access for the one company owned by a principal, and the read-side
queries admins use during review.

Service layer is responsible for:
  - Constructing queries (always scoped by owner for company callers)
  - Enforcing business rules (one company per principal, profile locked
    once approved)
  - Returning domain objects (ORM models) to the route layer
  - Never returning HTTP responses (that's the route's job)

Status, rejection_reason and tracking_id are written only by
verification_service; tracking columns only by tracking_service.
"""

from typing import Any, Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from welo.core.logging import get_logger
from welo.models.company import (
    Company,
    CompanyBranding,
    CompanyDocument,
    CompanyStatus,
    ScriptStatus,
)
from welo.schemas.company import (
    BrandingCreate,
    CompanyCreate,
    CompanyStatusRead,
    CompanyUpdate,
    DocumentCreate,
)

logger = get_logger(__name__)

PROFILE_FIELDS = frozenset(CompanyUpdate.model_fields)


class CompanyAlreadyExistsError(ValueError):
    """Raised when a principal tries to onboard a second company."""


class ProfileLockedError(ValueError):
    """Raised when an approved company tries to edit its verified profile."""


def company_flags(company: Optional[Company]) -> CompanyStatusRead:
    """Derived predicates; a missing company is simply not approved."""
    if company is None:
        return CompanyStatusRead(
            has_company=False,
            status=None,
            is_approved=False,
            has_script_installed=False,
            script_status=ScriptStatus.not_installed,
        )
    return CompanyStatusRead(
        has_company=True,
        status=CompanyStatus(company.status),
        is_approved=company.is_approved,
        has_script_installed=bool(company.script_installed),
        script_status=ScriptStatus(company.script_status),
    )


class CompanyService:

    @staticmethod
    async def get_for_owner(db: AsyncSession, user_id: str) -> Company | None:
        """The principal's company, or None if it has not onboarded yet."""
        result = await db.execute(select(Company).where(Company.user_id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_id(db: AsyncSession, company_id: str) -> Company | None:
        result = await db.execute(select(Company).where(Company.id == company_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def create_for_owner(db: AsyncSession, user_id: str, data: CompanyCreate) -> Company:
        """
        Onboard a company in 'pending' status.
        Raises CompanyAlreadyExistsError if the principal already has one.
        """
        if await CompanyService.get_for_owner(db, user_id) is not None:
            raise CompanyAlreadyExistsError("A company is already registered for this account")

        company = Company(user_id=user_id, status=CompanyStatus.pending.value, **data.model_dump())
        db.add(company)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise CompanyAlreadyExistsError("A company is already registered for this account")
        await db.refresh(company)
        logger.info("Company onboarded", company_id=company.id, user_id=user_id)
        return company

    @staticmethod
    async def update_for_owner(
        db: AsyncSession, company: Company, changes: dict[str, Any]
    ) -> Company:
        """
        Apply a partial profile update. Keys outside the profile fields are
        ignored, so the owner can never touch verification or tracking state.
        """
        if company.is_approved:
            raise ProfileLockedError("Verified company details can no longer be changed")

        applied = {key: value for key, value in changes.items() if key in PROFILE_FIELDS}
        if not applied:
            return company
        for key, value in applied.items():
            setattr(company, key, value)
        await db.flush()
        await db.refresh(company)
        logger.info("Company profile updated", company_id=company.id, fields=sorted(applied))
        return company

    @staticmethod
    async def add_branding(db: AsyncSession, company: Company, data: BrandingCreate) -> CompanyBranding:
        branding = CompanyBranding(company_id=company.id, **data.model_dump())
        db.add(branding)
        await db.flush()
        await db.refresh(branding)
        return branding

    @staticmethod
    async def add_document(db: AsyncSession, company: Company, data: DocumentCreate) -> CompanyDocument:
        document = CompanyDocument(company_id=company.id, **data.model_dump())
        db.add(document)
        await db.flush()
        await db.refresh(document)
        logger.info("Verification document added", company_id=company.id, file_name=document.file_name)
        return document

    # ── Admin read side ───────────────────────────────────────────────────────

    @staticmethod
    async def list_for_review(
        db: AsyncSession,
        statuses: Iterable[CompanyStatus],
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[int, list[Company]]:
        """
        Companies in the given statuses, oldest submission first.
        search matches company name or email, case-insensitively.

        Returns:
            (total_count, page_of_companies)
        """
        filters = [Company.status.in_([s.value for s in statuses])]
        if search:
            pattern = f"%{search.lower()}%"
            filters.append(
                func.lower(Company.company_name).like(pattern)
                | func.lower(Company.email).like(pattern)
            )

        count_result = await db.execute(select(func.count()).select_from(Company).where(*filters))
        total = count_result.scalar_one()

        result = await db.execute(
            select(Company)
            .where(*filters)
            .order_by(Company.created_at, Company.id)
            .offset(skip)
            .limit(limit)
        )
        return total, list(result.scalars().all())

    @staticmethod
    async def get_review_bundle(db: AsyncSession, company_id: str) -> Company | None:
        """Company with its branding and documents eagerly loaded."""
        result = await db.execute(
            select(Company)
            .where(Company.id == company_id)
            .options(selectinload(Company.branding), selectinload(Company.documents))
        )
        return result.scalar_one_or_none()
