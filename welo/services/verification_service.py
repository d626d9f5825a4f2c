"""
services/verification_service.py
--------------------------------
Company verification workflow: pending → under_review → approved | rejected.

Rules:
  - Only admins call into this module (routes enforce the role).
  - approve clears any rejection reason and mints a tracking id only if the
    company has none; approving an already-approved company changes nothing,
    so public badge URLs handed out earlier keep working.
  - reject requires a non-blank reason and validates it before any write.
  - approved and rejected are terminal; re-review is not supported.

Concurrency:
  Each write is an UPDATE conditioned on the status that was read, and
  callers may pass the status they saw on screen as expected_status. If
  another admin got there first the UPDATE matches no row and
  StaleStatusError is raised instead of silently overwriting their decision.
"""

import secrets
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from welo.core.logging import get_logger
from welo.models.company import Company, CompanyStatus

logger = get_logger(__name__)

TRACKING_ID_PREFIX = "wl_"


class InvalidTransitionError(ValueError):
    """Raised when the company's current status does not allow the action."""


class RejectionReasonRequiredError(ValueError):
    """Raised when a rejection is attempted without a reason."""


class StaleStatusError(ValueError):
    """Raised when the company changed status since the caller last saw it."""


_ALLOWED_TRANSITIONS: dict[CompanyStatus, tuple[CompanyStatus, ...]] = {
    CompanyStatus.pending: (
        CompanyStatus.under_review,
        CompanyStatus.approved,
        CompanyStatus.rejected,
    ),
    CompanyStatus.under_review: (
        CompanyStatus.approved,
        CompanyStatus.rejected,
    ),
    CompanyStatus.approved: (),
    CompanyStatus.rejected: (),
}

REVIEWABLE_STATUSES = (CompanyStatus.pending, CompanyStatus.under_review)


def can_transition(state_from: str | CompanyStatus, state_to: str | CompanyStatus) -> bool:
    return CompanyStatus(state_to) in _ALLOWED_TRANSITIONS[CompanyStatus(state_from)]


def validate_transition(state_from: str | CompanyStatus, state_to: str | CompanyStatus) -> None:
    if not can_transition(state_from, state_to):
        raise InvalidTransitionError(
            f"Cannot move a company from '{CompanyStatus(state_from).value}' "
            f"to '{CompanyStatus(state_to).value}'"
        )


def generate_tracking_id() -> str:
    return TRACKING_ID_PREFIX + secrets.token_hex(12)


def require_reason(reason: Optional[str]) -> str:
    if reason is None or not reason.strip():
        raise RejectionReasonRequiredError("A rejection reason is required")
    return reason


class VerificationService:

    @staticmethod
    async def _transition(
        db: AsyncSession,
        company: Company,
        target: CompanyStatus,
        expected_status: Optional[CompanyStatus],
        values: dict[str, Any],
    ) -> Company:
        current = CompanyStatus(company.status)
        if expected_status is not None and expected_status != current:
            raise StaleStatusError(
                f"Company is '{current.value}', not '{expected_status.value}'; reload and retry"
            )
        validate_transition(current, target)

        result = await db.execute(
            update(Company)
            .where(Company.id == company.id, Company.status == current.value)
            .values(status=target.value, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise StaleStatusError("Company was updated by someone else; reload and retry")

        await db.refresh(company)
        logger.info(
            "Company status changed",
            company_id=company.id,
            status_from=current.value,
            status_to=target.value,
        )
        return company

    @staticmethod
    async def start_review(
        db: AsyncSession,
        company: Company,
        expected_status: Optional[CompanyStatus] = None,
    ) -> Company:
        if company.status == CompanyStatus.under_review.value:
            return company
        return await VerificationService._transition(
            db, company, CompanyStatus.under_review, expected_status, {}
        )

    @staticmethod
    async def approve(
        db: AsyncSession,
        company: Company,
        expected_status: Optional[CompanyStatus] = None,
    ) -> Company:
        """
        Approve the company. The returned company carries its tracking_id
        and public_url.
        """
        if company.status == CompanyStatus.approved.value:
            logger.info("Company already approved", company_id=company.id)
            return company

        values: dict[str, Any] = {"rejection_reason": None}
        if not company.tracking_id:
            values["tracking_id"] = generate_tracking_id()

        company = await VerificationService._transition(
            db, company, CompanyStatus.approved, expected_status, values
        )
        logger.info(
            "Company approved",
            company_id=company.id,
            tracking_id=company.tracking_id,
            public_url=company.public_url,
        )
        return company

    @staticmethod
    async def reject(
        db: AsyncSession,
        company: Company,
        reason: Optional[str],
        expected_status: Optional[CompanyStatus] = None,
    ) -> Company:
        reason = require_reason(reason)
        return await VerificationService._transition(
            db, company, CompanyStatus.rejected, expected_status, {"rejection_reason": reason}
        )
