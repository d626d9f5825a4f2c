import pytest

from factories import create_company, create_user
from welo.models import CompanyStatus, ScriptStatus
from welo.schemas.company import BrandingCreate, CompanyCreate, DocumentCreate
from welo.services.company_service import (
    CompanyAlreadyExistsError,
    CompanyService,
    ProfileLockedError,
    company_flags,
)


def onboarding_form(**overrides) -> CompanyCreate:
    data = {
        "company_name": "  Acme Corp ",
        "email": "hello@acme.com",
        "website_url": "https://acme.com",
        "country": "Italy",
        "plan_type": "pro",
    }
    data.update(overrides)
    return CompanyCreate(**data)


async def test_not_onboarded_is_none_not_an_error(db):
    user = await create_user(db)
    assert await CompanyService.get_for_owner(db, user.id) is None


async def test_onboarding_creates_pending_company(db):
    user = await create_user(db)

    company = await CompanyService.create_for_owner(db, user.id, onboarding_form())

    assert company.status == CompanyStatus.pending.value
    assert company.company_name == "Acme Corp"
    assert company.tracking_id is None
    assert company.script_status == ScriptStatus.not_installed.value
    assert company.views_count == 0
    assert (await CompanyService.get_for_owner(db, user.id)).id == company.id


async def test_one_company_per_principal(db):
    user = await create_user(db)
    await CompanyService.create_for_owner(db, user.id, onboarding_form())

    with pytest.raises(CompanyAlreadyExistsError):
        await CompanyService.create_for_owner(db, user.id, onboarding_form(company_name="Acme Two"))


async def test_update_only_touches_profile_fields(db):
    user = await create_user(db)
    company = await create_company(db, user)

    company = await CompanyService.update_for_owner(
        db,
        company,
        {"description": "We make anvils", "status": "approved", "tracking_id": "wl_forged"},
    )

    assert company.description == "We make anvils"
    assert company.status == CompanyStatus.pending.value
    assert company.tracking_id is None


async def test_approved_profile_is_locked(db):
    user = await create_user(db)
    company = await create_company(db, user, status=CompanyStatus.approved, tracking_id="wl_1")

    with pytest.raises(ProfileLockedError):
        await CompanyService.update_for_owner(db, company, {"company_name": "Renamed"})


async def test_review_bundle_loads_branding_and_documents(db):
    user = await create_user(db)
    company = await create_company(db, user)
    await CompanyService.add_branding(db, company, BrandingCreate(primary_color="#112233"))
    await CompanyService.add_document(
        db,
        company,
        DocumentCreate(file_name="visura.pdf", file_type="application/pdf", file_url="https://files/visura.pdf"),
    )
    db.expunge_all()

    bundle = await CompanyService.get_review_bundle(db, company.id)

    assert [b.primary_color for b in bundle.branding] == ["#112233"]
    assert [d.file_name for d in bundle.documents] == ["visura.pdf"]


async def test_review_list_filters_and_searches(db):
    statuses = [CompanyStatus.pending, CompanyStatus.under_review, CompanyStatus.approved]
    for i, status in enumerate(statuses):
        user = await create_user(db, email=f"owner{i}@acme.com")
        await create_company(db, user, status=status, company_name=f"Company {i}", email=f"c{i}@acme.com")

    total, items = await CompanyService.list_for_review(
        db, [CompanyStatus.pending, CompanyStatus.under_review]
    )
    assert total == 2
    assert {c.company_name for c in items} == {"Company 0", "Company 1"}

    total, items = await CompanyService.list_for_review(db, [CompanyStatus.approved], search="COMPANY 2")
    assert total == 1
    assert items[0].status == CompanyStatus.approved.value

    total, items = await CompanyService.list_for_review(db, statuses, skip=1, limit=1)
    assert total == 3
    assert len(items) == 1


async def test_company_flags(db):
    assert company_flags(None).has_company is False
    assert company_flags(None).is_approved is False

    user = await create_user(db)
    company = await create_company(
        db, user, status=CompanyStatus.approved, tracking_id="wl_2",
        script_installed=True, script_status=ScriptStatus.active.value,
    )
    flags = company_flags(company)
    assert flags.is_approved
    assert flags.has_script_installed
    assert flags.script_status is ScriptStatus.active
