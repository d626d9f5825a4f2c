from factories import create_company, create_user
from welo.models import CompanyStatus, ScriptStatus, UserRole

ONBOARDING = {
    "company_name": "Acme Corp",
    "email": "hello@acme.com",
    "website_url": "https://acme.com",
    "country": "Italy",
}


async def test_onboarding_requires_sign_in(client):
    response = await client.post("/companies", json=ONBOARDING)

    assert response.status_code == 401
    body = response.json()
    assert body["action"] == "redirect_to_auth"
    assert body["location"] == "/auth"
    assert body["return_to"] == "/onboarding"


async def test_onboarding_flow(client, db, auth_headers):
    user = await create_user(db)
    await db.commit()
    headers = auth_headers(user)

    assert (await client.get("/companies/me", headers=headers)).status_code == 404
    status = (await client.get("/companies/me/status", headers=headers)).json()
    assert status["has_company"] is False
    assert status["is_approved"] is False

    created = await client.post("/companies", json=ONBOARDING, headers=headers)
    assert created.status_code == 201
    assert created.json()["status"] == "pending"
    assert created.json()["public_url"] is None

    again = await client.post("/companies", json=ONBOARDING, headers=headers)
    assert again.status_code == 409

    me = await client.get("/companies/me", headers=headers)
    assert me.json()["id"] == created.json()["id"]


async def test_admin_is_redirected_away_from_company_screens(client, db, auth_headers):
    admin = await create_user(db, email="ops@welobadge.com", role=UserRole.admin.value)
    await db.commit()

    response = await client.post("/companies", json=ONBOARDING, headers=auth_headers(admin))

    assert response.status_code == 403
    assert response.json()["action"] == "redirect_to_role_home"
    assert response.json()["location"] == "/admin"


async def test_unapproved_company_gets_approval_panel(client, db, auth_headers):
    user = await create_user(db)
    await create_company(db, user, status=CompanyStatus.under_review)
    await db.commit()

    response = await client.get("/dashboard", headers=auth_headers(user))

    assert response.status_code == 403
    body = response.json()
    assert body["action"] == "blocked"
    assert body["panel"]["code"] == "approval_required"
    assert body["detail"] == "Company Approval Required"


async def test_dashboard_without_company_shows_panel_not_error(client, db, auth_headers):
    user = await create_user(db)
    await db.commit()

    response = await client.get("/dashboard", headers=auth_headers(user))

    assert response.status_code == 403
    assert response.json()["panel"]["code"] == "approval_required"


async def test_approved_dashboard(client, db, auth_headers):
    user = await create_user(db)
    await create_company(db, user, status=CompanyStatus.approved, tracking_id="wl_dash", views_count=12)
    await db.commit()

    response = await client.get("/dashboard", headers=auth_headers(user))

    assert response.status_code == 200
    body = response.json()
    assert body["views_count"] == 12
    assert body["public_url"].endswith("/wl_dash")


async def test_statistics_need_installed_script(client, db, auth_headers):
    user = await create_user(db)
    company = await create_company(db, user, status=CompanyStatus.approved, tracking_id="wl_stats")
    await db.commit()
    headers = auth_headers(user)

    blocked = await client.get("/statistics", headers=headers)
    assert blocked.status_code == 403
    assert blocked.json()["panel"]["code"] == "script_required"

    company.script_installed = True
    company.script_status = ScriptStatus.active.value
    await db.commit()

    response = await client.get("/statistics", headers=headers)
    assert response.status_code == 200
    assert response.json()["total_views"] == 0
    assert len(response.json()["activity"]) == 7


async def test_profile_update_until_approved(client, db, auth_headers):
    user = await create_user(db)
    company = await create_company(db, user)
    await db.commit()
    headers = auth_headers(user)

    response = await client.patch(
        "/companies/me", json={"description": "Anvils since 1949", "status": "approved"}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["description"] == "Anvils since 1949"
    assert response.json()["status"] == "pending"

    company.status = CompanyStatus.approved.value
    company.tracking_id = "wl_locked"
    await db.commit()

    locked = await client.patch("/companies/me", json={"company_name": "Renamed"}, headers=headers)
    assert locked.status_code == 409


async def test_branding_and_documents(client, db, auth_headers):
    user = await create_user(db)
    await create_company(db, user)
    await db.commit()
    headers = auth_headers(user)

    branding = await client.post(
        "/companies/me/branding", json={"primary_color": "#ff0000", "display_text": "Verified"}, headers=headers
    )
    assert branding.status_code == 201
    assert branding.json()["primary_color"] == "#ff0000"

    bad_color = await client.post("/companies/me/branding", json={"primary_color": "red"}, headers=headers)
    assert bad_color.status_code == 422

    document = await client.post(
        "/companies/me/documents",
        json={"file_name": "visura.pdf", "file_type": "application/pdf", "file_url": "https://files/v.pdf"},
        headers=headers,
    )
    assert document.status_code == 201


async def test_script_binding_and_verification(client, db, auth_headers):
    user = await create_user(db)
    await create_company(db, user, status=CompanyStatus.approved, tracking_id="wl_widget")
    await db.commit()
    headers = auth_headers(user)

    binding = await client.get("/companies/me/script", headers=headers)
    assert binding.json()["tracking_id"] == "wl_widget"
    assert binding.json()["script_status"] == "not_installed"

    check = await client.post("/companies/me/script/verify", headers=headers)
    assert check.status_code == 200
    assert check.json()["verified"] is False
    assert check.json()["script_status"] == "pending"

    await client.post("/track-event", json={"trackingId": "wl_widget", "pageUrl": "https://acme.com"})

    check = await client.post("/companies/me/script/verify", headers=headers)
    assert check.json()["verified"] is True
    assert check.json()["script_status"] == "active"
    assert check.json()["views_count"] == 1
