from factories import create_company, create_user
from welo.models import CompanyStatus, UserRole


async def resolve(client, path, headers=None):
    response = await client.get("/navigation/resolve", params={"path": path}, headers=headers)
    assert response.status_code == 200
    return response.json()


async def test_anonymous(client):
    assert (await resolve(client, "/auth"))["action"] == "render"

    decision = await resolve(client, "/statistics")
    assert decision["action"] == "redirect_to_auth"
    assert decision["return_to"] == "/statistics"


async def test_company_screens(client, db, auth_headers):
    user = await create_user(db)
    await create_company(db, user, status=CompanyStatus.approved, tracking_id="wl_nav")
    await db.commit()
    headers = auth_headers(user)

    assert (await resolve(client, "/dashboard", headers))["action"] == "render"

    statistics = await resolve(client, "/statistics", headers)
    assert statistics["action"] == "blocked"
    assert statistics["panel"]["title"] == "Tracking Script Required"

    admin = await resolve(client, "/admin", headers)
    assert admin["action"] == "redirect_to_role_home"
    assert admin["location"] == "/dashboard"


async def test_admin_screens(client, db, auth_headers):
    admin = await create_user(db, email="ops@welobadge.com", role=UserRole.admin.value)
    await db.commit()
    headers = auth_headers(admin)

    assert (await resolve(client, "/admin/analytics", headers))["action"] == "render"
    assert (await resolve(client, "/dashboard", headers))["location"] == "/admin"


async def test_health(client):
    response = await client.get("/health")
    assert response.json()["status"] == "ok"
