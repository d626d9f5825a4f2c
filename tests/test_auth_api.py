import httpx
import pytest

from factories import PASSWORD, create_user
from welo.core.config import settings
from welo.core.security import create_oauth_state
from welo.models import User, UserRole
from welo.services.auth_service import AuthService, OAuthStateError, ProviderUnavailableError


async def login(client, email, password=PASSWORD):
    return await client.post("/auth/login", data={"username": email, "password": password})


async def test_register_does_not_sign_in(client):
    response = await client.post("/auth/register", json={"email": "New@Acme.com", "password": PASSWORD})

    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "new@acme.com"
    assert "access_token" not in body
    assert "hashed_password" not in body


async def test_register_duplicate_email(client):
    payload = {"email": "dup@acme.com", "password": PASSWORD}
    assert (await client.post("/auth/register", json=payload)).status_code == 201
    assert (await client.post("/auth/register", json=payload)).status_code == 409


async def test_login_returns_token_and_role(client):
    await client.post("/auth/register", json={"email": "owner@acme.com", "password": PASSWORD})

    response = await login(client, "OWNER@acme.com")

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["role"] == "company"
    assert body["expires_in"] == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60


async def test_login_wrong_password(client):
    await client.post("/auth/register", json={"email": "owner@acme.com", "password": PASSWORD})
    assert (await login(client, "owner@acme.com", "wrong-password")).status_code == 401


async def test_reserved_admin_signs_in_as_admin(client):
    await client.post("/auth/register", json={"email": "admin@welobadge.com", "password": PASSWORD})

    token = (await login(client, "admin@welobadge.com")).json()["access_token"]
    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert me.json()["role"] == "admin"


async def test_role_is_resolved_per_request(client, db, auth_headers):
    user = await create_user(db, email="later-admin@acme.com")
    await db.commit()
    headers = auth_headers(user)
    assert (await client.get("/auth/me", headers=headers)).json()["role"] == "company"

    await db.refresh(user, ["profile"])
    user.profile.role = UserRole.admin.value
    await db.commit()

    assert (await client.get("/auth/me", headers=headers)).json()["role"] == "admin"


async def test_me_requires_a_session(client):
    assert (await client.get("/auth/me")).status_code == 401
    bad = await client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401


async def test_logout_revokes_token(client, db, auth_headers):
    user = await create_user(db)
    await db.commit()
    headers = auth_headers(user)

    response = await client.post("/auth/logout", headers=headers)
    assert response.status_code == 200
    assert response.json()["redirect_to"] == "/auth"

    assert (await client.get("/auth/me", headers=headers)).status_code == 401
    assert (await client.post("/auth/logout", headers=headers)).status_code == 401


async def test_home_by_role(client, db, auth_headers):
    admin = await create_user(db, email="ops@welobadge.com", role=UserRole.admin.value)
    owner = await create_user(db)
    await db.commit()

    assert (await client.get("/auth/home")).json()["redirect_to"] == "/auth"
    assert (await client.get("/auth/home", headers=auth_headers(admin))).json()["redirect_to"] == "/admin"
    assert (await client.get("/auth/home", headers=auth_headers(owner))).json()["redirect_to"] == "/dashboard"


async def test_oauth_unknown_provider(client):
    assert (await client.get("/auth/oauth/myspace/authorize")).status_code == 404


async def test_oauth_not_configured(client, monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_CLIENT_ID", "")
    assert (await client.get("/auth/oauth/google/authorize")).status_code == 503


async def test_oauth_authorize_url(client, monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_CLIENT_ID", "client-id")
    monkeypatch.setattr(settings, "GOOGLE_CLIENT_SECRET", "client-secret")

    response = await client.get("/auth/oauth/google/authorize", params={"redirect_to": "/statistics"})

    assert response.status_code == 200
    url = httpx.URL(response.json()["url"])
    assert url.host == "accounts.google.com"
    assert url.params["client_id"] == "client-id"
    assert url.params["state"]


@pytest.fixture
def google(monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_CLIENT_ID", "client-id")
    monkeypatch.setattr(settings, "GOOGLE_CLIENT_SECRET", "client-secret")

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com":
            return httpx.Response(200, json={"access_token": "provider-token"})
        assert request.headers["Authorization"] == "Bearer provider-token"
        return httpx.Response(200, json={"email": "Fed@Acme.com", "email_verified": True})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def test_oauth_creates_principal_once(db, google):
    state = create_oauth_state("google")

    user = await AuthService.complete_oauth(db, "google", "code-1", state, client=google)
    again = await AuthService.complete_oauth(db, "google", "code-2", state, client=google)

    assert user.email == "fed@acme.com"
    assert user.auth_provider == "google"
    assert user.hashed_password is None
    assert again.id == user.id
    await db.refresh(user, ["profile"])
    assert user.profile.role == UserRole.company.value


async def test_oauth_rejects_forged_state(db, google):
    with pytest.raises(OAuthStateError):
        await AuthService.complete_oauth(db, "google", "code", "forged-state", client=google)


async def test_oauth_provider_failure(db, monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_CLIENT_ID", "client-id")
    monkeypatch.setattr(settings, "GOOGLE_CLIENT_SECRET", "client-secret")
    failing = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500)))

    with pytest.raises(ProviderUnavailableError):
        await AuthService.complete_oauth(db, "google", "code", create_oauth_state("google"), client=failing)


async def test_federated_principal_cannot_use_password_login(client, db):
    db.add(User(email="fed@acme.com", hashed_password=None, auth_provider="google"))
    await db.commit()
    assert (await login(client, "fed@acme.com", "anything-at-all")).status_code == 401
