import asyncio

import httpx
import pytest

from factories import create_company, create_user
from welo.client import (
    ApiError,
    AuthClient,
    CompanyRecordGateway,
    ReviewQueue,
    SessionPhase,
    SessionState,
    TrackingScriptBinding,
    TransitionInFlightError,
    resolve_screen,
)
from welo.core.guard import GuardAction
from welo.core.security import create_access_token
from welo.models import CompanyStatus, ScriptStatus, UserRole
from welo.services.company_service import CompanyService
from welo.services.verification_service import RejectionReasonRequiredError


class RecordingNotifier:
    def __init__(self):
        self.successes = []
        self.errors = []

    def success(self, message):
        self.successes.append(message)

    def error(self, message):
        self.errors.append(message)


@pytest.fixture
async def client_for(transport):
    clients = []

    def _client(user) -> AuthClient:
        client = AuthClient(
            "http://test", access_token=create_access_token(subject=user.id), transport=transport
        )
        clients.append(client)
        return client

    yield _client
    for client in clients:
        await client.aclose()


def by_name(queue, name):
    return next(c["id"] for c in queue.companies if c["company_name"] == name)


def ready(user, role=UserRole.company) -> SessionState:
    return SessionState(principal={"id": user.id, "email": user.email}, role=role, phase=SessionPhase.ready)


# ── CompanyRecordGateway ─────────────────────────────────────────────────────


async def test_fetch_before_onboarding_is_none_without_error(db, client_for):
    user = await create_user(db)
    await db.commit()
    gateway = CompanyRecordGateway(client_for(user))

    assert await gateway.fetch() is None
    assert gateway.error is None
    assert not gateway.is_approved
    assert gateway.script_status is ScriptStatus.not_installed

    decision = resolve_screen("/dashboard", ready(user), gateway)
    assert decision.action is GuardAction.blocked
    assert decision.panel.code == "approval_required"


async def test_fetch_failure_degrades_to_none(db, client_for):
    admin = await create_user(db, email="ops@welobadge.com", role=UserRole.admin.value)
    await db.commit()
    gateway = CompanyRecordGateway(client_for(admin))

    assert await gateway.fetch() is None
    assert isinstance(gateway.error, ApiError)
    assert gateway.error.status_code == 403
    assert gateway.loading is False


async def test_fetch_and_update(db, client_for):
    user = await create_user(db)
    await create_company(db, user)
    await db.commit()
    gateway = CompanyRecordGateway(client_for(user))

    company = await gateway.fetch()
    assert company["status"] == "pending"

    updated = await gateway.update({"description": "Anvils"})
    assert updated["description"] == "Anvils"
    assert gateway.company["description"] == "Anvils"


async def test_update_without_company_is_a_no_op(db, client_for):
    user = await create_user(db)
    await db.commit()
    gateway = CompanyRecordGateway(client_for(user))

    assert await gateway.update({"description": "Anvils"}) is None


async def test_update_failure_is_raised(db, client_for):
    user = await create_user(db)
    await create_company(db, user, status=CompanyStatus.approved, tracking_id="wl_gw")
    await db.commit()
    gateway = CompanyRecordGateway(client_for(user))
    await gateway.fetch()
    assert gateway.is_approved

    with pytest.raises(ApiError) as excinfo:
        await gateway.update({"company_name": "Renamed"})

    assert excinfo.value.status_code == 409
    assert gateway.company["company_name"] == "Acme Corp"


async def test_onboard(db, client_for):
    user = await create_user(db)
    await db.commit()
    gateway = CompanyRecordGateway(client_for(user))

    company = await gateway.onboard({
        "company_name": "Acme Corp",
        "email": "hello@acme.com",
        "website_url": "https://acme.com",
        "country": "Italy",
    })

    assert company["status"] == "pending"
    assert (await gateway.fetch())["id"] == company["id"]


# ── TrackingScriptBinding ────────────────────────────────────────────────────


async def test_script_check_and_poll(db, client, client_for):
    user = await create_user(db)
    await create_company(db, user, status=CompanyStatus.approved, tracking_id="wl_poll")
    await db.commit()
    auth = client_for(user)
    gateway = CompanyRecordGateway(auth)
    await gateway.fetch()
    notifier = RecordingNotifier()
    binding = TrackingScriptBinding(auth, gateway, notifier=notifier)

    assert binding.tracking_id == "wl_poll"
    assert await binding.check() is False
    assert gateway.script_status is ScriptStatus.pending
    assert binding.last_check is not None

    await client.post("/track-event", json={"trackingId": "wl_poll", "pageUrl": "https://acme.com"})

    assert await binding.poll(interval=0, attempts=2) is True
    assert gateway.has_script_installed
    assert resolve_screen("/statistics", ready(user), gateway).allowed
    assert notifier.errors == []


async def test_script_check_before_approval_notifies_and_raises(db, client_for):
    user = await create_user(db)
    await create_company(db, user)
    await db.commit()
    notifier = RecordingNotifier()
    binding = TrackingScriptBinding(client_for(user), notifier=notifier)

    with pytest.raises(ApiError):
        await binding.check()

    assert binding.verifying is False
    assert notifier.errors == ["Error while verifying the tracking script"]


# ── ReviewQueue ──────────────────────────────────────────────────────────────


@pytest.fixture
async def queue(db, client_for):
    admin = await create_user(db, email="ops@welobadge.com", role=UserRole.admin.value)
    for i, status in enumerate([CompanyStatus.pending, CompanyStatus.under_review]):
        owner = await create_user(db, email=f"owner{i}@acme.com")
        await create_company(db, owner, status=status, company_name=f"Company {i}")
    await db.commit()

    queue = ReviewQueue(client_for(admin), notifier=RecordingNotifier())
    await queue.load()
    return queue


async def test_load(queue):
    assert queue.total == 2
    assert {c["company_name"] for c in queue.companies} == {"Company 0", "Company 1"}


async def test_approve_updates_queue_after_server_confirms(queue):
    company_id = by_name(queue, "Company 0")

    approved = await queue.approve(company_id)

    assert approved["status"] == "approved"
    assert queue.get(company_id)["tracking_id"] == approved["tracking_id"]
    assert queue.notifier.successes == ["Company 0 approved"]


async def test_blank_reason_never_reaches_the_server(queue, db):
    company_id = by_name(queue, "Company 1")

    with pytest.raises(RejectionReasonRequiredError):
        await queue.reject(company_id, "  ")

    assert queue.notifier.errors == ["Please provide a rejection reason"]
    assert queue.get(company_id)["status"] == "under_review"
    stored = await CompanyService.get_by_id(db, company_id)
    assert stored.status == "under_review"


async def test_reject(queue):
    company_id = by_name(queue, "Company 1")

    rejected = await queue.reject(company_id, "Incomplete documentation")

    assert rejected["rejection_reason"] == "Incomplete documentation"
    assert queue.get(company_id)["status"] == "rejected"


async def test_failed_transition_leaves_queue_unchanged(queue, db):
    company_id = by_name(queue, "Company 0")
    company = await CompanyService.get_by_id(db, company_id)
    company.status = CompanyStatus.rejected.value
    company.rejection_reason = "Rejected by another admin"
    await db.commit()
    before = [dict(c) for c in queue.companies]

    with pytest.raises(ApiError) as excinfo:
        await queue.approve(company_id)

    assert excinfo.value.status_code == 409
    assert queue.companies == before
    assert not queue.is_busy(company_id)
    assert len(queue.notifier.errors) == 1


async def test_same_company_transitions_are_serialized(queue):
    company_id = by_name(queue, "Company 0")

    first = asyncio.create_task(queue.approve(company_id))
    await asyncio.sleep(0)
    assert queue.is_busy(company_id)

    with pytest.raises(TransitionInFlightError):
        await queue.reject(company_id, "Too late")

    await first
    assert not queue.is_busy(company_id)
    assert queue.get(company_id)["status"] == "approved"


async def test_closed_binding_drops_in_flight_result_and_stops_polling():
    release, requested = asyncio.Event(), asyncio.Event()
    calls = []

    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        requested.set()
        await release.wait()
        return httpx.Response(
            200,
            json={
                "verified": True,
                "tracking_id": "wl_closed",
                "script_installed": True,
                "script_status": "active",
                "last_tracking_event": None,
                "views_count": 3,
            },
        )

    auth = AuthClient("http://test", access_token="token", transport=httpx.MockTransport(handler))
    gateway = CompanyRecordGateway(auth)
    gateway.company = {"id": "c-1", "tracking_id": "wl_closed", "script_installed": False, "script_status": "pending"}
    notifier = RecordingNotifier()
    binding = TrackingScriptBinding(auth, gateway, notifier=notifier)

    task = asyncio.create_task(binding.poll(interval=0, attempts=5))
    await requested.wait()
    binding.close()
    release.set()

    assert await task is False
    assert calls == ["/companies/me/script/verify"]
    assert gateway.company["script_status"] == "pending"
    assert binding.last_check is None
    assert notifier.successes == []

    assert await binding.poll(interval=0, attempts=3) is False
    assert len(calls) == 1
    await auth.aclose()
