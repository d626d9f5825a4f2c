"""
client/auth.py
--------------
Thin async wrapper over the /auth endpoints that also holds the current
session token, the way a hosted-auth SDK does in a browser.

Listeners registered with on_auth_state_change receive (event, session):

  INITIAL_SESSION  the first get_session() call finished (session may be None)
  SIGNED_IN        password or federated sign-in succeeded
  SIGNED_OUT       sign-out succeeded, or the stored token was rejected
"""

import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx

from welo.core.logging import get_logger
from welo.models.profile import UserRole

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10.0


class AuthEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


class ApiError(Exception):
    """Non-2xx response from the Welo API."""

    def __init__(self, status_code: int, detail: str, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail
        self.payload = payload or {}

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        try:
            payload = response.json()
        except ValueError:
            return cls(response.status_code, response.text or response.reason_phrase)
        if not isinstance(payload, dict):
            return cls(response.status_code, str(payload))
        detail = payload.get("detail") or payload.get("error") or response.reason_phrase
        return cls(response.status_code, detail if isinstance(detail, str) else str(detail), payload)


def parse_role(value: Optional[str]) -> UserRole:
    # Anything the client does not recognise is the least-privileged role
    try:
        return UserRole(value)
    except ValueError:
        return UserRole.company


@dataclass(frozen=True)
class Session:
    access_token: str
    user: Dict[str, Any]
    role: UserRole

    @property
    def user_id(self) -> str:
        return self.user["id"]

    @property
    def email(self) -> str:
        return self.user["email"]


AuthListener = Callable[[AuthEvent, Optional[Session]], Union[None, Awaitable[None]]]


class AuthClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        access_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self.session: Optional[Session] = None
        self._access_token = access_token
        self._listeners: List[AuthListener] = []
        self._initialised = False

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "AuthClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ── Transport ────────────────────────────────────────────────────────────

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send an authenticated request; raises ApiError on any non-2xx."""
        headers = dict(kwargs.pop("headers", None) or {})
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        response = await self.http.request(method, path, headers=headers, **kwargs)
        if response.is_error:
            raise ApiError.from_response(response)
        return response

    # ── Listeners ────────────────────────────────────────────────────────────

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        """Register a listener. Returns a function that unregisters it."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def _emit(self, event: AuthEvent, session: Optional[Session]) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(event, session)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Auth listener failed", auth_event=event.value)

    # ── Operations ───────────────────────────────────────────────────────────

    async def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        """Create an account. Does not sign in."""
        response = await self.request("POST", "/auth/register", json={"email": email, "password": password})
        return response.json()

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        response = await self.request(
            "POST", "/auth/login", data={"username": email, "password": password}
        )
        return await self._signed_in(response.json())

    async def sign_in_with_oauth(self, provider: str, redirect_to: Optional[str] = None) -> str:
        """URL of the provider's consent screen to send the browser to."""
        params = {"redirect_to": redirect_to} if redirect_to else None
        response = await self.request("GET", f"/auth/oauth/{provider}/authorize", params=params)
        return response.json()["url"]

    async def exchange_code_for_session(self, provider: str, code: str, state: str) -> Session:
        response = await self.request(
            "POST", f"/auth/oauth/{provider}/callback", json={"code": code, "state": state}
        )
        return await self._signed_in(response.json())

    async def sign_out(self) -> None:
        if self._access_token:
            await self.request("POST", "/auth/logout")
        self._access_token = None
        self.session = None
        await self._emit(AuthEvent.SIGNED_OUT, None)

    async def get_session(self) -> Optional[Session]:
        """
        Resolve the stored token into a session. A token the server no
        longer accepts is dropped and reported as signed out.

        If the token changes while /auth/me is in flight (a sign-in or
        sign-out finished meanwhile) the result is discarded and the current
        session is returned unchanged.
        """
        token = self._access_token
        session: Optional[Session] = None
        if token:
            try:
                response = await self.request("GET", "/auth/me")
            except ApiError as exc:
                if exc.status_code != 401:
                    raise
                if self._access_token != token:
                    return self._superseded()
                logger.info("Stored session rejected, signing out locally")
                self._access_token = None
            else:
                if self._access_token != token:
                    return self._superseded()
                body = response.json()
                session = Session(token, body["user"], parse_role(body.get("role")))
        self.session = session

        if not self._initialised:
            self._initialised = True
            await self._emit(AuthEvent.INITIAL_SESSION, session)
        elif session is None:
            await self._emit(AuthEvent.SIGNED_OUT, None)
        return session

    def _superseded(self) -> Optional[Session]:
        # The newer sign-in or sign-out already emitted its own event
        logger.debug("Session fetch superseded by a newer auth change")
        self._initialised = True
        return self.session

    async def _signed_in(self, body: Dict[str, Any]) -> Session:
        self._access_token = body["access_token"]
        self.session = Session(body["access_token"], body["user"], parse_role(body.get("role")))
        logger.info("Signed in", user_id=self.session.user_id, role=self.session.role.value)
        await self._emit(AuthEvent.SIGNED_IN, self.session)
        return self.session
