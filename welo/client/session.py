"""
client/session.py
-----------------
Application-scoped session state, created when the front-end mounts and
closed when it unmounts.

Phases:
  uninitialized → loading → ready

Two sources can resolve the session: the initial get_session() call made
by start(), and auth-state events from the AuthClient. Every resolution
takes a ticket when it begins and is applied only if no later resolution
has begun since, so whichever finishes last-started wins and a slow
initial fetch can never overwrite a sign-in that happened meanwhile. Any
applied resolution moves the store to ready; nothing else does.
INITIAL_SESSION events are ignored because start() already resolves the
same result under its own ticket.

After close() all pending resolutions are dropped.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import httpx

from welo.client.auth import ApiError, AuthClient, AuthEvent, Session
from welo.client.notifications import LogNotifier, Notifier
from welo.core.logging import get_logger
from welo.models.profile import UserRole

logger = get_logger(__name__)

DEFAULT_PROVIDER = "google"


class SessionPhase(str, Enum):
    uninitialized = "uninitialized"
    loading = "loading"
    ready = "ready"


@dataclass(frozen=True)
class SessionState:
    principal: Optional[Dict[str, Any]] = None
    role: Optional[UserRole] = None
    phase: SessionPhase = SessionPhase.uninitialized

    @property
    def is_loading(self) -> bool:
        return self.phase is not SessionPhase.ready

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None


StateListener = Callable[[SessionState], None]


class SessionStore:
    def __init__(
        self,
        auth: AuthClient,
        notifier: Optional[Notifier] = None,
        on_redirect: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.auth = auth
        self.notifier = notifier or LogNotifier()
        self.on_redirect = on_redirect
        self.redirect_url: Optional[str] = None
        self._state = SessionState()
        self._listeners: List[StateListener] = []
        self._unsubscribe_auth: Optional[Callable[[], None]] = None
        self._ticket = 0
        self._closed = False

    @property
    def state(self) -> SessionState:
        return self._state

    # ── Lifecycle ────────────────────────────────────────────────────────────

    async def start(self) -> SessionState:
        if self._closed:
            raise RuntimeError("SessionStore is closed")
        if self._state.phase is not SessionPhase.uninitialized:
            return self._state

        self._set(replace(self._state, phase=SessionPhase.loading))
        self._unsubscribe_auth = self.auth.on_auth_state_change(self._on_auth_event)

        ticket = self._next_ticket()
        try:
            session = await self.auth.get_session()
        except (ApiError, httpx.HTTPError) as exc:
            # Treated as signed out; the store must still become ready
            logger.warning("Initial session fetch failed", error=str(exc))
            session = None
        self._resolve(ticket, session)
        return self._state

    def close(self) -> None:
        self._closed = True
        if self._unsubscribe_auth is not None:
            self._unsubscribe_auth()
            self._unsubscribe_auth = None
        self._listeners.clear()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Resolution ───────────────────────────────────────────────────────────

    def _next_ticket(self) -> int:
        self._ticket += 1
        return self._ticket

    def _on_auth_event(self, event: AuthEvent, session: Optional[Session]) -> None:
        logger.debug("Auth state change", auth_event=event.value, signed_in=session is not None)
        if event is AuthEvent.INITIAL_SESSION:
            # start() resolves this result under the ticket it took first
            return
        self._resolve(self._next_ticket(), session)

    def _resolve(self, ticket: int, session: Optional[Session]) -> None:
        if self._closed or ticket != self._ticket:
            return
        if session is None:
            self._set(SessionState(phase=SessionPhase.ready))
        else:
            self._set(SessionState(principal=session.user, role=session.role, phase=SessionPhase.ready))

    def _set(self, state: SessionState) -> None:
        if state == self._state:
            return
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    # ── Operations ───────────────────────────────────────────────────────────
    # Each returns None on success or the error message; none of them raise
    # for API failures.

    async def sign_up(self, email: str, password: str) -> Optional[str]:
        try:
            await self.auth.sign_up(email, password)
        except (ApiError, httpx.HTTPError) as exc:
            return self._failed("Sign-up failed", exc)
        self.notifier.success("Registration complete! You can now sign in.")
        return None

    async def sign_in(self, email: str, password: str) -> Optional[str]:
        try:
            await self.auth.sign_in_with_password(email, password)
        except (ApiError, httpx.HTTPError) as exc:
            return self._failed("Sign-in failed", exc)
        self.notifier.success("Welcome back!")
        return None

    async def sign_in_with_provider(
        self, provider: str = DEFAULT_PROVIDER, redirect_to: Optional[str] = None
    ) -> Optional[str]:
        """
        Start federated sign-in. The session resumes through the SIGNED_IN
        event once complete_provider_sign_in runs on the callback page.
        """
        try:
            url = await self.auth.sign_in_with_oauth(provider, redirect_to)
        except (ApiError, httpx.HTTPError) as exc:
            return self._failed("Federated sign-in failed", exc)
        self.redirect_url = url
        self.notifier.success(f"Redirecting to {provider.capitalize()}...")
        if self.on_redirect is not None:
            self.on_redirect(url)
        return None

    async def complete_provider_sign_in(self, provider: str, code: str, state: str) -> Optional[str]:
        try:
            await self.auth.exchange_code_for_session(provider, code, state)
        except (ApiError, httpx.HTTPError) as exc:
            return self._failed("Federated sign-in failed", exc)
        self.notifier.success("Welcome back!")
        return None

    async def sign_out(self) -> Optional[str]:
        try:
            await self.auth.sign_out()
        except (ApiError, httpx.HTTPError) as exc:
            return self._failed("Sign-out failed", exc)
        # Cleared on success whether or not the SIGNED_OUT event got here
        self._resolve(self._next_ticket(), None)
        self.notifier.success("Signed out successfully")
        return None

    def _failed(self, what: str, exc: Exception) -> str:
        message = exc.detail if isinstance(exc, ApiError) else str(exc)
        logger.warning(what, error=message)
        self.notifier.error(message)
        return message
