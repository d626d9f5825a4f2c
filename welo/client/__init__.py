"""
client/__init__.py
------------------
Async client for the Welo API holding the dashboard's client-side state:

    from welo.client import AuthClient, SessionStore

    auth = AuthClient("https://api.welobadge.com")
    store = SessionStore(auth)
    await store.start()
"""

from welo.client.auth import ApiError, AuthClient, AuthEvent, Session
from welo.client.company import CompanyRecordGateway, TrackingScriptBinding
from welo.client.navigation import guard_context, resolve_screen
from welo.client.notifications import LogNotifier, Notifier
from welo.client.review import ReviewQueue, TransitionInFlightError
from welo.client.session import SessionPhase, SessionState, SessionStore

__all__ = [
    "ApiError",
    "AuthClient",
    "AuthEvent",
    "CompanyRecordGateway",
    "LogNotifier",
    "Notifier",
    "ReviewQueue",
    "Session",
    "SessionPhase",
    "SessionState",
    "SessionStore",
    "TrackingScriptBinding",
    "TransitionInFlightError",
    "guard_context",
    "resolve_screen",
]
