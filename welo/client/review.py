"""
client/review.py
----------------
Admin review queue. Approve/reject calls for the same company are
serialized: a second call while one is in flight raises
TransitionInFlightError instead of reaching the server. Failed calls leave
the queue exactly as it was; the list only changes once the server has
confirmed a transition.
"""

from typing import Any, Dict, Iterable, List, Optional, Set

import httpx

from welo.client.auth import ApiError, AuthClient
from welo.client.notifications import LogNotifier, Notifier
from welo.core.logging import get_logger
from welo.services.verification_service import RejectionReasonRequiredError, require_reason

logger = get_logger(__name__)


class TransitionInFlightError(RuntimeError):
    """Raised when a transition for the same company is already running."""


class ReviewQueue:
    def __init__(self, auth: AuthClient, notifier: Optional[Notifier] = None) -> None:
        self.auth = auth
        self.notifier = notifier or LogNotifier()
        self.companies: List[Dict[str, Any]] = []
        self.total = 0
        self.error: Optional[Exception] = None
        self.loading = False
        self._in_flight: Set[str] = set()

    def is_busy(self, company_id: str) -> bool:
        return company_id in self._in_flight

    def get(self, company_id: str) -> Optional[Dict[str, Any]]:
        return next((c for c in self.companies if c["id"] == company_id), None)

    async def load(
        self,
        statuses: Optional[Iterable[str]] = None,
        search: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        if statuses:
            params["status"] = list(statuses)
        if search:
            params["search"] = search

        self.loading = True
        self.error = None
        try:
            response = await self.auth.request("GET", "/admin/companies", params=params)
        except (ApiError, httpx.HTTPError) as exc:
            logger.warning("Review queue fetch failed", error=str(exc))
            self.error = exc
            self.companies, self.total = [], 0
        else:
            body = response.json()
            self.companies, self.total = body["items"], body["total"]
        finally:
            self.loading = False
        return self.companies

    async def start_review(self, company_id: str) -> Dict[str, Any]:
        return await self._transition(company_id, "review", {})

    async def approve(self, company_id: str) -> Dict[str, Any]:
        company = await self._transition(company_id, "approve", {})
        self.notifier.success(f"{company['company_name']} approved")
        return company

    async def reject(self, company_id: str, reason: Optional[str]) -> Dict[str, Any]:
        try:
            reason = require_reason(reason)
        except RejectionReasonRequiredError:
            self.notifier.error("Please provide a rejection reason")
            raise
        company = await self._transition(company_id, "reject", {"reason": reason})
        self.notifier.success(f"{company['company_name']} rejected")
        return company

    async def _transition(self, company_id: str, action: str, body: Dict[str, Any]) -> Dict[str, Any]:
        if company_id in self._in_flight:
            raise TransitionInFlightError(f"A transition for company {company_id} is already running")

        current = self.get(company_id)
        if current is not None:
            body = {**body, "expected_status": current["status"]}

        self._in_flight.add(company_id)
        try:
            response = await self.auth.request(
                "POST", f"/admin/companies/{company_id}/{action}", json=body
            )
        except (ApiError, httpx.HTTPError) as exc:
            message = exc.detail if isinstance(exc, ApiError) else str(exc)
            logger.warning("Review transition failed", company_id=company_id, action=action, error=message)
            self.notifier.error(f"Could not {action} company: {message}")
            raise
        finally:
            self._in_flight.discard(company_id)

        company = response.json()
        self.companies = [company if c["id"] == company_id else c for c in self.companies]
        logger.info("Review transition applied", company_id=company_id, status=company["status"])
        return company
