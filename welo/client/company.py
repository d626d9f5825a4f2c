"""
client/company.py
-----------------
Client-side accessors for the company owned by the signed-in principal.

CompanyRecordGateway
  fetch()   returns the company, or None when the principal has not
            onboarded yet (an expected state, not an error). Any other
            failure is logged, kept on .error, and also degrades to None.
  update()  partial profile update; no-op without a loaded company and
            re-raises failures.

TrackingScriptBinding
  check()   asks the server to verify the script installation now.
  poll()    repeats check() until it succeeds or attempts run out.
  close()   stops poll() and drops results still in flight.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from welo.client.auth import ApiError, AuthClient
from welo.client.notifications import LogNotifier, Notifier
from welo.core.logging import get_logger
from welo.models.company import CompanyStatus, ScriptStatus

logger = get_logger(__name__)


class CompanyRecordGateway:
    def __init__(self, auth: AuthClient) -> None:
        self.auth = auth
        self.company: Optional[Dict[str, Any]] = None
        self.error: Optional[Exception] = None
        self.loading = False

    async def fetch(self) -> Optional[Dict[str, Any]]:
        self.loading = True
        self.error = None
        try:
            response = await self.auth.request("GET", "/companies/me")
            self.company = response.json()
        except ApiError as exc:
            self.company = None
            if exc.status_code != 404:
                logger.warning("Company fetch failed", status_code=exc.status_code, error=exc.detail)
                self.error = exc
        except httpx.HTTPError as exc:
            logger.warning("Company fetch failed", error=str(exc))
            self.company = None
            self.error = exc
        finally:
            self.loading = False
        return self.company

    async def onboard(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.auth.request("POST", "/companies", json=fields)
        self.company = response.json()
        return self.company

    async def update(self, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if self.company is None:
            logger.debug("No company loaded, skipping update")
            return None
        try:
            response = await self.auth.request("PATCH", "/companies/me", json=fields)
        except (ApiError, httpx.HTTPError) as exc:
            logger.error("Company update failed", company_id=self.company["id"], error=str(exc))
            raise
        self.company = response.json()
        return self.company

    @property
    def is_approved(self) -> bool:
        return bool(self.company) and self.company["status"] == CompanyStatus.approved.value

    @property
    def has_script_installed(self) -> bool:
        return bool(self.company) and bool(self.company.get("script_installed"))

    @property
    def script_status(self) -> ScriptStatus:
        if not self.company:
            return ScriptStatus.not_installed
        return ScriptStatus(self.company.get("script_status") or ScriptStatus.not_installed.value)


class TrackingScriptBinding:
    def __init__(
        self,
        auth: AuthClient,
        gateway: Optional[CompanyRecordGateway] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self.auth = auth
        self.gateway = gateway
        self.notifier = notifier or LogNotifier()
        self.binding: Optional[Dict[str, Any]] = None
        self.last_check: Optional[datetime] = None
        self.verifying = False
        self._closed = False

    @property
    def tracking_id(self) -> Optional[str]:
        if self.binding:
            return self.binding.get("tracking_id")
        if self.gateway and self.gateway.company:
            return self.gateway.company.get("tracking_id")
        return None

    async def refresh(self) -> Dict[str, Any]:
        response = await self.auth.request("GET", "/companies/me/script")
        self.binding = response.json()
        return self.binding

    async def check(self) -> bool:
        self.verifying = True
        try:
            response = await self.auth.request("POST", "/companies/me/script/verify")
        except (ApiError, httpx.HTTPError) as exc:
            logger.warning("Script verification failed", error=str(exc))
            if not self._closed:
                self.notifier.error("Error while verifying the tracking script")
            raise
        finally:
            self.verifying = False

        if self._closed:
            logger.debug("Binding closed, dropping verification result")
            return False
        self.binding = response.json()
        self.last_check = datetime.now(timezone.utc)
        if self.gateway and self.gateway.company:
            for key in ("script_installed", "script_status", "last_tracking_event", "views_count"):
                self.gateway.company[key] = self.binding[key]
        self.notifier.success("Verification complete")
        return bool(self.binding["verified"])

    def close(self) -> None:
        """Stop polling and stop writing results once the owning view is gone."""
        self._closed = True

    async def poll(self, interval: float = 5.0, attempts: int = 12) -> bool:
        for attempt in range(1, attempts + 1):
            if self._closed:
                return False
            if await self.check():
                return True
            if attempt < attempts and not self._closed:
                await asyncio.sleep(interval)
        return False
