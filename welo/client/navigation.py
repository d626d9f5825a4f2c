"""
client/navigation.py
--------------------
Local route-guard evaluation, using the same screen registry and decision
function as the API so both sides always agree.
"""

from typing import Optional

from welo.client.company import CompanyRecordGateway
from welo.client.session import SessionState
from welo.core.guard import GuardContext, GuardDecision, evaluate_route
from welo.core.screens import get_screen


def guard_context(session: SessionState, company: Optional[CompanyRecordGateway] = None) -> GuardContext:
    return GuardContext(
        is_authenticated=session.is_authenticated,
        role=session.role,
        is_loading=session.is_loading,
        company_loading=bool(company and company.loading),
        company_approved=bool(company and company.is_approved),
        script_installed=bool(company and company.has_script_installed),
    )


def resolve_screen(
    path: str, session: SessionState, company: Optional[CompanyRecordGateway] = None
) -> GuardDecision:
    return evaluate_route(get_screen(path), guard_context(session, company))
