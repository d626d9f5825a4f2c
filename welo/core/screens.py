"""
core/screens.py
---------------
Declarative access requirements for every dashboard screen.

API routes reference these by path through dependencies.require_screen,
and GET /navigation/resolve exposes the same decisions to the front-end,
so each screen's rules live in exactly one place.
"""

from typing import Dict

from welo.core.guard import RouteRequirement
from welo.models.profile import UserRole

_company = UserRole.company
_admin = UserRole.admin

SCREENS: Dict[str, RouteRequirement] = {
    requirement.path: requirement
    for requirement in (
        RouteRequirement("/auth", require_auth=False),
        RouteRequirement("/onboarding", required_role=_company),
        RouteRequirement("/verification", required_role=_company),
        RouteRequirement("/settings", required_role=_company),
        RouteRequirement("/dashboard", required_role=_company, require_approval=True),
        RouteRequirement("/widgets", required_role=_company, require_approval=True),
        RouteRequirement(
            "/statistics",
            required_role=_company,
            require_approval=True,
            require_script=True,
        ),
        RouteRequirement("/admin", required_role=_admin),
        RouteRequirement("/admin/analytics", required_role=_admin),
        RouteRequirement("/admin/settings", required_role=_admin),
    )
}


def get_screen(path: str) -> RouteRequirement:
    """
    Look up a screen by path. Unknown paths still require a signed-in
    principal so nothing is reachable anonymously by accident.
    """
    normalised = "/" + path.strip("/") if path.strip("/") else "/dashboard"
    return SCREENS.get(normalised, RouteRequirement(normalised))
