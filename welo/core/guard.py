"""
core/guard.py
-------------
Route guard: a pure decision function shared by the API and the client.

Given what is known about the caller (authenticated? which role? is their
company approved? is the tracking script installed?) and what a screen
requires, decide one of:

  render                 show the screen
  loading                session or company state not resolved yet; show a
                         spinner, never redirect
  redirect_to_auth       not signed in; go to the sign-in screen and come
                         back to return_to afterwards
  redirect_to_role_home  signed in with the wrong role; go to that role's
                         home screen
  blocked                right role, but the company is not approved or has
                         no active script; stay on the screen and show a
                         fixed explanatory panel

Checks run in exactly that order, so mismatched-role content is never
rendered and an unapproved company is never told about the script.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from welo.models.profile import UserRole

AUTH_PATH = "/auth"

ROLE_HOME = {
    UserRole.admin: "/admin",
    UserRole.company: "/dashboard",
}


class GuardAction(str, Enum):
    render = "render"
    loading = "loading"
    redirect_to_auth = "redirect_to_auth"
    redirect_to_role_home = "redirect_to_role_home"
    blocked = "blocked"


@dataclass(frozen=True)
class BlockingPanel:
    code: str
    title: str
    message: str


APPROVAL_REQUIRED_PANEL = BlockingPanel(
    code="approval_required",
    title="Company Approval Required",
    message=(
        "This page is only available to approved companies. Please wait for "
        "admin approval or check your verification status in the "
        "verification section."
    ),
)

SCRIPT_REQUIRED_PANEL = BlockingPanel(
    code="script_required",
    title="Tracking Script Required",
    message=(
        "This page requires an active tracking script installation. Please "
        "install and verify your tracking script in the widgets section."
    ),
)


@dataclass(frozen=True)
class RouteRequirement:
    """What a screen needs before it may be rendered."""

    path: str
    require_auth: bool = True
    required_role: Optional[UserRole] = None
    require_approval: bool = False
    require_script: bool = False

    @property
    def needs_company_state(self) -> bool:
        return self.require_approval or self.require_script


@dataclass(frozen=True)
class GuardContext:
    """Snapshot of the caller's state at decision time."""

    is_authenticated: bool = False
    role: Optional[UserRole] = None
    is_loading: bool = False
    company_loading: bool = False
    company_approved: bool = False
    script_installed: bool = False


@dataclass(frozen=True)
class GuardDecision:
    action: GuardAction
    location: Optional[str] = None
    return_to: Optional[str] = None
    panel: Optional[BlockingPanel] = None

    @property
    def allowed(self) -> bool:
        return self.action is GuardAction.render


def role_home(role: Optional[UserRole]) -> str:
    # Unknown role gets the least-privileged home
    return ROLE_HOME.get(role or UserRole.company, ROLE_HOME[UserRole.company])


def evaluate_route(requirement: RouteRequirement, context: GuardContext) -> GuardDecision:
    if context.is_loading:
        return GuardDecision(GuardAction.loading)

    if not requirement.require_auth:
        return GuardDecision(GuardAction.render)

    if not context.is_authenticated:
        return GuardDecision(
            GuardAction.redirect_to_auth,
            location=AUTH_PATH,
            return_to=requirement.path,
        )

    role = context.role or UserRole.company
    if requirement.required_role is not None and role != requirement.required_role:
        return GuardDecision(GuardAction.redirect_to_role_home, location=role_home(role))

    if requirement.needs_company_state and context.company_loading:
        return GuardDecision(GuardAction.loading)

    if requirement.require_approval and not context.company_approved:
        return GuardDecision(GuardAction.blocked, panel=APPROVAL_REQUIRED_PANEL)

    if requirement.require_script and not context.script_installed:
        return GuardDecision(GuardAction.blocked, panel=SCRIPT_REQUIRED_PANEL)

    return GuardDecision(GuardAction.render)
