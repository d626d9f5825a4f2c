"""
schemas/navigation.py
---------------------
Wire form of a route-guard decision.
"""

from typing import Optional

from pydantic import BaseModel

from welo.core.guard import GuardAction, GuardDecision


class PanelRead(BaseModel):
    code: str
    title: str
    message: str


class GuardDecisionRead(BaseModel):
    path: str
    action: GuardAction
    location: Optional[str] = None
    return_to: Optional[str] = None
    panel: Optional[PanelRead] = None

    @classmethod
    def from_decision(cls, path: str, decision: GuardDecision) -> "GuardDecisionRead":
        panel = decision.panel
        return cls(
            path=path,
            action=decision.action,
            location=decision.location,
            return_to=decision.return_to,
            panel=PanelRead(code=panel.code, title=panel.title, message=panel.message)
            if panel
            else None,
        )
