"""
api/routes/navigation.py
------------------------
Lets the dashboard ask what the route guard would do for a screen without
requesting the screen itself.

GET /navigation/resolve?path=/statistics
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from welo.core.guard import evaluate_route
from welo.core.screens import get_screen
from welo.db.session import get_db
from welo.dependencies import SessionContext, build_guard_context, get_optional_session
from welo.schemas.navigation import GuardDecisionRead

router = APIRouter(prefix="/navigation", tags=["Navigation"])


@router.get("/resolve", response_model=GuardDecisionRead, summary="Evaluate the route guard")
async def resolve(
    db: Annotated[AsyncSession, Depends(get_db)],
    session: Annotated[Optional[SessionContext], Depends(get_optional_session)],
    path: str = Query(default="/dashboard", max_length=512),
) -> GuardDecisionRead:
    requirement = get_screen(path)
    context = await build_guard_context(db, session, requirement.needs_company_state)
    return GuardDecisionRead.from_decision(requirement.path, evaluate_route(requirement, context))
