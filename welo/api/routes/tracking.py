"""
api/routes/tracking.py
----------------------
Public endpoint called by the embeddable tracking script on customer
sites. No authentication; CORS is open for this path (see core/cors.py).

POST /track-event  — Record one badge view for an approved company.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from welo.core.logging import get_logger
from welo.db.session import get_db
from welo.schemas.tracking import TrackEventRequest, TrackEventResponse
from welo.services.tracking_service import TrackingService, UnknownTrackingIdError

logger = get_logger(__name__)

router = APIRouter(tags=["Tracking"])


def client_ip(request: Request) -> Optional[str]:
    """First hop of X-Forwarded-For, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else None


@router.post(
    "/track-event",
    response_model=TrackEventResponse,
    responses={400: {"description": "Missing required parameters"}, 404: {"description": "Unknown tracking id"}},
    summary="Record a badge view (called by the tracking script)",
)
async def track_event(
    body: TrackEventRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    if not body.tracking_id or not body.page_url:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Missing required parameters"},
        )

    try:
        data = await TrackingService.process_tracking_event(
            db,
            tracking_id=body.tracking_id,
            page_url=body.page_url,
            referrer=body.referrer,
            user_agent=body.user_agent or request.headers.get("user-agent"),
            ip=client_ip(request),
        )
    except UnknownTrackingIdError as exc:
        logger.info("Tracking event for unknown id", tracking_id=body.tracking_id)
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": str(exc)})

    return TrackEventResponse(success=True, data=data)
