"""
schemas/tracking.py
-------------------
Tracking-script payloads. The public /track-event body keeps the camelCase
field names the embedded script sends.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from welo.models.company import ScriptStatus


class TrackEventRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tracking_id: Optional[str] = Field(default=None, alias="trackingId")
    page_url: Optional[str] = Field(default=None, alias="pageUrl")
    referrer: Optional[str] = None
    user_agent: Optional[str] = Field(default=None, alias="userAgent")


class TrackEventResponse(BaseModel):
    success: bool = True
    data: dict[str, Any]


class ScriptBindingRead(BaseModel):
    tracking_id: Optional[str] = None
    script_installed: bool
    script_status: ScriptStatus
    last_tracking_event: Optional[datetime] = None
    views_count: int


class ScriptVerificationRead(ScriptBindingRead):
    verified: bool
