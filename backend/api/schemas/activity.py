"""
Activity log API schemas.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict


class ActivityLogResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    team_id: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    details: Optional[dict[str, Any]] = None
    ip_address: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ActivityLogListResponse(BaseModel):
    entries: List[ActivityLogResponse]
    total: int
    limit: int
    offset: int
