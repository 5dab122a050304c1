"""
User API schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    """User response schema."""

    id: str
    email: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: str
    subscription_tier: str
    subscription_expires: Optional[datetime] = None
    monthly_generations: int = 0
    projects_generated: int = 0
    usage_reset_date: Optional[datetime] = None
    current_team_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserSummary(BaseModel):
    """Public slice of a user shown next to members and collaborators."""

    id: str
    email: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
