"""Activity log domain objects."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ActivityFacts:
    """The parts of an activity_logs row the policies look at."""

    id: str
    user_id: Optional[str]
    team_id: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "ActivityFacts":
        return cls(id=row.id, user_id=row.user_id, team_id=row.team_id)
