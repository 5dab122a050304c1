"""Team membership domain objects."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Optional


class TeamRole(StrEnum):
    """Role a member holds inside one team."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    GUEST = "guest"


class MemberStatus(StrEnum):
    """Lifecycle of a team_members row.

    pending -> active, active <-> suspended, any -> removed.
    """

    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    REMOVED = "removed"


TEAM_MANAGER_ROLES = frozenset({TeamRole.OWNER, TeamRole.ADMIN})
INVITABLE_ROLES = frozenset({TeamRole.ADMIN, TeamRole.MEMBER, TeamRole.GUEST})

# Transitions an owner/admin may apply through UpdateMember
MEMBER_STATUS_TRANSITIONS = {
    MemberStatus.PENDING: frozenset({MemberStatus.REMOVED}),
    MemberStatus.ACTIVE: frozenset({MemberStatus.SUSPENDED, MemberStatus.REMOVED}),
    MemberStatus.SUSPENDED: frozenset({MemberStatus.ACTIVE, MemberStatus.REMOVED}),
    MemberStatus.REMOVED: frozenset(),
}


@dataclass(frozen=True)
class Membership:
    """One team_members row: an active membership or a pending invitation."""

    team_id: str
    user_id: Optional[str]
    role: str
    status: str
    id: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Membership":
        return cls(
            id=row.id,
            team_id=row.team_id,
            user_id=row.user_id,
            role=row.role,
            status=row.status,
        )

    @property
    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE

    @property
    def is_manager(self) -> bool:
        return self.is_active and self.role in TEAM_MANAGER_ROLES


@dataclass(frozen=True)
class TeamFacts:
    """The parts of a team row the policies look at."""

    id: str
    is_active: bool = True
    deleted: bool = False

    @classmethod
    def from_row(cls, row) -> "TeamFacts":
        return cls(id=row.id, is_active=row.is_active, deleted=row.deleted_at is not None)
