"""
Unit tests for ActivityLogService and the retention cleanup job.
"""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select

from core.domain.team import MemberStatus, TeamRole
from core.domain.user import Actor
from infrastructure.database.models import ActivityLog, Team, TeamMember
from services.activity_log import ActivityLogService, RequestContext, cleanup_old_activity_logs

pytestmark = pytest.mark.asyncio


async def _team_with_member(db_session, owner_id: str, member_id: str, member_status: str) -> str:
    team = Team(name="Acme", slug="acme", created_by=owner_id)
    db_session.add(team)
    await db_session.flush()
    db_session.add_all([
        TeamMember(team_id=team.id, user_id=owner_id, role=TeamRole.OWNER.value, status=MemberStatus.ACTIVE.value),
        TeamMember(team_id=team.id, user_id=member_id, role=TeamRole.MEMBER.value, status=member_status),
    ])
    await db_session.commit()
    return team.id


class TestRecord:
    async def test_entry_lands_with_the_callers_commit(self, db_session, alice):
        service = ActivityLogService(db_session, RequestContext(ip_address="203.0.113.9", user_agent="pytest"))
        service.record(user_id=alice.id, action="project_created", resource_type="project", resource_id="p1")
        await db_session.commit()

        entries = (await db_session.execute(select(ActivityLog))).scalars().all()
        assert len(entries) == 1
        assert entries[0].ip_address == "203.0.113.9"
        assert entries[0].user_agent == "pytest"
        assert entries[0].details == {}

    async def test_user_agent_is_truncated(self, db_session, alice):
        service = ActivityLogService(db_session, RequestContext(user_agent="x" * 900))
        entry = service.record(user_id=alice.id, action="team_created", resource_type="team")
        assert len(entry.user_agent) == 500


class TestListForActor:
    async def test_member_reads_team_entries_but_not_strangers(self, db_session, alice, bob, carol):
        team_id = await _team_with_member(db_session, alice.id, bob.id, MemberStatus.ACTIVE.value)
        service = ActivityLogService(db_session)
        service.record(user_id=alice.id, team_id=team_id, action="team_updated", resource_type="team")
        service.record(user_id=carol.id, action="project_created", resource_type="project")
        await db_session.commit()

        entries, total = await service.list_for_actor(Actor.from_user(bob))
        assert total == 1
        assert entries[0].action == "team_updated"

        entries, total = await service.list_for_actor(Actor.from_user(carol))
        assert [e.action for e in entries] == ["project_created"]

    async def test_suspended_member_loses_team_entries(self, db_session, alice, bob):
        team_id = await _team_with_member(db_session, alice.id, bob.id, MemberStatus.SUSPENDED.value)
        service = ActivityLogService(db_session)
        service.record(user_id=alice.id, team_id=team_id, action="team_updated", resource_type="team")
        await db_session.commit()

        _, total = await service.list_for_actor(Actor.from_user(bob))
        assert total == 0

    async def test_admin_reads_everything(self, db_session, alice, bob, platform_admin):
        service = ActivityLogService(db_session)
        service.record(user_id=alice.id, action="team_created", resource_type="team")
        service.record(user_id=bob.id, action="project_created", resource_type="project")
        await db_session.commit()

        _, total = await service.list_for_actor(Actor.from_user(platform_admin))
        assert total == 2

    async def test_filters_and_paging(self, db_session, alice):
        service = ActivityLogService(db_session)
        for _ in range(5):
            service.record(user_id=alice.id, action="template_viewed", resource_type="template")
        service.record(user_id=alice.id, action="team_created", resource_type="team")
        await db_session.commit()

        entries, total = await service.list_for_actor(Actor.from_user(alice), action="template_viewed", limit=2, offset=1)
        assert total == 5
        assert len(entries) == 2


class TestCleanup:
    async def test_removes_only_entries_past_retention(self, db_session, alice):
        now = datetime.now(UTC)
        db_session.add_all([
            ActivityLog(user_id=alice.id, action="team_created", resource_type="team", created_at=now - timedelta(days=120)),
            ActivityLog(user_id=alice.id, action="team_updated", resource_type="team", created_at=now - timedelta(days=10)),
        ])
        await db_session.commit()

        assert await cleanup_old_activity_logs(db_session, retention_days=90) == 1
        remaining = await db_session.execute(select(func.count()).select_from(ActivityLog))
        assert remaining.scalar() == 1
