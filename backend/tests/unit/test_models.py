"""
Unit tests for table-level constraints on the ORM models.
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from infrastructure.database.models import Project, ProjectCollaborator, Team, TeamMember, Template, User

pytestmark = pytest.mark.asyncio


async def _rejected(db_session, row) -> None:
    db_session.add(row)
    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()


class TestEnumColumns:
    async def test_project_status_and_visibility(self, db_session, bob):
        bob_id = bob.id
        await _rejected(db_session, Project(owner_user_id=bob_id, name="App", slug="app", status="bogus"))
        await _rejected(
            db_session, Project(owner_user_id=bob_id, name="App", slug="app", visibility="nonsense")
        )

        db_session.add(Project(owner_user_id=bob_id, name="App", slug="app", status="generated"))
        await db_session.commit()
        statuses = await db_session.execute(select(Project.status).where(Project.owner_user_id == bob_id))
        assert statuses.scalars().all() == ["generated"]

    async def test_collaborator_role_and_status(self, db_session, alice, bob):
        alice_id, bob_id = alice.id, bob.id
        project = Project(owner_user_id=alice_id, name="App", slug="app")
        db_session.add(project)
        await db_session.commit()
        project_id = project.id

        await _rejected(
            db_session, ProjectCollaborator(project_id=project_id, user_id=bob_id, role="superuser")
        )
        await _rejected(
            db_session, ProjectCollaborator(project_id=project_id, user_id=bob_id, status="maybe")
        )

    async def test_team_member_role_and_status(self, db_session, alice):
        alice_id = alice.id
        team = Team(name="Acme", slug="acme", created_by=alice_id)
        db_session.add(team)
        await db_session.commit()
        team_id = team.id

        await _rejected(db_session, TeamMember(team_id=team_id, user_id=alice_id, role="emperor"))
        await _rejected(db_session, TeamMember(team_id=team_id, user_id=alice_id, status="lurking"))

    async def test_template_visibility(self, db_session, alice):
        await _rejected(
            db_session,
            Template(
                created_by=alice.id,
                name="Starter",
                slug="starter",
                description="A starter",
                category="web_app",
                frontend_stack="nextjs",
                file_structure={},
                visibility="secret",
            ),
        )

    async def test_user_role_and_tier(self, db_session):
        await _rejected(db_session, User(email="x@acme.io", role="overlord"))
        await _rejected(db_session, User(email="y@acme.io", subscription_tier="platinum"))
