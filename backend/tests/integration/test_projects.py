"""
Integration tests for the Projects API.

Tests cover:
- Project CRUD and per-owner slug allocation
- Team-shared projects and role-based modification
- Public projects read anonymously
- Soft delete hiding projects from every read path
- Collaborator grants
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from infrastructure.database.models import Project


async def create_project(client: AsyncClient, headers: dict, **fields) -> dict:
    payload = {"name": "Task Tracker", "frontend_stack": "react_typescript", **fields}
    response = await client.post("/api/v1/projects", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateProject:
    """Tests for POST /projects."""

    @pytest.mark.asyncio
    async def test_create_personal_project(self, async_client: AsyncClient, alice, auth_headers: dict):
        data = await create_project(
            async_client,
            auth_headers,
            description="Tracks tasks",
            file_structure={"src": ["index.ts"]},
        )

        assert data["owner_user_id"] == alice.id
        assert data["slug"] == "task-tracker"
        assert data["status"] == "draft"
        assert data["visibility"] == "private"
        assert data["file_structure"] == {"src": ["index.ts"]}

    @pytest.mark.asyncio
    async def test_same_name_gets_random_suffix(self, async_client: AsyncClient, auth_headers: dict):
        first = await create_project(async_client, auth_headers)
        second = await create_project(async_client, auth_headers)

        assert first["slug"] == "task-tracker"
        assert second["slug"].startswith("task-tracker-")
        assert len(second["slug"]) == len("task-tracker-") + 8

    @pytest.mark.asyncio
    async def test_slugs_are_scoped_per_owner(self, async_client: AsyncClient, auth_headers: dict, headers_for, bob):
        await create_project(async_client, auth_headers)
        theirs = await create_project(async_client, headers_for(bob))
        assert theirs["slug"] == "task-tracker"

    @pytest.mark.asyncio
    async def test_team_visibility_requires_team(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.post(
            "/api/v1/projects", json={"name": "Shared", "visibility": "team"}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["field"] == "team_id"

    @pytest.mark.asyncio
    async def test_cannot_add_to_foreign_team(self, async_client: AsyncClient, headers_for, team: dict, bob):
        response = await async_client.post(
            "/api/v1/projects",
            json={"name": "Sneaky", "team_id": team["id"]},
            headers=headers_for(bob),
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_stack_rejected(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.post(
            "/api/v1/projects", json={"name": "X", "frontend_stack": "cobol"}, headers=auth_headers
        )
        assert response.status_code == 422


class TestProjectAccess:
    """Tests for GET /projects and GET /projects/{id}."""

    @pytest.mark.asyncio
    async def test_private_project_hidden_from_others(self, async_client: AsyncClient, auth_headers: dict, headers_for, bob):
        project = await create_project(async_client, auth_headers)

        assert (await async_client.get(f"/api/v1/projects/{project['id']}", headers=headers_for(bob))).status_code == 404
        assert (await async_client.get(f"/api/v1/projects/{project['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_public_project_readable_anonymously(self, async_client: AsyncClient, auth_headers: dict):
        project = await create_project(async_client, auth_headers, visibility="public", is_public=True)
        response = await async_client.get(f"/api/v1/projects/{project['id']}")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_public_visibility_without_flag_stays_hidden(self, async_client: AsyncClient, auth_headers: dict):
        project = await create_project(async_client, auth_headers, visibility="public")
        assert (await async_client.get(f"/api/v1/projects/{project['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_team_project_shared_with_members(
        self, async_client: AsyncClient, auth_headers: dict, headers_for, join_team, team: dict, bob
    ):
        await join_team(team["id"], bob, role="guest")
        project = await create_project(async_client, auth_headers, team_id=team["id"], visibility="team")
        bob_headers = headers_for(bob)

        listing = await async_client.get("/api/v1/projects", headers=bob_headers)
        assert [p["id"] for p in listing.json()["projects"]] == [project["id"]]

        detail = await async_client.get(f"/api/v1/teams/{team['id']}", headers=bob_headers)
        assert [p["id"] for p in detail.json()["projects"]] == [project["id"]]

        # Guests read but never modify
        response = await async_client.put(
            f"/api/v1/projects/{project['id']}", json={"name": "Renamed"}, headers=bob_headers
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_team_admin_can_modify(
        self, async_client: AsyncClient, auth_headers: dict, headers_for, join_team, team: dict, bob
    ):
        await join_team(team["id"], bob, role="admin")
        project = await create_project(async_client, auth_headers, team_id=team["id"])

        response = await async_client.put(
            f"/api/v1/projects/{project['id']}", json={"status": "reviewing"}, headers=headers_for(bob)
        )
        assert response.status_code == 200
        assert response.json()["status"] == "reviewing"

    @pytest.mark.asyncio
    async def test_list_filters(self, async_client: AsyncClient, auth_headers: dict):
        await create_project(async_client, auth_headers, name="Recipe Box")
        tracker = await create_project(async_client, auth_headers)
        await async_client.put(
            f"/api/v1/projects/{tracker['id']}", json={"status": "approved"}, headers=auth_headers
        )

        by_status = await async_client.get("/api/v1/projects", params={"status": "approved"}, headers=auth_headers)
        assert [p["id"] for p in by_status.json()["projects"]] == [tracker["id"]]

        by_search = await async_client.get("/api/v1/projects", params={"search": "recipe"}, headers=auth_headers)
        assert by_search.json()["total"] == 1

        paged = await async_client.get("/api/v1/projects", params={"limit": 1}, headers=auth_headers)
        assert paged.json()["total"] == 2
        assert len(paged.json()["projects"]) == 1


class TestUpdateDeleteProject:
    """Tests for PUT and DELETE /projects/{id}."""

    @pytest.mark.asyncio
    async def test_partial_update_leaves_other_fields(self, async_client: AsyncClient, auth_headers: dict):
        project = await create_project(async_client, auth_headers, description="Keep me")

        response = await async_client.put(
            f"/api/v1/projects/{project['id']}",
            json={"name": "Task Tracker Pro"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Task Tracker Pro"
        assert data["description"] == "Keep me"
        assert data["slug"] == project["slug"]

    @pytest.mark.asyncio
    async def test_null_status_rejected(self, async_client: AsyncClient, auth_headers: dict):
        project = await create_project(async_client, auth_headers)
        response = await async_client.put(
            f"/api/v1/projects/{project['id']}", json={"status": None}, headers=auth_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_soft_delete_hides_project_everywhere(self, async_client: AsyncClient, db_session, auth_headers: dict):
        project = await create_project(async_client, auth_headers, visibility="public", is_public=True)

        response = await async_client.delete(f"/api/v1/projects/{project['id']}", headers=auth_headers)
        assert response.status_code == 204

        assert (await async_client.get(f"/api/v1/projects/{project['id']}", headers=auth_headers)).status_code == 404
        assert (await async_client.get(f"/api/v1/projects/{project['id']}")).status_code == 404
        assert (await async_client.get("/api/v1/projects", headers=auth_headers)).json()["total"] == 0
        again = await async_client.delete(f"/api/v1/projects/{project['id']}", headers=auth_headers)
        assert again.status_code == 404

        # Row is kept for audit
        row = await db_session.execute(select(Project.deleted_at).where(Project.id == project["id"]))
        assert row.scalar_one() is not None

        # And the slug can be reused
        fresh = await create_project(async_client, auth_headers)
        assert fresh["slug"] == project["slug"]


class TestCollaborators:
    """Tests for /projects/{id}/collaborators."""

    @pytest.mark.asyncio
    async def test_editor_collaborator_can_modify(
        self, async_client: AsyncClient, auth_headers: dict, headers_for, bob
    ):
        project = await create_project(async_client, auth_headers)
        bob_id = bob.id
        bob_headers = headers_for(bob)

        added = await async_client.post(
            f"/api/v1/projects/{project['id']}/collaborators",
            json={"email": "bob@acme.io", "role": "editor"},
            headers=auth_headers,
        )
        assert added.status_code == 201
        assert added.json()["user_id"] == bob_id

        listing = await async_client.get(f"/api/v1/projects/{project['id']}/collaborators", headers=bob_headers)
        assert listing.status_code == 200
        assert listing.json()["total"] == 1

        response = await async_client.put(
            f"/api/v1/projects/{project['id']}", json={"description": "Edited"}, headers=bob_headers
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_viewer_reads_only(self, async_client: AsyncClient, auth_headers: dict, headers_for, bob):
        project = await create_project(async_client, auth_headers)
        bob_id = bob.id
        bob_headers = headers_for(bob)
        await async_client.post(
            f"/api/v1/projects/{project['id']}/collaborators",
            json={"email": "bob@acme.io"},
            headers=auth_headers,
        )

        assert (await async_client.get(f"/api/v1/projects/{project['id']}", headers=bob_headers)).status_code == 200
        assert (
            await async_client.put(f"/api/v1/projects/{project['id']}", json={"name": "X"}, headers=bob_headers)
        ).status_code == 403

        suspended = await async_client.put(
            f"/api/v1/projects/{project['id']}/collaborators/{bob_id}",
            json={"status": "suspended"},
            headers=auth_headers,
        )
        assert suspended.json()["status"] == "suspended"
        assert (await async_client.get(f"/api/v1/projects/{project['id']}", headers=bob_headers)).status_code == 404

    @pytest.mark.asyncio
    async def test_only_owner_manages_collaborators(
        self, async_client: AsyncClient, auth_headers: dict, headers_for, bob, carol
    ):
        project = await create_project(async_client, auth_headers)
        bob_headers = headers_for(bob)
        await async_client.post(
            f"/api/v1/projects/{project['id']}/collaborators",
            json={"email": "bob@acme.io", "role": "editor"},
            headers=auth_headers,
        )

        response = await async_client.post(
            f"/api/v1/projects/{project['id']}/collaborators",
            json={"email": "carol@acme.io"},
            headers=bob_headers,
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_owner_cannot_be_collaborator(self, async_client: AsyncClient, auth_headers: dict):
        project = await create_project(async_client, auth_headers)
        response = await async_client.post(
            f"/api/v1/projects/{project['id']}/collaborators",
            json={"email": "alice@acme.io"},
            headers=auth_headers,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_duplicate_and_removed_grants(self, async_client: AsyncClient, auth_headers: dict, bob):
        project = await create_project(async_client, auth_headers)
        bob_id = bob.id
        url = f"/api/v1/projects/{project['id']}/collaborators"

        assert (await async_client.post(url, json={"email": "bob@acme.io"}, headers=auth_headers)).status_code == 201
        assert (await async_client.post(url, json={"email": "bob@acme.io"}, headers=auth_headers)).status_code == 409

        removed = await async_client.delete(f"{url}/{bob_id}", headers=auth_headers)
        assert removed.status_code == 204
        assert (await async_client.get(url, headers=auth_headers)).json()["total"] == 0

        again = await async_client.post(url, json={"email": "bob@acme.io", "role": "commenter"}, headers=auth_headers)
        assert again.status_code == 201
        assert again.json()["role"] == "commenter"

    @pytest.mark.asyncio
    async def test_unknown_user(self, async_client: AsyncClient, auth_headers: dict):
        project = await create_project(async_client, auth_headers)
        response = await async_client.post(
            f"/api/v1/projects/{project['id']}/collaborators",
            json={"email": "ghost@acme.io"},
            headers=auth_headers,
        )
        assert response.status_code == 404
