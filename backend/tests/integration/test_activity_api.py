"""
Integration tests for the activity log API.
"""

import pytest
from httpx import AsyncClient


async def actions(client: AsyncClient, headers: dict, **params) -> list[str]:
    response = await client.get("/api/v1/activity", params=params, headers=headers)
    assert response.status_code == 200, response.text
    return [entry["action"] for entry in response.json()["entries"]]


class TestListActivity:
    """Tests for GET /activity."""

    @pytest.mark.asyncio
    async def test_own_entries_newest_first(self, async_client: AsyncClient, alice, auth_headers: dict):
        project = (
            await async_client.post("/api/v1/projects", json={"name": "Notes"}, headers=auth_headers)
        ).json()
        await async_client.put(f"/api/v1/projects/{project['id']}", json={"name": "Notes 2"}, headers=auth_headers)

        response = await async_client.get("/api/v1/activity", headers=auth_headers)
        data = response.json()

        assert data["total"] == 2
        assert [e["action"] for e in data["entries"]] == ["project_updated", "project_created"]
        created = data["entries"][1]
        assert created["user_id"] == alice.id
        assert created["resource_type"] == "project"
        assert created["resource_id"] == project["id"]
        assert created["details"]["project_id"] == project["id"]

    @pytest.mark.asyncio
    async def test_team_entries_visible_to_members_only(
        self, async_client: AsyncClient, headers_for, join_team, team: dict, bob, carol
    ):
        await join_team(team["id"], bob)

        seen_by_bob = await actions(async_client, headers_for(bob), team_id=team["id"])
        assert "team_created" in seen_by_bob
        assert "invitation_accepted" in seen_by_bob

        assert await actions(async_client, headers_for(carol)) == []

    @pytest.mark.asyncio
    async def test_suspended_member_loses_team_entries(
        self, async_client: AsyncClient, auth_headers: dict, headers_for, join_team, team: dict, bob
    ):
        bob_headers = headers_for(bob)
        row = await join_team(team["id"], bob)
        await async_client.put(
            f"/api/v1/teams/{team['id']}/members/{row['id']}",
            json={"status": "suspended"},
            headers=auth_headers,
        )

        # Only the entry bob wrote remains readable
        assert await actions(async_client, bob_headers) == ["invitation_accepted"]

    @pytest.mark.asyncio
    async def test_filter_by_action_and_paging(self, async_client: AsyncClient, auth_headers: dict):
        for name in ("One", "Two", "Three"):
            await async_client.post("/api/v1/projects", json={"name": name}, headers=auth_headers)
        await async_client.get("/api/v1/templates", headers=auth_headers)

        assert await actions(async_client, auth_headers, action="template_search") == ["template_search"]

        page = await async_client.get(
            "/api/v1/activity", params={"action": "project_created", "limit": 2, "offset": 2}, headers=auth_headers
        )
        assert page.json()["total"] == 3
        assert len(page.json()["entries"]) == 1

    @pytest.mark.asyncio
    async def test_platform_admin_sees_everything(
        self, async_client: AsyncClient, auth_headers: dict, headers_for, platform_admin
    ):
        await async_client.post("/api/v1/projects", json={"name": "Private"}, headers=auth_headers)

        assert "project_created" in await actions(async_client, headers_for(platform_admin))

    @pytest.mark.asyncio
    async def test_limit_bounds(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.get("/api/v1/activity", params={"limit": 500}, headers=auth_headers)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_requires_authentication(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/activity")
        assert response.status_code == 401
