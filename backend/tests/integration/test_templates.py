"""
Integration tests for the template marketplace API.

Tests cover:
- Publishing templates (always unapproved)
- Moderation before templates reach other users
- Search filters, facets and pagination
- Editing, re-review and deletion
- Ratings, reviews and rating aggregates
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from infrastructure.database.models import ActivityLog


def template_payload(**overrides) -> dict:
    payload = {
        "name": "SaaS Starter",
        "description": "Subscription app with billing and auth",
        "category": "saas",
        "tags": ["stripe", "auth"],
        "frontend_stack": "nextjs",
        "backend_stack": "supabase",
        "file_structure": {"app": ["page.tsx", "layout.tsx"]},
        "visibility": "public",
    }
    payload.update(overrides)
    return payload


async def publish(client: AsyncClient, headers: dict, moderator_headers: dict = None, **overrides) -> dict:
    response = await client.post("/api/v1/templates", json=template_payload(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    template = response.json()
    if moderator_headers is not None:
        approved = await client.post(
            f"/api/v1/templates/{template['id']}/approval",
            json={"approved": True},
            headers=moderator_headers,
        )
        assert approved.status_code == 200, approved.text
        template = approved.json()
    return template


class TestCreateTemplate:
    """Tests for POST /templates."""

    @pytest.mark.asyncio
    async def test_new_template_awaits_approval(self, async_client: AsyncClient, alice, auth_headers: dict):
        template = await publish(async_client, auth_headers)

        assert template["created_by"] == alice.id
        assert template["slug"] == "saas-starter"
        assert template["is_approved"] is False
        assert template["approved_by"] is None
        assert template["usage_count"] == 0

    @pytest.mark.asyncio
    async def test_same_name_gets_numbered_slug(self, async_client: AsyncClient, auth_headers: dict, headers_for, bob):
        await publish(async_client, auth_headers)
        second = await publish(async_client, headers_for(bob))
        assert second["slug"] == "saas-starter-1"

    @pytest.mark.asyncio
    async def test_file_structure_required(self, async_client: AsyncClient, auth_headers: dict):
        payload = template_payload()
        del payload["file_structure"]
        response = await async_client.post("/api/v1/templates", json=payload, headers=auth_headers)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_empty_file_structure_rejected(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.post(
            "/api/v1/templates", json=template_payload(file_structure={}), headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["field"] == "file_structure"

    @pytest.mark.asyncio
    async def test_team_visibility_requires_membership(self, async_client: AsyncClient, headers_for, team: dict, bob):
        response = await async_client.post(
            "/api/v1/templates",
            json=template_payload(visibility="team", team_id=team["id"]),
            headers=headers_for(bob),
        )
        assert response.status_code == 403


class TestModeration:
    """Tests for POST /templates/{id}/approval."""

    @pytest.mark.asyncio
    async def test_unapproved_template_hidden_from_others(
        self, async_client: AsyncClient, auth_headers: dict, headers_for, bob, moderator
    ):
        template = await publish(async_client, auth_headers)
        url = f"/api/v1/templates/{template['id']}"

        assert (await async_client.get(url, headers=auth_headers)).status_code == 200
        assert (await async_client.get(url, headers=headers_for(bob))).status_code == 404
        assert (await async_client.get(url)).status_code == 404
        assert (await async_client.get(url, headers=headers_for(moderator))).status_code == 200

    @pytest.mark.asyncio
    async def test_moderator_approval_publishes(
        self, async_client: AsyncClient, auth_headers: dict, headers_for, bob, moderator
    ):
        moderator_id = moderator.id
        template = await publish(async_client, auth_headers, headers_for(moderator))

        assert template["is_approved"] is True
        assert template["approved_by"] == moderator_id
        assert template["approved_at"] is not None
        assert (await async_client.get(f"/api/v1/templates/{template['id']}")).status_code == 200

        listing = await async_client.get("/api/v1/templates", headers=headers_for(bob))
        assert [t["id"] for t in listing.json()["templates"]] == [template["id"]]

    @pytest.mark.asyncio
    async def test_non_moderator_cannot_approve(self, async_client: AsyncClient, auth_headers: dict):
        template = await publish(async_client, auth_headers)
        response = await async_client.post(
            f"/api/v1/templates/{template['id']}/approval", json={"approved": True}, headers=auth_headers
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_platform_admin_can_approve(self, async_client: AsyncClient, auth_headers: dict, headers_for, platform_admin):
        template = await publish(async_client, auth_headers, headers_for(platform_admin))
        assert template["is_approved"] is True

    @pytest.mark.asyncio
    async def test_creator_edit_sends_template_back_to_review(
        self, async_client: AsyncClient, auth_headers: dict, headers_for, moderator
    ):
        template = await publish(async_client, auth_headers, headers_for(moderator))

        response = await async_client.put(
            f"/api/v1/templates/{template['id']}",
            json={"short_description": "Now with teams"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["is_approved"] is False
        assert response.json()["approved_by"] is None
        assert (await async_client.get(f"/api/v1/templates/{template['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_moderator_edit_keeps_approval(
        self, async_client: AsyncClient, auth_headers: dict, headers_for, moderator
    ):
        moderator_headers = headers_for(moderator)
        template = await publish(async_client, auth_headers, moderator_headers)

        response = await async_client.put(
            f"/api/v1/templates/{template['id']}", json={"tags": ["stripe"]}, headers=moderator_headers
        )
        assert response.json()["is_approved"] is True
        assert response.json()["tags"] == ["stripe"]


class TestSearch:
    """Tests for GET /templates."""

    @pytest.mark.asyncio
    async def test_filters_and_facets(self, async_client: AsyncClient, auth_headers: dict, headers_for, moderator):
        moderator_headers = headers_for(moderator)
        saas = await publish(async_client, auth_headers, moderator_headers)
        blog = await publish(
            async_client,
            auth_headers,
            moderator_headers,
            name="Markdown Blog",
            description="Static blog with MDX",
            category="blog",
            tags=["mdx"],
            frontend_stack="svelte",
            backend_stack=None,
        )
        # Unapproved, so it does not count for anonymous callers
        await publish(async_client, auth_headers, name="Draft Dashboard", category="dashboard")

        response = await async_client.get("/api/v1/templates")
        assert response.status_code == 200
        data = response.json()
        assert data["pagination"] == {"offset": 0, "limit": 20, "total": 2}
        assert data["facets"] == {
            "categories": ["blog", "saas"],
            "frontend_stacks": ["nextjs", "svelte"],
            "backend_stacks": ["supabase"],
        }

        by_category = await async_client.get("/api/v1/templates", params={"category": "blog"})
        assert [t["id"] for t in by_category.json()["templates"]] == [blog["id"]]
        # Facets ignore the active filters
        assert by_category.json()["facets"]["categories"] == ["blog", "saas"]

        by_tags = await async_client.get("/api/v1/templates", params={"tags": "MDX, unknown"})
        assert [t["id"] for t in by_tags.json()["templates"]] == [blog["id"]]

        by_text = await async_client.get("/api/v1/templates", params={"search": "subscription"})
        assert [t["id"] for t in by_text.json()["templates"]] == [saas["id"]]

        paged = await async_client.get("/api/v1/templates", params={"limit": 1, "offset": 1})
        assert paged.json()["pagination"]["total"] == 2
        assert len(paged.json()["templates"]) == 1

    @pytest.mark.asyncio
    async def test_creator_sees_own_unapproved_templates(self, async_client: AsyncClient, auth_headers: dict, headers_for, bob):
        template = await publish(async_client, auth_headers)

        mine = await async_client.get("/api/v1/templates", headers=auth_headers)
        assert [t["id"] for t in mine.json()["templates"]] == [template["id"]]

        theirs = await async_client.get("/api/v1/templates", headers=headers_for(bob))
        assert theirs.json()["templates"] == []

    @pytest.mark.asyncio
    async def test_premium_templates_need_paid_tier(
        self, async_client: AsyncClient, auth_headers: dict, headers_for, moderator, bob
    ):
        template = await publish(async_client, auth_headers, headers_for(moderator), visibility="premium")
        url = f"/api/v1/templates/{template['id']}"

        assert (await async_client.get(url, headers=headers_for(bob))).status_code == 404
        assert (await async_client.get(url)).status_code == 404

    @pytest.mark.asyncio
    async def test_unlisted_reachable_by_link_only(
        self, async_client: AsyncClient, auth_headers: dict, headers_for, moderator, bob
    ):
        template = await publish(async_client, auth_headers, headers_for(moderator), visibility="unlisted")

        assert (await async_client.get(f"/api/v1/templates/{template['id']}")).status_code == 200
        listing = await async_client.get("/api/v1/templates", headers=headers_for(bob))
        assert listing.json()["pagination"]["total"] == 0

    @pytest.mark.asyncio
    async def test_sort_by_views(self, async_client: AsyncClient, auth_headers: dict, headers_for, moderator):
        moderator_headers = headers_for(moderator)
        first = await publish(async_client, auth_headers, moderator_headers)
        second = await publish(async_client, auth_headers, moderator_headers, name="Second")
        for _ in range(2):
            await async_client.get(f"/api/v1/templates/{second['id']}")

        response = await async_client.get(
            "/api/v1/templates", params={"sort_by": "view_count", "sort_order": "desc"}
        )
        assert [t["id"] for t in response.json()["templates"]] == [second["id"], first["id"]]

    @pytest.mark.asyncio
    async def test_invalid_sort_rejected(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/templates", params={"sort_by": "name"})
        assert response.status_code == 422


class TestDeleteTemplate:
    """Tests for DELETE /templates/{id}."""

    @pytest.mark.asyncio
    async def test_creator_deletes(self, async_client: AsyncClient, auth_headers: dict):
        template = await publish(async_client, auth_headers)

        response = await async_client.delete(f"/api/v1/templates/{template['id']}", headers=auth_headers)
        assert response.status_code == 204
        assert (await async_client.get(f"/api/v1/templates/{template['id']}", headers=auth_headers)).status_code == 404

        # Slug is free again
        again = await publish(async_client, auth_headers)
        assert again["slug"] == template["slug"]

    @pytest.mark.asyncio
    async def test_other_user_cannot_delete(
        self, async_client: AsyncClient, auth_headers: dict, headers_for, moderator, bob
    ):
        template = await publish(async_client, auth_headers, headers_for(moderator))
        response = await async_client.delete(f"/api/v1/templates/{template['id']}", headers=headers_for(bob))
        assert response.status_code == 403


class TestRatings:
    """Tests for POST /templates/{id}/ratings and ratings on GET /templates/{id}."""

    @pytest.mark.asyncio
    async def test_ratings_update_aggregates(
        self, async_client: AsyncClient, db_session, auth_headers: dict, headers_for, moderator, bob, carol
    ):
        template = await publish(async_client, auth_headers, headers_for(moderator))
        url = f"/api/v1/templates/{template['id']}/ratings"

        rated = await async_client.post(url, json={"rating": 4, "review": " Solid start "}, headers=headers_for(bob))
        assert rated.status_code == 200, rated.text
        assert rated.json()["user_id"] == bob.id
        assert rated.json()["review"] == "Solid start"
        await async_client.post(url, json={"rating": 5}, headers=headers_for(carol))

        detail = (await async_client.get(f"/api/v1/templates/{template['id']}")).json()
        assert detail["rating_count"] == 2
        assert detail["rating_average"] == pytest.approx(4.5)
        assert {(r["user_id"], r["rating"], r["review"]) for r in detail["ratings"]} == {
            (bob.id, 4, "Solid start"),
            (carol.id, 5, None),
        }

        # Rating again replaces the earlier rating
        again = await async_client.post(url, json={"rating": 2}, headers=headers_for(bob))
        assert again.json()["id"] == rated.json()["id"]
        detail = (await async_client.get(f"/api/v1/templates/{template['id']}")).json()
        assert detail["rating_count"] == 2
        assert detail["rating_average"] == pytest.approx(3.5)

        audit = await db_session.execute(
            select(ActivityLog.details)
            .where(ActivityLog.action == "template_rated", ActivityLog.user_id == bob.id)
            .order_by(ActivityLog.created_at)
        )
        assert [(d["rating"], d["previous_rating"]) for d in audit.scalars().all()] == [(4, None), (2, 4)]

    @pytest.mark.asyncio
    async def test_creator_cannot_rate_own_template(
        self, async_client: AsyncClient, auth_headers: dict, headers_for, moderator
    ):
        template = await publish(async_client, auth_headers, headers_for(moderator))
        response = await async_client.post(
            f"/api/v1/templates/{template['id']}/ratings", json={"rating": 5}, headers=auth_headers
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rating", [0, 6])
    async def test_rating_out_of_range(
        self, async_client: AsyncClient, auth_headers: dict, headers_for, moderator, bob, rating
    ):
        template = await publish(async_client, auth_headers, headers_for(moderator))
        response = await async_client.post(
            f"/api/v1/templates/{template['id']}/ratings", json={"rating": rating}, headers=headers_for(bob)
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_hidden_template_cannot_be_rated(self, async_client: AsyncClient, auth_headers: dict, headers_for, bob):
        template = await publish(async_client, auth_headers)
        response = await async_client.post(
            f"/api/v1/templates/{template['id']}/ratings", json={"rating": 5}, headers=headers_for(bob)
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_anonymous_cannot_rate(self, async_client: AsyncClient, auth_headers: dict, headers_for, moderator):
        template = await publish(async_client, auth_headers, headers_for(moderator))
        response = await async_client.post(f"/api/v1/templates/{template['id']}/ratings", json={"rating": 5})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_sort_by_rating(
        self, async_client: AsyncClient, auth_headers: dict, headers_for, moderator, bob
    ):
        moderator_headers = headers_for(moderator)
        low = await publish(async_client, auth_headers, moderator_headers)
        high = await publish(async_client, auth_headers, moderator_headers, name="Second")
        await async_client.post(f"/api/v1/templates/{low['id']}/ratings", json={"rating": 2}, headers=headers_for(bob))
        await async_client.post(f"/api/v1/templates/{high['id']}/ratings", json={"rating": 5}, headers=headers_for(bob))

        response = await async_client.get(
            "/api/v1/templates", params={"sort_by": "rating_average", "sort_order": "desc"}
        )
        assert [t["id"] for t in response.json()["templates"]] == [high["id"], low["id"]]
