"""
Unit tests for the access policies in core.policies.

Every predicate is pure, so these tests build snapshots directly and never
touch the database.
"""

import itertools
from datetime import UTC, datetime, timedelta

import pytest

from core.domain import (
    Actor,
    ActivityFacts,
    Collaboration,
    Membership,
    ProjectFacts,
    TeamFacts,
    TemplateFacts,
)
from core.policies import (
    can_accept_invitation,
    can_create_team,
    can_delete_team,
    can_insert_project,
    can_insert_team_member,
    can_leave_team,
    can_list_template,
    can_manage_collaborators,
    can_manage_team_member,
    can_modify_project,
    can_modify_template,
    can_read_activity,
    can_update_team,
    can_view_project,
    can_view_team,
    can_view_template,
    visible_members,
)

TEAM = "team-1"
OWNER = Actor(id="owner", subscription_tier="pro_monthly")
OTHER = Actor(id="other")
MODERATOR = Actor(id="mod", role="moderator")
ADMIN = Actor(id="root", role="admin")


def member(user_id: str, role: str = "member", status: str = "active", team_id: str = TEAM) -> Membership:
    return Membership(team_id=team_id, user_id=user_id, role=role, status=status, id=f"m-{user_id}")


# =============================================================================
# Projects
# =============================================================================


class TestProjectView:
    """Who may see a project."""

    @pytest.mark.parametrize(
        "visibility,is_public,expected",
        list(
            (vis, flag, vis == "public" and flag)
            for vis, flag in itertools.product(("private", "team", "public"), (False, True))
        ),
    )
    def test_anonymous_needs_public_visibility_and_flag(self, visibility, is_public, expected):
        project = ProjectFacts(id="p1", owner_user_id="owner", visibility=visibility, is_public=is_public)
        assert can_view_project(None, project) is expected

    def test_owner_sees_private_project(self):
        project = ProjectFacts(id="p1", owner_user_id="owner")
        assert can_view_project(OWNER, project)

    def test_stranger_cannot_see_private_project(self):
        project = ProjectFacts(id="p1", owner_user_id="owner")
        assert not can_view_project(OTHER, project)

    def test_active_team_member_sees_team_project(self):
        project = ProjectFacts(id="p1", owner_user_id="owner", team_id=TEAM, visibility="team")
        assert can_view_project(OTHER, project, member("other"))

    @pytest.mark.parametrize("status", ["pending", "suspended", "removed"])
    def test_inactive_member_cannot_see_team_project(self, status):
        project = ProjectFacts(id="p1", owner_user_id="owner", team_id=TEAM, visibility="team")
        assert not can_view_project(OTHER, project, member("other", status=status))

    def test_membership_of_another_team_does_not_count(self):
        project = ProjectFacts(id="p1", owner_user_id="owner", team_id=TEAM)
        assert not can_view_project(OTHER, project, member("other", team_id="team-2"))

    def test_active_collaborator_sees_project(self):
        project = ProjectFacts(id="p1", owner_user_id="owner")
        grant = Collaboration(project_id="p1", user_id="other", role="viewer", status="active")
        assert can_view_project(OTHER, project, collaboration=grant)

    def test_deleted_project_hidden_from_owner(self):
        project = ProjectFacts(id="p1", owner_user_id="owner", visibility="public", is_public=True, deleted=True)
        assert not can_view_project(OWNER, project)

    def test_deactivated_owner_loses_access(self):
        project = ProjectFacts(id="p1", owner_user_id="owner")
        assert not can_view_project(Actor(id="owner", is_active=False), project)

    @pytest.mark.parametrize(
        "is_owner,team_member,collaborator,public_visibility,is_public,deleted,live",
        list(itertools.product((False, True), repeat=7)),
    )
    def test_every_combination(
        self, is_owner, team_member, collaborator, public_visibility, is_public, deleted, live
    ):
        actor = Actor(id="other", is_active=live)
        project = ProjectFacts(
            id="p1",
            owner_user_id="other" if is_owner else "owner",
            team_id=TEAM,
            visibility="public" if public_visibility else "team",
            is_public=is_public,
            deleted=deleted,
        )
        # Non-qualifying grants are present but inactive, not absent
        membership = member("other", status="active" if team_member else "suspended")
        grant = Collaboration(
            project_id="p1",
            user_id="other",
            role="viewer",
            status="active" if collaborator else "suspended",
        )

        expected = not deleted and (
            (public_visibility and is_public) or (live and (is_owner or team_member or collaborator))
        )
        assert can_view_project(actor, project, membership, grant) is expected


class TestProjectModify:
    @pytest.mark.parametrize(
        "role,expected",
        [("owner", True), ("admin", True), ("member", False), ("guest", False)],
    )
    def test_team_roles(self, role, expected):
        project = ProjectFacts(id="p1", owner_user_id="owner", team_id=TEAM)
        assert can_modify_project(OTHER, project, member("other", role=role)) is expected

    @pytest.mark.parametrize(
        "role,expected",
        [("owner", True), ("editor", True), ("viewer", False), ("commenter", False)],
    )
    def test_collaborator_roles(self, role, expected):
        project = ProjectFacts(id="p1", owner_user_id="owner")
        grant = Collaboration(project_id="p1", user_id="other", role=role, status="active")
        assert can_modify_project(OTHER, project, collaboration=grant) is expected

    def test_suspended_editor_cannot_modify(self):
        project = ProjectFacts(id="p1", owner_user_id="owner")
        grant = Collaboration(project_id="p1", user_id="other", role="editor", status="suspended")
        assert not can_modify_project(OTHER, project, collaboration=grant)

    def test_only_owner_manages_collaborators(self):
        project = ProjectFacts(id="p1", owner_user_id="owner", team_id=TEAM)
        assert can_manage_collaborators(OWNER, project)
        assert not can_manage_collaborators(OTHER, project)


class TestProjectInsert:
    def test_personal_project(self):
        assert can_insert_project(OWNER, "owner")

    def test_cannot_insert_for_someone_else(self):
        assert not can_insert_project(OWNER, "other")

    def test_team_project_requires_active_membership(self):
        assert can_insert_project(OTHER, "other", TEAM, member("other", role="guest"))
        assert not can_insert_project(OTHER, "other", TEAM, member("other", status="pending"))
        assert not can_insert_project(OTHER, "other", TEAM, None)


# =============================================================================
# Templates
# =============================================================================


class TestTemplateView:
    def test_unapproved_template_only_for_creator_and_moderators(self):
        template = TemplateFacts(id="t1", created_by="owner", visibility="public", is_approved=False)
        assert can_view_template(OWNER, template)
        assert can_view_template(MODERATOR, template)
        assert not can_view_template(OTHER, template)
        assert not can_view_template(None, template)

    def test_approved_public_template_is_open(self):
        template = TemplateFacts(id="t1", created_by="owner", visibility="public", is_approved=True)
        assert can_view_template(None, template)

    def test_premium_template_needs_unexpired_paid_tier(self):
        template = TemplateFacts(id="t1", created_by="owner", visibility="premium", is_approved=True)
        now = datetime.now(UTC)
        paid = Actor(id="u", subscription_tier="pro_yearly", subscription_expires=now + timedelta(days=3))
        lapsed = Actor(id="u", subscription_tier="pro_yearly", subscription_expires=now - timedelta(days=3))
        assert can_view_template(paid, template)
        assert not can_view_template(lapsed, template)
        assert not can_view_template(OTHER, template)
        assert not can_view_template(None, template)

    def test_team_template_needs_active_membership(self):
        template = TemplateFacts(id="t1", created_by="owner", visibility="team", is_approved=True, team_id=TEAM)
        assert can_view_template(OTHER, template, member("other"))
        assert not can_view_template(OTHER, template, member("other", status="suspended"))

    def test_private_template_stays_with_creator(self):
        template = TemplateFacts(id="t1", created_by="owner", visibility="private", is_approved=True)
        assert can_view_template(OWNER, template)
        assert not can_view_template(OTHER, template)

    def test_unlisted_template_viewable_by_link_but_not_listed(self):
        template = TemplateFacts(id="t1", created_by="owner", visibility="unlisted", is_approved=True)
        assert can_view_template(OTHER, template)
        assert not can_list_template(OTHER, template)
        assert can_list_template(OWNER, template)

    def test_deleted_template_hidden_from_moderators(self):
        template = TemplateFacts(id="t1", created_by="owner", visibility="public", is_approved=True, deleted=True)
        assert not can_view_template(MODERATOR, template)


class TestTemplateModify:
    def test_creator_and_moderator(self):
        template = TemplateFacts(id="t1", created_by="owner")
        assert can_modify_template(OWNER, template)
        assert can_modify_template(MODERATOR, template)
        assert not can_modify_template(OTHER, template)

    def test_team_admin_can_modify_team_template(self):
        template = TemplateFacts(id="t1", created_by="owner", team_id=TEAM)
        assert can_modify_template(OTHER, template, member("other", role="admin"))
        assert not can_modify_template(OTHER, template, member("other", role="member"))


# =============================================================================
# Teams
# =============================================================================


class TestTeamPolicies:
    def test_team_creation_is_a_paid_feature(self):
        assert can_create_team(OWNER)
        assert not can_create_team(OTHER)
        assert not can_create_team(None)

    def test_view_update_delete_by_role(self):
        team = TeamFacts(id=TEAM)
        owner = member("owner", role="owner")
        admin = member("other", role="admin")
        plain = member("other")

        assert can_view_team(OTHER, team, plain)
        assert can_update_team(OTHER, team, admin)
        assert not can_update_team(OTHER, team, plain)
        assert can_delete_team(OWNER, team, owner)
        assert not can_delete_team(OTHER, team, admin)

    def test_deleted_team_is_invisible(self):
        assert not can_view_team(OWNER, TeamFacts(id=TEAM, deleted=True), member("owner", role="owner"))

    def test_invitations_never_hand_out_owner(self):
        team = TeamFacts(id=TEAM)
        owner = member("owner", role="owner")
        assert can_insert_team_member(OWNER, team, owner, "admin")
        assert not can_insert_team_member(OWNER, team, owner, "owner")

    def test_inactive_team_cannot_invite(self):
        team = TeamFacts(id=TEAM, is_active=False)
        assert not can_insert_team_member(OWNER, team, member("owner", role="owner"), "member")

    def test_admin_cannot_touch_owner_row(self):
        admin = member("other", role="admin")
        assert not can_manage_team_member(OTHER, admin, member("owner", role="owner"))
        assert can_manage_team_member(OTHER, admin, member("third"))

    def test_owner_cannot_leave(self):
        assert not can_leave_team(OWNER, member("owner", role="owner"))
        assert can_leave_team(OTHER, member("other", status="pending"))

    def test_accept_invitation(self):
        open_invite = member(None, status="pending")
        addressed = member("other", status="pending")
        assert can_accept_invitation(OTHER, open_invite)
        assert can_accept_invitation(OTHER, addressed)
        assert not can_accept_invitation(Actor(id="third"), addressed)
        assert not can_accept_invitation(OTHER, member("other", status="active"))

    def test_guest_sees_only_own_row(self):
        rows = [member("owner", role="owner"), member("other", role="guest"), member("third")]
        visible = visible_members(OTHER, rows[1], rows)
        assert [m.user_id for m in visible] == ["other"]

    def test_member_sees_everyone(self):
        rows = [member("owner", role="owner"), member("other"), member("third", status="pending")]
        assert len(visible_members(OTHER, rows[1], rows)) == 3

    def test_non_member_sees_nobody(self):
        rows = [member("owner", role="owner")]
        assert visible_members(OTHER, None, rows) == []


# =============================================================================
# Activity
# =============================================================================


class TestActivityRead:
    def test_own_entry(self):
        assert can_read_activity(OTHER, ActivityFacts(id="a1", user_id="other"))

    def test_team_entry_needs_active_membership(self):
        entry = ActivityFacts(id="a1", user_id="owner", team_id=TEAM)
        assert can_read_activity(OTHER, entry, member("other"))
        assert not can_read_activity(OTHER, entry, member("other", status="removed"))
        assert not can_read_activity(OTHER, entry)

    def test_admin_reads_everything(self):
        assert can_read_activity(ADMIN, ActivityFacts(id="a1", user_id="owner", team_id=TEAM))
