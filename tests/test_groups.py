"""Tests for groups, memberships, invites and the availability preview."""

import pytest
from fastapi import HTTPException

from app.core.context import RequestContext
from app.core.dependencies import check_group_admin, check_group_member
from app.modules.groups.schemas import GroupCreate, GroupMemberAdd, GroupUpdate
from app.modules.groups.service import GroupService
from tests.conftest import seed_event


@pytest.fixture
def service(supabase) -> GroupService:
    return GroupService(supabase)


@pytest.fixture
def group(service, ctx):
    return service.create_group(ctx, GroupCreate(name="Book club", description="Monthly"))


def seed_profile(supabase, user_id, first_name, last_name, email):
    return supabase.seed(
        "user_profiles",
        id=user_id, first_name=first_name, last_name=last_name, email=email,
        signup_date="2026-01-01T00:00:00+00:00",
    )


class TestGroupLifecycle:
    def test_creator_is_sole_admin(self, supabase, group, ctx):
        memberships = supabase.rows("group_memberships")
        assert len(memberships) == 1
        assert memberships[0]["user_id"] == ctx.user_id
        assert memberships[0]["role"] == "admin"
        assert group.created_by == ctx.user_id

    def test_list_user_groups_includes_role(self, service, group, ctx, other_ctx):
        [listed] = service.list_user_groups(ctx)
        assert listed.id == group.id
        assert listed.role == "admin"
        assert service.list_user_groups(other_ctx) == []

    def test_update_group(self, service, group):
        updated = service.update_group(group.id, GroupUpdate(name="Reading club"))
        assert updated.name == "Reading club"
        assert updated.description == "Monthly"

    def test_delete_group_removes_memberships_and_invites(self, supabase, service, group, ctx):
        service.invite_to_group(ctx, group.id, "bob@example.com")

        assert service.delete_group(group.id) is True
        assert supabase.rows("groups") == []
        assert supabase.rows("group_memberships") == []
        assert supabase.rows("group_invites") == []

    def test_missing_group(self, service):
        with pytest.raises(HTTPException) as exc_info:
            service.get_group_by_id("nope")
        assert exc_info.value.status_code == 404


class TestMembership:
    def test_add_member_is_idempotent(self, supabase, service, group, other_ctx):
        service.add_member(group.id, GroupMemberAdd(user_id=other_ctx.user_id))
        service.add_member(group.id, GroupMemberAdd(user_id=other_ctx.user_id))

        assert len(service.list_members(group.id)) == 2

    def test_remove_member(self, service, group, other_ctx):
        service.add_member(group.id, GroupMemberAdd(user_id=other_ctx.user_id))
        assert service.remove_member(group.id, other_ctx.user_id) is True
        assert [m.user_id for m in service.list_members(group.id)] == ["user-alice"]

    def test_last_admin_cannot_be_removed(self, service, group, ctx, other_ctx):
        service.add_member(group.id, GroupMemberAdd(user_id=other_ctx.user_id))

        with pytest.raises(HTTPException) as exc_info:
            service.remove_member(group.id, ctx.user_id)

        assert exc_info.value.status_code == 400
        assert {m.user_id for m in service.list_members(group.id)} == {ctx.user_id, other_ctx.user_id}

    def test_admin_removable_while_another_admin_remains(self, service, group, ctx, other_ctx):
        service.add_member(group.id, GroupMemberAdd(user_id=other_ctx.user_id, role="admin"))

        assert service.remove_member(group.id, ctx.user_id) is True
        assert [m.role for m in service.list_members(group.id)] == ["admin"]

    def test_access_checks(self, supabase, group, ctx, other_ctx):
        assert check_group_admin(group.id, ctx, supabase) is ctx
        with pytest.raises(HTTPException) as exc_info:
            check_group_member(group.id, other_ctx, supabase)
        assert exc_info.value.status_code == 403

    def test_plain_member_is_not_admin(self, supabase, service, group, other_ctx):
        service.add_member(group.id, GroupMemberAdd(user_id=other_ctx.user_id))
        assert check_group_member(group.id, other_ctx, supabase) is other_ctx
        with pytest.raises(HTTPException):
            check_group_admin(group.id, other_ctx, supabase)


class TestInvites:
    def test_invite_is_normalized_and_reused(self, service, group, ctx):
        first = service.invite_to_group(ctx, group.id, "Bob@Example.com")
        second = service.invite_to_group(ctx, group.id, "bob@example.com")

        assert first.email == "bob@example.com"
        assert first.status == "pending"
        assert second.id == first.id

    def test_inviting_existing_member_fails(self, supabase, service, group, ctx):
        seed_profile(supabase, ctx.user_id, "Alice", "A", "alice@example.com")
        with pytest.raises(HTTPException) as exc_info:
            service.invite_to_group(ctx, group.id, "alice@example.com")
        assert exc_info.value.status_code == 400

    def test_accept_invite_joins_group(self, service, group, ctx, other_ctx):
        invite = service.invite_to_group(ctx, group.id, other_ctx.email)
        assert [i.id for i in service.list_my_invites(other_ctx)] == [invite.id]

        membership = service.accept_invite(other_ctx, invite.id)

        assert membership.role == "member"
        assert membership.user_id == other_ctx.user_id
        assert service.list_my_invites(other_ctx) == []
        assert service.list_group_invites(group.id) == []

    def test_accept_twice_fails(self, service, group, ctx, other_ctx):
        invite = service.invite_to_group(ctx, group.id, other_ctx.email)
        service.accept_invite(other_ctx, invite.id)
        with pytest.raises(HTTPException) as exc_info:
            service.accept_invite(other_ctx, invite.id)
        assert exc_info.value.status_code == 400

    def test_invite_for_someone_else(self, service, group, ctx, other_ctx):
        invite = service.invite_to_group(ctx, group.id, "carol@example.com")
        with pytest.raises(HTTPException) as exc_info:
            service.accept_invite(other_ctx, invite.id)
        assert exc_info.value.status_code == 403

    def test_decline_invite(self, supabase, service, group, ctx, other_ctx):
        invite = service.invite_to_group(ctx, group.id, other_ctx.email)

        declined = service.decline_invite(other_ctx, invite.id)

        assert declined.status == "declined"
        assert len(supabase.rows("group_memberships")) == 1

    def test_unknown_invite(self, service, other_ctx):
        with pytest.raises(HTTPException) as exc_info:
            service.accept_invite(other_ctx, "missing")
        assert exc_info.value.status_code == 404


class TestAvailability:
    def test_members_events_are_annotated(self, supabase, service, group, ctx, other_ctx):
        seed_profile(supabase, ctx.user_id, "Alice", "Archer", "alice@example.com")
        seed_profile(supabase, other_ctx.user_id, "Bob", "", "bob@example.com")
        service.add_member(group.id, GroupMemberAdd(user_id=other_ctx.user_id))
        seed_event(supabase, user_id=ctx.user_id, title="Alice busy")
        seed_event(supabase, user_id=other_ctx.user_id, title="Bob busy",
                   start_time="2026-03-02T10:00:00Z", end_time="2026-03-02T11:00:00Z")
        seed_event(supabase, user_id=other_ctx.user_id, title="Bob deleted", is_deleted=True)
        seed_event(supabase, user_id="user-carol", title="Outsider")

        availability = service.get_group_availability(group.id)

        by_title = {event.title: event for event in availability}
        assert set(by_title) == {"Alice busy", "Bob busy"}
        assert by_title["Alice busy"].member_name == "Alice Archer"
        assert by_title["Bob busy"].member_name == "Bob"
        assert by_title["Bob busy"].member_email == "bob@example.com"

    def test_date_range_filter(self, supabase, service, group, ctx):
        seed_event(supabase, user_id=ctx.user_id, title="In range")
        seed_event(supabase, user_id=ctx.user_id, title="Later",
                   start_time="2026-05-01T10:00:00Z", end_time="2026-05-01T11:00:00Z")

        availability = service.get_group_availability(
            group.id, start_date="2026-03-01T00:00:00Z", end_date="2026-03-31T23:59:59Z"
        )

        assert [event.title for event in availability] == ["In range"]

    def test_member_without_profile(self, supabase, service, group, ctx):
        seed_event(supabase, user_id=ctx.user_id, title="Anonymous")
        [event] = service.get_group_availability(group.id)
        assert event.member_name is None


def test_request_context_is_immutable():
    ctx = RequestContext(user_id="u1")
    with pytest.raises(AttributeError):
        ctx.user_id = "u2"
