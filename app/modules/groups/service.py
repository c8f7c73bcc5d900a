import logging
from datetime import datetime, timezone
from supabase import Client
from app.core.context import RequestContext
from app.modules.events.service import EventService
from app.modules.groups.models import (
    ROLE_ADMIN, ROLE_MEMBER, INVITE_PENDING, INVITE_ACCEPTED, INVITE_DECLINED,
)
from app.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, UserGroupResponse,
    GroupMemberAdd, GroupMemberResponse, GroupInviteResponse, AvailabilityEvent,
)
from app.modules.users.service import UserService
from typing import List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class GroupService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_membership(self, group_id: str, user_id: str) -> Optional[dict]:
        result = self.supabase.table("group_memberships")\
            .select("*")\
            .eq("group_id", group_id)\
            .eq("user_id", user_id)\
            .execute()
        return result.data[0] if result.data else None

    def _insert_membership(self, group_id: str, user_id: str, role: str) -> dict:
        """Insert a membership unless one already exists for (group_id, user_id)"""
        existing = self._get_membership(group_id, user_id)
        if existing:
            return existing
        result = self.supabase.table("group_memberships").insert({
            "group_id": group_id,
            "user_id": user_id,
            "role": role,
            "joined_at": _now(),
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to add member")
        return result.data[0]

    def _get_invite_row(self, invite_id: str) -> dict:
        result = self.supabase.table("group_invites")\
            .select("*")\
            .eq("id", invite_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Invite not found")
        return result.data[0]

    def create_group(self, ctx: RequestContext, group_data: GroupCreate) -> GroupResponse:
        """Create a new group with the creator as its admin"""
        try:
            result = self.supabase.table("groups").insert({
                "name": group_data.name,
                "description": group_data.description,
                "created_by": ctx.user_id,
                "created_at": _now(),
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create group")

            group = result.data[0]
            self._insert_membership(group["id"], ctx.user_id, ROLE_ADMIN)
            logger.info(f"User {ctx.user_id} created group {group['id']}")

            return GroupResponse(**group)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_group_by_id(self, group_id: str) -> GroupResponse:
        """Get group by ID"""
        try:
            result = self.supabase.table("groups")\
                .select("*")\
                .eq("id", group_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Group not found")

            return GroupResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_group(self, group_id: str, group_data: GroupUpdate) -> GroupResponse:
        """Update group name and/or description"""
        try:
            update_data = {}
            if group_data.name is not None:
                update_data["name"] = group_data.name
            if group_data.description is not None:
                update_data["description"] = group_data.description

            if not update_data:
                return self.get_group_by_id(group_id)

            result = self.supabase.table("groups")\
                .update(update_data)\
                .eq("id", group_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Group not found")

            return GroupResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_user_groups(self, ctx: RequestContext) -> List[UserGroupResponse]:
        """Groups the caller belongs to, with the caller's role in each"""
        try:
            memberships = self.supabase.table("group_memberships")\
                .select("group_id, role")\
                .eq("user_id", ctx.user_id)\
                .execute()
            if not memberships.data:
                return []

            roles = {m["group_id"]: m["role"] for m in memberships.data}
            result = self.supabase.table("groups")\
                .select("*")\
                .in_("id", list(roles))\
                .order("created_at", desc=True)\
                .execute()
            return [UserGroupResponse(**group, role=roles[group["id"]]) for group in result.data or []]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_group(self, group_id: str) -> bool:
        """Delete group together with its memberships and invites"""
        try:
            self.supabase.table("group_memberships")\
                .delete()\
                .eq("group_id", group_id)\
                .execute()

            self.supabase.table("group_invites")\
                .delete()\
                .eq("group_id", group_id)\
                .execute()

            result = self.supabase.table("groups")\
                .delete()\
                .eq("id", group_id)\
                .execute()

            logger.info(f"Deleted group {group_id}")
            return len(result.data) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def add_member(self, group_id: str, member_data: GroupMemberAdd) -> GroupMemberResponse:
        """Add a member to the group; existing memberships are returned unchanged"""
        try:
            self.get_group_by_id(group_id)
            membership = self._insert_membership(group_id, member_data.user_id, member_data.role)
            return GroupMemberResponse(**membership)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def remove_member(self, group_id: str, user_id: str) -> bool:
        """Remove a member from the group; the last admin cannot be removed"""
        try:
            membership = self._get_membership(group_id, user_id)
            if membership and membership["role"] == ROLE_ADMIN:
                admins = self.supabase.table("group_memberships")\
                    .select("user_id")\
                    .eq("group_id", group_id)\
                    .eq("role", ROLE_ADMIN)\
                    .execute()
                if len(admins.data or []) <= 1:
                    raise HTTPException(status_code=400, detail="Cannot remove the last admin of a group")

            result = self.supabase.table("group_memberships")\
                .delete()\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .execute()

            return len(result.data) > 0
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_members(self, group_id: str) -> List[GroupMemberResponse]:
        """List all members of a group"""
        try:
            result = self.supabase.table("group_memberships")\
                .select("*")\
                .eq("group_id", group_id)\
                .order("joined_at")\
                .execute()

            return [GroupMemberResponse(**member) for member in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def invite_to_group(self, ctx: RequestContext, group_id: str, email: str) -> GroupInviteResponse:
        """Invite someone by email; a pending invite for the same address is reused"""
        try:
            self.get_group_by_id(group_id)
            email = _normalize_email(email)

            invitee = UserService(self.supabase).get_user_by_email(email)
            if invitee and self._get_membership(group_id, invitee.id):
                raise HTTPException(status_code=400, detail="User is already a member of this group")

            existing = self.supabase.table("group_invites")\
                .select("*")\
                .eq("group_id", group_id)\
                .eq("email", email)\
                .eq("status", INVITE_PENDING)\
                .execute()
            if existing.data:
                return GroupInviteResponse(**existing.data[0])

            result = self.supabase.table("group_invites").insert({
                "group_id": group_id,
                "email": email,
                "invited_by": ctx.user_id,
                "status": INVITE_PENDING,
                "created_at": _now(),
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create invite")

            logger.info(f"User {ctx.user_id} invited a new member to group {group_id}")
            return GroupInviteResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_group_invites(self, group_id: str) -> List[GroupInviteResponse]:
        try:
            result = self.supabase.table("group_invites")\
                .select("*")\
                .eq("group_id", group_id)\
                .eq("status", INVITE_PENDING)\
                .execute()
            return [GroupInviteResponse(**invite) for invite in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_my_invites(self, ctx: RequestContext) -> List[GroupInviteResponse]:
        """Pending invites addressed to the caller's email"""
        email = _normalize_email(ctx.email)
        if not email:
            return []
        try:
            result = self.supabase.table("group_invites")\
                .select("*")\
                .eq("email", email)\
                .eq("status", INVITE_PENDING)\
                .execute()
            return [GroupInviteResponse(**invite) for invite in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _get_pending_invite_for(self, ctx: RequestContext, invite_id: str) -> dict:
        invite = self._get_invite_row(invite_id)
        if _normalize_email(invite["email"]) != _normalize_email(ctx.email):
            raise HTTPException(status_code=403, detail="This invite is addressed to someone else")
        if invite["status"] != INVITE_PENDING:
            raise HTTPException(status_code=400, detail="Invite is no longer pending")
        return invite

    def accept_invite(self, ctx: RequestContext, invite_id: str) -> GroupMemberResponse:
        """Join the invited group as a member and mark the invite accepted"""
        try:
            invite = self._get_pending_invite_for(ctx, invite_id)
            membership = self._insert_membership(invite["group_id"], ctx.user_id, ROLE_MEMBER)

            self.supabase.table("group_invites")\
                .update({"status": INVITE_ACCEPTED})\
                .eq("id", invite_id)\
                .execute()

            logger.info(f"User {ctx.user_id} joined group {invite['group_id']} via invite {invite_id}")
            return GroupMemberResponse(**membership)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def decline_invite(self, ctx: RequestContext, invite_id: str) -> GroupInviteResponse:
        try:
            self._get_pending_invite_for(ctx, invite_id)
            result = self.supabase.table("group_invites")\
                .update({"status": INVITE_DECLINED})\
                .eq("id", invite_id)\
                .execute()
            return GroupInviteResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_group_availability(
        self,
        group_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> List[AvailabilityEvent]:
        """Events of every group member, annotated with who they belong to"""
        try:
            member_ids = [m.user_id for m in self.list_members(group_id)]
            events = EventService(self.supabase).list_events_for_users(member_ids, start_date, end_date)
            people = UserService(self.supabase).lookup_users(member_ids)

            availability = []
            for event in events:
                person = people.get(event.user_id)
                availability.append(AvailabilityEvent(
                    **event.model_dump(),
                    member_name=person.name if person else None,
                    member_email=person.email if person else None,
                ))
            return availability
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
