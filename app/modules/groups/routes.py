from fastapi import APIRouter, Depends
from app.core.context import RequestContext
from app.core.dependencies import get_request_context, check_group_admin, check_group_member
from app.database.supabase_client import get_supabase
from app.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, UserGroupResponse,
    GroupMemberAdd, GroupMemberResponse,
    GroupInviteCreate, GroupInviteResponse, AvailabilityEvent
)
from app.modules.groups.service import GroupService
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/groups", tags=["groups"])
invites_router = APIRouter(prefix="/invites", tags=["invites"])


def get_group_service(supabase: Client = Depends(get_supabase)) -> GroupService:
    return GroupService(supabase)


@router.post("", response_model=GroupResponse, status_code=201)
async def create_group(
    group_data: GroupCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: GroupService = Depends(get_group_service)
):
    """Create a new group; the caller becomes its admin"""
    return service.create_group(ctx, group_data)


@router.get("", response_model=List[UserGroupResponse])
async def list_groups(
    ctx: RequestContext = Depends(get_request_context),
    service: GroupService = Depends(get_group_service)
):
    """List groups the caller is a member of"""
    return service.list_user_groups(ctx)


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Get group by ID (only if caller is a member)"""
    check_group_member(group_id, ctx, supabase)
    return service.get_group_by_id(group_id)


@router.put("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: str,
    group_data: GroupUpdate,
    ctx: RequestContext = Depends(get_request_context),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Update group (group admin only)"""
    check_group_admin(group_id, ctx, supabase)
    return service.update_group(group_id, group_data)


@router.delete("/{group_id}", status_code=204)
async def delete_group(
    group_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Delete group (group admin only)"""
    check_group_admin(group_id, ctx, supabase)
    service.delete_group(group_id)
    return None


@router.post("/{group_id}/members", response_model=GroupMemberResponse, status_code=201)
async def add_member(
    group_id: str,
    member_data: GroupMemberAdd,
    ctx: RequestContext = Depends(get_request_context),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Add a member to the group (group admin only)"""
    check_group_admin(group_id, ctx, supabase)
    return service.add_member(group_id, member_data)


@router.get("/{group_id}/members", response_model=List[GroupMemberResponse])
async def list_members(
    group_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """List all members of a group (only if caller is a member)"""
    check_group_member(group_id, ctx, supabase)
    return service.list_members(group_id)


@router.delete("/{group_id}/members/{user_id}", status_code=204)
async def remove_member(
    group_id: str,
    user_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Remove a member from the group (group admin only)"""
    check_group_admin(group_id, ctx, supabase)
    service.remove_member(group_id, user_id)
    return None


@router.post("/{group_id}/invites", response_model=GroupInviteResponse, status_code=201)
async def invite_to_group(
    group_id: str,
    invite_data: GroupInviteCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Invite someone to the group by email (any member)"""
    check_group_member(group_id, ctx, supabase)
    return service.invite_to_group(ctx, group_id, invite_data.email)


@router.get("/{group_id}/invites", response_model=List[GroupInviteResponse])
async def list_group_invites(
    group_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Pending invites of a group"""
    check_group_member(group_id, ctx, supabase)
    return service.list_group_invites(group_id)


@router.get("/{group_id}/availability", response_model=List[AvailabilityEvent])
async def get_group_availability(
    group_id: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    ctx: RequestContext = Depends(get_request_context),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Aggregated events of every member, for the availability preview"""
    check_group_member(group_id, ctx, supabase)
    return service.get_group_availability(group_id, start_date=start_date, end_date=end_date)


@invites_router.get("", response_model=List[GroupInviteResponse])
async def list_my_invites(
    ctx: RequestContext = Depends(get_request_context),
    service: GroupService = Depends(get_group_service)
):
    """Pending invites addressed to the caller"""
    return service.list_my_invites(ctx)


@invites_router.post("/{invite_id}/accept", response_model=GroupMemberResponse)
async def accept_invite(
    invite_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: GroupService = Depends(get_group_service)
):
    return service.accept_invite(ctx, invite_id)


@invites_router.post("/{invite_id}/decline", response_model=GroupInviteResponse)
async def decline_invite(
    invite_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: GroupService = Depends(get_group_service)
):
    return service.decline_invite(ctx, invite_id)
