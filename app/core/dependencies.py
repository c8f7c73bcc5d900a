"""
Core dependencies for identity resolution and group access checks
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.core.context import RequestContext
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService
from supabase import Client


security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def get_request_context(user_data: dict = Depends(get_current_user_id)) -> RequestContext:
    """Build the explicit request context handed to services"""
    return RequestContext(user_id=user_data["id"], email=user_data.get("email"))


def get_membership_role(group_id: str, user_id: str, supabase: Client):
    """Role of user in group, or None when not a member"""
    result = supabase.table("group_memberships")\
        .select("role")\
        .eq("group_id", group_id)\
        .eq("user_id", user_id)\
        .execute()
    if not result.data:
        return None
    return result.data[0]["role"]


def check_group_admin(group_id: str, ctx: RequestContext, supabase: Client) -> RequestContext:
    """Raise 403 unless the caller is an admin of the group"""
    if get_membership_role(group_id, ctx.user_id, supabase) == "admin":
        return ctx
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You must be a group admin to perform this action"
    )


def check_group_member(group_id: str, ctx: RequestContext, supabase: Client) -> RequestContext:
    """Raise 403 unless the caller is a member (any role) of the group"""
    if get_membership_role(group_id, ctx.user_id, supabase) is not None:
        return ctx
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You must be a member of this group"
    )
