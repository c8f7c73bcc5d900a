from fastapi import APIRouter, Depends
from app.core.context import RequestContext
from app.core.dependencies import get_request_context
from app.database.supabase_client import get_supabase
from app.modules.users.schemas import (
    UserProfileCreate, UserResponse, UserLookupRequest,
    UserLookupResponse, UserByEmailResponse
)
from app.modules.users.service import UserService
from supabase import Client

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(supabase: Client = Depends(get_supabase)) -> UserService:
    return UserService(supabase)


@router.post("/me", response_model=UserResponse, status_code=201)
async def create_my_profile(
    profile: UserProfileCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: UserService = Depends(get_user_service)
):
    """Create the caller's profile (no-op when it already exists)"""
    return service.ensure_profile(ctx, profile)


@router.get("/me", response_model=UserResponse)
async def get_my_profile(
    ctx: RequestContext = Depends(get_request_context),
    service: UserService = Depends(get_user_service)
):
    return service.get_me(ctx)


@router.get("/by-email", response_model=UserByEmailResponse)
async def get_user_by_email(
    email: str,
    ctx: RequestContext = Depends(get_request_context),
    service: UserService = Depends(get_user_service)
):
    """Find a user by email (used when inviting to a group)"""
    return UserByEmailResponse(user=service.get_user_by_email(email))


@router.post("/lookup", response_model=UserLookupResponse)
async def lookup_users(
    request: UserLookupRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: UserService = Depends(get_user_service)
):
    """Resolve user ids to names and emails"""
    return UserLookupResponse(users=service.lookup_users(request.user_ids))
