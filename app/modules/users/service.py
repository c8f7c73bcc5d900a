import logging
from datetime import datetime, timezone
from supabase import Client
from app.core.context import RequestContext
from app.modules.users.schemas import UserProfileCreate, UserResponse, UserSummary
from typing import Dict, List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_profile_row(self, user_id: str) -> Optional[dict]:
        result = self.supabase.table("user_profiles")\
            .select("*")\
            .eq("id", user_id)\
            .execute()
        return result.data[0] if result.data else None

    def create_profile(self, user_id: str, profile: UserProfileCreate) -> UserResponse:
        """Create the profile row for an identity subject. Returns the existing row when already present."""
        try:
            existing = self._get_profile_row(user_id)
            if existing:
                return UserResponse(**existing)

            result = self.supabase.table("user_profiles").insert({
                "id": user_id,
                "first_name": profile.first_name,
                "last_name": profile.last_name,
                "email": profile.email,
                "signup_date": datetime.now(timezone.utc).isoformat(),
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create user profile")

            logger.info(f"Created profile for user {user_id}")
            return UserResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def ensure_profile(self, ctx: RequestContext, profile: UserProfileCreate) -> UserResponse:
        """Idempotent profile creation for the caller"""
        return self.create_profile(ctx.user_id, profile)

    def get_me(self, ctx: RequestContext) -> UserResponse:
        """Profile of the caller"""
        try:
            row = self._get_profile_row(ctx.user_id)
            if not row:
                raise HTTPException(status_code=404, detail="User not found")
            return UserResponse(**row)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_user_by_email(self, email: str) -> Optional[UserResponse]:
        """Get user profile by email"""
        if not email:
            return None
        try:
            result = self.supabase.table("user_profiles")\
                .select("*")\
                .eq("email", email)\
                .limit(1)\
                .execute()

            if not result.data:
                return None

            return UserResponse(**result.data[0])
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def lookup_users(self, user_ids: List[str]) -> Dict[str, UserSummary]:
        """Map user ids to display name and email; unknown ids are omitted"""
        if not user_ids:
            return {}
        try:
            result = self.supabase.table("user_profiles")\
                .select("id, first_name, last_name, email")\
                .in_("id", list(set(user_ids)))\
                .execute()

            users = {}
            for row in result.data or []:
                name = f"{row.get('first_name') or ''} {row.get('last_name') or ''}".strip()
                users[row["id"]] = UserSummary(name=name, email=row["email"])
            return users
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
