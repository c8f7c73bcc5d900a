import logging
from datetime import datetime, timezone
from supabase import Client
from app.core.context import RequestContext
from app.modules.calendar_accounts.models import (
    ACCOUNT_STATUS_ACTIVE, ACCOUNT_STATUS_DISCONNECTED,
)
from app.modules.calendar_accounts.schemas import (
    CalendarAccountCreate, CalendarAccountUpdate, CalendarAccountResponse,
    SyncStatusResponse,
)
from app.modules.providers.base import ProviderAccountInfo, TokenSet
from typing import List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

ACCOUNT_NOT_FOUND = "Account not found or access denied"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class CalendarAccountService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_account_record(self, account_id: str) -> Optional[dict]:
        """Raw account row including credentials. Never return this to clients."""
        result = self.supabase.table("calendar_accounts")\
            .select("*")\
            .eq("id", account_id)\
            .execute()
        return result.data[0] if result.data else None

    def get_owned_record(self, ctx: RequestContext, account_id: str) -> dict:
        """Raw account row, 404 unless it belongs to the caller"""
        account = self.get_account_record(account_id)
        if not account or account.get("user_id") != ctx.user_id:
            raise HTTPException(status_code=404, detail=ACCOUNT_NOT_FOUND)
        return account

    def list_accounts(self, ctx: RequestContext) -> List[CalendarAccountResponse]:
        """List the caller's calendar accounts"""
        try:
            result = self.supabase.table("calendar_accounts")\
                .select("*")\
                .eq("user_id", ctx.user_id)\
                .order("created_at")\
                .execute()
            return [CalendarAccountResponse(**row) for row in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_account(self, ctx: RequestContext, account_id: str) -> CalendarAccountResponse:
        try:
            return CalendarAccountResponse(**self.get_owned_record(ctx, account_id))
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_account(self, ctx: RequestContext, account_data: CalendarAccountCreate) -> CalendarAccountResponse:
        """Register a calendar account with credentials obtained elsewhere"""
        try:
            result = self.supabase.table("calendar_accounts").insert({
                "user_id": ctx.user_id,
                "provider": account_data.provider,
                "provider_account_id": account_data.provider_account_id,
                "email": account_data.email,
                "access_token": account_data.access_token,
                "refresh_token": account_data.refresh_token,
                "is_active": True,
                "status": ACCOUNT_STATUS_ACTIVE,
                "last_sync": _now(),
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create calendar account")

            return CalendarAccountResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_account(
        self, ctx: RequestContext, account_id: str, account_data: CalendarAccountUpdate
    ) -> CalendarAccountResponse:
        """Enable or disable an account"""
        try:
            self.get_owned_record(ctx, account_id)
            result = self.supabase.table("calendar_accounts")\
                .update({
                    "is_active": account_data.is_active,
                    "status": ACCOUNT_STATUS_ACTIVE if account_data.is_active else ACCOUNT_STATUS_DISCONNECTED,
                    "last_sync": _now(),
                })\
                .eq("id", account_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail=ACCOUNT_NOT_FOUND)

            return CalendarAccountResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_account(self, ctx: RequestContext, account_id: str) -> bool:
        """Delete account; its events are soft-deleted, not removed"""
        try:
            self.get_owned_record(ctx, account_id)

            now = _now()
            self.supabase.table("events")\
                .update({"is_deleted": True, "deleted_at": now})\
                .eq("calendar_account_id", account_id)\
                .eq("is_deleted", False)\
                .execute()

            result = self.supabase.table("calendar_accounts")\
                .delete()\
                .eq("id", account_id)\
                .execute()

            logger.info(f"Deleted calendar account {account_id} for user {ctx.user_id}")
            return len(result.data) > 0
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def upsert_connected_account(
        self, user_id: str, provider: str, info: ProviderAccountInfo, tokens: TokenSet
    ) -> dict:
        """Create or refresh the account a completed OAuth flow points at"""
        try:
            existing = self.supabase.table("calendar_accounts")\
                .select("*")\
                .eq("user_id", user_id)\
                .eq("provider", provider)\
                .eq("provider_account_id", info.provider_account_id)\
                .execute()

            if existing.data:
                account = existing.data[0]
                update_data = {
                    "email": info.email,
                    "access_token": tokens.access_token,
                    "is_active": True,
                    "status": ACCOUNT_STATUS_ACTIVE,
                    "last_sync": _now(),
                }
                # Providers only return a refresh token on first consent.
                if tokens.refresh_token:
                    update_data["refresh_token"] = tokens.refresh_token
                result = self.supabase.table("calendar_accounts")\
                    .update(update_data)\
                    .eq("id", account["id"])\
                    .execute()
                logger.info(f"Reconnected {provider} account {account['id']} for user {user_id}")
                return result.data[0] if result.data else {**account, **update_data}

            result = self.supabase.table("calendar_accounts").insert({
                "user_id": user_id,
                "provider": provider,
                "provider_account_id": info.provider_account_id,
                "email": info.email,
                "access_token": tokens.access_token,
                "refresh_token": tokens.refresh_token or "",
                "is_active": True,
                "status": ACCOUNT_STATUS_ACTIVE,
                "last_sync": _now(),
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to save calendar account")

            logger.info(f"Connected new {provider} account {result.data[0]['id']} for user {user_id}")
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_access_token(self, account_id: str, tokens: TokenSet) -> None:
        """Persist refreshed credentials; a rotated refresh token replaces the stored one"""
        update_data = {"access_token": tokens.access_token, "status": ACCOUNT_STATUS_ACTIVE, "is_active": True}
        if tokens.refresh_token:
            update_data["refresh_token"] = tokens.refresh_token
        self.supabase.table("calendar_accounts")\
            .update(update_data)\
            .eq("id", account_id)\
            .execute()

    def set_status(self, account_id: str, status: str) -> None:
        update_data = {"status": status}
        if status == ACCOUNT_STATUS_DISCONNECTED:
            update_data["is_active"] = False
        self.supabase.table("calendar_accounts")\
            .update(update_data)\
            .eq("id", account_id)\
            .execute()

    def mark_synced(self, account_id: str, synced_at: str) -> None:
        """Stamp a successful sync; a stale account is active again once a sync succeeds"""
        self.supabase.table("calendar_accounts")\
            .update({"last_sync": synced_at, "status": ACCOUNT_STATUS_ACTIVE})\
            .eq("id", account_id)\
            .execute()

    def get_sync_status(self, ctx: RequestContext, account_id: str) -> SyncStatusResponse:
        account = self.get_owned_record(ctx, account_id)
        return SyncStatusResponse(
            last_sync=account.get("last_sync"),
            is_active=account.get("is_active", False),
            status=account.get("status") or ACCOUNT_STATUS_ACTIVE,
            provider=account["provider"],
            email=account["email"],
        )
