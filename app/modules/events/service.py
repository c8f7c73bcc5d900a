import logging
import uuid
from datetime import datetime, timezone
from supabase import Client
from app.core.context import RequestContext
from app.modules.calendar_accounts.schemas import CalendarAccountSummary
from app.modules.events.schemas import EventCreate, EventUpdate, EventResponse
from typing import Dict, List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)

EVENT_NOT_FOUND = "Event not found or access denied"


def overlaps_range(event: dict, start_date: str, end_date: str) -> bool:
    """Event starts in, ends in, or spans [start_date, end_date] (ISO string order)"""
    start, end = event["start_time"], event["end_time"]
    starts_in_range = start_date <= start <= end_date
    ends_in_range = start_date <= end <= end_date
    spans_range = start <= start_date and end >= end_date
    return starts_in_range or ends_in_range or spans_range


class EventService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _attach_accounts(self, rows: List[dict]) -> List[EventResponse]:
        """Build responses with a summary of each event's calendar account"""
        account_ids = list({row["calendar_account_id"] for row in rows if row.get("calendar_account_id")})
        accounts: Dict[str, CalendarAccountSummary] = {}
        if account_ids:
            result = self.supabase.table("calendar_accounts")\
                .select("id, provider, email, is_active")\
                .in_("id", account_ids)\
                .execute()
            accounts = {a["id"]: CalendarAccountSummary(**a) for a in result.data or []}
        return [
            EventResponse(**row, calendar_account=accounts.get(row.get("calendar_account_id")))
            for row in rows
        ]

    def _get_owned_row(self, ctx: RequestContext, event_id: str) -> dict:
        result = self.supabase.table("events")\
            .select("*")\
            .eq("id", event_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail=EVENT_NOT_FOUND)
        row = result.data[0]
        if row.get("user_id") != ctx.user_id or row.get("is_deleted"):
            raise HTTPException(status_code=404, detail=EVENT_NOT_FOUND)
        return row

    def list_user_events(
        self,
        ctx: RequestContext,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> List[EventResponse]:
        """Caller's visible events, optionally limited to a date range"""
        try:
            result = self.supabase.table("events")\
                .select("*")\
                .eq("user_id", ctx.user_id)\
                .eq("is_deleted", False)\
                .order("start_time")\
                .execute()
            rows = result.data or []
            if start_date and end_date:
                rows = [row for row in rows if overlaps_range(row, start_date, end_date)]
            return self._attach_accounts(rows)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_events_for_users(
        self,
        user_ids: List[str],
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> List[EventResponse]:
        """Visible events of several users, used by the group availability preview"""
        if not user_ids:
            return []
        try:
            result = self.supabase.table("events")\
                .select("*")\
                .in_("user_id", list(set(user_ids)))\
                .eq("is_deleted", False)\
                .order("start_time")\
                .execute()
            rows = result.data or []
            if start_date and end_date:
                rows = [row for row in rows if overlaps_range(row, start_date, end_date)]
            return self._attach_accounts(rows)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_event(self, ctx: RequestContext, event_id: str) -> EventResponse:
        try:
            return self._attach_accounts([self._get_owned_row(ctx, event_id)])[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_event(self, ctx: RequestContext, event_data: EventCreate) -> EventResponse:
        """Create a manual event (not linked to any calendar account)"""
        try:
            result = self.supabase.table("events").insert({
                "user_id": ctx.user_id,
                "calendar_account_id": None,
                "provider_event_id": f"manual_{uuid.uuid4().hex}",
                "title": event_data.title,
                "description": event_data.description,
                "start_time": event_data.start_time,
                "end_time": event_data.end_time,
                "location": event_data.location,
                "is_all_day": event_data.is_all_day,
                "last_modified": datetime.now(timezone.utc).isoformat(),
                "is_deleted": False,
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create event")

            return EventResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to create event for user {ctx.user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create event")

    def update_event(self, ctx: RequestContext, event_id: str, event_data: EventUpdate) -> EventResponse:
        try:
            self._get_owned_row(ctx, event_id)
            result = self.supabase.table("events")\
                .update({
                    "title": event_data.title,
                    "description": event_data.description,
                    "start_time": event_data.start_time,
                    "end_time": event_data.end_time,
                    "location": event_data.location,
                    "is_all_day": event_data.is_all_day,
                    "last_modified": datetime.now(timezone.utc).isoformat(),
                })\
                .eq("id", event_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail=EVENT_NOT_FOUND)

            return self._attach_accounts(result.data)[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_event(self, ctx: RequestContext, event_id: str) -> bool:
        """Soft delete; the row is kept for sync diffing until retention purges it"""
        try:
            self._get_owned_row(ctx, event_id)
            result = self.supabase.table("events")\
                .update({"is_deleted": True, "deleted_at": datetime.now(timezone.utc).isoformat()})\
                .eq("id", event_id)\
                .execute()
            return len(result.data) > 0
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
