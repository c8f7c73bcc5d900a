import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from supabase import Client
from app.config import settings
from app.database.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


def purge_soft_deleted_events(
    supabase: Client,
    retention_days: int,
    now: Optional[datetime] = None
) -> int:
    """Physically delete events soft-deleted more than retention_days ago. Returns rows removed."""
    now = now or datetime.now(timezone.utc)
    cutoff = (now - timedelta(days=retention_days)).isoformat()
    result = supabase.table("events")\
        .delete()\
        .eq("is_deleted", True)\
        .lt("deleted_at", cutoff)\
        .execute()
    purged = len(result.data or [])
    if purged:
        logger.info(f"Purged {purged} soft-deleted event(s) older than {retention_days} days")
    else:
        logger.debug("No soft-deleted events past retention")
    return purged


async def retention_scheduler_loop():
    """Background task that periodically purges expired soft-deleted events"""
    while True:
        try:
            supabase = SupabaseClient.get_service_client()
            await asyncio.to_thread(
                purge_soft_deleted_events, supabase, settings.event_retention_days
            )
        except Exception as e:
            logger.error(f"Error in retention scheduler loop: {str(e)}")

        await asyncio.sleep(settings.retention_interval_seconds)
