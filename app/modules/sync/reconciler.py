"""
Full-window reconciliation of provider events against stored events.

Every sync re-fetches the whole window, so the fetched set is authoritative
for one calendar account: matching provider ids are patched, new ids are
inserted and stored ids that were not observed are soft-deleted. Manual
events (no calendar_account_id) never enter the stored set.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from supabase import Client

from app.modules.providers.base import FetchedEvent

logger = logging.getLogger(__name__)

SYNCED_FIELDS = ("title", "description", "start_time", "end_time", "location", "is_all_day")


@dataclass
class ReconciliationPlan:
    inserts: List[FetchedEvent] = field(default_factory=list)
    updates: List[Tuple[str, dict]] = field(default_factory=list)
    deletes: List[str] = field(default_factory=list)
    unchanged: int = 0

    @property
    def has_writes(self) -> bool:
        return bool(self.inserts or self.updates or self.deletes)


def _field_value(source, name: str):
    value = source.get(name) if isinstance(source, dict) else getattr(source, name)
    if name == "is_all_day":
        return bool(value)
    return value or ""


def event_patch(stored: dict, fetched: FetchedEvent) -> dict:
    """Fields of the stored row that differ from the fetched event"""
    return {
        name: getattr(fetched, name)
        for name in SYNCED_FIELDS
        if _field_value(stored, name) != _field_value(fetched, name)
    }


def plan_reconciliation(stored: List[dict], fetched: List[FetchedEvent]) -> ReconciliationPlan:
    """Diff stored rows of one account against a freshly fetched event set"""
    plan = ReconciliationPlan()

    stored_by_provider_id: Dict[str, dict] = {}
    for row in stored:
        if row.get("is_deleted") or not row.get("calendar_account_id"):
            continue
        provider_event_id = row["provider_event_id"]
        if provider_event_id in stored_by_provider_id:
            # Duplicate rows for one provider id: keep the first, retire the rest.
            plan.deletes.append(row["id"])
            continue
        stored_by_provider_id[provider_event_id] = row

    latest: Dict[str, FetchedEvent] = {}
    for event in fetched:
        latest[event.provider_event_id] = event

    for provider_event_id, event in latest.items():
        row = stored_by_provider_id.get(provider_event_id)
        if row is None:
            plan.inserts.append(event)
            continue
        patch = event_patch(row, event)
        if patch:
            plan.updates.append((row["id"], patch))
        else:
            plan.unchanged += 1

    for provider_event_id, row in stored_by_provider_id.items():
        if provider_event_id not in latest:
            plan.deletes.append(row["id"])

    return plan


class ReconciliationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def load_stored_events(self, account_id: str) -> List[dict]:
        """Non-deleted events previously synced from this account"""
        result = self.supabase.table("events")\
            .select("*")\
            .eq("calendar_account_id", account_id)\
            .eq("is_deleted", False)\
            .execute()
        return result.data or []

    def apply(self, account: dict, plan: ReconciliationPlan, now: str) -> None:
        """Write a reconciliation plan for one account"""
        if plan.inserts:
            self.supabase.table("events").insert([
                {
                    "user_id": account["user_id"],
                    "calendar_account_id": account["id"],
                    "provider_event_id": event.provider_event_id,
                    "title": event.title,
                    "description": event.description,
                    "start_time": event.start_time,
                    "end_time": event.end_time,
                    "location": event.location,
                    "is_all_day": event.is_all_day,
                    "last_modified": now,
                    "is_deleted": False,
                }
                for event in plan.inserts
            ]).execute()

        for event_id, patch in plan.updates:
            self.supabase.table("events")\
                .update({**patch, "last_modified": now})\
                .eq("id", event_id)\
                .execute()

        if plan.deletes:
            self.supabase.table("events")\
                .update({"is_deleted": True, "deleted_at": now})\
                .in_("id", plan.deletes)\
                .execute()

        logger.info(
            f"Reconciled account {account['id']}: {len(plan.inserts)} inserted, "
            f"{len(plan.updates)} updated, {len(plan.deletes)} deleted, {plan.unchanged} unchanged"
        )
