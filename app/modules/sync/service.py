import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
from fastapi import HTTPException
from supabase import Client

from app.config import settings
from app.core.context import RequestContext
from app.modules.calendar_accounts.models import ACCOUNT_STATUS_STALE
from app.modules.calendar_accounts.service import CalendarAccountService
from app.modules.providers import get_provider
from app.modules.providers.base import (
    CalendarProvider, ProviderAuthError, ProviderNotConfiguredError, ProviderRequestError,
)
from app.modules.sync import locks
from app.modules.sync.reconciler import ReconciliationService, plan_reconciliation
from app.modules.sync.schemas import SyncResult
from app.modules.sync.token_guard import RECONNECT_REQUIRED, ensure_access_token

logger = logging.getLogger(__name__)


class SyncService:
    def __init__(self, supabase: Client, http_client: Optional[httpx.Client] = None):
        self.supabase = supabase
        self.http_client = http_client
        self.accounts = CalendarAccountService(supabase)
        self.reconciler = ReconciliationService(supabase)

    def sync_account(self, ctx: RequestContext, account_id: str) -> SyncResult:
        """Sync one of the caller's accounts"""
        account = self.accounts.get_owned_record(ctx, account_id)
        return self.sync_record(account)

    def sync_record(self, account: dict) -> SyncResult:
        """Token guard, fetch and reconcile for an already-authorized account row"""
        if not account.get("is_active", True):
            raise HTTPException(
                status_code=409,
                detail="Calendar account is disconnected; reconnect it before syncing",
            )

        provider = get_provider(account["provider"], http_client=self.http_client)
        try:
            with locks.single_flight(account["id"]):
                return self._run(account, provider)
        except locks.SyncInProgressError:
            raise HTTPException(status_code=409, detail="Sync already in progress for this account")
        finally:
            provider.close()

    def _run(self, account: dict, provider: CalendarProvider) -> SyncResult:
        started = datetime.now(timezone.utc)
        window = timedelta(days=settings.sync_window_days)
        try:
            access_token = ensure_access_token(account, provider, self.accounts)
            fetched = provider.list_events(access_token, started - window, started + window)
        except ProviderNotConfiguredError as e:
            logger.error(f"Cannot sync account {account['id']}: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        except ProviderAuthError as e:
            logger.warning(f"Events fetch for account {account['id']} unauthorized: {e}")
            self.accounts.set_status(account["id"], ACCOUNT_STATUS_STALE)
            raise HTTPException(status_code=401, detail=RECONNECT_REQUIRED)
        except ProviderRequestError as e:
            logger.error(f"Events fetch for account {account['id']} failed: {e}")
            raise HTTPException(status_code=502, detail=f"Failed to sync calendar: {e.message}")

        try:
            stored = self.reconciler.load_stored_events(account["id"])
            plan = plan_reconciliation(stored, fetched)
            synced_at = datetime.now(timezone.utc)
            self.reconciler.apply(account, plan, synced_at.isoformat())
            self.accounts.mark_synced(account["id"], synced_at.isoformat())
        except HTTPException:
            raise
        except Exception as e:
            logger.exception(f"Failed to store events for account {account['id']}")
            raise HTTPException(status_code=500, detail=f"Failed to sync calendar: {e}")

        return SyncResult(
            account_id=account["id"],
            event_count=len({event.provider_event_id for event in fetched}),
            inserted=len(plan.inserts),
            updated=len(plan.updates),
            deleted=len(plan.deletes),
            unchanged=plan.unchanged,
            synced_at=synced_at,
        )
