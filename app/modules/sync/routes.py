from fastapi import APIRouter, Depends
from app.core.context import RequestContext
from app.core.dependencies import get_request_context
from app.database.supabase_client import get_supabase
from app.modules.calendar_accounts.schemas import SyncStatusResponse
from app.modules.calendar_accounts.service import CalendarAccountService
from app.modules.sync.schemas import SyncResult
from app.modules.sync.service import SyncService
from supabase import Client

router = APIRouter(prefix="/calendar-accounts", tags=["sync"])


def get_sync_service(supabase: Client = Depends(get_supabase)) -> SyncService:
    return SyncService(supabase)


# Plain def: provider calls are blocking, so FastAPI runs this in its threadpool.
@router.post("/{account_id}/sync", response_model=SyncResult)
def sync_account(
    account_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: SyncService = Depends(get_sync_service)
):
    """Fetch the provider's event window and reconcile it into the store"""
    return service.sync_account(ctx, account_id)


@router.get("/{account_id}/sync-status", response_model=SyncStatusResponse)
async def get_sync_status(
    account_id: str,
    ctx: RequestContext = Depends(get_request_context),
    supabase: Client = Depends(get_supabase)
):
    return CalendarAccountService(supabase).get_sync_status(ctx, account_id)
