from fastapi import APIRouter, Depends
from app.core.context import RequestContext
from app.core.dependencies import get_request_context
from app.database.supabase_client import get_supabase
from app.modules.calendar_accounts.schemas import (
    CalendarAccountCreate, CalendarAccountUpdate, CalendarAccountResponse
)
from app.modules.calendar_accounts.service import CalendarAccountService
from supabase import Client
from typing import List

router = APIRouter(prefix="/calendar-accounts", tags=["calendar-accounts"])


def get_account_service(supabase: Client = Depends(get_supabase)) -> CalendarAccountService:
    return CalendarAccountService(supabase)


@router.get("", response_model=List[CalendarAccountResponse])
async def list_accounts(
    ctx: RequestContext = Depends(get_request_context),
    service: CalendarAccountService = Depends(get_account_service)
):
    """List the caller's connected calendar accounts"""
    return service.list_accounts(ctx)


@router.post("", response_model=CalendarAccountResponse, status_code=201)
async def create_account(
    account_data: CalendarAccountCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: CalendarAccountService = Depends(get_account_service)
):
    return service.create_account(ctx, account_data)


@router.get("/{account_id}", response_model=CalendarAccountResponse)
async def get_account(
    account_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: CalendarAccountService = Depends(get_account_service)
):
    return service.get_account(ctx, account_id)


@router.patch("/{account_id}", response_model=CalendarAccountResponse)
async def update_account(
    account_id: str,
    account_data: CalendarAccountUpdate,
    ctx: RequestContext = Depends(get_request_context),
    service: CalendarAccountService = Depends(get_account_service)
):
    """Enable or disable syncing for an account"""
    return service.update_account(ctx, account_id, account_data)


@router.delete("/{account_id}", status_code=204)
async def delete_account(
    account_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: CalendarAccountService = Depends(get_account_service)
):
    """Disconnect an account and soft-delete its events"""
    service.delete_account(ctx, account_id)
    return None
