from fastapi import APIRouter, Depends
from app.core.context import RequestContext
from app.core.dependencies import get_request_context
from app.database.supabase_client import get_supabase
from app.modules.events.schemas import EventCreate, EventUpdate, EventResponse
from app.modules.events.service import EventService
from supabase import Client
from typing import List, Optional

router = APIRouter(prefix="/events", tags=["events"])


def get_event_service(supabase: Client = Depends(get_supabase)) -> EventService:
    return EventService(supabase)


@router.get("", response_model=List[EventResponse])
async def list_events(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    ctx: RequestContext = Depends(get_request_context),
    service: EventService = Depends(get_event_service)
):
    """List the caller's events; pass start_date and end_date (ISO) to restrict to a range"""
    return service.list_user_events(ctx, start_date=start_date, end_date=end_date)


@router.post("", response_model=EventResponse, status_code=201)
async def create_event(
    event_data: EventCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: EventService = Depends(get_event_service)
):
    """Create a manual event"""
    return service.create_event(ctx, event_data)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: EventService = Depends(get_event_service)
):
    return service.get_event(ctx, event_id)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: str,
    event_data: EventUpdate,
    ctx: RequestContext = Depends(get_request_context),
    service: EventService = Depends(get_event_service)
):
    return service.update_event(ctx, event_id, event_data)


@router.delete("/{event_id}", status_code=204)
async def delete_event(
    event_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: EventService = Depends(get_event_service)
):
    service.delete_event(ctx, event_id)
    return None
