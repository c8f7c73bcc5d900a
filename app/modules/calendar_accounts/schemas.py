from pydantic import BaseModel
from typing import Optional, Literal
from datetime import datetime

Provider = Literal["google", "outlook", "apple"]


class CalendarAccountCreate(BaseModel):
    provider: Provider
    provider_account_id: str
    email: str
    access_token: str
    refresh_token: str = ""


class CalendarAccountUpdate(BaseModel):
    is_active: bool


class CalendarAccountResponse(BaseModel):
    id: str
    user_id: str
    provider: str
    provider_account_id: str
    email: str
    is_active: bool
    status: str = "active"
    last_sync: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CalendarAccountSummary(BaseModel):
    id: str
    provider: str
    email: str
    is_active: bool


class SyncStatusResponse(BaseModel):
    last_sync: Optional[datetime] = None
    is_active: bool
    status: str
    provider: str
    email: str
