from pydantic import BaseModel, model_validator
from typing import Optional
from datetime import datetime, timezone
from app.modules.calendar_accounts.schemas import CalendarAccountSummary


def parse_event_time(value: str) -> datetime:
    """Parse an ISO-8601 date or date-time; naive values are taken as UTC"""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class EventCreate(BaseModel):
    title: str
    description: Optional[str] = None
    start_time: str
    end_time: str
    location: Optional[str] = None
    is_all_day: bool = False

    @model_validator(mode="after")
    def check_time_range(self):
        try:
            start = parse_event_time(self.start_time)
            end = parse_event_time(self.end_time)
        except ValueError:
            raise ValueError("start_time and end_time must be ISO-8601 strings")
        if end < start:
            raise ValueError("end_time must not be before start_time")
        return self


class EventUpdate(EventCreate):
    pass


class EventResponse(BaseModel):
    id: str
    user_id: str
    calendar_account_id: Optional[str] = None
    provider_event_id: str
    title: str
    description: Optional[str] = None
    start_time: str
    end_time: str
    location: Optional[str] = None
    is_all_day: bool
    last_modified: datetime
    is_deleted: bool = False
    calendar_account: Optional[CalendarAccountSummary] = None

    class Config:
        from_attributes = True
