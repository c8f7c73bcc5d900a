from datetime import datetime
from typing import Any, Dict, List
from urllib.parse import urlencode

from app.modules.providers.base import (
    CalendarProvider, FetchedEvent, ProviderAccountInfo, ProviderRequestError,
    format_utc, has_time_component,
)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"


class GoogleCalendarProvider(CalendarProvider):
    name = "google"
    token_url = GOOGLE_TOKEN_URL
    authorize_url = GOOGLE_AUTH_URL
    scopes = [
        "https://www.googleapis.com/auth/calendar.readonly",
        "https://www.googleapis.com/auth/calendar.events.readonly",
        "https://www.googleapis.com/auth/userinfo.email",
        "https://www.googleapis.com/auth/userinfo.profile",
    ]

    def authorization_url(self, state: str) -> str:
        self._require_config()
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        })
        return f"{self.authorize_url}?{query}"

    def check_access_token(self, access_token: str) -> bool:
        response = self._get(
            f"{GOOGLE_CALENDAR_API_BASE_URL}/users/me/calendarList",
            access_token,
            params={"maxResults": 1},
        )
        return response.status_code != 401

    def get_account_info(self, access_token: str) -> ProviderAccountInfo:
        payload = self._get_json(GOOGLE_USERINFO_URL, access_token)
        account_id = payload.get("id")
        email = payload.get("email")
        if not account_id or not email:
            raise ProviderRequestError(200, "Google userinfo response is missing id or email")
        return ProviderAccountInfo(
            provider_account_id=str(account_id),
            email=email,
            name=payload.get("name") or "",
        )

    def list_events(self, access_token: str, time_min: datetime, time_max: datetime) -> List[FetchedEvent]:
        payload = self._get_json(
            f"{GOOGLE_CALENDAR_API_BASE_URL}/calendars/primary/events",
            access_token,
            params={
                "timeMin": format_utc(time_min),
                "timeMax": format_utc(time_max),
                "singleEvents": "true",
                "orderBy": "startTime",
            },
        )
        items = payload.get("items") or []
        return [to_fetched_event(item) for item in items if item.get("id")]


def to_fetched_event(item: Dict[str, Any]) -> FetchedEvent:
    """Map a Google Calendar event resource onto the common event shape"""
    start = item.get("start") or {}
    end = item.get("end") or {}
    start_time = start.get("dateTime") or start.get("date") or ""
    return FetchedEvent(
        provider_event_id=item["id"],
        title=item.get("summary") or "Untitled Event",
        description=item.get("description") or "",
        start_time=start_time,
        end_time=end.get("dateTime") or end.get("date") or "",
        location=item.get("location") or "",
        is_all_day=not has_time_component(start_time),
    )
