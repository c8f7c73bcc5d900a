from datetime import datetime
from typing import Any, Dict, List
from urllib.parse import urlencode

from app.modules.providers.base import (
    CalendarProvider, FetchedEvent, ProviderAccountInfo, ProviderRequestError,
    format_utc, has_time_component,
)

MICROSOFT_AUTH_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/authorize"
MICROSOFT_TOKEN_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/token"
GRAPH_API_BASE_URL = "https://graph.microsoft.com/v1.0"


class OutlookCalendarProvider(CalendarProvider):
    name = "outlook"
    token_url = MICROSOFT_TOKEN_URL
    authorize_url = MICROSOFT_AUTH_URL
    scopes = [
        "Calendars.Read",
        "Calendars.Read.Shared",
        "User.Read",
        "offline_access",
    ]

    def authorization_url(self, state: str) -> str:
        self._require_config()
        query = urlencode({
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "response_mode": "query",
            "scope": " ".join(self.scopes),
            "state": state,
        })
        return f"{self.authorize_url}?{query}"

    def check_access_token(self, access_token: str) -> bool:
        response = self._get(f"{GRAPH_API_BASE_URL}/me", access_token, params={"$select": "id"})
        return response.status_code != 401

    def get_account_info(self, access_token: str) -> ProviderAccountInfo:
        payload = self._get_json(f"{GRAPH_API_BASE_URL}/me", access_token)
        account_id = payload.get("id")
        email = payload.get("mail") or payload.get("userPrincipalName")
        if not account_id or not email:
            raise ProviderRequestError(200, "Graph /me response is missing id or email")
        return ProviderAccountInfo(
            provider_account_id=str(account_id),
            email=email,
            name=payload.get("displayName") or "",
        )

    def list_events(self, access_token: str, time_min: datetime, time_max: datetime) -> List[FetchedEvent]:
        date_filter = (
            f"start/dateTime ge '{format_utc(time_min)}' "
            f"and end/dateTime le '{format_utc(time_max)}'"
        )
        payload = self._get_json(
            f"{GRAPH_API_BASE_URL}/me/events",
            access_token,
            params={"$filter": date_filter},
            headers={"Prefer": 'outlook.timezone="UTC"'},
        )
        items = payload.get("value") or []
        return [to_fetched_event(item) for item in items if item.get("id")]


def to_fetched_event(item: Dict[str, Any]) -> FetchedEvent:
    """Map a Microsoft Graph event resource onto the common event shape"""
    start = item.get("start") or {}
    end = item.get("end") or {}
    location = item.get("location") or {}
    start_time = start.get("dateTime") or start.get("date") or ""
    return FetchedEvent(
        provider_event_id=item["id"],
        title=item.get("subject") or "Untitled Event",
        description=item.get("bodyPreview") or "",
        start_time=start_time,
        end_time=end.get("dateTime") or end.get("date") or "",
        location=location.get("displayName") or "",
        is_all_day=bool(item.get("isAllDay")) or not has_time_component(start_time),
    )
