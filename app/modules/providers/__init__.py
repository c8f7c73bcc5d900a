from typing import Optional

import httpx
from fastapi import HTTPException

from app.config import settings
from app.modules.providers.base import CalendarProvider
from app.modules.providers.google import GoogleCalendarProvider
from app.modules.providers.outlook import OutlookCalendarProvider

SUPPORTED_PROVIDERS = ("google", "outlook", "apple")
SYNCABLE_PROVIDERS = ("google", "outlook")


def get_provider(name: str, http_client: Optional[httpx.Client] = None) -> CalendarProvider:
    """Build the provider client for a provider name using OAuth settings"""
    if name == "google":
        return GoogleCalendarProvider(
            settings.google_client_id,
            settings.google_client_secret,
            settings.google_redirect_uri,
            http_client=http_client,
            timeout=settings.provider_http_timeout,
        )
    if name == "outlook":
        return OutlookCalendarProvider(
            settings.outlook_client_id,
            settings.outlook_client_secret,
            settings.outlook_redirect_uri,
            http_client=http_client,
            timeout=settings.provider_http_timeout,
        )
    if name in SUPPORTED_PROVIDERS:
        raise HTTPException(status_code=400, detail=f"Provider '{name}' does not support sync")
    raise HTTPException(status_code=400, detail=f"Unknown provider '{name}'")
