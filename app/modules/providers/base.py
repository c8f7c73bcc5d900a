"""
Shared plumbing for external calendar providers.

Each provider wraps one vendor's OAuth token endpoint and calendar REST API
behind the same small surface: build an authorization URL, exchange a code,
refresh an access token, probe a token, read the account identity and list
events in a time window. HTTP goes through a shared httpx.Client.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Base class for provider failures"""


class ProviderAuthError(ProviderError):
    """Credential rejected by the provider (bad code, revoked refresh token)"""


class ProviderRequestError(ProviderError):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"Provider request failed ({status_code}): {message}")
        self.status_code = status_code
        self.message = message


class ProviderNotConfiguredError(ProviderError):
    """OAuth client settings for a provider are missing"""


@dataclass
class TokenSet:
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


@dataclass
class ProviderAccountInfo:
    provider_account_id: str
    email: str
    name: str = ""


@dataclass
class FetchedEvent:
    provider_event_id: str
    title: str
    start_time: str
    end_time: str
    is_all_day: bool
    description: Optional[str] = None
    location: Optional[str] = None


def has_time_component(value: Optional[str]) -> bool:
    """True for ISO date-times, False for bare dates like 2026-03-01"""
    return bool(value) and "T" in value


def format_utc(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def safe_error_message(response: httpx.Response) -> str:
    """Short, single-line error text from a provider error response"""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        error_payload = payload.get("error")
        if isinstance(error_payload, dict):
            message = error_payload.get("message")
            if isinstance(message, str) and message.strip():
                return " ".join(message.split())[:200]
        description = payload.get("error_description")
        if isinstance(description, str) and description.strip():
            return " ".join(description.split())[:200]
        if isinstance(error_payload, str) and error_payload.strip():
            return " ".join(error_payload.split())[:200]

    raw_text = response.text.strip()
    if raw_text:
        return " ".join(raw_text.split())[:200]
    return "Request failed without an error payload"


class CalendarProvider:
    name = ""
    token_url = ""
    authorize_url = ""
    scopes: List[str] = []

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        redirect_uri: Optional[str],
        http_client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._owns_http_client = http_client is None
        self.http = http_client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        if self._owns_http_client:
            self.http.close()

    def _require_config(self) -> None:
        missing = [
            field for field, value in (
                ("client_id", self.client_id),
                ("client_secret", self.client_secret),
                ("redirect_uri", self.redirect_uri),
            ) if not value
        ]
        if missing:
            names = ", ".join(f"{self.name}_{field}".upper() for field in missing)
            raise ProviderNotConfiguredError(f"Missing OAuth configuration: {names}")

    def authorization_url(self, state: str) -> str:
        raise NotImplementedError

    def check_access_token(self, access_token: str) -> bool:
        """Lightweight probe; False only when the provider answers 401"""
        raise NotImplementedError

    def get_account_info(self, access_token: str) -> ProviderAccountInfo:
        raise NotImplementedError

    def list_events(self, access_token: str, time_min: datetime, time_max: datetime) -> List[FetchedEvent]:
        raise NotImplementedError

    def exchange_code(self, code: str) -> TokenSet:
        """Trade an authorization code for access and refresh tokens"""
        self._require_config()
        return self._post_token({
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
        })

    def refresh_access_token(self, refresh_token: str) -> TokenSet:
        """Trade a refresh token for a new access token"""
        self._require_config()
        if not refresh_token:
            raise ProviderAuthError(f"No {self.name} refresh token stored for this account")
        return self._post_token({
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        })

    def _post_token(self, data: Dict[str, str]) -> TokenSet:
        try:
            response = self.http.post(
                self.token_url,
                data=data,
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise ProviderRequestError(0, f"{self.name} token request failed: {exc}") from exc

        if response.status_code in (400, 401):
            raise ProviderAuthError(
                f"{self.name} token endpoint rejected the grant: {safe_error_message(response)}"
            )
        if response.status_code < 200 or response.status_code >= 300:
            raise ProviderRequestError(response.status_code, safe_error_message(response))

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderRequestError(response.status_code, "Token endpoint returned invalid JSON") from exc

        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not isinstance(access_token, str) or not access_token.strip():
            raise ProviderAuthError(f"{self.name} token response is missing an access_token")

        expires_in = payload.get("expires_in")
        return TokenSet(
            access_token=access_token.strip(),
            refresh_token=payload.get("refresh_token"),
            expires_in=int(expires_in) if isinstance(expires_in, (int, float)) else None,
        )

    def _get(self, url: str, access_token: str, params: Optional[Dict[str, Any]] = None,
             headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        request_headers = {"Authorization": f"Bearer {access_token}"}
        if headers:
            request_headers.update(headers)
        try:
            return self.http.get(url, params=params, headers=request_headers)
        except httpx.HTTPError as exc:
            raise ProviderRequestError(0, f"{self.name} request failed: {exc}") from exc

    def _get_json(self, url: str, access_token: str, params: Optional[Dict[str, Any]] = None,
                  headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        response = self._get(url, access_token, params=params, headers=headers)
        if response.status_code == 401:
            raise ProviderAuthError(f"{self.name} rejected the access token")
        if response.status_code < 200 or response.status_code >= 300:
            raise ProviderRequestError(response.status_code, safe_error_message(response))
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderRequestError(response.status_code, "Provider returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise ProviderRequestError(response.status_code, "Provider returned an unexpected payload")
        return payload
