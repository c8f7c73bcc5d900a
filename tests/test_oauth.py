"""Tests for signed OAuth state and the authorization-code callback."""

import time
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi import HTTPException

from app.config import settings
from app.modules.oauth.schemas import OAuthCallbackRequest
from app.modules.oauth.service import OAuthService
from app.modules.oauth.state import (
    OAuthStateError, OAuthStateSecretMissingError, issue_state, verify_state,
)
from tests.conftest import seed_account

SECRET = "test-state-secret"


# ─────────────────────────────────────────────────────────────────────────────
# State tokens
# ─────────────────────────────────────────────────────────────────────────────


class TestOAuthState:
    def test_round_trip(self):
        state = issue_state("user-alice", "google", SECRET)
        parsed = verify_state(state, SECRET, ttl_seconds=600)
        assert parsed.user_id == "user-alice"
        assert parsed.provider == "google"

    def test_tampered_payload_is_rejected(self):
        state = issue_state("user-alice", "google", SECRET)
        forged = issue_state("user-mallory", "google", "other-secret")
        payload, _ = forged.split(".")
        _, signature = state.split(".")
        with pytest.raises(OAuthStateError):
            verify_state(f"{payload}.{signature}", SECRET, ttl_seconds=600)

    def test_wrong_secret_is_rejected(self):
        state = issue_state("user-alice", "google", "other-secret")
        with pytest.raises(OAuthStateError):
            verify_state(state, SECRET, ttl_seconds=600)

    def test_expired_state_is_rejected(self):
        issued = time.time() - 3600
        state = issue_state("user-alice", "google", SECRET, now=issued)
        with pytest.raises(OAuthStateError, match="expired"):
            verify_state(state, SECRET, ttl_seconds=600)

    def test_state_is_single_use(self):
        state = issue_state("user-alice", "google", SECRET)
        verify_state(state, SECRET, ttl_seconds=600)
        with pytest.raises(OAuthStateError, match="already used"):
            verify_state(state, SECRET, ttl_seconds=600)

    @pytest.mark.parametrize("secret", [None, "", "change-me"])
    def test_unset_or_placeholder_secret_is_refused(self, secret):
        with pytest.raises(OAuthStateSecretMissingError, match="OAUTH_STATE_SECRET"):
            issue_state("victim-user", "google", secret)
        with pytest.raises(OAuthStateSecretMissingError):
            verify_state("payload.signature", secret, ttl_seconds=600)

    @pytest.mark.parametrize("garbage", ["", "no-dot", "a.b", "user-alice"])
    def test_garbage_is_rejected(self, garbage):
        with pytest.raises(OAuthStateError):
            verify_state(garbage, SECRET, ttl_seconds=600)


# ─────────────────────────────────────────────────────────────────────────────
# Callback flow
# ─────────────────────────────────────────────────────────────────────────────


class GoogleOAuthStub:
    def __init__(self, refresh_token="rt-new", token_status=200):
        self.refresh_token = refresh_token
        self.token_status = token_status

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com":
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            payload = {"access_token": "at-new", "expires_in": 3600}
            if self.refresh_token:
                payload["refresh_token"] = self.refresh_token
            return httpx.Response(200, json=payload)
        if request.url.path.endswith("/userinfo"):
            return httpx.Response(200, json={"id": "google-123", "email": "alice@gmail.com"})
        if request.url.path.endswith("/calendarList"):
            return httpx.Response(200, json={"items": []})
        return httpx.Response(200, json={"items": [
            {"id": "E1", "summary": "Planning", "start": {"dateTime": "2026-10-20T09:00:00Z"},
             "end": {"dateTime": "2026-10-20T10:00:00Z"}},
        ]})


@pytest.fixture
def oauth_for(supabase, mock_http, provider_settings):
    def build(stub) -> OAuthService:
        return OAuthService(supabase, http_client=mock_http(stub))
    return build


class TestOAuthService:
    def test_authorization_url_carries_signed_state(self, ctx, oauth_for):
        response = oauth_for(GoogleOAuthStub()).authorization_url(ctx, "google")

        state = parse_qs(urlparse(response.authorization_url).query)["state"][0]
        assert verify_state(state, SECRET, ttl_seconds=600).user_id == ctx.user_id

    def test_apple_cannot_be_connected(self, ctx, oauth_for):
        with pytest.raises(HTTPException) as exc_info:
            oauth_for(GoogleOAuthStub()).authorization_url(ctx, "apple")
        assert exc_info.value.status_code == 400

    def test_callback_connects_and_syncs(self, supabase, ctx, oauth_for):
        state = issue_state(ctx.user_id, "google", SECRET)

        response = oauth_for(GoogleOAuthStub()).complete(OAuthCallbackRequest(code="c", state=state))

        assert response.success is True
        assert response.email == "alice@gmail.com"
        assert response.event_count == 1
        assert response.sync_error is None
        [account] = supabase.rows("calendar_accounts")
        assert account["user_id"] == ctx.user_id
        assert account["refresh_token"] == "rt-new"
        assert [row["provider_event_id"] for row in supabase.rows("events")] == ["E1"]

    def test_reconnect_keeps_refresh_token(self, supabase, ctx, oauth_for):
        existing = seed_account(supabase, access_token="old", refresh_token="rt-original",
                                is_active=False, status="disconnected")
        state = issue_state(ctx.user_id, "google", SECRET)

        response = oauth_for(GoogleOAuthStub(refresh_token=None)).complete(
            OAuthCallbackRequest(code="c", state=state)
        )

        [account] = supabase.rows("calendar_accounts")
        assert response.account_id == existing["id"]
        assert account["access_token"] == "at-new"
        assert account["refresh_token"] == "rt-original"
        assert account["status"] == "active"
        assert account["is_active"] is True

    def test_invalid_state(self, supabase, oauth_for):
        with pytest.raises(HTTPException) as exc_info:
            oauth_for(GoogleOAuthStub()).complete(OAuthCallbackRequest(code="c", state="bogus"))
        assert exc_info.value.status_code == 400
        assert supabase.rows("calendar_accounts") == []

    def test_rejected_code(self, supabase, ctx, oauth_for):
        state = issue_state(ctx.user_id, "google", SECRET)
        with pytest.raises(HTTPException) as exc_info:
            oauth_for(GoogleOAuthStub(token_status=400)).complete(OAuthCallbackRequest(code="c", state=state))
        assert exc_info.value.status_code == 400
        assert supabase.rows("calendar_accounts") == []

    def test_missing_state_secret_is_server_error(self, supabase, ctx, oauth_for, monkeypatch):
        service = oauth_for(GoogleOAuthStub())
        monkeypatch.setattr(settings, "oauth_state_secret", None)

        for call in (
            lambda: service.authorization_url(ctx, "google"),
            lambda: service.complete(OAuthCallbackRequest(code="c", state="payload.signature")),
        ):
            with pytest.raises(HTTPException) as exc_info:
                call()
            assert exc_info.value.status_code == 500
            assert "OAUTH_STATE_SECRET" in exc_info.value.detail
        assert supabase.rows("calendar_accounts") == []
