"""Tests for Supabase Auth integration and the request context dependency."""

from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from app.core.dependencies import get_request_context
from app.modules.auth.schemas import LoginRequest, RegisterRequest
from app.modules.auth.service import AuthService, clear_auth_cache


class FakeAuth:
    def __init__(self):
        self.get_user_calls = 0

    def sign_up(self, credentials):
        user = SimpleNamespace(id="user-new", email=credentials["email"])
        return SimpleNamespace(user=user, session=None)

    def sign_in_with_password(self, credentials):
        if credentials["password"] != "hunter22":
            raise Exception("Invalid login credentials")
        user = SimpleNamespace(id="user-alice", email=credentials["email"])
        return SimpleNamespace(user=user, session=SimpleNamespace(access_token="jwt-alice"))

    def get_user(self, jwt):
        self.get_user_calls += 1
        if jwt != "jwt-alice":
            raise Exception("invalid JWT: unable to parse or verify signature")
        user = SimpleNamespace(id="user-alice", email="alice@example.com", user_metadata={"first_name": "Alice"})
        return SimpleNamespace(user=user)

    def sign_out(self):
        return None


@pytest.fixture
def auth_service(supabase):
    supabase.auth = FakeAuth()
    clear_auth_cache()
    yield AuthService(supabase)
    clear_auth_cache()


def test_register_creates_profile(supabase, auth_service):
    response = auth_service.register(RegisterRequest(
        email="new@example.com", password="secret1", first_name="Nia", last_name="Ng",
    ))

    [profile] = supabase.rows("user_profiles")
    assert response.user_id == "user-new"
    assert profile["id"] == "user-new"
    assert profile["first_name"] == "Nia"
    assert profile["email"] == "new@example.com"


def test_login(auth_service):
    token = auth_service.login(LoginRequest(email="alice@example.com", password="hunter22"))
    assert token.access_token == "jwt-alice"
    assert token.user_id == "user-alice"


def test_login_with_wrong_password(auth_service):
    with pytest.raises(HTTPException) as exc_info:
        auth_service.login(LoginRequest(email="alice@example.com", password="nope"))
    assert exc_info.value.status_code == 401


def test_current_user_is_cached(supabase, auth_service):
    first = auth_service.get_current_user("jwt-alice")
    second = auth_service.get_current_user("jwt-alice")

    assert first == second
    assert supabase.auth.get_user_calls == 1


def test_logout_drops_cached_identity(supabase, auth_service):
    auth_service.get_current_user("jwt-alice")
    auth_service.logout("jwt-alice")
    auth_service.get_current_user("jwt-alice")
    assert supabase.auth.get_user_calls == 2


def test_invalid_token(auth_service):
    with pytest.raises(HTTPException) as exc_info:
        auth_service.get_current_user("forged")
    assert exc_info.value.status_code == 401


def test_request_context_from_identity(auth_service):
    ctx = get_request_context(auth_service.get_current_user("jwt-alice"))
    assert ctx.user_id == "user-alice"
    assert ctx.email == "alice@example.com"
