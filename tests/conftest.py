"""Shared test fixtures.

- FakeSupabase: in-memory stand-in for the supabase-py table query builder,
  covering the calls the services make (select/insert/update/delete with
  eq/in_/lt filters, order, limit, offset).
- Request contexts for two users.
- Provider OAuth settings and an httpx client factory over MockTransport.
"""

import copy
import uuid
from collections.abc import Callable, Generator

import httpx
import pytest

from app.config import settings
from app.core.context import RequestContext
from app.modules.oauth import state as oauth_state
from app.modules.sync import locks


# ─────────────────────────────────────────────────────────────────────────────
# In-memory Supabase
# ─────────────────────────────────────────────────────────────────────────────


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self._db = db
        self._table = table
        self._op = "select"
        self._payload = None
        self._filters: list[Callable[[dict], bool]] = []
        self._order: list[tuple[str, bool]] = []
        self._limit = None
        self._offset = 0

    def select(self, *columns):
        self._op = "select"
        return self

    def insert(self, payload):
        self._op = "insert"
        self._payload = payload
        return self

    def update(self, payload):
        self._op = "update"
        self._payload = payload
        return self

    def delete(self):
        self._op = "delete"
        return self

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def lt(self, column, value):
        self._filters.append(lambda row: row.get(column) is not None and row.get(column) < value)
        return self

    def order(self, column, desc=False):
        self._order.append((column, desc))
        return self

    def limit(self, count):
        self._limit = count
        return self

    def offset(self, count):
        self._offset = count
        return self

    def _matches(self, row: dict) -> bool:
        return all(check(row) for check in self._filters)

    def execute(self) -> FakeResponse:
        rows = self._db.tables.setdefault(self._table, [])

        if self._op == "insert":
            payload = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for item in payload:
                row = {"id": str(uuid.uuid4()), **copy.deepcopy(item)}
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            self._db.writes.append(("insert", self._table, len(inserted)))
            return FakeResponse(inserted)

        matched = [row for row in rows if self._matches(row)]

        if self._op == "update":
            for row in matched:
                row.update(copy.deepcopy(self._payload))
            self._db.writes.append(("update", self._table, len(matched)))
            return FakeResponse([copy.deepcopy(row) for row in matched])

        if self._op == "delete":
            self._db.tables[self._table] = [row for row in rows if not self._matches(row)]
            self._db.writes.append(("delete", self._table, len(matched)))
            return FakeResponse([copy.deepcopy(row) for row in matched])

        for column, desc in reversed(self._order):
            matched.sort(key=lambda row: (row.get(column) is None, row.get(column) or ""), reverse=desc)
        matched = matched[self._offset:]
        if self._limit is not None:
            matched = matched[:self._limit]
        return FakeResponse([copy.deepcopy(row) for row in matched])


class FakeSupabase:
    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.writes: list[tuple[str, str, int]] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, name: str) -> list[dict]:
        return self.tables.get(name, [])

    def seed(self, name: str, **row) -> dict:
        row.setdefault("id", str(uuid.uuid4()))
        self.tables.setdefault(name, []).append(row)
        return row


@pytest.fixture
def supabase() -> FakeSupabase:
    return FakeSupabase()


# ─────────────────────────────────────────────────────────────────────────────
# Identity
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext(user_id="user-alice", email="alice@example.com")


@pytest.fixture
def other_ctx() -> RequestContext:
    return RequestContext(user_id="user-bob", email="bob@example.com")


# ─────────────────────────────────────────────────────────────────────────────
# Seed helpers
# ─────────────────────────────────────────────────────────────────────────────


def seed_account(db: FakeSupabase, user_id: str = "user-alice", **overrides) -> dict:
    row = {
        "user_id": user_id,
        "provider": "google",
        "provider_account_id": "google-123",
        "email": "alice@gmail.com",
        "access_token": "good-token",
        "refresh_token": "refresh-1",
        "is_active": True,
        "status": "active",
        "last_sync": None,
        "created_at": "2026-01-01T00:00:00+00:00",
    }
    row.update(overrides)
    return db.seed("calendar_accounts", **row)


def seed_event(db: FakeSupabase, user_id: str = "user-alice", **overrides) -> dict:
    row = {
        "user_id": user_id,
        "calendar_account_id": None,
        "provider_event_id": f"manual_{uuid.uuid4().hex}",
        "title": "Event",
        "description": "",
        "start_time": "2026-03-01T10:00:00Z",
        "end_time": "2026-03-01T11:00:00Z",
        "location": "",
        "is_all_day": False,
        "last_modified": "2026-01-01T00:00:00+00:00",
        "is_deleted": False,
    }
    row.update(overrides)
    return db.seed("events", **row)


# ─────────────────────────────────────────────────────────────────────────────
# Provider configuration and HTTP
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def provider_settings(monkeypatch):
    monkeypatch.setattr(settings, "google_client_id", "google-cid")
    monkeypatch.setattr(settings, "google_client_secret", "google-secret")
    monkeypatch.setattr(settings, "google_redirect_uri", "https://app.test/sync/oauth/callback")
    monkeypatch.setattr(settings, "outlook_client_id", "ms-cid")
    monkeypatch.setattr(settings, "outlook_client_secret", "ms-secret")
    monkeypatch.setattr(settings, "outlook_redirect_uri", "https://app.test/sync/oauth/callback")
    monkeypatch.setattr(settings, "oauth_state_secret", "test-state-secret")
    return settings


@pytest.fixture
def mock_http() -> Generator[Callable[[Callable[[httpx.Request], httpx.Response]], httpx.Client], None, None]:
    clients: list[httpx.Client] = []

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.close()


@pytest.fixture(autouse=True)
def reset_process_state():
    yield
    oauth_state.clear_consumed_nonces()
    with locks._lock:
        locks._in_flight.clear()
