"""Pytest configuration and shared fixtures."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from cloudmagic.core.rate_limit import limiter
from cloudmagic.main import app


class FakeUsersTable:
    """
    In-memory stand-in for the `users` table query builder.

    Supports the chains the services use: select().eq().limit().execute(),
    insert([...]).execute() and upsert({...}).execute().
    """

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None):
        self.rows: List[Dict[str, Any]] = list(rows or [])
        self.fail_writes = False
        self.inserts: List[Dict[str, Any]] = []
        self._reset()

    def _reset(self):
        self._op = None
        self._filters: Dict[str, Any] = {}
        self._payload: List[Dict[str, Any]] = []

    def select(self, columns: str = "*"):
        self._op = "select"
        return self

    def eq(self, column: str, value: Any):
        self._filters[column] = value
        return self

    def limit(self, count: int):
        return self

    def insert(self, rows):
        self._op = "insert"
        self._payload = rows if isinstance(rows, list) else [rows]
        return self

    def upsert(self, row):
        self._op = "upsert"
        self._payload = [row]
        return self

    def execute(self):
        op, filters, payload = self._op, self._filters, self._payload
        self._reset()

        if op == "select":
            data = [r for r in self.rows if all(r.get(k) == v for k, v in filters.items())]
            return Mock(data=data[:1])

        if self.fail_writes:
            raise RuntimeError("write failed")

        if op == "insert":
            self.inserts.extend(payload)
            self.rows.extend(dict(r) for r in payload)
            return Mock(data=payload)

        saved = []
        for row in payload:
            existing = next((r for r in self.rows if r["id"] == row["id"]), None)
            if existing is None:
                existing = dict(row)
                self.rows.append(existing)
            else:
                existing.update(row)
            saved.append(dict(existing))
        return Mock(data=saved)


def make_user(
    user_id: str = "user-1",
    email: str = "jane@example.com",
    verified: bool = True,
    metadata: Optional[Dict[str, Any]] = None,
) -> Mock:
    """A Supabase Auth user object with only the fields the app reads."""
    return Mock(
        id=user_id,
        email=email,
        email_confirmed_at=datetime(2024, 1, 1, tzinfo=timezone.utc) if verified else None,
        user_metadata=metadata if metadata is not None else {"full_name": "Jane Doe"},
    )


@pytest.fixture
def users_table() -> FakeUsersTable:
    return FakeUsersTable()


@pytest.fixture
def mock_supabase(users_table: FakeUsersTable) -> Mock:
    """Mock Supabase client with no session and an empty users table."""
    mock_client = Mock()
    mock_client.table.return_value = users_table
    mock_client.auth.get_user.return_value = None
    return mock_client


@pytest.fixture
def signed_in(mock_supabase: Mock) -> Mock:
    """Give the mock client a verified session user."""
    user = make_user()
    mock_supabase.auth.get_user.return_value = Mock(user=user)
    return user


@pytest.fixture
def client(mock_supabase: Mock):
    """
    FastAPI test client whose requests all get the mock Supabase client.

    Redirects are not followed so tests can assert on them.
    """
    limiter_enabled = limiter.enabled
    limiter.enabled = False
    app.state.supabase_factory = lambda storage: mock_supabase
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client
    del app.state.supabase_factory
    limiter.enabled = limiter_enabled
