"""
Shared test fixtures.

The mock Supabase client keeps rows per table, so inserts, updates,
upserts and deletes are visible to later queries in the same test.
"""

import os
import sys
from pathlib import Path

# Settings are read at import time
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")

# Add project root to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from copy import deepcopy
from unittest.mock import patch
from datetime import datetime
from typing import Generator
from uuid import uuid4

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: int = None):
        self.data = data if data is not None else []
        self.count = count


class MockSupabaseQuery:
    """Chainable query builder evaluated against the client's table store."""

    def __init__(self, client: "MockSupabaseClient", table: str):
        self._client = client
        self._table = table
        self._op = "select"
        self._payload = None
        self._on_conflict = None
        self._filters = []
        self._order = []
        self._limit = None
        self._range = None
        self._is_single = False
        self._count = None

    # Operations

    def select(self, *args, count: str = None, **kwargs):
        self._count = count
        return self

    def insert(self, data):
        self._op = "insert"
        self._payload = data
        return self

    def upsert(self, data, on_conflict: str = "id", **kwargs):
        self._op = "upsert"
        self._payload = data
        self._on_conflict = [c.strip() for c in on_conflict.split(",")]
        return self

    def update(self, data):
        self._op = "update"
        self._payload = data
        return self

    def delete(self):
        self._op = "delete"
        return self

    # Filters

    def eq(self, column, value):
        self._filters.append(lambda r: str(r.get(column)) == str(value))
        return self

    def neq(self, column, value):
        self._filters.append(lambda r: str(r.get(column)) != str(value))
        return self

    def in_(self, column, values):
        allowed = {str(v) for v in values}
        self._filters.append(lambda r: str(r.get(column)) in allowed)
        return self

    def is_(self, column, value):
        if value in (None, "null"):
            self._filters.append(lambda r: r.get(column) is None)
        else:
            self._filters.append(lambda r: r.get(column) is value)
        return self

    def gte(self, column, value):
        self._filters.append(lambda r: r.get(column) is not None and r.get(column) >= value)
        return self

    def lte(self, column, value):
        self._filters.append(lambda r: r.get(column) is not None and r.get(column) <= value)
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order.append((column, desc))
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def single(self):
        self._is_single = True
        return self

    # Execution

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self._filters)

    def execute(self) -> MockSupabaseResponse:
        self._client.calls.append((self._table, self._op, deepcopy(self._payload)))
        if self._table in self._client.failing_tables:
            raise Exception(f"connection lost on {self._table}")

        rows = self._client.rows(self._table)
        handler = getattr(self, f"_execute_{self._op}")
        data = handler(rows)

        if self._is_single:
            return MockSupabaseResponse(data=data[0] if data else None, count=len(data))
        return MockSupabaseResponse(data=data, count=len(data) if self._count else None)

    def _execute_select(self, rows: list) -> list:
        result = [deepcopy(r) for r in rows if self._matches(r)]
        for column, desc in reversed(self._order):
            result.sort(key=lambda r: (r.get(column) is None, r.get(column) or ""), reverse=desc)
        if self._range:
            result = result[self._range[0]:self._range[1] + 1]
        if self._limit is not None:
            result = result[:self._limit]
        return result

    def _new_row(self, data: dict) -> dict:
        now = datetime.utcnow().isoformat() + "Z"
        row = deepcopy(data)
        row.setdefault("id", str(uuid4()))
        row.setdefault("created_at", now)
        row.setdefault("updated_at", now)
        return row

    def _execute_insert(self, rows: list) -> list:
        payload = self._payload if isinstance(self._payload, list) else [self._payload]
        created = [self._new_row(item) for item in payload]
        rows.extend(created)
        return deepcopy(created)

    def _execute_upsert(self, rows: list) -> list:
        payload = self._payload if isinstance(self._payload, list) else [self._payload]
        written = []
        for item in payload:
            existing = next(
                (r for r in rows if all(str(r.get(c)) == str(item.get(c)) for c in self._on_conflict)),
                None
            )
            if existing is not None:
                existing.update(deepcopy(item))
                written.append(deepcopy(existing))
            else:
                row = self._new_row(item)
                rows.append(row)
                written.append(deepcopy(row))
        return written

    def _execute_update(self, rows: list) -> list:
        updated = []
        for row in rows:
            if self._matches(row):
                row.update(deepcopy(self._payload))
                row["updated_at"] = datetime.utcnow().isoformat() + "Z"
                updated.append(deepcopy(row))
        return updated

    def _execute_delete(self, rows: list) -> list:
        removed = [r for r in rows if self._matches(r)]
        rows[:] = [r for r in rows if not self._matches(r)]
        return removed


class MockStorageBucket:
    def __init__(self, storage: "MockStorage", name: str):
        self._storage = storage
        self.name = name

    def upload(self, path, file, file_options=None):
        if self._storage.fail_uploads:
            raise Exception("storage unavailable")
        self._storage.uploads.append((self.name, path, file_options))
        return {"path": path}

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"


class MockStorage:
    def __init__(self):
        self.uploads = []
        self.fail_uploads = False

    def from_(self, bucket: str) -> MockStorageBucket:
        return MockStorageBucket(self, bucket)


class MockSupabaseClient:
    """
    Mock Supabase client.

    Attributes:
        calls: (table, operation, payload) for every executed query
        failing_tables: Tables whose queries raise
        storage: Storage mock recording uploads
    """

    def __init__(self):
        self._tables = {}
        self.calls = []
        self.failing_tables = set()
        self.storage = MockStorage()

    def set_table_data(self, table_name: str, data: list):
        """Replace the rows of a table."""
        self._tables[table_name] = deepcopy(data)

    def rows(self, table_name: str) -> list:
        """Live rows of a table."""
        return self._tables.setdefault(table_name, [])

    def calls_for(self, table_name: str, op: str = None) -> list:
        return [c for c in self.calls if c[0] == table_name and (op is None or c[1] == op)]

    def table(self, name: str) -> MockSupabaseQuery:
        return MockSupabaseQuery(self, name)


# ===================
# FIXTURES
# ===================

SERVICE_MODULES = (
    "config.database",
    "services.market_service",
    "services.product_service",
    "services.wave_service",
    "services.exchange_service",
    "services.incentive_service",
    "services.photo_storage",
)


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("markets", [MarketFactory.create()])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client in every service module.

    Also clears cached service singletons so they pick up the mock.
    """
    patches = [
        patch(f"{module}.get_supabase_client", return_value=mock_supabase)
        for module in SERVICE_MODULES
    ]
    patches += [
        patch("services.market_service._market_service", None),
        patch("services.product_service._product_service", None),
        patch("services.wave_service._wave_service", None),
        patch("services.exchange_service._exchange_service", None),
        patch("services.incentive_service._incentive_service", None),
    ]
    for p in patches:
        p.start()
    try:
        yield mock_supabase
    finally:
        for p in reversed(patches):
            p.stop()


@pytest.fixture(autouse=True)
def reset_invalidation():
    """Each test starts with an empty invalidation bus."""
    from services import invalidation
    invalidation.reset()
    yield
    invalidation.reset()


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    FastAPI test client with mocked database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("markets", [...])
            response = test_client_with_mock_db.get("/api/markets")
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
