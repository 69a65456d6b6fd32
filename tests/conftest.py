"""
Shared test fixtures.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import re
import pytest
from datetime import date, datetime
from typing import Any, Generator

from config import Settings
from importers.mappers import MapperContext
from importers.transformers import PlaceholderEmailFactory
from services.import_service import ImportService
from services.record_store import InMemoryRecordStore, SupabaseRecordStore

FROZEN_TODAY = date(2024, 6, 1)
FROZEN_NOW = datetime(2024, 6, 1, 12, 0, 0)
PLACEHOLDER_DOMAIN = "placeholder.invalid"
PLACEHOLDER_TOKEN = "1700000000000"


# ===================
# MOCK SUPABASE CLIENT
# ===================

def _column_value(row: dict, column: str) -> Any:
    """Resolve a PostgREST column, following -> / ->> JSON operators."""
    value: Any = row
    for part in re.split(r"->>?", column):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _like_to_regex(pattern: str) -> re.Pattern:
    """Translate an ILIKE pattern (with backslash escapes) to a regex."""
    out = []
    escaped = False
    for char in pattern:
        if escaped:
            out.append(re.escape(char))
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == "%":
            out.append(".*")
        elif char == "_":
            out.append(".")
        else:
            out.append(re.escape(char))
    return re.compile("^" + "".join(out) + "$", re.IGNORECASE | re.DOTALL)


class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: int = None):
        self.data = data if data is not None else []
        self.count = count


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods and real filtering."""

    def __init__(self, table: "MockSupabaseTable"):
        self._table = table
        self._action = "select"
        self._payload = None
        self._filters: list = []
        self._limit = None
        self._is_single = False
        self._count_requested = False

    def select(self, *args, **kwargs):
        self._count_requested = kwargs.get("count") is not None
        return self

    def insert(self, data):
        self._action = "insert"
        self._payload = data
        return self

    def update(self, data):
        self._action = "update"
        self._payload = data
        return self

    def eq(self, column, value):
        self._filters.append(lambda row: str(_column_value(row, column)) == str(value))
        return self

    def ilike(self, column, pattern):
        regex = _like_to_regex(pattern)
        self._filters.append(
            lambda row: _column_value(row, column) is not None
            and bool(regex.match(str(_column_value(row, column))))
        )
        return self

    def single(self):
        self._is_single = True
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _matching(self) -> list:
        return [row for row in self._table.rows if all(f(row) for f in self._filters)]

    def execute(self) -> MockSupabaseResponse:
        if self._table.fail_with is not None:
            raise self._table.fail_with

        if self._action == "insert":
            items = self._payload if isinstance(self._payload, list) else [self._payload]
            created = [self._table.add(item) for item in items]
            return MockSupabaseResponse(data=created, count=len(created))

        matched = self._matching()

        if self._action == "update":
            for row in matched:
                row.update(self._payload)
            self._table.updated.append(dict(self._payload))
            return MockSupabaseResponse(data=[dict(r) for r in matched], count=len(matched))

        if self._limit is not None:
            matched = matched[:self._limit]

        if self._is_single:
            return MockSupabaseResponse(data=matched[0] if matched else None)

        count = len(self._table.rows) if self._count_requested else None
        return MockSupabaseResponse(data=[dict(r) for r in matched], count=count)


class MockSupabaseTable:
    """In-memory table; inserts and updates are kept for assertions."""

    def __init__(self, name: str, rows: list = None):
        self.name = name
        self.rows: list[dict] = [dict(r) for r in (rows or [])]
        self.inserted: list[dict] = []
        self.updated: list[dict] = []
        self.fail_with = None
        self._counter = 0

    def add(self, item: dict) -> dict:
        self._counter += 1
        stored = {**item}
        stored.setdefault("id", f"{self.name}-{self._counter}")
        stored["created_at"] = datetime.utcnow().isoformat() + "Z"
        self.rows.append(stored)
        self.inserted.append(dict(item))
        return dict(stored)

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self).select(*args, **kwargs)

    def insert(self, data):
        return MockSupabaseQuery(self).insert(data)

    def update(self, data):
        return MockSupabaseQuery(self).update(data)


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables: dict[str, MockSupabaseTable] = {}

    def set_table_data(self, table_name: str, data: list):
        """Configure mock rows for a table."""
        self._tables[table_name] = MockSupabaseTable(table_name, data)

    def table(self, name: str) -> MockSupabaseTable:
        if name not in self._tables:
            self._tables[name] = MockSupabaseTable(name)
        return self._tables[name]


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("invoices", [
                {"id": "1", "invoice_number": "2024001"}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def supabase_store(mock_supabase) -> SupabaseRecordStore:
    return SupabaseRecordStore(client=mock_supabase)


@pytest.fixture
def in_memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def frozen_context() -> MapperContext:
    """Mapper context with fixed clock and placeholder token."""
    return MapperContext(
        placeholder_emails=PlaceholderEmailFactory(
            PLACEHOLDER_DOMAIN,
            token_source=lambda: PLACEHOLDER_TOKEN
        ),
        invoice_due_days=14,
        today=lambda: FROZEN_TODAY,
        now=lambda: FROZEN_NOW,
    )


@pytest.fixture
def unconfigured_settings() -> Settings:
    """Settings without a Supabase destination."""
    return Settings(supabase_url=None, supabase_key=None)


@pytest.fixture
def import_service(in_memory_store, frozen_context, unconfigured_settings) -> ImportService:
    return ImportService(
        store=in_memory_store,
        context=frozen_context,
        settings=unconfigured_settings
    )


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client(import_service) -> Generator:
    """
    FastAPI test client with the import service bound to the in-memory store.

    Usage:
        def test_endpoint(test_client, in_memory_store):
            in_memory_store.seed("invoice", [...])
            response = test_client.post("/api/import/validate", json={...})
    """
    from fastapi.testclient import TestClient
    from main import app
    from services.import_service import get_import_service

    app.dependency_overrides[get_import_service] = lambda: import_service
    yield TestClient(app)
    app.dependency_overrides.clear()
