"""
Shared test fixtures.

The Supabase double keeps real rows per table and applies filters,
ordering and paging, so services can be tested end to end without a
database.
"""

import sys
from copy import deepcopy
from pathlib import Path

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import pytest
from unittest.mock import patch
from typing import Callable, Generator, Optional


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: Optional[int] = None):
        self.data = data if data is not None else []
        self.count = count


class MockSupabaseQuery:
    """Chainable query against one in-memory table."""

    def __init__(self, client: "MockSupabaseClient", table: str, action: str, payload=None):
        self.client = client
        self.table = table
        self.action = action
        self.payload = payload
        self.eq_filters: dict = {}
        self._filters: list[Callable[[dict], bool]] = []
        self._columns = "*"
        self._count = None
        self._order = None
        self._range = None
        self._limit = None
        self._is_single = False

    def select(self, columns: str = "*", count: Optional[str] = None):
        self._columns = columns
        self._count = count
        return self

    def eq(self, column, value):
        self.eq_filters[column] = value
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def is_(self, column, value):
        # Only "null" is used against the catalog
        self.eq_filters[column] = None
        self._filters.append(lambda row: row.get(column) is None)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        allowed = list(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def order(self, column, desc: bool = False):
        self._order = (column, desc)
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

    def execute(self) -> MockSupabaseResponse:
        self.client.check_failure(self)
        rows = self.client.rows(self.table)

        if self.action == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = [deepcopy(item) for item in items]
            rows.extend(inserted)
            return MockSupabaseResponse(data=deepcopy(inserted))

        matched = [row for row in rows if all(f(row) for f in self._filters)]

        if self.action == "update":
            for row in matched:
                row.update(deepcopy(self.payload))
            return MockSupabaseResponse(data=deepcopy(matched))

        if self.action == "delete":
            for row in matched:
                rows.remove(row)
            return MockSupabaseResponse(data=deepcopy(matched))

        total = len(matched)
        if self._order:
            column, desc = self._order
            # Stable sort: reversing keeps the latest insert first among ties
            matched = sorted(matched, key=lambda r: (r.get(column) is None, str(r.get(column))))
            if desc:
                matched = list(reversed(matched))
        if self._range:
            start, end = self._range
            matched = matched[start:end + 1]
        if self._limit is not None:
            matched = matched[:self._limit]

        if self._columns.strip() != "*":
            wanted = [c.strip() for c in self._columns.split(",")]
            matched = [{c: row.get(c) for c in wanted} for row in matched]

        data = deepcopy(matched)
        if self._is_single:
            return MockSupabaseResponse(data=data[0] if data else None, count=total)
        return MockSupabaseResponse(data=data, count=total)


class MockSupabaseTable:
    def __init__(self, client: "MockSupabaseClient", name: str):
        self._client = client
        self._name = name

    def select(self, columns: str = "*", count: Optional[str] = None):
        return MockSupabaseQuery(self._client, self._name, "select").select(columns, count)

    def insert(self, data):
        return MockSupabaseQuery(self._client, self._name, "insert", data)

    def update(self, data):
        return MockSupabaseQuery(self._client, self._name, "update", data)

    def delete(self):
        return MockSupabaseQuery(self._client, self._name, "delete")


class MockSupabaseClient:
    """In-memory Supabase client with failure injection."""

    def __init__(self):
        self._tables: dict[str, list[dict]] = {}
        self._failures: list[tuple[str, str, Optional[Callable]]] = []
        self.executed: list[tuple[str, str]] = []

    def set_table_data(self, table_name: str, data: list):
        """Replace a table's rows."""
        self._tables[table_name] = deepcopy(data)

    def rows(self, table_name: str) -> list[dict]:
        return self._tables.setdefault(table_name, [])

    def table(self, name: str) -> MockSupabaseTable:
        return MockSupabaseTable(self, name)

    def fail_on(self, table: str, action: str, when: Optional[Callable] = None):
        """
        Make matching queries raise.

        Usage:
            mock_supabase.fail_on("products", "update", lambda q: q.eq_filters.get("id") == "A1")
        """
        self._failures.append((table, action, when))

    def check_failure(self, query: MockSupabaseQuery):
        self.executed.append((query.table, query.action))
        for table, action, when in self._failures:
            if table == query.table and action == query.action and (when is None or when(query)):
                raise RuntimeError(f"simulated {action} failure on {table}")

    def writes(self, table_name: str) -> int:
        """Number of insert/update/delete queries executed on a table."""
        return sum(
            1 for table, action in self.executed
            if table == table_name and action in ("insert", "update", "delete")
        )


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create an in-memory Supabase client.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("products", [CatalogEntryFactory.row()])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with the in-memory double.

    Also drops cached service singletons so each test gets fresh services.
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase), \
            patch("services.catalog_service.get_supabase_client", return_value=mock_supabase), \
            patch("services.history_service.get_supabase_client", return_value=mock_supabase), \
            patch("services.catalog_service._catalog_service", None), \
            patch("services.history_service._history_service", None), \
            patch("services.reconciliation_service._reconciliation_service", None), \
            patch("services.restore_service._restore_service", None):
        yield mock_supabase


@pytest.fixture
def catalog_rows() -> list:
    """A small catalog with a legacy duplicate reference."""
    from tests.factories import CatalogEntryFactory

    return [
        CatalogEntryFactory.row(id="BG100-BLK-M", model_ref="BG100", color="Black", size="M", stock_quantity=5),
        CatalogEntryFactory.row(id="BG100-BLK-L", model_ref="BG100", color="Black", size="L", stock_quantity=3),
        CatalogEntryFactory.row(id="BG200-RED", model_ref="BG200", color="Red", size=None, stock_quantity=7),
        CatalogEntryFactory.row(id="BG300-NAVY", model_ref="BG300", color="Navy", size=None, stock_quantity=0),
    ]


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    Create FastAPI test client with the in-memory database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            response = test_client_with_mock_db.get("/api/catalog/history")
    """
    from fastapi.testclient import TestClient
    from main import app

    yield TestClient(app)
