# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - An in-memory stand-in for the Supabase client (PostgREST query builder,
#   RPCs and Storage) so services run against real-looking rows
# - A TestClient with the Supabase factory and the current user overridden
# =============================================================================

import os
import uuid

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("SITE_URL", "https://app.example.com")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

AGENCY_ID = "11111111-1111-1111-1111-111111111111"
AMBASSADOR_USER_ID = "22222222-2222-2222-2222-222222222222"


# =============================================================================
# In-memory Supabase
# =============================================================================

def _norm(value):
    """Compare values the way PostgREST sees them in a URL."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _match_clause(row, clause):
    """Evaluate one `col.op.value` clause from an or=(...) filter."""
    column, op, value = clause.split(".", 2)
    current = row.get(column)
    if op == "ilike":
        return value.strip("%").lower() in str(current or "").lower()
    if op == "is":
        return current is None if value == "null" else _norm(current) == value
    if op == "eq":
        return _norm(current) == value
    if op == "lte":
        return current is not None and float(current) <= float(value)
    if op == "gte":
        return current is not None and float(current) >= float(value)
    raise ValueError(f"unsupported or_ operator: {op}")


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """Chainable query over one in-memory table."""

    def __init__(self, db, table):
        self.db = db
        self.table_name = table
        self.action = "select"
        self.payload = None
        self.filters = []
        self.calls = []
        self._negate = False
        self._order = None
        self._range = None
        self._limit = None
        self._single = False

    # -- actions -------------------------------------------------------------
    def select(self, columns="*", count=None):
        self.action = "select"
        self.calls.append(("select", columns))
        return self

    def insert(self, rows):
        self.action = "insert"
        self.payload = rows
        return self

    def update(self, payload):
        self.action = "update"
        self.payload = payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    # -- filters -------------------------------------------------------------
    def _filter(self, name, predicate, *args):
        negate = self._negate
        self._negate = False
        self.calls.append((("not." if negate else "") + name, *args))
        self.filters.append((lambda row: not predicate(row)) if negate else predicate)
        return self

    @property
    def not_(self):
        self._negate = True
        return self

    def eq(self, column, value):
        return self._filter("eq", lambda r: _norm(r.get(column)) == _norm(value), column, value)

    def in_(self, column, values):
        wanted = {_norm(v) for v in values}
        return self._filter("in_", lambda r: _norm(r.get(column)) in wanted, column, list(values))

    def is_(self, column, value):
        if value in (None, "null"):
            return self._filter("is_", lambda r: r.get(column) is None, column, value)
        return self._filter("is_", lambda r: _norm(r.get(column)) == _norm(value), column, value)

    def overlaps(self, column, values):
        wanted = set(values)
        return self._filter("overlaps", lambda r: bool(wanted & set(r.get(column) or [])), column, list(values))

    def contains(self, column, values):
        wanted = set(values)
        return self._filter("contains", lambda r: wanted <= set(r.get(column) or []), column, list(values))

    def or_(self, expression):
        clauses = expression.split(",")
        return self._filter("or_", lambda r: any(_match_clause(r, c) for c in clauses), expression)

    # -- modifiers -----------------------------------------------------------
    def order(self, column, desc=False):
        self.calls.append(("order", column, desc))
        self._order = (column, desc)
        return self

    def range(self, start, end):
        self.calls.append(("range", start, end))
        self._range = (start, end)
        return self

    def limit(self, n):
        self.calls.append(("limit", n))
        self._limit = n
        return self

    def single(self):
        self._single = True
        return self

    # -- execution -----------------------------------------------------------
    def _matching(self):
        rows = self.db.tables.setdefault(self.table_name, [])
        return [r for r in rows if all(f(r) for f in self.filters)]

    def execute(self):
        self.db.queries.append(self)
        error = self.db.failures.get((self.table_name, self.action))
        if error is not None:
            raise error

        table = self.db.tables.setdefault(self.table_name, [])

        if self.action == "insert":
            rows = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for row in rows:
                row = dict(row)
                row.setdefault("id", str(uuid.uuid4()))
                table.append(row)
                inserted.append(dict(row))
            return FakeResponse(inserted)

        matched = self._matching()

        if self.action == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResponse([dict(r) for r in matched])

        if self.action == "delete":
            self.db.tables[self.table_name] = [r for r in table if r not in matched]
            return FakeResponse([dict(r) for r in matched])

        if self._order:
            column, desc = self._order
            present = [r for r in matched if r.get(column) is not None]
            missing = [r for r in matched if r.get(column) is None]
            present.sort(key=lambda r: r[column], reverse=desc)
            matched = present + missing
        if self._range:
            start, end = self._range
            matched = matched[start:end + 1]
        if self._limit is not None:
            matched = matched[: self._limit]

        data = [dict(r) for r in matched]
        if self._single:
            if len(data) != 1:
                raise APIError({
                    "message": "JSON object requested, multiple (or no) rows returned",
                    "code": "PGRST116",
                    "hint": None,
                    "details": f"The result contains {len(data)} rows",
                })
            return FakeResponse(data[0])
        return FakeResponse(data)


class FakeRpc:
    def __init__(self, db, name, params):
        self.db = db
        self.name = name
        self.params = params

    def execute(self):
        self.db.rpc_calls.append((self.name, self.params))
        handler = self.db.rpc_handlers.get(self.name)
        if handler is None:
            raise APIError({"message": f"function {self.name} does not exist", "code": "42883"})
        return FakeResponse(handler(self.params))


class FakeBucket:
    def __init__(self, storage, bucket):
        self.storage = storage
        self.bucket = bucket

    def upload(self, path, file, file_options=None):
        error = self.storage.failures.get(self.bucket)
        if error is not None:
            raise error
        self.storage.objects[(self.bucket, path)] = file
        self.storage.uploads.append((self.bucket, path, file_options))
        return {"Key": f"{self.bucket}/{path}"}

    def get_public_url(self, path):
        return f"https://test-project.supabase.co/storage/v1/object/public/{self.bucket}/{path}"

    def remove(self, paths):
        for path in paths:
            self.storage.objects.pop((self.bucket, path), None)
            self.storage.removed.append((self.bucket, path))
        return []


class FakeStorage:
    def __init__(self):
        self.objects = {}
        self.uploads = []
        self.removed = []
        self.failures = {}

    def from_(self, bucket):
        return FakeBucket(self, bucket)

    def list_buckets(self):
        return [{"name": "headshots"}, {"name": "intro-videos"}]


class FakeSupabase:
    """
    Enough of supabase.Client for the services.

    - tables: {name: [row, ...]}
    - failures: {(table, action): exception} raised on execute
    - rpc_handlers: {name: callable(params) -> data}
    - queries: every executed FakeQuery, in order
    """

    def __init__(self):
        self.tables = {}
        self.failures = {}
        self.rpc_handlers = {}
        self.rpc_calls = []
        self.queries = []
        self.storage = FakeStorage()

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params=None):
        return FakeRpc(self, name, params or {})

    def seed(self, table, *rows):
        self.tables.setdefault(table, []).extend(dict(r) for r in rows)

    def queries_for(self, table, action=None):
        return [q for q in self.queries if q.table_name == table and (action is None or q.action == action)]


class FakeClients:
    """
    Stands in for lib.supabase_client.SupabaseClients; both roles share one database.

    sessions maps a refresh token to the (access_token, refresh_token) pair
    refresh_session hands out; any other refresh token is rejected.
    """

    def __init__(self, db):
        self.db = db
        self.user_tokens = []
        self.sessions = {}
        self.refreshed = []

    def admin(self):
        return self.db

    def for_user(self, access_token):
        self.user_tokens.append(access_token)
        return self.db

    def refresh_session(self, refresh_token):
        from lib.supabase_client import SupabaseClientError

        self.refreshed.append(refresh_token)
        if refresh_token not in self.sessions:
            raise SupabaseClientError("Invalid Refresh Token: Refresh Token Not Found", code="REFRESH_FAILED")
        return self.sessions[refresh_token]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_db():
    """Empty in-memory Supabase."""
    return FakeSupabase()


@pytest.fixture
def fake_clients(fake_db):
    return FakeClients(fake_db)


@pytest.fixture
def agency_user():
    from app.auth.models import AuthUser

    return AuthUser(id=AGENCY_ID, email="ops@agency.example", access_token="agency-token")


@pytest.fixture
def ambassador_user():
    from app.auth.models import AuthUser

    return AuthUser(id=AMBASSADOR_USER_ID, email="ana@example.com", access_token="ambassador-token")


@pytest.fixture
def make_client(fake_clients):
    """
    Build a TestClient acting as `user` (or anonymous when None).

    Overrides are cleared after the test.
    """
    from app.auth import get_current_user
    from app.dependencies import get_supabase
    from app.main import app

    def _make(user=None, overrides=None):
        app.dependency_overrides[get_supabase] = lambda: fake_clients
        if user is not None:
            app.dependency_overrides[get_current_user] = lambda: user
        for dependency, value in (overrides or {}).items():
            app.dependency_overrides[dependency] = value
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


@pytest.fixture
def sample_ambassadors():
    """Directory rows across three regions."""
    return [
        {
            "id": "a-fr", "full_name": "Claire Martin", "country": "France", "state_region": "Paris",
            "city": "Paris", "experience_level": "elite", "availability_status": "available",
            "has_vehicle": True, "willing_to_travel": True, "role_ids": [1, 2], "skill_ids": [5],
            "language_ids": [10, 11], "bio": "Trade shows and promo", "instagram_handle": "claire",
            "created_at": "2024-03-01T00:00:00Z",
        },
        {
            "id": "a-de", "full_name": "Jonas Weber", "country": "Germany", "state_region": "Berlin",
            "city": "Berlin", "experience_level": "experienced", "availability_status": "limited",
            "has_vehicle": False, "willing_to_travel": True, "role_ids": [1], "skill_ids": [5, 6],
            "language_ids": [11], "bio": "Sampling events", "instagram_handle": "jonas",
            "created_at": "2024-02-01T00:00:00Z",
        },
        {
            "id": "a-us", "full_name": "Maya Johnson", "country": "United States", "state_region": "Texas",
            "city": "Austin", "experience_level": "elite", "availability_status": "available",
            "has_vehicle": True, "willing_to_travel": False, "role_ids": [1, 2], "skill_ids": [5],
            "language_ids": [10], "bio": "Festival promo", "instagram_handle": "maya",
            "created_at": "2024-04-01T00:00:00Z",
        },
        {
            "id": "a-br", "full_name": "Ana Souza", "country": "Brazil", "state_region": "SP",
            "city": "Sao Paulo", "experience_level": "new", "availability_status": "available",
            "has_vehicle": False, "willing_to_travel": True, "role_ids": [2], "skill_ids": [],
            "language_ids": [12], "bio": None, "instagram_handle": "ana",
            "created_at": "2024-01-01T00:00:00Z",
        },
    ]
