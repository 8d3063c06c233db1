"""
Pytest configuration and fixtures for test suite.
"""

import os
from typing import Any

import pytest
import structlog

# Set test environment variables before importing the app
os.environ["APP_ENV"] = "test"
os.environ["RECORD_STORE"] = "sql"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ASSISTANT_ID"] = "aia_asst_test"
os.environ["TWILIO_ACCOUNT_SID"] = "ACtest00000000000000000000000000"
os.environ["TWILIO_AUTH_TOKEN"] = "test_auth_token"
os.environ["VALIDATE_TWILIO_SIGNATURE"] = "false"
os.environ["PUBLIC_BASE_URL"] = ""

from fastapi.testclient import TestClient

from src.core.deps import get_optional_record_store, get_record_store, get_twilio_service
from src.core.exceptions import NotFoundError, StoreError
from src.main import app
from src.services.twilio_service import TwilioService
from src.stores.base import RecordStore, Table, matches, new_record_id


class InMemoryRecordStore(RecordStore):
    """
    Dict-backed record store.

    ``fail_on`` makes the named (operation, table) pair raise StoreError, to
    exercise partial-failure paths.
    """

    name = "memory"

    def __init__(self, seed: dict[Table, list[dict[str, Any]]] | None = None):
        self.tables: dict[Table, list[dict[str, Any]]] = {table: [] for table in Table}
        for table, rows in (seed or {}).items():
            self.tables[table] = [dict(row) for row in rows]
        self.fail_on: set[tuple[str, Table]] = set()

    def _check(self, operation: str, table: Table) -> None:
        if (operation, table) in self.fail_on:
            raise StoreError(f"Simulated {operation} failure on {table.value}")

    async def select(self, table, filters=None, limit=None):
        self._check("select", table)
        rows = [dict(row) for row in self.tables[table] if matches(row, filters)]
        return rows[:limit] if limit else rows

    async def insert(self, table, fields):
        self._check("insert", table)
        row = dict(fields)
        row.setdefault("id", new_record_id())
        self.tables[table].append(row)
        return dict(row)

    async def update(self, table, record_id, fields):
        self._check("update", table)
        for row in self.tables[table]:
            if str(row.get("id")) == str(record_id):
                row.update(fields)
                return dict(row)
        raise NotFoundError(f"No {table.value} record with id: {record_id}")

    async def delete(self, table, record_id):
        self._check("delete", table)
        before = len(self.tables[table])
        self.tables[table] = [row for row in self.tables[table] if str(row.get("id")) != str(record_id)]
        if len(self.tables[table]) == before:
            raise NotFoundError(f"No {table.value} record with id: {record_id}")


class FakeTwilioService(TwilioService):
    """TwilioService that records call updates instead of calling Twilio."""

    def __init__(self) -> None:
        super().__init__()
        self.transferred: list[str] = []
        self.error: Exception | None = None

    async def transfer_call(self, call_sid: str) -> None:
        if self.error is not None:
            raise self.error
        self.transferred.append(call_sid)


CUSTOMERS = [
    {
        "id": "42",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "phone": "+15551230001",
        "address": "12 Analytical Way",
        "city": "London",
        "state": "LN",
        "zip_code": "10001",
    },
    {
        "id": "43",
        "first_name": "Grace",
        "last_name": "Hopper",
        "email": "grace@example.com",
        "phone": "+15551230002",
        "address": "1 Compiler Ct",
        "city": "Arlington",
        "state": "VA",
        "zip_code": "22201",
    },
]

PRODUCTS = [
    {"id": "p1", "name": "Trail Runner", "price": 100, "size": "10", "color": "green",
     "category": "running", "brand": "Owl", "current_discount": 20},
    {"id": "p2", "name": "City Loafer", "price": "79.99", "size": "9", "color": "brown",
     "category": "casual", "brand": "Owl", "current_discount": "abc"},
]

ORDERS = [
    {"id": "100A7K", "customer_id": "42", "email": "ada@example.com", "phone": "+15551230001",
     "items": '[{"product_id": "p1", "name": "Trail Runner", "quantity": 1, "price": 80.0}]',
     "total_amount": 80.0, "shipping_status": "delivered", "return_id": None},
    {"id": "200B3Q", "customer_id": "42", "email": "ada@example.com", "phone": "+15551230001",
     "items": "[]", "total_amount": 59.99, "shipping_status": "pending", "return_id": None},
    {"id": "300C3Q", "customer_id": "43", "email": "grace@example.com", "phone": "+15551230002",
     "items": "[]", "total_amount": 35.0, "shipping_status": "shipped", "return_id": None},
]


@pytest.fixture(autouse=True)
def reset_logging():
    """The CLI binds structlog to the captured stderr; drop that after each test."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def store():
    """Record store seeded with two customers, two products and three orders."""
    return InMemoryRecordStore({
        Table.CUSTOMERS: CUSTOMERS,
        Table.PRODUCTS: PRODUCTS,
        Table.ORDERS: ORDERS,
    })


@pytest.fixture
def twilio():
    return FakeTwilioService()


@pytest.fixture
def client(store, twilio):
    """FastAPI test client wired to the in-memory store and fake Twilio service."""
    app.dependency_overrides[get_record_store] = lambda: store
    app.dependency_overrides[get_optional_record_store] = lambda: store
    app.dependency_overrides[get_twilio_service] = lambda: twilio
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def ada_headers():
    return {"x-identity": "email:ada@example.com"}
