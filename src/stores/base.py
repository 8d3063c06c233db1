"""
Record store interface shared by every backend.

Handlers talk to one logical table at a time (customers, products, orders,
returns, surveys) through this interface, so their logic is written once and
runs against Google Sheets, Supabase or a SQL database.

Design decisions:
- Structured equality filters only; no backend query strings are built from user input
- Every record carries a logical string ``id`` assigned on insert when missing
- ``transaction()`` is native where the backend supports it and compensating otherwise
"""

import uuid
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, Mapping

import structlog

from src.core.exceptions import NotFoundError

logger = structlog.get_logger(__name__)

Record = dict[str, Any]


class Table(str, Enum):
    """Logical tables the assistant reads and writes."""

    CUSTOMERS = "customers"
    PRODUCTS = "products"
    ORDERS = "orders"
    RETURNS = "returns"
    SURVEYS = "surveys"


def new_record_id() -> str:
    return uuid.uuid4().hex[:12]


def matches(record: Mapping[str, Any], filters: Mapping[str, Any] | None) -> bool:
    """
    Equality match used by backends that filter rows in Python.

    Values are compared as strings so a numeric cell (42) matches a string
    filter ("42") the way a spreadsheet user would expect.
    """
    if not filters:
        return True
    for field, expected in filters.items():
        actual = record.get(field)
        if actual is None or str(actual) != str(expected):
            return False
    return True


def ends_with(record: Mapping[str, Any], field: str, suffix: str) -> bool:
    value = record.get(field)
    if value is None:
        return False
    return str(value).lower().endswith(suffix.lower())


def equals_ignore_case(record: Mapping[str, Any], field: str, expected: str) -> bool:
    value = record.get(field)
    if value is None:
        return False
    return str(value).strip().lower() == expected.strip().lower()


class RecordStore(ABC):
    """
    Single interface over the configured record backend.

    Subclasses implement the five primitive operations; ``first``,
    ``find_by_suffix`` and ``transaction`` have working defaults.
    """

    name: str = "abstract"
    supports_transactions: bool = False

    @abstractmethod
    async def select(
        self,
        table: Table,
        filters: Mapping[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[Record]:
        """Return records whose fields equal every filter value."""

    @abstractmethod
    async def insert(self, table: Table, fields: Mapping[str, Any]) -> Record:
        """Insert one record and return it as stored (including ``id``)."""

    @abstractmethod
    async def update(self, table: Table, record_id: str, fields: Mapping[str, Any]) -> Record:
        """Update the record with the given ``id`` and return it."""

    @abstractmethod
    async def delete(self, table: Table, record_id: str) -> None:
        """Delete the record with the given ``id``."""

    async def first(self, table: Table, filters: Mapping[str, Any]) -> Record | None:
        records = await self.select(table, filters, limit=1)
        return records[0] if records else None

    async def get(self, table: Table, record_id: str) -> Record:
        record = await self.first(table, {"id": record_id})
        if record is None:
            raise NotFoundError(f"No {table.value} record with id: {record_id}")
        return record

    async def find_by_suffix(self, table: Table, field: str, suffix: str) -> list[Record]:
        """
        Case-insensitive "ends with" search.

        The default scans the whole table; backends with server-side pattern
        matching override it.
        """
        records = await self.select(table)
        return [record for record in records if ends_with(record, field, suffix)]

    async def select_ignore_case(self, table: Table, field: str, value: str) -> list[Record]:
        """
        Records whose ``field`` equals ``value`` ignoring case.

        Used for emails, which customers type in whatever case they like.
        The default scans the whole table.
        """
        records = await self.select(table)
        return [record for record in records if equals_ignore_case(record, field, value)]

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["RecordStore"]:
        """
        Group writes so a failure part-way leaves no partial state.

        Backends without native transactions get a compensating unit of work.
        """
        unit = CompensatingTransaction(self)
        try:
            yield unit
        except BaseException:
            await unit.compensate()
            raise

    async def close(self) -> None:
        return None


class CompensatingTransaction(RecordStore):
    """
    Unit of work that undoes its own writes when the block fails.

    Inserts are undone by deleting the new record; updates are undone by
    writing back the previous values of the touched fields. Undo actions run
    in reverse order.
    """

    name = "compensating"

    def __init__(self, store: RecordStore):
        self.store = store
        self._undo: list[tuple[str, Table, str, dict[str, Any]]] = []

    async def select(self, table, filters=None, limit=None):
        return await self.store.select(table, filters, limit)

    async def find_by_suffix(self, table, field, suffix):
        return await self.store.find_by_suffix(table, field, suffix)

    async def insert(self, table, fields):
        record = await self.store.insert(table, fields)
        self._undo.append(("delete", table, str(record["id"]), {}))
        return record

    async def update(self, table, record_id, fields):
        previous = await self.store.get(table, record_id)
        restore = {field: previous.get(field) for field in fields}
        record = await self.store.update(table, record_id, fields)
        self._undo.append(("restore", table, record_id, restore))
        return record

    async def delete(self, table, record_id):
        # Deletes are applied immediately and are not restorable.
        await self.store.delete(table, record_id)

    async def compensate(self) -> None:
        while self._undo:
            action, table, record_id, restore = self._undo.pop()
            try:
                if action == "delete":
                    await self.store.delete(table, record_id)
                else:
                    await self.store.update(table, record_id, restore)
                logger.warning(
                    "transaction_compensated",
                    store=self.store.name,
                    table=table.value,
                    record_id=record_id,
                    action=action,
                )
            except Exception as exc:
                logger.error(
                    "transaction_compensation_failed",
                    store=self.store.name,
                    table=table.value,
                    record_id=record_id,
                    action=action,
                    error=str(exc),
                )
