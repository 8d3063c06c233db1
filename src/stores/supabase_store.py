"""
Supabase record store.

Tables map one-to-one onto Postgres tables exposed through PostgREST.
Equality filters are sent as ``eq`` parameters and suffix search as
``ilike``; PostgREST encodes both, so no filter text is concatenated here.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, TypeVar

import httpx
import structlog
from postgrest.exceptions import APIError
from supabase import Client, create_client

from src.core.exceptions import ConfigurationError, NotFoundError, StoreError
from src.stores.base import RecordStore, Table, equals_ignore_case, new_record_id

T = TypeVar("T")


class SupabaseRecordStore(RecordStore):
    """Record store backed by a Supabase project."""

    name = "supabase"

    def __init__(
        self,
        url: str | None = None,
        key: str | None = None,
        client: Client | None = None,
    ) -> None:
        self.logger = structlog.get_logger(__name__)
        self._url = url
        self._key = key
        self._client = client

    def _get_client(self) -> Client:
        if self._client is None:
            if not self._url or not self._key:
                raise ConfigurationError(
                    "Supabase configuration error. Set SUPABASE_URL and SUPABASE_KEY."
                )
            self._client = create_client(self._url, self._key)
        return self._client

    async def _call(self, table: Table, operation: str, func: Callable[[], T]) -> T:
        try:
            return await asyncio.to_thread(func)
        except (APIError, httpx.HTTPError) as exc:
            self.logger.error("supabase_call_failed", table=table.value, operation=operation, error=str(exc))
            raise StoreError(f"Supabase {operation} on {table.value} failed: {exc}") from exc

    async def select(self, table, filters=None, limit=None):
        def run():
            query = self._get_client().table(table.value).select("*")
            for field, value in (filters or {}).items():
                query = query.eq(field, value)
            if limit:
                query = query.limit(limit)
            return query.execute().data or []

        return await self._call(table, "select", run)

    async def find_by_suffix(self, table, field, suffix):
        def run():
            return (
                self._get_client()
                .table(table.value)
                .select("*")
                .ilike(field, f"%{suffix}")
                .execute()
                .data
                or []
            )

        return await self._call(table, "suffix search", run)

    async def select_ignore_case(self, table, field, value):
        # ilike without wildcards is a case-insensitive equals; PostgREST also
        # reads "*" as a wildcard, so results are re-checked exactly.
        expected = value.strip()
        pattern = expected.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

        def run():
            return self._get_client().table(table.value).select("*").ilike(field, pattern).execute().data or []

        rows = await self._call(table, "select", run)
        return [row for row in rows if equals_ignore_case(row, field, expected)]

    async def insert(self, table, fields):
        fields = dict(fields)
        fields.setdefault("id", new_record_id())

        def run():
            return self._get_client().table(table.value).insert(fields).execute().data

        rows = await self._call(table, "insert", run)
        if not rows:
            raise StoreError(f"Failed to create {table.value} record")
        self.logger.info("record_inserted", store=self.name, table=table.value, record_id=fields["id"])
        return rows[0]

    async def update(self, table, record_id, fields):
        def run():
            return (
                self._get_client()
                .table(table.value)
                .update(dict(fields))
                .eq("id", record_id)
                .execute()
                .data
            )

        rows = await self._call(table, "update", run)
        if not rows:
            raise NotFoundError(f"No {table.value} record with id: {record_id}")
        self.logger.info("record_updated", store=self.name, table=table.value, record_id=record_id)
        return rows[0]

    async def delete(self, table, record_id):
        def run():
            return self._get_client().table(table.value).delete().eq("id", record_id).execute()

        await self._call(table, "delete", run)
        self.logger.info("record_deleted", store=self.name, table=table.value, record_id=record_id)
