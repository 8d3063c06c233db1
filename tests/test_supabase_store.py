"""Tests for the Supabase record store with a mocked client."""

from unittest.mock import MagicMock

import pytest
from postgrest.exceptions import APIError

from src.core.exceptions import ConfigurationError, NotFoundError, StoreError
from src.stores.base import Table
from src.stores.supabase_store import SupabaseRecordStore


def make_client(data):
    """Supabase client whose query builder chain returns ``data`` on execute()."""
    client = MagicMock()
    query = client.table.return_value
    for method in ("select", "eq", "ilike", "limit", "insert", "update", "delete"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=data)
    return client, query


@pytest.mark.asyncio
async def test_select_uses_structured_filters():
    client, query = make_client([{"id": "42", "email": "ada@example.com"}])
    store = SupabaseRecordStore(client=client)

    records = await store.select(Table.CUSTOMERS, {"email": "ada@example.com"}, limit=1)

    assert records == [{"id": "42", "email": "ada@example.com"}]
    client.table.assert_called_with("customers")
    query.eq.assert_called_once_with("email", "ada@example.com")
    query.limit.assert_called_once_with(1)


@pytest.mark.asyncio
async def test_find_by_suffix_uses_ilike():
    client, query = make_client([{"id": "100A7K"}])
    store = SupabaseRecordStore(client=client)

    await store.find_by_suffix(Table.ORDERS, "id", "0A7K")

    query.ilike.assert_called_once_with("id", "%0A7K")


@pytest.mark.asyncio
async def test_insert_assigns_id():
    client, query = make_client([{"id": "generated"}])
    store = SupabaseRecordStore(client=client)

    await store.insert(Table.SURVEYS, {"rating": 5})

    sent = query.insert.call_args.args[0]
    assert sent["rating"] == 5
    assert sent["id"]


@pytest.mark.asyncio
async def test_update_missing_record():
    client, _ = make_client([])
    store = SupabaseRecordStore(client=client)

    with pytest.raises(NotFoundError):
        await store.update(Table.ORDERS, "missing", {"return_id": "r1"})


@pytest.mark.asyncio
async def test_api_errors_become_store_errors():
    client, query = make_client([])
    query.execute.side_effect = APIError({"message": "permission denied", "code": "42501"})
    store = SupabaseRecordStore(client=client)

    with pytest.raises(StoreError):
        await store.select(Table.PRODUCTS)


@pytest.mark.asyncio
async def test_missing_credentials():
    store = SupabaseRecordStore()

    with pytest.raises(ConfigurationError):
        await store.select(Table.PRODUCTS)


@pytest.mark.asyncio
async def test_select_ignore_case_escapes_wildcards():
    client, query = make_client([
        {"id": "44", "email": "Bob_Smith@Example.com"},
        {"id": "45", "email": "bobXsmith@example.com"},
    ])
    store = SupabaseRecordStore(client=client)

    found = await store.select_ignore_case(Table.CUSTOMERS, "email", "bob_smith@example.com")

    query.ilike.assert_called_once_with("email", "bob\\_smith@example.com")
    assert [row["id"] for row in found] == ["44"]
