"""Tests for return initiation."""

import pytest

from src.core.exceptions import StoreError
from src.services.returns import initiate_return
from src.stores.base import Table


def test_return_delivered_order(client, store):
    response = client.post("/tools/return-order", json={"order_id": "100A7K", "return_reason": "Too small"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["refund_amount"] == 80.0

    returns = store.tables[Table.RETURNS]
    assert len(returns) == 1
    assert returns[0]["id"] == body["return_id"]
    assert returns[0]["order_id"] == "100A7K"
    assert returns[0]["customer_id"] == "42"
    assert returns[0]["status"] == "submitted"
    assert returns[0]["reason"] == "Too small"

    order = next(o for o in store.tables[Table.ORDERS] if o["id"] == "100A7K")
    assert order["return_id"] == body["return_id"]


def test_return_pending_order_reports_current_status(client, store):
    response = client.post("/tools/return-order", json={"order_id": "200B3Q", "return_reason": "Changed mind"})

    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "error"
    assert body["error"] == "VAL_005"
    assert body["current_status"] == "pending"
    assert store.tables[Table.RETURNS] == []


def test_second_return_is_a_conflict(client, store):
    first = client.post("/tools/return-order", json={"order_id": "100A7K", "return_reason": "Too small"})
    second = client.post("/tools/return-order", json={"order_id": "100A7K", "return_reason": "Again"})

    assert second.status_code == 409
    body = second.json()
    assert body["error"] == "CONF_003"
    assert body["existing_return_id"] == first.json()["return_id"]
    assert len(store.tables[Table.RETURNS]) == 1


def test_existing_return_row_without_link_is_a_conflict(client, store):
    store.tables[Table.RETURNS].append({"id": "r-orphan", "order_id": "100A7K", "status": "submitted"})

    response = client.post("/tools/return-order", json={"order_id": "100A7K", "return_reason": "Too small"})

    assert response.status_code == 409
    assert response.json()["existing_return_id"] == "r-orphan"


def test_unknown_order(client):
    response = client.post("/tools/return-order", json={"order_id": "nope", "return_reason": "x"})

    assert response.status_code == 404
    assert response.json()["error"] == "NF_003"


def test_missing_reason_is_validation_error(client):
    response = client.post("/tools/return-order", json={"order_id": "100A7K"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_failed_order_update_removes_the_return(store):
    store.fail_on.add(("update", Table.ORDERS))

    with pytest.raises(StoreError):
        await initiate_return(store, "100A7K", "Too small")

    assert store.tables[Table.RETURNS] == []
    order = next(o for o in store.tables[Table.ORDERS] if o["id"] == "100A7K")
    assert order["return_id"] is None


def test_failed_order_update_is_upstream_error(client, store):
    store.fail_on.add(("update", Table.ORDERS))

    response = client.post("/tools/return-order", json={"order_id": "100A7K", "return_reason": "Too small"})

    assert response.status_code == 502
    assert store.tables[Table.RETURNS] == []
