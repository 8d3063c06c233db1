"""Tests for the Google Sheets record store using an in-memory worksheet."""

import gspread
import pytest
from gspread.utils import a1_to_rowcol

from src.core.exceptions import ConfigurationError, NotFoundError, StoreError
from src.services.returns import initiate_return
from src.stores.base import Table
from src.stores.sheets import SheetsRecordStore


class FakeWorksheet:
    """Implements the slice of gspread.Worksheet the store uses."""

    def __init__(self, rows):
        self.rows = [list(row) for row in rows]
        self.fail_batch_update = False

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def row_values(self, row):
        return list(self.rows[row - 1])

    def append_row(self, values, value_input_option=None):
        assert value_input_option == "RAW"
        self.rows.append(["" if v is None else str(v) for v in values])

    def batch_update(self, updates):
        if self.fail_batch_update:
            raise gspread.exceptions.GSpreadException("quota exceeded")
        for update in updates:
            row, col = a1_to_rowcol(update["range"])
            self.rows[row - 1][col - 1] = str(update["values"][0][0])

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSpreadsheet:
    def __init__(self, worksheets):
        self.worksheets = worksheets

    def worksheet(self, title):
        return self.worksheets[title]


@pytest.fixture
def sheets():
    return {
        "orders": FakeWorksheet([
            ["id", "customer_id", "email", "total_amount", "shipping_status", "return_id"],
            ["100A7K", "42", "ada@example.com", "80", "delivered", ""],
            ["", "", "", "", "", ""],
            ["200B3Q", "42", "ada@example.com", "59.99", "pending", ""],
        ]),
        "returns": FakeWorksheet([
            ["id", "order_id", "customer_id", "reason", "status", "refund_amount", "created_at", "updated_at"],
        ]),
    }


@pytest.fixture
def sheet_store(sheets):
    return SheetsRecordStore(spreadsheet=FakeSpreadsheet(sheets))


@pytest.mark.asyncio
async def test_select_maps_header_to_fields(sheet_store):
    orders = await sheet_store.select(Table.ORDERS, {"email": "ada@example.com"})

    assert [o["id"] for o in orders] == ["100A7K", "200B3Q"]
    assert orders[0]["return_id"] is None
    assert orders[1]["total_amount"] == "59.99"


@pytest.mark.asyncio
async def test_filter_values_are_not_interpreted(sheet_store):
    # A formula-looking value is compared literally, never evaluated.
    orders = await sheet_store.select(Table.ORDERS, {"email": "x' OR 1=1 OR '"})

    assert orders == []


@pytest.mark.asyncio
async def test_insert_appends_in_header_order(sheet_store, sheets):
    created = await sheet_store.insert(Table.RETURNS, {"order_id": "100A7K", "status": "submitted", "bogus": "x"})

    row = sheets["returns"].rows[-1]
    assert row[0] == created["id"]
    assert row[1] == "100A7K"
    assert row[4] == "submitted"
    assert "bogus" not in created


@pytest.mark.asyncio
async def test_update_writes_only_changed_cells(sheet_store, sheets):
    updated = await sheet_store.update(Table.ORDERS, "200B3Q", {"shipping_status": "shipped"})

    assert updated["shipping_status"] == "shipped"
    assert sheets["orders"].rows[3][4] == "shipped"
    assert sheets["orders"].rows[1][4] == "delivered"


@pytest.mark.asyncio
async def test_update_missing_record(sheet_store):
    with pytest.raises(NotFoundError):
        await sheet_store.update(Table.ORDERS, "nope", {"shipping_status": "shipped"})


@pytest.mark.asyncio
async def test_delete_removes_row(sheet_store, sheets):
    await sheet_store.delete(Table.ORDERS, "200B3Q")

    assert [row[0] for row in sheets["orders"].rows] == ["id", "100A7K", ""]


@pytest.mark.asyncio
async def test_find_by_suffix(sheet_store):
    found = await sheet_store.find_by_suffix(Table.ORDERS, "id", "0b3q")

    assert [o["id"] for o in found] == ["200B3Q"]


@pytest.mark.asyncio
async def test_gspread_errors_become_store_errors(sheet_store, sheets):
    sheets["orders"].fail_batch_update = True

    with pytest.raises(StoreError):
        await sheet_store.update(Table.ORDERS, "100A7K", {"shipping_status": "shipped"})


@pytest.mark.asyncio
async def test_return_is_compensated_when_order_update_fails(sheet_store, sheets):
    sheets["orders"].fail_batch_update = True

    with pytest.raises(StoreError):
        await initiate_return(sheet_store, "100A7K", "Too small")

    assert len(sheets["returns"].rows) == 1


@pytest.mark.asyncio
async def test_missing_credentials_is_configuration_error():
    store = SheetsRecordStore()

    with pytest.raises(ConfigurationError):
        await store.select(Table.ORDERS)


@pytest.mark.asyncio
async def test_select_ignore_case(sheet_store):
    orders = await sheet_store.select_ignore_case(Table.ORDERS, "email", "ADA@example.com")

    assert [o["id"] for o in orders] == ["100A7K", "200B3Q"]
