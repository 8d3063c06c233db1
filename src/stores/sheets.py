"""
Google Sheets record store.

One worksheet per table, titled after the table ("customers", "orders", ...).
Row 1 is the header and defines the columns; every other row is a record.
Filtering happens on the fetched rows in Python, so lookups never build a
query string out of user input.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Mapping, TypeVar

import gspread
import structlog
from gspread.utils import rowcol_to_a1

from src.core.exceptions import ConfigurationError, NotFoundError, StoreError
from src.stores.base import Record, RecordStore, Table, matches, new_record_id
from src.stores.credentials import load_service_account_info

T = TypeVar("T")

HEADER_ROW = 1


def _cell_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return value


class SheetsRecordStore(RecordStore):
    """
    Record store backed by a Google spreadsheet.

    Lazily opens the spreadsheet on first use. A preconfigured spreadsheet
    object can be passed in instead of credentials.
    """

    name = "sheets"

    def __init__(
        self,
        service_account_json: str | None = None,
        spreadsheet_id: str | None = None,
        spreadsheet: Any = None,
    ) -> None:
        self.logger = structlog.get_logger(__name__)
        self._service_account_json = service_account_json
        self._spreadsheet_id = spreadsheet_id
        self._spreadsheet = spreadsheet
        self._worksheets: dict[Table, Any] = {}

    def _get_spreadsheet(self) -> Any:
        if self._spreadsheet is None:
            if not self._service_account_json or not self._spreadsheet_id:
                raise ConfigurationError(
                    "Google Sheets configuration error. Set GOOGLE_SERVICE_ACCOUNT_JSON and GOOGLE_SPREADSHEET_ID."
                )
            info = load_service_account_info(self._service_account_json)
            try:
                client = gspread.service_account_from_dict(info)
            except ValueError as exc:
                raise ConfigurationError(f"Invalid Google service account: {exc}") from exc
            self._spreadsheet = client.open_by_key(self._spreadsheet_id)
        return self._spreadsheet

    def _get_sheet(self, table: Table) -> Any:
        if table not in self._worksheets:
            self._worksheets[table] = self._get_spreadsheet().worksheet(table.value)
        return self._worksheets[table]

    async def _call(self, table: Table, operation: str, func: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(func, *args)
        except gspread.exceptions.GSpreadException as exc:
            self.logger.error("sheets_call_failed", table=table.value, operation=operation, error=str(exc))
            raise StoreError(f"Google Sheets {operation} on {table.value} failed: {exc}") from exc

    def _read_rows(self, table: Table) -> tuple[list[str], list[tuple[int, Record]]]:
        values = self._get_sheet(table).get_all_values()
        if not values:
            return [], []
        header = [column.strip() for column in values[0]]
        rows = []
        for offset, raw in enumerate(values[1:], start=HEADER_ROW + 1):
            if not any(cell != "" for cell in raw):
                continue
            record = {
                column: (raw[idx] if idx < len(raw) and raw[idx] != "" else None)
                for idx, column in enumerate(header)
                if column
            }
            rows.append((offset, record))
        return header, rows

    def _find_row(self, table: Table, record_id: str) -> tuple[list[str], int, Record]:
        header, rows = self._read_rows(table)
        for row_number, record in rows:
            if matches(record, {"id": record_id}):
                return header, row_number, record
        raise NotFoundError(f"No {table.value} record with id: {record_id}")

    def _known_fields(self, table: Table, header: list[str], fields: Mapping[str, Any]) -> dict[str, Any]:
        known = {}
        for field, value in fields.items():
            if field not in header:
                self.logger.warning(
                    "header_not_found",
                    table=table.value,
                    header=field,
                    available_headers=header,
                )
                continue
            known[field] = value
        return known

    async def select(self, table, filters=None, limit=None):
        _, rows = await self._call(table, "select", self._read_rows, table)
        records = [record for _, record in rows if matches(record, filters)]
        return records[:limit] if limit else records

    def _insert_sync(self, table: Table, fields: Mapping[str, Any]) -> Record:
        sheet = self._get_sheet(table)
        header = [column.strip() for column in sheet.row_values(HEADER_ROW)]
        stored = self._known_fields(table, header, fields)
        sheet.append_row([_cell_value(stored.get(column)) for column in header], value_input_option="RAW")
        return stored

    async def insert(self, table, fields):
        fields = dict(fields)
        fields.setdefault("id", new_record_id())
        stored = await self._call(table, "insert", self._insert_sync, table, fields)
        self.logger.info("record_inserted", store=self.name, table=table.value, record_id=fields["id"])
        return {**stored, "id": fields["id"]}

    def _update_sync(self, table: Table, record_id: str, fields: Mapping[str, Any]) -> Record:
        header, row_number, record = self._find_row(table, record_id)
        known = self._known_fields(table, header, fields)
        updates = [
            {
                "range": rowcol_to_a1(row_number, header.index(field) + 1),
                "values": [[_cell_value(value)]],
            }
            for field, value in known.items()
        ]
        if updates:
            self._get_sheet(table).batch_update(updates)
        return {**record, **known}

    async def update(self, table, record_id, fields):
        record = await self._call(table, "update", self._update_sync, table, record_id, fields)
        self.logger.info("record_updated", store=self.name, table=table.value, record_id=record_id)
        return record

    def _delete_sync(self, table: Table, record_id: str) -> None:
        _, row_number, _ = self._find_row(table, record_id)
        self._get_sheet(table).delete_rows(row_number)

    async def delete(self, table, record_id):
        await self._call(table, "delete", self._delete_sync, table, record_id)
        self.logger.info("record_deleted", store=self.name, table=table.value, record_id=record_id)
