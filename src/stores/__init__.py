from src.config import Settings
from src.core.exceptions import ConfigurationError
from src.stores.base import CompensatingTransaction, Record, RecordStore, Table


def create_record_store(settings: Settings) -> RecordStore:
    """
    Build the record store selected by ``RECORD_STORE``.

    Backend modules are imported lazily so a deployment only needs the SDK of
    the backend it actually uses configured.
    """
    if settings.record_store == "sheets":
        from src.stores.sheets import SheetsRecordStore

        return SheetsRecordStore(
            service_account_json=settings.google_service_account_json,
            spreadsheet_id=settings.google_spreadsheet_id,
        )
    if settings.record_store == "supabase":
        from src.stores.supabase_store import SupabaseRecordStore

        return SupabaseRecordStore(url=settings.supabase_url, key=settings.supabase_key)
    if settings.record_store == "sql":
        from src.stores.sql import SqlRecordStore

        return SqlRecordStore(database_url=settings.database_url)
    raise ConfigurationError(f"Unknown record store: {settings.record_store}")


__all__ = [
    "CompensatingTransaction",
    "Record",
    "RecordStore",
    "Table",
    "create_record_store",
]
