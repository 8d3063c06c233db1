"""
FastAPI dependencies for dependency injection.

This module provides reusable dependencies for:
- Record store access with a shared backend client
- Twilio client management
- Caller identity resolution

Design decisions:
- Singleton pattern for the record store and Twilio client (connection reuse)
- AsyncGenerator so tests can swap implementations with dependency_overrides
"""

from typing import Annotated, AsyncGenerator

import structlog
from fastapi import Depends

from src.config import settings
from src.core.identity import Identity, require_identity
from src.services.twilio_service import TwilioService
from src.stores import RecordStore, create_record_store

logger = structlog.get_logger(__name__)

# ===== Record Store Management =====

# One store per process: the gspread, Supabase and SQLAlchemy clients all pool
# connections, and creating one per request would throw that away.
_record_store: RecordStore | None = None


async def get_record_store() -> AsyncGenerator[RecordStore, None]:
    """
    Dependency that provides the configured record store.

    The backend is chosen by RECORD_STORE and created lazily on first use.
    It is NOT closed after each request; call close_record_store() in the
    app shutdown hook.

    Usage in endpoint:
        @router.get("/products")
        async def products(store: RecordStoreDep):
            return await store.select(Table.PRODUCTS)
    """
    yield _shared_record_store()


def _shared_record_store() -> RecordStore:
    global _record_store
    if _record_store is None:
        _record_store = create_record_store(settings)
    return _record_store


async def get_optional_record_store() -> RecordStore | None:
    """
    Record store for routes that must answer even when it is unavailable.

    Returns None instead of raising when the store cannot be built (missing
    credentials, unreachable database). Only the voice entry uses this.
    """
    try:
        return _shared_record_store()
    except Exception as exc:
        logger.exception("record_store_unavailable", backend=settings.record_store, error=str(exc))
        return None


async def close_record_store() -> None:
    """Release the record store's connections on application shutdown."""
    global _record_store
    if _record_store is not None:
        await _record_store.close()
        _record_store = None


# ===== Twilio =====

_twilio_service: TwilioService | None = None


async def get_twilio_service() -> AsyncGenerator[TwilioService, None]:
    global _twilio_service
    if _twilio_service is None:
        _twilio_service = TwilioService()
    yield _twilio_service


# ===== Type Aliases for Cleaner Endpoint Signatures =====

RecordStoreDep = Annotated[RecordStore, Depends(get_record_store)]
OptionalRecordStoreDep = Annotated[RecordStore | None, Depends(get_optional_record_store)]
TwilioServiceDep = Annotated[TwilioService, Depends(get_twilio_service)]
IdentityDep = Annotated[Identity, Depends(require_identity)]
