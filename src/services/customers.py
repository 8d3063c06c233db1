"""
Customer resolution and sign-up.
"""

from datetime import datetime, timezone

import structlog

from src.core.exceptions import ConflictError, CustomerNotFoundError
from src.core.identity import Identity
from src.models.domain.records import CustomerRecord
from src.schemas.tools import CreateCustomerRequest
from src.stores.base import Record, RecordStore, Table

logger = structlog.get_logger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def select_by_identity(
    store: RecordStore,
    table: Table,
    identity: Identity,
    limit: int | None = None,
) -> list[Record]:
    """
    Records whose email or phone matches the identity.

    Emails are matched ignoring case, so a customer stored as Cy@Example.com
    is found by cy@example.com and the other way round. Phones match exactly.
    """
    if identity.field == "email":
        records = await store.select_ignore_case(table, "email", identity.value)
        return records[:limit] if limit else records
    return await store.select(table, {identity.field: identity.value}, limit=limit)


async def find_customer_by_email(store: RecordStore, email: str) -> Record | None:
    records = await store.select_ignore_case(Table.CUSTOMERS, "email", email)
    return records[0] if records else None


async def resolve_customer(store: RecordStore, identity: Identity) -> CustomerRecord:
    """
    Find the customer the assistant is talking to.

    Raises:
        CustomerNotFoundError: no customer has the identity's email/phone
    """
    logger.info("customer_lookup", field=identity.field, value=identity.value)
    records = await select_by_identity(store, Table.CUSTOMERS, identity, limit=1)
    record = records[0] if records else None
    if record is None:
        logger.info("customer_not_found", field=identity.field, value=identity.value)
        raise CustomerNotFoundError(f"No customer found for {identity}")
    return CustomerRecord.model_validate(record)


async def get_customer(store: RecordStore, customer_id: str) -> CustomerRecord:
    record = await store.first(Table.CUSTOMERS, {"id": customer_id})
    if record is None:
        raise CustomerNotFoundError(f"No customer found with id: {customer_id}")
    return CustomerRecord.model_validate(record)


async def create_customer(store: RecordStore, request: CreateCustomerRequest) -> tuple[CustomerRecord, bool]:
    """
    Create a customer unless one already exists with the same email.

    Emails are compared ignoring case and stored as entered.

    Returns:
        (customer, created) - created is False when an existing record was returned
    """
    existing = await find_customer_by_email(store, request.email)
    if existing is not None:
        logger.info("customer_already_exists", customer_id=existing.get("id"), email=request.email)
        return CustomerRecord.model_validate(existing), False

    try:
        record = await store.insert(
            Table.CUSTOMERS,
            {**request.model_dump(), "created_at": utc_now()},
        )
    except ConflictError:
        # Lost a race with a concurrent sign-up; the unique email index won.
        existing = await find_customer_by_email(store, request.email)
        if existing is None:
            raise
        return CustomerRecord.model_validate(existing), False

    logger.info("customer_created", customer_id=record["id"], email=request.email)
    return CustomerRecord.model_validate(record), True
