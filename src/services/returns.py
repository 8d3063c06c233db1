"""
Return initiation.

Only delivered orders can be returned, and each order gets at most one
return. Creating the return and linking it from the order are two writes
that succeed or fail together: natively on SQL, by compensation elsewhere.
"""

import structlog

from src.core.exceptions import OrderNotFoundError, OrderNotReturnableError, ReturnExistsError
from src.models.domain.records import OrderRecord, ReturnRecord
from src.services.customers import utc_now
from src.stores.base import RecordStore, Table

logger = structlog.get_logger(__name__)

RETURNABLE_STATUS = "delivered"
SUBMITTED = "submitted"


async def initiate_return(store: RecordStore, order_id: str, reason: str) -> ReturnRecord:
    """
    Submit a return for a delivered order.

    Raises:
        OrderNotFoundError: order id does not exist
        OrderNotReturnableError: order is not delivered (reports current_status)
        ReturnExistsError: the order already has a return (reports existing_return_id)
    """
    record = await store.first(Table.ORDERS, {"id": order_id})
    if record is None:
        raise OrderNotFoundError(f"No order found with id: {order_id}")
    order = OrderRecord.model_validate(record)

    if (order.shipping_status or "").lower() != RETURNABLE_STATUS:
        logger.info("return_rejected_status", order_id=order_id, current_status=order.shipping_status)
        raise OrderNotReturnableError(order.shipping_status)

    if order.return_id:
        raise ReturnExistsError(order.return_id)
    existing = await store.first(Table.RETURNS, {"order_id": order.id})
    if existing is not None:
        raise ReturnExistsError(str(existing.get("id")))

    now = utc_now()
    async with store.transaction() as unit:
        created = await unit.insert(
            Table.RETURNS,
            {
                "order_id": order.id,
                "customer_id": order.customer_id,
                "reason": reason,
                "status": SUBMITTED,
                "refund_amount": order.total_amount,
                "created_at": now,
                "updated_at": now,
            },
        )
        await unit.update(Table.ORDERS, order.id, {"return_id": created["id"]})

    logger.info(
        "return_initiated",
        order_id=order.id,
        return_id=created["id"],
        refund_amount=order.total_amount,
        store=store.name,
    )
    return ReturnRecord.model_validate(created)
