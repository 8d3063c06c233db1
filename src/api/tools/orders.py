from typing import Annotated

from fastapi import APIRouter, Depends, Query

from src.core.deps import IdentityDep, RecordStoreDep
from src.core.security import verify_twilio_signature
from src.schemas.tools import OrderLookupTool, PlaceOrderTool, ReturnOrderTool
from src.services.orders import lookup_customer_order, place_order, validate_order_digits
from src.services.returns import initiate_return

router = APIRouter(prefix="/tools", tags=["tools-orders"], dependencies=[Depends(verify_twilio_signature)])


@router.get("/order-lookup")
async def order_lookup(
    params: Annotated[OrderLookupTool, Query()],
    identity: IdentityDep,
    store: RecordStoreDep,
) -> dict:
    """
    Find one of the caller's orders by the last four characters of its id.

    Behavior:
    - Only the caller's own orders are considered
    - Two or more matches are a conflict; the assistant must ask again
    """
    order = await lookup_customer_order(store, identity, params.order_confirmation_digits)
    return {"status": "success", "order": order.model_dump(mode="json")}


@router.get("/order-id-validator")
async def order_id_validator(
    params: Annotated[OrderLookupTool, Query()],
    store: RecordStoreDep,
) -> dict:
    """Find any order by the last four characters of its id."""
    order = await validate_order_digits(store, params.order_confirmation_digits)
    return {"status": "success", "order": order.model_dump(mode="json")}


@router.post("/place-order")
async def place_order_tool(
    params: PlaceOrderTool,
    identity: IdentityDep,
    store: RecordStoreDep,
) -> dict:
    """
    Order one unit of a product for the caller.

    The current product discount is applied to the line item price.
    """
    result = await place_order(store, identity, params.product_id)
    return {"status": "success", **result}


@router.post("/return-order")
async def return_order(params: ReturnOrderTool, store: RecordStoreDep) -> dict:
    """
    Submit a return for a delivered order.

    Behavior:
    - 400 with current_status when the order is not delivered
    - 409 with existing_return_id when a return was already submitted
    - Refund amount defaults to the order total
    """
    created = await initiate_return(store, params.order_id, params.return_reason)
    return {
        "status": "success",
        "message": "Return initiated successfully",
        "return_id": created.id,
        "refund_amount": created.refund_amount,
    }
