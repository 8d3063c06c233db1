"""
Endpoints used by the demo web front end to seed customers and orders.
"""

from fastapi import APIRouter

from src.core.deps import RecordStoreDep
from src.schemas.tools import CreateCustomerRequest, CreateOrderRequest
from src.services.customers import create_customer
from src.services.orders import create_order

router = APIRouter(prefix="/front-end", tags=["front-end"])


@router.post("/create-customer")
async def create_customer_route(request: CreateCustomerRequest, store: RecordStoreDep) -> dict:
    """
    Sign up a customer.

    Emails are unique: submitting an email that already exists returns the
    existing customer instead of creating a duplicate.
    """
    customer, created = await create_customer(store, request)
    return {
        "status": "success",
        "created": created,
        "customer": customer.model_dump(mode="json"),
    }


@router.post("/create-order")
async def create_order_route(request: CreateOrderRequest, store: RecordStoreDep) -> dict:
    result = await create_order(store, request.customer_id, request.items, request.total_amount)
    return {"status": "success", **result}
