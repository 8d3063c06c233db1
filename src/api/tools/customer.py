from fastapi import APIRouter, Depends

from src.core.deps import IdentityDep, RecordStoreDep
from src.core.security import verify_twilio_signature
from src.services.customers import resolve_customer

router = APIRouter(prefix="/tools", tags=["tools-customer"], dependencies=[Depends(verify_twilio_signature)])


@router.get("/customer-lookup")
async def customer_lookup(identity: IdentityDep, store: RecordStoreDep) -> dict:
    """
    Look up the caller by the x-identity header.

    Called at the start of every conversation so the assistant can greet the
    customer by name and knows their contact and address details.
    """
    customer = await resolve_customer(store, identity)
    return {"status": "success", "customer": customer.model_dump(mode="json")}
