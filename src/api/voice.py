"""
Inbound voice entry point.

Twilio posts here when a call arrives; the response hands the call to the
assistant with a greeting personalised from the customer record. The caller
must always hear a greeting, so failures fall back to the generic one.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Form
from fastapi.responses import Response

from src.core.deps import OptionalRecordStoreDep, TwilioServiceDep
from src.core.security import verify_twilio_signature
from src.stores import Table

router = APIRouter(prefix="/voice", tags=["voice"], dependencies=[Depends(verify_twilio_signature)])

logger = structlog.get_logger(__name__)


@router.post("/incoming-call")
async def incoming_call(
    store: OptionalRecordStoreDep,
    twilio: TwilioServiceDep,
    caller: Annotated[str | None, Form(alias="From")] = None,
) -> Response:
    first_name = None
    if not caller:
        logger.info("incoming_call_without_caller")
    elif store is None:
        logger.warning("incoming_call_store_unavailable", caller=caller)
    else:
        try:
            customer = await store.first(Table.CUSTOMERS, {"phone": caller})
            if customer:
                first_name = customer.get("first_name")
                logger.info("incoming_call_customer_found", caller=caller, customer_id=customer.get("id"))
            else:
                logger.info("incoming_call_unknown_caller", caller=caller)
        except Exception as exc:
            # Never fail the call: log and use the generic greeting.
            logger.exception("incoming_call_lookup_failed", caller=caller, error=str(exc))
            first_name = None

    return Response(content=twilio.build_connect_twiml(first_name), media_type="application/xml")
