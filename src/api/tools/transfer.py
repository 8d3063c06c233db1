from typing import Annotated

from fastapi import APIRouter, Depends, Header

from src.core.deps import TwilioServiceDep
from src.core.exceptions import InvalidSessionError
from src.core.security import verify_twilio_signature

router = APIRouter(prefix="/tools", tags=["tools-transfer"], dependencies=[Depends(verify_twilio_signature)])

VOICE_SESSION_PREFIX = "voice:"


def parse_call_sid(session_id: str | None) -> str:
    """
    Extract the CallSid from a ``voice:<CallSid>/<...>`` session id.

    Raises:
        InvalidSessionError: header missing or not a voice session
    """
    if not session_id:
        raise InvalidSessionError("Missing x-session-id header")
    if not session_id.startswith(VOICE_SESSION_PREFIX):
        raise InvalidSessionError("Invalid session type. Only voice sessions are handled.")
    call_sid = session_id[len(VOICE_SESSION_PREFIX):].split("/", 1)[0].strip()
    if not call_sid:
        raise InvalidSessionError("Voice session id does not contain a call SID")
    return call_sid


@router.get("/send-to-flex")
async def send_to_flex(
    twilio: TwilioServiceDep,
    x_session_id: Annotated[str | None, Header()] = None,
) -> dict:
    """
    Hand the live call to a human agent.

    The call is updated with TwiML that announces the escalation and dials
    the fallback number.
    """
    call_sid = parse_call_sid(x_session_id)
    await twilio.transfer_call(call_sid)
    return {"status": "success", "message": "Call forwarded"}
