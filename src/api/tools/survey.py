from fastapi import APIRouter, Depends

from src.core.deps import IdentityDep, RecordStoreDep
from src.core.security import verify_twilio_signature
from src.schemas.tools import SurveyTool
from src.services.surveys import submit_survey

router = APIRouter(prefix="/tools", tags=["tools-survey"], dependencies=[Depends(verify_twilio_signature)])


@router.post("/create-survey")
async def create_survey(params: SurveyTool, identity: IdentityDep, store: RecordStoreDep) -> dict:
    """Record the caller's 1-5 rating and optional feedback before the call ends."""
    survey = await submit_survey(store, identity, params)
    return {
        "status": "success",
        "message": "Survey submitted successfully",
        "survey_id": survey.id,
    }
