"""
Post-call customer satisfaction surveys.
"""

import structlog

from src.core.identity import Identity
from src.models.domain.records import SurveyRecord
from src.schemas.tools import SurveyTool
from src.services.customers import resolve_customer, utc_now
from src.stores.base import RecordStore, Table

logger = structlog.get_logger(__name__)


async def submit_survey(store: RecordStore, identity: Identity, survey: SurveyTool) -> SurveyRecord:
    customer = await resolve_customer(store, identity)
    record = await store.insert(
        Table.SURVEYS,
        {
            "customer_id": customer.id,
            "rating": survey.rating,
            "feedback": survey.feedback,
            "created_at": utc_now(),
        },
    )
    logger.info("survey_submitted", survey_id=record["id"], customer_id=customer.id, rating=survey.rating)
    return SurveyRecord.model_validate(record)
