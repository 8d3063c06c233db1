import structlog
from fastapi import APIRouter, Depends

from src.core.deps import RecordStoreDep
from src.core.exceptions import ProductNotFoundError
from src.core.security import verify_twilio_signature
from src.models.domain.records import ProductRecord
from src.stores import Table

router = APIRouter(prefix="/tools", tags=["tools-products"], dependencies=[Depends(verify_twilio_signature)])

logger = structlog.get_logger(__name__)


@router.get("/products")
async def list_products(store: RecordStoreDep) -> dict:
    """Full product catalog, used for recommendations."""
    records = await store.select(Table.PRODUCTS)
    if not records:
        raise ProductNotFoundError("No products found in the database")

    logger.info("products_listed", count=len(records))
    return {
        "status": "success",
        "products": [ProductRecord.model_validate(r).model_dump(mode="json") for r in records],
    }
