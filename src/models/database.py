import structlog

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from src.models.base import Base
from src.models.entities import customer, order, order_return, product, survey  # noqa: F401

logger = structlog.get_logger(__name__)


def create_tables(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)

    tables = inspect(engine).get_table_names()
    logger.info("database_tables_ready", tables=tables)
