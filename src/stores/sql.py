"""
SQL record store on SQLAlchemy.

Works with any SQLAlchemy URL (SQLite for local development, Postgres in
production). Unlike the other backends it supports real transactions: writes
made through ``transaction()`` share one session and commit together.
"""

from contextlib import asynccontextmanager, contextmanager
from typing import Any, Iterator, Mapping

import structlog
from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from src.core.exceptions import ConfigurationError, ConflictError, NotFoundError, StoreError
from src.models.base import build_engine
from src.models.database import create_tables
from src.models.entities.customer import Customer
from src.models.entities.order import Order
from src.models.entities.order_return import OrderReturn
from src.models.entities.product import Product
from src.models.entities.survey import Survey
from src.stores.base import Record, RecordStore, Table, new_record_id

logger = structlog.get_logger(__name__)

MODELS = {
    Table.CUSTOMERS: Customer,
    Table.PRODUCTS: Product,
    Table.ORDERS: Order,
    Table.RETURNS: OrderReturn,
    Table.SURVEYS: Survey,
}


def _to_record(entity: Any) -> Record:
    return {column.name: getattr(entity, column.name) for column in entity.__table__.columns}


class SqlRecordStore(RecordStore):
    name = "sql"
    supports_transactions = True

    def __init__(
        self,
        database_url: str | None = None,
        engine: Engine | None = None,
        session: Session | None = None,
        create_schema: bool = True,
    ):
        if engine is None:
            if not database_url:
                raise ConfigurationError("Database configuration error. Set DATABASE_URL for the sql record store.")
            engine = build_engine(database_url)
            if create_schema:
                create_tables(engine)
        self.engine = engine
        self.session_factory = sessionmaker(
            bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
        )
        self._session = session

    @contextmanager
    def _scope(self) -> Iterator[Session]:
        # Inside transaction(): reuse the shared session, flush but never commit.
        if self._session is not None:
            yield self._session
            self._session.flush()
            return

        session = self.session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise
        finally:
            session.close()

    def _columns(self, table: Table, fields: Mapping[str, Any]) -> dict[str, Any]:
        model = MODELS[table]
        known = {}
        for field, value in fields.items():
            if field not in model.__table__.columns:
                logger.warning("unknown_column_ignored", table=table.value, column=field)
                continue
            known[field] = value
        return known

    async def select(self, table, filters=None, limit=None):
        model = MODELS[table]
        filters = dict(filters or {})
        unknown = [field for field in filters if field not in model.__table__.columns]
        if unknown:
            # No row can match a column the table does not have.
            logger.warning("unknown_filter_column", table=table.value, columns=unknown)
            return []
        try:
            with self._scope() as session:
                query = session.query(model).filter_by(**filters)
                if limit:
                    query = query.limit(limit)
                return [_to_record(entity) for entity in query.all()]
        except SQLAlchemyError as e:
            logger.error("sql_select_failed", table=table.value, error=str(e))
            raise StoreError(f"Error retrieving {table.value}: {e}") from e

    async def find_by_suffix(self, table, field, suffix):
        model = MODELS[table]
        column = model.__table__.columns[field]
        try:
            with self._scope() as session:
                entities = session.query(model).filter(column.ilike(f"%{suffix}")).all()
                return [_to_record(entity) for entity in entities]
        except SQLAlchemyError as e:
            logger.error("sql_suffix_search_failed", table=table.value, error=str(e))
            raise StoreError(f"Error searching {table.value}: {e}") from e

    async def select_ignore_case(self, table, field, value):
        model = MODELS[table]
        if field not in model.__table__.columns:
            logger.warning("unknown_filter_column", table=table.value, columns=[field])
            return []
        column = model.__table__.columns[field]
        try:
            with self._scope() as session:
                entities = session.query(model).filter(func.lower(column) == value.strip().lower()).all()
                return [_to_record(entity) for entity in entities]
        except SQLAlchemyError as e:
            logger.error("sql_select_failed", table=table.value, error=str(e))
            raise StoreError(f"Error retrieving {table.value}: {e}") from e

    async def insert(self, table, fields):
        model = MODELS[table]
        values = self._columns(table, fields)
        values.setdefault("id", new_record_id())
        try:
            with self._scope() as session:
                entity = model(**values)
                session.add(entity)
                session.flush()
                record = _to_record(entity)
        except IntegrityError as e:
            logger.warning("sql_insert_conflict", table=table.value, error=str(e.orig))
            raise ConflictError(f"{table.value} record conflicts with an existing record") from e
        except SQLAlchemyError as e:
            logger.error("sql_insert_failed", table=table.value, error=str(e))
            raise StoreError(f"Error creating {table.value}: {e}") from e

        logger.info("record_inserted", store=self.name, table=table.value, record_id=record["id"])
        return record

    async def update(self, table, record_id, fields):
        model = MODELS[table]
        values = self._columns(table, fields)
        try:
            with self._scope() as session:
                entity = session.get(model, record_id)
                if entity is None:
                    raise NotFoundError(f"No {table.value} record with id: {record_id}")
                for field, value in values.items():
                    setattr(entity, field, value)
                session.flush()
                record = _to_record(entity)
        except SQLAlchemyError as e:
            logger.error("sql_update_failed", table=table.value, error=str(e))
            raise StoreError(f"Error updating {table.value}: {e}") from e

        logger.info("record_updated", store=self.name, table=table.value, record_id=record_id)
        return record

    async def delete(self, table, record_id):
        model = MODELS[table]
        try:
            with self._scope() as session:
                entity = session.get(model, record_id)
                if entity is None:
                    raise NotFoundError(f"No {table.value} record with id: {record_id}")
                session.delete(entity)
        except SQLAlchemyError as e:
            logger.error("sql_delete_failed", table=table.value, error=str(e))
            raise StoreError(f"Error deleting {table.value}: {e}") from e

        logger.info("record_deleted", store=self.name, table=table.value, record_id=record_id)

    @asynccontextmanager
    async def transaction(self):
        session = self.session_factory()
        unit = SqlRecordStore(engine=self.engine, session=session)
        try:
            yield unit
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError(f"Transaction failed: {e}") from e
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    async def close(self) -> None:
        if self._session is None:
            self.engine.dispose()
