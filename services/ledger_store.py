"""
Ledger Store Adapter
Narrow append / fetch-all / save interface over the ledger tables.
Every call is one store round trip with its own session and commit.
"""

import logging
from typing import Iterable, List, Optional, Type, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from models import Base
from utils.exception_handler import MissingTableError, StoreError

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT", bound=Base)


class LedgerStore:
    """Row-oriented access to the ledger tables"""

    def __init__(self, session_factory: async_sessionmaker, available_tables: Iterable[str]):
        self._session_factory = session_factory
        self._available = set(available_tables)

    def has_table(self, model: Type[Base]) -> bool:
        return model.__tablename__ in self._available

    def require(self, *models: Type[Base]) -> None:
        """Raise MissingTableError for the first unavailable table"""
        for model in models:
            if not self.has_table(model):
                raise MissingTableError(model.__tablename__)

    async def append(self, model: Type[RowT], **fields) -> RowT:
        """Insert a new row and return it with its row id assigned"""
        self.require(model)
        row = model(**fields)
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"❌ Store append to {model.__tablename__} failed: {e}")
            raise StoreError(f"append {model.__tablename__} failed: {e}") from e
        return row

    async def fetch_all(self, model: Type[RowT]) -> List[RowT]:
        """All rows of a table in row-id (append) order"""
        self.require(model)
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(model).order_by(model.id))
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"❌ Store fetch from {model.__tablename__} failed: {e}")
            raise StoreError(f"fetch {model.__tablename__} failed: {e}") from e

    async def get(self, model: Type[RowT], row_id: int) -> Optional[RowT]:
        self.require(model)
        try:
            async with self._session_factory() as session:
                return await session.get(model, row_id)
        except SQLAlchemyError as e:
            logger.error(f"❌ Store get {model.__tablename__}#{row_id} failed: {e}")
            raise StoreError(f"get {model.__tablename__} failed: {e}") from e

    async def save(self, row: RowT) -> RowT:
        """Persist the mutated fields of a previously fetched row"""
        self.require(type(row))
        try:
            async with self._session_factory() as session:
                merged = await session.merge(row)
                await session.commit()
                return merged
        except SQLAlchemyError as e:
            logger.error(f"❌ Store save {row.__tablename__}#{row.id} failed: {e}")
            raise StoreError(f"save {row.__tablename__} failed: {e}") from e

    async def update_fields(self, model: Type[RowT], row_id: int, *conditions, **values) -> bool:
        """
        Write only the given columns of one row, and only while the extra
        conditions still hold in the store. Returns False when no row matched.
        """
        self.require(model)
        stmt = update(model).where(model.id == row_id, *conditions).values(**values)
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
                return result.rowcount > 0
        except SQLAlchemyError as e:
            logger.error(f"❌ Store update {model.__tablename__}#{row_id} failed: {e}")
            raise StoreError(f"update {model.__tablename__} failed: {e}") from e
