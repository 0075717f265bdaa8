"""
Database Configuration and Session Management
============================================

Builds the async engine and session factory for the ledger store and checks
which ledger tables exist. A missing table is not fatal: it is reported and
left unavailable, so only the operations that need it fail.
"""

import logging
from typing import Set

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from models import Base, LEDGER_MODELS
from utils.exception_handler import ConfigurationError

logger = logging.getLogger(__name__)


def create_engine_for_url(database_url: str) -> AsyncEngine:
    """Create the async engine; pooling options only apply to Postgres"""
    if not database_url:
        raise ConfigurationError("DATABASE_URL environment variable is required")

    if database_url.startswith("postgresql"):
        return create_async_engine(
            database_url,
            pool_size=5,
            max_overflow=5,
            pool_pre_ping=True,    # Validate connections before use
            pool_recycle=3600,
            echo=False,
        )
    return create_async_engine(database_url, echo=False)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False  # rows outlive their session
    )


async def inspect_tables(engine: AsyncEngine) -> Set[str]:
    """Names of the tables that currently exist in the store"""
    async with engine.connect() as conn:
        names = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
    return set(names)


async def create_tables(engine: AsyncEngine) -> bool:
    """Create all ledger tables if they don't exist"""
    try:
        logger.info("🏗️ Creating ledger tables (if they don't exist)...")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)
        return True
    except SQLAlchemyError as e:
        logger.error(f"❌ Failed to create ledger tables: {e}")
        return False


async def prepare_store(engine: AsyncEngine, auto_create: bool = True) -> Set[str]:
    """
    Make the store ready and return the set of available ledger table names.

    Every ledger table still missing afterwards is logged as a warning.
    """
    if auto_create:
        await create_tables(engine)

    existing = await inspect_tables(engine)
    available = set()
    for model in LEDGER_MODELS:
        name = model.__tablename__
        if name in existing:
            available.add(name)
        else:
            logger.warning(f"⚠️ Missing table: {name} (create it or enable DB_AUTO_CREATE)")

    logger.info(f"✅ Ledger store ready: {len(available)}/{len(LEDGER_MODELS)} tables available")
    return available
