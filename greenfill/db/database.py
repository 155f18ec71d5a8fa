"""
Database Connection
===================
Async SQLAlchemy engine for the refill ledger
"""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker

from greenfill.config import get_settings


logger = logging.getLogger(__name__)


def make_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    return create_async_engine(database_url, echo=echo, future=True)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


_settings = get_settings()

engine = make_engine(_settings.database_url, echo=_settings.database_echo)

async_session_factory = make_session_factory(engine)


def get_session_factory() -> async_sessionmaker:
    """FastAPI dependency; tests override it with a throwaway database"""
    return async_session_factory


async def init_db(target: AsyncEngine = engine):
    """Create all tables (for development only - use migrations in production)"""
    from greenfill.db.models import Base
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Ledger tables created")
