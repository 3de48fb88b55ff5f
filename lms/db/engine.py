"""Async engine for the completion tables.

With DATABASE_URL set, completion rows, attendance snapshots and
credentials live in PostgreSQL (asyncpg driver) and every request or
worker task runs in one session from async_session_factory; see
lms.repos.registry.open_repos.  Without it, engine and factory are None
and the in-memory repositories are used instead.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from lms.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


if SETTINGS.database_url:
    engine = create_async_engine(
        SETTINGS.database_url,
        echo=SETTINGS.is_dev,
        # A session completion holds its connection for the whole
        # per-student issuance loop.
        pool_size=10,
        max_overflow=10,
        pool_pre_ping=True,
    )
    async_session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
else:
    engine = None
    async_session_factory = None


@asynccontextmanager
async def lifespan_db():
    if engine is None:
        logger.info("No DATABASE_URL configured; completions are kept in memory")
        yield
        return

    logger.info("Completion store: %s", engine.url.render_as_string(hide_password=True))
    yield
    await engine.dispose()
    logger.info("Database engine disposed")
