"""Async engine and session handling for the story store.

Two session lifetimes use this module: the request-scoped session behind
the API dependencies, and the short write transaction the generator opens
for each finished story. Both go through ``transaction``.
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from storytime.config import Settings, get_settings

POOL_SIZE = 5
MAX_OVERFLOW = 10


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured database URL.

    Server databases get a bounded, pre-pinged pool. SQLite keeps the
    driver's own pool, which rejects sizing arguments for in-memory URLs.
    """
    url = make_url(settings.database_url)
    pool_kwargs: dict[str, int | bool] = {}
    if url.get_backend_name() != "sqlite":
        pool_kwargs = {"pool_size": POOL_SIZE, "max_overflow": MAX_OVERFLOW, "pool_pre_ping": True}
    return create_async_engine(url, echo=not settings.is_production, **pool_kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Stories are read back after commit (id, timestamps), so keep them loaded.
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(get_settings())
async_session_factory = build_session_factory(engine)


@asynccontextmanager
async def transaction(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Open a session that commits on success and rolls back on any error."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for FastAPI to get a request-scoped session."""
    async with transaction(async_session_factory) as session:
        yield session
