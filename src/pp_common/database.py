from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config.settings import settings


class Base(DeclarativeBase):
    """Shared declarative base (only the users table is ORM-mapped)."""

    pass


engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=20,
    max_overflow=10,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yields an AsyncSession, auto-closes after request."""
    async with async_session_factory() as session:
        yield session


@asynccontextmanager
async def unit_of_work(db: AsyncSession, *, join: bool = False) -> AsyncIterator[AsyncSession]:
    """Group writes into one all-or-nothing transaction.

    join=True: the caller already owns the transaction; statements run inside it
    and commit/rollback is left to the caller.
    join=False: commit on success, roll back and re-raise on any failure
    (including cancellation from an enclosing timeout).
    """
    if join:
        yield db
        return
    try:
        yield db
        await db.commit()
    except BaseException:
        await db.rollback()
        raise
