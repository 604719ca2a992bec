"""
Database connection and session management.
Uses SQLAlchemy 2.0 async pattern.

Every domain operation runs inside one unit of work: a fresh session with a
single transaction that commits when the block completes and rolls back on
any exception (cancellation included).
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from src.config import get_settings

settings = get_settings()

T = TypeVar("T")

SessionFactory = async_sessionmaker[AsyncSession]


def _install_sqlite_pragmas(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        """Enable WAL mode + foreign keys on every new SQLite connection."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with options suited to the backing database."""
    if database_url.startswith("sqlite"):
        # NullPool: every session gets its own connection, so concurrent
        # units of work serialize on SQLite's write lock.
        sqlite_engine = create_async_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=NullPool,
        )
        _install_sqlite_pragmas(sqlite_engine)
        return sqlite_engine

    return create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


def build_session_factory(bind: AsyncEngine) -> SessionFactory:
    """Session factory; objects stay readable after commit."""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(settings.database_url, echo=settings.debug)
async_session_maker = build_session_factory(engine)


@asynccontextmanager
async def unit_of_work(session_factory: SessionFactory) -> AsyncIterator[AsyncSession]:
    """
    Scoped transaction.

    Commits only if the block finishes without raising; any exception
    (including asyncio.CancelledError) rolls back everything written in it.
    """
    async with session_factory() as session:
        async with session.begin():
            yield session


async def run_in_transaction(
    session_factory: SessionFactory,
    work: Callable[[AsyncSession], Awaitable[T]],
) -> T:
    """Run ``work(session)`` as one atomic unit and return its result."""
    async with unit_of_work(session_factory) as session:
        return await work(session)


def get_session_factory() -> SessionFactory:
    """Dependency returning the application's session factory."""
    return async_session_maker


async def init_db(bind: AsyncEngine = engine) -> None:
    """Initialize database tables."""
    # Import Base from kernel models to ensure all models are registered
    from src.kernel.models import Base

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
