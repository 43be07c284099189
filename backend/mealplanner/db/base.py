"""Shared SQLAlchemy base and database initialization."""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from mealplanner.core.config import get_settings


class Base(DeclarativeBase):
    pass


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _enable_sqlite_integrity(engine: AsyncEngine) -> None:
    """Make SQLite behave like the production database for lifecycle rules.

    Foreign keys are off by default in SQLite, so ON DELETE rules would never
    fire. Transactions start with BEGIN IMMEDIATE so concurrent writers queue
    on the database lock instead of failing on upgrade.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself (see _on_begin)
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for ``url`` with dialect-specific setup."""
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=echo, connect_args={"timeout": 30})
        _enable_sqlite_integrity(engine)
        return engine
    return create_async_engine(url, echo=echo, pool_pre_ping=True)


async def init_db(url: str | None = None) -> None:
    """Initialize the async database engine and session factory.

    Creates all tables defined via Base.metadata.
    """
    global _engine, _session_factory

    if _engine is not None:
        return

    settings = get_settings()
    db_url = url or settings.database_url

    _engine = create_engine(db_url, echo=settings.debug)
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    # Import all models so metadata is populated before create_all
    import mealplanner.db.models  # noqa: F401

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine and release all connections."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the configured session factory.

    Raises RuntimeError if init_db() has not been called.
    """
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory
