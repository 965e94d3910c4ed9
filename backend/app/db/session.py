"""Async engine and session factory for the category store."""

from typing import Any, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.config import settings


def engine_options(database_url: str, echo: bool = False) -> Dict[str, Any]:
    """Keyword arguments for ``create_async_engine`` suited to ``database_url``.

    SQLite doesn't support pool_size / max_overflow / pool_pre_ping. An
    in-memory SQLite database lives inside one connection, so every session
    has to share it through a StaticPool.
    """
    options: Dict[str, Any] = {"echo": echo}

    if not database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
        )
    elif ":memory:" in database_url:
        options.update(poolclass=StaticPool, connect_args={"check_same_thread": False})

    return options


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the engine, with parent_id foreign keys enforced on SQLite too."""
    engine = create_async_engine(database_url, **engine_options(database_url, echo))

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
