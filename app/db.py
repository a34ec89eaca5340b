"""
Database connector: engine and session factory for the credential store.

The engine is built from Settings at application startup (init_engine) rather
than at import time, so tests and tools can point it at their own database.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from app import models  # noqa: F401
from app.config import Settings
from app.models.base import Base
from app.utils.logger import setup_logger

logger = setup_logger("db")

app_engine: AsyncEngine | None = None
AppAsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None


def normalize_database_url(url: str) -> str:
    """Map plain driver URLs onto their async drivers."""
    if url.startswith("postgresql+asyncpg://") or url.startswith("sqlite+aiosqlite://"):
        return url
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    raise ValueError(f"Unsupported database URL prefix: {url.split('://')[0]}")


def init_engine(settings: Settings) -> AsyncEngine:
    """Create the application engine and session factory from settings."""
    global app_engine, AppAsyncSessionLocal

    if not settings.database_url:
        raise ValueError("DATABASE_URL environment variable not set")

    url = normalize_database_url(settings.database_url)
    if url.startswith("sqlite"):
        # A fresh connection per session keeps aiosqlite usable from any event loop
        engine = create_async_engine(url, poolclass=NullPool, echo=False)
    else:
        engine = create_async_engine(
            url,
            pool_pre_ping=True,
            pool_size=20,
            max_overflow=30,
            pool_timeout=60,
            pool_recycle=300,
            echo=False,
            connect_args={"timeout": 30},
        )

    app_engine = engine
    AppAsyncSessionLocal = async_sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    logger.debug(f"Database engine configured for dialect '{engine.dialect.name}'")
    return engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if AppAsyncSessionLocal is None:
        raise RuntimeError("Database engine is not initialized; call init_engine first")
    return AppAsyncSessionLocal


async def init_db():
    """Create any missing tables."""
    if app_engine is None:
        raise RuntimeError("Database engine is not initialized; call init_engine first")

    logger.debug(f"Tables registered: {list(Base.metadata.tables.keys())}")
    async with app_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema initialized.")


async def close_db():
    """Closes database connections."""
    global app_engine, AppAsyncSessionLocal
    if app_engine is not None:
        logger.info("Closing database connections.")
        await app_engine.dispose()
    app_engine = None
    AppAsyncSessionLocal = None


async def check_db_connection() -> bool:
    """Performs a simple query to check actual DB connectivity."""
    async with get_session_factory()() as session:
        try:
            result = await session.execute(text("SELECT 1"))
            if result.scalar_one() == 1:
                logger.info("Successfully connected to the database.")
                return True
            raise RuntimeError("Test query returned an unexpected result.")
        except Exception as e:
            logger.error(f"Failed to execute test query: {e}", exc_info=True)
            raise RuntimeError("Database connectivity check failed.") from e
