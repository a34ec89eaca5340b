from __future__ import annotations

import asyncio
from functools import wraps
from typing import Any, Generic, TypeVar

from asyncpg.exceptions import ConnectionDoesNotExistError
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_session_factory
from app.models.base import Base
from app.utils.logger import setup_logger

logger = setup_logger("db_handlers")

ModelType = TypeVar("ModelType", bound=Base)

MAX_CONNECTION_ATTEMPTS = 3


def _dropped_connection(error: DBAPIError) -> bool:
    return isinstance(error.orig, ConnectionDoesNotExistError)


def check_local_db(func):
    """
    Run a handler method inside its own session and transaction.

    A method called with an explicit `db=` joins that session instead; the
    outermost call commits. Dropped asyncpg connections are retried with a
    short backoff, everything else is rolled back and re-raised.
    """

    @wraps(func)
    async def wrapper(*args, **kwargs):
        if kwargs.get("db") is not None:
            return await func(*args, **kwargs)
        kwargs.pop("db", None)

        for attempt in range(1, MAX_CONNECTION_ATTEMPTS + 1):
            async with get_session_factory()() as db:
                try:
                    result = await func(*args, **kwargs, db=db)
                    await db.commit()
                    return result
                except DBAPIError as e:
                    await db.rollback()
                    if _dropped_connection(e) and attempt < MAX_CONNECTION_ATTEMPTS:
                        logger.warning(
                            f"{func.__qualname__}: connection dropped "
                            f"(attempt {attempt}/{MAX_CONNECTION_ATTEMPTS}), retrying"
                        )
                        await asyncio.sleep(attempt)
                        continue
                    # Unique violations are reported to the caller as conflicts
                    if not isinstance(e, IntegrityError):
                        logger.error(f"{func.__qualname__} failed: {e}", exc_info=True)
                    raise
                except Exception as e:
                    await db.rollback()
                    logger.error(f"{func.__qualname__} failed: {e}", exc_info=True)
                    raise

    return wrapper


class BaseDBHandler(Generic[ModelType]):
    """Create, fetch and update rows of a single model."""

    def __init__(self, model: type[ModelType]):
        self.model = model

    @check_local_db
    async def create(
        self, values: dict[str, Any], *, db: AsyncSession = None
    ) -> ModelType:
        """Insert a row; IntegrityError propagates so callers can map conflicts."""
        row = self.model(**values)
        db.add(row)
        try:
            await db.flush()
        except IntegrityError as e:
            logger.warning(f"Duplicate {self.model.__name__}: {e.orig}")
            raise
        await db.refresh(row)
        return row

    @check_local_db
    async def get(self, id: Any, *, db: AsyncSession = None) -> ModelType | None:
        result = await db.execute(select(self.model).where(self.model.id == id))
        return result.scalars().first()

    @check_local_db
    async def update(
        self,
        row: ModelType,
        values: dict[str, Any],
        *,
        db: AsyncSession = None,
    ) -> ModelType:
        """Write only the given columns of a previously loaded row."""
        db.add(row)
        for column, value in values.items():
            if not hasattr(row, column):
                raise AttributeError(f"{self.model.__name__} has no column {column!r}")
            setattr(row, column, value)

        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error(
                f"Error updating {self.model.__name__} {row.id}: {e}", exc_info=True
            )
            raise
        await db.refresh(row)
        return row
