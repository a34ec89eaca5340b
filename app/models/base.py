"""
Declarative base and shared column mixins.

Column types are kept portable (generic Uuid, JSON) so the same models run on
PostgreSQL in deployment and SQLite in the test suite.
"""

import uuid

from sqlalchemy import Column, DateTime, Uuid
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql.functions import now as db_now

Base = declarative_base()


class TimestampMixin:
    """
    Adds database-managed created_at / updated_at columns.
    """

    created_at = Column(
        DateTime(timezone=True),
        server_default=db_now(),
        nullable=False,
        comment="Timestamp when the record was created",
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=db_now(),
        onupdate=db_now(),
        nullable=False,
        comment="Timestamp when the record was last updated",
    )


class UUIDMixin:
    """
    Adds a uuid4 primary key.
    """

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        index=True,
        comment="Primary key using UUID4 format",
    )


__all__ = ["Base", "TimestampMixin", "UUIDMixin"]
