"""
Module: ops_kernel.db.base
Responsibility: Declarative base class for all SQLAlchemy ORM models.  Provides
    the integer primary key convention and the type annotation map that keeps
    timestamps as ISO-8601 text.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Integer primary keys: every row gets a system-assigned INTEGER PRIMARY
      KEY (SQLite rowid alias), never reused and never client supplied.
    - Timestamps: ``datetime`` columns are stored as ISO-8601 text with
      microseconds and an explicit UTC offset, so lexical order equals
      chronological order.
"""

from datetime import UTC, date, datetime
from typing import ClassVar

from sqlalchemy import Date, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class ISOTimestamp(TypeDecorator):
    """
    Timezone-aware datetime stored as ISO-8601 text.

    Contract:
        Values are normalized to UTC on the way in and rendered with
        ``timespec="microseconds"`` (e.g. "2024-01-01T12:00:00.000000+00:00").

    Guarantees:
        - process_bind_param: datetime -> str on INSERT/UPDATE.
        - process_result_value: str -> aware datetime on SELECT.
        - Naive datetimes are treated as UTC.
    """

    impl = String(40)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC).isoformat(timespec="microseconds")

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return datetime.fromisoformat(value)


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Contract:
        Every ORM model in the system inherits from Base.  Base provides an
        autoincrement integer primary key and a type_annotation_map that
        enforces consistent column types across the schema.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: ISOTimestamp(),
        date: Date(),
    }

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
