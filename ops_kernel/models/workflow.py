"""
Module: ops_kernel.models.workflow
Responsibility: Column mixins shared by every workflow entity table and
    every history table.  Concrete mapped classes live in the domain
    modules (``ops_modules.requests.orm``, ``ops_modules.planner.orm``) and
    combine ``Base`` with one of these mixins.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - ``consecutive`` is unique per table and never changes after INSERT.
    - ``requested_by`` never changes; ``approved_by`` is written at most once.
    - ``reopened`` and ``has_been_modified`` never go back to False.
    - History rows are append-only.
    (Enforced by db/immutability.py listeners and db/triggers.py.)
"""

from datetime import datetime
from typing import Any, ClassVar

from sqlalchemy import Boolean, Float, ForeignKey, Index, String, Text, inspect
from sqlalchemy.orm import Mapped, declared_attr, mapped_column


class WorkflowEntityMixin:
    """
    Columns common to purchase requests and production orders.

    Subclasses set ``__tablename__`` and add their subject columns.
    """

    __entity_type__: ClassVar[str]

    consecutive: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    request_date: Mapped[datetime] = mapped_column(nullable=False)

    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    delivered_quantity: Mapped[float | None] = mapped_column(Float, nullable=True)
    defective_quantity: Mapped[float | None] = mapped_column(Float, nullable=True)
    erp_package_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    erp_ticket_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    requested_by: Mapped[str] = mapped_column(String(200), nullable=False)
    approved_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    last_status_update_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    last_status_update_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    received_in_warehouse_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    received_date: Mapped[datetime | None] = mapped_column(nullable=True)

    reopened: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    previous_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    has_been_modified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_modified_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    last_modified_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def snapshot(self) -> dict[str, Any]:
        """Plain dict of every mapped column value."""
        return {attr.key: getattr(self, attr.key) for attr in inspect(self).mapper.column_attrs}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.consecutive} [{self.status}]>"


class HistoryEntryMixin:
    """
    One append-only audit row per status change or note.

    Subclasses set ``__tablename__`` and ``__entity_table__`` (the owning
    entity table name, used for the foreign key).
    """

    __entity_table__: ClassVar[str]

    @declared_attr
    def entity_id(cls) -> Mapped[int]:
        return mapped_column(ForeignKey(f"{cls.__entity_table__}.id"), nullable=False)

    timestamp: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    updated_by: Mapped[str] = mapped_column(String(200), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    @declared_attr.directive
    def __table_args__(cls):
        return (Index(f"idx_{cls.__tablename__}_entity_ts", "entity_id", "timestamp"),)

    def to_dto(self):
        from ops_kernel.domain.dtos import HistoryEntry

        return HistoryEntry(
            id=self.id,
            entity_id=self.entity_id,
            timestamp=self.timestamp,
            status=self.status,
            updated_by=self.updated_by,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.entity_id} -> {self.status} by {self.updated_by}>"
