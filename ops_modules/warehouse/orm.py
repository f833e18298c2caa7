"""
SQLAlchemy ORM persistence model for warehouse locations.

Invariants enforced
-------------------
* ``code`` is unique across the whole tree.
* ``parent_id`` references another location (self FK); roots have none.
* ``locked_by`` / ``locked_by_session_id`` are set exactly while
  ``is_locked`` is true.
"""

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ops_kernel.db.base import Base


class WarehouseLocationModel(Base):
    """
    A location tree node.

    Maps to the ``WarehouseLocation`` DTO in ``ops_modules.warehouse.models``.
    """

    __tablename__ = "warehouse_locations"

    __table_args__ = (
        Index("idx_warehouse_location_parent", "parent_id"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("warehouse_locations.id"), nullable=True
    )
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    locked_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    locked_by_session_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def to_dto(self):
        from ops_modules.warehouse.models import WarehouseLocation

        return WarehouseLocation(
            id=self.id,
            name=self.name,
            code=self.code,
            type=self.type,
            parent_id=self.parent_id,
            is_locked=self.is_locked,
            locked_by=self.locked_by,
            locked_by_session_id=self.locked_by_session_id,
        )

    def clear_lock(self) -> None:
        self.is_locked = False
        self.locked_by = None
        self.locked_by_session_id = None
