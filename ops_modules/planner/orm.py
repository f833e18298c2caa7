"""
SQLAlchemy ORM persistence models for the Production Planner module.

Architecture position
---------------------
**Modules layer** -- ORM models consumed through the kernel binding in
``ops_modules.planner.service``.

Invariants enforced
-------------------
* ``consecutive`` unique (``OP-00001`` ...).
* ``machine_id`` / ``shift_id`` reference the settings catalogs, not a
  table; the transition engine validates them on assignment.
* ``production_order_history`` is append-only.
"""

from dataclasses import fields
from datetime import date

from sqlalchemy import Date, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ops_kernel.db.base import Base
from ops_kernel.models.workflow import HistoryEntryMixin, WorkflowEntityMixin


class ProductionOrderModel(Base, WorkflowEntityMixin):
    """
    A production order row.

    Maps to the ``ProductionOrder`` DTO in ``ops_modules.planner.models``.
    """

    __tablename__ = "production_orders"
    __entity_type__ = "production_order"

    __table_args__ = (
        Index("idx_production_order_delivery_date", "delivery_date"),
        Index("idx_production_order_machine", "machine_id"),
    )

    customer_id: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    customer_tax_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    product_id: Mapped[str] = mapped_column(String(50), nullable=False)
    product_description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    purchase_order: Mapped[str | None] = mapped_column(String(100), nullable=True)
    inventory: Mapped[float | None] = mapped_column(Float, nullable=True)
    machine_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    shift_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    scheduled_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    scheduled_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    def to_dto(self):
        from ops_modules.planner.models import ProductionOrder

        return ProductionOrder(**{f.name: getattr(self, f.name) for f in fields(ProductionOrder)})


class ProductionOrderHistoryModel(Base, HistoryEntryMixin):
    """One audit row of a production order."""

    __tablename__ = "production_order_history"
    __entity_table__ = "production_orders"
