"""
SQLAlchemy ORM persistence models for the Purchase Request module.

Architecture position
---------------------
**Modules layer** -- ORM models consumed through the kernel binding in
``ops_modules.requests.service``.  Columns shared with production orders
come from ``WorkflowEntityMixin`` / ``HistoryEntryMixin``.

Invariants enforced
-------------------
* ``consecutive`` unique (``SC-00001`` ...).
* ``purchase_request_history`` rows belong to exactly one request and are
  append-only (db/immutability.py, db/triggers.py).
"""

from dataclasses import fields
from datetime import date

from sqlalchemy import Date, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ops_kernel.db.base import Base
from ops_kernel.models.workflow import HistoryEntryMixin, WorkflowEntityMixin


class PurchaseRequestModel(Base, WorkflowEntityMixin):
    """
    A purchase request row.

    Maps to the ``PurchaseRequest`` DTO in ``ops_modules.requests.models``.
    """

    __tablename__ = "purchase_requests"
    __entity_type__ = "purchase_request"

    __table_args__ = (
        Index("idx_purchase_request_required_date", "required_date"),
    )

    client_id: Mapped[str] = mapped_column(String(50), nullable=False)
    client_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    item_id: Mapped[str] = mapped_column(String(50), nullable=False)
    item_description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    required_date: Mapped[date] = mapped_column(Date, nullable=False)
    purchase_order: Mapped[str | None] = mapped_column(String(100), nullable=True)
    purchase_type: Mapped[str] = mapped_column(String(20), nullable=False, default="single")
    unit_sale_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    erp_order_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    manual_supplier: Mapped[str | None] = mapped_column(String(200), nullable=True)
    route: Mapped[str | None] = mapped_column(String(100), nullable=True)
    shipping_method: Mapped[str | None] = mapped_column(String(100), nullable=True)
    inventory: Mapped[float | None] = mapped_column(Float, nullable=True)

    def to_dto(self):
        from ops_modules.requests.models import PurchaseRequest

        return PurchaseRequest(**{f.name: getattr(self, f.name) for f in fields(PurchaseRequest)})


class PurchaseRequestHistoryModel(Base, HistoryEntryMixin):
    """One audit row of a purchase request."""

    __tablename__ = "purchase_request_history"
    __entity_table__ = "purchase_requests"
