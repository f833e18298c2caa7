"""
Production Planner Domain Models.

Production orders and the builtin part of their status vocabulary.
Administrators may add up to four custom statuses (``custom-1`` ..
``custom-4``) through settings; those are not members of ``OrderStatus``.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class OrderStatus(Enum):
    """Builtin production order lifecycle states."""
    PENDING = "pending"
    APPROVED = "approved"
    IN_QUEUE = "in-queue"
    IN_PROGRESS = "in-progress"
    ON_HOLD = "on-hold"
    IN_MAINTENANCE = "in-maintenance"
    COMPLETED = "completed"
    RECEIVED_IN_WAREHOUSE = "received-in-warehouse"
    UNAPPROVAL_REQUEST = "unapproval-request"
    CANCELLATION_REQUEST = "cancellation-request"
    CANCELED = "canceled"


@dataclass(frozen=True)
class ProductionOrder:
    """A production order (``OP-`` consecutive)."""
    id: int
    consecutive: str
    status: str
    request_date: datetime
    customer_id: str
    customer_name: str | None
    product_id: str
    product_description: str | None
    quantity: float
    delivery_date: date
    requested_by: str
    priority: str = "medium"
    customer_tax_id: str | None = None
    purchase_order: str | None = None
    inventory: float | None = None
    machine_id: str | None = None
    shift_id: str | None = None
    scheduled_start_date: date | None = None
    scheduled_end_date: date | None = None
    notes: str | None = None
    delivered_quantity: float | None = None
    defective_quantity: float | None = None
    erp_package_number: str | None = None
    erp_ticket_number: str | None = None
    approved_by: str | None = None
    last_status_update_by: str | None = None
    last_status_update_notes: str | None = None
    received_in_warehouse_by: str | None = None
    received_date: datetime | None = None
    reopened: bool = False
    previous_status: str | None = None
    has_been_modified: bool = False
    last_modified_by: str | None = None
    last_modified_at: datetime | None = None
