"""
Purchase Request Domain Models.

The nouns of purchasing: the request itself and its status vocabulary.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class RequestStatus(Enum):
    """Purchase request lifecycle states."""
    PENDING = "pending"
    APPROVED = "approved"
    ORDERED = "ordered"
    RECEIVED = "received"
    RECEIVED_IN_WAREHOUSE = "received-in-warehouse"
    UNAPPROVAL_REQUEST = "unapproval-request"
    CANCELLATION_REQUEST = "cancellation-request"
    CANCELED = "canceled"


class PurchaseType(Enum):
    """Whether the request covers one client order or several."""
    SINGLE = "single"
    MULTIPLE = "multiple"


@dataclass(frozen=True)
class PurchaseRequest:
    """A purchase request (``SC-`` consecutive)."""
    id: int
    consecutive: str
    status: str
    request_date: datetime
    client_id: str
    client_name: str | None
    item_id: str
    item_description: str | None
    quantity: float
    required_date: date
    requested_by: str
    priority: str = "medium"
    purchase_type: str = PurchaseType.SINGLE.value
    purchase_order: str | None = None
    unit_sale_price: float | None = None
    erp_order_number: str | None = None
    manual_supplier: str | None = None
    route: str | None = None
    shipping_method: str | None = None
    inventory: float | None = None
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
