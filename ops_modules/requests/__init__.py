"""Purchase requests: SC- consecutives, approval and receiving workflow."""

from ops_modules.requests.config import RequestSettings
from ops_modules.requests.models import PurchaseRequest, PurchaseType, RequestStatus
from ops_modules.requests.service import PurchaseRequestService
from ops_modules.requests.workflows import PURCHASE_REQUEST_WORKFLOW

__all__ = [
    "PURCHASE_REQUEST_WORKFLOW",
    "PurchaseRequest",
    "PurchaseRequestService",
    "PurchaseType",
    "RequestSettings",
    "RequestStatus",
]
