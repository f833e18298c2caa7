"""
Purchase Request Module Service (``ops_modules.requests.service``).

Responsibility
--------------
Public entry point for purchase requests: create, edit, note, move through
the status machine, reopen, reject cancellations, list and read history.
All behaviour comes from the generic kernel services configured with
``PURCHASE_REQUEST_WORKFLOW``.

Architecture position
---------------------
**Modules layer** -- thin glue.  Owns the transaction boundary for every
mutating call; the kernel services only flush.

Invariants enforced
-------------------
* Each public mutating method commits on success and rolls back on failure.
* An entity update and its history row are committed together or not at
  all.
* Storage failures surface as ``PersistenceError``.

Usage::

    service = PurchaseRequestService(session, clock=clock, publisher=publisher)
    service.initialize()
    request = service.create(
        {"item_id": "P-100", "item_description": "Steel tube", "quantity": 10,
         "client_id": "C-7", "client_name": "Acme", "required_date": "2024-03-01"},
        created_by="ana",
    )
    service.transition(request.id, "approved", actor="alice")
"""

from ops_kernel.services.binding import WorkflowBinding
from ops_modules._workflow_service import WorkflowModuleService
from ops_modules.requests.config import RequestSettings
from ops_modules.requests.orm import PurchaseRequestHistoryModel, PurchaseRequestModel
from ops_modules.requests.workflows import PURCHASE_REQUEST_WORKFLOW

REQUESTS_SCOPE = "requests"

PURCHASE_REQUEST_BINDING = WorkflowBinding(
    definition=PURCHASE_REQUEST_WORKFLOW,
    entity_model=PurchaseRequestModel,
    history_model=PurchaseRequestHistoryModel,
    scope=REQUESTS_SCOPE,
    settings_cls=RequestSettings,
    display_name="Purchase request",
    link_path="/dashboard/requests",
)


class PurchaseRequestService(WorkflowModuleService):
    """
    Purchase request operations.

    Guarantees
    ----------
    * ``create`` assigns ``SC-`` + zero-padded counter and writes the first
      history row.
    * ``transition`` validates against the request status machine and the
      freshly loaded settings.
    * Clock, notification publisher and user lookup are injectable.
    """

    binding = PURCHASE_REQUEST_BINDING
