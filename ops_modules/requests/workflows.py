"""
Purchase Request Workflow.

Status machine for purchase requests (``SC-`` consecutives):

    pending -> approved -> ordered -> received [-> received-in-warehouse]
    approved -> unapproval-request -> pending
    any open status -> cancellation-request -> canceled
    any open status -> canceled

``received-in-warehouse`` exists only while the ``use_warehouse_reception``
setting is on.
"""

from ops_kernel.domain import rules
from ops_kernel.domain.entity import PRIORITIES, EntityFields
from ops_kernel.domain.workflow import Transition, WorkflowDefinition
from ops_kernel.logging_config import get_logger
from ops_modules.requests.models import PurchaseType, RequestStatus

logger = get_logger("modules.requests.workflows")

PENDING = RequestStatus.PENDING.value
APPROVED = RequestStatus.APPROVED.value
ORDERED = RequestStatus.ORDERED.value
RECEIVED = RequestStatus.RECEIVED.value
RECEIVED_IN_WAREHOUSE = RequestStatus.RECEIVED_IN_WAREHOUSE.value
UNAPPROVAL_REQUEST = RequestStatus.UNAPPROVAL_REQUEST.value
CANCELLATION_REQUEST = RequestStatus.CANCELLATION_REQUEST.value
CANCELED = RequestStatus.CANCELED.value

_OPEN = (PENDING, APPROVED, ORDERED)

REQUEST_TRANSITIONS = (
    Transition(PENDING, APPROVED, "approve"),
    Transition(APPROVED, ORDERED, "order"),
    Transition(ORDERED, RECEIVED, "receive"),
    Transition(RECEIVED, RECEIVED_IN_WAREHOUSE, "receive_in_warehouse",
               requires_setting="use_warehouse_reception"),
    Transition(APPROVED, UNAPPROVAL_REQUEST, "request_unapproval"),
    Transition(UNAPPROVAL_REQUEST, PENDING, "approve_unapproval"),
    *(Transition(s, CANCELLATION_REQUEST, "request_cancellation") for s in _OPEN),
    *(Transition(s, CANCELED, "cancel") for s in _OPEN),
    Transition(CANCELLATION_REQUEST, CANCELED, "approve_cancellation"),
)

REQUEST_FIELDS = EntityFields(
    required=("item_id", "quantity", "client_id", "required_date"),
    editable=frozenset({
        "client_id",
        "client_name",
        "item_id",
        "item_description",
        "quantity",
        "required_date",
        "purchase_order",
        "purchase_type",
        "unit_sale_price",
        "erp_order_number",
        "manual_supplier",
        "route",
        "shipping_method",
        "inventory",
        "priority",
        "notes",
    }),
    search=("consecutive", "client_name", "item_description"),
    classification="purchase_type",
    date_field="required_date",
    date_fields=frozenset({"required_date"}),
    numeric_fields=frozenset({"quantity", "unit_sale_price", "inventory"}),
    choices={
        "priority": PRIORITIES,
        "purchase_type": tuple(t.value for t in PurchaseType),
    },
)

PURCHASE_REQUEST_WORKFLOW = WorkflowDefinition(
    name="purchase_request",
    entity_type="purchase_request",
    description="Purchase request lifecycle",
    initial_state=PENDING,
    states=tuple(s.value for s in RequestStatus),
    transitions=REQUEST_TRANSITIONS,
    terminal_states=frozenset({RECEIVED, RECEIVED_IN_WAREHOUSE, CANCELED}),
    final_state=RECEIVED,
    fields=REQUEST_FIELDS,
    preconditions={
        RECEIVED: (rules.require_delivered_quantity,),
        RECEIVED_IN_WAREHOUSE: (rules.require_package_refs,),
        UNAPPROVAL_REQUEST: (rules.require_notes,),
        CANCELLATION_REQUEST: (rules.require_notes,),
    },
    side_effects={
        APPROVED: (rules.stamp_approver,),
        ORDERED: (rules.record_purchase_refs,),
        RECEIVED: (rules.record_delivery, rules.stamp_received_date),
        RECEIVED_IN_WAREHOUSE: (rules.record_package_refs, rules.stamp_warehouse_receiver),
    },
)

logger.info(
    "requests_workflow_registered",
    extra={
        "workflow": PURCHASE_REQUEST_WORKFLOW.name,
        "states": list(PURCHASE_REQUEST_WORKFLOW.states),
        "transitions": len(PURCHASE_REQUEST_WORKFLOW.transitions),
    },
)
