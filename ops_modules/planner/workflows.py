"""
Production Planner Workflow.

Status machine for production orders (``OP-`` consecutives):

    pending -> approved -> {in-queue | in-progress | on-hold}
    in-progress <-> on-hold, in-progress <-> in-maintenance
    in-progress -> completed [-> received-in-warehouse]
    approved -> unapproval-request -> pending
    any open status -> cancellation-request -> canceled
    any open status -> canceled

Active custom statuses can be entered from approved, in-queue,
in-progress, on-hold, in-maintenance or another custom status, and left
towards in-progress, on-hold, completed or the cancel branch.
"""

from ops_kernel.domain import rules
from ops_kernel.domain.entity import PRIORITIES, EntityFields
from ops_kernel.domain.workflow import Transition, WorkflowDefinition
from ops_kernel.logging_config import get_logger
from ops_modules.planner.models import OrderStatus

logger = get_logger("modules.planner.workflows")

PENDING = OrderStatus.PENDING.value
APPROVED = OrderStatus.APPROVED.value
IN_QUEUE = OrderStatus.IN_QUEUE.value
IN_PROGRESS = OrderStatus.IN_PROGRESS.value
ON_HOLD = OrderStatus.ON_HOLD.value
IN_MAINTENANCE = OrderStatus.IN_MAINTENANCE.value
COMPLETED = OrderStatus.COMPLETED.value
RECEIVED_IN_WAREHOUSE = OrderStatus.RECEIVED_IN_WAREHOUSE.value
UNAPPROVAL_REQUEST = OrderStatus.UNAPPROVAL_REQUEST.value
CANCELLATION_REQUEST = OrderStatus.CANCELLATION_REQUEST.value
CANCELED = OrderStatus.CANCELED.value

_OPEN = (PENDING, APPROVED, IN_QUEUE, IN_PROGRESS, ON_HOLD, IN_MAINTENANCE)

ORDER_TRANSITIONS = (
    Transition(PENDING, APPROVED, "approve"),
    Transition(APPROVED, IN_QUEUE, "queue"),
    Transition(APPROVED, IN_PROGRESS, "start"),
    Transition(APPROVED, ON_HOLD, "hold"),
    Transition(IN_QUEUE, IN_PROGRESS, "start"),
    Transition(IN_QUEUE, ON_HOLD, "hold"),
    Transition(IN_PROGRESS, ON_HOLD, "hold"),
    Transition(IN_PROGRESS, IN_MAINTENANCE, "send_to_maintenance"),
    Transition(IN_PROGRESS, COMPLETED, "complete"),
    Transition(ON_HOLD, IN_PROGRESS, "resume"),
    Transition(ON_HOLD, IN_QUEUE, "requeue"),
    Transition(IN_MAINTENANCE, IN_PROGRESS, "resume"),
    Transition(IN_MAINTENANCE, ON_HOLD, "hold"),
    Transition(COMPLETED, RECEIVED_IN_WAREHOUSE, "receive_in_warehouse",
               requires_setting="use_warehouse_reception"),
    Transition(APPROVED, UNAPPROVAL_REQUEST, "request_unapproval"),
    Transition(UNAPPROVAL_REQUEST, PENDING, "approve_unapproval"),
    *(Transition(s, CANCELLATION_REQUEST, "request_cancellation") for s in _OPEN),
    *(Transition(s, CANCELED, "cancel") for s in _OPEN),
    Transition(CANCELLATION_REQUEST, CANCELED, "approve_cancellation"),
)

ORDER_FIELDS = EntityFields(
    required=("product_id", "quantity", "customer_id", "delivery_date"),
    editable=frozenset({
        "customer_id",
        "customer_name",
        "customer_tax_id",
        "product_id",
        "product_description",
        "quantity",
        "delivery_date",
        "purchase_order",
        "inventory",
        "notes",
    }),
    search=("consecutive", "customer_name", "product_description"),
    classification="priority",
    date_field="delivery_date",
    date_fields=frozenset({"delivery_date"}),
    numeric_fields=frozenset({"quantity", "inventory"}),
    choices={"priority": PRIORITIES},
)

PRODUCTION_ORDER_WORKFLOW = WorkflowDefinition(
    name="production_order",
    entity_type="production_order",
    description="Production order lifecycle",
    initial_state=PENDING,
    states=tuple(s.value for s in OrderStatus),
    transitions=ORDER_TRANSITIONS,
    terminal_states=frozenset({COMPLETED, RECEIVED_IN_WAREHOUSE, CANCELED}),
    final_state=COMPLETED,
    fields=ORDER_FIELDS,
    custom_entry_states=frozenset({APPROVED, IN_QUEUE, IN_PROGRESS, ON_HOLD, IN_MAINTENANCE}),
    custom_exit_states=frozenset({IN_PROGRESS, ON_HOLD, COMPLETED, CANCELLATION_REQUEST, CANCELED}),
    preconditions={
        IN_PROGRESS: (rules.require_machine_assignment,),
        COMPLETED: (rules.require_delivered_quantity, rules.require_shift_assignment),
        RECEIVED_IN_WAREHOUSE: (rules.require_package_refs,),
        UNAPPROVAL_REQUEST: (rules.require_notes,),
        CANCELLATION_REQUEST: (rules.require_notes,),
    },
    side_effects={
        APPROVED: (rules.stamp_approver,),
        COMPLETED: (rules.record_delivery,),
        RECEIVED_IN_WAREHOUSE: (
            rules.record_package_refs,
            rules.stamp_warehouse_receiver,
            rules.stamp_received_date,
        ),
    },
)

logger.info(
    "planner_workflow_registered",
    extra={
        "workflow": PRODUCTION_ORDER_WORKFLOW.name,
        "states": list(PRODUCTION_ORDER_WORKFLOW.states),
        "transitions": len(PRODUCTION_ORDER_WORKFLOW.transitions),
    },
)
