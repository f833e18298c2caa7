"""
Production Planner Module Service (``ops_modules.planner.service``).

Responsibility
--------------
Public entry point for production orders.  Everything a purchase request
can do, plus ``update_detail`` for priority, machine/shift assignment and
the scheduled date range, and admin-defined custom statuses.

Architecture position
---------------------
**Modules layer** -- thin glue over the kernel services configured with
``PRODUCTION_ORDER_WORKFLOW``.  Owns the transaction boundary.

Invariants enforced
-------------------
* Machine and shift ids must exist in the current settings catalogs.
* ``scheduled_start_date <= scheduled_end_date``.
* Changing machine or schedule after approval raises the sticky
  ``has_been_modified`` flag.
"""

from typing import Any

from ops_kernel.services.binding import WorkflowBinding
from ops_modules._workflow_service import WorkflowModuleService, unit_of_work
from ops_modules.planner.config import PlannerSettings
from ops_modules.planner.orm import ProductionOrderHistoryModel, ProductionOrderModel
from ops_modules.planner.workflows import PRODUCTION_ORDER_WORKFLOW

PLANNER_SCOPE = "planner"

PRODUCTION_ORDER_BINDING = WorkflowBinding(
    definition=PRODUCTION_ORDER_WORKFLOW,
    entity_model=ProductionOrderModel,
    history_model=ProductionOrderHistoryModel,
    scope=PLANNER_SCOPE,
    settings_cls=PlannerSettings,
    display_name="Production order",
    link_path="/dashboard/planner",
)


class ProductionOrderService(WorkflowModuleService):
    """Production order operations."""

    binding = PRODUCTION_ORDER_BINDING

    def update_detail(self, entity_id: int, patch: dict[str, Any], actor: str):
        """Change priority, machine, shift or schedule without a status change."""
        with unit_of_work(self._session, "update_detail", entity_id=entity_id):
            order = self._engine.update_detail(entity_id, patch, actor)
        return order
