"""Production planner: OP- consecutives, shop-floor status workflow."""

from ops_modules.planner.config import PlannerSettings
from ops_modules.planner.models import OrderStatus, ProductionOrder
from ops_modules.planner.service import ProductionOrderService
from ops_modules.planner.workflows import PRODUCTION_ORDER_WORKFLOW

__all__ = [
    "PRODUCTION_ORDER_WORKFLOW",
    "OrderStatus",
    "PlannerSettings",
    "ProductionOrder",
    "ProductionOrderService",
]
