"""Warehouse location tree and wizard locks."""

from ops_modules.warehouse.models import LocationType, WarehouseLocation
from ops_modules.warehouse.service import LocationLockService

__all__ = ["LocationLockService", "LocationType", "WarehouseLocation"]
