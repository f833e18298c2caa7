"""
Warehouse Domain Models.

Location tree nodes and their advisory wizard-lock state.
"""

from dataclasses import dataclass
from enum import Enum


class LocationType(Enum):
    """Level of a node in the location tree."""
    BUILDING = "building"
    ZONE = "zone"
    RACK = "rack"
    SHELF = "shelf"
    BIN = "bin"


@dataclass(frozen=True)
class WarehouseLocation:
    """A node of the warehouse location tree."""
    id: int
    name: str
    code: str
    type: str
    parent_id: int | None = None
    is_locked: bool = False
    locked_by: str | None = None
    locked_by_session_id: str | None = None
