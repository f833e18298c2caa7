"""
Entity field descriptors for workflow entities.

Describes, per entity type, which subject fields a caller must provide at
creation, which may be edited afterwards, and which columns the list
selector searches, classifies and date-filters on.  Pure data; the entity
store and selector read it.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from ops_kernel.exceptions import ValidationError

PRIORITIES = ("low", "medium", "high", "urgent")

# Fields no detail edit may touch; the transition engine owns them.
PROTECTED_FIELDS = frozenset({
    "id",
    "consecutive",
    "status",
    "request_date",
    "requested_by",
    "approved_by",
    "last_status_update_by",
    "last_status_update_notes",
    "received_in_warehouse_by",
    "received_date",
    "reopened",
    "previous_status",
    "has_been_modified",
    "last_modified_by",
    "last_modified_at",
    "delivered_quantity",
    "defective_quantity",
    "erp_package_number",
    "erp_ticket_number",
})


@dataclass(frozen=True, eq=False)
class EntityFields:
    """Field rules for one workflow entity type."""

    required: tuple[str, ...]
    editable: frozenset[str]
    search: tuple[str, ...]
    classification: str
    date_field: str
    date_fields: frozenset[str] = frozenset()
    numeric_fields: frozenset[str] = frozenset({"quantity"})
    choices: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: {"priority": PRIORITIES}
    )
    creator_field: str = "requested_by"

    def creatable(self) -> frozenset[str]:
        return self.editable | frozenset(self.required)

    def coerce(self, name: str, value: Any) -> Any:
        """Normalize and check one subject field value."""
        if value is None:
            return None
        if name in self.date_fields:
            if isinstance(value, datetime):
                return value.date()
            if isinstance(value, date):
                return value
            try:
                return date.fromisoformat(str(value)[:10])
            except ValueError as exc:
                raise ValidationError(name, f"not an ISO date: {value!r}") from exc
        if name in self.numeric_fields:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(name, f"must be a number, got {value!r}")
            if name == "quantity" and value <= 0:
                raise ValidationError(name, "must be greater than zero")
            if value < 0:
                raise ValidationError(name, "must not be negative")
            return value
        if name in self.choices and value not in self.choices[name]:
            raise ValidationError(name, f"must be one of {list(self.choices[name])}")
        return value

    def check_required(self, values: Mapping[str, Any]) -> None:
        for name in self.required:
            value = values.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(name, "is required")
