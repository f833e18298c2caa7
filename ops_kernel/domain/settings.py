"""
WorkflowSettings -- Typed view over a workflow scope's stored settings.

Responsibility:
    Converts the key/value rows of one settings scope into a frozen-shape
    dataclass the engine can read: feature toggles, status label/color
    aliases, machine and shift catalogs, custom statuses, and the list of
    fields whose post-approval edits raise the modification flag.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Loading and saving
    are done by ``ops_kernel.services.settings_service``.

Invariants enforced:
    - The sequence counter (``next_number``) is NOT part of this view.  It is
      only read and written by the sequence service.
    - Toggle values must be real booleans; catalogs must be lists of
      mappings.  Anything else raises ``SettingsError``.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Self

from ops_kernel.domain.status import CustomStatus
from ops_kernel.exceptions import SettingsError

SEQUENCE_KEY = "next_number"


@dataclass(frozen=True)
class CatalogItem:
    """A machine or shift that an order can be assigned to."""

    id: str
    name: str

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        return cls(id=str(data["id"]), name=str(data.get("name") or data["id"]))

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass
class WorkflowSettings:
    """
    Settings shared by every workflow scope.

    Subclasses add scope-specific fields; ``from_dict`` and ``to_dict`` pick
    them up through ``dataclasses.fields``.
    """

    prefix: str = ""
    use_warehouse_reception: bool = False
    status_labels: dict[str, str] = field(default_factory=dict)
    status_colors: dict[str, str] = field(default_factory=dict)
    fields_to_track_changes: tuple[str, ...] = ()
    machines: tuple[CatalogItem, ...] = ()
    shifts: tuple[CatalogItem, ...] = ()
    require_machine_for_start: bool = False
    require_shift_for_completion: bool = False
    custom_statuses: tuple[CustomStatus, ...] = ()

    _BOOL_FIELDS = (
        "use_warehouse_reception",
        "require_machine_for_start",
        "require_shift_for_completion",
    )

    @classmethod
    def scope_fields(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_dict(cls, data: dict[str, Any], scope: str = "") -> Self:
        """Build settings from stored key/value pairs, ignoring unknown keys."""
        known = set(cls.scope_fields())
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            kwargs[key] = _decode(scope, key, value, cls._BOOL_FIELDS)
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in ("machines", "shifts", "custom_statuses"):
                out[f.name] = [item.to_dict() for item in value]
            elif isinstance(value, tuple):
                out[f.name] = list(value)
            elif isinstance(value, dict):
                out[f.name] = dict(value)
            else:
                out[f.name] = value
        return out

    def machine_ids(self) -> frozenset[str]:
        return frozenset(m.id for m in self.machines)

    def shift_ids(self) -> frozenset[str]:
        return frozenset(s.id for s in self.shifts)

    def is_enabled(self, toggle: str) -> bool:
        return bool(getattr(self, toggle, False))


def _decode(scope: str, key: str, value: Any, bool_fields: tuple[str, ...]) -> Any:
    if key in bool_fields:
        if not isinstance(value, bool):
            raise SettingsError(scope, key, f"expected a boolean, got {value!r}")
        return value
    if key in ("machines", "shifts"):
        if not isinstance(value, list):
            raise SettingsError(scope, key, "expected a list")
        try:
            return tuple(CatalogItem.from_dict(item) for item in value)
        except (KeyError, TypeError) as exc:
            raise SettingsError(scope, key, f"bad catalog entry: {exc}") from exc
    if key == "custom_statuses":
        if not isinstance(value, list):
            raise SettingsError(scope, key, "expected a list")
        return tuple(CustomStatus.from_dict(item) for item in value)
    if key in ("status_labels", "status_colors"):
        if not isinstance(value, dict):
            raise SettingsError(scope, key, "expected a mapping")
        return {str(k): str(v) for k, v in value.items()}
    if isinstance(value, list):
        return tuple(value)
    return value
