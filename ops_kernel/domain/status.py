"""
Status -- Tagged union of builtin and admin-defined statuses.

Responsibility:
    Models a workflow status as either a ``BuiltinStatus`` (hardcoded by the
    workflow definition) or a ``CustomStatus`` (configured by an
    administrator in settings).  ``StatusCatalog`` merges both sources so
    that legality and label lookups treat them uniformly.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Builtin and custom codes never collide; a custom status that reuses a
      builtin code is rejected when the catalog is built.
    - Inactive custom statuses are not valid targets.  Rows already sitting
      in a since-deactivated custom status still resolve for display.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Literal

from ops_kernel.exceptions import SettingsError, ValidationError


@dataclass(frozen=True)
class BuiltinStatus:
    """A status hardcoded in the workflow definition."""

    code: str
    label: str = ""
    kind: Literal["builtin"] = "builtin"

    def __str__(self) -> str:
        return self.code


@dataclass(frozen=True)
class CustomStatus:
    """An administrator-defined status (e.g. ``custom-1``)."""

    code: str
    label: str
    color: str = "#8884d8"
    is_active: bool = False
    kind: Literal["custom"] = "custom"

    def __str__(self) -> str:
        return self.code

    @classmethod
    def from_dict(cls, data: Mapping) -> CustomStatus:
        try:
            code = str(data["code"])
        except KeyError as exc:
            raise SettingsError("custom_statuses", str(exc), "missing key") from exc
        is_active = data.get("is_active", False)
        if not isinstance(is_active, bool):
            raise SettingsError("custom_statuses", code, f"is_active must be a boolean, got {is_active!r}")
        return cls(
            code=code,
            label=str(data.get("label") or code),
            color=str(data.get("color", "#8884d8")),
            is_active=is_active,
        )

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "label": self.label,
            "color": self.color,
            "is_active": self.is_active,
        }


WorkflowStatus = BuiltinStatus | CustomStatus


@dataclass(frozen=True)
class StatusCatalog:
    """
    Every status an entity type may hold, builtin and custom.

    Contract:
        Built per call from the workflow's builtin states plus the custom
        statuses in the freshly loaded settings.

    Guarantees:
        - ``resolve`` returns the tagged status or raises ``ValidationError``.
        - ``label`` honours alias overrides from settings first.
    """

    builtins: tuple[BuiltinStatus, ...]
    customs: tuple[CustomStatus, ...] = ()
    labels: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        builtin_codes = {s.code for s in self.builtins}
        clashes = sorted(c.code for c in self.customs if c.code in builtin_codes)
        if clashes:
            raise SettingsError(
                "custom_statuses", ",".join(clashes), "custom status reuses a builtin code"
            )

    @classmethod
    def build(
        cls,
        builtin_codes: Iterable[str],
        customs: Iterable[CustomStatus] = (),
        labels: Mapping[str, str] | None = None,
    ) -> StatusCatalog:
        labels = dict(labels or {})
        return cls(
            builtins=tuple(
                BuiltinStatus(code=code, label=labels.get(code, _humanize(code)))
                for code in builtin_codes
            ),
            customs=tuple(customs),
            labels=labels,
        )

    def _lookup(self, code: str) -> WorkflowStatus | None:
        for status in self.builtins:
            if status.code == code:
                return status
        for status in self.customs:
            if status.code == code:
                return status
        return None

    def resolve(self, code: str) -> WorkflowStatus:
        """Return the active status for ``code``."""
        status = self._lookup(code)
        if status is None:
            raise ValidationError("status", f"unknown status '{code}'")
        if isinstance(status, CustomStatus) and not status.is_active:
            raise ValidationError("status", f"custom status '{code}' is not active")
        return status

    def is_valid(self, code: str) -> bool:
        status = self._lookup(code)
        if status is None:
            return False
        return not isinstance(status, CustomStatus) or status.is_active

    def label(self, code: str) -> str:
        if code in self.labels:
            return self.labels[code]
        status = self._lookup(code)
        if status is None:
            return code
        return status.label or _humanize(code)

    def active_custom_codes(self) -> frozenset[str]:
        return frozenset(c.code for c in self.customs if c.is_active)

    def all_codes(self) -> tuple[str, ...]:
        return tuple(s.code for s in self.builtins) + tuple(c.code for c in self.customs)


def _humanize(code: str) -> str:
    return code.replace("-", " ").capitalize()
