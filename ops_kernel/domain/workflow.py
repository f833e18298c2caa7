"""
Canonical workflow types (``ops_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for status machines.  One ``WorkflowDefinition`` per
entity type (purchase requests, production orders) carries the states,
the legal transitions, and the per-target-status preconditions and
side-effects.  The transition engine in ``ops_kernel.services`` is generic
and only ever reads these definitions.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``WorkflowDefinition.states``.
* ``initial_state`` and every terminal state are members of ``states``.
* A transition with ``requires_setting`` is legal only while that settings
  toggle is on.
* Active custom statuses are reachable only from ``custom_entry_states``
  (or another custom status) and may only leave to ``custom_exit_states``
  (or another active custom status).
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ops_kernel.domain.entity import EntityFields
from ops_kernel.domain.settings import WorkflowSettings
from ops_kernel.exceptions import ValidationError


@dataclass(frozen=True)
class Transition:
    """A builtin edge of the status machine.

    Contract: frozen.  ``requires_setting`` names a boolean settings toggle
    that must be on for the edge to exist.
    """
    from_state: str
    to_state: str
    action: str
    requires_setting: str | None = None


@dataclass(frozen=True)
class TransitionPayload:
    """Optional fields a caller may send along with a target status."""
    notes: str | None = None
    delivered_quantity: float | None = None
    defective_quantity: float | None = None
    erp_package_number: str | None = None
    erp_ticket_number: str | None = None
    erp_order_number: str | None = None
    manual_supplier: str | None = None

    @classmethod
    def coerce(cls, value: TransitionPayload | Mapping[str, Any] | None) -> TransitionPayload:
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        unknown = set(value) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValidationError(sorted(unknown)[0], "not a transition payload field")
        return cls(**value)


@dataclass(frozen=True)
class TransitionContext:
    """Everything a precondition or side-effect may look at.

    ``entity`` is a read-only snapshot of the row taken before any change.
    """
    entity: Mapping[str, Any]
    current_status: str
    target_status: str
    payload: TransitionPayload
    actor: str
    settings: WorkflowSettings
    now: datetime


Precondition = Callable[[TransitionContext], None]
SideEffect = Callable[[TransitionContext], Mapping[str, Any]]


@dataclass(frozen=True, eq=False)
class WorkflowDefinition:
    """A status machine for one workflow entity type.

    Contract: frozen; ``transitions`` reference only states in ``states``.

    Guarantees:
        - ``legal_targets`` is the single source of truth for which target
          statuses are reachable; callers never decide legality themselves.
        - ``terminal_states`` are static and drive ``reopen`` eligibility.
          ``archived_states`` depends on the warehouse reception toggle.
    """
    name: str
    entity_type: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: frozenset[str]
    final_state: str
    fields: EntityFields
    approved_state: str = "approved"
    cancellation_request_state: str = "cancellation-request"
    unapproval_request_state: str = "unapproval-request"
    canceled_state: str = "canceled"
    warehouse_state: str = "received-in-warehouse"
    custom_entry_states: frozenset[str] = frozenset()
    custom_exit_states: frozenset[str] = frozenset()
    preconditions: Mapping[str, tuple[Precondition, ...]] = field(default_factory=dict)
    side_effects: Mapping[str, tuple[SideEffect, ...]] = field(default_factory=dict)
    description: str = ""

    def __post_init__(self) -> None:
        known = set(self.states)
        if self.initial_state not in known:
            raise ValueError(f"{self.name}: initial state '{self.initial_state}' not in states")
        missing = {s for t in self.transitions for s in (t.from_state, t.to_state)} - known
        missing |= set(self.terminal_states) - known
        if missing:
            raise ValueError(f"{self.name}: unknown states {sorted(missing)}")

    @property
    def cancel_states(self) -> frozenset[str]:
        return frozenset((self.cancellation_request_state, self.canceled_state))

    @property
    def snapshot_states(self) -> frozenset[str]:
        """Statuses that remember where the entity came from in ``previous_status``."""
        return self.cancel_states | {self.unapproval_request_state}

    @property
    def review_states(self) -> frozenset[str]:
        """Pending requests that an approver may reject back to ``previous_status``."""
        return frozenset((self.cancellation_request_state, self.unapproval_request_state))

    def transition_for(self, from_state: str, to_state: str) -> Transition | None:
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state:
                return t
        return None

    def legal_targets(
        self, from_status: str, settings: WorkflowSettings | None = None
    ) -> frozenset[str]:
        """Every status reachable in one step from ``from_status``."""
        targets = {
            t.to_state
            for t in self.transitions
            if t.from_state == from_status
            and (t.requires_setting is None or (settings is not None and settings.is_enabled(t.requires_setting)))
        }
        if settings is None:
            return frozenset(targets)

        custom_codes = {c.code for c in settings.custom_statuses}
        active = {c.code for c in settings.custom_statuses if c.is_active}
        if from_status in custom_codes:
            targets |= self.custom_exit_states
            targets |= active - {from_status}
        elif from_status in self.custom_entry_states:
            targets |= active
        return frozenset(targets)

    def is_terminal(self, status: str) -> bool:
        return status in self.terminal_states

    def archived_states(self, settings: WorkflowSettings) -> frozenset[str]:
        final = self.warehouse_state if settings.use_warehouse_reception else self.final_state
        return frozenset((final, self.canceled_state))

    def action_name(self, from_state: str, to_state: str) -> str:
        t = self.transition_for(from_state, to_state)
        return t.action if t is not None else f"set_{to_state.replace('-', '_')}"
