"""
Rule library for workflow transitions.

Responsibility:
    Small pure functions that workflow definitions attach to target
    statuses.  Preconditions raise ``ValidationError`` and return nothing;
    side-effects return the column updates they want applied.  The
    transition engine applies the updates, so no rule ever touches a row.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - ``approved_by`` is only ever proposed while it is still unset.
    - ``previous_status`` is non-null only while the entity sits in
      ``cancellation-request``, ``canceled`` or ``unapproval-request``.
"""

from typing import Any

from ops_kernel.domain.workflow import TransitionContext, WorkflowDefinition
from ops_kernel.exceptions import ValidationError


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _non_negative_number(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(name, f"a numeric value is required, got {value!r}")
    if value < 0:
        raise ValidationError(name, "must not be negative")


# -----------------------------------------------------------------------------
# Preconditions
# -----------------------------------------------------------------------------


def require_delivered_quantity(ctx: TransitionContext) -> None:
    _non_negative_number("delivered_quantity", ctx.payload.delivered_quantity)
    if ctx.payload.defective_quantity is not None:
        _non_negative_number("defective_quantity", ctx.payload.defective_quantity)


def require_package_refs(ctx: TransitionContext) -> None:
    if _blank(ctx.payload.erp_package_number):
        raise ValidationError("erp_package_number", "package reference is required")
    if _blank(ctx.payload.erp_ticket_number):
        raise ValidationError("erp_ticket_number", "ticket reference is required")


def require_notes(ctx: TransitionContext) -> None:
    if _blank(ctx.payload.notes):
        raise ValidationError("notes", f"a reason is required for '{ctx.target_status}'")


def require_machine_assignment(ctx: TransitionContext) -> None:
    if ctx.settings.require_machine_for_start and _blank(ctx.entity.get("machine_id")):
        raise ValidationError("machine_id", "a machine must be assigned before starting")


def require_shift_assignment(ctx: TransitionContext) -> None:
    if ctx.settings.require_shift_for_completion and _blank(ctx.entity.get("shift_id")):
        raise ValidationError("shift_id", "a shift must be assigned before completing")


# -----------------------------------------------------------------------------
# Side-effects
# -----------------------------------------------------------------------------


def stamp_approver(ctx: TransitionContext) -> dict[str, Any]:
    if ctx.entity.get("approved_by"):
        return {}
    return {"approved_by": ctx.actor}


def stamp_warehouse_receiver(ctx: TransitionContext) -> dict[str, Any]:
    return {"received_in_warehouse_by": ctx.actor}


def stamp_received_date(ctx: TransitionContext) -> dict[str, Any]:
    return {"received_date": ctx.now}


def record_delivery(ctx: TransitionContext) -> dict[str, Any]:
    updates: dict[str, Any] = {"delivered_quantity": ctx.payload.delivered_quantity}
    if ctx.payload.defective_quantity is not None:
        updates["defective_quantity"] = ctx.payload.defective_quantity
    return updates


def record_package_refs(ctx: TransitionContext) -> dict[str, Any]:
    return {
        "erp_package_number": ctx.payload.erp_package_number.strip(),
        "erp_ticket_number": ctx.payload.erp_ticket_number.strip(),
    }


def record_purchase_refs(ctx: TransitionContext) -> dict[str, Any]:
    updates: dict[str, Any] = {}
    if not _blank(ctx.payload.erp_order_number):
        updates["erp_order_number"] = ctx.payload.erp_order_number
    if not _blank(ctx.payload.manual_supplier):
        updates["manual_supplier"] = ctx.payload.manual_supplier
    return updates


# -----------------------------------------------------------------------------
# Reversal bookkeeping
# -----------------------------------------------------------------------------


def compute_previous_status(
    current: str,
    target: str,
    previous: str | None,
    definition: WorkflowDefinition,
) -> str | None:
    """
    Value of ``previous_status`` after moving from ``current`` to ``target``.

    Entering the cancel branch or an unapproval request from outside
    snapshots ``current``.  Moving within the cancel branch
    (cancellation-request -> canceled) keeps the snapshot.  Any other move,
    including a granted unapproval back to pending, clears it.
    """
    snapshot_states = definition.snapshot_states
    if target in snapshot_states:
        if current in snapshot_states:
            return previous
        return current
    return None
