"""
ORM-Level Immutability Enforcement (Layer 1 of 2).

===============================================================================
WHY THIS EXISTS
===============================================================================

The history ledger is the permanent audit trail of every workflow entity.
Rows must never be edited or removed, and the identity and authorship
columns of an entity must not be rewritten after the fact.

  Layer 1: THIS FILE (ORM event listeners)
    - Catches modifications through Python/SQLAlchemy code
    - Fires BEFORE the SQL is sent to the database

  Layer 2: db/triggers.py (SQLite triggers)
    - Catches raw SQL and bulk UPDATE/DELETE statements
    - Fires AT the database level, independent of application code

===============================================================================
PROTECTED FIELDS
===============================================================================

Target                    | Rule
--------------------------|-----------------------------------------------
History rows              | No UPDATE, no DELETE, ever
Entity.consecutive        | Never changes once written
Entity.requested_by       | Never changes once written
Entity.approved_by        | Written once; never overwritten or cleared
Entity.reopened           | Sticky: True never goes back to False
Entity.has_been_modified  | Sticky: True never goes back to False
Entity rows               | No DELETE (terminal rows are the permanent record)

===============================================================================
USAGE
===============================================================================

    from ops_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event
from sqlalchemy.orm import Mapper
from sqlalchemy.orm.attributes import get_history

from ops_kernel.exceptions import ImmutabilityViolationError
from ops_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_WRITE_ONCE = ("consecutive", "requested_by")
_SET_ONCE = ("approved_by",)
_STICKY_FLAGS = ("reopened", "has_been_modified")

_registered = False


def _violation(target, operation: str, reason: str, field: str | None = None):
    entity_type = type(target).__name__
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "field": field,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_entity_update(mapper, connection, target):
    """Block rewrites of identity, authorship and sticky flag columns."""
    from ops_kernel.models.workflow import WorkflowEntityMixin

    if not isinstance(target, WorkflowEntityMixin):
        return

    for name in _WRITE_ONCE:
        hist = get_history(target, name)
        if hist.deleted and hist.deleted[0] is not None and hist.added:
            raise _violation(target, "UPDATE", f"'{name}' cannot be changed", name)

    for name in _SET_ONCE:
        hist = get_history(target, name)
        if hist.deleted and hist.deleted[0] is not None and hist.added:
            raise _violation(target, "UPDATE", f"'{name}' is already set", name)

    for name in _STICKY_FLAGS:
        hist = get_history(target, name)
        if hist.deleted and hist.deleted[0] is True and hist.added and not hist.added[0]:
            raise _violation(target, "UPDATE", f"'{name}' cannot be cleared", name)


def _check_entity_delete(mapper, connection, target):
    from ops_kernel.models.workflow import WorkflowEntityMixin

    if not isinstance(target, WorkflowEntityMixin):
        return
    raise _violation(target, "DELETE", "workflow entities are never deleted")


def _check_history_update(mapper, connection, target):
    from ops_kernel.models.workflow import HistoryEntryMixin

    if not isinstance(target, HistoryEntryMixin):
        return
    raise _violation(target, "UPDATE", "history entries are append-only")


def _check_history_delete(mapper, connection, target):
    from ops_kernel.models.workflow import HistoryEntryMixin

    if not isinstance(target, HistoryEntryMixin):
        return
    raise _violation(target, "DELETE", "history entries cannot be deleted")


_LISTENERS = (
    ("before_update", _check_entity_update),
    ("before_delete", _check_entity_delete),
    ("before_update", _check_history_update),
    ("before_delete", _check_history_delete),
)


def register_immutability_listeners() -> None:
    """
    Register all immutability enforcement event listeners.

    Listeners are attached to ``Mapper`` so they cover every mapped class,
    including domain models imported later.  Safe to call more than once.
    """
    global _registered
    if _registered:
        return
    for event_name, fn in _LISTENERS:
        event.listen(Mapper, event_name, fn)
    _registered = True
    logger.debug("immutability_listeners_registered")


def unregister_immutability_listeners() -> None:
    """Remove immutability enforcement event listeners.  FOR TESTING ONLY."""
    global _registered
    if not _registered:
        return
    for event_name, fn in _LISTENERS:
        if event.contains(Mapper, event_name, fn):
            event.remove(Mapper, event_name, fn)
    _registered = False
    logger.warning("immutability_listeners_unregistered")
