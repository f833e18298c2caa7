"""
Typed Exception Hierarchy for the Operations Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from OpsKernelError:

    OpsKernelError (base)
    |
    +-- ValidationError
    |
    +-- NotFoundError
    |   +-- EntityNotFoundError
    |   +-- LocationNotFoundError
    |
    +-- WorkflowError
    |   +-- InvalidTransitionError
    |   +-- InvalidStateError
    |
    +-- PersistenceError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- SettingsError
    |
    +-- LockError
        +-- LocationLockedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                    | When Raised
----------------|-------------------------|------------------------------------------
Validation      | VALIDATION_FAILED       | Payload/fields missing or out of range
----------------|-------------------------|------------------------------------------
Lookup          | ENTITY_NOT_FOUND        | Request/order id doesn't exist
                | LOCATION_NOT_FOUND      | Warehouse location id doesn't exist
----------------|-------------------------|------------------------------------------
Workflow        | INVALID_TRANSITION      | Target status unreachable from current
                | INVALID_STATE           | Stored row is inconsistent for the action
----------------|-------------------------|------------------------------------------
Persistence     | PERSISTENCE_FAILED      | Storage failure; transaction rolled back
----------------|-------------------------|------------------------------------------
Immutability    | IMMUTABILITY_VIOLATION  | History row or write-once field modified
----------------|-------------------------|------------------------------------------
Settings        | SETTINGS_INVALID        | Stored settings value can't be decoded
----------------|-------------------------|------------------------------------------
Locks           | LOCATION_LOCKED         | Wizard lock held by another session

===============================================================================
HANDLING PATTERNS
===============================================================================

Catch by type, read structured attributes, never parse messages:

    try:
        service.transition(order_id, "completed", payload, actor="ana")
    except ValidationError as e:
        show_toast(e.field, e.reason)
    except InvalidTransitionError as e:
        show_toast(f"{e.from_status} -> {e.to_status} not allowed")
    except PersistenceError:
        show_toast("Storage failure, nothing was saved")

Validation and transition-legality errors are raised before any write.
PersistenceError always means the whole unit of work was rolled back.
"""


class OpsKernelError(Exception):
    """
    Base exception for all operations kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "OPS_KERNEL_ERROR"


# Validation


class ValidationError(OpsKernelError):
    """Payload or field values fail the checks required by an operation."""

    code: str = "VALIDATION_FAILED"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid '{field}': {reason}")


# Lookup


class NotFoundError(OpsKernelError):
    """Base exception for unknown identifiers."""

    code: str = "NOT_FOUND"


class EntityNotFoundError(NotFoundError):
    """Workflow entity (request/order) with given id was not found."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: int):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class LocationNotFoundError(NotFoundError):
    """Warehouse location with given id was not found."""

    code: str = "LOCATION_NOT_FOUND"

    def __init__(self, location_ids: list[int]):
        self.location_ids = list(location_ids)
        super().__init__(f"Warehouse location(s) not found: {self.location_ids}")


# Workflow


class WorkflowError(OpsKernelError):
    """Base exception for status machine errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidTransitionError(WorkflowError):
    """Target status is not reachable from the entity's current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        from_status: str,
        to_status: str,
        reason: str | None = None,
    ):
        self.entity_type = entity_type
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        message = f"{entity_type}: cannot move from '{from_status}' to '{to_status}'"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class InvalidStateError(WorkflowError):
    """The stored entity is inconsistent with the requested action."""

    code: str = "INVALID_STATE"

    def __init__(self, entity_type: str, entity_id: int, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"{entity_type} {entity_id} is in an invalid state: {reason}")


# Persistence


class PersistenceError(OpsKernelError):
    """Underlying storage failed; the unit of work was rolled back."""

    code: str = "PERSISTENCE_FAILED"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage failure during {operation}: {detail}")


# Immutability


class ImmutabilityError(OpsKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    History entries are append-only; consecutive codes, creators and
    approvers are write-once.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Settings


class SettingsError(OpsKernelError):
    """Stored settings value cannot be decoded or has the wrong shape."""

    code: str = "SETTINGS_INVALID"

    def __init__(self, scope: str, key: str, reason: str):
        self.scope = scope
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid setting {scope}.{key}: {reason}")


# Locks


class LockError(OpsKernelError):
    """Base exception for advisory wizard locks."""

    code: str = "LOCK_ERROR"


class LocationLockedError(LockError):
    """One or more locations are already locked by another session."""

    code: str = "LOCATION_LOCKED"

    def __init__(self, conflicts: list[tuple[int, str]]):
        # (location_id, locked_by)
        self.conflicts = list(conflicts)
        holders = ", ".join(f"{loc_id} by {who}" for loc_id, who in self.conflicts)
        super().__init__(f"Location(s) already locked: {holders}")
