"""
EntityStore -- durable storage and point lookups for workflow entities.

Responsibility:
    Creates entities (consecutive code, initial status, first history row),
    loads them by id, applies non-status detail edits with an edit trail,
    and records free-text notes.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Wrapped by the module services in ``ops_modules``, which own the
    transaction.  Listing is delegated to
    ``ops_kernel.selectors.entity_selector.EntitySelector``.

Invariants enforced:
    - Required subject fields and ``quantity > 0`` are validated before the
      sequence counter is touched, so bad input never consumes a number.
    - Detail edits never touch ``status`` or any audit column.
    - Every edit that changes something writes one history row with the
      current status and an ``edited: ...`` description, so no edit is lost
      from the audit trail.
    - ``has_been_modified`` is raised (never lowered) when a tracked field
      changes after approval.

Failure modes:
    - ValidationError for unknown, protected, missing or out-of-range fields.
    - EntityNotFoundError for unknown ids.
"""

from typing import Any

from ops_kernel.domain.clock import Clock, SystemClock
from ops_kernel.domain.dtos import EntityFilter, EntityPage
from ops_kernel.domain.entity import PROTECTED_FIELDS
from ops_kernel.exceptions import EntityNotFoundError, ValidationError
from ops_kernel.logging_config import LogContext, get_logger
from ops_kernel.services.base import BaseService
from ops_kernel.services.binding import WorkflowBinding
from ops_kernel.services.history_ledger import HistoryLedger
from ops_kernel.services.sequence_service import SequenceService, format_code
from ops_kernel.services.settings_service import SettingsService

logger = get_logger("services.entity_store")


def _require_actor(name: str, value: str | None) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(name, "is required")
    return str(value).strip()


def _render(value: Any) -> str:
    if value is None:
        return ""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def describe_changes(changes: dict[str, tuple[Any, Any]]) -> str:
    """``quantity '10' -> '12'; notes '' -> 'rush'``."""
    return "; ".join(
        f"{name} '{_render(old)}' -> '{_render(new)}'" for name, (old, new) in changes.items()
    )


def is_past_approval(row, binding: WorkflowBinding) -> bool:
    return bool(row.approved_by) and row.status != binding.definition.initial_state


class EntityStore(BaseService):
    """
    Create, read and edit workflow entities of one type.

    Non-goals:
        - Does NOT change status; see TransitionEngine.
        - Does NOT call ``session.commit()``.
    """

    def __init__(self, session, binding: WorkflowBinding, clock: Clock | None = None):
        super().__init__(session)
        self.binding = binding
        self._clock = clock or SystemClock()
        self._settings = SettingsService(session, binding.scope)
        self._sequence = SequenceService(session)
        self.history = HistoryLedger(session, binding.entity_model, binding.history_model, self._clock)

    def _load(self, entity_id: int):
        row = self.session.get(self.binding.entity_model, entity_id)
        if row is None:
            raise EntityNotFoundError(self.binding.entity_type, entity_id)
        return row

    def _clean(self, fields: dict[str, Any], allowed: frozenset[str]) -> dict[str, Any]:
        schema = self.binding.fields
        cleaned: dict[str, Any] = {}
        for name, value in fields.items():
            if name in PROTECTED_FIELDS:
                raise ValidationError(name, "is managed by the workflow and cannot be set directly")
            if name not in allowed:
                raise ValidationError(name, f"is not a {self.binding.entity_type} field")
            if name in schema.required and value is None:
                raise ValidationError(name, "is required")
            cleaned[name] = schema.coerce(name, value)
        return cleaned

    def create(self, fields: dict[str, Any], created_by: str):
        """
        Persist a new entity in the initial status.

        Postconditions:
            - ``consecutive`` = settings prefix + 5-digit next number.
            - Exactly one history row (status=initial, notes="created").
        """
        created_by = _require_actor("created_by", created_by)
        schema = self.binding.fields
        values = self._clean(fields, schema.creatable())
        schema.check_required(values)

        settings = self._settings.load(self.binding.settings_cls)
        number = self._sequence.next_value(self.binding.scope)
        initial = self.binding.definition.initial_state

        values.setdefault("priority", "medium")
        row = self.binding.entity_model(
            consecutive=format_code(settings.prefix, number),
            status=initial,
            request_date=self._clock.now(),
            requested_by=created_by,
            reopened=False,
            has_been_modified=False,
            **values,
        )
        self.session.add(row)
        self.session.flush()

        with LogContext.bind(actor=created_by, entity_type=self.binding.entity_type, entity_id=row.id):
            self.history.append(row.id, initial, created_by, "created")
            logger.info(
                "workflow_entity_created",
                extra={"consecutive": row.consecutive, "status": initial},
            )
        return row.to_dto()

    def get_by_id(self, entity_id: int):
        return self._load(entity_id).to_dto()

    def update_details(self, entity_id: int, fields: dict[str, Any], updated_by: str):
        """
        Edit non-status subject fields.

        An edit that changes nothing writes nothing and returns the entity
        unchanged.
        """
        updated_by = _require_actor("updated_by", updated_by)
        values = self._clean(fields, self.binding.fields.editable)
        row = self._load(entity_id)

        changes = {
            name: (getattr(row, name), value)
            for name, value in values.items()
            if getattr(row, name) != value
        }
        if not changes:
            return row.to_dto()

        settings = self._settings.load(self.binding.settings_cls)
        tracked = set(settings.fields_to_track_changes) & set(changes)
        flag_modified = bool(tracked) and is_past_approval(row, self.binding)

        for name, (_, new) in changes.items():
            setattr(row, name, new)
        row.last_modified_by = updated_by
        row.last_modified_at = self._clock.now()
        if flag_modified:
            row.has_been_modified = True
        self.session.flush()

        with LogContext.bind(actor=updated_by, entity_type=self.binding.entity_type, entity_id=row.id):
            self.history.append(row.id, row.status, updated_by, f"edited: {describe_changes(changes)}")
            logger.info(
                "workflow_entity_edited",
                extra={
                    "fields": sorted(changes),
                    "tracked_fields": sorted(tracked),
                    "has_been_modified": row.has_been_modified,
                },
            )
        return row.to_dto()

    def add_note(self, entity_id: int, notes: str, actor: str):
        """Record a note against the current status without changing it."""
        actor = _require_actor("actor", actor)
        if notes is None or not str(notes).strip():
            raise ValidationError("notes", "a note cannot be empty")
        row = self._load(entity_id)

        row.last_status_update_by = actor
        row.last_status_update_notes = notes
        self.session.flush()

        with LogContext.bind(actor=actor, entity_type=self.binding.entity_type, entity_id=row.id):
            self.history.append(row.id, row.status, actor, notes)
            logger.info("workflow_note_added", extra={"status": row.status})
        return row.to_dto()

    def list(self, criteria: EntityFilter | None = None) -> EntityPage:
        from ops_kernel.selectors.entity_selector import EntitySelector

        return EntitySelector(self.session, self.binding).list(criteria or EntityFilter())
