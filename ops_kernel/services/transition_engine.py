"""
TransitionEngine -- the only path that changes a workflow entity's status.

Responsibility:
    Validates and applies status changes for any workflow entity type,
    driven entirely by the ``WorkflowDefinition`` in the binding:

        load row -> resolve target -> check legality -> run preconditions
        -> collect side-effects -> set status/previous_status -> append
        one history row -> flush

    Also implements the escape hatches (``reopen`` from a terminal status,
    ``reject_cancellation`` and ``reject_unapproval`` back to the snapshotted
    status) and non-status detail patches (priority, machine, shift,
    schedule).

Architecture position:
    Kernel > Services -- imperative shell around the pure rules in
    ``ops_kernel.domain``.  Module services own the transaction; the engine
    only flushes, so the entity update and its history row commit or roll
    back together.

Invariants enforced:
    - Legality comes from ``WorkflowDefinition.legal_targets`` and the
      freshly loaded settings, never from the caller.
    - All validation happens before the first write.
    - Every successful status change appends exactly one history row whose
      status equals the entity's new status.
    - ``previous_status`` is non-null only while the entity is in the
      cancel branch or awaiting an unapproval.  A null snapshot at reject
      time is an error, not a guess.
    - ``reopened`` and ``has_been_modified`` only ever go from False to True.

Failure modes:
    - EntityNotFoundError: unknown entity id.
    - InvalidTransitionError: target unknown, inactive or unreachable.
    - ValidationError: a precondition or detail check failed.
    - InvalidStateError: cancellation or unapproval request with no stored
      previous status.
"""

from datetime import date, datetime
from typing import Any

from ops_kernel.domain.clock import Clock, SystemClock
from ops_kernel.domain.dtos import Notification
from ops_kernel.domain.entity import PRIORITIES
from ops_kernel.domain.rules import compute_previous_status
from ops_kernel.domain.settings import WorkflowSettings
from ops_kernel.domain.status import StatusCatalog
from ops_kernel.domain.workflow import TransitionContext, TransitionPayload
from ops_kernel.exceptions import (
    EntityNotFoundError,
    InvalidStateError,
    InvalidTransitionError,
    ValidationError,
)
from ops_kernel.logging_config import LogContext, get_logger
from ops_kernel.services.base import BaseService
from ops_kernel.services.binding import WorkflowBinding
from ops_kernel.services.entity_store import _require_actor, describe_changes, is_past_approval
from ops_kernel.services.history_ledger import HistoryLedger
from ops_kernel.services.notifications import UserLookup, status_change_notification
from ops_kernel.services.settings_service import SettingsService

logger = get_logger("services.transition_engine")

DETAIL_FIELDS = ("priority", "machine_id", "shift_id", "scheduled_start_date", "scheduled_end_date")
# Detail changes that count as a modification once an entity is approved
MODIFICATION_DETAILS = frozenset({"machine_id", "scheduled_start_date", "scheduled_end_date"})


class TransitionEngine(BaseService):
    """
    Generic status machine executor.

    Contract:
        One engine per session and binding.  Status notifications produced
        by successful calls collect in ``outbox``; the owner publishes them
        after its commit and clears the list.

    Non-goals:
        - Does NOT check whether the actor is permitted to request a change.
        - Does NOT call ``session.commit()``.
        - Does NOT detect concurrent writers (last writer wins).
    """

    def __init__(
        self,
        session,
        binding: WorkflowBinding,
        clock: Clock | None = None,
        user_lookup: UserLookup | None = None,
    ):
        super().__init__(session)
        self.binding = binding
        self.definition = binding.definition
        self._clock = clock or SystemClock()
        self._settings = SettingsService(session, binding.scope)
        self._user_lookup = user_lookup
        self.history = HistoryLedger(session, binding.entity_model, binding.history_model, self._clock)
        self.outbox: list[Notification] = []

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _load(self, entity_id: int):
        row = self.session.get(self.binding.entity_model, entity_id)
        if row is None:
            raise EntityNotFoundError(self.binding.entity_type, entity_id)
        return row

    def _load_settings(self) -> WorkflowSettings:
        return self._settings.load(self.binding.settings_cls)

    def _catalog(self, settings: WorkflowSettings) -> StatusCatalog:
        return StatusCatalog.build(
            self.definition.states, settings.custom_statuses, settings.status_labels
        )

    def _record_status_change(self, row, status: str, actor: str, notes: str | None, settings) -> None:
        row.status = status
        row.last_status_update_by = actor
        row.last_status_update_notes = notes
        self.session.flush()
        self.history.append(row.id, status, actor, notes)

        notification = status_change_notification(
            consecutive=row.consecutive,
            creator=row.requested_by,
            actor=actor,
            status_label=self._catalog(settings).label(status),
            display_name=self.binding.display_name or self.binding.entity_type,
            link_path=self.binding.link_path,
            user_lookup=self._user_lookup,
        )
        if notification is not None:
            self.outbox.append(notification)

    # ------------------------------------------------------------------
    # status changes
    # ------------------------------------------------------------------

    def legal_targets(self, entity_id: int) -> list[str]:
        """Statuses a UI may offer for this entity, in definition order."""
        row = self._load(entity_id)
        settings = self._load_settings()
        catalog = self._catalog(settings)
        targets = self.definition.legal_targets(row.status, settings)
        return [code for code in catalog.all_codes() if code in targets and catalog.is_valid(code)]

    def transition(
        self,
        entity_id: int,
        target_status: str,
        payload: TransitionPayload | dict[str, Any] | None = None,
        actor: str | None = None,
    ):
        actor = _require_actor("actor", actor)
        payload = TransitionPayload.coerce(payload)
        row = self._load(entity_id)
        settings = self._load_settings()
        current = row.status
        entity_type = self.binding.entity_type

        with LogContext.bind(actor=actor, entity_type=entity_type, entity_id=row.id):
            catalog = self._catalog(settings)
            if not catalog.is_valid(target_status):
                raise InvalidTransitionError(
                    entity_type, current, target_status, "unknown or inactive status"
                )
            if target_status not in self.definition.legal_targets(current, settings):
                logger.info(
                    "workflow_transition_rejected",
                    extra={"from_status": current, "to_status": target_status},
                )
                raise InvalidTransitionError(entity_type, current, target_status)

            ctx = TransitionContext(
                entity=row.snapshot(),
                current_status=current,
                target_status=target_status,
                payload=payload,
                actor=actor,
                settings=settings,
                now=self._clock.now(),
            )
            for check in self.definition.preconditions.get(target_status, ()):
                check(ctx)

            updates: dict[str, Any] = {}
            for effect in self.definition.side_effects.get(target_status, ()):
                updates.update(effect(ctx))
            updates["previous_status"] = compute_previous_status(
                current, target_status, row.previous_status, self.definition
            )

            for name, value in updates.items():
                setattr(row, name, value)
            self._record_status_change(row, target_status, actor, payload.notes, settings)

            logger.info(
                "workflow_transition",
                extra={
                    "action": self.definition.action_name(current, target_status),
                    "from_status": current,
                    "to_status": target_status,
                    "consecutive": row.consecutive,
                },
            )
        return row.to_dto()

    def reopen(self, entity_id: int, actor: str, notes: str | None = None):
        """Send a terminal entity back to the initial status."""
        actor = _require_actor("actor", actor)
        row = self._load(entity_id)
        initial = self.definition.initial_state
        if not self.definition.is_terminal(row.status):
            raise InvalidTransitionError(
                self.binding.entity_type, row.status, initial, "only terminal entities can be reopened"
            )

        settings = self._load_settings()
        current = row.status
        with LogContext.bind(actor=actor, entity_type=self.binding.entity_type, entity_id=row.id):
            row.reopened = True
            row.previous_status = None
            history_notes = f"reopened: {notes}" if notes else "reopened"
            self._record_status_change(row, initial, actor, history_notes, settings)
            logger.info(
                "workflow_entity_reopened",
                extra={"from_status": current, "consecutive": row.consecutive},
            )
        return row.to_dto()

    def _reject_review(self, entity_id: int, actor: str, notes: str | None, review_state: str):
        """Restore the status snapshotted when ``review_state`` was entered."""
        actor = _require_actor("actor", actor)
        row = self._load(entity_id)
        if row.status != review_state:
            raise InvalidTransitionError(
                self.binding.entity_type,
                row.status,
                row.previous_status or "previous status",
                f"only '{review_state}' can be rejected",
            )
        restored = row.previous_status
        if not restored:
            logger.error(
                "workflow_previous_status_missing",
                extra={"entity_id": row.id, "consecutive": row.consecutive, "review_state": review_state},
            )
            raise InvalidStateError(
                self.binding.entity_type, row.id, "no previous status recorded to restore"
            )

        settings = self._load_settings()
        with LogContext.bind(actor=actor, entity_type=self.binding.entity_type, entity_id=row.id):
            row.previous_status = None
            self._record_status_change(row, restored, actor, notes, settings)
            logger.info(
                "workflow_review_rejected",
                extra={
                    "review_state": review_state,
                    "restored_status": restored,
                    "consecutive": row.consecutive,
                },
            )
        return row.to_dto()

    def reject_cancellation(self, entity_id: int, actor: str, notes: str | None = None):
        """Turn down a cancellation request; the entity resumes its prior status."""
        return self._reject_review(
            entity_id, actor, notes, self.definition.cancellation_request_state
        )

    def reject_unapproval(self, entity_id: int, actor: str, notes: str | None = None):
        """Turn down an unapproval request; the entity stays approved."""
        return self._reject_review(
            entity_id, actor, notes, self.definition.unapproval_request_state
        )

    # ------------------------------------------------------------------
    # detail patches
    # ------------------------------------------------------------------

    def _clean_detail(self, patch: dict[str, Any], settings: WorkflowSettings) -> dict[str, Any]:
        model = self.binding.entity_model
        cleaned: dict[str, Any] = {}
        for name, value in patch.items():
            if name not in DETAIL_FIELDS or not hasattr(model, name):
                raise ValidationError(name, f"is not a {self.binding.entity_type} detail field")
            if name == "priority":
                if value not in PRIORITIES:
                    raise ValidationError(name, f"must be one of {list(PRIORITIES)}")
            elif name == "machine_id":
                if value is not None and value not in settings.machine_ids():
                    raise ValidationError(name, f"unknown machine '{value}'")
            elif name == "shift_id":
                if value is not None and value not in settings.shift_ids():
                    raise ValidationError(name, f"unknown shift '{value}'")
            elif isinstance(value, datetime):
                value = value.date()
            elif value is not None and not isinstance(value, date):
                try:
                    value = date.fromisoformat(str(value)[:10])
                except ValueError as exc:
                    raise ValidationError(name, f"not an ISO date: {value!r}") from exc
            cleaned[name] = value
        return cleaned

    @staticmethod
    def _describe_details(changes: dict[str, tuple[Any, Any]], settings: WorkflowSettings) -> str:
        """Render machine and shift ids by name, under the configured label."""
        names = {
            "machine_id": ({m.id: m.name for m in settings.machines}, getattr(settings, "assignment_label", "") or "machine"),
            "shift_id": ({s.id: s.name for s in settings.shifts}, "shift"),
        }
        rendered: dict[str, tuple[Any, Any]] = {}
        for name, (old, new) in changes.items():
            if name in names:
                lookup, label = names[name]
                rendered[label] = (lookup.get(old, old), lookup.get(new, new))
            else:
                rendered[name] = (old, new)
        return describe_changes(rendered)

    def update_detail(self, entity_id: int, patch: dict[str, Any], actor: str):
        """Apply a priority/assignment/schedule patch without changing status."""
        actor = _require_actor("actor", actor)
        row = self._load(entity_id)
        settings = self._load_settings()
        values = self._clean_detail(patch, settings)

        start = values.get("scheduled_start_date", getattr(row, "scheduled_start_date", None))
        end = values.get("scheduled_end_date", getattr(row, "scheduled_end_date", None))
        if start is not None and end is not None and start > end:
            raise ValidationError("scheduled_end_date", "must not be before the start date")

        changes = {
            name: (getattr(row, name), value)
            for name, value in values.items()
            if getattr(row, name) != value
        }
        if not changes:
            return row.to_dto()

        flag_modified = bool(MODIFICATION_DETAILS & set(changes)) and is_past_approval(row, self.binding)
        with LogContext.bind(actor=actor, entity_type=self.binding.entity_type, entity_id=row.id):
            for name, (_, new) in changes.items():
                setattr(row, name, new)
            row.last_modified_by = actor
            row.last_modified_at = self._clock.now()
            if flag_modified:
                row.has_been_modified = True
            self.session.flush()
            self.history.append(
                row.id, row.status, actor, f"details updated: {self._describe_details(changes, settings)}"
            )
            logger.info(
                "workflow_details_updated",
                extra={"fields": sorted(changes), "has_been_modified": row.has_been_modified},
            )
        return row.to_dto()
