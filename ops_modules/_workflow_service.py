"""
Shared transaction and wiring helpers for workflow module services.

Used by ``ops_modules/requests/service.py`` and
``ops_modules/planner/service.py`` so each domain service only declares its
binding and its domain-specific extras.

Architecture: Modules layer.  Imports from ops_kernel and ops_config.

Invariants enforced
-------------------
* Each public mutating method owns the transaction boundary: ``commit`` on
  success, ``rollback`` on any exception.
* Storage failures (any ``SQLAlchemyError``) surface as ``PersistenceError``
  chained to the original; kernel errors pass through untouched.
* Notifications are published only after a successful commit, never for a
  rolled-back change.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, ClassVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ops_config import get_default_settings
from ops_kernel.db.immutability import register_immutability_listeners
from ops_kernel.domain.clock import Clock, SystemClock
from ops_kernel.domain.dtos import EntityFilter, EntityPage, HistoryEntry
from ops_kernel.domain.settings import WorkflowSettings
from ops_kernel.domain.status import StatusCatalog
from ops_kernel.domain.workflow import TransitionPayload
from ops_kernel.exceptions import OpsKernelError, PersistenceError
from ops_kernel.logging_config import get_logger
from ops_kernel.selectors.entity_selector import EntitySelector
from ops_kernel.services.binding import WorkflowBinding
from ops_kernel.services.entity_store import EntityStore
from ops_kernel.services.notifications import NotificationPublisher, UserLookup
from ops_kernel.services.settings_service import SettingsService
from ops_kernel.services.transition_engine import TransitionEngine

logger = get_logger("modules.workflow_service")


@contextmanager
def unit_of_work(session: Session, operation: str, **log_fields: Any) -> Iterator[None]:
    """Commit on success; roll back and translate storage errors on failure."""
    try:
        yield
        session.commit()
    except OpsKernelError as exc:
        session.rollback()
        logger.info(
            "unit_of_work_rejected",
            extra={"operation": operation, "error_code": exc.code, **log_fields},
        )
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(
            "unit_of_work_persistence_failed",
            extra={"operation": operation, **log_fields},
            exc_info=True,
        )
        raise PersistenceError(operation, str(exc)) from exc
    except Exception:
        session.rollback()
        logger.warning(
            "unit_of_work_rolled_back",
            extra={"operation": operation, **log_fields},
            exc_info=True,
        )
        raise


class WorkflowModuleService:
    """
    Facade over the kernel workflow services for one entity type.

    Contract
    --------
    Subclasses set ``binding``.  Every mutating method commits or rolls back
    before returning; read methods never write.

    Non-goals
    ---------
    * Authorization: callers have already checked that ``actor`` may act.
    * Notification delivery: handed to the injected publisher.
    """

    binding: ClassVar[WorkflowBinding]

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        publisher: NotificationPublisher | None = None,
        user_lookup: UserLookup | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._publisher = publisher
        self._store = EntityStore(session, self.binding, self._clock)
        self._engine = TransitionEngine(session, self.binding, self._clock, user_lookup)
        self._selector = EntitySelector(session, self.binding)
        self._settings = SettingsService(session, self.binding.scope)

    # ------------------------------------------------------------------
    # plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _status_change(self, operation: str, entity_id: int) -> Iterator[None]:
        self._engine.outbox.clear()
        try:
            with unit_of_work(self._session, operation, entity_id=entity_id):
                yield
        except Exception:
            self._engine.outbox.clear()
            raise
        self._flush_outbox()

    def _flush_outbox(self) -> None:
        pending = list(self._engine.outbox)
        self._engine.outbox.clear()
        if self._publisher is None:
            return
        for notification in pending:
            self._publisher.publish(notification)
            logger.info(
                "notification_published",
                extra={"target_user_id": str(notification.target_user_id), "link": notification.link},
            )

    # ------------------------------------------------------------------
    # settings
    # ------------------------------------------------------------------

    def initialize(self) -> list[str]:
        """Register the immutability listeners and seed any missing settings key."""
        register_immutability_listeners()
        defaults = get_default_settings(self.binding.scope)
        with unit_of_work(self._session, "initialize", scope=self.binding.scope):
            added = self._settings.seed_defaults(defaults)
        return added

    def get_settings(self) -> WorkflowSettings:
        return self._settings.load(self.binding.settings_cls)

    def save_settings(self, settings: WorkflowSettings) -> None:
        # Building the catalog rejects custom codes that clash with builtins
        StatusCatalog.build(
            self.binding.definition.states, settings.custom_statuses, settings.status_labels
        )
        with unit_of_work(self._session, "save_settings", scope=self.binding.scope):
            self._settings.save(settings)

    def status_catalog(self) -> StatusCatalog:
        settings = self.get_settings()
        return StatusCatalog.build(
            self.binding.definition.states, settings.custom_statuses, settings.status_labels
        )

    # ------------------------------------------------------------------
    # entities
    # ------------------------------------------------------------------

    def create(self, fields: dict[str, Any], created_by: str):
        with unit_of_work(self._session, "create", actor=created_by):
            entity = self._store.create(fields, created_by)
        return entity

    def get(self, entity_id: int):
        return self._store.get_by_id(entity_id)

    def list(self, criteria: EntityFilter | None = None) -> EntityPage:
        return self._selector.list(criteria)

    def history(self, entity_id: int) -> list[HistoryEntry]:
        return self._selector.history(entity_id)

    def update_details(self, entity_id: int, fields: dict[str, Any], updated_by: str):
        with unit_of_work(self._session, "update_details", entity_id=entity_id):
            entity = self._store.update_details(entity_id, fields, updated_by)
        return entity

    def add_note(self, entity_id: int, notes: str, actor: str):
        with unit_of_work(self._session, "add_note", entity_id=entity_id):
            entity = self._store.add_note(entity_id, notes, actor)
        return entity

    # ------------------------------------------------------------------
    # status changes
    # ------------------------------------------------------------------

    def legal_targets(self, entity_id: int) -> list[str]:
        return self._engine.legal_targets(entity_id)

    def transition(
        self,
        entity_id: int,
        target_status: str,
        payload: TransitionPayload | dict[str, Any] | None = None,
        actor: str | None = None,
    ):
        with self._status_change("transition", entity_id):
            entity = self._engine.transition(entity_id, target_status, payload, actor)
        return entity

    def reopen(self, entity_id: int, actor: str, notes: str | None = None):
        with self._status_change("reopen", entity_id):
            entity = self._engine.reopen(entity_id, actor, notes)
        return entity

    def reject_cancellation(self, entity_id: int, actor: str, notes: str | None = None):
        with self._status_change("reject_cancellation", entity_id):
            entity = self._engine.reject_cancellation(entity_id, actor, notes)
        return entity

    def reject_unapproval(self, entity_id: int, actor: str, notes: str | None = None):
        with self._status_change("reject_unapproval", entity_id):
            entity = self._engine.reject_unapproval(entity_id, actor, notes)
        return entity
