"""
HistoryLedger -- append-only audit trail per workflow entity.

Responsibility:
    Appends one history row per status change, creation, edit or note, and
    reads an entity's trail back newest first.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by EntityStore and TransitionEngine inside their unit of work.

Invariants enforced:
    - There is no update or delete API.  Rows written here are further
      protected by the ORM listeners (db/immutability.py) and SQLite
      triggers (db/triggers.py).
    - Timestamps come from the injected Clock, never from the caller.
    - Reads order by timestamp desc with id desc as the tiebreak, so rows
      written within the same clock tick still come back newest first.

Failure modes:
    - EntityNotFoundError when appending to an unknown entity id.
"""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ops_kernel.domain.clock import Clock, SystemClock
from ops_kernel.domain.dtos import HistoryEntry
from ops_kernel.exceptions import EntityNotFoundError
from ops_kernel.logging_config import get_logger
from ops_kernel.services.base import BaseService

logger = get_logger("services.history")


class HistoryLedger(BaseService):
    """
    Append and read history rows for one entity type.

    Args:
        session: Caller's session; the ledger only flushes.
        entity_model: Mapped class of the owning entity table.
        history_model: Mapped class of the history table.
        clock: Time source for row timestamps.
    """

    def __init__(self, session: Session, entity_model, history_model, clock: Clock | None = None):
        super().__init__(session)
        self._entity_model = entity_model
        self._history_model = history_model
        self._clock = clock or SystemClock()

    def append(
        self,
        entity_id: int,
        status: str,
        actor: str,
        notes: str | None = None,
    ) -> HistoryEntry:
        if self.session.get(self._entity_model, entity_id) is None:
            raise EntityNotFoundError(self._entity_model.__entity_type__, entity_id)

        row = self._history_model(
            entity_id=entity_id,
            timestamp=self._clock.now(),
            status=status,
            updated_by=actor,
            notes=notes,
        )
        self.session.add(row)
        self.session.flush()

        logger.info(
            "history_appended",
            extra={
                "entity_type": self._entity_model.__entity_type__,
                "entity_id": entity_id,
                "status": status,
                "actor": actor,
            },
        )
        return row.to_dto()

    def list_for_entity(self, entity_id: int) -> list[HistoryEntry]:
        model = self._history_model
        rows = self.session.execute(
            select(model)
            .where(model.entity_id == entity_id)
            .order_by(model.timestamp.desc(), model.id.desc())
        ).scalars()
        return [row.to_dto() for row in rows]

    def count_for_entity(self, entity_id: int) -> int:
        model = self._history_model
        return self.session.execute(
            select(func.count()).select_from(model).where(model.entity_id == entity_id)
        ).scalar_one()
