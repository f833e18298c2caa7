"""
SequenceService -- monotonic consecutive-code allocation.

Responsibility:
    Hands out the next number for a workflow scope (``requests``,
    ``planner``) from the ``next_number`` row of ``workflow_settings`` and
    formats it as a consecutive code (``SC-00001``).

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by EntityStore.create.

Invariants enforced:
    - Read-increment-write on the single counter row; values are strictly
      increasing per scope.  ``MAX(consecutive) + 1`` is never used.
    - The increment is flushed inside the caller's transaction.  A rollback
      returns the number together with the entity that would have used it,
      so no code is ever observable twice.
    - ``reset`` only moves the counter forward.

Failure modes:
    - SettingsError if the stored counter is not a positive integer.
    - ValidationError if ``reset`` would move the counter backwards.

Audit relevance:
    Every allocation is logged at DEBUG with scope and value.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from ops_kernel.domain.settings import SEQUENCE_KEY
from ops_kernel.exceptions import SettingsError, ValidationError
from ops_kernel.logging_config import get_logger
from ops_kernel.models.settings import WorkflowSettingRecord

logger = get_logger("services.sequence")

CODE_WIDTH = 5


def format_code(prefix: str, number: int) -> str:
    """``format_code("SC-", 7) -> "SC-00007"``."""
    return f"{prefix}{number:0{CODE_WIDTH}d}"


class SequenceService:
    """
    Service for allocating consecutive numbers.

    Contract:
        Accepts a settings scope and returns the next strictly-monotonic
        integer for it.  The first value for a fresh scope is 1.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT guard against concurrent writers beyond what the
          database transaction provides.
    """

    def __init__(self, session: Session):
        self._session = session

    def _counter(self, scope: str) -> WorkflowSettingRecord | None:
        return self._session.execute(
            select(WorkflowSettingRecord)
            .where(
                WorkflowSettingRecord.scope == scope,
                WorkflowSettingRecord.key == SEQUENCE_KEY,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    @staticmethod
    def _stored(scope: str, counter: WorkflowSettingRecord) -> int:
        value = counter.value
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise SettingsError(scope, SEQUENCE_KEY, f"not a positive integer: {value!r}")
        return value

    def next_value(self, scope: str) -> int:
        """
        Allocate and return the next number for ``scope``.

        Postconditions:
            - The returned value is strictly greater than any value
              previously returned for this scope.
            - The counter row holds ``value + 1`` (flushed, not committed).
        """
        counter = self._counter(scope)
        if counter is None:
            counter = WorkflowSettingRecord(scope=scope, key=SEQUENCE_KEY, value=1)
            self._session.add(counter)

        value = self._stored(scope, counter)
        counter.value = value + 1
        self._session.flush()
        logger.debug("sequence_allocated", extra={"scope": scope, "value": value})
        return value

    def current_value(self, scope: str) -> int | None:
        """Last number handed out for ``scope``, or None if none yet."""
        counter = self._counter(scope)
        if counter is None:
            return None
        last = self._stored(scope, counter) - 1
        return last or None

    def reset(self, scope: str, next_number: int) -> None:
        """Move the counter forward so the next allocation is ``next_number``."""
        counter = self._counter(scope)
        current = self._stored(scope, counter) if counter is not None else 1
        if isinstance(next_number, bool) or not isinstance(next_number, int):
            raise ValidationError("next_number", "must be an integer")
        if next_number < current:
            raise ValidationError(
                "next_number",
                f"cannot move counter back from {current} to {next_number}",
            )
        if counter is None:
            counter = WorkflowSettingRecord(scope=scope, key=SEQUENCE_KEY, value=next_number)
            self._session.add(counter)
        else:
            counter.value = next_number
        self._session.flush()
        logger.info(
            "sequence_reset",
            extra={"scope": scope, "from": current, "to": next_number},
        )
