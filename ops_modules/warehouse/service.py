"""
Warehouse Location Lock Service (``ops_modules.warehouse.service``).

Responsibility
--------------
Maintains the location tree and the advisory "wizard" locks that stop two
users from walking the same racks in the guided population flow at once.

Invariants enforced
-------------------
* ``lock`` is all-or-nothing: if any requested location is already locked,
  by any session including the caller's, nothing is locked and
  ``LocationLockedError`` lists every conflict.
* ``release`` only frees locks owned by the calling session.
* There is no expiry; abandoned locks are cleared by ``force_release``.
* Each public mutating method owns the transaction boundary.

Failure modes
-------------
* ``LocationNotFoundError`` -- unknown location ids (lock, force_release,
  parent on create).
* ``LocationLockedError`` -- lock conflict.
* ``ValidationError`` -- blank names/codes/users/sessions, unknown type,
  duplicate code.
"""

from collections import deque
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from ops_kernel.exceptions import LocationLockedError, LocationNotFoundError, ValidationError
from ops_kernel.logging_config import LogContext, get_logger
from ops_modules._workflow_service import unit_of_work
from ops_modules.warehouse.models import LocationType, WarehouseLocation
from ops_modules.warehouse.orm import WarehouseLocationModel

logger = get_logger("modules.warehouse.service")


def _required(field: str, value: str | None) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(field, "is required")
    return str(value).strip()


class LocationLockService:
    """
    Location tree maintenance and session-scoped wizard locks.

    Non-goals
    ---------
    * Inventory placement and corrections.
    * Deciding who may force-release; callers check that first.
    """

    def __init__(self, session: Session):
        self._session = session

    def _get_many(self, location_ids: Iterable[int]) -> list[WarehouseLocationModel]:
        ids = list(dict.fromkeys(location_ids))
        rows = self._session.execute(
            select(WarehouseLocationModel)
            .where(WarehouseLocationModel.id.in_(ids))
            .with_for_update()
        ).scalars().all()
        found = {row.id for row in rows}
        missing = [i for i in ids if i not in found]
        if missing:
            raise LocationNotFoundError(missing)
        return sorted(rows, key=lambda r: ids.index(r.id))

    def create_location(
        self,
        name: str,
        code: str,
        type: str,
        parent_id: int | None = None,
    ) -> WarehouseLocation:
        name = _required("name", name)
        code = _required("code", code)
        if type not in {t.value for t in LocationType}:
            raise ValidationError("type", f"must be one of {[t.value for t in LocationType]}")

        with unit_of_work(self._session, "create_location", code=code):
            if parent_id is not None and self._session.get(WarehouseLocationModel, parent_id) is None:
                raise LocationNotFoundError([parent_id])
            duplicate = self._session.execute(
                select(WarehouseLocationModel.id).where(WarehouseLocationModel.code == code)
            ).first()
            if duplicate is not None:
                raise ValidationError("code", f"location code '{code}' already exists")
            row = WarehouseLocationModel(
                name=name, code=code, type=type, parent_id=parent_id, is_locked=False
            )
            self._session.add(row)
            self._session.flush()
            logger.info(
                "warehouse_location_created",
                extra={"location_id": row.id, "code": code, "location_type": type, "parent_id": parent_id},
            )
        return row.to_dto()

    def get_location(self, location_id: int) -> WarehouseLocation:
        row = self._session.get(WarehouseLocationModel, location_id)
        if row is None:
            raise LocationNotFoundError([location_id])
        return row.to_dto()

    def lock(self, location_ids: list[int], user_name: str, session_id: str) -> list[WarehouseLocation]:
        """Lock every location in ``location_ids`` for ``session_id`` or none of them."""
        if not location_ids:
            raise ValidationError("location_ids", "at least one location is required")
        user_name = _required("user_name", user_name)
        session_id = _required("session_id", session_id)

        with (
            LogContext.bind(actor=user_name, session_id=session_id),
            unit_of_work(self._session, "lock_locations"),
        ):
            rows = self._get_many(location_ids)
            conflicts = [
                (row.id, row.locked_by or "")
                for row in rows
                if row.is_locked
            ]
            if conflicts:
                logger.warning(
                    "location_lock_conflict",
                    extra={"conflicts": conflicts, "user_name": user_name},
                )
                raise LocationLockedError(conflicts)
            for row in rows:
                row.is_locked = True
                row.locked_by = user_name
                row.locked_by_session_id = session_id
            self._session.flush()
            logger.info(
                "location_lock_acquired",
                extra={"location_ids": [r.id for r in rows], "user_name": user_name},
            )
        return [row.to_dto() for row in rows]

    def release(self, location_ids: list[int], session_id: str) -> int:
        """Free the given locations held by ``session_id``.  Returns how many."""
        if not location_ids:
            return 0
        session_id = _required("session_id", session_id)

        with (
            LogContext.bind(session_id=session_id),
            unit_of_work(self._session, "release_locations"),
        ):
            rows = self._session.execute(
                select(WarehouseLocationModel).where(
                    WarehouseLocationModel.id.in_(list(location_ids)),
                    WarehouseLocationModel.locked_by_session_id == session_id,
                )
            ).scalars().all()
            for row in rows:
                row.clear_lock()
            self._session.flush()
            logger.info(
                "location_lock_released",
                extra={"location_ids": [r.id for r in rows], "requested": len(location_ids)},
            )
        return len(rows)

    def force_release(self, location_id: int, actor: str) -> WarehouseLocation:
        """Administrative release regardless of owner."""
        actor = _required("actor", actor)
        with (
            LogContext.bind(actor=actor),
            unit_of_work(self._session, "force_release_location", location_id=location_id),
        ):
            (row,) = self._get_many([location_id])
            previous_holder = row.locked_by
            was_locked = row.is_locked
            row.clear_lock()
            self._session.flush()
            logger.warning(
                "location_lock_force_released",
                extra={
                    "location_id": row.id,
                    "previous_holder": previous_holder,
                    "was_locked": was_locked,
                    "released_by": actor,
                },
            )
        return row.to_dto()

    def active_locks(self) -> list[WarehouseLocation]:
        rows = self._session.execute(
            select(WarehouseLocationModel)
            .where(WarehouseLocationModel.is_locked.is_(True))
            .order_by(WarehouseLocationModel.id)
        ).scalars()
        return [row.to_dto() for row in rows]

    def leaf_locations(self, parent_ids: list[int]) -> list[WarehouseLocation]:
        """
        Leaf descendants of ``parent_ids``, breadth first.

        A parent with no children is its own leaf.  Unknown ids are skipped
        and every leaf appears once, however many requested parents share it.
        """
        queue = deque(parent_ids)
        visited: set[int] = set()
        leaves: dict[int, WarehouseLocation] = {}
        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)
            children = self._session.execute(
                select(WarehouseLocationModel.id)
                .where(WarehouseLocationModel.parent_id == current)
                .order_by(WarehouseLocationModel.id)
            ).scalars().all()
            if children:
                queue.extend(children)
                continue
            row = self._session.get(WarehouseLocationModel, current)
            if row is not None:
                leaves.setdefault(row.id, row.to_dto())
        return list(leaves.values())
