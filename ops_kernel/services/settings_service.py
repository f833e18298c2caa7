"""
SettingsService -- load and persist per-scope workflow settings.

Responsibility:
    Reads the key/value rows of one scope from ``workflow_settings`` into a
    typed ``WorkflowSettings`` subclass, writes them back, and seeds
    defaults for keys that do not exist yet.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - ``load`` always reads from the database.  Nothing is cached between
      calls, so a settings change is visible to the very next operation.
    - ``seed_defaults`` never overwrites an existing key.
    - ``save`` never writes the sequence counter.

Failure modes:
    - SettingsError when a stored value has the wrong shape.
"""

from typing import Any, TypeVar

from sqlalchemy import select

from ops_kernel.domain.settings import SEQUENCE_KEY, WorkflowSettings
from ops_kernel.logging_config import get_logger
from ops_kernel.models.settings import WorkflowSettingRecord
from ops_kernel.services.base import BaseService

logger = get_logger("services.settings")

SettingsT = TypeVar("SettingsT", bound=WorkflowSettings)


class SettingsService(BaseService[WorkflowSettingRecord]):
    """
    Settings access for a single scope.

    Non-goals:
        - Does NOT call ``session.commit()``.
    """

    def __init__(self, session, scope: str):
        super().__init__(session)
        self.scope = scope

    def _rows(self) -> dict[str, WorkflowSettingRecord]:
        rows = self.session.execute(
            select(WorkflowSettingRecord)
            .where(WorkflowSettingRecord.scope == self.scope)
            .execution_options(populate_existing=True)
        ).scalars()
        return {row.key: row for row in rows}

    def seed_defaults(self, defaults: dict[str, Any]) -> list[str]:
        """Insert every default whose key is missing.  Returns the keys added."""
        existing = self._rows()
        added = []
        for key, value in defaults.items():
            if key in existing:
                continue
            self.session.add(WorkflowSettingRecord(scope=self.scope, key=key, value=value))
            added.append(key)
        if added:
            self.session.flush()
            logger.info(
                "settings_defaults_seeded",
                extra={"scope": self.scope, "keys": sorted(added)},
            )
        return added

    def raw(self) -> dict[str, Any]:
        return {key: row.value for key, row in self._rows().items()}

    def get_raw(self, key: str, default: Any = None) -> Any:
        row = self._rows().get(key)
        return default if row is None else row.value

    def load(self, settings_cls: type[SettingsT] = WorkflowSettings) -> SettingsT:
        """Fresh typed view of the scope's settings."""
        return settings_cls.from_dict(self.raw(), scope=self.scope)

    def save(self, settings: WorkflowSettings) -> None:
        """Persist every field of ``settings``; unknown stored keys are left alone."""
        existing = self._rows()
        data = settings.to_dict()
        data.pop(SEQUENCE_KEY, None)
        for key, value in data.items():
            row = existing.get(key)
            if row is None:
                self.session.add(WorkflowSettingRecord(scope=self.scope, key=key, value=value))
            elif row.value != value:
                row.value = value
        self.session.flush()
        logger.info(
            "settings_saved",
            extra={"scope": self.scope, "keys": sorted(data)},
        )
