"""
Module: ops_kernel.models.settings
Responsibility: Key/value storage for per-scope workflow settings,
    including the ``next_number`` sequence counter.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (scope, key) is unique, so there is exactly one counter row per scope.
    - Values are JSON; the typed view lives in
      ``ops_kernel.domain.settings.WorkflowSettings``.
"""

from typing import Any

from sqlalchemy import JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ops_kernel.db.base import Base


class WorkflowSettingRecord(Base):
    """One setting value for one workflow scope (``requests``, ``planner``)."""

    __tablename__ = "workflow_settings"

    __table_args__ = (
        UniqueConstraint("scope", "key", name="uq_workflow_settings_scope_key"),
    )

    scope: Mapped[str] = mapped_column(String(50), nullable=False)
    key: Mapped[str] = mapped_column(String(100), nullable=False)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<WorkflowSettingRecord {self.scope}.{self.key}={self.value!r}>"
