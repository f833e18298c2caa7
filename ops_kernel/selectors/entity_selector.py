"""
Module: ops_kernel.selectors.entity_selector
Responsibility: List and history read paths for workflow entities, used by
    UI list views and by export collaborators (PDF/Excel), which only ever
    see DTOs.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - The archived set is whatever ``WorkflowDefinition.archived_states``
      says for the current settings; everything else is active.
    - Only the archived view is paginated.  ``total_archived_count``
      always counts the whole filtered archived set.
    - Ordering is request date desc, id desc.
"""

from __future__ import annotations

from sqlalchemy import func, or_, select

from ops_kernel.domain.dtos import EntityFilter, EntityPage, HistoryEntry
from ops_kernel.exceptions import EntityNotFoundError, ValidationError
from ops_kernel.models.settings import WorkflowSettingRecord
from ops_kernel.selectors.base import BaseSelector

_VIEWS = ("active", "archived", "all")


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class EntitySelector(BaseSelector):
    """Read-only queries over one workflow entity type."""

    def __init__(self, session, binding):
        super().__init__(session)
        self.binding = binding

    def _settings(self):
        rows = self.session.execute(
            select(WorkflowSettingRecord.key, WorkflowSettingRecord.value).where(
                WorkflowSettingRecord.scope == self.binding.scope
            )
        )
        return self.binding.settings_cls.from_dict(dict(rows.all()), scope=self.binding.scope)

    def _filtered(self, criteria: EntityFilter):
        model = self.binding.entity_model
        fields = self.binding.fields
        stmt = select(model)
        if criteria.search and criteria.search.strip():
            pattern = _like_pattern(criteria.search.strip())
            stmt = stmt.where(
                or_(*(getattr(model, name).ilike(pattern, escape="\\") for name in fields.search))
            )
        if criteria.status:
            stmt = stmt.where(model.status == criteria.status)
        if criteria.classification:
            stmt = stmt.where(getattr(model, fields.classification) == criteria.classification)
        date_col = getattr(model, fields.date_field)
        if criteria.date_from is not None:
            stmt = stmt.where(date_col >= criteria.date_from)
        if criteria.date_to is not None:
            stmt = stmt.where(date_col <= criteria.date_to)
        return stmt

    def list(self, criteria: EntityFilter | None = None) -> EntityPage:
        criteria = criteria or EntityFilter()
        if criteria.view not in _VIEWS:
            raise ValidationError("view", f"must be one of {list(_VIEWS)}")
        if criteria.page < 0:
            raise ValidationError("page", "must not be negative")
        if criteria.page_size < 1:
            raise ValidationError("page_size", "must be at least 1")

        model = self.binding.entity_model
        archived = self.binding.definition.archived_states(self._settings())
        base = self._filtered(criteria)
        ordering = (model.request_date.desc(), model.id.desc())

        archived_stmt = base.where(model.status.in_(archived))
        total_archived = self.session.execute(
            select(func.count()).select_from(archived_stmt.subquery())
        ).scalar_one()

        if criteria.view == "active":
            stmt = base.where(model.status.not_in(archived)).order_by(*ordering)
        elif criteria.view == "archived":
            stmt = (
                archived_stmt.order_by(*ordering)
                .offset(criteria.page * criteria.page_size)
                .limit(criteria.page_size)
            )
        else:
            stmt = base.order_by(*ordering)

        rows = self.session.execute(stmt).scalars()
        return EntityPage(
            entities=tuple(row.to_dto() for row in rows),
            total_archived_count=total_archived,
        )

    def history(self, entity_id: int) -> list[HistoryEntry]:
        """Audit trail of one entity, newest first."""
        if self.session.get(self.binding.entity_model, entity_id) is None:
            raise EntityNotFoundError(self.binding.entity_type, entity_id)
        model = self.binding.history_model
        rows = self.session.execute(
            select(model)
            .where(model.entity_id == entity_id)
            .order_by(model.timestamp.desc(), model.id.desc())
        ).scalars()
        return [row.to_dto() for row in rows]
