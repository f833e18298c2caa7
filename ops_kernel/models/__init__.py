"""ORM models and mixins owned by the kernel."""

from ops_kernel.models.settings import WorkflowSettingRecord
from ops_kernel.models.workflow import HistoryEntryMixin, WorkflowEntityMixin

__all__ = [
    "HistoryEntryMixin",
    "WorkflowEntityMixin",
    "WorkflowSettingRecord",
]
