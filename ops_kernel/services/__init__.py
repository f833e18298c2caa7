"""Kernel services: flush-only units that module services compose."""

from ops_kernel.services.binding import WorkflowBinding
from ops_kernel.services.entity_store import EntityStore
from ops_kernel.services.history_ledger import HistoryLedger
from ops_kernel.services.sequence_service import SequenceService, format_code
from ops_kernel.services.settings_service import SettingsService
from ops_kernel.services.transition_engine import TransitionEngine

__all__ = [
    "EntityStore",
    "HistoryLedger",
    "SequenceService",
    "SettingsService",
    "TransitionEngine",
    "WorkflowBinding",
    "format_code",
]
