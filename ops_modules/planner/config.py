"""
Production Planner Configuration Schema.

Typed view of the ``planner`` settings scope.  Factory values live in
``ops_config/defaults/planner.yaml``.
"""

from dataclasses import dataclass
from typing import Self

from ops_kernel.domain.settings import WorkflowSettings
from ops_kernel.logging_config import get_logger

logger = get_logger("modules.planner.config")


@dataclass
class PlannerSettings(WorkflowSettings):
    """
    Settings for the production order workflow.

    ``assignment_label`` is how the UI (and the edit trail) names the
    machine assignment, e.g. "Assigned machine" or "Operator".
    """

    prefix: str = "OP-"
    assignment_label: str = "Assigned machine"

    def __post_init__(self):
        logger.debug(
            "planner_settings_initialized",
            extra={
                "prefix": self.prefix,
                "use_warehouse_reception": self.use_warehouse_reception,
                "require_machine_for_start": self.require_machine_for_start,
                "require_shift_for_completion": self.require_shift_for_completion,
                "machine_count": len(self.machines),
                "shift_count": len(self.shifts),
                "active_custom_statuses": [c.code for c in self.custom_statuses if c.is_active],
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        from ops_config import get_default_settings

        return cls.from_dict(get_default_settings("planner"), scope="planner")
