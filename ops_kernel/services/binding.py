"""
WorkflowBinding -- ties a workflow definition to its tables and settings.

The kernel services are generic; each domain module builds one binding
(definition, entity model, history model, settings scope and class) and
hands it to EntityStore, TransitionEngine and EntitySelector.
"""

from dataclasses import dataclass

from ops_kernel.domain.settings import WorkflowSettings
from ops_kernel.domain.workflow import WorkflowDefinition


@dataclass(frozen=True)
class WorkflowBinding:
    definition: WorkflowDefinition
    entity_model: type
    history_model: type
    scope: str
    settings_cls: type[WorkflowSettings] = WorkflowSettings
    # Used in notification messages and links
    display_name: str = ""
    link_path: str = ""

    @property
    def entity_type(self) -> str:
        return self.definition.entity_type

    @property
    def fields(self):
        return self.definition.fields
