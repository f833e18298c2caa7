"""
Purchase Request Configuration Schema.

Typed view of the ``requests`` settings scope.  Factory values live in
``ops_config/defaults/requests.yaml``; the stored rows in
``workflow_settings`` win once seeded.
"""

from dataclasses import dataclass
from typing import Self

from ops_kernel.domain.settings import WorkflowSettings
from ops_kernel.logging_config import get_logger

logger = get_logger("modules.requests.config")


@dataclass
class RequestSettings(WorkflowSettings):
    """
    Settings for the purchase request workflow.

    Adds the route and shipping method catalogs offered on the request
    form.  Requests have no machines, shifts or custom statuses; the
    inherited fields simply stay empty.
    """

    prefix: str = "SC-"
    routes: tuple[str, ...] = ()
    shipping_methods: tuple[str, ...] = ()

    def __post_init__(self):
        logger.debug(
            "request_settings_initialized",
            extra={
                "prefix": self.prefix,
                "use_warehouse_reception": self.use_warehouse_reception,
                "tracked_fields": list(self.fields_to_track_changes),
                "route_count": len(self.routes),
                "shipping_method_count": len(self.shipping_methods),
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        from ops_config import get_default_settings

        return cls.from_dict(get_default_settings("requests"), scope="requests")
