"""
Data transfer objects shared by the workflow kernel.

Frozen dataclasses handed across the service boundary.  ORM rows never
leave a service; callers only see these snapshots, so two reads with no
write in between compare equal.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Literal


@dataclass(frozen=True)
class HistoryEntry:
    """One immutable row of an entity's audit trail."""

    id: int
    entity_id: int
    timestamp: datetime
    status: str
    updated_by: str
    notes: str | None = None


@dataclass(frozen=True)
class Notification:
    """Event handed to the notification collaborator after a commit."""

    target_user_id: Any
    message: str
    link: str


ListView = Literal["active", "archived", "all"]


@dataclass(frozen=True)
class EntityFilter:
    """
    List criteria for workflow entities.

    ``page`` is 0-based and only applies to the archived view; the active
    view is always returned whole.
    """

    search: str | None = None
    status: str | None = None
    classification: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    view: ListView = "active"
    page: int = 0
    page_size: int = 50


@dataclass(frozen=True)
class EntityPage:
    """A list result.  ``total_archived_count`` ignores pagination."""

    entities: tuple[Any, ...] = field(default_factory=tuple)
    total_archived_count: int = 0
