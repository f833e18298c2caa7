"""
Notification helpers for status changes.

The kernel only decides WHETHER someone should hear about a change and
what the event says.  Delivery belongs to whatever ``NotificationPublisher``
the caller injects.
"""

from collections.abc import Callable
from typing import Any, Protocol
from urllib.parse import quote

from ops_kernel.domain.dtos import Notification

UserLookup = Callable[[str], Any]


class NotificationPublisher(Protocol):
    def publish(self, notification: Notification) -> None: ...


def status_change_notification(
    *,
    consecutive: str,
    creator: str,
    actor: str,
    status_label: str,
    display_name: str,
    link_path: str,
    user_lookup: UserLookup | None = None,
) -> Notification | None:
    """
    Build the event telling an entity's creator that someone else moved it.

    Returns None when the actor is the creator, or when a lookup is
    configured and does not know the creator.
    """
    if not creator or creator == actor:
        return None
    if user_lookup is not None:
        target = user_lookup(creator)
        if target is None:
            return None
    else:
        target = creator
    return Notification(
        target_user_id=target,
        message=f"{display_name} {consecutive} was updated to: {status_label}",
        link=f"{link_path}?search={quote(consecutive)}",
    )
