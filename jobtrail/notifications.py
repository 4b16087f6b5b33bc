"""Fire-once local alerts.

A scheduler arms an alert for an absolute instant and hands back an opaque
handle. Instants in the past (or a denied permission) yield no handle
rather than an error. Cancelling is idempotent.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from jobtrail.models import new_id
from jobtrail.store import IndexedCollection, Store

logger = logging.getLogger("jobtrail")


class NotificationScheduler(ABC):
    @abstractmethod
    async def schedule(
        self,
        title: str,
        body: str,
        fires_at: datetime,
        data: dict[str, Any] | None = None,
    ) -> str | None:
        """Arm an alert, returning its handle or None if it cannot fire."""

    @abstractmethod
    async def cancel(self, handle: str) -> None:
        """Disarm an alert. Unknown handles are ignored."""


@dataclass
class ScheduledNotification:
    title: str
    body: str
    fires_at: datetime
    data: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: new_id("notif"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "firesAt": self.fires_at.isoformat(),
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduledNotification:
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            body=data.get("body", ""),
            fires_at=datetime.fromisoformat(data["firesAt"]),
            data=data.get("data") or {},
        )


class StoreNotificationScheduler(NotificationScheduler):
    """Keeps armed alerts in the store until they come due.

    Something outside this package (the CLI's ``notifications`` command, a
    cron job) polls ``due()`` and surfaces whatever has fired.
    """

    def __init__(self, store: Store, clock: Callable[[], datetime] = datetime.now):
        self._items = IndexedCollection(store, "notification_", "notifications_index")
        self._clock = clock

    async def schedule(
        self,
        title: str,
        body: str,
        fires_at: datetime,
        data: dict[str, Any] | None = None,
    ) -> str | None:
        if fires_at <= self._clock():
            logger.debug("Not scheduling '%s': %s is in the past.", title, fires_at)
            return None
        notification = ScheduledNotification(title=title, body=body, fires_at=fires_at, data=data or {})
        await self._items.put(notification.id, notification.to_dict())
        logger.debug("Scheduled '%s' for %s [%s]", title, fires_at, notification.id)
        return notification.id

    async def cancel(self, handle: str) -> None:
        await self._items.delete(handle)
        logger.debug("Cancelled notification %s", handle)

    async def pending(self) -> list[ScheduledNotification]:
        records = [ScheduledNotification.from_dict(d) for d in await self._items.all()]
        return sorted(records, key=lambda n: n.fires_at)

    async def due(self, now: datetime | None = None) -> list[ScheduledNotification]:
        """Return alerts whose instant has passed, and retire them."""
        now = now or self._clock()
        fired = [n for n in await self.pending() if n.fires_at <= now]
        for notification in fired:
            await self._items.delete(notification.id)
        return fired


class DisabledNotificationScheduler(NotificationScheduler):
    """Behaves as if notification permission was denied."""

    async def schedule(
        self,
        title: str,
        body: str,
        fires_at: datetime,
        data: dict[str, Any] | None = None,
    ) -> str | None:
        logger.debug("Notifications disabled; not scheduling '%s'.", title)
        return None

    async def cancel(self, handle: str) -> None:
        return None
