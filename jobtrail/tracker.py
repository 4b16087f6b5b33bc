"""The coordination engine tying applications, events, and reminders together.

``JobTracker`` owns the store, the two side-channel collaborators
(notifications and calendar sync), the clock, and the three repositories.
Repositories reach each other only through it, so cross-entity rules
never need module-level imports between them.

Operations assume a single actor: each one runs to completion before the
next conflicting one starts. Cross-entity fix-ups re-read the counterpart
record right before writing it.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable

from jobtrail import queries
from jobtrail.applications import ApplicationRepository
from jobtrail.calendar_sync import CalendarSync, NullCalendarSync, build_calendar_sync
from jobtrail.config_loader import Config
from jobtrail.errors import EntityNotFound
from jobtrail.events import EventRepository
from jobtrail.models import Event, FollowUpReminder, ThankYouNoteStatus
from jobtrail.notifications import (
    DisabledNotificationScheduler,
    NotificationScheduler,
    StoreNotificationScheduler,
)
from jobtrail.reminders import ReminderRepository
from jobtrail.store import JsonFileStore, Store

logger = logging.getLogger("jobtrail")


class JobTracker:
    def __init__(
        self,
        store: Store,
        scheduler: NotificationScheduler | None = None,
        calendar: CalendarSync | None = None,
        config: Config | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.scheduler = scheduler or DisabledNotificationScheduler()
        self.calendar = calendar or NullCalendarSync()
        self.config = config or Config()
        self.clock = clock

        self.applications = ApplicationRepository(self)
        self.events = EventRepository(self)
        self.reminders = ReminderRepository(self)

    @classmethod
    def from_config(cls, config: Config) -> JobTracker:
        """Build a tracker persisting to ``<data_dir>/store.json``."""
        store = JsonFileStore(config.data_dir / "store.json")
        if config.notifications_enabled:
            scheduler: NotificationScheduler = StoreNotificationScheduler(store)
        else:
            scheduler = DisabledNotificationScheduler()
        calendar = build_calendar_sync(config.calendar, config.alert_minutes_before)
        return cls(store=store, scheduler=scheduler, calendar=calendar, config=config)

    async def set_event_thank_you_status(
        self, event_id: str, status: ThankYouNoteStatus | str
    ) -> Event:
        return await self.events.set_thank_you_status(event_id, status)

    async def mark_thank_you_sent(self, event_id: str, recipient_email: str = "") -> Event:
        """Mark a thank-you note sent and log the email on the linked application."""
        event = await self.events.set_thank_you_status(event_id, ThankYouNoteStatus.SENT)
        if event.application_id:
            try:
                await self.applications.record_sent_email(
                    event.application_id, "thank-you", recipient_email
                )
            except EntityNotFound:
                logger.warning(
                    "Application %s for event %s is gone; sent email not recorded.",
                    event.application_id, event_id,
                )
        return event

    async def pending_thank_you_notes(self) -> list[queries.PendingThankYou]:
        return await queries.pending_thank_you_notes(self)

    async def overdue_thank_you_notes(self, today: date | None = None) -> list[queries.PendingThankYou]:
        return await queries.overdue_thank_you_notes(self, today)

    async def active_follow_ups(self, day: date | None = None) -> list[FollowUpReminder]:
        return await queries.active_follow_ups(self, day)

    async def overdue_follow_up_count(self, today: date | None = None) -> int:
        return await queries.overdue_follow_up_count(self, today)

    async def repair_links(self) -> int:
        """Rebuild every application's ``event_ids`` from events' back-references.

        Returns the number of applications whose links changed. Back-references
        to applications that no longer exist are cleared.
        """
        events = await self.events.list_all()
        applications = {a.id: a for a in await self.applications.list_all()}
        expected: dict[str, set[str]] = {app_id: set() for app_id in applications}

        for event in events:
            if not event.application_id:
                continue
            if event.application_id in expected:
                expected[event.application_id].add(event.id)
            else:
                logger.info("Clearing dangling application link on event %s", event.id)
                event.application_id = None
                await self.events.save(event, skip_bidirectional_update=True)

        changed = 0
        for app_id, application in applications.items():
            if set(application.event_ids) == expected[app_id]:
                continue
            for event_id in set(application.event_ids) - expected[app_id]:
                await self.applications.remove_event_id(app_id, event_id, skip_back_update=True)
            for event_id in expected[app_id] - set(application.event_ids):
                await self.applications.add_event_id(app_id, event_id, skip_back_update=True)
            changed += 1
        if changed:
            logger.info("Repaired event links on %d application(s)", changed)
        return changed
