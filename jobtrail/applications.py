"""Job applications: CRUD, status transitions, and event links."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from jobtrail.errors import EntityNotFound
from jobtrail.models import ApplicationStatus, FollowUpType, JobApplication, NoteEntry, SentEmail
from jobtrail.store import IndexedCollection
from jobtrail.utils import best_effort

if TYPE_CHECKING:
    from jobtrail.tracker import JobTracker

logger = logging.getLogger("jobtrail")


@dataclass
class ApplicationStats:
    total: int = 0
    applied: int = 0
    interview: int = 0
    rejected: int = 0
    no_response: int = 0


class ApplicationRepository:
    def __init__(self, tracker: JobTracker):
        self._tracker = tracker
        self._items = IndexedCollection(tracker.store, "application_", "applications_index")

    async def get(self, application_id: str) -> JobApplication | None:
        data = await self._items.get(application_id)
        return JobApplication.from_dict(data) if data else None

    async def _require(self, application_id: str) -> JobApplication:
        application = await self.get(application_id)
        if application is None:
            raise EntityNotFound("application", application_id)
        return application

    async def _put(self, application: JobApplication) -> None:
        await self._items.put(application.id, application.to_dict())

    async def list_all(self) -> list[JobApplication]:
        """All applications, most recently applied first."""
        applications = [JobApplication.from_dict(d) for d in await self._items.all()]
        return sorted(applications, key=lambda a: a.applied_date, reverse=True)

    async def save(self, application: JobApplication) -> JobApplication:
        """Create or update an application and run status-change side effects.

        ``event_ids``, ``notes`` and ``sent_emails`` of an existing record are
        owned by the link, note and email operations; a save keeps the
        persisted values so an edit made from a stale copy can't drop them.
        Status timestamps are likewise taken from the stored record, with
        only the newly entered status stamped.
        """
        previous = await self.get(application.id)
        now = self._tracker.clock()

        if previous is not None:
            application.event_ids = list(previous.event_ids)
            application.notes = list(previous.notes)
            application.sent_emails = list(previous.sent_emails)
            application.status_change_timestamps = dict(previous.status_change_timestamps)
        elif application.event_ids:
            logger.warning(
                "Ignoring event ids on new application %s; link events by saving them instead.",
                application.id,
            )
            application.event_ids = []

        previous_status = previous.status if previous else None
        status_changed = application.status is not previous_status
        if status_changed:
            application.status_change_timestamps[application.status] = now

        await self._put(application)
        if status_changed:
            logger.info(
                "%s (%s): %s -> %s",
                application.company,
                application.position_title,
                previous_status.value if previous_status else "new",
                application.status.value,
            )
        await self._on_status_change(application, previous_status)
        return application

    async def _on_status_change(
        self, application: JobApplication, previous_status: ApplicationStatus | None
    ) -> None:
        if application.status is previous_status:
            return
        reminders = self._tracker.reminders

        if application.status is ApplicationStatus.REJECTED:
            # Interview follow-ups stay open on purpose; a rejection can come
            # after an interview and that follow-up may still be useful.
            await best_effort(
                f"complete application follow-ups for {application.id}",
                reminders.complete_open_for_application(
                    application.id, types=[FollowUpType.APPLICATION]
                ),
            )
        elif application.status is ApplicationStatus.APPLIED:
            days = self._tracker.config.reminders.follow_up_days_after_application
            if days > 0:
                await best_effort(
                    f"create application follow-up for {application.id}",
                    reminders.create_application_follow_up(
                        application.id, application.company, application.position_title, days
                    ),
                )

    async def set_status(
        self, application_id: str, status: ApplicationStatus | str
    ) -> JobApplication:
        application = await self._require(application_id)
        application.status = ApplicationStatus(status)
        return await self.save(application)

    async def advance_to_interview(self, application_id: str) -> bool:
        """Move an application from applied to interview. Other statuses are left alone."""
        application = await self.get(application_id)
        if application is None or application.status is not ApplicationStatus.APPLIED:
            return False
        await self.set_status(application_id, ApplicationStatus.INTERVIEW)
        return True

    async def add_event_id(
        self, application_id: str, event_id: str, skip_back_update: bool = False
    ) -> None:
        """Link an event to an application.

        Without ``skip_back_update`` the event's own back-reference is
        updated too, which in turn unlinks it from any previous application.
        """
        if not skip_back_update:
            events = self._tracker.events
            event = await events.get(event_id)
            if event is None:
                raise EntityNotFound("event", event_id)
            event.application_id = application_id
            await events.save(event)
            return

        application = await self.get(application_id)
        if application is None:
            logger.warning("Cannot link event %s: application %s not found.", event_id, application_id)
            return
        if event_id not in application.event_ids:
            application.event_ids.append(event_id)
            await self._put(application)
            logger.debug("Linked event %s to application %s", event_id, application_id)

    async def remove_event_id(
        self, application_id: str, event_id: str, skip_back_update: bool = False
    ) -> None:
        if not skip_back_update:
            events = self._tracker.events
            event = await events.get(event_id)
            if event is not None and event.application_id == application_id:
                event.application_id = None
                await events.save(event)
                return
            # Event is gone or points elsewhere: only the dangling id needs removing

        application = await self.get(application_id)
        if application is None:
            return
        if event_id in application.event_ids:
            application.event_ids = [i for i in application.event_ids if i != event_id]
            await self._put(application)
            logger.debug("Unlinked event %s from application %s", event_id, application_id)

    async def delete(self, application_id: str) -> bool:
        """Delete an application after removing its reminders and unlinking its events.

        Linked events survive with their ``application_id`` cleared.
        """
        application = await self.get(application_id)
        if application is None:
            logger.warning("Application %s not found; nothing to delete.", application_id)
            return False

        await self._tracker.reminders.delete_for_application(application_id)

        events = self._tracker.events
        linked = set(application.event_ids)
        linked.update(e.id for e in await events.list_for_application(application_id))
        for event_id in linked:
            event = await events.get(event_id)
            if event is None or event.application_id != application_id:
                continue
            event.application_id = None
            await events.save(event, skip_bidirectional_update=True)

        await self._items.delete(application_id)
        logger.info("Deleted application %s (%s)", application.company, application_id)
        return True

    async def add_note(self, application_id: str, text: str) -> NoteEntry:
        application = await self._require(application_id)
        entry = NoteEntry(timestamp=self._tracker.clock(), text=text)
        application.notes.append(entry)
        await self._put(application)
        return entry

    async def record_sent_email(
        self,
        application_id: str,
        email_type: str,
        recipient_email: str = "",
        sent_date: datetime | None = None,
    ) -> SentEmail:
        application = await self._require(application_id)
        sent = SentEmail(
            type=email_type,
            sent_date=sent_date or self._tracker.clock(),
            recipient_email=recipient_email,
        )
        application.sent_emails.append(sent)
        await self._put(application)
        return sent

    async def search(self, term: str) -> list[JobApplication]:
        """Match company, position, source, or note text (case-insensitive)."""
        applications = await self.list_all()
        needle = term.lower().strip()
        if not needle:
            return applications
        return [
            a for a in applications
            if needle in a.company.lower()
            or needle in a.position_title.lower()
            or needle in a.source.lower()
            or any(needle in n.text.lower() for n in a.notes)
        ]

    async def has_applied_to_position(self, company: str, position_title: str) -> bool:
        company = company.lower().strip()
        position_title = position_title.lower().strip()
        return any(
            a.company.lower().strip() == company and a.position_title.lower().strip() == position_title
            for a in await self.list_all()
        )

    async def stats(self) -> ApplicationStats:
        stats = ApplicationStats()
        for application in await self.list_all():
            stats.total += 1
            if application.status is ApplicationStatus.APPLIED:
                stats.applied += 1
            elif application.status is ApplicationStatus.INTERVIEW:
                stats.interview += 1
            elif application.status is ApplicationStatus.REJECTED:
                stats.rejected += 1
            else:
                stats.no_response += 1
        return stats
