"""Follow-up reminders and their notification bookkeeping.

Reminders are only ever created through ``create_application_follow_up``
and ``create_interview_follow_up``; after that, the only state change is
the one-way completion flag.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Iterable

from jobtrail.errors import EntityNotFound
from jobtrail.models import ApplicationStatus, FollowUpReminder, FollowUpType, ThankYouNoteStatus
from jobtrail.store import IndexedCollection
from jobtrail.utils import at_time_of_day, best_effort

if TYPE_CHECKING:
    from jobtrail.tracker import JobTracker

logger = logging.getLogger("jobtrail")


class ReminderRepository:
    def __init__(self, tracker: JobTracker):
        self._tracker = tracker
        self._items = IndexedCollection(tracker.store, "followup_", "followups_index")

    async def get(self, reminder_id: str) -> FollowUpReminder | None:
        data = await self._items.get(reminder_id)
        return FollowUpReminder.from_dict(data) if data else None

    async def list_all(self) -> list[FollowUpReminder]:
        """All reminders, earliest due first."""
        reminders = [FollowUpReminder.from_dict(d) for d in await self._items.all()]
        return sorted(reminders, key=lambda r: r.due_date)

    async def list_active(self) -> list[FollowUpReminder]:
        return [r for r in await self.list_all() if not r.completed]

    async def list_for_application(self, application_id: str) -> list[FollowUpReminder]:
        return [r for r in await self.list_all() if r.application_id == application_id]

    async def _put(self, reminder: FollowUpReminder) -> None:
        await self._items.put(reminder.id, reminder.to_dict())

    async def create_application_follow_up(
        self,
        application_id: str,
        company: str,
        position_title: str,
        days_from_now: int,
    ) -> FollowUpReminder:
        return await self._create(
            FollowUpType.APPLICATION, application_id, company, position_title, days_from_now
        )

    async def create_interview_follow_up(
        self,
        application_id: str,
        company: str,
        position_title: str,
        days_from_now: int,
    ) -> FollowUpReminder | None:
        """Create an interview follow-up, unless a thank-you note already covers it.

        Returns None when any interview for the application has a thank-you
        note pending or sent.
        """
        if await self._has_thank_you_note(application_id):
            logger.info("Thank-you note in flight for %s; no interview follow-up created.", application_id)
            return None
        return await self._create(
            FollowUpType.INTERVIEW, application_id, company, position_title, days_from_now
        )

    async def _create(
        self,
        type: FollowUpType,
        application_id: str,
        company: str,
        position_title: str,
        days_from_now: int,
    ) -> FollowUpReminder:
        now = self._tracker.clock()
        due_day = now.date() + timedelta(days=days_from_now)
        reminder = FollowUpReminder(
            application_id=application_id,
            type=type,
            due_date=at_time_of_day(due_day, self._tracker.config.reminders.due_time),
            company=company,
            position_title=position_title,
            completed=False,
            created_at=now,
        )
        reminder.notification_id = await self._arm(reminder)
        await self._put(reminder)
        logger.info(
            "Created %s follow-up for %s (%s), due %s",
            type.value, company, position_title, reminder.due_date,
        )
        return reminder

    async def _arm(self, reminder: FollowUpReminder) -> str | None:
        if reminder.type is FollowUpType.APPLICATION:
            title = f"Follow Up: {reminder.company}"
            body = f"Time to check if the {reminder.position_title} position is still open"
        else:
            title = f"Interview Follow-Up: {reminder.company}"
            body = f"Follow up with {reminder.company} about next steps"
        result = await best_effort(
            f"schedule follow-up notification {reminder.id}",
            self._tracker.scheduler.schedule(
                title, body, reminder.due_date, {"reminderId": reminder.id, "type": "followup"}
            ),
        )
        return result.value

    async def complete(
        self, reminder_id: str, completed_at: datetime | None = None
    ) -> FollowUpReminder | None:
        """Mark a reminder completed and disarm its notification.

        Completing an already-completed reminder changes nothing, so
        ``completed_at`` keeps the instant of the first completion.
        """
        reminder = await self.get(reminder_id)
        if reminder is None:
            logger.warning("Follow-up reminder %s not found; nothing to complete.", reminder_id)
            return None
        if reminder.completed:
            logger.debug("Follow-up reminder %s already completed.", reminder_id)
            return reminder

        reminder.completed = True
        reminder.completed_at = completed_at or self._tracker.clock()
        if reminder.notification_id:
            await best_effort(
                f"cancel follow-up notification {reminder.notification_id}",
                self._tracker.scheduler.cancel(reminder.notification_id),
            )
            reminder.notification_id = None
        await self._put(reminder)
        logger.debug("Completed follow-up reminder %s", reminder_id)
        return reminder

    async def complete_open_for_application(
        self,
        application_id: str,
        types: Iterable[FollowUpType] | None = None,
    ) -> list[str]:
        """Complete every open reminder of the given types for an application.

        Returns the ids that were completed.
        """
        wanted = set(types) if types is not None else set(FollowUpType)
        completed = []
        for reminder in await self.list_for_application(application_id):
            if reminder.completed or reminder.type not in wanted:
                continue
            # complete() re-reads the record right before writing it
            if await self.complete(reminder.id) is not None:
                completed.append(reminder.id)
        if completed:
            logger.info("Completed %d follow-up(s) for application %s", len(completed), application_id)
        return completed

    async def complete_and_create_next(
        self, reminder_id: str, create_next: bool = True
    ) -> FollowUpReminder | None:
        """Complete a reminder and schedule the next one of the same type.

        No successor is created for rejected applications, or for interview
        follow-ups once a thank-you note is pending or sent.
        """
        reminder = await self.get(reminder_id)
        if reminder is None:
            raise EntityNotFound("follow-up reminder", reminder_id)

        await self.complete(reminder_id)
        if not create_next:
            return None

        application = await self._tracker.applications.get(reminder.application_id)
        if application is not None and application.status is ApplicationStatus.REJECTED:
            return None

        days = self._tracker.config.reminders.days_between_follow_ups
        if reminder.type is FollowUpType.APPLICATION:
            return await self.create_application_follow_up(
                reminder.application_id, reminder.company, reminder.position_title, days
            )
        return await self.create_interview_follow_up(
            reminder.application_id, reminder.company, reminder.position_title, days
        )

    async def delete(self, reminder_id: str) -> None:
        reminder = await self.get(reminder_id)
        if reminder is not None and reminder.notification_id:
            await best_effort(
                f"cancel follow-up notification {reminder.notification_id}",
                self._tracker.scheduler.cancel(reminder.notification_id),
            )
        await self._items.delete(reminder_id)

    async def delete_for_application(self, application_id: str) -> int:
        reminders = await self.list_for_application(application_id)
        for reminder in reminders:
            await self.delete(reminder.id)
        if reminders:
            logger.info("Deleted %d follow-up(s) for application %s", len(reminders), application_id)
        return len(reminders)

    async def _has_thank_you_note(self, application_id: str) -> bool:
        for event in await self._tracker.events.list_for_application(application_id):
            if event.is_interview and event.thank_you_note_status in (
                ThankYouNoteStatus.PENDING,
                ThankYouNoteStatus.SENT,
            ):
                return True
        return False
