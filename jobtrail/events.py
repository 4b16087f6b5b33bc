"""Calendar events: saving, deleting, and the thank-you note state machine.

An interview event gets ``thank_you_note_status = PENDING`` exactly once,
when it is first saved. From there the note can move to SENT or SKIPPED,
both terminal. Saving an event also keeps the owning application's
``event_ids`` in step with ``event.application_id``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from jobtrail.errors import EntityNotFound, InvalidOperation
from jobtrail.models import Event, EventType, ThankYouNoteStatus
from jobtrail.store import IndexedCollection
from jobtrail.utils import at_time_of_day, best_effort

if TYPE_CHECKING:
    from jobtrail.tracker import JobTracker

logger = logging.getLogger("jobtrail")


class EventRepository:
    def __init__(self, tracker: JobTracker):
        self._tracker = tracker
        self._items = IndexedCollection(tracker.store, "event_", "events_index")

    async def get(self, event_id: str) -> Event | None:
        data = await self._items.get(event_id)
        return Event.from_dict(data) if data else None

    async def list_all(self) -> list[Event]:
        return [Event.from_dict(d) for d in await self._items.all()]

    async def list_for_date(self, date_key: date) -> list[Event]:
        """Events on one calendar day, in start-time order."""
        events = [e for e in await self.list_all() if e.date_key == date_key]
        return sorted(events, key=lambda e: e.start_time)

    async def list_for_application(self, application_id: str) -> list[Event]:
        return [e for e in await self.list_all() if e.application_id == application_id]

    async def _put(self, event: Event) -> None:
        await self._items.put(event.id, event.to_dict())

    async def save(self, event: Event, skip_bidirectional_update: bool = False) -> Event:
        """Create or update an event and keep its alerts and links in step.

        Raises:
            InvalidOperation: an interview whose thank-you note is already
                sent or skipped is being retyped to something else.
        """
        previous = await self.get(event.id)
        if (
            previous is not None
            and previous.is_interview
            and not event.is_interview
            and previous.thank_you_note_status is not None
            and previous.thank_you_note_status.is_terminal
        ):
            raise InvalidOperation(
                f"Event {event.id} has a thank-you note marked "
                f"{previous.thank_you_note_status.value}; it must stay an interview"
            )
        is_new_interview = previous is None and event.is_interview
        self._carry_owned_state(event, previous)

        await self._mirror_to_calendar(event)
        await self._refresh_event_alert(event, previous)
        if previous is not None and previous.is_interview and not event.is_interview:
            # No longer an interview, so no thank-you note is owed
            await self._cancel_handle(previous.thank_you_note_reminder_id, "thank-you reminder")
            event.thank_you_note_reminder_id = None
        elif (
            previous is not None
            and previous.is_interview
            and event.is_interview
            and previous.date_key != event.date_key
            and event.thank_you_note_status is ThankYouNoteStatus.PENDING
        ):
            await self._cancel_handle(event.thank_you_note_reminder_id, "thank-you reminder")
            event.thank_you_note_reminder_id = await self._arm_thank_you_reminder(event)

        if is_new_interview:
            event.thank_you_note_status = ThankYouNoteStatus.PENDING
            event.thank_you_note_reminder_id = await self._arm_thank_you_reminder(event)
            if event.application_id:
                # An interview on the books supersedes any open follow-up
                await best_effort(
                    f"retire follow-ups for {event.application_id}",
                    self._tracker.reminders.complete_open_for_application(event.application_id),
                )

        await self._put(event)
        logger.debug("Saved %s event %s on %s", event.type.value, event.id, event.date_key)

        old_application_id = previous.application_id if previous else None
        if not skip_bidirectional_update and old_application_id != event.application_id:
            await self._relink(event.id, old_application_id, event.application_id)

        if is_new_interview and event.application_id:
            await best_effort(
                f"advance application {event.application_id} to interview",
                self._tracker.applications.advance_to_interview(event.application_id),
            )
        return event

    def _carry_owned_state(self, event: Event, previous: Event | None) -> None:
        """Keep fields this repository owns from being overwritten by a stale copy."""
        if previous is None:
            if not event.is_interview:
                event.thank_you_note_status = None
            return
        if event.is_interview:
            event.thank_you_note_status = previous.thank_you_note_status
            event.thank_you_note_reminder_id = previous.thank_you_note_reminder_id
        else:
            event.thank_you_note_status = None
        event.notification_id = previous.notification_id
        event.calendar_event_id = event.calendar_event_id or previous.calendar_event_id

    async def _mirror_to_calendar(self, event: Event) -> None:
        calendar = self._tracker.calendar
        if event.calendar_event_id:
            await best_effort(
                f"calendar update {event.calendar_event_id}",
                calendar.update(event.calendar_event_id, event),
            )
            return
        result = await best_effort(f"calendar create for {event.id}", calendar.create(event))
        if result.value:
            event.calendar_event_id = result.value

    async def _refresh_event_alert(self, event: Event, previous: Event | None) -> None:
        if previous is not None and previous.starts_at == event.starts_at and previous.title == event.title:
            return
        await self._cancel_handle(event.notification_id, "event alert")
        minutes = self._tracker.config.alert_minutes_before
        result = await best_effort(
            f"schedule alert for {event.id}",
            self._tracker.scheduler.schedule(
                event.title or event.type.value.capitalize(),
                f"Your {event.type.value} starts in {minutes} minutes",
                event.starts_at - timedelta(minutes=minutes),
                {"eventId": event.id},
            ),
        )
        event.notification_id = result.value

    def thank_you_due_at(self, event: Event) -> datetime:
        settings = self._tracker.config.thank_you
        return at_time_of_day(
            event.date_key + timedelta(days=settings.offset_days), settings.reminder_time
        )

    async def _arm_thank_you_reminder(self, event: Event) -> str | None:
        who = f" at {event.company}" if event.company else ""
        result = await best_effort(
            f"schedule thank-you reminder for {event.id}",
            self._tracker.scheduler.schedule(
                "Thank-you note due",
                f"Send a thank-you note for your interview{who}",
                self.thank_you_due_at(event),
                {"eventId": event.id, "type": "thank-you"},
            ),
        )
        return result.value

    async def _cancel_handle(self, handle: str | None, what: str) -> None:
        if handle:
            await best_effort(f"cancel {what} {handle}", self._tracker.scheduler.cancel(handle))

    async def _relink(self, event_id: str, old_application_id: str | None, new_application_id: str | None) -> None:
        applications = self._tracker.applications
        if old_application_id:
            await best_effort(
                f"unlink event {event_id} from {old_application_id}",
                applications.remove_event_id(old_application_id, event_id, skip_back_update=True),
            )
        if new_application_id:
            await best_effort(
                f"link event {event_id} to {new_application_id}",
                applications.add_event_id(new_application_id, event_id, skip_back_update=True),
            )

    async def delete(self, event_id: str) -> bool:
        event = await self.get(event_id)
        if event is None:
            logger.warning("Event %s not found; nothing to delete.", event_id)
            return False

        if event.application_id:
            await best_effort(
                f"unlink event {event_id} from {event.application_id}",
                self._tracker.applications.remove_event_id(
                    event.application_id, event_id, skip_back_update=True
                ),
            )
        if event.calendar_event_id:
            await best_effort(
                f"calendar delete {event.calendar_event_id}",
                self._tracker.calendar.delete(event.calendar_event_id),
            )
        # Each handle is cancelled on its own so one failure can't block the other
        await self._cancel_handle(event.thank_you_note_reminder_id, "thank-you reminder")
        await self._cancel_handle(event.notification_id, "event alert")

        await self._items.delete(event_id)
        logger.info("Deleted event %s", event_id)
        return True

    async def set_thank_you_status(
        self, event_id: str, status: ThankYouNoteStatus | str
    ) -> Event:
        """Move an interview's thank-you note to a new status.

        SENT and SKIPPED are terminal: the pending alert is disarmed, and
        SENT also completes every open follow-up for the linked application.

        Raises:
            EntityNotFound: no such event.
            InvalidOperation: the event is not an interview, or the note is
                already in a different terminal state.
        """
        status = ThankYouNoteStatus(status)
        event = await self.get(event_id)
        if event is None:
            raise EntityNotFound("event", event_id)
        if event.type is not EventType.INTERVIEW:
            raise InvalidOperation(
                f"Thank-you notes only apply to interviews; event {event_id} is a {event.type.value}"
            )
        current = event.thank_you_note_status
        if current is not None and current.is_terminal:
            if current is status:
                return event
            raise InvalidOperation(
                f"Thank-you note for event {event_id} is already {current.value}"
            )

        event.thank_you_note_status = status
        if status.is_terminal:
            await self._cancel_handle(event.thank_you_note_reminder_id, "thank-you reminder")
            event.thank_you_note_reminder_id = None

        if status is ThankYouNoteStatus.SENT and event.application_id:
            await best_effort(
                f"complete follow-ups for {event.application_id}",
                self._tracker.reminders.complete_open_for_application(event.application_id),
            )

        await self._put(event)
        logger.info("Thank-you note for event %s marked %s", event_id, status.value)
        return event

    async def sync_all_to_calendar(self) -> tuple[int, int, int]:
        """Mirror every event that has no external calendar id yet.

        Returns (synced, already_synced, failed).
        """
        events = await self.list_all()
        already = sum(1 for e in events if e.calendar_event_id)
        synced = failed = 0
        for event in events:
            if event.calendar_event_id:
                continue
            result = await best_effort(
                f"calendar create for {event.id}", self._tracker.calendar.create(event)
            )
            if not result.value:
                failed += 1
                continue
            # Re-read so the write doesn't clobber a newer copy
            latest = await self.get(event.id)
            if latest is None:
                continue
            latest.calendar_event_id = result.value
            await self._put(latest)
            synced += 1
        logger.info("Calendar sync: %d synced, %d already synced, %d failed", synced, already, failed)
        return synced, already, failed
