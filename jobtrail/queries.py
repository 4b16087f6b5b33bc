"""Read-side views over applications, events, and reminders.

None of these filters are stored. Every call reloads all three entity
types and recomputes the exclusions, so a status change or a sent
thank-you note is reflected on the next read. Links to entities that no
longer exist are treated as absent, never as errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import TYPE_CHECKING

from jobtrail.models import (
    ApplicationStatus,
    Event,
    FollowUpReminder,
    JobApplication,
    ThankYouNoteStatus,
)

if TYPE_CHECKING:
    from jobtrail.tracker import JobTracker


@dataclass
class PendingThankYou:
    event: Event
    application: JobApplication | None = None


@dataclass
class _Snapshot:
    applications: dict[str, JobApplication]
    events: list[Event]
    reminders: list[FollowUpReminder]

    def is_rejected(self, application_id: str | None) -> bool:
        application = self.applications.get(application_id) if application_id else None
        return application is not None and application.status is ApplicationStatus.REJECTED

    def applications_with_thank_you_notes(self) -> set[str]:
        # Application granularity: one note in flight covers every reminder
        # of that application, whichever interview the reminder was about.
        return {
            e.application_id
            for e in self.events
            if e.is_interview
            and e.application_id
            and e.thank_you_note_status in (ThankYouNoteStatus.PENDING, ThankYouNoteStatus.SENT)
        }


async def _snapshot(tracker: JobTracker) -> _Snapshot:
    applications = {a.id: a for a in await tracker.applications.list_all()}
    return _Snapshot(
        applications=applications,
        events=await tracker.events.list_all(),
        reminders=await tracker.reminders.list_all(),
    )


async def pending_thank_you_notes(tracker: JobTracker) -> list[PendingThankYou]:
    """Interviews still owing a thank-you note, most recent first.

    A missing status counts as pending. Interviews for rejected
    applications are left out.
    """
    snapshot = await _snapshot(tracker)
    pending = [
        PendingThankYou(event=e, application=snapshot.applications.get(e.application_id or ""))
        for e in snapshot.events
        if e.is_interview
        and e.thank_you_note_status in (None, ThankYouNoteStatus.PENDING)
        and not snapshot.is_rejected(e.application_id)
    ]
    return sorted(pending, key=lambda p: p.event.starts_at, reverse=True)


async def overdue_thank_you_notes(tracker: JobTracker, today: date | None = None) -> list[PendingThankYou]:
    """Pending notes whose interview has happened and whose grace period has run out."""
    today = today or tracker.clock().date()
    grace = timedelta(days=tracker.config.thank_you.offset_days)
    return [
        p for p in await pending_thank_you_notes(tracker)
        if p.event.date_key < today and p.event.date_key + grace < today
    ]


def _is_active(reminder: FollowUpReminder, snapshot: _Snapshot, covered: set[str]) -> bool:
    if reminder.completed:
        return False
    if snapshot.is_rejected(reminder.application_id):
        return False
    return reminder.application_id not in covered


async def active_follow_ups(tracker: JobTracker, day: date | None = None) -> list[FollowUpReminder]:
    """Open follow-ups due on ``day`` that still deserve attention."""
    day = day or tracker.clock().date()
    snapshot = await _snapshot(tracker)
    covered = snapshot.applications_with_thank_you_notes()
    return [
        r for r in snapshot.reminders
        if r.due_date.date() == day and _is_active(r, snapshot, covered)
    ]


async def overdue_follow_ups(tracker: JobTracker, today: date | None = None) -> list[FollowUpReminder]:
    today = today or tracker.clock().date()
    snapshot = await _snapshot(tracker)
    covered = snapshot.applications_with_thank_you_notes()
    return [
        r for r in snapshot.reminders
        if r.due_date.date() < today and _is_active(r, snapshot, covered)
    ]


async def overdue_follow_up_count(tracker: JobTracker, today: date | None = None) -> int:
    return len(await overdue_follow_ups(tracker, today))
