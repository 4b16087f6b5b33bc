"""
Tests for the derived views: pending/overdue thank-you notes and active follow-ups.
"""
from datetime import date, timedelta

import pytest

from conftest import make_application, make_interview
from jobtrail.models import ApplicationStatus

TODAY = date(2026, 3, 10)


class TestPendingThankYouNotes:

    @pytest.mark.asyncio
    async def test_lists_pending_interviews_newest_first(self, tracker):
        older = await tracker.events.save(make_interview(day=date(2026, 3, 2)))
        newer = await tracker.events.save(make_interview(day=date(2026, 3, 8)))

        pending = await tracker.pending_thank_you_notes()

        assert [p.event.id for p in pending] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_excludes_sent_skipped_and_rejected(self, tracker):
        sent = await tracker.events.save(make_interview(day=date(2026, 3, 2)))
        skipped = await tracker.events.save(make_interview(day=date(2026, 3, 3)))
        rejected_app = await tracker.applications.save(make_application(status=ApplicationStatus.REJECTED))
        await tracker.events.save(make_interview(rejected_app.id, day=date(2026, 3, 4)))
        kept = await tracker.events.save(make_interview(day=date(2026, 3, 5)))
        await tracker.events.set_thank_you_status(sent.id, "sent")
        await tracker.events.set_thank_you_status(skipped.id, "skipped")

        pending = await tracker.pending_thank_you_notes()

        assert [p.event.id for p in pending] == [kept.id]

    @pytest.mark.asyncio
    async def test_attaches_application(self, tracker):
        app = await tracker.applications.save(make_application())
        await tracker.events.save(make_interview(app.id))

        [pending] = await tracker.pending_thank_you_notes()

        assert pending.application.id == app.id

    @pytest.mark.asyncio
    async def test_missing_application_is_treated_as_absent(self, tracker):
        await tracker.events.save(make_interview("app_gone"))

        [pending] = await tracker.pending_thank_you_notes()

        assert pending.application is None


class TestOverdueThankYouNotes:

    @pytest.mark.asyncio
    async def test_grace_period_must_elapse(self, tracker, config):
        config.thank_you.offset_days = 2
        yesterday = TODAY - timedelta(days=1)
        await tracker.events.save(make_interview(day=yesterday))

        assert await tracker.overdue_thank_you_notes(TODAY) == []
        overdue = await tracker.overdue_thank_you_notes(TODAY + timedelta(days=2))
        assert len(overdue) == 1

    @pytest.mark.asyncio
    async def test_future_interview_is_never_overdue(self, tracker, config):
        config.thank_you.offset_days = 0
        await tracker.events.save(make_interview(day=TODAY))

        assert await tracker.overdue_thank_you_notes(TODAY) == []

    @pytest.mark.asyncio
    async def test_default_today_comes_from_clock(self, tracker):
        await tracker.events.save(make_interview(day=date(2026, 3, 5)))

        assert len(await tracker.overdue_thank_you_notes()) == 1


class TestActiveFollowUps:

    @pytest.mark.asyncio
    async def test_due_today_is_active(self, tracker):
        app = await tracker.applications.save(make_application())
        reminder = await tracker.reminders.create_application_follow_up(app.id, "Acme", "DE", 0)
        await tracker.reminders.create_application_follow_up(app.id, "Acme", "DE", 1)

        active = await tracker.active_follow_ups(TODAY)

        assert [r.id for r in active] == [reminder.id]

    @pytest.mark.asyncio
    async def test_pending_thank_you_suppresses_follow_up(self, tracker):
        app = await tracker.applications.save(make_application())
        await tracker.events.save(make_interview(app.id))
        # Created after the interview, so still open
        reminder = await tracker.reminders.create_application_follow_up(app.id, "Acme", "DE", 0)
        assert not (await tracker.reminders.get(reminder.id)).completed

        assert await tracker.active_follow_ups(TODAY) == []

    @pytest.mark.asyncio
    async def test_skipped_note_does_not_suppress(self, tracker):
        app = await tracker.applications.save(make_application())
        event = await tracker.events.save(make_interview(app.id))
        await tracker.events.set_thank_you_status(event.id, "skipped")
        reminder = await tracker.reminders.create_application_follow_up(app.id, "Acme", "DE", 0)

        assert [r.id for r in await tracker.active_follow_ups(TODAY)] == [reminder.id]

    @pytest.mark.asyncio
    async def test_note_on_any_interview_covers_whole_application(self, tracker):
        app = await tracker.applications.save(make_application())
        first = await tracker.events.save(make_interview(app.id, day=date(2026, 3, 3)))
        await tracker.events.save(make_interview(app.id, day=date(2026, 3, 12)))
        await tracker.events.set_thank_you_status(first.id, "skipped")
        await tracker.reminders.create_application_follow_up(app.id, "Acme", "DE", 0)

        # The second interview's note is still pending
        assert await tracker.active_follow_ups(TODAY) == []

    @pytest.mark.asyncio
    async def test_rejected_and_completed_are_excluded(self, tracker):
        rejected = await tracker.applications.save(make_application(status=ApplicationStatus.REJECTED))
        await tracker.reminders.create_interview_follow_up(rejected.id, "Acme", "DE", 0)
        done = await tracker.reminders.create_application_follow_up("app_other", "Globex", "DE", 0)
        await tracker.reminders.complete(done.id)

        assert await tracker.active_follow_ups(TODAY) == []


class TestOverdueFollowUps:

    @pytest.mark.asyncio
    async def test_count_uses_same_filters(self, tracker, clock):
        app = await tracker.applications.save(make_application())
        rejected = await tracker.applications.save(make_application(company="Globex"))
        await tracker.reminders.create_application_follow_up(app.id, "Acme", "DE", 0)
        await tracker.reminders.create_application_follow_up(app.id, "Acme", "DE", 1)
        await tracker.reminders.create_interview_follow_up(rejected.id, "Globex", "DE", 0)
        await tracker.applications.set_status(rejected.id, "rejected")
        clock.advance(days=3)

        assert await tracker.overdue_follow_up_count() == 2
        assert await tracker.overdue_follow_up_count(TODAY) == 0
