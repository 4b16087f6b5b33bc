"""
Tests for ReminderRepository: creation, completion, successors, and deletion.
"""
from datetime import datetime, time

import pytest

from conftest import NOW, make_application, make_interview
from jobtrail.errors import EntityNotFound
from jobtrail.models import ApplicationStatus, FollowUpType


class TestCreate:

    @pytest.mark.asyncio
    async def test_due_date_lands_on_configured_time(self, tracker, scheduler):
        reminder = await tracker.reminders.create_application_follow_up("app_1", "Acme", "DE", 7)

        assert reminder.due_date == datetime(2026, 3, 17, 9, 0)
        assert reminder.created_at == NOW
        assert not reminder.completed
        title, body, fires_at = scheduler.scheduled[reminder.notification_id]
        assert title == "Follow Up: Acme"
        assert fires_at == reminder.due_date

    @pytest.mark.asyncio
    async def test_due_time_is_configurable(self, tracker, config):
        config.reminders.due_time = time(8, 15)
        reminder = await tracker.reminders.create_application_follow_up("app_1", "Acme", "DE", 1)

        assert reminder.due_date == datetime(2026, 3, 11, 8, 15)

    @pytest.mark.asyncio
    async def test_due_today_but_already_past_has_no_handle(self, tracker):
        # It is noon; 09:00 today has gone by
        reminder = await tracker.reminders.create_application_follow_up("app_1", "Acme", "DE", 0)

        assert reminder.due_date == datetime(2026, 3, 10, 9, 0)
        assert reminder.notification_id is None
        assert (await tracker.reminders.get(reminder.id)) is not None

    @pytest.mark.asyncio
    async def test_scheduler_failure_still_persists(self, tracker, scheduler):
        scheduler.fail_schedule = True
        reminder = await tracker.reminders.create_application_follow_up("app_1", "Acme", "DE", 2)

        stored = await tracker.reminders.get(reminder.id)
        assert stored.notification_id is None

    @pytest.mark.asyncio
    async def test_interview_follow_up_suppressed_by_thank_you_note(self, tracker):
        app = await tracker.applications.save(make_application())
        await tracker.events.save(make_interview(app.id))

        assert await tracker.reminders.create_interview_follow_up(app.id, "Acme", "DE", 3) is None

    @pytest.mark.asyncio
    async def test_interview_follow_up_allowed_after_skip(self, tracker):
        app = await tracker.applications.save(make_application())
        event = await tracker.events.save(make_interview(app.id))
        await tracker.events.set_thank_you_status(event.id, "skipped")

        reminder = await tracker.reminders.create_interview_follow_up(app.id, "Acme", "DE", 3)

        assert reminder is not None
        assert reminder.type is FollowUpType.INTERVIEW


class TestComplete:

    @pytest.mark.asyncio
    async def test_complete_cancels_notification(self, tracker, scheduler):
        reminder = await tracker.reminders.create_application_follow_up("app_1", "Acme", "DE", 2)
        handle = reminder.notification_id

        done = await tracker.reminders.complete(reminder.id)

        assert done.completed
        assert done.completed_at == NOW
        assert done.notification_id is None
        assert handle in scheduler.cancelled

    @pytest.mark.asyncio
    async def test_completion_is_idempotent(self, tracker, clock):
        reminder = await tracker.reminders.create_application_follow_up("app_1", "Acme", "DE", 2)
        await tracker.reminders.complete(reminder.id)
        clock.advance(days=1)

        again = await tracker.reminders.complete(reminder.id)

        assert again.completed_at == NOW
        assert (await tracker.reminders.get(reminder.id)).completed_at == NOW

    @pytest.mark.asyncio
    async def test_complete_missing_reminder(self, tracker):
        assert await tracker.reminders.complete("followup_missing") is None

    @pytest.mark.asyncio
    async def test_cancel_failure_does_not_block_completion(self, tracker, scheduler):
        reminder = await tracker.reminders.create_application_follow_up("app_1", "Acme", "DE", 2)
        scheduler.fail_cancel_for = {reminder.notification_id}

        done = await tracker.reminders.complete(reminder.id)

        assert done.completed
        assert (await tracker.reminders.get(reminder.id)).completed

    @pytest.mark.asyncio
    async def test_complete_open_filters_by_type(self, tracker):
        a = await tracker.reminders.create_application_follow_up("app_1", "Acme", "DE", 2)
        b = await tracker.reminders.create_interview_follow_up("app_1", "Acme", "DE", 2)
        other = await tracker.reminders.create_application_follow_up("app_2", "Globex", "DE", 2)

        completed = await tracker.reminders.complete_open_for_application(
            "app_1", types=[FollowUpType.APPLICATION]
        )

        assert completed == [a.id]
        assert not (await tracker.reminders.get(b.id)).completed
        assert not (await tracker.reminders.get(other.id)).completed


class TestCompleteAndCreateNext:

    @pytest.mark.asyncio
    async def test_creates_successor_of_same_type(self, tracker, config):
        config.reminders.days_between_follow_ups = 2
        app = await tracker.applications.save(make_application())
        reminder = await tracker.reminders.create_application_follow_up(app.id, "Acme", "DE", 0)

        following = await tracker.reminders.complete_and_create_next(reminder.id)

        assert (await tracker.reminders.get(reminder.id)).completed
        assert following.type is FollowUpType.APPLICATION
        assert following.due_date == datetime(2026, 3, 12, 9, 0)

    @pytest.mark.asyncio
    async def test_no_successor_when_asked_not_to(self, tracker):
        reminder = await tracker.reminders.create_application_follow_up("app_1", "Acme", "DE", 0)

        assert await tracker.reminders.complete_and_create_next(reminder.id, create_next=False) is None
        assert len(await tracker.reminders.list_all()) == 1

    @pytest.mark.asyncio
    async def test_no_successor_for_rejected_application(self, tracker):
        app = await tracker.applications.save(make_application())
        reminder = await tracker.reminders.create_interview_follow_up(app.id, "Acme", "DE", 1)
        await tracker.applications.set_status(app.id, ApplicationStatus.REJECTED)

        assert await tracker.reminders.complete_and_create_next(reminder.id) is None
        assert (await tracker.reminders.get(reminder.id)).completed

    @pytest.mark.asyncio
    async def test_interview_successor_respects_thank_you_note(self, tracker):
        app = await tracker.applications.save(make_application())
        reminder = await tracker.reminders.create_interview_follow_up(app.id, "Acme", "DE", 1)
        event = await tracker.events.save(make_interview(app.id))
        await tracker.events.set_thank_you_status(event.id, "sent")

        assert await tracker.reminders.complete_and_create_next(reminder.id) is None

    @pytest.mark.asyncio
    async def test_missing_reminder_raises(self, tracker):
        with pytest.raises(EntityNotFound):
            await tracker.reminders.complete_and_create_next("followup_missing")


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_for_application_cancels_each(self, tracker, scheduler):
        first = await tracker.reminders.create_application_follow_up("app_1", "Acme", "DE", 2)
        second = await tracker.reminders.create_application_follow_up("app_1", "Acme", "DE", 4)
        keep = await tracker.reminders.create_application_follow_up("app_2", "Globex", "DE", 4)

        assert await tracker.reminders.delete_for_application("app_1") == 2

        assert first.notification_id in scheduler.cancelled
        assert second.notification_id in scheduler.cancelled
        assert [r.id for r in await tracker.reminders.list_all()] == [keep.id]

    @pytest.mark.asyncio
    async def test_list_active_and_sorting(self, tracker):
        late = await tracker.reminders.create_application_follow_up("app_1", "Acme", "DE", 9)
        early = await tracker.reminders.create_application_follow_up("app_1", "Acme", "DE", 1)
        await tracker.reminders.complete(late.id)

        assert [r.id for r in await tracker.reminders.list_all()] == [early.id, late.id]
        assert [r.id for r in await tracker.reminders.list_active()] == [early.id]
