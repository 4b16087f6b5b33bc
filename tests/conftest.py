"""
Shared fixtures: an in-memory store, a controllable clock, and recording
fakes for the notification scheduler and calendar sync.
"""

from datetime import date, datetime, time, timedelta

import pytest

from jobtrail.calendar_sync import CalendarSync
from jobtrail.config_loader import Config
from jobtrail.models import Event, EventType, JobApplication
from jobtrail.notifications import NotificationScheduler
from jobtrail.store import MemoryStore
from jobtrail.tracker import JobTracker

NOW = datetime(2026, 3, 10, 12, 0)


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeScheduler(NotificationScheduler):
    """Records every call; refuses instants that are not in the future."""

    def __init__(self, clock: FakeClock):
        self._clock = clock
        self._counter = 0
        self.scheduled: dict[str, tuple[str, str, datetime]] = {}
        self.cancelled: list[str] = []
        self.fail_schedule = False
        self.fail_cancel_for: set[str] = set()

    async def schedule(self, title, body, fires_at, data=None):
        if self.fail_schedule:
            raise RuntimeError("scheduler unavailable")
        if fires_at <= self._clock():
            return None
        self._counter += 1
        handle = f"notif-{self._counter}"
        self.scheduled[handle] = (title, body, fires_at)
        return handle

    async def cancel(self, handle):
        if handle in self.fail_cancel_for:
            raise RuntimeError(f"cannot cancel {handle}")
        self.cancelled.append(handle)
        self.scheduled.pop(handle, None)

    def is_armed(self, handle) -> bool:
        return handle in self.scheduled


class FakeCalendar(CalendarSync):
    def __init__(self):
        self._counter = 0
        self.created: list[str] = []
        self.updated: list[str] = []
        self.deleted: list[str] = []
        self.fail = False

    async def create(self, event):
        if self.fail:
            raise RuntimeError("calendar offline")
        self._counter += 1
        external_id = f"cal-{self._counter}"
        self.created.append(event.id)
        return external_id

    async def update(self, external_id, event):
        if self.fail:
            raise RuntimeError("calendar offline")
        self.updated.append(external_id)
        return True

    async def delete(self, external_id):
        if self.fail:
            raise RuntimeError("calendar offline")
        self.deleted.append(external_id)
        return True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return FakeScheduler(clock)


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def config():
    cfg = Config()
    # Most tests add reminders explicitly; the automatic one gets its own tests
    cfg.reminders.follow_up_days_after_application = 0
    return cfg


@pytest.fixture
def tracker(scheduler, calendar, config, clock):
    return JobTracker(
        store=MemoryStore(),
        scheduler=scheduler,
        calendar=calendar,
        config=config,
        clock=clock,
    )


def make_application(**kwargs) -> JobApplication:
    defaults = dict(company="Acme", position_title="Data Engineer", source="LinkedIn", applied_date=NOW)
    defaults.update(kwargs)
    return JobApplication(**defaults)


def make_interview(application_id=None, day: date = date(2026, 3, 12), **kwargs) -> Event:
    defaults = dict(
        date_key=day,
        start_time=time(14, 0),
        type=EventType.INTERVIEW,
        title="Onsite",
        application_id=application_id,
        company="Acme",
    )
    defaults.update(kwargs)
    return Event(**defaults)
