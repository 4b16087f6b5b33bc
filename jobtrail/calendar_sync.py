"""Optional mirroring of events into an external calendar.

Every call is best-effort: failures are logged and reported through the
return value (None / False), never raised.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from jobtrail.config_loader import CalendarSettings
from jobtrail.models import Event, EventType

logger = logging.getLogger("jobtrail")

SCOPES_CAL = ["https://www.googleapis.com/auth/calendar.events"]


class CalendarSync(ABC):
    @abstractmethod
    async def create(self, event: Event) -> str | None: ...

    @abstractmethod
    async def update(self, external_id: str, event: Event) -> bool: ...

    @abstractmethod
    async def delete(self, external_id: str) -> bool: ...


class NullCalendarSync(CalendarSync):
    """Calendar sync turned off."""

    async def create(self, event: Event) -> str | None:
        return None

    async def update(self, external_id: str, event: Event) -> bool:
        return False

    async def delete(self, external_id: str) -> bool:
        return False


def event_to_calendar_body(event: Event, timezone: str = "", alert_minutes: int = 10) -> dict[str, Any]:
    """Convert an event to a Google Calendar v3 event resource."""
    if event.type in (EventType.INTERVIEW, EventType.APPOINTMENT):
        details = [
            f"{label}: {value}"
            for label, value in (
                ("Company", event.company),
                ("Job Title", event.job_title),
                ("Contact", event.contact_name),
                ("Phone", event.phone),
                ("Email", event.email),
                ("Address", event.address),
                ("Notes", event.notes),
            )
            if value
        ]
        description = "\n".join(details)
    else:
        description = event.notes

    start: dict[str, str] = {"dateTime": event.starts_at.isoformat()}
    end: dict[str, str] = {"dateTime": event.ends_at.isoformat()}
    if timezone:
        start["timeZone"] = timezone
        end["timeZone"] = timezone

    body: dict[str, Any] = {
        "summary": f"{event.type.value.capitalize()}: {event.title}",
        "description": description,
        "start": start,
        "end": end,
        "reminders": {
            "useDefault": False,
            "overrides": [{"method": "popup", "minutes": alert_minutes}],
        },
    }
    if event.address:
        body["location"] = event.address
    return body


class GoogleCalendarSync(CalendarSync):
    """Mirror events into a Google Calendar using a stored OAuth token.

    The token file must already exist (created by an interactive OAuth flow
    elsewhere); an expired token is refreshed and written back.
    """

    def __init__(
        self,
        calendar_id: str = "primary",
        token_file: Path | str = "credentials/token.json",
        timezone: str = "",
        alert_minutes: int = 10,
        service: Any = None,
    ):
        self._calendar_id = calendar_id
        self._token_file = Path(token_file)
        self._timezone = timezone
        self._alert_minutes = alert_minutes
        self._service = service

    def _get_service(self) -> Any:
        if self._service is None:
            from google.auth.transport.requests import Request
            from google.oauth2.credentials import Credentials
            from googleapiclient.discovery import build

            creds = Credentials.from_authorized_user_file(str(self._token_file), SCOPES_CAL)
            if not creds.valid:
                if creds.expired and creds.refresh_token:
                    creds.refresh(Request())
                    self._token_file.write_text(creds.to_json(), encoding="utf-8")
                else:
                    raise RuntimeError(f"Calendar token in {self._token_file} is invalid")
            self._service = build("calendar", "v3", credentials=creds)
        return self._service

    def _body(self, event: Event) -> dict[str, Any]:
        return event_to_calendar_body(event, self._timezone, self._alert_minutes)

    async def create(self, event: Event) -> str | None:
        def _insert() -> dict:
            service = self._get_service()
            return service.events().insert(calendarId=self._calendar_id, body=self._body(event)).execute()

        try:
            created = await asyncio.to_thread(_insert)
        except Exception as e:
            logger.warning("Calendar create failed for %s: %s", event.id, e)
            return None
        return created.get("id")

    async def update(self, external_id: str, event: Event) -> bool:
        def _update() -> dict:
            service = self._get_service()
            return service.events().update(
                calendarId=self._calendar_id, eventId=external_id, body=self._body(event)
            ).execute()

        try:
            await asyncio.to_thread(_update)
        except Exception as e:
            logger.warning("Calendar update failed for %s: %s", external_id, e)
            return False
        return True

    async def delete(self, external_id: str) -> bool:
        def _delete() -> None:
            service = self._get_service()
            service.events().delete(calendarId=self._calendar_id, eventId=external_id).execute()

        try:
            await asyncio.to_thread(_delete)
        except Exception as e:
            logger.warning("Calendar delete failed for %s: %s", external_id, e)
            return False
        return True


def build_calendar_sync(settings: CalendarSettings, alert_minutes: int = 10) -> CalendarSync:
    if settings.provider == "google":
        return GoogleCalendarSync(
            calendar_id=settings.calendar_id,
            token_file=settings.token_file,
            timezone=settings.timezone,
            alert_minutes=alert_minutes,
        )
    return NullCalendarSync()
