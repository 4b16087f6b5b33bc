"""Data models for applications, calendar events, and follow-up reminders.

Every model round-trips through a plain JSON-compatible dict so it can be
stored under a single key in the key/value store.
"""

from __future__ import annotations

import time as _time
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any


class ApplicationStatus(Enum):
    APPLIED = "applied"
    INTERVIEW = "interview"
    REJECTED = "rejected"
    NO_RESPONSE = "no-response"


class EventType(Enum):
    INTERVIEW = "interview"
    APPOINTMENT = "appointment"
    REMINDER = "reminder"


class ThankYouNoteStatus(Enum):
    PENDING = "pending"
    SENT = "sent"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self is not ThankYouNoteStatus.PENDING


class FollowUpType(Enum):
    APPLICATION = "application"
    INTERVIEW = "interview"


def new_id(prefix: str) -> str:
    """Return a unique id like ``event_1718000000000_3f9a1c2b7``."""
    return f"{prefix}_{int(_time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _iso(value: datetime | date | time | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _parse_time(value: str | None) -> time | None:
    return time.fromisoformat(value) if value else None


@dataclass
class NoteEntry:
    timestamp: datetime
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp.isoformat(), "text": self.text}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NoteEntry:
        return cls(timestamp=datetime.fromisoformat(data["timestamp"]), text=data.get("text", ""))


@dataclass
class SentEmail:
    type: str
    sent_date: datetime
    recipient_email: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "sentDate": self.sent_date.isoformat(),
            "recipientEmail": self.recipient_email,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SentEmail:
        return cls(
            type=data["type"],
            sent_date=datetime.fromisoformat(data["sentDate"]),
            recipient_email=data.get("recipientEmail", ""),
        )


@dataclass
class JobApplication:
    company: str
    position_title: str
    source: str = ""
    applied_date: datetime = field(default_factory=datetime.now)
    status: ApplicationStatus = ApplicationStatus.APPLIED
    id: str = field(default_factory=lambda: new_id("app"))
    source_url: str = ""
    # Ids of linked events. Order is irrelevant; entries are unique.
    event_ids: list[str] = field(default_factory=list)
    notes: list[NoteEntry] = field(default_factory=list)
    sent_emails: list[SentEmail] = field(default_factory=list)
    status_change_timestamps: dict[ApplicationStatus, datetime] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "company": self.company,
            "positionTitle": self.position_title,
            "source": self.source,
            "sourceUrl": self.source_url,
            "appliedDate": self.applied_date.isoformat(),
            "status": self.status.value,
            "eventIds": list(self.event_ids),
            "notes": [n.to_dict() for n in self.notes],
            "sentEmails": [e.to_dict() for e in self.sent_emails],
            "statusChangeTimestamps": {
                status.value: ts.isoformat() for status, ts in self.status_change_timestamps.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JobApplication:
        event_ids = list(data.get("eventIds") or [])
        # Records written before multi-interview support carry a single eventId
        if not event_ids and data.get("eventId"):
            event_ids = [data["eventId"]]
        return cls(
            id=data["id"],
            company=data.get("company", ""),
            position_title=data.get("positionTitle", ""),
            source=data.get("source", ""),
            source_url=data.get("sourceUrl", ""),
            applied_date=datetime.fromisoformat(data["appliedDate"]),
            status=ApplicationStatus(data.get("status", "applied")),
            event_ids=event_ids,
            notes=[NoteEntry.from_dict(n) for n in data.get("notes") or []],
            sent_emails=[SentEmail.from_dict(e) for e in data.get("sentEmails") or []],
            status_change_timestamps={
                ApplicationStatus(k): datetime.fromisoformat(v)
                for k, v in (data.get("statusChangeTimestamps") or {}).items()
            },
        )


@dataclass
class Event:
    date_key: date
    start_time: time
    type: EventType
    title: str = ""
    end_time: time | None = None
    id: str = field(default_factory=lambda: new_id("event"))
    application_id: str | None = None
    # Only meaningful for interview events; None everywhere else.
    thank_you_note_status: ThankYouNoteStatus | None = None
    notification_id: str | None = None
    thank_you_note_reminder_id: str | None = None
    calendar_event_id: str | None = None
    notes: str = ""
    address: str = ""
    contact_name: str = ""
    email: str = ""
    phone: str = ""
    company: str = ""
    job_title: str = ""

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date_key, self.start_time)

    @property
    def ends_at(self) -> datetime:
        if self.end_time is not None:
            return datetime.combine(self.date_key, self.end_time)
        return self.starts_at + timedelta(hours=1)

    @property
    def is_interview(self) -> bool:
        return self.type is EventType.INTERVIEW

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "dateKey": self.date_key.isoformat(),
            "startTime": self.start_time.strftime("%H:%M"),
            "endTime": self.end_time.strftime("%H:%M") if self.end_time else None,
            "type": self.type.value,
            "title": self.title,
            "applicationId": self.application_id,
            "thankYouNoteStatus": (
                self.thank_you_note_status.value if self.thank_you_note_status else None
            ),
            "notificationId": self.notification_id,
            "thankYouNoteReminderId": self.thank_you_note_reminder_id,
            "calendarEventId": self.calendar_event_id,
            "notes": self.notes,
            "address": self.address,
            "contactName": self.contact_name,
            "email": self.email,
            "phone": self.phone,
            "company": self.company,
            "jobTitle": self.job_title,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        status = data.get("thankYouNoteStatus")
        return cls(
            id=data["id"],
            date_key=date.fromisoformat(data["dateKey"]),
            start_time=time.fromisoformat(data["startTime"]),
            end_time=_parse_time(data.get("endTime")),
            type=EventType(data["type"]),
            title=data.get("title", ""),
            application_id=data.get("applicationId"),
            thank_you_note_status=ThankYouNoteStatus(status) if status else None,
            notification_id=data.get("notificationId"),
            thank_you_note_reminder_id=data.get("thankYouNoteReminderId"),
            calendar_event_id=data.get("calendarEventId"),
            notes=data.get("notes", ""),
            address=data.get("address", ""),
            contact_name=data.get("contactName", ""),
            email=data.get("email", ""),
            phone=data.get("phone", ""),
            company=data.get("company", ""),
            job_title=data.get("jobTitle", ""),
        )


@dataclass
class FollowUpReminder:
    application_id: str
    type: FollowUpType
    due_date: datetime
    company: str = ""
    position_title: str = ""
    completed: bool = False
    completed_at: datetime | None = None
    notification_id: str | None = None
    id: str = field(default_factory=lambda: new_id("followup"))
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "applicationId": self.application_id,
            "type": self.type.value,
            "dueDate": self.due_date.isoformat(),
            "company": self.company,
            "positionTitle": self.position_title,
            "completed": self.completed,
            "completedAt": _iso(self.completed_at),
            "notificationId": self.notification_id,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FollowUpReminder:
        return cls(
            id=data["id"],
            application_id=data["applicationId"],
            type=FollowUpType(data["type"]),
            due_date=datetime.fromisoformat(data["dueDate"]),
            company=data.get("company", ""),
            position_title=data.get("positionTitle", ""),
            completed=bool(data.get("completed", False)),
            completed_at=_parse_dt(data.get("completedAt")),
            notification_id=data.get("notificationId"),
            created_at=_parse_dt(data.get("createdAt")) or datetime.now(),
        )
