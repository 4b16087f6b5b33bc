"""Load and validate the YAML configuration file."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import time
from pathlib import Path

import yaml
from dotenv import load_dotenv

from jobtrail.utils import parse_time_of_day

CALENDAR_PROVIDERS = ("none", "google")
TONES = ("professional", "friendly", "casual", "formal", "enthusiastic", "concise")


@dataclass
class ReminderSettings:
    follow_up_days_after_application: int = 7
    days_between_follow_ups: int = 2
    due_time: time = time(9, 0)


@dataclass
class ThankYouSettings:
    offset_days: int = 1
    reminder_time: time = time(9, 0)


@dataclass
class CalendarSettings:
    provider: str = "none"
    calendar_id: str = "primary"
    token_file: str = "credentials/token.json"
    timezone: str = ""


@dataclass
class DraftSettings:
    your_name: str = ""
    tone: str = "professional"
    model: str = "claude-sonnet-4-20250514"


@dataclass
class Config:
    data_dir: Path = Path("data")
    reminders: ReminderSettings = field(default_factory=ReminderSettings)
    thank_you: ThankYouSettings = field(default_factory=ThankYouSettings)
    alert_minutes_before: int = 10
    notifications_enabled: bool = True
    calendar: CalendarSettings = field(default_factory=CalendarSettings)
    drafts: DraftSettings = field(default_factory=DraftSettings)
    anthropic_api_key: str = ""


def _non_negative_int(section: dict, key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{key} must be a non-negative integer, got {value!r}")
    return value


def _time_setting(section: dict, key: str, default: str) -> time:
    value = section.get(key, default)
    # YAML 1.1 reads an unquoted 9:00 as the base-60 integer 540
    if isinstance(value, int) and not isinstance(value, bool):
        if not 0 <= value < 24 * 60:
            raise ValueError(f"{key} must be a HH:MM time of day, got {value // 60}:{value % 60:02d}")
        return time(value // 60, value % 60)
    return parse_time_of_day(value)


def load_config(config_path: Path | str = "config.yaml") -> Config:
    """Load config.yaml and .env, validate fields, return Config.

    A missing file is fine: every setting has a default.
    """
    load_dotenv()

    config_path = Path(config_path)
    raw: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

    storage = raw.get("storage") or {}
    rem = raw.get("reminders") or {}
    ty = raw.get("thank_you") or {}
    events = raw.get("events") or {}
    notifications = raw.get("notifications") or {}
    cal = raw.get("calendar") or {}
    drafts = raw.get("drafts") or {}

    reminders = ReminderSettings(
        follow_up_days_after_application=_non_negative_int(
            rem, "follow_up_days_after_application", 7
        ),
        days_between_follow_ups=_non_negative_int(rem, "days_between_follow_ups", 2),
        due_time=_time_setting(rem, "due_time", "09:00"),
    )

    thank_you = ThankYouSettings(
        offset_days=_non_negative_int(ty, "offset_days", 1),
        reminder_time=_time_setting(ty, "reminder_time", "09:00"),
    )

    provider = str(cal.get("provider", "none")).lower()
    if provider not in CALENDAR_PROVIDERS:
        raise ValueError(f"calendar.provider must be one of {CALENDAR_PROVIDERS}, got {provider!r}")
    calendar = CalendarSettings(
        provider=provider,
        calendar_id=cal.get("calendar_id", "primary"),
        token_file=cal.get("token_file", "credentials/token.json"),
        timezone=cal.get("timezone", "") or "",
    )

    tone = drafts.get("tone", "professional")
    if tone not in TONES:
        raise ValueError(f"drafts.tone must be one of {TONES}, got {tone!r}")
    draft_settings = DraftSettings(
        your_name=drafts.get("your_name", ""),
        tone=tone,
        model=drafts.get("model", "claude-sonnet-4-20250514"),
    )

    # API key from environment only; without it drafts use the plain template
    api_key = os.getenv("ANTHROPIC_API_KEY", "")

    return Config(
        data_dir=Path(storage.get("data_dir", "data")),
        reminders=reminders,
        thank_you=thank_you,
        alert_minutes_before=_non_negative_int(events, "alert_minutes_before", 10),
        notifications_enabled=bool(notifications.get("enabled", True)),
        calendar=calendar,
        drafts=draft_settings,
        anthropic_api_key=api_key,
    )
