#!/usr/bin/env python3
"""jobtrail - keep job applications, interviews, and follow-ups in step.

Usage:
    python main.py add-application "Acme" "Data Engineer" --source LinkedIn
    python main.py add-event 2026-03-12 14:00 interview --application app_... --title "Onsite"
    python main.py thank-you event_... sent --recipient jane@acme.com
    python main.py reminders                # today's follow-ups + overdue count
    python main.py pending-thank-you --overdue
    python main.py notifications            # alerts that have come due
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date, datetime, time
from pathlib import Path

from jobtrail.config_loader import Config, load_config
from jobtrail.drafts import ThankYouDrafter
from jobtrail.errors import JobTrailError
from jobtrail.models import ApplicationStatus, Event, EventType, JobApplication, ThankYouNoteStatus
from jobtrail.notifications import StoreNotificationScheduler
from jobtrail.tracker import JobTracker
from jobtrail.utils import setup_logging

logger = logging.getLogger("jobtrail")


async def cmd_add_application(tracker: JobTracker, args: argparse.Namespace) -> None:
    if await tracker.applications.has_applied_to_position(args.company, args.position):
        logger.warning("You already have an application for %s at %s.", args.position, args.company)
    application = JobApplication(
        company=args.company,
        position_title=args.position,
        source=args.source,
        source_url=args.url,
        applied_date=datetime.fromisoformat(args.applied) if args.applied else tracker.clock(),
        status=ApplicationStatus(args.status),
    )
    await tracker.applications.save(application)
    print(application.id)


async def cmd_set_status(tracker: JobTracker, args: argparse.Namespace) -> None:
    application = await tracker.applications.set_status(args.application_id, args.status)
    print(f"{application.company}: {application.status.value}")


async def cmd_note(tracker: JobTracker, args: argparse.Namespace) -> None:
    entry = await tracker.applications.add_note(args.application_id, args.text)
    print(f"Note added at {entry.timestamp:%Y-%m-%d %H:%M}")


async def cmd_delete_application(tracker: JobTracker, args: argparse.Namespace) -> None:
    if not await tracker.applications.delete(args.application_id):
        sys.exit(1)


async def cmd_add_event(tracker: JobTracker, args: argparse.Namespace) -> None:
    event = Event(
        date_key=date.fromisoformat(args.date),
        start_time=time.fromisoformat(args.start),
        end_time=time.fromisoformat(args.end) if args.end else None,
        type=EventType(args.type),
        title=args.title,
        application_id=args.application,
        company=args.company,
        job_title=args.job_title,
        contact_name=args.contact,
        email=args.email,
    )
    await tracker.events.save(event)
    print(event.id)


async def cmd_delete_event(tracker: JobTracker, args: argparse.Namespace) -> None:
    if not await tracker.events.delete(args.event_id):
        sys.exit(1)


async def cmd_thank_you(tracker: JobTracker, args: argparse.Namespace) -> None:
    if args.status == ThankYouNoteStatus.SENT.value:
        event = await tracker.mark_thank_you_sent(args.event_id, args.recipient)
    else:
        event = await tracker.set_event_thank_you_status(args.event_id, args.status)
    print(f"Thank-you note for {event.title or event.id}: {event.thank_you_note_status.value}")


async def cmd_draft_thank_you(tracker: JobTracker, args: argparse.Namespace) -> None:
    event = await tracker.events.get(args.event_id)
    if event is None:
        logger.error("Event %s not found.", args.event_id)
        sys.exit(1)
    application = await tracker.applications.get(event.application_id) if event.application_id else None

    drafts = tracker.config.drafts
    drafter = ThankYouDrafter(
        api_key=tracker.config.anthropic_api_key,
        model=drafts.model,
        your_name=drafts.your_name,
    )
    try:
        draft = await drafter.draft(event, application, tone=args.tone or drafts.tone)
    finally:
        await drafter.close()
    print(f"Subject: {draft.subject}\n\n{draft.body}")


async def cmd_reminders(tracker: JobTracker, args: argparse.Namespace) -> None:
    day = date.fromisoformat(args.day) if args.day else tracker.clock().date()
    active = await tracker.active_follow_ups(day)
    print(f"\nFollow-ups for {day.isoformat()}:")
    if not active:
        print("  (none)")
    for reminder in active:
        print(f"  [{reminder.type.value}] {reminder.company} - {reminder.position_title}  ({reminder.id})")
    print(f"Overdue follow-ups: {await tracker.overdue_follow_up_count(day)}\n")


async def cmd_complete_reminder(tracker: JobTracker, args: argparse.Namespace) -> None:
    if args.next:
        following = await tracker.reminders.complete_and_create_next(args.reminder_id)
        if following is not None:
            print(f"Next follow-up due {following.due_date:%Y-%m-%d %H:%M} ({following.id})")
    else:
        await tracker.reminders.complete(args.reminder_id)


async def cmd_pending_thank_you(tracker: JobTracker, args: argparse.Namespace) -> None:
    if args.overdue:
        notes = await tracker.overdue_thank_you_notes()
    else:
        notes = await tracker.pending_thank_you_notes()
    label = "Overdue" if args.overdue else "Pending"
    print(f"\n{label} thank-you notes: {len(notes)}")
    for note in notes:
        company = note.application.company if note.application else note.event.company
        print(f"  {note.event.date_key.isoformat()}  {company or '?'}  {note.event.title}  ({note.event.id})")
    print()


async def cmd_notifications(tracker: JobTracker, args: argparse.Namespace) -> None:
    if not isinstance(tracker.scheduler, StoreNotificationScheduler):
        print("Notifications are disabled in config.")
        return
    for notification in await tracker.scheduler.due():
        print(f"  {notification.fires_at:%Y-%m-%d %H:%M}  {notification.title}: {notification.body}")


async def cmd_sync_calendar(tracker: JobTracker, args: argparse.Namespace) -> None:
    synced, already, failed = await tracker.events.sync_all_to_calendar()
    print(f"Synced {synced}, already synced {already}, failed {failed}")


async def cmd_repair_links(tracker: JobTracker, args: argparse.Namespace) -> None:
    changed = await tracker.repair_links()
    print(f"Repaired links on {changed} application(s)")


async def cmd_stats(tracker: JobTracker, args: argparse.Namespace) -> None:
    stats = await tracker.applications.stats()
    print(f"\n{'=' * 40}")
    print("  Applications")
    print(f"{'=' * 40}")
    print(f"  Total:       {stats.total}")
    print(f"  Applied:     {stats.applied}")
    print(f"  Interview:   {stats.interview}")
    print(f"  Rejected:    {stats.rejected}")
    print(f"  No response: {stats.no_response}")
    print(f"{'=' * 40}\n")


COMMANDS = {
    "add-application": cmd_add_application,
    "set-status": cmd_set_status,
    "note": cmd_note,
    "delete-application": cmd_delete_application,
    "add-event": cmd_add_event,
    "delete-event": cmd_delete_event,
    "thank-you": cmd_thank_you,
    "draft-thank-you": cmd_draft_thank_you,
    "reminders": cmd_reminders,
    "complete-reminder": cmd_complete_reminder,
    "pending-thank-you": cmd_pending_thank_you,
    "notifications": cmd_notifications,
    "sync-calendar": cmd_sync_calendar,
    "repair-links": cmd_repair_links,
    "stats": cmd_stats,
}


async def run_command(config: Config, args: argparse.Namespace) -> None:
    tracker = JobTracker.from_config(config)
    await COMMANDS[args.command](tracker, args)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="jobtrail - job applications, interviews, and follow-ups",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="Path to config file (default: config.yaml).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    statuses = [s.value for s in ApplicationStatus]

    p = sub.add_parser("add-application", help="Record a new application.")
    p.add_argument("company")
    p.add_argument("position")
    p.add_argument("--source", default="")
    p.add_argument("--url", default="")
    p.add_argument("--applied", help="Applied date/time, ISO format (default: now).")
    p.add_argument("--status", choices=statuses, default=ApplicationStatus.APPLIED.value)

    p = sub.add_parser("set-status", help="Change an application's status.")
    p.add_argument("application_id")
    p.add_argument("status", choices=statuses)

    p = sub.add_parser("note", help="Append a note to an application.")
    p.add_argument("application_id")
    p.add_argument("text")

    p = sub.add_parser("delete-application", help="Delete an application and its follow-ups.")
    p.add_argument("application_id")

    p = sub.add_parser("add-event", help="Add an interview, appointment, or reminder.")
    p.add_argument("date", help="YYYY-MM-DD")
    p.add_argument("start", help="HH:MM")
    p.add_argument("type", choices=[t.value for t in EventType])
    p.add_argument("--end", help="HH:MM")
    p.add_argument("--title", default="")
    p.add_argument("--application", help="Link to this application id.")
    p.add_argument("--company", default="")
    p.add_argument("--job-title", default="")
    p.add_argument("--contact", default="")
    p.add_argument("--email", default="")

    p = sub.add_parser("delete-event", help="Delete an event.")
    p.add_argument("event_id")

    p = sub.add_parser("thank-you", help="Mark an interview's thank-you note sent or skipped.")
    p.add_argument("event_id")
    p.add_argument("status", choices=[ThankYouNoteStatus.SENT.value, ThankYouNoteStatus.SKIPPED.value])
    p.add_argument("--recipient", default="", help="Email address the note went to.")

    p = sub.add_parser("draft-thank-you", help="Print a thank-you note draft for an interview.")
    p.add_argument("event_id")
    p.add_argument("--tone", help="Override the configured tone.")

    p = sub.add_parser("reminders", help="Show follow-ups due on a day.")
    p.add_argument("--day", help="YYYY-MM-DD (default: today)")

    p = sub.add_parser("complete-reminder", help="Complete a follow-up reminder.")
    p.add_argument("reminder_id")
    p.add_argument("--next", action="store_true", help="Schedule the next follow-up too.")

    p = sub.add_parser("pending-thank-you", help="List interviews still owing a thank-you note.")
    p.add_argument("--overdue", action="store_true", help="Only those past the grace period.")

    sub.add_parser("notifications", help="Show and clear alerts that have come due.")
    sub.add_parser("sync-calendar", help="Mirror unsynced events to the calendar.")
    sub.add_parser("repair-links", help="Rebuild application/event links.")
    sub.add_parser("stats", help="Application counts by status.")

    return parser.parse_args(argv)


def main():
    args = parse_args()
    try:
        config = load_config(Path(args.config))
    except ValueError as e:
        print(f"Config error: {e}", file=sys.stderr)
        sys.exit(2)
    setup_logging(verbose=args.verbose, log_dir=config.data_dir)

    try:
        asyncio.run(run_command(config, args))
    except JobTrailError as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
