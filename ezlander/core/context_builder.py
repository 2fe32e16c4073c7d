"""
Calendar context formatting for prompt injection and briefings.

Every formatter returns text and never raises: a disconnected calendar, an
empty result and a failed fetch each produce their own placeholder.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone, tzinfo

from ezlander.schemas.calendar import CalendarEvent
from ezlander.services.base import CalendarProvider, EmailProvider

logger = logging.getLogger(__name__)

TODAY_NOT_CONNECTED = "Calendar: Not connected to Google Calendar."
TODAY_EMPTY = "Calendar: No events scheduled for today."
TODAY_ERROR = "Calendar: Error fetching today's events."

UPCOMING_NOT_CONNECTED = "Upcoming: Calendar not connected."
UPCOMING_EMPTY = "No upcoming events in the next 24 hours."
UPCOMING_ERROR = "Upcoming: Error fetching upcoming events."

MAX_UPCOMING_EVENTS = 10
MAX_PREP_ATTENDEES = 3
MAX_PREP_EMAILS = 3
FIND_EVENT_WINDOW_DAYS = 7


def clock(dt: datetime) -> str:
    """Short 12-hour time, e.g. ``3:05 PM``."""
    return dt.strftime("%I:%M %p").lstrip("0")


def plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


class ContextBuilder:
    """Formats calendar data from the primary calendar into compact text."""

    def __init__(
        self,
        calendar: CalendarProvider,
        email: EmailProvider | None = None,
        tz: tzinfo = timezone.utc,
        now: Callable[[], datetime] | None = None,
    ):
        self.calendar = calendar
        self.email = email
        self.tz = tz
        self._now = now or (lambda: datetime.now(self.tz))

    def now(self) -> datetime:
        return self._now().astimezone(self.tz)

    def _local(self, dt: datetime) -> datetime:
        return dt.astimezone(self.tz) if dt.tzinfo else dt.replace(tzinfo=self.tz)

    def _today_range(self) -> tuple[datetime, datetime]:
        start = self.now().replace(hour=0, minute=0, second=0, microsecond=0)
        return start, start + timedelta(days=1)

    async def build_today_context(self) -> str:
        if not self.calendar.is_connected:
            return TODAY_NOT_CONNECTED

        try:
            events = await self.calendar.list_events(*self._today_range())
        except Exception as e:
            logger.error(f"Failed to load today's events: {e}")
            return TODAY_ERROR

        if not events:
            return TODAY_EMPTY

        lines = [f"Today's schedule ({plural(len(events), 'event')}):"]
        for event in events:
            if event.is_all_day:
                line = "- [All Day] "
            else:
                line = f"- [{clock(self._local(event.start))} - {clock(self._local(event.end))}] "
            line += event.title
            if event.has_video_call:
                line += " (video call)"
            if event.attendee_count:
                line += f" ({event.attendee_count} attendees)"
            if event.location:
                line += f" @ {event.location}"
            lines.append(line)
        return "\n".join(lines)

    async def build_upcoming_context(self) -> str:
        """Events starting within the next 24 hours."""
        if not self.calendar.is_connected:
            return UPCOMING_NOT_CONNECTED

        now = self.now()
        try:
            events = await self.calendar.list_events(now, now + timedelta(hours=24))
        except Exception as e:
            logger.error(f"Failed to load upcoming events: {e}")
            return UPCOMING_ERROR

        future = [event for event in events if event.start > now]
        if not future:
            return UPCOMING_EMPTY

        lines = ["Upcoming events:"]
        for event in future[:MAX_UPCOMING_EVENTS]:
            start = self._local(event.start)
            if event.is_all_day:
                label = "All Day"
            elif start.date() == now.date():
                label = clock(start)
            else:
                label = f"{start.strftime('%a')} {clock(start)}"
            line = f"- [{label}] {event.title}"
            if event.has_video_call:
                line += " (video call)"
            lines.append(line)
        return "\n".join(lines)

    async def build_meeting_prep_context(self, event: CalendarEvent) -> str:
        start = self._local(event.start)
        end = self._local(event.end)

        details = [f"Meeting: {event.title}"]
        details.append(f"When: {start.strftime('%b %d, %Y')} {clock(start)} - {clock(end)}")
        if event.location:
            details.append(f"Where: {event.location}")
        if event.has_video_call and event.conference_name:
            details.append(f"Video Call: {event.conference_name}")
        if event.description:
            details.append(f"Notes: {event.description}")
        sections = ["\n".join(details)]

        attendees = event.attendees or []
        if not attendees:
            return "\n\n".join(sections)

        attendee_lines = [f"Attendees ({len(attendees)}):"]
        for attendee in attendees:
            line = f"- {attendee.name} ({attendee.response_status.value})"
            if attendee.is_organizer:
                line += " [organizer]"
            if attendee.is_self:
                line += " [you]"
            attendee_lines.append(line)
        sections.append("\n".join(attendee_lines))

        threads = await self._recent_threads(attendees)
        if threads:
            sections.append(threads)
        return "\n\n".join(sections)

    async def _recent_threads(self, attendees) -> str | None:
        if self.email is None or not self.email.is_connected:
            return None

        external = [a for a in attendees if not a.is_self][:MAX_PREP_ATTENDEES]
        blocks = []
        for attendee in external:
            query = f"from:{attendee.email} OR to:{attendee.email}"
            try:
                emails = await self.email.search_emails(query, max_results=MAX_PREP_EMAILS)
            except Exception as e:
                # Best effort: this attendee's threads are left out
                logger.warning(f"Email lookup for {attendee.email} failed: {e}")
                continue
            if not emails:
                continue
            lines = [f"  With {attendee.name}:"]
            for email in emails[:MAX_PREP_EMAILS]:
                lines.append(f"  - [{self._local(email.date).strftime('%m/%d/%y')}] {email.subject}")
            blocks.append("\n".join(lines))

        if not blocks:
            return None
        return "Recent email threads with attendees:\n" + "\n".join(blocks)

    async def build_daily_briefing(self) -> str:
        if not self.calendar.is_connected:
            return "Good morning! Connect your Google Calendar in Settings to get a daily briefing."

        now = self.now()
        today = now.strftime("%A, %B ") + str(now.day)
        try:
            events = await self.calendar.list_events(*self._today_range())
        except Exception as e:
            logger.error(f"Failed to load events for daily briefing: {e}")
            return (
                f"Good morning! Today is **{today}**. I had trouble loading your calendar, "
                "but you can ask me about your schedule anytime."
            )

        if not events:
            return f"Good morning! Today is **{today}**. You have a clear schedule today -- no events planned."

        up_next = next((event for event in events if event.start > now), None)

        lines = [
            f"Good morning! Here's your briefing for **{today}**:",
            "",
            f"You have **{plural(len(events), 'event')}** today:",
            "",
        ]
        for event in events:
            if event.is_all_day:
                line = "All Day"
            else:
                line = f"{clock(self._local(event.start))} - {clock(self._local(event.end))}"
            line += f" · **{event.title}**"
            if event.has_video_call:
                line += " · Video call"
            if event.attendee_count:
                line += f" · {plural(event.attendee_count, 'attendee')}"
            if event.location:
                line += f" · {event.location}"
            if up_next is not None and up_next.id == event.id:
                line += " ← **Up Next**"
            lines.append(f"- {line}")

        video_calls = sum(1 for event in events if event.has_video_call)
        if video_calls:
            lines.append("")
            lines.append(f"You have {plural(video_calls, 'video call')} today.")
        return "\n".join(lines)

    async def find_event(self, title: str, near: datetime | None = None) -> CalendarEvent | None:
        """Case-insensitive substring match, either direction, over the next 7 days."""
        anchor = self._local(near) if near else self.now()
        start = anchor.replace(hour=0, minute=0, second=0, microsecond=0)
        end = start + timedelta(days=FIND_EVENT_WINDOW_DAYS)

        try:
            events = await self.calendar.list_events(start, end)
        except Exception as e:
            logger.error(f"Failed to search events for '{title}': {e}")
            return None

        wanted = title.strip().lower()
        if not wanted:
            return None
        for event in events:
            if wanted in event.title.lower():
                return event
        for event in events:
            if event.title and event.title.lower() in wanted:
                return event
        return None
