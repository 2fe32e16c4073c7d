"""Local execution of model-requested tools."""

import logging
import uuid
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Any

from ezlander.core import tool_registry as tools
from ezlander.core.context_builder import FIND_EVENT_WINDOW_DAYS, ContextBuilder, clock
from ezlander.core.datetime_parser import combine, parse_date
from ezlander.core.errors import ProviderError, ToolExecutionFailed
from ezlander.core.title_extractor import extract_title, is_generic_title
from ezlander.schemas.calendar import CalendarEvent, CalendarSource, EventAttendee
from ezlander.schemas.email import Email
from ezlander.services.base import CalendarProvider, EmailProvider

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 60
DEFAULT_MAX_RESULTS = 10
SEARCH_PREVIEW_COUNT = 5
MAX_LISTED_ATTENDEES = 3

_SOURCE_NAMES = {
    CalendarSource.GOOGLE: "Google Calendar",
    CalendarSource.APPLE: "Apple Calendar",
}


def _text(args: dict[str, Any], key: str) -> str:
    value = args.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _require(args: dict[str, Any], *keys: str) -> None:
    missing = [key for key in keys if key not in args or args[key] is None]
    if missing:
        raise ToolExecutionFailed(f"Missing required field(s): {', '.join(missing)}")


def _as_int(value: Any, default: int) -> int:
    try:
        parsed = int(float(value))
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "yes", "1")


def _split_addresses(value: Any) -> list[str]:
    if not value:
        return []
    items = value if isinstance(value, list) else str(value).split(",")
    return [str(item).strip() for item in items if str(item).strip()]


def format_attendee_names(event: CalendarEvent) -> str:
    """First three attendee names plus a "+N more" suffix."""
    names = [attendee.name for attendee in event.attendees or []]
    shown = ", ".join(names[:MAX_LISTED_ATTENDEES])
    if len(names) > MAX_LISTED_ATTENDEES:
        shown += f" +{len(names) - MAX_LISTED_ATTENDEES} more"
    return shown


class ToolExecutor:
    """Dispatches a tool call to the matching collaborator and renders the result."""

    def __init__(
        self,
        calendars: dict[CalendarSource, CalendarProvider],
        email: EmailProvider,
        context: ContextBuilder,
        tz: tzinfo = timezone.utc,
    ):
        self.calendars = calendars
        self.email = email
        self.context = context
        self.tz = tz
        self._handlers = {
            tools.CREATE_CALENDAR_EVENT: self._create_calendar_event,
            tools.LIST_CALENDAR_EVENTS: self._list_calendar_events,
            tools.SEND_EMAIL: self._send_email,
            tools.DRAFT_EMAIL: self._draft_email,
            tools.SEARCH_EMAILS: self._search_emails,
            tools.GET_MEETING_PREP: self._get_meeting_prep,
        }

    async def execute(self, tool_name: str, args: dict[str, Any], original_user_text: str = "") -> str:
        """Run a tool and return its result text.

        Raises:
            ToolExecutionFailed: If arguments are missing or a collaborator fails
        """
        handler = self._handlers.get(tool_name)
        if handler is None:
            logger.warning(f"Model requested unknown tool {tool_name}")
            return f"Unknown tool: {tool_name}"

        logger.info(f"Executing tool {tool_name}")
        try:
            return await handler(args or {}, original_user_text)
        except ToolExecutionFailed:
            raise
        except (ProviderError, ValueError) as e:
            logger.error(f"Tool {tool_name} failed: {e}")
            raise ToolExecutionFailed(str(e)) from e

    def _calendar(self, source: CalendarSource) -> CalendarProvider:
        calendar = self.calendars.get(source)
        if calendar is None or not calendar.is_connected:
            raise ToolExecutionFailed(f"{_SOURCE_NAMES[source]} is not connected")
        return calendar

    def _source(self, value: str, default: str) -> str:
        return (value or default).lower()

    async def _create_calendar_event(self, args: dict[str, Any], original_user_text: str) -> str:
        _require(args, "title", "date", "time")

        title = _text(args, "title")
        if is_generic_title(title):
            extracted = extract_title(original_user_text)
            logger.info(f"Replacing placeholder title '{title}' with '{extracted}'")
            title = extracted

        start = combine(_text(args, "date"), _text(args, "time"), self.tz, today=self.context.now().date())
        duration = _as_int(args.get("duration"), DEFAULT_DURATION_MINUTES)

        calendar_type = self._source(_text(args, "calendar_type"), "google")
        try:
            source = CalendarSource(calendar_type)
        except ValueError:
            raise ToolExecutionFailed(f"Unknown calendar type: {calendar_type}")

        add_video_call = _as_bool(args.get("add_video_call", False))
        attendees = [EventAttendee(email=address) for address in _split_addresses(args.get("attendees"))]

        event = CalendarEvent(
            id=str(uuid.uuid4()),
            title=title,
            start=start,
            end=start + timedelta(minutes=duration),
            calendar_type=source,
            description=_text(args, "description") or None,
            location=_text(args, "location") or None,
            attendees=attendees or None,
            add_video_call=add_video_call and source is CalendarSource.GOOGLE,
        )

        created = await self._calendar(source).create_event(event)

        confirmation = (
            f"Successfully created event '{title}' on {start.strftime('%A, %B %d, %Y')} "
            f"at {clock(start)} ({duration} min) in {_SOURCE_NAMES[source]}"
        )
        if attendees:
            confirmation += f" with attendees {', '.join(a.email for a in attendees)}"
        if add_video_call or created.has_video_call:
            confirmation += ". A video call link was added"
            if created.effective_join_url:
                confirmation += f": {created.effective_join_url}"
        return confirmation

    async def _list_calendar_events(self, args: dict[str, Any], original_user_text: str) -> str:
        _require(args, "start_date", "end_date")

        today = self.context.now().date()
        first = parse_date(_text(args, "start_date"), today=today)
        last = parse_date(_text(args, "end_date"), today=today)
        if last < first:
            first, last = last, first
        range_start = datetime.combine(first, time.min, tzinfo=self.tz)
        range_end = datetime.combine(last + timedelta(days=1), time.min, tzinfo=self.tz)

        calendar_type = self._source(_text(args, "calendar_type"), "both")
        if calendar_type == "both":
            sources = [
                source
                for source, calendar in self.calendars.items()
                if calendar is not None and calendar.is_connected
            ]
            if not sources:
                raise ToolExecutionFailed("No calendars are connected")
        else:
            try:
                sources = [CalendarSource(calendar_type)]
            except ValueError:
                raise ToolExecutionFailed(f"Unknown calendar type: {calendar_type}")

        # Expanded recurring instances share an id, so the start is part of the key
        seen: set[tuple[CalendarSource, str, datetime]] = set()
        events: list[CalendarEvent] = []
        for source in sources:
            for event in await self._calendar(source).list_events(range_start, range_end):
                key = (event.calendar_type, event.id, event.start)
                if key in seen:
                    continue
                seen.add(key)
                events.append(event)
        events.sort(key=lambda e: e.start)

        if not events:
            return f"No events found between {first.isoformat()} and {last.isoformat()}"

        lines = [f"Found {len(events)} event(s):"]
        for event in events:
            start = event.start.astimezone(self.tz)
            when = start.strftime("%b %d, %Y")
            when += " (all day)" if event.is_all_day else f" at {clock(start)}"
            line = f"- {event.title} on {when}"
            if len(sources) > 1:
                line += f" [{event.calendar_type.value}]"
            if event.attendees:
                line += f" with {format_attendee_names(event)}"
            if event.has_video_call:
                line += " (video call)"
            lines.append(line)
        return "\n".join(lines)

    def _mailbox(self) -> EmailProvider:
        if self.email is None or not self.email.is_connected:
            raise ToolExecutionFailed("Gmail is not connected")
        return self.email

    async def _send_email(self, args: dict[str, Any], original_user_text: str) -> str:
        _require(args, "to", "subject", "body")
        to = _text(args, "to")
        subject = _text(args, "subject")

        email = Email(
            id=str(uuid.uuid4()),
            to=to,
            subject=subject,
            body=str(args["body"]),
            date=self.context.now(),
        )
        await self._mailbox().send_email(email)
        return f"Successfully sent email to {to} with subject '{subject}'"

    async def _draft_email(self, args: dict[str, Any], original_user_text: str) -> str:
        _require(args, "to", "subject", "body")
        return (
            "Draft email created:\n"
            f"To: {_text(args, 'to')}\n"
            f"Subject: {_text(args, 'subject')}\n"
            "\n"
            f"{args['body']}\n"
            "\n"
            "Would you like me to send this email or make changes?"
        )

    async def _search_emails(self, args: dict[str, Any], original_user_text: str) -> str:
        _require(args, "query")
        query = _text(args, "query")
        max_results = _as_int(args.get("max_results"), DEFAULT_MAX_RESULTS)

        emails = await self._mailbox().search_emails(query, max_results=max_results)
        if not emails:
            return f"No emails found matching '{query}'"

        recent = sorted(emails, key=lambda e: e.date, reverse=True)[:SEARCH_PREVIEW_COUNT]
        lines = [f"Found {len(emails)} email(s). Here are the most recent:"]
        for email in recent:
            sent = email.date.astimezone(self.tz).strftime("%m/%d/%y")
            lines.append(f"- [{sent}] {email.subject} (from: {email.sender or 'unknown'})")
        return "\n".join(lines)

    async def _get_meeting_prep(self, args: dict[str, Any], original_user_text: str) -> str:
        _require(args, "title")
        title = _text(args, "title")

        event = await self.context.find_event(title)
        if event is None:
            return f"I couldn't find a meeting matching '{title}' in the next {FIND_EVENT_WINDOW_DAYS} days."
        return await self.context.build_meeting_prep_context(event)
