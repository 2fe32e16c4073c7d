"""Apple (iCloud) calendar over CalDAV."""

import asyncio
import logging
import uuid
from datetime import date, datetime, timedelta, timezone

import caldav
import vobject
from caldav.lib import error as caldav_error

from ezlander.core.errors import ApiError, AuthenticationError, ConfigurationError, NetworkError
from ezlander.schemas.calendar import CalendarEvent, CalendarSource, EventAttendee, ResponseStatus
from ezlander.services.base import CalendarProvider
from ezlander.services.config_store import APPLE_APP_PASSWORD, APPLE_ID, ConfigStore

logger = logging.getLogger(__name__)

_PARTSTAT = {
    "ACCEPTED": ResponseStatus.ACCEPTED,
    "DECLINED": ResponseStatus.DECLINED,
    "TENTATIVE": ResponseStatus.TENTATIVE,
    "NEEDS-ACTION": ResponseStatus.NEEDS_ACTION,
}


def _as_datetime(value, tz) -> tuple[datetime, bool]:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=tz)
        return value, False
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=tz), True
    raise ValueError(f"Unsupported DTSTART value: {value!r}")


def _attendee_from_vobject(line) -> EventAttendee:
    params = getattr(line, "params", {})
    email = str(line.value).removeprefix("mailto:").removeprefix("MAILTO:")
    partstat = (params.get("PARTSTAT") or [""])[0].upper()
    name = (params.get("CN") or [None])[0]
    return EventAttendee(
        email=email,
        display_name=name,
        response_status=_PARTSTAT.get(partstat, ResponseStatus.NEEDS_ACTION),
    )


def parse_vevent(vevent, tz=timezone.utc) -> CalendarEvent:
    """Convert a vobject VEVENT into a CalendarEvent."""
    start, is_all_day = _as_datetime(vevent.dtstart.value, tz)
    if hasattr(vevent, "dtend"):
        end, _ = _as_datetime(vevent.dtend.value, tz)
    elif hasattr(vevent, "duration"):
        end = start + vevent.duration.value
    else:
        end = start + (timedelta(days=1) if is_all_day else timedelta(hours=1))

    attendees = [_attendee_from_vobject(line) for line in vevent.contents.get("attendee", [])]

    def text(name: str) -> str | None:
        component = getattr(vevent, name, None)
        return str(component.value) if component is not None and component.value else None

    return CalendarEvent(
        id=text("uid") or str(uuid.uuid4()),
        title=text("summary") or "No Title",
        start=start,
        end=max(end, start),
        calendar_type=CalendarSource.APPLE,
        description=text("description"),
        location=text("location"),
        is_all_day=is_all_day,
        attendees=attendees or None,
        meeting_link=text("url"),
    )


def build_vcalendar(event: CalendarEvent) -> str:
    cal = vobject.iCalendar()
    cal.add("vevent")
    vevent = cal.vevent
    vevent.add("uid").value = event.id
    vevent.add("summary").value = event.title
    if event.is_all_day:
        vevent.add("dtstart").value = event.start.date()
        vevent.add("dtend").value = max(event.end.date(), event.start.date() + timedelta(days=1))
    else:
        vevent.add("dtstart").value = event.start
        vevent.add("dtend").value = event.end
    vevent.add("dtstamp").value = datetime.now(timezone.utc)
    if event.description:
        vevent.add("description").value = event.description
    if event.location:
        vevent.add("location").value = event.location
    for attendee in event.attendees or []:
        vevent.add("attendee").value = f"mailto:{attendee.email}"
    return cal.serialize()


class AppleCalendarService(CalendarProvider):
    """iCloud calendar accessed with an Apple ID and app-specific password."""

    source = CalendarSource.APPLE

    def __init__(
        self,
        store: ConfigStore,
        url: str = "https://caldav.icloud.com",
        apple_id: str = "",
        app_password: str = "",
        calendar_name: str = "",
        tz=timezone.utc,
    ):
        self.store = store
        self.url = url
        self._apple_id = apple_id
        self._app_password = app_password
        self.calendar_name = calendar_name
        self.tz = tz

    def _account(self) -> tuple[str, str]:
        apple_id = self.store.get(APPLE_ID) or self._apple_id
        password = self.store.get(APPLE_APP_PASSWORD) or self._app_password
        return apple_id, password

    @property
    def is_connected(self) -> bool:
        return all(self._account())

    def _calendar(self, client: caldav.DAVClient):
        calendars = client.principal().calendars()
        if not calendars:
            raise ApiError(404, "No calendars on this account")
        if self.calendar_name:
            for calendar in calendars:
                if calendar.name == self.calendar_name:
                    return calendar
            logger.warning(f"Calendar '{self.calendar_name}' not found, using {calendars[0].name}")
        return calendars[0]

    async def _run(self, func):
        apple_id, password = self._account()
        if not apple_id or not password:
            raise ConfigurationError("Apple Calendar is not connected")

        def call():
            with caldav.DAVClient(url=self.url, username=apple_id, password=password) as client:
                return func(self._calendar(client))

        try:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, call)
        except caldav_error.AuthorizationError as e:
            raise AuthenticationError("Apple Calendar rejected the app password") from e
        except caldav_error.NotFoundError as e:
            raise ApiError(404, str(e)) from e
        except caldav_error.DAVError as e:
            raise ApiError(getattr(e, "status", None) or 500, str(e)) from e
        except OSError as e:
            # requests/niquests transport errors derive from OSError
            logger.error(f"CalDAV request to {self.url} failed: {e}")
            raise NetworkError(f"Could not reach {self.url}") from e

    async def list_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        def search(calendar):
            return calendar.search(start=start, end=end, event=True, expand=True)

        results = await self._run(search)
        events = []
        for item in results:
            for vevent in item.vobject_instance.contents.get("vevent", []):
                try:
                    events.append(parse_vevent(vevent, self.tz))
                except (ValueError, AttributeError) as e:
                    logger.warning(f"Skipping unparseable CalDAV event: {e}")
        return sorted(events, key=lambda e: e.start)

    async def create_event(self, event: CalendarEvent) -> CalendarEvent:
        data = build_vcalendar(event)
        await self._run(lambda calendar: calendar.save_event(data))
        logger.info(f"Created Apple event {event.id}")
        return event

    async def update_event(self, event: CalendarEvent) -> CalendarEvent:
        data = build_vcalendar(event)

        def update(calendar):
            stored = calendar.event_by_uid(event.id)
            stored.data = data
            stored.save()

        await self._run(update)
        logger.info(f"Updated Apple event {event.id}")
        return event

    async def delete_event(self, event_id: str) -> None:
        await self._run(lambda calendar: calendar.event_by_uid(event_id).delete())
        logger.info(f"Deleted Apple event {event_id}")
