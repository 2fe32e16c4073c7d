"""Google Calendar collaborator."""

import logging
import uuid
from datetime import date, datetime, timedelta, timezone

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from ezlander.schemas.calendar import (
    CalendarEvent,
    CalendarSource,
    ConferenceData,
    ConferenceEntryPoint,
    EventAttendee,
    ResponseStatus,
)
from ezlander.services import google_api
from ezlander.services.base import CalendarProvider, CredentialProvider

logger = logging.getLogger(__name__)


def _parse_boundary(boundary: dict, tz) -> tuple[datetime, bool]:
    """Return (datetime, is_all_day) for a Google start/end object."""
    if "dateTime" in boundary:
        return datetime.fromisoformat(boundary["dateTime"].replace("Z", "+00:00")), False
    day = date.fromisoformat(boundary.get("date", ""))
    return datetime(day.year, day.month, day.day, tzinfo=tz), True


def _attendee_from_google(raw: dict) -> EventAttendee:
    return EventAttendee(
        email=raw.get("email", ""),
        display_name=raw.get("displayName"),
        response_status=ResponseStatus.parse(raw.get("responseStatus")),
        is_organizer=bool(raw.get("organizer", False)),
        is_self=bool(raw.get("self", False)),
    )


def parse_google_event(event: dict, tz=timezone.utc) -> CalendarEvent:
    """Parse a Google Calendar event resource into our schema."""
    start, is_all_day = _parse_boundary(event.get("start", {}), tz)
    end, _ = _parse_boundary(event.get("end", {}), tz)

    attendees = [_attendee_from_google(a) for a in event.get("attendees", []) if a.get("email")]

    organizer = None
    if event.get("organizer", {}).get("email"):
        raw_organizer = dict(event["organizer"])
        raw_organizer["organizer"] = True
        organizer = _attendee_from_google(raw_organizer)

    conference_data = None
    raw_conference = event.get("conferenceData")
    if raw_conference:
        conference_data = ConferenceData(
            conference_id=raw_conference.get("conferenceId"),
            solution_name=raw_conference.get("conferenceSolution", {}).get("name"),
            entry_points=[
                ConferenceEntryPoint(
                    entry_point_type=entry.get("entryPointType"),
                    uri=entry.get("uri"),
                    label=entry.get("label"),
                )
                for entry in raw_conference.get("entryPoints", [])
            ]
            or None,
        )

    return CalendarEvent(
        id=event.get("id", ""),
        title=event.get("summary", "No Title"),
        start=start,
        end=max(end, start),
        calendar_type=CalendarSource.GOOGLE,
        description=event.get("description"),
        location=event.get("location"),
        is_all_day=is_all_day,
        attendees=attendees or None,
        organizer=organizer,
        conference_data=conference_data,
        meeting_link=event.get("hangoutLink"),
        html_link=event.get("htmlLink"),
    )


def build_google_event_body(event: CalendarEvent) -> dict:
    """Render a CalendarEvent as a Google events.insert body."""
    if event.is_all_day:
        end_day = event.end.date()
        if end_day <= event.start.date():
            end_day = event.start.date() + timedelta(days=1)
        start_obj = {"date": event.start.date().isoformat()}
        end_obj = {"date": end_day.isoformat()}
    else:
        start_obj = {"dateTime": event.start.isoformat()}
        end_obj = {"dateTime": event.end.isoformat()}
        zone_key = getattr(event.start.tzinfo, "key", None)
        if zone_key:
            start_obj["timeZone"] = zone_key
            end_obj["timeZone"] = zone_key

    body: dict = {"summary": event.title, "start": start_obj, "end": end_obj}
    if event.description:
        body["description"] = event.description
    if event.location:
        body["location"] = event.location
    if event.attendees:
        body["attendees"] = [{"email": a.email} for a in event.attendees]
    if event.add_video_call:
        body["conferenceData"] = {
            "createRequest": {
                "requestId": str(uuid.uuid4()),
                "conferenceSolutionKey": {"type": "hangoutsMeet"},
            }
        }
    return body


class GoogleCalendarService(CalendarProvider):
    """Primary Google calendar of the signed-in user."""

    source = CalendarSource.GOOGLE

    def __init__(self, credentials: CredentialProvider, tz=timezone.utc, calendar_id: str = "primary"):
        self.credentials = credentials
        self.tz = tz
        self.calendar_id = calendar_id

    @property
    def is_connected(self) -> bool:
        return self.credentials.is_configured

    async def _service(self):
        token = await self.credentials.get_valid_access_token()
        return build("calendar", "v3", credentials=Credentials(token=token), cache_discovery=False)

    async def _execute(self, request):
        return await google_api.execute(request, "Google Calendar")

    async def list_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        service = await self._service()
        result = await self._execute(
            service.events().list(
                calendarId=self.calendar_id,
                timeMin=start.isoformat(),
                timeMax=end.isoformat(),
                maxResults=250,
                singleEvents=True,
                orderBy="startTime",
            )
        )

        events = []
        for item in result.get("items", []):
            try:
                events.append(parse_google_event(item, self.tz))
            except ValueError as e:
                logger.warning(f"Skipping unparseable Google event {item.get('id')}: {e}")
        return events

    async def create_event(self, event: CalendarEvent) -> CalendarEvent:
        service = await self._service()
        kwargs = {"calendarId": self.calendar_id, "body": build_google_event_body(event)}
        if event.add_video_call:
            kwargs["conferenceDataVersion"] = 1
        created = await self._execute(service.events().insert(**kwargs))
        logger.info(f"Created Google event {created.get('id')}")
        return parse_google_event(created, self.tz)

    async def update_event(self, event: CalendarEvent) -> CalendarEvent:
        service = await self._service()
        kwargs = {"calendarId": self.calendar_id, "eventId": event.id, "body": build_google_event_body(event)}
        if event.add_video_call:
            kwargs["conferenceDataVersion"] = 1
        updated = await self._execute(service.events().update(**kwargs))
        logger.info(f"Updated Google event {event.id}")
        return parse_google_event(updated, self.tz)

    async def delete_event(self, event_id: str) -> None:
        service = await self._service()
        await self._execute(service.events().delete(calendarId=self.calendar_id, eventId=event_id))
        logger.info(f"Deleted Google event {event_id}")
