"""Calendar event schemas."""

import re
from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class CalendarSource(str, Enum):
    """Which calendar backend an event lives in."""

    GOOGLE = "google"
    APPLE = "apple"


class ResponseStatus(str, Enum):
    """Attendee RSVP state."""

    NEEDS_ACTION = "needsAction"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    TENTATIVE = "tentative"

    @classmethod
    def parse(cls, value: str | None) -> "ResponseStatus":
        """Map a provider value onto the closed set, defaulting to needsAction."""
        for status in cls:
            if value == status.value:
                return status
        return cls.NEEDS_ACTION


class EventAttendee(BaseModel):
    """A single invitee of an event."""

    email: str
    display_name: str | None = None
    response_status: ResponseStatus = ResponseStatus.NEEDS_ACTION
    is_organizer: bool = False
    is_self: bool = False

    @property
    def name(self) -> str:
        return self.display_name or self.email


class ConferenceEntryPoint(BaseModel):
    entry_point_type: str | None = None
    uri: str | None = None
    label: str | None = None


class ConferenceData(BaseModel):
    """Video conference attached to an event."""

    conference_id: str | None = None
    solution_name: str | None = None
    entry_points: list[ConferenceEntryPoint] | None = None

    @property
    def join_url(self) -> str | None:
        for entry in self.entry_points or []:
            if entry.entry_point_type == "video" and entry.uri:
                return entry.uri
        return None


MEETING_LINK_PATTERNS = [
    re.compile(r"https?://[\w.-]*zoom\.us/j/[^\s<>\"]+"),
    re.compile(r"https?://meet\.google\.com/[a-z-]+"),
    re.compile(r"https?://teams\.microsoft\.com/l/meetup-join/[^\s<>\"]+"),
    re.compile(r"https?://[\w.-]*webex\.com/[^\s<>\"]+"),
]


def extract_meeting_link(text: str) -> str | None:
    """Find the first known video-call URL in free text."""
    for pattern in MEETING_LINK_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None


class CalendarEvent(BaseModel):
    """Calendar event from either Google or Apple calendars."""

    id: str
    title: str
    start: datetime
    end: datetime
    calendar_type: CalendarSource
    description: str | None = None
    location: str | None = None
    is_all_day: bool = False
    attendees: list[EventAttendee] | None = None
    organizer: EventAttendee | None = None
    conference_data: ConferenceData | None = None
    meeting_link: str | None = None
    html_link: str | None = None
    # Requests a Google Meet link on creation
    add_video_call: bool = Field(default=False, exclude=True)

    @model_validator(mode="after")
    def _check_range(self) -> "CalendarEvent":
        if self.end < self.start:
            raise ValueError("Event end must not be before its start")
        if self.is_all_day:
            # Whole days only: end rounds up to the next midnight
            start = self.start.replace(hour=0, minute=0, second=0, microsecond=0)
            end = self.end.replace(hour=0, minute=0, second=0, microsecond=0)
            if end != self.end or end <= start:
                end += timedelta(days=1)
            self.start, self.end = start, end
        return self

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    @property
    def effective_join_url(self) -> str | None:
        # Priority: explicit link > conference data > description > location
        if self.meeting_link:
            return self.meeting_link
        if self.conference_data and self.conference_data.join_url:
            return self.conference_data.join_url
        if self.description:
            link = extract_meeting_link(self.description)
            if link:
                return link
        if self.location:
            return extract_meeting_link(self.location)
        return None

    @property
    def has_video_call(self) -> bool:
        return self.effective_join_url is not None

    @property
    def conference_name(self) -> str | None:
        if self.conference_data and self.conference_data.solution_name:
            return self.conference_data.solution_name
        url = self.effective_join_url
        if not url:
            return None
        if "zoom.us" in url:
            return "Zoom"
        if "meet.google.com" in url:
            return "Google Meet"
        if "teams.microsoft.com" in url:
            return "Microsoft Teams"
        if "webex.com" in url:
            return "Webex"
        return None

    @property
    def attendee_count(self) -> int:
        return len(self.attendees or [])


class EventWrite(BaseModel):
    """Event fields accepted when creating or replacing an event."""

    title: str = Field(..., min_length=1)
    start: datetime
    end: datetime
    description: str | None = None
    location: str | None = None
    is_all_day: bool = False
    attendees: list[str] = Field(default_factory=list)
    add_video_call: bool = False

    @model_validator(mode="after")
    def _check_range(self) -> "EventWrite":
        if self.end < self.start:
            raise ValueError("Event end must not be before its start")
        return self

    def to_event(self, event_id: str, source: CalendarSource) -> CalendarEvent:
        return CalendarEvent(
            id=event_id,
            title=self.title,
            start=self.start,
            end=self.end,
            calendar_type=source,
            description=self.description,
            location=self.location,
            is_all_day=self.is_all_day,
            attendees=[EventAttendee(email=address) for address in self.attendees] or None,
            add_video_call=self.add_video_call,
        )
