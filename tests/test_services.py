"""Test calendar and mail collaborators and the service container."""

import base64
from datetime import datetime, timezone
from email import message_from_bytes
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import vobject
from caldav.lib import error as caldav_error
from googleapiclient.errors import HttpError

from ezlander.core.errors import ApiError, AuthenticationError, ConfigurationError
from ezlander.providers import ClaudeAdapter, GeminiAdapter, KimiAdapter, OpenAIAdapter
from ezlander.schemas.calendar import CalendarSource, ResponseStatus
from ezlander.schemas.chat import AIProvider
from ezlander.schemas.email import Email
from ezlander.services.apple_calendar import AppleCalendarService, build_vcalendar, parse_vevent
from ezlander.services.gmail import GmailService, parse_gmail_message
from ezlander.services.google_calendar import (
    GoogleCalendarService,
    build_google_event_body,
    parse_google_event,
)
from tests.fakes import NOW, TZ, FakeCredentials, attendee, make_event

GOOGLE_EVENT = {
    "id": "evt-1",
    "summary": "Design Review",
    "start": {"dateTime": "2026-02-19T14:00:00-05:00"},
    "end": {"dateTime": "2026-02-19T15:00:00-05:00"},
    "location": "Room 4",
    "htmlLink": "https://calendar.google.com/event?eid=evt-1",
    "hangoutLink": "https://meet.google.com/abc-defg-hij",
    "organizer": {"email": "lead@example.com", "displayName": "Lead"},
    "attendees": [
        {"email": "ana@example.com", "displayName": "Ana", "responseStatus": "accepted"},
        {"email": "me@example.com", "responseStatus": "maybe", "self": True},
        {"displayName": "no address"},
    ],
    "conferenceData": {
        "conferenceId": "abc-defg-hij",
        "conferenceSolution": {"name": "Google Meet"},
        "entryPoints": [{"entryPointType": "video", "uri": "https://meet.google.com/abc-defg-hij"}],
    },
}


def http_error(status: int, content: bytes = b"boom") -> HttpError:
    return HttpError(resp=SimpleNamespace(status=status, reason="error"), content=content)


class TestGoogleCalendar:
    def test_parse_timed_event(self):
        event = parse_google_event(GOOGLE_EVENT, TZ)

        assert event.title == "Design Review"
        assert event.calendar_type is CalendarSource.GOOGLE
        assert event.duration_minutes == 60
        assert event.meeting_link == "https://meet.google.com/abc-defg-hij"
        assert event.conference_name == "Google Meet"
        assert event.organizer.is_organizer
        assert [a.email for a in event.attendees] == ["ana@example.com", "me@example.com"]
        assert event.attendees[1].response_status is ResponseStatus.NEEDS_ACTION
        assert event.attendees[1].is_self

    def test_parse_all_day_event(self):
        event = parse_google_event(
            {"id": "x", "start": {"date": "2026-02-20"}, "end": {"date": "2026-02-21"}}, TZ
        )
        assert event.is_all_day
        assert event.title == "No Title"
        assert event.start == datetime(2026, 2, 20, tzinfo=TZ)

    def test_event_body_requests_meet_link(self):
        event = make_event(
            "Sync",
            NOW.replace(hour=15),
            minutes=30,
            attendees=[attendee("ana@example.com")],
            add_video_call=True,
        )
        body = build_google_event_body(event)

        assert body["start"] == {"dateTime": "2026-02-19T15:00:00-05:00", "timeZone": "America/New_York"}
        assert body["attendees"] == [{"email": "ana@example.com"}]
        assert body["conferenceData"]["createRequest"]["conferenceSolutionKey"] == {"type": "hangoutsMeet"}

    @pytest.mark.asyncio
    async def test_list_events(self):
        with patch("ezlander.services.google_calendar.build") as mock_build:
            service = mock_build.return_value
            service.events.return_value.list.return_value.execute.return_value = {"items": [GOOGLE_EVENT]}

            calendar = GoogleCalendarService(FakeCredentials(), tz=TZ)
            events = await calendar.list_events(NOW, NOW.replace(hour=23))

        assert [e.id for e in events] == ["evt-1"]
        kwargs = service.events.return_value.list.call_args.kwargs
        assert kwargs["singleEvents"] is True
        assert kwargs["orderBy"] == "startTime"

    @pytest.mark.asyncio
    async def test_create_with_video_call_sets_conference_version(self):
        with patch("ezlander.services.google_calendar.build") as mock_build:
            insert = mock_build.return_value.events.return_value.insert
            insert.return_value.execute.return_value = GOOGLE_EVENT

            calendar = GoogleCalendarService(FakeCredentials(), tz=TZ)
            created = await calendar.create_event(make_event("Design Review", NOW, add_video_call=True))

        assert insert.call_args.kwargs["conferenceDataVersion"] == 1
        assert created.meeting_link == "https://meet.google.com/abc-defg-hij"

    @pytest.mark.asyncio
    async def test_update_replaces_event_by_id(self):
        with patch("ezlander.services.google_calendar.build") as mock_build:
            update = mock_build.return_value.events.return_value.update
            update.return_value.execute.return_value = GOOGLE_EVENT

            calendar = GoogleCalendarService(FakeCredentials(), tz=TZ)
            updated = await calendar.update_event(make_event("Design Review", NOW, event_id="evt-1"))

        kwargs = update.call_args.kwargs
        assert kwargs["eventId"] == "evt-1"
        assert kwargs["body"]["summary"] == "Design Review"
        assert "conferenceDataVersion" not in kwargs
        assert updated.id == "evt-1"

    @pytest.mark.asyncio
    async def test_delete_missing_event_is_not_found(self):
        with patch("ezlander.services.google_calendar.build") as mock_build:
            delete = mock_build.return_value.events.return_value.delete
            delete.return_value.execute.side_effect = http_error(404)

            with pytest.raises(ApiError) as exc_info:
                await GoogleCalendarService(FakeCredentials(), tz=TZ).delete_event("evt-9")

        assert exc_info.value.status_code == 404
        assert delete.call_args.kwargs == {"calendarId": "primary", "eventId": "evt-9"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status, error", [(401, AuthenticationError), (403, ApiError)])
    async def test_http_errors_are_mapped(self, status, error):
        with patch("ezlander.services.google_calendar.build") as mock_build:
            mock_build.return_value.events.return_value.list.return_value.execute.side_effect = http_error(status)

            with pytest.raises(error):
                await GoogleCalendarService(FakeCredentials(), tz=TZ).list_events(NOW, NOW)


class TestGmail:
    def test_parse_message(self):
        email = parse_gmail_message(
            {
                "id": "m1",
                "threadId": "t1",
                "internalDate": "1771509600000",
                "labelIds": ["INBOX", "UNREAD"],
                "snippet": "Attached is the invoice",
                "payload": {
                    "headers": [
                        {"name": "From", "value": "Ana <ana@example.com>"},
                        {"name": "To", "value": "me@example.com"},
                        {"name": "Subject", "value": "Invoice"},
                    ]
                },
            }
        )

        assert email.subject == "Invoice"
        assert email.sender_name == "Ana"
        assert email.sender_email == "ana@example.com"
        assert email.is_read is False
        assert email.body == "Attached is the invoice"
        assert email.date.tzinfo is timezone.utc

    def test_parse_message_prefers_plain_text_part(self):
        data = base64.urlsafe_b64encode(b"Hello there").decode()
        email = parse_gmail_message(
            {
                "id": "m2",
                "payload": {
                    "mimeType": "multipart/alternative",
                    "parts": [
                        {"mimeType": "text/html", "body": {"data": ""}},
                        {"mimeType": "text/plain", "body": {"data": data}},
                    ],
                },
            }
        )
        assert email.body == "Hello there"
        assert email.subject == "(No Subject)"
        assert email.is_read is True

    @pytest.mark.asyncio
    async def test_send_email_uses_stored_identity(self, services):
        services.store.set("user_email", "me@example.com")
        services.store.set("user_name", "Sam")
        gmail = GmailService(FakeCredentials(), services.store)

        with patch("ezlander.services.gmail.build") as mock_build:
            send = mock_build.return_value.users.return_value.messages.return_value.send
            send.return_value.execute.return_value = {"id": "sent-1"}

            await gmail.send_email(Email(id="", to="ana@example.com", subject="Hi", body="See you", date=NOW))

        raw = send.call_args.kwargs["body"]["raw"]
        message = message_from_bytes(base64.urlsafe_b64decode(raw))
        assert message["To"] == "ana@example.com"
        assert message["From"] == "Sam <me@example.com>"
        assert message["Subject"] == "Hi"

    @pytest.mark.asyncio
    async def test_search_skips_messages_that_fail(self):
        gmail = GmailService(FakeCredentials(), store=MagicMock())

        def get(userId, id, **kwargs):
            request = MagicMock()
            if id == "bad":
                request.execute.side_effect = http_error(404)
            else:
                request.execute.return_value = {
                    "id": id,
                    "internalDate": "1771509600000" if id == "old" else "1771596000000",
                    "payload": {"headers": [{"name": "Subject", "value": id}]},
                }
            return request

        with patch("ezlander.services.gmail.build") as mock_build:
            messages = mock_build.return_value.users.return_value.messages.return_value
            messages.list.return_value.execute.return_value = {
                "messages": [{"id": "old"}, {"id": "bad"}, {"id": "new"}]
            }
            messages.get.side_effect = get

            emails = await gmail.search_emails("from:ana@example.com", max_results=5)

        assert [e.subject for e in emails] == ["new", "old"]
        assert messages.list.call_args.kwargs == {"userId": "me", "q": "from:ana@example.com", "maxResults": 5}

    @pytest.mark.asyncio
    async def test_list_recent_emails_searches_inbox(self):
        gmail = GmailService(FakeCredentials(), store=MagicMock())

        with patch("ezlander.services.gmail.build") as mock_build:
            messages = mock_build.return_value.users.return_value.messages.return_value
            messages.list.return_value.execute.return_value = {}

            assert await gmail.list_recent_emails(3) == []

        assert messages.list.call_args.kwargs == {"userId": "me", "q": "in:inbox", "maxResults": 3}

    @pytest.mark.asyncio
    async def test_get_email(self):
        gmail = GmailService(FakeCredentials(), store=MagicMock())

        with patch("ezlander.services.gmail.build") as mock_build:
            get = mock_build.return_value.users.return_value.messages.return_value.get
            get.return_value.execute.return_value = {
                "id": "m1",
                "internalDate": "1771509600000",
                "payload": {"headers": [{"name": "Subject", "value": "Invoice"}]},
            }

            email = await gmail.get_email("m1")

        assert email.subject == "Invoice"
        assert get.call_args.kwargs == {"userId": "me", "id": "m1", "format": "full"}

    @pytest.mark.asyncio
    async def test_create_draft_does_not_send(self, services):
        services.store.set("user_email", "me@example.com")
        gmail = GmailService(FakeCredentials(), services.store)

        with patch("ezlander.services.gmail.build") as mock_build:
            users = mock_build.return_value.users.return_value
            users.drafts.return_value.create.return_value.execute.return_value = {"id": "r-42"}

            draft_id = await gmail.create_draft(Email(id="", to="ana@example.com", subject="Notes", date=NOW))

        assert draft_id == "r-42"
        raw = users.drafts.return_value.create.call_args.kwargs["body"]["message"]["raw"]
        assert message_from_bytes(base64.urlsafe_b64decode(raw))["Subject"] == "Notes"
        users.messages.return_value.send.assert_not_called()


ICS = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//test//EN
BEGIN:VEVENT
UID:dentist-1
SUMMARY:Dentist
DTSTART:20260219T160000Z
DTEND:20260219T163000Z
LOCATION:Main St
ATTENDEE;CN=Ana;PARTSTAT=TENTATIVE:mailto:ana@example.com
END:VEVENT
END:VCALENDAR
"""


class TestAppleCalendar:
    def test_parse_vevent(self):
        event = parse_vevent(vobject.readOne(ICS).vevent, TZ)

        assert event.id == "dentist-1"
        assert event.calendar_type is CalendarSource.APPLE
        assert event.duration_minutes == 30
        assert event.location == "Main St"
        assert event.attendees[0].name == "Ana"
        assert event.attendees[0].response_status is ResponseStatus.TENTATIVE

    def test_build_vcalendar_all_day(self):
        event = make_event("Offsite", NOW, source=CalendarSource.APPLE, is_all_day=True)

        vevent = vobject.readOne(build_vcalendar(event)).vevent

        assert vevent.summary.value == "Offsite"
        assert vevent.dtstart.value == NOW.date()
        assert vevent.dtend.value > NOW.date()

    def test_connection_from_store(self, services):
        apple = AppleCalendarService(services.store)
        assert apple.is_connected is False

        services.store.set("apple_id", "me@icloud.com")
        services.store.set("apple_app_password", "abcd-efgh")
        assert apple.is_connected is True

    @pytest.mark.asyncio
    async def test_not_connected_raises(self, services):
        with pytest.raises(ConfigurationError):
            await AppleCalendarService(services.store).list_events(NOW, NOW)

    @pytest.mark.asyncio
    async def test_update_rewrites_stored_event(self, services):
        apple = AppleCalendarService(services.store, apple_id="me@icloud.com", app_password="pw", tz=TZ)

        with patch("ezlander.services.apple_calendar.caldav.DAVClient") as dav:
            calendar = MagicMock()
            dav.return_value.__enter__.return_value.principal.return_value.calendars.return_value = [calendar]

            await apple.update_event(make_event("Dentist", NOW, source=CalendarSource.APPLE, event_id="dentist-1"))

        calendar.event_by_uid.assert_called_once_with("dentist-1")
        stored = calendar.event_by_uid.return_value
        stored.save.assert_called_once()
        vevent = vobject.readOne(stored.data).vevent
        assert vevent.uid.value == "dentist-1"
        assert vevent.summary.value == "Dentist"

    @pytest.mark.asyncio
    async def test_delete_unknown_uid_is_not_found(self, services):
        apple = AppleCalendarService(services.store, apple_id="me@icloud.com", app_password="pw", tz=TZ)

        with patch("ezlander.services.apple_calendar.caldav.DAVClient") as dav:
            calendar = MagicMock()
            calendar.event_by_uid.side_effect = caldav_error.NotFoundError("gone")
            dav.return_value.__enter__.return_value.principal.return_value.calendars.return_value = [calendar]

            with pytest.raises(ApiError) as exc_info:
                await apple.delete_event("nope")

        assert exc_info.value.status_code == 404


class TestContainer:
    def test_adapter_selection(self, services):
        assert isinstance(services.adapter_for(AIProvider.OPENAI), OpenAIAdapter)
        assert isinstance(services.adapter_for(AIProvider.GEMINI), GeminiAdapter)
        kimi = services.adapter_for(AIProvider.KIMI)
        assert isinstance(kimi, KimiAdapter)
        assert kimi.base_url == "https://integrate.api.nvidia.com/v1"

        claude = services.adapter_for(AIProvider.CLAUDE)
        assert isinstance(claude, ClaudeAdapter)
        assert claude.use_oauth is False

    def test_claude_oauth_session_wins(self, services):
        services.store.set("anthropic_api_key", "sk-ant")
        services.store.set("claude_refresh_token", "refresh")

        claude = services.adapter_for(AIProvider.CLAUDE)

        assert claude.use_oauth is True
        assert claude.credentials is services.claude_oauth

    def test_unknown_saved_provider_falls_back(self, services):
        services.store.set("ai_provider", "llama")
        assert services.current_provider is AIProvider.CLAUDE

    def test_calendars_are_wired(self, services):
        assert set(services.calendars) == {CalendarSource.GOOGLE, CalendarSource.APPLE}
        assert services.context.calendar is services.calendars[CalendarSource.GOOGLE]
