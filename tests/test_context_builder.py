"""Test calendar context formatting."""

from datetime import timedelta

import pytest

from ezlander.core import context_builder as cb
from ezlander.core.context_builder import ContextBuilder
from ezlander.core.errors import ApiError
from tests.fakes import NOW, TZ, FakeCalendar, FakeEmail, attendee, make_email, make_event


def builder(calendar, email=None) -> ContextBuilder:
    return ContextBuilder(calendar, email or FakeEmail(), tz=TZ, now=lambda: NOW)


@pytest.mark.asyncio
async def test_today_context(context_builder):
    text = await context_builder.build_today_context()
    lines = text.splitlines()
    assert lines[0] == "Today's schedule (2 events):"
    assert lines[1] == "- [10:00 AM - 10:15 AM] Standup"
    assert lines[2] == "- [2:00 PM - 3:00 PM] Design Review (video call) (2 attendees)"


@pytest.mark.asyncio
async def test_today_placeholders_are_distinct():
    not_connected = await builder(FakeCalendar(connected=False)).build_today_context()
    empty = await builder(FakeCalendar()).build_today_context()
    failing = await builder(FakeCalendar(error=ApiError(500, "boom"))).build_today_context()

    assert not_connected == cb.TODAY_NOT_CONNECTED
    assert empty == cb.TODAY_EMPTY
    assert failing == cb.TODAY_ERROR
    assert len({not_connected, empty, failing}) == 3


@pytest.mark.asyncio
async def test_upcoming_placeholders_are_distinct():
    not_connected = await builder(FakeCalendar(connected=False)).build_upcoming_context()
    empty = await builder(FakeCalendar()).build_upcoming_context()
    failing = await builder(FakeCalendar(error=RuntimeError("boom"))).build_upcoming_context()
    assert len({not_connected, empty, failing}) == 3


@pytest.mark.asyncio
async def test_upcoming_only_includes_future_events():
    calendar = FakeCalendar(
        events=[
            make_event("Already Started", NOW - timedelta(minutes=30)),
            make_event("Lunch", NOW.replace(hour=12)),
            make_event("Breakfast", NOW + timedelta(hours=23)),
        ]
    )
    text = await builder(calendar).build_upcoming_context()
    assert "Already Started" not in text
    assert "- [12:00 PM] Lunch" in text
    assert "- [Fri 8:00 AM] Breakfast" in text


@pytest.mark.asyncio
async def test_daily_briefing_marks_up_next(context_builder):
    text = await context_builder.build_daily_briefing()
    assert "**Thursday, February 19**" in text
    assert "You have **2 events** today" in text
    assert "10:00 AM - 10:15 AM · **Standup** ← **Up Next**" in text
    assert "You have 1 video call today." in text


@pytest.mark.asyncio
async def test_daily_briefing_placeholders():
    assert "Connect your Google Calendar" in await builder(FakeCalendar(connected=False)).build_daily_briefing()
    assert "clear schedule" in await builder(FakeCalendar()).build_daily_briefing()
    assert "trouble loading" in await builder(FakeCalendar(error=ApiError(500, ""))).build_daily_briefing()


@pytest.mark.asyncio
async def test_meeting_prep_looks_up_at_most_three_external_attendees():
    attendees = [attendee("me@example.com", "Me", is_self=True)]
    attendees += [attendee(f"p{i}@example.com", f"Person {i}") for i in range(5)]
    event = make_event("Planning", NOW.replace(hour=15), attendees=attendees, location="Room 4")

    mailbox = FakeEmail(
        results={
            f"from:p{i}@example.com OR to:p{i}@example.com": [make_email(f"Thread {i}.{j}") for j in range(5)]
            for i in range(5)
        }
    )
    text = await builder(FakeCalendar(), mailbox).build_meeting_prep_context(event)

    assert len(mailbox.searches) == 3
    assert all(max_results == 3 for _, max_results in mailbox.searches)
    assert "me@example.com" not in " ".join(query for query, _ in mailbox.searches)
    assert "Where: Room 4" in text
    assert "- Me (accepted) [you]" in text
    assert "Recent email threads with attendees:" in text
    assert "Thread 0.2" in text
    assert "Thread 0.3" not in text
    assert "With Person 3" not in text


@pytest.mark.asyncio
async def test_meeting_prep_omits_failed_lookups():
    event = make_event(
        "Planning",
        NOW.replace(hour=15),
        attendees=[attendee("ana@example.com", "Ana"), attendee("bob@example.com", "Bob")],
    )
    mailbox = FakeEmail(
        results={"from:bob@example.com OR to:bob@example.com": [make_email("Budget")]},
        failing_queries=["from:ana@example.com OR to:ana@example.com"],
    )

    text = await builder(FakeCalendar(), mailbox).build_meeting_prep_context(event)
    assert "With Bob:" in text
    assert "With Ana:" not in text
    assert "Budget" in text


@pytest.mark.asyncio
async def test_meeting_prep_without_mail_connection():
    event = make_event("Planning", NOW, attendees=[attendee("ana@example.com", "Ana")])
    mailbox = FakeEmail(connected=False)
    text = await builder(FakeCalendar(), mailbox).build_meeting_prep_context(event)
    assert mailbox.searches == []
    assert "Recent email threads" not in text


@pytest.mark.asyncio
async def test_find_event_matches_substring_either_way(context_builder):
    assert (await context_builder.find_event("REVIEW")).title == "Design Review"
    assert (await context_builder.find_event("prep for the design review")).title == "Design Review"
    assert await context_builder.find_event("offsite") is None


@pytest.mark.asyncio
async def test_find_event_searches_seven_days(google_calendar, context_builder):
    await context_builder.find_event("anything")
    start, end = google_calendar.list_calls[-1]
    assert start == NOW.replace(hour=0)
    assert end - start == timedelta(days=7)


@pytest.mark.asyncio
async def test_find_event_swallows_errors():
    assert await builder(FakeCalendar(error=ApiError(500, ""))).find_event("x") is None
