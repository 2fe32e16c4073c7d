"""Pytest configuration and fixtures."""

from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport

from ezlander.api.deps import get_services
from ezlander.config import Settings
from ezlander.core.context_builder import ContextBuilder
from ezlander.core.tool_executor import ToolExecutor
from ezlander.main import app
from ezlander.schemas.calendar import CalendarSource
from ezlander.services.config_store import ConfigStore
from ezlander.services.container import build_services
from tests.fakes import NOW, TZ, FakeCalendar, FakeEmail, attendee, make_event


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def google_calendar() -> FakeCalendar:
    return FakeCalendar(
        CalendarSource.GOOGLE,
        events=[
            make_event("Standup", NOW.replace(hour=10), minutes=15),
            make_event(
                "Design Review",
                NOW.replace(hour=14),
                attendees=[attendee("ana@example.com", "Ana"), attendee("me@example.com", is_self=True)],
                meeting_link="https://meet.google.com/abc-defg-hij",
            ),
        ],
    )


@pytest.fixture
def apple_calendar() -> FakeCalendar:
    return FakeCalendar(
        CalendarSource.APPLE,
        events=[make_event("Dentist", NOW.replace(hour=11), source=CalendarSource.APPLE)],
    )


@pytest.fixture
def mailbox() -> FakeEmail:
    return FakeEmail()


@pytest.fixture
def context_builder(google_calendar, mailbox) -> ContextBuilder:
    return ContextBuilder(google_calendar, mailbox, tz=TZ, now=lambda: NOW)


@pytest.fixture
def executor(google_calendar, apple_calendar, mailbox, context_builder) -> ToolExecutor:
    return ToolExecutor(
        {CalendarSource.GOOGLE: google_calendar, CalendarSource.APPLE: apple_calendar},
        mailbox,
        context_builder,
        tz=TZ,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        timezone="America/New_York",
        default_provider="claude",
        anthropic_api_key="",
        openai_api_key="",
        gemini_api_key="",
        kimi_api_key="",
    )


@pytest.fixture
def services(settings):
    """Service container backed by an in-memory config store."""
    return build_services(settings, store=ConfigStore(None))


@pytest.fixture
async def client(services) -> AsyncGenerator[AsyncClient, None]:
    """Get async test client."""
    app.dependency_overrides[get_services] = lambda: services

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
