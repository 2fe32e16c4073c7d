"""Calendar API endpoints."""

import logging
import uuid
from datetime import datetime, timedelta, tzinfo
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ezlander.api.deps import collaborator_error, get_services
from ezlander.core.errors import ProviderError
from ezlander.schemas.calendar import CalendarEvent, CalendarSource, EventWrite
from ezlander.services.base import CalendarProvider
from ezlander.services.container import AssistantServices

logger = logging.getLogger(__name__)

router = APIRouter()


def get_calendar(services: AssistantServices, source: CalendarSource) -> CalendarProvider:
    """The connected calendar for a source, or 400."""
    calendar = services.calendars.get(source)
    if calendar is None or not calendar.is_connected:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{source.value.capitalize()} calendar is not connected",
        )
    return calendar


async def collect_events(
    services: AssistantServices,
    sources: list[CalendarSource],
    start: datetime,
    end: datetime,
) -> list[CalendarEvent]:
    seen: set[tuple[CalendarSource, str, datetime]] = set()
    events: list[CalendarEvent] = []
    for source in sources:
        try:
            listed = await get_calendar(services, source).list_events(start, end)
        except ProviderError as e:
            logger.error(f"Listing {source.value} events failed: {e}")
            raise collaborator_error(e) from e
        for event in listed:
            key = (event.calendar_type, event.id, event.start)
            if key not in seen:
                seen.add(key)
                events.append(event)
    return sorted(events, key=lambda e: e.start)


def as_local(dt: datetime, tz: tzinfo) -> datetime:
    # Naive query values are wall-clock times in the user's zone
    return dt.astimezone(tz) if dt.tzinfo else dt.replace(tzinfo=tz)


def start_of_today(services: AssistantServices) -> datetime:
    return services.context.now().replace(hour=0, minute=0, second=0, microsecond=0)


def requested_sources(services: AssistantServices, calendar_type: str) -> list[CalendarSource]:
    if calendar_type != "both":
        return [CalendarSource(calendar_type)]
    sources = [source for source, calendar in services.calendars.items() if calendar and calendar.is_connected]
    if not sources:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No calendars are connected")
    return sources


@router.get("/events", response_model=list[CalendarEvent])
async def list_events(
    services: Annotated[AssistantServices, Depends(get_services)],
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    calendar_type: Literal["google", "apple", "both"] = "both",
    max_results: int = Query(50, ge=1, le=250),
) -> list[CalendarEvent]:
    """List calendar events within a date range."""
    # Default to today and next 7 days
    tz = services.settings.tz
    start = as_local(start_date, tz) if start_date else start_of_today(services)
    end = as_local(end_date, tz) if end_date else start + timedelta(days=7)
    if end < start:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date is before start_date")

    events = await collect_events(services, requested_sources(services, calendar_type), start, end)
    return events[:max_results]


@router.get("/today", response_model=list[CalendarEvent])
async def get_todays_events(
    services: Annotated[AssistantServices, Depends(get_services)],
) -> list[CalendarEvent]:
    """Today's events from every connected calendar."""
    today_start = start_of_today(services)
    today_end = today_start + timedelta(days=1)
    return await collect_events(services, requested_sources(services, "both"), today_start, today_end)


@router.post("/events", response_model=CalendarEvent, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: EventWrite,
    services: Annotated[AssistantServices, Depends(get_services)],
    calendar_type: CalendarSource = CalendarSource.GOOGLE,
) -> CalendarEvent:
    calendar = get_calendar(services, calendar_type)
    event = payload.to_event(str(uuid.uuid4()), calendar_type)
    try:
        return await calendar.create_event(event)
    except ProviderError as e:
        logger.error(f"Creating {calendar_type.value} event failed: {e}")
        raise collaborator_error(e) from e


@router.put("/events/{calendar_type}/{event_id}", response_model=CalendarEvent)
async def update_event(
    calendar_type: CalendarSource,
    event_id: str,
    payload: EventWrite,
    services: Annotated[AssistantServices, Depends(get_services)],
) -> CalendarEvent:
    """Replace an existing event."""
    calendar = get_calendar(services, calendar_type)
    try:
        return await calendar.update_event(payload.to_event(event_id, calendar_type))
    except ProviderError as e:
        logger.error(f"Updating {calendar_type.value} event {event_id} failed: {e}")
        raise collaborator_error(e) from e


@router.delete("/events/{calendar_type}/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    calendar_type: CalendarSource,
    event_id: str,
    services: Annotated[AssistantServices, Depends(get_services)],
) -> Response:
    calendar = get_calendar(services, calendar_type)
    try:
        await calendar.delete_event(event_id)
    except ProviderError as e:
        logger.error(f"Deleting {calendar_type.value} event {event_id} failed: {e}")
        raise collaborator_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
