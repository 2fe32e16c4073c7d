"""Briefings API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ezlander.api.deps import get_services
from ezlander.core.context_builder import FIND_EVENT_WINDOW_DAYS
from ezlander.schemas.briefing import BriefingResponse, MeetingPrepResponse
from ezlander.services.container import AssistantServices

router = APIRouter()


@router.get("/daily", response_model=BriefingResponse)
async def daily_briefing(
    services: Annotated[AssistantServices, Depends(get_services)],
) -> BriefingResponse:
    """Generate the morning briefing."""
    return BriefingResponse(kind="daily", text=await services.context.build_daily_briefing())


@router.get("/today", response_model=BriefingResponse)
async def today_context(
    services: Annotated[AssistantServices, Depends(get_services)],
) -> BriefingResponse:
    return BriefingResponse(kind="today", text=await services.context.build_today_context())


@router.get("/upcoming", response_model=BriefingResponse)
async def upcoming_context(
    services: Annotated[AssistantServices, Depends(get_services)],
) -> BriefingResponse:
    return BriefingResponse(kind="upcoming", text=await services.context.build_upcoming_context())


@router.get("/meeting-prep", response_model=MeetingPrepResponse)
async def meeting_prep(
    services: Annotated[AssistantServices, Depends(get_services)],
    title: str = Query(..., min_length=1),
) -> MeetingPrepResponse:
    """Attendees, RSVPs and recent threads for a meeting in the next 7 days."""
    event = await services.context.find_event(title)
    if event is None:
        return MeetingPrepResponse(
            title=title,
            found=False,
            text=f"I couldn't find a meeting matching '{title}' in the next {FIND_EVENT_WINDOW_DAYS} days.",
        )
    return MeetingPrepResponse(
        title=event.title,
        found=True,
        event_id=event.id,
        text=await services.context.build_meeting_prep_context(event),
    )
