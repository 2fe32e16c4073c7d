"""Briefing schemas."""

from pydantic import BaseModel


class BriefingResponse(BaseModel):
    """A formatted calendar summary."""

    kind: str
    text: str


class MeetingPrepResponse(BaseModel):
    """Meeting prep for the first event matching a title."""

    title: str
    found: bool
    event_id: str | None = None
    text: str
