"""Pydantic schemas for API validation and provider boundaries."""

from ezlander.schemas.briefing import BriefingResponse, MeetingPrepResponse
from ezlander.schemas.chat import (
    AIProvider,
    ChatMessage,
    ChatRequest,
    ChatResponse,
    MessageRole,
    ProviderSelection,
    ProviderStatus,
    ToolCall,
)
from ezlander.schemas.calendar import (
    CalendarEvent,
    CalendarSource,
    ConferenceData,
    ConferenceEntryPoint,
    EventAttendee,
    EventWrite,
    ResponseStatus,
)
from ezlander.schemas.email import DraftResponse, Email, EmailDraft
from ezlander.schemas.tools import ToolDefinition, ToolParameter

__all__ = [
    "BriefingResponse",
    "MeetingPrepResponse",
    "AIProvider",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "MessageRole",
    "ProviderSelection",
    "ProviderStatus",
    "ToolCall",
    "CalendarEvent",
    "CalendarSource",
    "ConferenceData",
    "ConferenceEntryPoint",
    "EventAttendee",
    "EventWrite",
    "ResponseStatus",
    "DraftResponse",
    "Email",
    "EmailDraft",
    "ToolDefinition",
    "ToolParameter",
]
