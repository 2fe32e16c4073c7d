"""
Tool catalog advertised to tool-capable providers.

Field names here are exactly the argument names ToolExecutor reads.
"""

from ezlander.schemas.tools import ToolDefinition, ToolParameter

CREATE_CALENDAR_EVENT = "create_calendar_event"
LIST_CALENDAR_EVENTS = "list_calendar_events"
SEND_EMAIL = "send_email"
DRAFT_EMAIL = "draft_email"
SEARCH_EMAILS = "search_emails"
GET_MEETING_PREP = "get_meeting_prep"

_EMAIL_FIELDS = {
    "to": ToolParameter(type="string", description="Recipient email address"),
    "subject": ToolParameter(type="string", description="Email subject"),
    "body": ToolParameter(type="string", description="Email body (plain text)"),
}

DEFAULT_TOOLS = (
    ToolDefinition(
        name=CREATE_CALENDAR_EVENT,
        description=(
            "Create a new calendar event. Use a short descriptive title taken from the "
            "user's request, not a placeholder like 'New Event'."
        ),
        parameters={
            "title": ToolParameter(type="string", description="Event title"),
            "date": ToolParameter(type="string", description="Event date in YYYY-MM-DD format"),
            "time": ToolParameter(type="string", description="Event start time in HH:MM format (24-hour)"),
            "duration": ToolParameter(type="integer", description="Duration in minutes (default 60)"),
            "calendar_type": ToolParameter(
                type="string", description="Which calendar to use", enum=["google", "apple"]
            ),
            "description": ToolParameter(type="string", description="Optional event notes"),
            "location": ToolParameter(type="string", description="Optional event location"),
            "attendees": ToolParameter(
                type="string", description="Comma-separated attendee email addresses"
            ),
            "add_video_call": ToolParameter(
                type="boolean", description="Attach a Google Meet link (Google calendar only)"
            ),
        },
        required=["title", "date", "time"],
    ),
    ToolDefinition(
        name=LIST_CALENDAR_EVENTS,
        description="List calendar events for a date range (both dates inclusive)",
        parameters={
            "start_date": ToolParameter(type="string", description="Start date in YYYY-MM-DD format"),
            "end_date": ToolParameter(type="string", description="End date in YYYY-MM-DD format"),
            "calendar_type": ToolParameter(
                type="string", description="Which calendar to query", enum=["google", "apple", "both"]
            ),
        },
        required=["start_date", "end_date"],
    ),
    ToolDefinition(
        name=SEND_EMAIL,
        description="Send an email via Gmail. Only call this after the user confirmed the content.",
        parameters=dict(_EMAIL_FIELDS),
        required=["to", "subject", "body"],
    ),
    ToolDefinition(
        name=DRAFT_EMAIL,
        description="Create an email draft for user review before sending",
        parameters=dict(_EMAIL_FIELDS),
        required=["to", "subject", "body"],
    ),
    ToolDefinition(
        name=SEARCH_EMAILS,
        description="Search emails in Gmail",
        parameters={
            "query": ToolParameter(type="string", description="Search query (Gmail search syntax)"),
            "max_results": ToolParameter(type="integer", description="Maximum messages to fetch (default 10)"),
        },
        required=["query"],
    ),
    ToolDefinition(
        name=GET_MEETING_PREP,
        description=(
            "Prepare for an upcoming meeting in the next 7 days: attendees, RSVP status "
            "and recent email threads with them"
        ),
        parameters={
            "title": ToolParameter(type="string", description="Meeting title or part of it"),
        },
        required=["title"],
    ),
)


class ToolRegistry:
    """Static set of tools, rendered per vendor format."""

    def __init__(self, tools: tuple[ToolDefinition, ...] | list[ToolDefinition] = DEFAULT_TOOLS):
        self._tools = {tool.name: tool for tool in tools}

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __iter__(self):
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def get(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def anthropic_tools(self) -> list[dict]:
        return [tool.to_anthropic() for tool in self]

    def openai_tools(self) -> list[dict]:
        return [tool.to_openai() for tool in self]

    def prompt_catalog(self) -> str:
        """One line per tool, for the system prompt."""
        lines = ["You have access to the following tools:"]
        lines.extend(f"- {tool.name}: {tool.description}" for tool in self)
        return "\n".join(lines)
