"""
Conversation orchestrator.

Owns one chat turn end to end:
- Injects calendar context into the system prompt
- Sends the turn to the selected provider
- Executes at most one requested tool locally
- Sends one follow-up carrying the tool result and returns the final reply
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from enum import Enum

from ezlander.core.context_builder import ContextBuilder, clock
from ezlander.core.errors import ConfigurationError, ParseError, ToolExecutionFailed
from ezlander.core.tool_executor import ToolExecutor
from ezlander.core.tool_registry import ToolRegistry
from ezlander.providers.base import (
    ConversationItem,
    ProviderAdapter,
    ProviderRequest,
    ToolInvocation,
    ToolResult,
)
from ezlander.schemas.chat import ChatMessage, MessageRole, ToolCall

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTIONS = """You are ezLander, a helpful AI assistant that helps the user manage their calendar and email.

Guidelines:
- Be concise and helpful
- Always confirm with the user before sending emails; prefer draft_email first
- When creating events, use a short descriptive title taken from the request
- When creating events, clarify date/time if ambiguous
- Format dates and times in a human-readable way
- If you don't have enough information, ask for clarification"""

CONTEXT_UNAVAILABLE = "Calendar context is unavailable right now."


class TurnState(str, Enum):
    IDLE = "idle"
    AWAITING_FIRST_RESPONSE = "awaiting_first_response"
    AWAITING_TOOL_RESULT = "awaiting_tool_result"
    AWAITING_FINAL_RESPONSE = "awaiting_final_response"
    DONE = "done"
    FAILED = "failed"


@dataclass
class Turn:
    """Progress of a single turn. Not persisted between turns."""
    user_text: str
    state: TurnState = TurnState.IDLE
    tool_call: ToolInvocation | None = None
    tool_result: str | None = None
    requests_sent: int = 0
    error: Exception | None = None

    def advance(self, state: TurnState) -> None:
        logger.debug(f"Turn {self.state.value} -> {state.value}")
        self.state = state


class ConversationOrchestrator:
    """Runs chat turns against one provider adapter."""

    def __init__(
        self,
        adapter: ProviderAdapter,
        context: ContextBuilder,
        executor: ToolExecutor,
        registry: ToolRegistry | None = None,
        tz: tzinfo = timezone.utc,
        now: Callable[[], datetime] | None = None,
        instructions: str = SYSTEM_INSTRUCTIONS,
        user_name: str | None = None,
    ):
        self.adapter = adapter
        self.context = context
        self.executor = executor
        self.registry = registry or ToolRegistry()
        self.tz = tz
        self._now = now or (lambda: datetime.now(self.tz))
        self.instructions = instructions
        self.user_name = user_name
        self.last_turn: Turn | None = None

    async def build_context(self) -> str:
        """Today's schedule plus the 24h lookahead. Never raises."""
        sections = []
        for build in (self.context.build_today_context, self.context.build_upcoming_context):
            try:
                sections.append(await build())
            except Exception as e:
                logger.warning(f"Context builder failed, using placeholder: {e}")
                sections.append(CONTEXT_UNAVAILABLE)
        return "\n\n".join(section for section in sections if section)

    def build_system_prompt(self, context: str) -> str:
        now = self._now().astimezone(self.tz)
        parts = [self.instructions]
        if self.user_name:
            parts.append(f"The user's name is {self.user_name}.")
        parts.append(
            f"Today is {now.strftime('%A')}, {now.strftime('%Y-%m-%d')}. "
            f"Current time: {clock(now)}."
        )
        if context:
            parts.append(context)
        if self.adapter.supports_tools:
            parts.append(self.registry.prompt_catalog())
        return "\n\n".join(parts)

    async def send_turn(self, user_text: str, history: list[ChatMessage] | None = None) -> ChatMessage:
        """
        Run one user turn to completion.

        Args:
            user_text: The new user message
            history: Prior transcript, oldest first

        Returns:
            The final assistant message, carrying the tool call if one ran

        Raises:
            ConfigurationError: If the provider has no credentials (before any request)
            AuthenticationError, NetworkError, ApiError, ParseError: From the provider
        """
        if not self.adapter.is_configured:
            raise ConfigurationError(f"{self.adapter.provider.display_name} is not configured")

        turn = Turn(user_text=user_text)
        self.last_turn = turn
        try:
            return await self._run(turn, history or [])
        except Exception as e:
            turn.error = e
            turn.advance(TurnState.FAILED)
            raise

    async def _run(self, turn: Turn, history: list[ChatMessage]) -> ChatMessage:
        system = self.build_system_prompt(await self.build_context())
        tools = list(self.registry) if self.adapter.supports_tools else []

        messages = [ConversationItem(role=message.role, text=message.content) for message in history]
        messages.append(ConversationItem.user(turn.user_text))

        turn.advance(TurnState.AWAITING_FIRST_RESPONSE)
        turn.requests_sent += 1
        reply = await self.adapter.complete(ProviderRequest(system=system, messages=messages, tools=tools))

        if reply.tool_call is None:
            if reply.text is None:
                raise ParseError()
            turn.advance(TurnState.DONE)
            return ChatMessage(role=MessageRole.ASSISTANT, content=reply.text)

        invocation = reply.tool_call
        turn.tool_call = invocation
        turn.advance(TurnState.AWAITING_TOOL_RESULT)
        try:
            result = await self.executor.execute(invocation.name, invocation.arguments, turn.user_text)
            is_error = False
        except ToolExecutionFailed as e:
            logger.warning(f"Tool {invocation.name} failed: {e.reason}")
            result = f"Error: {e.reason}"
            is_error = True
        turn.tool_result = result

        follow_up = messages + [
            ConversationItem.tool_use(invocation, text=reply.text or ""),
            ConversationItem.result(ToolResult(call_id=invocation.call_id, content=result, is_error=is_error)),
        ]

        turn.advance(TurnState.AWAITING_FINAL_RESPONSE)
        turn.requests_sent += 1
        final = await self.adapter.complete(ProviderRequest(system=system, messages=follow_up, tools=tools))
        if final.tool_call is not None:
            logger.info(f"Ignoring nested tool call {final.tool_call.name} in follow-up reply")

        turn.advance(TurnState.DONE)
        return ChatMessage(
            role=MessageRole.ASSISTANT,
            content=final.text or reply.text or result,
            tool_call=ToolCall.from_arguments(invocation.name, invocation.arguments),
        )
