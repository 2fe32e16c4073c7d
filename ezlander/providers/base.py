"""
Provider-neutral request/reply types and the adapter base class.

The orchestrator speaks only in these types; each adapter translates them to
its vendor's wire format and back.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from ezlander.core.errors import AuthenticationError
from ezlander.schemas.chat import AIProvider, MessageRole
from ezlander.schemas.tools import ToolDefinition
from ezlander.services.base import CredentialProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolInvocation:
    """A structured tool request from the model."""
    call_id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResult:
    """Result of a tool invocation, correlated by call_id."""
    call_id: str
    content: str
    is_error: bool = False


@dataclass(frozen=True)
class ConversationItem:
    """
    One entry of the working history.

    Exactly one of three shapes: plain text (user or assistant), an assistant
    turn carrying a tool invocation (optionally with text), or a tool result.
    """
    role: MessageRole
    text: str = ""
    tool_call: ToolInvocation | None = None
    tool_result: ToolResult | None = None

    @classmethod
    def user(cls, text: str) -> "ConversationItem":
        return cls(role=MessageRole.USER, text=text)

    @classmethod
    def assistant(cls, text: str) -> "ConversationItem":
        return cls(role=MessageRole.ASSISTANT, text=text)

    @classmethod
    def tool_use(cls, invocation: ToolInvocation, text: str = "") -> "ConversationItem":
        return cls(role=MessageRole.ASSISTANT, text=text, tool_call=invocation)

    @classmethod
    def result(cls, result: ToolResult) -> "ConversationItem":
        return cls(role=MessageRole.USER, tool_result=result)

    def as_plain_text(self) -> str:
        """Flatten for providers without native tool calling."""
        if self.tool_result is not None:
            return f"Tool result: {self.tool_result.content}"
        if self.tool_call is not None:
            return self.text or f"(called {self.tool_call.name})"
        return self.text


@dataclass
class ProviderRequest:
    system: str
    messages: list[ConversationItem]
    tools: list[ToolDefinition] = field(default_factory=list)


@dataclass
class ProviderReply:
    """Parsed model response: text, a tool invocation, or both."""
    text: str | None = None
    tool_call: ToolInvocation | None = None


class ProviderAdapter(ABC):
    """
    Base class for LLM vendors.

    complete() owns the authentication retry policy: when the vendor rejects
    the credential and the credential can be refreshed, refresh exactly once
    and resend the same request once. Any other failure propagates unchanged.
    """

    provider: AIProvider
    supports_tools: bool = False

    def __init__(
        self,
        credentials: CredentialProvider,
        model: str,
        max_tokens: int = 4096,
        timeout: float = 60.0,
    ):
        self.credentials = credentials
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return self.credentials.is_configured

    async def complete(self, request: ProviderRequest) -> ProviderReply:
        """
        Send one request to the vendor.

        Args:
            request: System prompt, working history and optional tool catalog

        Returns:
            The parsed reply

        Raises:
            ConfigurationError: If no credential is available
            AuthenticationError: If the credential is rejected (after at most one refresh)
            NetworkError, ApiError, ParseError: On transport, HTTP or payload failures
        """
        token = await self.credentials.get_valid_access_token()
        try:
            return await self._send(request, token)
        except AuthenticationError:
            if not self.credentials.can_refresh:
                raise
            logger.info(f"{self.provider.display_name} rejected the access token, refreshing once")

        token = await self.credentials.refresh_access_token()
        return await self._send(request, token)

    @abstractmethod
    async def _send(self, request: ProviderRequest, token: str) -> ProviderReply:
        """Perform a single HTTP exchange with the given credential."""
        pass
