"""Chat schemas."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    """Chat message role."""

    USER = "user"
    ASSISTANT = "assistant"


class AIProvider(str, Enum):
    """Supported LLM providers."""

    CLAUDE = "claude"
    OPENAI = "openai"
    GEMINI = "gemini"
    KIMI = "kimi"

    @property
    def display_name(self) -> str:
        return {
            AIProvider.CLAUDE: "Claude",
            AIProvider.OPENAI: "OpenAI",
            AIProvider.GEMINI: "Gemini",
            AIProvider.KIMI: "Kimi 2.5",
        }[self]


class ToolCall(BaseModel):
    """A tool invocation shown in the transcript."""

    model_config = ConfigDict(frozen=True)

    name: str
    parameters: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_arguments(cls, name: str, arguments: dict) -> "ToolCall":
        """Stringify raw tool arguments for display."""
        return cls(name=name, parameters={k: str(v) for k, v in arguments.items()})


class ChatMessage(BaseModel):
    """Schema for a chat message."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str
    tool_call: ToolCall | None = None


class ChatRequest(BaseModel):
    """Schema for chat request."""

    message: str = Field(min_length=1)
    history: list[ChatMessage] = Field(default_factory=list)
    provider: AIProvider | None = None


class ChatResponse(BaseModel):
    """Schema for chat response."""

    message: ChatMessage
    provider: AIProvider


class ProviderStatus(BaseModel):
    """Configuration status of a single provider."""

    provider: AIProvider
    display_name: str
    configured: bool
    supports_tools: bool
    selected: bool = False


class ProviderSelection(BaseModel):
    """Request body for switching the active provider."""

    provider: AIProvider
