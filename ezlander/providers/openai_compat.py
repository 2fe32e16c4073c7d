"""
OpenAI-compatible chat completions adapters.

OpenAI itself gets native function calling; Kimi (NVIDIA hosted) is plain
chat over the same wire format.
"""

import json
import logging

import openai
from openai import AsyncOpenAI

from ezlander.core.errors import ApiError, AuthenticationError, NetworkError, ParseError
from ezlander.providers.base import (
    ConversationItem,
    ProviderAdapter,
    ProviderReply,
    ProviderRequest,
    ToolInvocation,
)
from ezlander.schemas.chat import AIProvider
from ezlander.services.base import CredentialProvider

logger = logging.getLogger(__name__)


def to_openai_message(item: ConversationItem) -> dict:
    """Translate one history entry into a chat completions message."""
    if item.tool_result is not None:
        return {
            "role": "tool",
            "tool_call_id": item.tool_result.call_id,
            "content": item.tool_result.content,
        }

    if item.tool_call is not None:
        return {
            "role": "assistant",
            "content": item.text or None,
            "tool_calls": [
                {
                    "id": item.tool_call.call_id,
                    "type": "function",
                    "function": {
                        "name": item.tool_call.name,
                        "arguments": json.dumps(item.tool_call.arguments),
                    },
                }
            ],
        }

    return {"role": item.role.value, "content": item.text}


def parse_openai_response(response) -> ProviderReply:
    choices = getattr(response, "choices", None)
    if not choices:
        raise ParseError()
    message = choices[0].message
    if message is None:
        raise ParseError()

    tool_call = None
    if message.tool_calls:
        raw = message.tool_calls[0]
        try:
            arguments = json.loads(raw.function.arguments or "{}")
        except json.JSONDecodeError as e:
            raise ParseError(f"Malformed tool arguments for {raw.function.name}") from e
        if not isinstance(arguments, dict):
            raise ParseError(f"Tool arguments for {raw.function.name} are not an object")
        tool_call = ToolInvocation(call_id=raw.id, name=raw.function.name, arguments=arguments)

    return ProviderReply(text=message.content or None, tool_call=tool_call)


class OpenAICompatibleAdapter(ProviderAdapter):
    """Shared chat completions plumbing."""

    base_url: str | None = None
    temperature: float = 0.7
    extra_body: dict | None = None

    def _client(self, token: str) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=token, base_url=self.base_url, max_retries=0, timeout=self.timeout)

    def _messages(self, request: ProviderRequest) -> list[dict]:
        messages = []
        if request.system:
            messages.append({"role": "system", "content": request.system})
        if self.supports_tools:
            messages.extend(to_openai_message(item) for item in request.messages)
        else:
            messages.extend(
                {"role": item.role.value, "content": item.as_plain_text()} for item in request.messages
            )
        return messages

    async def _send(self, request: ProviderRequest, token: str) -> ProviderReply:
        kwargs = {
            "model": self.model,
            "messages": self._messages(request),
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        if self.supports_tools and request.tools:
            kwargs["tools"] = [tool.to_openai() for tool in request.tools]
        if self.extra_body:
            kwargs["extra_body"] = self.extra_body

        try:
            async with self._client(token) as client:
                response = await client.chat.completions.create(**kwargs)
        except openai.AuthenticationError as e:
            raise AuthenticationError(f"{self.provider.display_name} rejected the API key") from e
        except openai.APIStatusError as e:
            raise ApiError(e.status_code, e.response.text) from e
        except openai.APIConnectionError as e:
            logger.error(f"{self.provider.display_name} request failed: {e}")
            raise NetworkError(f"Could not reach the {self.provider.display_name} API") from e

        reply = parse_openai_response(response)
        if not self.supports_tools:
            # Plain chat: a stray tool call is ignored
            reply.tool_call = None
        return reply


class OpenAIAdapter(OpenAICompatibleAdapter):
    provider = AIProvider.OPENAI
    supports_tools = True


class KimiAdapter(OpenAICompatibleAdapter):
    """Kimi on NVIDIA's OpenAI-compatible endpoint, instant (non-thinking) mode."""

    provider = AIProvider.KIMI
    supports_tools = False
    temperature = 0.6
    extra_body = {"chat_template_kwargs": {"thinking": False}}

    def __init__(
        self,
        credentials: CredentialProvider,
        model: str,
        max_tokens: int = 4096,
        timeout: float = 60.0,
        base_url: str = "https://integrate.api.nvidia.com/v1",
    ):
        super().__init__(credentials, model, max_tokens, timeout)
        self.base_url = base_url
