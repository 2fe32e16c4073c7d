"""Anthropic Claude adapter (native tool calling)."""

import logging

import anthropic
from anthropic import AsyncAnthropic

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


def to_anthropic_message(item: ConversationItem) -> dict:
    """Translate one history entry into a Messages API message."""
    if item.tool_result is not None:
        block = {
            "type": "tool_result",
            "tool_use_id": item.tool_result.call_id,
            "content": item.tool_result.content,
        }
        if item.tool_result.is_error:
            block["is_error"] = True
        return {"role": "user", "content": [block]}

    if item.tool_call is not None:
        content = []
        if item.text:
            content.append({"type": "text", "text": item.text})
        content.append(
            {
                "type": "tool_use",
                "id": item.tool_call.call_id,
                "name": item.tool_call.name,
                "input": item.tool_call.arguments,
            }
        )
        return {"role": "assistant", "content": content}

    return {"role": item.role.value, "content": item.text}


def parse_anthropic_response(response) -> ProviderReply:
    content = getattr(response, "content", None)
    if content is None:
        raise ParseError()

    text = None
    tool_call = None
    for block in content:
        block_type = getattr(block, "type", None)
        if block_type == "text" and text is None and block.text:
            text = block.text
        elif block_type == "tool_use" and tool_call is None:
            if not getattr(block, "id", None) or not getattr(block, "name", None):
                raise ParseError("Tool use block is missing its id or name")
            tool_call = ToolInvocation(
                call_id=block.id,
                name=block.name,
                arguments=dict(block.input or {}),
            )
    return ProviderReply(text=text, tool_call=tool_call)


class ClaudeAdapter(ProviderAdapter):
    """
    Claude via the Messages API.

    Authenticates with either an API key (x-api-key) or an OAuth access
    token sent as a bearer token with the OAuth beta header.
    """

    provider = AIProvider.CLAUDE
    supports_tools = True

    def __init__(
        self,
        credentials: CredentialProvider,
        model: str,
        max_tokens: int = 4096,
        timeout: float = 60.0,
        use_oauth: bool = False,
        oauth_beta: str = "oauth-2025-04-20",
    ):
        super().__init__(credentials, model, max_tokens, timeout)
        self.use_oauth = use_oauth
        self.oauth_beta = oauth_beta

    def _client(self, token: str) -> AsyncAnthropic:
        # SDK retries stay off; complete() owns the retry policy
        if self.use_oauth:
            return AsyncAnthropic(
                auth_token=token,
                default_headers={"anthropic-beta": self.oauth_beta},
                max_retries=0,
                timeout=self.timeout,
            )
        return AsyncAnthropic(api_key=token, max_retries=0, timeout=self.timeout)

    async def _send(self, request: ProviderRequest, token: str) -> ProviderReply:
        kwargs = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [to_anthropic_message(item) for item in request.messages],
        }
        if request.system:
            kwargs["system"] = request.system
        if request.tools:
            kwargs["tools"] = [tool.to_anthropic() for tool in request.tools]

        try:
            async with self._client(token) as client:
                response = await client.messages.create(**kwargs)
        except anthropic.AuthenticationError as e:
            raise AuthenticationError("Claude rejected the credential") from e
        except anthropic.APIStatusError as e:
            raise ApiError(e.status_code, e.response.text) from e
        except anthropic.APIConnectionError as e:
            logger.error(f"Claude request failed: {e}")
            raise NetworkError("Could not reach the Claude API") from e

        return parse_anthropic_response(response)
