"""Google Gemini adapter (plain chat over the REST generateContent endpoint)."""

import logging

import httpx
from pydantic import BaseModel, Field, ValidationError

from ezlander.core.errors import ApiError, AuthenticationError, NetworkError, ParseError
from ezlander.providers.base import ProviderAdapter, ProviderReply, ProviderRequest
from ezlander.schemas.chat import AIProvider, MessageRole
from ezlander.services.base import CredentialProvider

logger = logging.getLogger(__name__)


class GeminiPart(BaseModel):
    text: str | None = None


class GeminiContent(BaseModel):
    role: str | None = None
    parts: list[GeminiPart] = Field(default_factory=list)


class GeminiCandidate(BaseModel):
    content: GeminiContent | None = None
    finish_reason: str | None = Field(default=None, alias="finishReason")


class GeminiResponse(BaseModel):
    candidates: list[GeminiCandidate] = Field(default_factory=list)

    def first_text(self) -> str:
        """Text of the first part of the first candidate."""
        if not self.candidates or self.candidates[0].content is None:
            raise ParseError()
        parts = self.candidates[0].content.parts
        if not parts or not parts[0].text:
            raise ParseError()
        return parts[0].text


class GeminiAdapter(ProviderAdapter):
    provider = AIProvider.GEMINI
    supports_tools = False

    def __init__(
        self,
        credentials: CredentialProvider,
        model: str,
        max_tokens: int = 4096,
        timeout: float = 60.0,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta/models",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(credentials, model, max_tokens, timeout)
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    def _body(self, request: ProviderRequest) -> dict:
        contents = [
            {
                "role": "user" if item.role is MessageRole.USER else "model",
                "parts": [{"text": item.as_plain_text()}],
            }
            for item in request.messages
        ]
        body = {
            "contents": contents,
            "generationConfig": {"temperature": 0.7, "maxOutputTokens": self.max_tokens},
        }
        if request.system:
            body["systemInstruction"] = {"parts": [{"text": request.system}]}
        return body

    async def _send(self, request: ProviderRequest, token: str) -> ProviderReply:
        url = f"{self.base_url}/{self.model}:generateContent"
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    json=self._body(request),
                    headers={"x-goog-api-key": token},
                )
        except httpx.HTTPError as e:
            logger.error(f"Gemini request failed: {e}")
            raise NetworkError("Could not reach the Gemini API") from e

        if response.status_code == 401:
            raise AuthenticationError("Gemini rejected the API key")
        if response.status_code != 200:
            raise ApiError(response.status_code, response.text)

        try:
            parsed = GeminiResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ParseError() from e
        return ProviderReply(text=parsed.first_text())
