"""Chat API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from ezlander.api.deps import get_services, http_error
from ezlander.core.errors import ProviderError
from ezlander.schemas.chat import ChatRequest, ChatResponse, ProviderSelection, ProviderStatus
from ezlander.services.container import AssistantServices

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    services: Annotated[AssistantServices, Depends(get_services)],
) -> ChatResponse:
    """
    Run one chat turn.

    The assistant may call one tool (calendar, email or meeting prep) before
    answering. Provider failures map to 400/401/502.
    """
    provider = request.provider or services.current_provider
    orchestrator = services.orchestrator_for(provider)

    try:
        message = await orchestrator.send_turn(request.message, request.history)
    except ProviderError as e:
        logger.error(f"Chat turn with {provider.value} failed: {e}")
        raise http_error(e) from e

    return ChatResponse(message=message, provider=provider)


@router.get("/providers", response_model=list[ProviderStatus])
async def list_providers(
    services: Annotated[AssistantServices, Depends(get_services)],
) -> list[ProviderStatus]:
    """Configuration status of every provider."""
    return services.provider_statuses()


@router.put("/provider", response_model=ProviderStatus)
async def select_provider(
    selection: ProviderSelection,
    services: Annotated[AssistantServices, Depends(get_services)],
) -> ProviderStatus:
    """Remember the provider used when a chat request names none."""
    services.select_provider(selection.provider)
    return next(s for s in services.provider_statuses() if s.provider is selection.provider)
