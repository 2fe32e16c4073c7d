"""Email API endpoints."""

import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ezlander.api.deps import collaborator_error, get_services
from ezlander.core.errors import ProviderError
from ezlander.schemas.email import DraftResponse, Email, EmailDraft
from ezlander.services.base import EmailProvider
from ezlander.services.container import AssistantServices

logger = logging.getLogger(__name__)

router = APIRouter()


def get_mailbox(services: AssistantServices) -> EmailProvider:
    if services.email is None or not services.email.is_connected:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Gmail is not connected")
    return services.email


def outgoing(services: AssistantServices, draft: EmailDraft) -> Email:
    return Email(
        id=str(uuid.uuid4()),
        to=draft.to,
        subject=draft.subject,
        body=draft.body,
        date=services.context.now(),
    )


@router.get("", response_model=list[Email])
async def list_emails(
    services: Annotated[AssistantServices, Depends(get_services)],
    max_results: int = Query(10, ge=1, le=100),
) -> list[Email]:
    """Most recent inbox messages."""
    try:
        return await get_mailbox(services).list_recent_emails(max_results)
    except ProviderError as e:
        logger.error(f"Listing recent emails failed: {e}")
        raise collaborator_error(e) from e


@router.get("/search", response_model=list[Email])
async def search_emails(
    services: Annotated[AssistantServices, Depends(get_services)],
    q: str = Query(..., min_length=1, description="Gmail search query"),
    max_results: int = Query(10, ge=1, le=100),
) -> list[Email]:
    try:
        return await get_mailbox(services).search_emails(q, max_results)
    except ProviderError as e:
        logger.error(f"Email search '{q}' failed: {e}")
        raise collaborator_error(e) from e


# Literal routes above must come before /{email_id}
@router.get("/{email_id}", response_model=Email)
async def get_email(
    email_id: str,
    services: Annotated[AssistantServices, Depends(get_services)],
) -> Email:
    """Get a single email by ID."""
    try:
        return await get_mailbox(services).get_email(email_id)
    except ProviderError as e:
        logger.error(f"Fetching email {email_id} failed: {e}")
        raise collaborator_error(e) from e


@router.post("/drafts", response_model=DraftResponse, status_code=status.HTTP_201_CREATED)
async def create_draft(
    draft: EmailDraft,
    services: Annotated[AssistantServices, Depends(get_services)],
) -> DraftResponse:
    """Save a draft in Gmail without sending it."""
    try:
        draft_id = await get_mailbox(services).create_draft(outgoing(services, draft))
    except ProviderError as e:
        logger.error(f"Creating draft to {draft.to} failed: {e}")
        raise collaborator_error(e) from e
    return DraftResponse(id=draft_id)


@router.post("/send", response_model=Email)
async def send_email(
    draft: EmailDraft,
    services: Annotated[AssistantServices, Depends(get_services)],
) -> Email:
    email = outgoing(services, draft)
    try:
        await get_mailbox(services).send_email(email)
    except ProviderError as e:
        logger.error(f"Sending email to {draft.to} failed: {e}")
        raise collaborator_error(e) from e
    return email
