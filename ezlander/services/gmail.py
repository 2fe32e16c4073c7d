"""Gmail collaborator."""

import base64
import logging
from datetime import datetime, timezone
from email.mime.text import MIMEText

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from ezlander.core.errors import ApiError
from ezlander.schemas.email import Email
from ezlander.services import google_api
from ezlander.services.base import CredentialProvider, EmailProvider
from ezlander.services.config_store import USER_EMAIL, USER_NAME, ConfigStore

logger = logging.getLogger(__name__)


def _extract_body(payload: dict) -> str:
    """Extract plain text body from a Gmail message payload."""
    if payload.get("mimeType") == "text/plain":
        data = payload.get("body", {}).get("data", "")
        if data:
            return base64.urlsafe_b64decode(data).decode("utf-8", errors="ignore")

    for part in payload.get("parts", []):
        body = _extract_body(part)
        if body:
            return body
    return ""


def parse_gmail_message(message: dict) -> Email:
    """Parse a Gmail API message resource into our schema."""
    headers = {h["name"].lower(): h["value"] for h in message.get("payload", {}).get("headers", [])}

    internal_date = int(message.get("internalDate", 0)) / 1000
    received = (
        datetime.fromtimestamp(internal_date, tz=timezone.utc) if internal_date else datetime.now(timezone.utc)
    )
    labels = set(message.get("labelIds", []))

    return Email(
        id=message.get("id", ""),
        to=headers.get("to", ""),
        sender=headers.get("from"),
        subject=headers.get("subject", "(No Subject)"),
        body=_extract_body(message.get("payload", {})) or message.get("snippet", ""),
        date=received,
        is_read="UNREAD" not in labels,
        labels=labels,
        thread_id=message.get("threadId"),
    )


class GmailService(EmailProvider):
    """Mailbox of the signed-in Google account."""

    def __init__(self, credentials: CredentialProvider, store: ConfigStore, default_sender: str = ""):
        self.credentials = credentials
        self.store = store
        self.default_sender = default_sender

    @property
    def is_connected(self) -> bool:
        return self.credentials.is_configured

    async def _service(self):
        token = await self.credentials.get_valid_access_token()
        return build("gmail", "v1", credentials=Credentials(token=token), cache_discovery=False)

    async def _execute(self, request):
        return await google_api.execute(request, "Gmail")

    def _from_header(self) -> str | None:
        address = self.store.get(USER_EMAIL) or self.default_sender
        if not address:
            return None
        name = self.store.get(USER_NAME)
        return f"{name} <{address}>" if name else address

    async def search_emails(self, query: str, max_results: int = 10) -> list[Email]:
        service = await self._service()
        listing = await self._execute(
            service.users().messages().list(userId="me", q=query, maxResults=max_results)
        )

        emails = []
        for ref in listing.get("messages", []):
            try:
                message = await self._execute(
                    service.users()
                    .messages()
                    .get(userId="me", id=ref["id"], format="metadata", metadataHeaders=["From", "To", "Subject"])
                )
            except ApiError as e:
                logger.warning(f"Skipping Gmail message {ref.get('id')}: {e}")
                continue
            emails.append(parse_gmail_message(message))

        emails.sort(key=lambda e: e.date, reverse=True)
        return emails

    def _raw_message(self, email: Email) -> str:
        mime = MIMEText(email.body, "plain", "utf-8")
        mime["To"] = email.to
        mime["Subject"] = email.subject
        sender = email.sender or self._from_header()
        if sender:
            mime["From"] = sender
        return base64.urlsafe_b64encode(mime.as_bytes()).decode("ascii")

    async def get_email(self, email_id: str) -> Email:
        service = await self._service()
        message = await self._execute(service.users().messages().get(userId="me", id=email_id, format="full"))
        return parse_gmail_message(message)

    async def send_email(self, email: Email) -> None:
        service = await self._service()
        sent = await self._execute(
            service.users().messages().send(userId="me", body={"raw": self._raw_message(email)})
        )
        logger.info(f"Sent Gmail message {sent.get('id')}")

    async def create_draft(self, email: Email) -> str:
        service = await self._service()
        draft = await self._execute(
            service.users().drafts().create(userId="me", body={"message": {"raw": self._raw_message(email)}})
        )
        logger.info(f"Created Gmail draft {draft.get('id')}")
        return draft.get("id", "")
