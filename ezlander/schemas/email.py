"""Email schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class Email(BaseModel):
    """An email message, either outgoing or returned by a search."""

    id: str
    to: str
    sender: str | None = None
    subject: str
    body: str = ""
    date: datetime
    is_read: bool | None = None
    labels: set[str] = Field(default_factory=set)
    thread_id: str | None = None

    @property
    def sender_name(self) -> str:
        """Display part of a ``Name <addr>`` sender."""
        if not self.sender:
            return "Unknown"
        if "<" in self.sender:
            name = self.sender.split("<", 1)[0].strip().strip('"')
            return name or self.sender_email
        return self.sender

    @property
    def sender_email(self) -> str:
        if not self.sender:
            return ""
        if "<" in self.sender and ">" in self.sender:
            return self.sender.split("<", 1)[1].split(">", 1)[0]
        return self.sender


class EmailDraft(BaseModel):
    """Outgoing message fields for the send and draft endpoints."""

    to: str = Field(..., min_length=1)
    subject: str = ""
    body: str = ""


class DraftResponse(BaseModel):
    id: str
