"""
Abstract collaborator interfaces.

The conversation core only talks to these; concrete services wrap Google
Calendar, iCloud CalDAV and Gmail. Tests substitute doubles.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from ezlander.core.errors import TokenRefreshFailed
from ezlander.schemas.calendar import CalendarEvent, CalendarSource
from ezlander.schemas.email import Email


class CredentialProvider(ABC):
    """Source of bearer tokens / API keys for one account."""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether a credential is available without network access."""
        pass

    @property
    def can_refresh(self) -> bool:
        """Whether refresh_access_token can mint a new credential."""
        return False

    @abstractmethod
    async def get_valid_access_token(self) -> str:
        """Return a usable credential.

        Raises:
            NotSignedIn: If nothing is stored for this account
        """
        pass

    async def refresh_access_token(self) -> str:
        """Exchange the refresh token for a new access token.

        Raises:
            TokenRefreshFailed: If the provider refuses the refresh
        """
        raise TokenRefreshFailed("This credential cannot be refreshed")


class CalendarProvider(ABC):
    """A calendar backend."""

    source: CalendarSource

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the user has connected this calendar."""
        pass

    @abstractmethod
    async def list_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        """List events overlapping [start, end), ordered by start."""
        pass

    @abstractmethod
    async def create_event(self, event: CalendarEvent) -> CalendarEvent:
        """Create an event and return it as stored by the backend."""
        pass

    @abstractmethod
    async def update_event(self, event: CalendarEvent) -> CalendarEvent:
        """Replace the stored event whose id matches ``event.id``."""
        pass

    @abstractmethod
    async def delete_event(self, event_id: str) -> None:
        pass


class EmailProvider(ABC):
    """A mailbox backend."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        pass

    @abstractmethod
    async def search_emails(self, query: str, max_results: int = 10) -> list[Email]:
        """Search the mailbox using the provider's query syntax."""
        pass

    async def list_recent_emails(self, max_results: int = 10) -> list[Email]:
        """Newest inbox messages."""
        return await self.search_emails("in:inbox", max_results)

    @abstractmethod
    async def get_email(self, email_id: str) -> Email:
        pass

    @abstractmethod
    async def send_email(self, email: Email) -> None:
        pass

    @abstractmethod
    async def create_draft(self, email: Email) -> str:
        """Save a draft and return its id."""
        pass
