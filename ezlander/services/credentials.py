"""Credential providers: static API keys and refreshable OAuth sessions."""

import asyncio
import logging
import time

import httpx
from pydantic import BaseModel, ValidationError

from ezlander.core.errors import ConfigurationError, NotSignedIn, TokenRefreshFailed
from ezlander.services.base import CredentialProvider
from ezlander.services.config_store import ConfigStore

logger = logging.getLogger(__name__)


class TokenResponse(BaseModel):
    """OAuth token endpoint response."""

    access_token: str
    expires_in: int = 3600
    refresh_token: str | None = None
    token_type: str | None = None
    scope: str | None = None


class ApiKeyCredentials(CredentialProvider):
    """An API key looked up in the config store, then the environment."""

    def __init__(self, store: ConfigStore, key: str, fallback: str = "", label: str = "API"):
        self.store = store
        self.key = key
        self.fallback = fallback
        self.label = label

    def _lookup(self) -> str:
        return self.store.get(self.key) or self.fallback.strip()

    @property
    def is_configured(self) -> bool:
        return bool(self._lookup())

    async def get_valid_access_token(self) -> str:
        api_key = self._lookup()
        if not api_key:
            raise ConfigurationError(f"{self.label} API key not configured")
        return api_key


class OAuthCredentials(CredentialProvider):
    """
    OAuth access/refresh token pair persisted in the config store.

    At most one refresh is in flight per instance. Callers that were queued
    behind it get the freshly stored token instead of refreshing again.
    """

    def __init__(
        self,
        store: ConfigStore,
        prefix: str,
        token_url: str,
        client_id: str,
        client_secret: str | None = None,
        label: str = "OAuth",
        refresh_buffer_seconds: int = 300,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.store = store
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.label = label
        self.refresh_buffer_seconds = refresh_buffer_seconds
        self._transport = transport
        self._refresh_lock = asyncio.Lock()

        self.access_token_key = f"{prefix}_access_token"
        self.refresh_token_key = f"{prefix}_refresh_token"
        self.expires_at_key = f"{prefix}_expires_at"

    @property
    def is_configured(self) -> bool:
        return bool(self.store.get(self.refresh_token_key) or self.store.get(self.access_token_key))

    @property
    def can_refresh(self) -> bool:
        return bool(self.store.get(self.refresh_token_key))

    def _expires_soon(self) -> bool:
        expires_at = float(self.store.get(self.expires_at_key) or 0)
        return expires_at > 0 and time.time() >= expires_at - self.refresh_buffer_seconds

    async def get_valid_access_token(self) -> str:
        access_token = self.store.get(self.access_token_key)
        if not access_token and not self.can_refresh:
            raise NotSignedIn(f"Not signed in to {self.label}")

        if not access_token or self._expires_soon():
            return await self.refresh_access_token()
        return access_token

    async def refresh_access_token(self) -> str:
        stale_token = self.store.get(self.access_token_key)

        async with self._refresh_lock:
            current = self.store.get(self.access_token_key)
            if current and current != stale_token and not self._expires_soon():
                logger.debug(f"{self.label} token already refreshed by a concurrent caller")
                return current

            refresh_token = self.store.get(self.refresh_token_key)
            if not refresh_token:
                raise NotSignedIn(f"Not signed in to {self.label}")

            data = {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.client_id,
            }
            if self.client_secret:
                data["client_secret"] = self.client_secret

            try:
                async with httpx.AsyncClient(transport=self._transport, timeout=30.0) as client:
                    response = await client.post(self.token_url, data=data)
            except httpx.HTTPError as e:
                logger.error(f"{self.label} token refresh request failed: {e}")
                raise TokenRefreshFailed(f"Failed to refresh {self.label} access token") from e

            if response.status_code != 200:
                logger.error(f"{self.label} token refresh returned {response.status_code}")
                raise TokenRefreshFailed(
                    f"Failed to refresh {self.label} access token ({response.status_code})"
                )

            try:
                tokens = TokenResponse.model_validate(response.json())
            except (ValueError, ValidationError) as e:
                raise TokenRefreshFailed(f"Malformed {self.label} token response") from e

            self.save_tokens(tokens)
            logger.info(f"Refreshed {self.label} access token")
            return tokens.access_token

    def save_tokens(self, tokens: TokenResponse) -> None:
        """Persist a token response (sign-in or refresh)."""
        self.store.set(self.access_token_key, tokens.access_token)
        if tokens.refresh_token:
            self.store.set(self.refresh_token_key, tokens.refresh_token)
        self.store.set(self.expires_at_key, time.time() + tokens.expires_in)

    def sign_out(self) -> None:
        self.store.delete(self.access_token_key)
        self.store.delete(self.refresh_token_key)
        self.store.delete(self.expires_at_key)
