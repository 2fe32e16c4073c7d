"""Test credential providers and the config store."""

import asyncio
import json
import time
from urllib.parse import parse_qs

import httpx
import pytest

from ezlander.core.errors import ConfigurationError, NotSignedIn, TokenRefreshFailed
from ezlander.services.config_store import ANTHROPIC_API_KEY, ConfigStore
from ezlander.services.credentials import ApiKeyCredentials, OAuthCredentials, TokenResponse

TOKEN_URL = "https://oauth2.example.com/token"


class TokenEndpoint:
    """Counts refresh requests and answers with a fresh token."""

    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.payload = payload
        self.requests: list[dict] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append({k: v[0] for k, v in parse_qs(request.content.decode()).items()})
        # Yield so concurrent refreshers queue on the lock
        await asyncio.sleep(0.01)
        if self.payload is not None:
            return httpx.Response(self.status_code, json=self.payload)
        return httpx.Response(
            self.status_code,
            json={"access_token": f"fresh-{len(self.requests)}", "expires_in": 3600},
        )


def oauth(store, endpoint, **kwargs) -> OAuthCredentials:
    return OAuthCredentials(
        store,
        prefix="google",
        token_url=TOKEN_URL,
        client_id="client-id",
        label="Google",
        transport=httpx.MockTransport(endpoint),
        **kwargs,
    )


def signed_in_store(expires_in: float) -> ConfigStore:
    store = ConfigStore(None)
    store.set("google_access_token", "stale")
    store.set("google_refresh_token", "refresh-1")
    store.set("google_expires_at", time.time() + expires_in)
    return store


class TestApiKeyCredentials:
    @pytest.mark.asyncio
    async def test_missing_key_raises_configuration_error(self):
        credentials = ApiKeyCredentials(ConfigStore(None), ANTHROPIC_API_KEY, label="Claude")
        assert credentials.is_configured is False
        assert credentials.can_refresh is False
        with pytest.raises(ConfigurationError, match="Claude API key not configured"):
            await credentials.get_valid_access_token()

    @pytest.mark.asyncio
    async def test_store_value_wins_over_environment(self):
        store = ConfigStore(None)
        store.set(ANTHROPIC_API_KEY, "  from-store  ")
        credentials = ApiKeyCredentials(store, ANTHROPIC_API_KEY, fallback="from-env")
        assert await credentials.get_valid_access_token() == "from-store"

    @pytest.mark.asyncio
    async def test_environment_fallback(self):
        credentials = ApiKeyCredentials(ConfigStore(None), ANTHROPIC_API_KEY, fallback="from-env")
        assert credentials.is_configured
        assert await credentials.get_valid_access_token() == "from-env"


class TestOAuthCredentials:
    @pytest.mark.asyncio
    async def test_not_signed_in(self):
        credentials = oauth(ConfigStore(None), TokenEndpoint())
        assert credentials.is_configured is False
        with pytest.raises(NotSignedIn):
            await credentials.get_valid_access_token()

    @pytest.mark.asyncio
    async def test_valid_token_is_returned_without_refresh(self):
        endpoint = TokenEndpoint()
        credentials = oauth(signed_in_store(expires_in=3600), endpoint)

        assert await credentials.get_valid_access_token() == "stale"
        assert endpoint.requests == []

    @pytest.mark.asyncio
    async def test_token_inside_buffer_is_refreshed(self):
        endpoint = TokenEndpoint()
        store = signed_in_store(expires_in=120)
        credentials = oauth(store, endpoint, client_secret="shh")

        assert await credentials.get_valid_access_token() == "fresh-1"
        assert endpoint.requests == [
            {
                "grant_type": "refresh_token",
                "refresh_token": "refresh-1",
                "client_id": "client-id",
                "client_secret": "shh",
            }
        ]
        assert store.get("google_access_token") == "fresh-1"
        # Refresh token is kept when the response omits a new one
        assert store.get("google_refresh_token") == "refresh-1"
        assert store.get("google_expires_at") > time.time() + 3000

    @pytest.mark.asyncio
    async def test_concurrent_refreshes_share_one_request(self):
        endpoint = TokenEndpoint()
        credentials = oauth(signed_in_store(expires_in=-10), endpoint)

        tokens = await asyncio.gather(*(credentials.get_valid_access_token() for _ in range(5)))

        assert len(endpoint.requests) == 1
        assert set(tokens) == {"fresh-1"}

    @pytest.mark.asyncio
    async def test_rejected_refresh_raises(self):
        endpoint = TokenEndpoint(status_code=400, payload={"error": "invalid_grant"})
        credentials = oauth(signed_in_store(expires_in=-10), endpoint)

        with pytest.raises(TokenRefreshFailed):
            await credentials.get_valid_access_token()

    @pytest.mark.asyncio
    async def test_malformed_token_response_raises(self):
        endpoint = TokenEndpoint(payload={"token": "wrong-shape"})
        credentials = oauth(signed_in_store(expires_in=-10), endpoint)

        with pytest.raises(TokenRefreshFailed):
            await credentials.refresh_access_token()

    @pytest.mark.asyncio
    async def test_refresh_without_refresh_token(self):
        store = ConfigStore(None)
        store.set("google_access_token", "only-access")
        credentials = oauth(store, TokenEndpoint())

        assert credentials.can_refresh is False
        with pytest.raises(NotSignedIn):
            await credentials.refresh_access_token()

    def test_save_and_sign_out(self):
        store = ConfigStore(None)
        credentials = oauth(store, TokenEndpoint())

        credentials.save_tokens(TokenResponse(access_token="a", refresh_token="r", expires_in=60))
        assert credentials.is_configured and credentials.can_refresh

        credentials.sign_out()
        assert credentials.is_configured is False
        assert "google_expires_at" not in store


class TestConfigStore:
    def test_persists_to_disk(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        store = ConfigStore(path)
        store.set("ai_provider", "gemini")

        assert json.loads(path.read_text()) == {"ai_provider": "gemini"}
        assert ConfigStore(path).get("ai_provider") == "gemini"

    def test_blank_strings_read_as_missing(self):
        store = ConfigStore(None)
        store.set("openai_api_key", "   ")
        assert store.get("openai_api_key") is None
        assert "openai_api_key" not in store

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        assert ConfigStore(path).get("anything", "default") == "default"

    def test_reload_picks_up_external_writes(self, tmp_path):
        path = tmp_path / "config.json"
        store = ConfigStore(path)
        ConfigStore(path).set("user_name", "Sam")

        assert store.get("user_name") is None
        store.reload()
        assert store.get("user_name") == "Sam"
