"""
Explicit construction and wiring of every service.

One AssistantServices instance is built at application startup and stored on
app.state; nothing in the package holds process-wide singletons.
"""

import logging
from dataclasses import dataclass, field

import httpx

from ezlander.config import Settings
from ezlander.core.context_builder import ContextBuilder
from ezlander.core.orchestrator import ConversationOrchestrator
from ezlander.core.tool_executor import ToolExecutor
from ezlander.core.tool_registry import ToolRegistry
from ezlander.providers import ClaudeAdapter, GeminiAdapter, KimiAdapter, OpenAIAdapter, ProviderAdapter
from ezlander.schemas.calendar import CalendarSource
from ezlander.schemas.chat import AIProvider, ProviderStatus
from ezlander.services import config_store as keys
from ezlander.services.apple_calendar import AppleCalendarService
from ezlander.services.base import CalendarProvider, EmailProvider
from ezlander.services.config_store import ConfigStore
from ezlander.services.credentials import ApiKeyCredentials, OAuthCredentials
from ezlander.services.gmail import GmailService
from ezlander.services.google_calendar import GoogleCalendarService

logger = logging.getLogger(__name__)


@dataclass
class AssistantServices:
    """Everything a chat turn or briefing needs."""
    settings: Settings
    store: ConfigStore
    google_credentials: OAuthCredentials
    claude_oauth: OAuthCredentials
    api_keys: dict[AIProvider, ApiKeyCredentials]
    calendars: dict[CalendarSource, CalendarProvider]
    email: EmailProvider
    context: ContextBuilder
    executor: ToolExecutor
    registry: ToolRegistry = field(default_factory=ToolRegistry)

    @property
    def current_provider(self) -> AIProvider:
        saved = self.store.get(keys.AI_PROVIDER) or self.settings.default_provider
        try:
            return AIProvider(saved)
        except ValueError:
            logger.warning(f"Unknown saved provider '{saved}', falling back to Claude")
            return AIProvider.CLAUDE

    def select_provider(self, provider: AIProvider) -> None:
        self.store.set(keys.AI_PROVIDER, provider.value)
        logger.info(f"Selected provider {provider.value}")

    def adapter_for(self, provider: AIProvider) -> ProviderAdapter:
        settings = self.settings
        common = {"max_tokens": settings.llm_max_tokens, "timeout": settings.llm_timeout_seconds}

        if provider is AIProvider.CLAUDE:
            # An OAuth session takes precedence over an API key
            if self.claude_oauth.is_configured:
                return ClaudeAdapter(
                    self.claude_oauth,
                    settings.claude_model,
                    use_oauth=True,
                    oauth_beta=settings.claude_oauth_beta,
                    **common,
                )
            return ClaudeAdapter(self.api_keys[AIProvider.CLAUDE], settings.claude_model, **common)
        if provider is AIProvider.OPENAI:
            return OpenAIAdapter(self.api_keys[AIProvider.OPENAI], settings.openai_model, **common)
        if provider is AIProvider.KIMI:
            return KimiAdapter(
                self.api_keys[AIProvider.KIMI], settings.kimi_model, base_url=settings.kimi_base_url, **common
            )
        return GeminiAdapter(
            self.api_keys[AIProvider.GEMINI], settings.gemini_model, base_url=settings.gemini_base_url, **common
        )

    def orchestrator_for(self, provider: AIProvider | None = None) -> ConversationOrchestrator:
        return ConversationOrchestrator(
            adapter=self.adapter_for(provider or self.current_provider),
            context=self.context,
            executor=self.executor,
            registry=self.registry,
            tz=self.settings.tz,
            user_name=self.store.get(keys.USER_NAME) or self.settings.user_name or None,
        )

    def provider_statuses(self) -> list[ProviderStatus]:
        current = self.current_provider
        statuses = []
        for provider in AIProvider:
            adapter = self.adapter_for(provider)
            statuses.append(
                ProviderStatus(
                    provider=provider,
                    display_name=provider.display_name,
                    configured=adapter.is_configured,
                    supports_tools=adapter.supports_tools,
                    selected=provider is current,
                )
            )
        return statuses


def build_services(
    settings: Settings,
    store: ConfigStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AssistantServices:
    """Wire the service graph from settings."""
    store = store if store is not None else ConfigStore(settings.config_store_path)
    tz = settings.tz

    google_credentials = OAuthCredentials(
        store,
        prefix="google",
        token_url=settings.google_token_url,
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret or None,
        label="Google",
        refresh_buffer_seconds=settings.token_refresh_buffer_seconds,
        transport=transport,
    )
    claude_oauth = OAuthCredentials(
        store,
        prefix="claude",
        token_url=settings.claude_oauth_token_url,
        client_id=settings.claude_oauth_client_id,
        label="Claude",
        refresh_buffer_seconds=settings.token_refresh_buffer_seconds,
        transport=transport,
    )
    api_keys = {
        AIProvider.CLAUDE: ApiKeyCredentials(store, keys.ANTHROPIC_API_KEY, settings.anthropic_api_key, "Claude"),
        AIProvider.OPENAI: ApiKeyCredentials(store, keys.OPENAI_API_KEY, settings.openai_api_key, "OpenAI"),
        AIProvider.GEMINI: ApiKeyCredentials(store, keys.GEMINI_API_KEY, settings.gemini_api_key, "Gemini"),
        AIProvider.KIMI: ApiKeyCredentials(store, keys.KIMI_API_KEY, settings.kimi_api_key, "Kimi"),
    }

    google_calendar = GoogleCalendarService(google_credentials, tz=tz)
    calendars: dict[CalendarSource, CalendarProvider] = {
        CalendarSource.GOOGLE: google_calendar,
        CalendarSource.APPLE: AppleCalendarService(
            store,
            url=settings.apple_caldav_url,
            apple_id=settings.apple_id,
            app_password=settings.apple_app_password,
            calendar_name=settings.apple_calendar_name,
            tz=tz,
        ),
    }
    email = GmailService(google_credentials, store, default_sender=settings.user_email)

    context = ContextBuilder(google_calendar, email, tz=tz)
    executor = ToolExecutor(calendars, email, context, tz=tz)

    return AssistantServices(
        settings=settings,
        store=store,
        google_credentials=google_credentials,
        claude_oauth=claude_oauth,
        api_keys=api_keys,
        calendars=calendars,
        email=email,
        context=context,
        executor=executor,
    )
