"""Error taxonomy shared by providers, collaborators and the orchestrator."""


class ProviderError(Exception):
    """Base class for every error a chat turn can surface."""


class ConfigurationError(ProviderError):
    """A provider or collaborator is missing its credentials."""


class NotSignedIn(ConfigurationError):
    """No stored OAuth session for the requested account."""


class AuthenticationError(ProviderError):
    """The vendor rejected the credential (HTTP 401)."""


class TokenRefreshFailed(AuthenticationError):
    """The OAuth token endpoint refused to issue a new access token."""


class NetworkError(ProviderError):
    """Transport failure before a response was received."""


class ApiError(ProviderError):
    """Non-2xx response from a vendor API."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"API error ({status_code}): {body}" if body else f"API error ({status_code})")


class ParseError(ProviderError):
    """The vendor response is missing a field the orchestrator needs."""

    def __init__(self, message: str = "Invalid response from provider"):
        super().__init__(message)


class ToolExecutionFailed(ProviderError):
    """A local tool could not complete."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Tool execution failed: {reason}")
