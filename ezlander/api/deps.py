"""FastAPI dependencies."""

from fastapi import HTTPException, Request, status

from ezlander.core.errors import (
    ApiError,
    AuthenticationError,
    ConfigurationError,
    NetworkError,
    ParseError,
    ProviderError,
)
from ezlander.services.container import AssistantServices


def get_services(request: Request) -> AssistantServices:
    """The service container built during application startup."""
    return request.app.state.services


def http_error(error: ProviderError) -> HTTPException:
    """Map the provider error taxonomy onto HTTP status codes."""
    if isinstance(error, ConfigurationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, AuthenticationError):
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(error))
    if isinstance(error, (ApiError, NetworkError, ParseError)):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


def collaborator_error(error: ProviderError) -> HTTPException:
    """Like http_error, but a missing event or message is the caller's 404."""
    if isinstance(error, ApiError) and error.status_code == status.HTTP_404_NOT_FOUND:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return http_error(error)
