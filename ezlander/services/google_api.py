"""Shared request execution for the Google API discovery clients."""

import asyncio
import logging

import google.auth.exceptions
import httplib2
from googleapiclient.errors import HttpError

from ezlander.core.errors import ApiError, AuthenticationError, NetworkError

logger = logging.getLogger(__name__)


async def execute(request, label: str):
    """
    Run a googleapiclient request off the event loop.

    Raises:
        AuthenticationError: On HTTP 401
        ApiError: On any other HTTP error status
        NetworkError: If the request never got a response
    """
    try:
        return await asyncio.to_thread(request.execute)
    except HttpError as e:
        if e.resp.status == 401:
            raise AuthenticationError(f"{label} authorization expired") from e
        body = e.content.decode("utf-8", errors="replace") if e.content else ""
        raise ApiError(e.resp.status, body) from e
    except (httplib2.HttpLib2Error, google.auth.exceptions.TransportError, OSError) as e:
        logger.error(f"{label} request failed: {e}")
        raise NetworkError(f"Could not reach {label}") from e
