"""
PersonAPI bearer token handling.
Fetches tokens with the OAuth 2.0 client credentials flow and keeps one cached
token shared by every login handled in the process.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

import aiohttp

from ..config.settings import ProvisioningSettings
from ..constants import AUTH0_TIMEOUT, PERSONAPI_BEARER_TOKEN_REFRESH_AGE
from ..errors import TokenFetchError

logger = logging.getLogger("cis_provisioner.auth")

TokenFetcher = Callable[[], Awaitable[str]]


async def fetch_oauth_token(session: aiohttp.ClientSession, settings: ProvisioningSettings) -> str:
    """Fetch a PersonAPI bearer token using client credentials flow."""
    body = {
        "audience": settings.personapi_audience,
        "client_id": settings.personapi_client_id,
        "client_secret": settings.personapi_client_secret,
        "grant_type": "client_credentials",
    }
    headers = {"Content-Type": "application/json"}
    timeout = aiohttp.ClientTimeout(total=AUTH0_TIMEOUT)

    try:
        async with session.post(settings.personapi_oauth_url, json=body, headers=headers,
                                timeout=timeout) as response:
            if response.status >= 300:
                error_text = await response.text()
                raise TokenFetchError(
                    f"Unable to retrieve bearer token from Auth0: {response.status} - {error_text}"
                )
            token_data = await response.json()
    except asyncio.TimeoutError as exc:
        raise TokenFetchError("Unable to retrieve bearer token from Auth0: request timed out") from exc
    except (aiohttp.ClientError, ValueError) as exc:
        raise TokenFetchError(f"Unable to retrieve bearer token from Auth0: {exc}") from exc

    access_token = token_data.get("access_token") if isinstance(token_data, dict) else None
    if not access_token:
        raise TokenFetchError("Unable to retrieve bearer token from Auth0: no access_token in response")

    logger.info("Successfully retrieved bearer token from Auth0")
    return access_token


class BearerTokenCache:
    """Single cached bearer token with a fixed refresh age.

    Refreshes are single-flight: callers arriving while a refresh is running
    wait for it and reuse its token instead of issuing their own request.
    """

    def __init__(self, refresh_age: float = PERSONAPI_BEARER_TOKEN_REFRESH_AGE,
                 clock: Callable[[], float] = time.monotonic):
        self.refresh_age = refresh_age
        self.clock = clock
        self.access_token: Optional[str] = None
        self.created_at: Optional[float] = None
        self._lock = asyncio.Lock()

    def is_fresh(self) -> bool:
        return (self.access_token is not None and self.created_at is not None and
                self.clock() - self.created_at < self.refresh_age)

    async def get_token(self, fetch: TokenFetcher) -> str:
        """Return the cached token, calling ``fetch`` only when it is missing or too old."""
        if self.is_fresh():
            return self.access_token

        async with self._lock:
            # another caller may have refreshed while we waited
            if self.is_fresh():
                return self.access_token

            logger.info("Retrieving bearer token to create new user in CIS")
            token = await fetch()
            self.access_token = token
            self.created_at = self.clock()
            return token
