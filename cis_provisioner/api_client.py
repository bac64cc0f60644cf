"""Async clients for the PersonAPI (reads) and ChangeAPI (writes)."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import aiohttp

from .auth import BearerTokenCache, fetch_oauth_token
from .config.settings import ProvisioningSettings
from .constants import CHANGEAPI_TIMEOUT, PERSONAPI_TIMEOUT
from .errors import ProfileFetchError, SubmissionError

logger = logging.getLogger("cis_provisioner.api_client")

# characters encodeURI leaves alone, so ids like "ad|Mozilla-LDAP|jdoe" match what CIS expects
_URI_SAFE = ";,/?:@&=+$-_.!~*'()#"


def encode_user_id(user_id: str) -> str:
    return quote(user_id, safe=_URI_SAFE)


class ApiClient:
    """Owns one aiohttp session for the PersonAPI and ChangeAPI calls of a login."""

    def __init__(self, settings: ProvisioningSettings, token_cache: BearerTokenCache,
                 session: Optional[aiohttp.ClientSession] = None):
        self.settings = settings
        self.token_cache = token_cache
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self):
        if self.session is None:
            self.session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._owns_session and self.session:
            await self.session.close()

    async def get_bearer_token(self) -> str:
        return await self.token_cache.get_token(lambda: fetch_oauth_token(self._session(), self.settings))

    def _session(self) -> aiohttp.ClientSession:
        if not self.session:
            raise RuntimeError("ApiClient not initialized; use async context manager")
        return self.session

    async def fetch_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Return the PersonAPI profile for ``user_id``, or None when CIS has none."""
        bearer = await self.get_bearer_token()
        url = f"{self.settings.personapi_url}/v2/user/user_id/{encode_user_id(user_id)}?active=any"
        headers = {"Authorization": f"Bearer {bearer}"}
        timeout = aiohttp.ClientTimeout(total=PERSONAPI_TIMEOUT)

        logger.info("Fetching person profile of %s", user_id)
        try:
            async with self._session().get(url, headers=headers, timeout=timeout) as response:
                if response.status >= 400:
                    raise ProfileFetchError(f"PersonAPI returned {response.status} for {user_id}")
                payload = await response.json()
        except asyncio.TimeoutError as exc:
            raise ProfileFetchError(f"PersonAPI request for {user_id} timed out") from exc
        except (aiohttp.ClientError, ValueError) as exc:
            raise ProfileFetchError(f"PersonAPI request for {user_id} failed: {exc}") from exc

        if not isinstance(payload, dict):
            raise ProfileFetchError(f"PersonAPI returned a non-object body for {user_id}: {payload!r}")
        # an empty object means the user does not exist
        return payload or None

    async def submit_profile(self, user_id: str, profile: Dict[str, Any]) -> Dict[str, Any]:
        """POST a signed profile to the ChangeAPI; raises SubmissionError unless it answers status_code 200."""
        bearer = await self.get_bearer_token()
        url = f"{self.settings.changeapi_url}/v2/user?user_id={encode_user_id(user_id)}"
        headers = {
            "Authorization": f"Bearer {bearer}",
            "Content-Type": "application/json",
        }
        timeout = aiohttp.ClientTimeout(total=CHANGEAPI_TIMEOUT)

        logger.info("Posting profile for %s to ChangeAPI", user_id)
        try:
            async with self._session().post(url, json=profile, headers=headers, timeout=timeout) as response:
                result = await response.json()
        except asyncio.TimeoutError as exc:
            raise SubmissionError(f"ChangeAPI request for {user_id} timed out") from exc
        except (aiohttp.ClientError, ValueError) as exc:
            raise SubmissionError(f"ChangeAPI request for {user_id} failed: {exc}") from exc

        if not isinstance(result, dict) or result.get("status_code") != 200:
            raise SubmissionError(f"Unable to create profile for {user_id} in ChangeAPI: {result!r}")
        return result
