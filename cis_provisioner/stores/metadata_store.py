"""Auth0 user_metadata stores."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional, Protocol

import aiohttp

from ..api_client import encode_user_id
from ..constants import AUTH0_TIMEOUT
from ..errors import MetadataUpdateError

logger = logging.getLogger("cis_provisioner.stores")


class MetadataStore(Protocol):
    """Abstraction for updating a user's metadata in Auth0."""

    async def update_user_metadata(self, user_id: str, metadata: Mapping[str, Any]) -> None:
        ...


class ManagementApiMetadataStore:
    """
    Updates user_metadata through the Auth0 Management API
    (PATCH /api/v2/users/{id}); Auth0 merges the given keys into the existing ones.
    """

    def __init__(self, base_url: str, management_token: str,
                 session: Optional[aiohttp.ClientSession] = None):
        self.base_url = base_url.rstrip("/")
        if not self.base_url.startswith(("http://", "https://")):
            self.base_url = f"https://{self.base_url}"
        self.management_token = management_token
        self.session = session

    async def update_user_metadata(self, user_id: str, metadata: Mapping[str, Any]) -> None:
        url = f"{self.base_url}/api/v2/users/{encode_user_id(user_id)}"
        headers = {
            "Authorization": f"Bearer {self.management_token}",
            "Content-Type": "application/json",
        }
        body: Dict[str, Any] = {"user_metadata": dict(metadata)}
        timeout = aiohttp.ClientTimeout(total=AUTH0_TIMEOUT)

        session = self.session or aiohttp.ClientSession()
        try:
            async with session.patch(url, json=body, headers=headers, timeout=timeout) as response:
                if response.status >= 300:
                    error_text = await response.text()
                    raise MetadataUpdateError(
                        f"Management API returned {response.status} for {user_id}: {error_text}"
                    )
        except asyncio.TimeoutError as exc:
            raise MetadataUpdateError(f"Management API request for {user_id} timed out") from exc
        except aiohttp.ClientError as exc:
            raise MetadataUpdateError(f"Management API request for {user_id} failed: {exc}") from exc
        finally:
            if session is not self.session:
                await session.close()


class LoggingMetadataStore:
    """Dry-run store: logs the update instead of sending it."""

    async def update_user_metadata(self, user_id: str, metadata: Mapping[str, Any]) -> None:
        logger.info("[DRY RUN] user_metadata for %s -> %s", user_id, dict(metadata))
