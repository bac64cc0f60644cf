"""Records in Auth0 that a user now exists in CIS."""
from __future__ import annotations

import logging
from typing import Any, Mapping

from .constants import EXISTS_FLAG
from .errors import MetadataUpdateError
from .stores import MetadataStore

logger = logging.getLogger("cis_provisioner.tracker")


class StatusTracker:
    def __init__(self, store: MetadataStore):
        self.store = store

    async def mark_provisioned(self, user_id: str, metadata: Mapping[str, Any]) -> bool:
        """Set existsInCIS on the user's metadata. Failures are logged, never raised."""
        updated = dict(metadata)
        updated[EXISTS_FLAG] = True
        try:
            await self.store.update_user_metadata(user_id, updated)
        except MetadataUpdateError as exc:
            logger.warning("Unable to set %s on %s: %s", EXISTS_FLAG, user_id, exc)
            return False
        logger.info("Updated user metadata on %s to set %s", user_id, EXISTS_FLAG)
        return True
