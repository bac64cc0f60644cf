"""Decides whether a login should trigger provisioning at all."""
from __future__ import annotations

from typing import Any, Collection, Mapping

from .constants import EXISTS_FLAG, WHITELISTED_CONNECTIONS


def is_eligible(
    connection_strategy: str,
    metadata: Mapping[str, Any],
    whitelist: Collection[str] = WHITELISTED_CONNECTIONS,
) -> bool:
    """Only whitelisted strategies, and only users not already flagged as existing in CIS."""
    if connection_strategy not in whitelist:
        return False
    return not metadata.get(EXISTS_FLAG)
