"""Builds a CIS person profile from an Auth0 user record."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from .constants import PUBLISHER_NAME, WHITELISTED_CONNECTIONS
from .models import Identity, LinkedIdentity
from .profile import Profile

logger = logging.getLogger("cis_provisioner.builder")

PRIVATE = "private"


def isoformat(moment: datetime) -> str:
    """2020-01-01T00:00:00.000Z"""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def first_name_for(identity: Identity) -> str:
    # given_name -> name -> family_name -> nickname -> ' '
    return identity.given_name or identity.name or identity.family_name or identity.nickname or " "


class ProfileBuilder:
    """Fills a clone of the null profile with the attributes we publish.

    The identity mapping follows what the CIS Auth0 publisher does; the
    github_id_v4 / github_primary_email rules come from provider profile data
    that has never been observed in practice and are kept unverified.
    """

    def __init__(self, skeleton: Profile, publisher: str = PUBLISHER_NAME,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.skeleton = skeleton
        self.publisher = publisher
        self.clock = clock

    def build(self, identity: Identity, subject_id: str) -> Profile:
        profile = self.skeleton.clone()
        now = isoformat(self.clock())

        def put(path: str, value: Any, display: Optional[str] = None):
            attr = profile.leaf(path)
            attr.stamp(self.publisher, now, display)
            attr.value = value
            return attr

        logger.info("Generating CIS profile for %s", subject_id)

        put("active", True)
        put("first_name", first_name_for(identity), PRIVATE)
        put("last_name", identity.family_name or " ", PRIVATE)
        put("primary_email", identity.email)
        put("user_id", subject_id)

        login_method_set = False
        for linked in identity.identities:
            if linked.connection not in WHITELISTED_CONNECTIONS:
                continue

            if not login_method_set:
                put("login_method", linked.connection)
                login_method_set = True

            mapper = self._mapper_for(linked)
            if mapper:
                mapper(put, identity, linked)

        return profile

    def _mapper_for(self, linked: LinkedIdentity):
        if linked.provider == "github":
            return self._map_github
        if linked.provider == "google-oauth2":
            return self._map_google
        if linked.connection == "firefoxaccounts" and linked.provider == "oauth2":
            return self._map_firefox_accounts
        return None

    @staticmethod
    def _map_github(put, identity: Identity, linked: LinkedIdentity):
        put("identities.github_id_v3", linked.user_id, PRIVATE)

        if identity.nickname:
            put("usernames", {"HACK#GITHUB": identity.nickname}, PRIVATE)

        profile_data: Dict[str, Any] = dict(linked.profile_data or {})
        if profile_data:
            put("identities.github_id_v4", profile_data.get("node_id"), PRIVATE)
            email = put("identities.github_primary_email", profile_data.get("email"), PRIVATE)
            email.metadata["verified"] = profile_data.get("email_verified") is True

    @staticmethod
    def _map_google(put, identity: Identity, linked: LinkedIdentity):
        put("identities.google_oauth2_id", linked.user_id, PRIVATE)
        put("identities.google_primary_email", identity.email, PRIVATE)

    @staticmethod
    def _map_firefox_accounts(put, identity: Identity, linked: LinkedIdentity):
        put("identities.firefox_accounts_id", linked.user_id, PRIVATE)
        put("identities.firefox_accounts_primary_email", identity.email, PRIVATE)
