"""Validated settings for one provisioning run."""
from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Any, Mapping

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from ..errors import ConfigurationError, SkeletonError
from ..profile import Profile, load_skeleton

# Note that the PersonAPI client needs these scopes:
# classification: public, display: none, display: public, write
REQUIRED_KEYS = (
    "changeapi_auth0_private_key",
    "changeapi_null_profile",
    "changeapi_url",
    "personapi_audience",
    "personapi_client_id",
    "personapi_client_secret",
    "personapi_oauth_url",
    "personapi_url",
)


@dataclass(frozen=True)
class ProvisioningSettings:
    private_key: RSAPrivateKey
    skeleton: Profile
    changeapi_url: str
    personapi_url: str
    personapi_audience: str
    personapi_client_id: str
    personapi_client_secret: str
    personapi_oauth_url: str


def _load_private_key(encoded: str) -> RSAPrivateKey:
    try:
        pem = base64.b64decode(encoded, validate=True)
        key = serialization.load_pem_private_key(pem, password=None)
    except (binascii.Error, ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise ConfigurationError(f"changeapi_auth0_private_key is not a base64 PEM private key: {exc}") from exc
    if not isinstance(key, RSAPrivateKey):
        raise ConfigurationError("changeapi_auth0_private_key must be an RSA key")
    return key


def _load_skeleton(encoded: str) -> Profile:
    try:
        return load_skeleton(encoded)
    except SkeletonError as exc:
        raise ConfigurationError(f"changeapi_null_profile could not be decoded: {exc}") from exc


def validate_configuration(configuration: Mapping[str, Any]) -> ProvisioningSettings:
    """Check the raw configuration before anything touches the network.

    Raises ConfigurationError when a key is missing, when the PersonAPI
    audience/url still carry their historical misconfiguration, or when the
    key or null profile cannot be decoded.
    """
    missing = [key for key in REQUIRED_KEYS if not configuration.get(key)]
    if missing:
        raise ConfigurationError(
            f"Unable to find PersonAPI and/or ChangeAPI configuration: missing {', '.join(missing)}"
        )
    not_text = [key for key in REQUIRED_KEYS if not isinstance(configuration[key], str)]
    if not_text:
        raise ConfigurationError(f"PersonAPI and/or ChangeAPI configuration must be strings: {', '.join(not_text)}")

    # personapi_audience: api.sso.mozilla.com (no scheme)
    # personapi_url: https://person.api.sso.mozilla.com (no /v2)
    if "https" in configuration["personapi_audience"] or "/v" in configuration["personapi_url"]:
        raise ConfigurationError("PersonAPI configured incorrectly")

    return ProvisioningSettings(
        private_key=_load_private_key(configuration["changeapi_auth0_private_key"]),
        skeleton=_load_skeleton(configuration["changeapi_null_profile"]),
        changeapi_url=configuration["changeapi_url"].rstrip("/"),
        personapi_url=configuration["personapi_url"].rstrip("/"),
        personapi_audience=configuration["personapi_audience"],
        personapi_client_id=configuration["personapi_client_id"],
        personapi_client_secret=configuration["personapi_client_secret"],
        personapi_oauth_url=configuration["personapi_oauth_url"],
    )
