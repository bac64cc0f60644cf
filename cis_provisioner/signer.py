"""Per-attribute JWS signing of a CIS profile."""
from __future__ import annotations

import logging
from typing import Any, Dict

import jwt
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from .constants import PUBLISHER_NAME, SIGNATURE_ALG, SIGNATURE_TYP
from .errors import SigningError
from .profile import LeafAttribute, Profile

logger = logging.getLogger("cis_provisioner.signer")


def _stringify(value: Any) -> Any:
    # CIS currently requires integers to be sent as strings
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class AttributeSigner:
    """Signs every attribute whose publisher is us and whose value is set."""

    def __init__(self, private_key: RSAPrivateKey, publisher: str = PUBLISHER_NAME):
        self.private_key = private_key
        self.publisher = publisher

    def sign_all(self, profile: Profile) -> Profile:
        signed = 0
        for attr in profile.leaves():
            if attr.is_signable(self.publisher):
                self.sign_attribute(attr)
                signed += 1
        logger.debug("Signed %d attributes", signed)
        return profile

    def sign_attribute(self, attr: LeafAttribute) -> LeafAttribute:
        attr.value = _stringify(attr.value)

        # the signature covers everything but the signature itself
        content: Dict[str, Any] = {k: v for k, v in attr.data.items() if k != "signature"}
        try:
            # PyJWT never adds iat on its own, so identical content signs identically
            value = jwt.encode(content, self.private_key, algorithm=SIGNATURE_ALG)
        except (jwt.PyJWTError, TypeError, ValueError) as exc:
            raise SigningError(f"Unable to sign attribute: {exc}") from exc

        attr.data["signature"] = {
            "additional": [
                {"alg": SIGNATURE_ALG, "name": None, "typ": SIGNATURE_TYP, "value": ""},
            ],
            "publisher": {
                "alg": SIGNATURE_ALG,
                "name": self.publisher,
                "typ": SIGNATURE_TYP,
                "value": value,
            },
        }
        return attr
