import base64
import json
import sys
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cis_provisioner.config import validate_configuration


def null_attribute(key="value", publisher=None):
    return {
        "metadata": {
            "classification": "PUBLIC",
            "last_modified": "1970-01-01T00:00:00Z",
            "created": "1970-01-01T00:00:00Z",
            "display": None,
            "verified": False,
        },
        "signature": {
            "publisher": {"alg": "HS256", "typ": "JWS", "name": publisher, "value": ""},
            "additional": [{"alg": "HS256", "typ": "JWS", "name": None, "value": ""}],
        },
        key: None,
    }


def null_profile():
    return {
        "schema": "https://person-api.sso.mozilla.com/schema/v2/profile",
        "active": null_attribute(),
        "first_name": null_attribute(),
        "last_name": null_attribute(),
        "primary_email": null_attribute(),
        "user_id": null_attribute(),
        "login_method": null_attribute(),
        "usernames": null_attribute("values"),
        "identities": {
            "github_id_v3": null_attribute(),
            "github_id_v4": null_attribute(),
            "github_primary_email": null_attribute(),
            "google_oauth2_id": null_attribute(),
            "google_primary_email": null_attribute(),
            "firefox_accounts_id": null_attribute(),
            "firefox_accounts_primary_email": null_attribute(),
        },
        "access_information": {
            "ldap": null_attribute("values", publisher="ldap"),
        },
        "staff_information": {
            "title": null_attribute(publisher="hris"),
        },
    }


def encode_json(document):
    return base64.b64encode(json.dumps(document, separators=(",", ":")).encode("ascii")).decode("ascii")


class FakeResponse:
    def __init__(self, status=200, payload=None, json_error=None, text=""):
        self.status = status
        self._payload = payload
        self._json_error = json_error
        self._text = text

    async def json(self):
        if self._json_error:
            raise self._json_error
        return self._payload

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class _RaisingRequest:
    def __init__(self, error):
        self.error = error

    async def __aenter__(self):
        raise self.error

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession; answers each method from a queue."""

    def __init__(self, **responses):
        self.responses = {method.upper(): list(queue) for method, queue in responses.items()}
        self.calls = []

    def _request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        response = self.responses[method].pop(0)
        if isinstance(response, BaseException):
            return _RaisingRequest(response)
        return response

    def get(self, url, **kwargs):
        return self._request("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._request("POST", url, **kwargs)

    def patch(self, url, **kwargs):
        return self._request("PATCH", url, **kwargs)

    async def close(self):
        pass


class FakeMetadataStore:
    def __init__(self, error=None):
        self.error = error
        self.updates = []

    async def update_user_metadata(self, user_id, metadata):
        self.updates.append((user_id, dict(metadata)))
        if self.error:
            raise self.error


@pytest.fixture(scope="session")
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def configuration(private_key):
    pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return {
        "changeapi_auth0_private_key": base64.b64encode(pem).decode("ascii"),
        "changeapi_null_profile": encode_json(null_profile()),
        "changeapi_url": "https://change.api.test",
        "personapi_audience": "api.test.sso.allizom.org",
        "personapi_client_id": "client-id",
        "personapi_client_secret": "client-secret",
        "personapi_oauth_url": "https://auth.test/oauth/token",
        "personapi_url": "https://person.api.test",
    }


@pytest.fixture
def settings(configuration):
    return validate_configuration(configuration)


@pytest.fixture
def user():
    return {
        "user_id": "github|12345",
        "email": "octocat@example.com",
        "email_verified": True,
        "name": "The Octocat",
        "nickname": "octocat",
        "identities": [
            {"connection": "github", "provider": "github", "user_id": "12345"},
        ],
        "user_metadata": {},
    }
