import asyncio
import json

import aiohttp
import pytest

from conftest import FakeResponse, FakeSession
from cis_provisioner.api_client import ApiClient, encode_user_id
from cis_provisioner.auth import BearerTokenCache, fetch_oauth_token
from cis_provisioner.errors import ProfileFetchError, SubmissionError, TokenFetchError


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_fresh_token_is_reused_without_fetching():
    clock = FakeClock()
    cache = BearerTokenCache(refresh_age=60, clock=clock)
    fetches = []

    async def fetch():
        fetches.append(1)
        return f"token-{len(fetches)}"

    async def _run():
        first = await cache.get_token(fetch)
        clock.now += 59
        second = await cache.get_token(fetch)
        return first, second

    assert asyncio.run(_run()) == ("token-1", "token-1")
    assert len(fetches) == 1


def test_expired_token_is_refreshed_once():
    clock = FakeClock()
    cache = BearerTokenCache(refresh_age=60, clock=clock)
    cache.access_token = "old"
    cache.created_at = clock.now
    clock.now += 61
    fetches = []

    async def fetch():
        fetches.append(1)
        return "new"

    assert asyncio.run(cache.get_token(fetch)) == "new"
    assert len(fetches) == 1
    assert cache.created_at == clock.now


def test_concurrent_callers_share_one_refresh():
    cache = BearerTokenCache()
    fetches = []

    async def fetch():
        fetches.append(1)
        await asyncio.sleep(0)
        return "shared"

    async def _run():
        return await asyncio.gather(*(cache.get_token(fetch) for _ in range(5)))

    assert asyncio.run(_run()) == ["shared"] * 5
    assert len(fetches) == 1


def test_failed_fetch_leaves_cache_empty():
    cache = BearerTokenCache()

    async def fetch():
        raise TokenFetchError("boom")

    with pytest.raises(TokenFetchError):
        asyncio.run(cache.get_token(fetch))
    assert cache.access_token is None


def test_fetch_oauth_token_posts_client_credentials(settings):
    session = FakeSession(post=[FakeResponse(200, {"access_token": "abc"})])
    assert asyncio.run(fetch_oauth_token(session, settings)) == "abc"

    method, url, kwargs = session.calls[0]
    assert url == "https://auth.test/oauth/token"
    assert kwargs["json"] == {
        "audience": "api.test.sso.allizom.org",
        "client_id": "client-id",
        "client_secret": "client-secret",
        "grant_type": "client_credentials",
    }
    assert kwargs["timeout"].total == 5


@pytest.mark.parametrize("response", [
    FakeResponse(401, text="unauthorized"),
    FakeResponse(200, {"error": "nope"}),
    FakeResponse(200, json_error=json.JSONDecodeError("Expecting value", "", 0)),
    asyncio.TimeoutError(),
])
def test_fetch_oauth_token_failures(settings, response):
    session = FakeSession(post=[response])
    with pytest.raises(TokenFetchError):
        asyncio.run(fetch_oauth_token(session, settings))


def test_encode_user_id_matches_encode_uri():
    assert encode_user_id("ad|Mozilla-LDAP|jdoe@mozilla.com") == "ad%7CMozilla-LDAP%7Cjdoe@mozilla.com"


def _client(settings, session, token="cached"):
    cache = BearerTokenCache()
    cache.access_token = token
    cache.created_at = cache.clock()
    return ApiClient(settings, cache, session=session)


def test_fetch_profile_empty_object_means_absent(settings):
    session = FakeSession(get=[FakeResponse(200, {})])

    async def _run():
        async with _client(settings, session) as client:
            return await client.fetch_profile("github|12345")

    assert asyncio.run(_run()) is None
    method, url, kwargs = session.calls[0]
    assert url == "https://person.api.test/v2/user/user_id/github%7C12345?active=any"
    assert kwargs["headers"]["Authorization"] == "Bearer cached"
    assert kwargs["timeout"].total == 5


def test_fetch_profile_returns_existing_profile(settings):
    session = FakeSession(get=[FakeResponse(200, {"user_id": {"value": "github|12345"}})])

    async def _run():
        async with _client(settings, session) as client:
            return await client.fetch_profile("github|12345")

    assert asyncio.run(_run()) == {"user_id": {"value": "github|12345"}}


def test_fetch_profile_fetches_token_on_demand(settings):
    session = FakeSession(
        post=[FakeResponse(200, {"access_token": "fresh"})],
        get=[FakeResponse(200, {})],
    )

    async def _run():
        async with ApiClient(settings, BearerTokenCache(), session=session) as client:
            return await client.fetch_profile("github|12345")

    asyncio.run(_run())
    assert [call[0] for call in session.calls] == ["POST", "GET"]
    assert session.calls[1][2]["headers"]["Authorization"] == "Bearer fresh"


@pytest.mark.parametrize("response", [
    FakeResponse(200, json_error=json.JSONDecodeError("Expecting value", "", 0)),
    FakeResponse(502),
    FakeResponse(200, None),
    FakeResponse(200, []),
    FakeResponse(200, ""),
    asyncio.TimeoutError(),
    aiohttp.ClientConnectionError("refused"),
])
def test_fetch_profile_failures(settings, response):
    session = FakeSession(get=[response])

    async def _run():
        async with _client(settings, session) as client:
            return await client.fetch_profile("github|12345")

    with pytest.raises(ProfileFetchError):
        asyncio.run(_run())


def test_submit_profile_success(settings):
    session = FakeSession(post=[FakeResponse(200, {"status_code": 200, "message": "ok"})])

    async def _run():
        async with _client(settings, session) as client:
            return await client.submit_profile("github|12345", {"active": {"value": True}})

    assert asyncio.run(_run())["status_code"] == 200
    method, url, kwargs = session.calls[0]
    assert url == "https://change.api.test/v2/user?user_id=github%7C12345"
    assert kwargs["json"] == {"active": {"value": True}}
    assert kwargs["timeout"].total == 14


@pytest.mark.parametrize("response", [
    FakeResponse(200, {"status_code": 500}),
    FakeResponse(200, {"message": "no status"}),
    FakeResponse(200, ["not", "an", "object"]),
    asyncio.TimeoutError(),
])
def test_submit_profile_failures(settings, response):
    session = FakeSession(post=[response])

    async def _run():
        async with _client(settings, session) as client:
            return await client.submit_profile("github|12345", {})

    with pytest.raises(SubmissionError):
        asyncio.run(_run())
