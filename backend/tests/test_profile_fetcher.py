"""
Tests for profile_fetcher.py - primary lookup, best-effort secondary lookups
and upstream error mapping, against httpx.MockTransport.
"""
import asyncio
import time
from typing import Callable, Dict, List

import httpx
import pytest

from app.services.connectors import (
    FreshLinkedInConnector,
    ProxycurlConnector,
    get_profile_connector,
)
from app.services.errors import (
    ConfigurationError,
    InvalidHandle,
    ProfileNotFound,
    UpstreamError,
    UpstreamTimeout,
)
from app.services.profile_fetcher import ProfileFetcher

from tests.fixtures.profile_fixtures import (
    FRESH_PROFILE_RESPONSE,
    JANE_URN,
    PROXYCURL_RESPONSE,
    SECONDARY_RESPONSES,
)


def make_transport(
    overrides: Dict[str, Callable[[httpx.Request], httpx.Response]] | None = None,
) -> tuple[httpx.MockTransport, List[httpx.Request]]:
    """Route RapidAPI paths to fixture payloads; ``overrides`` replaces a path's handler."""
    seen: List[httpx.Request] = []
    overrides = overrides or {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        path = request.url.path
        if path in overrides:
            return overrides[path](request)
        if path == "/api/v1/user/profile":
            return httpx.Response(200, json=FRESH_PROFILE_RESPONSE)
        if path in SECONDARY_RESPONSES:
            return httpx.Response(200, json=SECONDARY_RESPONSES[path])
        return httpx.Response(404, json={"message": "unknown path"})

    return httpx.MockTransport(handler), seen


def paths(requests: List[httpx.Request]) -> List[str]:
    return [r.url.path for r in requests]


class SlowSecondaryTransport(httpx.AsyncBaseTransport):
    """Answers the primary lookup at once and each secondary lookup after ``delay`` seconds."""

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self.in_flight = 0
        self.peak = 0

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/api/v1/user/profile":
            return httpx.Response(200, json=FRESH_PROFILE_RESPONSE)

        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        return httpx.Response(200, json=SECONDARY_RESPONSES[path])


class TestFreshLinkedInFetch:
    def test_full_fetch_merges_all_secondary_data(self, settings):
        transport, seen = make_transport()
        profile = ProfileFetcher(settings, transport=transport).fetch(
            "https://www.linkedin.com/in/Jane-Doe/?utm_source=share"
        )

        assert profile.public_identifier == "jane-doe"
        # Largest fetched image beats the embedded avatar
        assert profile.profile_pic_url == "https://media.licdn.com/800.jpg"
        assert len(profile.activities) == settings.PROFILE_SECONDARY_ITEM_LIMIT
        assert profile.comments[0].text == "Great point on hiring."
        assert profile.reactions[0].reaction_type == "celebrate"
        assert profile.recommendations_received[0].recommender_name == "John Roe"
        assert profile.recommendations == ["Jane is a superb leader."]
        assert profile.email == "jane@example.com"

        assert sorted(paths(seen)) == sorted(["/api/v1/user/profile", *SECONDARY_RESPONSES])

    def test_primary_lookup_sends_handle_and_rapidapi_headers(self, settings):
        transport, seen = make_transport()
        ProfileFetcher(settings, transport=transport).fetch("jane-doe")

        primary = seen[0]
        assert primary.url.params["username"] == "jane-doe"
        assert primary.headers["x-rapidapi-key"] == "test-rapidapi-key"
        assert primary.headers["x-rapidapi-host"] == settings.RAPIDAPI_HOST

        secondary = [r for r in seen if r.url.path != "/api/v1/user/profile"]
        assert all(r.url.params["urn"] == JANE_URN for r in secondary)
        contact = [r for r in secondary if r.url.path.endswith("contact-info")][0]
        assert "page" not in contact.url.params

    def test_secondary_failures_degrade_to_empty(self, settings):
        transport, _ = make_transport(
            {
                "/api/v1/user/posts": lambda r: httpx.Response(500, text="boom"),
                "/api/v1/user/images": lambda r: httpx.Response(200, text="<html>not json</html>"),
                "/api/v1/user/comments": lambda r: httpx.Response(429, json={"message": "slow down"}),
            }
        )
        profile = ProfileFetcher(settings, transport=transport).fetch("jane-doe")

        assert profile.activities == []
        assert profile.comments == []
        assert profile.profile_pic_url == "https://media.licdn.com/embedded-small.jpg"
        # Unaffected lookups still land
        assert profile.reactions[0].reaction_type == "celebrate"
        assert profile.email == "jane@example.com"

    def test_secondary_transport_error_does_not_fail_fetch(self, settings):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport, _ = make_transport({"/api/v1/user/recommendations": refuse})
        profile = ProfileFetcher(settings, transport=transport).fetch("jane-doe")

        assert profile.recommendations_received == []
        assert len(profile.activities) == settings.PROFILE_SECONDARY_ITEM_LIMIT

    def test_secondary_lookups_run_concurrently(self, settings):
        delay = 0.3
        transport = SlowSecondaryTransport(delay)

        started = time.perf_counter()
        profile = ProfileFetcher(settings, transport=transport).fetch("jane-doe")
        elapsed = time.perf_counter() - started

        assert transport.peak == len(SECONDARY_RESPONSES)
        # Sequential lookups would take delay * 6
        assert elapsed < delay * len(SECONDARY_RESPONSES) / 2
        # All six are joined before normalisation
        assert profile.email == "jane@example.com"
        assert len(profile.activities) == settings.PROFILE_SECONDARY_ITEM_LIMIT

    def test_no_internal_id_skips_secondary_lookups(self, settings):
        body = {"success": True, "data": {k: v for k, v in FRESH_PROFILE_RESPONSE["data"].items() if k != "urn"}}
        transport, seen = make_transport(
            {"/api/v1/user/profile": lambda r: httpx.Response(200, json=body)}
        )
        profile = ProfileFetcher(settings, transport=transport).fetch("jane-doe")

        assert paths(seen) == ["/api/v1/user/profile"]
        assert profile.full_name == "Jane Doe"


class TestPrimaryErrors:
    @pytest.mark.parametrize(
        "status, error_type, kind",
        [
            (404, ProfileNotFound, "not_found"),
            (429, UpstreamError, "rate_limited"),
            (401, UpstreamError, "auth_failed"),
            (403, UpstreamError, "auth_failed"),
            (500, UpstreamError, "other"),
            (503, UpstreamError, "other"),
        ],
    )
    def test_status_maps_to_error_kind(self, settings, status, error_type, kind):
        transport, seen = make_transport(
            {"/api/v1/user/profile": lambda r: httpx.Response(status, json={"message": "x"})}
        )
        with pytest.raises(error_type) as exc:
            ProfileFetcher(settings, transport=transport).fetch("jane-doe")

        assert exc.value.kind == kind
        assert exc.value.upstream_status == status
        # No secondary lookups after a failed primary
        assert paths(seen) == ["/api/v1/user/profile"]

    def test_rate_limit_is_distinguishable(self, settings):
        transport, _ = make_transport(
            {"/api/v1/user/profile": lambda r: httpx.Response(429, json={})}
        )
        with pytest.raises(UpstreamError) as exc:
            ProfileFetcher(settings, transport=transport).fetch("jane-doe")
        assert exc.value.code == "RATE_LIMIT_EXCEEDED"
        assert exc.value.status_code == 429

    def test_timeout_maps_to_upstream_timeout(self, settings):
        def slow(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        transport, _ = make_transport({"/api/v1/user/profile": slow})
        with pytest.raises(UpstreamTimeout) as exc:
            ProfileFetcher(settings, transport=transport).fetch("jane-doe")
        assert exc.value.kind == "timeout"

    def test_unsuccessful_envelope_is_upstream_error(self, settings):
        transport, _ = make_transport(
            {"/api/v1/user/profile": lambda r: httpx.Response(200, json={"success": False, "message": "private"})}
        )
        with pytest.raises(UpstreamError) as exc:
            ProfileFetcher(settings, transport=transport).fetch("jane-doe")
        assert exc.value.kind == "other"

    def test_invalid_handle_makes_no_calls(self, settings):
        transport, seen = make_transport()
        with pytest.raises(InvalidHandle):
            ProfileFetcher(settings, transport=transport).fetch("https://www.linkedin.com/company/acme")
        assert seen == []

    def test_missing_api_key_is_configuration_error(self, settings):
        transport, seen = make_transport()
        no_key = settings.model_copy(update={"RAPIDAPI_KEY": None})
        with pytest.raises(ConfigurationError):
            ProfileFetcher(no_key, transport=transport).fetch("jane-doe")
        assert seen == []


class TestProxycurlFetch:
    def test_single_lookup_by_canonical_url(self, settings):
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=PROXYCURL_RESPONSE)

        proxycurl = settings.model_copy(update={"PROFILE_PROVIDER": "proxycurl"})
        fetcher = ProfileFetcher(proxycurl, transport=httpx.MockTransport(handler))
        profile = fetcher.fetch("linkedin.com/in/jane-doe/")

        assert isinstance(fetcher.connector, ProxycurlConnector)
        assert len(seen) == 1
        assert seen[0].url.params["url"] == "https://www.linkedin.com/in/jane-doe"
        assert seen[0].headers["authorization"] == "Bearer test-proxycurl-key"
        assert profile.full_name == "Jane Doe"

    def test_not_found(self, settings):
        proxycurl = settings.model_copy(update={"PROFILE_PROVIDER": "proxycurl"})
        transport = httpx.MockTransport(lambda r: httpx.Response(404, json={}))
        with pytest.raises(ProfileNotFound):
            ProfileFetcher(proxycurl, transport=transport).fetch("jane-doe")


class TestConnectorRegistry:
    def test_default_provider(self, settings):
        assert isinstance(get_profile_connector(settings), FreshLinkedInConnector)

    def test_unknown_provider(self, settings):
        with pytest.raises(ConfigurationError):
            get_profile_connector(settings.model_copy(update={"PROFILE_PROVIDER": "nope"}))
