"""
Provider client tests: social data API, profile scraper, text generation, mocks.
External services are replaced with httpx.MockTransport.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
import json
import httpx
import pytest

from models.schemas import BrandInput, ProfileStats
from providers import social_api
from providers.browser import BrowserSession
from providers.mock import MockProfileScraper, MockSocialDataClient
from providers.profile_scraper import (
    ProfileScraper, normalize_username, parse_metric_string, parse_og_description,
    parse_tiktok_state, parse_youtube_subscribers,
)
from providers.social_api import SocialDataClient, build_boolean_query
from providers.text_generation import TextGenerationClient


INSTAGRAM_HTML = (
    '<html><head><meta property="og:description" '
    'content="1.2M Followers, 300 Following, 1,024 Posts - See Instagram photos">'
    "</head></html>"
)

TIKTOK_HTML = (
    '<html><script id="__UNIVERSAL_DATA_FOR_REHYDRATION__" type="application/json">'
    + json.dumps({"__DEFAULT_SCOPE__": {"webapp.user-detail": {"userInfo": {
        "stats": {"followerCount": 5000, "followingCount": 10, "videoCount": 42}}}}})
    + "</script></html>"
)


class DictCache:
    def __init__(self):
        self.entries = {}

    def get(self, platform, username):
        return self.entries.get((platform, username))

    def put(self, stats):
        self.entries[(stats.platform, stats.username)] = stats


# ─── Social data API ─────────────────────────────────────────────────────────

class TestBooleanQuery:
    def test_multi_word_brand_with_handle(self):
        assert build_boolean_query("Aqua Segar", "@aquasegar") == (
            '"Aqua Segar" OR "AquaSegar" OR #aquasegar OR @aquasegar OR "aquasegar"'
        )

    def test_single_word_without_handle(self):
        assert build_boolean_query("Kopiko") == '"Kopiko" OR #kopiko'


class TestSocialDataClient:
    def test_platform_response_keys(self):
        seen = []

        def handler(request):
            seen.append((request.url.path, request.url.params["q"]))
            if request.url.path == "/igr":
                return httpx.Response(200, json={"igr": [{"id": 1}, {"id": 2}]})
            return httpx.Response(200, json={"data": [{"id": 3}]})

        async def go():
            client = SocialDataClient("http://api.test", transport=httpx.MockTransport(handler))
            try:
                return await client.fetch_many(["instagram", "twitter"], "aqua")
            finally:
                await client.close()

        results = asyncio.run(go())
        assert [len(r.items) for r in results] == [2, 1]
        assert all(r.ok for r in results)
        assert sorted(seen) == [("/igr", "aqua"), ("/twitter", "aqua")]

    def test_errors_are_returned_not_raised(self):
        def handler(request):
            return httpx.Response(503)

        async def go():
            client = SocialDataClient(
                "http://api.test", max_retries=1, transport=httpx.MockTransport(handler)
            )
            try:
                return await client.fetch("tiktok", "aqua")
            finally:
                await client.close()

        result = asyncio.run(go())
        assert not result.ok
        assert result.items == []
        assert "after 1 attempts" in result.error

    def test_retries_then_succeeds(self, monkeypatch):
        calls = {"n": 0}

        async def no_sleep(_):
            return None

        def handler(request):
            calls["n"] += 1
            if calls["n"] < 3:
                return httpx.Response(500)
            return httpx.Response(200, json={"tiktok": [{"id": "x"}]})

        monkeypatch.setattr(social_api.asyncio, "sleep", no_sleep)

        async def go():
            client = SocialDataClient(
                "http://api.test", max_retries=3, transport=httpx.MockTransport(handler)
            )
            try:
                return await client.fetch("tiktok", "aqua")
            finally:
                await client.close()

        result = asyncio.run(go())
        assert result.ok
        assert calls["n"] == 3

    def test_unsupported_platform(self):
        result = asyncio.run(SocialDataClient("http://api.test").fetch("myspace", "aqua"))
        assert "Unsupported" in result.error

    def test_malformed_payload_yields_no_items(self):
        def handler(request):
            return httpx.Response(200, json={"igr": "nope"})

        client = SocialDataClient("http://api.test", transport=httpx.MockTransport(handler))
        result = asyncio.run(client.fetch("instagram", "aqua"))
        assert result.ok
        assert result.items == []


# ─── Profile scraper ─────────────────────────────────────────────────────────

class TestProfileParsing:
    @pytest.mark.parametrize("raw,expected", [
        ("1.2M", 1_200_000), ("234K", 234_000), ("1,234", 1234), ("3jt", 3_000_000),
        ("15rb", 15_000), ("2B", 2_000_000_000), ("", 0), ("abc", 0),
        ("1.234", 1234), ("12.345.678", 12_345_678), ("1.5", 2), ("1.234K", 1234),
    ])
    def test_metric_strings(self, raw, expected):
        assert parse_metric_string(raw) == expected

    def test_og_description(self):
        assert parse_og_description(INSTAGRAM_HTML) == (1_200_000, 300, 1024)
        assert parse_og_description("<html></html>") is None

    def test_tiktok_state(self):
        assert parse_tiktok_state(TIKTOK_HTML) == (5000, 10, 42)

    def test_tiktok_sigi_state(self):
        html = (
            '<script id="SIGI_STATE">'
            + json.dumps({"UserModule": {"stats": {"brand": {"followerCount": 7, "videoCount": 3}}}})
            + "</script>"
        )
        assert parse_tiktok_state(html) == (7, 0, 3)

    def test_youtube_subscribers(self):
        html = '<span id="subscriber-count">1.5M subscribers</span>'
        assert parse_youtube_subscribers(html) == 1_500_000

    def test_normalize_username(self):
        assert normalize_username(" @Aqua Segar ") == "aquasegar"


class TestProfileScraper:
    def test_http_then_cache(self):
        calls = []

        def handler(request):
            calls.append(str(request.url))
            return httpx.Response(200, text=INSTAGRAM_HTML)

        cache = DictCache()
        scraper = ProfileScraper(cache=cache, transport=httpx.MockTransport(handler))

        async def go():
            try:
                first = await scraper.scrape("instagram", "@AquaSegar")
                second = await scraper.scrape("instagram", "aquasegar")
                return first, second
            finally:
                await scraper.close()

        first, second = asyncio.run(go())
        assert first.followers == 1_200_000
        assert first.posts == 1024
        assert first.source == "http"
        assert second is first
        assert calls == ["https://www.instagram.com/aquasegar/"]

    def test_browser_fallback(self):
        class FakeBrowser:
            async def render(self, url):
                return TIKTOK_HTML

        scraper = ProfileScraper(
            browser=FakeBrowser(),
            transport=httpx.MockTransport(lambda request: httpx.Response(403)),
        )
        stats = asyncio.run(scraper.scrape("tiktok", "aqua"))
        assert stats.followers == 5000
        assert stats.source == "browser"

    def test_total_failure_is_none(self):
        scraper = ProfileScraper(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
        assert asyncio.run(scraper.scrape("instagram", "ghost")) is None

    def test_unsupported_platform_skips_io(self):
        def handler(request):
            raise AssertionError("no request expected")

        scraper = ProfileScraper(transport=httpx.MockTransport(handler))
        assert asyncio.run(scraper.scrape("twitter", "aqua")) is None


class TestBrowserSession:
    def test_close_without_start(self):
        session = BrowserSession()
        asyncio.run(session.close())
        assert not session.started


# ─── Text generation ─────────────────────────────────────────────────────────

class TestTextGenerationClient:
    def _client(self, handler):
        return TextGenerationClient(
            url="http://llm.test/api/generate", model="test-model",
            transport=httpx.MockTransport(handler),
        )

    def test_success(self):
        payloads = []

        def handler(request):
            payloads.append(json.loads(request.content))
            return httpx.Response(200, json={"response": "Insight text"})

        result = asyncio.run(self._client(handler).generate("prompt", temperature=0.4))
        assert result.success
        assert result.text == "Insight text"
        assert payloads[0] == {
            "model": "test-model", "prompt": "prompt", "stream": False,
            "options": {"temperature": 0.4},
        }

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        result = asyncio.run(self._client(handler).generate("prompt"))
        assert not result.success
        assert result.timed_out
        assert "timed out" in result.error

    def test_http_error_and_empty_response(self):
        failed = asyncio.run(self._client(lambda r: httpx.Response(500)).generate("p"))
        assert not failed.success
        assert "failed" in failed.error

        empty = asyncio.run(self._client(lambda r: httpx.Response(200, json={})).generate("p"))
        assert not empty.success

    def test_not_configured(self):
        client = TextGenerationClient(url="")
        assert not client.enabled
        assert not asyncio.run(client.generate("p")).success


# ─── Mocks ───────────────────────────────────────────────────────────────────

class TestMockProviders:
    @pytest.fixture
    def brands(self):
        return [BrandInput(name="Aqua", handles={"instagram": "aquasegar"})]

    def test_mock_social_is_deterministic(self, brands):
        a = asyncio.run(MockSocialDataClient(brands).fetch("instagram", "aquasegar"))
        b = asyncio.run(MockSocialDataClient(brands).fetch("instagram", "aquasegar"))
        assert a.items == b.items
        assert a.items
        assert all(item["username"] == "aquasegar" for item in a.items)

    def test_mock_social_failing_platform(self, brands):
        client = MockSocialDataClient(brands, failing_platforms={"tiktok"})
        assert not asyncio.run(client.fetch("tiktok", "aqua")).ok

    def test_mock_scraper(self):
        scraper = MockProfileScraper(failing={"ghost"})
        stats = asyncio.run(scraper.scrape("instagram", "@Aqua"))
        assert isinstance(stats, ProfileStats)
        assert stats.username == "aqua"
        assert asyncio.run(scraper.scrape("twitter", "aqua")) is None
        assert asyncio.run(scraper.scrape("instagram", "ghost")) is None
