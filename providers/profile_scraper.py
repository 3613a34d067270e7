"""
Profile Scraper
----------------
Reads follower / following / post counts from public profile pages, used
to cross-validate the social data provider.

Lookup order per handle:
  1. TTL cache keyed by (platform, normalised username)
  2. Plain HTTP GET + BeautifulSoup (og:description, embedded JSON state)
  3. Shared headless browser render, parsed the same way

`scrape()` returns None when every method fails; None never means zero.
"""

import re
import json
import logging
from typing import Any, Dict, Optional, Protocol, Tuple

import httpx
from bs4 import BeautifulSoup

from config.settings import settings
from models.schemas import ProfileStats
from providers.browser import BrowserSession

logger = logging.getLogger(__name__)


PROFILE_URLS: Dict[str, str] = {
    "instagram": "https://www.instagram.com/{username}/",
    "tiktok": "https://www.tiktok.com/@{username}",
    "youtube": "https://www.youtube.com/@{username}",
}

_MULTIPLIERS = {"k": 1_000, "rb": 1_000, "m": 1_000_000, "jt": 1_000_000, "b": 1_000_000_000}
_METRIC_RE = re.compile(r"^([\d.]+)\s*(k|m|b|rb|jt)?$", re.IGNORECASE)
_DOTTED_THOUSANDS_RE = re.compile(r"^\d{1,3}(?:\.\d{3})+$")
_OG_PATTERNS = {
    "followers": re.compile(r"([\d,.]+\s*[KMB]?)\s+Followers", re.IGNORECASE),
    "following": re.compile(r"([\d,.]+\s*[KMB]?)\s+Following", re.IGNORECASE),
    "posts": re.compile(r"([\d,.]+\s*[KMB]?)\s+Posts", re.IGNORECASE),
}


class ProfileCacheBackend(Protocol):
    def get(self, platform: str, username: str) -> Optional[ProfileStats]: ...

    def put(self, stats: ProfileStats) -> None: ...


# ─── Parsing ─────────────────────────────────────────────────────────────────


def normalize_username(handle: str) -> str:
    return "".join((handle or "").split()).lstrip("@").lower()


def parse_metric_string(value: str) -> int:
    """
    '1.2M' -> 1200000, '234K' -> 234000, '1,234' -> 1234, '1.234' -> 1234
    (dotted thousands without a suffix); unparseable -> 0.
    """
    if not value:
        return 0
    match = _METRIC_RE.match(value.replace(",", "").strip())
    if not match:
        return 0
    digits = match.group(1)
    suffix = (match.group(2) or "").lower()
    if not suffix and _DOTTED_THOUSANDS_RE.match(digits):
        digits = digits.replace(".", "")
    try:
        number = float(digits)
    except ValueError:
        return 0
    return round(number * _MULTIPLIERS.get(suffix, 1))


def parse_og_description(html: str) -> Optional[Tuple[int, int, int]]:
    """(followers, following, posts) from the og:description meta tag."""
    soup = BeautifulSoup(html, "html.parser")
    tag = soup.find("meta", attrs={"property": "og:description"})
    content = tag.get("content", "") if tag else ""
    followers = _OG_PATTERNS["followers"].search(content)
    if not followers:
        return None
    following = _OG_PATTERNS["following"].search(content)
    posts = _OG_PATTERNS["posts"].search(content)
    return (
        parse_metric_string(followers.group(1)),
        parse_metric_string(following.group(1)) if following else 0,
        parse_metric_string(posts.group(1)) if posts else 0,
    )


def _dig(data: Any, *keys) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def parse_tiktok_state(html: str) -> Optional[Tuple[int, int, int]]:
    """(followers, following, videos) from TikTok's embedded page state."""
    soup = BeautifulSoup(html, "html.parser")
    script = soup.find("script", id="__UNIVERSAL_DATA_FOR_REHYDRATION__")
    if script and script.string:
        try:
            data = json.loads(script.string)
        except ValueError:
            data = None
        info = _dig(data, "__DEFAULT_SCOPE__", "webapp.user-detail", "userInfo") or {}
        stats = info.get("stats") or info.get("user") or {}
        if stats.get("followerCount") is not None:
            return (
                int(stats.get("followerCount") or 0),
                int(stats.get("followingCount") or 0),
                int(stats.get("videoCount") or 0),
            )

    script = soup.find("script", id="SIGI_STATE")
    if script and script.string:
        try:
            data = json.loads(script.string)
        except ValueError:
            return None
        stats_map = _dig(data, "UserModule", "stats") or _dig(data, "UserModule", "users") or {}
        for stats in stats_map.values():
            if isinstance(stats, dict) and stats.get("followerCount") is not None:
                return (
                    int(stats.get("followerCount") or 0),
                    int(stats.get("followingCount") or 0),
                    int(stats.get("videoCount") or 0),
                )
    return None


def parse_youtube_subscribers(html: str) -> Optional[int]:
    soup = BeautifulSoup(html, "html.parser")
    el = soup.find(id="subscriber-count")
    if el is None:
        return None
    text = el.get_text(" ", strip=True).split(" ")[0]
    return parse_metric_string(text) or None


def parse_profile(platform: str, username: str, html: str, source: str) -> Optional[ProfileStats]:
    if platform == "youtube":
        subscribers = parse_youtube_subscribers(html)
        if subscribers is None:
            return None
        return ProfileStats(platform=platform, username=username, followers=subscribers, source=source)

    counts = parse_tiktok_state(html) if platform == "tiktok" else None
    counts = counts or parse_og_description(html)
    if counts is None:
        return None
    followers, following, posts = counts
    return ProfileStats(
        platform=platform, username=username,
        followers=followers, following=following, posts=posts, source=source,
    )


# ─── Scraper ─────────────────────────────────────────────────────────────────


class ProfileScraper:
    """Profile counts with cache, HTTP and browser fallbacks."""

    def __init__(
        self,
        cache: Optional[ProfileCacheBackend] = None,
        browser: Optional[BrowserSession] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 15.0,
    ):
        self.cache = cache
        self.browser = browser
        self._transport = transport
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={
                    "User-Agent": settings.USER_AGENT,
                    "Accept-Language": "en-US,en;q=0.9",
                },
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _scrape_http(self, platform: str, username: str) -> Optional[ProfileStats]:
        url = PROFILE_URLS[platform].format(username=username)
        client = await self._get_client()
        try:
            resp = await client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"  HTTP profile fetch failed for {platform}/{username}: {e}")
            return None
        return parse_profile(platform, username, resp.text, source="http")

    async def _scrape_browser(self, platform: str, username: str) -> Optional[ProfileStats]:
        url = PROFILE_URLS[platform].format(username=username)
        try:
            html = await self.browser.render(url)
        except Exception as e:
            logger.warning(f"  Browser profile fetch failed for {platform}/{username}: {e}")
            return None
        return parse_profile(platform, username, html, source="browser")

    async def scrape(self, platform: str, handle: str) -> Optional[ProfileStats]:
        if platform not in PROFILE_URLS or not handle:
            return None
        username = normalize_username(handle)

        if self.cache is not None:
            cached = self.cache.get(platform, username)
            if cached is not None:
                logger.info(f"  💾 Cache hit for {platform}/{username}: {cached.followers:,} followers")
                return cached

        stats = await self._scrape_http(platform, username)
        if stats is None and self.browser is not None:
            stats = await self._scrape_browser(platform, username)

        if stats is None:
            logger.warning(f"  ⚠️ All profile scrape methods failed for {platform}/{username}")
            return None

        if self.cache is not None:
            self.cache.put(stats)
        return stats
