"""
Mock Providers
---------------
Deterministic offline stand-ins for the social data API, the profile
scraper and the text-generation service. Used by `run.py demo` and the
test suite.

Every response is seeded from the request itself (platform + query), so
the same run always produces the same data.
"""

import zlib
import random
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from models.schemas import BrandInput, ProfileStats
from providers.social_api import ENDPOINTS, FetchResult
from providers.text_generation import GenerationResult

logger = logging.getLogger(__name__)


def _seed(*parts: str) -> int:
    return zlib.crc32("|".join(parts).encode("utf-8"))


def _clean(value: str) -> str:
    return "".join((value or "").lower().split()).lstrip("@")


class MockSocialDataClient:
    """
    Generates synthetic provider records for a fixed set of brands.

    A query equal to one of the brands' handles returns that account's own
    posts; a quoted boolean query returns third-party mentions; anything
    else is treated as a category keyword search.
    """

    OWN_TEMPLATES = [
        "Promo spesial {brand} minggu ini! Diskon untuk semua pembelian #promo #{tag}",
        "Tetap segar dan sehat bersama {brand} setiap hari #hidrasi #{tag}",
        "Giveaway {brand}: menangkan hadiah menarik, ikuti dan bagikan! #giveaway #{tag}",
        "Resep minuman segar ala {brand} untuk keluarga #resep #{tag}",
        "Olahraga pagi lebih semangat dengan {brand} #olahraga #sehat",
        "Kolaborasi {brand} bersama komunitas lari Jakarta #event #{tag}",
    ]

    MENTION_TEMPLATES = [
        "I love {brand}, honestly the best drink after a workout",
        "{brand} is great, always in my bag",
        "Tried {brand} today, rasanya bagus dan mantap",
        "{brand} packaging is bad lately, kecewa",
        "Worst delivery experience with {brand} this week",
        "Picked up {brand} at the minimarket on the way home",
        "Ada yang tahu harga {brand} sekarang?",
    ]

    UNIVERSE_TEMPLATES = [
        "Lagi cari {keyword} yang enak, rekomendasi dong",
        "Jangan lupa {keyword} hari ini, cuaca panas banget",
        "{keyword} favorit aku tetap {brand}",
        "Bandingin {brand} sama {other} buat {keyword}, mana yang lebih bagus?",
        "Stok {keyword} di rumah habis, beli {brand} aja",
        "Thread soal {keyword}: kenapa penting untuk kesehatan",
    ]

    FANS = ["sarahfit", "budi_runs", "dailyreview", "kulinerjkt", "momlife.id",
            "techbro", "anakkos", "healthyhabits", "jktfoodie", "ririn.story"]

    def __init__(
        self,
        brands: Iterable[BrandInput] = (),
        failing_platforms: Optional[Set[str]] = None,
        now: Optional[datetime] = None,
    ):
        self.brands = list(brands)
        self.failing_platforms = set(failing_platforms or ())
        self.now = now or datetime(2024, 6, 1, tzinfo=timezone.utc)
        self.calls: List[Dict[str, str]] = []
        self._by_handle: Dict[str, BrandInput] = {}
        for brand in self.brands:
            for handle in brand.handles.values():
                if handle and handle.strip():
                    self._by_handle[_clean(handle)] = brand

    async def close(self):
        pass

    async def fetch(self, platform: str, query: str) -> FetchResult:
        self.calls.append({"platform": platform, "query": query})
        if platform not in ENDPOINTS:
            return FetchResult(platform=platform, query=query, error=f"Unsupported platform: {platform}")
        if platform in self.failing_platforms:
            return FetchResult(platform=platform, query=query, error=f"{platform} unavailable (mock)")

        rng = random.Random(_seed(platform, query))
        owner = self._by_handle.get(_clean(query))
        if owner is not None:
            items = self._own_posts(rng, platform, owner, _clean(query))
        elif query.startswith('"'):
            items = self._mentions(rng, platform, query)
        else:
            items = self._universe(rng, platform, query)
        return FetchResult(platform=platform, query=query, items=items)

    async def fetch_many(self, platforms: List[str], query: str) -> List[FetchResult]:
        return [await self.fetch(p, query) for p in platforms]

    # ─── Generators ──────────────────────────────────────────────────────────

    def _timestamp(self, rng: random.Random) -> datetime:
        return self.now - timedelta(
            days=rng.randint(0, 29), hours=rng.randint(0, 23), minutes=rng.randint(0, 59)
        )

    def _record(
        self, rng: random.Random, platform: str, idx: int, query: str,
        text: str, author: str, followers: int,
    ) -> Dict[str, Any]:
        """Shape one record the way the given platform's endpoint returns it."""
        post_id = f"{platform}-{_seed(platform, query) % 100000}-{idx}"
        published = self._timestamp(rng).isoformat().replace("+00:00", "Z")
        likes = rng.randint(20, 4000)
        comments = rng.randint(0, 300)
        shares = rng.randint(0, 150)

        if platform == "instagram":
            return {
                "id": post_id, "caption": text, "username": author,
                "like_count": likes, "comment_count": comments, "timestamp": published,
                "media_type": rng.choice(["IMAGE", "VIDEO", "CAROUSEL_ALBUM"]),
                "permalink": f"https://www.instagram.com/p/{post_id}/",
                "followers": followers,
            }
        if platform == "tiktok":
            return {
                "id": post_id, "description": text, "author": author,
                "likes": likes, "comments": comments, "shares": shares,
                "created_at": published, "type": "video",
                "url": f"https://www.tiktok.com/@{author}/video/{post_id}",
                "author_followers": followers,
            }
        if platform == "twitter":
            return {
                "id": post_id, "text": text, "username": author,
                "favorite_count": likes, "reply_count": comments, "retweet_count": shares,
                "created_at": published,
            }
        if platform == "facebook":
            return {
                "post_id": post_id, "message": text, "author": author,
                "likes": likes, "comments": comments, "shares": shares,
                "created_at": published, "type": rng.choice(["photo", "video", "status"]),
            }
        return {
            "id": post_id, "title": text, "author": author,
            "published_at": published, "url": f"https://news.example.com/{post_id}",
        }

    def _own_posts(self, rng: random.Random, platform: str, brand: BrandInput, handle: str):
        tag = _clean(brand.name)
        return [
            self._record(
                rng, platform, i, handle,
                rng.choice(self.OWN_TEMPLATES).format(brand=brand.name, tag=tag),
                handle, 0,
            )
            for i in range(rng.randint(12, 30))
        ]

    def _mentions(self, rng: random.Random, platform: str, query: str):
        name = query.split('"')[1]
        brand = next((b for b in self.brands if b.name == name), None)
        own_handle = _clean(brand.primary_handle) if brand and brand.primary_handle else None
        items = []
        for i in range(rng.randint(5, 15)):
            # occasionally the brand's own account shows up in its mention search
            author = own_handle if own_handle and rng.random() < 0.15 else rng.choice(self.FANS)
            items.append(self._record(
                rng, platform, i, query,
                rng.choice(self.MENTION_TEMPLATES).format(brand=name),
                author, rng.randint(500, 80000),
            ))
        return items

    def _universe(self, rng: random.Random, platform: str, keyword: str):
        names = [b.name for b in self.brands] or ["Brand"]
        items = []
        for i in range(rng.randint(3, 10)):
            brand, other = rng.choice(names), rng.choice(names)
            text = rng.choice(self.UNIVERSE_TEMPLATES).format(keyword=keyword, brand=brand, other=other)
            items.append(self._record(rng, platform, i, keyword, text, rng.choice(self.FANS), 0))
        return items


class MockProfileScraper:
    """Profile counts derived from the handle; twitter/facebook are unsupported."""

    SUPPORTED = ("instagram", "tiktok", "youtube")

    def __init__(self, failing: Optional[Set[str]] = None):
        self.failing = set(failing or ())
        self.calls: List[Dict[str, str]] = []

    async def close(self):
        pass

    async def scrape(self, platform: str, handle: str) -> Optional[ProfileStats]:
        if platform not in self.SUPPORTED or not handle:
            return None
        username = _clean(handle)
        self.calls.append({"platform": platform, "username": username})
        if username in self.failing:
            return None
        rng = random.Random(_seed("profile", platform, username))
        return ProfileStats(
            platform=platform,
            username=username,
            followers=rng.randint(50_000, 2_000_000),
            following=rng.randint(10, 800),
            posts=rng.randint(200, 3000),
            source="http",
        )


class MockTextGenerationClient:
    """Canned insight text; set `fail=True` to simulate an unreachable service."""

    RESPONSE = (
        "## Key Findings:\n"
        "- **{focus}** leads on engagement rate across platforms\n"
        "- Competitors post more often on TikTok\n\n"
        "## Recommendations:\n"
        "1. Increase short-form video output\n"
        "2. Reuse top-performing hashtags in campaigns"
    )

    def __init__(self, fail: bool = False, enabled: bool = True, focus: str = "the focus brand"):
        self.fail = fail
        self._enabled = enabled
        self.focus = focus
        self.prompts: List[str] = []

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def close(self):
        pass

    async def generate(self, prompt: str, temperature: float = 0.7) -> GenerationResult:
        self.prompts.append(prompt)
        if self.fail:
            return GenerationResult.failure("Text generation timed out", timed_out=True)
        return GenerationResult(success=True, text=self.RESPONSE.format(focus=self.focus))
