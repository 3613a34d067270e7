"""
Social Data Provider Client
----------------------------
Async client for the social-listening API that returns raw post and
mention records per platform.

  GET {base}/igr?q=...       -> {"igr": [...]}
  GET {base}/tiktok?q=...    -> {"tiktok": [...]}
  GET {base}/twitter?q=...   -> {"data": [...]}
  GET {base}/facebook?q=...  -> {"data": [...]}
  GET {base}/news?q=...      -> {"data": [...]}

Every fetch returns a FetchResult; transport errors are retried with
exponential backoff and then reported in `FetchResult.error`, never raised.
"""

import asyncio
import random
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import httpx

from config.settings import settings

logger = logging.getLogger(__name__)


# platform -> (path, response key)
ENDPOINTS: Dict[str, Tuple[str, str]] = {
    "instagram": ("/igr", "igr"),
    "tiktok": ("/tiktok", "tiktok"),
    "twitter": ("/twitter", "data"),
    "facebook": ("/facebook", "data"),
    "news": ("/news", "data"),
}


@dataclass
class FetchResult:
    """Items for one platform, or the error that prevented fetching them."""
    platform: str
    query: str
    items: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {"platform": self.platform, "query": self.query, "data": self.items, "error": self.error}


def build_boolean_query(brand_name: str, handle: Optional[str] = None) -> str:
    """
    Expanded mention search:
      "Brand Name" OR "BrandName" OR #brandname OR @handle OR "handle"
    """
    terms = [f'"{brand_name}"']
    no_spaces = "".join(brand_name.split())
    if no_spaces != brand_name:
        terms.append(f'"{no_spaces}"')
    terms.append("#" + no_spaces.lower())
    if handle:
        handle = handle.lstrip("@")
        terms.append(f"@{handle}")
        terms.append(f'"{handle}"')
    return " OR ".join(terms)


class SocialDataClient:
    """Async HTTP client for the social data provider."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.SOCIAL_API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else settings.MAX_RETRIES
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"User-Agent": settings.USER_AGENT},
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str, params: Dict[str, Any]) -> Any:
        """HTTP GET with retry + exponential backoff."""
        client = await self._get_client()
        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                resp = await client.get(path, params=params)
                resp.raise_for_status()
                return resp.json()
            except (httpx.HTTPError, ValueError) as e:
                last_error = e
                if attempt + 1 < self.max_retries:
                    wait = (2 ** attempt) + random.uniform(0, 1)
                    logger.warning(
                        f"Attempt {attempt+1} failed for {path}: {e}. Retrying in {wait:.1f}s"
                    )
                    await asyncio.sleep(wait)
        raise RuntimeError(f"Failed to fetch {path} after {self.max_retries} attempts: {last_error}")

    async def fetch(self, platform: str, query: str) -> FetchResult:
        if platform not in ENDPOINTS:
            return FetchResult(platform=platform, query=query, error=f"Unsupported platform: {platform}")
        path, key = ENDPOINTS[platform]
        try:
            payload = await self._get(path, {"q": query})
        except RuntimeError as e:
            logger.error(f"  ❌ {platform} fetch failed for {query!r}: {e}")
            return FetchResult(platform=platform, query=query, error=str(e))

        items = payload.get(key) if isinstance(payload, dict) else None
        if not isinstance(items, list):
            items = []
        return FetchResult(platform=platform, query=query, items=items)

    async def fetch_many(self, platforms: List[str], query: str) -> List[FetchResult]:
        """Fetch the same query from several platforms concurrently."""
        return list(await asyncio.gather(*(self.fetch(p, query) for p in platforms)))
