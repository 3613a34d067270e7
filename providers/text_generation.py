"""
Text Generation Client
-----------------------
Async client for an Ollama-compatible `/api/generate` endpoint.

  POST {url}  {"model", "prompt", "stream": false, "options": {"temperature"}}
  -> {"response": "..."}

`generate()` never raises: failures come back as GenerationResult with
success=False, and timeouts are flagged separately.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from config.settings import settings

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    success: bool
    text: str = ""
    error: Optional[str] = None
    timed_out: bool = False

    @classmethod
    def failure(cls, error: str, timed_out: bool = False) -> "GenerationResult":
        return cls(success=False, error=error, timed_out=timed_out)


class TextGenerationClient:
    """Client for the text-generation service."""

    def __init__(
        self,
        url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url if url is not None else settings.TEXT_GEN_URL
        self.model = model or settings.TEXT_GEN_MODEL
        self.timeout = timeout if timeout is not None else settings.TEXT_GEN_TIMEOUT
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def generate(self, prompt: str, temperature: float = 0.7) -> GenerationResult:
        if not self.enabled:
            return GenerationResult.failure("Text generation service is not configured")

        client = await self._get_client()
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": temperature},
        }
        logger.info(f"🤖 Calling text generation: {self.url} (model={self.model})")
        try:
            resp = await client.post(self.url, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException:
            logger.error(f"❌ Text generation timed out after {self.timeout:.0f}s")
            return GenerationResult.failure("Text generation timed out", timed_out=True)
        except httpx.HTTPStatusError as e:
            logger.error(f"❌ Text generation returned status {e.response.status_code}")
            return GenerationResult.failure(f"Text generation failed with status {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ Text generation request failed: {e}")
            return GenerationResult.failure(f"Text generation failed: {e}")

        text = data.get("response") if isinstance(data, dict) else None
        if not text:
            logger.error("❌ Empty response from text generation")
            return GenerationResult.failure("Text generation returned an empty response")
        return GenerationResult(success=True, text=text)
