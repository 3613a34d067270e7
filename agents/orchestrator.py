"""
Comparative Analysis Orchestrator
----------------------------------
Runs one analysis session end to end:

  load session ─► per brand (bounded concurrency, order preserved):
                    per platform: fetch posts ∥ scrape profile
                                  ─► validate ─► extract snapshot
               ─► keyword clustering   (per brand+platform)
               ─► voice analysis       (per brand, 4-platform mention fan-out)
               ─► share of voice       (once, across brands)
               ─► brand equity tables  (once, across brands)
               ─► insights             (optional text generation)
               ─► persist ─► completed

Only a missing session / focus brand or a failed persistence write abort
the run (session marked `failed`, error re-raised). Every other failure
degrades the affected slice and the run carries on.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from agents.base import AgentResult, capture
from agents.brand_equity import BrandEquityAgent, BrandEquityRequest
from agents.extractor import empty_snapshot, extract_platform_snapshot, profile_only_snapshot
from agents.insights import InsightAgent, InsightRequest
from agents.keywords import KeywordClusteringAgent
from agents.share_of_voice import ShareOfVoiceAgent, ShareOfVoiceRequest
from agents.voice import VoiceAnalysisAgent, unavailable_result
from config.settings import settings
from db import repository
from db.models import SESSION_FAILED, SESSION_PROCESSING
from db.repository import SessionFactory, SessionNotFoundError
from models.schemas import (
    BrandAnalysisData, BrandInput, ComparativeReport, PlatformSnapshot,
)
from providers.browser import BrowserSession

logger = logging.getLogger(__name__)

PROFILE_ONLY_PLATFORMS = ("youtube",)


class AnalysisError(RuntimeError):
    """The run cannot produce a report."""


class PersistenceError(AnalysisError):
    """The finished report could not be written."""


class ComparativeAnalysisOrchestrator:
    """
    Coordinates every analysis component for one session.

    Collaborators are injected so the same pipeline runs against the live
    providers or the deterministic mocks:
      social_client   fetch(platform, query) / fetch_many(platforms, query)
      profile_scraper scrape(platform, handle) -> ProfileStats | None
      text_client     generate(prompt, temperature) -> GenerationResult
      browser         shared BrowserSession, closed at the end of every run
    """

    def __init__(
        self,
        social_client,
        profile_scraper,
        text_client,
        browser: Optional[BrowserSession] = None,
        session_factory: Optional[SessionFactory] = None,
        brand_concurrency: Optional[int] = None,
        post_platforms: Optional[List[str]] = None,
    ):
        self.social_client = social_client
        self.profile_scraper = profile_scraper
        self.text_client = text_client
        self.browser = browser
        self.session_factory = session_factory
        self.brand_concurrency = max(1, brand_concurrency or settings.BRAND_CONCURRENCY)
        self.post_platforms = post_platforms or settings.POST_PLATFORMS
        self.results: List[AgentResult] = []

    # ─── Per-brand collection ────────────────────────────────────────────────

    async def analyze_platform(self, brand: BrandInput, platform: str) -> PlatformSnapshot:
        handle = brand.handle_for(platform)
        try:
            fetched, scraped = await asyncio.gather(
                self.social_client.fetch(platform, handle.lstrip("@")),
                capture(f"scrape:{platform}", self.profile_scraper.scrape(platform, handle)),
            )
            profile = scraped.unwrap_or(None)
            if not fetched.ok:
                logger.warning(f"  ⚠️ {brand.name}/{platform}: posts unavailable ({fetched.error})")
                if profile is None:
                    return empty_snapshot(platform)
                return extract_platform_snapshot(platform, [], profile, data_available=False)
            return extract_platform_snapshot(platform, fetched.items, profile)
        except Exception as e:
            logger.error(f"  ❌ {brand.name}/{platform}: extraction failed: {e}")
            return empty_snapshot(platform)

    async def analyze_profile_only(self, brand: BrandInput, platform: str) -> PlatformSnapshot:
        scraped = await capture(
            f"scrape:{platform}", self.profile_scraper.scrape(platform, brand.handle_for(platform))
        )
        return profile_only_snapshot(platform, scraped.unwrap_or(None))

    async def analyze_brand(self, brand: BrandInput) -> BrandAnalysisData:
        logger.info(f"🏷️  Analysing {brand.name}{' (focus)' if brand.is_focus else ''}")
        data = BrandAnalysisData(brand=brand)
        for platform in self.post_platforms:
            if brand.handle_for(platform):
                data.platforms[platform] = await self.analyze_platform(brand, platform)
        for platform in PROFILE_ONLY_PLATFORMS:
            if brand.handle_for(platform):
                data.platforms[platform] = await self.analyze_profile_only(brand, platform)
        if not data.platforms:
            logger.warning(f"  ⚠️ {brand.name} has no configured platforms")
        return data

    async def collect_brand_data(self, brands: List[BrandInput]) -> List[BrandAnalysisData]:
        """Analyse every brand; at most `brand_concurrency` at once, input order kept."""
        semaphore = asyncio.Semaphore(self.brand_concurrency)

        async def bounded(brand: BrandInput) -> BrandAnalysisData:
            async with semaphore:
                return await self.analyze_brand(brand)

        return list(await asyncio.gather(*(bounded(b) for b in brands)))

    # ─── Cross-brand analysis ────────────────────────────────────────────────

    async def build_report(
        self,
        session_id: int,
        focus: BrandInput,
        competitors: List[BrandInput],
        universe_keywords: Optional[str] = None,
    ) -> ComparativeReport:
        brands = [focus] + list(competitors)
        brand_data = await self.collect_brand_data(brands)
        self.results = []

        keyword_result = KeywordClusteringAgent().execute(brand_data)
        self.results.append(keyword_result)

        voice_result = await VoiceAnalysisAgent(self.social_client).execute(brand_data)
        self.results.append(voice_result)

        sov_result = await ShareOfVoiceAgent(self.social_client).execute(
            ShareOfVoiceRequest(brands=brands, custom_keywords=universe_keywords)
        )
        self.results.append(sov_result)

        equity_result = BrandEquityAgent().execute(
            BrandEquityRequest(brand_data=brand_data, focus_brand=focus.name)
        )
        self.results.append(equity_result)
        if not equity_result.success:
            raise AnalysisError(f"Brand equity composition failed: {equity_result.error}")
        tables = equity_result.data

        keyword_clustering = keyword_result.unwrap_or([])
        insight_agent = InsightAgent(self.text_client)
        insight_result = await insight_agent.execute(InsightRequest(
            focus_brand=focus.name,
            competitors=[c.name for c in competitors],
            tables=tables,
            brand_data=brand_data,
            keyword_analyses=keyword_clustering,
        ))
        self.results.append(insight_result)
        ai_insights, ai_keyword_insights = insight_result.unwrap_or((insight_agent.placeholder, ""))

        return ComparativeReport(
            session_id=session_id,
            brand_data=brand_data,
            tables=tables,
            keyword_clustering=keyword_clustering,
            voice_analysis=voice_result.unwrap_or([unavailable_result(b.name) for b in brand_data]),
            share_of_voice=sov_result.unwrap_or(None),
            data_quality_report=self.data_quality_blob(brand_data),
            ai_insights=ai_insights,
            ai_keyword_insights=ai_keyword_insights,
        )

    @staticmethod
    def data_quality_blob(brand_data: List[BrandAnalysisData]) -> Dict[str, Dict[str, Any]]:
        return {
            b.name: {
                platform: snap.data_quality.summary_dict()
                for platform, snap in b.platforms.items()
                if snap.data_quality is not None
            }
            for b in brand_data
        }

    # ─── Session lifecycle ───────────────────────────────────────────────────

    async def run(self, session_id: int) -> ComparativeReport:
        """Analyse a stored session and persist its result."""
        started = datetime.utcnow()
        try:
            focus, competitors, universe_keywords = repository.load_session(
                session_id, factory=self.session_factory
            )
            try:
                if focus is None:
                    raise SessionNotFoundError(f"Session {session_id} has no focus brand")
                repository.set_status(session_id, SESSION_PROCESSING, factory=self.session_factory)
                logger.info(
                    f"🚀 Session {session_id}: {focus.name} vs "
                    f"{', '.join(c.name for c in competitors) or 'no competitors'}"
                )

                report = await self.build_report(session_id, focus, competitors, universe_keywords)

                try:
                    repository.save_result(report, factory=self.session_factory)
                except Exception as e:
                    raise PersistenceError(
                        f"Failed to save result for session {session_id}: {e}"
                    ) from e
            except Exception:
                logger.exception(f"❌ Analysis of session {session_id} failed")
                self._mark_failed(session_id)
                raise
        finally:
            if self.browser is not None:
                await self.browser.close()

        elapsed = (datetime.utcnow() - started).total_seconds()
        logger.info(f"✅ Session {session_id} completed in {elapsed:.1f}s")
        return report

    def _mark_failed(self, session_id: int):
        try:
            repository.set_status(session_id, SESSION_FAILED, factory=self.session_factory)
        except Exception as e:
            logger.error(f"  Could not mark session {session_id} as failed: {e}")

    def summary(self) -> str:
        lines = ["\n📋 Analysis Summary:"]
        for r in self.results:
            lines.append(f"  {r}")
            if not r.success:
                lines.append(f"     Error: {r.error}")
        return "\n".join(lines)
