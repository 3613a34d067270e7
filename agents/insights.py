"""
Insight Generation Agent
-------------------------
Optional text-generation enrichment on top of the numeric results.

  raw draft  -> structure_insights() -> qualification prompt
             (+ data-quality warnings) -> structure_insights()

Failures never propagate: an unavailable or failing service yields the
configured placeholder text and the numeric pipeline carries on.
"""

import re
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from agents.base import AsyncAgent
from agents.data_quality import LOW, VERY_LOW
from config.settings import settings
from models.schemas import BrandAnalysisData, BrandKeywordAnalysis
from providers.text_generation import TextGenerationClient

logger = logging.getLogger(__name__)


# ─── Formatting ──────────────────────────────────────────────────────────────


_BULLET_RE = re.compile(r"^(?:[-•]|\d+[.)])\s+")


def clean_markdown(text: str) -> str:
    text = re.sub(r"#{2,}\s*", "", text)
    text = re.sub(r"\*\*([^*]+)\*\*", r"\1", text)
    text = re.sub(r"\*([^*]+)\*", r"\1", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def structure_insights(raw: str) -> str:
    """Header lines (ending ':' or '?') get a 📌 marker; list items are indented."""
    out: List[str] = []
    seen_header = False
    for line in clean_markdown(raw).split("\n"):
        line = line.strip()
        if not line:
            continue
        if line.endswith(":") or line.endswith("?"):
            if seen_header:
                out.append("")
            out.append(f"📌 {line}")
            seen_header = True
        elif _BULLET_RE.match(line):
            out.append(f"   {line}")
        else:
            out.append(line)
    return "\n".join(out).strip()


# ─── Prompts ─────────────────────────────────────────────────────────────────


def data_quality_warnings(brand_data: List[BrandAnalysisData]) -> List[str]:
    warnings = []
    for brand in brand_data:
        for platform, snap in brand.platforms.items():
            dq = snap.data_quality
            if dq is None:
                continue
            if dq.confidence in (LOW, VERY_LOW):
                first_issue = dq.issues[0] if dq.issues else "limited data"
                warnings.append(
                    f"⚠️ {brand.name} ({platform}): data quality {dq.confidence} - {first_issue}"
                )
            analysed = dq.merged_data.data_points_analyzed
            if analysed < 20:
                warnings.append(
                    f"⚠️ {brand.name} ({platform}): only {analysed} posts analysed - "
                    "do NOT make specific posting-frequency recommendations"
                )
    return warnings


def build_analysis_prompt(focus_brand: str, competitors: List[str], tables: Dict[str, Any]) -> str:
    payload = {
        "focusBrand": focus_brand,
        "competitors": competitors,
        "brandEquityData": tables.get("brandEquityData"),
        "audienceComparison": tables.get("audienceComparison"),
        "postChannelData": tables.get("postChannelData"),
        "postTypeEngagement": tables.get("postTypeEngagement"),
        "hashtagAnalysis": tables.get("hashtagAnalysis"),
    }
    return (
        "As a professional brand analyst, analyse the following data and give in-depth insights.\n\n"
        f"Brand data:\n{json.dumps(payload, indent=2, default=str)}\n\n"
        "Cover:\n"
        "1. Performance comparison between brands\n"
        "2. Strengths and weaknesses of each brand\n"
        "3. Engagement and audience trends\n"
        f"4. Strategic recommendations for {focus_brand}"
    )


def build_keyword_analysis_prompt(analysis: BrandKeywordAnalysis) -> str:
    keywords = "\n".join(
        f"- {k.keyword} ({k.frequency}x, avg engagement: {k.avg_engagement:.0f})"
        for k in analysis.top_keywords
    )
    clusters = "\n".join(
        f'- Cluster "{c.main_keyword}" ({c.post_count} posts): {", ".join(c.related_keywords)}'
        for c in analysis.clusters
    )
    return (
        f"Keyword clustering for {analysis.brand} on {analysis.platform}:\n\n"
        f"Total posts analysed: {analysis.total_posts}\n\n"
        f"Top keywords:\n{keywords}\n\n"
        f"Keyword clusters:\n{clusters}\n\n"
        f"Conversation themes: {', '.join(analysis.conversation_themes)}\n\n"
        "Explain the main topics, which theme earns the most engagement, the visible "
        "content strategy, and which topics to grow. Answer in clear, actionable bullet points."
    )


def build_strategic_qualification_prompt(
    draft: str, equity_rows: List[Dict[str, Any]], focus_brand: str, warnings: List[str]
) -> str:
    summary = "\n".join(
        f"{r['brand']}: followers {r['totalFollowers']:,}, engagement {r['avgEngagement']}%, "
        f"content velocity {r['contentVelocity']}/day, equity score {r['equityScore']}"
        for r in equity_rows
    )
    warning_block = ""
    if warnings:
        warning_block = "\nDATA QUALITY WARNINGS (MUST BE RESPECTED):\n" + "\n".join(warnings) + "\n"
    return (
        "You are a senior brand strategist.\n\n"
        f"INITIAL ANALYSIS:\n{draft}\n\n"
        f"BRAND DATA:\n{summary}\n{warning_block}\n"
        f"FOCUS BRAND: {focus_brand}\n\n"
        "Rules:\n"
        "1. Never recommend a posting frequency where fewer than 20 posts were analysed.\n"
        "2. Where data quality is LOW or VERY_LOW, state that recommendations rest on limited data.\n"
        "3. Only make claims the data above can support.\n\n"
        f"Write specific, actionable recommendations for {focus_brand}: quick wins, "
        "short-term strategy, medium-term initiatives, competitive positioning and KPIs. "
        "No markdown; use 📌 for section headers. At most 600 words."
    )


def build_keyword_qualification_prompt(draft: str, brands: List[str]) -> str:
    return (
        "You are a professional analyst. Here is a keyword analysis draft:\n\n"
        f"{draft}\n\n"
        f"Brands analysed: {', '.join(brands)}\n\n"
        "Rewrite it to be clear and professional, without markdown, with 📌 section headers, "
        "keeping only the most actionable insights. At most 400 words."
    )


# ─── InsightAgent ────────────────────────────────────────────────────────────


@dataclass
class InsightRequest:
    focus_brand: str
    competitors: List[str]
    tables: Dict[str, Any]
    brand_data: List[BrandAnalysisData]
    keyword_analyses: List[BrandKeywordAnalysis]


class InsightAgent(AsyncAgent):
    """
    Strategic and keyword insights.

    Input:  InsightRequest
    Output: (strategic insights, keyword insights)
    """

    def __init__(self, client: TextGenerationClient, placeholder: str = None):
        super().__init__(name="InsightAgent")
        self.client = client
        self.placeholder = placeholder or settings.INSIGHT_PLACEHOLDER

    async def _draft_and_qualify(self, prompt: str, qualify, temperature: float) -> str:
        draft = await self.client.generate(prompt)
        if not draft.success:
            self.logger.warning(f"  ⚠️ Insight draft failed: {draft.error}")
            return self.placeholder
        structured = structure_insights(draft.text)
        qualified = await self.client.generate(qualify(structured), temperature)
        if not qualified.success:
            self.logger.warning(f"  ⚠️ Insight qualification failed: {qualified.error}")
            return structured
        return structure_insights(qualified.text)

    async def run(self, request: InsightRequest) -> Tuple[str, str]:
        if not self.client.enabled:
            self.logger.info("  Text generation not configured; skipping insights")
            return self.placeholder, ""

        warnings = data_quality_warnings(request.brand_data)
        strategic = await self._draft_and_qualify(
            build_analysis_prompt(request.focus_brand, request.competitors, request.tables),
            lambda draft: build_strategic_qualification_prompt(
                draft, request.tables["brandEquityData"], request.focus_brand, warnings
            ),
            temperature=0.4,
        )

        keyword = ""
        if request.keyword_analyses:
            prompt = "\n\n---\n\n".join(
                build_keyword_analysis_prompt(a) for a in request.keyword_analyses
            )
            brands = list(dict.fromkeys(a.brand for a in request.keyword_analyses))
            keyword = await self._draft_and_qualify(
                prompt,
                lambda draft: build_keyword_qualification_prompt(draft, brands),
                temperature=0.3,
            )
        return strategic, keyword
