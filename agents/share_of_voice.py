"""
Share of Voice Agent
---------------------
Measures each brand's share of the category conversation ("universe").

  universe     = deduplicated conversations matching any universe keyword
  share_b      = mentions_b / |universe| * 100
  overlap(S)   = conversations mentioning every brand in S
                 (all pairs, plus all brands together when N ≥ 3)
  universe_only = |universe| - Σ mentions_b + Σ overlap(S)

A conversation mentions a brand when every word of the brand name occurs
as a whole word in its text.

Input:  ShareOfVoiceRequest
Output: ShareOfVoiceAnalysis
"""

import re
import logging
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, List, Optional

from agents.base import AsyncAgent
from agents.extractor import normalize_post
from config.settings import settings
from models.schemas import (
    BrandInput, BrandShare, Overlap, RawPost, ShareOfVoiceAnalysis, VennEntry,
)
from providers.social_api import SocialDataClient

logger = logging.getLogger(__name__)


@dataclass
class ShareOfVoiceRequest:
    brands: List[BrandInput]
    custom_keywords: Optional[str] = None


# ─── Universe Keywords ───────────────────────────────────────────────────────


def detect_category(brand_name: str) -> str:
    name = brand_name.lower()
    for category, hints in settings.CATEGORY_HINTS.items():
        if any(h in name for h in hints):
            return category
    return settings.DEFAULT_CATEGORY


def generate_universe_keywords(brand_name: str, category: Optional[str] = None) -> List[str]:
    table = settings.UNIVERSE_KEYWORDS
    category = category or detect_category(brand_name)
    return list(table.get(category) or table[settings.DEFAULT_CATEGORY])


def parse_custom_keywords(raw: Optional[str]) -> List[str]:
    if not raw or not raw.strip():
        return []
    return [k.strip() for k in raw.split(",") if k.strip()]


def resolve_universe_keywords(brands: List[BrandInput], custom: Optional[str]) -> List[str]:
    keywords = parse_custom_keywords(custom)
    if keywords:
        logger.info(f"🌐 Using custom universe keywords: {', '.join(keywords)}")
        return keywords
    keywords = generate_universe_keywords(brands[0].name)
    logger.info(f"🌐 Auto-detected universe keywords: {', '.join(keywords)}")
    return keywords


def deduplicate_conversations(conversations: List[RawPost]) -> List[RawPost]:
    """First occurrence wins, keyed by id, then url, then text."""
    seen = set()
    unique = []
    for conv in conversations:
        key = conv.dedupe_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(conv)
    return unique


# ─── Mention Matching ────────────────────────────────────────────────────────


def brand_pattern(brand_name: str) -> List["re.Pattern"]:
    return [
        re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)
        for word in brand_name.lower().split()
    ]


def mentions_brand(text: str, patterns: List["re.Pattern"]) -> bool:
    return bool(patterns) and all(p.search(text or "") for p in patterns)


def calculate_overlaps(matches: Dict[str, List[bool]], brand_names: List[str]) -> List[Overlap]:
    overlaps = []
    n = len(next(iter(matches.values()))) if matches else 0

    def co_mentions(names) -> int:
        return sum(1 for i in range(n) if all(matches[b][i] for b in names))

    for a, b in combinations(brand_names, 2):
        count = co_mentions((a, b))
        if count > 0:
            overlaps.append(Overlap(brands=[a, b], count=count))

    if len(brand_names) >= 3:
        count = co_mentions(brand_names)
        if count > 0:
            overlaps.append(Overlap(brands=list(brand_names), count=count))
    return overlaps


def generate_venn_data(
    shares: List[BrandShare], overlaps: List[Overlap], total: int
) -> List[VennEntry]:
    venn = [
        VennEntry(sets=[s.brand], size=s.mentions, label=f"{s.brand}\n{s.share_percentage:.1f}%")
        for s in shares
    ]
    venn.extend(
        VennEntry(sets=list(o.brands), size=o.count, label=f"{o.count} mentions")
        for o in overlaps
    )
    universe_only = total - sum(s.mentions for s in shares) + sum(o.count for o in overlaps)
    if universe_only > 0:
        venn.append(VennEntry(
            sets=["Universe"], size=universe_only, label=f"{universe_only} other conversations",
        ))
    return venn


def compute_share_of_voice(
    conversations: List[RawPost], brand_names: List[str], keywords: List[str]
) -> ShareOfVoiceAnalysis:
    total = len(conversations)
    matches: Dict[str, List[bool]] = {}
    shares: List[BrandShare] = []

    for name in brand_names:
        patterns = brand_pattern(name)
        hits = [mentions_brand(c.text, patterns) for c in conversations]
        matches[name] = hits

        platforms: Dict[str, int] = {}
        for conv, hit in zip(conversations, hits):
            if hit:
                platforms[conv.platform or "unknown"] = platforms.get(conv.platform or "unknown", 0) + 1
        mentions = sum(hits)
        share = mentions / total * 100 if total > 0 else 0.0
        shares.append(BrandShare(
            brand=name, mentions=mentions, share_percentage=share, platforms=platforms,
        ))
        logger.info(f"    ✅ {name}: {mentions} mentions ({share:.2f}% share)")

    overlaps = calculate_overlaps(matches, brand_names)
    analysis = ShareOfVoiceAnalysis(
        total_universe_conversations=total,
        universe_keywords=list(keywords),
        brands=shares,
        overlaps=overlaps,
        venn_data=generate_venn_data(shares, overlaps, total),
    )
    analysis.insights = generate_share_of_voice_insights(analysis)
    return analysis


# ─── Insights ────────────────────────────────────────────────────────────────


_MEDALS = ("🥇", "🥈", "🥉")


def generate_share_of_voice_insights(analysis: ShareOfVoiceAnalysis) -> str:
    lines = [
        "Share of Voice Analysis",
        f"Universe of conversations: {analysis.total_universe_conversations:,}",
        f"Keywords tracked: {', '.join(analysis.universe_keywords)}",
        "",
        "Brand share rankings:",
    ]
    ranked = sorted(analysis.brands, key=lambda s: s.share_percentage, reverse=True)
    for i, share in enumerate(ranked):
        medal = _MEDALS[i] if i < len(_MEDALS) else "📊"
        lines.append(
            f"{medal} {share.brand}: {share.mentions:,} mentions ({share.share_percentage:.2f}%)"
        )
        if share.platforms:
            platform, count = max(share.platforms.items(), key=lambda item: item[1])
            lines.append(f"   - Top platform: {platform} ({count} mentions)")

    if analysis.overlaps:
        lines.append("")
        lines.append("Brand overlaps:")
        for overlap in analysis.overlaps:
            lines.append(f"🔗 {' + '.join(overlap.brands)}: {overlap.count} co-mentions")

    if ranked and ranked[0].mentions > 0:
        leader = ranked[0]
        lines.append("")
        lines.append(f"{leader.brand} leads the conversation with {leader.share_percentage:.1f}% share of voice.")
    return "\n".join(lines)


# ─── ShareOfVoiceAgent ───────────────────────────────────────────────────────


class ShareOfVoiceAgent(AsyncAgent):
    """
    Fetches the keyword universe (one 4-platform fan-out per keyword) and
    computes every brand's share of it.
    """

    def __init__(self, client: SocialDataClient, platforms: Optional[List[str]] = None):
        super().__init__(name="ShareOfVoiceAgent")
        self.client = client
        self.platforms = platforms or settings.MENTION_PLATFORMS

    async def fetch_universe(self, keywords: List[str]) -> List[RawPost]:
        conversations: List[RawPost] = []
        for keyword in keywords:
            results = await self.client.fetch_many(self.platforms, keyword)
            found = 0
            for result in results:
                if not result.ok:
                    continue
                for item in result.items:
                    if isinstance(item, dict):
                        conversations.append(normalize_post(item, result.platform))
                        found += 1
            self.logger.info(f"  🔍 {keyword!r}: {found} conversations")
        unique = deduplicate_conversations(conversations)
        self.logger.info(f"  ✅ Total unique universe conversations: {len(unique)}")
        return unique

    async def run(self, request: ShareOfVoiceRequest) -> ShareOfVoiceAnalysis:
        if not request.brands:
            raise ValueError("No brands provided to ShareOfVoiceAgent")
        keywords = resolve_universe_keywords(request.brands, request.custom_keywords)
        conversations = await self.fetch_universe(keywords)
        return compute_share_of_voice(conversations, [b.name for b in request.brands], keywords)
