"""
Voice Analysis Agent
---------------------
Own voice:   content published by the brand's accounts
Earn voice:  third-party content that mentions the brand

  own_engagement(platform) = round(followers * rate/100 * posts)
  voice_ratio              = earn mentions / own posts          (0 if no posts)
  amplification_factor     = earn engagement / own engagement   (0 if none)

A mention counts as earned only when its author is not one of the brand's
handles (the brand name without spaces is an implicit handle) and its
text contains the brand name.

Input:  List[BrandAnalysisData]
Output: List[VoiceAnalysisResult]
"""

import re
import logging
from typing import Dict, Iterable, List, Optional, Set

from agents.base import AsyncAgent
from agents.extractor import normalize_post
from config.settings import settings
from models.schemas import (
    BrandAnalysisData, BrandInput, EarnVoice, OwnVoice, OwnVoicePlatform,
    PlatformSnapshot, RawPost, TopMentioner, VoiceAnalysisResult, VoiceMetrics,
)
from providers.social_api import SocialDataClient, build_boolean_query

logger = logging.getLogger(__name__)


POSITIVE_WORDS = ("love", "great", "amazing", "best", "excellent", "perfect", "good",
                  "suka", "bagus", "mantap")
NEGATIVE_WORDS = ("hate", "bad", "worst", "terrible", "awful", "poor",
                  "jelek", "buruk", "kecewa")

_POSITIVE_RE = [re.compile(rf"\b{w}\b") for w in POSITIVE_WORDS]
_NEGATIVE_RE = [re.compile(rf"\b{w}\b") for w in NEGATIVE_WORDS]

UNAVAILABLE_INSIGHT = "Voice analysis unavailable due to error."


# ─── Own Voice ───────────────────────────────────────────────────────────────


def analyze_own_voice(platforms: Dict[str, PlatformSnapshot]) -> OwnVoice:
    own = OwnVoice()
    for name, snap in platforms.items():
        engagement = round(snap.followers * snap.engagement / 100 * snap.posts)
        own.total_posts += snap.posts
        own.total_reach += snap.followers
        own.total_engagement += engagement
        own.platforms.append(OwnVoicePlatform(
            platform=name, posts=snap.posts, followers=snap.followers, engagement=engagement,
        ))
    if own.total_posts > 0:
        own.avg_engagement_per_post = round(own.total_engagement / own.total_posts)
    return own


# ─── Earn Voice ──────────────────────────────────────────────────────────────


def clean_handle(value: str) -> str:
    return "".join((value or "").lower().split()).lstrip("@")


def brand_handle_set(brand: BrandInput) -> Set[str]:
    handles = {clean_handle(h) for h in brand.handles.values() if h and h.strip()}
    handles.add(clean_handle(brand.name))
    handles.discard("")
    return handles


def is_earned_mention(post: RawPost, brand_name: str, handles: Set[str]) -> bool:
    author = clean_handle(post.author)
    if author and any(author == h or h in author for h in handles):
        return False
    return brand_name.lower() in post.text.lower()


def classify_sentiment(text: str) -> str:
    """Keyword-list sentiment; equal hit counts are neutral."""
    text = text.lower()
    positive = sum(1 for r in _POSITIVE_RE if r.search(text))
    negative = sum(1 for r in _NEGATIVE_RE if r.search(text))
    if positive > negative:
        return "positive"
    elif negative > positive:
        return "negative"
    return "neutral"


def analyze_earn_voice(mentions: Iterable[RawPost], brand: BrandInput) -> EarnVoice:
    handles = brand_handle_set(brand)
    earned = [m for m in mentions if is_earned_mention(m, brand.name, handles)]

    earn = EarnVoice()
    mentioners: Dict[str, List[int]] = {}
    for mention in earned:
        engagement = mention.engagement
        earn.total_engagement += engagement
        earn.total_reach += mention.author_followers or engagement * settings.MENTION_REACH_MULTIPLIER
        earn.sentiment[classify_sentiment(mention.text)] += 1

        entry = mentioners.setdefault(mention.author or "unknown", [0, 0])
        entry[0] += 1
        entry[1] = max(entry[1], mention.author_followers)

    earn.total_mentions = len(earned)
    if earned:
        earn.avg_engagement_per_mention = round(earn.total_engagement / len(earned))
    ranked = sorted(mentioners.items(), key=lambda item: item[1][0], reverse=True)
    earn.top_mentioners = [
        TopMentioner(author=a, mentions=m, followers=f)
        for a, (m, f) in ranked[:settings.TOP_MENTIONERS]
    ]
    return earn


def calculate_voice_metrics(
    platforms: Dict[str, PlatformSnapshot], mentions: Iterable[RawPost], brand: BrandInput
) -> VoiceMetrics:
    own = analyze_own_voice(platforms)
    earn = analyze_earn_voice(mentions, brand)
    voice_ratio = round(earn.total_mentions / own.total_posts, 2) if own.total_posts > 0 else 0.0
    amplification = (
        round(earn.total_engagement / own.total_engagement, 2) if own.total_engagement > 0 else 0.0
    )
    return VoiceMetrics(
        own_voice=own, earn_voice=earn,
        voice_ratio=voice_ratio, amplification_factor=amplification,
    )


# ─── Insights ────────────────────────────────────────────────────────────────


def generate_voice_insights(metrics: VoiceMetrics, brand_name: str) -> str:
    insights = []

    ratio = metrics.voice_ratio
    if ratio > 5:
        insights.append(
            f"{brand_name} has a strong earned-media presence with {ratio}x more mentions "
            "than posts, a sign of very good brand awareness."
        )
    elif ratio > 2:
        insights.append(f"{brand_name} has a healthy earned voice with {ratio}x mentions per post.")
    elif ratio < 1:
        insights.append(
            f"{brand_name} should grow brand awareness: earned mentions are still below owned posts."
        )

    amp = metrics.amplification_factor
    if amp > 3:
        insights.append(
            f"{brand_name} content has high viral potential with {amp}x amplification "
            "from user-generated content."
        )
    elif amp > 1:
        insights.append(f"User-generated content delivers a {amp}x engagement boost over owned posts.")
    else:
        insights.append(
            "Owned content is still more engaging than earned media. "
            "Focus campaigns on encouraging user-generated content."
        )

    sentiment = metrics.earn_voice.sentiment
    total = sum(sentiment.values())
    if total > 0:
        positive_pct = round(sentiment["positive"] / total * 100)
        negative_pct = round(sentiment["negative"] / total * 100)
        if positive_pct > 60:
            insights.append(
                f"Sentiment is strongly positive ({positive_pct}% positive mentions). "
                "Brand perception is excellent."
            )
        elif negative_pct > 30:
            insights.append(
                f"Attention: {negative_pct}% negative sentiment detected. Crisis monitoring advised."
            )
        else:
            insights.append(f"Sentiment is mostly neutral-to-positive ({positive_pct}% positive).")

    return "\n\n".join(insights)


def unavailable_result(brand_name: str) -> VoiceAnalysisResult:
    return VoiceAnalysisResult(brand=brand_name, metrics=VoiceMetrics(), insights=UNAVAILABLE_INSIGHT)


# ─── VoiceAnalysisAgent ──────────────────────────────────────────────────────


class VoiceAnalysisAgent(AsyncAgent):
    """
    Own vs earned voice per brand.

    Mentions for each brand are searched on every mention platform
    concurrently with an expanded boolean query. One brand's failure
    yields zeroed metrics for that brand only.
    """

    def __init__(self, client: SocialDataClient, platforms: Optional[List[str]] = None):
        super().__init__(name="VoiceAnalysisAgent")
        self.client = client
        self.platforms = platforms or settings.MENTION_PLATFORMS

    async def fetch_mentions(self, brand: BrandInput) -> List[RawPost]:
        query = build_boolean_query(brand.name, brand.primary_handle)
        self.logger.info(f"  📰 Fetching mentions for {brand.name}: {query}")
        results = await self.client.fetch_many(self.platforms, query)

        mentions: List[RawPost] = []
        for result in results:
            if not result.ok:
                self.logger.warning(f"  ⚠️ {result.platform} mentions unavailable: {result.error}")
                continue
            mentions.extend(normalize_post(item, result.platform) for item in result.items
                            if isinstance(item, dict))
        counts = ", ".join(f"{r.platform}: {len(r.items)}" for r in results)
        self.logger.info(f"    Found {len(mentions)} candidate mentions ({counts})")
        return mentions

    async def analyze_brand(self, data: BrandAnalysisData) -> VoiceAnalysisResult:
        try:
            mentions = await self.fetch_mentions(data.brand)
            metrics = calculate_voice_metrics(data.platforms, mentions, data.brand)
        except Exception as e:
            self.logger.error(f"  ❌ Voice analysis failed for {data.name}: {e}")
            return unavailable_result(data.name)
        return VoiceAnalysisResult(
            brand=data.name,
            metrics=metrics,
            insights=generate_voice_insights(metrics, data.name),
        )

    async def run(self, brand_data: List[BrandAnalysisData]) -> List[VoiceAnalysisResult]:
        results = []
        for data in brand_data:
            results.append(await self.analyze_brand(data))
        return results
