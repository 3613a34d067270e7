"""
Core data models / schemas for Brand Social Comparative Analytics.

Every analysis entity is built fresh per run and serialised with `to_dict()`
into the camelCase JSON shape stored in the result blobs.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Tuple
from datetime import datetime


# ---------------------------------------------------------------------------
# Raw ingestion
# ---------------------------------------------------------------------------

@dataclass
class RawPost:
    """One content item, normalised from a provider or scraper record."""
    platform: str
    text: str = ""
    author: str = ""
    published_at: Optional[datetime] = None
    likes: int = 0
    comments: int = 0
    shares: int = 0
    media_type: str = "text"          # text | image | video | carousel
    post_id: Optional[str] = None
    url: Optional[str] = None
    author_followers: int = 0
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def engagement(self) -> int:
        return self.likes + self.comments + self.shares

    @property
    def dedupe_key(self) -> str:
        return self.post_id or self.url or self.text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "platform": self.platform,
            "id": self.post_id,
            "url": self.url,
            "text": self.text,
            "author": self.author,
            "publishedAt": self.published_at.isoformat() if self.published_at else None,
            "likes": self.likes,
            "comments": self.comments,
            "shares": self.shares,
            "mediaType": self.media_type,
        }


@dataclass
class ProfileStats:
    """Profile-level counts read from a public profile page."""
    platform: str
    username: str
    followers: int = 0
    following: int = 0
    posts: int = 0
    engagement: Optional[float] = None
    source: str = "http"              # http | browser | cache
    scraped_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "platform": self.platform,
            "username": self.username,
            "followers": self.followers,
            "following": self.following,
            "posts": self.posts,
            "engagement": self.engagement,
            "source": self.source,
            "scrapedAt": self.scraped_at.isoformat() if self.scraped_at else None,
        }


@dataclass
class BrandInput:
    """A brand configured on an analysis session."""
    name: str
    handles: Dict[str, str] = field(default_factory=dict)   # platform -> handle
    website: Optional[str] = None
    is_focus: bool = False
    brand_id: Optional[int] = None

    def handle_for(self, platform: str) -> Optional[str]:
        handle = self.handles.get(platform)
        return handle.strip() if handle and handle.strip() else None

    @property
    def primary_handle(self) -> Optional[str]:
        for platform in ("instagram", "tiktok", "twitter"):
            handle = self.handle_for(platform)
            if handle:
                return handle
        return None


# ---------------------------------------------------------------------------
# Data quality
# ---------------------------------------------------------------------------

PRIMARY_API = "PRIMARY_API"
SCRAPER = "SCRAPER"


@dataclass
class DataSource:
    """One origin's view of a brand+platform."""
    origin: str                       # PRIMARY_API | SCRAPER
    followers: Optional[int] = None
    posts: Optional[int] = None
    engagement: Optional[float] = None
    data_points: Optional[int] = None
    date_range: Optional[Tuple[datetime, datetime]] = None


@dataclass
class MergedData:
    followers: int = 0
    posts: int = 0
    avg_post_per_day: float = 0.0
    engagement: float = 0.0
    data_points_analyzed: int = 0
    estimated_total_posts: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "followers": self.followers,
            "posts": self.posts,
            "avgPostPerDay": self.avg_post_per_day,
            "engagement": self.engagement,
            "dataPointsAnalyzed": self.data_points_analyzed,
            "estimatedTotalPosts": self.estimated_total_posts,
        }


@dataclass
class DataQualityReport:
    confidence: str                   # HIGH | MEDIUM | LOW | VERY_LOW
    confidence_score: float
    issues: List[str]
    recommendations: List[str]
    merged_data: MergedData

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confidence": self.confidence,
            "confidenceScore": self.confidence_score,
            "issues": list(self.issues),
            "recommendations": list(self.recommendations),
            "mergedData": self.merged_data.to_dict(),
        }

    def summary_dict(self) -> Dict[str, Any]:
        """Flattened per-platform entry for the stored data-quality blob."""
        return {
            "confidence": self.confidence,
            "confidenceScore": self.confidence_score,
            "issues": list(self.issues),
            "recommendations": list(self.recommendations),
            "dataPointsAnalyzed": self.merged_data.data_points_analyzed,
            "estimatedTotalPosts": self.merged_data.estimated_total_posts,
        }


# ---------------------------------------------------------------------------
# Platform snapshots
# ---------------------------------------------------------------------------

@dataclass
class PostTypeStats:
    type: str
    count: int
    avg_engagement: float

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "count": self.count, "avgEngagement": self.avg_engagement}


@dataclass
class PlatformSnapshot:
    """Normalised per brand per platform view."""
    platform: str
    followers: int = 0
    posts: int = 0
    engagement: float = 0.0           # percent
    avg_post_per_day: float = 0.0
    hashtags: List[str] = field(default_factory=list)
    post_types: List[PostTypeStats] = field(default_factory=list)
    post_times: List[int] = field(default_factory=lambda: [0] * 24)
    raw_posts: List[RawPost] = field(default_factory=list)
    configured: bool = True
    data_available: bool = False
    data_quality: Optional[DataQualityReport] = None
    approximations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "followers": self.followers,
            "posts": self.posts,
            "engagement": self.engagement,
            "avgPostPerDay": self.avg_post_per_day,
            "hashtags": list(self.hashtags),
            "postTypes": [pt.to_dict() for pt in self.post_types],
            "postTimes": [{"hour": h, "count": c} for h, c in enumerate(self.post_times)],
            "configured": self.configured,
            "dataAvailable": self.data_available,
        }
        if self.data_quality is not None:
            d["dataQuality"] = self.data_quality.to_dict()
        return d


@dataclass
class BrandAnalysisData:
    brand: BrandInput
    platforms: Dict[str, PlatformSnapshot] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.brand.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "brandName": self.brand.name,
            "platforms": {p: snap.to_dict() for p, snap in self.platforms.items()},
        }


# ---------------------------------------------------------------------------
# Brand equity
# ---------------------------------------------------------------------------

@dataclass
class BrandEquityRow:
    brand: str
    total_followers: int
    avg_engagement: float
    content_velocity: float
    equity_score: float
    reach_score: float = 0.0
    engagement_score: float = 0.0
    content_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "brand": self.brand,
            "totalFollowers": self.total_followers,
            "avgEngagement": self.avg_engagement,
            "contentVelocity": self.content_velocity,
            "equityScore": self.equity_score,
        }


# ---------------------------------------------------------------------------
# Keyword clustering
# ---------------------------------------------------------------------------

@dataclass
class TopKeyword:
    keyword: str
    frequency: int
    avg_engagement: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keyword": self.keyword,
            "frequency": self.frequency,
            "avgEngagement": self.avg_engagement,
        }


@dataclass(frozen=True)
class KeywordCluster:
    cluster_id: int
    main_keyword: str
    related_keywords: Tuple[str, ...]
    post_count: int
    avg_engagement: float
    theme: str
    posts: Tuple[RawPost, ...] = field(default=(), hash=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clusterId": self.cluster_id,
            "mainKeyword": self.main_keyword,
            "relatedKeywords": list(self.related_keywords),
            "postCount": self.post_count,
            "avgEngagement": self.avg_engagement,
            "theme": self.theme,
            "posts": [
                {
                    "text": p.text,
                    "date": p.published_at.isoformat() if p.published_at else None,
                    "engagement": p.engagement,
                }
                for p in self.posts
            ],
        }


@dataclass
class BrandKeywordAnalysis:
    brand: str
    platform: str
    total_posts: int = 0
    top_keywords: List[TopKeyword] = field(default_factory=list)
    clusters: List[KeywordCluster] = field(default_factory=list)
    conversation_themes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "brand": self.brand,
            "platform": self.platform,
            "totalPosts": self.total_posts,
            "topKeywords": [k.to_dict() for k in self.top_keywords],
            "clusters": [c.to_dict() for c in self.clusters],
            "conversationThemes": list(self.conversation_themes),
        }


# ---------------------------------------------------------------------------
# Voice analysis
# ---------------------------------------------------------------------------

@dataclass
class OwnVoicePlatform:
    platform: str
    posts: int
    followers: int
    engagement: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "platform": self.platform,
            "posts": self.posts,
            "followers": self.followers,
            "engagement": self.engagement,
        }


@dataclass
class OwnVoice:
    total_posts: int = 0
    total_reach: int = 0
    total_engagement: int = 0
    avg_engagement_per_post: int = 0
    platforms: List[OwnVoicePlatform] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalPosts": self.total_posts,
            "totalReach": self.total_reach,
            "totalEngagement": self.total_engagement,
            "avgEngagementPerPost": self.avg_engagement_per_post,
            "platforms": [p.to_dict() for p in self.platforms],
        }


@dataclass
class TopMentioner:
    author: str
    mentions: int
    followers: int

    def to_dict(self) -> Dict[str, Any]:
        return {"author": self.author, "mentions": self.mentions, "followers": self.followers}


@dataclass
class EarnVoice:
    total_mentions: int = 0
    total_reach: int = 0
    total_engagement: int = 0
    avg_engagement_per_mention: int = 0
    sentiment: Dict[str, int] = field(
        default_factory=lambda: {"positive": 0, "neutral": 0, "negative": 0}
    )
    top_mentioners: List[TopMentioner] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalMentions": self.total_mentions,
            "totalReach": self.total_reach,
            "totalEngagement": self.total_engagement,
            "avgEngagementPerMention": self.avg_engagement_per_mention,
            "sentiment": dict(self.sentiment),
            "topMentioners": [m.to_dict() for m in self.top_mentioners],
        }


@dataclass
class VoiceMetrics:
    own_voice: OwnVoice = field(default_factory=OwnVoice)
    earn_voice: EarnVoice = field(default_factory=EarnVoice)
    voice_ratio: float = 0.0
    amplification_factor: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ownVoice": self.own_voice.to_dict(),
            "earnVoice": self.earn_voice.to_dict(),
            "voiceRatio": self.voice_ratio,
            "amplificationFactor": self.amplification_factor,
        }


@dataclass
class VoiceAnalysisResult:
    brand: str
    metrics: VoiceMetrics
    insights: str

    def to_dict(self) -> Dict[str, Any]:
        return {"brand": self.brand, "metrics": self.metrics.to_dict(), "insights": self.insights}


# ---------------------------------------------------------------------------
# Share of voice
# ---------------------------------------------------------------------------

@dataclass
class BrandShare:
    brand: str
    mentions: int
    share_percentage: float
    platforms: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "brand": self.brand,
            "mentions": self.mentions,
            "sharePercentage": self.share_percentage,
            "platforms": dict(self.platforms),
        }


@dataclass
class Overlap:
    brands: List[str]
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"brands": list(self.brands), "count": self.count}


@dataclass
class VennEntry:
    sets: List[str]
    size: int
    label: str

    def to_dict(self) -> Dict[str, Any]:
        return {"sets": list(self.sets), "size": self.size, "label": self.label}


@dataclass
class ShareOfVoiceAnalysis:
    total_universe_conversations: int
    universe_keywords: List[str]
    brands: List[BrandShare] = field(default_factory=list)
    overlaps: List[Overlap] = field(default_factory=list)
    venn_data: List[VennEntry] = field(default_factory=list)
    insights: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalUniverseConversations": self.total_universe_conversations,
            "universeKeywords": list(self.universe_keywords),
            "brands": [b.to_dict() for b in self.brands],
            "overlaps": [o.to_dict() for o in self.overlaps],
            "vennData": [v.to_dict() for v in self.venn_data],
            "insights": self.insights,
        }


# ---------------------------------------------------------------------------
# Final report
# ---------------------------------------------------------------------------

REPORT_FIELDS = (
    "brandEquityData",
    "audienceComparison",
    "postChannelData",
    "hashtagAnalysis",
    "postTypeEngagement",
    "postTimingData",
    "keywordClustering",
    "voiceAnalysis",
    "shareOfVoice",
    "additionalMetrics",
    "dataQualityReport",
)


@dataclass
class ComparativeReport:
    """Everything one analysis run produces, ready for persistence."""
    session_id: int
    brand_data: List[BrandAnalysisData]
    tables: Dict[str, Any]
    keyword_clustering: List[BrandKeywordAnalysis]
    voice_analysis: List[VoiceAnalysisResult]
    share_of_voice: Optional[ShareOfVoiceAnalysis]
    data_quality_report: Dict[str, Dict[str, Any]]
    ai_insights: str = ""
    ai_keyword_insights: str = ""
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def brand_equity(self) -> List[Dict[str, Any]]:
        return self.tables.get("brandEquityData", [])

    def to_blobs(self) -> Dict[str, Any]:
        """One JSON-ready value per report field."""
        return {
            "brandEquityData": self.tables["brandEquityData"],
            "audienceComparison": self.tables["audienceComparison"],
            "postChannelData": self.tables["postChannelData"],
            "hashtagAnalysis": self.tables["hashtagAnalysis"],
            "postTypeEngagement": self.tables["postTypeEngagement"],
            "postTimingData": self.tables["postTimingData"],
            "keywordClustering": [k.to_dict() for k in self.keyword_clustering],
            "voiceAnalysis": [v.to_dict() for v in self.voice_analysis],
            "shareOfVoice": self.share_of_voice.to_dict() if self.share_of_voice else None,
            "additionalMetrics": self.tables["additionalMetrics"],
            "dataQualityReport": self.data_quality_report,
        }
