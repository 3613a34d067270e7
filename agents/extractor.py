"""
Platform Metric Extractor
--------------------------
Normalises loosely-typed provider records into RawPost objects and turns
one brand+platform into a PlatformSnapshot:

  - Field normalisation with per-platform fallback chains
  - Source reconciliation via the Data Quality Validator
  - Hashtag ranking (top 20)
  - Post-type breakdown (text / image / video / carousel)
  - 24-bucket hour-of-day posting histogram
  - Engagement rate = avg engagement per post / followers * 100

When followers are unknown they are estimated from average engagement:

  followers ≈ avg_engagement / assumed_rate      (Instagram 2%, TikTok 7%)
  followers ≈ avg_engagement * multiplier        (Twitter x50, Facebook x100)

Every estimate is appended to the data-quality report as an approximation.

Input:  provider records + optional ProfileStats
Output: PlatformSnapshot
"""

import re
import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from agents.data_quality import extract_date_range, validate_data_quality
from config.settings import settings
from models.schemas import (
    DataSource, PlatformSnapshot, PostTypeStats, ProfileStats, RawPost,
    PRIMARY_API, SCRAPER,
)

logger = logging.getLogger(__name__)


# ─── Field Normalisation ─────────────────────────────────────────────────────


TEXT_FIELDS = ("title", "description", "text", "caption", "content", "message")
AUTHOR_FIELDS = ("author", "username", "user", "profile")
TIME_FIELDS = ("published_at", "created_at", "timestamp", "date")
LIKE_FIELDS = ("like_count", "likes", "favorite_count")
COMMENT_FIELDS = ("comment_count", "comments", "reply_count", "replies")
FOLLOWER_FIELDS = ("author_followers", "followers", "follower_count")
ID_FIELDS = ("id", "post_id")
URL_FIELDS = ("url", "link", "permalink")
MEDIA_FIELDS = ("media_type", "mediaType", "type")

# Instagram engagement is likes + comments only
SHARE_FIELDS: Dict[str, Tuple[str, ...]] = {
    "instagram": (),
    "tiktok": ("share_count", "shares"),
    "twitter": ("retweet_count", "retweets"),
    "facebook": ("share_count", "shares"),
}
DEFAULT_SHARE_FIELDS = ("share_count", "shares", "retweet_count", "retweets")

_MEDIA_TYPES = {
    "photo": "image",
    "image": "image",
    "video": "video",
    "reel": "video",
    "carousel": "carousel",
    "carousel_album": "carousel",
    "album": "carousel",
}


def first_value(record: Dict[str, Any], fields: Iterable[str]) -> Any:
    """First truthy value among `fields`, or None."""
    for f in fields:
        value = record.get(f)
        if value:
            return value
    return None


def to_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def parse_timestamp(value: Any) -> Optional[datetime]:
    """ISO-8601 strings, epoch seconds/milliseconds or datetimes; always UTC-aware."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e11 else value
        try:
            dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _author_name(value: Any) -> str:
    if isinstance(value, dict):
        value = value.get("username") or value.get("name") or ""
    return str(value or "")


def _media_type(record: Dict[str, Any]) -> str:
    hint = first_value(record, MEDIA_FIELDS)
    if hint:
        mapped = _MEDIA_TYPES.get(str(hint).lower())
        if mapped:
            return mapped
    if record.get("video"):
        return "video"
    if record.get("image"):
        return "image"
    return "text"


def normalize_post(record: Dict[str, Any], platform: str) -> RawPost:
    """Map one provider record into a RawPost; absent fields default to 0/empty."""
    share_fields = SHARE_FIELDS.get(platform, DEFAULT_SHARE_FIELDS)
    post_id = first_value(record, ID_FIELDS)
    url = first_value(record, URL_FIELDS)
    return RawPost(
        platform=record.get("platform") or platform,
        text=str(first_value(record, TEXT_FIELDS) or ""),
        author=_author_name(first_value(record, AUTHOR_FIELDS)),
        published_at=parse_timestamp(first_value(record, TIME_FIELDS)),
        likes=to_int(first_value(record, LIKE_FIELDS)),
        comments=to_int(first_value(record, COMMENT_FIELDS)),
        shares=to_int(first_value(record, share_fields)) if share_fields else 0,
        media_type=_media_type(record),
        post_id=str(post_id) if post_id is not None else None,
        url=str(url) if url else None,
        author_followers=to_int(first_value(record, FOLLOWER_FIELDS)),
        raw=record,
    )


def normalize_posts(records: Iterable[Dict[str, Any]], platform: str) -> List[RawPost]:
    return [normalize_post(r, platform) for r in records if isinstance(r, dict)]


# ─── Per-Post Metrics ────────────────────────────────────────────────────────


_HASHTAG_RE = re.compile(r"#\w+")


def extract_hashtags(posts: List[RawPost], limit: Optional[int] = None) -> List[str]:
    """Hashtags ranked by frequency; ties keep first-seen order."""
    limit = limit if limit is not None else settings.MAX_HASHTAGS
    counts = Counter()
    for post in posts:
        counts.update(_HASHTAG_RE.findall(post.text))
    return [tag for tag, _ in counts.most_common(limit)]


def analyze_post_types(posts: List[RawPost]) -> List[PostTypeStats]:
    totals: Dict[str, List[int]] = {}
    for post in posts:
        entry = totals.setdefault(post.media_type, [0, 0])
        entry[0] += 1
        entry[1] += post.engagement
    return [
        PostTypeStats(type=t, count=c, avg_engagement=round(e / c, 2) if c else 0.0)
        for t, (c, e) in totals.items()
    ]


def analyze_post_times(posts: List[RawPost], tz_name: Optional[str] = None) -> List[int]:
    """Hour-of-day histogram in the report timezone; undated posts are skipped."""
    tz = ZoneInfo(tz_name or settings.REPORT_TIMEZONE)
    hours = [0] * 24
    for post in posts:
        if post.published_at is not None:
            hours[post.published_at.astimezone(tz).hour] += 1
    return hours


def estimate_followers(platform: str, avg_engagement: float) -> int:
    """Follower estimate from engagement; 0 when the platform has no heuristic."""
    if avg_engagement <= 0:
        return 0
    if platform in settings.ASSUMED_ENGAGEMENT_RATES:
        return round(avg_engagement / settings.ASSUMED_ENGAGEMENT_RATES[platform])
    if platform in settings.FOLLOWER_MULTIPLIERS:
        return round(avg_engagement * settings.FOLLOWER_MULTIPLIERS[platform])
    return 0


def engagement_rate(avg_engagement: float, followers: int) -> float:
    if followers <= 0:
        return 0.0
    return round(avg_engagement / followers * 100, 2)


# ─── Snapshot Assembly ───────────────────────────────────────────────────────


def build_sources(posts: List[RawPost], profile: Optional[ProfileStats]) -> List[DataSource]:
    sources = [
        DataSource(
            origin=PRIMARY_API,
            posts=len(posts),
            data_points=len(posts),
            date_range=extract_date_range(posts),
        )
    ]
    if profile is not None:
        sources.append(
            DataSource(
                origin=SCRAPER,
                followers=profile.followers,
                posts=profile.posts,
                engagement=profile.engagement,
            )
        )
    return sources


def average_engagement(posts: List[RawPost]) -> float:
    if not posts:
        return 0.0
    return sum(p.engagement for p in posts) / len(posts)


def extract_platform_snapshot(
    platform: str,
    records: List[Dict[str, Any]],
    profile: Optional[ProfileStats] = None,
    data_available: bool = True,
) -> PlatformSnapshot:
    posts = normalize_posts(records, platform)
    sources = build_sources(posts, profile)
    report = validate_data_quality(sources)
    merged = report.merged_data

    avg_engagement = average_engagement(posts)
    approximations: List[str] = []

    followers = merged.followers
    if followers == 0 and avg_engagement > 0:
        followers = estimate_followers(platform, avg_engagement)
        if followers:
            approximations.append(
                f"Follower count for {platform} is estimated from average engagement "
                f"({avg_engagement:.1f} per post); no profile count was available."
            )

    # dated range first, then the scraped total over the account-age fallback
    avg_per_day = merged.avg_post_per_day
    has_dates = sources[0].date_range is not None
    if posts and not has_dates and not merged.estimated_total_posts:
        avg_per_day = round(len(posts) / settings.FALLBACK_POSTING_WINDOW_DAYS, 2)
        approximations.append(
            f"Posting frequency for {platform} assumes a "
            f"{settings.FALLBACK_POSTING_WINDOW_DAYS}-day window; no publish dates were available."
        )

    report.issues.extend(approximations)

    snapshot = PlatformSnapshot(
        platform=platform,
        followers=followers,
        posts=merged.posts,
        engagement=engagement_rate(avg_engagement, followers),
        avg_post_per_day=avg_per_day,
        hashtags=extract_hashtags(posts),
        post_types=analyze_post_types(posts),
        post_times=analyze_post_times(posts),
        raw_posts=posts,
        configured=True,
        data_available=data_available,
        data_quality=report,
        approximations=approximations,
    )
    logger.info(
        f"  📊 {platform}: {snapshot.followers:,} followers, {len(posts)} posts analysed, "
        f"{snapshot.engagement}% engagement [{report.confidence}]"
    )
    return snapshot


def profile_only_snapshot(platform: str, profile: Optional[ProfileStats]) -> PlatformSnapshot:
    """Platforms read only from the profile page (e.g. YouTube subscribers)."""
    followers = profile.followers if profile else 0
    return PlatformSnapshot(
        platform=platform,
        followers=followers,
        configured=True,
        data_available=bool(followers),
    )


def empty_snapshot(platform: str) -> PlatformSnapshot:
    """Degraded slice for a configured platform whose fetch failed."""
    return PlatformSnapshot(platform=platform, configured=True, data_available=False)
