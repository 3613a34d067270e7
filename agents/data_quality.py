"""
Data Quality Validator
-----------------------
Reconciles the primary API view and the profile-scraper view of one
brand+platform into a single merged estimate with a confidence score:

  Score = 20 * [≥2 sources]
        + 25 * FollowerAgreement      (1.0 <10% variance, 0.5 <30%, 0.3 single source)
        + 25 * PostCountAgreement     (1.0 <10% variance, 0.5 <30%)
        + 20 * DataPointCredit        (1.0 ≥50, 0.7 ≥20, 0.4 ≥10)
        + 10 * [publish-date range present]

  variance(a, b) = |a - b| / max(a, b)

Tiers: ≥80 HIGH, ≥60 MEDIUM, ≥40 LOW, else VERY_LOW.

Pure function of its inputs; never raises.

Input:  List[DataSource]
Output: DataQualityReport
"""

import math
import logging
from typing import List, Optional, Tuple
from datetime import datetime

from config.settings import settings
from models.schemas import (
    DataSource, DataQualityReport, MergedData, RawPost, PRIMARY_API, SCRAPER,
)

logger = logging.getLogger(__name__)

HIGH = "HIGH"
MEDIUM = "MEDIUM"
LOW = "LOW"
VERY_LOW = "VERY_LOW"


# ─── Helpers ─────────────────────────────────────────────────────────────────


def relative_variance(a: float, b: float) -> float:
    return abs(a - b) / max(a, b)


def confidence_tier(score: float) -> str:
    if score >= 80:
        return HIGH
    elif score >= 60:
        return MEDIUM
    elif score >= 40:
        return LOW
    return VERY_LOW


def extract_date_range(posts: List[RawPost]) -> Optional[Tuple[datetime, datetime]]:
    """Oldest and newest parseable publish timestamp, or None."""
    dates = [p.published_at for p in posts if p.published_at is not None]
    if not dates:
        return None
    return min(dates), max(dates)


def _first(sources: List[DataSource], origin: str) -> Optional[DataSource]:
    for s in sources:
        if s.origin == origin:
            return s
    return None


def _agreement_credit(values: List[float]) -> Optional[float]:
    """Credit for the first two positive values; None when fewer than two."""
    if len(values) < 2:
        return None
    variance = relative_variance(values[0], values[1])
    if variance < settings.DQ_TIGHT_VARIANCE:
        return 1.0
    elif variance < settings.DQ_LOOSE_VARIANCE:
        return 0.5
    return 0.0


# ─── Scoring ─────────────────────────────────────────────────────────────────


def calculate_confidence_score(sources: List[DataSource]) -> float:
    score = 0.0

    if len(sources) >= 2:
        score += settings.DQ_WEIGHT_SOURCES

    followers = [s.followers for s in sources if s.followers and s.followers > 0]
    credit = _agreement_credit(followers)
    if credit is not None:
        score += settings.DQ_WEIGHT_FOLLOWERS * credit
    elif len(followers) == 1:
        score += settings.DQ_WEIGHT_FOLLOWERS * settings.DQ_SINGLE_SOURCE_CREDIT

    posts = [s.posts for s in sources if s.posts and s.posts > 0]
    credit = _agreement_credit(posts)
    if credit is not None:
        score += settings.DQ_WEIGHT_POSTS * credit

    data_points = max([s.data_points or 0 for s in sources], default=0)
    if data_points >= 50:
        score += settings.DQ_WEIGHT_DATA_POINTS
    elif data_points >= 20:
        score += settings.DQ_WEIGHT_DATA_POINTS * 0.7
    elif data_points >= 10:
        score += settings.DQ_WEIGHT_DATA_POINTS * 0.4

    if any(s.date_range for s in sources):
        score += settings.DQ_WEIGHT_DATE_RANGE

    return min(100.0, max(0.0, score))


# ─── Merging ─────────────────────────────────────────────────────────────────


def merge_sources(sources: List[DataSource]) -> MergedData:
    """
    Scraper wins for followers, total post count and engagement.
    The primary API wins for analysed post count and dated frequency.
    """
    api = _first(sources, PRIMARY_API)
    scraper = _first(sources, SCRAPER)

    followers = (scraper and scraper.followers) or (api and api.followers) or 0
    estimated_total = (scraper and scraper.posts) or None
    analysed = (api and api.data_points) or 0
    posts = estimated_total or analysed

    avg_per_day = 0.0
    if api and api.date_range:
        oldest, newest = api.date_range
        days = max(1, math.ceil((newest - oldest).total_seconds() / 86400))
        avg_per_day = analysed / days
    elif estimated_total:
        avg_per_day = estimated_total / settings.FALLBACK_ACCOUNT_AGE_DAYS

    engagement = (scraper and scraper.engagement) or (api and api.engagement) or 0.0

    return MergedData(
        followers=int(followers),
        posts=int(posts),
        avg_post_per_day=round(avg_per_day, 2),
        engagement=engagement,
        data_points_analyzed=int(analysed),
        estimated_total_posts=estimated_total,
    )


# ─── Issues & Recommendations ────────────────────────────────────────────────


def identify_issues(sources: List[DataSource], merged: MergedData) -> List[str]:
    issues: List[str] = []

    if len(sources) == 1:
        issues.append(
            f"Data comes from a single source ({sources[0].origin}); "
            "cross-validate with a second source."
        )

    followers = [s.followers for s in sources if s.followers and s.followers > 0]
    if len(followers) >= 2:
        variance = relative_variance(followers[0], followers[1])
        if variance > settings.DQ_LOOSE_VARIANCE:
            issues.append(
                f"Follower counts disagree between sources (variance {variance * 100:.1f}%); "
                "follower data may be inaccurate."
            )

    n = merged.data_points_analyzed
    if n < 10:
        issues.append(f"Only {n} posts analysed; at least 20 are needed for a reliable analysis.")
    elif n < 20:
        issues.append(f"Only {n} posts analysed; 50 or more are recommended.")

    api = _first(sources, PRIMARY_API)
    if not (api and api.date_range) and merged.avg_post_per_day > 0:
        issues.append(
            f"Posting frequency is estimated from a {settings.FALLBACK_ACCOUNT_AGE_DAYS}-day "
            "account-age assumption, not from actual publish dates."
        )

    if merged.posts < 5:
        issues.append(
            f"Total post count is very low ({merged.posts}); "
            "the account may be new or collection failed."
        )

    if merged.estimated_total_posts and merged.data_points_analyzed:
        coverage = merged.data_points_analyzed / merged.estimated_total_posts
        if coverage < 0.1:
            issues.append(
                f"Only {coverage * 100:.1f}% of all posts were analysed "
                f"({merged.data_points_analyzed}/{merged.estimated_total_posts}); "
                "low coverage may bias the results."
            )

    return issues


def generate_recommendations(score: float, merged: MergedData) -> List[str]:
    recs: List[str] = []

    if score < 40:
        recs.append("⚠️ Data quality is VERY LOW. Treat AI recommendations as unreliable.")
        recs.append("🔧 Action: verify manually or add another data source.")
    elif score < 60:
        recs.append("⚠️ Data quality is LOW. Use AI recommendations with caution.")
        recs.append("🔧 Action: cross-check with the platforms' native analytics.")
    elif score < 80:
        recs.append("✅ Data quality is FAIR. AI recommendations work as initial guidance.")
        recs.append("🔍 Validate before making important strategic decisions.")
    else:
        recs.append("✅ Data quality is HIGH. AI recommendations are reliable and actionable.")

    if merged.data_points_analyzed < 20:
        recs.append("📊 Extend the collection period to gather more posts (20-50 minimum).")

    if not merged.estimated_total_posts:
        recs.append("🔍 Enable profile scraping to get accurate follower and total post counts.")

    return recs


# ─── Entry Point ─────────────────────────────────────────────────────────────


def validate_data_quality(sources: List[DataSource]) -> DataQualityReport:
    score = calculate_confidence_score(sources)
    merged = merge_sources(sources)
    issues = identify_issues(sources, merged)
    recommendations = generate_recommendations(score, merged)

    report = DataQualityReport(
        confidence=confidence_tier(score),
        confidence_score=score,
        issues=issues,
        recommendations=recommendations,
        merged_data=merged,
    )
    if report.confidence in (LOW, VERY_LOW):
        logger.warning(
            f"Low data confidence ({report.confidence}, {score:.1f}): {'; '.join(issues)}"
        )
    return report
