"""
Repository helpers for analysis sessions, results and the profile cache.

All writes go through `get_db`, so each helper is one transaction.
"""

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from db.database import get_db
from db.models import (
    AnalysisSession, Brand, BrandData, AnalysisResult, ProfileCacheEntry,
    SESSION_PENDING, SESSION_COMPLETED,
)
from models.schemas import BrandInput, ComparativeReport, ProfileStats

logger = logging.getLogger(__name__)

HANDLE_COLUMNS = {
    "instagram": "instagram_handle",
    "tiktok": "tiktok_handle",
    "twitter": "twitter_handle",
    "youtube": "youtube_handle",
    "facebook": "facebook_handle",
}

# report field -> AnalysisResult column
RESULT_COLUMNS = {
    "brandEquityData": "brand_equity_data",
    "audienceComparison": "audience_comparison",
    "postChannelData": "post_channel_data",
    "hashtagAnalysis": "hashtag_analysis",
    "postTypeEngagement": "post_type_engagement",
    "postTimingData": "post_timing_data",
    "keywordClustering": "keyword_clustering",
    "voiceAnalysis": "voice_analysis",
    "shareOfVoice": "share_of_voice",
    "additionalMetrics": "additional_metrics",
    "dataQualityReport": "data_quality_report",
}

SessionFactory = Callable[[], Session]


class SessionNotFoundError(LookupError):
    pass


def _to_brand_input(brand: Brand) -> BrandInput:
    handles = {
        platform: getattr(brand, column)
        for platform, column in HANDLE_COLUMNS.items()
        if getattr(brand, column)
    }
    return BrandInput(
        name=brand.name,
        handles=handles,
        website=brand.website,
        is_focus=brand.role == "focus",
        brand_id=brand.brand_id,
    )


def create_session(
    title: str,
    focus: BrandInput,
    competitors: Iterable[BrandInput] = (),
    universe_keywords: Optional[str] = None,
    factory: Optional[SessionFactory] = None,
) -> int:
    """Insert a pending session with its focus brand and ordered competitors."""
    with get_db(factory) as db:
        session = AnalysisSession(
            title=title, status=SESSION_PENDING, universe_keywords=universe_keywords,
        )
        for position, (brand, role) in enumerate(
            [(focus, "focus")] + [(c, "competitor") for c in competitors]
        ):
            row = Brand(role=role, position=position, name=brand.name, website=brand.website)
            for platform, column in HANDLE_COLUMNS.items():
                setattr(row, column, brand.handle_for(platform))
            session.brands.append(row)
        db.add(session)
        db.flush()
        session_id = session.session_id
    logger.info(f"📝 Created analysis session {session_id}: {title}")
    return session_id


def load_session(
    session_id: int, factory: Optional[SessionFactory] = None
) -> Tuple[Optional[BrandInput], List[BrandInput], Optional[str]]:
    """(focus brand, competitors in order, universe keywords) for a session."""
    with get_db(factory) as db:
        session = db.get(AnalysisSession, session_id)
        if session is None:
            raise SessionNotFoundError(f"Analysis session {session_id} not found")
        focus = session.focus_brand
        return (
            _to_brand_input(focus) if focus else None,
            [_to_brand_input(b) for b in session.competitors],
            session.universe_keywords,
        )


def get_status(session_id: int, factory: Optional[SessionFactory] = None) -> Optional[str]:
    with get_db(factory) as db:
        session = db.get(AnalysisSession, session_id)
        return session.status if session else None


def set_status(session_id: int, status: str, factory: Optional[SessionFactory] = None) -> None:
    with get_db(factory) as db:
        session = db.get(AnalysisSession, session_id)
        if session is None:
            raise SessionNotFoundError(f"Analysis session {session_id} not found")
        session.status = status
        if status == SESSION_COMPLETED:
            session.completed_at = datetime.utcnow()
    logger.info(f"  Session {session_id} -> {status}")


def save_result(report: ComparativeReport, factory: Optional[SessionFactory] = None) -> int:
    """
    Write the report blobs, the per-platform brand snapshots and the
    completed status in a single transaction. Re-running a session
    replaces its previous result row.
    """
    blobs = report.to_blobs()
    with get_db(factory) as db:
        session = db.get(AnalysisSession, report.session_id)
        if session is None:
            raise SessionNotFoundError(f"Analysis session {report.session_id} not found")

        result = session.result or AnalysisResult(session_id=report.session_id)
        for field_name, column in RESULT_COLUMNS.items():
            setattr(result, column, json.dumps(blobs[field_name], default=str))
        result.ai_insights = report.ai_insights
        result.ai_keyword_insights = report.ai_keyword_insights
        result.created_at = report.created_at
        db.add(result)

        for analysis in report.brand_data:
            if analysis.brand.brand_id is None:
                continue
            for platform, snap in analysis.platforms.items():
                db.add(BrandData(
                    brand_id=analysis.brand.brand_id,
                    platform=platform,
                    raw_data=json.dumps([p.raw for p in snap.raw_posts], default=str),
                    scraped_data=json.dumps(snap.to_dict(), default=str),
                    follower_count=snap.followers,
                    post_count=snap.posts,
                    engagement_rate=snap.engagement,
                    avg_post_per_day=snap.avg_post_per_day,
                ))

        session.status = SESSION_COMPLETED
        session.completed_at = datetime.utcnow()
        db.flush()
        result_id = result.result_id
    logger.info(f"💾 Saved result {result_id} for session {report.session_id}")
    return result_id


def load_result_fields(
    session_id: int,
    fields: Optional[Iterable[str]] = None,
    factory: Optional[SessionFactory] = None,
) -> Optional[Dict[str, Any]]:
    """Decoded report fields for a session; None when there is no result yet."""
    wanted = list(fields) if fields else list(RESULT_COLUMNS) + ["aiInsights", "aiKeywordInsights"]
    with get_db(factory) as db:
        result = db.query(AnalysisResult).filter_by(session_id=session_id).first()
        if result is None:
            return None
        out: Dict[str, Any] = {}
        for name in wanted:
            if name == "aiInsights":
                out[name] = result.ai_insights
            elif name == "aiKeywordInsights":
                out[name] = result.ai_keyword_insights
            elif name in RESULT_COLUMNS:
                raw = getattr(result, RESULT_COLUMNS[name])
                out[name] = json.loads(raw) if raw else None
            else:
                raise KeyError(f"Unknown report field: {name}")
        return out


# ─── Profile cache ───────────────────────────────────────────────────────────


class SqlProfileCache:
    """Profile counts keyed by (platform, username), valid for `ttl_hours`."""

    def __init__(self, factory: Optional[SessionFactory] = None, ttl_hours: float = 6):
        self.factory = factory
        self.ttl = timedelta(hours=ttl_hours)

    def get(self, platform: str, username: str) -> Optional[ProfileStats]:
        with get_db(self.factory) as db:
            entry = (
                db.query(ProfileCacheEntry)
                .filter_by(platform=platform, username=username)
                .first()
            )
            if entry is None or datetime.utcnow() - entry.scraped_at > self.ttl:
                return None
            return ProfileStats(
                platform=entry.platform,
                username=entry.username,
                followers=entry.followers or 0,
                following=entry.following or 0,
                posts=entry.posts or 0,
                engagement=entry.engagement,
                source="cache",
                scraped_at=entry.scraped_at,
            )

    def put(self, stats: ProfileStats) -> None:
        with get_db(self.factory) as db:
            entry = (
                db.query(ProfileCacheEntry)
                .filter_by(platform=stats.platform, username=stats.username)
                .first()
            ) or ProfileCacheEntry(platform=stats.platform, username=stats.username)
            entry.followers = stats.followers
            entry.following = stats.following
            entry.posts = stats.posts
            entry.engagement = stats.engagement
            entry.source = stats.source
            entry.scraped_at = datetime.utcnow()
            db.add(entry)
