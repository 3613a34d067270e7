"""
Brand Equity Agent
-------------------
Composite brand standing from reach, engagement and content velocity:

  ReachScore      = min(TotalFollowers / 500,000 * 100, 100)
  EngagementScore = min(AvgEngagement * 10, 100)
  ContentScore    = min(ContentVelocity / 2 * 100, 100)

  EquityScore = 0.4 * Reach + 0.4 * Engagement + 0.2 * Content

AvgEngagement is the follower-weighted mean of platform engagement rates
(plain mean when no platform reports followers). ContentVelocity is the
sum of avg posts/day across platforms. Each sub-score is clamped before
weighting, so the composite stays in [0, 100] and is monotonic in every input.

Also composes the cross-brand comparison tables.

Input:  BrandEquityRequest
Output: Dict[str, Any]  (one entry per comparison table)
"""

import logging
import numpy as np
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from agents.base import Agent
from config.settings import settings
from models.schemas import BrandAnalysisData, BrandEquityRow, PlatformSnapshot

logger = logging.getLogger(__name__)


@dataclass
class BrandEquityRequest:
    brand_data: List[BrandAnalysisData]
    focus_brand: str


# ─── Equity Formula ──────────────────────────────────────────────────────────


def weighted_engagement(platforms: List[PlatformSnapshot]) -> float:
    if not platforms:
        return 0.0
    followers = np.array([p.followers for p in platforms], dtype=float)
    rates = np.array([p.engagement for p in platforms], dtype=float)
    if followers.sum() > 0:
        return float(np.average(rates, weights=followers))
    return float(rates.mean())


def equity_score(
    total_followers: float,
    avg_engagement: float,
    content_velocity: float,
) -> Dict[str, float]:
    reach = min(total_followers / settings.EQUITY_FOLLOWER_BENCHMARK * 100, 100)
    engagement = min(avg_engagement * settings.EQUITY_ENGAGEMENT_SCALE, 100)
    content = min(content_velocity / settings.EQUITY_VELOCITY_BENCHMARK * 100, 100)
    score = (
        reach * settings.EQUITY_REACH_WEIGHT
        + engagement * settings.EQUITY_ENGAGEMENT_WEIGHT
        + content * settings.EQUITY_CONTENT_WEIGHT
    )
    return {
        "reach": reach,
        "engagement": engagement,
        "content": content,
        "equity": round(score, 1),
    }


def compute_brand_equity(brand: BrandAnalysisData) -> BrandEquityRow:
    platforms = list(brand.platforms.values())
    total_followers = sum(p.followers for p in platforms)
    avg_engagement = weighted_engagement(platforms)
    velocity = sum(p.avg_post_per_day for p in platforms)
    scores = equity_score(total_followers, avg_engagement, velocity)
    return BrandEquityRow(
        brand=brand.name,
        total_followers=total_followers,
        avg_engagement=round(avg_engagement, 2),
        content_velocity=round(velocity, 2),
        equity_score=scores["equity"],
        reach_score=scores["reach"],
        engagement_score=scores["engagement"],
        content_score=scores["content"],
    )


# ─── Comparison Tables ───────────────────────────────────────────────────────


def audience_comparison(brand_data: List[BrandAnalysisData]) -> List[Dict[str, Any]]:
    return [
        {
            "brand": b.name,
            "platforms": [
                {
                    "platform": name,
                    "followers": snap.followers,
                    "configured": snap.configured,
                    "dataAvailable": snap.data_available,
                }
                for name, snap in b.platforms.items()
            ],
        }
        for b in brand_data
    ]


def post_channel_data(brand_data: List[BrandAnalysisData]) -> List[Dict[str, Any]]:
    return [
        {
            "brand": b.name,
            "channels": [
                {
                    "platform": name,
                    "avgPostPerDay": snap.avg_post_per_day,
                    "totalPosts": snap.posts,
                    "configured": snap.configured,
                    "dataAvailable": snap.data_available,
                }
                for name, snap in b.platforms.items()
            ],
        }
        for b in brand_data
    ]


def hashtag_analysis(brand_data: List[BrandAnalysisData], limit: int = 15) -> List[Dict[str, Any]]:
    return [
        {
            "brand": b.name,
            "topHashtags": [tag for snap in b.platforms.values() for tag in snap.hashtags][:limit],
        }
        for b in brand_data
    ]


def post_type_engagement(brand_data: List[BrandAnalysisData]) -> List[Dict[str, Any]]:
    """Post types merged across platforms; avg engagement re-weighted by count."""
    table = []
    for b in brand_data:
        merged: Dict[str, Dict[str, Any]] = {}
        for platform, snap in b.platforms.items():
            for pt in snap.post_types:
                entry = merged.setdefault(pt.type, {"count": 0, "total": 0.0, "platforms": []})
                entry["count"] += pt.count
                entry["total"] += pt.avg_engagement * pt.count
                if platform not in entry["platforms"]:
                    entry["platforms"].append(platform)
        table.append({
            "brand": b.name,
            "postTypes": [
                {
                    "type": t.capitalize(),
                    "count": e["count"],
                    "avgEngagement": round(e["total"] / e["count"], 2) if e["count"] else 0.0,
                    "platforms": ", ".join(e["platforms"]),
                }
                for t, e in merged.items()
            ],
        })
    return table


def _timing_entry(b: BrandAnalysisData) -> Dict[str, Any]:
    return {
        "brand": b.name,
        "platforms": {
            name: [{"hour": h, "count": c} for h, c in enumerate(snap.post_times)]
            for name, snap in b.platforms.items()
        },
    }


def post_timing_data(brand_data: List[BrandAnalysisData], focus_brand: str) -> Dict[str, Any]:
    focus = next((b for b in brand_data if b.name == focus_brand), None)
    return {
        "focusBrand": _timing_entry(focus) if focus else None,
        "competitors": [_timing_entry(b) for b in brand_data if b.name != focus_brand],
    }


def additional_metrics(
    brand_data: List[BrandAnalysisData], analysis_date: Optional[datetime] = None
) -> Dict[str, Any]:
    analysis_date = analysis_date or datetime.now(timezone.utc)
    return {
        "totalBrandsAnalyzed": len(brand_data),
        "totalPlatforms": sum(len(b.platforms) for b in brand_data),
        "analysisDate": analysis_date.isoformat(),
        "dataRange": settings.ANALYSIS_WINDOW_LABEL,
    }


# ─── BrandEquityAgent ────────────────────────────────────────────────────────


class BrandEquityAgent(Agent):
    """
    Cross-brand composer: equity scores plus every comparison table.
    """

    def __init__(self):
        super().__init__(name="BrandEquityAgent")

    def run(self, request: BrandEquityRequest) -> Dict[str, Any]:
        rows = [compute_brand_equity(b) for b in request.brand_data]

        for row in sorted(rows, key=lambda r: r.equity_score, reverse=True):
            flag = "🎯" if row.brand == request.focus_brand else "  "
            self.logger.info(
                f"  {flag} [{row.brand:<25}] Equity={row.equity_score:5.1f} "
                f"Reach={row.reach_score:.1f} Eng={row.engagement_score:.1f} "
                f"Content={row.content_score:.1f}"
            )

        return {
            "audienceComparison": audience_comparison(request.brand_data),
            "postChannelData": post_channel_data(request.brand_data),
            "hashtagAnalysis": hashtag_analysis(request.brand_data),
            "postTypeEngagement": post_type_engagement(request.brand_data),
            "postTimingData": post_timing_data(request.brand_data, request.focus_brand),
            "brandEquityData": [r.to_dict() for r in rows],
            "additionalMetrics": additional_metrics(request.brand_data),
        }
