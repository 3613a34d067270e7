"""
Voice analysis tests (own vs earned voice).
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
import pytest

from agents.voice import (
    UNAVAILABLE_INSIGHT, VoiceAnalysisAgent, analyze_earn_voice, analyze_own_voice,
    brand_handle_set, calculate_voice_metrics, classify_sentiment, is_earned_mention,
)
from models.schemas import BrandAnalysisData, BrandInput, PlatformSnapshot, RawPost
from providers.mock import MockSocialDataClient


@pytest.fixture
def brand():
    return BrandInput(
        name="Aqua Segar",
        handles={"instagram": "@aquasegar", "tiktok": "aquasegar.id", "twitter": "  "},
        is_focus=True,
    )


@pytest.fixture
def platforms():
    return {
        "instagram": PlatformSnapshot(platform="instagram", followers=100_000, posts=20, engagement=2.0),
        "tiktok": PlatformSnapshot(platform="tiktok", followers=50_000, posts=10, engagement=4.0),
    }


def _mention(text, author="fan", likes=10, followers=0):
    return RawPost(platform="twitter", text=text, author=author, likes=likes, author_followers=followers)


class TestOwnVoice:
    def test_totals(self, platforms):
        own = analyze_own_voice(platforms)
        # 100000 * 2% * 20 + 50000 * 4% * 10
        assert own.total_engagement == 40_000 + 20_000
        assert own.total_posts == 30
        assert own.total_reach == 150_000
        assert own.avg_engagement_per_post == 2000
        assert [p.platform for p in own.platforms] == ["instagram", "tiktok"]

    def test_no_posts(self):
        assert analyze_own_voice({}).avg_engagement_per_post == 0


class TestEarnFilter:
    def test_handle_set(self, brand):
        assert brand_handle_set(brand) == {"aquasegar", "aquasegar.id"}

    def test_brand_account_is_never_earned(self, brand):
        handles = brand_handle_set(brand)
        own_post = _mention("Aqua Segar is the best!", author="@AquaSegar")
        variant = _mention("Aqua Segar giveaway", author="aquasegar_official")
        assert not is_earned_mention(own_post, brand.name, handles)
        assert not is_earned_mention(variant, brand.name, handles)

    def test_requires_brand_name_in_text(self, brand):
        handles = brand_handle_set(brand)
        assert is_earned_mention(_mention("loving aqua segar today"), brand.name, handles)
        assert not is_earned_mention(_mention("#aquasegar"), brand.name, handles)


class TestSentiment:
    @pytest.mark.parametrize("text,label", [
        ("I love it, the best", "positive"),
        ("bad and awful", "negative"),
        ("good but bad", "neutral"),
        ("just bought one", "neutral"),
        ("goodness me", "neutral"),
        ("rasanya mantap", "positive"),
    ])
    def test_hit_counts(self, text, label):
        assert classify_sentiment(text) == label


class TestVoiceMetrics:
    def test_earn_voice_aggregation(self, brand):
        mentions = [
            _mention("Aqua Segar is great", author="sarah", likes=100, followers=5000),
            _mention("Aqua Segar is bad", author="sarah", likes=50, followers=6000),
            _mention("Aqua Segar again", author="budi", likes=10),
            _mention("Aqua Segar promo", author="aquasegar", likes=999),
        ]
        earn = analyze_earn_voice(mentions, brand)
        assert earn.total_mentions == 3
        assert earn.total_engagement == 160
        assert earn.total_reach == 5000 + 6000 + 10 * 10
        assert earn.sentiment == {"positive": 1, "neutral": 1, "negative": 1}
        assert earn.top_mentioners[0].author == "sarah"
        assert earn.top_mentioners[0].mentions == 2
        assert earn.top_mentioners[0].followers == 6000
        assert earn.avg_engagement_per_mention == 53

    def test_ratios(self, brand, platforms):
        mentions = [_mention("Aqua Segar", likes=6000) for _ in range(15)]
        metrics = calculate_voice_metrics(platforms, mentions, brand)
        assert metrics.voice_ratio == 0.5
        assert metrics.amplification_factor == 1.5

    def test_zero_denominators(self, brand):
        metrics = calculate_voice_metrics({}, [_mention("Aqua Segar")], brand)
        assert metrics.voice_ratio == 0.0
        assert metrics.amplification_factor == 0.0


class TestVoiceAnalysisAgent:
    def test_runs_against_mock_provider(self, brand, platforms):
        client = MockSocialDataClient([brand])
        agent = VoiceAnalysisAgent(client)
        results = asyncio.run(agent.run([BrandAnalysisData(brand=brand, platforms=platforms)]))

        assert len(results) == 1
        result = results[0]
        assert result.brand == "Aqua Segar"
        assert result.insights
        assert {c["platform"] for c in client.calls} == {"instagram", "tiktok", "twitter", "news"}
        assert all(c["query"].startswith('"Aqua Segar"') for c in client.calls)
        assert result.metrics.earn_voice.total_mentions > 0

    def test_failure_yields_zeroed_metrics(self, brand, platforms):
        class Broken:
            async def fetch_many(self, platforms, query):
                raise RuntimeError("provider down")

        agent = VoiceAnalysisAgent(Broken())
        results = asyncio.run(agent.run([BrandAnalysisData(brand=brand, platforms=platforms)]))
        assert results[0].insights == UNAVAILABLE_INSIGHT
        assert results[0].metrics.voice_ratio == 0.0
        assert results[0].metrics.own_voice.total_posts == 0
