"""
Insight generation tests (prompt building, formatting, degradation).
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
import pytest

from agents.data_quality import validate_data_quality
from agents.insights import (
    InsightAgent, InsightRequest, build_strategic_qualification_prompt, clean_markdown,
    data_quality_warnings, structure_insights,
)
from models.schemas import (
    BrandAnalysisData, BrandInput, BrandKeywordAnalysis, DataSource, KeywordCluster,
    PlatformSnapshot, TopKeyword, PRIMARY_API,
)
from providers.mock import MockTextGenerationClient


EQUITY_ROWS = [
    {"brand": "Aqua", "totalFollowers": 400000, "avgEngagement": 3.0,
     "contentVelocity": 1.5, "equityScore": 59.0},
]


@pytest.fixture
def sparse_brand():
    report = validate_data_quality([DataSource(origin=PRIMARY_API, posts=5, data_points=5)])
    return BrandAnalysisData(
        brand=BrandInput(name="Aqua"),
        platforms={"instagram": PlatformSnapshot(platform="instagram", data_quality=report)},
    )


@pytest.fixture
def keyword_analysis():
    return BrandKeywordAnalysis(
        brand="Aqua", platform="instagram", total_posts=12,
        top_keywords=[TopKeyword("promo", 5, 120.0)],
        clusters=[KeywordCluster(0, "promo", ("promo", "diskon"), 5, 120.0, "Promotions & Offers")],
        conversation_themes=["Promotions & Offers"],
    )


@pytest.fixture
def request_for(sparse_brand, keyword_analysis):
    def build(with_keywords=True):
        return InsightRequest(
            focus_brand="Aqua",
            competitors=["Crystalin"],
            tables={"brandEquityData": EQUITY_ROWS},
            brand_data=[sparse_brand],
            keyword_analyses=[keyword_analysis] if with_keywords else [],
        )
    return build


class TestFormatting:
    def test_clean_markdown(self):
        text = "## Title\n**bold** and *italic*\n\n\n\nend"
        assert clean_markdown(text) == "Title\nbold and italic\n\nend"

    def test_structure_insights(self):
        raw = "## Findings:\n- one\n2. two\nplain line\nWhat next?\n2024 was strong"
        assert structure_insights(raw) == (
            "📌 Findings:\n   - one\n   2. two\nplain line\n\n📌 What next?\n2024 was strong"
        )


class TestWarnings:
    def test_low_quality_and_few_posts(self, sparse_brand):
        warnings = data_quality_warnings([sparse_brand])
        assert any("data quality VERY_LOW" in w for w in warnings)
        assert any("do NOT make specific posting-frequency recommendations" in w for w in warnings)

    def test_warnings_reach_qualification_prompt(self, sparse_brand):
        prompt = build_strategic_qualification_prompt(
            "draft", EQUITY_ROWS, "Aqua", data_quality_warnings([sparse_brand])
        )
        assert "DATA QUALITY WARNINGS" in prompt
        assert "Aqua: followers 400,000" in prompt


class TestInsightAgent:
    def test_draft_then_qualify(self, request_for):
        client = MockTextGenerationClient(focus="Aqua")
        strategic, keyword = asyncio.run(InsightAgent(client).run(request_for()))

        assert len(client.prompts) == 4
        assert "DATA QUALITY WARNINGS" in client.prompts[1]
        assert 'Cluster "promo"' in client.prompts[2]
        assert strategic.startswith("📌 Key Findings:")
        assert "**" not in strategic
        assert keyword

    def test_keyword_insights_skipped_without_clusters(self, request_for):
        client = MockTextGenerationClient()
        _, keyword = asyncio.run(InsightAgent(client).run(request_for(with_keywords=False)))
        assert keyword == ""
        assert len(client.prompts) == 2

    def test_failure_returns_placeholder(self, request_for):
        agent = InsightAgent(MockTextGenerationClient(fail=True), placeholder="n/a")
        strategic, keyword = asyncio.run(agent.run(request_for()))
        assert strategic == "n/a"
        assert keyword == "n/a"

    def test_disabled_client_skips_calls(self, request_for):
        client = MockTextGenerationClient(enabled=False)
        result = asyncio.run(InsightAgent(client, placeholder="n/a").execute(request_for()))
        assert result.success
        assert result.data == ("n/a", "")
        assert client.prompts == []
