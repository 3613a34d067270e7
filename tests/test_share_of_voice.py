"""
Share-of-voice tests.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
import pytest

from agents.share_of_voice import (
    ShareOfVoiceAgent, ShareOfVoiceRequest, brand_pattern, compute_share_of_voice,
    deduplicate_conversations, detect_category, mentions_brand, parse_custom_keywords,
    resolve_universe_keywords,
)
from models.schemas import BrandInput, RawPost
from providers.mock import MockSocialDataClient


def _conv(text, platform="twitter", post_id=None):
    return RawPost(platform=platform, text=text, post_id=post_id)


@pytest.fixture
def universe():
    """100 conversations: Alpha in 40, Beta in 30, both in 10, Gamma in none."""
    convs = [_conv("alpha and beta together") for _ in range(10)]
    convs += [_conv("only alpha here", platform="instagram") for _ in range(30)]
    convs += [_conv("beta beta beta") for _ in range(20)]
    convs += [_conv("nothing relevant") for _ in range(40)]
    return convs


@pytest.fixture
def analysis(universe):
    return compute_share_of_voice(universe, ["Alpha", "Beta", "Gamma"], ["air minum"])


class TestUniverseKeywords:
    def test_category_detection(self):
        assert detect_category("Aqua Segar") == "water"
        assert detect_category("Kopiko") == "coffee"
        assert detect_category("Indomie") == "noodles"
        assert detect_category("Something Else") == "water"

    def test_custom_keywords_win(self):
        brands = [BrandInput(name="Kopiko")]
        assert resolve_universe_keywords(brands, " kopi , , latte ") == ["kopi", "latte"]
        assert "kopi" in resolve_universe_keywords(brands, None)

    def test_parse_custom_keywords(self):
        assert parse_custom_keywords("") == []
        assert parse_custom_keywords(None) == []


class TestMatching:
    def test_whole_words_case_insensitive(self):
        patterns = brand_pattern("Vit Fresh")
        assert mentions_brand("Just had a VIT, so fresh!", patterns)
        assert not mentions_brand("vitamin fresh", patterns)

    def test_regex_characters_are_literal(self):
        patterns = brand_pattern("A.B")
        assert mentions_brand("love a.b", patterns)
        assert not mentions_brand("love axb", patterns)

    def test_dedupe_by_id_then_url_then_text(self):
        convs = [
            _conv("one", post_id="1"), _conv("dup id", post_id="1"),
            _conv("same text"), _conv("same text"),
            RawPost(platform="news", text="a", url="u"), RawPost(platform="news", text="b", url="u"),
        ]
        assert [c.text for c in deduplicate_conversations(convs)] == ["one", "same text", "a"]


class TestShareOfVoice:
    def test_shares(self, analysis):
        alpha, beta, gamma = analysis.brands
        assert analysis.total_universe_conversations == 100
        assert alpha.share_percentage == pytest.approx(40.0)
        assert beta.share_percentage == pytest.approx(30.0)
        assert gamma.mentions == 0
        assert alpha.platforms == {"twitter": 10, "instagram": 30}

    def test_overlaps(self, analysis):
        assert [(o.brands, o.count) for o in analysis.overlaps] == [(["Alpha", "Beta"], 10)]

    def test_venn_universe_entry(self, analysis):
        venn = {tuple(v.sets): v for v in analysis.venn_data}
        assert venn[("Universe",)].size == 40
        assert venn[("Alpha",)].label == "Alpha\n40.0%"
        assert venn[("Alpha", "Beta")].label == "10 mentions"

    def test_overlap_never_exceeds_smaller_brand(self, analysis):
        mentions = {b.brand: b.mentions for b in analysis.brands}
        for overlap in analysis.overlaps:
            assert overlap.count <= min(mentions[b] for b in overlap.brands)
        for share in analysis.brands:
            assert 0 <= share.share_percentage <= 100

    def test_triple_overlap(self):
        convs = [_conv("alpha beta gamma"), _conv("alpha beta")]
        result = compute_share_of_voice(convs, ["Alpha", "Beta", "Gamma"], ["x"])
        counts = {tuple(o.brands): o.count for o in result.overlaps}
        assert counts[("Alpha", "Beta")] == 2
        assert counts[("Alpha", "Beta", "Gamma")] == 1

    def test_empty_universe(self):
        result = compute_share_of_voice([], ["Alpha"], ["x"])
        assert result.brands[0].share_percentage == 0.0
        assert result.venn_data[-1].sets == ["Alpha"]

    def test_insights_name_the_leader(self, analysis):
        assert "Alpha leads the conversation with 40.0% share of voice." in analysis.insights


class TestShareOfVoiceAgent:
    def test_fetches_each_keyword_on_every_platform(self):
        brands = [BrandInput(name="Aqua"), BrandInput(name="Crystalin")]
        client = MockSocialDataClient(brands)
        agent = ShareOfVoiceAgent(client)
        result = asyncio.run(agent.run(ShareOfVoiceRequest(brands, custom_keywords="air minum, hidrasi")))

        assert result.universe_keywords == ["air minum", "hidrasi"]
        assert len(client.calls) == 2 * 4
        assert result.total_universe_conversations > 0
        assert [b.brand for b in result.brands] == ["Aqua", "Crystalin"]

    def test_requires_brands(self):
        agent = ShareOfVoiceAgent(MockSocialDataClient())
        outcome = asyncio.run(agent.execute(ShareOfVoiceRequest(brands=[])))
        assert not outcome.success
        assert "No brands" in outcome.error
