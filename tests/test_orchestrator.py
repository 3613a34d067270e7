"""
End-to-end orchestrator tests using the mock providers and in-memory SQLite.
Run with: python -m pytest tests/ -v
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
import pytest

from agents.orchestrator import ComparativeAnalysisOrchestrator, PersistenceError
from db import repository
from db.database import get_db, init_db, make_engine, make_session_factory
from db.models import AnalysisSession
from db.repository import SessionNotFoundError, create_session, get_status, load_result_fields
from models.schemas import BrandInput, REPORT_FIELDS
from providers.mock import MockProfileScraper, MockSocialDataClient, MockTextGenerationClient


class FakeBrowser:
    def __init__(self):
        self.closed = False

    async def close(self):
        self.closed = True


# ─── Fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture
def factory():
    engine = make_engine("sqlite:///:memory:")
    init_db(engine)
    return make_session_factory(engine)


@pytest.fixture
def focus():
    return BrandInput(
        name="Aqua Segar", is_focus=True,
        handles={"instagram": "aquasegar", "tiktok": "aquasegar.id", "youtube": "AquaSegar"},
    )


@pytest.fixture
def competitors():
    return [
        BrandInput(name="Crystalin", handles={"instagram": "crystalin_id", "twitter": "crystalin"}),
        BrandInput(name="Vit Fresh", handles={"facebook": "VitFreshOfficial"}),
    ]


@pytest.fixture
def session_id(factory, focus, competitors):
    return create_session("Water", focus, competitors, factory=factory)


@pytest.fixture
def build(factory, focus, competitors):
    def make(**overrides):
        options = dict(
            social_client=MockSocialDataClient([focus] + competitors),
            profile_scraper=MockProfileScraper(),
            text_client=MockTextGenerationClient(focus=focus.name),
            browser=FakeBrowser(),
            session_factory=factory,
        )
        options.update(overrides)
        return ComparativeAnalysisOrchestrator(**options)
    return make


# ─── Tests ───────────────────────────────────────────────────────────────────

class TestFullRun:
    def test_completes_and_persists_every_field(self, build, factory, session_id):
        orchestrator = build()
        report = asyncio.run(orchestrator.run(session_id))

        assert get_status(session_id, factory=factory) == "completed"
        assert orchestrator.browser.closed

        stored = load_result_fields(session_id, factory=factory)
        for field_name in REPORT_FIELDS:
            assert field_name in stored
        assert stored["brandEquityData"] == report.brand_equity
        assert stored["aiInsights"].startswith("📌")

    def test_brand_and_platform_layout(self, build, session_id):
        report = asyncio.run(build().run(session_id))
        names = [b.name for b in report.brand_data]
        assert names == ["Aqua Segar", "Crystalin", "Vit Fresh"]

        aqua = report.brand_data[0]
        assert list(aqua.platforms) == ["instagram", "tiktok", "youtube"]
        assert aqua.platforms["instagram"].data_available
        assert aqua.platforms["instagram"].followers > 0
        assert aqua.platforms["youtube"].followers > 0
        assert list(report.brand_data[2].platforms) == ["facebook"]

    def test_component_outputs(self, build, session_id):
        report = asyncio.run(build().run(session_id))

        assert [v.brand for v in report.voice_analysis] == ["Aqua Segar", "Crystalin", "Vit Fresh"]
        assert report.share_of_voice is not None
        assert [s.brand for s in report.share_of_voice.brands] == ["Aqua Segar", "Crystalin", "Vit Fresh"]
        for analysis in report.keyword_clustering:
            assert analysis.clusters
            assert all(c.post_count >= 3 for c in analysis.clusters)
        for row in report.brand_equity:
            assert 0 <= row["equityScore"] <= 100
        assert set(report.data_quality_report) == {"Aqua Segar", "Crystalin", "Vit Fresh"}
        assert "youtube" not in report.data_quality_report["Aqua Segar"]

    def test_deterministic_with_mocks(self, build, factory, focus, competitors):
        first = create_session("A", focus, competitors, factory=factory)
        second = create_session("B", focus, competitors, factory=factory)
        a = asyncio.run(build().run(first))
        b = asyncio.run(build().run(second))
        assert a.brand_equity == b.brand_equity
        assert [k.to_dict() for k in a.keyword_clustering] == [k.to_dict() for k in b.keyword_clustering]

    def test_brand_concurrency_keeps_order(self, build, session_id):
        report = asyncio.run(build(brand_concurrency=3).run(session_id))
        assert [b.name for b in report.brand_data] == ["Aqua Segar", "Crystalin", "Vit Fresh"]


class TestDegradation:
    def test_failed_platform_degrades_slice_only(self, build, factory, focus, competitors, session_id):
        client = MockSocialDataClient([focus] + competitors, failing_platforms={"tiktok"})
        report = asyncio.run(build(social_client=client).run(session_id))

        tiktok = report.brand_data[0].platforms["tiktok"]
        assert not tiktok.data_available
        assert tiktok.raw_posts == []
        assert report.brand_data[0].platforms["instagram"].data_available
        assert get_status(session_id, factory=factory) == "completed"

    def test_failed_fetch_without_profile_is_empty(self, build, focus, competitors, session_id):
        client = MockSocialDataClient([focus] + competitors, failing_platforms={"facebook"})
        report = asyncio.run(build(social_client=client).run(session_id))
        facebook = report.brand_data[2].platforms["facebook"]
        assert facebook.followers == 0
        assert not facebook.data_available

    def test_text_generation_failure_uses_placeholder(self, build, factory, session_id):
        report = asyncio.run(build(text_client=MockTextGenerationClient(fail=True)).run(session_id))
        assert report.ai_insights == "AI insights are unavailable for this analysis."
        assert get_status(session_id, factory=factory) == "completed"

    def test_share_of_voice_failure_is_tolerated(self, build, factory, session_id, monkeypatch):
        async def broken(self, keywords):
            raise RuntimeError("universe search down")

        monkeypatch.setattr("agents.share_of_voice.ShareOfVoiceAgent.fetch_universe", broken)
        orchestrator = build()
        report = asyncio.run(orchestrator.run(session_id))
        assert report.share_of_voice is None
        assert load_result_fields(session_id, ["shareOfVoice"], factory=factory) == {"shareOfVoice": None}
        assert any(not r.success for r in orchestrator.results)


class TestFatalErrors:
    def test_missing_session(self, build):
        orchestrator = build()
        with pytest.raises(SessionNotFoundError):
            asyncio.run(orchestrator.run(404))
        assert orchestrator.browser.closed

    def test_session_without_focus_brand_fails(self, build, factory):
        with get_db(factory) as db:
            session = AnalysisSession(title="empty")
            db.add(session)
            db.flush()
            empty_id = session.session_id

        with pytest.raises(SessionNotFoundError):
            asyncio.run(build().run(empty_id))
        assert get_status(empty_id, factory=factory) == "failed"

    def test_persistence_failure_marks_session_failed(self, build, factory, session_id, monkeypatch):
        def boom(report, factory=None):
            raise RuntimeError("disk full")

        monkeypatch.setattr(repository, "save_result", boom)
        orchestrator = build()
        with pytest.raises(PersistenceError):
            asyncio.run(orchestrator.run(session_id))
        assert get_status(session_id, factory=factory) == "failed"
        assert orchestrator.browser.closed
