#!/usr/bin/env python3
"""
Quick CLI runner for the Brand Social Comparative Analytics pipeline.

Usage:
    python run.py                                   # Demo with mock providers
    python run.py --mode demo                       # Demo pipeline run
    python run.py --mode init-db                    # Create database tables
    python run.py --mode analyze --session-id 12    # Analyse a stored session
    python run.py --mode export --session-id 12 --fields brandEquityData,shareOfVoice
"""

import sys
import os
import argparse
import asyncio
import json
import logging

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config.settings import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("run")


DEMO_FOCUS = {
    "name": "Aqua Segar",
    "handles": {"instagram": "aquasegar", "tiktok": "aquasegar.id",
                "twitter": "AquaSegarID", "youtube": "AquaSegar"},
}
DEMO_COMPETITORS = [
    {"name": "Crystalin", "handles": {"instagram": "crystalin_id", "tiktok": "crystalin"}},
    {"name": "Vit Fresh", "handles": {"instagram": "vitfresh", "facebook": "VitFreshOfficial"}},
]


def demo():
    """Run the full pipeline against mock providers and an in-memory database."""
    from agents.orchestrator import ComparativeAnalysisOrchestrator
    from db.database import init_db, make_engine, make_session_factory
    from db.repository import create_session
    from models.schemas import BrandInput
    from providers.mock import MockProfileScraper, MockSocialDataClient, MockTextGenerationClient

    engine = make_engine("sqlite:///:memory:")
    init_db(engine)
    factory = make_session_factory(engine)

    focus = BrandInput(is_focus=True, **DEMO_FOCUS)
    competitors = [BrandInput(**c) for c in DEMO_COMPETITORS]
    session_id = create_session("Demo: bottled water", focus, competitors, factory=factory)

    print("\n" + "="*70)
    print("  📈 BRAND SOCIAL COMPARATIVE ANALYTICS — DEMO RUN")
    print("="*70 + "\n")

    orchestrator = ComparativeAnalysisOrchestrator(
        social_client=MockSocialDataClient([focus] + competitors),
        profile_scraper=MockProfileScraper(),
        text_client=MockTextGenerationClient(focus=focus.name),
        session_factory=factory,
    )

    print("🤖 Running pipeline...\n")
    report = asyncio.run(orchestrator.run(session_id))
    print(orchestrator.summary())

    print("\n" + "─"*70)
    print("  🏆 BRAND EQUITY")
    print("─"*70)
    for row in sorted(report.brand_equity, key=lambda r: r["equityScore"], reverse=True):
        flag = "🎯" if row["brand"] == focus.name else "  "
        print(
            f"{flag} {row['brand']:<15} equity {row['equityScore']:5.1f} | "
            f"followers {row['totalFollowers']:>10,} | engagement {row['avgEngagement']:5.2f}% | "
            f"velocity {row['contentVelocity']:.2f}/day"
        )

    sov = report.share_of_voice
    if sov is not None:
        print("\n" + "─"*70)
        print(f"  📣 SHARE OF VOICE ({sov.total_universe_conversations} conversations)")
        print("─"*70)
        for share in sov.brands:
            print(f"   {share.brand:<15} {share.share_percentage:5.1f}%  ({share.mentions} mentions)")

    print("\n" + "─"*70)
    print("  🗣️  VOICE")
    print("─"*70)
    for voice in report.voice_analysis:
        m = voice.metrics
        print(
            f"   {voice.brand:<15} ratio {m.voice_ratio:.2f} | amplification "
            f"{m.amplification_factor:.2f} | sentiment {m.earn_voice.sentiment}"
        )

    print("\n" + "─"*70)
    print("  💡 INSIGHTS")
    print("─"*70)
    print(report.ai_insights)

    print("\n" + "="*70)
    print(f"  ✅ Analysis complete! {len(report.keyword_clustering)} keyword analyses produced")
    print("="*70 + "\n")


async def analyze(session_id: int):
    """Run the live pipeline for a stored session."""
    from agents.orchestrator import ComparativeAnalysisOrchestrator
    from db.repository import SqlProfileCache
    from providers.browser import BrowserSession
    from providers.profile_scraper import ProfileScraper
    from providers.social_api import SocialDataClient
    from providers.text_generation import TextGenerationClient

    browser = BrowserSession()
    social = SocialDataClient()
    scraper = ProfileScraper(
        cache=SqlProfileCache(ttl_hours=settings.PROFILE_CACHE_TTL_HOURS), browser=browser,
    )
    text = TextGenerationClient()
    orchestrator = ComparativeAnalysisOrchestrator(
        social_client=social, profile_scraper=scraper, text_client=text, browser=browser,
    )
    try:
        report = await orchestrator.run(session_id)
    finally:
        await social.close()
        await scraper.close()
        await text.close()
    print(orchestrator.summary())
    print(json.dumps(report.brand_equity, indent=2))


def export(session_id: int, fields):
    from db.repository import load_result_fields

    result = load_result_fields(session_id, fields)
    if result is None:
        print(f"❌ No result stored for session {session_id}")
        sys.exit(1)
    print(json.dumps(result, indent=2, default=str, ensure_ascii=False))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Brand Social Comparative Analytics")
    parser.add_argument(
        "--mode",
        choices=["demo", "init-db", "analyze", "export"],
        default="demo",
        help="Run mode: demo | init-db | analyze | export",
    )
    parser.add_argument("--session-id", type=int, help="Analysis session id (analyze, export)")
    parser.add_argument(
        "--fields",
        help="Comma-separated report fields to export (default: all)",
    )
    args = parser.parse_args()

    if args.mode in ("analyze", "export") and args.session_id is None:
        parser.error(f"--session-id is required for --mode {args.mode}")

    if args.mode == "demo":
        demo()
    elif args.mode == "init-db":
        from db.database import init_db
        init_db()
    elif args.mode == "analyze":
        asyncio.run(analyze(args.session_id))
    elif args.mode == "export":
        fields = [f.strip() for f in args.fields.split(",") if f.strip()] if args.fields else None
        export(args.session_id, fields)
