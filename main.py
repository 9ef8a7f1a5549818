"""
Entry point for the ASO Keyword Combination Engine.

Usage:
  # Audit a sample app against three competitors and print the report:
  python main.py demo

  # Start the FastAPI server:
  python main.py api

  # Run tests:
  python main.py test
"""

from __future__ import annotations

import os
import sys
import logging

from config.settings import settings

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger("main")


def demo():
    """
    Audit a habit-tracker app against three competitors.
    Prints a formatted report to stdout.
    """
    from agents.scorer import format_breakdown, priority_band
    from agents.signals import KeywordPopularity, RankingObservation, build_signals
    from models.schemas import AppMetadata
    from utils.pipeline import run_audit, run_competitive_analysis

    logger.info("=== ASO Keyword Engine — Demo Run ===")

    target = AppMetadata(
        app_id="habit-pro",
        title="Habit Tracker Pro",
        subtitle="Daily Goals & Routine Planner",
        keywords="streaks,habits,reminder,journal,productivity,offline",
    )
    competitors = [
        AppMetadata(
            app_id="streaks-app",
            title="Streaks: Habit Tracker",
            subtitle="Build Daily Routines",
            keywords="offline,widget,reminder,goals,motivation",
        ),
        AppMetadata(
            app_id="routine-daily",
            title="Daily Routine & Habit Planner",
            subtitle="Offline Habit Journal",
            keywords="widget,streak,reminder,mood,motivation",
        ),
        AppMetadata(
            app_id="goal-keeper",
            title="Goal Keeper: Habit Widget",
            subtitle="Offline Mood Tracker",
            keywords="motivation,streak,planner,daily",
        ),
    ]

    popularity = {
        "habit": KeywordPopularity(popularity=72, intent=0.8),
        "tracker": KeywordPopularity(popularity=65, intent=0.7),
        "daily": KeywordPopularity(popularity=48, intent=0.4),
        "planner": KeywordPopularity(popularity=41, intent=0.6),
        "streaks": KeywordPopularity(popularity=30, intent=0.5),
    }
    rankings = {
        "habit tracker": RankingObservation(position=14, is_ranking=True, trend="up", position_change=6),
        "daily planner": RankingObservation(is_ranking=False, total_results=8000),
    }

    first_pass = run_audit(target, top_n=0)
    signals = build_signals([c.text for c in first_pass.classified], popularity, rankings)
    audit = run_audit(target, signals=signals, top_n=10)
    analysis = run_competitive_analysis(target, competitors, gap_top_n=5)

    # ── Print report ──────────────────────────────────────────────────────
    stats = audit.stats
    print("\n" + "=" * 70)
    print("  KEYWORD COMBINATION AUDIT")
    print("=" * 70)
    print(f"  App        : {audit.app_id}")
    print(f"  Tokens     : {stats.unique_tokens}")
    print(f"  Phrases    : {stats.total_phrases}"
          f"{' (capped)' if audit.limit_reached else ''}")
    print(f"  Coverage   : {stats.coverage:.1%} title-bearing")
    print(f"  Wasted     : {stats.wasted_chars} keyword-field chars")
    print("=" * 70)

    print("\n📊 FIELD USAGE")
    print("-" * 70)
    for usage in stats.field_usage:
        flag = "  ⚠️ over limit" if usage.over_limit else ""
        print(f"  {usage.field.label:<18} {usage.chars_used:>3}/{usage.max_chars:<3}{flag}")

    print("\n🏆 TOP PHRASES")
    print("-" * 70)
    for sp in audit.ranked:
        print(
            f"  #{sp.rank:<2} {sp.text:<32} tier={sp.classified.tier.level:<3} "
            f"priority={sp.score.value:5.1f} ({priority_band(sp.score.value)})"
        )
        if sp.classified.suggestion:
            print(f"      → {sp.classified.suggestion}")

    if audit.ranked:
        print("\n" + format_breakdown(audit.ranked[0].score))

    gaps = analysis.gaps
    print("\n⚠️  COMPETITOR GAPS")
    print("-" * 70)
    for label, items in (
        ("Missing keywords", gaps.missing_keywords),
        ("Missing phrases", gaps.missing_phrases),
        ("Frequency gaps", gaps.frequency_gaps),
    ):
        print(f"  {label}:")
        if not items:
            print("    none")
        for g in items:
            print(f"    {g.subject:<28} score={g.opportunity_score:5.1f}  {g.recommendation}")
    print("=" * 70)

    return analysis


def start_api():
    """Start the FastAPI server."""
    import uvicorn
    uvicorn.run("api.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=True)


def run_tests():
    """Run pytest."""
    import subprocess
    result = subprocess.run(
        ["pytest", "tests/", "-v", "--tb=short"],
        cwd=os.path.dirname(os.path.abspath(__file__)),
    )
    sys.exit(result.returncode)


if __name__ == "__main__":
    command = sys.argv[1] if len(sys.argv) > 1 else "demo"

    if command == "demo":
        demo()
    elif command == "api":
        start_api()
    elif command == "test":
        run_tests()
    else:
        print(f"Unknown command: {command}")
        print("Usage: python main.py [demo|api|test]")
        sys.exit(1)
