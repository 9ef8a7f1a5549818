"""
End-to-end pipeline tests.
Run with: python -m pytest tests/ -v
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from agents.base import Agent, Orchestrator
from agents.generator import GenerationOptions
from config.settings import settings, ConfigurationError
from models.schemas import AppMetadata, Field, PrioritySignals, StrengthTier
from utils.pipeline import (
    audit_many, metadata_from_dict, run_audit, run_competitive_analysis, run_from_payload,
)


# ─── Fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture
def habit_app():
    return AppMetadata(
        app_id="habit",
        title="Habit Tracker",
        subtitle="Daily Goals",
        keywords="streaks,motivation",
    )


@pytest.fixture
def competitors():
    return [
        AppMetadata(app_id="comp_a", title="Offline Habit Journal", keywords="widget,streaks"),
        AppMetadata(app_id="comp_b", title="Offline Planner", subtitle="Habit Widget"),
        AppMetadata(app_id="comp_c", title="Goal Widget", keywords="offline,mood"),
    ]


# ─── Audit ───────────────────────────────────────────────────────────────────

class TestRunAudit:
    def test_title_only_app(self):
        result = run_audit(AppMetadata(app_id="med", title="Meditation Timer"))
        assert [c.text for c in result.classified] == ["meditation timer"]
        assert result.ranked[0].rank == 1
        assert result.ranked[0].classified.tier is StrengthTier.TITLE_CONSECUTIVE
        assert result.stats.coverage == 1.0

    def test_cross_field_tiers(self, habit_app):
        result = run_audit(habit_app)
        tiers = {c.text: c.tier for c in result.classified}
        assert tiers["habit streaks"] is StrengthTier.TITLE_KEYWORDS_CROSS
        assert tiers["daily streaks"] is StrengthTier.KEYWORDS_SUBTITLE_CROSS
        assert "timer meditation" not in tiers

    def test_ranked_matches_classified(self, habit_app):
        result = run_audit(habit_app, top_n=None)
        assert len(result.ranked) == len(result.classified)
        assert result.total_generated == len(result.classified)
        assert not result.limit_reached

    def test_signals_applied(self, habit_app):
        signals = {"daily streaks": PrioritySignals(demand=100, opportunity=100, trend=100, intent=100)}
        result = run_audit(habit_app, signals=signals)
        assert result.ranked[0].text == "daily streaks"
        assert result.ranked[0].score.data_quality == "complete"

    def test_empty_metadata(self):
        result = run_audit(AppMetadata(app_id="empty"))
        assert result.classified == []
        assert result.ranked == []
        assert result.total_generated == 0

    def test_hard_cap_propagates(self, habit_app):
        result = run_audit(habit_app, options=GenerationOptions(hard_cap=3))
        assert len(result.classified) == 3
        assert result.limit_reached
        assert result.total_generated > 3

    def test_invalid_weights_raise_directly(self, habit_app):
        with pytest.raises(ConfigurationError):
            run_audit(habit_app, weights={"strength": 1.0})

    def test_negative_top_n(self, habit_app):
        with pytest.raises(ConfigurationError):
            run_audit(habit_app, top_n=-1)

    def test_stage_failure_raises_runtime_error(self, habit_app, monkeypatch):
        def boom(*args, **kwargs):
            raise KeyError("stats")
        monkeypatch.setattr("agents.scorer.compute_audit_stats", boom)
        with pytest.raises(RuntimeError, match="Audit failed"):
            run_audit(habit_app)

    def test_phrase_helpers(self, habit_app):
        result = run_audit(habit_app)
        groups = result.by_length()
        assert all(c.length == n for n, items in groups.items() for c in items)
        assert sum(len(items) for items in groups.values()) == len(result.classified)
        streaks = result.containing("Streaks")
        assert streaks and all("streaks" in c.phrase.words for c in streaks)
        assert result.count_containing("streaks") == len(streaks)

    def test_summary(self, habit_app):
        text = run_audit(habit_app).summary()
        assert text.startswith("Audit [habit]:")
        assert "#" in text


# ─── Orchestrator ────────────────────────────────────────────────────────────

class _Upper(Agent):
    def __init__(self):
        super().__init__(name="Upper")

    def run(self, data):
        return data.upper()


class _Fail(Agent):
    def __init__(self):
        super().__init__(name="Fail")

    def run(self, data):
        raise ValueError("bad input")


class TestOrchestrator:
    def test_stages_chain(self):
        result = Orchestrator([_Upper(), _Upper()]).execute("habit")
        assert result.success
        assert result.data == "HABIT"

    def test_stops_on_failure(self):
        orchestrator = Orchestrator([_Upper(), _Fail(), _Upper()], name="audit")
        result = orchestrator.execute("habit")
        assert not result.success
        assert isinstance(result.exception, ValueError)
        assert len(orchestrator.run_history) == 2
        assert orchestrator.failed_stage == "Fail"
        assert orchestrator.summary().startswith("audit:")
        assert "FAILED" in orchestrator.summary()

    def test_no_stages_passes_input_through(self):
        orchestrator = Orchestrator([])
        result = orchestrator.execute("habit")
        assert result.success
        assert result.data == "habit"
        assert orchestrator.failed_stage is None

    def test_stage_named_in_runtime_error(self, habit_app, monkeypatch):
        def boom(*args, **kwargs):
            raise KeyError("stats")
        monkeypatch.setattr("agents.scorer.compute_audit_stats", boom)
        with pytest.raises(RuntimeError, match="at PriorityScoringAgent"):
            run_audit(habit_app)


# ─── Competitive analysis ────────────────────────────────────────────────────

class TestCompetitiveAnalysis:
    def test_missing_keyword_found(self, habit_app, competitors):
        analysis = run_competitive_analysis(habit_app, competitors)
        gap = next(g for g in analysis.gaps.missing_keywords if g.subject == "offline")
        assert gap.supporting_competitor_count == 3
        assert 0 <= gap.opportunity_score <= 100

    def test_competitor_order_preserved(self, habit_app, competitors):
        analysis = run_competitive_analysis(habit_app, competitors, max_workers=3)
        assert analysis.competitor_ids == ("comp_a", "comp_b", "comp_c")
        assert [p.app_id for p in analysis.profiles] == ["comp_a", "comp_b", "comp_c"]

    def test_threaded_matches_sequential(self, habit_app, competitors):
        threaded = run_competitive_analysis(habit_app, competitors, max_workers=4)
        sequential = run_competitive_analysis(habit_app, competitors, max_workers=1)
        assert threaded.gaps.to_dict() == sequential.gaps.to_dict()

    def test_gap_top_n(self, habit_app, competitors):
        analysis = run_competitive_analysis(habit_app, competitors, gap_top_n=2)
        assert len(analysis.gaps.missing_keywords) <= 2
        assert len(analysis.gaps.missing_phrases) <= 2

    def test_no_competitors(self, habit_app):
        analysis = run_competitive_analysis(habit_app, [])
        assert analysis.gaps.opportunities == []

    def test_too_many_competitors(self, habit_app):
        too_many = [
            AppMetadata(app_id=f"c{i}", title="Habit App")
            for i in range(settings.MAX_COMPETITORS + 1)
        ]
        with pytest.raises(ConfigurationError):
            run_competitive_analysis(habit_app, too_many)

    def test_single_word_target_title(self):
        analysis = run_competitive_analysis(
            AppMetadata(app_id="med", title="Meditation"),
            [AppMetadata(app_id="c", title="Meditation Timer")],
        )
        assert [g.subject for g in analysis.gaps.missing_keywords] == ["timer"]

    def test_capped_target_keeps_field_words(self):
        target = AppMetadata(
            app_id="calm",
            title="Calm Sleep Meditation Timer Pro",
            subtitle="Relax Breathe",
            keywords=",".join(f"kw{i}" for i in range(20)),
        )
        analysis = run_competitive_analysis(
            target,
            [AppMetadata(app_id="c", title="Relax Breathe")],
            options=GenerationOptions(hard_cap=50),
        )
        assert analysis.target.limit_reached
        assert "relax breathe" not in {c.text for c in analysis.target.classified}
        missing = [g.subject for g in analysis.gaps.missing_keywords]
        assert "relax" not in missing and "breathe" not in missing
        assert "relax breathe" not in [g.subject for g in analysis.gaps.missing_phrases]

    def test_audit_carries_fields(self, habit_app):
        result = run_audit(habit_app)
        assert result.fields[Field.TITLE].raw_words == ["habit", "tracker"]

    def test_audit_many_keeps_order(self, competitors):
        results = audit_many(competitors, max_workers=2)
        assert [r.app_id for r in results] == ["comp_a", "comp_b", "comp_c"]


# ─── Payload helpers ─────────────────────────────────────────────────────────

class TestPayload:
    def test_metadata_from_dict_nulls(self):
        metadata = metadata_from_dict({"appId": "123", "title": "Habit", "subtitle": None})
        assert metadata.app_id == "123"
        assert metadata.subtitle == ""
        assert metadata.keywords == ""

    def test_run_from_payload(self):
        analysis = run_from_payload({
            "target": {"app_id": "t", "title": "Habit Tracker"},
            "competitors": [{"app_id": "c", "title": "Offline Habit Tracker"}],
        })
        assert "offline" in [g.subject for g in analysis.gaps.missing_keywords]
