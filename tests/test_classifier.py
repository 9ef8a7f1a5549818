"""
Strength classifier tests.
Run with: python -m pytest tests/ -v
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from agents.classifier import (
    StrengthClassifier, StrengthClassifierAgent, classify, suggestion_for, tier_for,
)
from agents.generator import CombinationAgent
from agents.tokenizer import TokenizerAgent
from models.schemas import AppMetadata, Field, Phrase, StrengthTier


def _tier(text, **fields):
    return classify(Phrase.reference(text), **fields).tier


# ─── Fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture
def habit_classifier():
    return StrengthClassifier.from_texts(
        title_text="Habit Tracker Pro",
        subtitle_text="Daily Goals",
        keyword_text="streaks,motivation",
        promo_text="Build a morning routine",
    )


@pytest.fixture
def generation_output():
    metadata = AppMetadata(
        app_id="habit",
        title="Habit Tracker",
        subtitle="Daily Goals",
        keywords="streaks,motivation,habit",
    )
    tokenized = TokenizerAgent().run(metadata)
    return CombinationAgent().run(tokenized)


@pytest.fixture
def classification_output(generation_output):
    return StrengthClassifierAgent().run(generation_output)


# ─── Tier function ───────────────────────────────────────────────────────────

class TestTierFunction:
    @pytest.mark.parametrize("fields, consecutive, expected", [
        ({Field.TITLE}, True, StrengthTier.TITLE_CONSECUTIVE),
        ({Field.TITLE}, False, StrengthTier.TITLE_NON_CONSECUTIVE),
        ({Field.TITLE, Field.KEYWORDS}, False, StrengthTier.TITLE_KEYWORDS_CROSS),
        ({Field.TITLE, Field.SUBTITLE}, False, StrengthTier.TITLE_SUBTITLE_CROSS),
        ({Field.TITLE, Field.SUBTITLE, Field.KEYWORDS}, False, StrengthTier.TITLE_SUBTITLE_CROSS),
        ({Field.TITLE, Field.PROMO_TEXT}, False, StrengthTier.TITLE_SUBTITLE_CROSS),
        ({Field.KEYWORDS}, True, StrengthTier.KEYWORDS_CONSECUTIVE),
        ({Field.SUBTITLE}, True, StrengthTier.SUBTITLE_CONSECUTIVE),
        ({Field.SUBTITLE, Field.KEYWORDS}, False, StrengthTier.KEYWORDS_SUBTITLE_CROSS),
        ({Field.KEYWORDS}, False, StrengthTier.KEYWORDS_NON_CONSECUTIVE),
        ({Field.SUBTITLE}, False, StrengthTier.SUBTITLE_NON_CONSECUTIVE),
        ({Field.PROMO_TEXT}, True, StrengthTier.SUBTITLE_CONSECUTIVE),
        ({Field.SUBTITLE, Field.KEYWORDS, Field.PROMO_TEXT}, False, StrengthTier.THREE_WAY_CROSS),
        (set(), False, StrengthTier.MISSING),
    ])
    def test_tier_mapping(self, fields, consecutive, expected):
        assert tier_for(fields, consecutive) is expected

    def test_title_presence_dominates_field_count(self):
        with_title = tier_for({Field.TITLE, Field.SUBTITLE, Field.KEYWORDS}, False)
        without_title = tier_for({Field.SUBTITLE, Field.KEYWORDS}, False)
        assert with_title.ordinal < without_title.ordinal

    def test_tier_levels(self):
        assert StrengthTier.TITLE_KEYWORDS_CROSS.level == "2b"
        assert StrengthTier.THREE_WAY_CROSS.level == "7"
        assert StrengthTier.MISSING.ordinal == max(t.ordinal for t in StrengthTier)


# ─── Classification ──────────────────────────────────────────────────────────

class TestStrengthClassifier:
    def test_title_consecutive(self):
        result = classify(Phrase.reference("meditation timer"), title_text="Meditation Timer")
        assert result.tier is StrengthTier.TITLE_CONSECUTIVE
        assert not result.can_strengthen
        assert result.suggestion is None

    def test_title_keywords_cross(self):
        assert _tier(
            "habit streaks",
            title_text="Habit Tracker", subtitle_text="Daily Goals",
            keyword_text="streaks,motivation",
        ) is StrengthTier.TITLE_KEYWORDS_CROSS

    def test_keywords_subtitle_cross(self):
        assert _tier(
            "daily streaks",
            title_text="Habit Tracker", subtitle_text="Daily Goals",
            keyword_text="streaks,motivation",
        ) is StrengthTier.KEYWORDS_SUBTITLE_CROSS

    def test_title_non_consecutive(self, habit_classifier):
        result = habit_classifier.classify(Phrase.reference("habit pro"))
        assert result.tier is StrengthTier.TITLE_NON_CONSECUTIVE
        assert result.can_strengthen
        assert "consecutively in the title" in result.suggestion

    def test_reordered_title_words_not_consecutive(self):
        assert _tier("timer meditation", title_text="Meditation Timer") \
            is StrengthTier.TITLE_NON_CONSECUTIVE

    def test_keywords_consecutive(self, habit_classifier):
        result = habit_classifier.classify(Phrase.reference("streaks motivation"))
        assert result.tier is StrengthTier.KEYWORDS_CONSECUTIVE
        assert result.suggestion == "Move 'streaks motivation' to the title"

    def test_subtitle_consecutive(self, habit_classifier):
        assert habit_classifier.classify(Phrase.reference("daily goals")).tier \
            is StrengthTier.SUBTITLE_CONSECUTIVE

    def test_title_subtitle_cross_suggestion(self, habit_classifier):
        result = habit_classifier.classify(Phrase.reference("habit goals"))
        assert result.tier is StrengthTier.TITLE_SUBTITLE_CROSS
        assert result.suggestion == "Move 'goals' from the subtitle into the title"

    def test_three_fields_with_title(self, habit_classifier):
        assert habit_classifier.classify(Phrase.reference("habit daily streaks")).tier \
            is StrengthTier.TITLE_SUBTITLE_CROSS

    def test_three_fields_without_title(self, habit_classifier):
        assert habit_classifier.classify(Phrase.reference("daily streaks morning")).tier \
            is StrengthTier.THREE_WAY_CROSS

    def test_missing_word(self, habit_classifier):
        result = habit_classifier.classify(Phrase.reference("sleep sounds"))
        assert result.tier is StrengthTier.MISSING
        assert result.is_missing
        assert result.can_strengthen
        assert result.suggestion == "Not present in any field"
        assert result.phrase.fields_used == frozenset()

    def test_strongest_assembly_wins(self):
        assert _tier(
            "habit tracker", title_text="Habit Tracker", keyword_text="habit,tracker",
        ) is StrengthTier.TITLE_CONSECUTIVE

    def test_provenance_rederived_from_current_text(self):
        stale = Phrase("habit tracker", frozenset({Field.KEYWORDS}), True)
        result = classify(stale, title_text="Habit Tracker")
        assert result.tier is StrengthTier.TITLE_CONSECUTIVE
        assert result.phrase.fields_used == frozenset({Field.TITLE})

    def test_contiguous_across_stopword(self):
        assert _tier("timer for sleep", title_text="Timer for Sleep") \
            is StrengthTier.TITLE_CONSECUTIVE

    def test_only_title_consecutive_cannot_strengthen(self, habit_classifier):
        for text in ("habit tracker", "habit pro", "habit streaks", "daily goals"):
            result = habit_classifier.classify(Phrase.reference(text))
            assert result.can_strengthen == (result.tier is not StrengthTier.TITLE_CONSECUTIVE)

    def test_suggestion_none_only_for_tier_one(self):
        for tier in StrengthTier:
            suggestion = suggestion_for(tier, ["a"], {"a": Field.KEYWORDS})
            assert (suggestion is None) == (tier is StrengthTier.TITLE_CONSECUTIVE)


# ─── Agent ───────────────────────────────────────────────────────────────────

class TestStrengthClassifierAgent:
    def test_generated_phrases_are_never_missing(self, classification_output):
        assert classification_output.classified
        assert not any(c.is_missing for c in classification_output.classified)

    def test_classification_never_weaker_than_generated(
        self, generation_output, classification_output,
    ):
        generated = {p.text: p for p in generation_output.phrases}
        for c in classification_output.classified:
            p = generated[c.text]
            assert c.tier.ordinal <= tier_for(p.fields_used, p.is_consecutive).ordinal

    def test_tier_counts_sum(self, classification_output):
        assert sum(classification_output.tier_counts.values()) == \
            len(classification_output.classified)

    def test_to_dict(self, habit_classifier):
        d = habit_classifier.classify(Phrase.reference("habit streaks")).to_dict()
        assert d["tier_level"] == "2b"
        assert d["fields_used"] == ["title", "keywords"]
        assert d["source_tag"] == "title+keywords"
