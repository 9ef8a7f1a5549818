"""
Gap Detection Agent
-------------------
Compares the target app with competitor profiles:

  Missing keyword : field keyword of a competitor that is in none of the
                    target's fields
      score = (using / total) * 50 + min(avg_frequency / 10, 1) * 50
  Missing phrase  : multi-word competitor phrase the target cannot
                    assemble from its own fields (classifies MISSING)
      score = (using / total) * 100
  Frequency gap   : keyword in both, competitors use it in more phrases
      gap   = competitor_avg_frequency - target_frequency   (kept if > 1)
      score = (using / total) * 50 + (gap / competitor_avg_frequency) * 50

Presence is judged against field text, never against the generated phrase
set, which is capped and holds no single words. A word's frequency is the
number of an app's phrases containing it (0 for a field word that no
phrase uses). Each category is truncated to top-N by score, then
supporting competitors, then subject. Aggregation is order-independent
across competitors.

Input:  GapAnalysisInput
Output: GapReport
"""

import logging
import numpy as np
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from agents.base import Agent
from agents.classifier import StrengthClassifier
from config.settings import settings, ConfigurationError
from models.schemas import (
    AuditResult, ClassifiedPhrase, CompetitorProfile, Field, GapKind, GapOpportunity,
    GapReport, Phrase, TokenizedField,
)

logger = logging.getLogger(__name__)


# ─── Profiles ────────────────────────────────────────────────────────────────


def keyword_frequency(
    classified: Iterable[ClassifiedPhrase],
    vocabulary: Iterable[str] = (),
) -> Dict[str, int]:
    """word → number of present phrases containing it; `vocabulary` words default to 0."""
    freq: Dict[str, int] = {w: 0 for w in vocabulary}
    for c in classified:
        if c.is_missing:
            continue
        for word in set(c.phrase.words):
            freq[word] = freq.get(word, 0) + 1
    return freq


def _field_keywords(fields: Optional[Mapping[Field, TokenizedField]]) -> List[str]:
    if not fields:
        return []
    return [w for tf in fields.values() for w in tf.filtered_words]


def build_profile(
    app_id: str,
    classified: List[ClassifiedPhrase],
    fields: Optional[Mapping[Field, TokenizedField]] = None,
) -> CompetitorProfile:
    return CompetitorProfile(
        app_id=app_id,
        classified_phrases=list(classified),
        keyword_frequency=keyword_frequency(classified, _field_keywords(fields)),
    )


# ─── Analysis ────────────────────────────────────────────────────────────────


def _fmt(value: float) -> str:
    return f"{round(value, 1):g}"


def _top(opportunities: List[GapOpportunity], top_n: int) -> List[GapOpportunity]:
    ordered = sorted(
        opportunities,
        key=lambda g: (-g.opportunity_score, -g.supporting_competitor_count, g.subject),
    )
    return ordered[:top_n]


def analyze(
    target: Iterable[ClassifiedPhrase],
    competitors: List[CompetitorProfile],
    top_n: Optional[int] = None,
    frequency_threshold: Optional[float] = None,
    target_fields: Optional[Mapping[Field, TokenizedField]] = None,
) -> GapReport:
    """
    Missing-keyword, missing-phrase and frequency-gap opportunities of
    `target` against `competitors`. No competitors → empty report.

    `target_fields` are the target's tokenized fields. Without them the
    target's phrases stand in for its text, which misses single-word
    fields and anything past the generation cap.
    """
    top_n = settings.GAP_TOP_N if top_n is None else top_n
    threshold = (settings.FREQUENCY_GAP_THRESHOLD
                 if frequency_threshold is None else frequency_threshold)
    if top_n < 0:
        raise ConfigurationError(f"top_n must be >= 0, got {top_n}")

    present = [c for c in target if not c.is_missing]
    target_freq = keyword_frequency(present, _field_keywords(target_fields))
    total = len(competitors)

    if target_fields:
        target_words = {w for tf in target_fields.values() for w in tf.raw_words}
        classifier = StrengthClassifier.from_fields(target_fields)

        def assemblable(text: str) -> bool:
            return not classifier.classify(Phrase.reference(text)).is_missing
    else:
        target_words = set(target_freq)
        target_texts = {c.text for c in present}

        def assemblable(text: str) -> bool:
            return text in target_texts

    if total == 0:
        return GapReport([], [], [], total_competitors=0, top_n=top_n,
                         summary_stats=_summary([], present, len(target_freq), 0, 0, 0))

    # word → frequencies from every competitor whose fields hold it
    keyword_usage: Dict[str, List[int]] = defaultdict(list)
    phrase_usage: Dict[str, int] = defaultdict(int)
    for profile in competitors:
        for word, count in profile.keyword_frequency.items():
            if " " not in word:
                keyword_usage[word].append(count)
        texts = {
            c.text for c in profile.classified_phrases
            if not c.is_missing and c.length >= 2
        }
        for text in texts:
            phrase_usage[text] += 1

    missing_keywords: List[GapOpportunity] = []
    frequency_gaps: List[GapOpportunity] = []
    for word, freqs in keyword_usage.items():
        using = len(freqs)
        avg = float(np.mean(freqs))
        coverage = using / total
        if word not in target_words:
            missing_keywords.append(GapOpportunity(
                kind=GapKind.MISSING_KEYWORD,
                subject=word,
                opportunity_score=coverage * 50 + min(avg / 10, 1.0) * 50,
                supporting_competitor_count=using,
                recommendation=(
                    f"Add '{word}' (used by {using} of {total} competitors "
                    f"in {_fmt(avg)} phrases on average)"
                ),
                competitor_avg_frequency=round(avg, 2),
                target_frequency=0,
            ))
            continue
        current = target_freq.get(word, 0)
        gap = avg - current
        if gap > threshold:
            frequency_gaps.append(GapOpportunity(
                kind=GapKind.FREQUENCY_GAP,
                subject=word,
                opportunity_score=coverage * 50 + (gap / avg) * 50,
                supporting_competitor_count=using,
                recommendation=f"Increase usage of '{word}' from {current} to {_fmt(avg)} phrases",
                competitor_avg_frequency=round(avg, 2),
                target_frequency=current,
            ))

    missing_phrases = [
        GapOpportunity(
            kind=GapKind.MISSING_PHRASE,
            subject=text,
            opportunity_score=using / total * 100,
            supporting_competitor_count=using,
            recommendation=f"Consider adding '{text}' ({using} of {total} competitors use it)",
        )
        for text, using in phrase_usage.items()
        if not assemblable(text)
    ]

    return GapReport(
        missing_keywords=_top(missing_keywords, top_n),
        missing_phrases=_top(missing_phrases, top_n),
        frequency_gaps=_top(frequency_gaps, top_n),
        total_competitors=total,
        top_n=top_n,
        summary_stats=_summary(
            competitors, present, len(target_freq),
            len(missing_keywords), len(missing_phrases), len(frequency_gaps),
        ),
    )


def _summary(
    competitors: List[CompetitorProfile],
    present: List[ClassifiedPhrase],
    target_keyword_count: int,
    n_keywords: int,
    n_phrases: int,
    n_gaps: int,
) -> Dict[str, float]:
    if competitors:
        avg_keywords = float(np.mean([len(p.keyword_frequency) for p in competitors]))
        avg_phrases = float(np.mean([
            sum(1 for c in p.classified_phrases if not c.is_missing) for p in competitors
        ]))
    else:
        avg_keywords = avg_phrases = 0.0
    return {
        "total_missing_keywords": n_keywords,
        "total_missing_phrases": n_phrases,
        "total_frequency_gaps": n_gaps,
        "avg_competitor_keyword_count": round(avg_keywords, 1),
        "target_keyword_count": target_keyword_count,
        "avg_competitor_phrase_count": round(avg_phrases, 1),
        "target_phrase_count": len(present),
    }


# ─── GapDetectionAgent ───────────────────────────────────────────────────────


@dataclass
class GapAnalysisInput:
    target: AuditResult
    competitors: List[AuditResult] = field(default_factory=list)


class GapDetectionAgent(Agent):
    """
    Agent 5: Competitive gap detection

    Builds a profile per competitor audit and diffs it against the target.
    """

    def __init__(self, top_n: Optional[int] = None, frequency_threshold: Optional[float] = None):
        super().__init__(name="GapDetectionAgent")
        self.top_n = settings.GAP_TOP_N if top_n is None else top_n
        self.frequency_threshold = frequency_threshold

    def run(self, data: GapAnalysisInput) -> GapReport:
        profiles = [build_profile(c.app_id, c.classified, c.fields) for c in data.competitors]
        self.logger.info(
            f"Comparing [{data.target.app_id}] against {len(profiles)} competitors..."
        )
        report = analyze(
            data.target.classified, profiles, self.top_n, self.frequency_threshold,
            target_fields=data.target.fields,
        )
        self.logger.info(
            f"Gap analysis complete: {len(report.missing_keywords)} missing keywords, "
            f"{len(report.missing_phrases)} missing phrases, "
            f"{len(report.frequency_gaps)} frequency gaps"
        )
        return report
