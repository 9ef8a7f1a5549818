"""
Priority Scoring Agent
----------------------
Combines a phrase's strength tier with external signals into one 0–100
priority:

  Priority = 0.30·Strength + 0.25·Demand + 0.20·Opportunity
           + 0.15·Trend + 0.10·Intent

Strength comes from a fixed, monotonic tier table. Demand, opportunity,
trend and intent come from external providers (see agents.signals).

Missing-signal policy: an absent signal is scored at the midpoint
(settings.NEUTRAL_SIGNAL = 50), never zero, so a phrase is not pushed down
the ranking only because enrichment data is unavailable. `data_quality`
records how many signals were actually present.

Ranking ties break on strength tier (stronger first), then phrase length
(longer first), then text.

Input:  ClassificationOutput
Output: AuditResult
"""

import logging
import numpy as np
from collections import Counter
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from agents.base import Agent
from agents.classifier import ClassificationOutput
from agents.tokenizer import TokenizedMetadata
from config.settings import settings, ConfigurationError
from models.schemas import (
    AuditResult, AuditStats, ClassifiedPhrase, Field, FieldUsage,
    PriorityScore, PrioritySignals, ScoredPhrase, StrengthTier,
)

logger = logging.getLogger(__name__)


STRENGTH_SCORES: Dict[StrengthTier, float] = {
    StrengthTier.TITLE_CONSECUTIVE: 100.0,
    StrengthTier.TITLE_NON_CONSECUTIVE: 85.0,
    StrengthTier.TITLE_KEYWORDS_CROSS: 85.0,
    StrengthTier.TITLE_SUBTITLE_CROSS: 70.0,
    StrengthTier.KEYWORDS_CONSECUTIVE: 50.0,
    StrengthTier.SUBTITLE_CONSECUTIVE: 50.0,
    StrengthTier.KEYWORDS_SUBTITLE_CROSS: 35.0,
    StrengthTier.KEYWORDS_NON_CONSECUTIVE: 30.0,
    StrengthTier.SUBTITLE_NON_CONSECUTIVE: 30.0,
    StrengthTier.THREE_WAY_CROSS: 10.0,
    StrengthTier.MISSING: 0.0,
}


# ─── Weights ─────────────────────────────────────────────────────────────────


WEIGHT_KEYS = ("strength", "demand", "opportunity", "trend", "intent")


def default_weights() -> Dict[str, float]:
    """Snapshot of the configured weights."""
    return dict(settings.PRIORITY_WEIGHTS)


def validate_weights(weights: Mapping[str, float]) -> Dict[str, float]:
    expected = set(WEIGHT_KEYS)
    if set(weights) != expected:
        raise ConfigurationError(f"Weights must have exactly the keys {sorted(expected)}")
    if any(w < 0 for w in weights.values()):
        raise ConfigurationError("Weights must be non-negative")
    if not np.isclose(sum(weights.values()), 1.0, atol=1e-6):
        raise ConfigurationError(f"Weights must sum to 1.0, got {sum(weights.values()):.4f}")
    return dict(weights)


# ─── Scoring ─────────────────────────────────────────────────────────────────


def strength_score(tier: StrengthTier) -> float:
    return STRENGTH_SCORES[tier]


def _signal(value: Optional[float], neutral: float) -> float:
    if value is None or np.isnan(value):
        return neutral
    return float(np.clip(value, 0.0, 100.0))


def _data_quality(signals: PrioritySignals) -> str:
    present = signals.present_count
    if present == 4:
        return "complete"
    return "partial" if present else "missing"


def score(
    classified: ClassifiedPhrase,
    signals: Optional[PrioritySignals] = None,
    weights: Optional[Mapping[str, float]] = None,
    neutral: Optional[float] = None,
) -> PriorityScore:
    """Priority score of one classified phrase. Pure; value is in [0, 100]."""
    signals = signals or PrioritySignals()
    w = validate_weights(weights) if weights is not None else default_weights()
    neutral = settings.NEUTRAL_SIGNAL if neutral is None else neutral

    components = {
        "strength": strength_score(classified.tier),
        "demand": _signal(signals.demand, neutral),
        "opportunity": _signal(signals.opportunity, neutral),
        "trend": _signal(signals.trend, neutral),
        "intent": _signal(signals.intent, neutral),
    }
    keys = list(components)
    value = float(np.dot([w[k] for k in keys], [components[k] for k in keys]))

    return PriorityScore(
        value=float(np.clip(value, 0.0, 100.0)),
        data_quality=_data_quality(signals),
        **components,
    )


def _rank_key(sp: ScoredPhrase) -> Tuple:
    return (-sp.score.value, sp.classified.tier.ordinal, -sp.classified.length, sp.text)


def rank_phrases(
    classified: Iterable[ClassifiedPhrase],
    signals: Optional[Mapping[str, PrioritySignals]] = None,
    weights: Optional[Mapping[str, float]] = None,
    top_n: Optional[int] = None,
) -> List[ScoredPhrase]:
    """Score every phrase and return them best first, ranks starting at 1."""
    signals = signals or {}
    if weights is not None:
        weights = validate_weights(weights)
    if top_n is not None and top_n < 0:
        raise ConfigurationError(f"top_n must be >= 0, got {top_n}")

    scored = [
        ScoredPhrase(classified=c, score=score(c, signals.get(c.text), weights))
        for c in classified
    ]
    scored.sort(key=_rank_key)
    if top_n is not None:
        scored = scored[:top_n]
    return [
        ScoredPhrase(classified=sp.classified, score=sp.score, rank=i)
        for i, sp in enumerate(scored, 1)
    ]


def select_top(scored: Sequence[ScoredPhrase], limit: int) -> Dict:
    """Top `limit` of an already ranked list, with truncation info."""
    if limit < 0:
        raise ConfigurationError(f"limit must be >= 0, got {limit}")
    return {
        "top": list(scored[:limit]),
        "total_generated": len(scored),
        "limit_reached": len(scored) > limit,
    }


def priority_band(value: float) -> str:
    if value >= 70:
        return "high"
    if value >= 40:
        return "medium"
    return "low"


def format_breakdown(ps: PriorityScore, weights: Optional[Mapping[str, float]] = None) -> str:
    w = weights or default_weights()
    lines = [f"Priority Score: {ps.value:.0f}/100 ({priority_band(ps.value)})", ""]
    for name, component in ps.components.items():
        lines.append(
            f"  {name.capitalize():<12} {component:>5.1f} x {w[name]:.2f} "
            f"= {component * w[name]:>5.1f} pts"
        )
    lines.append("")
    lines.append(f"Data Quality: {ps.data_quality}")
    return "\n".join(lines)


# ─── Audit statistics ────────────────────────────────────────────────────────


def compute_audit_stats(
    tokenized: TokenizedMetadata,
    classified: List[ClassifiedPhrase],
) -> AuditStats:
    """Token usage, tier distribution and wasted keyword-field characters."""
    fields = tokenized.fields
    all_filtered = [t.text for tf in fields.values() for t in tf.filtered]

    spread = Counter(all_filtered)
    duplicated = sorted(w for w, n in spread.items() if n > 1)

    indexed_elsewhere = set()
    for f in (Field.TITLE, Field.SUBTITLE):
        if f in fields:
            indexed_elsewhere.update(fields[f].raw_words)
    wasted = 0
    if Field.KEYWORDS in fields:
        for tok in fields[Field.KEYWORDS].filtered:
            if tok.text in indexed_elsewhere:
                wasted += len(tok.text) + 1

    tier_counts = Counter(c.tier.value for c in classified)
    title_bearing = sum(1 for c in classified if c.tier.is_title_bearing)

    return AuditStats(
        unique_tokens=len(spread),
        total_phrases=len(classified),
        tier_counts={t.value: tier_counts.get(t.value, 0) for t in StrengthTier},
        duplicated_tokens=duplicated,
        wasted_chars=wasted,
        coverage=title_bearing / len(classified) if classified else 0.0,
        field_usage=[
            FieldUsage(
                field=f,
                chars_used=tf.chars_used,
                max_chars=f.max_chars,
                token_count=len(tf.raw),
            )
            for f, tf in fields.items() if tf.raw
        ],
    )


# ─── PriorityScoringAgent ────────────────────────────────────────────────────


class PriorityScoringAgent(Agent):
    """
    Agent 4: Priority scoring

    Weights configurable via settings or at init; `signals` maps phrase
    text → PrioritySignals.
    """

    def __init__(
        self,
        signals: Optional[Mapping[str, PrioritySignals]] = None,
        weights: Optional[Mapping[str, float]] = None,
        top_n: Optional[int] = None,
    ):
        super().__init__(name="PriorityScoringAgent")
        self.signals = dict(signals or {})
        self.weights = validate_weights(weights) if weights is not None else default_weights()
        self.top_n = top_n

    def run(self, classification: ClassificationOutput) -> AuditResult:
        ranked = rank_phrases(
            classification.classified, self.signals, self.weights, self.top_n,
        )
        stats = compute_audit_stats(classification.tokenized, classification.classified)
        app_id = classification.tokenized.app_id

        self.logger.info(f"[{app_id}] Top phrases:")
        for sp in ranked[:5]:
            self.logger.info(
                f"  #{sp.rank} [{sp.text}] tier={sp.classified.tier.level} "
                f"priority={sp.score.value:.1f} ({sp.score.data_quality})"
            )

        return AuditResult(
            app_id=app_id,
            classified=classification.classified,
            ranked=ranked,
            total_generated=classification.total_generated,
            limit_reached=classification.limit_reached,
            stats=stats,
            fields=classification.tokenized.fields,
        )
