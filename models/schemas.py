"""
Core data models / schemas for the keyword combination engine.

Everything here is created fresh per audit run and never mutated once a
stage has handed it to the next one.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from config.settings import settings


# ---------------------------------------------------------------------------
# Fields & tokens
# ---------------------------------------------------------------------------

class Field(str, Enum):
    """A metadata text slot, declared in canonical phrase order."""

    TITLE = "title"
    SUBTITLE = "subtitle"
    KEYWORDS = "keywords"
    PROMO_TEXT = "promo_text"

    @property
    def order(self) -> int:
        return _FIELD_ORDER[self]

    @property
    def max_chars(self) -> int:
        return _FIELD_MAX_CHARS[self]

    @property
    def label(self) -> str:
        return _FIELD_LABELS[self]


_FIELD_ORDER: Dict[Field, int] = {f: i for i, f in enumerate(Field)}

_FIELD_MAX_CHARS: Dict[Field, int] = {
    Field.TITLE: settings.TITLE_MAX_CHARS,
    Field.SUBTITLE: settings.SUBTITLE_MAX_CHARS,
    Field.KEYWORDS: settings.KEYWORDS_MAX_CHARS,
    Field.PROMO_TEXT: settings.PROMO_TEXT_MAX_CHARS,
}

_FIELD_LABELS: Dict[Field, str] = {
    Field.TITLE: "title",
    Field.SUBTITLE: "subtitle",
    Field.KEYWORDS: "keyword field",
    Field.PROMO_TEXT: "promotional text",
}


def sort_fields(fields) -> List[Field]:
    return sorted(fields, key=lambda f: f.order)


@dataclass(frozen=True)
class Token:
    text: str           # normalized lowercase word
    field: Field
    index: int          # position in the field's raw token sequence


@dataclass
class TokenizedField:
    """Raw and stopword-filtered token sequences of one field."""
    field: Field
    text: str
    raw: List[Token] = field(default_factory=list)
    filtered: List[Token] = field(default_factory=list)

    @property
    def raw_words(self) -> List[str]:
        return [t.text for t in self.raw]

    @property
    def filtered_words(self) -> List[str]:
        return [t.text for t in self.filtered]

    @property
    def chars_used(self) -> int:
        return len(self.text.strip())

    @property
    def over_limit(self) -> bool:
        return self.chars_used > self.field.max_chars


@dataclass
class AppMetadata:
    """Resolved metadata text for one app. Missing fields are empty text."""
    app_id: str
    title: str = ""
    subtitle: str = ""
    keywords: str = ""
    promo_text: str = ""
    country: str = "us"
    platform: str = "ios"

    def text_for(self, f: Field) -> str:
        return {
            Field.TITLE: self.title,
            Field.SUBTITLE: self.subtitle,
            Field.KEYWORDS: self.keywords,
            Field.PROMO_TEXT: self.promo_text,
        }[f] or ""


# ---------------------------------------------------------------------------
# Phrases
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Phrase:
    """A candidate search phrase and the provenance it was assembled from."""
    text: str                                   # dedup key, lowercase
    fields_used: FrozenSet[Field] = frozenset()
    is_consecutive: bool = False

    @property
    def words(self) -> List[str]:
        return self.text.split()

    @property
    def length(self) -> int:
        return len(self.words)

    @property
    def source_tag(self) -> str:
        if not self.fields_used:
            return "missing"
        tag = "+".join(f.value for f in sort_fields(self.fields_used))
        if len(self.fields_used) == 1:
            tag += ":consecutive" if self.is_consecutive else ":scattered"
        return tag

    @classmethod
    def reference(cls, text: str) -> "Phrase":
        """A phrase with no provenance, e.g. taken from a competitor."""
        return cls(text=" ".join(text.lower().split()))


class StrengthTier(str, Enum):
    """Ten provenance tiers, strongest first, plus MISSING."""

    TITLE_CONSECUTIVE = "title_consecutive"                 # 1
    TITLE_NON_CONSECUTIVE = "title_non_consecutive"         # 2
    TITLE_KEYWORDS_CROSS = "title_keywords_cross"           # 2b
    TITLE_SUBTITLE_CROSS = "title_subtitle_cross"           # 3
    KEYWORDS_CONSECUTIVE = "keywords_consecutive"           # 4
    SUBTITLE_CONSECUTIVE = "subtitle_consecutive"           # 4
    KEYWORDS_SUBTITLE_CROSS = "keywords_subtitle_cross"     # 5
    KEYWORDS_NON_CONSECUTIVE = "keywords_non_consecutive"   # 6
    SUBTITLE_NON_CONSECUTIVE = "subtitle_non_consecutive"   # 6
    THREE_WAY_CROSS = "three_way_cross"                     # 7
    MISSING = "missing"

    @property
    def ordinal(self) -> int:
        """0 for the strongest tier; MISSING sorts last."""
        return _TIER_ORDINAL[self]

    @property
    def level(self) -> str:
        return _TIER_LEVEL[self]

    @property
    def is_title_bearing(self) -> bool:
        return self in _TITLE_TIERS


_TIER_ORDINAL: Dict[StrengthTier, int] = {t: i for i, t in enumerate(StrengthTier)}

_TIER_LEVEL: Dict[StrengthTier, str] = {
    StrengthTier.TITLE_CONSECUTIVE: "1",
    StrengthTier.TITLE_NON_CONSECUTIVE: "2",
    StrengthTier.TITLE_KEYWORDS_CROSS: "2b",
    StrengthTier.TITLE_SUBTITLE_CROSS: "3",
    StrengthTier.KEYWORDS_CONSECUTIVE: "4",
    StrengthTier.SUBTITLE_CONSECUTIVE: "4",
    StrengthTier.KEYWORDS_SUBTITLE_CROSS: "5",
    StrengthTier.KEYWORDS_NON_CONSECUTIVE: "6",
    StrengthTier.SUBTITLE_NON_CONSECUTIVE: "6",
    StrengthTier.THREE_WAY_CROSS: "7",
    StrengthTier.MISSING: "missing",
}

_TITLE_TIERS = frozenset({
    StrengthTier.TITLE_CONSECUTIVE,
    StrengthTier.TITLE_NON_CONSECUTIVE,
    StrengthTier.TITLE_KEYWORDS_CROSS,
    StrengthTier.TITLE_SUBTITLE_CROSS,
})


@dataclass(frozen=True)
class ClassifiedPhrase:
    phrase: Phrase
    tier: StrengthTier
    can_strengthen: bool
    suggestion: Optional[str] = None

    @property
    def text(self) -> str:
        return self.phrase.text

    @property
    def length(self) -> int:
        return self.phrase.length

    @property
    def is_missing(self) -> bool:
        return self.tier is StrengthTier.MISSING

    def to_dict(self) -> Dict:
        return {
            "text": self.text,
            "length": self.length,
            "fields_used": [f.value for f in sort_fields(self.phrase.fields_used)],
            "is_consecutive": self.phrase.is_consecutive,
            "source_tag": self.phrase.source_tag,
            "tier": self.tier.value,
            "tier_level": self.tier.level,
            "can_strengthen": self.can_strengthen,
            "suggestion": self.suggestion,
        }


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

@dataclass
class GenerationResult:
    """
    `total_generated` is exact while `limit_reached` is False. Once the cap
    is hit it is an upper bound: candidates not visited are counted in
    closed form, including repeated-word picks and texts that would
    deduplicate.
    """
    phrases: List[Phrase]
    total_generated: int
    limit_reached: bool
    hard_cap: int
    alphabet_size: int
    dropped_tokens: List[Token] = field(default_factory=list)

    @property
    def alphabet_truncated(self) -> bool:
        return bool(self.dropped_tokens)


# ---------------------------------------------------------------------------
# Priority scoring
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PrioritySignals:
    """External 0–100 signals; None means the provider had no data."""
    demand: Optional[float] = None
    opportunity: Optional[float] = None
    trend: Optional[float] = None
    intent: Optional[float] = None

    @property
    def present_count(self) -> int:
        return sum(
            1 for v in (self.demand, self.opportunity, self.trend, self.intent)
            if v is not None
        )


@dataclass(frozen=True)
class PriorityScore:
    value: float                        # 0–100
    strength: float
    demand: float
    opportunity: float
    trend: float
    intent: float
    data_quality: str = "missing"       # complete | partial | missing

    @property
    def components(self) -> Dict[str, float]:
        return {
            "strength": self.strength,
            "demand": self.demand,
            "opportunity": self.opportunity,
            "trend": self.trend,
            "intent": self.intent,
        }

    def to_dict(self) -> Dict:
        return {
            "value": round(self.value, 2),
            "components": {k: round(v, 2) for k, v in self.components.items()},
            "data_quality": self.data_quality,
        }


@dataclass(frozen=True)
class ScoredPhrase:
    classified: ClassifiedPhrase
    score: PriorityScore
    rank: int = 0

    @property
    def text(self) -> str:
        return self.classified.text

    def to_dict(self) -> Dict:
        return {
            "rank": self.rank,
            **self.classified.to_dict(),
            "priority": self.score.to_dict(),
        }


# ---------------------------------------------------------------------------
# Audit output
# ---------------------------------------------------------------------------

@dataclass
class FieldUsage:
    field: Field
    chars_used: int
    max_chars: int
    token_count: int

    @property
    def over_limit(self) -> bool:
        return self.chars_used > self.max_chars


@dataclass
class AuditStats:
    unique_tokens: int
    total_phrases: int
    tier_counts: Dict[str, int]
    duplicated_tokens: List[str]
    wasted_chars: int
    coverage: float                     # share of title-bearing phrases, 0–1
    field_usage: List[FieldUsage] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "unique_tokens": self.unique_tokens,
            "total_phrases": self.total_phrases,
            "tier_counts": dict(self.tier_counts),
            "duplicated_tokens": list(self.duplicated_tokens),
            "wasted_chars": self.wasted_chars,
            "coverage": round(self.coverage, 4),
            "field_usage": [
                {
                    "field": u.field.value,
                    "chars_used": u.chars_used,
                    "max_chars": u.max_chars,
                    "token_count": u.token_count,
                    "over_limit": u.over_limit,
                }
                for u in self.field_usage
            ],
        }


@dataclass
class AuditResult:
    """Full output of one app audit (tokenize → generate → classify → score)."""
    app_id: str
    classified: List[ClassifiedPhrase]
    ranked: List[ScoredPhrase]
    total_generated: int
    limit_reached: bool
    stats: AuditStats
    fields: Dict[Field, TokenizedField] = field(default_factory=dict)

    def by_length(self) -> Dict[int, List[ClassifiedPhrase]]:
        groups: Dict[int, List[ClassifiedPhrase]] = {}
        for c in self.classified:
            groups.setdefault(c.length, []).append(c)
        return groups

    def containing(self, keyword: str) -> List[ClassifiedPhrase]:
        needle = keyword.lower()
        return [c for c in self.classified if any(needle in w for w in c.phrase.words)]

    def count_containing(self, keyword: str) -> int:
        return len(self.containing(keyword))

    def summary(self) -> str:
        lines = [
            f"Audit [{self.app_id}]:",
            f"  Phrases: {len(self.classified)} (generated {self.total_generated}"
            f"{', capped' if self.limit_reached else ''})",
            f"  Title coverage: {self.stats.coverage:.0%}",
            "",
        ]
        for sp in self.ranked[:5]:
            lines.append(
                f"  #{sp.rank:>2} [{sp.text:<30}] tier={sp.classified.tier.level:<3} "
                f"priority={sp.score.value:.1f}"
            )
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Competitive gap analysis
# ---------------------------------------------------------------------------

@dataclass
class CompetitorProfile:
    app_id: str
    classified_phrases: List[ClassifiedPhrase]
    keyword_frequency: Dict[str, int]   # every field keyword → phrases containing it (may be 0)


class GapKind(str, Enum):
    MISSING_KEYWORD = "missing_keyword"
    MISSING_PHRASE = "missing_phrase"
    FREQUENCY_GAP = "frequency_gap"


@dataclass(frozen=True)
class GapOpportunity:
    kind: GapKind
    subject: str
    opportunity_score: float            # 0–100
    supporting_competitor_count: int
    recommendation: Optional[str] = None
    competitor_avg_frequency: Optional[float] = None
    target_frequency: Optional[int] = None

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind.value,
            "subject": self.subject,
            "opportunity_score": round(self.opportunity_score, 2),
            "supporting_competitor_count": self.supporting_competitor_count,
            "recommendation": self.recommendation,
            "competitor_avg_frequency": self.competitor_avg_frequency,
            "target_frequency": self.target_frequency,
        }


@dataclass
class GapReport:
    missing_keywords: List[GapOpportunity]
    missing_phrases: List[GapOpportunity]
    frequency_gaps: List[GapOpportunity]
    total_competitors: int
    top_n: int
    summary_stats: Dict[str, float] = field(default_factory=dict)

    @property
    def opportunities(self) -> List[GapOpportunity]:
        return self.missing_keywords + self.missing_phrases + self.frequency_gaps

    def summary(self) -> str:
        lines = [
            "Gap Analysis Results:",
            f"  Competitors compared: {self.total_competitors}",
            f"  Missing keywords: {len(self.missing_keywords)}",
            f"  Missing phrases: {len(self.missing_phrases)}",
            f"  Frequency gaps: {len(self.frequency_gaps)}",
            "",
        ]
        for i, gap in enumerate(self.missing_keywords[:5], 1):
            lines.append(
                f"  {i}. [{gap.subject}] score={gap.opportunity_score:.1f} "
                f"competitors={gap.supporting_competitor_count}"
            )
        return "\n".join(lines)

    def to_dict(self) -> Dict:
        return {
            "missing_keywords": [g.to_dict() for g in self.missing_keywords],
            "missing_phrases": [g.to_dict() for g in self.missing_phrases],
            "frequency_gaps": [g.to_dict() for g in self.frequency_gaps],
            "total_competitors": self.total_competitors,
            "top_n": self.top_n,
            "summary": dict(self.summary_stats),
        }


@dataclass
class CompetitiveAnalysis:
    target: AuditResult
    competitors: List[AuditResult]
    gaps: GapReport
    profiles: List[CompetitorProfile] = field(default_factory=list)

    @property
    def competitor_ids(self) -> Tuple[str, ...]:
        return tuple(c.app_id for c in self.competitors)
