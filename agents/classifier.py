"""
Strength Classification Agent
-----------------------------
Assigns each phrase one of ten provenance tiers (plus MISSING):

   1  title, consecutive
   2  title, non-consecutive
   2b title + keyword field
   3  title + subtitle (also any 3+ field set that includes the title)
   4  keyword field / subtitle, consecutive
   5  two non-title fields
   6  keyword field / subtitle, non-consecutive
   7  three non-title fields
   -  missing: some word is in no current field

Promotional text ranks with the subtitle. The tier depends only on the
set of fields used and contiguity; provenance itself is re-derived from
the current field text, choosing the strongest assembly available.

Input:  GenerationOutput
Output: ClassificationOutput
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from agents.base import Agent
from agents.tokenizer import TokenizedMetadata, tokenize_metadata
from models.schemas import (
    AppMetadata, ClassifiedPhrase, Field, Phrase, StrengthTier, TokenizedField, sort_fields,
)

if TYPE_CHECKING:
    from agents.generator import GenerationOutput

logger = logging.getLogger(__name__)


# ─── Tier function ───────────────────────────────────────────────────────────


def tier_for(fields_used: Iterable[Field], is_consecutive: bool) -> StrengthTier:
    """
    Tier as a pure function of provenance.

    Title presence dominates field count: any set containing the title
    ranks at least tier 3, and only a cross of three non-title fields
    falls to tier 7.
    """
    fields = frozenset(fields_used)
    if not fields:
        return StrengthTier.MISSING

    if Field.TITLE in fields:
        if len(fields) == 1:
            return (StrengthTier.TITLE_CONSECUTIVE if is_consecutive
                    else StrengthTier.TITLE_NON_CONSECUTIVE)
        if fields == {Field.TITLE, Field.KEYWORDS}:
            return StrengthTier.TITLE_KEYWORDS_CROSS
        return StrengthTier.TITLE_SUBTITLE_CROSS

    if len(fields) == 1:
        (only,) = fields
        if only is Field.KEYWORDS:
            return (StrengthTier.KEYWORDS_CONSECUTIVE if is_consecutive
                    else StrengthTier.KEYWORDS_NON_CONSECUTIVE)
        return (StrengthTier.SUBTITLE_CONSECUTIVE if is_consecutive
                else StrengthTier.SUBTITLE_NON_CONSECUTIVE)

    if len(fields) == 2:
        return StrengthTier.KEYWORDS_SUBTITLE_CROSS
    return StrengthTier.THREE_WAY_CROSS


# ─── Suggestions ─────────────────────────────────────────────────────────────


def _quoted(words: Sequence[str]) -> str:
    return "'" + " ".join(words) + "'"


def _labels(fields: Iterable[Field]) -> str:
    names = [f.label for f in sort_fields(fields)]
    if len(names) == 1:
        return names[0]
    return ", ".join(names[:-1]) + " and " + names[-1]


def suggestion_for(
    tier: StrengthTier,
    words: Sequence[str],
    assignment: Dict[str, Field],
) -> Optional[str]:
    """The smallest field move that promotes the phrase to a better tier."""
    if tier is StrengthTier.TITLE_CONSECUTIVE:
        return None
    if tier is StrengthTier.MISSING:
        return "Not present in any field"

    non_title = [w for w in words if assignment.get(w) is not Field.TITLE]
    other_fields = {assignment[w] for w in non_title}

    if tier is StrengthTier.TITLE_NON_CONSECUTIVE:
        return f"Place {_quoted(words)} consecutively in the title"
    if tier in (StrengthTier.TITLE_KEYWORDS_CROSS, StrengthTier.TITLE_SUBTITLE_CROSS):
        if len(other_fields) == 1:
            (src,) = other_fields
            return f"Move {_quoted(non_title)} from the {src.label} into the title"
        return f"Consolidate {_labels(other_fields)} words {_quoted(non_title)} into the title"
    if tier in (StrengthTier.KEYWORDS_CONSECUTIVE, StrengthTier.SUBTITLE_CONSECUTIVE):
        return f"Move {_quoted(words)} to the title"
    if tier in (StrengthTier.KEYWORDS_NON_CONSECUTIVE, StrengthTier.SUBTITLE_NON_CONSECUTIVE):
        (src,) = other_fields
        return (
            f"Place {_quoted(words)} consecutively in the {src.label}, "
            f"or move it to the title"
        )
    # two or three non-title fields
    return f"Consolidate {_labels(other_fields)} words {_quoted(words)} into the title"


# ─── Field index ─────────────────────────────────────────────────────────────


def _has_run(sequence: Sequence[str], words: Sequence[str]) -> bool:
    n = len(words)
    return any(list(sequence[i:i + n]) == list(words) for i in range(len(sequence) - n + 1))


class FieldIndex:
    """Word membership and contiguity lookups over the current fields."""

    def __init__(self, fields: Dict[Field, TokenizedField]):
        self.fields = fields
        self.members: Dict[Field, FrozenSet[str]] = {
            f: frozenset(tf.raw_words) for f, tf in fields.items() if tf.raw
        }

    def is_consecutive(self, f: Field, words: Sequence[str]) -> bool:
        tf = self.fields[f]
        return _has_run(tf.filtered_words, words) or _has_run(tf.raw_words, words)

    def candidates(self, word: str) -> List[Field]:
        return [f for f in sort_fields(self.members) if word in self.members[f]]

    def resolve(self, words: Sequence[str]) -> Optional[Tuple[FrozenSet[Field], bool, Dict[str, Field]]]:
        """
        Strongest assembly of `words` from the current fields.

        Returns (fields_used, is_consecutive, word → field) or None when
        some word is in no field.
        """
        if not words:
            return None
        options = {w: self.candidates(w) for w in words}
        if any(not c for c in options.values()):
            return None

        best = None
        best_key = None
        available = sort_fields({f for c in options.values() for f in c})
        for mask in range(1, 1 << len(available)):
            subset = [f for i, f in enumerate(available) if mask & (1 << i)]
            assignment = _surjective_assignment(words, options, subset)
            if assignment is None:
                continue
            consecutive = len(subset) == 1 and (
                len(words) == 1 or self.is_consecutive(subset[0], words)
            )
            tier = tier_for(subset, consecutive)
            key = (tier.ordinal, len(subset), tuple(f.order for f in subset))
            if best_key is None or key < best_key:
                best_key = key
                best = (frozenset(subset), consecutive, assignment)
        return best


def _surjective_assignment(
    words: Sequence[str],
    options: Dict[str, List[Field]],
    subset: List[Field],
) -> Optional[Dict[str, Field]]:
    """
    Map every word to a field of `subset` so each field gets at least one
    word, or None if impossible.
    """
    allowed = {w: [f for f in options[w] if f in subset] for w in words}
    if any(not a for a in allowed.values()):
        return None

    # each field claims a distinct word (augmenting-path matching)
    claimed: Dict[str, Field] = {}

    def claim(f: Field, seen: set) -> bool:
        for w in words:
            if f in allowed[w] and w not in seen:
                seen.add(w)
                if w not in claimed or claim(claimed[w], seen):
                    claimed[w] = f
                    return True
        return False

    for f in subset:
        if not claim(f, set()):
            return None

    return {w: claimed.get(w, allowed[w][0]) for w in words}


# ─── Classification ──────────────────────────────────────────────────────────


class StrengthClassifier:
    """Classifies phrases against one app's current field text."""

    def __init__(self, tokenized: TokenizedMetadata):
        self.tokenized = tokenized
        self.index = FieldIndex(tokenized.fields)

    @classmethod
    def from_texts(
        cls,
        title_text: str = "",
        subtitle_text: str = "",
        keyword_text: str = "",
        promo_text: str = "",
        stopwords: Optional[Iterable[str]] = None,
    ) -> "StrengthClassifier":
        metadata = AppMetadata(
            app_id="",
            title=title_text or "",
            subtitle=subtitle_text or "",
            keywords=keyword_text or "",
            promo_text=promo_text or "",
        )
        return cls(tokenize_metadata(metadata, stopwords))

    @classmethod
    def from_fields(cls, fields: Dict[Field, TokenizedField], app_id: str = "") -> "StrengthClassifier":
        """Classifier over already tokenized fields, e.g. an audited app's."""
        return cls(TokenizedMetadata(metadata=AppMetadata(app_id=app_id), fields=dict(fields)))

    def classify(self, phrase: Phrase) -> ClassifiedPhrase:
        words = phrase.words
        resolved = self.index.resolve(words)
        if resolved is None:
            return ClassifiedPhrase(
                phrase=Phrase(phrase.text),
                tier=StrengthTier.MISSING,
                can_strengthen=True,
                suggestion=suggestion_for(StrengthTier.MISSING, words, {}),
            )

        fields_used, consecutive, assignment = resolved
        tier = tier_for(fields_used, consecutive)
        return ClassifiedPhrase(
            phrase=Phrase(phrase.text, fields_used, consecutive),
            tier=tier,
            can_strengthen=tier is not StrengthTier.TITLE_CONSECUTIVE,
            suggestion=suggestion_for(tier, words, assignment),
        )

    def classify_all(self, phrases: Iterable[Phrase]) -> List[ClassifiedPhrase]:
        return [self.classify(p) for p in phrases]


def classify(
    phrase: Phrase,
    title_text: str = "",
    subtitle_text: str = "",
    keyword_text: str = "",
    promo_text: str = "",
    stopwords: Optional[Iterable[str]] = None,
) -> ClassifiedPhrase:
    """Classify a single phrase against the given field text."""
    classifier = StrengthClassifier.from_texts(
        title_text, subtitle_text, keyword_text, promo_text, stopwords,
    )
    return classifier.classify(phrase)


# ─── StrengthClassifierAgent ─────────────────────────────────────────────────


@dataclass
class ClassificationOutput:
    """Output of the StrengthClassifierAgent."""
    tokenized: TokenizedMetadata
    classified: List[ClassifiedPhrase]
    total_generated: int
    limit_reached: bool
    tier_counts: Dict[str, int] = field(default_factory=dict)


class StrengthClassifierAgent(Agent):
    """
    Agent 3: Strength classification of every generated phrase.
    """

    def __init__(self):
        super().__init__(name="StrengthClassifierAgent")

    def run(self, generation: "GenerationOutput") -> ClassificationOutput:
        classifier = StrengthClassifier(generation.tokenized)
        classified = classifier.classify_all(generation.phrases)

        tier_counts: Dict[str, int] = {}
        for c in classified:
            tier_counts[c.tier.value] = tier_counts.get(c.tier.value, 0) + 1

        self.logger.info(
            f"[{generation.tokenized.app_id}] Classified {len(classified)} phrases: "
            + ", ".join(f"{k}={v}" for k, v in tier_counts.items())
        )
        return ClassificationOutput(
            tokenized=generation.tokenized,
            classified=classified,
            total_generated=generation.result.total_generated,
            limit_reached=generation.result.limit_reached,
            tier_counts=tier_counts,
        )
