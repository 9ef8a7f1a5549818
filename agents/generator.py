"""
Combination Generation Agent
----------------------------
Builds every candidate search phrase from the filtered tokens of all
active fields:

  1. same-field contiguous runs          (consecutive)
  2. same-field non-contiguous picks     (scattered, contiguous runs skipped)
  3. cross-field picks over any 2+ fields, drawing from every field in
     the set (two-field, three-field, and four-field once promo text is
     active)

Paths are walked strongest tier first, so a capped result keeps the most
valuable phrases and the first instance of a duplicated text is normally
already its strongest provenance; a later, stronger instance replaces it.

Blow-up control:
  - the token alphabet is bounded before generation (`max_alphabet`)
  - emission stops at `hard_cap`; `total_generated` then adds the
    combinatorial count of every candidate not yet visited

Input:  TokenizedMetadata
Output: GenerationOutput
"""

import logging
from dataclasses import dataclass, field
from collections import Counter
from itertools import combinations
from math import comb
from typing import Dict, FrozenSet, Iterator, List, Tuple

from agents.base import Agent
from agents.classifier import tier_for
from agents.tokenizer import TokenizedMetadata
from config.settings import settings, ConfigurationError
from models.schemas import Field, GenerationResult, Phrase, StrengthTier, Token, sort_fields

logger = logging.getLogger(__name__)


# ─── Options ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class GenerationOptions:
    min_length: int = field(default_factory=lambda: settings.MIN_PHRASE_LENGTH)
    max_length: int = field(default_factory=lambda: settings.MAX_PHRASE_LENGTH)
    hard_cap: int = field(default_factory=lambda: settings.PHRASE_HARD_CAP)
    max_alphabet: int = field(default_factory=lambda: settings.MAX_TOKEN_ALPHABET)

    def __post_init__(self):
        if self.min_length < 1:
            raise ConfigurationError(f"min_length must be >= 1, got {self.min_length}")
        if self.min_length > self.max_length:
            raise ConfigurationError(
                f"min_length ({self.min_length}) > max_length ({self.max_length})"
            )
        if self.hard_cap < 0:
            raise ConfigurationError(f"hard_cap must be >= 0, got {self.hard_cap}")
        if self.max_alphabet < 1:
            raise ConfigurationError(f"max_alphabet must be >= 1, got {self.max_alphabet}")


# ─── Alphabet bounding ───────────────────────────────────────────────────────


def bound_alphabet(
    tokens_by_field: Dict[Field, List[Token]],
    max_alphabet: int,
) -> Tuple[Dict[Field, List[Token]], List[Token]]:
    """
    Keep at most `max_alphabet` tokens across all fields.

    Tokens whose word occurs in more fields win, then stronger fields,
    then earlier positions. Kept tokens stay in their original order.
    """
    ordered = [t for f in sort_fields(tokens_by_field) for t in tokens_by_field[f]]
    if len(ordered) <= max_alphabet:
        return {f: list(toks) for f, toks in tokens_by_field.items() if toks}, []

    spread = Counter(t.text for t in ordered)
    ranked = sorted(ordered, key=lambda t: (-spread[t.text], t.field.order, t.index))
    keep = set(ranked[:max_alphabet])

    bounded = {
        f: [t for t in toks if t in keep]
        for f, toks in tokens_by_field.items()
    }
    dropped = [t for t in ordered if t not in keep]
    return {f: toks for f, toks in bounded.items() if toks}, dropped


# ─── Generation paths ────────────────────────────────────────────────────────


CONTIGUOUS = "contiguous"
SCATTERED = "scattered"
CROSS = "cross"


@dataclass(frozen=True)
class GenerationPath:
    """One generation branch: a field set plus how tokens are picked."""
    fields: Tuple[Field, ...]
    mode: str

    @property
    def field_set(self) -> FrozenSet[Field]:
        return frozenset(self.fields)

    @property
    def is_consecutive(self) -> bool:
        return self.mode == CONTIGUOUS

    @property
    def tier(self) -> StrengthTier:
        return tier_for(self.field_set, self.is_consecutive)

    def sort_key(self) -> tuple:
        return (
            self.tier.ordinal,
            len(self.fields),
            tuple(f.order for f in self.fields),
            0 if self.is_consecutive else 1,
        )

    def candidate_count(self, tokens: Dict[Field, List[Token]], length: int) -> int:
        """Number of candidates `candidates()` yields for `length`."""
        if self.mode == CONTIGUOUS:
            n = len(tokens[self.fields[0]])
            return max(0, n - length + 1)
        if self.mode == SCATTERED:
            n = len(tokens[self.fields[0]])
            if length < 2:
                return 0
            return comb(n, length) - max(0, n - length + 1)
        # inclusion–exclusion: picks that touch every field in the set
        sizes = [len(tokens[f]) for f in self.fields]
        total = 0
        k = len(sizes)
        for r in range(1, k + 1):
            for subset in combinations(range(k), r):
                sign = -1 if (k - r) % 2 else 1
                total += sign * comb(sum(sizes[i] for i in subset), length)
        return total

    def candidates(self, tokens: Dict[Field, List[Token]], length: int) -> Iterator[Tuple[Token, ...]]:
        if self.mode == CONTIGUOUS:
            seq = tokens[self.fields[0]]
            for i in range(len(seq) - length + 1):
                yield tuple(seq[i:i + length])
        elif self.mode == SCATTERED:
            seq = tokens[self.fields[0]]
            if length < 2:
                return
            for positions in combinations(range(len(seq)), length):
                if positions[-1] - positions[0] == length - 1:
                    continue
                yield tuple(seq[p] for p in positions)
        else:
            union = [t for f in self.fields for t in tokens[f]]
            needed = len(self.fields)
            for picked in combinations(union, length):
                if len({t.field for t in picked}) == needed:
                    yield picked


def build_paths(active_fields: List[Field]) -> List[GenerationPath]:
    """All generation paths for the active fields, strongest tier first."""
    fields = sort_fields(active_fields)
    paths: List[GenerationPath] = []
    for f in fields:
        paths.append(GenerationPath(fields=(f,), mode=CONTIGUOUS))
        paths.append(GenerationPath(fields=(f,), mode=SCATTERED))
    for size in range(2, len(fields) + 1):
        for subset in combinations(fields, size):
            paths.append(GenerationPath(fields=subset, mode=CROSS))
    return sorted(paths, key=lambda p: p.sort_key())


# ─── Generation ──────────────────────────────────────────────────────────────


def generate(
    tokens_by_field: Dict[Field, List[Token]],
    options: GenerationOptions = None,
) -> GenerationResult:
    """
    Generate the deduplicated phrase set for `tokens_by_field` (filtered
    tokens per field). Deterministic for identical input.
    """
    options = options or GenerationOptions()
    tokens, dropped = bound_alphabet(tokens_by_field, options.max_alphabet)
    paths = build_paths(list(tokens))
    lengths = range(options.min_length, options.max_length + 1)
    steps = [(p, n) for p in paths for n in lengths]

    phrases: Dict[str, Phrase] = {}
    tiers: Dict[str, StrengthTier] = {}
    limit_reached = False
    remaining = 0

    for step_no, (path, length) in enumerate(steps):
        tier = path.tier
        visited = 0
        for picked in path.candidates(tokens, length):
            visited += 1
            words = [t.text for t in picked]
            if len(set(words)) < len(words):
                continue
            text = " ".join(words)
            if text in phrases:
                if tier.ordinal < tiers[text].ordinal:
                    phrases[text] = Phrase(text, path.field_set, path.is_consecutive)
                    tiers[text] = tier
                continue
            if len(phrases) >= options.hard_cap:
                limit_reached = True
                remaining = path.candidate_count(tokens, length) - visited + 1
                remaining += sum(p.candidate_count(tokens, n) for p, n in steps[step_no + 1:])
                break
            phrases[text] = Phrase(text, path.field_set, path.is_consecutive)
            tiers[text] = tier
        if limit_reached:
            break

    return GenerationResult(
        phrases=list(phrases.values()),
        total_generated=len(phrases) + remaining,
        limit_reached=limit_reached,
        hard_cap=options.hard_cap,
        alphabet_size=sum(len(t) for t in tokens.values()),
        dropped_tokens=dropped,
    )


# ─── CombinationAgent ────────────────────────────────────────────────────────


@dataclass
class GenerationOutput:
    """Output of the CombinationAgent."""
    tokenized: TokenizedMetadata
    result: GenerationResult

    @property
    def phrases(self) -> List[Phrase]:
        return self.result.phrases


class CombinationAgent(Agent):
    """
    Agent 2: Combination generation

    Enumerates same-field and cross-field phrases under the alphabet bound
    and the hard cap.
    """

    def __init__(self, options: GenerationOptions = None):
        super().__init__(name="CombinationAgent")
        self.options = options or GenerationOptions()

    def run(self, tokenized: TokenizedMetadata) -> GenerationOutput:
        result = generate(tokenized.filtered_by_field, self.options)

        if result.alphabet_truncated:
            self.logger.warning(
                f"[{tokenized.app_id}] Token alphabet bounded to {result.alphabet_size}; "
                f"dropped: {', '.join(t.text for t in result.dropped_tokens)}"
            )
        if result.limit_reached:
            self.logger.warning(
                f"[{tokenized.app_id}] Hard cap {result.hard_cap} reached "
                f"({result.total_generated} candidates)"
            )
        self.logger.info(
            f"[{tokenized.app_id}] Generated {len(result.phrases)} phrases "
            f"from {result.alphabet_size} tokens"
        )
        return GenerationOutput(tokenized=tokenized, result=result)
