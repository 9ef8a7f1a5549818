"""
Tokenizer Agent
---------------
Normalizes raw metadata text into ordered tokens tagged with their field
and position.

  - any run of non-alphanumeric characters is a separator
  - lowercased, empty tokens discarded
  - `raw` keeps every occurrence (field-membership checks)
  - `filtered` drops stopwords and repeats within the field; it is the
    alphabet for phrase generation

Empty or missing text yields empty sequences, never an error.

Input:  AppMetadata
Output: TokenizedMetadata
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from agents.base import Agent
from config.settings import settings
from models.schemas import AppMetadata, Field, Token, TokenizedField

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[^\W_]+", re.UNICODE)


# ─── Data Structures ─────────────────────────────────────────────────────────


@dataclass
class TokenizedMetadata:
    """Output of the TokenizerAgent: one TokenizedField per Field."""
    metadata: AppMetadata
    fields: Dict[Field, TokenizedField] = field(default_factory=dict)

    @property
    def app_id(self) -> str:
        return self.metadata.app_id

    @property
    def filtered_by_field(self) -> Dict[Field, List[Token]]:
        return {f: tf.filtered for f, tf in self.fields.items() if tf.filtered}

    @property
    def active_fields(self) -> List[Field]:
        return [f for f in Field if f in self.fields and self.fields[f].filtered]

    def raw_words(self, f: Field) -> List[str]:
        tf = self.fields.get(f)
        return tf.raw_words if tf else []


# ─── Tokenization ────────────────────────────────────────────────────────────


def normalize_stopwords(stopwords: Optional[Iterable[str]]) -> frozenset:
    if stopwords is None:
        stopwords = settings.STOPWORDS
    return frozenset(w.strip().lower() for w in stopwords if w and w.strip())


def split_words(text: Optional[str]) -> List[str]:
    """Lowercase alphanumeric runs of `text`, in order."""
    if not text:
        return []
    return _WORD_RE.findall(text.lower())


def tokenize(
    field_text: Optional[str],
    field_: Field,
    stopwords: Optional[Iterable[str]] = None,
) -> TokenizedField:
    """
    Tokenize one field.

    `raw` holds every token instance including stopwords; `filtered` keeps
    the first occurrence of each non-stopword, each token retaining its
    raw index.
    """
    stop = normalize_stopwords(stopwords)
    raw = [Token(text=w, field=field_, index=i) for i, w in enumerate(split_words(field_text))]

    seen = set()
    filtered: List[Token] = []
    for tok in raw:
        if tok.text in stop or tok.text in seen:
            continue
        seen.add(tok.text)
        filtered.append(tok)

    return TokenizedField(field=field_, text=field_text or "", raw=raw, filtered=filtered)


def tokenize_metadata(
    metadata: AppMetadata,
    stopwords: Optional[Iterable[str]] = None,
) -> TokenizedMetadata:
    stop = normalize_stopwords(stopwords)
    return TokenizedMetadata(
        metadata=metadata,
        fields={f: tokenize(metadata.text_for(f), f, stop) for f in Field},
    )


# ─── TokenizerAgent ──────────────────────────────────────────────────────────


class TokenizerAgent(Agent):
    """
    Agent 1: Tokenization of title, subtitle, keyword field and promo text.
    """

    def __init__(self, stopwords: Optional[Iterable[str]] = None):
        super().__init__(name="TokenizerAgent")
        self.stopwords = normalize_stopwords(stopwords)

    def run(self, metadata: AppMetadata) -> TokenizedMetadata:
        tokenized = tokenize_metadata(metadata, self.stopwords)
        counts = ", ".join(
            f"{f.value}={len(tf.filtered)}/{len(tf.raw)}"
            for f, tf in tokenized.fields.items() if tf.raw
        )
        self.logger.info(f"[{metadata.app_id}] Tokens (filtered/raw): {counts or 'none'}")
        for tf in tokenized.fields.values():
            if tf.over_limit:
                self.logger.warning(
                    f"[{metadata.app_id}] {tf.field.label} uses {tf.chars_used} chars "
                    f"(limit {tf.field.max_chars})"
                )
        return tokenized
