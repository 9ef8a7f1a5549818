"""
Signal adapters
---------------
Turn raw ranking / popularity observations into the 0–100 signals the
priority scorer consumes. Fetching those observations is the caller's
job. Every adapter returns None when it has no data so that the scorer's
midpoint policy applies.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

import numpy as np

from models.schemas import PrioritySignals


@dataclass(frozen=True)
class RankingObservation:
    position: Optional[int] = None          # 1-based rank, None when not ranking
    is_ranking: bool = False
    total_results: Optional[int] = None     # competing apps for the phrase
    trend: Optional[str] = None             # up | down | stable | new
    position_change: Optional[int] = None


@dataclass(frozen=True)
class KeywordPopularity:
    popularity: float                       # 0–100
    intent: Optional[float] = None          # 0–1


def demand_from_popularity(
    words: Iterable[str],
    popularity: Mapping[str, KeywordPopularity],
) -> Optional[float]:
    """Mean popularity of the phrase words that have data."""
    values = [popularity[w].popularity for w in words if w in popularity]
    if not values:
        return None
    return float(np.mean(values))


def intent_from_popularity(
    words: Iterable[str],
    popularity: Mapping[str, KeywordPopularity],
) -> Optional[float]:
    values = [
        popularity[w].intent * 100.0
        for w in words
        if w in popularity and popularity[w].intent is not None
    ]
    if not values:
        return None
    return float(np.mean(values))


def opportunity_from_ranking(obs: Optional[RankingObservation]) -> Optional[float]:
    """
    Not ranking at all is the largest opportunity (less so under heavy
    competition); already ranking near the top is the smallest.
    """
    if obs is None:
        return None
    if not obs.is_ranking or not obs.position:
        if obs.total_results and obs.total_results > 10000:
            return 70.0
        if obs.total_results and obs.total_results > 5000:
            return 75.0
        return 80.0
    if obs.position <= 5:
        return 5.0
    if obs.position <= 10:
        return 10.0
    if obs.position <= 20:
        return 60.0
    if obs.position <= 50:
        return 50.0
    if obs.position <= 100:
        return 40.0
    return 30.0


def trend_from_ranking(obs: Optional[RankingObservation]) -> Optional[float]:
    if obs is None or obs.trend is None:
        return None
    change = abs(obs.position_change or 0)
    if obs.trend == "up":
        if change >= 10:
            return 100.0
        return 90.0 if change >= 5 else 80.0
    if obs.trend == "down":
        if change >= 10:
            return 20.0
        return 30.0 if change >= 5 else 40.0
    if obs.trend == "new":
        return 60.0
    return 50.0


def build_signals(
    phrases: Iterable[str],
    popularity: Optional[Mapping[str, KeywordPopularity]] = None,
    rankings: Optional[Mapping[str, RankingObservation]] = None,
) -> Dict[str, PrioritySignals]:
    """PrioritySignals per phrase text from whatever observations exist."""
    popularity = popularity or {}
    rankings = rankings or {}
    out: Dict[str, PrioritySignals] = {}
    for text in phrases:
        words = text.split()
        obs = rankings.get(text)
        out[text] = PrioritySignals(
            demand=demand_from_popularity(words, popularity),
            opportunity=opportunity_from_ranking(obs),
            trend=trend_from_ranking(obs),
            intent=intent_from_popularity(words, popularity),
        )
    return out
