"""
Configuration & Settings
ASO Keyword Combination Engine
"""

from pydantic import BaseModel
from typing import Dict, List
import os


class ConfigurationError(ValueError):
    """Invalid engine configuration (programmer error, never retried)."""


DEFAULT_STOPWORDS: List[str] = [
    "a", "an", "and", "are", "as", "at", "be", "been", "but", "by", "can",
    "could", "did", "do", "does", "for", "from", "had", "has", "have", "he",
    "in", "is", "it", "its", "may", "might", "must", "of", "on", "or",
    "shall", "should", "that", "the", "to", "was", "will", "with", "would",
]


class Settings(BaseModel):
    # App
    APP_NAME: str = "ASO Keyword Combination Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = os.getenv("ASO_DEBUG", "0") == "1"

    # Phrase generation
    MIN_PHRASE_LENGTH: int = 2
    MAX_PHRASE_LENGTH: int = 4
    PHRASE_HARD_CAP: int = 2500
    MAX_TOKEN_ALPHABET: int = 40
    STOPWORDS: List[str] = DEFAULT_STOPWORDS

    # App Store field limits (characters)
    TITLE_MAX_CHARS: int = 30
    SUBTITLE_MAX_CHARS: int = 30
    KEYWORDS_MAX_CHARS: int = 100
    PROMO_TEXT_MAX_CHARS: int = 170

    # Priority weights (must sum to 1.0), replaced as a whole on update
    PRIORITY_WEIGHTS: Dict[str, float] = {
        "strength": 0.30,
        "demand": 0.25,
        "opportunity": 0.20,
        "trend": 0.15,
        "intent": 0.10,
    }
    # An absent external signal counts as this midpoint, not as zero.
    NEUTRAL_SIGNAL: float = 50.0

    # Gap analysis
    GAP_TOP_N: int = 15
    FREQUENCY_GAP_THRESHOLD: float = 1.0
    MAX_COMPETITORS: int = 10
    COMPETITOR_WORKERS: int = 4

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000


settings = Settings()
