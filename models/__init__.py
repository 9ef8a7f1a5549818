"""
Core data models for the keyword combination engine.
"""

from .schemas import (
    Field,
    Token,
    TokenizedField,
    AppMetadata,
    Phrase,
    StrengthTier,
    ClassifiedPhrase,
    GenerationResult,
    PrioritySignals,
    PriorityScore,
    ScoredPhrase,
    FieldUsage,
    AuditStats,
    AuditResult,
    CompetitorProfile,
    GapKind,
    GapOpportunity,
    GapReport,
    CompetitiveAnalysis,
)

__all__ = [
    "Field",
    "Token",
    "TokenizedField",
    "AppMetadata",
    "Phrase",
    "StrengthTier",
    "ClassifiedPhrase",
    "GenerationResult",
    "PrioritySignals",
    "PriorityScore",
    "ScoredPhrase",
    "FieldUsage",
    "AuditStats",
    "AuditResult",
    "CompetitorProfile",
    "GapKind",
    "GapOpportunity",
    "GapReport",
    "CompetitiveAnalysis",
]
