"""
Pydantic schemas for API request/response validation.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any
from datetime import datetime

from config.settings import settings


# ─── Request Schemas ─────────────────────────────────────────────────────────

class AppMetadataRequest(BaseModel):
    app_id: str
    title: str = ""
    subtitle: str = ""
    keywords: str = Field("", description="Comma-separated App Store keyword field")
    promo_text: str = ""
    country: str = "us"
    platform: str = "ios"


class SignalsRequest(BaseModel):
    demand: Optional[float] = Field(None, ge=0, le=100)
    opportunity: Optional[float] = Field(None, ge=0, le=100)
    trend: Optional[float] = Field(None, ge=0, le=100)
    intent: Optional[float] = Field(None, ge=0, le=100)


class GenerationOptionsRequest(BaseModel):
    min_length: int = settings.MIN_PHRASE_LENGTH
    max_length: int = settings.MAX_PHRASE_LENGTH
    hard_cap: int = settings.PHRASE_HARD_CAP
    max_alphabet: int = settings.MAX_TOKEN_ALPHABET


class AuditRequest(BaseModel):
    metadata: AppMetadataRequest
    options: Optional[GenerationOptionsRequest] = None
    signals: Dict[str, SignalsRequest] = Field(
        default_factory=dict, description="Phrase text → external signals"
    )
    stopwords: Optional[List[str]] = None
    top_n: Optional[int] = Field(50, description="Ranked phrases returned; null for all")


class ClassifyRequest(BaseModel):
    phrases: List[str]
    title: str = ""
    subtitle: str = ""
    keywords: str = ""
    promo_text: str = ""


class CompetitorAnalysisRequest(BaseModel):
    target: AppMetadataRequest
    competitors: List[AppMetadataRequest]
    options: Optional[GenerationOptionsRequest] = None
    top_n: Optional[int] = Field(None, description="Per-category gap truncation")


class UpdateWeightsRequest(BaseModel):
    strength: float = Field(..., ge=0, le=1)
    demand: float = Field(..., ge=0, le=1)
    opportunity: float = Field(..., ge=0, le=1)
    trend: float = Field(..., ge=0, le=1)
    intent: float = Field(..., ge=0, le=1)


# ─── Response Schemas ────────────────────────────────────────────────────────

class ClassifiedPhraseResponse(BaseModel):
    text: str
    length: int
    fields_used: List[str]
    is_consecutive: bool
    source_tag: str
    tier: str
    tier_level: str
    can_strengthen: bool
    suggestion: Optional[str] = None


class PriorityResponse(BaseModel):
    value: float
    components: Dict[str, float]
    data_quality: str


class RankedPhraseResponse(ClassifiedPhraseResponse):
    rank: int
    priority: PriorityResponse


class AuditResponse(BaseModel):
    status: str
    app_id: str
    total_phrases: int
    total_generated: int
    limit_reached: bool
    ranked: List[RankedPhraseResponse]
    stats: Dict[str, Any]
    run_at: datetime


class ClassifyResponse(BaseModel):
    results: List[ClassifiedPhraseResponse]


class GapOpportunityResponse(BaseModel):
    kind: str
    subject: str
    opportunity_score: float
    supporting_competitor_count: int
    recommendation: Optional[str] = None
    competitor_avg_frequency: Optional[float] = None
    target_frequency: Optional[int] = None


class CompetitorAnalysisResponse(BaseModel):
    status: str
    target_app_id: str
    competitor_app_ids: List[str]
    missing_keywords: List[GapOpportunityResponse]
    missing_phrases: List[GapOpportunityResponse]
    frequency_gaps: List[GapOpportunityResponse]
    summary: Dict[str, float]
    run_at: datetime


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime
