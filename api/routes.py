"""
FastAPI Route Handlers
ASO Keyword Combination Engine
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import APIRouter

from api.schemas import (
    AuditRequest, AuditResponse, ClassifyRequest, ClassifyResponse,
    CompetitorAnalysisRequest, CompetitorAnalysisResponse, HealthResponse,
    AppMetadataRequest, GenerationOptionsRequest, SignalsRequest, UpdateWeightsRequest,
)
from agents.classifier import StrengthClassifier
from agents.generator import GenerationOptions
from agents.scorer import default_weights, validate_weights
from config.settings import settings
from models.schemas import AppMetadata, Phrase, PrioritySignals
from utils.pipeline import run_audit, run_competitive_analysis

logger = logging.getLogger(__name__)

router = APIRouter()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _metadata(req: AppMetadataRequest) -> AppMetadata:
    return AppMetadata(**req.dict())


def _options(req: Optional[GenerationOptionsRequest]) -> Optional[GenerationOptions]:
    if req is None:
        return None
    return GenerationOptions(**req.dict())


def _signals(raw: Dict[str, SignalsRequest]) -> Dict[str, PrioritySignals]:
    return {
        Phrase.reference(text).text: PrioritySignals(**s.dict())
        for text, s in raw.items()
    }


# ─── Health ──────────────────────────────────────────────────────────────────

@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    return HealthResponse(
        status="ok",
        version=settings.APP_VERSION,
        timestamp=_now(),
    )


# ─── Audit ───────────────────────────────────────────────────────────────────

@router.post("/audit", response_model=AuditResponse, tags=["Audit"])
def audit(request: AuditRequest):
    """
    Execute the full per-app pipeline:
    Tokenize → Generate → Classify → Score → Return ranked phrases
    """
    result = run_audit(
        _metadata(request.metadata),
        stopwords=request.stopwords,
        options=_options(request.options),
        signals=_signals(request.signals),
        weights=default_weights(),
        top_n=request.top_n,
    )

    return AuditResponse(
        status="success",
        app_id=result.app_id,
        total_phrases=len(result.classified),
        total_generated=result.total_generated,
        limit_reached=result.limit_reached,
        ranked=[sp.to_dict() for sp in result.ranked],
        stats=result.stats.to_dict(),
        run_at=_now(),
    )


@router.post("/classify", response_model=ClassifyResponse, tags=["Audit"])
def classify(request: ClassifyRequest):
    """Classify arbitrary phrases (e.g. competitor phrases) against given field text."""
    classifier = StrengthClassifier.from_texts(
        request.title, request.subtitle, request.keywords, request.promo_text,
    )
    results = [
        classifier.classify(Phrase.reference(text)).to_dict()
        for text in request.phrases if text.strip()
    ]
    return ClassifyResponse(results=results)


# ─── Competitors ─────────────────────────────────────────────────────────────

@router.post(
    "/competitors/analyze",
    response_model=CompetitorAnalysisResponse,
    tags=["Competitors"],
)
def analyze_competitors(request: CompetitorAnalysisRequest):
    """Audit target + competitors and return missing keywords, phrases and frequency gaps."""
    analysis = run_competitive_analysis(
        _metadata(request.target),
        [_metadata(c) for c in request.competitors],
        options=_options(request.options),
        gap_top_n=request.top_n,
    )

    report = analysis.gaps.to_dict()
    return CompetitorAnalysisResponse(
        status="success",
        target_app_id=analysis.target.app_id,
        competitor_app_ids=list(analysis.competitor_ids),
        missing_keywords=report["missing_keywords"],
        missing_phrases=report["missing_phrases"],
        frequency_gaps=report["frequency_gaps"],
        summary=report["summary"],
        run_at=_now(),
    )


# ─── Scoring Weights ─────────────────────────────────────────────────────────

@router.get("/score/weights", tags=["Configuration"])
async def get_weights():
    """Get current priority weights."""
    return default_weights()


@router.post("/score/weights", tags=["Configuration"])
async def update_weights(request: UpdateWeightsRequest):
    """Update priority weights; they must sum to 1.0."""
    weights = validate_weights(request.dict())
    settings.PRIORITY_WEIGHTS = weights
    logger.info(f"Priority weights updated: {weights}")
    return {"status": "updated", "weights": default_weights()}
