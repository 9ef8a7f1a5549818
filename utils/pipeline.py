"""
Pipeline runner — wires the stages together.

Architecture:
  TokenizerAgent → CombinationAgent → StrengthClassifierAgent → PriorityScoringAgent
  (per app), then GapDetectionAgent over target + competitor audits.

Configuration is validated before any stage runs, so a ConfigurationError
reaches the caller as-is; any other stage failure surfaces as RuntimeError.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Mapping, Optional

from agents.base import Orchestrator
from agents.tokenizer import TokenizerAgent
from agents.generator import CombinationAgent, GenerationOptions
from agents.classifier import StrengthClassifierAgent
from agents.scorer import PriorityScoringAgent, validate_weights
from agents.gap_detector import GapDetectionAgent, GapAnalysisInput, build_profile
from config.settings import settings, ConfigurationError
from models.schemas import AppMetadata, AuditResult, CompetitiveAnalysis, PrioritySignals

logger = logging.getLogger(__name__)


def metadata_from_dict(data: Mapping[str, Any]) -> AppMetadata:
    """Provider payload → AppMetadata; absent or null fields become empty text."""
    return AppMetadata(
        app_id=str(data.get("app_id") or data.get("appId") or "unknown"),
        title=data.get("title") or "",
        subtitle=data.get("subtitle") or "",
        keywords=data.get("keywords") or data.get("keyword_field") or "",
        promo_text=data.get("promo_text") or "",
        country=data.get("country") or "us",
        platform=data.get("platform") or "ios",
    )


def build_audit_pipeline(
    stopwords: Optional[Iterable[str]] = None,
    options: Optional[GenerationOptions] = None,
    signals: Optional[Mapping[str, PrioritySignals]] = None,
    weights: Optional[Mapping[str, float]] = None,
    top_n: Optional[int] = None,
) -> Orchestrator:
    return Orchestrator([
        TokenizerAgent(stopwords=stopwords),
        CombinationAgent(options=options),
        StrengthClassifierAgent(),
        PriorityScoringAgent(signals=signals, weights=weights, top_n=top_n),
    ], name="audit")


def _validate(
    options: Optional[GenerationOptions],
    weights: Optional[Mapping[str, float]],
    top_n: Optional[int],
) -> GenerationOptions:
    options = options or GenerationOptions()
    if weights is not None:
        validate_weights(weights)
    if top_n is not None and top_n < 0:
        raise ConfigurationError(f"top_n must be >= 0, got {top_n}")
    return options


def run_audit(
    metadata: AppMetadata,
    stopwords: Optional[Iterable[str]] = None,
    options: Optional[GenerationOptions] = None,
    signals: Optional[Mapping[str, PrioritySignals]] = None,
    weights: Optional[Mapping[str, float]] = None,
    top_n: Optional[int] = None,
) -> AuditResult:
    """
    Tokenize, generate, classify and score one app's metadata.
    """
    options = _validate(options, weights, top_n)
    pipeline = build_audit_pipeline(stopwords, options, signals, weights, top_n)

    result = pipeline.execute(metadata)
    if not result.success:
        if isinstance(result.exception, ConfigurationError):
            raise result.exception
        raise RuntimeError(
            f"Audit failed for {metadata.app_id} at {pipeline.failed_stage}: {result.error}"
        )

    logger.debug(pipeline.summary())
    return result.data


def audit_many(
    apps: List[AppMetadata],
    stopwords: Optional[Iterable[str]] = None,
    options: Optional[GenerationOptions] = None,
    max_workers: Optional[int] = None,
) -> List[AuditResult]:
    """
    Audit several apps, optionally across threads. Results keep input order.
    """
    options = _validate(options, None, None)
    stop = list(stopwords) if stopwords is not None else None
    workers = settings.COMPETITOR_WORKERS if max_workers is None else max_workers

    def _one(app: AppMetadata) -> AuditResult:
        return run_audit(app, stopwords=stop, options=options)

    if workers <= 1 or len(apps) <= 1:
        return [_one(app) for app in apps]

    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(_one, apps))


def run_competitive_analysis(
    target: AppMetadata,
    competitors: List[AppMetadata],
    stopwords: Optional[Iterable[str]] = None,
    options: Optional[GenerationOptions] = None,
    signals: Optional[Mapping[str, PrioritySignals]] = None,
    weights: Optional[Mapping[str, float]] = None,
    top_n: Optional[int] = None,
    gap_top_n: Optional[int] = None,
    max_workers: Optional[int] = None,
) -> CompetitiveAnalysis:
    """
    Audit the target and every competitor, then diff them.

    Parameters
    ----------
    target : AppMetadata
        The app being optimized.
    competitors : list[AppMetadata]
        At most settings.MAX_COMPETITORS apps, already fetched by the caller.
    gap_top_n : int, optional
        Per-category truncation of the gap report.
    max_workers : int, optional
        Thread fan-out for competitor audits; 1 runs them sequentially.
    """
    if len(competitors) > settings.MAX_COMPETITORS:
        raise ConfigurationError(
            f"At most {settings.MAX_COMPETITORS} competitors, got {len(competitors)}"
        )
    if gap_top_n is not None and gap_top_n < 0:
        raise ConfigurationError(f"gap_top_n must be >= 0, got {gap_top_n}")
    options = _validate(options, weights, top_n)

    target_audit = run_audit(target, stopwords, options, signals, weights, top_n)
    competitor_audits = audit_many(competitors, stopwords, options, max_workers)

    gap_agent = GapDetectionAgent(top_n=gap_top_n)
    result = gap_agent.execute(GapAnalysisInput(target=target_audit, competitors=competitor_audits))
    if not result.success:
        raise RuntimeError(f"Gap analysis failed: {result.error}")

    return CompetitiveAnalysis(
        target=target_audit,
        competitors=competitor_audits,
        gaps=result.data,
        profiles=[build_profile(a.app_id, a.classified, a.fields) for a in competitor_audits],
    )


def run_from_payload(payload: Dict[str, Any]) -> CompetitiveAnalysis:
    """Convenience entry for plain-dict provider output."""
    target = metadata_from_dict(payload.get("target", {}))
    competitors = [metadata_from_dict(c) for c in payload.get("competitors", [])]
    return run_competitive_analysis(target, competitors)
