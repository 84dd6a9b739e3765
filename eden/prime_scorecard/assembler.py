"""Scorecard assembly and the idempotent re-generation guard."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from eden.utils.timezone import to_utc_aware

from .aggregate import aggregate
from .confidence import StabilityFn, confidence_from_resolved, no_history_stability
from .defaults import DEFAULT_REGISTRY
from .registry import DEFAULT_SOURCE_QUALITY, DriverRegistry, SourceQualityTable
from .resolve import resolve_domain_evidence
from .scoring import score_from_resolved
from .types import PRIME_DOMAINS, Domain, DomainResult, EvidenceSet, EvidenceSummary, Scorecard

logger = logging.getLogger(__name__)

DEFAULT_REUSE_WINDOW_SECONDS = 600


def evaluate_domain(
    domain: Domain,
    evidence_set: EvidenceSet,
    driver_registry: DriverRegistry,
    source_quality_table: SourceQualityTable,
    now: datetime,
    stability: StabilityFn = no_history_stability,
) -> DomainResult:
    resolved = resolve_domain_evidence(
        driver_registry.domain(domain), evidence_set.for_domain(domain), source_quality_table
    )
    score, score_notes = score_from_resolved(resolved)
    confidence, confidence_notes = confidence_from_resolved(resolved, now, source_quality_table, stability)
    return DomainResult(
        domain=domain,
        score=score,
        confidence=confidence,
        explanation=tuple(score_notes + confidence_notes),
        risk_flags=resolved.risk_flags(),
    )


def summarize_evidence(evidence_set: EvidenceSet) -> EvidenceSummary:
    return EvidenceSummary(
        total_metrics=evidence_set.total_metrics,
        domains_with_data=sum(1 for d in PRIME_DOMAINS if evidence_set.for_domain(d)),
        freshest_measured_at=evidence_set.freshest_measured_at(),
        freshest_by_domain={d.value: evidence_set.freshest_measured_at(d) for d in PRIME_DOMAINS},
    )


def compute_scorecard(
    evidence_set: EvidenceSet,
    driver_registry: DriverRegistry,
    source_quality_table: SourceQualityTable,
    now: datetime,
    scoring_revision: str,
    min_scored_domains: int = len(PRIME_DOMAINS),
    stability: StabilityFn = no_history_stability,
) -> Scorecard:
    """Pure function of its inputs; identical inputs give identical scorecards."""
    now = to_utc_aware(now)
    results: List[DomainResult] = [
        evaluate_domain(domain, evidence_set, driver_registry, source_quality_table, now, stability)
        for domain in PRIME_DOMAINS
    ]
    prime_score, prime_confidence = aggregate(
        results, min_scored_domains=min_scored_domains, domain_weights=driver_registry.domain_weights
    )

    domain_scores: Dict[str, Optional[float]] = {r.domain.value: r.score for r in results}
    domain_confidence: Dict[str, float] = {r.domain.value: r.confidence for r in results}
    how_calculated: Dict[str, Tuple[str, ...]] = {r.domain.value: r.explanation for r in results}

    logger.debug(
        "scorecard computed: prime_score=%s prime_confidence=%.1f revision=%s",
        prime_score,
        prime_confidence,
        scoring_revision,
    )
    return Scorecard(
        generated_at=now,
        scoring_revision=scoring_revision,
        domain_scores=domain_scores,
        domain_confidence=domain_confidence,
        prime_score=prime_score,
        prime_confidence=prime_confidence,
        how_calculated=how_calculated,
        evidence_summary=summarize_evidence(evidence_set),
        risk_flags={r.domain.value: dict(r.risk_flags) for r in results},
    )


def should_reuse(
    existing: Optional[Scorecard],
    freshest_new_evidence_timestamp: Optional[datetime],
    now: datetime,
    scoring_revision: str,
    max_age_seconds: float = DEFAULT_REUSE_WINDOW_SECONDS,
    new_total_metrics: Optional[int] = None,
) -> bool:
    """True only when the existing scorecard is provably still current.

    Revision must match, the scorecard must be younger than max_age_seconds,
    and its freshest-evidence timestamp must equal the new evidence's. When
    new_total_metrics is given the metric counts must match too.
    """
    if existing is None:
        return False
    if existing.scoring_revision != scoring_revision:
        return False
    age = (to_utc_aware(now) - to_utc_aware(existing.generated_at)).total_seconds()
    if not (0 <= age < max_age_seconds):
        return False
    if to_utc_aware(existing.evidence_summary.freshest_measured_at) != to_utc_aware(freshest_new_evidence_timestamp):
        return False
    if new_total_metrics is not None and existing.evidence_summary.total_metrics != new_total_metrics:
        return False
    return True


def generate_or_reuse(
    existing_latest: Optional[Scorecard],
    evidence: EvidenceSet,
    now: datetime,
    scoring_revision: str,
    driver_registry: DriverRegistry = DEFAULT_REGISTRY,
    source_quality_table: SourceQualityTable = DEFAULT_SOURCE_QUALITY,
    max_age_seconds: float = DEFAULT_REUSE_WINDOW_SECONDS,
    min_scored_domains: int = len(PRIME_DOMAINS),
) -> Tuple[Scorecard, bool]:
    """Return (scorecard, is_cached)."""
    if should_reuse(
        existing_latest,
        evidence.freshest_measured_at(),
        now,
        scoring_revision,
        max_age_seconds=max_age_seconds,
        new_total_metrics=evidence.total_metrics,
    ):
        logger.debug("reusing scorecard generated at %s", existing_latest.generated_at)
        return existing_latest, True
    scorecard = compute_scorecard(
        evidence,
        driver_registry,
        source_quality_table,
        now,
        scoring_revision,
        min_scored_domains=min_scored_domains,
    )
    return scorecard, False
