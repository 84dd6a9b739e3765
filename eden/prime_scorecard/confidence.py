"""Domain confidence: how much a domain score should be trusted.

confidence = 100 * (0.35*coverage + 0.25*quality + 0.25*freshness + 0.15*stability)

followed by the domain's declarative cap/floor rules from the registry.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

from eden.utils.timezone import to_utc_aware

from .engine import clamp, exponential_decay_weight, weighted_mean
from .errors import ConfigurationError
from .registry import DEFAULT_SOURCE_QUALITY, DomainConfig, SourceQualityTable
from .resolve import ResolvedDomain, resolve_domain_evidence
from .types import Domain, EvidenceItem

logger = logging.getLogger(__name__)

COVERAGE_WEIGHT = 0.35
QUALITY_WEIGHT = 0.25
FRESHNESS_WEIGHT = 0.25
STABILITY_WEIGHT = 0.15

SECONDS_PER_DAY = 86400.0


@dataclass(frozen=True)
class ConfidenceComponents:
    coverage: float
    quality: float
    freshness: float
    stability: float

    @property
    def raw(self) -> float:
        return 100.0 * (
            COVERAGE_WEIGHT * self.coverage
            + QUALITY_WEIGHT * self.quality
            + FRESHNESS_WEIGHT * self.freshness
            + STABILITY_WEIGHT * self.stability
        )


StabilityFn = Callable[[ResolvedDomain, datetime], float]


def no_history_stability(resolved: ResolvedDomain, now: datetime) -> float:
    """Time-series consistency of repeated measurements, in [0, 1].

    Needs per-driver history spanning each driver's stability_window_days.
    Evidence sets are single snapshots, so there is no history to judge and
    this is always 0. Pass a different StabilityFn once history exists.
    """
    return 0.0


def age_days(item: EvidenceItem, now: datetime) -> float:
    if item.measured_at is None:
        return math.inf
    return (to_utc_aware(now) - item.measured_at).total_seconds() / SECONDS_PER_DAY


def compute_components(
    resolved: ResolvedDomain,
    now: datetime,
    source_quality: SourceQualityTable = DEFAULT_SOURCE_QUALITY,
    stability: StabilityFn = no_history_stability,
) -> ConfidenceComponents:
    coverage = math.fsum(r.weight for r in resolved.present)

    observed = resolved.observed
    quality = weighted_mean([(r.weight, source_quality[r.quality_item.source_type]) for r in observed])
    freshness = weighted_mean(
        [
            (r.weight, exponential_decay_weight(age_days(r.freshness_item, now), r.driver.freshness_half_life_days))
            for r in observed
        ]
    )
    return ConfidenceComponents(
        coverage=clamp(coverage, 0.0, 1.0),
        quality=clamp(quality or 0.0, 0.0, 1.0),
        freshness=clamp(freshness or 0.0, 0.0, 1.0),
        stability=clamp(stability(resolved, now), 0.0, 1.0),
    )


def apply_confidence_rules(
    confidence: float, resolved: ResolvedDomain
) -> Tuple[float, List[str]]:
    notes: List[str] = []
    for rule in resolved.config.confidence_rules:
        confidence, note = rule.apply(confidence, resolved.usable_items)
        if note:
            notes.append(note)
            logger.debug("%s confidence rule applied: %s", resolved.config.domain.value, note)
    return clamp(confidence), notes


def confidence_from_resolved(
    resolved: ResolvedDomain,
    now: datetime,
    source_quality: SourceQualityTable = DEFAULT_SOURCE_QUALITY,
    stability: StabilityFn = no_history_stability,
) -> Tuple[float, List[str]]:
    components = compute_components(resolved, now, source_quality, stability)
    explanation = [
        f"Coverage: {components.coverage:.0%} of driver weight has evidence",
        f"Quality: {components.quality:.2f}",
        f"Freshness: {components.freshness:.2f}",
        f"Stability: {components.stability:.2f}",
    ]
    confidence, notes = apply_confidence_rules(clamp(components.raw), resolved)
    explanation.extend(notes)
    return confidence, explanation


def compute_domain_confidence(
    domain: Domain,
    evidence_for_domain: Iterable[EvidenceItem],
    domain_config: DomainConfig,
    now: datetime,
    source_quality: SourceQualityTable = DEFAULT_SOURCE_QUALITY,
    stability: Optional[StabilityFn] = None,
) -> Tuple[float, List[str]]:
    """Confidence in [0, 100] plus its explanation trail for one domain."""
    if Domain(domain) != domain_config.domain:
        raise ConfigurationError([f"domain {Domain(domain).value} does not match config for {domain_config.domain.value}"])
    resolved = resolve_domain_evidence(domain_config, evidence_for_domain, source_quality)
    return confidence_from_resolved(resolved, now, source_quality, stability or no_history_stability)
