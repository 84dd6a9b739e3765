from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from .engine import clamp, weighted_mean
from .errors import ConfigurationError
from .registry import DEFAULT_SOURCE_QUALITY, DomainConfig, SourceQualityTable
from .resolve import ResolvedDomain, ResolvedDriver, resolve_domain_evidence
from .types import SOURCE_LABELS, Domain, EvidenceItem

logger = logging.getLogger(__name__)


def describe_driver(resolved: ResolvedDriver) -> str:
    item = resolved.scoring_item
    text = (
        f"{resolved.driver.name}: {resolved.driver.format_value(item.value)} "
        f"from {SOURCE_LABELS[item.source_type]} -> {resolved.sub_score:.0f}"
    )
    if resolved.band_label:
        text += f" ({resolved.band_label})"
    return text


def score_from_resolved(resolved: ResolvedDomain) -> Tuple[Optional[float], List[str]]:
    """Weighted mean of present driver sub-scores, renormalized over present drivers."""
    present = resolved.present
    explanation: List[str] = [describe_driver(r) for r in present]
    explanation.extend(resolved.conflict_notes())
    explanation.extend(resolved.risk_notes())
    explanation.extend(resolved.exclusions)
    explanation.extend(resolved.suppression_notes)
    explanation.extend(resolved.attempt_notes)
    explanation.extend(resolved.ignored_notes)

    missing = resolved.missing
    if missing:
        explanation.append("Missing: " + ", ".join(r.driver.name for r in missing))
    upgrade = resolved.fastest_upgrade()
    if upgrade is not None:
        explanation.append(f"Fastest upgrade: {upgrade.missing_copy}")

    score = weighted_mean([(r.weight, r.sub_score) for r in present])
    if score is None:
        explanation.append("No usable evidence: score unavailable")
        return None, explanation

    score = clamp(score)
    explanation.append(
        f"Score {score:.0f} from {len(present)} of {len(resolved.drivers)} drivers"
    )
    logger.debug("%s score %.2f from %d drivers", resolved.config.domain.value, score, len(present))
    return score, explanation


def compute_domain_score(
    domain: Domain,
    evidence_for_domain: Iterable[EvidenceItem],
    domain_config: DomainConfig,
    source_quality: SourceQualityTable = DEFAULT_SOURCE_QUALITY,
) -> Tuple[Optional[float], List[str]]:
    """0-100 domain score (None without usable evidence) plus explanation."""
    if Domain(domain) != domain_config.domain:
        raise ConfigurationError(
            [f"domain {Domain(domain).value} does not match config for {domain_config.domain.value}"]
        )
    resolved = resolve_domain_evidence(domain_config, evidence_for_domain, source_quality)
    return score_from_resolved(resolved)
