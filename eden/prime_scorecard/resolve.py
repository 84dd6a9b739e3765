"""Resolve a domain's raw evidence into one observation per driver.

Shared by the confidence and score calculators so both see the same
suppression decisions, the same exclusions and the same chosen items.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import InvalidEvidenceValue
from .registry import DEFAULT_SOURCE_QUALITY, DomainConfig, Driver, SourceQualityTable
from .types import SOURCE_LABELS, EvidenceItem, numeric_value

logger = logging.getLogger(__name__)

_OLDEST = float("-inf")


def _recency(item: EvidenceItem) -> float:
    # Unknown timestamps sort as the oldest possible observation
    return item.measured_at.timestamp() if item.measured_at is not None else _OLDEST


def most_recent(items: Sequence[EvidenceItem], quality: SourceQualityTable) -> EvidenceItem:
    """Latest measured_at wins; ties go to the higher-quality source."""
    return max(items, key=lambda i: (_recency(i), quality[i.source_type]))


def highest_quality(items: Sequence[EvidenceItem], quality: SourceQualityTable) -> EvidenceItem:
    """Highest-quality source wins; ties go to the more recent item."""
    return max(items, key=lambda i: (quality[i.source_type], _recency(i)))


CONFLICT_THRESHOLD = 0.10


def sources_conflict(
    chosen: EvidenceItem, observations: Sequence[EvidenceItem], threshold: float = CONFLICT_THRESHOLD
) -> bool:
    """True when another numeric observation differs from the chosen one by more than `threshold`.

    The difference is relative to the chosen value. Categorical answers never
    conflict.
    """
    base = numeric_value(chosen.value)
    if base is None:
        return False
    for other in observations:
        if other is chosen:
            continue
        number = numeric_value(other.value)
        if number is None:
            continue
        if base == 0:
            if number != 0:
                return True
        elif abs(number - base) / abs(base) > threshold:
            return True
    return False


@dataclass(frozen=True)
class ResolvedDriver:
    driver: Driver
    weight: float  # effective weight after suppression redistribution
    scoring_item: Optional[EvidenceItem] = None
    sub_score: Optional[float] = None
    band_label: Optional[str] = None
    quality_item: Optional[EvidenceItem] = None
    freshness_item: Optional[EvidenceItem] = None
    conflict: bool = False

    @property
    def present(self) -> bool:
        """Has at least one usable (scorable) value."""
        return self.scoring_item is not None

    @property
    def observed(self) -> bool:
        """Present, or at least attempted (unestimable only)."""
        return self.quality_item is not None


@dataclass(frozen=True)
class ResolvedDomain:
    config: DomainConfig
    drivers: Tuple[ResolvedDriver, ...]
    usable_items: Tuple[EvidenceItem, ...] = ()
    exclusions: Tuple[str, ...] = ()
    suppression_notes: Tuple[str, ...] = ()
    attempt_notes: Tuple[str, ...] = ()
    ignored_notes: Tuple[str, ...] = ()

    @property
    def present(self) -> List[ResolvedDriver]:
        return [r for r in self.drivers if r.present]

    @property
    def observed(self) -> List[ResolvedDriver]:
        return [r for r in self.drivers if r.observed]

    @property
    def missing(self) -> List[ResolvedDriver]:
        return [r for r in self.drivers if not r.observed]

    def fastest_upgrade(self) -> Optional[Driver]:
        """Highest-weight driver with no evidence at all."""
        missing = [r for r in self.missing if r.driver.missing_copy]
        if not missing:
            return None
        return max(missing, key=lambda r: r.driver.weight).driver

    def conflict_notes(self) -> List[str]:
        return [
            f"{r.driver.name}: sources disagree by more than {CONFLICT_THRESHOLD:.0%}, "
            f"using the {SOURCE_LABELS[r.scoring_item.source_type]} value"
            for r in self.present
            if r.conflict
        ]

    def risk_flags(self) -> Dict[str, bool]:
        """Flag name -> raised, for each rule whose driver has a usable value."""
        by_key = {r.driver.driver_key: r for r in self.present}
        flags: Dict[str, bool] = {}
        for rule in self.config.risk_flags:
            resolved = by_key.get(rule.driver_key)
            if resolved is not None:
                flags[rule.flag] = rule.raised(resolved.scoring_item.value)
        return flags

    def risk_notes(self) -> List[str]:
        raised = {flag for flag, on in self.risk_flags().items() if on}
        return [rule.message for rule in self.config.risk_flags if rule.flag in raised]


def resolve_domain_evidence(
    domain_config: DomainConfig,
    items: Iterable[EvidenceItem],
    source_quality: SourceQualityTable = DEFAULT_SOURCE_QUALITY,
) -> ResolvedDomain:
    domain = domain_config.domain
    items = list(items)

    ignored: List[str] = []
    exclusions: List[str] = []
    valid: Dict[str, List[Tuple[EvidenceItem, float, Optional[str]]]] = {}
    attempts: Dict[str, List[EvidenceItem]] = {}

    for item in items:
        if item.domain != domain:
            ignored.append(f"Ignored {item.driver_key}: recorded under {item.domain.value}, not {domain.value}")
            continue
        driver = domain_config.driver(item.driver_key)
        if driver is None:
            ignored.append(f"Ignored {item.driver_key}: not a {domain.value} driver")
            logger.debug("ignoring unknown driver %s for %s", item.driver_key, domain.value)
            continue
        if item.is_unestimable:
            attempts.setdefault(driver.driver_key, []).append(item)
            continue
        try:
            sub_score, label = driver.evaluate(item.value)
        except InvalidEvidenceValue as exc:
            exclusions.append(f"Excluded {driver.name}: {exc.reason}")
            logger.debug("excluding %s value %s: %s", driver.driver_key, item.value, exc.reason)
            continue
        valid.setdefault(driver.driver_key, []).append((item, sub_score, label))

    # Suppression is decided before any weighting
    suppressed: List[Driver] = []
    suppression_notes: List[str] = []
    for rule in domain_config.suppressions:
        if any(key in valid for key in rule.suppressed_by):
            target = domain_config.driver(rule.driver_key)
            if target is not None and target not in suppressed:
                suppressed.append(target)
                suppression_notes.append(rule.reason or f"{target.name} suppressed")
                logger.debug("suppressing %s in %s", target.driver_key, domain.value)

    suppressed_keys = {d.driver_key for d in suppressed}
    remaining = 1.0 - sum(d.weight for d in suppressed)

    resolved: List[ResolvedDriver] = []
    usable: List[EvidenceItem] = []
    attempt_notes: List[str] = []
    for driver in domain_config.drivers:
        if driver.driver_key in suppressed_keys:
            continue
        weight = driver.weight / remaining if remaining > 0 else 0.0
        candidates = valid.get(driver.driver_key, [])
        if candidates:
            observations = [c[0] for c in candidates]
            chosen = most_recent(observations, source_quality)
            _, sub_score, label = next(c for c in candidates if c[0] is chosen)
            usable.extend(observations)
            resolved.append(
                ResolvedDriver(
                    driver=driver,
                    weight=weight,
                    scoring_item=chosen,
                    sub_score=sub_score,
                    band_label=label,
                    quality_item=highest_quality(observations, source_quality),
                    freshness_item=chosen,
                    conflict=sources_conflict(chosen, observations),
                )
            )
            continue
        tried = attempts.get(driver.driver_key, [])
        if tried:
            best = highest_quality(tried, source_quality)
            attempt_notes.append(
                f"{driver.name}: {SOURCE_LABELS[best.source_type]} was unable to estimate a value"
            )
            resolved.append(
                ResolvedDriver(
                    driver=driver,
                    weight=weight,
                    quality_item=best,
                    freshness_item=most_recent(tried, source_quality),
                )
            )
            continue
        resolved.append(ResolvedDriver(driver=driver, weight=weight))

    return ResolvedDomain(
        config=domain_config,
        drivers=tuple(resolved),
        usable_items=tuple(usable),
        exclusions=tuple(exclusions),
        suppression_notes=tuple(suppression_notes),
        attempt_notes=tuple(attempt_notes),
        ignored_notes=tuple(ignored),
    )
