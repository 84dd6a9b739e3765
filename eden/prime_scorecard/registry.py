"""Driver Registry and Source Quality Table.

Both are static, versioned configuration. They validate themselves on
construction and raise ConfigurationError rather than renormalizing a broken
rule set. Domain-specific confidence caps/floors and driver suppression rules
live here as data so the calculators stay domain-agnostic.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from .engine import interpolate_piecewise
from .errors import ConfigurationError, InvalidEvidenceValue
from .types import (
    PRIME_DOMAINS,
    CategoricalValue,
    Domain,
    EvidenceItem,
    NumericValue,
    SourceType,
    Unestimable,
    Value,
    numeric_value,
)

WEIGHT_TOLERANCE = 1e-9


@dataclass(frozen=True)
class Band:
    """Half-open ladder band [min, max)."""

    score: float
    min: Optional[float] = None
    max: Optional[float] = None
    label: Optional[str] = None

    def contains(self, value: float) -> bool:
        return (self.min is None or value >= self.min) and (self.max is None or value < self.max)


@dataclass(frozen=True)
class ScoringRule:
    """How one driver maps a raw value to a 0-100 sub-score.

    A driver may accept numeric values (anchors take precedence over bands),
    categorical answers, or both.
    """

    anchors: Tuple[Tuple[float, float], ...] = ()
    bands: Tuple[Band, ...] = ()
    categories: Mapping[str, float] = field(default_factory=dict)

    @property
    def accepts_numeric(self) -> bool:
        return bool(self.anchors or self.bands)

    @property
    def accepts_categorical(self) -> bool:
        return bool(self.categories)

    def score_numeric(self, value: float) -> Tuple[float, Optional[str]]:
        if self.anchors:
            return interpolate_piecewise(value, self.anchors), None
        for band in self.bands:
            if band.contains(value):
                return band.score, band.label
        raise ValueError(f"{value:g} matches no scoring band")


@dataclass(frozen=True)
class Driver:
    domain: Domain
    driver_key: str
    weight: float
    freshness_half_life_days: float
    stability_window_days: int
    scoring: ScoringRule
    display_name: str = ""
    unit: Optional[str] = None
    valid_range: Optional[Tuple[float, float]] = None
    missing_copy: Optional[str] = None

    @property
    def name(self) -> str:
        return self.display_name or self.driver_key

    def format_value(self, value: Value) -> str:
        if isinstance(value, NumericValue) and self.unit:
            return f"{value} {self.unit}"
        return str(value)

    def evaluate(self, value: Value) -> Tuple[float, Optional[str]]:
        """Map a value to (sub-score, band label).

        Raises InvalidEvidenceValue when the value is out of the driver's
        physiologically valid range or of a kind the driver cannot score.
        Values are never clamped into range.
        """
        if isinstance(value, Unestimable):
            raise InvalidEvidenceValue(self.driver_key, value, "no value could be estimated")

        if isinstance(value, CategoricalValue):
            key = value.value.strip()
            if key in self.scoring.categories:
                return float(self.scoring.categories[key]), None
            if not self.scoring.accepts_numeric:
                raise InvalidEvidenceValue(self.driver_key, value, f"'{key}' is not a recognised answer")
            try:
                value = NumericValue(float(key))
            except ValueError:
                raise InvalidEvidenceValue(self.driver_key, value, f"'{key}' is not a number")

        number = value.value
        if not self.scoring.accepts_numeric:
            raise InvalidEvidenceValue(self.driver_key, value, "expects a categorical answer, got a number")
        if math.isnan(number) or math.isinf(number):
            raise InvalidEvidenceValue(self.driver_key, value, "is not a finite number")
        if self.valid_range is not None:
            low, high = self.valid_range
            if not (low <= number <= high):
                raise InvalidEvidenceValue(
                    self.driver_key,
                    value,
                    f"{self.format_value(value)} is outside the valid range {low:g}-{high:g}",
                )
        try:
            return self.scoring.score_numeric(number)
        except ValueError as exc:
            raise InvalidEvidenceValue(self.driver_key, value, str(exc))


@dataclass(frozen=True)
class SuppressionRule:
    """Exclude `driver_key` entirely while any of `suppressed_by` has usable evidence.

    The suppressed driver's weight is redistributed proportionally across the
    remaining drivers of the domain.
    """

    driver_key: str
    suppressed_by: Tuple[str, ...]
    reason: str = ""


@dataclass(frozen=True)
class EvidencePredicate:
    """True when usable evidence of one of `source_types` exists (optionally only for `driver_keys`)."""

    source_types: FrozenSet[SourceType]
    driver_keys: FrozenSet[str] = frozenset()

    def matches(self, items: Iterable[EvidenceItem]) -> bool:
        return any(
            item.source_type in self.source_types
            and (not self.driver_keys or item.driver_key in self.driver_keys)
            for item in items
        )


CAP = "cap"
FLOOR = "floor"


@dataclass(frozen=True)
class ConfidenceRule:
    """Post-blend confidence adjustment.

    A cap limits confidence to `limit` unless the predicate holds; a floor
    raises confidence to `limit` when the predicate holds.
    """

    kind: str
    limit: float
    predicate: EvidencePredicate
    message: str

    def apply(self, confidence: float, usable_items: Sequence[EvidenceItem]) -> Tuple[float, Optional[str]]:
        satisfied = self.predicate.matches(usable_items)
        if self.kind == CAP and not satisfied and confidence > self.limit:
            return float(self.limit), self.message
        if self.kind == FLOOR and satisfied and confidence < self.limit:
            return float(self.limit), self.message
        return confidence, None


@dataclass(frozen=True)
class RiskFlagRule:
    """Safety flag raised from the chosen value of one driver.

    Numeric rules fire at or above `at_least`; categorical rules fire when the
    answer is one of `answers`. The flag is only reported when the driver has
    a usable value.
    """

    flag: str
    driver_key: str
    message: str
    at_least: Optional[float] = None
    answers: FrozenSet[str] = frozenset()

    def raised(self, value: Value) -> bool:
        if self.at_least is not None:
            number = numeric_value(value)
            return number is not None and number >= self.at_least
        return str(value).strip().lower() in self.answers


@dataclass(frozen=True)
class DomainConfig:
    domain: Domain
    drivers: Tuple[Driver, ...]
    suppressions: Tuple[SuppressionRule, ...] = ()
    confidence_rules: Tuple[ConfidenceRule, ...] = ()
    risk_flags: Tuple[RiskFlagRule, ...] = ()

    def driver(self, driver_key: str) -> Optional[Driver]:
        for d in self.drivers:
            if d.driver_key == driver_key:
                return d
        return None

    @property
    def driver_keys(self) -> Tuple[str, ...]:
        return tuple(d.driver_key for d in self.drivers)

    def problems(self) -> List[str]:
        problems: List[str] = []
        name = self.domain.value
        if not self.drivers:
            return [f"{name}: domain has no drivers"]

        keys = self.driver_keys
        if len(set(keys)) != len(keys):
            problems.append(f"{name}: duplicate driver keys")

        total = math.fsum(d.weight for d in self.drivers)
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            problems.append(f"{name}: driver weights sum to {total!r}, expected 1.0")

        for d in self.drivers:
            if d.domain != self.domain:
                problems.append(f"{name}: driver {d.driver_key} declares domain {d.domain.value}")
            if not (0.0 <= d.weight <= 1.0):
                problems.append(f"{name}: driver {d.driver_key} weight {d.weight!r} outside [0, 1]")
            if d.freshness_half_life_days <= 0:
                problems.append(f"{name}: driver {d.driver_key} half-life must be positive")
            if d.stability_window_days < 0:
                problems.append(f"{name}: driver {d.driver_key} stability window must be >= 0")
            if not (d.scoring.accepts_numeric or d.scoring.accepts_categorical):
                problems.append(f"{name}: driver {d.driver_key} has no scoring rule")
            if d.valid_range is not None and d.valid_range[0] > d.valid_range[1]:
                problems.append(f"{name}: driver {d.driver_key} has an empty valid range")

        for rule in self.suppressions:
            for key in (rule.driver_key,) + tuple(rule.suppressed_by):
                if key not in keys:
                    problems.append(f"{name}: suppression rule references unknown driver {key}")

        for rule in self.confidence_rules:
            if rule.kind not in (CAP, FLOOR):
                problems.append(f"{name}: confidence rule kind {rule.kind!r} is not cap/floor")
            if not (0.0 <= rule.limit <= 100.0):
                problems.append(f"{name}: confidence rule limit {rule.limit!r} outside [0, 100]")
            for key in rule.predicate.driver_keys:
                if key not in keys:
                    problems.append(f"{name}: confidence rule references unknown driver {key}")

        for rule in self.risk_flags:
            if rule.driver_key not in keys:
                problems.append(f"{name}: risk flag {rule.flag} references unknown driver {rule.driver_key}")
            if rule.at_least is None and not rule.answers:
                problems.append(f"{name}: risk flag {rule.flag} has no threshold or answers")
        return problems


class SourceQualityTable:
    """Reliability multiplier in [0, 1] per source type; every SourceType must be covered."""

    def __init__(self, multipliers: Mapping[Any, float]):
        table: Dict[SourceType, float] = {}
        problems: List[str] = []
        for key, value in multipliers.items():
            try:
                source = SourceType(key)
            except ValueError:
                problems.append(f"unknown source type {key!r} in quality table")
                continue
            if not (0.0 <= float(value) <= 1.0):
                problems.append(f"quality multiplier for {source.value} is {value!r}, expected [0, 1]")
            table[source] = float(value)
        for source in SourceType:
            if source not in table:
                problems.append(f"quality table is missing source type {source.value}")
        if problems:
            raise ConfigurationError(problems)
        self._table = table

    def __getitem__(self, source: SourceType) -> float:
        return self._table[SourceType(source)]

    def as_dict(self) -> Dict[str, float]:
        return {s.value: self._table[s] for s in SourceType}


DEFAULT_SOURCE_QUALITY = SourceQualityTable(
    {
        SourceType.LAB: 1.0,
        SourceType.TEST: 0.9,
        SourceType.DEVICE: 0.8,
        SourceType.MEASURED_SELF_REPORT: 0.7,
        SourceType.IMAGE_ESTIMATE: 0.55,
        SourceType.SELF_REPORT_PROXY: 0.4,
        SourceType.PRIOR: 0.2,
    }
)


class DriverRegistry:
    """All drivers and per-domain rules for one scoring-rule revision."""

    def __init__(
        self,
        revision: str,
        domains: Mapping[Domain, DomainConfig],
        domain_weights: Optional[Mapping[Domain, float]] = None,
    ):
        self.revision = revision
        self._domains: Dict[Domain, DomainConfig] = {Domain(k): v for k, v in domains.items()}
        if domain_weights is None:
            domain_weights = {d: 1.0 / len(PRIME_DOMAINS) for d in PRIME_DOMAINS}
        self.domain_weights: Dict[Domain, float] = {Domain(k): float(v) for k, v in domain_weights.items()}
        self.validate()

    def validate(self) -> None:
        problems: List[str] = []
        for domain in PRIME_DOMAINS:
            config = self._domains.get(domain)
            if config is None:
                problems.append(f"{domain.value}: domain missing from registry")
                continue
            if config.domain != domain:
                problems.append(f"{domain.value}: registered under the wrong domain")
            problems.extend(config.problems())

        seen: Dict[str, Domain] = {}
        for config in self._domains.values():
            for key in config.driver_keys:
                if key in seen and seen[key] != config.domain:
                    problems.append(f"driver {key} registered in both {seen[key].value} and {config.domain.value}")
                seen[key] = config.domain

        missing_weights = [d.value for d in PRIME_DOMAINS if d not in self.domain_weights]
        if missing_weights:
            problems.append(f"domain weights missing for {', '.join(missing_weights)}")
        else:
            total = math.fsum(self.domain_weights[d] for d in PRIME_DOMAINS)
            if abs(total - 1.0) > WEIGHT_TOLERANCE:
                problems.append(f"domain weights sum to {total!r}, expected 1.0")

        if problems:
            raise ConfigurationError(problems)

    def domain(self, domain: Domain) -> DomainConfig:
        return self._domains[Domain(domain)]

    def drivers_for(self, domain: Domain) -> Tuple[Driver, ...]:
        return self.domain(domain).drivers

    def driver(self, driver_key: str) -> Optional[Driver]:
        for config in self._domains.values():
            found = config.driver(driver_key)
            if found is not None:
                return found
        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DriverRegistry":
        """Build a registry from its JSON form (same structure the defaults use).

        Malformed entries surface as ConfigurationError, never KeyError/TypeError.
        """
        try:
            domains: Dict[Domain, DomainConfig] = {}
            for domain_name, domain_data in data["domains"].items():
                domain = Domain(domain_name)
                drivers = tuple(
                    Driver(
                        domain=domain,
                        driver_key=key,
                        weight=float(d["weight"]),
                        freshness_half_life_days=float(d["freshness_half_life_days"]),
                        stability_window_days=int(d.get("stability_window_days", 0)),
                        scoring=ScoringRule(
                            anchors=tuple((float(x), float(y)) for x, y in d.get("anchors", ())),
                            bands=tuple(Band(**b) for b in d.get("bands", ())),
                            categories=dict(d.get("categories", {})),
                        ),
                        display_name=d.get("display_name", ""),
                        unit=d.get("unit"),
                        valid_range=tuple(d["valid_range"]) if d.get("valid_range") else None,
                        missing_copy=d.get("missing_copy"),
                    )
                    for key, d in domain_data["drivers"].items()
                )
                suppressions = tuple(
                    SuppressionRule(
                        driver_key=s["driver_key"],
                        suppressed_by=tuple(s["suppressed_by"]),
                        reason=s.get("reason", ""),
                    )
                    for s in domain_data.get("suppressions", ())
                )
                rules = tuple(
                    ConfidenceRule(
                        kind=r["kind"],
                        limit=float(r["limit"]),
                        predicate=EvidencePredicate(
                            source_types=frozenset(SourceType(s) for s in r["source_types"]),
                            driver_keys=frozenset(r.get("driver_keys", ())),
                        ),
                        message=r["message"],
                    )
                    for r in domain_data.get("confidence_rules", ())
                )
                flags = tuple(
                    RiskFlagRule(
                        flag=f["flag"],
                        driver_key=f["driver_key"],
                        message=f["message"],
                        at_least=float(f["at_least"]) if f.get("at_least") is not None else None,
                        answers=frozenset(a.lower() for a in f.get("answers", ())),
                    )
                    for f in domain_data.get("risk_flags", ())
                )
                domains[domain] = DomainConfig(domain, drivers, suppressions, rules, flags)
            weights = data.get("domain_weights")
            return cls(str(data["revision"]), domains, weights)
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError([f"malformed registry definition: {exc!r}"])
