"""Core data types for the Prime Scorecard engine.

Everything here is immutable (frozen dataclasses) except the Scorecard maps,
which are built once by the assembler and never mutated afterwards.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from eden.utils.timezone import isoformat_utc, to_utc_aware


class Domain(str, Enum):
    HEART = "heart"
    FRAME = "frame"
    METABOLISM = "metabolism"
    RECOVERY = "recovery"
    MIND = "mind"


PRIME_DOMAINS: Tuple[Domain, ...] = (
    Domain.HEART,
    Domain.FRAME,
    Domain.METABOLISM,
    Domain.RECOVERY,
    Domain.MIND,
)


class SourceType(str, Enum):
    """Provenance of a measurement, highest trust first."""

    LAB = "lab"
    TEST = "test"
    DEVICE = "device"
    MEASURED_SELF_REPORT = "measured_self_report"
    IMAGE_ESTIMATE = "image_estimate"
    SELF_REPORT_PROXY = "self_report_proxy"
    PRIOR = "prior"


SOURCE_LABELS: Dict[SourceType, str] = {
    SourceType.LAB: "lab result",
    SourceType.TEST: "test",
    SourceType.DEVICE: "device",
    SourceType.MEASURED_SELF_REPORT: "your measurement",
    SourceType.IMAGE_ESTIMATE: "photo estimate",
    SourceType.SELF_REPORT_PROXY: "quick check",
    SourceType.PRIOR: "population prior",
}


# --- Evidence values -------------------------------------------------------

@dataclass(frozen=True)
class NumericValue:
    value: float

    def __str__(self) -> str:
        return f"{self.value:g}"


@dataclass(frozen=True)
class CategoricalValue:
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Unestimable:
    """The source tried to measure but could not produce a value (e.g. photo body-fat)."""

    reason: Optional[str] = None

    def __str__(self) -> str:
        return "unable to estimate"


Value = Union[NumericValue, CategoricalValue, Unestimable]


def as_value(raw: Any) -> Value:
    """Wrap a raw python value into the tagged variant."""
    if isinstance(raw, (NumericValue, CategoricalValue, Unestimable)):
        return raw
    if raw is None:
        return Unestimable()
    if isinstance(raw, bool):
        return CategoricalValue("true" if raw else "false")
    if isinstance(raw, (int, float)):
        return NumericValue(float(raw))
    return CategoricalValue(str(raw))


def numeric_value(value: Value) -> Optional[float]:
    """Finite number carried by a value, including numeric text such as "128"."""
    if isinstance(value, NumericValue):
        number = value.value
    elif isinstance(value, CategoricalValue):
        try:
            number = float(value.value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


@dataclass(frozen=True)
class EvidenceItem:
    domain: Domain
    driver_key: str
    value: Value
    source_type: SourceType
    measured_at: Optional[datetime] = None  # None: unknown age, treated as maximally stale
    unit: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "domain", Domain(self.domain))
        object.__setattr__(self, "source_type", SourceType(self.source_type))
        object.__setattr__(self, "value", as_value(self.value))
        object.__setattr__(self, "measured_at", to_utc_aware(self.measured_at))

    @property
    def is_unestimable(self) -> bool:
        return isinstance(self.value, Unestimable)


@dataclass(frozen=True)
class EvidenceSet:
    """Snapshot of every measurement available for one subject."""

    items: Tuple[EvidenceItem, ...] = ()
    subject_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))

    @property
    def total_metrics(self) -> int:
        return len(self.items)

    def for_domain(self, domain: Domain) -> List[EvidenceItem]:
        return [item for item in self.items if item.domain == domain]

    def freshest_measured_at(self, domain: Optional[Domain] = None) -> Optional[datetime]:
        stamps = [
            item.measured_at
            for item in self.items
            if item.measured_at is not None and (domain is None or item.domain == domain)
        ]
        return max(stamps) if stamps else None


# --- Results ---------------------------------------------------------------

@dataclass(frozen=True)
class DomainResult:
    domain: Domain
    score: Optional[float]
    confidence: float
    explanation: Tuple[str, ...] = ()
    risk_flags: Mapping[str, bool] = field(default_factory=dict)

    @property
    def display_score(self) -> Optional[int]:
        return None if self.score is None else int(round(self.score))


CONFIDENCE_LOW = 40
CONFIDENCE_HIGH = 70


def confidence_label(confidence: float) -> str:
    """Display bucket only; never used inside the engine."""
    if confidence < CONFIDENCE_LOW:
        return "Low"
    if confidence >= CONFIDENCE_HIGH:
        return "High"
    return "Medium"


@dataclass(frozen=True)
class EvidenceSummary:
    total_metrics: int
    domains_with_data: int
    freshest_measured_at: Optional[datetime] = None
    freshest_by_domain: Mapping[str, Optional[datetime]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_metrics": self.total_metrics,
            "domains_with_data": self.domains_with_data,
            "freshest_measured_at": isoformat_utc(self.freshest_measured_at),
            "freshest_by_domain": {
                domain: isoformat_utc(stamp) for domain, stamp in self.freshest_by_domain.items()
            },
        }


@dataclass(frozen=True)
class Scorecard:
    generated_at: datetime
    scoring_revision: str
    domain_scores: Mapping[str, Optional[float]]
    domain_confidence: Mapping[str, float]
    prime_score: Optional[float]
    prime_confidence: float
    how_calculated: Mapping[str, Sequence[str]]
    evidence_summary: EvidenceSummary
    risk_flags: Mapping[str, Mapping[str, bool]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable persisted shape."""
        return {
            "generated_at": isoformat_utc(self.generated_at),
            "scoring_revision": self.scoring_revision,
            "domain_scores": {d.value: self.domain_scores.get(d.value) for d in PRIME_DOMAINS},
            "domain_confidence": {d.value: self.domain_confidence.get(d.value, 0.0) for d in PRIME_DOMAINS},
            "domain_confidence_label": {
                d.value: confidence_label(self.domain_confidence.get(d.value, 0.0)) for d in PRIME_DOMAINS
            },
            "prime_score": self.prime_score,
            "prime_confidence": self.prime_confidence,
            "how_calculated": {d.value: list(self.how_calculated.get(d.value, ())) for d in PRIME_DOMAINS},
            "evidence_summary": self.evidence_summary.to_dict(),
            "risk_flags": {d.value: dict(self.risk_flags.get(d.value, {})) for d in PRIME_DOMAINS},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Scorecard":
        """Rehydrate a persisted scorecard, validating its shape first."""
        from .schemas import ScorecardPayload

        payload = ScorecardPayload.model_validate(data)
        summary = payload.evidence_summary
        return cls(
            generated_at=to_utc_aware(payload.generated_at),
            scoring_revision=payload.scoring_revision,
            domain_scores=dict(payload.domain_scores),
            domain_confidence=dict(payload.domain_confidence),
            prime_score=payload.prime_score,
            prime_confidence=payload.prime_confidence,
            how_calculated={k: tuple(v) for k, v in payload.how_calculated.items()},
            evidence_summary=EvidenceSummary(
                total_metrics=summary.total_metrics,
                domains_with_data=summary.domains_with_data,
                freshest_measured_at=to_utc_aware(summary.freshest_measured_at),
                freshest_by_domain={
                    k: to_utc_aware(v) for k, v in summary.freshest_by_domain.items()
                },
            ),
            risk_flags={k: dict(v) for k, v in payload.risk_flags.items()},
        )
