from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

DOMAIN_KEYS = ("heart", "frame", "metabolism", "recovery", "mind")


def _require_domain_keys(value: Dict, name: str) -> Dict:
    missing = [d for d in DOMAIN_KEYS if d not in value]
    unknown = [k for k in value if k not in DOMAIN_KEYS]
    if missing or unknown:
        raise ValueError(f"{name} must have exactly the keys {', '.join(DOMAIN_KEYS)}")
    return value


class EvidenceSummaryPayload(BaseModel):
    total_metrics: int = Field(..., ge=0)
    domains_with_data: int = Field(..., ge=0, le=len(DOMAIN_KEYS))
    freshest_measured_at: Optional[datetime] = None
    freshest_by_domain: Dict[str, Optional[datetime]] = Field(default_factory=dict)


class ScorecardPayload(BaseModel):
    """Persisted scorecard shape."""

    generated_at: datetime
    scoring_revision: str
    domain_scores: Dict[str, Optional[float]]
    domain_confidence: Dict[str, float]
    domain_confidence_label: Optional[Dict[str, str]] = None
    prime_score: Optional[float] = Field(None, ge=0, le=100)
    prime_confidence: float = Field(..., ge=0, le=100)
    how_calculated: Dict[str, List[str]]
    evidence_summary: EvidenceSummaryPayload
    # Absent on scorecards stored before risk flags existed
    risk_flags: Dict[str, Dict[str, bool]] = Field(default_factory=dict)

    @field_validator("domain_scores")
    @classmethod
    def check_scores(cls, v):
        _require_domain_keys(v, "domain_scores")
        for domain, score in v.items():
            if score is not None and not (0 <= score <= 100):
                raise ValueError(f"domain_scores.{domain} must be within 0-100")
        return v

    @field_validator("domain_confidence")
    @classmethod
    def check_confidence(cls, v):
        _require_domain_keys(v, "domain_confidence")
        for domain, confidence in v.items():
            if not (0 <= confidence <= 100):
                raise ValueError(f"domain_confidence.{domain} must be within 0-100")
        return v

    @field_validator("how_calculated")
    @classmethod
    def check_how_calculated(cls, v):
        return _require_domain_keys(v, "how_calculated")


class ScorecardResponse(BaseModel):
    subject_id: str
    scorecard_id: Optional[int] = None
    is_cached: bool = False
    scorecard: ScorecardPayload


class ScorecardHistoryItem(BaseModel):
    scorecard_id: int
    generated_at: datetime
    scoring_revision: str
    prime_score: Optional[float] = None
    prime_confidence: float
