"""Prime Scorecard package.

This module contains:
- A versioned Driver Registry and Source Quality Table (static rule data)
- Pure calculators for domain confidence, domain score and the Prime Score
- The scorecard assembler with its idempotent re-generation guard
- SQLAlchemy models, repositories and a service wrapping the engine for
  persistence, plus the FastAPI router exposing it

The calculators never touch the database or settings; only services/api do.
"""

from .aggregate import aggregate
from .assembler import compute_scorecard, generate_or_reuse, should_reuse
from .confidence import compute_domain_confidence
from .defaults import DEFAULT_REGISTRY
from .errors import ConfigurationError, InvalidEvidenceValue, PrimeScorecardError
from .registry import DEFAULT_SOURCE_QUALITY, DriverRegistry, SourceQualityTable
from .scoring import compute_domain_score
from .types import (
    CategoricalValue,
    Domain,
    DomainResult,
    EvidenceItem,
    EvidenceSet,
    NumericValue,
    Scorecard,
    SourceType,
    Unestimable,
    confidence_label,
)
