from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Tuple

from .engine import clamp, weighted_mean
from .errors import ConfigurationError
from .types import PRIME_DOMAINS, Domain, DomainResult

EQUAL_DOMAIN_WEIGHTS: Dict[Domain, float] = {d: 1.0 / len(PRIME_DOMAINS) for d in PRIME_DOMAINS}


def aggregate(
    domain_results: Iterable[DomainResult],
    min_scored_domains: int = len(PRIME_DOMAINS),
    domain_weights: Optional[Mapping[Domain, float]] = None,
) -> Tuple[Optional[float], float]:
    """Combine domain results into (prime_score, prime_confidence).

    prime_score is the weighted mean of the scored domains, and is None unless
    at least `min_scored_domains` domains are scored. The default of all five
    keeps the Prime Score hidden until every domain has a number.
    prime_confidence averages all five domain confidences; a domain without a
    result counts as confidence 0.
    """
    if not (1 <= min_scored_domains <= len(PRIME_DOMAINS)):
        raise ConfigurationError([f"min_scored_domains must be 1-{len(PRIME_DOMAINS)}, got {min_scored_domains}"])
    weights = domain_weights or EQUAL_DOMAIN_WEIGHTS
    by_domain = {Domain(r.domain): r for r in domain_results}

    scored = [
        (weights[d], by_domain[d].score)
        for d in PRIME_DOMAINS
        if d in by_domain and by_domain[d].score is not None
    ]
    prime_score = None
    if len(scored) >= min_scored_domains:
        mean = weighted_mean(scored)
        prime_score = clamp(mean) if mean is not None else None

    confidences = [(weights[d], by_domain[d].confidence if d in by_domain else 0.0) for d in PRIME_DOMAINS]
    prime_confidence = clamp(weighted_mean(confidences) or 0.0)
    return prime_score, prime_confidence
